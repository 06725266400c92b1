# Overview: Flask API routes for stock and expiration alerts.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_login, require_view
from ..services import alert_service

alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("")
@require_login
def list_alerts_route():
    """Derived alerts (low stock, expiring soon) followed by stored ones."""
    runtime = g.runtime
    container = runtime.container
    alerts = alert_service.compute_alerts(runtime.cache.snapshot(), container.state.alerts, container.now())
    return jsonify({
        "items": [a.to_dict() for a in alerts],
        "unread": alert_service.unread_count(alerts),
    })


@alerts_bp.post("")
@require_login
@require_view("products")
def create_alert_route():
    """
    Record a manual alert against a product.

    Request body:
    {
        "productId": "...",
        "type": "expiration" | "low_stock" | "over_stock",
        "message": "...",
        "severity": "low" | "medium" | "high"   (optional, default medium)
    }
    """
    data = request.get_json(silent=True) or {}
    product = g.runtime.cache.get(str(data.get("productId") or ""))
    if product is None:
        return jsonify({"error": "Product not found"}), 404

    alert = alert_service.add_alert(
        g.runtime.container,
        type=data.get("type") or "",
        product=product,
        message=data.get("message") or "",
        severity=data.get("severity") or "medium",
    )
    return jsonify(alert.to_dict()), 201


@alerts_bp.post("/<alert_id>/read")
@require_login
def mark_alert_read_route(alert_id: str):
    alert = alert_service.mark_alert_read(g.runtime.container, alert_id)
    return jsonify({"ok": True, "alert": alert.to_dict() if alert else None})

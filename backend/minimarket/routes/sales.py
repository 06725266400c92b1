# Overview: Flask API routes for checkout, the sales list and printable receipts.

# backend/minimarket/routes/sales.py
"""
Sales routes.

Checkout builds the cart server-side from product ids and quantities; names
and prices always come from the catalog, never from the request.
"""

from flask import Blueprint, Response, g, jsonify, request

from ..decorators import require_login, require_view
from ..services import sales_service
from ..services.receipt_service import render_receipt
from ..services.sales_service import cart_from_payload, process_sale

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _warning_to_dict(warning) -> dict:
    return {
        "message": warning.message,
        "productId": warning.product_id,
        "details": warning.details,
    }


@sales_bp.post("/checkout")
@require_login
@require_view("sales")
def checkout_route():
    """
    Commit a sale.

    Request body:
    {
        "items": [{"productId": "...", "quantity": 2}],
        "paymentMethod": "cash" | "card" | "transfer" | "yape" | "plin" | "other",
        "operationNumber": "OP123",      (required unless cash)
        "customerName": "...",           (optional)
        "customerDocument": "..."        (optional)
    }

    Quantities refused for stock are capped at what the cart accepted and
    reported under "warnings".
    """
    runtime = g.runtime
    payload = request.get_json(silent=True) or {}

    cart, warnings = cart_from_payload(runtime.cache, payload)
    sale = process_sale(runtime.container, runtime.store, cart)

    return jsonify({
        "sale": sale.to_dict(),
        "warnings": [_warning_to_dict(w) for w in warnings],
    }), 201


@sales_bp.get("")
@require_login
@require_view("sales")
def list_sales_route():
    """
    Query params:
    - search: str (optional) - sale number, customer name or document
    - date_filter: all | today | week | month
    - payment_method: all | cash | card | transfer | yape | plin | other
    """
    container = g.runtime.container
    sales, total = sales_service.filter_sales(
        container.state.sales,
        search=request.args.get("search", ""),
        date_filter=request.args.get("date_filter", "all"),
        payment_method=request.args.get("payment_method", "all"),
        now=container.now(),
    )
    return jsonify({
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "total_amount": total,
    })


@sales_bp.get("/<sale_id>")
@require_login
@require_view("sales")
def get_sale_route(sale_id: str):
    sale = sales_service.find_sale(g.runtime.container.state.sales, sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify(sale.to_dict())


@sales_bp.get("/<sale_id>/receipt")
@require_login
@require_view("sales")
def sale_receipt_route(sale_id: str):
    """Printable HTML receipt. Query param `variant`: boleta (default) or factura."""
    sale = sales_service.find_sale(g.runtime.container.state.sales, sale_id)
    if sale is None:
        return jsonify({"error": "Sale not found"}), 404

    html = render_receipt(sale, request.args.get("variant", "boleta"), g.runtime.business)
    return Response(html, mimetype="text/html")

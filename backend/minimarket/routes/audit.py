# Overview: Flask API routes for the audit log (admin only).

from flask import Blueprint, g, jsonify, request

from ..decorators import require_login, require_view
from ..services import audit_service

audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("")
@require_login
@require_view("audit")
def list_audit_route():
    """
    Query params:
    - search: str (optional) - details or username
    - entity: all | product | sale | user | cash
    - date_filter: all | today | week | month
    - limit: int (optional, default 200)
    """
    limit = request.args.get("limit", default=audit_service.DEFAULT_LIMIT, type=int)
    events = audit_service.list_audit_events(
        search=request.args.get("search", ""),
        entity=request.args.get("entity", "all"),
        date_filter=request.args.get("date_filter", "all"),
        now=g.runtime.container.now(),
        limit=max(1, min(limit, 1000)),
    )
    return jsonify({"items": [e.to_dict() for e in events]})

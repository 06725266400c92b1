# Overview: Flask API routes for the cash drawer: status, open, close and history.

# backend/minimarket/routes/cash.py
"""
Cash drawer API Routes

WHY: the drawer is counted at close. Expected cash is always re-derived
from the sales inside the session window; nothing here stores it.

Every role may run the drawer (`cash` view).
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_login, require_view
from ..services import cash_service

cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


@cash_bp.get("/status")
@require_login
@require_view("cash")
def cash_status_route():
    """Live summary of the open session, or {"active": false}."""
    container = g.runtime.container
    state = container.state
    session = state.current_cash_session
    if session is None:
        return jsonify({"active": False})

    summary = cash_service.session_summary(session, state.sales, container.now())
    return jsonify({"active": True, **summary})


@cash_bp.post("/open")
@require_login
@require_view("cash")
def open_cash_route():
    """
    Open the drawer.

    Request body:
    {
        "opening_amount": 100.00   (number or numeric string, >= 0)
    }
    """
    data = request.get_json(silent=True) or {}
    session = cash_service.open_session(g.runtime.container, data.get("opening_amount"))
    return jsonify({"session": session.to_dict()}), 201


@cash_bp.post("/close")
@require_login
@require_view("cash")
def close_cash_route():
    """Close the open session and return its final summary."""
    container = g.runtime.container
    closed = cash_service.close_session(container)
    summary = cash_service.session_summary(closed, container.state.sales)
    return jsonify(summary)


@cash_bp.get("/history")
@require_login
@require_view("cash")
def cash_history_route():
    limit = request.args.get("limit", default=cash_service.HISTORY_LIMIT, type=int)
    state = g.runtime.container.state
    rows = cash_service.session_history(state.cash_sessions, state.sales, limit=max(limit, 0))
    return jsonify({"items": rows})

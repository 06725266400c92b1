# Overview: Flask API routes for the (read-only) user list.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_login, require_view
from ..services.user_service import list_users, user_profile

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_login
@require_view("users")
def list_users_route():
    users = list_users(g.runtime.container.state.users, request.args.get("search", ""))
    return jsonify({"items": [user_profile(u) for u in users]})

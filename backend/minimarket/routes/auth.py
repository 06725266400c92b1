# Overview: Flask API routes for login/logout and the role-driven navigation menu.

# backend/minimarket/routes/auth.py
"""
Demo authentication API routes

WHY: one register, three seeded users. Login picks a user by name and
accepts any password; the logged-in user is the container's current user.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_login
from ..permissions import navigation
from ..runtime import get_runtime
from ..services import auth_service
from ..services.user_service import user_profile


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Log in by username.

    Request body:
    {
        "username": "admin",
        "password": "anything"   (ignored)
    }
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    if not username:
        return jsonify({"error": "username required"}), 400

    user = auth_service.login(get_runtime().container, username)
    return jsonify({
        "user": user_profile(user),
        "navigation": navigation(user.role),
    })


@auth_bp.post("/logout")
def logout_route():
    """
    Log out. An open cash session is closed first and returned.

    Logging out with nobody logged in is a no-op.
    """
    closed = auth_service.logout(get_runtime().container)
    return jsonify({
        "ok": True,
        "closed_session": closed.to_dict() if closed else None,
    })


@auth_bp.get("/me")
@require_login
def me_route():
    return jsonify({"user": user_profile(g.current_user)})


@auth_bp.get("/navigation")
@require_login
def navigation_route():
    return jsonify({"navigation": navigation(g.current_user.role)})

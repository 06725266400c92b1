# Overview: Login and role-gated view decorators for API routes.

from functools import wraps

from flask import g, jsonify

from .permissions import can_access
from .runtime import get_runtime


def require_login(f):
    """
    Require a logged-in user.

    Sets g.current_user and g.runtime for the route. There is a single
    register, so "logged in" means the container's current user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        runtime = get_runtime()
        user = runtime.container.state.current_user
        if user is None:
            return jsonify({"error": "Authentication required"}), 401

        g.current_user = user
        g.runtime = runtime
        return f(*args, **kwargs)

    return decorated_function


def require_view(view: str):
    """Require that the current user's role may open `view`. Use after @require_login."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = g.get("current_user")
            if user is None:
                return jsonify({"error": "Authentication required"}), 401

            if not can_access(user, view):
                return jsonify({
                    "error": "Permission denied",
                    "required_view": view,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator

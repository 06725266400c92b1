"""
Role-gated views.

WHY: Each module of the application is a "view" that a role may or may not
open. The same table drives the navigation menu and the API guards, so the
two can never disagree.

DESIGN PRINCIPLES:
- Every role sees dashboard, sales and cash
- Catalog maintenance and reports are for admin and supervisor
- User management and the audit log are admin only
"""

from __future__ import annotations

from typing import Optional

from .models import Role, User


# =============================================================================
# VIEW DEFINITIONS
# =============================================================================

# (view id, menu label, roles allowed), in menu order
VIEW_DEFINITIONS = [
    ("dashboard", "Dashboard", (Role.ADMIN, Role.SUPERVISOR, Role.CASHIER)),
    ("products", "Productos", (Role.ADMIN, Role.SUPERVISOR)),
    ("sales", "Ventas", (Role.ADMIN, Role.SUPERVISOR, Role.CASHIER)),
    ("reports", "Reportes", (Role.ADMIN, Role.SUPERVISOR)),
    ("users", "Usuarios", (Role.ADMIN,)),
    ("cash", "Caja", (Role.ADMIN, Role.SUPERVISOR, Role.CASHIER)),
    ("audit", "Auditoría", (Role.ADMIN,)),
]

VIEWS = {view_id: roles for view_id, _, roles in VIEW_DEFINITIONS}

ROLE_LABELS = {
    Role.ADMIN: "Administrador",
    Role.SUPERVISOR: "Supervisor",
    Role.CASHIER: "Cajero",
}


# =============================================================================
# HELPERS
# =============================================================================

def allowed_views(role: Role) -> list[str]:
    return [view_id for view_id, _, roles in VIEW_DEFINITIONS if role in roles]


def navigation(role: Role) -> list[dict]:
    """Menu entries for a role, in menu order."""
    return [
        {"id": view_id, "label": label}
        for view_id, label, roles in VIEW_DEFINITIONS
        if role in roles
    ]


def can_access(user: Optional[User], view: str) -> bool:
    if user is None or not user.is_active:
        return False
    if view not in VIEWS:
        raise KeyError(f"Unknown view: {view}")
    return user.role in VIEWS[view]

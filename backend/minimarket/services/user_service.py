# Overview: Read-only user listing over the seeded user set.

from __future__ import annotations

from typing import Iterable

from ..models import User
from ..permissions import ROLE_LABELS, allowed_views


def list_users(users: Iterable[User], search: str = "") -> list[User]:
    """Users whose username or email contains `search` (case-insensitive)."""
    term = (search or "").strip().lower()
    return [
        u for u in users
        if not term or term in u.username.lower() or term in u.email.lower()
    ]


def user_profile(user: User) -> dict:
    profile = user.to_dict()
    profile["roleLabel"] = ROLE_LABELS[user.role]
    profile["views"] = allowed_views(user.role)
    return profile

# Overview: Demo login/logout over the seeded user list; no credential check.

from __future__ import annotations

import logging
from typing import Optional

from ..models import CashSession, User
from ..state import Login, Logout, StateContainer
from ..validation import ValidationError

logger = logging.getLogger(__name__)


def find_active_user(users, username: str) -> Optional[User]:
    for user in users:
        if user.username == username and user.is_active:
            return user
    return None


def login(container: StateContainer, username: str) -> User:
    """
    Log in by username.

    WHY: this is a single-register demo deployment; any password is
    accepted and users are the fixed seed set.
    """
    with container.lock:
        user = find_active_user(container.state.users, (username or "").strip())
        if user is None:
            raise ValidationError("User not found or inactive")
        container.dispatch(Login(user))

    container.audit("LOGIN", "user", user.id, f"Inicio de sesión: {user.username}")
    logger.info("User %s logged in", user.username)
    return user


def logout(container: StateContainer) -> Optional[CashSession]:
    """
    Log out the current user.

    An active cash session is force-closed first. Returns that closed
    session, or None when no session was open.
    """
    with container.lock:
        state = container.state
        user = state.current_user
        if user is None:
            return None

        active = state.current_cash_session
        # Recorded while the user is still current so the entry carries their name
        container.audit("LOGOUT", "user", user.id, f"Cierre de sesión: {user.username}")
        new_state = container.dispatch(Logout(container.now()))

    closed = None
    if active is not None:
        closed = next((s for s in new_state.cash_sessions if s.id == active.id), None)
        logger.info("Cash session %s closed on logout of %s", active.id, user.username)
    logger.info("User %s logged out", user.username)
    return closed

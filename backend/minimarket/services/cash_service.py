"""
Cash drawer session management.

WHY: The drawer is counted at close against what the register says it
should hold. Expected cash is never stored; it is always re-derived from the
sales that fall inside the session window.

DESIGN PRINCIPLES:
- At most one active session at a time
- The active session is also a history entry from the moment it opens
- Closing replaces that history entry by id (never appends a second copy)
- Session window bounds are inclusive on both ends
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..models import CashSession, PaymentMethod, Sale, SessionStatus
from ..state import EndCashSession, RecordSessionHistory, StartCashSession, StateContainer, sales_in_window, sum_totals
from ..time_utils import to_utc_z
from ..validation import AuthenticationRequired, PreconditionError, ValidationError, to_money

logger = logging.getLogger(__name__)


PAYMENT_LABELS = {
    PaymentMethod.CASH: "Efectivo",
    PaymentMethod.CARD: "Tarjeta",
    PaymentMethod.TRANSFER: "Transferencia",
    PaymentMethod.YAPE: "Yape",
    PaymentMethod.PLIN: "Plin",
    PaymentMethod.OTHER: "Otro",
}

HISTORY_LIMIT = 10


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

def open_session(container: StateContainer, opening_amount) -> CashSession:
    """
    Open the drawer for the logged-in user.

    `opening_amount` may be a number or a numeric string straight from a
    form field. It must be finite and >= 0.
    """
    with container.lock:
        state = container.state
        user = state.current_user
        if user is None:
            raise AuthenticationRequired("No user is logged in")

        amount = to_money(opening_amount, "opening_amount")
        if amount < 0:
            raise ValidationError("opening_amount must be >= 0")

        if state.current_cash_session is not None:
            raise ValidationError("A cash session is already open")

        session = CashSession(
            id=str(uuid.uuid4()),
            user_id=user.id,
            start_amount=amount,
            current_amount=amount,
            start_time=container.now(),
        )
        container.dispatch(StartCashSession(session))

    container.audit("OPEN", "cash", session.id, f"Apertura de caja con S/ {amount:.2f}")
    logger.info("Cash session %s opened by %s with %s", session.id, user.username, amount)
    return session


def close_session(container: StateContainer) -> CashSession:
    """
    Close the active session.

    WHY: total_sales is frozen into the record at close so history does not
    have to re-scan sales, but the history view still falls back to a
    recomputation for records that carry 0.
    """
    with container.lock:
        state = container.state
        active = state.current_cash_session
        if active is None:
            raise PreconditionError("No active cash session")

        now = container.now()
        closed = replace(
            active,
            end_time=now,
            status=SessionStatus.CLOSED,
            total_sales=sum_totals(sales_in_window(state.sales, active.start_time, now)),
        )
        container.dispatch(EndCashSession(now), RecordSessionHistory(closed))

    container.audit(
        "CLOSE",
        "cash",
        closed.id,
        f"Cierre de caja con ventas por S/ {closed.total_sales:.2f}",
    )
    logger.info("Cash session %s closed with total sales %s", closed.id, closed.total_sales)
    return closed


# =============================================================================
# DERIVED FIGURES (pure)
# =============================================================================

def _window_end(session: CashSession, now: Optional[datetime]) -> datetime:
    if session.end_time is not None:
        return session.end_time
    if now is None:
        raise ValueError("now is required for an open session")
    return now


def session_sales(session: CashSession, sales: Iterable[Sale], now: Optional[datetime] = None) -> list[Sale]:
    return sales_in_window(sales, session.start_time, _window_end(session, now))


def compute_expected_cash(session: CashSession, sales: Iterable[Sale], now: Optional[datetime] = None) -> Decimal:
    """Opening amount plus cash-method sales inside the window."""
    in_window = session_sales(session, sales, now)
    cash = [s for s in in_window if s.payment_method is PaymentMethod.CASH]
    return session.start_amount + sum_totals(cash)


def compute_duration(session: CashSession, now: Optional[datetime] = None) -> tuple[int, int, int]:
    """(hours, minutes, seconds) from start to end, or to `now` while open."""
    elapsed = int((_window_end(session, now) - session.start_time).total_seconds())
    elapsed = max(elapsed, 0)
    hours, rest = divmod(elapsed, 3600)
    minutes, seconds = divmod(rest, 60)
    return hours, minutes, seconds


def format_duration(duration: tuple[int, int, int]) -> str:
    hours, minutes, seconds = duration
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def payment_breakdown(sales: Iterable[Sale]) -> list[dict]:
    """Per-method count and total, in PaymentMethod order, skipping unused methods."""
    sales = list(sales)
    rows = []
    for method in PaymentMethod:
        matching = [s for s in sales if s.payment_method is method]
        if not matching:
            continue
        rows.append({
            "method": method.value,
            "label": PAYMENT_LABELS[method],
            "count": len(matching),
            "total": sum_totals(matching),
        })
    return rows


def session_summary(session: CashSession, sales: Iterable[Sale], now: Optional[datetime] = None) -> dict:
    in_window = session_sales(session, sales, now)
    cash = [s for s in in_window if s.payment_method is PaymentMethod.CASH]
    duration = compute_duration(session, now)
    return {
        "session": session.to_dict(),
        "sales_count": len(in_window),
        "total_sales": sum_totals(in_window),
        "cash_sales": sum_totals(cash),
        "expected_cash": session.start_amount + sum_totals(cash),
        "duration": format_duration(duration),
        "duration_seconds": duration[0] * 3600 + duration[1] * 60 + duration[2],
        "payment_breakdown": payment_breakdown(in_window),
    }


def session_history(sessions: Iterable[CashSession], sales: Iterable[Sale], limit: int = HISTORY_LIMIT) -> list[dict]:
    """
    Closed sessions, newest first by start time.

    Records closed before total_sales was frozen at close carry 0; those are
    recomputed from their window.
    """
    sales = list(sales)
    closed = sorted(
        (s for s in sessions if s.status is SessionStatus.CLOSED),
        key=lambda s: s.start_time,
        reverse=True,
    )[:limit]

    rows = []
    for session in closed:
        total = session.total_sales
        if total <= 0:
            total = sum_totals(session_sales(session, sales))
        rows.append({
            "id": session.id,
            "user_id": session.user_id,
            "start_time": to_utc_z(session.start_time),
            "end_time": to_utc_z(session.end_time),
            "start_amount": session.start_amount,
            "total_sales": total,
            "duration": format_duration(compute_duration(session)),
        })
    return rows

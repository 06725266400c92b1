# Overview: Domain state container; a closed set of actions reduced into an immutable AppState.

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

from .models import (
    Alert,
    CashSession,
    KardexEntry,
    Product,
    Role,
    Sale,
    SessionStatus,
    User,
)
from .time_utils import utcnow
from .validation import ValidationError, money

logger = logging.getLogger(__name__)

"""
State container invariants (authoritative)

- AppState is never mutated; every dispatch builds a new value.
- A batch of actions is applied as a unit: if any handler raises, none of
  the batch is visible afterwards.
- Products live in the ProductCache. Product actions are applied to the
  cache only after every other action in the batch succeeded.
- Users are never persisted; the seed list is loaded on every restore.
- Sales, kardex entries, cash sessions and alerts are written to the blob
  store under STORAGE_KEY before the new state becomes visible.
"""

STORAGE_KEY = "inventorySystem"


@dataclass(frozen=True)
class AppState:
    sales: tuple[Sale, ...] = ()
    kardex_entries: tuple[KardexEntry, ...] = ()
    cash_sessions: tuple[CashSession, ...] = ()
    alerts: tuple[Alert, ...] = ()
    users: tuple[User, ...] = ()
    current_user: Optional[User] = None
    current_cash_session: Optional[CashSession] = None


PERSISTED_FIELDS = (
    ("sales", "sales"),
    ("kardex_entries", "kardexEntries"),
    ("cash_sessions", "cashSessions"),
    ("alerts", "alerts"),
)


def seed_users(created_at: datetime) -> tuple[User, ...]:
    return (
        User(id="1", username="admin", email="admin@sistema.com", role=Role.ADMIN, created_at=created_at),
        User(id="2", username="supervisor", email="supervisor@sistema.com", role=Role.SUPERVISOR, created_at=created_at),
        User(id="3", username="vendedor", email="vendedor@sistema.com", role=Role.CASHIER, created_at=created_at),
    )


def sales_in_window(sales: Iterable[Sale], start: datetime, end: datetime) -> list[Sale]:
    """Sales with start <= created_at <= end. Both bounds inclusive."""
    return [s for s in sales if start <= s.created_at <= end]


def sum_totals(sales: Iterable[Sale]) -> Decimal:
    return money(sum((s.total for s in sales), Decimal("0")))


# -- Actions --

@dataclass(frozen=True)
class AddProduct:
    product: Product


@dataclass(frozen=True)
class UpdateProduct:
    product: Product


@dataclass(frozen=True)
class DeleteProduct:
    product_id: str


@dataclass(frozen=True)
class AddSale:
    sale: Sale


@dataclass(frozen=True)
class AddKardexEntry:
    entry: KardexEntry


@dataclass(frozen=True)
class Login:
    user: User


@dataclass(frozen=True)
class Logout:
    at: datetime


@dataclass(frozen=True)
class StartCashSession:
    session: CashSession


@dataclass(frozen=True)
class EndCashSession:
    at: datetime


@dataclass(frozen=True)
class RecordSessionHistory:
    session: CashSession


@dataclass(frozen=True)
class AddAlert:
    alert: Alert


@dataclass(frozen=True)
class MarkAlertRead:
    alert_id: str


@dataclass(frozen=True)
class LoadData:
    """Bulk replace. Fields left as None keep their current value."""
    sales: Optional[tuple[Sale, ...]] = None
    kardex_entries: Optional[tuple[KardexEntry, ...]] = None
    cash_sessions: Optional[tuple[CashSession, ...]] = None
    alerts: Optional[tuple[Alert, ...]] = None
    users: Optional[tuple[User, ...]] = None
    current_cash_session: Optional[CashSession] = None


Action = Union[
    AddProduct, UpdateProduct, DeleteProduct, AddSale, AddKardexEntry, Login, Logout,
    StartCashSession, EndCashSession, RecordSessionHistory, AddAlert, MarkAlertRead, LoadData,
]


# -- Handlers --

def _replace_session(sessions: tuple[CashSession, ...], session: CashSession) -> tuple[CashSession, ...]:
    if any(s.id == session.id for s in sessions):
        return tuple(session if s.id == session.id else s for s in sessions)
    return sessions + (session,)


def _close(session: CashSession, at: datetime, sales: Iterable[Sale]) -> CashSession:
    return replace(
        session,
        end_time=at,
        status=SessionStatus.CLOSED,
        total_sales=sum_totals(sales_in_window(sales, session.start_time, at)),
    )


def _product_passthrough(state: AppState, action) -> AppState:
    return state


def _add_sale(state: AppState, action: AddSale) -> AppState:
    return replace(state, sales=state.sales + (action.sale,))


def _add_kardex_entry(state: AppState, action: AddKardexEntry) -> AppState:
    return replace(state, kardex_entries=state.kardex_entries + (action.entry,))


def _login(state: AppState, action: Login) -> AppState:
    return replace(state, current_user=action.user)


def _logout(state: AppState, action: Logout) -> AppState:
    sessions = state.cash_sessions
    active = state.current_cash_session
    if active is not None and active.is_active:
        sessions = _replace_session(sessions, _close(active, action.at, state.sales))
    return replace(state, cash_sessions=sessions, current_user=None, current_cash_session=None)


def _start_cash_session(state: AppState, action: StartCashSession) -> AppState:
    if state.current_cash_session is not None:
        raise ValidationError("A cash session is already open")
    return replace(
        state,
        current_cash_session=action.session,
        cash_sessions=state.cash_sessions + (action.session,),
    )


def _end_cash_session(state: AppState, action: EndCashSession) -> AppState:
    active = state.current_cash_session
    if active is None:
        return state
    closed = replace(active, end_time=action.at, status=SessionStatus.CLOSED)
    return replace(
        state,
        current_cash_session=None,
        cash_sessions=_replace_session(state.cash_sessions, closed),
    )


def _record_session_history(state: AppState, action: RecordSessionHistory) -> AppState:
    return replace(state, cash_sessions=_replace_session(state.cash_sessions, action.session))


def _add_alert(state: AppState, action: AddAlert) -> AppState:
    return replace(state, alerts=state.alerts + (action.alert,))


def _mark_alert_read(state: AppState, action: MarkAlertRead) -> AppState:
    return replace(
        state,
        alerts=tuple(replace(a, is_read=True) if a.id == action.alert_id else a for a in state.alerts),
    )


def _load_data(state: AppState, action: LoadData) -> AppState:
    changes = {
        f.name: getattr(action, f.name)
        for f in fields(action)
        if getattr(action, f.name) is not None
    }
    return replace(state, **changes)


HANDLERS: dict[type, Callable] = {
    AddProduct: _product_passthrough,
    UpdateProduct: _product_passthrough,
    DeleteProduct: _product_passthrough,
    AddSale: _add_sale,
    AddKardexEntry: _add_kardex_entry,
    Login: _login,
    Logout: _logout,
    StartCashSession: _start_cash_session,
    EndCashSession: _end_cash_session,
    RecordSessionHistory: _record_session_history,
    AddAlert: _add_alert,
    MarkAlertRead: _mark_alert_read,
    LoadData: _load_data,
}


def reduce(state: AppState, action: Action) -> AppState:
    """Pure transition. Unknown action types raise TypeError."""
    handler = HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown action: {type(action).__name__}")
    return handler(state, action)


# -- Persistence --

def dump_state(state: AppState) -> str:
    return json.dumps({
        key: [item.to_dict() for item in getattr(state, attr)]
        for attr, key in PERSISTED_FIELDS
    })


def load_state(raw: str) -> LoadData:
    """
    Parse a stored blob into a LoadData action.

    Keys other than the persisted four (an older blob may carry "products")
    are ignored.
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ValidationError("Stored state is not valid JSON") from e
    if not isinstance(data, dict):
        raise ValidationError("Stored state must be a JSON object")

    try:
        sales = tuple(Sale.from_dict(d) for d in data.get("sales") or [])
        kardex = tuple(KardexEntry.from_dict(d) for d in data.get("kardexEntries") or [])
        sessions = tuple(CashSession.from_dict(d) for d in data.get("cashSessions") or [])
        alerts = tuple(Alert.from_dict(d) for d in data.get("alerts") or [])
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Stored state is corrupt: {e}") from e

    active = [s for s in sessions if s.is_active]
    return LoadData(
        sales=sales,
        kardex_entries=kardex,
        cash_sessions=sessions,
        alerts=alerts,
        current_cash_session=active[-1] if active else None,
    )


class StateContainer:
    """
    The single application state handle.

    Created once per app and passed explicitly to every service. `lock` is
    re-entrant so a service can hold it across validate-then-dispatch while
    dispatch takes it again.
    """

    def __init__(self, blob_store, product_cache, clock: Callable[[], datetime] = utcnow, audit_sink=None):
        self.blob_store = blob_store
        self.products = product_cache
        self.clock = clock
        self.audit_sink = audit_sink
        self.lock = threading.RLock()
        self._state = AppState()

    @property
    def state(self) -> AppState:
        return self._state

    def now(self) -> datetime:
        return self.clock()

    def dispatch(self, *actions: Action) -> AppState:
        """Apply a batch. Either every action lands or none does."""
        with self.lock:
            old = self._state
            new = old
            for action in actions:
                new = reduce(new, action)

            if any(getattr(old, attr) != getattr(new, attr) for attr, _ in PERSISTED_FIELDS):
                self.blob_store.set(STORAGE_KEY, dump_state(new))

            self._state = new
            for action in actions:
                self._apply_to_cache(action)
            return new

    def restore(self) -> AppState:
        """Load the persisted subset and reseed users."""
        raw = self.blob_store.get(STORAGE_KEY)
        users = seed_users(self.now())
        if not raw:
            return self.dispatch(LoadData(users=users))
        loaded = load_state(raw)
        state = self.dispatch(replace(loaded, users=users))
        logger.info(
            "Restored %d sales, %d kardex entries, %d cash sessions",
            len(state.sales), len(state.kardex_entries), len(state.cash_sessions),
        )
        return state

    def audit(self, action: str, entity: str, entity_id=None, details: str = "", old_value=None, new_value=None) -> None:
        """
        Forward an audit record, stamped with the current user and time, to
        the sink if one is set.

        Called after the action has committed, so a sink failure is logged
        and never reaches the caller.
        """
        if self.audit_sink is None:
            return
        user = self._state.current_user
        try:
            self.audit_sink(
                occurred_at=self.now(),
                user_id=user.id if user else None,
                username=user.username if user else None,
                action=action,
                entity=entity,
                entity_id=str(entity_id) if entity_id is not None else None,
                details=details,
                old_value=old_value,
                new_value=new_value,
            )
        except Exception:
            logger.exception("Audit write failed: %s %s %s", action, entity, entity_id)

    def _apply_to_cache(self, action) -> None:
        if isinstance(action, (AddProduct, UpdateProduct)):
            self.products.upsert(action.product)
        elif isinstance(action, DeleteProduct):
            self.products.remove(action.product_id)

"""Cash drawer sessions: opening, expected cash, closing and history."""

from dataclasses import replace
from decimal import Decimal

import pytest

from minimarket.models import SessionStatus
from minimarket.services import auth_service, cash_service
from minimarket.services.sales_service import Cart, process_sale
from minimarket.validation import AuthenticationRequired, PreconditionError, ValidationError


def _sell(container, store, product, quantity, method="cash", operation_number=None):
    cart = Cart(container.products)
    cart.add_item(container.products.get(product.id))
    if quantity != 1:
        cart.update_quantity(cart.lines[0].id, quantity)
    cart.set_payment(method, operation_number)
    return process_sale(container, store, cart)


def test_open_requires_login(container):
    with pytest.raises(AuthenticationRequired):
        cash_service.open_session(container, 100)


@pytest.mark.parametrize("amount", [-1, "abc", "", None, float("nan"), float("inf")])
def test_open_rejects_bad_amounts(container, amount):
    auth_service.login(container, "vendedor")
    with pytest.raises(ValidationError):
        cash_service.open_session(container, amount)
    assert container.state.current_cash_session is None


def test_open_accepts_numeric_string(container):
    auth_service.login(container, "vendedor")
    session = cash_service.open_session(container, "75.5")
    assert session.start_amount == Decimal("75.50")


def test_second_open_is_refused(container):
    auth_service.login(container, "vendedor")
    cash_service.open_session(container, 100)
    with pytest.raises(ValidationError):
        cash_service.open_session(container, 50)
    assert len(container.state.cash_sessions) == 1


def test_open_session_with_no_sales(container, clock):
    auth_service.login(container, "vendedor")
    session = cash_service.open_session(container, 100)
    clock.advance(minutes=5)

    summary = cash_service.session_summary(session, container.state.sales, clock())

    assert summary["expected_cash"] == Decimal("100.00")
    assert summary["total_sales"] == Decimal("0.00")
    assert summary["duration"] == "5m 0s"


def test_expected_cash_counts_only_cash_sales(container, store, stocked, make_product, clock):
    product = stocked(make_product(sale_price=Decimal("10.00")))
    auth_service.login(container, "vendedor")
    session = cash_service.open_session(container, 50)

    _sell(container, store, product, 3)
    clock.advance(seconds=1)
    _sell(container, store, product, 2, method="card", operation_number="OP123")

    now = clock.advance(seconds=1)
    assert cash_service.compute_expected_cash(session, container.state.sales, now) == Decimal("80.00")
    summary = cash_service.session_summary(session, container.state.sales, now)
    assert summary["total_sales"] == Decimal("50.00")
    assert summary["sales_count"] == 2
    assert [(r["method"], r["count"], r["total"]) for r in summary["payment_breakdown"]] == [
        ("cash", 1, Decimal("30.00")),
        ("card", 1, Decimal("20.00")),
    ]


def test_window_bounds_are_inclusive(container, store, stocked, make_product, clock):
    product = stocked(make_product(sale_price=Decimal("10.00")))
    auth_service.login(container, "vendedor")
    session = cash_service.open_session(container, 0)

    # Same instant as the session start
    sale = _sell(container, store, product, 1)
    assert sale.created_at == session.start_time

    closed = cash_service.close_session(container)
    assert closed.end_time == sale.created_at
    assert closed.total_sales == Decimal("10.00")


def test_close_replaces_history_entry(container, clock):
    auth_service.login(container, "vendedor")
    opened = cash_service.open_session(container, 20)
    clock.advance(hours=1, minutes=2, seconds=3)

    closed = cash_service.close_session(container)

    state = container.state
    assert state.current_cash_session is None
    assert len(state.cash_sessions) == 1
    assert state.cash_sessions[0].id == opened.id
    assert state.cash_sessions[0].status is SessionStatus.CLOSED
    assert cash_service.format_duration(cash_service.compute_duration(closed)) == "1h 2m 3s"


def test_close_without_session_is_precondition_error(container):
    auth_service.login(container, "vendedor")
    with pytest.raises(PreconditionError):
        cash_service.close_session(container)


def test_history_is_newest_first_and_limited(container, clock):
    auth_service.login(container, "vendedor")
    for _ in range(3):
        cash_service.open_session(container, 10)
        clock.advance(minutes=1)
        cash_service.close_session(container)
        clock.advance(minutes=1)

    rows = cash_service.session_history(container.state.cash_sessions, container.state.sales, limit=2)

    assert len(rows) == 2
    assert rows[0]["start_time"] > rows[1]["start_time"]


def test_history_recomputes_missing_total(container, store, stocked, make_product, clock):
    product = stocked(make_product(sale_price=Decimal("4.00")))
    auth_service.login(container, "vendedor")
    cash_service.open_session(container, 0)
    _sell(container, store, product, 2)
    closed = cash_service.close_session(container)

    legacy = replace(closed, total_sales=Decimal("0.00"))
    rows = cash_service.session_history([legacy], container.state.sales)

    assert rows[0]["total_sales"] == Decimal("8.00")


@pytest.mark.parametrize("duration, text", [
    ((0, 0, 7), "7s"),
    ((0, 3, 0), "3m 0s"),
    ((2, 0, 5), "2h 0m 5s"),
])
def test_format_duration(duration, text):
    assert cash_service.format_duration(duration) == text


def test_open_and_close_are_audited(container, audit_log):
    auth_service.login(container, "vendedor")
    cash_service.open_session(container, 10)
    cash_service.close_session(container)

    assert [r["action"] for r in audit_log] == ["LOGIN", "OPEN", "CLOSE"]
    assert audit_log[1]["username"] == "vendedor"

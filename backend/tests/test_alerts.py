"""Derived and stored alerts."""

from datetime import date

import pytest

from conftest import BASE_TIME
from minimarket.models import AlertType, Severity
from minimarket.services.alert_service import add_alert, compute_alerts, mark_alert_read, unread_count
from minimarket.validation import ValidationError


def test_low_stock_alert_at_minimum(make_product):
    product = make_product(id="p", name="Arroz", current_stock=2, min_stock=2)

    alerts = compute_alerts([product], [], BASE_TIME)

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id == "lowstock-p"
    assert alert.type is AlertType.LOW_STOCK
    assert alert.severity is Severity.HIGH
    assert alert.message == "Stock bajo (2 unidades)"


@pytest.mark.parametrize("expiration, expected", [
    (date(2024, 6, 9), True),    # 30 days ahead
    (date(2024, 6, 10), False),  # 31 days ahead
    (date(2024, 1, 1), True),    # already expired
])
def test_expiring_soon_window(make_product, expiration, expected):
    product = make_product(id="p", expiration_date=expiration)
    alerts = compute_alerts([product], [], BASE_TIME)
    assert [a.id for a in alerts] == (["expire-p"] if expected else [])


def test_expiring_message_uses_day_month_year(make_product):
    product = make_product(expiration_date=date(2024, 6, 9))
    alert = compute_alerts([product], [], BASE_TIME)[0]
    assert alert.message == "Por vencer el 9/6/2024"


def test_order_is_low_then_expiring_then_stored(container, make_product):
    low = make_product(id="low", current_stock=0)
    expiring = make_product(id="exp", expiration_date=date(2024, 5, 15))
    stored = add_alert(container, type="over_stock", product=expiring, message="Revisar", severity="low")

    alerts = compute_alerts([low, expiring], container.state.alerts, BASE_TIME)

    assert [a.id for a in alerts] == ["lowstock-low", "expire-exp", stored.id]


def test_mark_read_and_unread_count(container, make_product):
    product = make_product()
    first = add_alert(container, type="expiration", product=product, message="uno")
    add_alert(container, type="expiration", product=product, message="dos")
    assert unread_count(container.state.alerts) == 2

    updated = mark_alert_read(container, first.id)

    assert updated.is_read is True
    assert unread_count(container.state.alerts) == 1


def test_add_alert_validates_type(container, make_product):
    with pytest.raises(ValidationError):
        add_alert(container, type="flood", product=make_product(), message="x")

"""Audit log writes and the audit view filters."""

from datetime import timedelta

import pytest

from conftest import BASE_TIME
from minimarket.services.audit_service import append_audit_event, list_audit_events
from minimarket.validation import ValidationError


def _event(days_ago=0, **overrides):
    fields = dict(
        occurred_at=BASE_TIME - timedelta(days=days_ago),
        action="CREATE",
        entity="product",
        entity_id="p-1",
        user_id="1",
        username="admin",
        details="Producto creado: Arroz",
    )
    fields.update(overrides)
    return append_audit_event(**fields)


@pytest.fixture
def events(app):
    return [
        _event(0, details="Producto creado: Arroz"),
        _event(3, action="SALE", entity="sale", entity_id="s-1", username="vendedor", details="Venta V-1"),
        _event(20, action="LOGIN", entity="user", entity_id="3", username="vendedor", details="Inicio de sesión: vendedor"),
        _event(45, action="OPEN", entity="cash", entity_id="c-1", details="Apertura de caja"),
    ]


def test_newest_first(events):
    listed = list_audit_events(now=BASE_TIME)
    assert [e.id for e in listed] == [e.id for e in events]


@pytest.mark.parametrize("date_filter, count", [("all", 4), ("today", 1), ("week", 2), ("month", 3)])
def test_date_filters(events, date_filter, count):
    assert len(list_audit_events(date_filter=date_filter, now=BASE_TIME)) == count


def test_search_matches_details_and_username(events):
    assert [e.action for e in list_audit_events(search="ARROZ", now=BASE_TIME)] == ["CREATE"]
    assert [e.action for e in list_audit_events(search="vendedor", now=BASE_TIME)] == ["SALE", "LOGIN"]


def test_entity_filter(events):
    assert [e.entity for e in list_audit_events(entity="cash", now=BASE_TIME)] == ["cash"]


def test_bad_filters_are_rejected(app):
    with pytest.raises(ValidationError):
        list_audit_events(entity="planet", now=BASE_TIME)
    with pytest.raises(ValidationError):
        list_audit_events(date_filter="century", now=BASE_TIME)


def test_unknown_entity_cannot_be_written(app):
    with pytest.raises(ValueError):
        _event(entity="planet")


def test_to_dict_uses_client_keys(events):
    data = events[1].to_dict()
    assert data["timestamp"] == "2024-05-07T12:00:00.000Z"
    assert data["entityId"] == "s-1"
    assert data["username"] == "vendedor"

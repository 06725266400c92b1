# Overview: Stock and expiration alerts; derived alerts are computed on read, never stored.

from __future__ import annotations

import uuid
from datetime import datetime, time, timedelta
from typing import Iterable, Optional

from ..models import Alert, AlertType, Product, Severity
from ..state import AddAlert, MarkAlertRead, StateContainer
from ..validation import ValidationError

EXPIRY_WINDOW_DAYS = 30


def is_low_stock(product: Product) -> bool:
    return product.current_stock <= product.min_stock


def expires_within(product: Product, now: datetime, days: int = EXPIRY_WINDOW_DAYS) -> bool:
    """True when the expiration date is at most `days` ahead. Already expired counts."""
    if product.expiration_date is None:
        return False
    return datetime.combine(product.expiration_date, time.min) <= now + timedelta(days=days)


def compute_alerts(products: Iterable[Product], persisted: Iterable[Alert], now: datetime) -> list[Alert]:
    """
    Display list: derived low-stock alerts, then derived expiring-soon
    alerts, then persisted alerts in stored order.

    Derived ids are stable (`lowstock-<id>`, `expire-<id>`) so the same
    condition always maps to the same alert.
    """
    products = list(products)
    low = [
        Alert(
            id=f"lowstock-{p.id}",
            type=AlertType.LOW_STOCK,
            product_id=p.id,
            product_name=p.name,
            message=f"Stock bajo ({p.current_stock} unidades)",
            severity=Severity.HIGH,
            created_at=p.updated_at,
        )
        for p in products
        if is_low_stock(p)
    ]
    expiring = [
        Alert(
            id=f"expire-{p.id}",
            type=AlertType.EXPIRATION,
            product_id=p.id,
            product_name=p.name,
            message=f"Por vencer el {p.expiration_date.day}/{p.expiration_date.month}/{p.expiration_date.year}",
            severity=Severity.MEDIUM,
            created_at=datetime.combine(p.expiration_date, time.min),
        )
        for p in products
        if expires_within(p, now)
    ]
    return low + expiring + list(persisted)


def unread_count(alerts: Iterable[Alert]) -> int:
    return sum(1 for a in alerts if not a.is_read)


def add_alert(
    container: StateContainer,
    *,
    type: str,
    product: Product,
    message: str,
    severity: str = Severity.MEDIUM.value,
) -> Alert:
    try:
        alert_type = AlertType(type)
        alert_severity = Severity(severity)
    except ValueError as e:
        raise ValidationError(str(e))
    if not (message or "").strip():
        raise ValidationError("message cannot be blank")

    alert = Alert(
        id=uuid.uuid4().hex,
        type=alert_type,
        product_id=product.id,
        product_name=product.name,
        message=message.strip(),
        severity=alert_severity,
        created_at=container.now(),
    )
    container.dispatch(AddAlert(alert))
    return alert


def mark_alert_read(container: StateContainer, alert_id: str) -> Optional[Alert]:
    """Mark a persisted alert read. Derived alerts have no stored state and are left alone."""
    container.dispatch(MarkAlertRead(alert_id))
    for alert in container.state.alerts:
        if alert.id == alert_id:
            return alert
    return None

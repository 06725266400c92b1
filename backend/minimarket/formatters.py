"""
Display formatting for receipts (Peruvian conventions).

Registered as Jinja filters by the receipt renderer.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Union

from .validation import money

# Peru does not observe daylight saving time
DEFAULT_UTC_OFFSET_HOURS = -5


def money_pen(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format an amount in soles.

    Examples:
        money_pen(12.5) -> "S/ 12.50"
        money_pen(None) -> "S/ 0.00"
    """
    if value is None or value == "":
        value = 0
    return f"S/ {money(value):.2f}"


def datetime_pe(value: Optional[datetime], utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS) -> str:
    """
    Naive-UTC timestamp -> local "dd/mm/yyyy HH:MM:SS".

    Examples:
        datetime_pe(datetime(2024, 5, 10, 19, 3, 22)) -> "10/05/2024 14:03:22"
    """
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(timezone(timedelta(hours=utc_offset_hours)))
    return local.strftime("%d/%m/%Y %H:%M:%S")

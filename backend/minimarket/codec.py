"""
Field-name translation between the in-memory JSON shape (camelCase) and the
Product Store wire shape (snake_case column names).

The mapping is a fixed table, so it is total over its fields and invertible.
Keys outside the table are rejected rather than guessed at.
"""

from __future__ import annotations

from typing import Mapping


PRODUCT_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("code", "code"),
    ("name", "name"),
    ("description", "description"),
    ("category", "category"),
    ("brand", "brand"),
    ("costPrice", "cost_price"),
    ("salePrice", "sale_price"),
    ("profitPercentage", "profit_percentage"),
    ("currentStock", "current_stock"),
    ("minStock", "min_stock"),
    ("maxStock", "max_stock"),
    ("expirationDate", "expiration_date"),
    ("imageUrl", "image_url"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

CAMEL_TO_WIRE = dict(PRODUCT_FIELDS)
WIRE_TO_CAMEL = {wire: camel for camel, wire in PRODUCT_FIELDS}

WIRE_COLUMNS: tuple[str, ...] = tuple(wire for _, wire in PRODUCT_FIELDS)


def to_wire_keys(data: Mapping) -> dict:
    """camelCase keys -> wire column names. Raises KeyError on unknown keys."""
    return {CAMEL_TO_WIRE[key]: value for key, value in data.items()}


def from_wire_keys(row: Mapping) -> dict:
    """Wire column names -> camelCase keys. Raises KeyError on unknown keys."""
    return {WIRE_TO_CAMEL[key]: value for key, value in row.items()}

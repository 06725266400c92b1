"""Wire field translation and domain record serialization."""

from datetime import date
from decimal import Decimal

import pytest

from minimarket.codec import CAMEL_TO_WIRE, WIRE_TO_CAMEL, from_wire_keys, to_wire_keys
from minimarket.models import Product, compute_profit_percentage, product_from_row, product_to_row


def test_field_table_is_invertible():
    assert len(CAMEL_TO_WIRE) == len(WIRE_TO_CAMEL)
    for camel, wire in CAMEL_TO_WIRE.items():
        assert WIRE_TO_CAMEL[wire] == camel


def test_translates_known_keys_both_ways():
    assert to_wire_keys({"costPrice": 1, "currentStock": 2}) == {"cost_price": 1, "current_stock": 2}
    assert from_wire_keys({"sale_price": 3, "image_url": None}) == {"salePrice": 3, "imageUrl": None}


def test_unknown_key_is_rejected():
    with pytest.raises(KeyError):
        to_wire_keys({"colour": "red"})
    with pytest.raises(KeyError):
        from_wire_keys({"colour": "red"})


def test_product_row_round_trip_is_lossless(make_product):
    product = make_product(expiration_date=date(2024, 12, 31), image_url="http://img/1.png", brand="Gloria")
    assert product_from_row(product_to_row(product)) == product


def test_product_json_round_trip(make_product):
    product = make_product(expiration_date=date(2024, 12, 31))
    data = product.to_dict()

    assert data["costPrice"] == 5.0
    assert data["expirationDate"] == "2024-12-31"
    assert data["createdAt"] == "2024-05-10T12:00:00.000Z"
    assert Product.from_dict(data) == product


def test_profit_percentage_is_markup_over_cost():
    assert compute_profit_percentage(Decimal("5.00"), Decimal("8.00")) == Decimal("60.00")
    assert compute_profit_percentage(Decimal("0.00"), Decimal("8.00")) == Decimal("0.00")

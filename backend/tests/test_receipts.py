"""Printable receipts."""

from decimal import Decimal

import pytest

from conftest import BASE_TIME
from minimarket.formatters import datetime_pe, money_pen
from minimarket.models import PaymentMethod, Sale, SaleItem
from minimarket.services.receipt_service import BusinessInfo, render_receipt
from minimarket.validation import ValidationError

BUSINESS = BusinessInfo(name="Minimarket Karito", tax_id="12345678901", address="Jr. Ejemplo 123, Lima", phone="958-077-827")


def _sale(**overrides):
    fields = dict(
        id="s-1",
        sale_number="V-1715342400000",
        items=(SaleItem(id="i-1", product_id="p-1", product_name="Inca Kola 500ml", unit_price=Decimal("2.50"), quantity=2),),
        payment_method=PaymentMethod.CASH,
        created_at=BASE_TIME,
        created_by="1",
    )
    fields.update(overrides)
    return Sale(**fields)


def test_boleta():
    html = render_receipt(_sale(), "boleta", BUSINESS)

    assert "BOLETA ELECTRÓNICA" in html
    assert "Minimarket Karito" in html
    assert "RUC: 12345678901" in html
    assert "Consumidor Final" in html
    assert "Inca Kola 500ml" in html
    assert "Total: S/ 5.00" in html
    assert "Efectivo" in html
    assert "10/05/2024 07:00:00" in html


def test_factura_shows_customer_and_operation():
    sale = _sale(
        payment_method=PaymentMethod.YAPE,
        operation_number="OP-77",
        customer_name="Bodega <Rosa>",
        customer_document="20123456789",
    )

    html = render_receipt(sale, "factura", BUSINESS)

    assert "FACTURA ELECTRÓNICA" in html
    assert "Bodega &lt;Rosa&gt;" in html
    assert "20123456789" in html
    assert "OP-77" in html
    assert "Yape" in html


def test_unknown_variant():
    with pytest.raises(ValidationError):
        render_receipt(_sale(), "ticket", BUSINESS)


def test_formatters():
    assert money_pen(12.5) == "S/ 12.50"
    assert money_pen(None) == "S/ 0.00"
    assert datetime_pe(None) == ""
    assert datetime_pe(BASE_TIME) == "10/05/2024 07:00:00"

"""Report aggregations over sales and catalog snapshots."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from conftest import BASE_TIME
from minimarket.models import PaymentMethod, Sale, SaleItem
from minimarket.services.reporting_service import (
    ReportError,
    bucket_key,
    dashboard_summary,
    inventory_report,
    profit_analysis,
    sales_report,
)
from minimarket.state import AppState


def _sale(sale_id, items, method=PaymentMethod.CASH, at=BASE_TIME):
    return Sale(
        id=sale_id,
        sale_number=f"V-{sale_id}",
        items=tuple(
            SaleItem(id=f"{sale_id}-{i}", product_id=pid, product_name=name, unit_price=Decimal(price), quantity=qty)
            for i, (pid, name, price, qty) in enumerate(items)
        ),
        payment_method=method,
        created_at=at,
        created_by="1",
    )


@pytest.mark.parametrize("period, key", [
    ("daily", "2024-05-10"),
    ("weekly", "2024-05-05"),
    ("monthly", "2024-05"),
    ("quarterly", "2024-Q2"),
    ("yearly", "2024"),
])
def test_bucket_key(period, key):
    # 2024-05-10 is a Friday; its week starts on Sunday the 5th
    assert bucket_key(BASE_TIME, period) == key


def test_weekly_bucket_of_a_sunday_is_itself():
    assert bucket_key(datetime(2024, 5, 12, 9, 0), "weekly") == "2024-05-12"


def test_unknown_period_is_rejected():
    with pytest.raises(ReportError):
        bucket_key(BASE_TIME, "hourly")


def test_sales_report(make_product):
    milk = make_product(id="milk", name="Leche")
    rice = make_product(id="rice", name="Arroz")
    sales = [
        _sale("1", [("milk", "Leche", "4.00", 3), ("rice", "Arroz", "5.00", 1)]),
        _sale("2", [("milk", "Leche", "4.00", 1)], method=PaymentMethod.YAPE, at=datetime(2024, 5, 11, 10, 0)),
    ]

    report = sales_report(sales, [milk, rice])

    assert report["total_sales"] == 2
    assert report["total_revenue"] == Decimal("21.00")
    assert report["average_ticket"] == Decimal("10.50")
    assert [p["id"] for p in report["top_products"]] == ["milk", "rice"]
    assert report["top_products"][0]["quantity"] == 4
    assert [d["date"] for d in report["daily_sales"]] == ["2024-05-10", "2024-05-11"]
    assert [(m["method"], m["count"], m["amount"]) for m in report["payment_methods"]] == [
        ("cash", 1, Decimal("17.00")),
        ("yape", 1, Decimal("4.00")),
    ]


def test_sales_report_on_no_sales():
    report = sales_report([], [])
    assert report["total_sales"] == 0
    assert report["average_ticket"] == Decimal("0.00")
    assert report["top_products"] == []


def test_profit_uses_current_cost_and_skips_deleted_products(make_product):
    milk = make_product(id="milk", cost_price=Decimal("5.00"), sale_price=Decimal("8.00"))
    unsold = make_product(id="soap", cost_price=Decimal("1.00"), sale_price=Decimal("2.00"))
    sales = [_sale("1", [("milk", "Leche", "8.00", 3), ("gone", "Borrado", "10.00", 1)])]

    report = profit_analysis(sales, [milk, unsold], period="monthly")

    assert report["total_profit"] == Decimal("9.00")
    assert report["total_revenue"] == Decimal("34.00")
    assert report["total_cost"] == Decimal("15.00")
    row = report["top_products"][0]
    assert row["id"] == "milk"
    assert row["units_sold"] == 3
    assert row["avg_profit"] == Decimal("3.00")
    assert row["profit_margin"] == Decimal("37.50")
    assert report["chart"] == [{"period": "2024-05", "profit": Decimal("9.00")}]
    assert [p["id"] for p in report["unsold"]] == ["soap"]
    assert report["unsold"][0]["units_sold"] == 0


def test_inventory_report(make_product):
    products = [
        make_product(category="Bebidas", current_stock=10, cost_price=Decimal("2.00"), sale_price=Decimal("3.00")),
        make_product(category="Bebidas", current_stock=1, min_stock=2, cost_price=Decimal("1.00"), sale_price=Decimal("1.50")),
        make_product(category="Lácteos", current_stock=60, max_stock=50, expiration_date=date(2024, 5, 20)),
    ]

    report = inventory_report(products, BASE_TIME)

    assert report["total_products"] == 3
    assert len(report["low_stock"]) == 1
    assert len(report["over_stock"]) == 1
    assert len(report["expiring_soon"]) == 1
    assert report["inventory_value"] == Decimal("321.00")
    assert report["potential_revenue"] == Decimal("511.50")
    assert [(c["category"], c["products"], c["stock"]) for c in report["categories"]] == [
        ("Bebidas", 2, 11),
        ("Lácteos", 1, 60),
    ]


def test_dashboard_counts_only_todays_sales(make_product):
    product = make_product(id="milk", current_stock=1, min_stock=2)
    state = AppState(sales=(
        _sale("1", [("milk", "Leche", "4.00", 1)], at=datetime(2024, 5, 9, 23, 0)),
        _sale("2", [("milk", "Leche", "4.00", 2)]),
    ))

    summary = dashboard_summary(state, [product], BASE_TIME)

    assert summary["todays_sales"] == 1
    assert summary["todays_revenue"] == Decimal("8.00")
    assert summary["low_stock_count"] == 1
    assert summary["unread_alerts"] == 1
    assert [s["id"] for s in summary["recent_sales"]] == ["2", "1"]
    assert summary["has_active_session"] is False

# Overview: Report aggregations over in-memory sales and product snapshots.

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from ..models import Product, Sale
from ..state import AppState, sum_totals
from ..validation import ValidationError, money
from .alert_service import compute_alerts, expires_within, is_low_stock, unread_count
from .cash_service import payment_breakdown

"""
Reporting rules

- Everything here is a pure function of the snapshots passed in; nothing is
  cached and nothing is written.
- Sale lines carry the price they were sold at. Cost always comes from the
  CURRENT catalog product, so lines whose product was deleted drop out of
  profit figures but still count toward revenue.
- Products with no sales still appear (with zeroed metrics) in the profit
  view's `unsold` list.
"""

PERIODS = ("daily", "weekly", "monthly", "quarterly", "yearly")
ZERO = Decimal("0.00")

TOP_N = 5
TOP_PROFIT_N = 10
DAILY_SERIES_LENGTH = 30
RECENT_SALES_N = 5
DASHBOARD_ALERTS_N = 5


class ReportError(ValidationError):
    """Raised for an invalid report parameter."""


def bucket_key(ts: datetime, period: str) -> str:
    """
    Time bucket for a timestamp.

    weekly buckets start on Sunday and are keyed by that Sunday's date.
    """
    if period == "daily":
        return ts.date().isoformat()
    if period == "weekly":
        start = ts.date() - timedelta(days=(ts.weekday() + 1) % 7)
        return start.isoformat()
    if period == "monthly":
        return f"{ts.year}-{ts.month:02d}"
    if period == "quarterly":
        return f"{ts.year}-Q{(ts.month - 1) // 3 + 1}"
    if period == "yearly":
        return f"{ts.year}"
    raise ReportError(f"period must be one of: {', '.join(PERIODS)}")


def _margin(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator <= 0:
        return ZERO
    return money(numerator / denominator * 100)


# =============================================================================
# SALES
# =============================================================================

def sales_report(sales: Iterable[Sale], products: Iterable[Product]) -> dict:
    sales = list(sales)
    by_id = {p.id: p for p in products}

    per_product: "OrderedDict[str, dict]" = OrderedDict()
    for sale in sales:
        for item in sale.items:
            product = by_id.get(item.product_id)
            name = item.product_name or (product.name if product else "") or "Producto"
            row = per_product.setdefault(item.product_id, {"id": item.product_id, "name": name, "quantity": 0, "revenue": ZERO})
            row["name"] = name
            row["quantity"] += item.quantity
            row["revenue"] = money(row["revenue"] + item.total)

    ranked = sorted(per_product.values(), key=lambda r: r["quantity"], reverse=True)

    daily: dict[str, Decimal] = {}
    for sale in sales:
        key = bucket_key(sale.created_at, "daily")
        daily[key] = money(daily.get(key, ZERO) + sale.total)
    series = [{"date": key, "total": daily[key]} for key in sorted(daily)][-DAILY_SERIES_LENGTH:]

    revenue = sum_totals(sales)
    return {
        "total_sales": len(sales),
        "total_revenue": revenue,
        "average_ticket": money(revenue / len(sales)) if sales else ZERO,
        "top_products": ranked[:TOP_N],
        "least_sold_products": list(reversed(ranked[-TOP_N:])),
        "daily_sales": series,
        "payment_methods": [
            {"method": row["method"], "label": row["label"], "count": row["count"], "amount": row["total"]}
            for row in payment_breakdown(sales)
        ],
    }


# =============================================================================
# PROFIT
# =============================================================================

def _sale_profit(sale: Sale, by_id: dict) -> Decimal:
    total = ZERO
    for item in sale.items:
        product = by_id.get(item.product_id)
        if product is not None:
            total += (item.unit_price - product.cost_price) * item.quantity
    return money(total)


def profit_analysis(sales: Iterable[Sale], products: Iterable[Product], period: str = "monthly") -> dict:
    sales = list(sales)
    products = list(products)
    by_id = {p.id: p for p in products}

    per_product: "OrderedDict[str, dict]" = OrderedDict()
    total_cost = ZERO
    for sale in sales:
        for item in sale.items:
            product = by_id.get(item.product_id)
            if product is None:
                continue
            profit = money((item.unit_price - product.cost_price) * item.quantity)
            total_cost += product.cost_price * item.quantity
            row = per_product.setdefault(item.product_id, {
                "id": product.id,
                "name": item.product_name or product.name or "Producto",
                "total_profit": ZERO,
                "units_sold": 0,
                "avg_profit": ZERO,
                "profit_margin": ZERO,
                "cost_price": product.cost_price,
                "sale_price": product.sale_price,
            })
            row["total_profit"] = money(row["total_profit"] + profit)
            row["units_sold"] += item.quantity
            row["avg_profit"] = money(row["total_profit"] / row["units_sold"])
            row["profit_margin"] = _margin(product.sale_price - product.cost_price, product.sale_price)

    by_period: dict[str, Decimal] = {}
    for sale in sales:
        key = bucket_key(sale.created_at, period)
        by_period[key] = money(by_period.get(key, ZERO) + _sale_profit(sale, by_id))

    ranked = sorted(per_product.values(), key=lambda r: r["total_profit"], reverse=True)
    total_profit = money(sum((r["total_profit"] for r in ranked), ZERO))
    total_revenue = sum_totals(sales)

    unsold = [
        {
            "id": p.id,
            "name": p.name,
            "total_profit": ZERO,
            "units_sold": 0,
            "avg_profit": ZERO,
            "profit_margin": _margin(p.sale_price - p.cost_price, p.sale_price),
            "cost_price": p.cost_price,
            "sale_price": p.sale_price,
        }
        for p in products
        if p.id not in per_product
    ]

    return {
        "period": period,
        "total_profit": total_profit,
        "total_revenue": total_revenue,
        "total_cost": money(total_cost),
        "profit_margin": _margin(total_profit, total_revenue),
        "top_products": ranked[:TOP_PROFIT_N],
        "least_profitable_products": list(reversed(ranked[-TOP_N:])),
        "chart": [{"period": key, "profit": by_period[key]} for key in sorted(by_period)],
        "unsold": unsold,
    }


# =============================================================================
# INVENTORY
# =============================================================================

def inventory_report(products: Iterable[Product], now: datetime) -> dict:
    products = list(products)

    categories: "OrderedDict[str, dict]" = OrderedDict()
    for p in products:
        row = categories.setdefault(p.category, {"category": p.category, "products": 0, "stock": 0, "value": ZERO})
        row["products"] += 1
        row["stock"] += p.current_stock
        row["value"] = money(row["value"] + p.cost_price * p.current_stock)

    return {
        "total_products": len(products),
        "low_stock": [p.to_dict() for p in products if is_low_stock(p)],
        "over_stock": [p.to_dict() for p in products if p.current_stock >= p.max_stock],
        "expiring_soon": [p.to_dict() for p in products if expires_within(p, now)],
        "inventory_value": money(sum((p.cost_price * p.current_stock for p in products), ZERO)),
        "potential_revenue": money(sum((p.sale_price * p.current_stock for p in products), ZERO)),
        "categories": list(categories.values()),
    }


# =============================================================================
# DASHBOARD
# =============================================================================

def dashboard_summary(state: AppState, products: Iterable[Product], now: datetime) -> dict:
    products = list(products)
    today = [s for s in state.sales if s.created_at.date() == now.date()]
    alerts = compute_alerts(products, state.alerts, now)
    recent = sorted(state.sales, key=lambda s: s.created_at, reverse=True)[:RECENT_SALES_N]

    return {
        "total_products": len(products),
        "low_stock_count": sum(1 for p in products if is_low_stock(p)),
        "todays_sales": len(today),
        "todays_revenue": sum_totals(today),
        "unread_alerts": unread_count(alerts),
        "recent_sales": [s.to_dict() for s in recent],
        "alerts": [a.to_dict() for a in alerts[:DASHBOARD_ALERTS_N]],
        "has_active_session": state.current_cash_session is not None,
    }

# Overview: Flask API routes for sales, profit and inventory reports and the dashboard.

# backend/minimarket/routes/reports.py
"""
Reporting & analytics routes.

All figures are computed on read from the current sales and catalog
snapshots. Money values are Decimals (serialized as strings).
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_login, require_view
from ..services import reporting_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_login
@require_view("reports")
def sales_report_route():
    runtime = g.runtime
    report = reporting_service.sales_report(runtime.container.state.sales, runtime.cache.snapshot())
    return jsonify(report)


@reports_bp.get("/profits")
@require_login
@require_view("reports")
def profit_report_route():
    """Query param `period`: daily | weekly | monthly (default) | quarterly | yearly."""
    period = request.args.get("period", "monthly")
    if period not in reporting_service.PERIODS:
        return jsonify({"error": f"period must be one of: {', '.join(reporting_service.PERIODS)}"}), 400

    runtime = g.runtime
    report = reporting_service.profit_analysis(
        runtime.container.state.sales,
        runtime.cache.snapshot(),
        period=period,
    )
    return jsonify(report)


@reports_bp.get("/inventory")
@require_login
@require_view("reports")
def inventory_report_route():
    runtime = g.runtime
    return jsonify(reporting_service.inventory_report(runtime.cache.snapshot(), runtime.container.now()))


@reports_bp.get("/dashboard")
@require_login
@require_view("dashboard")
def dashboard_route():
    runtime = g.runtime
    container = runtime.container
    return jsonify(reporting_service.dashboard_summary(container.state, runtime.cache.snapshot(), container.now()))

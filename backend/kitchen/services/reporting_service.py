# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

import csv
import io
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..errors import InvalidInputError, NotFoundError
from ..models import Order
from ..models.orders import STATUS_DONE, VALID_ORDER_STATUSES
from ..validation import money, round_money
from kitchen.time_utils import parse_iso_datetime, parse_range_end, to_utc_z
from .fixed_costs_service import find_fixed_costs


HUNDRED = Decimal("100")

ORDER_REPORT_COLUMNS = [
    "order_id",
    "date",
    "due_date",
    "status",
    "customer_name",
    "product_name",
    "quantity",
    "unit_price",
    "line_total",
    "production_cost",
    "production_cost_line",
    "platform_fee_pct",
    "platform_fee_amount",
    "profit_with_fee",
    "profit_without_fee",
]


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_range_end(end) if end else None
    except ValueError:
        raise InvalidInputError("start/end must be ISO-8601 dates")
    if start_dt and end_dt and start_dt > end_dt:
        raise InvalidInputError("start must be before end")
    return start_dt, end_dt


def _orders_in_range(start_dt, end_dt, status: str | None) -> list[Order]:
    query = db.session.query(Order)
    if status is not None:
        query = query.filter(Order.status == status)
    if start_dt:
        query = query.filter(Order.date >= start_dt)
    if end_dt:
        query = query.filter(Order.date <= end_dt)
    return query.order_by(Order.date.asc(), Order.id.asc()).all()


def sales_summary(*, start: str | None = None, end: str | None = None) -> dict:
    """
    Totals over DONE orders whose date falls in [start, end].

    net_profit = total_sales - (total_production_cost + total_fixed_costs).
    Fixed costs are the monthly total, counted once regardless of the range.
    """
    start_dt, end_dt = _parse_range(start, end)

    fixed_costs = find_fixed_costs()
    if fixed_costs is None:
        raise NotFoundError("Fixed costs are not configured")

    orders = _orders_in_range(start_dt, end_dt, STATUS_DONE)

    total_sales = Decimal("0")
    total_production_cost = Decimal("0")
    for order in orders:
        total_sales += Decimal(order.total_price)
        for item in order.items:
            snapshot = item.snapshot
            if snapshot.production_cost is None:
                raise NotFoundError(
                    "Production cost missing for order item",
                    details={"order_id": order.id, "pricing_id": item.pricing_id},
                )
            total_production_cost += snapshot.production_cost * item.quantity

    total_fixed_costs = fixed_costs.total
    net_profit = total_sales - (total_production_cost + total_fixed_costs)

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "orders_count": len(orders),
        "total_sales": money(round_money(total_sales)),
        "total_production_cost": money(round_money(total_production_cost)),
        "total_fixed_costs": money(round_money(total_fixed_costs)),
        "net_profit": money(round_money(net_profit)),
    }


def _report_row(order: Order, item) -> dict:
    snapshot = item.snapshot
    unit_price = snapshot.selling_price
    line_total = unit_price * item.quantity
    production_cost = snapshot.production_cost or Decimal("0")
    production_cost_line = production_cost * item.quantity
    fee_pct = snapshot.platform_fee_pct
    fee_amount = line_total * fee_pct / HUNDRED

    return {
        "order_id": order.id,
        "date": to_utc_z(order.date),
        "due_date": to_utc_z(order.due_date),
        "status": order.status,
        "customer_name": order.customer_data.name,
        "product_name": snapshot.product_name,
        "quantity": item.quantity,
        "unit_price": money(round_money(unit_price)),
        "line_total": money(round_money(line_total)),
        "production_cost": money(round_money(production_cost)),
        "production_cost_line": money(round_money(production_cost_line)),
        "platform_fee_pct": float(fee_pct),
        "platform_fee_amount": money(round_money(fee_amount)),
        "profit_with_fee": money(round_money(line_total - fee_amount - production_cost_line)),
        "profit_without_fee": money(round_money(line_total - production_cost_line)),
    }


def order_report(
    *,
    start: str | None = None,
    end: str | None = None,
    status: str | None = None,
) -> dict:
    """One row per order item with unit economics taken from the item snapshot."""
    if status is not None and status not in VALID_ORDER_STATUSES:
        raise InvalidInputError("Invalid status", details={"allowed": sorted(VALID_ORDER_STATUSES)})
    start_dt, end_dt = _parse_range(start, end)

    rows = [
        _report_row(order, item)
        for order in _orders_in_range(start_dt, end_dt, status)
        for item in order.items
    ]

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "status": status,
        "columns": ORDER_REPORT_COLUMNS,
        "rows": rows,
    }


def render_order_report_csv(report: dict) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=ORDER_REPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in report["rows"]:
        writer.writerow(row)
    return buffer.getvalue()

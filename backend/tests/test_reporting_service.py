from datetime import datetime
from decimal import Decimal

import pytest

from kitchen.errors import InvalidInputError, NotFoundError
from kitchen.models import Order, OrderItem
from kitchen.models.orders import STATUS_DONE, STATUS_NOT_STARTED
from kitchen.services import fixed_costs_service, order_service, reporting_service
from kitchen.services.reporting_service import ORDER_REPORT_COLUMNS
from kitchen.snapshots import CustomerSnapshot, PricingSnapshot


def _snapshot(production_cost="50.00", selling_price="150.00", fee="0") -> dict:
    return PricingSnapshot(
        pricing_id=1,
        product_id=1,
        product_name="Wedding cake",
        selling_price=Decimal(selling_price),
        production_cost=None if production_cost is None else Decimal(production_cost),
        profit_margin_pct=Decimal("20"),
        platform_fee_pct=Decimal(fee),
        yields=1,
        ingredients=(),
    ).to_dict()


def _seed_order(db_session, customer, *, date, status=STATUS_DONE, total="300.00", quantity=2, production_cost="50.00"):
    order = Order(
        customer_id=customer.id,
        customer_snapshot=CustomerSnapshot.of(customer).to_dict(),
        total_price=Decimal(total),
        date=date,
        due_date=date,
        status=status,
    )
    order.items = [OrderItem(pricing_id=1, quantity=quantity, pricing_snapshot=_snapshot(production_cost))]
    db_session.add(order)
    db_session.commit()
    return order


@pytest.fixture
def overhead_50(db_session):
    return fixed_costs_service.save_fixed_costs({
        "rent": 50,
        "taxes": 0,
        "utilities": 0,
        "marketing": 0,
        "accounting": 0,
        "expected_monthly_sales": 100,
    })


class TestSalesSummary:
    def test_net_profit_scenario(self, db_session, customer, overhead_50):
        # 100 + 120 + 80 of sales, 40 + 30 + 30 production cost, 50 fixed -> 150
        for total, cost in (("100.00", "40.00"), ("120.00", "30.00"), ("80.00", "30.00")):
            _seed_order(
                db_session, customer,
                date=datetime(2026, 3, 10, 12, 0), total=total, quantity=1, production_cost=cost,
            )

        summary = reporting_service.sales_summary()

        assert summary["orders_count"] == 3
        assert summary["total_sales"] == 300.0
        assert summary["total_production_cost"] == 100.0
        assert summary["total_fixed_costs"] == 50.0
        assert summary["net_profit"] == 150.0

    def test_only_done_orders_count(self, db_session, customer, overhead_50):
        _seed_order(db_session, customer, date=datetime(2026, 3, 10))
        _seed_order(db_session, customer, date=datetime(2026, 3, 10), status=STATUS_NOT_STARTED)

        assert reporting_service.sales_summary()["total_sales"] == 300.0

    def test_date_only_end_covers_whole_day(self, db_session, customer, overhead_50):
        _seed_order(db_session, customer, date=datetime(2026, 3, 10, 23, 30))
        _seed_order(db_session, customer, date=datetime(2026, 3, 11, 0, 30))

        summary = reporting_service.sales_summary(start="2026-03-10", end="2026-03-10")
        assert summary["orders_count"] == 1

    def test_missing_fixed_costs(self, db_session, customer):
        _seed_order(db_session, customer, date=datetime(2026, 3, 10))
        with pytest.raises(NotFoundError):
            reporting_service.sales_summary()

    def test_snapshot_without_production_cost(self, db_session, customer, overhead_50):
        _seed_order(db_session, customer, date=datetime(2026, 3, 10), production_cost=None)
        with pytest.raises(NotFoundError):
            reporting_service.sales_summary()

    def test_bad_range(self, db_session, overhead_50):
        with pytest.raises(InvalidInputError):
            reporting_service.sales_summary(start="2026-03-11", end="2026-03-10")
        with pytest.raises(InvalidInputError):
            reporting_service.sales_summary(start="last week")


class TestOrderReport:
    def test_row_unit_economics(self, customer, due_date, bread_pricing):
        order = order_service.create_order(
            customer_id=customer.id,
            due_date=due_date,
            items=[{"pricing_id": bread_pricing.id, "quantity": 3}],
        )

        report = reporting_service.order_report()
        assert report["columns"] == ORDER_REPORT_COLUMNS
        (row,) = report["rows"]

        assert row["order_id"] == order.id
        assert row["customer_name"] == "Maria Silva"
        assert row["product_name"] == "Bread"
        assert row["quantity"] == 3
        assert row["unit_price"] == 1.47
        assert row["line_total"] == 4.41
        assert row["production_cost"] == 0.6
        assert row["production_cost_line"] == 1.8
        assert row["platform_fee_pct"] == 10.0
        # 4.41 * 10% = 0.441
        assert row["platform_fee_amount"] == 0.44
        assert row["profit_without_fee"] == 2.61
        assert row["profit_with_fee"] == 2.17

    def test_status_filter(self, customer, due_date, bread_pricing):
        order = order_service.create_order(
            customer_id=customer.id,
            due_date=due_date,
            items=[{"pricing_id": bread_pricing.id, "quantity": 1}],
        )
        order_service.cancel_order(order.id)

        assert reporting_service.order_report(status=STATUS_DONE)["rows"] == []
        assert len(reporting_service.order_report(status="CANCELLED")["rows"]) == 1

    def test_unknown_status(self, db_session):
        with pytest.raises(InvalidInputError):
            reporting_service.order_report(status="LOST")

    def test_csv_rendering(self, customer, due_date, bread_pricing):
        order_service.create_order(
            customer_id=customer.id,
            due_date=due_date,
            items=[{"pricing_id": bread_pricing.id, "quantity": 2}],
        )

        text = reporting_service.render_order_report_csv(reporting_service.order_report())
        header, line = text.strip().split("\n")

        assert header.split(",") == ORDER_REPORT_COLUMNS
        assert ",Bread,2,1.47,2.94," in line

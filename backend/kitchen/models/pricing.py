from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from kitchen.time_utils import to_utc_z
from kitchen.validation import money


Money = db.Numeric(12, 2)
Percent = db.Numeric(7, 4)


class Pricing(db.Model):
    """
    Selling price of a product.

    production_cost and selling_price are derived by pricing_service and are
    recomputed whenever margin, fee or yields change.
    """
    __tablename__ = "pricings"
    __table_args__ = (
        db.CheckConstraint("yields >= 1", name="ck_pricings_yields_positive"),
        db.CheckConstraint("platform_fee_pct < 100", name="ck_pricings_fee_below_100"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    profit_margin_pct = db.Column(Percent, nullable=False, default=0)
    platform_fee_pct = db.Column(Percent, nullable=False, default=0)
    yields = db.Column(db.Integer, nullable=False, default=1)
    production_cost = db.Column(Money, nullable=False)
    selling_price = db.Column(Money, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("pricings", lazy=True))

    def __repr__(self) -> str:
        return f"<Pricing id={self.id} product_id={self.product_id} selling_price={self.selling_price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": self.product.to_dict() if self.product else None,
            "profit_margin_pct": money(self.profit_margin_pct),
            "platform_fee_pct": money(self.platform_fee_pct),
            "yields": self.yields,
            "production_cost": money(self.production_cost),
            "selling_price": money(self.selling_price),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class FixedCosts(db.Model):
    """
    Monthly overhead, process-wide (one row).

    Amortized into every unit via expected_monthly_sales.
    """
    __tablename__ = "fixed_costs"
    __table_args__ = (
        db.CheckConstraint("expected_monthly_sales > 0", name="ck_fixed_costs_sales_positive"),
        {"sqlite_autoincrement": True},
    )

    COST_FIELDS = ("rent", "taxes", "utilities", "marketing", "accounting")

    id = db.Column(db.Integer, primary_key=True)
    rent = db.Column(Money, nullable=False, default=0)
    taxes = db.Column(Money, nullable=False, default=0)
    utilities = db.Column(Money, nullable=False, default=0)
    marketing = db.Column(Money, nullable=False, default=0)
    accounting = db.Column(Money, nullable=False, default=0)
    expected_monthly_sales = db.Column(db.Integer, nullable=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def total(self) -> Decimal:
        return sum((Decimal(getattr(self, f) or 0) for f in self.COST_FIELDS), Decimal("0"))

    def to_dict(self) -> dict:
        return {
            "rent": money(self.rent),
            "taxes": money(self.taxes),
            "utilities": money(self.utilities),
            "marketing": money(self.marketing),
            "accounting": money(self.accounting),
            "expected_monthly_sales": self.expected_monthly_sales,
            "total": money(self.total),
            "updated_at": to_utc_z(self.updated_at),
        }

from __future__ import annotations

from ..extensions import db
from kitchen.snapshots import CustomerSnapshot, PricingSnapshot
from kitchen.time_utils import to_utc_z, utcnow
from kitchen.validation import money
from .pricing import Money


STATUS_NOT_STARTED = "NOT_STARTED"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_DONE = "DONE"
STATUS_CANCELLED = "CANCELLED"
VALID_ORDER_STATUSES = {STATUS_NOT_STARTED, STATUS_IN_PROGRESS, STATUS_DONE, STATUS_CANCELLED}
TERMINAL_ORDER_STATUSES = {STATUS_DONE, STATUS_CANCELLED}


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_customers_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    address = db.Column(db.String(512), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
        }


class Order(db.Model):
    """
    Customer order.

    Items and snapshots are written once at creation. Afterwards only status,
    position and cancelled_at change. Cancellation is a status, not a delete.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_date", "status", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_snapshot = db.Column(db.JSON, nullable=False)
    total_price = db.Column(Money, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_NOT_STARTED, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def customer_data(self) -> CustomerSnapshot:
        return CustomerSnapshot.from_dict(self.customer_snapshot)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer": self.customer_snapshot,
            "items": [item.to_dict() for item in self.items],
            "total_price": money(self.total_price),
            "date": to_utc_z(self.date),
            "due_date": to_utc_z(self.due_date),
            "notes": self.notes,
            "status": self.status,
            "position": self.position,
            "cancelled_at": to_utc_z(self.cancelled_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    # Plain reference: pricings may be deleted later, the snapshot keeps the data
    pricing_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    pricing_snapshot = db.Column(db.JSON, nullable=False)

    order = db.relationship("Order", back_populates="items")

    @property
    def snapshot(self) -> PricingSnapshot:
        return PricingSnapshot.from_dict(self.pricing_snapshot)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pricing_id": self.pricing_id,
            "quantity": self.quantity,
            "pricing": self.snapshot.to_public_dict(),
        }

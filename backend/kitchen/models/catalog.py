from __future__ import annotations

from ..extensions import db
from kitchen.time_utils import to_utc_z, utcnow
from kitchen.validation import money


UNIT_KG = "kg"
UNIT_UNIT = "un"
VALID_UNITS = {UNIT_KG, UNIT_UNIT}

PRODUCT_ACTIVE = "ACTIVE"
PRODUCT_ARCHIVED = "ARCHIVED"
VALID_PRODUCT_STATUSES = {PRODUCT_ACTIVE, PRODUCT_ARCHIVED}

# Quantities are kept at 4 decimal places (grams of a kg, fractions of a unit)
Quantity = db.Numeric(14, 4)


class Input(db.Model):
    """
    Raw material (flour, eggs, packaging...).

    stock_limit is the reorder threshold: inventory at or below it is flagged
    as low stock.
    """
    __tablename__ = "inputs"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    stock_limit = db.Column(Quantity, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Input id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "date": to_utc_z(self.date),
            "stock_limit": money(self.stock_limit),
        }


class InventoryItem(db.Model):
    """
    Stock on hand for one input.

    quantity is the single source of truth for stock. It is mutated by order
    creation (deduction) and cancellation (restoration) through
    inventory_service, never below zero.

    cost_per_unit is kept as entered (may use a locale comma: "3,50");
    pricing parses it when computing production cost.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("input_id", name="uq_inventory_items_input"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    input_id = db.Column(db.Integer, db.ForeignKey("inputs.id"), nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    quantity = db.Column(Quantity, nullable=False, default=0)
    unit = db.Column(db.String(8), nullable=False)
    cost_per_unit = db.Column(db.String(32), nullable=False)

    input = db.relationship("Input", backref=db.backref("inventory_items", lazy=True))

    @property
    def is_low_stock(self) -> bool:
        if self.input is None or self.input.stock_limit is None:
            return False
        return self.quantity <= self.input.stock_limit

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} input_id={self.input_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "input_id": self.input_id,
            "input": self.input.to_dict() if self.input else None,
            "date": to_utc_z(self.date),
            "quantity": money(self.quantity),
            "unit": self.unit,
            "cost_per_unit": self.cost_per_unit,
            "is_low_stock": self.is_low_stock,
        }


class Product(db.Model):
    """
    Recipe product.

    Soft delete is the ARCHIVED status: archived products stay resolvable by
    id (historical pricings/orders) but are excluded from active listings and
    from new pricing. Use Product.active_query() for listings.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("yield_count >= 1", name="ck_products_yield_positive"),
        db.Index("ix_products_status_name", "status", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    yield_count = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(16), nullable=False, default=PRODUCT_ACTIVE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    ingredients = db.relationship(
        "ProductIngredient",
        back_populates="product",
        order_by="ProductIngredient.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @classmethod
    def active_query(cls):
        return db.session.query(cls).filter(cls.status == PRODUCT_ACTIVE)

    @property
    def is_active(self) -> bool:
        return self.status == PRODUCT_ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.status == PRODUCT_ARCHIVED

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "yield_count": self.yield_count,
            "status": self.status,
            "is_deleted": self.is_deleted,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductIngredient(db.Model):
    """(inventory item, quantity per yield unit) pair of a recipe."""
    __tablename__ = "product_ingredients"
    __table_args__ = (
        db.UniqueConstraint("product_id", "position", name="uq_product_ingredients_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    quantity_per_yield = db.Column(Quantity, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="ingredients")
    inventory_item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        return {
            "inventory_item_id": self.inventory_item_id,
            "name": self.name,
            "quantity_per_yield": money(self.quantity_per_yield),
        }

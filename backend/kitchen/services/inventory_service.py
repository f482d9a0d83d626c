# Overview: Service-layer operations for inputs and inventory; encapsulates business logic and database work.

"""
Inventory ledger.

Invariants (authoritative):
- InventoryItem.quantity is the single source of truth for stock.
- quantity never goes negative. Deduction is a conditional decrement
  executed by the database (UPDATE ... WHERE quantity >= amount), so two
  concurrent orders cannot both pass the check against stale stock.
- deduct_stock/restore_stock never commit; they run inside the caller's
  transaction (order creation / cancellation) and are undone with it.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, update

from ..extensions import db
from ..errors import ConflictError, InsufficientStockError, InvalidInputError, NotFoundError
from ..models import Input, InventoryItem, ProductIngredient
from ..validation import (
    ModelValidationPolicy,
    parse_decimal,
    require_non_negative,
    validate_payload,
)
from ..models.catalog import Quantity, VALID_UNITS


INPUT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "date", "stock_limit"},
    required_on_create={"name"},
)

INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={"input_id", "date", "quantity", "unit", "cost_per_unit"},
    required_on_create={"input_id", "quantity", "unit", "cost_per_unit"},
)


# ---------------------------------------------------------------------------
# Inputs (raw materials)
# ---------------------------------------------------------------------------

def list_inputs() -> list[Input]:
    return db.session.query(Input).order_by(Input.name.asc(), Input.id.asc()).all()


def get_input(input_id: int) -> Input:
    item = db.session.get(Input, input_id)
    if item is None:
        raise NotFoundError("Input not found")
    return item


def create_input(payload: dict) -> Input:
    patch = validate_payload(model=Input, payload=payload, policy=INPUT_POLICY, partial=False)
    require_non_negative(patch, "stock_limit")
    item = Input(**patch)
    db.session.add(item)
    db.session.commit()
    return item


def update_input(input_id: int, payload: dict) -> Input:
    item = get_input(input_id)
    patch = validate_payload(model=Input, payload=payload, policy=INPUT_POLICY, partial=True)
    require_non_negative(patch, "stock_limit")
    for k, v in patch.items():
        setattr(item, k, v)
    db.session.commit()
    return item


def delete_input(input_id: int) -> None:
    item = get_input(input_id)
    if db.session.query(InventoryItem).filter_by(input_id=item.id).first() is not None:
        raise ConflictError("Input still has an inventory record")
    db.session.delete(item)
    db.session.commit()


# ---------------------------------------------------------------------------
# Inventory items
# ---------------------------------------------------------------------------

def _enforce_inventory_rules(patch: dict) -> None:
    require_non_negative(patch, "quantity")
    if "unit" in patch and patch["unit"] not in VALID_UNITS:
        raise InvalidInputError(f"unit must be one of: {', '.join(sorted(VALID_UNITS))}")
    if "cost_per_unit" in patch:
        cost = parse_decimal(patch["cost_per_unit"], "cost_per_unit")
        if cost < 0:
            raise InvalidInputError("cost_per_unit must be >= 0")
    if "input_id" in patch:
        get_input(patch["input_id"])


def list_inventory() -> list[InventoryItem]:
    return (
        db.session.query(InventoryItem)
        .order_by(InventoryItem.date.desc(), InventoryItem.id.desc())
        .all()
    )


def get_inventory_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError("Inventory item not found")
    return item


def create_inventory_item(payload: dict) -> InventoryItem:
    patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=False)
    _enforce_inventory_rules(patch)

    existing = db.session.query(InventoryItem).filter_by(input_id=patch["input_id"]).first()
    if existing is not None:
        raise ConflictError(
            "Inventory item for this input already exists; update it instead",
            details={"inventory_item_id": existing.id},
        )

    item = InventoryItem(**patch)
    db.session.add(item)
    db.session.commit()
    return item


def update_inventory_item(item_id: int, payload: dict) -> InventoryItem:
    item = get_inventory_item(item_id)
    patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=True)
    _enforce_inventory_rules(patch)

    new_input_id = patch.get("input_id")
    if new_input_id is not None and new_input_id != item.input_id:
        clash = db.session.query(InventoryItem).filter_by(input_id=new_input_id).first()
        if clash is not None:
            raise ConflictError("Inventory item for this input already exists")

    for k, v in patch.items():
        setattr(item, k, v)
    db.session.commit()
    return item


def delete_inventory_item(item_id: int) -> None:
    item = get_inventory_item(item_id)
    in_recipe = db.session.query(ProductIngredient).filter_by(inventory_item_id=item.id).first()
    if in_recipe is not None:
        raise ConflictError(
            "Inventory item is used by a product recipe",
            details={"product_id": in_recipe.product_id},
        )
    db.session.delete(item)
    db.session.commit()


# ---------------------------------------------------------------------------
# Stock mutation (called inside order transactions)
# ---------------------------------------------------------------------------

def _rounded(expr):
    # SQLite keeps Numeric as REAL; compare and store at the column's 4 places
    return func.round(expr, 4, type_=Quantity)


def deduct_stock(item_id: int, amount: Decimal) -> None:
    """
    Atomically subtract amount if, and only if, enough stock remains.

    Raises InsufficientStockError when the conditional decrement matches no
    row (stock was consumed by a concurrent order since validation).
    """
    result = db.session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item_id, _rounded(InventoryItem.quantity) >= amount)
        .values(quantity=_rounded(InventoryItem.quantity - amount))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientStockError(
            "Insufficient stock",
            details={"items": [{"inventory_item_id": item_id, "needed": float(amount)}]},
        )
    _expire_quantity(item_id)


def restore_stock(item_id: int, amount: Decimal) -> bool:
    """
    Add amount back to stock. Returns False if the item no longer exists.
    """
    result = db.session.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item_id)
        .values(quantity=_rounded(InventoryItem.quantity + amount))
        .execution_options(synchronize_session=False)
    )
    _expire_quantity(item_id)
    return result.rowcount == 1


def _expire_quantity(item_id: int) -> None:
    loaded = db.session.identity_map.get(db.session.identity_key(InventoryItem, item_id))
    if loaded is not None:
        db.session.expire(loaded, ["quantity"])

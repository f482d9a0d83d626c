"""
Order transaction engine.

Creating an order consumes recipe ingredients from inventory; cancelling it
puts exactly the same quantities back.

create_order is two-phase:
1. validate everything (customer, items, pricing, product, stock for every
   ingredient of every item, aggregated per inventory item) without writing;
2. commit in one DB transaction: conditional decrement per inventory item,
   order + snapshots, kitchen notification. A decrement that loses a race
   rolls the whole transaction back.

So a failing item never leaves earlier items' stock deducted.

Status machine:
    NOT_STARTED <-> IN_PROGRESS -> DONE
    any non-terminal -> CANCELLED (exactly once, restores stock)
DONE and CANCELLED are terminal.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..errors import (
    InsufficientStockError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from ..models import Customer, InventoryItem, Order, OrderItem, Pricing
from ..models.orders import (
    STATUS_CANCELLED,
    STATUS_DONE,
    STATUS_NOT_STARTED,
    TERMINAL_ORDER_STATUSES,
    VALID_ORDER_STATUSES,
)
from ..models.notifications import MESSAGE_NOTIFICATION_UPDATE, MESSAGE_ORDER
from ..snapshots import CustomerSnapshot, PricingSnapshot
from kitchen.time_utils import parse_iso_datetime, utcnow
from .concurrency import atomic, lock_for_update
from .inventory_service import deduct_stock, restore_stock
from . import notification_service


@dataclass(frozen=True)
class _ResolvedItem:
    pricing_id: int
    quantity: int
    snapshot: PricingSnapshot

    @property
    def line_total(self) -> Decimal:
        return self.snapshot.selling_price * self.quantity


def _require_int(value, field: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise InvalidInputError(f"{field} must be an integer >= {minimum}")
    return value


def _parse_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise InvalidInputError("No order items were provided")

    parsed = []
    for raw in items:
        if not isinstance(raw, dict):
            raise InvalidInputError("each item must be an object with pricing_id and quantity")
        pricing_id = _require_int(raw.get("pricing_id"), "pricing_id", 1)
        quantity = _require_int(raw.get("quantity"), "quantity", 1)
        parsed.append((pricing_id, quantity))
    return parsed


def _parse_due_date(value):
    if value is None or value == "":
        raise InvalidInputError("due_date is required")
    try:
        due = parse_iso_datetime(value) if isinstance(value, str) else None
    except ValueError:
        due = None
    if due is None:
        raise InvalidInputError("due_date must be an ISO-8601 datetime")
    return due


def _resolve_item(pricing_id: int, quantity: int) -> _ResolvedItem:
    pricing = db.session.get(Pricing, pricing_id)
    if pricing is None:
        raise NotFoundError(f"Pricing {pricing_id} not found", details={"pricing_id": pricing_id})

    product = pricing.product
    if product is None or product.is_deleted:
        raise NotFoundError(
            "Product not found for pricing",
            details={"pricing_id": pricing_id, "product_id": pricing.product_id},
        )

    return _ResolvedItem(
        pricing_id=pricing.id,
        quantity=quantity,
        snapshot=PricingSnapshot.of(pricing, product),
    )


def _aggregate_needs(resolved: list[_ResolvedItem]) -> "OrderedDict[int, tuple[str, Decimal]]":
    """inventory_item_id -> (ingredient name, total quantity needed by the whole order)."""
    needs: OrderedDict[int, tuple[str, Decimal]] = OrderedDict()
    for item in resolved:
        for usage in item.snapshot.ingredients:
            name, total = needs.get(usage.inventory_item_id, (usage.name, Decimal("0")))
            needs[usage.inventory_item_id] = (name, total + usage.needed_for(item.quantity))
    return needs


def _validate_stock(needs) -> None:
    insufficient = []
    for inventory_item_id, (name, needed) in needs.items():
        inventory = lock_for_update(
            db.session.query(InventoryItem).filter_by(id=inventory_item_id)
        ).first()
        if inventory is None:
            raise NotFoundError(
                f"Inventory not found for ingredient {name}",
                details={"inventory_item_id": inventory_item_id},
            )
        if inventory.quantity < needed:
            insufficient.append({
                "inventory_item_id": inventory_item_id,
                "ingredient": name,
                "needed": float(needed),
                "on_hand": float(inventory.quantity),
            })

    if insufficient:
        names = ", ".join(row["ingredient"] for row in insufficient)
        raise InsufficientStockError(
            f"Insufficient stock for ingredient {names}",
            details={"items": insufficient},
        )


def create_order(
    *,
    customer_id,
    due_date,
    items,
    notes: str | None = None,
    position=0,
) -> Order:
    # Phase 1: validate, no writes
    customer_id = _require_int(customer_id, "customer_id", 1)
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")

    parsed_items = _parse_items(items)
    due = _parse_due_date(due_date)
    position = _require_int(position if position is not None else 0, "position", 0)
    if notes is not None and not isinstance(notes, str):
        raise InvalidInputError("notes must be a string")

    resolved = [_resolve_item(pricing_id, quantity) for pricing_id, quantity in parsed_items]
    needs = _aggregate_needs(resolved)
    _validate_stock(needs)

    # Phase 2: commit everything or nothing
    with atomic():
        for inventory_item_id, (name, needed) in needs.items():
            try:
                deduct_stock(inventory_item_id, needed)
            except InsufficientStockError as exc:
                raise InsufficientStockError(
                    f"Insufficient stock for ingredient {name}",
                    details=exc.details,
                )

        total_price = sum((item.line_total for item in resolved), Decimal("0"))

        order = Order(
            customer_id=customer.id,
            customer_snapshot=CustomerSnapshot.of(customer).to_dict(),
            total_price=total_price,
            date=utcnow(),
            due_date=due,
            notes=notes,
            status=STATUS_NOT_STARTED,
            position=position,
        )
        order.items = [
            OrderItem(
                pricing_id=item.pricing_id,
                quantity=item.quantity,
                pricing_snapshot=item.snapshot.to_dict(),
            )
            for item in resolved
        ]
        db.session.add(order)
        db.session.flush()

        notification_service.add_message(
            content=f"New order #{order.id} for {customer.name}",
            message_type=MESSAGE_ORDER,
            order_id=order.id,
        )

    notification_service.publish(MESSAGE_ORDER, order.id)
    return order


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def list_orders(status: str | None = None) -> list[Order]:
    query = db.session.query(Order)
    if status is not None:
        if status not in VALID_ORDER_STATUSES:
            raise InvalidInputError("Invalid status")
        query = query.filter(Order.status == status)
    return query.order_by(Order.position.asc(), Order.date.asc(), Order.id.asc()).all()


def _transition(order_id: int, status: str, **values) -> None:
    """
    Move a non-terminal order to status as a conditional UPDATE.

    Of several concurrent transitions into a terminal status only one matches
    the row; the others raise InvalidStateError before touching stock.
    """
    result = db.session.execute(
        update(Order)
        .where(Order.id == order_id, Order.status.notin_(TERMINAL_ORDER_STATUSES))
        .values(status=status, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateError(
            "Order was already completed or cancelled",
            details={"order_id": order_id},
        )


def update_order_status(order_id: int, status) -> Order:
    if status not in VALID_ORDER_STATUSES:
        raise InvalidInputError(
            "Invalid status",
            details={"allowed": sorted(VALID_ORDER_STATUSES)},
        )

    if status == STATUS_CANCELLED:
        return cancel_order(order_id)

    order = get_order(order_id)
    if order.status == status:
        return order
    if order.status in TERMINAL_ORDER_STATUSES:
        raise InvalidStateError(
            f"Order is {order.status} and can no longer change status",
            details={"status": order.status},
        )

    with atomic():
        _transition(order.id, status)
        if status == STATUS_DONE:
            notification_service.delete_messages_for_order(order.id)

    notification_service.publish(MESSAGE_NOTIFICATION_UPDATE, order.id, status=status)
    return order


def update_order_position(order_id: int, position) -> Order:
    position = _require_int(position, "position", 0)
    order = get_order(order_id)
    order.position = position
    db.session.commit()
    return order


def cancel_order(order_id: int) -> Order:
    """
    Cancel an order and restore the stock it consumed.

    Quantities come from the item snapshots (recipe as of order time), not the
    current recipe, so the restoration is the exact inverse of the deduction.
    """
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError("Order not found")
    if order.status == STATUS_CANCELLED:
        raise InvalidStateError("Order is already cancelled")
    if order.status == STATUS_DONE:
        raise InvalidStateError("Done orders cannot be cancelled")

    with atomic():
        # Claim the cancellation first so stock is restored at most once
        _transition(order.id, STATUS_CANCELLED, cancelled_at=utcnow())
        for item in order.items:
            for usage in item.snapshot.ingredients:
                restored = restore_stock(usage.inventory_item_id, usage.needed_for(item.quantity))
                if not restored:
                    current_app.logger.warning(
                        "Order %s: inventory item %s no longer exists; %s of %s not restored",
                        order.id, usage.inventory_item_id, usage.needed_for(item.quantity), usage.name,
                    )

        notification_service.delete_messages_for_order(order.id)

    notification_service.publish(MESSAGE_NOTIFICATION_UPDATE, order.id, status=STATUS_CANCELLED)
    return order

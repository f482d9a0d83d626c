# Overview: Service-layer operations for pricing; encapsulates business logic and database work.

"""
Pricing calculator.

production_cost (per unit):
    sum(ingredient cost_per_unit * quantity_per_yield) / yield_count
selling_price:
    fixed_per_unit = (rent + taxes + utilities + marketing + accounting) / expected_monthly_sales
    ((production_cost + fixed_per_unit) * (1 + margin/100)) / (1 - fee/100)

Both are rounded half-up to 2 decimals. Every input is validated before
anything is persisted, so a rejected fee never leaves a half-written pricing.
Recalculation is a pure function of current inputs and is idempotent.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import InvalidInputError, InvalidValueError, NotFoundError
from ..models import FixedCosts, InventoryItem, Pricing, Product
from ..models.catalog import PRODUCT_ACTIVE
from ..validation import parse_decimal, round_money
from .fixed_costs_service import get_fixed_costs
from .products_service import get_product


HUNDRED = Decimal("100")

PRICING_FIELDS = {"profit_margin_pct", "platform_fee_pct", "yields"}


def _finite(value, what: str) -> Decimal:
    try:
        return parse_decimal(value, what)
    except InvalidInputError as exc:
        raise InvalidValueError(exc.message, details={"field": what})


def compute_production_cost(product: Product | None, yield_count: int) -> Decimal:
    """
    Per-unit production cost of a product for a batch of yield_count units.

    Raises NotFoundError if the product is missing/archived or an ingredient's
    inventory item is gone; InvalidValueError for unparsable or non-finite
    costs and quantities.
    """
    if product is None or product.is_deleted:
        raise NotFoundError("Product not found")
    if isinstance(yield_count, bool) or not isinstance(yield_count, int) or yield_count < 1:
        raise InvalidValueError("yields must be an integer >= 1")

    total = Decimal("0")
    for ingredient in product.ingredients:
        inventory = db.session.get(InventoryItem, ingredient.inventory_item_id)
        if inventory is None:
            raise NotFoundError(
                f"Inventory not found for ingredient {ingredient.name}",
                details={"inventory_item_id": ingredient.inventory_item_id},
            )
        cost = _finite(inventory.cost_per_unit, f"cost of {ingredient.name}")
        quantity = _finite(ingredient.quantity_per_yield, f"quantity of {ingredient.name}")
        total += cost * quantity

    return round_money(total / yield_count)


def compute_selling_price(
    production_cost: Decimal,
    profit_margin_pct: Decimal,
    platform_fee_pct: Decimal,
    fixed_costs: FixedCosts,
) -> Decimal:
    production_cost = _finite(production_cost, "production_cost")
    margin = _finite(profit_margin_pct, "profit_margin_pct")
    fee = _finite(platform_fee_pct, "platform_fee_pct")

    if fee >= HUNDRED:
        raise InvalidValueError("Platform fee cannot be 100% or more")
    if fee < 0:
        raise InvalidValueError("Platform fee cannot be negative")
    if margin < 0:
        raise InvalidValueError("Profit margin cannot be negative")

    expected_sales = _finite(fixed_costs.expected_monthly_sales, "expected_monthly_sales")
    if expected_sales <= 0:
        raise InvalidValueError("expected_monthly_sales must be > 0")

    fixed_per_unit = fixed_costs.total / expected_sales
    price = ((production_cost + fixed_per_unit) * (1 + margin / HUNDRED)) / (1 - fee / HUNDRED)
    return round_money(price)


def _validated_terms(payload: dict, *, partial: bool) -> dict:
    unknown = set(payload) - PRICING_FIELDS - {"product_id"}
    if unknown:
        raise InvalidInputError(f"Field not allowed: {', '.join(sorted(unknown))}")

    terms = {}
    if "profit_margin_pct" in payload:
        terms["profit_margin_pct"] = _finite(payload["profit_margin_pct"], "profit_margin_pct")
    elif not partial:
        raise InvalidInputError("Missing required fields: profit_margin_pct")

    if "platform_fee_pct" in payload:
        terms["platform_fee_pct"] = _finite(payload["platform_fee_pct"], "platform_fee_pct")
        if terms["platform_fee_pct"] >= HUNDRED:
            raise InvalidValueError("Platform fee cannot be 100% or more")
    elif not partial:
        terms["platform_fee_pct"] = Decimal("0")

    if "yields" in payload:
        yields = payload["yields"]
        if isinstance(yields, bool) or not isinstance(yields, int) or yields < 1:
            raise InvalidValueError("yields must be an integer >= 1")
        terms["yields"] = yields

    return terms


def _reprice(pricing: Pricing, product: Product, fixed_costs: FixedCosts) -> None:
    production_cost = compute_production_cost(product, pricing.yields)
    pricing.production_cost = production_cost
    pricing.selling_price = compute_selling_price(
        production_cost,
        pricing.profit_margin_pct,
        pricing.platform_fee_pct,
        fixed_costs,
    )


def list_pricings(include_archived: bool = False) -> list[Pricing]:
    query = db.session.query(Pricing).join(Product, Product.id == Pricing.product_id)
    if not include_archived:
        query = query.filter(Product.status == PRODUCT_ACTIVE)
    return query.order_by(Product.name.asc(), Pricing.id.asc()).all()


def get_pricing(pricing_id: int) -> Pricing:
    pricing = db.session.get(Pricing, pricing_id)
    if pricing is None:
        raise NotFoundError("Pricing not found")
    return pricing


def create_pricing(payload: dict) -> Pricing:
    payload = payload or {}
    product_id = payload.get("product_id")
    if isinstance(product_id, bool) or not isinstance(product_id, int):
        raise InvalidInputError("product_id must be an integer")

    terms = _validated_terms(payload, partial=False)
    product = get_product(product_id, allow_archived=False)
    terms.setdefault("yields", product.yield_count)
    fixed_costs = get_fixed_costs()

    pricing = Pricing(product_id=product.id, **terms)
    _reprice(pricing, product, fixed_costs)

    db.session.add(pricing)
    db.session.commit()
    return pricing


def update_pricing(pricing_id: int, payload: dict) -> Pricing:
    pricing = get_pricing(pricing_id)
    terms = _validated_terms(payload or {}, partial=True)
    if "product_id" in (payload or {}) and payload["product_id"] != pricing.product_id:
        raise InvalidInputError("product_id cannot change")

    product = get_product(pricing.product_id, allow_archived=False)
    fixed_costs = get_fixed_costs()

    try:
        for k, v in terms.items():
            setattr(pricing, k, v)
        _reprice(pricing, product, fixed_costs)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return pricing


def recalculate_pricing(pricing_id: int) -> Pricing:
    """Recompute derived values from current recipe, inventory costs and fixed costs."""
    pricing = get_pricing(pricing_id)
    product = get_product(pricing.product_id, allow_archived=False)
    fixed_costs = get_fixed_costs()
    try:
        _reprice(pricing, product, fixed_costs)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return pricing


def recalculate_all() -> list[Pricing]:
    """Reprice every pricing of an active product in one transaction."""
    fixed_costs = get_fixed_costs()
    pricings = list_pricings(include_archived=False)
    try:
        for pricing in pricings:
            _reprice(pricing, pricing.product, fixed_costs)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return pricings


def delete_pricing(pricing_id: int) -> None:
    """Orders keep their own snapshot, so deleting a pricing never changes history."""
    pricing = get_pricing(pricing_id)
    db.session.delete(pricing)
    db.session.commit()

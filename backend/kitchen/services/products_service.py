# backend/kitchen/services/products_service.py
"""
Recipe catalog.

Products are archived, never removed, so historical pricings and orders keep
resolvable references. Listings go through Product.active_query().

Ingredient lists are frozen once a pricing references the product: prices
and order snapshots were derived from that recipe. Archive the product and
create a new one to change a priced recipe.
"""
from __future__ import annotations

from ..extensions import db
from ..errors import InvalidInputError, InvalidStateError, NotFoundError
from ..models import InventoryItem, Pricing, Product, ProductIngredient
from ..models.catalog import PRODUCT_ARCHIVED
from ..validation import ModelValidationPolicy, parse_decimal, require_positive_int, validate_payload


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "yield_count"},
    required_on_create={"name"},
)


def list_products(include_archived: bool = False) -> list[Product]:
    query = db.session.query(Product) if include_archived else Product.active_query()
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int, *, allow_archived: bool = True) -> Product:
    """
    Resolve a product by id.

    Archived products are returned unless allow_archived=False (pricing and
    new orders must not use them).
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    if not allow_archived and product.is_deleted:
        raise NotFoundError("Product not found", details={"product_id": product_id, "archived": True})
    return product


def _build_ingredients(raw_ingredients) -> list[ProductIngredient]:
    if not isinstance(raw_ingredients, list) or not raw_ingredients:
        raise InvalidInputError("ingredients must be a non-empty list")

    built = []
    for position, raw in enumerate(raw_ingredients):
        if not isinstance(raw, dict):
            raise InvalidInputError("each ingredient must be an object")

        inventory_item_id = raw.get("inventory_item_id")
        if isinstance(inventory_item_id, bool) or not isinstance(inventory_item_id, int):
            raise InvalidInputError("ingredient inventory_item_id must be an integer")

        inventory = db.session.get(InventoryItem, inventory_item_id)
        if inventory is None:
            raise NotFoundError(
                "Inventory item not found for ingredient",
                details={"inventory_item_id": inventory_item_id},
            )

        quantity = parse_decimal(raw.get("quantity_per_yield"), "quantity_per_yield")
        if quantity <= 0:
            raise InvalidInputError("quantity_per_yield must be > 0")

        name = (raw.get("name") or (inventory.input.name if inventory.input else "")).strip()
        if not name:
            raise InvalidInputError("ingredient name is required")

        built.append(ProductIngredient(
            inventory_item_id=inventory_item_id,
            name=name,
            quantity_per_yield=quantity,
            position=position,
        ))
    return built


def create_product(payload: dict) -> Product:
    payload = dict(payload or {})
    raw_ingredients = payload.pop("ingredients", None)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    if "yield_count" in patch:
        require_positive_int(patch["yield_count"], "yield_count")

    product = Product(**patch)
    product.ingredients = _build_ingredients(raw_ingredients)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, payload: dict) -> Product:
    product = get_product(product_id, allow_archived=False)
    payload = dict(payload or {})
    raw_ingredients = payload.pop("ingredients", None)

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    if "yield_count" in patch:
        require_positive_int(patch["yield_count"], "yield_count")

    if raw_ingredients is not None:
        priced = db.session.query(Pricing.id).filter_by(product_id=product.id).first()
        if priced is not None:
            raise InvalidStateError(
                "Ingredients cannot change once the product is priced",
                details={"product_id": product.id},
            )
        new_ingredients = _build_ingredients(raw_ingredients)
        product.ingredients.clear()
        db.session.flush()
        product.ingredients.extend(new_ingredients)

    for k, v in patch.items():
        setattr(product, k, v)

    db.session.commit()
    return product


def archive_product(product_id: int) -> Product:
    product = get_product(product_id, allow_archived=False)
    product.status = PRODUCT_ARCHIVED
    db.session.commit()
    return product

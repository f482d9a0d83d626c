# Overview: Immutable value objects copied into orders at creation time.

"""
Order snapshots.

An order keeps copies of the customer and of each item's pricing/recipe as
they were when the order was placed. Later edits to Customer, Pricing or
Product never change historical orders, reports, or the quantities a
cancellation puts back into stock.

Snapshots are stored as JSON; Decimals are serialized as strings so the
round-trip is exact.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


def _dec(value) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


@dataclass(frozen=True)
class CustomerSnapshot:
    customer_id: int
    name: str
    email: str
    phone: str
    address: str

    @classmethod
    def of(cls, customer) -> "CustomerSnapshot":
        return cls(
            customer_id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            address=customer.address,
        )

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CustomerSnapshot":
        return cls(
            customer_id=data["customer_id"],
            name=data["name"],
            email=data["email"],
            phone=data["phone"],
            address=data["address"],
        )


@dataclass(frozen=True)
class IngredientUsage:
    """Per-unit consumption of one inventory item, as the recipe stood at order time."""
    inventory_item_id: int
    name: str
    quantity_per_yield: Decimal

    def needed_for(self, quantity: int) -> Decimal:
        return self.quantity_per_yield * quantity

    def to_dict(self) -> dict:
        return {
            "inventory_item_id": self.inventory_item_id,
            "name": self.name,
            "quantity_per_yield": str(self.quantity_per_yield),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IngredientUsage":
        return cls(
            inventory_item_id=data["inventory_item_id"],
            name=data["name"],
            quantity_per_yield=_dec(data["quantity_per_yield"]),
        )


@dataclass(frozen=True)
class PricingSnapshot:
    pricing_id: int
    product_id: int
    product_name: str
    selling_price: Decimal
    production_cost: Decimal | None
    profit_margin_pct: Decimal
    platform_fee_pct: Decimal
    yields: int
    ingredients: tuple[IngredientUsage, ...]

    @classmethod
    def of(cls, pricing, product) -> "PricingSnapshot":
        return cls(
            pricing_id=pricing.id,
            product_id=product.id,
            product_name=product.name,
            selling_price=pricing.selling_price,
            production_cost=pricing.production_cost,
            profit_margin_pct=pricing.profit_margin_pct,
            platform_fee_pct=pricing.platform_fee_pct,
            yields=pricing.yields,
            ingredients=tuple(
                IngredientUsage(
                    inventory_item_id=ing.inventory_item_id,
                    name=ing.name,
                    quantity_per_yield=ing.quantity_per_yield,
                )
                for ing in product.ingredients
            ),
        )

    def to_dict(self) -> dict:
        return {
            "pricing_id": self.pricing_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "selling_price": str(self.selling_price),
            "production_cost": None if self.production_cost is None else str(self.production_cost),
            "profit_margin_pct": str(self.profit_margin_pct),
            "platform_fee_pct": str(self.platform_fee_pct),
            "yields": self.yields,
            "ingredients": [usage.to_dict() for usage in self.ingredients],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PricingSnapshot":
        return cls(
            pricing_id=data["pricing_id"],
            product_id=data["product_id"],
            product_name=data["product_name"],
            selling_price=_dec(data["selling_price"]),
            production_cost=_dec(data.get("production_cost")),
            profit_margin_pct=_dec(data["profit_margin_pct"]),
            platform_fee_pct=_dec(data["platform_fee_pct"]),
            yields=data["yields"],
            ingredients=tuple(IngredientUsage.from_dict(i) for i in data.get("ingredients", [])),
        )

    def to_public_dict(self) -> dict:
        """JSON-friendly view with numbers instead of decimal strings."""
        return {
            "pricing_id": self.pricing_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "selling_price": float(self.selling_price),
            "production_cost": None if self.production_cost is None else float(self.production_cost),
            "profit_margin_pct": float(self.profit_margin_pct),
            "platform_fee_pct": float(self.platform_fee_pct),
            "yields": self.yields,
            "ingredients": [
                {
                    "inventory_item_id": usage.inventory_item_id,
                    "name": usage.name,
                    "quantity_per_yield": float(usage.quantity_per_yield),
                }
                for usage in self.ingredients
            ],
        }

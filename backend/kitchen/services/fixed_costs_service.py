# Overview: Load/update lifecycle of the process-wide fixed costs row.

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidValueError, NotFoundError
from ..models import FixedCosts
from ..validation import ModelValidationPolicy, require_non_negative, validate_payload


FIXED_COSTS_POLICY = ModelValidationPolicy(
    writable_fields={"rent", "taxes", "utilities", "marketing", "accounting", "expected_monthly_sales"},
    required_on_create={"rent", "taxes", "utilities", "marketing", "accounting", "expected_monthly_sales"},
)


def find_fixed_costs() -> FixedCosts | None:
    return db.session.query(FixedCosts).order_by(FixedCosts.id.asc()).first()


def get_fixed_costs() -> FixedCosts:
    fixed = find_fixed_costs()
    if fixed is None:
        raise NotFoundError("Fixed costs are not configured")
    return fixed


def save_fixed_costs(payload: dict) -> FixedCosts:
    """
    Create the singleton on first call, patch it afterwards.

    Does not reprice existing pricings; use pricing_service.recalculate_all.
    """
    fixed = find_fixed_costs()
    patch = validate_payload(
        model=FixedCosts,
        payload=payload,
        policy=FIXED_COSTS_POLICY,
        partial=fixed is not None,
    )
    require_non_negative(patch, *FixedCosts.COST_FIELDS)
    if "expected_monthly_sales" in patch and patch["expected_monthly_sales"] <= 0:
        raise InvalidValueError("expected_monthly_sales must be > 0")

    if fixed is None:
        fixed = FixedCosts(**patch)
        db.session.add(fixed)
    else:
        for k, v in patch.items():
            setattr(fixed, k, v)

    db.session.commit()
    return fixed

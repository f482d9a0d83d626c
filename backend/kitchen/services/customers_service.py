# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, InvalidInputError, NotFoundError
from ..models import Customer
from ..validation import ModelValidationPolicy, validate_payload


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name", "email", "phone", "address"},
)


def _check_email(patch: dict, *, exclude_id: int | None = None) -> None:
    if "email" not in patch:
        return
    email = patch["email"].lower()
    if "@" not in email:
        raise InvalidInputError("email must be a valid address")
    patch["email"] = email

    query = db.session.query(Customer.id).filter(Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Email is already in use", details={"email": email})


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    _check_email(patch)
    customer = Customer(**patch)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    """Existing orders keep their customer snapshot; only future orders see the change."""
    customer = get_customer(customer_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    _check_email(patch, exclude_id=customer.id)
    for k, v in patch.items():
        setattr(customer, k, v)
    db.session.commit()
    return customer

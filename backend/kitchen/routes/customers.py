# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth
from ..errors import DomainError, error_response
from ..services import customers_service


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    return {"items": [c.to_dict() for c in customers_service.list_customers()]}


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    try:
        return customers_service.get_customer(customer_id).to_dict()
    except DomainError as exc:
        return error_response(exc)


@customers_bp.post("")
@require_auth
def create_customer():
    payload = request.get_json(silent=True) or {}
    try:
        customer = customers_service.create_customer(payload)
    except DomainError as exc:
        return error_response(exc)
    return {"customer": customer.to_dict(), "message": "Customer created"}, 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        customer = customers_service.update_customer(customer_id, payload)
    except DomainError as exc:
        return error_response(exc)
    return {"customer": customer.to_dict(), "message": "Customer updated"}

# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Recipe product routes.

DELETE archives the product (soft delete) and needs the admin or editor role.
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_EDITOR
from ..services import products_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    include_archived = request.args.get("include_archived", "false").lower() == "true"
    products = products_service.list_products(include_archived=include_archived)
    return {"items": [p.to_dict() for p in products]}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except DomainError as exc:
        return error_response(exc)


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(payload)
    except DomainError as exc:
        return error_response(exc)
    return {"product": product.to_dict(), "message": "Product created"}, 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(product_id, payload)
    except DomainError as exc:
        return error_response(exc)
    return {"product": product.to_dict(), "message": "Product updated"}


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_EDITOR)
def delete_product_route(product_id: int):
    try:
        product = products_service.archive_product(product_id)
    except DomainError as exc:
        return error_response(exc)
    return {"product": product.to_dict(), "message": "Product archived"}

# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_EDITOR
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
def list_inventory():
    """Newest first. ?low_stock=true keeps only items at or under their input's stock limit."""
    items = inventory_service.list_inventory()
    if request.args.get("low_stock", "false").lower() == "true":
        items = [item for item in items if item.is_low_stock]
    return {"items": [item.to_dict() for item in items]}


@inventory_bp.get("/<int:item_id>")
@require_auth
def get_inventory_item(item_id: int):
    try:
        return inventory_service.get_inventory_item(item_id).to_dict()
    except DomainError as exc:
        return error_response(exc)


@inventory_bp.post("")
@require_auth
def create_inventory_item():
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.create_inventory_item(payload)
    except DomainError as exc:
        return error_response(exc)
    return {"item": item.to_dict(), "message": "Inventory item created"}, 201


@inventory_bp.put("/<int:item_id>")
@require_auth
def update_inventory_item(item_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.update_inventory_item(item_id, payload)
    except DomainError as exc:
        return error_response(exc)
    return {"item": item.to_dict(), "message": "Inventory item updated"}


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_EDITOR)
def delete_inventory_item(item_id: int):
    try:
        inventory_service.delete_inventory_item(item_id)
    except DomainError as exc:
        return error_response(exc)
    return {"message": "Inventory item deleted"}

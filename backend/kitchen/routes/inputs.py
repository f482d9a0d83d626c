# Overview: Flask API routes for raw-material inputs; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_EDITOR
from ..services import inventory_service


inputs_bp = Blueprint("inputs", __name__, url_prefix="/api/inputs")


@inputs_bp.get("")
@require_auth
def list_inputs():
    return {"items": [item.to_dict() for item in inventory_service.list_inputs()]}


@inputs_bp.get("/<int:input_id>")
@require_auth
def get_input(input_id: int):
    try:
        return inventory_service.get_input(input_id).to_dict()
    except DomainError as exc:
        return error_response(exc)


@inputs_bp.post("")
@require_auth
def create_input():
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.create_input(payload)
    except DomainError as exc:
        return error_response(exc)
    return {"input": item.to_dict(), "message": "Input created"}, 201


@inputs_bp.put("/<int:input_id>")
@require_auth
def update_input(input_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.update_input(input_id, payload)
    except DomainError as exc:
        return error_response(exc)
    return {"input": item.to_dict(), "message": "Input updated"}


@inputs_bp.delete("/<int:input_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_EDITOR)
def delete_input(input_id: int):
    try:
        inventory_service.delete_input(input_id)
    except DomainError as exc:
        return error_response(exc)
    return {"message": "Input deleted"}

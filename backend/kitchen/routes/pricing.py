# Overview: Flask API routes for pricing and fixed costs; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import DomainError, error_response
from ..models.auth import ROLE_ADMIN, ROLE_EDITOR
from ..services import fixed_costs_service, pricing_service


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/pricing")
fixed_costs_bp = Blueprint("fixed_costs", __name__, url_prefix="/api/fixed-costs")


@pricing_bp.get("")
@require_auth
def list_pricings():
    include_archived = request.args.get("include_archived", "false").lower() == "true"
    pricings = pricing_service.list_pricings(include_archived=include_archived)
    return {"items": [p.to_dict() for p in pricings]}


@pricing_bp.get("/<int:pricing_id>")
@require_auth
def get_pricing(pricing_id: int):
    try:
        return pricing_service.get_pricing(pricing_id).to_dict()
    except DomainError as exc:
        return error_response(exc)


@pricing_bp.post("")
@require_auth
def create_pricing():
    payload = request.get_json(silent=True) or {}
    try:
        pricing = pricing_service.create_pricing(payload)
    except DomainError as exc:
        return error_response(exc)
    return {"pricing": pricing.to_dict(), "message": "Pricing created"}, 201


@pricing_bp.put("/<int:pricing_id>")
@require_auth
def update_pricing(pricing_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        pricing = pricing_service.update_pricing(pricing_id, payload)
    except DomainError as exc:
        return error_response(exc)
    return {"pricing": pricing.to_dict(), "message": "Pricing updated"}


@pricing_bp.post("/<int:pricing_id>/recalculate")
@require_auth
def recalculate_pricing(pricing_id: int):
    try:
        pricing = pricing_service.recalculate_pricing(pricing_id)
    except DomainError as exc:
        return error_response(exc)
    return {"pricing": pricing.to_dict(), "message": "Pricing recalculated"}


@pricing_bp.post("/recalculate")
@require_auth
def recalculate_all():
    try:
        pricings = pricing_service.recalculate_all()
    except DomainError as exc:
        return error_response(exc)
    return {
        "items": [p.to_dict() for p in pricings],
        "message": f"{len(pricings)} pricings recalculated",
    }


@pricing_bp.delete("/<int:pricing_id>")
@require_auth
@require_role(ROLE_ADMIN, ROLE_EDITOR)
def delete_pricing(pricing_id: int):
    try:
        pricing_service.delete_pricing(pricing_id)
    except DomainError as exc:
        return error_response(exc)
    return {"message": "Pricing deleted"}


@fixed_costs_bp.get("")
@require_auth
def get_fixed_costs():
    try:
        return fixed_costs_service.get_fixed_costs().to_dict()
    except DomainError as exc:
        return error_response(exc)


@fixed_costs_bp.put("")
@require_auth
def save_fixed_costs():
    """Upsert. Existing pricings keep their price until recalculated."""
    payload = request.get_json(silent=True) or {}
    try:
        fixed = fixed_costs_service.save_fixed_costs(payload)
    except DomainError as exc:
        return error_response(exc)
    return {"fixed_costs": fixed.to_dict(), "message": "Fixed costs saved"}

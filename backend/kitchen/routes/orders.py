# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

# backend/kitchen/routes/orders.py
"""Order routes: creation consumes stock, cancellation restores it."""

from flask import Blueprint, request, jsonify, current_app

from ..errors import DomainError, error_response
from ..services import order_service
from ..decorators import require_auth


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """Kitchen board order: position, then order date. ?status= filters."""
    try:
        orders = order_service.list_orders(status=request.args.get("status") or None)
    except DomainError as exc:
        return error_response(exc)
    return jsonify({"items": [order.to_dict() for order in orders]}), 200


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        return jsonify(order_service.get_order(order_id).to_dict()), 200
    except DomainError as exc:
        return error_response(exc)


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order.

    Body: {customer_id, due_date, items: [{pricing_id, quantity}], notes?, position?}
    409 INSUFFICIENT_STOCK lists every short ingredient; nothing is deducted.
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.create_order(
            customer_id=data.get("customer_id"),
            due_date=data.get("due_date"),
            items=data.get("items"),
            notes=data.get("notes"),
            position=data.get("position", 0),
        )
        return jsonify({"order": order.to_dict(), "message": "Order created"}), 201

    except DomainError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/status")
@require_auth
def update_status_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order_status(order_id, data.get("status"))
        return jsonify({"order": order.to_dict(), "message": "Order status updated"}), 200

    except DomainError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/position")
@require_auth
def update_position_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.update_order_position(order_id, data.get("position"))
        return jsonify({"order": order.to_dict(), "message": "Order position updated"}), 200
    except DomainError as exc:
        return error_response(exc)


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    """Cancel and restore the stock the order consumed."""
    try:
        order = order_service.cancel_order(order_id)
        return jsonify({"order": order.to_dict(), "message": "Order cancelled"}), 200

    except DomainError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500

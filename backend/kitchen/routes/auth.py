# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import DomainError, error_response
from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth
from kitchen.time_utils import to_utc_z


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create an account. The very first account becomes admin.
    """
    payload = request.get_json(silent=True) or {}
    try:
        user = auth_service.register_user(payload)
    except DomainError as exc:
        return error_response(exc)

    current_app.logger.info("Registered user %s with role %s", user.id, user.role)
    return jsonify({"user": user.to_dict(), "message": "User registered"}), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    The token goes in the Authorization header of protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "email and password required", "code": "INVALID_INPUT", "details": {}}), 400

    try:
        user = auth_service.authenticate(email, password)
        if not user:
            return jsonify({"error": "Invalid credentials", "code": "UNAUTHORIZED", "details": {}}), 401

        session, token = session_service.create_session(user.id)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "expires_at": to_utc_z(session.expires_at),
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token, reason="User logout")
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200

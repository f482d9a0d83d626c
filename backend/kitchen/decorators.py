# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service


def _request_token() -> str | None:
    """
    Bearer token from the Authorization header.

    Falls back to ?token= for clients that cannot set headers (EventSource).
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.args.get("token") or None


def require_auth(f):
    """
    Require a valid session.

    Sets g.current_user and g.session_context. Returns 401 if the token is
    missing, unknown, expired, revoked, or its user is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _request_token()
        if not token:
            return jsonify({"error": "Authentication required", "code": "UNAUTHORIZED"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token", "code": "UNAUTHORIZED"}), 401

        g.current_user = context.user
        g.session_context = context
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """Require the authenticated user to hold one of roles. Use below @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required", "code": "UNAUTHORIZED"}), 401
            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "code": "FORBIDDEN",
                    "required_roles": list(roles),
                }), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator

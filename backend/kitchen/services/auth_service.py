# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication service.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
- The first account ever registered becomes admin; later self-registrations
  are plain users. Admins promote through the CLI.
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import ConflictError, InvalidInputError, NotFoundError
from ..models import User
from ..models.auth import ROLE_ADMIN, ROLE_USER, VALID_ROLES
from kitchen.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(InvalidInputError):
    """Raised when password doesn't meet strength requirements."""
    code = "WEAK_PASSWORD"


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    # bcrypt.checkpw is timing-safe; a malformed stored hash raises ValueError
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise InvalidInputError("A valid email is required")
    return email.strip().lower()


def create_user(name: str, email: str, password: str, role: str = ROLE_USER) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ConflictError for a taken email, InvalidInputError for a bad role,
    name or email, PasswordValidationError for a weak password.
    """
    if role not in VALID_ROLES:
        raise InvalidInputError(f"role must be one of {', '.join(sorted(VALID_ROLES))}")
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError("name is required")
    email = _normalize_email(email)

    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise ConflictError("Email already registered")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def register_user(payload: dict) -> User:
    """Self-registration. Bootstraps the first account as admin."""
    payload = payload or {}
    is_first = db.session.query(User.id).first() is None
    return create_user(
        name=payload.get("name"),
        email=payload.get("email"),
        password=payload.get("password"),
        role=ROLE_ADMIN if is_first else ROLE_USER,
    )


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active user for valid credentials, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()
    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user
    return None


def set_role(user_id: int, role: str) -> User:
    if role not in VALID_ROLES:
        raise InvalidInputError(f"role must be one of {', '.join(sorted(VALID_ROLES))}")
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    user.role = role
    db.session.commit()
    return user

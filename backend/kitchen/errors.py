# Overview: Domain error taxonomy shared by services and routes.

"""
Domain errors.

Services raise these; routes catch DomainError at the request boundary and
turn it into {"error", "code", "details"} with the class's HTTP status.
Anything that is not a DomainError is an internal failure (500).
"""


class DomainError(Exception):
    """Base class for client-facing domain failures."""
    status_code = 400
    code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class NotFoundError(DomainError):
    """Referenced entity is missing or archived."""
    status_code = 404
    code = "NOT_FOUND"


class InvalidInputError(DomainError):
    """Malformed or missing field, empty collection, non-numeric value."""
    status_code = 400
    code = "INVALID_INPUT"


class InvalidStateError(DomainError):
    """Illegal transition, e.g. cancelling a cancelled order."""
    status_code = 409
    code = "INVALID_STATE"


class InsufficientStockError(DomainError):
    """An ingredient does not have enough quantity on hand."""
    status_code = 409
    code = "INSUFFICIENT_STOCK"


class InvalidValueError(DomainError):
    """Pricing formula precondition violated (fee >= 100%, sales <= 0, non-finite cost)."""
    status_code = 422
    code = "INVALID_VALUE"


class ConflictError(DomainError):
    """Uniqueness rule violated (duplicate email, second inventory record for an input)."""
    status_code = 409
    code = "CONFLICT"


def error_response(exc: DomainError):
    """Flask (body, status) tuple for a domain error."""
    return exc.to_dict(), exc.status_code

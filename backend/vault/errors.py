"""
Domain errors shared by the gateway, the services and the HTTP layer.

Each error carries the HTTP status it maps to and a short message that is
safe to show to clients. Handlers in vault.main render them as
{"message": ...}.
"""


class VaultError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(VaultError):
    """Malformed or missing input fields."""

    status_code = 400
    default_message = "Invalid input"


class InvalidArgument(ValidationError):
    """A request parameter outside its allowed set (export format, section)."""


class Unauthorized(VaultError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFound(VaultError):
    """Missing record, or one owned by somebody else. Callers can't tell which."""

    status_code = 404
    default_message = "Not found"


class Conflict(VaultError):
    status_code = 409
    default_message = "Already exists"


class ExternalServiceUnavailable(VaultError):
    """Third-party lookup failed. Never surfaced; lookups degrade to not found."""

    status_code = 503
    default_message = "External service unavailable"


class InternalError(VaultError):
    status_code = 500
    default_message = "Internal server error"

"""Domain error taxonomy.

Services raise these; ``main.py`` maps them onto HTTP responses via
``status_code`` and ``to_dict()``.
"""

from typing import Any


class FlightGuardError(Exception):
    """Base class for all expected domain failures."""

    status_code = 500
    default_message = "An unexpected error occurred."
    error_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(FlightGuardError):
    """Malformed or missing input (400)."""

    status_code = 400
    default_message = "Validation error."
    error_code = "VALIDATION_ERROR"


class NotFoundError(FlightGuardError):
    """Referenced booking, person, aircraft or scenario is absent (404)."""

    status_code = 404
    default_message = "The requested resource was not found."
    error_code = "NOT_FOUND"


class ConflictError(FlightGuardError):
    """Double-booked resource or concurrent modification (409)."""

    status_code = 409
    default_message = "A conflict occurred with the current state of the resource."
    error_code = "CONFLICT"


class AlreadyCancelledError(ConflictError):
    default_message = "Flight is already cancelled"
    error_code = "ALREADY_CANCELLED"


class AuthorizationError(FlightGuardError):
    """Role or ownership mismatch (403)."""

    status_code = 403
    default_message = "You do not have permission to perform this action."
    error_code = "FORBIDDEN"


class InvalidStateError(FlightGuardError):
    """Operation is illegal for the booking's current status (400)."""

    status_code = 400
    default_message = "Operation not permitted in the current state."
    error_code = "INVALID_STATE"


class ExternalServiceError(FlightGuardError):
    """Weather or AI provider failure (502).

    ``provider`` names the upstream; ``hint`` is safe to show to users.
    """

    status_code = 502
    default_message = "An external service is unavailable."
    error_code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        message: str | None = None,
        provider: str = "unknown",
        hint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details=details)
        self.provider = provider
        self.hint = hint

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["provider"] = self.provider
        if self.hint:
            payload["hint"] = self.hint
        return payload

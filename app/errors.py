"""Error taxonomy shared by services and the HTTP boundary.

Every ``ServiceError`` carries the HTTP status and a stable error code; the
exception handlers in ``main.py`` turn them into a uniform JSON envelope.
"""


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses."""

    status_code: int = 400
    error_code: str = "bad_request"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        detail: dict | list | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.detail = detail


class ValidationError(ServiceError):
    """Malformed input (422)."""

    status_code = 422
    error_code = "validation_error"


class ConflictError(ServiceError):
    """Duplicate email (409)."""

    status_code = 409
    error_code = "conflict"


class NotFoundError(ServiceError):
    """Requested resource not found (404)."""

    status_code = 404
    error_code = "not_found"


class Unauthorized(ServiceError):
    """Missing, invalid, expired or stale credentials (401).

    ``reason`` is kept for logging only; clients see the message.
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(self, message: str, *, reason: str = "invalid_credentials", **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason


class Forbidden(ServiceError):
    """Authenticated but not allowed (403)."""

    status_code = 403
    error_code = "forbidden"


class TokenInvalidOrExpired(ServiceError):
    """Password reset secret unknown, already used or expired (400)."""

    status_code = 400
    error_code = "token_invalid_or_expired"


class DeliveryError(ServiceError):
    """Outbound email could not be sent (500)."""

    status_code = 500
    error_code = "delivery_failed"


class InternalError(ServiceError):
    """Unexpected store or hashing failure (500)."""

    status_code = 500
    error_code = "internal_error"


class HashingError(InternalError):
    """The password hashing backend failed."""


class TokenError(Exception):
    """Bearer token could not be accepted."""


class TokenInvalid(TokenError):
    """Bad signature, malformed token or missing claims."""


class TokenExpired(TokenError):
    """Token lifetime has elapsed."""


__all__ = [
    "ServiceError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "Unauthorized",
    "Forbidden",
    "TokenInvalidOrExpired",
    "DeliveryError",
    "InternalError",
    "HashingError",
    "TokenError",
    "TokenInvalid",
    "TokenExpired",
]

"""
Service-wide exception hierarchy.

Every service raises one of these types; blueprints register handlers
against them once and get consistent HTTP status codes everywhere.
Each exception carries a machine-readable ``code`` (e.g. ``LIMIT_REACHED``)
alongside the human-readable message shown to the caller.

Usage:
    from assetverse.core.exceptions import ConflictError, NotFoundError

    raise NotFoundError("Request", request_id, code="REQUEST_NOT_FOUND")
    raise ConflictError("LIMIT_REACHED", "Your package has been used up")
"""


class AssetVerseError(Exception):
    """Base class. ``status`` is the HTTP status the blueprints render."""

    status = 500
    default_code = "ERR_INTERNAL"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message
        super().__init__(message)


class AuthenticationError(AssetVerseError):
    """Missing, malformed or unverifiable identity assertion. Maps to 401."""

    status = 401
    default_code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Unauthorized Access!", code: str | None = None) -> None:
        super().__init__(message, code)


class AuthorizationError(AssetVerseError):
    """The verified principal lacks the role or ownership required. Maps to 403."""

    status = 403
    default_code = "FORBIDDEN"


class NotFoundError(AssetVerseError):
    """Raised when a referenced Account/Asset/Request/Assignment is absent.

    Args:
        resource: Human-readable entity name (e.g. "Asset", "Request").
        resource_id: The key that was looked up. Included in the message.
        code: Machine code; defaults to ``<RESOURCE>_NOT_FOUND``.
    """

    status = 404
    default_code = "ERR_NOT_FOUND"

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        code: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" {resource_id}"
        msg += " not found"
        super().__init__(msg, code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND")


class ConflictError(AssetVerseError):
    """Business-rule conflict: duplicate, already assigned/approved, limit reached.

    Maps to HTTP 409.
    """

    status = 409
    default_code = "ERR_CONFLICT"

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message, code)


class ValidationError(AssetVerseError):
    """Input was well-formed JSON but violated a field rule. Maps to 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    status = 422
    default_code = "ERR_VALIDATION"

    def __init__(self, message: str, details: dict | None = None, code: str | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code)


class InfrastructureError(AssetVerseError):
    """The store or the payment provider could not be reached. Maps to 500.

    The message is logged; callers only ever see an opaque error body.
    """

    status = 500
    default_code = "ERR_INFRASTRUCTURE"

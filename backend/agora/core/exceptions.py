"""
Application error taxonomy.

Every error maps to one HTTP status code. Handlers in ``agora.main``
render them as ``{"message": ..., "errors": [...]}``.
"""

from typing import Any


class AgoraError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}


class ValidationError(AgoraError):
    """Malformed input."""

    status_code = 400
    default_message = "Invalid data"

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class Unauthenticated(AgoraError):
    """No valid session, or bad credentials."""

    status_code = 401
    default_message = "Not authenticated"


class Forbidden(AgoraError):
    """Authenticated, but the policy denies the action."""

    status_code = 403
    default_message = "Access denied"


class NotFound(AgoraError):
    status_code = 404
    default_message = "Not found"


class Conflict(AgoraError):
    """Unique value already taken (email, slug)."""

    status_code = 400
    default_message = "Already exists"


class Internal(AgoraError):
    status_code = 500
    default_message = "Internal server error"

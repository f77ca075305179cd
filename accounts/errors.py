"""Error taxonomy reported by the account service."""
from __future__ import annotations

from typing import Dict, List, Optional


class AccountError(Exception):
    """Base class for failures the account service reports to callers."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, object]:
        return {"error": self.kind, "detail": self.message}


class ValidationError(AccountError):
    """Raised when a request does not satisfy its field constraints."""

    status_code = 400
    kind = "validation_error"

    def __init__(self, message: str = "Validation failed", errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.errors: List[Dict[str, str]] = list(errors or [])

    def to_dict(self) -> Dict[str, object]:
        payload = super().to_dict()
        payload["errors"] = list(self.errors)
        return payload


class ConflictError(AccountError):
    status_code = 409
    kind = "conflict"


class NotFoundError(AccountError):
    status_code = 404
    kind = "not_found"


class UnknownError(AccountError):
    """Catch-all for unexpected failures; the original cause is chained."""

    # Kept at 400 for compatibility with existing clients.
    status_code = 400
    kind = "unknown_error"

    def __init__(self, message: str = "An unknown error occurred") -> None:
        super().__init__(message)


class NotificationError(AccountError):
    """Raised when the verification notification could not be delivered."""

    status_code = 502
    kind = "notification_error"


__all__ = [
    "AccountError",
    "ConflictError",
    "NotFoundError",
    "NotificationError",
    "UnknownError",
    "ValidationError",
]

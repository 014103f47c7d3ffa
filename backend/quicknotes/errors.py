from __future__ import annotations

from typing import Optional


class QuickNotesError(Exception):
    """Base error shared by the server functions and the client."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.kind}


class ValidationError(QuickNotesError):
    """Malformed or out-of-range input, raised before any store access."""

    kind = "validation_failed"
    status_code = 422

    def __init__(self, message: str, fields: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.fields = dict(fields or {})

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["fields"] = self.fields
        return out


class NotFoundError(QuickNotesError):
    kind = "not_found"
    status_code = 404


class TransportError(QuickNotesError):
    """Network failure, timeout or 5xx answer. Retried by the client."""

    kind = "transport"
    status_code = 503


class DatabaseError(QuickNotesError):
    """Any store failure that is not a validation or lookup miss."""

    kind = "database"
    status_code = 503

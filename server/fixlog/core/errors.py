"""Error taxonomy for the ingestion pipeline and the export endpoint.

Request-fatal errors carry the HTTP status the API layer answers with.
``RecordRejected`` is per record and never aborts a batch.
"""

from __future__ import annotations


class FixlogError(Exception):
    """Base class for errors that end a request with a JSON error body."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.message}


class AuthError(FixlogError):
    status_code = 401

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class MalformedInputError(FixlogError):
    status_code = 400


class FormatError(MalformedInputError):
    """The body decoded but its envelope shape is not usable."""


class StorageError(FixlogError):
    status_code = 500


class InvalidWindowError(FixlogError):
    status_code = 400


class DeviceNotFoundError(FixlogError):
    status_code = 404

    def __init__(self, message: str = "device not found") -> None:
        super().__init__(message)


class RecordRejected(Exception):
    """One candidate record failed validation."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class DecodeError(ValueError):
    """An uplink byte payload could not be decoded."""

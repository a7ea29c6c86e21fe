"""Failure taxonomy for registry operations.

Every registry failure is an ordinary, recoverable outcome reported back
to the caller. Each error knows the HTTP status it maps to so the API
layer can translate it without a lookup table.
"""

from __future__ import annotations

from typing import Any

from cafewatch.utils.timefmt import format_timestamp


class RegistryError(Exception):
    """Base class for all registry operation failures."""

    status_code: int = 500

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def details(self) -> dict[str, Any]:
        """Error fields for a JSON response body."""
        body: dict[str, Any] = {"error": self.message}
        if self.suggestion:
            body["suggestion"] = self.suggestion
        return body


class InvalidArgument(RegistryError):
    """A required field was missing or blank."""

    status_code = 400

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} is required")
        self.field = field

    def details(self) -> dict[str, Any]:
        body = super().details()
        body["field"] = self.field
        return body


class NotFound(RegistryError):
    """No record (or no launch directive) exists for the identifier."""

    status_code = 404

    def __init__(
        self, identifier: str, message: str | None = None, suggestion: str | None = None
    ) -> None:
        super().__init__(message or f"System {identifier} not found", suggestion)
        self.identifier = identifier


class Inactive(RegistryError):
    """The terminal has not been heard from within the naming window."""

    status_code = 400

    def __init__(self, identifier: str, last_heartbeat_at: int) -> None:
        super().__init__(
            f"System {identifier} is not active",
            suggestion="Wait for client to send heartbeat or restart client app",
        )
        self.identifier = identifier
        self.last_heartbeat_at = last_heartbeat_at

    def details(self) -> dict[str, Any]:
        body = super().details()
        body["lastHeartbeat"] = self.last_heartbeat_at
        body["lastSeen"] = format_timestamp(self.last_heartbeat_at)
        return body


def require_text(value: str | None, field: str, message: str | None = None) -> str:
    """Return ``value`` stripped of whitespace, or raise InvalidArgument if blank."""
    if value is None or not value.strip():
        raise InvalidArgument(field, message)
    return value.strip()

"""Exception hierarchy for ccAnnounce.

Every error raised by the announce engine derives from ``CCAnnounceError``
so callers can tell protocol failures from programming errors.
"""

from __future__ import annotations

from typing import Any


class CCAnnounceError(Exception):
    """Base exception for all ccAnnounce errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize ccAnnounce error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NetworkError(CCAnnounceError):
    """Network-related errors."""


class TrackerError(NetworkError):
    """Tracker communication errors (transport failure, bad HTTP status)."""


class ProtocolError(CCAnnounceError):
    """Tracker protocol violations."""


class IntervalError(ProtocolError):
    """Tracker returned a non-positive announce interval."""


class ValidationError(CCAnnounceError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class AnnounceEncodingError(ValidationError):
    """Announce request parameters or endpoint could not be encoded."""


class BencodeError(ValidationError):
    """Bencode decoding errors and malformed tracker responses."""

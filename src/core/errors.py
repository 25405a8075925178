"""metalens exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class MetalensError(Exception):
    """Base exception for all metalens failures."""


class MetalensConfigError(MetalensError):
    """Raised for invalid runtime configuration."""


class MetalensTransportError(MetalensError):
    """Raised when the metadata API answers with an unexpected status.

    Attributes:
        status: HTTP status code returned by the server.
        body: Raw response body text.
    """

    def __init__(self, message: str, status: int, body: str) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class MetalensPayloadError(MetalensError):
    """Raised when the metadata API returns an unexpected JSON shape."""


class MetalensStoreError(MetalensError):
    """Raised when the local cache store is unavailable or fails."""


class MetalensQueryError(MetalensError):
    """Raised for invalid search arguments."""


class MetalensFilterFileError(MetalensError):
    """Raised for invalid or unreadable saved filter files."""

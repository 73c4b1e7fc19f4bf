"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error taxonomy for calls made against the vmanomaly backend.
"""

from __future__ import annotations


class UpstreamError(RuntimeError):
    """Base error for any failed call to the vmanomaly backend."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class NetworkFailure(UpstreamError):
    """Raised on connection, DNS or transport-timeout failures."""


class CancelledOrDeadlineExceeded(UpstreamError):
    """Raised when the caller's deadline expired before a response arrived."""


class HTTPStatusFailure(UpstreamError):
    """
    Raised when the backend answers with a non-2xx status.

    The raw response body is preserved for diagnostics.
    """

    def __init__(
        self,
        status_code: int,
        body: str,
        *,
        operation: str | None = None,
    ) -> None:
        super().__init__(
            f"unexpected status code {status_code}: {body}",
            operation=operation,
        )
        self.status_code = status_code
        self.body = body


class DecodeFailure(UpstreamError):
    """Raised when a 2xx response cannot be decoded into the expected shape."""

    def __init__(
        self,
        body: str,
        cause: Exception,
        *,
        operation: str | None = None,
    ) -> None:
        super().__init__(f"failed to decode response: {cause}", operation=operation)
        self.body = body
        self.cause = cause

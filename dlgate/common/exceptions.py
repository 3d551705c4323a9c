"""
Custom exceptions for the download gateway.

Every error a client may see derives from ``GatewayError`` and carries the
HTTP status it is rendered with.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for request failures."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class Malformed(GatewayError):
    """Exception for missing or syntactically invalid input."""

    def __init__(self, message: str = "Invalid request") -> None:
        super().__init__(message, 400)


class Unauthenticated(GatewayError):
    """Exception for absent, unknown or expired sessions."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, 401)


class Forbidden(GatewayError):
    """Exception for authenticated requests that are not allowed."""

    def __init__(self, message: str, status_code: int = 403) -> None:
        super().__init__(message, status_code)


class Expired(Forbidden):
    """Exception for licenses past their expiry instant."""

    def __init__(self, message: str = "License has expired.") -> None:
        super().__init__(message)


class NotEntitled(Forbidden):
    """Exception for a known file the license does not cover.

    Rendered exactly like an unknown file so the catalog cannot be enumerated.
    """

    def __init__(self, message: str = "File not found") -> None:
        super().__init__(message, 404)


class NotFound(GatewayError):
    """Exception for unknown licenses or files."""

    def __init__(self, message: str = "File not found") -> None:
        super().__init__(message, 404)


class RequestRejected(GatewayError):
    """Exception for stale or replayed download requests."""

    def __init__(
        self, message: str = "Timestamp is too old or invalid.", verdict: str = ""
    ) -> None:
        super().__init__(message, 403)
        self.verdict = verdict


class RateLimitError(GatewayError):
    """Exception for rate limiting."""

    def __init__(self, message: str, retry_after: float) -> None:
        super().__init__(message, 429)
        self.retry_after = retry_after


class UpstreamFailure(GatewayError):
    """Exception for blob store or database failures."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message, 500)


class GatewayClientError(Exception):
    """Raised by the HTTP client when the gateway answers with an error."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code

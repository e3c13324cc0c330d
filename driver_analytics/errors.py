"""
Error taxonomy for the driver analytics read path.

Every failure on the request path is one of these types. The HTTP layer maps
them to structured JSON responses; nothing else is allowed to leak out.
"""

from __future__ import annotations

from typing import Optional


class AnalyticsError(Exception):
    """Base class for all read-path failures."""

    status_code: int = 500
    public_message: str = "Internal server error"


class DatabaseConnectionError(AnalyticsError):
    """
    A connection (or a pooled checkout) could not be obtained.

    Fatal to the request and never retried by the gateway.
    """

    public_message = "Database unavailable"


class QueryError(AnalyticsError):
    """
    A specific query failed.

    The underlying driver exception is chained as ``__cause__`` and kept on
    ``cause``; the connection or pool stays usable for later requests.
    """

    public_message = "Database error"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class NotFoundError(AnalyticsError):
    """The requested driver has no matching rows."""

    status_code = 404
    public_message = "Driver not found"


class InvalidRequestError(AnalyticsError):
    """A request parameter (limit, cursor, driver id) failed validation."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


__all__ = [
    "AnalyticsError",
    "DatabaseConnectionError",
    "QueryError",
    "NotFoundError",
    "InvalidRequestError",
]

"""Map httpx/OS exceptions onto the mediamanager error hierarchy."""

from __future__ import annotations

import httpx

from mediamanager.errors.exceptions import TransportError


def classify_transport_error(exc: Exception, url: str | None = None) -> TransportError:
    """Convert a fetch-time exception to a TransportError."""
    if isinstance(exc, TransportError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(
            str(exc) or "Request timed out",
            error_type="timeout",
            url=url,
            original=exc,
        )
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return TransportError(
            f"HTTP {status} for {url or exc.request.url}",
            error_type="http_status",
            http_status=status,
            url=url,
            original=exc,
        )
    if isinstance(exc, (httpx.TransportError, OSError)):
        return TransportError(
            str(exc) or type(exc).__name__,
            error_type="connection",
            url=url,
            original=exc,
        )
    return TransportError(str(exc) or type(exc).__name__, error_type="unknown", url=url, original=exc)

"""Custom exception hierarchy for mediamanager."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class MediaError(Exception):
    """Base exception for all mediamanager errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class TransportError(MediaError):
    """Network or connection failure while fetching a picture.

    Never retried internally; retry is the caller's business.
    """

    def __init__(
        self,
        message: str = "",
        error_type: str = "connection",
        http_status: int | None = None,
        url: str | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.http_status = http_status
        self.url = url
        self.original = original


class DecodeError(MediaError):
    """Fetched or cached bytes do not parse as a supported image."""

    def __init__(
        self,
        message: str = "",
        url: str | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.original = original


class NotAvailableError(MediaError):
    """Cache miss on a dummy URL, which has no network representation."""

    def __init__(self, message: str = "", url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class CacheIOError(MediaError):
    """Local cache write/delete/clear failure.

    Non-fatal: logged and absorbed by callers inside this package.
    """

    def __init__(
        self,
        message: str = "",
        path: Path | None = None,
        operation: str = "write",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.operation = operation
        self.original = original


class InvalidStateError(MediaError):
    """Illegal loader state transition (e.g. starting a loader twice)."""

    def __init__(self, message: str = "", current: str = "", target: str = "") -> None:
        super().__init__(message)
        self.current = current
        self.target = target

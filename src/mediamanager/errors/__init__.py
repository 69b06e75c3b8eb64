"""Error handling — exception hierarchy and transport error classification."""

from mediamanager.errors.classify import classify_transport_error
from mediamanager.errors.exceptions import (
    CacheIOError,
    DecodeError,
    InvalidStateError,
    MediaError,
    NotAvailableError,
    TransportError,
)

__all__ = [
    "MediaError",
    "TransportError",
    "DecodeError",
    "NotAvailableError",
    "CacheIOError",
    "InvalidStateError",
    "classify_transport_error",
]

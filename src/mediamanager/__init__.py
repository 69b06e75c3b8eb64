"""mediamanager — picture loading with a disk cache and cancellable async fetches."""

from mediamanager.core import (
    MediaManager,
    cancel,
    clear_cache,
    get_shared_manager,
    invalidate,
    load_picture,
    resize,
    set_shared_manager,
)
from mediamanager.loader import LoaderHandle
from mediamanager.types import LoaderState

__all__ = [
    "LoaderHandle",
    "LoaderState",
    "MediaManager",
    "cancel",
    "clear_cache",
    "get_shared_manager",
    "invalidate",
    "load_picture",
    "resize",
    "set_shared_manager",
]

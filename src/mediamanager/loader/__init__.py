"""Loader — cancellable async fetch with cache write-through."""

from mediamanager.loader.handle import LoaderHandle
from mediamanager.loader.media_loader import MediaLoader, OnFailure, OnSuccess

__all__ = ["LoaderHandle", "MediaLoader", "OnFailure", "OnSuccess"]

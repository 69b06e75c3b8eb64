"""Cache key generation — derived from the source URL alone."""

from __future__ import annotations

import hashlib

from mediamanager.config.defaults import DEFAULT_CACHE_FILE_PREFIX, DEFAULT_CACHE_FILE_SUFFIX


def compute_cache_key(url: str) -> str:
    """Return the SHA256 hex digest of the URL string.

    The URL is hashed verbatim: no normalisation, no collision detection.
    Two URLs that differ only cosmetically get separate entries, and a
    digest collision between distinct URLs would make them share one.
    """
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def cache_file_name(key: str) -> str:
    """File name for a cache key: ``ima<key>.jpg`` whatever the image format."""
    return f"{DEFAULT_CACHE_FILE_PREFIX}{key}{DEFAULT_CACHE_FILE_SUFFIX}"

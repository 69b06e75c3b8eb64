"""Package-level default configuration values."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any


def _platform_cache_root() -> Path:
    xdg = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / "mediamanager"


# Default cache settings
DEFAULT_CACHE_ROOT = _platform_cache_root()
DEFAULT_CACHE_SUBDIR = "picturecache"
DEFAULT_CACHE_FILE_PREFIX = "ima"
DEFAULT_CACHE_FILE_SUFFIX = ".jpg"

# Placeholder references that are never fetched
DEFAULT_DUMMY_URL_PREFIX = "dummyUrl-"

# Default fetch settings
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_DOWNLOAD_MB = 50.0
DEFAULT_CHUNK_SIZE = 64 * 1024

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "cache_root": DEFAULT_CACHE_ROOT,
        "cache_subdir": DEFAULT_CACHE_SUBDIR,
        "dummy_url_prefix": DEFAULT_DUMMY_URL_PREFIX,
        "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
        "max_download_mb": DEFAULT_MAX_DOWNLOAD_MB,
        "chunk_size": DEFAULT_CHUNK_SIZE,
        "log_level": DEFAULT_LOG_LEVEL,
    }

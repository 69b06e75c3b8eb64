"""Lazily created picture cache directory."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from mediamanager.config.defaults import DEFAULT_CACHE_SUBDIR

logger = logging.getLogger(__name__)


class CacheDirectory:
    """Computes and creates ``{root}/{subdir}`` exactly once.

    The first access to ``path`` takes a lock and creates the directory;
    later accesses return the memoised path without locking. ``reset`` drops
    the memoised path so the next access recreates it.
    """

    def __init__(self, root: Path, subdir: str = DEFAULT_CACHE_SUBDIR) -> None:
        self._root = root
        self._subdir = subdir
        self._path: Path | None = None
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def path(self) -> Path:
        """Return the cache directory, creating it on first use.

        Raises OSError if the directory cannot be created.
        """
        path = self._path
        if path is not None:
            return path
        with self._lock:
            if self._path is None:
                target = self._root / self._subdir
                target.mkdir(parents=True, exist_ok=True)
                logger.debug("Picture cache directory ready: %s", target)
                self._path = target
            return self._path

    @property
    def initialized(self) -> bool:
        return self._path is not None

    def peek(self) -> Path:
        """Return the directory path without creating it."""
        return self._root / self._subdir

    def reset(self) -> None:
        with self._lock:
            self._path = None

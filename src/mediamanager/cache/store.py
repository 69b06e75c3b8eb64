"""Disk-backed picture store keyed by a hash of the source URL."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path

from mediamanager.cache.directory import CacheDirectory
from mediamanager.cache.keys import cache_file_name, compute_cache_key
from mediamanager.config.defaults import DEFAULT_CACHE_FILE_PREFIX, DEFAULT_CACHE_FILE_SUFFIX
from mediamanager.errors.exceptions import CacheIOError

logger = logging.getLogger(__name__)


class PictureCacheStore:
    """Raw image bytes on disk, one ``ima<key>.jpg`` file per URL.

    The store owns the on-disk representation exclusively. Reads return a
    fresh ``bytes`` object and nothing is kept in memory.
    """

    def __init__(self, directory: CacheDirectory) -> None:
        self._directory = directory
        self._counter_lock = threading.Lock()
        self.writes = 0
        self.write_errors = 0

    @property
    def directory(self) -> CacheDirectory:
        return self._directory

    @staticmethod
    def compute_key(url: str) -> str:
        return compute_cache_key(url)

    def path_for(self, url: str) -> Path:
        """Cache file path for ``url``. Creates the cache directory on first use."""
        return self._directory.path / cache_file_name(compute_cache_key(url))

    def get(self, url: str) -> bytes | None:
        try:
            path = self.path_for(url)
        except OSError as exc:
            logger.warning("Picture cache directory unavailable: %s", exc)
            return None
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.warning("Failed to read cached picture %s: %s", path, exc)
            return None

    def contains(self, url: str) -> bool:
        try:
            return self.path_for(url).is_file()
        except OSError:
            return False

    def put(self, url: str, data: bytes) -> Path:
        """Write ``data`` for ``url`` via a temp file and atomic rename.

        Raises CacheIOError on any filesystem failure.
        """
        path: Path | None = None
        tmp_path: Path | None = None
        try:
            path = self.path_for(url)
            fd, tmp_name = tempfile.mkstemp(
                prefix=path.name + ".",
                suffix=".part",
                dir=str(path.parent),
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as exc:
            with self._counter_lock:
                self.write_errors += 1
            logger.error("Failed to cache picture for %s at %s: %s", url, path, exc)
            raise CacheIOError(
                f"Cannot write cache entry: {exc}", path=path, operation="write", original=exc
            ) from exc
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
        with self._counter_lock:
            self.writes += 1
        logger.debug("Cached %d bytes for %s -> %s", len(data), url, path.name)
        return path

    def invalidate(self, url: str) -> bool:
        """Delete the entry for ``url``. Returns False if there was nothing to delete."""
        path: Path | None = None
        try:
            path = self.path_for(url)
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.error("Failed to delete cached picture %s: %s", path, exc)
            raise CacheIOError(
                f"Cannot delete cache entry: {exc}", path=path, operation="delete", original=exc
            ) from exc
        logger.debug("Invalidated cached picture for %s", url)
        return True

    def clear(self) -> None:
        """Remove the whole picture cache directory and reset its lazy state."""
        target = self._directory.peek()
        try:
            shutil.rmtree(target)
        except FileNotFoundError:
            logger.debug("Picture cache does not exist: %s", target)
        except OSError as exc:
            logger.error("Failed to delete picture cache dir %s: %s", target, exc)
            raise CacheIOError(
                f"Cannot clear cache: {exc}", path=target, operation="clear", original=exc
            ) from exc
        else:
            logger.info("Picture cache deleted: %s", target)
        finally:
            self._directory.reset()

    @property
    def entry_count(self) -> int:
        return len(self._entries())

    @property
    def size_bytes(self) -> int:
        total = 0
        for entry in self._entries():
            try:
                total += entry.stat().st_size
            except FileNotFoundError:
                continue
        return total

    def _entries(self) -> list[Path]:
        target = self._directory.peek()
        if not target.is_dir():
            return []
        pattern = f"{DEFAULT_CACHE_FILE_PREFIX}*{DEFAULT_CACHE_FILE_SUFFIX}"
        return [p for p in target.glob(pattern) if p.is_file()]

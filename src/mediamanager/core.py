"""Top-level entry points: MediaManager and the shared-instance helpers."""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from pathlib import Path

import httpx
from PIL import Image

from mediamanager.cache.directory import CacheDirectory
from mediamanager.cache.stats import CacheStats
from mediamanager.cache.store import PictureCacheStore
from mediamanager.config.schema import MediaSettings
from mediamanager.errors.exceptions import (
    CacheIOError,
    DecodeError,
    MediaError,
    NotAvailableError,
)
from mediamanager.loader.handle import LoaderHandle
from mediamanager.loader.media_loader import MediaLoader, OnFailure, OnSuccess
from mediamanager.types import Bound
from mediamanager.utils.image import decode_image
from mediamanager.utils.image import resize as resize_image

logger = logging.getLogger(__name__)


class MediaManager:
    """Resolves picture URLs against the disk cache, fetching on a miss."""

    def __init__(
        self,
        settings: MediaSettings | None = None,
        *,
        store: PictureCacheStore | None = None,
        client: httpx.AsyncClient | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._settings = settings or MediaSettings()
        self._store = store or PictureCacheStore(
            CacheDirectory(self._settings.cache_root, self._settings.cache_subdir)
        )
        self._client = client
        self._loop = loop

        self._active: dict[int, MediaLoader] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def settings(self) -> MediaSettings:
        return self._settings

    @property
    def store(self) -> PictureCacheStore:
        return self._store

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def is_dummy_url(self, url: str) -> bool:
        return url.startswith(self._settings.dummy_url_prefix)

    def load_picture(
        self,
        url: str,
        on_success: OnSuccess | None,
        on_failure: OnFailure | None,
    ) -> LoaderHandle | None:
        """Load a picture from the cache, or start downloading it.

        A cache hit calls ``on_success`` before returning and returns None.
        A dummy URL that is not cached calls ``on_failure`` with
        NotAvailableError before returning and returns None. Otherwise a
        download starts and its handle is returned for cancellation.
        """
        image = self._load_cached(url)
        if image is not None:
            with self._lock:
                self._hits += 1
            if on_success is not None:
                on_success(image)
            return None

        with self._lock:
            self._misses += 1

        if self.is_dummy_url(url):
            logger.info("Placeholder picture not in cache: %s", url)
            if on_failure is not None:
                on_failure(NotAvailableError(f"No cached picture for {url}", url=url))
            return None

        handle_id = next(self._ids)
        loader = MediaLoader(
            url,
            self._store,
            client=self._client,
            timeout=self._settings.timeout_seconds,
            max_bytes=self._settings.max_download_bytes,
            chunk_size=self._settings.chunk_size,
            loop=self._loop,
            on_terminal=lambda _loader: self._release(handle_id),
        )
        with self._lock:
            self._active[handle_id] = loader
        try:
            loader.start(on_success, on_failure)
        except Exception:
            self._release(handle_id)
            raise
        return LoaderHandle(handle_id=handle_id, url=url, _loader=loader)

    async def fetch_picture(self, url: str) -> Image.Image:
        """Awaitable form of load_picture. Cancelling the await cancels the download."""
        loop = asyncio.get_running_loop()
        result: asyncio.Future[Image.Image] = loop.create_future()

        def _set_result(img: Image.Image) -> None:
            if not result.done():
                result.set_result(img)

        def _set_error(err: MediaError | None) -> None:
            if not result.done():
                result.set_exception(err or MediaError(f"Picture load failed: {url}"))

        handle = self.load_picture(
            url,
            lambda img: loop.call_soon_threadsafe(_set_result, img),
            lambda err: loop.call_soon_threadsafe(_set_error, err),
        )
        try:
            return await result
        except asyncio.CancelledError:
            self.cancel(handle)
            raise

    def cancel(self, handle: LoaderHandle | None) -> None:
        if handle is None:
            return
        handle._loader.cancel()

    def cancel_all(self) -> None:
        with self._lock:
            loaders = list(self._active.values())
        for loader in loaders:
            loader.cancel()

    @staticmethod
    def resize(image: Image.Image, bound: Bound) -> Image.Image:
        return resize_image(image, bound)

    def cache_picture(self, url: str, data: bytes) -> Path | None:
        """Pre-seed the cache with ``data`` for ``url`` (works for dummy URLs too)."""
        try:
            return self._store.put(url, data)
        except CacheIOError as exc:
            logger.warning("Could not pre-seed picture cache for %s: %s", url, exc.message)
            return None

    def invalidate(self, url: str) -> bool:
        try:
            return self._store.invalidate(url)
        except CacheIOError as exc:
            logger.warning("Could not invalidate cached picture %s: %s", url, exc.message)
            return False

    def clear_cache(self) -> bool:
        try:
            self._store.clear()
        except CacheIOError as exc:
            logger.warning("Could not clear picture cache: %s", exc.message)
            return False
        return True

    def stats(self) -> CacheStats:
        with self._lock:
            hits, misses, active = self._hits, self._misses, len(self._active)
        return CacheStats(
            entries=self._store.entry_count,
            size_bytes=self._store.size_bytes,
            hits=hits,
            misses=misses,
            writes=self._store.writes,
            write_errors=self._store.write_errors,
            active_loaders=active,
        )

    async def close(self) -> None:
        """Cancel every in-flight load and wait for the fetch tasks to unwind.

        An httpx client passed in by the caller stays open.
        """
        with self._lock:
            loaders = list(self._active.values())
        for loader in loaders:
            loader.cancel()
        for loader in loaders:
            await loader.wait()

    def _load_cached(self, url: str) -> Image.Image | None:
        data = self._store.get(url)
        if data is None:
            logger.debug("Picture cache miss: %s", url)
            return None
        try:
            image = decode_image(data, url)
        except DecodeError:
            logger.warning("Cached picture for %s is not decodable, ignoring it", url)
            return None
        logger.debug("Picture cache hit: %s", url)
        return image

    def _release(self, handle_id: int) -> None:
        with self._lock:
            self._active.pop(handle_id, None)


# ── Shared instance ──

_shared_manager: MediaManager | None = None
_shared_lock = threading.Lock()


def get_shared_manager() -> MediaManager:
    """Return the process-wide MediaManager, creating it from resolved settings."""
    global _shared_manager
    with _shared_lock:
        if _shared_manager is None:
            from mediamanager.config.hierarchy import load_settings

            _shared_manager = MediaManager(load_settings())
        return _shared_manager


def set_shared_manager(manager: MediaManager | None) -> None:
    """Replace (or with None, drop) the process-wide MediaManager."""
    global _shared_manager
    with _shared_lock:
        _shared_manager = manager


def load_picture(
    url: str,
    on_success: OnSuccess | None,
    on_failure: OnFailure | None,
) -> LoaderHandle | None:
    return get_shared_manager().load_picture(url, on_success, on_failure)


def cancel(handle: LoaderHandle | None) -> None:
    get_shared_manager().cancel(handle)


def resize(image: Image.Image, bound: Bound) -> Image.Image:
    return resize_image(image, bound)


def clear_cache() -> bool:
    return get_shared_manager().clear_cache()


def invalidate(url: str) -> bool:
    return get_shared_manager().invalidate(url)

"""Per-request picture loader: one async fetch, decode, write-through.

Lifecycle: IDLE -> FETCHING -> {SUCCEEDED | FAILED | CANCELLED}. Terminal
states are final; events arriving after one are dropped. The terminal
transition and the hand-off of the callbacks happen under a single lock, so
``cancel`` racing a completing fetch resolves to exactly one outcome.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import httpx
from PIL import Image

from mediamanager.config.defaults import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_DOWNLOAD_MB,
    DEFAULT_TIMEOUT_SECONDS,
)
from mediamanager.errors.classify import classify_transport_error
from mediamanager.errors.exceptions import (
    CacheIOError,
    DecodeError,
    InvalidStateError,
    MediaError,
    TransportError,
)
from mediamanager.types import LoaderState, can_transition
from mediamanager.utils.image import decode_image

if TYPE_CHECKING:
    from mediamanager.cache.store import PictureCacheStore

logger = logging.getLogger(__name__)

OnSuccess = Callable[[Image.Image], Any]
OnFailure = Callable[[MediaError | None], Any]

_DEFAULT_MAX_BYTES = int(DEFAULT_MAX_DOWNLOAD_MB * 1024 * 1024)


class MediaLoader:
    """Fetches one picture URL and writes it through to the cache store."""

    def __init__(
        self,
        url: str,
        store: PictureCacheStore,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_bytes: int = _DEFAULT_MAX_BYTES,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        loop: asyncio.AbstractEventLoop | None = None,
        on_terminal: Callable[[MediaLoader], Any] | None = None,
    ) -> None:
        self._url = url
        self._store = store
        self._client = client
        self._timeout = timeout
        self._max_bytes = max_bytes
        self._chunk_size = chunk_size
        self._loop = loop
        self._on_terminal = on_terminal

        self._state = LoaderState.IDLE
        self._lock = threading.Lock()
        self._on_success: OnSuccess | None = None
        self._on_failure: OnFailure | None = None
        self._buffer: bytearray | None = None
        self._future: asyncio.Task[None] | concurrent.futures.Future[None] | None = None
        self._task_loop: asyncio.AbstractEventLoop | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state.is_terminal

    def start(self, on_success: OnSuccess | None, on_failure: OnFailure | None) -> None:
        """Begin the fetch and return immediately.

        Must be called from a running event loop, or from any thread when the
        loader was given an explicit ``loop``. Raises InvalidStateError if the
        loader has already been started or cancelled.
        """
        running = _running_loop()
        target_loop = self._loop or running
        if target_loop is None:
            raise RuntimeError("MediaLoader.start() needs a running event loop or an explicit loop")

        with self._lock:
            self._transition(LoaderState.FETCHING)
            self._on_success = on_success
            self._on_failure = on_failure
            self._buffer = bytearray()

        logger.debug("Fetching picture %s", self._url)
        coro = self._run()
        if target_loop is running:
            future: asyncio.Task[None] | concurrent.futures.Future[None] = target_loop.create_task(
                coro, name=f"media-loader:{self._url}"
            )
        else:
            future = asyncio.run_coroutine_threadsafe(coro, target_loop)
        with self._lock:
            self._future = future
            self._task_loop = target_loop
            cancelled_early = self._state is LoaderState.CANCELLED
        if cancelled_early:
            self._abort(future, target_loop)

    def cancel(self) -> None:
        """Stop delivering callbacks and abort the fetch. No-op once terminal."""
        with self._lock:
            if self._state.is_terminal:
                return
            self._transition(LoaderState.CANCELLED)
            self._on_success = None
            self._on_failure = None
            self._buffer = None
            future = self._future
            task_loop = self._task_loop
        logger.debug("Cancelled picture load %s", self._url)
        if future is not None and task_loop is not None:
            self._abort(future, task_loop)
        self._notify_terminal()

    async def wait(self) -> None:
        """Wait until the fetch task has finished. Never raises CancelledError."""
        future = self._future
        if future is None:
            return
        if isinstance(future, concurrent.futures.Future):
            await asyncio.wait([asyncio.wrap_future(future)])
        else:
            await asyncio.wait([future])

    # ── fetch pipeline ──

    async def _run(self) -> None:
        if self._state is not LoaderState.FETCHING:
            return
        try:
            await self._load()
        except asyncio.CancelledError:
            self._finish(LoaderState.CANCELLED)
            raise

    async def _load(self) -> None:
        try:
            data = await self._fetch()
        except Exception as exc:
            error = classify_transport_error(exc, self._url)
            logger.warning(
                "Picture download failed: %s (%s: %s)", self._url, error.error_type, error.message
            )
            self._finish(LoaderState.FAILED, error=error)
            return
        if data is None:
            return

        try:
            image = await asyncio.to_thread(decode_image, data, self._url)
        except DecodeError as exc:
            logger.warning("Picture download failed, not an image: %s", self._url)
            self._finish(LoaderState.FAILED, error=exc)
            return

        if self._state is not LoaderState.FETCHING:
            return
        try:
            await asyncio.to_thread(self._store.put, self._url, data)
        except CacheIOError as exc:
            logger.warning("Picture fetched but not cached: %s (%s)", self._url, exc.message)
        self._finish(LoaderState.SUCCEEDED, image=image)

    async def _fetch(self) -> bytes | None:
        if self._client is not None:
            return await self._stream(self._client)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=True,
        ) as client:
            return await self._stream(client)

    async def _stream(self, client: httpx.AsyncClient) -> bytes | None:
        """Read the response body into the loader buffer. None means cancelled."""
        async with client.stream("GET", self._url) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes(self._chunk_size):
                buffer = self._buffer
                if buffer is None:
                    return None
                if len(buffer) + len(chunk) > self._max_bytes:
                    raise TransportError(
                        f"Picture exceeds {self._max_bytes} bytes",
                        error_type="too_large",
                        url=self._url,
                    )
                buffer += chunk
        buffer = self._buffer
        return bytes(buffer) if buffer is not None else None

    # ── state handling ──

    def _transition(self, target: LoaderState) -> None:
        """Move to ``target``. Caller holds ``self._lock``."""
        if not can_transition(self._state, target):
            raise InvalidStateError(
                f"Illegal loader transition {self._state} -> {target}",
                current=self._state,
                target=target,
            )
        self._state = target

    def _finish(
        self,
        target: LoaderState,
        *,
        image: Image.Image | None = None,
        error: MediaError | None = None,
    ) -> None:
        with self._lock:
            if self._state.is_terminal:
                return
            self._transition(target)
            on_success, on_failure = self._on_success, self._on_failure
            self._on_success = None
            self._on_failure = None
            self._buffer = None
        logger.debug("Picture load %s -> %s", self._url, target)

        if target is LoaderState.SUCCEEDED and on_success is not None:
            self._invoke(on_success, image)
        elif target is LoaderState.FAILED and on_failure is not None:
            self._invoke(on_failure, error)
        self._notify_terminal()

    def _invoke(self, callback: Callable[[Any], Any], arg: Any) -> None:
        try:
            callback(arg)
        except Exception:
            logger.exception("Picture load callback raised for %s", self._url)

    def _notify_terminal(self) -> None:
        if self._on_terminal is not None:
            self._on_terminal(self)

    @staticmethod
    def _abort(
        future: asyncio.Task[None] | concurrent.futures.Future[None],
        task_loop: asyncio.AbstractEventLoop,
    ) -> None:
        if future.done():
            return
        if isinstance(future, concurrent.futures.Future) or _running_loop() is task_loop:
            future.cancel()
        else:
            task_loop.call_soon_threadsafe(future.cancel)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None

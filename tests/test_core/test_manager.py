"""Tests for the MediaManager facade."""

import asyncio
import threading
import time
from unittest.mock import patch

import httpx
import pytest
from PIL import Image

import mediamanager
from mediamanager.config.schema import MediaSettings
from mediamanager.core import MediaManager
from mediamanager.errors.exceptions import CacheIOError, NotAvailableError, TransportError
from mediamanager.loader.handle import LoaderHandle
from mediamanager.types import LoaderState
from mediamanager.utils.image import decode_image


class _Recorder:
    def __init__(self):
        self.images = []
        self.errors = []

    def ok(self, image):
        self.images.append(image)

    def err(self, error):
        self.errors.append(error)

    @property
    def calls(self):
        return len(self.images) + len(self.errors)


@pytest.fixture
def settings(tmp_path):
    return MediaSettings(cache_root=tmp_path / "cache-root")


@pytest.fixture
def manager_factory(settings, serve_png):
    def _factory(**client_kwargs):
        return MediaManager(settings, client=serve_png(**client_kwargs))

    return _factory


class TestLoadPicture:
    async def test_cold_then_warm_cache(self, manager_factory, serve_png):
        mgr = manager_factory()
        rec = _Recorder()

        handle = mgr.load_picture("http://host/a.png", rec.ok, rec.err)
        assert isinstance(handle, LoaderHandle)
        assert handle.url == "http://host/a.png"
        await handle.wait()

        assert handle.state is LoaderState.SUCCEEDED
        assert len(rec.images) == 1
        assert rec.errors == []
        assert mgr.store.contains("http://host/a.png")

        warm = _Recorder()
        second = mgr.load_picture("http://host/a.png", warm.ok, warm.err)
        assert second is None
        # Delivered before load_picture returned.
        assert len(warm.images) == 1
        assert warm.images[0].size == (64, 48)
        assert len(serve_png.requests) == 1

    def test_cache_hit_needs_no_event_loop(self, manager_factory, png_bytes):
        mgr = manager_factory()
        mgr.cache_picture("http://host/a.png", png_bytes)
        rec = _Recorder()
        assert mgr.load_picture("http://host/a.png", rec.ok, rec.err) is None
        assert len(rec.images) == 1

    def test_dummy_url_miss_fails_synchronously(self, manager_factory, serve_png):
        mgr = manager_factory()
        rec = _Recorder()
        handle = mgr.load_picture("dummyUrl-placeholder", rec.ok, rec.err)
        assert handle is None
        assert rec.images == []
        assert len(rec.errors) == 1
        assert isinstance(rec.errors[0], NotAvailableError)
        assert rec.errors[0].url == "dummyUrl-placeholder"
        assert serve_png.requests == []

    def test_dummy_url_preseeded(self, manager_factory, png_bytes):
        mgr = manager_factory()
        assert mgr.cache_picture("dummyUrl-local-1", png_bytes) is not None
        rec = _Recorder()
        assert mgr.load_picture("dummyUrl-local-1", rec.ok, rec.err) is None
        assert len(rec.images) == 1

    async def test_miss_triggers_exactly_one_fetch(self, manager_factory, serve_png):
        mgr = manager_factory()
        handle = mgr.load_picture("http://host/b.png", None, None)
        assert handle is not None
        await handle.wait()
        assert len(serve_png.requests) == 1

    async def test_undecodable_cache_entry_is_refetched(self, manager_factory, serve_png):
        mgr = manager_factory()
        mgr.cache_picture("http://host/a.png", b"corrupt")
        rec = _Recorder()
        handle = mgr.load_picture("http://host/a.png", rec.ok, rec.err)
        assert handle is not None
        await handle.wait()
        assert len(rec.images) == 1
        assert len(serve_png.requests) == 1

    async def test_transport_failure_reported(self, settings):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        mgr = MediaManager(settings, client=client)
        rec = _Recorder()
        handle = mgr.load_picture("http://host/a.png", rec.ok, rec.err)
        await handle.wait()
        assert isinstance(rec.errors[0], TransportError)
        assert not mgr.store.contains("http://host/a.png")

    def test_custom_dummy_prefix(self, tmp_path):
        mgr = MediaManager(MediaSettings(cache_root=tmp_path, dummy_url_prefix="local:"))
        assert mgr.is_dummy_url("local:abc")
        assert not mgr.is_dummy_url("dummyUrl-abc")


class TestCancel:
    async def test_cancel_before_completion(self, manager_factory):
        mgr = manager_factory()
        rec = _Recorder()
        handle = mgr.load_picture("http://host/a.png", rec.ok, rec.err)
        mgr.cancel(handle)
        await handle.wait()
        await asyncio.sleep(0)
        assert handle.state is LoaderState.CANCELLED
        assert rec.calls == 0

    async def test_cancel_when_fetch_completes_later(self, settings, png_bytes):
        gate = asyncio.Event()

        async def handler(request):
            await gate.wait()
            return httpx.Response(200, content=png_bytes)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        mgr = MediaManager(settings, client=client)
        rec = _Recorder()
        handle = mgr.load_picture("http://host/a.png", rec.ok, rec.err)
        await asyncio.sleep(0)
        mgr.cancel(handle)
        gate.set()
        await handle.wait()
        assert rec.calls == 0

    def test_cancel_none_is_noop(self, manager_factory):
        manager_factory().cancel(None)

    async def test_cancel_twice_and_after_completion(self, manager_factory):
        mgr = manager_factory()
        rec = _Recorder()
        handle = mgr.load_picture("http://host/a.png", rec.ok, rec.err)
        await handle.wait()
        mgr.cancel(handle)
        mgr.cancel(handle)
        assert handle.state is LoaderState.SUCCEEDED
        assert rec.calls == 1

    async def test_registry_tracks_active_loaders(self, manager_factory):
        mgr = manager_factory()
        h1 = mgr.load_picture("http://host/1.png", None, None)
        h2 = mgr.load_picture("http://host/2.png", None, None)
        assert mgr.active_count == 2
        assert h1.handle_id != h2.handle_id
        mgr.cancel(h1)
        assert mgr.active_count == 1
        await h2.wait()
        assert mgr.active_count == 0

    async def test_cancel_all(self, manager_factory):
        mgr = manager_factory()
        handles = [mgr.load_picture(f"http://host/{i}.png", None, None) for i in range(3)]
        mgr.cancel_all()
        for h in handles:
            await h.wait()
            assert h.state is LoaderState.CANCELLED
        assert mgr.active_count == 0

    async def test_task_cancelled_mid_decode_releases_registry(self, manager_factory):
        decoding = threading.Event()

        def slow_decode(data, url=None):
            decoding.set()
            time.sleep(0.3)
            return decode_image(data, url)

        mgr = manager_factory()
        with patch("mediamanager.loader.media_loader.decode_image", slow_decode):
            handle = mgr.load_picture("http://host/a.png", None, None)
            while not decoding.is_set():
                await asyncio.sleep(0.01)
            handle._loader._future.cancel()
            await handle.wait()

        assert handle.state is LoaderState.CANCELLED
        assert mgr.active_count == 0

    async def test_close_cancels_in_flight(self, manager_factory):
        mgr = manager_factory()
        handle = mgr.load_picture("http://host/a.png", None, None)
        await mgr.close()
        assert handle.done
        assert mgr.active_count == 0


class TestFetchPicture:
    async def test_fetch_then_cache_hit(self, manager_factory, serve_png):
        mgr = manager_factory()
        img = await mgr.fetch_picture("http://host/a.png")
        assert img.size == (64, 48)
        again = await mgr.fetch_picture("http://host/a.png")
        assert again.size == (64, 48)
        assert len(serve_png.requests) == 1

    async def test_fetch_dummy_raises(self, manager_factory):
        with pytest.raises(NotAvailableError):
            await manager_factory().fetch_picture("dummyUrl-x")

    async def test_fetch_http_error_raises(self, manager_factory):
        mgr = manager_factory(content=b"nope", status_code=500)
        with pytest.raises(TransportError) as exc_info:
            await mgr.fetch_picture("http://host/a.png")
        assert exc_info.value.http_status == 500

    async def test_loaded_from_another_thread(self, settings, serve_png):
        loop = asyncio.get_running_loop()
        mgr = MediaManager(settings, client=serve_png(), loop=loop)
        rec = _Recorder()
        handle = await asyncio.to_thread(mgr.load_picture, "http://host/a.png", rec.ok, rec.err)
        await handle.wait()
        assert len(rec.images) == 1


class TestCacheMaintenance:
    async def test_clear_cache(self, manager_factory):
        mgr = manager_factory()
        await mgr.fetch_picture("http://host/a.png")
        assert mgr.clear_cache() is True
        assert mgr.store.get("http://host/a.png") is None

    def test_clear_cache_absorbs_io_error(self, manager_factory):
        mgr = manager_factory()
        with patch.object(mgr.store, "clear", side_effect=CacheIOError("denied")):
            assert mgr.clear_cache() is False

    def test_invalidate(self, manager_factory, png_bytes):
        mgr = manager_factory()
        mgr.cache_picture("http://host/a.png", png_bytes)
        assert mgr.invalidate("http://host/a.png") is True
        assert mgr.invalidate("http://host/a.png") is False
        assert not mgr.store.contains("http://host/a.png")

    def test_invalidate_absorbs_io_error(self, manager_factory):
        mgr = manager_factory()
        with patch.object(mgr.store, "invalidate", side_effect=CacheIOError("denied")):
            assert mgr.invalidate("http://host/a.png") is False

    def test_cache_picture_absorbs_io_error(self, manager_factory):
        mgr = manager_factory()
        with patch.object(mgr.store, "put", side_effect=CacheIOError("denied")):
            assert mgr.cache_picture("http://host/a.png", b"x") is None

    def test_stats(self, manager_factory, png_bytes):
        mgr = manager_factory()
        mgr.cache_picture("http://host/a.png", png_bytes)
        mgr.load_picture("http://host/a.png", None, None)
        mgr.load_picture("dummyUrl-x", None, None)
        stats = mgr.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.entries == 1
        assert stats.writes == 1
        assert stats.size_bytes == len(png_bytes)
        assert stats.hit_rate == 0.5

    def test_resize(self):
        img = Image.new("RGB", (4000, 3000))
        out = MediaManager.resize(img, (200, 200))
        assert out.size == (200, 150)
        assert MediaManager.resize(img, (0, 0)) is img


class TestSharedManager:
    def test_module_helpers_use_shared_instance(self, settings, png_bytes):
        mgr = MediaManager(settings)
        mediamanager.set_shared_manager(mgr)
        try:
            assert mediamanager.get_shared_manager() is mgr
            mgr.cache_picture("http://host/a.png", png_bytes)
            rec = _Recorder()
            assert mediamanager.load_picture("http://host/a.png", rec.ok, rec.err) is None
            assert len(rec.images) == 1
            mediamanager.cancel(None)
            assert mediamanager.invalidate("http://host/a.png") is True
            assert mediamanager.clear_cache() is True
            img = Image.new("RGB", (1000, 500))
            assert mediamanager.resize(img, (100, 100)).size == (100, 50)
        finally:
            mediamanager.set_shared_manager(None)

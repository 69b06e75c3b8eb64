import io

import httpx
import pytest
from PIL import Image

from mediamanager.cache.directory import CacheDirectory
from mediamanager.cache.store import PictureCacheStore


def make_png(width: int = 8, height: int = 6, color=(200, 30, 30)) -> bytes:
    """Encode a solid-colour RGB PNG of the given size."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def sample_image_bytes():
    """Minimal valid PNG for testing (1x1 white pixel)."""
    import base64
    return base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
        "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
    )


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def png_bytes():
    return make_png(64, 48)


@pytest.fixture
def cache_dir(tmp_path):
    return CacheDirectory(tmp_path / "cache-root")


@pytest.fixture
def store(cache_dir):
    return PictureCacheStore(cache_dir)


@pytest.fixture
def serve_png(png_bytes):
    """Build an AsyncClient that answers every GET with ``png_bytes`` and counts requests."""
    requests: list[httpx.Request] = []

    def _factory(content: bytes | None = None, status_code: int = 200) -> httpx.AsyncClient:
        body = png_bytes if content is None else content

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(status_code, content=body)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    _factory.requests = requests
    return _factory

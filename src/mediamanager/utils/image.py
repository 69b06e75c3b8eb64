"""Image decoding, encoding and bounded resizing."""

from __future__ import annotations

import io
import math

from PIL import Image, UnidentifiedImageError

from mediamanager.errors.exceptions import DecodeError
from mediamanager.types import Bound

# Smallest side handed to PIL when fit_size floors a tiny side to 0,
# capped by the bound so the result still fits.
_MIN_DIMENSION = 2


def decode_image(data: bytes, url: str | None = None) -> Image.Image:
    """Decode raw bytes into a fully loaded PIL image.

    Raises DecodeError if the bytes are empty or not a supported image.
    """
    if not data:
        raise DecodeError("Empty image payload", url=url)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (
        UnidentifiedImageError,
        OSError,
        ValueError,
        SyntaxError,
        Image.DecompressionBombError,
    ) as exc:
        raise DecodeError(f"Cannot decode image: {exc}", url=url, original=exc) from exc
    return img


def encode_image(img: Image.Image, format: str = "PNG") -> bytes:
    """Encode a PIL image to bytes (PNG by default)."""
    buf = io.BytesIO()
    if format.upper() in {"JPEG", "JPG"}:
        format = "JPEG"
        if img.mode not in {"RGB", "L"}:
            img = img.convert("RGB")
    img.save(buf, format=format)
    return buf.getvalue()


def fit_size(width: int, height: int, bound_width: int, bound_height: int) -> tuple[int, int]:
    """Compute a thumbnail size that fits within the bound.

    A zero bound on either axis disables resizing. Each scaled side is
    floored to an even integer so the result never exceeds the bound and
    stays acceptable to encoders that need even dimensions.
    """
    if not bound_width or not bound_height:
        return width, height

    new_width, new_height = width, height
    if new_width > bound_width:
        new_height = _floor_even(new_height * bound_width / new_width)
        new_width = bound_width
    if new_height > bound_height:
        new_width = _floor_even(new_width * bound_height / new_height)
        new_height = bound_height
    return new_width, new_height


def resize(img: Image.Image, bound: Bound) -> Image.Image:
    """Scale ``img`` to fit ``bound``, returning the same object when no change is needed.

    A side that floors to 0 is raised to 2 px, or to the bound on that axis
    when the bound is smaller, so the result never exceeds ``bound``.
    """
    width, height = img.size
    new_width, new_height = fit_size(width, height, bound[0], bound[1])
    if (new_width, new_height) == (width, height):
        return img
    new_size = (
        max(new_width, min(_MIN_DIMENSION, bound[0])),
        max(new_height, min(_MIN_DIMENSION, bound[1])),
    )
    return img.resize(new_size, Image.Resampling.LANCZOS)


def _floor_even(value: float) -> int:
    return int(math.floor(value / 2) * 2)

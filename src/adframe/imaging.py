"""Image decoding, normalization and hashing utilities."""

from __future__ import annotations

import base64
import hashlib
from io import BytesIO
from typing import TYPE_CHECKING, Any, Literal, Union, cast

from PIL import Image

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from PIL.Image import Resampling
else:  # Pillow < 10 compatibility where Resampling lives on Image
    Resampling = Any


LanczosType = Union["Resampling", Literal[0, 1, 2, 3, 4, 5]]

ALLOWED_FORMATS = {"JPEG", "PNG", "GIF"}
MAX_IMAGE_BYTES = 10 * 1024 * 1024


def lanczos_filter() -> LanczosType:
    resampling: Any = getattr(Image, "Resampling", None)
    if resampling is not None:
        return cast(LanczosType, getattr(resampling, "LANCZOS"))
    return cast(LanczosType, getattr(Image, "LANCZOS"))


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def image_info(data: bytes) -> tuple[str, int, int]:
    """Return ``(format, width, height)``; raises ``OSError`` for unreadable payloads."""

    with Image.open(BytesIO(data)) as im:
        return (im.format or "").upper(), im.width, im.height


def to_png(data: bytes, size: tuple[int, int] | None = None) -> bytes:
    """Decode any Pillow-readable image into RGBA PNG bytes, optionally stretched to ``size``."""

    with Image.open(BytesIO(data)) as im:
        im = im.convert("RGBA")
        if size and im.size != size:
            im = im.resize(size, resample=lanczos_filter())
        out = BytesIO()
        im.save(out, format="PNG")
        return out.getvalue()


def png_data_url(data: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(to_png(data)).decode("ascii")


__all__ = [
    "ALLOWED_FORMATS",
    "MAX_IMAGE_BYTES",
    "image_info",
    "lanczos_filter",
    "png_data_url",
    "sha256_hex",
    "to_png",
]

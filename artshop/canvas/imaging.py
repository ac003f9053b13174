from __future__ import annotations

import base64
import io
import re

from PIL import Image


BACKGROUND_RGB = (255, 255, 255)

IMAGE_QUALITY = 0.8
THUMBNAIL_QUALITY = 0.7
THUMBNAIL_MAX_WIDTH = 200

_DATA_URL_RE = re.compile(r"^data:(?P<mime>image/[a-z0-9.+-]+);base64,(?P<data>.+)$", re.IGNORECASE | re.DOTALL)


def blank_canvas(width: int, height: int) -> Image.Image:
    return Image.new("RGB", (width, height), BACKGROUND_RGB)


def is_blank(image: Image.Image) -> bool:
    """True if every pixel is background white (or fully transparent)."""

    rgba = image.convert("RGBA")
    flattened = Image.alpha_composite(Image.new("RGBA", rgba.size, (*BACKGROUND_RGB, 255)), rgba).convert("RGB")
    return all(lo == 255 and hi == 255 for lo, hi in flattened.getextrema())


def encode_jpeg(image: Image.Image, *, quality: float = IMAGE_QUALITY) -> bytes:
    """Lossy-encode `image`; `quality` is a 0..1 factor."""

    if not 0 < quality <= 1:
        raise ValueError("quality must be in (0, 1]")
    buf = io.BytesIO()
    image.convert("RGB").save(buf, "JPEG", quality=round(quality * 100))
    return buf.getvalue()


def make_thumbnail(image: Image.Image, *, max_width: int = THUMBNAIL_MAX_WIDTH) -> Image.Image:
    # Uniform downscale only; small canvases keep their size.
    if image.width <= max_width:
        return image.copy()
    height = max(1, round(image.height * max_width / image.width))
    return image.resize((max_width, height), Image.Resampling.LANCZOS)


def to_data_url(data: bytes, *, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_url(url: str) -> bytes:
    m = _DATA_URL_RE.match(url.strip())
    if m is None:
        raise ValueError("Expected a base64 image data URL")
    return base64.b64decode(m.group("data"), validate=True)


def load_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image

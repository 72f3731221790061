"""Avatar image normalization.

Slack's ``users.setPhoto`` wants an image between 512 and 1024 pixels on
each side plus a square crop rectangle. This module turns arbitrary source
bytes into a PNG that meets those bounds. The pixels are not cropped here:
the crop rectangle travels with the upload and Slack applies it.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from randavatar.errors import EncodingFailed, InvalidImage

MIN_X = 512
MIN_Y = 512
MAX_X = 1024
MAX_Y = 1024

# Modes the PNG encoder writes as-is; anything else is converted to RGBA
_PNG_MODES = frozenset({"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"})


@dataclass(frozen=True)
class CropBox:
    """Top-left square handed to Slack as crop_x / crop_y / crop_w."""

    x: int
    y: int
    side: int


@dataclass(frozen=True)
class NormalizedImage:
    png: bytes
    width: int
    height: int
    crop: CropBox


def compute_scale(width: int, height: int) -> float:
    """Scale factor that brings an image inside the avatar bounds.

    Small images grow until both sides reach the minimum where the aspect
    ratio allows it. Large images shrink with the same ``min`` divisor, so
    both sides end up at or below the maximum.
    """
    if width < MIN_X or height < MIN_Y:
        return min(MIN_X / width, MIN_Y / height)
    if width > MAX_X or height > MAX_Y:
        return min(MAX_X / width, MAX_Y / height)
    return 1.0


def _decode(raw: bytes) -> Image.Image:
    if not raw:
        raise InvalidImage("No image data")
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise InvalidImage(f"Unable to decode image: {e}") from e
    if image.width <= 0 or image.height <= 0:
        raise InvalidImage(f"Image has no pixels ({image.width}x{image.height})")
    return image


def _encode_png(image: Image.Image) -> bytes:
    if image.mode not in _PNG_MODES:
        image = image.convert("RGBA")
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError, KeyError) as e:
        raise EncodingFailed(f"Unable to encode PNG: {e}") from e
    return buffer.getvalue()


def normalize(raw: bytes) -> NormalizedImage:
    """Decode, rescale into bounds and re-encode ``raw`` as PNG."""
    image = _decode(raw)

    scale = compute_scale(image.width, image.height)
    if scale != 1.0:
        new_width = max(1, round(image.width * scale))
        new_height = max(1, round(image.height * scale))
        if image.mode not in ("RGB", "RGBA", "L", "LA"):
            image = image.convert("RGBA")
        image = image.resize((new_width, new_height), Image.Resampling.LANCZOS)

    png = _encode_png(image)
    return NormalizedImage(
        png=png,
        width=image.width,
        height=image.height,
        crop=CropBox(x=0, y=0, side=min(image.width, image.height)),
    )

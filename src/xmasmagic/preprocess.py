"""Downsize and re-encode local photos before they are uploaded.

The remote service accepts sides above 14px, up to 6000x6000, ratios within
[1/16, 16] and payloads under 10MB. We stay well inside those limits: the
longer side is capped at ``MAX_DIMENSION`` and JPEG quality is stepped down
until the data URL fits ``MAX_DATA_URL_LENGTH``.
"""

import base64
import io
import logging
import math
from pathlib import Path
from typing import BinaryIO, Tuple, Union

from PIL import Image, ImageOps

from xmasmagic.exceptions import ImageLoadError, NoRenderingContext

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, BinaryIO]

MAX_DIMENSION = 4096
MIN_DIMENSION = 15
INITIAL_QUALITY = 80
QUALITY_STEP = 10
MIN_QUALITY = 10
# 10MB of JPEG is roughly 13.3MB once base64 encoded.
MAX_DATA_URL_LENGTH = 13_000_000
BACKGROUND = (255, 255, 255)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_target_size(width: int, height: int) -> Tuple[int, int]:
    ratio = width / height
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        if width > height:
            width = MAX_DIMENSION
            height = _round_half_up(width / ratio)
        else:
            height = MAX_DIMENSION
            width = _round_half_up(height * ratio)
    width = max(width, MIN_DIMENSION)
    height = max(height, MIN_DIMENSION)
    return width, height


def load_image(source: ImageSource) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        img = Image.open(source)
        img.load()
        return ImageOps.exif_transpose(img)
    except (OSError, ValueError, TypeError, Image.DecompressionBombError) as e:
        logger.debug(f"Could not decode image source {source!r}: {e}")
        raise ImageLoadError() from e


def render_on_white(img: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Flatten ``img`` onto an opaque white canvas of ``size``."""
    try:
        canvas = Image.new("RGB", size, BACKGROUND)
    except (ValueError, MemoryError) as e:
        raise NoRenderingContext() from e
    layer = img.convert("RGBA")
    if layer.size != size:
        layer = layer.resize(size, Image.LANCZOS)
    canvas.paste(layer, (0, 0), layer)
    return canvas


def encode_data_url(img: Image.Image, quality: int) -> str:
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def prepare_image(
    source: ImageSource, max_length: int = MAX_DATA_URL_LENGTH
) -> str:
    """Return a JPEG data URL of ``source`` sized for upload.

    Oversized output is best effort: encoding stops at ``MIN_QUALITY`` even
    if the result is still longer than ``max_length``.

    Raises:
        ImageLoadError: if the source cannot be decoded.
        NoRenderingContext: if the drawing canvas cannot be allocated.
    """
    img = load_image(source)
    target = compute_target_size(img.width, img.height)
    canvas = render_on_white(img, target)

    quality = INITIAL_QUALITY
    data_url = encode_data_url(canvas, quality)
    while len(data_url) > max_length and quality > MIN_QUALITY:
        quality -= QUALITY_STEP
        data_url = encode_data_url(canvas, quality)
    if len(data_url) > max_length:
        logger.warning(
            f"Image still {len(data_url)} chars at quality {quality}, sending anyway"
        )
    logger.debug(
        f"Prepared {img.width}x{img.height} -> {target[0]}x{target[1]} at quality {quality}"
    )
    return data_url

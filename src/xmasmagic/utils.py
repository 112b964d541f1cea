import httpx
import base64
import binascii
from pathlib import Path
import time
from urllib.parse import urlparse
from PIL import Image
import io
import logging
from typing import Optional, Union

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "webp"]


def generate_filename(extension: str = "png") -> str:
    return f"christmas-magic-{int(time.time() * 1000)}.{extension}"


def get_image_extension(filename: str) -> str:
    ext = Path(filename).suffix[1:].lower()
    if ext in IMAGE_EXTENSIONS:
        return ext
    return "png"


def result_extension(result: str) -> str:
    """Picks a file extension for a result URL or data URL."""
    if result.startswith("data:"):
        mime = result[len("data:"):].partition(";")[0]
        subtype = mime.partition("/")[2]
        return get_image_extension(f"result.{subtype}")
    return get_image_extension(urlparse(result).path)


def decode_data_url(data_url: str) -> bytes:
    """Decodes a ``data:<mime>;base64,<payload>`` URL to raw bytes."""
    _, _, encoded = data_url.partition(",")
    return base64.b64decode(encoded, validate=True)


def _save_bytes(image_bytes: bytes, output_path: Path) -> Optional[Path]:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        img = Image.open(io.BytesIO(image_bytes))
        if img.mode not in ("RGB", "L") and output_path.suffix.lower() in (
            ".jpg",
            ".jpeg",
        ):
            img = img.convert("RGB")
        img.save(output_path)
        logger.info(f"Image saved to {output_path}")
        return output_path
    except Exception as e:
        logger.error(f"Failed to process and save image to {output_path}: {e}")
        return None


async def save_image_from_url(image_url: str, output_path: Path) -> Optional[Path]:
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(image_url)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(
            f"HTTP error downloading image {image_url}: {e.response.status_code} - {e.response.text}"
        )
        return None
    except httpx.HTTPError as e:
        logger.error(f"Error downloading image {image_url}: {e}")
        return None
    return _save_bytes(response.content, output_path)


def save_image_from_data_url(data_url: str, output_path: Path) -> Optional[Path]:
    try:
        image_bytes = decode_data_url(data_url)
    except (binascii.Error, ValueError) as e:
        logger.error(f"Error decoding data URL: {e}")
        return None
    return _save_bytes(image_bytes, output_path)


async def save_result(
    result: str,
    output_dir: Union[str, Path],
    filename: Optional[str] = None,
) -> Optional[Path]:
    """Saves a generated image given as an HTTP(S) URL or a data URL."""
    output_path = Path(output_dir) / (
        filename or generate_filename(result_extension(result))
    )
    if result.startswith("data:"):
        return save_image_from_data_url(result, output_path)
    return await save_image_from_url(result, output_path)

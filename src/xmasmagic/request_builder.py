"""Shape validated parameters into the JSON body the Ark endpoint expects."""

from typing import Any, Dict, Optional

from xmasmagic.config import settings
from xmasmagic.exceptions import InvalidImage
from xmasmagic.models import ImageToImageParams, TextToImageParams
from xmasmagic.sizes import normalize_size


def _common_fields(params: TextToImageParams, size: str) -> Dict[str, Any]:
    return {
        "size": size,
        "sequential_image_generation": params.sequential or "disabled",
        "response_format": params.response_format or "url",
        "watermark": bool(params.watermark),
    }


def _with_count(body: Dict[str, Any], n: Optional[int]) -> Dict[str, Any]:
    if n is not None:
        body["n"] = n
    return body


def build_text_to_image_body(params: TextToImageParams) -> Dict[str, Any]:
    size = normalize_size(params.size)
    body: Dict[str, Any] = {
        "model": params.model or settings.default_model,
        "prompt": params.prompt,
    }
    body.update(_common_fields(params, size))
    return _with_count(body, params.n)


def build_image_to_image_body(params: ImageToImageParams) -> Dict[str, Any]:
    """Build an image-to-image body.

    Size is normalized before the image is checked, so a request that is wrong
    on both counts reports the size.

    Raises:
        InvalidSize: if the size cannot be normalized.
        InvalidImage: if the image is missing, empty or of the wrong type.
    """
    size = normalize_size(params.size)
    image = params.image
    if not image or not isinstance(image, (str, list)):
        raise InvalidImage()
    body: Dict[str, Any] = {
        "model": params.model or settings.default_model,
        "prompt": params.prompt,
        "image": image,
    }
    body.update(_common_fields(params, size))
    return _with_count(body, params.n)

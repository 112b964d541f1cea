from xmasmagic.models import ImageToImageParams, TextToImageParams
from xmasmagic.providers.ark_provider import ArkProvider
from xmasmagic.providers.base_provider import BaseImageProvider
from xmasmagic.request_builder import (
    build_image_to_image_body,
    build_text_to_image_body,
)
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


async def _send(
    body: Dict[str, Any],
    api_key: Optional[str],
    provider: Optional[BaseImageProvider],
) -> Dict[str, Any]:
    owned = provider is None
    if owned:
        provider = ArkProvider()
    try:
        return await provider.generate(body, api_key)
    finally:
        if owned:
            await provider.close()


async def generate_text_to_image(
    params: TextToImageParams,
    api_key: Optional[str] = None,
    provider: Optional[BaseImageProvider] = None,
) -> Dict[str, Any]:
    body = build_text_to_image_body(params)
    logger.info(f"Text-to-image request: size={body['size']} model={body['model']}")
    return await _send(body, api_key, provider)


async def generate_image_to_image(
    params: ImageToImageParams,
    api_key: Optional[str] = None,
    provider: Optional[BaseImageProvider] = None,
) -> Dict[str, Any]:
    body = build_image_to_image_body(params)
    logger.info(f"Image-to-image request: size={body['size']} model={body['model']}")
    return await _send(body, api_key, provider)

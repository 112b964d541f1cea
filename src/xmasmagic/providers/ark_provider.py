import httpx
import json
import logging
from typing import Any, Dict, Optional

from xmasmagic.config import settings
from xmasmagic.exceptions import MissingCredential, RemoteHttpError
from xmasmagic.providers.base_provider import BaseImageProvider

logger = logging.getLogger(__name__)


def ensure_api_key(api_key: Optional[str] = None) -> str:
    """Return the explicit key, else the configured one."""
    key = api_key or settings.api_key
    if not key:
        raise MissingCredential()
    return key


class ArkProvider(BaseImageProvider):
    """Calls the Volcengine Ark image generation endpoint."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.endpoint
        client_params: Dict[str, Any] = {
            "timeout": timeout if timeout is not None else settings.request_timeout,
        }
        if transport is not None:
            client_params["transport"] = transport
        self.async_client = httpx.AsyncClient(**client_params)

    async def generate(
        self, body: Dict[str, Any], api_key: Optional[str] = None
    ) -> Dict[str, Any]:
        key = ensure_api_key(api_key)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"POST {self.endpoint} {_describe_body(body)}")
        request = self.async_client.build_request(
            "POST",
            self.endpoint,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {key}",
            },
            content=json.dumps(body),
        )
        # Streamed so the status is known before the body is read.
        response = await self.async_client.send(request, stream=True)
        try:
            if not response.is_success:
                logger.error(f"Ark request failed with HTTP {response.status_code}")
                raise RemoteHttpError(response.status_code, await _read_text(response))
            await response.aread()
            return response.json()
        finally:
            await response.aclose()

    async def close(self):
        await self.async_client.aclose()


async def _read_text(response: httpx.Response) -> str:
    try:
        await response.aread()
        return response.text
    except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read error body: {e}")
        return ""


def _describe_body(body: Dict[str, Any]) -> str:
    # Data URLs run to megabytes; keep the log line readable.
    shown = dict(body)
    image = shown.get("image")
    if isinstance(image, str):
        shown["image"] = _truncate(image)
    elif isinstance(image, list):
        shown["image"] = [_truncate(str(item)) for item in image]
    return json.dumps(shown, default=str)


def _truncate(value: str, limit: int = 64) -> str:
    if len(value) <= limit:
        return value
    return f"{value[:limit]}... ({len(value)} chars)"

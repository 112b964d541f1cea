from xmasmagic.providers.base_provider import BaseImageProvider
from xmasmagic.providers.ark_provider import ArkProvider, ensure_api_key

__all__ = ["BaseImageProvider", "ArkProvider", "ensure_api_key"]

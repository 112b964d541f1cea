from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BaseImageProvider(ABC):
    @abstractmethod
    async def generate(
        self, body: Dict[str, Any], api_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Sends a prepared request body to the remote service.
        Returns the decoded JSON response unchanged.
        """
        pass

    async def close(self) -> None:
        pass

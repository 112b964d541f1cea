import re
from typing import Optional

# Messages are part of the HTTP contract: anything matching this pattern is a
# client error (400), everything else is a server error (500).
CLIENT_ERROR_PATTERN = re.compile(r"invalid|missing", re.IGNORECASE)


class XmasMagicError(Exception):
    """Base class for every error raised by xmasmagic."""


class InvalidSize(XmasMagicError):
    def __init__(self, size: object):
        self.size = size
        super().__init__(f"invalid size: {size}")


class InvalidImage(XmasMagicError):
    def __init__(self, message: str = "invalid image input"):
        super().__init__(message)


class InvalidRequest(XmasMagicError):
    """Raised when an inbound HTTP body cannot be decoded into a request."""


class MissingCredential(XmasMagicError):
    def __init__(self, message: str = "missing api key"):
        super().__init__(message)


class RemoteHttpError(XmasMagicError):
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"ark http {status} {body}")


class PreprocessError(XmasMagicError):
    """Raised by the image pre-processor."""


class ImageLoadError(PreprocessError):
    def __init__(self, message: str = "failed to load image"):
        super().__init__(message)


class NoRenderingContext(PreprocessError):
    def __init__(self, message: str = "canvas context not available"):
        super().__init__(message)


class NoImageReturned(XmasMagicError):
    def __init__(self, message: str = "no image returned"):
        super().__init__(message)


def status_for_error(error: BaseException, message: Optional[str] = None) -> int:
    """Map an error to the HTTP status the local API answers with."""
    text = message if message is not None else str(error)
    return 400 if CLIENT_ERROR_PATTERN.search(text) else 500

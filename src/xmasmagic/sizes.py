import re
from typing import Dict, Optional

from xmasmagic.exceptions import InvalidSize

DEFAULT_SIZE = "2048x2048"

# Preset labels accepted by the remote service. "1K" has no tier of its own and
# falls back to the smallest supported square.
SIZE_PRESETS: Dict[str, str] = {
    "1K": "2048x2048",
    "2K": "2048x2048",
    "3K": "3072x3072",
    "4K": "4096x4096",
}

MIN_SIDE = 14
MIN_PIXELS = 3_686_400
MAX_PIXELS = 16_777_216
MIN_RATIO = 1 / 16
MAX_RATIO = 16

_SIZE_RE = re.compile(r"^(\d{2,5})x(\d{2,5})$")


def validate_pixel_size(size: object) -> bool:
    """Return True if ``size`` is a ``WxH`` string the service will accept."""
    if not isinstance(size, str):
        return False
    match = _SIZE_RE.match(size)
    if not match:
        return False
    width = int(match.group(1))
    height = int(match.group(2))
    if not (width > MIN_SIDE and height > MIN_SIDE):
        return False
    pixels = width * height
    if pixels < MIN_PIXELS or pixels > MAX_PIXELS:
        return False
    ratio = width / height
    if ratio < MIN_RATIO or ratio > MAX_RATIO:
        return False
    return True


def normalize_size(size: Optional[str] = None) -> str:
    """Map a preset label or explicit ``WxH`` string to a canonical size.

    Raises:
        InvalidSize: if ``size`` is neither a known preset nor a valid ``WxH``.
    """
    if not size:
        return DEFAULT_SIZE
    if size in SIZE_PRESETS:
        return SIZE_PRESETS[size]
    if validate_pixel_size(size):
        return size
    raise InvalidSize(size)

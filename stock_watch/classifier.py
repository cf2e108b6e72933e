"""Stock detection heuristics.

The page markup changes without notice, so the verdict is lexical: the
page must look purchasable and must not carry any unavailability text.
This is a heuristic and can be fooled by unrelated "buy now" copy on a
page that never says "sold out".
"""

from __future__ import annotations

import hashlib
from typing import Tuple, Union

UNAVAILABLE_MARKERS: Tuple[str, ...] = (
    "out of stock",
    "currently unavailable",
    "sold out",
)

PURCHASABLE_MARKERS: Tuple[str, ...] = (
    "add to cart",
    "purchase",
    "buy now",
)

FINGERPRINT_LENGTH = 16


def classify(content: str) -> bool:
    """Return True when `content` appears to offer the item for sale."""
    lower = (content or "").lower()
    looks_out = any(marker in lower for marker in UNAVAILABLE_MARKERS)
    looks_buy = any(marker in lower for marker in PURCHASABLE_MARKERS)
    return not looks_out and looks_buy


def fingerprint(content: Union[str, bytes]) -> str:
    """Short sha256 digest of the page, for correlating alerts with snapshots."""
    data = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(data).hexdigest()[:FINGERPRINT_LENGTH]


__all__ = ["classify", "fingerprint", "UNAVAILABLE_MARKERS", "PURCHASABLE_MARKERS"]

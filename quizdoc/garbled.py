"""Statistical check for extraction output that is noise rather than text."""

import re
from typing import Optional

from quizdoc.config import ExtractionConfig

VALID_CHAR_RE = re.compile(r"[\u4e00-\u9fa5a-zA-Z0-9\s.,!?;:'\"()\[\]{}]")
CJK_RE = re.compile(r"[\u4e00-\u9fa5]")
ASCII_LETTER_RE = re.compile(r"[a-zA-Z]")


def readable_count(text: str) -> int:
    """Number of CJK ideographs plus ASCII letters."""
    return len(CJK_RE.findall(text)) + len(ASCII_LETTER_RE.findall(text))


def valid_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(VALID_CHAR_RE.findall(text)) / len(text)


def is_garbled(text: Optional[str], config: Optional[ExtractionConfig] = None) -> bool:
    """Decide whether extracted text is unusable noise.

    Text is garbled only when BOTH the share of valid characters is below
    ``garbled_valid_ratio`` AND fewer than ``garbled_readable_floor``
    letters/ideographs are present. Noisy text with a substantial readable
    core is accepted.
    """
    config = config or ExtractionConfig()
    if not text or len(text) < config.garbled_min_length:
        return True
    return (
        valid_ratio(text) < config.garbled_valid_ratio
        and readable_count(text) < config.garbled_readable_floor
    )

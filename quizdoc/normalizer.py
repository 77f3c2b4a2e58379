"""Cleanup of extracted document text before it is handed to the LLM."""

import re

from quizdoc.config import MAX_TEXT_LENGTH

_WHITESPACE_RE = re.compile(r"\s+")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_REPEATED_PUNCT_RE = re.compile(r"([.,!?;:])\1+")
_IMAGE_FILE_RE = re.compile(r"\b\w+\.(?:jpg|jpeg|png|gif|bmp|svg|tiff|webp)\b", re.IGNORECASE | re.ASCII)
_RELATIONSHIP_ID_RE = re.compile(r"\b(?:rId\d+|rel\d+|image\d+|picture\d+)\b", re.IGNORECASE | re.ASCII)
_TAG_RE = re.compile(r"<[^>]*>")
_SPECIAL_RUN_RE = re.compile(r"[^\u4e00-\u9fa5a-zA-Z0-9\s.,!?;:'\"()\[\]{}]{8,}")
_LONG_TOKEN_RE = re.compile(r"\b[A-Za-z0-9]{25,}\b", re.ASCII)


def _normalize_once(text: str) -> str:
    text = _WHITESPACE_RE.sub(" ", text)
    text = _CONTROL_RE.sub("", text)
    text = _REPEATED_PUNCT_RE.sub(r"\1", text)
    text = _IMAGE_FILE_RE.sub("", text)
    text = _RELATIONSHIP_ID_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    text = _SPECIAL_RUN_RE.sub(" ", text)
    text = _LONG_TOKEN_RE.sub("", text)
    return text.strip()


def normalize_text(text: str) -> str:
    """Strip extraction artifacts from ``text``.

    In order: collapse whitespace, drop C0 controls and DEL, squeeze repeated
    ``. , ! ? ; :``, remove image file names and relationship IDs (``rId7``,
    ``image3``...), strip tags, replace runs of 8+ unexpected characters with
    a space, drop alphanumeric tokens of 25+ characters, trim.

    A removal can leave new matches behind (two spaces around a dropped
    token, ``..`` meeting across a stripped tag), so the pass is repeated
    until the text stops changing. Every pass is non-growing, which bounds
    the loop and makes the function idempotent.
    """
    while True:
        cleaned = _normalize_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def cap_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Plain length cut; no attempt is made to end on a word or sentence."""
    return text[:max_length]


def clean_and_cap(text: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    return cap_text(normalize_text(text), max_length)

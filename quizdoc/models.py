"""Data models for quizdoc."""

import re
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class TextSegment:
    """A run of plausibly readable bytes found by a binary scanner."""

    start: int
    end: int
    text: str


@dataclass
class ExtractionMetadata:
    word_count: int
    paragraph_count: int
    parse_engine: str
    extracted_images: int = 0
    page_count: Optional[int] = None

    @classmethod
    def from_content(
        cls, content: str, parse_engine: str, page_count: Optional[int] = None
    ) -> "ExtractionMetadata":
        """Count words and blank-line separated paragraphs in ``content``."""
        return cls(
            word_count=count_words(content),
            paragraph_count=count_paragraphs(content),
            parse_engine=parse_engine,
            page_count=page_count,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "wordCount": self.word_count,
            "paragraphCount": self.paragraph_count,
            "parseEngine": self.parse_engine,
            "extractedImages": self.extracted_images,
        }
        if self.page_count is not None:
            data["pageCount"] = self.page_count
        return data


@dataclass
class ExtractionResult:
    """Result of one extraction strategy."""

    content: str
    metadata: ExtractionMetadata
    warning: Optional[str] = None


@dataclass
class ExtractionResponse:
    """What the upload boundary hands back: either text or an error message."""

    text: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    warning: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"error": self.error}
        data: dict[str, Any] = {"text": self.text, "metadata": self.metadata}
        if self.warning:
            data["warning"] = self.warning
        return data


def count_words(text: str) -> int:
    return len(text.split())


def count_paragraphs(text: str) -> int:
    return len(re.split(r"\n\s*\n", text))

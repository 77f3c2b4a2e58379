"""Configuration classes for quizdoc."""

from dataclasses import dataclass, field
from typing import Optional

MAX_TEXT_LENGTH = 30_000
"""Maximum length of cleaned text handed to callers (characters)."""

MIN_CONTENT_LENGTH = 10
"""Cleaned text shorter than this is rejected as "no readable text"."""

MAX_FILE_SIZE_BYTES = 4 * 1024 * 1024

GARBLED_MIN_LENGTH = 5
GARBLED_VALID_RATIO = 0.2
GARBLED_READABLE_FLOOR = 20


@dataclass
class ScannerConfig:
    """Thresholds for the binary text scanners (legacy DOC and PPT).

    The defaults were chosen empirically against real legacy files. They are
    exposed so they can be tuned without touching the scanning code.
    """

    detection_window: int = 100
    """Number of bytes inspected when looking for the start of a DOC text run."""

    detection_min_readable: int = 10
    """Consecutive readable bytes needed inside the window to start a DOC run."""

    detection_skip: int = 50
    """Bytes skipped when the detection window finds nothing."""

    extension_max_noise: int = 5
    """Consecutive non-readable bytes that terminate a run."""

    doc_min_segment_length: int = 5
    """Minimum trimmed length of an accepted DOC segment."""

    ppt_min_segment_length: int = 3
    """Minimum trimmed length of an accepted PPT segment."""

    min_total_length: int = 10
    """Joined output shorter than this means nothing usable was recovered."""


@dataclass
class OCRConfig:
    """Configuration for the Tesseract fallback used on scanned PDFs.

    Examples:
        >>> # Defaults suit a small VPS (4GB RAM, 4 vCPU)
        >>> config = OCRConfig()

        >>> # English-only lesson material, sharper rendering
        >>> config = OCRConfig(languages="eng", dpi=200)
    """

    enabled: bool = True
    """Run OCR when native PDF text looks too sparse."""

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default: "tesseract" (assumes in PATH)."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "eng+chi_sim"
    """OCR languages in Tesseract format. Lesson material mixes English and Chinese."""

    dpi: int = 150
    """Image DPI for PDF rendering. Higher = better quality but slower and more memory."""

    psm_mode: int = 6
    """Page segmentation mode (0-13). Default: 6 (uniform block of text)."""

    max_workers: int = 3
    """Number of parallel workers for OCR processing."""

    pdf_ocr_min_chars: int = 500
    """Minimum characters extracted from native PDF to skip OCR."""

    pdf_ocr_min_chars_per_page: int = 150
    """Minimum average characters per page from native PDF to skip OCR."""

    pdf_ocr_min_file_size_bytes: int = 200_000
    """Small files with little text are assumed to be text-based PDFs."""


@dataclass
class ExtractionConfig:
    """Configuration for the document extraction pipeline."""

    max_text_length: int = MAX_TEXT_LENGTH
    """Cap applied after normalization. Deployments use 10_000 or 30_000."""

    min_content_length: int = MIN_CONTENT_LENGTH
    max_file_size_bytes: int = MAX_FILE_SIZE_BYTES

    garbled_min_length: int = GARBLED_MIN_LENGTH
    """Text shorter than this is always classified as garbled."""

    garbled_valid_ratio: float = GARBLED_VALID_RATIO
    garbled_readable_floor: int = GARBLED_READABLE_FLOOR

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)


DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"


@dataclass
class LLMConfig:
    """Connection settings for an OpenAI-compatible chat-completions API.

    Examples:
        >>> config = LLMConfig(api_key="sk-...", model="deepseek-chat")
        >>> config.resolved_base_url
        'https://api.deepseek.com/v1'
    """

    api_key: str = ""
    base_url: Optional[str] = None
    """Overrides the provider default picked from the model name."""

    model: str = "deepseek-chat"
    timeout_seconds: float = 60.0
    temperature: float = 0.7
    """Sampling temperature for test-paper generation."""

    @property
    def resolved_base_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.model.startswith("deepseek"):
            return DEEPSEEK_BASE_URL
        return OPENAI_BASE_URL

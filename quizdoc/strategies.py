"""Extraction strategies and the ordered fallback chain for each format.

A strategy never lets its parsing library's exceptions escape: it returns a
``StrategyOutcome`` holding either a result or an explicit failure, and the
chain only moves on when it sees a failure.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from quizdoc.config import ExtractionConfig
from quizdoc.container import looks_like_presentation, parse_slide_container
from quizdoc.detector import DocumentFormat
from quizdoc.exceptions import (
    ContainerOpenFailed,
    ExtractionEmptyError,
    ExtractionError,
    UnsupportedFormatError,
)
from quizdoc.extractor import DocxExtractor, PdfExtractor, SystemConverterExtractor
from quizdoc.logger import Timer, get_logger
from quizdoc.models import ExtractionMetadata, ExtractionResult
from quizdoc.scanner import extract_doc_text, extract_ppt_text

logger = get_logger(__name__)

DOC_FALLBACK_WARNING = "DOC parsing may be incomplete, convert to DOCX for best results"
PPT_AS_ZIP_WARNING = "PPT file appears to be a compressed package, parsed as PPTX"
PPT_FALLBACK_WARNING = "PPT parsing may be incomplete, convert to PPTX for best results"

CONVERT_HINTS = {
    DocumentFormat.DOC: "convert the file to DOCX for best results",
    DocumentFormat.PPT: "convert the file to PPTX for best results",
}


class FailureKind(str, Enum):
    CONTAINER_OPEN_FAILED = "container_open_failed"
    EXTRACTION_EMPTY = "extraction_empty"
    EXTRACTION_FAILED = "extraction_failed"


@dataclass
class StrategyFailure:
    kind: FailureKind
    message: str
    terminal: bool = False
    """The input was understood; later strategies in the chain must not run."""


@dataclass
class StrategyOutcome:
    result: Optional[ExtractionResult] = None
    failure: Optional[StrategyFailure] = None

    @classmethod
    def success(cls, result: ExtractionResult) -> "StrategyOutcome":
        return cls(result=result)

    @classmethod
    def failed(cls, kind: FailureKind, message: str, terminal: bool = False) -> "StrategyOutcome":
        return cls(failure=StrategyFailure(kind=kind, message=message, terminal=terminal))

    @property
    def ok(self) -> bool:
        return self.result is not None


class ExtractionStrategy(Protocol):
    name: str

    def extract(self, data: bytes, file_name: str) -> StrategyOutcome: ...


def _library_outcome(
    content: str, engine: str, config: ExtractionConfig, warning: Optional[str] = None, **metadata
) -> StrategyOutcome:
    if len(content.strip()) < config.min_content_length:
        return StrategyOutcome.failed(FailureKind.EXTRACTION_EMPTY, f"{engine} produced no usable text")
    return StrategyOutcome.success(
        ExtractionResult(
            content=content,
            metadata=ExtractionMetadata.from_content(content, engine, **metadata),
            warning=warning,
        )
    )


class DocxStrategy:
    name = "python-docx"

    def __init__(self, config: ExtractionConfig, extractor: Optional[DocxExtractor] = None):
        self.config = config
        self.extractor = extractor or DocxExtractor()

    def extract(self, data: bytes, file_name: str) -> StrategyOutcome:
        try:
            content = self.extractor.extract(data, file_name)
        except ExtractionError as exc:
            return StrategyOutcome.failed(FailureKind.EXTRACTION_FAILED, str(exc))
        return _library_outcome(content, self.name, self.config)


class SystemConverterStrategy:
    name = "system converter"

    def __init__(self, config: ExtractionConfig, extractor: Optional[SystemConverterExtractor] = None):
        self.config = config
        self.extractor = extractor or SystemConverterExtractor()

    def extract(self, data: bytes, file_name: str) -> StrategyOutcome:
        content = self.extractor.extract(data, file_name)
        return _library_outcome(content, self.name, self.config)


class PdfStrategy:
    name = "pymupdf4llm"

    def __init__(self, config: ExtractionConfig, extractor: Optional[PdfExtractor] = None):
        self.config = config
        self.extractor = extractor or PdfExtractor(config=config.ocr)

    def extract(self, data: bytes, file_name: str) -> StrategyOutcome:
        try:
            pdf = self.extractor.extract(data, file_name)
        except ExtractionError as exc:
            return StrategyOutcome.failed(FailureKind.EXTRACTION_FAILED, str(exc))
        engine = f"{self.name} + tesseract" if pdf.ocr_used else self.name
        return _library_outcome(pdf.text, engine, self.config, page_count=pdf.page_count)


class SlideContainerStrategy:
    """Walks the slide XML parts of a ZIP presentation package."""

    name = "zip + xml"

    def __init__(self, require_presentation_entries: bool = False, warning: Optional[str] = None):
        self.require_presentation_entries = require_presentation_entries
        self.warning = warning

    def extract(self, data: bytes, file_name: str) -> StrategyOutcome:
        if self.require_presentation_entries and not looks_like_presentation(data):
            return StrategyOutcome.failed(
                FailureKind.CONTAINER_OPEN_FAILED, "File is not a ZIP-based presentation"
            )
        try:
            deck = parse_slide_container(data)
        except ContainerOpenFailed as exc:
            return StrategyOutcome.failed(FailureKind.CONTAINER_OPEN_FAILED, str(exc))

        if not deck.slides and not deck.notes:
            # Blank slides in a readable package end the chain
            return StrategyOutcome.failed(
                FailureKind.EXTRACTION_EMPTY, "Presentation contains no slide text", terminal=True
            )

        content = deck.content
        metadata = ExtractionMetadata.from_content(content, self.name)
        metadata.paragraph_count = deck.slide_count
        return StrategyOutcome.success(
            ExtractionResult(content=content, metadata=metadata, warning=self.warning)
        )


class BinaryScanStrategy:
    """Heuristic scan of a legacy binary (.doc or .ppt)."""

    def __init__(self, fmt: DocumentFormat, config: ExtractionConfig, warning: Optional[str] = None):
        if fmt not in (DocumentFormat.DOC, DocumentFormat.PPT):
            raise ValueError(f"Binary scanning does not apply to {fmt.value}")
        self.format = fmt
        self.config = config
        self.warning = warning
        self.name = f"{fmt.value} binary scanner"

    def extract(self, data: bytes, file_name: str) -> StrategyOutcome:
        scan = extract_doc_text if self.format is DocumentFormat.DOC else extract_ppt_text
        try:
            content = scan(data, self.config.scanner)
        except ExtractionEmptyError as exc:
            return StrategyOutcome.failed(FailureKind.EXTRACTION_EMPTY, str(exc))
        return StrategyOutcome.success(
            ExtractionResult(
                content=content,
                metadata=ExtractionMetadata.from_content(content, self.name),
                warning=self.warning,
            )
        )


def build_chain(fmt: DocumentFormat, config: ExtractionConfig) -> list[ExtractionStrategy]:
    """Ordered strategies for ``fmt``; later entries only run after a failure."""
    if fmt is DocumentFormat.DOCX:
        return [DocxStrategy(config)]
    if fmt is DocumentFormat.DOC:
        # Some ".doc" uploads are DOCX packages with the old extension
        return [
            DocxStrategy(config),
            SystemConverterStrategy(config),
            BinaryScanStrategy(DocumentFormat.DOC, config, warning=DOC_FALLBACK_WARNING),
        ]
    if fmt is DocumentFormat.PPTX:
        return [SlideContainerStrategy()]
    if fmt is DocumentFormat.PPT:
        return [
            SlideContainerStrategy(require_presentation_entries=True, warning=PPT_AS_ZIP_WARNING),
            BinaryScanStrategy(DocumentFormat.PPT, config, warning=PPT_FALLBACK_WARNING),
        ]
    if fmt is DocumentFormat.PDF:
        return [PdfStrategy(config)]
    raise UnsupportedFormatError(f"No extraction strategy for {fmt.value}")


def run_chain(
    chain: list[ExtractionStrategy], data: bytes, file_name: str, fmt: DocumentFormat
) -> ExtractionResult:
    """Try each strategy in order and return the first successful result.

    Raises:
        ContainerOpenFailed: If the last failure was a container that could not be opened
        ExtractionEmptyError: If the last failure was a parser that found no text
        ExtractionError: For any other final failure
    """
    failure: Optional[StrategyFailure] = None
    for strategy in chain:
        with Timer(strategy.name) as timer:
            outcome = strategy.extract(data, file_name)

        if outcome.ok:
            logger.info(
                "Extraction strategy succeeded",
                extra_data={
                    "file_name": file_name,
                    "strategy": strategy.name,
                    "characters_extracted": len(outcome.result.content),
                    "extraction_time_ms": timer.get_elapsed_ms(),
                },
            )
            return outcome.result

        failure = outcome.failure
        logger.info(
            "Extraction strategy failed, stopping chain" if failure.terminal else "Extraction strategy failed, trying next",
            extra_data={
                "file_name": file_name,
                "strategy": strategy.name,
                "failure": failure.kind.value,
                "reason": failure.message,
            },
        )
        if failure.terminal:
            break

    if failure is None:
        raise UnsupportedFormatError(f"No extraction strategy for {fmt.value}")

    hint = None if failure.terminal else CONVERT_HINTS.get(fmt)
    message = f"{failure.message} ({hint})" if hint else failure.message
    if failure.kind is FailureKind.CONTAINER_OPEN_FAILED:
        raise ContainerOpenFailed(message)
    if failure.kind is FailureKind.EXTRACTION_EMPTY:
        raise ExtractionEmptyError(message, hint=hint)
    raise ExtractionError(message)

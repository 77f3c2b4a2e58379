"""Document handler orchestration."""

from typing import Optional

from quizdoc.config import ExtractionConfig
from quizdoc.detector import DocumentDetector, DocumentFormat
from quizdoc.exceptions import (
    ContainerOpenFailed,
    DecodingError,
    DocumentParserError,
    ExtractionEmptyError,
    ExtractionError,
    FileTooLargeError,
    GarbledContentError,
    UnsupportedFormatError,
)
from quizdoc.garbled import is_garbled
from quizdoc.logger import Timer, get_logger, set_request_id
from quizdoc.models import ExtractionMetadata, ExtractionResponse, ExtractionResult
from quizdoc.normalizer import cap_text, clean_and_cap
from quizdoc.strategies import build_chain, run_chain

logger = get_logger(__name__)

UNSUPPORTED_FORMAT_MESSAGE = "Unsupported file format. Please upload a DOCX, DOC, PPTX, PPT or PDF file."
CONTAINER_OPEN_MESSAGE = (
    "The presentation could not be opened. The file may be corrupted or not a real PPTX file."
)
FILE_TOO_LARGE_MESSAGE = "File is too large. The limit is {limit_mb:.0f}MB."
GARBLED_MESSAGE = (
    "The document content looks garbled. The file format may not be supported "
    "or the file may be corrupted, please check the file."
)
NO_READABLE_TEXT_MESSAGE = (
    "Could not extract enough readable text from the document. "
    "Make sure it contains text and is correctly formatted."
)
PARSE_FAILED_MESSAGE = "Document parsing failed: {reason}"


class DocumentHandler:
    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        detector: Optional[DocumentDetector] = None,
    ) -> None:
        """Initialize document handler.

        Args:
            config: Extraction configuration. If None, uses defaults.
            detector: Format detector. If None, creates one from ``config``.
        """
        self.config = config or ExtractionConfig()
        self.detector = detector or DocumentDetector(config=self.config)

    def extract(self, file_bytes: bytes, mime_type: Optional[str], file_name: str) -> ExtractionResult:
        """Extract cleaned, length-capped text from an uploaded document.

        Args:
            file_bytes: Raw file content
            mime_type: Declared MIME type (may be empty)
            file_name: Original filename

        Returns:
            ExtractionResult whose content is normalized and capped

        Raises:
            FileTooLargeError: If the upload exceeds the size limit
            UnsupportedFormatError: If the format is not supported (incl. ContainerOpenFailed)
            GarbledContentError: If the extracted text is classified as noise
            ExtractionEmptyError: If no readable text remains
            ExtractionError: If parsing failed for any other reason
            DecodingError: If a plain text upload is not valid UTF-8
        """
        descriptor = self.detector.detect(file_bytes=file_bytes, mime_type=mime_type, file_name=file_name)

        if descriptor.format is DocumentFormat.TEXT:
            return self._extract_plain_text(file_bytes, file_name)

        with Timer("extraction") as extract_timer:
            chain = build_chain(descriptor.format, self.config)
            result = run_chain(chain, file_bytes, file_name, descriptor.format)

        if is_garbled(result.content, self.config):
            logger.warning(
                "Extracted text classified as garbled",
                extra_data={
                    "file_name": file_name,
                    "parse_engine": result.metadata.parse_engine,
                    "characters": len(result.content),
                },
            )
            raise GarbledContentError("Extracted text is garbled")

        cleaned = clean_and_cap(result.content, self.config.max_text_length)
        if len(cleaned.strip()) < self.config.min_content_length:
            logger.warning(
                "Too little text left after cleanup",
                extra_data={"file_name": file_name, "characters": len(cleaned)},
            )
            raise ExtractionEmptyError("Not enough readable text after cleanup")

        logger.info(
            "Successfully extracted text from document",
            extra_data={
                "file_name": file_name,
                "format": descriptor.format.value,
                "parse_engine": result.metadata.parse_engine,
                "raw_characters": len(result.content),
                "character_count": len(cleaned),
                "extraction_time_ms": extract_timer.get_elapsed_ms(),
            },
        )
        return ExtractionResult(content=cleaned, metadata=result.metadata, warning=result.warning)

    def _extract_plain_text(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        """Plain text skips classification and cleanup; only the cap applies."""
        try:
            text = file_bytes.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.error(
                "Failed to decode plain text file as UTF-8",
                extra_data={"file_name": file_name, "file_size_bytes": len(file_bytes)},
            )
            raise DecodingError("Unable to decode text file (not valid UTF-8)") from exc

        text = cap_text(text, self.config.max_text_length)
        logger.info(
            "Extracted text from plain text file",
            extra_data={"file_name": file_name, "character_count": len(text)},
        )
        return ExtractionResult(content=text, metadata=ExtractionMetadata.from_content(text, "plain text"))

    def handle_upload(
        self, file_bytes: bytes, mime_type: Optional[str], file_name: str, request_id: Optional[str] = None
    ) -> ExtractionResponse:
        """Run ``extract`` and turn package errors into a user-facing response.

        Never raises a ``DocumentParserError``; each failure kind maps to its
        own message so the user knows whether to convert, shrink, re-export or
        check the file.
        """
        set_request_id(request_id)
        try:
            result = self.extract(file_bytes, mime_type, file_name)
        except DocumentParserError as exc:
            message = self.error_message(exc)
            logger.warning(
                "Document upload rejected",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            return ExtractionResponse(error=message)

        return ExtractionResponse(
            text=result.content,
            metadata=result.metadata.to_dict(),
            warning=result.warning,
        )

    def error_message(self, exc: DocumentParserError) -> str:
        if isinstance(exc, ContainerOpenFailed):
            return CONTAINER_OPEN_MESSAGE
        if isinstance(exc, UnsupportedFormatError):
            return UNSUPPORTED_FORMAT_MESSAGE
        if isinstance(exc, FileTooLargeError):
            return FILE_TOO_LARGE_MESSAGE.format(limit_mb=self.config.max_file_size_bytes / (1024 * 1024))
        if isinstance(exc, GarbledContentError):
            return GARBLED_MESSAGE
        if isinstance(exc, ExtractionEmptyError):
            if exc.hint:
                return f"{NO_READABLE_TEXT_MESSAGE} Tip: {exc.hint}."
            return NO_READABLE_TEXT_MESSAGE
        if isinstance(exc, (ExtractionError, DecodingError)):
            return PARSE_FAILED_MESSAGE.format(reason=exc)
        return PARSE_FAILED_MESSAGE.format(reason="unknown error")

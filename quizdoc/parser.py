"""High-level API for document parsing."""

import mimetypes
from pathlib import Path
from typing import Any, Optional

from quizdoc.config import ExtractionConfig
from quizdoc.handler import DocumentHandler
from quizdoc.models import ExtractionResult


def parse_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_name: Optional[str] = None,
    mime_type: Optional[str] = None,
    config: Optional[ExtractionConfig] = None,
) -> ExtractionResult:
    """Parse a lesson document and return cleaned text for knowledge-point extraction.

    Accepts either a file path or raw bytes.

    Args:
        file_path: Path to document file (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        file_name: Original filename (required if using file_bytes)
        mime_type: Declared MIME type (optional, resolved from the name or content if omitted)
        config: Extraction configuration (optional, uses defaults if not provided)

    Returns:
        ExtractionResult with cleaned, length-capped text and metadata

    Raises:
        ValueError: If neither file_path nor file_bytes provided, or if file_bytes
            provided without file_name
        UnsupportedFormatError: If the document format is not supported
        FileTooLargeError: If the file exceeds the configured size limit
        GarbledContentError: If the extracted text is noise
        ExtractionEmptyError: If no readable text could be recovered
        ExtractionError: If parsing failed for another reason
        DecodingError: If a plain text file is not valid UTF-8

    Examples:
        >>> result = parse_document(file_path="unit3.pptx")
        >>> print(result.metadata.paragraph_count)

        >>> config = ExtractionConfig(max_text_length=10_000)
        >>> with open("lesson.doc", "rb") as f:
        ...     result = parse_document(file_bytes=f.read(), file_name="lesson.doc", config=config)
    """
    if file_path and file_bytes:
        raise ValueError("Provide either file_path or file_bytes, not both")

    if not file_path and not file_bytes:
        raise ValueError("Must provide either file_path or file_bytes")

    if file_path:
        path = Path(file_path)
        if not path.exists():
            raise ValueError(f"File not found: {file_path}")

        file_bytes = path.read_bytes()
        file_name = path.name

        if not mime_type:
            guessed_type, _ = mimetypes.guess_type(str(path))
            if guessed_type:
                mime_type = guessed_type

    if not file_name:
        raise ValueError("file_name is required when using file_bytes")

    handler = DocumentHandler(config=config)
    return handler.extract(file_bytes=file_bytes, mime_type=mime_type or "", file_name=file_name)


def parse_upload(
    file_bytes: bytes,
    file_name: str,
    mime_type: Optional[str] = None,
    config: Optional[ExtractionConfig] = None,
) -> dict[str, Any]:
    """Upload-boundary variant of ``parse_document`` that never raises.

    Returns:
        ``{"text", "metadata", "warning"?}`` on success, ``{"error"}`` otherwise
    """
    handler = DocumentHandler(config=config)
    return handler.handle_upload(file_bytes, mime_type, file_name).to_dict()

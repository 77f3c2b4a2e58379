"""Upload validation and document format resolution."""

import io
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from quizdoc.config import ExtractionConfig
from quizdoc.exceptions import FileTooLargeError, UnsupportedFormatError
from quizdoc.logger import get_logger

logger = get_logger(__name__)


PDF_SIGNATURE = b"%PDF"
ZIP_SIGNATURE = b"PK\x03\x04"

GENERIC_MIME_TYPES = {"", "application/octet-stream", "application/zip"}


class DocumentFormat(str, Enum):
    DOCX = "docx"
    DOC = "doc"
    PPTX = "pptx"
    PPT = "ppt"
    PDF = "pdf"
    TEXT = "text"


MIME_FORMATS = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
    "application/msword": DocumentFormat.DOC,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": DocumentFormat.PPTX,
    "application/vnd.ms-powerpoint": DocumentFormat.PPT,
    "application/pdf": DocumentFormat.PDF,
    "text/plain": DocumentFormat.TEXT,
}

EXTENSION_FORMATS = {
    ".docx": DocumentFormat.DOCX,
    ".doc": DocumentFormat.DOC,
    ".pptx": DocumentFormat.PPTX,
    ".ppt": DocumentFormat.PPT,
    ".pdf": DocumentFormat.PDF,
    ".txt": DocumentFormat.TEXT,
}

FORMAT_MIME_TYPES = {fmt: mime for mime, fmt in MIME_FORMATS.items()}


@dataclass
class DocumentDescriptor:
    format: DocumentFormat
    mime_type: str
    file_name: str
    size_bytes: int = 0


class DocumentDetector:
    """Validates an upload and decides which extraction chain handles it."""

    def __init__(self, config: Optional[ExtractionConfig] = None) -> None:
        self.config = config or ExtractionConfig()

    def detect(
        self, file_bytes: bytes, mime_type: Optional[str], file_name: str
    ) -> DocumentDescriptor:
        """Resolve the document format.

        The declared MIME type wins. Generic or missing MIME types fall back
        to the file extension, then to the file signature.

        Raises:
            FileTooLargeError: If the upload exceeds ``max_file_size_bytes``
            UnsupportedFormatError: If no supported format matches
        """
        declared = (mime_type or "").split(";")[0].strip().lower()
        file_size = len(file_bytes)

        logger.debug(
            "Starting document format detection",
            extra_data={
                "file_name": file_name,
                "declared_mime_type": declared,
                "file_size_bytes": file_size,
            },
        )

        if file_size > self.config.max_file_size_bytes:
            logger.warning(
                "Upload exceeds size limit",
                extra_data={
                    "file_name": file_name,
                    "file_size_bytes": file_size,
                    "max_file_size_bytes": self.config.max_file_size_bytes,
                },
            )
            raise FileTooLargeError(
                f"File size {file_size} bytes exceeds the {self.config.max_file_size_bytes} byte limit"
            )

        fmt = MIME_FORMATS.get(declared)
        source = "mime"
        if fmt is None and declared in GENERIC_MIME_TYPES:
            fmt = EXTENSION_FORMATS.get(Path(file_name).suffix.lower())
            source = "extension"
            if fmt is None:
                fmt = self._sniff_format(file_bytes)
                source = "signature"

        if fmt is None:
            logger.warning(
                "Unsupported document format",
                extra_data={"file_name": file_name, "declared_mime_type": declared},
            )
            raise UnsupportedFormatError(f"Unsupported file format: {declared or file_name}")

        logger.info(
            "Document format detected",
            extra_data={"file_name": file_name, "format": fmt.value, "source": source},
        )
        return DocumentDescriptor(
            format=fmt,
            mime_type=FORMAT_MIME_TYPES[fmt],
            file_name=file_name,
            size_bytes=file_size,
        )

    @staticmethod
    def _sniff_format(file_bytes: bytes) -> Optional[DocumentFormat]:
        """Detect the format from magic bytes (and ZIP entry names)."""
        head = file_bytes[:4]
        if head.startswith(PDF_SIGNATURE):
            return DocumentFormat.PDF
        if head.startswith(ZIP_SIGNATURE):
            try:
                with zipfile.ZipFile(io.BytesIO(file_bytes)) as archive:
                    names = archive.namelist()
            except zipfile.BadZipFile:
                return None
            if any(name.startswith("word/") for name in names):
                return DocumentFormat.DOCX
            if any(name.startswith("ppt/") for name in names):
                return DocumentFormat.PPTX
        # OLE containers hold both .doc and .ppt; without a name they stay ambiguous
        return None

"""Custom exceptions for quizdoc."""

from typing import Optional


class DocumentParserError(Exception):
    """Base exception for quizdoc errors."""

    pass


class UnsupportedFormatError(DocumentParserError):
    """Raised when no extraction strategy recognizes the document format."""

    pass


class ContainerOpenFailed(UnsupportedFormatError):
    """Raised when a PPTX/PPT file cannot be opened as a slide package."""

    pass


class FileTooLargeError(DocumentParserError):
    """Raised when the upload exceeds the configured size ceiling."""

    pass


class ExtractionError(DocumentParserError):
    """Raised when text extraction fails."""

    pass


class ExtractionEmptyError(ExtractionError):
    """Raised when a parser ran but recovered no usable text."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class GarbledContentError(ExtractionError):
    """Raised when the extracted text is classified as noise."""

    pass


class DecodingError(DocumentParserError):
    """Raised when a plain text upload is not valid UTF-8."""

    pass


class JsonRecoveryFailed(DocumentParserError):
    """Raised when no JSON value can be recovered from an LLM response."""

    def __init__(self, message: str, cleaned: Optional[str] = None):
        super().__init__(message)
        self.cleaned = cleaned


class LLMRequestError(DocumentParserError):
    """Raised when the LLM API call fails or returns an unexpected payload."""

    pass

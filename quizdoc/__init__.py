"""Lesson document text extraction and test-paper generation."""

from quizdoc.config import ExtractionConfig, LLMConfig, OCRConfig, ScannerConfig
from quizdoc.detector import DocumentDescriptor, DocumentDetector, DocumentFormat
from quizdoc.exceptions import (
    ContainerOpenFailed,
    DecodingError,
    DocumentParserError,
    ExtractionEmptyError,
    ExtractionError,
    FileTooLargeError,
    GarbledContentError,
    JsonRecoveryFailed,
    LLMRequestError,
    UnsupportedFormatError,
)
from quizdoc.garbled import is_garbled
from quizdoc.handler import DocumentHandler
from quizdoc.json_recovery import recover_json
from quizdoc.llm import ChatClient, extract_knowledge_points, generate_test_paper
from quizdoc.logger import setup_logging
from quizdoc.models import ExtractionMetadata, ExtractionResponse, ExtractionResult
from quizdoc.normalizer import normalize_text
from quizdoc.paper import TestConfig, TestPaper, build_sample_paper
from quizdoc.parser import parse_document, parse_upload

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "parse_document",
    "parse_upload",
    "generate_test_paper",
    "extract_knowledge_points",
    "build_sample_paper",
    # Core classes
    "DocumentHandler",
    "DocumentDetector",
    "ChatClient",
    # Text utilities
    "is_garbled",
    "normalize_text",
    "recover_json",
    # Logging
    "setup_logging",
    # Data models
    "DocumentFormat",
    "DocumentDescriptor",
    "ExtractionMetadata",
    "ExtractionResult",
    "ExtractionResponse",
    "TestConfig",
    "TestPaper",
    # Configuration
    "ExtractionConfig",
    "ScannerConfig",
    "OCRConfig",
    "LLMConfig",
    # Exceptions
    "DocumentParserError",
    "UnsupportedFormatError",
    "ContainerOpenFailed",
    "FileTooLargeError",
    "ExtractionError",
    "ExtractionEmptyError",
    "GarbledContentError",
    "DecodingError",
    "JsonRecoveryFailed",
    "LLMRequestError",
]

"""
Unit tests for upload validation and format detection.
"""

import pytest

from quizdoc.config import ExtractionConfig
from quizdoc.detector import DocumentDetector, DocumentFormat
from quizdoc.exceptions import FileTooLargeError, UnsupportedFormatError
from tests.helpers import build_zip

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


@pytest.fixture
def detector():
    return DocumentDetector()


@pytest.mark.unit
class TestDocumentDetector:
    """Tests for DocumentDetector.detect."""

    @pytest.mark.parametrize(
        "mime_type, expected",
        [
            (DOCX_MIME, DocumentFormat.DOCX),
            ("application/msword", DocumentFormat.DOC),
            (PPTX_MIME, DocumentFormat.PPTX),
            ("application/vnd.ms-powerpoint", DocumentFormat.PPT),
            ("application/pdf", DocumentFormat.PDF),
            ("text/plain; charset=utf-8", DocumentFormat.TEXT),
        ],
    )
    def test_declared_mime_type(self, detector, mime_type, expected):
        descriptor = detector.detect(b"payload", mime_type, "upload.bin")

        assert descriptor.format is expected
        assert descriptor.size_bytes == 7

    def test_mime_type_wins_over_extension(self, detector):
        assert detector.detect(b"%PDF-1.7", "application/pdf", "lesson.docx").format is DocumentFormat.PDF

    @pytest.mark.parametrize(
        "file_name, expected",
        [
            ("Lesson.DOCX", DocumentFormat.DOCX),
            ("old.doc", DocumentFormat.DOC),
            ("deck.pptx", DocumentFormat.PPTX),
            ("deck.ppt", DocumentFormat.PPT),
            ("scan.pdf", DocumentFormat.PDF),
            ("notes.txt", DocumentFormat.TEXT),
        ],
    )
    @pytest.mark.parametrize("mime_type", [None, "", "application/octet-stream"])
    def test_extension_when_mime_is_generic(self, detector, file_name, expected, mime_type):
        assert detector.detect(b"payload", mime_type, file_name).format is expected

    def test_descriptor_carries_canonical_mime(self, detector):
        descriptor = detector.detect(b"payload", "", "deck.ppt")

        assert descriptor.mime_type == "application/vnd.ms-powerpoint"
        assert descriptor.file_name == "deck.ppt"

    def test_sniffs_pdf_signature(self, detector):
        assert detector.detect(b"%PDF-1.4\n...", None, "upload").format is DocumentFormat.PDF

    def test_sniffs_docx_package(self, detector, make_docx):
        data = make_docx(["Hello"])

        assert detector.detect(data, "application/zip", "upload").format is DocumentFormat.DOCX

    def test_sniffs_pptx_package(self, detector, make_pptx):
        assert detector.detect(make_pptx({1: ["Hi"]}), "", "upload").format is DocumentFormat.PPTX

    def test_unknown_zip_is_unsupported(self, detector):
        with pytest.raises(UnsupportedFormatError):
            detector.detect(build_zip({"data.csv": "a,b"}), "", "archive")

    def test_specific_unsupported_mime_type(self, detector):
        """A non-generic MIME type that is not supported is not second-guessed."""
        with pytest.raises(UnsupportedFormatError):
            detector.detect(b"\x89PNG", "image/png", "photo.pdf")

    def test_ole_without_name_is_unsupported(self, detector):
        with pytest.raises(UnsupportedFormatError):
            detector.detect(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64, "", "upload")

    def test_oversized_upload_rejected(self):
        detector = DocumentDetector(ExtractionConfig(max_file_size_bytes=16))

        with pytest.raises(FileTooLargeError):
            detector.detect(b"x" * 17, "application/pdf", "big.pdf")

    def test_upload_at_limit_accepted(self):
        detector = DocumentDetector(ExtractionConfig(max_file_size_bytes=16))

        assert detector.detect(b"x" * 16, "application/pdf", "ok.pdf").format is DocumentFormat.PDF

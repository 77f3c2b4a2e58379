"""
Pytest configuration and shared fixtures for the quizdoc tests.

Office packages are built in memory so the suite needs no binary fixtures.
"""

import io

import pytest
from docx import Document

from tests.helpers import build_zip, slide_xml


@pytest.fixture
def make_pptx():
    """Factory: ``make_pptx({1: ["Hello"], 2: []}, extra={...})`` -> bytes."""

    def _make(slides: dict, notes: dict = None, extra: dict = None) -> bytes:
        entries = {"[Content_Types].xml": "<Types/>", "ppt/presentation.xml": "<presentation/>"}
        for number, runs in slides.items():
            entries[f"ppt/slides/slide{number}.xml"] = slide_xml(*runs)
        for number, runs in (notes or {}).items():
            entries[f"ppt/notesSlides/notesSlide{number}.xml"] = slide_xml(*runs)
        entries.update(extra or {})
        return build_zip(entries)

    return _make


@pytest.fixture
def make_docx():
    """Factory: ``make_docx(["para", ...], table=[["a", "b"]])`` -> bytes."""

    def _make(paragraphs: list, table: list = None) -> bytes:
        document = Document()
        for text in paragraphs:
            document.add_paragraph(text)
        if table:
            grid = document.add_table(rows=len(table), cols=len(table[0]))
            for r, row in enumerate(table):
                for c, value in enumerate(row):
                    grid.cell(r, c).text = value
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def doc_binary():
    """Bytes shaped like a legacy .doc: text runs buried in binary noise."""
    noise = b"\x01\x02\x03\x04\x05\x06" * 20
    return (
        noise
        + b"Unit 3 My family and friends"
        + noise
        + b"This is my mother. She is a teacher."
        + noise
    )


@pytest.fixture
def control_bytes():
    """A buffer made only of bytes 0-31."""
    return bytes(range(32)) * 16


@pytest.fixture
def no_system_converter(monkeypatch):
    """Pretend neither textutil nor LibreOffice is installed."""
    monkeypatch.setattr("quizdoc.extractor.SystemConverterExtractor.available", staticmethod(lambda: False))

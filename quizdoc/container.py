"""Slide text extraction from ZIP-based presentation packages (.pptx)."""

import io
import re
import xml.etree.ElementTree as ET
import zipfile
import zlib
from dataclasses import dataclass, field

from quizdoc.exceptions import ContainerOpenFailed
from quizdoc.logger import get_logger

logger = get_logger(__name__)

DRAWINGML_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
TEXT_RUN_TAG = f"{{{DRAWINGML_NS}}}t"

SLIDE_PART_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
NOTES_PART_RE = re.compile(r"^ppt/notesSlides/notesSlide(\d+)\.xml$")

# RuntimeError: encrypted entry, NotImplementedError: unsupported compression method
_PART_ERRORS = (ET.ParseError, zipfile.BadZipFile, zlib.error, EOFError, ValueError, RuntimeError, NotImplementedError)


@dataclass
class SlideText:
    number: int
    part_name: str
    text: str


@dataclass
class SlideDeck:
    """Text recovered from a presentation package.

    ``slides`` only holds slides that yielded text; ``number`` is the index
    taken from the part name, so gaps mean empty or unreadable slides.
    """

    slides: list[SlideText] = field(default_factory=list)
    notes: list[SlideText] = field(default_factory=list)

    @property
    def slide_count(self) -> int:
        return len(self.slides)

    @property
    def content(self) -> str:
        blocks = [
            f"=== Slide {position} ===\n{slide.text}"
            for position, slide in enumerate(self.slides, start=1)
        ]
        blocks.extend(f"=== Slide {note.number} notes ===\n{note.text}" for note in self.notes)
        return "\n\n".join(blocks)


def extract_xml_text(xml_bytes: bytes) -> str:
    """Join the DrawingML text runs of one slide part, one per line.

    The XML parser decodes the predefined entities and numeric character
    references. Runs that are blank after trimming are dropped.
    """
    root = ET.fromstring(xml_bytes)
    texts = []
    for element in root.iter(TEXT_RUN_TAG):
        if element.text and element.text.strip():
            texts.append(element.text.strip())
    return "\n".join(texts)


def _numbered_parts(names: list[str], pattern: re.Pattern) -> list[tuple[int, str]]:
    parts = []
    for name in names:
        match = pattern.match(name)
        if match:
            parts.append((int(match.group(1)), name))
    # slide2 must come before slide10
    parts.sort()
    return parts


def _read_parts(archive: zipfile.ZipFile, parts: list[tuple[int, str]], kind: str) -> list[SlideText]:
    texts = []
    for number, name in parts:
        try:
            text = extract_xml_text(archive.read(name))
        except _PART_ERRORS as exc:
            logger.warning(
                f"Skipping unreadable {kind} part",
                extra_data={"part": name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            continue
        if text.strip():
            texts.append(SlideText(number=number, part_name=name, text=text))
    return texts


def parse_slide_container(data: bytes) -> SlideDeck:
    """Read slide and speaker-notes text from a presentation package.

    Args:
        data: Raw bytes of a .pptx (or a .ppt that is really a ZIP package)

    Returns:
        SlideDeck with the text-bearing slides in numeric order, then notes

    Raises:
        ContainerOpenFailed: If the bytes are not a ZIP archive or hold no slide parts
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zlib.error, EOFError, ValueError) as exc:
        raise ContainerOpenFailed(f"Not a ZIP-based presentation: {exc}") from exc

    with archive:
        names = archive.namelist()
        slide_parts = _numbered_parts(names, SLIDE_PART_RE)
        if not slide_parts:
            raise ContainerOpenFailed("Archive contains no slide parts")
        notes_parts = _numbered_parts(names, NOTES_PART_RE)

        deck = SlideDeck(
            slides=_read_parts(archive, slide_parts, "slide"),
            notes=_read_parts(archive, notes_parts, "notes"),
        )

    logger.debug(
        "Slide container parsed",
        extra_data={
            "slide_parts": len(slide_parts),
            "slides_with_text": deck.slide_count,
            "notes_with_text": len(deck.notes),
        },
    )
    return deck


def looks_like_presentation(data: bytes) -> bool:
    """True if ``data`` is a ZIP archive with presentation-looking entries."""
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            return any("ppt" in name or "slide" in name for name in archive.namelist())
    except (zipfile.BadZipFile, zlib.error, EOFError, ValueError):
        return False

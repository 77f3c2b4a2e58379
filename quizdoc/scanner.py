"""Heuristic text recovery from legacy binary Office files (.doc, .ppt).

Neither format is parsed structurally. The scanners walk the raw bytes, keep
runs that look like text and filter out runs that are obviously noise.

Bytes 128-255 are kept as their Latin-1 code points. Legacy files that store
text as UTF-16, GBK or any other multi-byte encoding come out garbled; no
encoding detection is attempted and callers should recommend DOCX/PPTX.
"""

import re
from typing import Optional

from quizdoc.config import ScannerConfig
from quizdoc.exceptions import ExtractionEmptyError
from quizdoc.logger import get_logger
from quizdoc.models import TextSegment

logger = get_logger(__name__)

SEGMENT_SEPARATOR = "\n\n"

_LETTER_OR_CJK_RE = re.compile(r"[a-zA-Z\u4e00-\u9fff]")
_NOISE_ONLY_RE = re.compile(r"[\s\d\W_]*")
_BARE_LETTERS_RE = re.compile(r"[a-zA-Z]{1,2}")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_C1_CONTROL_RE = re.compile(r"[\x7f-\x9f]")
_WHITESPACE_RE = re.compile(r"\s+")


def _is_printable(byte: int) -> bool:
    return 32 <= byte <= 126


def _is_readable(byte: int) -> bool:
    return 32 <= byte <= 126 or 128 <= byte <= 255 or byte in (9, 10, 13)


def _decode_byte(byte: int) -> str:
    """Map one readable byte to text; anything else decodes to ''."""
    if 32 <= byte <= 126 or 128 <= byte <= 255:
        return chr(byte)
    if byte == 9:
        return " "
    if byte in (10, 13):
        return "\n"
    return ""


def _looks_like_text(text: str, min_length: int) -> bool:
    if len(text) < min_length:
        return False
    if not _LETTER_OR_CJK_RE.search(text):
        return False
    return not _NOISE_ONLY_RE.fullmatch(text)


def _join_segments(segments: list[TextSegment], config: ScannerConfig, kind: str) -> str:
    text = SEGMENT_SEPARATOR.join(segment.text for segment in segments)
    if len(text) < config.min_total_length:
        logger.warning(
            "Binary scan recovered no usable text",
            extra_data={"format": kind, "segments": len(segments), "characters": len(text)},
        )
        raise ExtractionEmptyError("no usable text recoverable from binary format")
    return text


def scan_doc_segments(data: bytes, config: Optional[ScannerConfig] = None) -> list[TextSegment]:
    """Find text runs in a legacy Word binary.

    A run starts where a window of ``detection_window`` bytes holds at least
    ``detection_min_readable`` consecutive readable bytes (null bytes are
    padding and neither count nor break the streak). It then extends until
    ``extension_max_noise`` consecutive non-readable bytes are seen.
    """
    config = config or ScannerConfig()
    segments: list[TextSegment] = []
    size = len(data)
    i = 0

    while i < size - config.detection_min_readable:
        text_start = -1
        readable = 0

        for j in range(i, min(i + config.detection_window, size)):
            byte = data[j]
            if _is_readable(byte):
                if text_start == -1:
                    text_start = j
                readable += 1
            elif byte == 0:
                continue
            elif readable >= config.detection_min_readable:
                break
            else:
                text_start = -1
                readable = 0

        if readable < config.detection_min_readable or text_start == -1:
            i += config.detection_skip
            continue

        end = text_start + readable
        noise = 0
        while end < size and noise < config.extension_max_noise:
            byte = data[end]
            if _is_readable(byte):
                noise = 0
            elif byte != 0:
                noise += 1
            end += 1
        end -= noise

        text = "".join(_decode_byte(byte) for byte in data[text_start:end])
        text = _WHITESPACE_RE.sub(" ", _CONTROL_RE.sub("", text)).strip()
        if _looks_like_text(text, config.doc_min_segment_length) and not _BARE_LETTERS_RE.fullmatch(text):
            segments.append(TextSegment(start=text_start, end=end, text=text))

        i = max(end, i + 1)

    return segments


def scan_ppt_segments(data: bytes, config: Optional[ScannerConfig] = None) -> list[TextSegment]:
    """Find text runs in a legacy PowerPoint binary.

    A null byte directly followed by a printable byte closes the current run:
    this is where PowerPoint text atoms usually begin. A streak of
    ``extension_max_noise`` non-readable bytes also closes it.
    """
    config = config or ScannerConfig()
    segments: list[TextSegment] = []
    size = len(data)
    run: list[str] = []
    run_start = 0
    noise = 0

    def flush(end: int) -> None:
        text = _C1_CONTROL_RE.sub("", "".join(run)).strip()
        if _looks_like_text(text, config.ppt_min_segment_length):
            segments.append(TextSegment(start=run_start, end=end, text=text))
        run.clear()

    for i, byte in enumerate(data):
        if _is_readable(byte):
            if not run:
                run_start = i
            run.append(_decode_byte(byte))
            noise = 0
        elif byte == 0 and run and i + 1 < size and _is_printable(data[i + 1]):
            flush(i)
            noise = 0
        else:
            noise += 1
            if noise >= config.extension_max_noise and run:
                flush(i - noise + 1)

    if run:
        flush(size)

    return segments


def extract_doc_text(data: bytes, config: Optional[ScannerConfig] = None) -> str:
    """Recover text from a .doc binary.

    Raises:
        ExtractionEmptyError: If fewer than ``min_total_length`` characters survive
    """
    config = config or ScannerConfig()
    segments = scan_doc_segments(data, config)
    logger.debug("DOC binary scan finished", extra_data={"bytes": len(data), "segments": len(segments)})
    return _join_segments(segments, config, "doc")


def extract_ppt_text(data: bytes, config: Optional[ScannerConfig] = None) -> str:
    """Recover text from a .ppt binary.

    Raises:
        ExtractionEmptyError: If fewer than ``min_total_length`` characters survive
    """
    config = config or ScannerConfig()
    segments = scan_ppt_segments(data, config)
    logger.debug("PPT binary scan finished", extra_data={"bytes": len(data), "segments": len(segments)})
    return _join_segments(segments, config, "ppt")

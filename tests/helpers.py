"""
Builders for in-memory Office packages used across the test modules.
"""

import io
import zipfile

SLIDE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<p:sld xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
    "<p:cSld><p:spTree><p:sp><p:txBody>{paragraphs}</p:txBody></p:sp></p:spTree></p:cSld>"
    "</p:sld>"
)


def slide_xml(*runs: str) -> str:
    """Slide part with one DrawingML paragraph per text run."""
    paragraphs = "".join(f"<a:p><a:r><a:t>{run}</a:t></a:r></a:p>" for run in runs)
    return SLIDE_XML.format(paragraphs=paragraphs)


def build_zip(entries: dict) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def mark_entry_encrypted(data: bytes, name: str) -> bytes:
    """Set the "encrypted" general-purpose flag on ``name`` in the central directory."""
    buffer = bytearray(data)
    target = name.encode("utf-8")
    position = buffer.find(b"PK\x01\x02")
    while position != -1:
        name_length = int.from_bytes(buffer[position + 28 : position + 30], "little")
        if bytes(buffer[position + 46 : position + 46 + name_length]) == target:
            buffer[position + 8] |= 0x01
        position = buffer.find(b"PK\x01\x02", position + 46)
    return bytes(buffer)

"""Library-backed extractors: python-docx, PyMuPDF4LLM (+ Tesseract OCR) and
system converters for legacy .doc files."""

import io
import os
import shutil
import subprocess
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import fitz  # PyMuPDF
import pymupdf4llm
import pytesseract
from docx import Document
from PIL import Image

from quizdoc.config import OCRConfig
from quizdoc.exceptions import ExtractionError
from quizdoc.logger import Timer, get_logger

logger = get_logger(__name__)

CONVERTER_TIMEOUT_SECONDS = 60


class DocxExtractor:
    """Plain text of a Word document via python-docx.

    Paragraphs are separated by blank lines; table rows follow as
    ``cell | cell`` lines.
    """

    def extract(self, file_bytes: bytes, file_name: str = "unknown.docx") -> str:
        """
        Raises:
            ExtractionError: If python-docx cannot open the package
        """
        try:
            with Timer("docx_extraction") as timer:
                doc = Document(io.BytesIO(file_bytes))
                paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]

                tables = []
                for table in doc.tables:
                    rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
                    if rows:
                        tables.append("\n".join(rows))
        except Exception as exc:
            logger.debug(
                "python-docx could not open document",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise ExtractionError(f"DOCX parsing failed: {exc}") from exc

        result = "\n\n".join(paragraphs + tables)
        logger.debug(
            "DOCX extraction completed",
            extra_data={
                "file_name": file_name,
                "paragraph_count": len(paragraphs),
                "table_count": len(tables),
                "characters_extracted": len(result),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result


class SystemConverterExtractor:
    """Converts legacy .doc files to text with textutil (macOS) or LibreOffice.

    Returns an empty string when no converter is installed or conversion fails,
    leaving the decision to fall back to the caller.
    """

    def __init__(self, timeout: int = CONVERTER_TIMEOUT_SECONDS):
        self.timeout = timeout

    @staticmethod
    def available() -> bool:
        return bool(shutil.which("textutil") or shutil.which("soffice") or shutil.which("libreoffice"))

    def extract(self, file_bytes: bytes, file_name: str = "unknown.doc") -> str:
        if not self.available():
            logger.debug("No .doc converter installed", extra_data={"file_name": file_name})
            return ""

        try:
            with tempfile.TemporaryDirectory() as tmp_dir:
                tmp_path = Path(tmp_dir) / "document.doc"
                tmp_path.write_bytes(file_bytes)

                text = self._run_textutil(tmp_path, file_name)
                if not text:
                    text = self._run_soffice(tmp_path, file_name)
                return text
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning(
                "System converter failed",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            return ""

    def _run_textutil(self, path: Path, file_name: str) -> str:
        if not shutil.which("textutil"):
            return ""
        try:
            with Timer("doc_textutil") as timer:
                result = subprocess.run(
                    ["textutil", "-convert", "txt", str(path), "-stdout"],
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
        except subprocess.TimeoutExpired:
            logger.warning("textutil timed out", extra_data={"file_name": file_name})
            return ""

        if result.returncode != 0:
            return ""
        text = result.stdout.strip()
        logger.info(
            "DOC extraction completed via textutil",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return text

    def _run_soffice(self, path: Path, file_name: str) -> str:
        soffice = shutil.which("soffice") or shutil.which("libreoffice")
        if not soffice:
            return ""
        out_dir = path.parent / "out"
        try:
            with Timer("doc_soffice") as timer:
                conversion = subprocess.run(
                    [soffice, "--headless", "--convert-to", "txt:Text", str(path), "--outdir", str(out_dir)],
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
        except subprocess.TimeoutExpired:
            logger.warning("soffice timed out", extra_data={"file_name": file_name})
            return ""

        out_path = out_dir / f"{path.stem}.txt"
        if conversion.returncode != 0 or not out_path.exists():
            return ""
        text = out_path.read_text(encoding="utf-8", errors="ignore").strip()
        logger.info(
            "DOC extraction completed via soffice",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return text


@dataclass
class PdfText:
    text: str
    page_count: int
    ocr_used: bool = False


class PdfExtractor:
    """PDF text via PyMuPDF4LLM, with a Tesseract pass for scanned files."""

    def __init__(self, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()

        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        if self.config.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = self.config.tessdata_prefix

    def extract(self, file_bytes: bytes, file_name: str = "unknown.pdf") -> PdfText:
        """
        Raises:
            ExtractionError: If PyMuPDF cannot open or read the file
        """
        try:
            with Timer("pdf_native_extraction") as native_timer:
                with fitz.open(stream=file_bytes, filetype="pdf") as pdf_document:
                    page_count = len(pdf_document)
                    md_text = pymupdf4llm.to_markdown(
                        pdf_document,
                        table_strategy="lines_strict",
                        force_text=True,
                        write_images=False,
                        ignore_images=True,
                        fontsize_limit=3,
                        show_progress=False,
                    )
        except Exception as exc:
            logger.error(
                "PDF native extraction failed",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise ExtractionError(f"PDF parsing failed: {exc}") from exc

        text = md_text.strip()
        logger.debug(
            "PDF native text extraction completed",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(text),
                "page_count": page_count,
                "extraction_time_ms": native_timer.get_elapsed_ms(),
            },
        )

        if not self.config.enabled or not self._should_ocr_pdf(len(text), page_count, len(file_bytes)):
            return PdfText(text=text, page_count=page_count)

        logger.info(
            "Triggering OCR fallback for PDF",
            extra_data={"file_name": file_name, "native_characters": len(text), "page_count": page_count},
        )
        with Timer("pdf_ocr") as ocr_timer:
            ocr_text = self._ocr_pdf(file_bytes, page_count, file_name)
        logger.info(
            "OCR extraction completed",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(ocr_text),
                "ocr_time_ms": ocr_timer.get_elapsed_ms(),
            },
        )

        if len(ocr_text) > len(text):
            return PdfText(text=ocr_text, page_count=page_count, ocr_used=True)
        return PdfText(text=text, page_count=page_count)

    def _should_ocr_pdf(self, native_char_count: int, page_count: int, file_size_bytes: int) -> bool:
        """Decide whether native extraction looks like a scanned document."""
        if native_char_count == 0:
            return True
        if page_count > 0 and native_char_count / page_count < self.config.pdf_ocr_min_chars_per_page:
            return True
        return (
            native_char_count < self.config.pdf_ocr_min_chars
            and file_size_bytes >= self.config.pdf_ocr_min_file_size_bytes
        )

    def _ocr_page(self, file_bytes: bytes, page_num: int, file_name: str) -> tuple[int, str]:
        """OCR one page; failures are logged and yield an empty page."""
        start_time = time.perf_counter()
        try:
            # Each worker opens its own document: PyMuPDF objects are not thread-safe
            with fitz.open(stream=file_bytes, filetype="pdf") as pdf_document:
                pix = pdf_document[page_num].get_pixmap(dpi=self.config.dpi)
                image = Image.open(io.BytesIO(pix.tobytes("png")))

            page_text = pytesseract.image_to_string(
                image,
                lang=self.config.languages,
                config=f"--psm {self.config.psm_mode}",
            ).strip()
        except Exception as exc:
            logger.error(
                f"OCR failed for page {page_num + 1}",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            return page_num, ""

        logger.debug(
            f"OCR completed for page {page_num + 1}",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(page_text),
                "ocr_time_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return page_num, page_text

    def _ocr_pdf(self, file_bytes: bytes, page_count: int, file_name: str) -> str:
        page_results: dict[int, str] = {}
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = [
                executor.submit(self._ocr_page, file_bytes, page_num, file_name)
                for page_num in range(page_count)
            ]
            for future in as_completed(futures):
                page_num, page_text = future.result()
                page_results[page_num] = page_text

        pages = [page_results[i] for i in range(page_count) if page_results.get(i)]
        return "\n\n".join(pages)

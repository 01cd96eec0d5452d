"""Per-format text extraction: pdftotext, PyMuPDF, Tesseract, openpyxl, xlrd, python-docx."""

import io
from pathlib import Path
from typing import Callable, Optional

import fitz  # PyMuPDF
import xlrd
from docx import Document
from openpyxl import load_workbook

from requisition_parser.config import ExtractorConfig
from requisition_parser.exceptions import (
    ExtractionError,
    ToolExecutionError,
    ToolUnavailableError,
    UnsupportedTypeError,
)
from requisition_parser.logger import Timer, get_logger
from requisition_parser.models import DocumentType, ExtractedText, ExtractionMethod, Grid, RawDocument
from requisition_parser.normalize import cell_text
from requisition_parser.ocr import OcrFallback
from requisition_parser.process import ProcessRunner

logger = get_logger(__name__)

# (method, stage, accept(new_text, current_text))
PdfStage = tuple[ExtractionMethod, Callable[[bytes, str], str], Callable[[str, str], bool]]


class TextExtractor:
    """Turns a raw document into text, cheapest method first.

    PDFs go through an ordered cascade (layout tool, PyMuPDF, OCR with
    rotation search) that stops as soon as a stage yields enough text.
    Spreadsheets keep their cell grids next to the flattened text.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        runner: Optional[ProcessRunner] = None,
        ocr: Optional[OcrFallback] = None,
    ):
        self.config = config or ExtractorConfig()
        self.runner = runner or ProcessRunner(self.config.tool_config)
        self.ocr = ocr or OcrFallback(self.config.ocr_config)

    def extract(self, document: RawDocument, document_type: DocumentType) -> ExtractedText:
        """Extract text from a document of a known type.

        Raises:
            ExtractionError: If the document is corrupt or cannot be read
            UnsupportedTypeError: If ``document_type`` has no extractor
        """
        if document_type is DocumentType.PDF:
            return self.extract_pdf(document.content, document.filename)
        if document_type is DocumentType.EXCEL:
            return self.extract_spreadsheet(document.content, document.filename)
        if document_type is DocumentType.WORD:
            return self.extract_word(document.content, document.filename)
        if document_type is DocumentType.IMAGE:
            return self.extract_image(document.content, document.filename)
        raise UnsupportedTypeError(f"No extractor for {document_type.value}")

    # ============ PDF ============

    def _pdf_stages(self) -> list[PdfStage]:
        min_ocr = self.config.min_ocr_chars
        return [
            (ExtractionMethod.LAYOUT_TOOL, self._pdf_layout_text, lambda new, cur: bool(new.strip())),
            (ExtractionMethod.LIBRARY_PARSER, self._pdf_library_text, lambda new, cur: len(new.strip()) > len(cur.strip())),
            (ExtractionMethod.OCR, self._pdf_ocr_text, lambda new, cur: len(new.strip()) > min_ocr),
        ]

    def extract_pdf(self, file_bytes: bytes, file_name: str = "unknown.pdf") -> ExtractedText:
        text = ""
        method: Optional[ExtractionMethod] = None

        for stage_method, stage, accept in self._pdf_stages():
            if len(text.strip()) >= self.config.min_text_chars:
                break
            with Timer(stage_method.value) as timer:
                candidate = stage(file_bytes, file_name)
            logger.debug(
                "PDF extraction stage completed",
                extra_data={
                    "file_name": file_name,
                    "stage": stage_method.value,
                    "characters_extracted": len(candidate.strip()),
                    "elapsed_ms": timer.get_elapsed_ms(),
                },
            )
            if accept(candidate, text):
                text, method = candidate, stage_method
            elif stage_method is ExtractionMethod.OCR:
                # A scan OCR cannot read decides the document
                method = None

        if method is None or len(text.strip()) < self.config.min_ocr_chars:
            logger.warning(
                "No usable text in PDF, falling back to filename",
                extra_data={"file_name": file_name, "characters_extracted": len(text.strip())},
            )
            return ExtractedText(text=text, method=ExtractionMethod.FILENAME_HEURISTIC, low_confidence=True)

        logger.info(
            "PDF text extracted",
            extra_data={"file_name": file_name, "method": method.value, "characters_extracted": len(text)},
        )
        return ExtractedText(text=text, method=method, low_confidence=method is ExtractionMethod.OCR)

    def _pdf_layout_text(self, file_bytes: bytes, file_name: str) -> str:
        try:
            return self.runner.pdf_layout_text(file_bytes)
        except (ToolUnavailableError, ToolExecutionError) as exc:
            logger.warning(
                "Layout text extraction failed",
                extra_data={"file_name": file_name, "error": str(exc)},
            )
            return ""

    def _pdf_library_text(self, file_bytes: bytes, file_name: str) -> str:
        try:
            with fitz.open(stream=file_bytes, filetype="pdf") as pdf_document:
                return "\n".join(page.get_text("text") for page in pdf_document)
        except (RuntimeError, ValueError) as exc:
            logger.warning(
                "PyMuPDF text extraction failed",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            return ""

    def _pdf_ocr_text(self, file_bytes: bytes, file_name: str) -> str:
        logger.info("PDF looks scanned, trying OCR", extra_data={"file_name": file_name})
        return self.ocr.search_rotations(file_bytes, file_name).text

    # ============ SPREADSHEETS ============

    def extract_spreadsheet(self, file_bytes: bytes, file_name: str = "unknown.xlsx") -> ExtractedText:
        """Flatten every sheet to a grid of strings and a text rendering."""
        suffix = Path(file_name).suffix.lower()
        try:
            with Timer("spreadsheet_extraction") as timer:
                if suffix == ".xls":
                    sheets = self._read_xls(file_bytes)
                else:
                    sheets = self._read_xlsx(file_bytes)
        except Exception as exc:
            logger.error(
                "Spreadsheet extraction failed",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise ExtractionError(f"Failed to read spreadsheet {file_name}: {exc}") from exc

        parts: list[str] = []
        for name, grid in sheets:
            parts.append(f"## Sheet: {name}")
            parts.extend("\t".join(row) for row in grid)
        text = "\n".join(parts).strip()

        logger.info(
            "Spreadsheet extracted",
            extra_data={
                "file_name": file_name,
                "sheet_count": len(sheets),
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return ExtractedText(
            text=text,
            method=ExtractionMethod.SPREADSHEET,
            tables=[grid for _, grid in sheets],
        )

    @staticmethod
    def _read_xlsx(file_bytes: bytes) -> list[tuple[str, Grid]]:
        workbook = load_workbook(io.BytesIO(file_bytes), data_only=True, read_only=True)
        try:
            return [
                (sheet.title, [[cell_text(value) for value in row] for row in sheet.iter_rows(values_only=True)])
                for sheet in workbook.worksheets
            ]
        finally:
            workbook.close()

    @staticmethod
    def _read_xls(file_bytes: bytes) -> list[tuple[str, Grid]]:
        workbook = xlrd.open_workbook(file_contents=file_bytes)
        return [
            (sheet.name, [[cell_text(value) for value in sheet.row_values(i)] for i in range(sheet.nrows)])
            for sheet in workbook.sheets()
        ]

    # ============ WORD ============

    def extract_word(self, file_bytes: bytes, file_name: str = "unknown.docx") -> ExtractedText:
        suffix = Path(file_name).suffix.lower()
        if suffix == ".doc":
            try:
                text = self.runner.legacy_doc_text(file_bytes)
            except (ToolUnavailableError, ToolExecutionError) as exc:
                raise ExtractionError(
                    f"Failed to extract .doc file ({exc}). Install textutil (macOS) or LibreOffice."
                ) from exc
            return ExtractedText(text=text, method=ExtractionMethod.WORD)

        try:
            with Timer("docx_extraction") as timer:
                doc = Document(io.BytesIO(file_bytes))
                lines = [para.text.strip() for para in doc.paragraphs if para.text.strip()]
                for table in doc.tables:
                    for row in table.rows:
                        cells = [cell.text.strip() for cell in row.cells]
                        if any(cells):
                            lines.append(" | ".join(cells))
        except Exception as exc:
            raise ExtractionError(f"Failed to read Word document {file_name}: {exc}") from exc

        text = "\n".join(lines)
        logger.debug(
            "DOCX extraction completed",
            extra_data={
                "file_name": file_name,
                "line_count": len(lines),
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return ExtractedText(text=text, method=ExtractionMethod.WORD)

    # ============ IMAGES ============

    def extract_image(self, file_bytes: bytes, file_name: str = "unknown.jpg") -> ExtractedText:
        text = self.ocr.image_to_text(file_bytes, file_name)
        return ExtractedText(text=text, method=ExtractionMethod.IMAGE_OCR, low_confidence=True)

from __future__ import annotations

import io
from unittest.mock import Mock, patch

import fitz
import pytest
from docx import Document
from openpyxl import Workbook

from requisition_parser.exceptions import ExtractionError, ToolUnavailableError
from requisition_parser.models import DocumentType, ExtractionMethod, RawDocument
from requisition_parser.ocr import OcrFallback, OcrOutcome
from requisition_parser.process import ProcessRunner
from requisition_parser.text_extractor import TextExtractor

LONG_TEXT = "Purchase Requisition No 4500123\n10 2 EA 144850 FAN AXIAL 24V 1500405 0 0\n"


def _extractor(layout: str = "", ocr_text: str = "") -> tuple[TextExtractor, Mock, Mock]:
    runner = Mock(spec=ProcessRunner)
    runner.pdf_layout_text.return_value = layout
    ocr = Mock(spec=OcrFallback)
    ocr.search_rotations.return_value = OcrOutcome(text=ocr_text)
    return TextExtractor(runner=runner, ocr=ocr), runner, ocr


def _pdf_with_text(text: str) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((50, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def test_layout_tool_text_stops_the_cascade() -> None:
    extractor, _, ocr = _extractor(layout=LONG_TEXT)

    with patch.object(TextExtractor, "_pdf_library_text") as library:
        extracted = extractor.extract_pdf(b"%PDF", "pr.pdf")

    assert extracted.method is ExtractionMethod.LAYOUT_TOOL
    assert extracted.low_confidence is False
    library.assert_not_called()
    ocr.search_rotations.assert_not_called()


def test_library_parser_used_when_layout_tool_missing() -> None:
    extractor, runner, ocr = _extractor()
    runner.pdf_layout_text.side_effect = ToolUnavailableError("pdftotext")

    extracted = extractor.extract_pdf(
        _pdf_with_text("Purchase Requisition No 4500123 for hydraulic pump spare parts"), "pr.pdf"
    )

    assert extracted.method is ExtractionMethod.LIBRARY_PARSER
    assert "hydraulic pump" in extracted.text
    ocr.search_rotations.assert_not_called()


def test_scanned_pdf_falls_back_to_ocr_with_low_confidence() -> None:
    extractor, _, ocr = _extractor(layout="  \n", ocr_text=LONG_TEXT)

    with patch.object(TextExtractor, "_pdf_library_text", return_value="short"):
        extracted = extractor.extract_pdf(b"%PDF", "scan.pdf")

    assert extracted.method is ExtractionMethod.OCR
    assert extracted.low_confidence is True
    assert extracted.text == LONG_TEXT
    ocr.search_rotations.assert_called_once()


def test_unreadable_pdf_falls_back_to_filename() -> None:
    extractor, _, _ = _extractor(ocr_text="tiny text")

    with patch.object(TextExtractor, "_pdf_library_text", return_value=""):
        extracted = extractor.extract_pdf(b"%PDF", "BI_19716_FILTRES.pdf")

    assert extracted.method is ExtractionMethod.FILENAME_HEURISTIC
    assert extracted.low_confidence is True


def test_short_layout_text_with_failed_ocr_falls_back_to_filename() -> None:
    extractor, _, ocr = _extractor(layout="PR scan page 1 of 1 - see attached", ocr_text="")

    with patch.object(TextExtractor, "_pdf_library_text", return_value=""):
        extracted = extractor.extract_pdf(b"%PDF", "BI_19716_FILTRES.pdf")

    assert extracted.method is ExtractionMethod.FILENAME_HEURISTIC
    assert extracted.low_confidence is True
    ocr.search_rotations.assert_called_once()


def test_spreadsheet_keeps_grids_and_text() -> None:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Besoins"
    sheet.append(["Désignation", "Qté"])
    sheet.append(["Roulement SKF 6205", 4])
    buffer = io.BytesIO()
    workbook.save(buffer)
    extractor, _, _ = _extractor()

    extracted = extractor.extract(RawDocument("besoins.xlsx", buffer.getvalue()), DocumentType.EXCEL)

    assert extracted.method is ExtractionMethod.SPREADSHEET
    assert extracted.tables == [[["Désignation", "Qté"], ["Roulement SKF 6205", "4"]]]
    assert "## Sheet: Besoins" in extracted.text
    assert "Roulement SKF 6205\t4" in extracted.text


def test_corrupt_spreadsheet_raises_extraction_error() -> None:
    extractor, _, _ = _extractor()

    with pytest.raises(ExtractionError):
        extractor.extract_spreadsheet(b"not a workbook", "broken.xlsx")


def test_docx_paragraphs_and_tables_are_extracted() -> None:
    document = Document()
    document.add_paragraph("2 x Hydraulic cylinder 80mm")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Filtre à huile"
    table.rows[0].cells[1].text = "3"
    buffer = io.BytesIO()
    document.save(buffer)
    extractor, _, _ = _extractor()

    extracted = extractor.extract(RawDocument("demande.docx", buffer.getvalue()), DocumentType.WORD)

    assert extracted.method is ExtractionMethod.WORD
    assert extracted.text.splitlines() == ["2 x Hydraulic cylinder 80mm", "Filtre à huile | 3"]


def test_legacy_doc_without_converter_raises_extraction_error() -> None:
    extractor, runner, _ = _extractor()
    runner.legacy_doc_text.side_effect = ToolUnavailableError("textutil/soffice")

    with pytest.raises(ExtractionError):
        extractor.extract_word(b"\xd0\xcf\x11\xe0", "old.doc")


def test_image_text_is_low_confidence() -> None:
    extractor, _, ocr = _extractor()
    ocr.image_to_text.return_value = "P/N 710 0321"

    extracted = extractor.extract(RawDocument("plaque.jpg", b"jpeg"), DocumentType.IMAGE)

    assert extracted.method is ExtractionMethod.IMAGE_OCR
    assert extracted.low_confidence is True
    assert extracted.text == "P/N 710 0321"

from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import Mock, patch

import pytest

from requisition_parser.assembler import PLACEHOLDER_DESCRIPTION, merge_results
from requisition_parser.exceptions import ExtractionError
from requisition_parser.handler import SCANNED_NOTE, DocumentHandler
from requisition_parser.models import (
    DocumentType,
    ExtractedItem,
    ExtractedText,
    ExtractionMethod,
    ExtractionResult,
    RawDocument,
)
from requisition_parser.ocr import OcrFallback, OcrOutcome
from requisition_parser.parser import parse_document, parse_email
from requisition_parser.process import ProcessRunner
from requisition_parser.text_extractor import TextExtractor

PR_TEXT = "Purchase Requisition No 4500123\n10 2 EA 144850 FAN AXIAL 24V 1500405 0 0\n"
PROSE_BODY = (
    "Bonjour,\n"
    "Nous souhaitons une cotation de 3 unités d'un manomètre qui permet de mesurer la pression.\n"
    "Délai de réponse: 15 mars 2024\n"
    "\n"
    "Cordialement,\n"
    "JEAN DUPONT\n"
)


def _handler(extracted: ExtractedText | None = None) -> tuple[DocumentHandler, Mock]:
    text_extractor = Mock(spec=TextExtractor)
    if extracted is not None:
        text_extractor.extract.return_value = extracted
    return DocumentHandler(text_extractor=text_extractor), text_extractor


def _result(filename: str, items: list[ExtractedItem], **fields) -> ExtractionResult:
    return ExtractionResult(
        filename=filename,
        document_type=DocumentType.PDF,
        text="",
        items=items,
        extraction_method=ExtractionMethod.LAYOUT_TOOL,
        **fields,
    )


def test_scanned_pdf_is_parsed_from_ocr_and_flagged() -> None:
    runner = Mock(spec=ProcessRunner)
    runner.pdf_layout_text.return_value = "PURCHASE REQ"
    ocr = Mock(spec=OcrFallback)
    ocr.search_rotations.return_value = OcrOutcome(text=PR_TEXT, score=12, rotation=90)
    handler = DocumentHandler(text_extractor=TextExtractor(runner=runner, ocr=ocr))

    with patch.object(TextExtractor, "_pdf_library_text", return_value=""):
        result = handler.parse_document(RawDocument("PR_4500123.pdf", b"%PDF-1.4"))

    assert result is not None
    assert result.extraction_method is ExtractionMethod.OCR
    assert result.needs_verification is True
    assert result.rfq_number == "4500123"
    assert [item.internal_code for item in result.items] == ["144850"]
    assert result.items[0].notes == SCANNED_NOTE


def test_pdf_without_text_gets_placeholder_from_file_name() -> None:
    handler, _ = _handler(ExtractedText(text="", method=ExtractionMethod.FILENAME_HEURISTIC, low_confidence=True))

    result = handler.parse_document(
        RawDocument("BI_19716_ACHAT_DE_FILTRES_CHARGEUSES_KOMATSU_WA470.pdf", b"%PDF")
    )

    assert result.rfq_number == "BI-19716"
    assert result.needs_verification is True
    assert len(result.items) == 1
    placeholder = result.items[0]
    assert placeholder.description == "ACHAT DE FILTRES CHARGEUSES KOMATSU WA470"
    assert placeholder.unit == "lot"
    assert placeholder.brand == "KOMATSU"
    assert placeholder.needs_manual_review is True


def test_unsupported_type_returns_none() -> None:
    handler, text_extractor = _handler()

    assert handler.parse_document(RawDocument("notes.txt", b"hello")) is None
    text_extractor.extract.assert_not_called()


def test_failing_document_does_not_stop_the_batch() -> None:
    handler, text_extractor = _handler()
    text_extractor.extract.side_effect = [
        ExtractionError("corrupt workbook"),
        ExtractedText(text="2 x Hydraulic cylinder 80mm", method=ExtractionMethod.WORD),
    ]

    results = handler.parse_all(
        [RawDocument("broken.xlsx", b"PK"), RawDocument("demande.docx", b"PK")],
        batch_id="req-42",
    )

    assert [result.filename for result in results] == ["demande.docx"]
    assert results[0].items[0].description == "Hydraulic cylinder 80mm"
    assert results[0].needs_verification is False


def test_signature_image_is_skipped_without_ocr() -> None:
    handler, text_extractor = _handler()

    result = handler.parse_document(RawDocument("image001.png", b"x" * 50_000))

    assert result.extraction_method is ExtractionMethod.SKIPPED_SIGNATURE
    assert result.items == []
    assert result.needs_verification is False
    text_extractor.extract.assert_not_called()


def test_photo_without_nameplate_yields_placeholder() -> None:
    handler, _ = _handler(ExtractedText(text="", method=ExtractionMethod.IMAGE_OCR, low_confidence=True))

    result = handler.parse_document(RawDocument("pompe.jpg", b"x" * 50_000))

    assert result.needs_verification is True
    assert len(result.items) == 1
    assert result.items[0].needs_manual_review is True
    assert result.items[0].is_estimated is True


def test_spreadsheet_grids_without_header_use_line_scanner() -> None:
    with_header = [["Désignation", "Qté"], ["Roulement SKF 6205", "4"]]
    without_header = [["2 x Hydraulic cylinder 80mm"]]
    handler, _ = _handler(
        ExtractedText(text="", method=ExtractionMethod.SPREADSHEET, tables=[with_header, without_header])
    )

    result = handler.parse_document(RawDocument("besoins.xlsx", b"PK"))

    assert [(item.description, item.quantity) for item in result.items] == [
        ("Roulement SKF 6205", 4),
        ("Hydraulic cylinder 80mm", 2),
    ]
    assert result.tables == [with_header, without_header]


def test_items_from_text_prefers_requisition_layout() -> None:
    handler, _ = _handler()

    items = handler.items_from_text(PR_TEXT)

    assert items[0].internal_code == "144850"
    assert handler.items_from_text("Purchase Requisition\n2 x Hydraulic cylinder 80mm")[0].quantity == 2


def test_email_prose_is_flagged_and_carries_contact() -> None:
    handler, _ = _handler()

    result = handler.parse_email_body(PROSE_BODY, subject="Demande RFQ-2024-118")

    assert result.document_type is DocumentType.EMAIL
    assert result.extraction_method is ExtractionMethod.EMAIL_BODY
    assert result.rfq_number == "RFQ-2024-118"
    assert result.items[0].quantity == 3
    assert result.needs_verification is True
    assert result.deadline == "15 mars 2024"
    assert result.contact_name == "JEAN DUPONT"


def test_email_list_falls_back_to_line_scanner() -> None:
    handler, _ = _handler()

    result = handler.parse_email_body("Bonjour,\n2 x Hydraulic cylinder 80mm\n")

    assert result.items[0].description == "Hydraulic cylinder 80mm"
    assert result.needs_verification is False


def test_same_item_in_two_documents_is_merged() -> None:
    results = [
        _result("a.pdf", [ExtractedItem(description="Pump Seal Kit", quantity=2)]),
        _result(
            "b.xlsx",
            [ExtractedItem(description="PUMP SEAL KIT", quantity=2), ExtractedItem(description="V belt SPA 1250")],
            rfq_number="4500123",
            needs_verification=True,
        ),
    ]

    merged = merge_results(results)

    assert [item.description for item in merged.items] == ["Pump Seal Kit", "V belt SPA 1250"]
    assert merged.items[0].notes == "Source: a.pdf"
    assert merged.items[1].notes == "Source: b.xlsx"
    assert merged.rfq_number == "4500123"
    assert merged.needs_manual_review is True
    assert merged.sources == ["a.pdf", "b.xlsx"]


def test_empty_request_gets_placeholder() -> None:
    merged = merge_results([_result("a.pdf", [])])

    assert len(merged.items) == 1
    assert merged.items[0].description == PLACEHOLDER_DESCRIPTION
    assert merged.items[0].quantity == 1
    assert merged.needs_manual_review is True


def test_parse_document_validates_arguments() -> None:
    with pytest.raises(ValueError):
        parse_document()
    with pytest.raises(ValueError):
        parse_document(file_bytes=b"data")
    with pytest.raises(ValueError):
        parse_document(file_path="a.pdf", file_bytes=b"data")
    with pytest.raises(ValueError):
        parse_document(file_path="/nonexistent/quote.pdf")


def test_parse_document_reads_file_from_disk() -> None:
    with TemporaryDirectory() as tmp:
        path = Path(tmp) / "notes.txt"
        path.write_text("2 x Hydraulic cylinder 80mm")

        assert parse_document(file_path=str(path)) is None


def test_parse_email_merges_body_and_attachments() -> None:
    with patch.object(DocumentHandler, "parse_all", return_value=[_result("a.pdf", [ExtractedItem(description="Pump Seal Kit", quantity=2)])]):
        request = parse_email(PROSE_BODY, subject="Demande RFQ-2024-118")

    assert request.rfq_number == "RFQ-2024-118"
    assert request.sources == ["a.pdf", "email_body"]
    assert request.items[0].description == "Pump Seal Kit"
    assert request.needs_manual_review is True

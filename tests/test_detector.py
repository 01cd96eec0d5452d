from __future__ import annotations

from requisition_parser.detector import DocumentDetector
from requisition_parser.models import DocumentType, RawDocument


def test_extension_detection_is_case_insensitive() -> None:
    detector = DocumentDetector()

    assert detector.detect(RawDocument("SCAN.PDF", b"%PDF")) is DocumentType.PDF
    assert detector.detect(RawDocument("besoins.xls", b"", "text/plain")) is DocumentType.EXCEL
    assert detector.detect(RawDocument("old.doc", b"")) is DocumentType.WORD
    assert detector.detect(RawDocument("notes.txt", b"hello")) is None


def test_signature_images_are_recognised() -> None:
    detector = DocumentDetector()
    large = b"x" * 50_000

    assert detector.is_signature_image(RawDocument("image001.png", large))
    assert detector.is_signature_image(RawDocument("Outlook-abc.png", large))
    assert detector.is_signature_image(RawDocument("company_logo.jpg", large))
    assert detector.is_signature_image(RawDocument("plaque.jpg", b"x" * 2_000))
    assert not detector.is_signature_image(RawDocument("plaque.jpg", large))

from __future__ import annotations

import logging

import pytest

from requisition_parser.logger import Timer, get_logger, set_document, start_batch
from requisition_parser.models import ExtractedItem, RawDocument, as_quantity, new_item
from requisition_parser.normalize import cell_text, coerce_number, normalize_unit, parse_quantity


def test_item_rejects_short_description_and_non_positive_quantity() -> None:
    with pytest.raises(ValueError):
        ExtractedItem(description="ab")
    with pytest.raises(ValueError):
        ExtractedItem(description="Pump seal kit", quantity=0)
    with pytest.raises(ValueError):
        ExtractedItem(description="Pump seal kit", quantity=-2)


def test_new_item_drops_garbage_and_applies_defaults() -> None:
    assert new_item("  ab ") is None
    assert new_item(None) is None

    item = new_item("Pump   seal\n kit", 0, None)

    assert item is not None
    assert item.description == "Pump seal kit"
    assert item.quantity == 1
    assert item.unit == "pcs"


def test_whole_quantities_read_as_int() -> None:
    assert as_quantity(2.0) == 2
    assert isinstance(as_quantity(2.0), int)
    assert as_quantity(2.5) == 2.5
    assert new_item("Hydraulic hose", 4.0).quantity == 4


def test_dedup_key_ignores_case() -> None:
    first = ExtractedItem(description="Pump Seal Kit", quantity=2)
    second = ExtractedItem(description="PUMP SEAL KIT", quantity=2)

    assert first.dedup_key == "pump seal kit-2"
    assert first.dedup_key == second.dedup_key


def test_add_note_appends() -> None:
    item = ExtractedItem(description="Pump seal kit")
    item.add_note("URGENT")
    item.add_note("Certificate requested")

    assert item.notes == "URGENT | Certificate requested"


def test_raw_document_size_comes_from_payload() -> None:
    assert RawDocument(filename="a.pdf", content=b"12345").size == 5


def test_number_coercion() -> None:
    assert coerce_number("12,5 kg") == 12.5
    assert coerce_number(3) == 3.0
    assert coerce_number("0") is None
    assert coerce_number("abc") is None
    assert coerce_number(None) is None
    assert parse_quantity("n/a") == 1
    assert parse_quantity("7") == 7.0


def test_unit_and_cell_normalization() -> None:
    assert normalize_unit("Pièces") == "pcs"
    assert normalize_unit("EA") == "pcs"
    assert normalize_unit("kg") == "kg"
    assert normalize_unit("") is None
    assert cell_text(2.0) == "2"
    assert cell_text(None) == ""
    assert cell_text(" SKF ") == "SKF"


def test_context_logger_adds_document_and_batch(caplog: pytest.LogCaptureFixture) -> None:
    logger = get_logger("requisition_parser.tests")
    set_document("quote.pdf")
    start_batch("batch-1")
    try:
        with caplog.at_level(logging.INFO, logger="requisition_parser.tests"):
            logger.info("Stage done", extra_data={"items": 3})
    finally:
        set_document(None)
        start_batch("")

    assert "Stage done [items=3, document=quote.pdf, batch_id=batch-1]" in caplog.messages


def test_timer_measures_elapsed_ms() -> None:
    with Timer("stage") as timer:
        pass

    assert timer.get_elapsed_ms() >= 0
    assert Timer("unused").get_elapsed_ms() == 0

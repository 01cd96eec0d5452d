from __future__ import annotations

from requisition_parser.line_items import GenericLineExtractor


def test_quantity_times_description() -> None:
    items = GenericLineExtractor().extract("2 x Hydraulic cylinder 80mm")

    assert len(items) == 1
    assert items[0].description == "Hydraulic cylinder 80mm"
    assert items[0].quantity == 2
    assert items[0].unit == "pcs"


def test_each_line_template() -> None:
    text = "\n".join(
        [
            "SKF6205 - Roulement à billes rigide - 4 pcs",
            "Filtre à huile moteur: 3 pièces",
            "1. Joint torique NBR 50x3 - 10",
            "• Courroie trapézoïdale SPA - 6",
            "short",
            "Bonjour, voici notre besoin pour le chantier",
        ]
    )

    items = GenericLineExtractor().extract(text)

    assert [(item.description, item.quantity, item.unit) for item in items] == [
        ("Roulement à billes rigide", 4, "pcs"),
        ("Filtre à huile moteur", 3, "pcs"),
        ("Joint torique NBR 50x3", 10, "pcs"),
        ("Courroie trapézoïdale SPA", 6, "pcs"),
    ]
    assert items[0].reference == "SKF6205"


def test_duplicates_are_dropped_case_insensitively() -> None:
    text = "2 x Hydraulic cylinder 80mm\n3 x HYDRAULIC CYLINDER 80MM"

    items = GenericLineExtractor().extract(text)

    assert len(items) == 1
    assert items[0].quantity == 2


def test_item_count_is_capped() -> None:
    text = "\n".join(f"{n} x Spare part number {n:03d}" for n in range(1, 6))

    assert len(GenericLineExtractor(max_items=2).extract(text)) == 2


def test_email_body_prose_request() -> None:
    body = (
        "Bonjour,\n"
        "Nous souhaitons une cotation de 3 unités d'un manomètre qui permet de mesurer "
        "la pression hydraulique. Merci de joindre la fiche technique.\n"
        "Cordialement"
    )

    items = GenericLineExtractor().extract_email_body(body)

    assert len(items) == 1
    assert items[0].description == "MANOMÈTRE (mesurer la pression hydraulique)"
    assert items[0].quantity == 3
    assert items[0].notes == "Technical datasheet requested"
    assert items[0].needs_manual_review is True


def test_email_body_without_product_yields_nothing() -> None:
    assert GenericLineExtractor().extract_email_body("Bonjour, ci-joint notre demande.") == []

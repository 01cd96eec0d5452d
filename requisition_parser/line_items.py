"""Regex line scanner for free text: email bodies, Word text, headerless sheets."""

import re
from typing import Callable, Optional

from requisition_parser.catalog import EQUIPMENT_NOUNS
from requisition_parser.logger import get_logger
from requisition_parser.models import ExtractedItem, new_item
from requisition_parser.normalize import normalize_unit, parse_quantity

logger = get_logger(__name__)

_QTY = r"(\d+(?:[.,]\d+)?)"
_UNIT = r"(pcs?|unités?|kg|m|l|pièces?|ea|each)?"

ItemBuilder = Callable[[re.Match], Optional[ExtractedItem]]


def _item(description: Optional[str], quantity: Optional[str], unit: Optional[str] = None, reference: Optional[str] = None) -> Optional[ExtractedItem]:
    return new_item(
        (description or "").strip(),
        parse_quantity(quantity),
        normalize_unit(unit),
        reference=reference.strip() if reference else None,
    )


# Ordered line shapes; the first template matching a line decides its item
LINE_TEMPLATES: list[tuple[str, re.Pattern, ItemBuilder]] = [
    (
        "reference_description_quantity",
        re.compile(rf"^([A-Z0-9][\w\-]+)\s*[-–:]\s*(.{{10,}}?)\s*[-–:]\s*{_QTY}\s*{_UNIT}", re.IGNORECASE),
        lambda m: _item(m.group(2), m.group(3), m.group(4), reference=m.group(1)),
    ),
    (
        "quantity_times_description",
        re.compile(rf"^{_QTY}\s*[xX×]\s*(.{{10,}})"),
        lambda m: _item(m.group(2), m.group(1)),
    ),
    (
        "description_colon_quantity",
        re.compile(rf"^(.{{10,}}?)\s*:\s*{_QTY}\s*{_UNIT}", re.IGNORECASE),
        lambda m: _item(m.group(1), m.group(2), m.group(3)),
    ),
    (
        "numbered_list",
        re.compile(rf"^\d+[.)]\s*(.{{10,}}?)\s*[-–:]\s*{_QTY}\s*(pcs?|unités?)?", re.IGNORECASE),
        lambda m: _item(m.group(1), m.group(2), m.group(3)),
    ),
    (
        "bulleted_list",
        re.compile(rf"^[-•]\s*(.{{10,}}?)\s*[-–:]\s*{_QTY}"),
        lambda m: _item(m.group(1), m.group(2)),
    ),
]

EMAIL_QUANTITY_PATTERNS = (
    re.compile(r"cotation\s+de\s+(\d+)\s+unit[ée]s?", re.IGNORECASE),
    re.compile(r"(\d+)\s+unit[ée]s?\s+de\s+ce", re.IGNORECASE),
    re.compile(r"commander\s+(\d+)\s+(?:unit[ée]s?|pi[èe]ces?|pcs)", re.IGNORECASE),
    re.compile(r"besoin\s+de\s+(\d+)\s+(?:unit[ée]s?|pi[èe]ces?)", re.IGNORECASE),
    re.compile(r"acqu[ée]rir\s+(\d+)\s+(?:unit[ée]s?|pi[èe]ces?)", re.IGNORECASE),
    re.compile(r"(\d+)\s+(?:unit[ée]s?|pi[èe]ces?|pcs)\s+(?:de|du|des)", re.IGNORECASE),
)

EMAIL_PRODUCT_PATTERNS = (
    re.compile(r"appareil\s+(?:d[ée]nomm[ée]|appel[ée])\s+([^.]+?)(?:\s+qui|\s+permet|\s+pour|,|\.|$)", re.IGNORECASE),
    re.compile(r"mat[ée]riel\s+(?:d[ée]nomm[ée]|appel[ée])\s+([^.]+?)(?:\s+qui|\s+permet|\s+pour|,|\.|$)", re.IGNORECASE),
    re.compile(
        r"(?:un|une|des)\s+([a-zéèàùâêîôûç\-]+(?:\s+(?:ou|/)\s+[a-zéèàùâêîôûç\-]+)?)\s+(?:qui\s+permet|pour\s+mesurer|pour\s+le|servant)",
        re.IGNORECASE,
    ),
)

_EQUIPMENT = tuple(re.compile(noun, re.IGNORECASE) for noun in EQUIPMENT_NOUNS)
_USAGE = re.compile(r"(?:qui\s+)?permet(?:tant)?\s+de\s+([^.]+)", re.IGNORECASE)

# (pattern, note added to the email item when the body mentions it)
REQUEST_HINTS = (
    (re.compile(r"fiche\s+technique", re.IGNORECASE), "Technical datasheet requested"),
    (re.compile(r"d[ée]lai\s+de\s+livraison", re.IGNORECASE), "Delivery lead time to be confirmed"),
    (re.compile(r"urgent", re.IGNORECASE), "URGENT"),
    (re.compile(r"certificat", re.IGNORECASE), "Certificate requested"),
)


class GenericLineExtractor:
    """Matches each line of free text against ordered line templates."""

    def __init__(self, max_items: int = 100):
        self.max_items = max_items

    def extract(self, text: str) -> list[ExtractedItem]:
        items: list[ExtractedItem] = []
        seen: set[str] = set()

        for line in text.split("\n"):
            trimmed = line.strip()
            if len(trimmed) < 10 or len(trimmed) > 500:
                continue

            for name, pattern, build in LINE_TEMPLATES:
                match = pattern.match(trimmed)
                if not match:
                    continue
                item = build(match)
                if item is not None and len(item.description) > 5 and item.description.lower() not in seen:
                    seen.add(item.description.lower())
                    items.append(item)
                break

            if len(items) >= self.max_items:
                logger.debug("Generic line extraction capped", extra_data={"max_items": self.max_items})
                break

        return items

    def extract_email_body(self, body: str) -> list[ExtractedItem]:
        """Best-guess single item from a French prose request.

        Always flagged for manual review: the quantity and product are
        inferred from phrasing, not read from a table.
        """
        quantity = 1
        for pattern in EMAIL_QUANTITY_PATTERNS:
            match = pattern.search(body)
            if match:
                quantity = int(match.group(1))
                break

        product_name = ""
        for pattern in EMAIL_PRODUCT_PATTERNS:
            match = pattern.search(body)
            if match:
                product_name = match.group(1).strip()
                break

        terms: list[str] = []
        for pattern in _EQUIPMENT:
            for found in pattern.findall(body):
                term = found.upper()
                if term not in terms:
                    terms.append(term)

        if terms:
            description = " / ".join(terms)
        elif product_name:
            description = product_name.upper()
        else:
            return []

        usage = _USAGE.search(body)
        if usage:
            description = f"{description} ({usage.group(1).strip()})"

        notes = [note for pattern, note in REQUEST_HINTS if pattern.search(body)]
        item = new_item(
            description,
            quantity,
            "pcs",
            notes=" | ".join(notes) or None,
            needs_manual_review=True,
            is_estimated=False,
        )
        return [item] if item is not None else []

"""Table parser for ERP-exported Purchase Requisition documents.

A requisition lists one item per table row::

    Line  Quantity  UOM  Item Code  Item Description        GL Code   Cost
    10    3         EA   144850     FAN AXIAL 24V HTM-56-4T  1500405   0   0
                                    MOTOR MOUNTED

Depending on the layout tool, the description can wrap onto following
lines, appear in a separate "Part Number" column, or lose its column
alignment altogether. Several parsing methods are therefore tried in
order; the next one runs only when the previous one found nothing.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from requisition_parser.catalog import find_brand, find_supplier_code
from requisition_parser.logger import get_logger
from requisition_parser.models import ExtractedItem, new_item
from requisition_parser.normalize import collapse_spaces, normalize_unit

logger = get_logger(__name__)

PR_KEYWORDS = ("purchase requisition", "item code", "item description")
PR_ROW_SHAPE = re.compile(r"\b\d{1,2}\s+\d+\s+EA\s+\d{5,6}\s+[A-Z]", re.IGNORECASE)

_UNITS = r"EA|PCS|PC|KG|M|L|SET|UNIT|LOT"
_CURRENCY = r"USD|EUR|XOF"

GLOBAL_ROW = re.compile(
    rf"\b(\d{{1,3}})\s+(\d+)\s+({_UNITS})\s+(\d{{5,8}})\s+"
    rf"([A-Z][A-Z0-9\s\-./&,()]+?)"
    rf"(?:\s+1500\d+|\s+\d+\s+\d+\s*(?:{_CURRENCY})?|\s*$)",
    re.IGNORECASE,
)
PART_NUMBER_ROW = re.compile(
    r"\b(\d{1,2})\s+(\d+)\s+(EA|PCS|PC|KG|M|L|SET|UNIT)\s+(\d{3,}\s+\d{3,}|\d{5,})\s+([A-Z][A-Z\s]+)",
    re.IGNORECASE,
)
MAIN_ROW = re.compile(rf"^\s*(\d{{1,2}})\s+(\d+)\s+({_UNITS})\s+(\d{{5,6}})\s+(.+)", re.IGNORECASE)
CODE_ROW = re.compile(r"\b(\d{5,6})\s+([A-Z][A-Z0-9\s\-./&,]+)", re.IGNORECASE)

_GL_CODE_TAIL = re.compile(r"\s+1500\d+.*$", re.IGNORECASE | re.DOTALL)
_AMOUNT_TAIL = re.compile(rf"\s+\d+\s+\d+\s*(?:{_CURRENCY})?.*$", re.IGNORECASE | re.DOTALL)
_CURRENCY_TAIL = re.compile(rf"\s+\d+\s*(?:{_CURRENCY}).*$", re.IGNORECASE | re.DOTALL)
_ZERO_FILLER_TAIL = re.compile(r"\s+0\s+0\s*$")

_CONTINUATION_STOP = re.compile(r"^(Additional|Total|Page|\d{1,3}\s+\d+\s+(EA|PCS))", re.IGNORECASE)
_TABLE_HEADER = re.compile(r"^(Line|Quantity|UOM|Item|Sub|Activity|GL|Code|Cost)", re.IGNORECASE)
_CURRENCY_ONLY = re.compile(rf"^({_CURRENCY}|\d+\s*({_CURRENCY}))$", re.IGNORECASE)
_SECTION_END = ("Additional Description", "Total in USD", "Page ")
_TEXT_RUN = re.compile(r"^([A-Z0-9][A-Z0-9\s\-./&,]+)", re.IGNORECASE)
_NOT_DESCRIPTION = re.compile(rf"^({_CURRENCY}|Total|Cost|Max)", re.IGNORECASE)

_ADDITIONAL_HEADING = re.compile(r"^Additional\s*(Description)?", re.IGNORECASE)
_ADDITIONAL_HEADING_PREFIX = re.compile(r"^Additional\s*(Description)?[:\s]*", re.IGNORECASE)
_ADDITIONAL_END = re.compile(r"^(Line\s+Quantity|\d{1,2}\s+\d+\s+(EA|PCS)|Total\s+in)", re.IGNORECASE)
_SIGNATURE_LINE = re.compile(r"^(HOD|signature|name\s*&)", re.IGNORECASE)
_SERIAL = re.compile(r"SERIAL\s*:\s*([A-Z0-9]+)", re.IGNORECASE)

# Lines Method 0 must never take for an item description
_EMAIL_METADATA = (
    re.compile(r"^(From|To|Cc|Bcc|Subject|Sent|Date|Re:|Fwd:|De:|À:|Objet:)\s*:", re.IGNORECASE),
    re.compile(r"^(Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday),?\s+\w+\s+\d{1,2},?\s+\d{4}", re.IGNORECASE),
    re.compile(r"^(Lundi|Mardi|Mercredi|Jeudi|Vendredi|Samedi|Dimanche),?\s+\d{1,2}\s+\w+\s+\d{4}", re.IGNORECASE),
    re.compile(r"^\s*(From|Sent|Subject|To|Cc)\s+", re.IGNORECASE),
    re.compile(r"\d{1,2}:\d{2}\s*(AM|PM)?\s*$", re.IGNORECASE),
)
_COMPANY_HEADER = (
    re.compile(r"\b(Capital\s+social|RCCM|RC\s*:|NIF|SIRET|SIREN)\b", re.IGNORECASE),
    re.compile(r"\b(Bon\s+de\s+commande|Purchase\s+Order)\b.*\b(Num[eé]ro|Number|No\.?)\b", re.IGNORECASE),
    re.compile(r"\bTEL/FAX\s*:", re.IGNORECASE),
    re.compile(r"\bBP\s+\d+\b", re.IGNORECASE),
)


def looks_like_requisition(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in PR_KEYWORDS) or bool(PR_ROW_SHAPE.search(text))


def _unit(raw: str) -> str:
    return "pcs" if raw.upper() == "EA" else (normalize_unit(raw) or "pcs")


def _strip_row_tail(description: str, price_tail: re.Pattern = _AMOUNT_TAIL) -> str:
    """Remove GL code, price and currency columns trailing a description."""
    description = _GL_CODE_TAIL.sub("", description).strip()
    description = price_tail.sub("", description).strip()
    description = _ZERO_FILLER_TAIL.sub("", description).strip()
    return collapse_spaces(description)


def _drop_repeated_half(description: str, prefix_chars: int, same_prefix: bool = False) -> str:
    """Turn "PUMP SEAL KIT - PUMP SEAL KIT 2" into "PUMP SEAL KIT".

    With ``same_prefix`` both halves must share their first ``prefix_chars``
    characters; otherwise the second half must start with the first half's.
    """
    parts = description.split(" - ")
    if len(parts) == 2:
        first, second = parts[0].strip(), parts[1].strip()
        head = first[:prefix_chars].lower()
        if same_prefix:
            repeated = head == second[:prefix_chars].lower()
        else:
            repeated = second.lower().startswith(head)
        if repeated:
            return first
    return description


def clean_description(description: str) -> str:
    description = re.sub(rf"\s+({_CURRENCY})\s*", " ", description, flags=re.IGNORECASE)
    description = re.sub(rf"\s+\d+\s+({_CURRENCY})", "", description, flags=re.IGNORECASE)
    description = collapse_spaces(description)
    description = _drop_repeated_half(description, 15)
    description = re.sub(r"\s+0+\s*$", "", description)
    return description.strip()


@dataclass
class _Row:
    """An item row being assembled before it becomes an ExtractedItem."""

    internal_code: Optional[str]
    description: str
    quantity: float
    unit: str
    line_number: Optional[int] = None
    continuation: list[str] = field(default_factory=list)


class _State(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"


class PurchaseRequisitionExtractor:
    """Extracts item rows from Purchase Requisition text."""

    def __init__(self, max_quantity: int = 100_000):
        self.max_quantity = max_quantity

    @staticmethod
    def detect(text: str) -> bool:
        return looks_like_requisition(text)

    def methods(self) -> list[tuple[str, Callable[[str], list[ExtractedItem]]]]:
        return [
            ("global_regex", self.extract_global),
            ("part_number", self.extract_part_numbers),
            ("multiline", self.extract_multiline),
            ("item_code", self.extract_item_codes),
        ]

    def extract(self, text: str) -> list[ExtractedItem]:
        """Run the parsing methods in order until one finds items."""
        clean_text = text.replace("\r\n", "\n").replace("\r", "\n")

        items: list[ExtractedItem] = []
        for name, method in self.methods():
            items = method(clean_text)
            logger.debug("Requisition method tried", extra_data={"method": name, "item_count": len(items)})
            if items:
                break

        if items:
            for item in items:
                self._complete_codes(item)
            self._apply_additional_description(items, clean_text)

        logger.info("Purchase requisition parsed", extra_data={"item_count": len(items)})
        return items

    # ---- Method 0 ----

    def extract_global(self, text: str) -> list[ExtractedItem]:
        """One regex over the whole text, deduplicated by item code."""
        rows: dict[str, tuple[_Row, int]] = {}

        for match in GLOBAL_ROW.finditer(text):
            quantity = int(match.group(2))
            code = match.group(4)
            description = _strip_row_tail(match.group(5).strip())

            if self._is_email_metadata(description) or self._is_company_header(description):
                logger.debug("Row skipped as header text", extra_data={"description": description[:50]})
                continue
            if not 0 < quantity <= self.max_quantity:
                logger.debug("Row skipped, quantity out of range", extra_data={"quantity": quantity})
                continue
            if len(description) > 5 and code not in rows:
                row = _Row(code, description, quantity, _unit(match.group(3)), int(match.group(1)))
                rows[code] = (row, match.start(4))

        items = []
        for row, position in rows.values():
            description = row.description
            for line in self._continuation_lines(text, position):
                if line.lower()[:15] not in description.lower():
                    description = f"{description} {line}"
            description = _drop_repeated_half(description, 20, same_prefix=True)

            item = new_item(
                description,
                row.quantity,
                row.unit,
                internal_code=row.internal_code,
                original_line=row.line_number,
            )
            if item is not None:
                items.append(item)
        return items

    @staticmethod
    def _continuation_lines(text: str, position: int) -> list[str]:
        """Wrapped description lines following the row that starts at ``position``."""
        lines = text[position:].split("\n")[1:]
        collected = []
        for line in lines:
            trimmed = line.strip()
            if not trimmed or _CONTINUATION_STOP.match(trimmed):
                break
            if _TABLE_HEADER.match(trimmed) or re.match(rf"^({_CURRENCY})", trimmed, re.IGNORECASE):
                continue
            if re.match(r"^[A-Z]", trimmed, re.IGNORECASE) and len(trimmed) > 3:
                addition = re.sub(rf"\s+({_CURRENCY}).*$", "", trimmed, flags=re.IGNORECASE).strip()
                addition = re.sub(r"\s+\d+\s*$", "", addition).strip()
                if len(addition) > 3:
                    collected.append(addition)
        return collected

    @staticmethod
    def _is_email_metadata(text: str) -> bool:
        return any(pattern.search(text) for pattern in _EMAIL_METADATA)

    @staticmethod
    def _is_company_header(text: str) -> bool:
        return any(pattern.search(text) for pattern in _COMPANY_HEADER)

    # ---- Method 1 ----

    def extract_part_numbers(self, text: str) -> list[ExtractedItem]:
        """Layout with a separate "Part Number" column."""
        if "Part Number" not in text:
            return []

        items = []
        for match in PART_NUMBER_ROW.finditer(text):
            part_number = collapse_spaces(match.group(4))
            description = re.sub(r"\s+Max\s+Stock.*$", "", match.group(5).strip(), flags=re.IGNORECASE | re.DOTALL)
            if len(description.strip()) <= 3:
                continue
            item = new_item(
                description,
                int(match.group(2)),
                _unit(match.group(3)),
                reference=part_number.replace(" ", ""),
                supplier_code=part_number,
                original_line=int(match.group(1)),
            )
            if item is not None:
                items.append(item)
        return items

    # ---- Method 2 ----

    def extract_multiline(self, text: str) -> list[ExtractedItem]:
        """Line-by-line state machine for rows whose description wraps.

        IDLE: waiting for a main row. ACCUMULATING: a row is open and
        following lines are appended to it until the next main row, a
        section terminator or the end of input flushes it.
        """
        items: list[ExtractedItem] = []
        state = _State.IDLE
        current: Optional[_Row] = None

        def flush() -> None:
            if current is not None:
                item = self._finalize_row(current)
                if item is not None:
                    items.append(item)

        for line in text.split("\n"):
            trimmed = line.strip()
            main = MAIN_ROW.match(line)

            if main:
                flush()
                current = _Row(
                    internal_code=main.group(4),
                    description=_strip_row_tail(main.group(5).strip(), _CURRENCY_TAIL),
                    quantity=int(main.group(2)),
                    unit=_unit(main.group(3)),
                    line_number=int(main.group(1)),
                )
                state = _State.ACCUMULATING
                continue

            if state is not _State.ACCUMULATING:
                continue

            if trimmed.startswith(_SECTION_END):
                flush()
                current, state = None, _State.IDLE
                continue
            if not trimmed or _TABLE_HEADER.match(trimmed) or _CURRENCY_ONLY.match(trimmed):
                continue

            text_run = _TEXT_RUN.match(trimmed)
            if text_run and len(text_run.group(1)) > 3:
                addition = re.sub(r"\s+USD.*$", "", text_run.group(1).strip(), flags=re.IGNORECASE)
                addition = re.sub(r"\s+\d+\s*$", "", addition)
                if len(addition) > 3:
                    current.continuation.append(addition)

        flush()
        return items

    @staticmethod
    def _finalize_row(row: _Row) -> Optional[ExtractedItem]:
        description = row.description
        for line in row.continuation:
            if line.lower()[:10] not in description.lower():
                description = f"{description} {line}"

        description = clean_description(description)
        if len(description) < 5:
            return None

        return new_item(
            description,
            row.quantity,
            row.unit,
            internal_code=row.internal_code,
            original_line=row.line_number,
        )

    # ---- Method 3 ----

    def extract_item_codes(self, text: str) -> list[ExtractedItem]:
        """Loosest match: any 5-6 digit code followed by capitalised text."""
        items: list[ExtractedItem] = []
        seen_codes: set[str] = set()

        for line in text.split("\n"):
            if _NOT_DESCRIPTION.match(line.strip()):
                continue
            match = CODE_ROW.search(line)
            if not match:
                continue

            code, description = match.group(1), match.group(2).strip()
            # 1500xxxx are GL accounts, not items
            if code.startswith("1500") or _NOT_DESCRIPTION.match(description):
                continue

            description = _GL_CODE_TAIL.sub("", description).strip()
            description = _CURRENCY_TAIL.sub("", description).strip()
            description = re.sub(r"\s+0\s*$", "", description).strip()

            if len(description) > 5 and code not in seen_codes:
                item = new_item(
                    description,
                    1,
                    "pcs",
                    internal_code=code,
                    needs_manual_review=True,
                    is_estimated=True,
                )
                if item is not None:
                    seen_codes.add(code)
                    items.append(item)
        return items

    # ---- Enrichment ----

    @staticmethod
    def additional_description(text: str) -> str:
        """Content of the "Additional Description" block, possibly multi-line."""
        found = False
        content: list[str] = []

        for line in text.split("\n"):
            trimmed = line.strip()

            if _ADDITIONAL_HEADING.match(trimmed):
                found = True
                same_line = _ADDITIONAL_HEADING_PREFIX.sub("", trimmed).strip()
                if len(same_line) > 5 and not re.match(r"^HOD", same_line, re.IGNORECASE):
                    content.append(same_line)
                continue

            if not found:
                continue
            if _ADDITIONAL_END.match(trimmed):
                break
            if not trimmed or _SIGNATURE_LINE.match(trimmed):
                continue

            value = re.sub(r"\s+HOD\s+name.*$", "", trimmed, flags=re.IGNORECASE).strip()
            value = re.sub(r"\s+signature.*$", "", value, flags=re.IGNORECASE).strip()
            if len(value) > 3:
                content.append(value)

        return collapse_spaces(" ".join(content))

    def _apply_additional_description(self, items: list[ExtractedItem], text: str) -> None:
        info = self.additional_description(text)
        if not info:
            return

        logger.debug("Additional description found", extra_data={"content": info[:80]})
        brand = find_brand(info)
        serial = _SERIAL.search(info)
        for item in items:
            if not item.brand and brand:
                item.brand = brand
            if not item.notes:
                item.notes = info
            if serial and not item.serial_number:
                item.serial_number = serial.group(1)

    @staticmethod
    def _complete_codes(item: ExtractedItem) -> None:
        if not item.supplier_code:
            item.supplier_code = find_supplier_code(item.description)
        if not item.brand:
            item.brand = find_brand(item.description)
        if not item.reference:
            item.reference = item.supplier_code or item.internal_code

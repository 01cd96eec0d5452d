"""Data models for requisition parser."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

Quantity = Union[int, float]
Grid = list[list[str]]

DEFAULT_UNIT = "pcs"
MIN_DESCRIPTION_CHARS = 3


class DocumentType(str, Enum):
    PDF = "pdf"
    EXCEL = "excel"
    WORD = "word"
    IMAGE = "image"
    EMAIL = "email"


class ExtractionMethod(str, Enum):
    LAYOUT_TOOL = "layout_tool"
    LIBRARY_PARSER = "library_parser"
    OCR = "ocr"
    FILENAME_HEURISTIC = "filename_heuristic"
    SPREADSHEET = "spreadsheet"
    WORD = "word"
    IMAGE_OCR = "image_ocr"
    EMAIL_BODY = "email_body"
    SKIPPED_SIGNATURE = "skipped_signature"


@dataclass(frozen=True)
class RawDocument:
    """A document handed over by the caller: name, declared type and bytes."""

    filename: str
    content: bytes
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class ExtractedText:
    """Raw text of one document and how it was obtained."""

    text: str
    method: ExtractionMethod
    low_confidence: bool = False
    tables: list[Grid] = field(default_factory=list)


@dataclass
class ExtractedItem:
    """One normalized line of a procurement request."""

    description: str
    quantity: Quantity = 1
    unit: str = DEFAULT_UNIT
    reference: Optional[str] = None
    supplier_code: Optional[str] = None
    internal_code: Optional[str] = None
    brand: Optional[str] = None
    notes: Optional[str] = None
    serial_number: Optional[str] = None
    original_line: Optional[int] = None
    needs_manual_review: bool = False
    is_estimated: bool = False

    def __post_init__(self) -> None:
        if not self.description or len(self.description.strip()) < MIN_DESCRIPTION_CHARS:
            raise ValueError(f"Item description too short: {self.description!r}")
        if self.quantity <= 0:
            raise ValueError(f"Item quantity must be positive, got {self.quantity}")
        if not self.unit:
            self.unit = DEFAULT_UNIT

    @property
    def dedup_key(self) -> str:
        """Key used to drop the same item found in several documents."""
        return f"{self.description.lower()}-{self.quantity}"

    def add_note(self, note: str) -> None:
        self.notes = f"{self.notes} | {note}" if self.notes else note


def as_quantity(value: float) -> Quantity:
    """Return whole numbers as int so 2.0 reads as 2."""
    return int(value) if float(value).is_integer() else value


def new_item(description: Optional[str], quantity: Optional[float] = None, unit: Optional[str] = None, **fields) -> Optional[ExtractedItem]:
    """Build an item, or return None for a garbage candidate.

    Whitespace in the description is collapsed, a missing or non-positive
    quantity becomes 1 and a missing unit becomes "pcs".
    """
    text = " ".join((description or "").split())
    if len(text) < MIN_DESCRIPTION_CHARS:
        return None
    qty = as_quantity(quantity) if quantity is not None and quantity > 0 else 1
    return ExtractedItem(description=text, quantity=qty, unit=(unit or DEFAULT_UNIT), **fields)


@dataclass
class ExtractionResult:
    """Result of extracting one document."""

    filename: str
    document_type: DocumentType
    text: str
    items: list[ExtractedItem]
    extraction_method: ExtractionMethod
    rfq_number: Optional[str] = None
    needs_verification: bool = False
    deadline: Optional[str] = None
    contact_name: Optional[str] = None
    contact_role: Optional[str] = None
    contact_phone: Optional[str] = None
    is_urgent: bool = False
    tables: list[Grid] = field(default_factory=list)


@dataclass
class MergedRequest:
    """Items of several documents assembled into one price request."""

    items: list[ExtractedItem]
    rfq_number: Optional[str] = None
    needs_manual_review: bool = False
    sources: list[str] = field(default_factory=list)

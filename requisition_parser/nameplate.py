"""Part number, model and serial reading from OCR'd equipment photos."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from requisition_parser.catalog import NAMEPLATE_BRANDS, find_brand
from requisition_parser.models import ExtractedItem

PART_NUMBER_PATTERNS = (
    re.compile(r"P/N[:\s]*([A-Z0-9\-/ ]+)"),
    re.compile(r"PART\s*(?:NO|NUMBER|#)?[:\s]*([A-Z0-9\-/ ]+)"),
    re.compile(r"(\d{3}\s*\d{4})"),  # 710 0321
    re.compile(r"REF[:\s]*([A-Z0-9\-/]+)"),
)
MODEL_PATTERN = re.compile(r"MODEL[:\s]*([A-Z0-9.\-/]+)")
SERIAL_PATTERNS = (
    re.compile(r"SERIAL[:\s]*([A-Z0-9]+)"),
    re.compile(r"S/N[:\s]*([A-Z0-9]+)"),
    re.compile(r"\bSN[:\s]*([A-Z0-9]+)"),
)


@dataclass
class NameplateInfo:
    part_number: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    equipment: Optional[str] = None

    @property
    def identified(self) -> bool:
        return bool(self.part_number or self.model or self.serial)


def _first(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return re.sub(r"\s+", " ", match.group(1).strip())
    return None


def read_nameplate(ocr_text: str, filename: str) -> NameplateInfo:
    text = (ocr_text or "").upper()
    stem = Path(filename).stem.upper()

    info = NameplateInfo(
        part_number=_first(PART_NUMBER_PATTERNS, text),
        model=_first((MODEL_PATTERN,), text),
        serial=_first(SERIAL_PATTERNS, text),
        brand=find_brand(text, NAMEPLATE_BRANDS) or find_brand(stem, NAMEPLATE_BRANDS),
    )

    if "SPICER" in text or "DANA" in text:
        info.brand = "DANA SPICER"
        info.description = "OFF-HIGHWAY COMPONENT"

    if stem and stem != info.brand:
        info.equipment = stem
    return info


def nameplate_item(ocr_text: str, filename: str) -> ExtractedItem:
    """One item for a photographed part, or a placeholder asking for identification."""
    info = read_nameplate(ocr_text, filename)

    if not info.identified:
        return ExtractedItem(
            description=f"Part to identify (see image: {filename})",
            quantity=1,
            unit="pcs",
            needs_manual_review=True,
            is_estimated=True,
            original_line=0,
            notes="OCR inconclusive - manual check required",
        )

    description = " - ".join(part for part in (info.brand, info.description) if part)
    notes = [
        label + value
        for label, value in (("Model: ", info.model), ("S/N: ", info.serial), ("Equipment: ", info.equipment))
        if value
    ]
    return ExtractedItem(
        description=description or f"Part to identify from image {filename}",
        quantity=1,
        unit="pcs",
        supplier_code=info.part_number,
        reference=info.part_number,
        brand=info.brand,
        serial_number=info.serial,
        notes=" | ".join(notes) or None,
        needs_manual_review=True,
        is_estimated=False,
        original_line=0,
    )

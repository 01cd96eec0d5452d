"""Numeric coercion and unit normalization shared by the extractors."""

import re
from typing import Any, Optional

_PIECE_UNITS = {"pc", "pcs", "pce", "pces", "off", "ea", "each", "piece", "pieces", "pièce", "pièces", "unite", "unites", "unité", "unités", "u"}
_NON_NUMERIC = re.compile(r"[^\d.]")


def cell_text(value: Any) -> str:
    """Render a spreadsheet cell as text, 2.0 as "2" and None as ""."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def coerce_number(value: Any) -> Optional[float]:
    """Strip everything but digits and the decimal mark, None if nothing positive remains."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    digits = _NON_NUMERIC.sub("", str(value).replace(",", ".", 1))
    try:
        number = float(digits)
    except ValueError:
        return None
    return number if number > 0 else None


def parse_quantity(value: Any, default: float = 1) -> float:
    """Coerce a quantity, falling back to ``default`` when unparseable."""
    number = coerce_number(value)
    return default if number is None else number


def normalize_unit(value: Optional[str]) -> Optional[str]:
    """Map piece synonyms to "pcs" and lower-case everything else."""
    if not value:
        return None
    unit = value.strip().lower().rstrip(".")
    if not unit:
        return None
    return "pcs" if unit in _PIECE_UNITS else unit


def collapse_spaces(text: str) -> str:
    return re.sub(r"\s{2,}", " ", text).strip()

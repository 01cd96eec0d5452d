"""Header-row sniffing and column-role assignment for spreadsheet grids."""

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from requisition_parser.catalog import SPREADSHEET_NOISE, find_brand
from requisition_parser.logger import get_logger
from requisition_parser.models import ExtractedItem, Grid, new_item
from requisition_parser.normalize import coerce_number, normalize_unit

logger = get_logger(__name__)

DESCRIPTION_HEADERS = ("désignation", "designation", "description", "libellé", "libelle", "article", "item", "produit")
QUANTITY_HEADERS = ("qte", "qty", "quantité", "quantity", "qté", "sum of qty", "total qty", "demandées", "commander")
REFERENCE_HEADERS = ("code article", "code", "réf", "référence", "reference", "part number", "part")
UNIT_HEADERS = ("unité", "unit", "uom")
DIAMETER_HEADERS = ("diameter", "diamètre", "nominal", "size", "dimension")

_NUMERIC_CELL = re.compile(r"^\d+([.,]\d+)?$")
_ORDER_NUMBER = re.compile(r"^\d{1,2}$")
_METRE_QUANTITY = re.compile(r"\d\s*M$")


@dataclass
class ColumnMap:
    header_row: int
    description: Optional[int] = None
    quantity: Optional[int] = None
    reference: Optional[int] = None
    unit: Optional[int] = None
    diameter: Optional[int] = None


def find_column(cells: Sequence[str], patterns: Sequence[str], exclude: Sequence[str] = ()) -> Optional[int]:
    """Index of the first cell containing one of ``patterns`` and none of ``exclude``."""
    for index, cell in enumerate(cells):
        if any(word in cell for word in exclude):
            continue
        if any(pattern in cell for pattern in patterns):
            return index
    return None


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return (row[index] or "").strip()


class SpreadsheetColumnResolver:
    """Maps a sheet's columns to item fields and reads one item per row."""

    def __init__(self, header_scan_rows: int = 20, max_quantity: int = 100_000):
        self.header_scan_rows = header_scan_rows
        self.max_quantity = max_quantity

    def resolve_header(self, grid: Grid) -> Optional[ColumnMap]:
        """Find the header row among the first rows of the grid."""
        for index, row in enumerate(grid[: self.header_scan_rows]):
            cells = [(cell or "").lower() for cell in row]
            columns = ColumnMap(
                header_row=index,
                description=find_column(cells, DESCRIPTION_HEADERS, exclude=("code",)),
                quantity=find_column(cells, QUANTITY_HEADERS),
                reference=find_column(cells, REFERENCE_HEADERS),
                unit=find_column(cells, UNIT_HEADERS),
                diameter=find_column(cells, DIAMETER_HEADERS),
            )
            if columns.description is not None or (
                columns.reference is not None and columns.quantity is not None
            ):
                logger.debug("Spreadsheet header found", extra_data={"row": index, "columns": columns})
                return columns
        return None

    def extract_items(self, grid: Grid) -> Optional[list[ExtractedItem]]:
        """Read items below the header row.

        Returns:
            The items, or None when no header row was recognised so the caller
            can fall back to scanning the flattened text.
        """
        columns = self.resolve_header(grid)
        if columns is None:
            return None

        items: list[ExtractedItem] = []
        last_description = ""

        for row in grid[columns.header_row + 1 :]:
            if not any((cell or "").strip() for cell in row):
                continue

            description = self._description(row, columns)
            # Merged description cells leave the following rows blank
            if not description and last_description:
                description = last_description
            elif description:
                last_description = description

            if self._is_noise(description) or len(description) < 3:
                continue

            diameter = _cell(row, columns.diameter)
            if diameter and diameter not in ("0", "0 mm"):
                description = f"{description} - {diameter}"

            quantity = self._quantity(row, columns)
            if quantity is None:
                continue

            reference = _cell(row, columns.reference)
            if len(reference) <= 2 or _ORDER_NUMBER.match(reference):
                reference = ""

            item = new_item(
                description,
                quantity,
                self._unit(row, columns),
                reference=reference or None,
                supplier_code=reference or None,
                brand=find_brand(description),
            )
            if item is not None:
                items.append(item)

        logger.debug("Spreadsheet items extracted", extra_data={"item_count": len(items)})
        return items

    @staticmethod
    def flatten(grid: Grid) -> str:
        return "\n".join(" ".join(cell for cell in row if cell) for row in grid)

    @staticmethod
    def _description(row: Sequence[str], columns: ColumnMap) -> str:
        description = _cell(row, columns.description)
        if description:
            return description

        skipped = {columns.reference, columns.quantity, columns.unit}
        candidates = [
            (cell or "").strip()
            for index, cell in enumerate(row)
            if index not in skipped
        ]
        candidates = [c for c in candidates if len(c) > 10 and not _NUMERIC_CELL.match(c)]
        return max(candidates, key=len, default="")

    @staticmethod
    def _is_noise(description: str) -> bool:
        lowered = description.lower()
        return lowered == "total" or any(word in lowered for word in SPREADSHEET_NOISE)

    def _quantity(self, row: Sequence[str], columns: ColumnMap) -> Optional[float]:
        quantity = coerce_number(_cell(row, columns.quantity)) if columns.quantity is not None else None
        if quantity is not None:
            return quantity

        for index, cell in enumerate(row):
            if index in (columns.description, columns.reference):
                continue
            value = coerce_number(cell)
            if value is not None and value < self.max_quantity:
                return value
        return None

    @staticmethod
    def _unit(row: Sequence[str], columns: ColumnMap) -> str:
        unit = "pcs"
        raw_unit = _cell(row, columns.unit)
        if raw_unit and len(raw_unit) < 10:
            unit = normalize_unit(raw_unit) or unit
        if _METRE_QUANTITY.search(_cell(row, columns.quantity).upper()):
            unit = "m"
        return unit

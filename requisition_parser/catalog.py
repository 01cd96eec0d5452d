"""Static brand and keyword tables plus the matchers that read them.

Order inside each table is priority: the first entry found wins, so longer
or more specific names must come before the short tokens they contain.
"""

import re
from typing import Optional

KNOWN_BRANDS: tuple[str, ...] = (
    # Heavy equipment
    "TEREX", "CATERPILLAR", "CAT", "KOMATSU", "HITACHI", "VOLVO", "LIEBHERR",
    "SANDVIK", "EPIROC", "METSO", "ATLAS COPCO", "JOHN DEERE", "BELL",
    # Bearings
    "SKF", "FAG", "NSK", "NTN", "TIMKEN", "INA", "KOYO",
    # Electrical
    "SIEMENS", "ABB", "SCHNEIDER", "ALLEN BRADLEY", "ROCKWELL", "OMRON",
    # Hydraulics
    "PARKER", "REXROTH", "BOSCH", "FESTO", "SMC", "EATON", "VICKERS",
    # Transmission
    "DANA", "CARRARO", "ZF", "CLARK", "ALLISON",
    # Misc
    "HTM", "FLUKE", "GATES", "3M", "LOCTITE",
)

NAMEPLATE_BRANDS: tuple[str, ...] = (
    "DANA", "SPICER", "TEREX", "CATERPILLAR", "CAT", "KOMATSU", "HITACHI",
    "VOLVO", "LIEBHERR", "SANDVIK", "EPIROC", "ATLAS COPCO", "JOHN DEERE",
    "CUMMINS", "PERKINS", "DEUTZ", "SCANIA", "MAN", "MERCEDES", "BOSCH",
    "PARKER", "EATON", "REXROTH", "HYDRAULIC", "ZF", "ALLISON",
)

FILENAME_BRANDS: tuple[str, ...] = (
    "KOMATSU", "CATERPILLAR", "CAT", "TEREX", "VOLVO", "HITACHI", "LIEBHERR",
    "SANDVIK", "EPIROC", "METSO", "ATLAS COPCO", "JOHN DEERE", "BELL",
)

EQUIPMENT_NOUNS: tuple[str, ...] = (
    r"compact[\-\s]?m[eè]tre",
    r"p[ée]n[ée]trom[eè]tre",
    r"manom[eè]tre",
    r"thermom[eè]tre",
    r"hygrom[eè]tre",
    r"d[ée]bitm[eè]tre",
    r"voltm[eè]tre",
    r"amp[eè]rem[eè]tre",
    r"analyseur\s+[a-zéèàù]+",
    r"capteur\s+[a-zéèàù]+",
    r"pompe\s+[a-zéèàù]+",
    r"moteur\s+[a-zéèàù]+",
    r"filtre\s+[a-zéèàù]+",
    r"vanne\s+[a-zéèàù]+",
)

SPREADSHEET_NOISE: tuple[str, ...] = (
    "grand total", "sous-total", "subtotal", "responsable", "directeur",
    "visa", "magasin pdr", "forces speciales", "entretien",
)

SUPPLIER_CODE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b([A-Z]{2,}-[A-Z0-9\-]+)\b", re.IGNORECASE),  # HTM-56-4T, SKF-6205
    re.compile(r"\b([A-Z]{2,}\d+[A-Z0-9]*/[A-Z0-9]+)\b", re.IGNORECASE),  # AL105NXDC024R/R
    re.compile(r"\b(\d{3,}\s+\d{3,})\b"),  # 710 0321
    re.compile(r"\b([A-Z]{2,}\d{3,}[A-Z0-9\-]*)\b", re.IGNORECASE),  # SKF6205
)

_NOT_A_CODE = re.compile(r"^(USD|EUR|PCS|UNIT|TOTAL)$", re.IGNORECASE)


def find_brand(text: str, brands: tuple[str, ...] = KNOWN_BRANDS) -> Optional[str]:
    """Return the first brand of ``brands`` contained in ``text``."""
    upper = (text or "").upper()
    for brand in brands:
        if brand in upper:
            return brand
    return None


def find_supplier_code(description: str) -> Optional[str]:
    """Mine a manufacturer code out of a free-text description."""
    for pattern in SUPPLIER_CODE_PATTERNS:
        match = pattern.search(description or "")
        if match and len(match.group(1)) >= 5 and not _NOT_A_CODE.match(match.group(1)):
            return match.group(1)
    return None

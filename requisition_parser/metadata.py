"""Reference number, deadline, contact and supplier extraction from free text."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from requisition_parser.catalog import FILENAME_BRANDS
from requisition_parser.logger import get_logger

logger = get_logger(__name__)

# Ordered from most to least specific, though the first pattern with a
# valid candidate wins even if a later one would be more precise.
RFQ_PATTERNS = (
    re.compile(r"Purchase\s+Requisitions?\s+No[:\s]*(\d+)", re.IGNORECASE),
    re.compile(r"PR[\s\-_]*(\d{6,})", re.IGNORECASE),
    re.compile(r"\b(?:RFQ|RFP|REF|N°|No\.|Référence|Reference|Demande)\s*[:\-#]?\s*([A-Z0-9][\w\-/]+)", re.IGNORECASE),
    re.compile(r"\b(?:Quotation|Quote|Devis)\s*(?:Request)?\s*[:\-#]?\s*([A-Z0-9][\w\-/]+)", re.IGNORECASE),
    re.compile(r"([A-Z]{2,4}[\-/]?\d{4,}[\-/]?\d{0,4})"),
)

DEADLINE_PATTERNS = (
    re.compile(r"d[ée]lai\s+de\s+r[ée]ponse[:\s]+([^.\n]+)", re.IGNORECASE),
    re.compile(r"r[ée]ponse\s+avant\s+le[:\s]+([^.\n]+)", re.IGNORECASE),
    re.compile(r"date\s+limite[:\s]+([^.\n]+)", re.IGNORECASE),
    re.compile(r"deadline[:\s]+([^.\n]+)", re.IGNORECASE),
)

CONTACT_NAME_PATTERN = re.compile(
    r"(?:cordialement|cdlt|regards|salutations)[,.\s]*\n+([A-ZÉÈÀÙÂÊÎÔÛÇ][A-ZÉÈÀÙÂÊÎÔÛÇ \t]+)\n",
    re.IGNORECASE,
)

ROLE_PATTERNS = (
    re.compile(r"(acheteur[\s\-]?(?:projet)?)", re.IGNORECASE),
    re.compile(r"(responsable\s+(?:achat|procurement|approvisionnement)[^\n]*)", re.IGNORECASE),
    re.compile(r"(buyer|procurement\s+(?:officer|manager)?)", re.IGNORECASE),
    re.compile(r"(chef\s+de\s+(?:projet|service)[^\n]*)", re.IGNORECASE),
)

PHONE_PATTERN = re.compile(r"(?:CEL|TEL|T[ée]l|Mobile|Phone|GSM)[.\s:]*([0-9][0-9\s\-.+]*[0-9])", re.IGNORECASE)
URGENT_PATTERN = re.compile(r"urgent", re.IGNORECASE)

EMAIL_ADDRESS = re.compile(r"[\w.-]+@[\w.-]+\.\w{2,}")
LOOSE_PHONE = re.compile(r"(?:\+\d{1,3}[\s.-]?)?\(?\d{2,4}\)?[\s.-]?\d{2,4}[\s.-]?\d{2,4}[\s.-]?\d{0,4}")
COMPANY_PATTERNS = (
    re.compile(r"\b(?:société|entreprise|company|ets|sarl|sas|sa|eurl|ltd|inc|corp)\s*[:\-]?\s*([A-ZÀ-Ü][\wÀ-ü\s&'.,-]+)", re.IGNORECASE),
    re.compile(r"\b(?:fournisseur|vendeur|supplier|from)\s*[:\-]?\s*([A-ZÀ-Ü][\wÀ-ü\s&'.,-]+)", re.IGNORECASE),
)

FILENAME_REFERENCE_PATTERNS = (
    re.compile(r"\b(BI)[_\-]?(\d{4,})", re.IGNORECASE),
    re.compile(r"\b(PR)[_\-]?(\d{4,})", re.IGNORECASE),
    re.compile(r"\b(RFQ|REF)[_\-]?(\d{4,})", re.IGNORECASE),
    re.compile(r"[_\-](\d{5,})[_\-]"),
)
_FILENAME_PREFIX = re.compile(r"^(BI|PR|RFQ|REF)[_\-]?\d+[_\-]?", re.IGNORECASE)


@dataclass
class EmailMetadata:
    deadline: Optional[str] = None
    contact_name: Optional[str] = None
    contact_role: Optional[str] = None
    contact_phone: Optional[str] = None
    is_urgent: bool = False


@dataclass
class SupplierInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class FilenameInfo:
    rfq_number: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None


def _first_group(patterns: Sequence[re.Pattern], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


class MetadataExtractor:
    """Independent first-match-wins extractors for document metadata."""

    def rfq_number(self, text: str) -> Optional[str]:
        """The client's reference number for the request.

        Each pattern's matches are scanned in order; the first candidate of
        at least four characters containing a digit is returned.
        """
        for pattern in RFQ_PATTERNS:
            for match in pattern.finditer(text or ""):
                candidate = match.group(1)
                if candidate and len(candidate) >= 4 and any(ch.isdigit() for ch in candidate):
                    logger.debug("Reference number found", extra_data={"rfq_number": candidate, "pattern": pattern.pattern[:30]})
                    return candidate
        return None

    def email_metadata(self, body: str) -> EmailMetadata:
        metadata = EmailMetadata(
            deadline=_first_group(DEADLINE_PATTERNS, body),
            contact_role=_first_group(ROLE_PATTERNS, body),
            is_urgent=bool(URGENT_PATTERN.search(body)),
        )

        name = CONTACT_NAME_PATTERN.search(body)
        if name:
            metadata.contact_name = name.group(1).strip()

        phone = PHONE_PATTERN.search(body)
        if phone:
            metadata.contact_phone = re.sub(r"\s+", " ", phone.group(1)).strip()

        return metadata

    def supplier_info(self, text: str) -> SupplierInfo:
        info = SupplierInfo()

        email = EMAIL_ADDRESS.search(text)
        if email:
            info.email = email.group(0)

        for phone in LOOSE_PHONE.finditer(text):
            if len(re.sub(r"\D", "", phone.group(0))) >= 8:
                info.phone = phone.group(0).strip()
                break

        name = _first_group(COMPANY_PATTERNS, text)
        if name:
            info.name = name[:100]

        return info

    def filename_info(self, filename: str) -> FilenameInfo:
        """Mine a reference, description and brand from a file name.

        Used when a scanned PDF yields no readable text, e.g.
        ``BI_19716_ACHAT_DE_FILTRES_CHARGEUSES_KOMATSU_WA470.pdf``.
        """
        info = FilenameInfo()
        stem = Path(filename).stem

        for pattern in FILENAME_REFERENCE_PATTERNS:
            match = pattern.search(stem)
            if match:
                if match.lastindex and match.lastindex >= 2:
                    info.rfq_number = f"{match.group(1).upper()}-{match.group(2)}"
                else:
                    info.rfq_number = match.group(1)
                break

        description = _FILENAME_PREFIX.sub("", stem)
        description = re.sub(r"_+", " ", description)
        description = re.sub(r"\s+", " ", description).strip()

        brand = re.search(
            r"\b(" + "|".join(re.escape(b) for b in FILENAME_BRANDS) + r")\b",
            description,
            re.IGNORECASE,
        )
        if brand:
            info.brand = brand.group(1).upper()

        if len(description) > 5:
            info.description = description

        return info

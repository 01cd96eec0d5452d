"""Document type detection and signature-image screening."""

import re
from pathlib import Path
from typing import Optional

from requisition_parser.logger import get_logger
from requisition_parser.models import DocumentType, RawDocument

logger = get_logger(__name__)

EXTENSION_TYPES: dict[str, DocumentType] = {
    ".pdf": DocumentType.PDF,
    ".xlsx": DocumentType.EXCEL,
    ".xls": DocumentType.EXCEL,
    ".docx": DocumentType.WORD,
    ".doc": DocumentType.WORD,
    ".png": DocumentType.IMAGE,
    ".jpg": DocumentType.IMAGE,
    ".jpeg": DocumentType.IMAGE,
    ".gif": DocumentType.IMAGE,
    ".bmp": DocumentType.IMAGE,
    ".tif": DocumentType.IMAGE,
    ".tiff": DocumentType.IMAGE,
}

# Inline pictures mail clients attach to signatures and layouts
SIGNATURE_IMAGE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"outlook", re.IGNORECASE),
    re.compile(r"^image\d+\.", re.IGNORECASE),
    re.compile(r"logo", re.IGNORECASE),
    re.compile(r"^(signature|footer|banner|header)", re.IGNORECASE),
    re.compile(r"^att\d+\.", re.IGNORECASE),
    re.compile(r"desc\.(png|jpg|jpeg|gif)$", re.IGNORECASE),
    re.compile(r"^cid[:\-_]", re.IGNORECASE),
    re.compile(r"^[a-f0-9]{8,}[-_]", re.IGNORECASE),
)


class DocumentDetector:
    """Resolves the document type from the file extension.

    Declared content types are unreliable for mail attachments (PDFs sent as
    application/octet-stream, spreadsheets as text/plain), so only the
    extension is trusted.
    """

    def __init__(self, signature_image_max_bytes: int = 10_000):
        self.signature_image_max_bytes = signature_image_max_bytes

    def detect(self, document: RawDocument) -> Optional[DocumentType]:
        suffix = Path(document.filename).suffix.lower()
        document_type = EXTENSION_TYPES.get(suffix)

        if document_type is None:
            logger.warning(
                "Unsupported file type",
                extra_data={
                    "file_name": document.filename,
                    "file_extension": suffix,
                    "declared_content_type": document.content_type,
                },
            )
            return None

        logger.debug(
            "Document type detected",
            extra_data={
                "file_name": document.filename,
                "document_type": document_type.value,
                "declared_content_type": document.content_type,
                "file_size_bytes": document.size,
            },
        )
        return document_type

    def is_signature_image(self, document: RawDocument) -> bool:
        """True for logos, signature banners and other inline images."""
        name = Path(document.filename).name.lower()
        if any(pattern.search(name) for pattern in SIGNATURE_IMAGE_PATTERNS):
            return True
        return 0 < document.size < self.signature_image_max_bytes

"""High-level API for requisition parsing."""

import mimetypes
from pathlib import Path
from typing import Iterable, Optional

from requisition_parser.assembler import merge_results
from requisition_parser.config import ExtractorConfig
from requisition_parser.handler import DocumentHandler
from requisition_parser.models import ExtractionResult, MergedRequest, RawDocument


def parse_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_name: Optional[str] = None,
    content_type: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
) -> Optional[ExtractionResult]:
    """Parse a document and extract its line items.

    High-level convenience function that accepts either a file path or raw bytes.

    Args:
        file_path: Path to document file (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        file_name: Original filename (required if using file_bytes)
        content_type: Declared MIME type, informational only
        config: Extraction configuration (optional, uses defaults if not provided)

    Returns:
        ExtractionResult with items and metadata, or None if the file type
        is unsupported or the document could not be read

    Raises:
        ValueError: If neither file_path nor file_bytes provided, or if file_bytes
            provided without file_name

    Examples:
        >>> result = parse_document(file_path="PR_4500123.pdf")
        >>> for item in result.items:
        ...     print(item.quantity, item.unit, item.description)
    """
    if file_path and file_bytes:
        raise ValueError("Provide either file_path or file_bytes, not both")

    if not file_path and not file_bytes:
        raise ValueError("Must provide either file_path or file_bytes")

    if file_path:
        path = Path(file_path)
        if not path.exists():
            raise ValueError(f"File not found: {file_path}")

        file_bytes = path.read_bytes()
        file_name = path.name

        if not content_type:
            content_type, _ = mimetypes.guess_type(str(path))

    if not file_name:
        raise ValueError("file_name is required when using file_bytes")

    handler = DocumentHandler(config=config)
    return handler.parse_document(
        RawDocument(filename=file_name, content=file_bytes, content_type=content_type or "")
    )


def parse_email(
    body: str,
    subject: str = "",
    attachments: Optional[Iterable[RawDocument]] = None,
    config: Optional[ExtractorConfig] = None,
) -> MergedRequest:
    """Parse an email and its attachments into one request.

    Args:
        body: Plain-text body of the email
        subject: Email subject, searched for the reference number
        attachments: Attached documents (optional)
        config: Extraction configuration (optional)

    Returns:
        MergedRequest with items deduplicated across the body and attachments

    Examples:
        >>> request = parse_email(
        ...     "Bonjour, merci de nous faire une cotation de 2 unités d'un manomètre.",
        ...     subject="Demande RFQ-2024-118",
        ... )
        >>> request.rfq_number
        'RFQ-2024-118'
    """
    handler = DocumentHandler(config=config)
    results = handler.parse_all(attachments or [])
    email_result = handler.parse_email_body(body, subject)
    # Attachments first: their tables are more precise than the prose
    return merge_results([*results, email_result])

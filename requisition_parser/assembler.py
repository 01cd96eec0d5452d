"""Assembly of per-document results and of the final multi-document request."""

from typing import Iterable, Optional

from requisition_parser.logger import get_logger
from requisition_parser.metadata import EmailMetadata
from requisition_parser.models import (
    DocumentType,
    ExtractedItem,
    ExtractedText,
    ExtractionMethod,
    ExtractionResult,
    MergedRequest,
)

logger = get_logger(__name__)

PLACEHOLDER_DESCRIPTION = "Item to be defined - see attached documents"


def build_result(
    filename: str,
    document_type: DocumentType,
    extracted: ExtractedText,
    items: list[ExtractedItem],
    rfq_number: Optional[str] = None,
    email: Optional[EmailMetadata] = None,
    force_verification: bool = False,
) -> ExtractionResult:
    """Combine one document's text, items and metadata into a result.

    Args:
        filename: Name of the source document
        document_type: Detected type of the document
        extracted: Text and extraction method for the document
        items: Line items inferred from the text
        rfq_number: Client reference number, if one was found
        email: Deadline and contact details, for email bodies
        force_verification: Flag the result for review regardless of content

    Returns:
        ExtractionResult for the document
    """
    if extracted.method is ExtractionMethod.SKIPPED_SIGNATURE:
        needs_verification = False
    else:
        needs_verification = force_verification or extracted.low_confidence or not items

    result = ExtractionResult(
        filename=filename,
        document_type=document_type,
        text=extracted.text,
        items=items,
        extraction_method=extracted.method,
        rfq_number=rfq_number,
        needs_verification=needs_verification,
        tables=extracted.tables,
    )
    if email is not None:
        result.deadline = email.deadline
        result.contact_name = email.contact_name
        result.contact_role = email.contact_role
        result.contact_phone = email.contact_phone
        result.is_urgent = email.is_urgent
    return result


def merge_results(results: Iterable[ExtractionResult]) -> MergedRequest:
    """Merge the results of every document of one request.

    Items are deduplicated across documents by ``dedup_key``, keeping the
    first occurrence. Items without notes are tagged with their source file.
    When nothing survives a single placeholder item is returned so the
    request can still be priced by hand.
    """
    merged = MergedRequest(items=[])
    seen: set[str] = set()

    for result in results:
        merged.sources.append(result.filename)
        if merged.rfq_number is None and result.rfq_number:
            merged.rfq_number = result.rfq_number
        if result.needs_verification:
            merged.needs_manual_review = True

        for item in result.items:
            if item.dedup_key in seen:
                continue
            seen.add(item.dedup_key)
            if not item.notes:
                item.notes = f"Source: {result.filename}"
            merged.items.append(item)

    if not merged.items:
        merged.items.append(
            ExtractedItem(
                description=PLACEHOLDER_DESCRIPTION,
                quantity=1,
                needs_manual_review=True,
                is_estimated=True,
            )
        )
        merged.needs_manual_review = True

    logger.info(
        "Request assembled",
        extra_data={
            "source_count": len(merged.sources),
            "item_count": len(merged.items),
            "rfq_number": merged.rfq_number,
            "needs_manual_review": merged.needs_manual_review,
        },
    )
    return merged

"""Document handler orchestration."""

from typing import Iterable, Optional

from requisition_parser.assembler import build_result
from requisition_parser.config import ExtractorConfig
from requisition_parser.detector import DocumentDetector
from requisition_parser.line_items import GenericLineExtractor
from requisition_parser.logger import Timer, get_logger, set_document, start_batch
from requisition_parser.metadata import MetadataExtractor
from requisition_parser.models import (
    DocumentType,
    ExtractedItem,
    ExtractedText,
    ExtractionMethod,
    ExtractionResult,
    RawDocument,
)
from requisition_parser.nameplate import nameplate_item
from requisition_parser.requisition import PurchaseRequisitionExtractor
from requisition_parser.spreadsheet import SpreadsheetColumnResolver
from requisition_parser.text_extractor import TextExtractor

logger = get_logger(__name__)

SCANNED_NOTE = "Scanned document - verify against the original"
FILENAME_ONLY_NOTE = "No readable text - item inferred from the file name, verify against the original"
EMAIL_BODY_NAME = "email_body"


class DocumentHandler:
    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        detector: Optional[DocumentDetector] = None,
        text_extractor: Optional[TextExtractor] = None,
    ) -> None:
        """Initialize document handler.

        Args:
            config: Extraction settings. If None, uses defaults.
            detector: Document type detector. If None, creates default.
            text_extractor: Per-format text extractor. If None, creates default with config.
        """
        self.config = config or ExtractorConfig()
        self.detector = detector or DocumentDetector(self.config.signature_image_max_bytes)
        self.text_extractor = text_extractor or TextExtractor(config=self.config)
        self.resolver = SpreadsheetColumnResolver(self.config.header_scan_rows, self.config.max_quantity)
        self.requisitions = PurchaseRequisitionExtractor(self.config.max_quantity)
        self.line_items = GenericLineExtractor(self.config.max_generic_items)
        self.metadata = MetadataExtractor()

    def parse_document(self, document: RawDocument) -> Optional[ExtractionResult]:
        """Extract the items of one document.

        Any failure is logged and turned into None so that the other
        documents of a request are still processed.
        """
        set_document(document.filename)
        try:
            document_type = self.detector.detect(document)
            if document_type is None:
                return None

            with Timer("document") as timer:
                if document_type is DocumentType.IMAGE:
                    result = self._parse_image(document)
                else:
                    extracted = self.text_extractor.extract(document, document_type)
                    if document_type is DocumentType.EXCEL:
                        result = self._parse_spreadsheet(document, extracted)
                    elif document_type is DocumentType.PDF:
                        result = self._parse_pdf(document, extracted)
                    else:
                        result = build_result(
                            document.filename,
                            document_type,
                            extracted,
                            self.items_from_text(extracted.text),
                            rfq_number=self.metadata.rfq_number(extracted.text),
                        )

            logger.info(
                "Document parsed",
                extra_data={
                    "document_type": document_type.value,
                    "method": result.extraction_method.value,
                    "item_count": len(result.items),
                    "rfq_number": result.rfq_number,
                    "needs_verification": result.needs_verification,
                    "elapsed_ms": timer.get_elapsed_ms(),
                },
            )
            return result
        except Exception as exc:
            logger.error(
                "Document parsing failed",
                extra_data={"error_type": type(exc).__name__, "error": str(exc)},
                exc_info=True,
            )
            return None
        finally:
            set_document(None)

    def parse_all(self, documents: Iterable[RawDocument], batch_id: Optional[str] = None) -> list[ExtractionResult]:
        """Parse every document of a request, dropping the ones that failed."""
        batch_id = start_batch(batch_id)
        documents = list(documents)
        results = [result for result in map(self.parse_document, documents) if result is not None]
        logger.info(
            "Batch parsed",
            extra_data={"document_count": len(documents), "result_count": len(results)},
        )
        return results

    def parse_email_body(self, body: str, subject: str = "") -> ExtractionResult:
        """Extract items from the text of an email.

        French prose requests ("nous avons besoin de 3 pièces ...") are tried
        first; lists and tables pasted in the body fall back to the generic
        line scanner.
        """
        items = self.line_items.extract_email_body(body)
        from_prose = bool(items)
        if not items:
            items = self.items_from_text(body)

        result = build_result(
            EMAIL_BODY_NAME,
            DocumentType.EMAIL,
            ExtractedText(text=body, method=ExtractionMethod.EMAIL_BODY),
            items,
            rfq_number=self.metadata.rfq_number(f"{subject}\n{body}"),
            email=self.metadata.email_metadata(body),
        )
        result.needs_verification = from_prose
        logger.info(
            "Email body parsed",
            extra_data={"item_count": len(items), "from_prose": from_prose, "rfq_number": result.rfq_number},
        )
        return result

    def items_from_text(self, text: str) -> list[ExtractedItem]:
        """Items from free text: purchase requisition layouts first, then generic lines."""
        if self.requisitions.detect(text):
            items = self.requisitions.extract(text)
            if items:
                return items
            logger.debug("Purchase requisition layout yielded no items, scanning lines")
        return self.line_items.extract(text)

    def _parse_pdf(self, document: RawDocument, extracted: ExtractedText) -> ExtractionResult:
        items = self.items_from_text(extracted.text)
        rfq_number = self.metadata.rfq_number(extracted.text)

        if extracted.low_confidence:
            info = self.metadata.filename_info(document.filename)
            rfq_number = rfq_number or info.rfq_number
            for item in items:
                item.add_note(SCANNED_NOTE)
                if not item.brand and info.brand:
                    item.brand = info.brand

            if not items and extracted.method is ExtractionMethod.FILENAME_HEURISTIC and info.description:
                logger.warning(
                    "Item inferred from file name",
                    extra_data={"description": info.description, "brand": info.brand},
                )
                items = [
                    ExtractedItem(
                        description=info.description,
                        quantity=1,
                        unit="lot",
                        brand=info.brand,
                        notes=FILENAME_ONLY_NOTE,
                        needs_manual_review=True,
                        is_estimated=True,
                    )
                ]

        return build_result(document.filename, DocumentType.PDF, extracted, items, rfq_number=rfq_number)

    def _parse_spreadsheet(self, document: RawDocument, extracted: ExtractedText) -> ExtractionResult:
        items: list[ExtractedItem] = []
        for grid in extracted.tables:
            grid_items = self.resolver.extract_items(grid)
            if grid_items is None:
                grid_items = self.items_from_text(self.resolver.flatten(grid))
            items.extend(grid_items)

        return build_result(
            document.filename,
            DocumentType.EXCEL,
            extracted,
            items,
            rfq_number=self.metadata.rfq_number(extracted.text),
        )

    def _parse_image(self, document: RawDocument) -> ExtractionResult:
        if self.detector.is_signature_image(document):
            logger.info("Signature image skipped", extra_data={"file_size_bytes": document.size})
            return build_result(
                document.filename,
                DocumentType.IMAGE,
                ExtractedText(text="", method=ExtractionMethod.SKIPPED_SIGNATURE),
                [],
            )

        extracted = self.text_extractor.extract(document, DocumentType.IMAGE)
        return build_result(
            document.filename,
            DocumentType.IMAGE,
            extracted,
            [nameplate_item(extracted.text, document.filename)],
            rfq_number=self.metadata.rfq_number(extracted.text),
            force_verification=True,
        )

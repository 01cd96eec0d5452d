"""Line-item extraction from procurement requests: PDFs, spreadsheets, Word files, photos and emails."""

from requisition_parser.assembler import build_result, merge_results
from requisition_parser.config import ExtractorConfig, OCRConfig, ToolConfig
from requisition_parser.detector import DocumentDetector
from requisition_parser.exceptions import (
    DocumentParserError,
    ExtractionError,
    ToolExecutionError,
    ToolUnavailableError,
    UnsupportedTypeError,
)
from requisition_parser.handler import DocumentHandler
from requisition_parser.models import (
    DocumentType,
    ExtractedItem,
    ExtractedText,
    ExtractionMethod,
    ExtractionResult,
    MergedRequest,
    RawDocument,
)
from requisition_parser.parser import parse_document, parse_email
from requisition_parser.text_extractor import TextExtractor

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "parse_document",
    "parse_email",
    "merge_results",
    "build_result",
    # Core classes
    "DocumentHandler",
    "DocumentDetector",
    "TextExtractor",
    # Data models
    "RawDocument",
    "ExtractedText",
    "ExtractedItem",
    "ExtractionResult",
    "MergedRequest",
    "DocumentType",
    "ExtractionMethod",
    # Configuration
    "OCRConfig",
    "ToolConfig",
    "ExtractorConfig",
    # Exceptions
    "DocumentParserError",
    "UnsupportedTypeError",
    "ExtractionError",
    "ToolUnavailableError",
    "ToolExecutionError",
]

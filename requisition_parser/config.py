"""Configuration classes for requisition parser."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class OCRConfig:
    """Configuration for OCR processing.

    Examples:
        >>> # Default configuration (300 DPI, French + English)
        >>> config = OCRConfig()

        >>> # Faster scans for small machines
        >>> config = OCRConfig(dpi=200, rotations=(0, 90))
    """

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default: "tesseract" (assumes in PATH)."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "fra+eng"
    """OCR languages used for scanned PDFs (Tesseract format)."""

    image_languages: str = "eng+fra"
    """OCR languages used for photos and nameplates."""

    dpi: int = 300
    """Rasterization DPI for scanned PDFs."""

    psm_mode: int = 6
    """Page segmentation mode (0-13). Default: 6 (uniform block of text)."""

    rotations: tuple[int, ...] = (0, 90, 270, 180)
    """Rotations tried in priority order when searching for the best OCR yield."""

    good_enough_score: int = 50
    """Stop the rotation search once a rotation scores above this many words."""

    timeout: int = 60
    """Seconds allowed for a single rasterization or OCR call."""


@dataclass
class ToolConfig:
    """External command-line tools invoked through ProcessRunner."""

    pdftotext_cmd: str = "pdftotext"
    textutil_cmd: str = "textutil"
    soffice_cmds: tuple[str, ...] = ("soffice", "libreoffice")

    timeout: int = 30
    """Seconds allowed for a single tool invocation."""

    max_output_bytes: int = 10 * 1024 * 1024
    """Output larger than this is treated as a failed invocation."""


@dataclass
class ExtractorConfig:
    """Configuration for document extraction."""

    ocr_config: OCRConfig = field(default_factory=OCRConfig)
    tool_config: ToolConfig = field(default_factory=ToolConfig)

    min_text_chars: int = 50
    """Below this many characters a PDF stage is considered to have failed."""

    min_ocr_chars: int = 20
    """OCR output must exceed this to be used; below it the filename is mined."""

    header_scan_rows: int = 20
    max_generic_items: int = 100
    max_quantity: int = 100_000

    signature_image_max_bytes: int = 10_000
    """Images smaller than this are treated as inline icons and skipped."""

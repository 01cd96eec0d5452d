"""Tesseract OCR for scanned PDFs and photos, with rotation search.

Scanned requisitions frequently arrive rotated by a quarter turn. The page
is rasterized once, then OCR'd at each rotation in priority order; the
rotation yielding the most readable words wins. A rotation that scores
above ``OCRConfig.good_enough_score`` ends the search early, so later
rotations are never evaluated even if they might have scored higher.
"""

import io
import os
import re
from dataclasses import dataclass, field
from typing import Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, UnidentifiedImageError

from requisition_parser.config import OCRConfig
from requisition_parser.exceptions import ExtractionError
from requisition_parser.logger import Timer, get_logger

logger = get_logger(__name__)

_WORD = re.compile(r"[a-zA-ZÀ-ÿ]{3,}")


def score_text(text: str) -> int:
    """Number of alphabetic tokens of three letters or more."""
    return len(_WORD.findall(text or ""))


@dataclass
class OcrOutcome:
    text: str = ""
    score: int = 0
    rotation: Optional[int] = None
    attempts: dict[int, int] = field(default_factory=dict)
    """Score of every rotation that produced OCR output, by angle."""


class OcrFallback:
    """Rasterizes a scanned PDF and searches rotations for the best OCR yield."""

    def __init__(self, config: Optional[OCRConfig] = None):
        self.config = config or OCRConfig()

        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd
        if self.config.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = self.config.tessdata_prefix

    def rasterize(self, pdf_bytes: bytes) -> Image.Image:
        """Render the first page at the configured DPI."""
        with fitz.open(stream=pdf_bytes, filetype="pdf") as pdf_document:
            if pdf_document.page_count == 0:
                raise ExtractionError("PDF has no pages")
            pix = pdf_document[0].get_pixmap(dpi=self.config.dpi)
            image = Image.open(io.BytesIO(pix.tobytes("png")))
            image.load()
        return image

    def _ocr(self, image: Image.Image, languages: str, psm: Optional[int]) -> str:
        config = f"--psm {psm}" if psm is not None else ""
        return pytesseract.image_to_string(
            image,
            lang=languages,
            config=config,
            timeout=self.config.timeout,
        )

    def search_rotations(self, pdf_bytes: bytes, file_name: str = "unknown.pdf") -> OcrOutcome:
        """OCR a scanned PDF, trying each configured rotation.

        Args:
            pdf_bytes: Raw PDF bytes
            file_name: Original file name for logging

        Returns:
            OcrOutcome holding the best text found (empty when nothing was usable)
        """
        outcome = OcrOutcome()

        try:
            with Timer("rasterize") as raster_timer:
                raster = self.rasterize(pdf_bytes)
        except (RuntimeError, ValueError, ExtractionError) as exc:
            logger.warning(
                "PDF rasterization failed, OCR skipped",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            return outcome

        logger.debug(
            "PDF page rasterized for OCR",
            extra_data={
                "file_name": file_name,
                "dpi": self.config.dpi,
                "image_size": f"{raster.width}x{raster.height}",
                "rasterize_time_ms": raster_timer.get_elapsed_ms(),
            },
        )

        try:
            for rotation in self.config.rotations:
                image = raster
                try:
                    if rotation:
                        # PIL rotates counter-clockwise; negate for a clockwise turn
                        image = raster.rotate(-rotation, expand=True)
                    text = self._ocr(image, self.config.languages, self.config.psm_mode)
                except pytesseract.TesseractNotFoundError:
                    logger.warning(
                        "Tesseract is not installed or not in PATH, OCR skipped",
                        extra_data={"file_name": file_name},
                    )
                    break
                except (pytesseract.TesseractError, RuntimeError, OSError, ValueError) as exc:
                    logger.debug(
                        "OCR rotation failed",
                        extra_data={"file_name": file_name, "rotation": rotation, "error": str(exc)},
                    )
                    continue
                finally:
                    if image is not raster:
                        image.close()

                score = score_text(text)
                outcome.attempts[rotation] = score
                if score > outcome.score:
                    outcome.text, outcome.score, outcome.rotation = text, score, rotation
                    logger.debug(
                        "New best OCR rotation",
                        extra_data={"file_name": file_name, "rotation": rotation, "words": score},
                    )

                if score > self.config.good_enough_score:
                    break
        finally:
            raster.close()

        logger.info(
            "OCR rotation search completed",
            extra_data={
                "file_name": file_name,
                "best_rotation": outcome.rotation,
                "words": outcome.score,
                "attempted": list(outcome.attempts),
            },
        )
        return outcome

    def image_to_text(self, image_bytes: bytes, file_name: str = "unknown.jpg") -> str:
        """OCR a photo as-is (photos are assumed upright).

        Raises:
            ExtractionError: If the bytes are not a readable image
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ExtractionError(f"Unreadable image {file_name}: {exc}") from exc

        try:
            with Timer("image_ocr") as timer:
                text = self._ocr(image, self.config.image_languages, psm=None)
        except pytesseract.TesseractNotFoundError:
            logger.warning(
                "Tesseract is not installed or not in PATH, image OCR skipped",
                extra_data={"file_name": file_name},
            )
            return ""
        except (pytesseract.TesseractError, RuntimeError) as exc:
            logger.warning(
                "Image OCR failed",
                extra_data={"file_name": file_name, "error_type": type(exc).__name__, "error": str(exc)},
            )
            return ""
        finally:
            image.close()

        logger.info(
            "Image OCR completed",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(text.strip()),
                "ocr_time_ms": timer.get_elapsed_ms(),
            },
        )
        return text

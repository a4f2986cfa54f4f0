"""
Text OCR fallback for scanned PDF pages.

Provides:
- Page rendering with pdf2image (poppler backend)
- Tesseract recognition with line grouping and confidence scoring
- Post-processing (hyphenation fix)

Only used when a PDF page has no text layer. Availability is probed once;
without Tesseract or poppler such pages simply contribute no text.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from statistics import mean
from typing import List, Optional, Dict, Any, Union

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class LineResult:
    """OCR result for a line of text."""
    text: str
    confidence: float


@dataclass
class OCRResult:
    """OCR result for one page."""
    text: str
    confidence: float
    lines: List[LineResult] = field(default_factory=list)
    engine_used: str = ""
    page_number: Optional[int] = None

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < 0.65

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "engine": self.engine_used,
            "page_number": self.page_number,
        }


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine:
    """OCR using Tesseract."""

    def __init__(
        self,
        language: str = "eng",
        config: str = "--oem 3 --psm 6"
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            # Test that tesseract is installed
            pytesseract.get_tesseract_version()

        except Exception as e:
            raise ImportError(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            )

        self.language = language
        self.config = config

    def _preprocess_for_ocr(self, image: Image.Image) -> Image.Image:
        """Grayscale, stretch contrast, upscale tiny renders."""
        gray = ImageOps.autocontrast(ImageOps.grayscale(image))

        width, height = gray.size
        if height and height < 30:
            scale = 30.0 / height
            gray = gray.resize((int(width * scale), 30), Image.BICUBIC)

        return gray

    def recognize(self, image: Image.Image) -> OCRResult:
        """Recognize text using Tesseract."""
        processed = self._preprocess_for_ocr(image)

        data = self.pytesseract.image_to_data(
            processed,
            lang=self.language,
            config=self.config,
            output_type=self.pytesseract.Output.DICT
        )

        lines: List[LineResult] = []
        current_words: List[str] = []
        current_confs: List[float] = []
        current_key = None
        confidences: List[float] = []

        for i in range(len(data['text'])):
            text = data['text'][i].strip()
            conf = float(data['conf'][i])
            # A line is only unique within its block and paragraph
            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])

            if conf < 0 or not text:  # -1 means no valid confidence
                continue

            if key != current_key and current_words:
                lines.append(LineResult(' '.join(current_words), mean(current_confs)))
                current_words, current_confs = [], []
            current_key = key
            current_words.append(text)
            current_confs.append(conf / 100.0)
            confidences.append(conf / 100.0)

        if current_words:
            lines.append(LineResult(' '.join(current_words), mean(current_confs)))

        full_text = fix_hyphenation('\n'.join(line.text for line in lines))

        return OCRResult(
            text=full_text,
            confidence=mean(confidences) if confidences else 0.0,
            lines=lines,
            engine_used="tesseract"
        )


# ============================================================================
# Post-processing
# ============================================================================

_HYPHEN_PREFIXES = {'self', 'non', 'pre', 'post', 'anti', 'co', 're'}


def fix_hyphenation(text: str) -> str:
    """
    Fix hyphenated words that were split across lines.

    Example: "docu-\\nment" -> "document"
    """
    def replace_hyphen(match):
        word1 = match.group(1)
        word2 = match.group(2)
        # Likely a genuine compound
        if word1.lower() in _HYPHEN_PREFIXES:
            return f"{word1}-{word2}"
        return word1 + word2

    return re.sub(r'(\w+)-[ \t]*\n\s*(\w+)', replace_hyphen, text)


# ============================================================================
# Page OCR
# ============================================================================

_engine: Optional[TesseractEngine] = None
_engine_checked = False


def get_engine() -> Optional[TesseractEngine]:
    """Shared Tesseract engine, or None when Tesseract is not installed."""
    global _engine, _engine_checked
    if not _engine_checked:
        _engine_checked = True
        try:
            _engine = TesseractEngine()
            logger.info("Tesseract available for scanned pages")
        except ImportError as e:
            logger.warning(f"Scanned pages will be skipped: {e}")
    return _engine


def ocr_pdf_page(
    pdf_path: Union[str, Path],
    page_number: int,
    dpi: int = 300,
    engine: Optional[TesseractEngine] = None
) -> Optional[OCRResult]:
    """
    Render one PDF page and OCR it.

    Args:
        pdf_path: Path to the PDF file
        page_number: 1-indexed page number
        dpi: Render resolution (300-400 recommended for OCR)
        engine: Engine to use; defaults to the shared engine

    Returns:
        OCRResult, or None when OCR is unavailable
    """
    engine = engine or get_engine()
    if engine is None:
        return None

    try:
        from pdf2image import convert_from_path
    except ImportError:
        logger.warning("pdf2image is required for OCR. Install with: pip install pdf2image")
        return None

    try:
        images = convert_from_path(
            str(pdf_path),
            dpi=dpi,
            first_page=page_number,
            last_page=page_number,
            fmt='png'
        )
    except Exception as e:
        if "poppler" in str(e).lower():
            logger.warning(
                "Poppler is not installed; scanned pages cannot be rendered. "
                "Install with: sudo apt-get install poppler-utils (Linux) or brew install poppler (macOS)"
            )
            return None
        raise

    if not images:
        return None

    result = engine.recognize(images[0])
    result.page_number = page_number
    logger.info(
        f"OCR page {page_number}: {len(result.lines)} lines, confidence {result.confidence:.2f}"
    )
    return result

"""
I/O utilities for the manuscript pipeline.

Handles:
- Text extraction from DOCX, PDF, HTML and plain-text uploads
- Embedded image harvesting into figures (data URLs)
- JSON serialization
- Directory management
"""

import base64
import html
import json
import logging
import shutil
import tempfile
from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from pathlib import Path
from typing import List, Union, Optional, Any, Dict

from .errors import ExtractorError
from .manuscript import Figure
from .tables import TableResult

logger = logging.getLogger(__name__)

FIGURE_PLACEHOLDER = "[FIGURE REMOVED]"

SUPPORTED_EXTENSIONS = {
    ".docx": "docx",
    ".pdf": "pdf",
    ".html": "html",
    ".htm": "html",
    ".txt": "text",
    ".md": "text",
}

# Embedded PDF images smaller than this are treated as icons/logos
MIN_IMAGE_SIDE = 64
MIN_IMAGE_BYTES = 2048


# ============================================================================
# Extraction Result
# ============================================================================

@dataclass
class ExtractedText:
    """Text and figures pulled out of an uploaded file."""
    text: str
    figures: List[Figure] = field(default_factory=list)
    source_format: str = ""
    page_count: int = 0
    ocr_pages: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_format": self.source_format,
            "characters": len(self.text),
            "figures": [f.to_dict() for f in self.figures],
            "page_count": self.page_count,
            "ocr_pages": self.ocr_pages,
        }


def data_url(blob: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(blob).decode('ascii')}"


def _extracted_figure(index: int, blob: bytes, content_type: str) -> Figure:
    return Figure(
        id=str(index),
        file_url=data_url(blob, content_type),
        caption=f"Figure {index} (Extracted from source)",
    )


# ============================================================================
# File Type Detection
# ============================================================================

def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of an input file.

    Args:
        input_path: Path to the file

    Returns:
        One of: 'docx', 'pdf', 'html', 'text', 'unknown'
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        return 'unknown'
    return SUPPORTED_EXTENSIONS.get(input_path.suffix.lower(), 'unknown')


# ============================================================================
# Text Extraction
# ============================================================================

def extract(path: Union[str, Path]) -> ExtractedText:
    """
    Extract manuscript text (and embedded figures) from a file.

    Args:
        path: DOCX, PDF, HTML or TXT/MD file

    Returns:
        ExtractedText

    Raises:
        ExtractorError: If the file is missing, unsupported or unreadable
    """
    path = Path(path)
    if not path.is_file():
        raise ExtractorError(str(path), "File not found")

    input_type = detect_input_type(path)
    if input_type == 'unknown':
        raise ExtractorError(
            str(path),
            f"Unsupported file type '{path.suffix or 'none'}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
            file_format=path.suffix.lower() or None,
        )

    readers = {
        'docx': extract_docx,
        'pdf': extract_pdf,
        'html': extract_html,
        'text': extract_plain_text,
    }

    logger.info(f"Extracting text from {path.name} ({input_type})")
    try:
        result = readers[input_type](path)
    except ExtractorError:
        raise
    except Exception as e:
        raise ExtractorError(str(path), f"Could not read file: {e}", file_format=input_type) from e

    logger.info(
        f"Extracted {len(result.text)} chars and {len(result.figures)} figure(s) from {path.name}"
    )
    return result


def extract_plain_text(path: Path) -> ExtractedText:
    """UTF-8 text; a BOM is tolerated and undecodable bytes are replaced."""
    text = path.read_bytes().decode("utf-8-sig", errors="replace")
    return ExtractedText(text=text, source_format="text")


def extract_docx(path: Path) -> ExtractedText:
    """
    Read paragraphs and tables in body order.

    Paragraphs become <p> blocks and tables HTML <table> markup. Inline
    images are lifted out as figures and replaced by a placeholder.
    """
    from docx import Document as DocxDocument
    from docx.oxml.ns import qn
    from docx.table import Table
    from docx.text.paragraph import Paragraph

    doc = DocxDocument(str(path))
    blocks: List[str] = []
    figures: List[Figure] = []

    for child in doc.element.body.iterchildren():
        if child.tag == qn('w:p'):
            paragraph = Paragraph(child, doc)
            text = paragraph.text.strip()

            for blip in child.iter(qn('a:blip')):
                rel_id = blip.get(qn('r:embed'))
                part = doc.part.related_parts.get(rel_id) if rel_id else None
                if part is None:
                    continue
                figures.append(_extracted_figure(len(figures) + 1, part.blob, part.content_type))
                text = f"{text} {FIGURE_PLACEHOLDER}".strip()

            if text:
                blocks.append(f"<p>{html.escape(text, quote=False)}</p>")

        elif child.tag == qn('w:tbl'):
            table = Table(child, doc)
            grid = [[cell.text.strip() for cell in row.cells] for row in table.rows]
            if grid:
                blocks.append(TableResult.from_grid(grid, source="docx").table_html)

    return ExtractedText(text="\n".join(blocks), figures=figures, source_format="docx")


def extract_html(path: Path) -> ExtractedText:
    """
    Visible text of an HTML file.

    data:image <img> sources become figures; every <img> is replaced by a
    placeholder. Tables are kept as markup.
    """
    from bs4 import BeautifulSoup

    markup = path.read_bytes().decode("utf-8-sig", errors="replace")
    soup = BeautifulSoup(markup, "html.parser")

    for tag in soup(["script", "style"]):
        tag.decompose()

    figures: List[Figure] = []
    for img in soup.find_all("img"):
        src = img.get("src") or ""
        if src.startswith("data:image"):
            index = len(figures) + 1
            figures.append(Figure(str(index), src, f"Figure {index}"))
        img.replace_with(FIGURE_PLACEHOLDER)

    tables: List[str] = []
    for table in soup.find_all("table"):
        parsed = TableResult.from_html(str(table))
        tables.append(parsed.table_html if parsed else "")
        table.replace_with(f"\n\n@@TABLE{len(tables) - 1}@@\n\n")

    root = soup.body or soup
    text = root.get_text("\n")
    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(lines).strip()

    for index, table_html in enumerate(tables):
        text = text.replace(f"@@TABLE{index}@@", table_html)

    return ExtractedText(text=text, figures=figures, source_format="html")


def extract_pdf(path: Path, ocr: bool = True) -> ExtractedText:
    """
    Text per page via PyMuPDF; pages joined by blank lines.

    Pages without a text layer are OCRed when Tesseract is available.
    Embedded raster images become figures in page order.
    """
    import fitz  # PyMuPDF

    page_texts: List[str] = []
    figures: List[Figure] = []
    ocr_pages: List[int] = []

    with fitz.open(str(path)) as doc:
        if doc.needs_pass:
            raise ExtractorError(str(path), "PDF is password protected", file_format="pdf")

        page_count = doc.page_count
        for page_index, page in enumerate(doc):
            text = page.get_text("text").strip()

            if not text and ocr:
                from .ocr_text import ocr_pdf_page
                result = ocr_pdf_page(path, page_index + 1)
                if result is not None and result.text.strip():
                    text = result.text.strip()
                    ocr_pages.append(page_index + 1)

            if text:
                page_texts.append(text)

            for img_info in page.get_images(full=True):
                base = doc.extract_image(img_info[0])
                blob = base.get("image") if base else None
                if not blob:
                    continue
                if (base.get("width", 0) < MIN_IMAGE_SIDE or base.get("height", 0) < MIN_IMAGE_SIDE
                        or len(blob) < MIN_IMAGE_BYTES):
                    continue
                ext = base.get("ext", "png")
                content_type = "image/jpeg" if ext in ("jpg", "jpeg") else f"image/{ext}"
                figures.append(_extracted_figure(len(figures) + 1, blob, content_type))

    if not page_texts:
        logger.warning(f"{path.name}: no text layer found on any page")

    return ExtractedText(
        text="\n\n".join(page_texts),
        figures=figures,
        source_format="pdf",
        page_count=page_count,
        ocr_pages=ocr_pages,
    )


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles dataclasses, enums, dates and paths."""

    def default(self, obj):
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, tuple):
            return list(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """Load data from a JSON file."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def create_temp_dir(prefix: str = "manuscript_recon_") -> Path:
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug(f"Created temp directory: {temp_dir}")
    return temp_dir


def cleanup_dir(path: Union[str, Path], force: bool = False) -> bool:
    """
    Remove a directory and its contents.

    Args:
        path: Path to the directory
        force: If True, remove even if not a temp directory

    Returns:
        True if successfully removed
    """
    path = Path(path)
    if not path.exists():
        return True

    if not force and "manuscript_recon_" not in str(path):
        logger.warning(f"Refusing to delete non-temp directory: {path}")
        return False

    shutil.rmtree(path)
    logger.debug(f"Removed directory: {path}")
    return True

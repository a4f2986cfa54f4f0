"""
Utility modules for the manuscript reconstruction pipeline.
"""

from .errors import (
    ManuscriptReconError, ExtractorError, BackendError,
    ResponseFormatError, ExtractionFailedError, ExportError,
)
from .io import extract, detect_input_type, save_json, load_json, ensure_dir
from .manuscript import (
    Author, Section, Figure, ManuscriptDocument, DocumentStore,
    create_manual_manuscript,
)
from .extraction import ResilientExtractionClient, ExtractionResult
from .layout import LayoutEngine, Block, BlockType, classify
from .validation import ValidationReport, ValidationStatus, validate_manuscript
from .assembler import ManuscriptAssembler, ProcessedManuscript, finalize_manuscript
from .export import HtmlRenderer, PdfExporter, DocxExporter, DocumentExporter
from .letter import LetterOfAcceptance

__all__ = [
    # Errors
    "ManuscriptReconError", "ExtractorError", "BackendError",
    "ResponseFormatError", "ExtractionFailedError", "ExportError",
    # IO
    "extract", "detect_input_type", "save_json", "load_json", "ensure_dir",
    # Model
    "Author", "Section", "Figure", "ManuscriptDocument", "DocumentStore",
    "create_manual_manuscript",
    # Extraction
    "ResilientExtractionClient", "ExtractionResult",
    # Layout
    "LayoutEngine", "Block", "BlockType", "classify",
    # Validation
    "ValidationReport", "ValidationStatus", "validate_manuscript",
    # Assembly
    "ManuscriptAssembler", "ProcessedManuscript", "finalize_manuscript",
    # Export
    "HtmlRenderer", "PdfExporter", "DocxExporter", "DocumentExporter",
    "LetterOfAcceptance",
]

"""
Manuscript assembler for journal layout.

Provides:
- Publication-metadata finalization (DOI placeholder, volume/issue, dates, logo)
- Pipeline orchestration (extract text, segment, finalize, validate)
- AI and manual (no-AI) processing paths
"""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, Dict, Any, Sequence, Tuple, Union

from ..config import JournalConfig, PipelineConfig, JSON_SCHEMA_VERSION, get_config
from .formatting import format_long_date, normalize_title, sanitize_text
from .manuscript import Figure, ManuscriptDocument, create_manual_manuscript
from .validation import ValidationReport, validate_manuscript

logger = logging.getLogger(__name__)

# DOI values the backend returns when it found nothing
_EMPTY_DOI_LITERALS = {"", "null", "none", "n/a", "undefined"}

# Logo references that are stand-ins rather than real artwork
_PLACEHOLDER_LOGO_MARKERS = ("placeholder", "example.com", "stackblitz")


# ============================================================================
# Finalization
# ============================================================================

def is_placeholder_logo(url: str) -> bool:
    lowered = (url or "").strip().lower()
    return not lowered or any(marker in lowered for marker in _PLACEHOLDER_LOGO_MARKERS)


def finalize_manuscript(
    document: ManuscriptDocument,
    journal: Optional[JournalConfig] = None,
    today: Optional[date] = None
) -> ManuscriptDocument:
    """
    Fill publication metadata not owned by extraction.

    Only empty fields are filled; a DOI detected during extraction is kept
    unless it is a literal such as "null". Titles are whitespace-collapsed
    and ALL-CAPS titles converted to title case.

    Args:
        document: Extracted (or manual) manuscript
        journal: Journal defaults
        today: Date used for year and received/accepted/published

    Returns:
        New ManuscriptDocument
    """
    journal = journal or JournalConfig()
    today = today or date.today()
    today_text = format_long_date(today)

    doi = document.doi.strip()
    if doi.lower() in _EMPTY_DOI_LITERALS:
        doi = journal.doi_placeholder

    logo_url = document.logo_url
    if is_placeholder_logo(logo_url):
        logo_url = journal.default_logo_url

    return document.with_changes(
        title=normalize_title(sanitize_text(document.title)),
        doi=doi,
        volume=document.volume or journal.default_volume,
        issue=document.issue or journal.default_issue,
        pages=document.pages or journal.default_pages,
        year=document.year or str(today.year),
        received_date=document.received_date or today_text,
        accepted_date=document.accepted_date or today_text,
        published_date=document.published_date or today_text,
        logo_url=logo_url,
    )


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ProcessedManuscript:
    """Finalized manuscript, its validation report and how it was produced."""
    document: ManuscriptDocument
    report: ValidationReport
    original_text: str = ""
    mode: str = "ai"  # ai, manual
    model: Optional[str] = None
    recovered: bool = False
    extraction: Optional[Any] = None  # ExtractionResult on the AI path
    source_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "schema_version": JSON_SCHEMA_VERSION,
            "source_file": self.source_file,
            "mode": self.mode,
            "model": self.model,
            "recovered": self.recovered,
            "manuscript": self.document.to_dict(),
            "validation": self.report.to_dict(),
        }
        if self.extraction is not None:
            result["attempts"] = [a.to_dict() for a in self.extraction.attempts]
        return result


# ============================================================================
# Manuscript Assembler
# ============================================================================

class ManuscriptAssembler:
    """
    Orchestrates the manuscript pipeline.

    Coordinates:
    - Text extraction from uploads
    - Resilient AI segmentation (or manual synthesis)
    - Finalization
    - Integrity validation
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        backend=None,
        client=None
    ):
        self.config = config or get_config()
        self._backend = backend
        self._client = client

    @property
    def backend(self):
        if self._backend is None:
            from .backend import GeminiBackend
            self._backend = GeminiBackend(api_key=self.config.extraction.api_key)
        return self._backend

    @property
    def client(self):
        if self._client is None:
            from .extraction import ResilientExtractionClient
            self._client = ResilientExtractionClient(
                self.backend,
                config=self.config.extraction,
                journal=self.config.journal,
            )
        return self._client

    def _finish(
        self,
        document: ManuscriptDocument,
        original_text: str,
        today: Optional[date] = None
    ) -> Tuple[ManuscriptDocument, ValidationReport]:
        document = finalize_manuscript(document, self.config.journal, today)
        report = validate_manuscript(original_text, document, self.config.validation)
        logger.info(f"Validation: {report.summary}")
        return document, report

    async def process_text(
        self,
        text: str,
        figures: Sequence[Figure] = (),
        article_type: Optional[str] = None,
        today: Optional[date] = None
    ) -> ProcessedManuscript:
        """
        AI path: segment raw text into a finalized, validated manuscript.

        Args:
            text: Raw manuscript text
            figures: Figures from the extractor (kept as-is on the result)
            article_type: Article type hint
            today: Date for finalization

        Returns:
            ProcessedManuscript

        Raises:
            ExtractionFailedError: When every candidate model failed
        """
        if not (text or "").strip():
            raise ValueError("No manuscript text to process")

        figures = list(figures)
        extraction = await self.client.extract(text, figures, article_type)

        document = extraction.document.with_changes(figures=tuple(figures))
        document, report = self._finish(document, text, today)

        return ProcessedManuscript(
            document=document,
            report=report,
            original_text=text,
            mode="ai",
            model=extraction.model,
            recovered=extraction.recovered,
            extraction=extraction,
        )

    def process_manual(
        self,
        text: str,
        figures: Sequence[Figure] = (),
        today: Optional[date] = None
    ) -> ProcessedManuscript:
        """Manual path: minimal manuscript straight from the text, no backend."""
        document = create_manual_manuscript(text, figures)
        document, report = self._finish(document, text or "", today)
        return ProcessedManuscript(
            document=document,
            report=report,
            original_text=text or "",
            mode="manual",
        )

    async def process_file(
        self,
        path: Union[str, Path],
        manual: bool = False,
        article_type: Optional[str] = None,
        today: Optional[date] = None
    ) -> ProcessedManuscript:
        """
        Extract text from a file, then run the AI or manual path.

        Raises:
            ExtractorError: If the file is unsupported or unreadable
            ExtractionFailedError: When every candidate model failed
        """
        from .io import extract

        extracted = extract(path)
        if manual:
            result = self.process_manual(extracted.text, extracted.figures, today)
        else:
            result = await self.process_text(extracted.text, extracted.figures, article_type, today)
        result.source_file = str(path)
        return result

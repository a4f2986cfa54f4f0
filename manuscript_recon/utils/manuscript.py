"""
Structured manuscript model.

Provides:
- Immutable manuscript snapshots (ManuscriptDocument, Author, Section, Figure)
- Partial backend response model and total normalization into a snapshot
- Manual (no-AI) manuscript synthesis
- DocumentStore with typed update operations for the editing session
"""

import logging
import re
from dataclasses import dataclass, field, fields, replace
from typing import List, Optional, Dict, Any, Tuple, Sequence

from ..config import RecoveryPolicy, ValidationConfig
from .errors import ResponseFormatError

logger = logging.getLogger(__name__)


# ============================================================================
# Placeholder Content
# ============================================================================

UNTITLED_RECOVERED = "Untitled (Recovered)"
UNTITLED_MANUAL = "Untitled Manuscript"
PARTIAL_SECTION_HEADING = "Partial Content"
PARTIAL_SECTION_CONTENT = "Content was truncated due to length. Please check the original doc."
ABSTRACT_PLACEHOLDER = "Abstract not found or truncated."
UNKNOWN_AUTHOR_NAME = "Unknown"
UNKNOWN_AFFILIATION = "Unknown"

MANUAL_SECTION_HEADING = "Main Content"
MANUAL_EMPTY_BODY = "Paste your manuscript content here..."

# Fields a backend response must carry to be accepted without backfilling
REQUIRED_FIELDS = ("title", "sections")


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Author:
    """A manuscript author."""
    name: str
    affiliation: str = ""
    email: Optional[str] = None
    is_corresponding: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "affiliation": self.affiliation,
            "email": self.email,
            "isCorresponding": self.is_corresponding,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Author':
        return cls(
            name=_as_text(data.get("name")),
            affiliation=_as_text(data.get("affiliation")),
            email=_as_text(data.get("email")) or None,
            is_corresponding=bool(
                data.get("isCorresponding", data.get("is_corresponding", False))
            ),
        )


@dataclass(frozen=True)
class Section:
    """A body section. Content is raw text/HTML, classified at render time."""
    heading: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"heading": self.heading, "content": self.content}


@dataclass(frozen=True)
class Figure:
    """A figure whose id matches numeric citations such as 'Figure 3'."""
    id: str
    file_url: str
    caption: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "fileUrl": self.file_url, "caption": self.caption}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Figure':
        return cls(
            id=_as_text(data.get("id")),
            file_url=_as_text(data.get("fileUrl", data.get("file_url"))),
            caption=_as_text(data.get("caption")),
        )


@dataclass(frozen=True)
class ManuscriptDocument:
    """
    Immutable snapshot of a manuscript.

    Sequence fields are stored as tuples. Publication metadata (volume,
    issue, dates, logo) is owned by finalization, not by extraction.
    """
    title: str
    authors: Tuple[Author, ...]
    abstract: str = ""
    keywords: Tuple[str, ...] = ()
    sections: Tuple[Section, ...] = ()
    references: Tuple[str, ...] = ()
    figures: Tuple[Figure, ...] = ()
    article_type: str = ""

    # Publication metadata
    doi: str = ""
    volume: str = ""
    issue: str = ""
    year: str = ""
    pages: str = ""
    received_date: str = ""
    revised_date: str = ""
    accepted_date: str = ""
    published_date: str = ""
    logo_url: str = ""

    def __post_init__(self):
        object.__setattr__(self, "authors", tuple(self.authors))
        object.__setattr__(self, "keywords", _dedupe(self.keywords))
        object.__setattr__(self, "sections", tuple(self.sections))
        object.__setattr__(self, "references", tuple(self.references))
        object.__setattr__(self, "figures", tuple(self.figures))

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def affiliations(self) -> List[str]:
        """Distinct affiliation strings in first-seen order."""
        return unique_affiliations(self.authors)

    def affiliation_index(self, author: Author) -> int:
        """1-based index of the author's affiliation, 0 when it has none."""
        if not author.affiliation:
            return 0
        return self.affiliations.index(author.affiliation) + 1

    @property
    def affiliation_indices(self) -> List[int]:
        return [self.affiliation_index(a) for a in self.authors]

    @property
    def corresponding_author(self) -> Optional[Author]:
        """Flagged corresponding author, else the first author with an email."""
        for author in self.authors:
            if author.is_corresponding:
                return author
        for author in self.authors:
            if author.email:
                return author
        return self.authors[0] if self.authors else None

    def figure_by_id(self, figure_id: str) -> Optional[Figure]:
        for figure in self.figures:
            if figure.id == figure_id:
                return figure
        return None

    def body_text(self) -> str:
        """Title, abstract, keywords, sections and references as one string."""
        parts = [self.title, self.abstract, " ".join(self.keywords)]
        for section in self.sections:
            parts.append(section.heading)
            parts.append(section.content)
        parts.extend(self.references)
        return "\n".join(p for p in parts if p)

    def with_changes(self, **changes) -> 'ManuscriptDocument':
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "articleType": self.article_type,
            "authors": [a.to_dict() for a in self.authors],
            "affiliations": self.affiliations,
            "abstract": self.abstract,
            "keywords": list(self.keywords),
            "sections": [s.to_dict() for s in self.sections],
            "references": list(self.references),
            "figures": [f.to_dict() for f in self.figures],
            "doi": self.doi,
            "volume": self.volume,
            "issue": self.issue,
            "year": self.year,
            "pages": self.pages,
            "receivedDate": self.received_date,
            "revisedDate": self.revised_date,
            "acceptedDate": self.accepted_date,
            "publishedDate": self.published_date,
            "logoUrl": self.logo_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ManuscriptDocument':
        return cls(
            title=_as_text(data.get("title")),
            article_type=_as_text(data.get("articleType")),
            authors=tuple(Author.from_dict(a) for a in data.get("authors") or []),
            abstract=_as_text(data.get("abstract")),
            keywords=tuple(data.get("keywords") or []),
            sections=tuple(
                Section(_as_text(s.get("heading")), _as_text(s.get("content")))
                for s in data.get("sections") or []
            ),
            references=tuple(_as_text(r) for r in data.get("references") or []),
            figures=tuple(Figure.from_dict(f) for f in data.get("figures") or []),
            doi=_as_text(data.get("doi")),
            volume=_as_text(data.get("volume")),
            issue=_as_text(data.get("issue")),
            year=_as_text(data.get("year")),
            pages=_as_text(data.get("pages")),
            received_date=_as_text(data.get("receivedDate")),
            revised_date=_as_text(data.get("revisedDate")),
            accepted_date=_as_text(data.get("acceptedDate")),
            published_date=_as_text(data.get("publishedDate")),
            logo_url=_as_text(data.get("logoUrl")),
        )


def unique_affiliations(authors: Sequence[Author]) -> List[str]:
    """Deduplicate affiliations with exact, case-sensitive matching."""
    seen = []
    for author in authors:
        if author.affiliation and author.affiliation not in seen:
            seen.append(author.affiliation)
    return seen


# ============================================================================
# Backend Response Model
# ============================================================================

@dataclass
class RawExtractionResult:
    """
    Backend JSON as received. Every field may be missing.

    ``from_json`` accepts both the ``contentSections{header, body}`` shape
    requested in the schema and the older ``sections{heading, content}``
    shape some models still return.
    """
    title: Optional[str] = None
    article_type: Optional[str] = None
    doi: Optional[str] = None
    abstract: Optional[str] = None
    keywords: Optional[List[str]] = None
    authors: Optional[List[Author]] = None
    sections: Optional[List[Section]] = None
    references: Optional[List[str]] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'RawExtractionResult':
        if not isinstance(data, dict):
            raise ResponseFormatError(
                f"Expected a JSON object, got {type(data).__name__}"
            )

        raw_sections = data.get("contentSections")
        if raw_sections is None:
            raw_sections = data.get("sections")

        return cls(
            title=_optional_text(data.get("title")),
            article_type=_optional_text(data.get("articleType", data.get("article_type"))),
            doi=_optional_text(data.get("doi")),
            abstract=_optional_text(data.get("abstract")),
            keywords=_parse_keywords(data.get("keywords")),
            authors=_parse_authors(data.get("authors")),
            sections=_parse_sections(raw_sections),
            references=_parse_references(data.get("references")),
        )

    def missing_fields(self) -> List[str]:
        """Names of required fields that are absent or empty."""
        missing = []
        if not self.title:
            missing.append("title")
        if not self.sections:
            missing.append("sections")
        return missing


def normalize_extraction(
    raw: RawExtractionResult,
    policy: RecoveryPolicy = RecoveryPolicy.PLACEHOLDER
) -> ManuscriptDocument:
    """
    Turn a partial backend response into a complete snapshot.

    Missing required fields raise ``ResponseFormatError`` under the strict
    policy; under the placeholder policy they are backfilled. Optional fields
    always fall back to empty values, and a placeholder author keeps the
    one-author minimum.

    Args:
        raw: Parsed backend response
        policy: Recovery policy for missing required fields

    Returns:
        ManuscriptDocument without publication metadata (except a detected DOI)
    """
    missing = raw.missing_fields()
    if missing and policy == RecoveryPolicy.STRICT:
        raise ResponseFormatError(
            f"Response is missing required fields: {', '.join(missing)}"
        )
    if missing:
        logger.warning(f"Backfilling missing fields with placeholders: {missing}")

    authors = raw.authors or [Author(UNKNOWN_AUTHOR_NAME, UNKNOWN_AFFILIATION)]
    sections = raw.sections or [Section(PARTIAL_SECTION_HEADING, PARTIAL_SECTION_CONTENT)]

    abstract = raw.abstract
    if not abstract:
        abstract = ABSTRACT_PLACEHOLDER if policy == RecoveryPolicy.PLACEHOLDER else ""

    return ManuscriptDocument(
        title=raw.title or UNTITLED_RECOVERED,
        authors=tuple(authors),
        abstract=abstract,
        keywords=tuple(raw.keywords or []),
        sections=tuple(sections),
        references=tuple(raw.references or []),
        article_type=raw.article_type or "",
        doi=raw.doi or "",
    )


# ============================================================================
# Manual Mode
# ============================================================================

def create_manual_manuscript(
    text: str,
    figures: Sequence[Figure] = ()
) -> ManuscriptDocument:
    """
    Build a minimal manuscript directly from text, without the AI backend.

    The first non-empty line becomes the title and the remaining lines form a
    single "Main Content" section, one paragraph per line.
    """
    clean = re.sub(r"<[^>]*>", "\n", text or "").strip()
    lines = [line.strip() for line in clean.split("\n") if line.strip()]

    title = lines[0] if lines else UNTITLED_MANUAL
    body = "\n\n".join(lines[1:]) or MANUAL_EMPTY_BODY

    logger.info(f"Manual manuscript created: {len(lines)} lines, {len(figures)} figures")

    return ManuscriptDocument(
        title=title,
        authors=(Author("Author Name", "Affiliation", "email@example.com"),),
        abstract="Abstract content...",
        keywords=("Keyword1", "Keyword2"),
        sections=(Section(MANUAL_SECTION_HEADING, body),),
        references=("Reference 1",),
        figures=tuple(figures),
    )


# ============================================================================
# Document Store
# ============================================================================

_SCALAR_FIELDS = {
    f.name for f in fields(ManuscriptDocument)
    if f.name not in ("authors", "keywords", "sections", "references", "figures")
}


class DocumentStore:
    """
    Holds the live manuscript snapshot for an editing session.

    Every update returns (and stores) a new snapshot; the validation report
    is recomputed against the original input after each one.
    """

    def __init__(
        self,
        document: ManuscriptDocument,
        original_text: str = "",
        validation_config: Optional[ValidationConfig] = None
    ):
        self.original_text = original_text
        self.validation_config = validation_config or ValidationConfig()
        self._document = document
        self._report = self._validate(document)

    @property
    def document(self) -> ManuscriptDocument:
        return self._document

    @property
    def report(self):
        return self._report

    def _validate(self, document: ManuscriptDocument):
        from .validation import validate_manuscript
        return validate_manuscript(self.original_text, document, self.validation_config)

    def _commit(self, document: ManuscriptDocument) -> ManuscriptDocument:
        self._document = document
        self._report = self._validate(document)
        return document

    def replace(
        self,
        document: ManuscriptDocument,
        original_text: Optional[str] = None
    ) -> ManuscriptDocument:
        """Swap in a freshly extracted manuscript (no merge with the old one)."""
        if original_text is not None:
            self.original_text = original_text
        return self._commit(document)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def set_field(self, name: str, value: Any) -> ManuscriptDocument:
        """Set a scalar field, or keywords/references from a list or string."""
        if name == "keywords":
            if isinstance(value, str):
                value = _parse_keywords(value)
            return self._commit(self._document.with_changes(keywords=tuple(value or ())))
        if name == "references":
            if isinstance(value, str):
                value = [line.strip() for line in value.split("\n") if line.strip()]
            return self._commit(self._document.with_changes(references=tuple(value or ())))
        if name not in _SCALAR_FIELDS:
            raise KeyError(f"Unknown manuscript field: {name}")
        return self._commit(self._document.with_changes(**{name: _as_text(value)}))

    def set_authors(self, authors: Sequence[Author]) -> ManuscriptDocument:
        if not authors:
            raise ValueError("A manuscript needs at least one author")
        return self._commit(self._document.with_changes(authors=tuple(authors)))

    def update_author(self, index: int, **changes) -> ManuscriptDocument:
        authors = list(self._document.authors)
        authors[index] = replace(authors[index], **changes)
        return self.set_authors(authors)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def update_section_content(self, index: int, content: str) -> ManuscriptDocument:
        sections = list(self._document.sections)
        sections[index] = replace(sections[index], content=content)
        return self._commit(self._document.with_changes(sections=tuple(sections)))

    def update_section_heading(self, index: int, heading: str) -> ManuscriptDocument:
        sections = list(self._document.sections)
        sections[index] = replace(sections[index], heading=heading)
        return self._commit(self._document.with_changes(sections=tuple(sections)))

    # ------------------------------------------------------------------
    # Figures
    # ------------------------------------------------------------------

    def reorder_figure(self, index: int, direction: str) -> ManuscriptDocument:
        """Move a figure one slot 'up' or 'down'. Moves past either end are no-ops."""
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")

        figures = list(self._document.figures)
        target = index - 1 if direction == "up" else index + 1
        if not (0 <= index < len(figures)) or not (0 <= target < len(figures)):
            return self._document

        figures[index], figures[target] = figures[target], figures[index]
        return self._commit(self._document.with_changes(figures=tuple(figures)))

    def add_figure(
        self,
        file_url: str,
        caption: str = "",
        figure_id: Optional[str] = None
    ) -> ManuscriptDocument:
        """Append a figure; without an explicit id the next free number is used."""
        figures = list(self._document.figures)
        if figure_id is None:
            numeric = [int(f.id) for f in figures if f.id.isdigit()]
            figure_id = str(max(numeric, default=0) + 1)
        if any(f.id == figure_id for f in figures):
            raise ValueError(f"Figure id {figure_id} already exists")

        figures.append(Figure(figure_id, file_url, caption or f"Figure {figure_id}"))
        return self._commit(self._document.with_changes(figures=tuple(figures)))

    def update_figure_caption(self, index: int, caption: str) -> ManuscriptDocument:
        figures = list(self._document.figures)
        figures[index] = replace(figures[index], caption=caption)
        return self._commit(self._document.with_changes(figures=tuple(figures)))

    def remove_figure(self, index: int) -> ManuscriptDocument:
        figures = list(self._document.figures)
        del figures[index]
        return self._commit(self._document.with_changes(figures=tuple(figures)))


# ============================================================================
# Coercion Helpers
# ============================================================================

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _as_text(value)
    return text or None


def _dedupe(values) -> Tuple[str, ...]:
    seen = []
    for value in values or ():
        value = _as_text(value)
        if value and value not in seen:
            seen.append(value)
    return tuple(seen)


def _parse_keywords(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = re.split(r"[;,]", value)
    if not isinstance(value, list):
        return None
    return list(_dedupe(value))


def _parse_authors(value: Any) -> Optional[List[Author]]:
    if not isinstance(value, list):
        return None

    authors = []
    for item in value:
        if isinstance(item, str) and item.strip():
            authors.append(Author(name=item.strip()))
        elif isinstance(item, dict):
            author = Author.from_dict(item)
            if author.name:
                authors.append(author)
    return authors or None


def _parse_sections(value: Any) -> Optional[List[Section]]:
    if not isinstance(value, list):
        return None

    sections = []
    for item in value:
        if isinstance(item, str):
            sections.append(Section("", item))
        elif isinstance(item, dict):
            heading = _as_text(item.get("header", item.get("heading")))
            body = item.get("body", item.get("content"))
            sections.append(Section(heading, "" if body is None else str(body)))
    return sections or None


def _parse_references(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split("\n")
    if not isinstance(value, list):
        return None
    return [_as_text(r) for r in value if _as_text(r)]

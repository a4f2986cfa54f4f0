"""
Content classification and layout reconstruction.

Provides:
- Block splitting of section content (paragraph markup, blank lines, tables)
- Block classification (heading, sub-heading, equation, table, paragraph)
- Figure placement at the first textual citation, tracked across sections
- Trailing "additional figures" for figures that are never cited

Classification is a pure function over plain text with an explicit,
ordered list of predicates. Layout output is recomputed on every render
and never written back to the manuscript.
"""

import html as html_lib
import logging
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Dict, Any, Sequence, Tuple

from ..config import LayoutConfig
from .manuscript import Figure, ManuscriptDocument, Section
from .tables import TableResult, is_markdown_table, style_table_html

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes and Enums
# ============================================================================

class BlockType(Enum):
    """Types of rendered blocks."""
    HEADING = "heading"
    SUBHEADING = "subheading"
    EQUATION = "equation"
    TABLE = "table"
    PARAGRAPH = "paragraph"
    FIGURE = "figure"


@dataclass
class Block:
    """A classified, render-ready block."""
    block_type: BlockType
    text: str = ""          # plain text used for classification
    html: str = ""          # original markup (paragraph inline tags, tables)
    figure: Optional[Figure] = None
    reading_order: int = 0
    block_id: str = ""

    def __post_init__(self):
        if not self.block_id:
            self.block_id = str(uuid.uuid4())[:8]

    @property
    def level(self) -> int:
        if self.block_type == BlockType.HEADING:
            return 1
        if self.block_type == BlockType.SUBHEADING:
            return 2
        return 0

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "block_id": self.block_id,
            "type": self.block_type.value,
            "reading_order": self.reading_order,
            "text": self.text,
        }
        if self.html:
            result["html"] = self.html
        if self.figure is not None:
            result["figure"] = self.figure.to_dict()
        return result


@dataclass
class SectionLayout:
    """Blocks for one section, in reading order."""
    heading: str
    blocks: List[Block] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"heading": self.heading, "blocks": [b.to_dict() for b in self.blocks]}


@dataclass
class LayoutResult:
    """Layout of a whole manuscript."""
    sections: List[SectionLayout] = field(default_factory=list)
    additional_figures: List[Figure] = field(default_factory=list)
    placed_figure_ids: List[str] = field(default_factory=list)

    @property
    def figure_blocks(self) -> List[Block]:
        return [
            block for section in self.sections for block in section.blocks
            if block.block_type == BlockType.FIGURE
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "additional_figures": [f.to_dict() for f in self.additional_figures],
            "placed_figure_ids": list(self.placed_figure_ids),
        }


# ============================================================================
# Patterns
# ============================================================================

FIGURE_CITATION = re.compile(r"(?:Figure|Fig\.?)\s*(\d+)", re.IGNORECASE)
FIGURE_REFERENCE = re.compile(r"\[\[FIGURE:\s*([^\]\s]+)\s*\]\]")
FIGURE_PLACEHOLDER = "[FIGURE REMOVED]"

_MAIN_NUMBERED = re.compile(r"^\d+\.\s+[A-Z]")
_ALL_CAPS_OR_SYMBOLS = re.compile(r"^[A-Z\s\W]+$")
_MULTI_LEVEL_NUMBER = re.compile(r"^\d+(\.\d+)+")
_CAPTION_PREFIX = re.compile(r"^(Figure|Table)", re.IGNORECASE)

_TAG = re.compile(r"<[^>]+>")
_TABLE_REGION = re.compile(r"(<table\b.*?</table>)", re.IGNORECASE | re.DOTALL)
_PARAGRAPH_CLOSE = re.compile(r"</p>", re.IGNORECASE)
_BLANK_LINES = re.compile(r"\n\s*\n+")


def strip_markup(text: str) -> str:
    """Plain text of a block: tags removed, entities decoded, whitespace trimmed."""
    return html_lib.unescape(_TAG.sub("", text or "")).strip()


# ============================================================================
# Classification
# ============================================================================

def is_main_heading(text: str, config: LayoutConfig, markup: str = "") -> bool:
    return len(text) < config.heading_max_length and bool(
        _MAIN_NUMBERED.match(text) or _ALL_CAPS_OR_SYMBOLS.match(text)
    )


def is_sub_heading(text: str, config: LayoutConfig, markup: str = "") -> bool:
    return len(text) < config.heading_max_length and bool(_MULTI_LEVEL_NUMBER.match(text))


def is_equation(text: str, config: LayoutConfig, markup: str = "") -> bool:
    if not (config.equation_min_length <= len(text) < config.equation_max_length):
        return False
    if not any(symbol in text for symbol in config.equation_symbols):
        return False
    if _CAPTION_PREFIX.match(text):
        return False
    return not text.endswith(".")


def has_table_markup(text: str, config: LayoutConfig, markup: str = "") -> bool:
    return "<table" in (markup or text).lower()


# First match wins
CLASSIFICATION_RULES: List[Tuple[BlockType, Callable[..., bool]]] = [
    (BlockType.HEADING, is_main_heading),
    (BlockType.SUBHEADING, is_sub_heading),
    (BlockType.EQUATION, is_equation),
    (BlockType.TABLE, has_table_markup),
]


def classify(
    text: str,
    markup: Optional[str] = None,
    config: Optional[LayoutConfig] = None
) -> BlockType:
    """
    Classify a block of text.

    Precedence: main heading, sub-heading, equation, table, paragraph.

    Args:
        text: Block text (markup is stripped before the text checks)
        markup: Original markup, checked for table tags
        config: Thresholds; defaults to LayoutConfig()

    Returns:
        BlockType
    """
    config = config or LayoutConfig()
    plain = strip_markup(text)

    for block_type, predicate in CLASSIFICATION_RULES:
        if predicate(plain, config, markup or text):
            return block_type

    return BlockType.PARAGRAPH


# ============================================================================
# Splitting
# ============================================================================

@dataclass
class RawBlock:
    """A candidate block before classification."""
    markup: str
    is_table: bool = False


def split_blocks(content: str) -> List[RawBlock]:
    """
    Split section content into candidate blocks.

    Table regions are kept whole. Remaining content is split on closing
    paragraph tags (and re-wrapped) when it contains them, otherwise on
    runs of blank lines. Markdown pipe tables become table blocks.
    """
    blocks: List[RawBlock] = []
    if not content:
        return blocks

    for chunk in _TABLE_REGION.split(content):
        if not chunk or not chunk.strip():
            continue
        if _TABLE_REGION.fullmatch(chunk.strip()):
            blocks.append(RawBlock(chunk.strip(), is_table=True))
            continue

        if _PARAGRAPH_CLOSE.search(chunk):
            parts = [p.strip() + "</p>" for p in _PARAGRAPH_CLOSE.split(chunk) if strip_markup(p)]
        else:
            parts = [p.strip() for p in _BLANK_LINES.split(chunk) if p.strip()]

        for part in parts:
            if is_markdown_table(part):
                table = TableResult.from_markdown(part)
                if table is not None:
                    blocks.append(RawBlock(table.table_html, is_table=True))
                    continue
            blocks.append(RawBlock(part))

    return blocks


# ============================================================================
# Layout Engine
# ============================================================================

class LayoutEngine:
    """
    Turns manuscript sections into typed blocks with figures interleaved.

    A figure is placed once, immediately after the first block that cites it
    (by number, e.g. "Figure 2" or "Fig. 2") or carries its inline
    reference. The placed set is threaded across sections in document order.
    """

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def layout(self, document: ManuscriptDocument) -> LayoutResult:
        """Lay out every section, then collect figures that were never placed."""
        placed: List[str] = []
        sections = [
            self.layout_section(section, document.figures, placed)
            for section in document.sections
        ]

        additional = [f for f in document.figures if f.id not in placed]
        if additional:
            logger.debug(f"{len(additional)} figure(s) not cited in text: {[f.id for f in additional]}")

        return LayoutResult(
            sections=sections,
            additional_figures=additional,
            placed_figure_ids=list(placed),
        )

    def layout_section(
        self,
        section: Section,
        figures: Sequence[Figure],
        placed: List[str]
    ) -> SectionLayout:
        """
        Classify one section's content and interleave figures.

        Args:
            section: Section to lay out
            figures: All manuscript figures
            placed: Ids already placed; appended to in place

        Returns:
            SectionLayout
        """
        result = SectionLayout(heading=section.heading)

        for raw in split_blocks(section.content):
            references = FIGURE_REFERENCE.findall(raw.markup)
            markup = FIGURE_REFERENCE.sub("", raw.markup).replace(FIGURE_PLACEHOLDER, "")
            plain = strip_markup(markup)

            if raw.is_table:
                self._emit(result, Block(BlockType.TABLE, plain, style_table_html(markup)))
            elif plain:
                block_type = classify(plain, markup, self.config)
                block_markup = style_table_html(markup) if block_type == BlockType.TABLE else markup
                self._emit(result, Block(block_type, plain, block_markup))

            cited = [m.group(1) for m in FIGURE_CITATION.finditer(plain)]
            for figure_id in cited + references:
                figure = self._find_figure(figure_id, figures)
                if figure is not None and figure.id not in placed:
                    placed.append(figure.id)
                    self._emit(result, Block(BlockType.FIGURE, figure.caption, figure=figure))

        return result

    @staticmethod
    def _emit(result: SectionLayout, block: Block):
        block.reading_order = len(result.blocks)
        result.blocks.append(block)

    @staticmethod
    def _find_figure(figure_id: str, figures: Sequence[Figure]) -> Optional[Figure]:
        for figure in figures:
            if figure.id == figure_id:
                return figure
        # "Figure 01" still matches id "1"
        if figure_id.isdigit():
            normalized = str(int(figure_id))
            for figure in figures:
                if figure.id == normalized:
                    return figure
        return None

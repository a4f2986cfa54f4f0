"""
Export module for journal layout.

Provides:
- HTML print layout (A4 front matter, two-column body, running heads)
- PDF export (HTML rendered with WeasyPrint)
- DOCX export (using python-docx)
- JSON export of the manuscript and its validation report
"""

import base64
import html
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, List, Union, Sequence
from urllib.parse import unquote

import requests

from ..config import ExportConfig, JournalConfig, LayoutConfig, JSON_SCHEMA_VERSION
from .equations import (
    InlineRun,
    latex_to_readable,
    markup_to_runs,
    parse_inline_runs,
    strip_math_delimiters,
)
from .errors import ExportError
from .formatting import (
    apa_citation,
    highlight_abstract_labels,
    running_head_authors,
    running_head_journal,
    sanitize_text,
    split_paragraphs,
    to_sentence_case,
)
from .layout import Block, BlockType, LayoutEngine, LayoutResult
from .manuscript import Figure, ManuscriptDocument
from .tables import TableResult

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ["json", "html", "pdf", "docx"]

_HTML_TAG = re.compile(r"</?[a-zA-Z][^>]*>")
_PARAGRAPH_WRAPPER = re.compile(r"^\s*<p\b[^>]*>(.*)</p>\s*$", re.IGNORECASE | re.DOTALL)
_TABLE_CAPTION = re.compile(r"^Table\s+\d+[.:]?", re.IGNORECASE)
_FIGURE_CAPTION = re.compile(r"^(?:Figure|Fig\.?)\s*\d+", re.IGNORECASE)
_DATA_URL = re.compile(r"^data:([\w/+.-]+)?(;base64)?,(.*)$", re.DOTALL)


# ============================================================================
# Shared Article Strings
# ============================================================================

@dataclass
class ArticleMeta:
    """Strings shared by every writer."""
    citation: str
    running_authors: str
    running_journal: str
    volume_line: str
    copyright: str
    license_text: str

    @classmethod
    def from_document(cls, document: ManuscriptDocument, journal: JournalConfig) -> 'ArticleMeta':
        names = [a.name for a in document.authors]
        return cls(
            citation=apa_citation(
                names, document.year, document.title, journal.name,
                document.volume, document.issue, document.pages, document.doi,
            ),
            running_authors=running_head_authors(names),
            running_journal=running_head_journal(
                journal.citation_title, document.year, document.volume,
                document.issue, document.pages,
            ),
            volume_line=f"Vol. {document.volume}, No. {document.issue}, {document.year}",
            copyright=(
                f"Copyright © {document.year} The Author(s). "
                f"Published by {journal.publisher}"
            ),
            license_text=f"This work is licensed under a {journal.license_name}",
        )


def figure_caption(figure: Figure) -> str:
    """Caption with a 'Figure N.' label unless it already starts with one."""
    caption = (figure.caption or "").strip()
    if _FIGURE_CAPTION.match(caption):
        return caption
    return f"Figure {figure.id}. {caption}".strip()


def paragraph_markup(block: Block) -> str:
    """Inner markup of a paragraph block (outer <p> removed)."""
    markup = block.html or block.text
    match = _PARAGRAPH_WRAPPER.match(markup)
    return match.group(1).strip() if match else markup.strip()


def safe_filename(title: str, max_length: int = 30) -> str:
    name = re.sub(r"[^A-Za-z0-9]", "_", (title or "manuscript")[:max_length])
    return name or "manuscript"


def load_image_bytes(file_url: str, timeout: int = 15) -> bytes:
    """
    Fetch figure bytes from a data URL, an http(s) URL or a local path.

    Raises:
        ExportError: If the image cannot be loaded
    """
    if not file_url:
        raise ExportError("Figure has no image reference")

    match = _DATA_URL.match(file_url)
    if match:
        try:
            if match.group(2):
                return base64.b64decode(match.group(3), validate=False)
            return unquote(match.group(3)).encode("utf-8")
        except ValueError as e:
            raise ExportError(f"Invalid data URL: {e}") from e

    if file_url.startswith(("http://", "https://")):
        try:
            response = requests.get(file_url, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ExportError(f"Could not download image {file_url}: {e}") from e
        return response.content

    path = Path(file_url)
    if not path.is_file():
        raise ExportError(f"Image not found: {file_url}")
    return path.read_bytes()


# ============================================================================
# HTML Renderer
# ============================================================================

def runs_to_html(runs: Sequence[InlineRun]) -> str:
    parts = []
    for run in runs:
        if run.line_break:
            parts.append("<br>")
            continue
        text = html.escape(run.text)
        if run.subscript:
            text = f"<sub>{text}</sub>"
        if run.superscript:
            text = f"<sup>{text}</sup>"
        if run.italic:
            text = f"<em>{text}</em>"
        if run.bold:
            text = f"<strong>{text}</strong>"
        parts.append(text)
    return "".join(parts)


def inline_html(markup: str) -> str:
    """Markup with tags passes through; plain text gets inline formatting."""
    if _HTML_TAG.search(markup or ""):
        return markup
    return runs_to_html(parse_inline_runs(markup or ""))


def _css_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


class HtmlRenderer:
    """Render a manuscript as print-ready HTML."""

    def __init__(
        self,
        journal: Optional[JournalConfig] = None,
        config: Optional[ExportConfig] = None,
        layout_config: Optional[LayoutConfig] = None
    ):
        self.journal = journal or JournalConfig()
        self.config = config or ExportConfig()
        self.layout_engine = LayoutEngine(layout_config)

    def render(
        self,
        document: ManuscriptDocument,
        layout: Optional[LayoutResult] = None
    ) -> str:
        """
        Render the full article page.

        Args:
            document: Finalized manuscript
            layout: Precomputed layout; computed when omitted

        Returns:
            HTML document string
        """
        layout = layout or self.layout_engine.layout(document)
        meta = ArticleMeta.from_document(document, self.journal)

        body = "\n".join([
            self._front_matter(document, meta),
            '<div class="article-body">',
            self._body(layout),
            self._references(document),
            '</div>',
        ])

        return (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n<head>\n<meta charset="utf-8">\n'
            f"<title>{html.escape(document.title)}</title>\n"
            f"<style>{self._css(meta)}</style>\n"
            f"</head>\n<body>\n{body}\n</body>\n</html>\n"
        )

    # ------------------------------------------------------------------
    # Styles
    # ------------------------------------------------------------------

    def _css(self, meta: ArticleMeta) -> str:
        c = self.config
        brand = c.brand_color
        return f"""
@page {{
    size: A4;
    margin: {c.margin_top_cm}cm {c.margin_side_cm}cm {c.margin_bottom_cm}cm {c.margin_side_cm}cm;
    @top-left {{ content: {_css_string(meta.running_authors)}; font: italic 8pt {c.heading_font}; }}
    @top-right {{ content: {_css_string(meta.running_journal)}; font: 8pt {c.heading_font}; }}
    @bottom-left {{ content: {_css_string(self.journal.name)}; font: 7pt {c.heading_font}; }}
    @bottom-right {{ content: counter(page); font: 8pt {c.heading_font}; }}
}}
@page :first {{
    @top-left {{ content: none; }}
    @top-right {{ content: none; }}
    @bottom-left {{ content: {_css_string(meta.license_text)}; font: 7pt {c.heading_font}; }}
}}
body {{ font-family: '{c.body_font}', serif; font-size: {c.body_font_size}pt; line-height: 1.35; color: #111; }}
.journal-header {{ display: flex; align-items: center; border-bottom: 2px solid {brand}; padding-bottom: 6px; }}
.journal-header img {{ height: 60px; margin-right: 12px; }}
.journal-name {{ font: bold 15pt '{c.heading_font}', sans-serif; color: {brand}; }}
.journal-issn, .journal-site {{ font: 8pt '{c.heading_font}', sans-serif; }}
.open-access {{ background: {brand}; color: #fff; font: bold 9pt '{c.heading_font}', sans-serif; padding: 3px 8px; margin: 8px 0; }}
.volume-line {{ font: 8pt '{c.heading_font}', sans-serif; margin-bottom: 8px; }}
.article-type {{ font-style: italic; color: {brand}; }}
h1.article-title {{ font-size: {c.title_font_size}pt; margin: 6px 0 10px; }}
.authors {{ font-weight: bold; }}
.affiliations, .correspondence {{ font-size: {c.small_font_size}pt; }}
.abstract-box {{ background: #f8fafc; border: 1px solid #dbe4ee; padding: 10px 14px; margin: 10px 0; text-align: justify; }}
.abstract-box h2 {{ text-align: center; font: bold 10pt '{c.heading_font}', sans-serif; color: {brand}; margin: 0 0 6px; }}
.dates {{ text-align: center; font: {c.small_font_size}pt '{c.heading_font}', sans-serif; border-top: 1px solid #ddd; padding-top: 4px; }}
.dates strong, .citation-box strong {{ color: {brand}; }}
.citation-box {{ background: #f0f9ff; border-left: 4px solid {brand}; padding: 6px 10px; font-size: {c.small_font_size}pt; margin: 8px 0; }}
.license-box {{ font-size: {c.small_font_size}pt; border: 1px solid #ddd; padding: 4px 8px; }}
.article-body {{ column-count: {c.column_count}; column-gap: 0.8cm; text-align: justify; }}
h2.section-heading {{ font: bold 10pt '{c.heading_font}', sans-serif; color: {brand}; text-transform: uppercase; margin: 12px 0 4px; }}
h3.block-heading {{ font: bold 10pt '{c.heading_font}', sans-serif; margin: 10px 0 4px; }}
h4.block-subheading {{ font: bold italic 9.5pt '{c.heading_font}', sans-serif; margin: 8px 0 4px; }}
p.body-paragraph {{ text-indent: {c.first_line_indent_cm}cm; margin: 0 0 4px; }}
p.table-caption {{ text-align: center; font-weight: bold; margin: 8px 0 4px; }}
.equation {{ text-align: center; font-style: italic; margin: 6px 0; }}
table.journal-table {{ border-collapse: collapse; margin: 0 auto 8px; font-size: {c.small_font_size}pt; }}
table.journal-table th, table.journal-table td {{ border-top: 1px solid #444; border-bottom: 1px solid #444; padding: 2px 4px; }}
figure {{ margin: 8px 0; text-align: center; break-inside: avoid; }}
figure img {{ max-width: 100%; }}
figcaption {{ font-size: {c.small_font_size}pt; }}
.references p {{ padding-left: 0.75cm; text-indent: -0.75cm; font-size: {c.small_font_size}pt; margin: 0 0 3px; }}
"""

    # ------------------------------------------------------------------
    # Front matter
    # ------------------------------------------------------------------

    def _front_matter(self, document: ManuscriptDocument, meta: ArticleMeta) -> str:
        j = self.journal
        esc = html.escape
        site = re.sub(r"^https?://", "", j.homepage)

        parts = [
            '<header class="journal-header">',
            f'<img src="{esc(document.logo_url or j.default_logo_url)}" alt="{esc(j.abbreviation)} logo">',
            '<div>',
            f'<div class="journal-name">{esc(j.name)}</div>',
            f'<div class="journal-issn">{esc(j.issn_line)}</div>',
            f'<div class="journal-site">Available online at {esc(site)}</div>',
            '</div>',
            '</header>',
            '<div class="open-access">OPEN ACCESS</div>',
            f'<div class="volume-line"><strong>{esc(meta.volume_line)}</strong> | '
            f'DOI: <a href="https://doi.org/{esc(document.doi)}">{esc(document.doi)}</a> | '
            f'Pages: {esc(document.pages)}</div>',
        ]
        if document.article_type:
            parts.append(f'<div class="article-type">{esc(document.article_type)}</div>')

        parts.append(f'<h1 class="article-title">{esc(document.title)}</h1>')
        parts.append(self._authors(document))
        parts.append(self._abstract(document))
        parts.append(
            '<div class="dates">'
            f'<strong>Received:</strong> {esc(document.received_date or "...")} | '
            f'<strong>Revised:</strong> {esc(document.revised_date or "...")} | '
            f'<strong>Accepted:</strong> {esc(document.accepted_date or "...")} | '
            f'<strong>Published:</strong> {esc(document.published_date or "...")}'
            '</div>'
        )
        parts.append(
            f'<div class="citation-box"><strong>Cite this article:</strong> {esc(meta.citation)}</div>'
        )
        parts.append(
            f'<div class="license-box">{esc(meta.copyright)}. {esc(meta.license_text)} '
            f'(<a href="{esc(j.license_url)}">{esc(j.license_url)}</a>).</div>'
        )
        return "\n".join(parts)

    def _authors(self, document: ManuscriptDocument) -> str:
        esc = html.escape
        corresponding = document.corresponding_author

        names = []
        for author in document.authors:
            marks = []
            index = document.affiliation_index(author)
            if index:
                marks.append(str(index))
            if author is corresponding:
                marks.append("*")
            sup = f"<sup>{','.join(marks)}</sup>" if marks else ""
            names.append(f"{esc(author.name)}{sup}")

        parts = [f'<div class="authors">{", ".join(names)}</div>']
        if document.affiliations:
            parts.append('<div class="affiliations">')
            for index, affiliation in enumerate(document.affiliations, 1):
                parts.append(f"<div><sup>{index}</sup>{esc(affiliation)}</div>")
            parts.append('</div>')
        if corresponding is not None and corresponding.email:
            parts.append(
                f'<div class="correspondence">*Correspondence: '
                f'<a href="mailto:{esc(corresponding.email)}">{esc(corresponding.email)}</a></div>'
            )
        return "\n".join(parts)

    def _abstract(self, document: ManuscriptDocument) -> str:
        paragraphs = split_paragraphs(document.abstract) or [document.abstract]
        body = "".join(
            f"<p>{highlight_abstract_labels(html.escape(p))}</p>" for p in paragraphs if p
        )
        keywords = html.escape("; ".join(document.keywords))
        return (
            '<section class="abstract-box">'
            "<h2>ABSTRACT</h2>"
            f"{body}"
            f"<p><strong>Keywords:</strong> {keywords}</p>"
            "</section>"
        )

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def _body(self, layout: LayoutResult) -> str:
        parts = []
        for section in layout.sections:
            if section.heading:
                parts.append(f'<h2 class="section-heading">{html.escape(section.heading)}</h2>')
            parts.extend(self._block(block) for block in section.blocks)

        if layout.additional_figures:
            parts.append('<h2 class="section-heading">Additional Figures</h2>')
            parts.extend(self._figure(f) for f in layout.additional_figures)
        return "\n".join(parts)

    def _block(self, block: Block) -> str:
        if block.block_type == BlockType.HEADING:
            return f'<h3 class="block-heading">{html.escape(block.text)}</h3>'
        if block.block_type == BlockType.SUBHEADING:
            return f'<h4 class="block-subheading">{html.escape(block.text)}</h4>'
        if block.block_type == BlockType.EQUATION:
            readable = latex_to_readable(strip_math_delimiters(block.text))
            return f'<div class="equation">{runs_to_html(parse_inline_runs(readable))}</div>'
        if block.block_type == BlockType.TABLE:
            return block.html
        if block.block_type == BlockType.FIGURE:
            return self._figure(block.figure)

        markup = paragraph_markup(block)
        css_class = "table-caption" if _TABLE_CAPTION.match(block.text) else "body-paragraph"
        return f'<p class="{css_class}">{inline_html(markup)}</p>'

    def _figure(self, figure: Figure) -> str:
        return (
            "<figure>"
            f'<img src="{html.escape(figure.file_url)}" alt="{html.escape(figure.caption)}">'
            f"<figcaption>{html.escape(figure_caption(figure))}</figcaption>"
            "</figure>"
        )

    def _references(self, document: ManuscriptDocument) -> str:
        if not document.references:
            return ""
        items = "".join(f"<p>{html.escape(r)}</p>" for r in document.references)
        return f'<h2 class="section-heading">References</h2>\n<div class="references">{items}</div>'


# ============================================================================
# PDF Exporter
# ============================================================================

class PdfExporter:
    """Render the HTML layout to PDF with WeasyPrint."""

    def __init__(self, renderer: Optional[HtmlRenderer] = None):
        self.renderer = renderer or HtmlRenderer()

    @staticmethod
    def html_to_pdf(html_string: str, output_path: Optional[Union[str, Path]] = None):
        """
        Write HTML to PDF.

        Returns:
            Path when output_path is given, otherwise the PDF bytes
        """
        try:
            from weasyprint import HTML
        except ImportError:
            raise ImportError(
                "weasyprint is required for PDF export. "
                "Install with: pip install weasyprint"
            )

        document = HTML(string=html_string, base_url=str(Path.cwd()))
        if output_path is None:
            return document.write_pdf()

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        document.write_pdf(str(output_path))
        return output_path

    def export(
        self,
        document: ManuscriptDocument,
        output_path: Union[str, Path],
        layout: Optional[LayoutResult] = None
    ) -> Path:
        path = self.html_to_pdf(self.renderer.render(document, layout), output_path)
        logger.info(f"Exported PDF to: {path}")
        return path

    def to_bytes(self, document: ManuscriptDocument, layout: Optional[LayoutResult] = None) -> bytes:
        return self.html_to_pdf(self.renderer.render(document, layout))


# ============================================================================
# DOCX Helpers
# ============================================================================

def _hex(color: str) -> str:
    return color.lstrip("#").upper()


def _rgb(color: str):
    from docx.shared import RGBColor
    return RGBColor.from_string(_hex(color))


def shade_cell(cell, fill: str):
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn

    tc_pr = cell._tc.get_or_add_tcPr()
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), _hex(fill))
    tc_pr.append(shd)


def shade_paragraph(paragraph, fill: str):
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn

    p_pr = paragraph._p.get_or_add_pPr()
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), _hex(fill))
    p_pr.append(shd)


def set_cell_border(cell, edge: str, color: str, size: int = 24):
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn

    tc_pr = cell._tc.get_or_add_tcPr()
    borders = tc_pr.find(qn("w:tcBorders"))
    if borders is None:
        borders = OxmlElement("w:tcBorders")
        tc_pr.append(borders)
    element = OxmlElement(f"w:{edge}")
    element.set(qn("w:val"), "single")
    element.set(qn("w:sz"), str(size))
    element.set(qn("w:space"), "0")
    element.set(qn("w:color"), _hex(color))
    borders.append(element)


def set_columns(section, count: int, space_twips: int):
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn

    sect_pr = section._sectPr
    cols = sect_pr.find(qn("w:cols"))
    if cols is None:
        cols = OxmlElement("w:cols")
        sect_pr.append(cols)
    cols.set(qn("w:num"), str(count))
    cols.set(qn("w:space"), str(space_twips))


def add_page_field(paragraph, size: Optional[float] = None):
    """Append a PAGE field (current page number)."""
    from docx.oxml import OxmlElement
    from docx.oxml.ns import qn
    from docx.shared import Pt

    run = paragraph.add_run()
    if size:
        run.font.size = Pt(size)
    begin = OxmlElement("w:fldChar")
    begin.set(qn("w:fldCharType"), "begin")
    instr = OxmlElement("w:instrText")
    instr.set(qn("xml:space"), "preserve")
    instr.text = "PAGE"
    end = OxmlElement("w:fldChar")
    end.set(qn("w:fldCharType"), "end")
    run._r.append(begin)
    run._r.append(instr)
    run._r.append(end)
    return run


def add_runs(
    paragraph,
    runs: Sequence[InlineRun],
    font: Optional[str] = None,
    size: Optional[float] = None,
    color: Optional[str] = None
):
    """Append formatted runs to a python-docx paragraph."""
    from docx.shared import Pt

    for item in runs:
        if item.line_break:
            paragraph.add_run().add_break()
            continue
        run = paragraph.add_run(sanitize_text(item.text))
        run.bold = item.bold or None
        run.italic = item.italic or None
        if item.subscript:
            run.font.subscript = True
        if item.superscript:
            run.font.superscript = True
        if font:
            run.font.name = font
        if size:
            run.font.size = Pt(size)
        if color:
            run.font.color.rgb = _rgb(color)


def add_text(paragraph, text: str, bold: bool = False, italic: bool = False,
             font: Optional[str] = None, size: Optional[float] = None,
             color: Optional[str] = None, superscript: bool = False):
    return add_runs(
        paragraph,
        [InlineRun(text, bold=bold, italic=italic, superscript=superscript)],
        font, size, color,
    )


# ============================================================================
# DOCX Exporter
# ============================================================================

class DocxExporter:
    """Export a manuscript to DOCX using python-docx."""

    def __init__(
        self,
        journal: Optional[JournalConfig] = None,
        config: Optional[ExportConfig] = None,
        layout_config: Optional[LayoutConfig] = None
    ):
        self.journal = journal or JournalConfig()
        self.config = config or ExportConfig()
        self.layout_engine = LayoutEngine(layout_config)

    def export(
        self,
        document: ManuscriptDocument,
        output_path: Union[str, Path],
        layout: Optional[LayoutResult] = None
    ) -> Path:
        """
        Export manuscript to a DOCX file.

        Args:
            document: Finalized manuscript
            output_path: Output file path
            layout: Precomputed layout; computed when omitted

        Returns:
            Path to the generated DOCX file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        doc = self.build(document, layout)
        doc.save(str(output_path))
        logger.info(f"Exported DOCX to: {output_path}")
        return output_path

    def to_bytes(self, document: ManuscriptDocument, layout: Optional[LayoutResult] = None) -> bytes:
        buffer = io.BytesIO()
        self.build(document, layout).save(buffer)
        return buffer.getvalue()

    def build(self, document: ManuscriptDocument, layout: Optional[LayoutResult] = None):
        """Build the python-docx Document."""
        try:
            from docx import Document as DocxDocument
            from docx.enum.section import WD_SECTION
            from docx.shared import Cm, Pt
        except ImportError:
            raise ImportError(
                "python-docx is required for DOCX export. "
                "Install with: pip install python-docx"
            )

        c = self.config
        layout = layout or self.layout_engine.layout(document)
        meta = ArticleMeta.from_document(document, self.journal)

        doc = DocxDocument()
        normal = doc.styles["Normal"]
        normal.font.name = c.body_font
        normal.font.size = Pt(c.body_font_size)

        # Front matter: single column, own first-page header/footer
        front = doc.sections[0]
        front.page_width = Cm(21.0)
        front.page_height = Cm(29.7)
        front.top_margin = Cm(c.margin_top_cm)
        front.bottom_margin = Cm(c.margin_bottom_cm)
        front.left_margin = Cm(c.margin_side_cm)
        front.right_margin = Cm(c.margin_side_cm)
        front.different_first_page_header_footer = True

        self._first_page_footer(front, meta)
        self._running_header(front, meta)
        self._default_footer(front, meta)
        self._front_matter(doc, document, meta)

        # Body: continuous two-column section, headers inherited
        body = doc.add_section(WD_SECTION.CONTINUOUS)
        body.different_first_page_header_footer = False
        set_columns(body, c.column_count, c.column_spacing_twips)

        self._body(doc, layout)
        self._references(doc, document)
        return doc

    # ------------------------------------------------------------------
    # Headers and footers
    # ------------------------------------------------------------------

    def _content_width(self, section):
        return section.page_width - section.left_margin - section.right_margin

    def _first_page_footer(self, section, meta: ArticleMeta):
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        c = self.config
        footer = section.first_page_footer
        table = footer.add_table(1, 1, self._content_width(section))
        cell = table.cell(0, 0)
        set_cell_border(cell, "top", "#DDDDDD", 4)
        paragraph = cell.paragraphs[0]
        add_text(paragraph, f"{meta.copyright}. ", font=c.heading_font, size=7)
        add_text(paragraph, meta.license_text, font=c.heading_font, size=7)
        add_text(paragraph, f" ({self.journal.license_url})", font=c.heading_font, size=7)

        page = footer.paragraphs[0]
        page.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        add_page_field(page, size=8)

    def _running_header(self, section, meta: ArticleMeta):
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        c = self.config
        header = section.header
        table = header.add_table(1, 2, self._content_width(section))
        left, right = table.cell(0, 0), table.cell(0, 1)
        add_text(left.paragraphs[0], meta.running_authors, italic=True, font=c.heading_font, size=8)
        right.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.RIGHT
        add_text(right.paragraphs[0], meta.running_journal, font=c.heading_font, size=8)
        set_cell_border(left, "bottom", c.brand_color, 4)
        set_cell_border(right, "bottom", c.brand_color, 4)

    def _default_footer(self, section, meta: ArticleMeta):
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        c = self.config
        footer = section.footer
        name = footer.paragraphs[0]
        name.alignment = WD_ALIGN_PARAGRAPH.CENTER
        add_text(name, self.journal.name, bold=True, font=c.heading_font, size=7, color=c.brand_color)

        copyright_line = footer.add_paragraph()
        copyright_line.alignment = WD_ALIGN_PARAGRAPH.CENTER
        add_text(copyright_line, meta.copyright, font=c.heading_font, size=7)

        page = footer.add_paragraph()
        page.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        add_page_field(page, size=8)

    # ------------------------------------------------------------------
    # Front matter
    # ------------------------------------------------------------------

    def _front_matter(self, doc, document: ManuscriptDocument, meta: ArticleMeta):
        from docx.enum.text import WD_ALIGN_PARAGRAPH
        from docx.shared import Pt

        c, j = self.config, self.journal
        small = c.small_font_size

        # Journal header: logo | name, ISSN, homepage
        header = doc.add_table(rows=1, cols=2)
        logo_cell, info_cell = header.cell(0, 0), header.cell(0, 1)
        self._add_image(logo_cell.paragraphs[0], document.logo_url, 1.0, fallback=j.abbreviation)
        info = info_cell.paragraphs[0]
        info.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        add_text(info, j.name, bold=True, font=c.heading_font, size=14, color=c.brand_color)
        issn = info_cell.add_paragraph()
        issn.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        add_text(issn, j.issn_line, font=c.heading_font, size=small)
        site = info_cell.add_paragraph()
        site.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        add_text(site, f"Available online at {re.sub(r'^https?://', '', j.homepage)}",
                 font=c.heading_font, size=small)

        banner = doc.add_paragraph()
        shade_paragraph(banner, c.brand_color)
        add_text(banner, "OPEN ACCESS", bold=True, font=c.heading_font, size=10, color="#FFFFFF")

        volume = doc.add_paragraph()
        add_text(volume, meta.volume_line, bold=True, font=c.heading_font, size=small)
        add_text(volume, f" | DOI: https://doi.org/{document.doi} | Pages: {document.pages}",
                 font=c.heading_font, size=small)

        if document.article_type:
            article_type = doc.add_paragraph()
            add_text(article_type, document.article_type, italic=True, color=c.brand_color)

        title = doc.add_paragraph()
        title.paragraph_format.space_after = Pt(12)
        add_text(title, to_sentence_case(sanitize_text(document.title)), bold=True,
                 size=c.title_font_size)

        self._authors(doc, document)
        self._abstract(doc, document)

        dates = doc.add_paragraph()
        dates.alignment = WD_ALIGN_PARAGRAPH.CENTER
        for label, value in (
            ("Received", document.received_date),
            ("Revised", document.revised_date),
            ("Accepted", document.accepted_date),
            ("Published", document.published_date),
        ):
            if label != "Received":
                add_text(dates, " | ", font=c.heading_font, size=small)
            add_text(dates, f"{label}: ", bold=True, font=c.heading_font, size=small, color=c.brand_color)
            add_text(dates, value or "...", font=c.heading_font, size=small)

        citation = doc.add_table(rows=1, cols=1)
        cell = citation.cell(0, 0)
        shade_cell(cell, "#F0F9FF")
        set_cell_border(cell, "left", c.brand_color, 24)
        paragraph = cell.paragraphs[0]
        paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
        add_text(paragraph, "Cite this article: ", bold=True, font=c.heading_font, size=small,
                 color=c.brand_color)
        add_text(paragraph, meta.citation, size=small)

        doc.add_paragraph()

    def _authors(self, doc, document: ManuscriptDocument):
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        small = self.config.small_font_size
        corresponding = document.corresponding_author

        names = doc.add_paragraph()
        for position, author in enumerate(document.authors):
            if position:
                add_text(names, ", ")
            add_text(names, author.name, bold=True)
            marks = []
            index = document.affiliation_index(author)
            if index:
                marks.append(str(index))
            if author is corresponding:
                marks.append("*")
            if marks:
                add_text(names, ",".join(marks), bold=True, superscript=True)

        for index, affiliation in enumerate(document.affiliations, 1):
            line = doc.add_paragraph()
            add_text(line, str(index), superscript=True, size=small)
            add_text(line, affiliation, size=small)

        if corresponding is not None and corresponding.email:
            line = doc.add_paragraph()
            line.alignment = WD_ALIGN_PARAGRAPH.LEFT
            add_text(line, "*Correspondence: ", size=small)
            add_text(line, corresponding.email, size=small, color=self.config.brand_color)

    def _abstract(self, doc, document: ManuscriptDocument):
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        c = self.config
        box = doc.add_table(rows=1, cols=1)
        cell = box.cell(0, 0)
        shade_cell(cell, "#F8FAFC")

        heading = cell.paragraphs[0]
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
        add_text(heading, "ABSTRACT", bold=True, font=c.heading_font, size=11, color=c.brand_color)

        for text in split_paragraphs(document.abstract) or [document.abstract]:
            paragraph = cell.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
            add_runs(paragraph, parse_inline_runs(highlight_abstract_labels(text, "**", "**")))

        keywords = cell.add_paragraph()
        add_text(keywords, "Keywords: ", bold=True)
        add_text(keywords, "; ".join(document.keywords))

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def _heading(self, doc, text: str, level: int):
        c = self.config
        paragraph = doc.add_paragraph()
        paragraph.paragraph_format.keep_with_next = True
        if level == 1:
            add_text(paragraph, text.upper(), bold=True, font=c.heading_font, size=10, color=c.brand_color)
        elif level == 2:
            add_text(paragraph, text, bold=True, font=c.heading_font, size=10)
        else:
            add_text(paragraph, text, bold=True, italic=True, font=c.heading_font, size=9.5)
        return paragraph

    def _body(self, doc, layout: LayoutResult):
        for section in layout.sections:
            if section.heading:
                self._heading(doc, section.heading, 1)
            for block in section.blocks:
                self._add_block(doc, block)

        if layout.additional_figures:
            self._heading(doc, "Additional Figures", 1)
            for figure in layout.additional_figures:
                self._add_figure(doc, figure)

    def _add_block(self, doc, block: Block):
        """Add a block to the DOCX document."""
        from docx.enum.text import WD_ALIGN_PARAGRAPH
        from docx.shared import Cm

        if block.block_type == BlockType.HEADING:
            self._heading(doc, block.text, 2)

        elif block.block_type == BlockType.SUBHEADING:
            self._heading(doc, block.text, 3)

        elif block.block_type == BlockType.EQUATION:
            paragraph = doc.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            readable = latex_to_readable(strip_math_delimiters(block.text))
            add_runs(paragraph, parse_inline_runs(readable), font="Cambria Math")

        elif block.block_type == BlockType.TABLE:
            table = TableResult.from_html(block.html)
            if table is not None:
                self._add_table(doc, table)
            else:
                logger.warning("Table markup could not be parsed; writing its text instead")
                add_text(doc.add_paragraph(), block.text or "[Table]")

        elif block.block_type == BlockType.FIGURE:
            self._add_figure(doc, block.figure)

        else:
            caption = _TABLE_CAPTION.match(block.text)
            paragraph = doc.add_paragraph()
            if caption:
                paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
                paragraph.paragraph_format.keep_with_next = True
                add_text(paragraph, caption.group(0), bold=True)
                add_runs(paragraph, parse_inline_runs(block.text[caption.end():]))
            else:
                paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
                paragraph.paragraph_format.first_line_indent = Cm(self.config.first_line_indent_cm)
                add_runs(paragraph, markup_to_runs(paragraph_markup(block)))

    def _add_table(self, doc, table: TableResult):
        """Add a table to the DOCX document."""
        from docx.enum.table import WD_TABLE_ALIGNMENT

        rows = table.rows
        if not rows or table.num_cols == 0:
            return

        word_table = doc.add_table(rows=len(rows), cols=table.num_cols)
        word_table.style = "Table Grid"
        word_table.alignment = WD_TABLE_ALIGNMENT.CENTER

        for i, row_data in enumerate(rows):
            header = i == 0 and table.has_header
            for j, cell_text in enumerate(row_data):
                cell = word_table.cell(i, j)
                add_runs(cell.paragraphs[0], parse_inline_runs(str(cell_text), bold=header),
                         size=self.config.small_font_size)
        doc.add_paragraph()

    def _add_image(self, paragraph, file_url: str, width_inches: float, fallback: str) -> bool:
        """Insert a picture; on failure write the fallback text instead."""
        from docx.image.exceptions import UnrecognizedImageError
        from docx.shared import Inches

        try:
            data = load_image_bytes(file_url, self.config.image_timeout_seconds)
            paragraph.add_run().add_picture(io.BytesIO(data), width=Inches(width_inches))
            return True
        except (ExportError, UnrecognizedImageError) as e:
            logger.warning(f"Image not embedded ({e}); using placeholder")
            add_text(paragraph, fallback, italic=True)
            return False

    def _add_figure(self, doc, figure: Figure):
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        picture = doc.add_paragraph()
        picture.alignment = WD_ALIGN_PARAGRAPH.CENTER
        picture.paragraph_format.keep_with_next = True
        self._add_image(picture, figure.file_url, self.config.figure_width_inches,
                        fallback=f"[Image: {figure.caption}]")

        caption = doc.add_paragraph()
        caption.alignment = WD_ALIGN_PARAGRAPH.CENTER
        add_runs(caption, parse_inline_runs(figure_caption(figure)), size=self.config.small_font_size)

    def _references(self, doc, document: ManuscriptDocument):
        from docx.shared import Cm

        if not document.references:
            return
        self._heading(doc, "References", 1)
        for reference in document.references:
            paragraph = doc.add_paragraph()
            paragraph.paragraph_format.left_indent = Cm(0.75)
            paragraph.paragraph_format.first_line_indent = Cm(-0.75)
            add_runs(paragraph, parse_inline_runs(reference), size=self.config.small_font_size)


# ============================================================================
# Multi-Format Exporter
# ============================================================================

class DocumentExporter:
    """Convenience class for exporting to multiple formats."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        base_name: Optional[str] = None,
        journal: Optional[JournalConfig] = None,
        config: Optional[ExportConfig] = None,
        layout_config: Optional[LayoutConfig] = None
    ):
        self.output_dir = Path(output_dir)
        self.base_name = base_name
        self.layout_engine = LayoutEngine(layout_config)

        self.html_renderer = HtmlRenderer(journal, config, layout_config)
        self.pdf_exporter = PdfExporter(self.html_renderer)
        self.docx_exporter = DocxExporter(journal, config, layout_config)

    def export(
        self,
        document: ManuscriptDocument,
        formats: Optional[List[str]] = None,
        report: Optional[Any] = None
    ) -> Dict[str, Path]:
        """
        Export manuscript to multiple formats.

        Args:
            document: Finalized manuscript
            formats: List of formats ('json', 'html', 'pdf', 'docx', 'all')
            report: ValidationReport included in the JSON payload

        Returns:
            Dictionary mapping format to output path
        """
        from .io import save_json

        if formats is None:
            formats = ["json", "docx"]
        if "all" in formats:
            formats = list(EXPORT_FORMATS)

        unknown = [f for f in formats if f not in EXPORT_FORMATS]
        if unknown:
            raise ValueError(f"Unknown export format(s): {', '.join(unknown)}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        base_name = self.base_name or safe_filename(document.title)
        layout = self.layout_engine.layout(document)

        results = {}

        if "json" in formats:
            payload = {
                "schema_version": JSON_SCHEMA_VERSION,
                "manuscript": document.to_dict(),
                "layout": layout.to_dict(),
            }
            if report is not None:
                payload["validation"] = report.to_dict()
            results["json"] = save_json(payload, self.output_dir / f"{base_name}.json")

        if "html" in formats:
            path = self.output_dir / f"{base_name}.html"
            path.write_text(self.html_renderer.render(document, layout), encoding="utf-8")
            logger.info(f"Exported HTML to: {path}")
            results["html"] = path

        if "pdf" in formats:
            results["pdf"] = self.pdf_exporter.export(
                document, self.output_dir / f"{base_name}.pdf", layout
            )

        if "docx" in formats:
            results["docx"] = self.docx_exporter.export(
                document, self.output_dir / f"{base_name}.docx", layout
            )

        return results

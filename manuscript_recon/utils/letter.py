"""
Letter of Acceptance generation.

Provides:
- LetterOfAcceptance built from a finalized manuscript
- HTML, PDF (WeasyPrint) and DOCX (python-docx) rendering
"""

import html
import io
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional, Dict, Any, Union

from ..config import ExportConfig, JournalConfig
from .equations import parse_inline_runs
from .export import PdfExporter, add_runs, add_text, runs_to_html
from .formatting import format_long_date
from .manuscript import ManuscriptDocument

logger = logging.getLogger(__name__)


@dataclass
class LetterOfAcceptance:
    """
    Acceptance letter for one manuscript.

    Body paragraphs use the inline run syntax (``**bold**``), so the same
    text feeds both the HTML and the DOCX writer.
    """
    number: str
    letter_date: str
    recipient_name: str
    recipient_affiliation: str
    recipient_email: str
    title: str
    paragraphs: List[str] = field(default_factory=list)
    journal: JournalConfig = field(default_factory=JournalConfig)

    @staticmethod
    def format_number(prefix: str, year: int, sequence: int) -> str:
        """e.g. 'JBSH/2026/LOA/0007'"""
        return f"{prefix}/{year}/LOA/{sequence:04d}"

    @classmethod
    def from_manuscript(
        cls,
        document: ManuscriptDocument,
        journal: Optional[JournalConfig] = None,
        today: Optional[date] = None,
        number: Optional[int] = None
    ) -> 'LetterOfAcceptance':
        """
        Build the letter for a finalized manuscript.

        Args:
            document: Finalized manuscript
            journal: Journal identity and editor signature
            today: Letter date
            number: Sequence number within the year (default 1)

        Returns:
            LetterOfAcceptance
        """
        journal = journal or JournalConfig()
        today = today or date.today()
        recipient = document.corresponding_author
        name = recipient.name if recipient else "Author"
        year = document.year or str(today.year)

        paragraphs = [
            f"Dear {name},",
            (
                f'We are pleased to inform you that your manuscript titled "**{document.title}**" '
                f"has been accepted for publication in the {journal.name} ({journal.abbreviation})."
            ),
            (
                "After a thorough review process, the editorial board and reviewers have "
                "determined that your work meets the standards of our journal."
            ),
            (
                f"Your article is scheduled for publication in **Volume {document.volume or 'X'}, "
                f"Issue {document.issue or 'X'} ({year})**. The article will be available Open "
                f"Access under the {journal.license_name}."
            ),
            (
                "**Publication Details:**\n"
                f"DOI: {document.doi or 'Pending Assignment'}\n"
                f"Received: {document.received_date or 'N/A'} | "
                f"Revised: {document.revised_date or 'N/A'} | "
                f"Accepted: {document.accepted_date or 'N/A'}"
            ),
            "We look forward to receiving your future manuscripts.",
        ]

        letter = cls(
            number=cls.format_number(journal.loa_prefix, today.year, number or 1),
            letter_date=format_long_date(today),
            recipient_name=name,
            recipient_affiliation=recipient.affiliation if recipient else "",
            recipient_email=(recipient.email or "") if recipient else "",
            title=document.title,
            paragraphs=paragraphs,
            journal=journal,
        )
        logger.info(f"Letter of acceptance {letter.number} for {name}")
        return letter

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "date": self.letter_date,
            "recipient": {
                "name": self.recipient_name,
                "affiliation": self.recipient_affiliation,
                "email": self.recipient_email,
            },
            "title": self.title,
            "paragraphs": list(self.paragraphs),
        }

    # ------------------------------------------------------------------
    # HTML / PDF
    # ------------------------------------------------------------------

    def to_html(self, config: Optional[ExportConfig] = None) -> str:
        c = config or ExportConfig()
        j = self.journal
        esc = html.escape

        recipient = [f"<p><strong>{esc(self.recipient_name)}</strong></p>"]
        if self.recipient_affiliation:
            recipient.append(f"<p>{esc(self.recipient_affiliation)}</p>")
        if self.recipient_email:
            recipient.append(f'<p class="muted">{esc(self.recipient_email)}</p>')

        body = "\n".join(
            f"<p>{runs_to_html(parse_inline_runs(p))}</p>" for p in self.paragraphs
        )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Letter of Acceptance {esc(self.number)}</title>
<style>
@page {{ size: A4; margin: 2.5cm; }}
body {{ font-family: '{c.body_font}', serif; font-size: 11pt; line-height: 1.5; }}
.letterhead {{ border-bottom: 3px double #222; padding-bottom: 8px; margin-bottom: 18px; }}
.letterhead h1 {{ color: {c.brand_color}; font-size: 15pt; text-transform: uppercase; margin: 0; }}
.letterhead p, .muted {{ font-size: 9pt; color: #555; margin: 2px 0; }}
.meta p, .recipient p {{ margin: 0; }}
.recipient {{ margin: 16px 0; }}
h2 {{ text-align: center; text-decoration: underline; font-size: 13pt; }}
.body p {{ text-align: justify; }}
.signature {{ margin-top: 32px; }}
</style>
</head>
<body>
<div class="letterhead">
<h1>{esc(j.name)}</h1>
<p>{esc(j.publisher)}</p>
<p>{esc(j.issn_line)} | {esc(j.homepage)}</p>
</div>
<div class="meta">
<p>Number: <strong>{esc(self.number)}</strong></p>
<p>Date: {esc(self.letter_date)}</p>
</div>
<div class="recipient">
<p>To:</p>
{chr(10).join(recipient)}
</div>
<h2>LETTER OF ACCEPTANCE</h2>
<div class="body">
{body}
</div>
<div class="signature">
<p>Sincerely,</p>
<p><strong>{esc(j.editor_in_chief)}</strong></p>
<p class="muted">Editor-in-Chief, {esc(j.editor_title)}</p>
</div>
</body>
</html>
"""

    def export_pdf(
        self,
        output_path: Optional[Union[str, Path]] = None,
        config: Optional[ExportConfig] = None
    ):
        """PDF path when output_path is given, otherwise PDF bytes."""
        return PdfExporter.html_to_pdf(self.to_html(config), output_path)

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    def build_docx(self, config: Optional[ExportConfig] = None):
        try:
            from docx import Document as DocxDocument
            from docx.enum.text import WD_ALIGN_PARAGRAPH
            from docx.shared import Cm, Pt
        except ImportError:
            raise ImportError(
                "python-docx is required for DOCX export. "
                "Install with: pip install python-docx"
            )

        c = config or ExportConfig()
        j = self.journal

        doc = DocxDocument()
        normal = doc.styles["Normal"]
        normal.font.name = c.body_font
        normal.font.size = Pt(11)
        section = doc.sections[0]
        section.page_width = Cm(21.0)
        section.page_height = Cm(29.7)
        for side in ("top_margin", "bottom_margin", "left_margin", "right_margin"):
            setattr(section, side, Cm(2.5))

        add_text(doc.add_paragraph(), j.name.upper(), bold=True, size=14, color=c.brand_color)
        add_text(doc.add_paragraph(), j.publisher, size=9)
        add_text(doc.add_paragraph(), f"{j.issn_line} | {j.homepage}", size=9)

        meta = doc.add_paragraph()
        add_text(meta, "Number: ")
        add_text(meta, self.number, bold=True)
        add_text(doc.add_paragraph(), f"Date: {self.letter_date}")

        add_text(doc.add_paragraph(), "To:")
        add_text(doc.add_paragraph(), self.recipient_name, bold=True)
        if self.recipient_affiliation:
            add_text(doc.add_paragraph(), self.recipient_affiliation, italic=True, size=10)
        if self.recipient_email:
            add_text(doc.add_paragraph(), self.recipient_email, size=10)

        heading = doc.add_paragraph()
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
        heading.add_run("LETTER OF ACCEPTANCE").font.underline = True
        heading.runs[0].bold = True

        for text in self.paragraphs:
            paragraph = doc.add_paragraph()
            paragraph.alignment = WD_ALIGN_PARAGRAPH.JUSTIFY
            add_runs(paragraph, parse_inline_runs(text))

        doc.add_paragraph()
        add_text(doc.add_paragraph(), "Sincerely,")
        add_text(doc.add_paragraph(), j.editor_in_chief, bold=True)
        add_text(doc.add_paragraph(), f"Editor-in-Chief, {j.editor_title}", size=9)
        return doc

    def export_docx(self, output_path: Union[str, Path], config: Optional[ExportConfig] = None) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.build_docx(config).save(str(output_path))
        logger.info(f"Exported letter DOCX to: {output_path}")
        return output_path

    def docx_bytes(self, config: Optional[ExportConfig] = None) -> bytes:
        buffer = io.BytesIO()
        self.build_docx(config).save(buffer)
        return buffer.getvalue()

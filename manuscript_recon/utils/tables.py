"""
Table handling for reconstructed manuscripts.

Provides:
- Parsing of HTML <table> markup and Markdown pipe tables into a cell grid
- Multiple output formats (HTML, Markdown, CSV, row lists)
- Journal styling for embedded HTML tables
"""

import csv
import html
import io
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

TABLE_CLASS = "journal-table"

_MARKDOWN_SEPARATOR = re.compile(r"^:?-{3,}:?$")


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class Cell:
    """A single table cell."""
    text: str
    row: int
    col: int
    row_span: int = 1
    col_span: int = 1
    is_header: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "row": self.row,
            "col": self.col,
            "row_span": self.row_span,
            "col_span": self.col_span,
            "is_header": self.is_header,
        }


@dataclass
class TableResult:
    """A parsed table."""
    cells: List[Cell]
    num_rows: int
    num_cols: int
    source: str = ""  # html, markdown
    caption: Optional[str] = None

    # Pre-generated output formats
    table_markdown: str = ""
    table_html: str = ""
    table_csv: str = ""
    table_struct: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.table_struct:
            self.table_struct = self._build_struct()
        if not self.table_markdown:
            self.table_markdown = self._build_markdown()
        if not self.table_html:
            self.table_html = self._build_html()
        if not self.table_csv:
            self.table_csv = self._build_csv()

    @property
    def rows(self) -> List[List[str]]:
        return self.table_struct.get("rows", [])

    @property
    def has_header(self) -> bool:
        return any(c.is_header for c in self.cells if c.row == 0)

    # ------------------------------------------------------------------
    # Parsers
    # ------------------------------------------------------------------

    @classmethod
    def from_grid(
        cls,
        grid: List[List[str]],
        header: bool = True,
        source: str = "",
        caption: Optional[str] = None
    ) -> 'TableResult':
        num_cols = max((len(r) for r in grid), default=0)
        cells = []
        for r, row in enumerate(grid):
            for c in range(num_cols):
                text = row[c] if c < len(row) else ""
                cells.append(Cell(text=text, row=r, col=c, is_header=header and r == 0))
        return cls(cells=cells, num_rows=len(grid), num_cols=num_cols, source=source, caption=caption)

    @classmethod
    def from_html(cls, markup: str) -> Optional['TableResult']:
        """Parse the first <table> in the markup. Returns None when there is none."""
        soup = BeautifulSoup(markup, "html.parser")
        table = soup.find("table")
        if table is None:
            return None

        caption_tag = table.find("caption")
        caption = caption_tag.get_text(" ", strip=True) if caption_tag else None

        grid: List[List[str]] = []
        header_row = False
        for tr in table.find_all("tr"):
            cells = tr.find_all(["th", "td"])
            if not cells:
                continue
            row = []
            for cell in cells:
                text = cell.get_text(" ", strip=True)
                span = _int_attr(cell.get("colspan"))
                row.append(text)
                # Spanned columns are padded so the grid stays rectangular
                row.extend([""] * (span - 1))
            if not grid:
                header_row = tr.find_parent("thead") is not None or all(c.name == "th" for c in cells)
            grid.append(row)

        if not grid:
            return None

        return cls.from_grid(grid, header=header_row, source="html", caption=caption)

    @classmethod
    def from_markdown(cls, block: str) -> Optional['TableResult']:
        """Parse a Markdown pipe table. Separator rows mark the header."""
        lines = [line.strip() for line in (block or "").strip().split("\n") if line.strip()]
        if len(lines) < 2:
            return None

        grid = []
        header = False
        for line in lines:
            cells = [c.strip() for c in line.strip("|").split("|")]
            if cells and all(_MARKDOWN_SEPARATOR.match(c) for c in cells if c):
                header = len(grid) == 1
                continue
            grid.append(cells)

        if not grid:
            return None
        return cls.from_grid(grid, header=header, source="markdown")

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _build_struct(self) -> Dict[str, Any]:
        """Build structured representation."""
        grid = [["" for _ in range(self.num_cols)] for _ in range(self.num_rows)]

        for cell in self.cells:
            if 0 <= cell.row < self.num_rows and 0 <= cell.col < self.num_cols:
                grid[cell.row][cell.col] = cell.text

        return {
            "rows": grid,
            "num_rows": self.num_rows,
            "num_cols": self.num_cols,
            "headers": grid[0] if self.num_rows > 0 and self.has_header else []
        }

    def _build_markdown(self) -> str:
        """Build Markdown table representation."""
        grid = self.table_struct.get("rows", [])
        if not grid or self.num_cols == 0:
            return ""

        lines = ["| " + " | ".join(str(c) for c in grid[0]) + " |"]
        lines.append("| " + " | ".join("---" for _ in range(self.num_cols)) + " |")
        for row in grid[1:]:
            lines.append("| " + " | ".join(str(c) for c in row) + " |")

        return "\n".join(lines)

    def _build_html(self) -> str:
        """Build HTML table representation."""
        grid = self.table_struct.get("rows", [])
        if not grid or self.num_cols == 0:
            return ""

        lines = [f'<table class="{TABLE_CLASS}">']
        if self.caption:
            lines.append(f'  <caption>{html.escape(self.caption)}</caption>')

        body = grid
        if self.has_header:
            lines.append('  <thead>')
            lines.append('    <tr>')
            for cell in grid[0]:
                lines.append(f'      <th>{html.escape(str(cell))}</th>')
            lines.append('    </tr>')
            lines.append('  </thead>')
            body = grid[1:]

        lines.append('  <tbody>')
        for row in body:
            lines.append('    <tr>')
            for cell in row:
                lines.append(f'      <td>{html.escape(str(cell))}</td>')
            lines.append('    </tr>')
        lines.append('  </tbody>')
        lines.append('</table>')

        return "\n".join(lines)

    def _build_csv(self) -> str:
        """Build CSV representation."""
        grid = self.table_struct.get("rows", [])
        if not grid:
            return ""

        output = io.StringIO()
        writer = csv.writer(output)
        for row in grid:
            writer.writerow([str(c) for c in row])

        return output.getvalue()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_rows": self.num_rows,
            "num_cols": self.num_cols,
            "source": self.source,
            "caption": self.caption,
            "cells": [c.to_dict() for c in self.cells],
            "markdown": self.table_markdown,
            "html": self.table_html,
            "csv": self.table_csv,
            "struct": self.table_struct
        }


# ============================================================================
# Helpers
# ============================================================================

def is_markdown_table(block: str) -> bool:
    """At least two pipe rows, one of them a --- separator."""
    lines = [line.strip() for line in (block or "").strip().split("\n") if line.strip()]
    if len(lines) < 2 or not all("|" in line for line in lines):
        return False
    return any(
        all(_MARKDOWN_SEPARATOR.match(c.strip()) for c in line.strip("|").split("|") if c.strip())
        for line in lines
    )


def style_table_html(markup: str) -> str:
    """
    Add the journal table class and centre the table.

    Cell contents are left exactly as they are.
    """
    soup = BeautifulSoup(markup, "html.parser")
    for table in soup.find_all("table"):
        classes = table.get("class") or []
        if TABLE_CLASS not in classes:
            table["class"] = classes + [TABLE_CLASS]
        style = table.get("style", "")
        if "margin" not in style:
            table["style"] = (style + ";" if style else "") + "margin: 0 auto"
    return str(soup)


def _int_attr(value: Any) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return 1

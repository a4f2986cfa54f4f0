"""
Tests for table parsing and styling.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from manuscript_recon.utils.tables import (
    TABLE_CLASS,
    Cell,
    TableResult,
    is_markdown_table,
    style_table_html,
)


class TestTableResult:
    """Tests for TableResult data class."""

    def test_empty_table(self):
        """Test empty table result."""
        result = TableResult(cells=[], num_rows=0, num_cols=0)
        assert result.table_markdown == ""
        assert result.table_html == ""
        assert result.table_csv == ""

    def test_simple_table(self):
        """Test simple 2x2 table result."""
        cells = [
            Cell(text="A", row=0, col=0, is_header=True),
            Cell(text="B", row=0, col=1, is_header=True),
            Cell(text="1", row=1, col=0),
            Cell(text="2", row=1, col=1),
        ]
        result = TableResult(cells=cells, num_rows=2, num_cols=2)

        assert result.has_header
        assert "| A | B |" in result.table_markdown
        assert "<th>A</th>" in result.table_html
        assert "<td>1</td>" in result.table_html
        assert f'class="{TABLE_CLASS}"' in result.table_html
        assert result.table_csv.splitlines() == ["A,B", "1,2"]

    def test_from_grid_pads_ragged_rows(self):
        result = TableResult.from_grid([["A", "B", "C"], ["1"]])
        assert result.rows == [["A", "B", "C"], ["1", "", ""]]

    def test_cell_text_escaped(self):
        result = TableResult.from_grid([["p < 0.05"]], header=False)
        assert "p &lt; 0.05" in result.table_html
        assert "<thead>" not in result.table_html

    def test_table_to_dict(self):
        """Test table serialization."""
        result = TableResult.from_grid([["X"]], source="docx")

        d = result.to_dict()
        assert d["num_rows"] == 1
        assert d["source"] == "docx"
        assert len(d["cells"]) == 1


class TestParsers:
    """Tests for HTML and Markdown table parsing."""

    def test_html_header_and_caption(self):
        markup = (
            "<table><caption>Table 1. Baseline</caption>"
            "<tr><th>Group</th><th>n</th></tr>"
            "<tr><td>A</td><td>32</td></tr></table>"
        )
        result = TableResult.from_html(markup)

        assert result.caption == "Table 1. Baseline"
        assert result.has_header
        assert result.rows == [["Group", "n"], ["A", "32"]]

    def test_html_thead_is_header(self):
        markup = "<table><thead><tr><td>H</td></tr></thead><tbody><tr><td>v</td></tr></tbody></table>"
        assert TableResult.from_html(markup).has_header

    def test_html_colspan_padded(self):
        markup = "<table><tr><td colspan='2'>Wide</td></tr><tr><td>a</td><td>b</td></tr></table>"
        result = TableResult.from_html(markup)

        assert result.num_cols == 2
        assert result.rows[0] == ["Wide", ""]
        assert not result.has_header

    def test_html_without_table(self):
        assert TableResult.from_html("<p>No table here</p>") is None

    def test_markdown(self):
        result = TableResult.from_markdown("| Group | Before |\n|---|:---:|\n| A | 112 |")

        assert result.source == "markdown"
        assert result.has_header
        assert result.rows == [["Group", "Before"], ["A", "112"]]

    def test_markdown_single_line(self):
        assert TableResult.from_markdown("| A | B |") is None


class TestHelpers:
    """Tests for detection and styling helpers."""

    def test_is_markdown_table(self):
        assert is_markdown_table("| A | B |\n|---|---|\n| 1 | 2 |")

    @pytest.mark.parametrize("block", [
        "| A | B |",
        "| A | B |\n| 1 | 2 |",
        "Plain text\nwith two lines",
        "",
    ])
    def test_not_markdown_table(self, block):
        assert not is_markdown_table(block)

    def test_style_adds_class_and_centering(self):
        styled = style_table_html('<table class="data"><tr><td>x &amp; y</td></tr></table>')

        assert "data" in styled and TABLE_CLASS in styled
        assert "margin: 0 auto" in styled
        assert "x &amp; y" in styled

    def test_style_is_idempotent(self):
        once = style_table_html("<table><tr><td>1</td></tr></table>")
        assert style_table_html(once) == once


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

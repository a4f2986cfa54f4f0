"""
Tests for text extraction and JSON/directory helpers.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from manuscript_recon.utils.errors import ExtractorError
from manuscript_recon.utils.io import (
    FIGURE_PLACEHOLDER,
    cleanup_dir,
    create_temp_dir,
    data_url,
    detect_input_type,
    extract,
    load_json,
    save_json,
)
from manuscript_recon.utils.manuscript import Author, ManuscriptDocument

from conftest import make_png, png_data_url


class TestDetectInputType:
    """Tests for extension-based detection."""

    @pytest.mark.parametrize("name,expected", [
        ("a.docx", "docx"),
        ("a.PDF", "pdf"),
        ("a.htm", "html"),
        ("a.md", "text"),
        ("a.xlsx", "unknown"),
    ])
    def test_extensions(self, tmp_path, name, expected):
        path = tmp_path / name
        path.write_bytes(b"x")
        assert detect_input_type(path) == expected

    def test_missing_file(self, tmp_path):
        assert detect_input_type(tmp_path / "nope.docx") == "unknown"


class TestExtract:
    """Tests for per-format readers."""

    def test_plain_text_with_bom(self, tmp_path):
        path = tmp_path / "paper.txt"
        path.write_bytes("\ufeffTitle line\nBody".encode("utf-8"))

        result = extract(path)

        assert result.text == "Title line\nBody"
        assert result.source_format == "text"
        assert result.figures == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractorError) as exc_info:
            extract(tmp_path / "missing.txt")
        assert "not found" in str(exc_info.value)

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "sheet.xlsx"
        path.write_bytes(b"PK")
        with pytest.raises(ExtractorError) as exc_info:
            extract(path)
        assert exc_info.value.file_format == ".xlsx"

    def test_corrupt_docx(self, tmp_path):
        path = tmp_path / "broken.docx"
        path.write_bytes(b"not a zip archive")
        with pytest.raises(ExtractorError):
            extract(path)

    def test_docx_paragraphs_tables_images(self, tmp_path):
        from docx import Document
        from docx.shared import Inches

        image_path = tmp_path / "chart.png"
        image_path.write_bytes(make_png())

        doc = Document()
        doc.add_paragraph("Manuscript Title")
        doc.add_paragraph("Body text with <angle> brackets.")
        doc.add_picture(str(image_path), width=Inches(1))
        table = doc.add_table(rows=2, cols=2)
        table.cell(0, 0).text = "Group"
        table.cell(0, 1).text = "Value"
        table.cell(1, 0).text = "A"
        table.cell(1, 1).text = "12"
        path = tmp_path / "paper.docx"
        doc.save(str(path))

        result = extract(path)

        assert "<p>Manuscript Title</p>" in result.text
        assert "&lt;angle&gt;" in result.text
        assert FIGURE_PLACEHOLDER in result.text
        assert "<table" in result.text and "Group" in result.text
        assert len(result.figures) == 1
        assert result.figures[0].id == "1"
        assert result.figures[0].file_url.startswith("data:image/png;base64,")
        assert result.text.index("Manuscript Title") < result.text.index("<table")

    def test_html(self, tmp_path):
        path = tmp_path / "paper.html"
        path.write_text(
            "<html><head><style>p {color: red}</style></head><body>"
            "<h1>Title</h1><p>Paragraph one.</p>"
            f'<img src="{png_data_url()}"><img src="http://remote/x.png">'
            "<table><tr><th>A</th><th>B</th></tr><tr><td>1</td><td>2</td></tr></table>"
            "<script>alert(1)</script></body></html>",
            encoding="utf-8",
        )

        result = extract(path)

        assert "Title" in result.text
        assert "Paragraph one." in result.text
        assert "color" not in result.text
        assert "alert" not in result.text
        assert result.text.count(FIGURE_PLACEHOLDER) == 2
        assert len(result.figures) == 1
        assert "<table" in result.text

    def test_pdf(self, tmp_path):
        fitz = pytest.importorskip("fitz")

        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Hello from page one")
        page = doc.new_page()
        page.insert_text((72, 72), "Second page text")
        path = tmp_path / "paper.pdf"
        doc.save(str(path))
        doc.close()

        result = extract(path)

        assert "Hello from page one" in result.text
        assert "Second page text" in result.text
        assert "\n\n" in result.text
        assert result.page_count == 2
        assert result.source_format == "pdf"


class TestJson:
    """Tests for JSON helpers."""

    def test_round_trip(self, tmp_path):
        document = ManuscriptDocument(title="T", authors=(Author("A"),), keywords=("k",))
        path = save_json({"doc": document, "items": ("a", "b")}, tmp_path / "out" / "doc.json")

        data = load_json(path)

        assert data["doc"]["title"] == "T"
        assert data["doc"]["keywords"] == ["k"]
        assert data["items"] == ["a", "b"]

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_json(tmp_path / "missing.json")


class TestDirectories:
    """Tests for temp directory handling."""

    def test_create_and_cleanup(self):
        path = create_temp_dir()
        (path / "file.txt").write_text("x")

        assert cleanup_dir(path) is True
        assert not path.exists()

    def test_refuses_non_temp(self, tmp_path):
        target = tmp_path / "keep"
        target.mkdir()
        assert cleanup_dir(target) is False
        assert target.exists()

    def test_data_url(self):
        assert data_url(b"abc", "image/png") == "data:image/png;base64,YWJj"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
End-to-end integration tests for the Manuscript Reconstruction Pipeline.
"""

import json
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import ScriptedBackend, SleepRecorder, VALID_RESPONSE, make_png

TODAY = date(2026, 10, 18)


@pytest.fixture
def offline(monkeypatch):
    """Fail every HTTP download so exports fall back to placeholders."""
    import requests

    def refuse(*args, **kwargs):
        raise requests.ConnectionError("network disabled in tests")

    monkeypatch.setattr(requests, "get", refuse)


@pytest.fixture
def manuscript_docx(tmp_path):
    """A small DOCX manuscript with a heading, figure citation, picture and table."""
    from docx import Document
    from docx.shared import Inches

    image_path = tmp_path / "figure.png"
    image_path.write_bytes(make_png(120, 90))

    doc = Document()
    doc.add_paragraph("Effect of Moderate Exercise on Fasting Glucose")
    doc.add_paragraph("Rina Hartono, Universitas Karya Husada")
    doc.add_paragraph("Introduction")
    doc.add_paragraph("Prediabetes is rising (Figure 1). Exercise helps.")
    doc.add_picture(str(image_path), width=Inches(2))
    doc.add_paragraph("Methods")
    doc.add_paragraph("Sixty-four adults were enrolled.")
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Group"
    table.cell(0, 1).text = "Glucose"
    table.cell(1, 0).text = "Exercise"
    table.cell(1, 1).text = "101"

    path = tmp_path / "manuscript.docx"
    doc.save(str(path))
    return path


class TestEndToEnd:
    """End-to-end integration tests."""

    def make_assembler(self, script):
        from manuscript_recon.config import PipelineConfig
        from manuscript_recon.utils.assembler import ManuscriptAssembler
        from manuscript_recon.utils.extraction import ResilientExtractionClient

        config = PipelineConfig()
        config.extraction.candidate_models = ["model-a", "model-b"]
        backend = ScriptedBackend(script)
        client = ResilientExtractionClient(backend, config.extraction, config.journal, sleep=SleepRecorder())
        return ManuscriptAssembler(config, backend=backend, client=client), backend

    @pytest.mark.asyncio
    async def test_ai_pipeline_to_docx(self, manuscript_docx, valid_json, tmp_path, offline):
        """DOCX upload -> AI segmentation -> finalized export with the extracted figure."""
        from docx import Document
        from manuscript_recon.utils.export import DocumentExporter

        assembler, backend = self.make_assembler([valid_json])

        result = await assembler.process_file(manuscript_docx, today=TODAY)

        assert backend.calls == ["model-a"]
        assert [f.id for f in result.document.figures] == ["1"]
        assert result.document.title == VALID_RESPONSE["title"]

        outputs = DocumentExporter(tmp_path / "out", "paper").export(
            result.document, ["json", "html", "docx"], report=result.report
        )

        payload = json.loads(outputs["json"].read_text(encoding="utf-8"))
        assert payload["layout"]["placed_figure_ids"] == ["1"]
        assert payload["validation"]["coveragePercent"] == result.report.coverage_percent

        doc = Document(str(outputs["docx"]))
        # Figure embedded; the remote default logo falls back to text
        assert len(doc.inline_shapes) == 1
        assert "INTRODUCTION" in "\n".join(p.text for p in doc.paragraphs)

    @pytest.mark.asyncio
    async def test_failure_then_manual_fallback(self, manuscript_docx, offline):
        """All models fail; the same upload still lays out in manual mode."""
        from manuscript_recon.utils.errors import BackendError, ExtractionFailedError, MANUAL_MODE_GUIDANCE
        from manuscript_recon.utils.export import DocxExporter
        from manuscript_recon.utils.manuscript import MANUAL_SECTION_HEADING

        overloaded = BackendError("m", "503 The model is overloaded")
        assembler, backend = self.make_assembler([overloaded] * 4)

        with pytest.raises(ExtractionFailedError) as exc_info:
            await assembler.process_file(manuscript_docx, today=TODAY)
        assert exc_info.value.guidance == MANUAL_MODE_GUIDANCE
        assert len(backend.calls) == 4

        result = await assembler.process_file(manuscript_docx, manual=True, today=TODAY)

        assert result.mode == "manual"
        assert result.document.title == "Effect of Moderate Exercise on Fasting Glucose"
        assert result.document.sections[0].heading == MANUAL_SECTION_HEADING
        assert len(result.document.figures) == 1
        assert DocxExporter().to_bytes(result.document)[:2] == b"PK"

    def test_edit_then_export(self, sample_document, offline_journal):
        """Store edits flow into the next render."""
        from manuscript_recon.utils.export import HtmlRenderer
        from manuscript_recon.utils.manuscript import DocumentStore

        store = DocumentStore(sample_document, original_text=sample_document.body_text())
        store.set_field("title", "Revised Title")
        store.reorder_figure(1, "up")
        store.update_figure_caption(0, "Renamed chart")

        rendered = HtmlRenderer(offline_journal).render(store.document)

        assert "Revised Title" in rendered
        assert "Renamed chart" in rendered


class TestCli:
    """Command-line entry point."""

    def run_cli(self, monkeypatch, *argv):
        from manuscript_recon import cli

        monkeypatch.setattr(sys, "argv", ["manuscript-recon", *argv])
        with pytest.raises(SystemExit) as exc_info:
            cli.main()
        return exc_info.value.code

    def test_manual_text_file(self, monkeypatch, tmp_path, offline):
        text_path = tmp_path / "pasted.txt"
        text_path.write_text("Pasted Title\nFirst paragraph.\nSecond paragraph.", encoding="utf-8")
        out = tmp_path / "out"

        code = self.run_cli(
            monkeypatch, "--text-file", str(text_path), "--output", str(out),
            "--manual", "--format", "json", "html", "--loa", "--quiet",
        )

        assert code == 0
        payload = json.loads((out / "pasted.json").read_text(encoding="utf-8"))
        assert payload["manuscript"]["title"] == "Pasted Title"
        assert (out / "pasted.html").exists()
        assert (out / "pasted_LoA.html").exists()
        assert not (out / "pasted_LoA.docx").exists()

    def test_default_loa_is_docx(self, monkeypatch, tmp_path, offline):
        text_path = tmp_path / "pasted.txt"
        text_path.write_text("Title\nBody.", encoding="utf-8")
        out = tmp_path / "out"

        code = self.run_cli(
            monkeypatch, "--text-file", str(text_path), "--output", str(out),
            "--manual", "--format", "json", "--loa", "--quiet",
        )

        assert code == 0
        assert (out / "pasted_LoA.docx").exists()

    def test_missing_input(self, monkeypatch, tmp_path):
        code = self.run_cli(
            monkeypatch, "--input", str(tmp_path / "missing.docx"), "--output", str(tmp_path / "out"), "--quiet",
        )
        assert code == 1

    def test_no_api_key(self, monkeypatch, tmp_path, capsys):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        text_path = tmp_path / "pasted.txt"
        text_path.write_text("Some manuscript text.", encoding="utf-8")

        code = self.run_cli(
            monkeypatch, "--text-file", str(text_path), "--output", str(tmp_path / "out"), "--quiet",
        )

        assert code == 1
        assert "Manual" in capsys.readouterr().err

    def test_requires_source(self, monkeypatch, tmp_path):
        assert self.run_cli(monkeypatch, "--output", str(tmp_path)) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

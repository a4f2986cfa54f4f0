"""
Tests for finalization and the pipeline assembler.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from manuscript_recon.config import JournalConfig, PipelineConfig
from manuscript_recon.utils.assembler import (
    ManuscriptAssembler,
    finalize_manuscript,
    is_placeholder_logo,
)
from manuscript_recon.utils.errors import ExtractionFailedError, ExtractorError
from manuscript_recon.utils.extraction import ResilientExtractionClient
from manuscript_recon.utils.manuscript import Author, ManuscriptDocument, Section
from manuscript_recon.utils.validation import ValidationStatus

from conftest import ScriptedBackend, SleepRecorder, VALID_RESPONSE

TODAY = date(2026, 10, 18)


def bare_document(**changes):
    document = ManuscriptDocument(
        title="A Study",
        authors=(Author("Jane Doe"),),
        sections=(Section("Introduction", "Text."),),
    )
    return document.with_changes(**changes)


class TestFinalizeManuscript:
    """Tests for publication-metadata defaults."""

    @pytest.mark.parametrize("doi", ["", "null", "None", "N/A", "undefined"])
    def test_empty_doi_becomes_placeholder(self, doi):
        journal = JournalConfig()
        result = finalize_manuscript(bare_document(doi=doi), journal, TODAY)
        assert result.doi == journal.doi_placeholder

    def test_detected_doi_kept(self):
        result = finalize_manuscript(bare_document(doi="10.1234/abc"), today=TODAY)
        assert result.doi == "10.1234/abc"

    def test_defaults_filled(self):
        result = finalize_manuscript(bare_document(), JournalConfig(), TODAY)

        assert (result.volume, result.issue, result.pages) == ("3", "1", "1-12")
        assert result.year == "2026"
        assert result.received_date == "18 October 2026"
        assert result.accepted_date == "18 October 2026"
        assert result.published_date == "18 October 2026"

    def test_existing_values_kept(self):
        result = finalize_manuscript(bare_document(volume="7", year="2025"), today=TODAY)
        assert result.volume == "7"
        assert result.year == "2025"

    def test_all_caps_title(self):
        result = finalize_manuscript(bare_document(title="EFFECT  OF EXERCISE ON GLUCOSE"), today=TODAY)
        assert result.title == "Effect of Exercise on Glucose"

    def test_placeholder_logo_replaced(self):
        journal = JournalConfig()
        result = finalize_manuscript(bare_document(logo_url="https://placeholder.com/logo.png"), journal, TODAY)
        assert result.logo_url == journal.default_logo_url

    def test_real_logo_kept(self):
        result = finalize_manuscript(bare_document(logo_url="https://cdn.org/logo.png"), today=TODAY)
        assert result.logo_url == "https://cdn.org/logo.png"

    def test_idempotent(self):
        once = finalize_manuscript(bare_document(title="ALL CAPS TITLE"), today=TODAY)
        assert finalize_manuscript(once, today=TODAY) == once

    def test_is_placeholder_logo(self):
        assert is_placeholder_logo("")
        assert is_placeholder_logo("https://example.com/x.png")
        assert not is_placeholder_logo("data:image/png;base64,AA")


class TestManuscriptAssembler:
    """Tests for the AI and manual processing paths."""

    def make_assembler(self, script):
        config = PipelineConfig()
        config.extraction.candidate_models = ["model-a", "model-b"]
        backend = ScriptedBackend(script)
        client = ResilientExtractionClient(backend, config.extraction, config.journal, sleep=SleepRecorder())
        return ManuscriptAssembler(config, backend=backend, client=client), backend

    @pytest.mark.asyncio
    async def test_process_text(self, valid_json):
        assembler, backend = self.make_assembler([valid_json])
        text = "Effect of Moderate Exercise on Fasting Glucose\nPrediabetes is rising (Figure 1). Exercise helps."

        result = await assembler.process_text(text, today=TODAY)

        assert result.mode == "ai"
        assert result.model == "model-a"
        assert result.document.title == VALID_RESPONSE["title"]
        assert result.document.volume == "3"
        assert result.document.published_date == "18 October 2026"
        assert result.report.status in list(ValidationStatus)
        assert result.to_dict()["attempts"][0]["model"] == "model-a"

    @pytest.mark.asyncio
    async def test_process_text_rejects_empty(self):
        assembler, backend = self.make_assembler([])
        with pytest.raises(ValueError):
            await assembler.process_text("   ")
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_process_text_failure(self):
        from manuscript_recon.utils.errors import BackendError

        assembler, _ = self.make_assembler([BackendError("m", "API key not valid")] * 2)
        with pytest.raises(ExtractionFailedError):
            await assembler.process_text("Some manuscript text")

    def test_process_manual(self):
        assembler, backend = self.make_assembler([])

        result = assembler.process_manual("My Title\nFirst paragraph.\nSecond paragraph.", today=TODAY)

        assert result.mode == "manual"
        assert result.document.title == "My Title"
        assert result.document.doi == JournalConfig().doi_placeholder
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_process_file_manual(self, tmp_path):
        path = tmp_path / "paper.txt"
        path.write_text("Plain Title\nBody line.", encoding="utf-8")
        assembler, _ = self.make_assembler([])

        result = await assembler.process_file(path, manual=True, today=TODAY)

        assert result.source_file == str(path)
        assert result.document.title == "Plain Title"

    @pytest.mark.asyncio
    async def test_process_file_ai(self, tmp_path, valid_json):
        path = tmp_path / "paper.txt"
        path.write_text("Prediabetes is rising. Exercise helps.", encoding="utf-8")
        assembler, backend = self.make_assembler([valid_json])

        result = await assembler.process_file(path, today=TODAY)

        assert backend.calls == ["model-a"]
        assert result.original_text.startswith("Prediabetes")

    @pytest.mark.asyncio
    async def test_process_file_missing(self, tmp_path):
        assembler, _ = self.make_assembler([])
        with pytest.raises(ExtractorError):
            await assembler.process_file(tmp_path / "missing.docx")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Shared fixtures: scripted generative backend, recorded sleeps, sample manuscripts.
"""

import base64
import io
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from manuscript_recon.config import ExtractionConfig, JournalConfig
from manuscript_recon.utils.backend import BackendResponse, GenerativeBackend
from manuscript_recon.utils.manuscript import Author, Figure, ManuscriptDocument, Section


def make_png(width: int = 80, height: int = 60) -> bytes:
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (15, 76, 129)).save(buffer, format="PNG")
    return buffer.getvalue()


def png_data_url(width: int = 80, height: int = 60) -> str:
    return "data:image/png;base64," + base64.b64encode(make_png(width, height)).decode("ascii")


VALID_RESPONSE = {
    "title": "Effect of Moderate Exercise on Fasting Glucose",
    "articleType": "Original Research Article",
    "doi": "",
    "abstract": "Background: Prediabetes is common. Results: Glucose fell.",
    "keywords": ["prediabetes", "exercise"],
    "authors": [
        {"name": "Rina Hartono", "affiliation": "Universitas Karya Husada", "email": "rina@example.org",
         "isCorresponding": True},
        {"name": "Budi Santoso", "affiliation": "Universitas Karya Husada"},
    ],
    "contentSections": [
        {"header": "Introduction", "body": "Prediabetes is rising (Figure 1).\n\nExercise helps."},
        {"header": "Methods", "body": "Sixty-four adults were enrolled."},
    ],
    "references": ["Reference one.", "Reference two."],
}


class ScriptedBackend(GenerativeBackend):
    """Returns (or raises) scripted items in order and records every call."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = []

    async def generate(self, model, prompt, schema, temperature, max_output_tokens=None):
        self.calls.append(model)
        if not self.script:
            raise AssertionError("Backend called more often than scripted")
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return BackendResponse(text=item)


class SleepRecorder:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def valid_json():
    return json.dumps(VALID_RESPONSE)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def extraction_config():
    return ExtractionConfig(candidate_models=["model-a", "model-b"], max_attempts_per_model=2)


@pytest.fixture
def offline_journal():
    """Journal defaults whose logo is inline, so no test touches the network."""
    return JournalConfig(default_logo_url=png_data_url())


@pytest.fixture
def sample_document():
    return ManuscriptDocument(
        title="Effect of Moderate Exercise on Fasting Glucose",
        authors=(
            Author("Rina Hartono", "Universitas Karya Husada", "rina@example.org", True),
            Author("Budi Santoso", "Universitas Karya Husada"),
            Author("Maya Putri", "Universitas Diponegoro"),
        ),
        abstract="Background: Prediabetes is common. Conclusion: Exercise lowers glucose.",
        keywords=("prediabetes", "exercise"),
        sections=(
            Section("1. Introduction", "Prediabetes is rising in Indonesia (Figure 1).\n\nExercise helps."),
            Section("2. Methods", "2.1 Participants\n\nSixty-four adults.\n\n$$\\Delta G = G_{post} - G_{pre}$$"),
            Section("3. Results", "Table 1. Glucose by group\n\n| Group | Before |\n|---|---|\n| A | 112 |"),
            Section("4. Discussion", "Consistent with earlier trials."),
            Section("5. Conclusion", "Exercise is practical."),
        ),
        references=("American Diabetes Association. (2024). Standards of care.",),
        figures=(
            Figure("1", png_data_url(), "Figure 1. Fasting glucose by group"),
            Figure("2", png_data_url(), "Uncited chart"),
        ),
        article_type="Original Research Article",
        doi="10.1234/jbsh.v3i1.0001",
        volume="3",
        issue="1",
        year="2026",
        pages="1-12",
        received_date="1 September 2026",
        accepted_date="18 October 2026",
        published_date="18 October 2026",
        logo_url=png_data_url(),
    )


def weasyprint_available() -> bool:
    try:
        import weasyprint  # noqa: F401
    except (ImportError, OSError):
        return False
    return True


requires_weasyprint = pytest.mark.skipif(
    not weasyprint_available(), reason="WeasyPrint or its system libraries are not installed"
)

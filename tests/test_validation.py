"""
Tests for integrity validation.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from manuscript_recon.config import ValidationConfig
from manuscript_recon.utils.manuscript import Author, ManuscriptDocument, Section
from manuscript_recon.utils.validation import (
    BROKEN_REFERENCE,
    ValidationStatus,
    compute_coverage,
    find_formatting_issues,
    find_missing_sections,
    normalize_tokens,
    validate_manuscript,
)

IMRAD = (
    Section("Introduction", "alpha bravo charlie"),
    Section("Methods", "delta echo foxtrot"),
    Section("Results", "golf hotel india"),
    Section("Discussion", "juliet kilo lima"),
    Section("Conclusion", "mike november oscar"),
)
ORIGINAL = " ".join(s.content for s in IMRAD)


def document(sections=IMRAD, **changes):
    return ManuscriptDocument(title="", authors=(Author("A"),), sections=sections).with_changes(**changes)


class TestNormalizeTokens:
    """Tests for shared normalization."""

    def test_strips_markup_and_short_tokens(self):
        tokens = normalize_tokens("<p>The CAT sat, on a mat!</p> &amp; [[FIGURE:1]]")
        assert tokens == ["the", "cat", "sat", "mat"]

    def test_placeholder_removed(self):
        assert normalize_tokens("before [FIGURE REMOVED] after") == ["before", "after"]

    def test_empty(self):
        assert normalize_tokens("") == []

    def test_min_length_configurable(self):
        config = ValidationConfig(min_token_length=0)
        assert normalize_tokens("a bb", config) == ["a", "bb"]


class TestCoverage:
    """Tests for word coverage."""

    def test_full(self):
        assert compute_coverage(["one", "two"], ["two", "one"]) == 100

    def test_partial(self):
        assert compute_coverage(["one", "two", "three", "four"], ["one"]) == 25

    def test_empty_original(self):
        assert compute_coverage([], ["anything"]) == 100

    def test_occurrences_counted(self):
        assert compute_coverage(["one", "one", "one", "two"], ["one"]) == 75

    def test_half_rounds_up(self):
        original = [f"word{i}" for i in range(200)]
        assert compute_coverage(original, original[:189]) == 95

    def test_half_up_through_validator(self):
        original = " ".join(f"word{i}" for i in range(200))
        generated = " ".join(f"word{i}" for i in range(189))
        document = ManuscriptDocument(
            title="T", authors=(Author("A"),), sections=(Section("Body", generated),)
        )

        report = validate_manuscript(original, document)

        assert report.coverage_percent == 95


class TestSectionsAndIssues:
    """Tests for missing sections and formatting artifacts."""

    def test_substring_match(self):
        headings = ["1. Introduction", "2. Materials and Methods", "3. Results and Discussion"]
        assert find_missing_sections(headings, ValidationConfig().canonical_sections) == ["Conclusion"]

    def test_broken_reference(self):
        issues = find_formatting_issues(f"See {BROKEN_REFERENCE} and {BROKEN_REFERENCE}")
        assert len(issues) == 1
        assert "2 time(s)" in issues[0]

    def test_unresolved_placeholder(self):
        issues = find_formatting_issues("As shown in [Insert Table 2 here].")
        assert issues == ["Unresolved placeholder: [Insert Table 2 here]"]

    def test_figure_references_not_issues(self):
        assert find_formatting_issues("See [[FIGURE:1]] and [FIGURE REMOVED].") == []


class TestValidateManuscript:
    """Tests for the overall verdict."""

    def test_success(self):
        report = validate_manuscript(ORIGINAL, document())

        assert report.status == ValidationStatus.SUCCESS
        assert report.coverage_percent == 100
        assert report.missing_sections == []

    def test_danger_on_heavy_loss(self):
        report = validate_manuscript(ORIGINAL, document(sections=IMRAD[:1]))

        assert report.status == ValidationStatus.DANGER
        assert report.coverage_percent == 20
        assert len(report.missing_sections) == 4

    def test_warning_on_missing_section(self):
        sections = IMRAD[:4] + (Section("Closing Remarks", "mike november oscar"),)
        report = validate_manuscript(ORIGINAL, document(sections=sections))

        assert report.status == ValidationStatus.WARNING
        assert report.missing_sections == ["Conclusion"]

    def test_warning_on_formatting_issue(self):
        sections = IMRAD[:4] + (Section("Conclusion", f"mike november oscar {BROKEN_REFERENCE}"),)
        report = validate_manuscript(ORIGINAL, document(sections=sections))

        assert report.status == ValidationStatus.WARNING
        assert report.formatting_issues

    def test_headings_not_counted(self):
        report = validate_manuscript("introduction", document())
        assert report.coverage_percent == 0

    def test_to_dict(self):
        data = validate_manuscript(ORIGINAL, document()).to_dict()
        assert data["status"] == "success"
        assert data["coveragePercent"] == 100

    def test_never_raises_on_empty(self):
        report = validate_manuscript("", document(sections=()))
        assert report.coverage_percent == 100
        assert report.status == ValidationStatus.DANGER


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

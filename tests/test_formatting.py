"""
Tests for text formatting helpers and equation/inline markup handling.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from manuscript_recon.utils.equations import (
    InlineRun,
    is_display_equation,
    latex_to_readable,
    markup_to_runs,
    parse_inline_runs,
    strip_math_delimiters,
    validate_latex,
)
from manuscript_recon.utils.formatting import (
    apa_author_list,
    apa_citation,
    citation_authors,
    format_author_apa,
    format_long_date,
    highlight_abstract_labels,
    is_all_caps,
    normalize_title,
    running_head_authors,
    running_head_journal,
    sanitize_text,
    split_paragraphs,
    to_sentence_case,
    to_title_case,
)


class TestCasing:
    """Tests for title and sentence casing."""

    def test_title_case_minor_words(self):
        assert to_title_case("THE EFFECT OF EXERCISE ON GLUCOSE") == "The Effect of Exercise on Glucose"

    def test_title_case_first_word_always_capitalized(self):
        assert to_title_case("of mice and men") == "Of Mice and Men"

    def test_sentence_case(self):
        assert to_sentence_case("  EFFECT Of Exercise ") == "Effect of exercise"

    def test_is_all_caps(self):
        assert is_all_caps("HBA1C LEVELS")
        assert not is_all_caps("HbA1c levels")
        assert not is_all_caps("2026")

    def test_normalize_title(self):
        assert normalize_title("  A   Mixed\nCase Title ") == "A Mixed Case Title"
        assert normalize_title("ALL CAPS TITLE") == "All Caps Title"


class TestAuthors:
    """Tests for author and citation strings."""

    NAMES = ["Rina Hartono", "Budi Santoso", "Maya Putri"]

    def test_format_author_apa(self):
        assert format_author_apa("Jane Q. Doe") == "Doe, J. Q."
        assert format_author_apa("Sukarno") == "Sukarno"
        assert format_author_apa("") == ""

    def test_apa_author_list(self):
        assert apa_author_list(self.NAMES[:2]) == "Hartono, R., & Santoso, B."
        assert apa_author_list([]) == "Author"

    def test_citation_authors(self):
        assert citation_authors(self.NAMES) == "Hartono et al."
        assert citation_authors(self.NAMES[:2]) == "Rina Hartono & Budi Santoso"

    def test_running_head_authors(self):
        assert running_head_authors(self.NAMES) == "Hartono et al."
        assert running_head_authors(self.NAMES[:1]) == "Hartono"

    def test_running_head_journal(self):
        assert running_head_journal("J. Biomed. Sci. Health", "2026", "3", "1", "1-12") == \
            "J. Biomed. Sci. Health. 2026; 3(1): 1-12"

    def test_apa_citation(self):
        citation = apa_citation(
            self.NAMES[:1], "2026", "EXERCISE AND GLUCOSE", "Journal of Biomedical Sciences and Health",
            "3", "1", "1-12", "10.1234/x",
        )
        assert citation == (
            "Hartono, R. (2026). Exercise and glucose. Journal of Biomedical Sciences and Health, "
            "3(1), 1-12. https://doi.org/10.1234/x"
        )


class TestTextHelpers:
    """Tests for abstract labels, sanitizing and dates."""

    def test_highlight_abstract_labels(self):
        result = highlight_abstract_labels("Background: Common. Methods: Trial.")
        assert result == "<strong>Background:</strong> Common. <strong>Methods:</strong> Trial."

    def test_highlight_custom_tags(self):
        assert highlight_abstract_labels("Results: x", "**", "**") == "**Results:** x"

    def test_label_inside_word_untouched(self):
        assert highlight_abstract_labels("Our Aims were clear") == "Our Aims were clear"

    def test_sanitize_text(self):
        assert sanitize_text("a\x00b\x0bc\nd\te") == "abc\nd\te"
        assert sanitize_text(None) == ""

    def test_format_long_date(self):
        assert format_long_date(date(2026, 10, 18)) == "18 October 2026"

    def test_split_paragraphs(self):
        assert split_paragraphs("One\n\n  \nTwo\nstill two") == ["One", "Two\nstill two"]


class TestEquations:
    """Tests for LaTeX conversion and inline runs."""

    def test_display_equation(self):
        assert is_display_equation("$$x = 1$$")
        assert not is_display_equation("where $$x$$ is the dose")
        assert strip_math_delimiters(" $$ x = 1 $$ ") == "x = 1"

    def test_latex_to_readable(self):
        assert latex_to_readable(r"\frac{a}{b}") == "(a / b)"
        assert latex_to_readable(r"\alpha \leq \beta") == "α ≤ β"
        assert latex_to_readable(r"\text{BMI} \geq 25") == "BMI ≥ 25"

    def test_sub_and_superscript_braces_kept(self):
        assert latex_to_readable(r"G_{post} - x^{2}") == "G_{post} - x^{2}"

    @pytest.mark.parametrize("latex,valid", [
        (r"\frac{a}{b}", True),
        (r"\frac{a}{b", False),
        (r"a}", False),
        ("x \\", False),
        ("", False),
    ])
    def test_validate_latex(self, latex, valid):
        assert validate_latex(latex)[0] is valid

    def test_subscript_runs(self):
        runs = parse_inline_runs("H_2O")
        assert runs == [InlineRun("H"), InlineRun("2", subscript=True), InlineRun("O")]

    def test_bold_italic_superscript_runs(self):
        runs = parse_inline_runs("**Note** *in vivo* mc^{2}")

        assert runs[0] == InlineRun("Note", bold=True)
        assert runs[2] == InlineRun("in vivo", italic=True)
        assert runs[-1] == InlineRun("2", superscript=True)

    def test_inline_math(self):
        runs = parse_inline_runs(r"dose $$\alpha_{1}$$ given")
        texts = [r.text for r in runs]

        assert "α" in texts
        assert InlineRun("1", subscript=True) in runs

    def test_line_breaks(self):
        runs = parse_inline_runs("a\nb")
        assert runs == [InlineRun("a"), InlineRun("", line_break=True), InlineRun("b")]

    def test_forced_bold(self):
        assert all(r.bold for r in parse_inline_runs("Header", bold=True))

    def test_markup_to_runs(self):
        runs = markup_to_runs("<b>Bold</b> text<sup>2</sup><br/><em>it</em>")

        assert runs[0] == InlineRun("Bold", bold=True)
        assert runs[1] == InlineRun(" text")
        assert runs[2] == InlineRun("2", superscript=True)
        assert runs[3].line_break
        assert runs[4] == InlineRun("it", italic=True)

    def test_markup_without_tags(self):
        assert markup_to_runs("plain") == [InlineRun("plain")]
        assert markup_to_runs("") == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

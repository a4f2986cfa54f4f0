"""
Text formatting helpers for journal layout.

Provides:
- Title and sentence casing
- APA author formatting and citation strings
- Running head strings
- Abstract label highlighting
- Control-character sanitizing and date formatting
"""

import re
from datetime import date
from typing import List, Optional, Sequence

MINOR_WORDS = {
    "of", "and", "as", "in", "the", "to", "for", "with", "on", "at", "by", "from", "a", "an", "or",
}

ABSTRACT_LABELS = [
    "Background", "Objectives", "Objective", "Aims", "Aim", "Purpose",
    "Methods", "Method", "Results", "Result", "Conclusions", "Conclusion",
]

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_ABSTRACT_LABEL_PATTERN = re.compile(
    r"(^|(?<=[\s.;]))(" + "|".join(ABSTRACT_LABELS) + r")(\s*[:.])",
)


def sanitize_text(text: Optional[str]) -> str:
    """Remove control characters except newline, tab and carriage return."""
    if not text:
        return ""
    return _CONTROL_CHARS.sub("", text)


def is_all_caps(text: str) -> bool:
    letters = [c for c in text if c.isalpha()]
    return bool(letters) and all(c.isupper() for c in letters)


def to_title_case(text: str) -> str:
    """Capitalize each word except minor words (the first word is always capitalized)."""
    words = (text or "").split()
    result = []
    for index, word in enumerate(words):
        lower = word.lower()
        if index > 0 and lower in MINOR_WORDS:
            result.append(lower)
        else:
            result.append(lower[:1].upper() + lower[1:])
    return " ".join(result)


def to_sentence_case(text: str) -> str:
    trimmed = (text or "").strip()
    return trimmed[:1].upper() + trimmed[1:].lower()


def normalize_title(title: str) -> str:
    """Collapse whitespace; convert ALL-CAPS titles to title case."""
    title = " ".join((title or "").split())
    if is_all_caps(title):
        return to_title_case(title)
    return title


def surname(name: str) -> str:
    parts = (name or "").split()
    return parts[-1] if parts else ""


def format_author_apa(name: str) -> str:
    """'Jane Q. Doe' -> 'Doe, J. Q.'"""
    parts = (name or "").split()
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    initials = " ".join(p[0].upper() + "." for p in parts[:-1])
    return f"{parts[-1]}, {initials}"


def apa_author_list(names: Sequence[str]) -> str:
    formatted = [format_author_apa(n) for n in names if n]
    if not formatted:
        return "Author"
    if len(formatted) == 1:
        return formatted[0]
    return ", ".join(formatted[:-1]) + ", & " + formatted[-1]


def citation_authors(names: Sequence[str]) -> str:
    """Short author string: 'A & B' for up to two authors, 'Surname et al.' beyond."""
    names = [n for n in names if n]
    if not names:
        return "Author"
    if len(names) > 2:
        return f"{surname(names[0])} et al."
    return " & ".join(names)


def running_head_authors(names: Sequence[str]) -> str:
    names = [n for n in names if n]
    if not names:
        return "Author"
    first = surname(names[0])
    return f"{first} et al." if len(names) > 1 else first


def running_head_journal(
    citation_title: str,
    year: str,
    volume: str,
    issue: str,
    pages: str
) -> str:
    """e.g. 'J. Biomed. Sci. Health. 2026; 3(1): 1-12'"""
    return f"{citation_title}. {year}; {volume}({issue}): {pages}"


def apa_citation(
    names: Sequence[str],
    year: str,
    title: str,
    journal_name: str,
    volume: str,
    issue: str,
    pages: str,
    doi: str
) -> str:
    return (
        f"{apa_author_list(names)} ({year}). {to_sentence_case(title)}. "
        f"{journal_name}, {volume}({issue}), {pages}. https://doi.org/{doi}"
    )


def highlight_abstract_labels(text: str, open_tag: str = "<strong>", close_tag: str = "</strong>") -> str:
    """Wrap structured-abstract labels such as 'Background:' in bold markup."""
    if not text:
        return ""
    return _ABSTRACT_LABEL_PATTERN.sub(
        lambda m: f"{m.group(1)}{open_tag}{m.group(2)}{m.group(3)}{close_tag}",
        text,
    )


def format_long_date(value: Optional[date] = None) -> str:
    """Day-month-year in words, e.g. '18 October 2026'."""
    value = value or date.today()
    return f"{value.day} {value.strftime('%B')} {value.year}"


def split_paragraphs(text: str) -> List[str]:
    return [p.strip() for p in re.split(r"\n\s*\n", text or "") if p.strip()]

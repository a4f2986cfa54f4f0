"""
Equation and inline markup handling.

Provides:
- $$...$$ delimiter detection and stripping
- LaTeX to readable Unicode text conversion
- Inline run tokenizer (bold, italic, subscript, superscript, inline math)
- HTML inline markup to runs (b/strong, i/em, sub, sup, br)
- Basic LaTeX sanity checks
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Tuple

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class InlineRun:
    """A run of text with uniform character formatting."""
    text: str
    bold: bool = False
    italic: bool = False
    subscript: bool = False
    superscript: bool = False
    line_break: bool = False


# ============================================================================
# LaTeX Conversion
# ============================================================================

_DISPLAY_MATH = re.compile(r"^\s*\$\$(.*?)\$\$\s*$", re.DOTALL)

# Order matters: longer commands before their prefixes (\leftarrow, \leq before \le)
LATEX_SYMBOLS: List[Tuple[str, str]] = [
    (r"\rightarrow", " → "),
    (r"\leftarrow", " ← "),
    (r"\left", ""),
    (r"\right", ""),
    (r"\times", " × "),
    (r"\cdot", " · "),
    (r"\pm", " ± "),
    (r"\mp", " ∓ "),
    (r"\approx", " ≈ "),
    (r"\neq", " ≠ "),
    (r"\leq", " ≤ "),
    (r"\geq", " ≥ "),
    (r"\le", " ≤ "),
    (r"\ge", " ≥ "),
    (r"\div", " ÷ "),
    (r"\infty", "∞"),
    (r"\sum", "∑"),
    (r"\sqrt", "√"),
    (r"\alpha", "α"),
    (r"\beta", "β"),
    (r"\gamma", "γ"),
    (r"\delta", "δ"),
    (r"\Delta", "Δ"),
    (r"\mu", "μ"),
    (r"\sigma", "σ"),
    (r"\chi", "χ"),
    (r"\pi", "π"),
    (r"\%", "%"),
]

_FRACTION = re.compile(r"\\frac\{([^{}]*)\}\{([^{}]*)\}")
_TEXT_WRAPPER = re.compile(r"\\(?:text|mathit|mathrm|mathbf)\{([^{}]*)\}")


def is_display_equation(text: str) -> bool:
    return bool(_DISPLAY_MATH.match(text or ""))


def strip_math_delimiters(text: str) -> str:
    match = _DISPLAY_MATH.match(text or "")
    if match:
        return match.group(1).strip()
    return (text or "").strip()


def latex_to_readable(latex: str) -> str:
    """
    Turn common LaTeX into readable text for DOCX output.

    Fractions become '(a / b)', operators become Unicode symbols, text
    wrappers and leftover braces are dropped. Sub/superscript markers are
    kept so the run tokenizer can format them.
    """
    text = latex or ""
    text = _FRACTION.sub(r"(\1 / \2)", text)
    text = _TEXT_WRAPPER.sub(r"\1", text)
    for command, symbol in LATEX_SYMBOLS:
        text = text.replace(command, symbol)
    # Keep braces that group a sub/superscript, drop the rest
    text = re.sub(r"(?<![_^])\{([^{}]*)\}", r"\1", text)
    text = re.sub(r"\s{2,}", " ", text)
    return text.strip()


def validate_latex(latex: str) -> Tuple[bool, str]:
    """Check brace balance and trailing commands."""
    if not latex or not latex.strip():
        return False, "Empty LaTeX string"

    depth = 0
    for char in latex:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return False, "Unbalanced braces: unexpected closing brace"
    if depth != 0:
        return False, "Unbalanced braces: missing closing brace"

    if latex.rstrip().endswith("\\"):
        return False, "Incomplete command at end of expression"

    return True, "Valid"


# ============================================================================
# Inline Run Tokenizer
# ============================================================================

_INLINE_TOKEN = re.compile(
    r"(\$\$.*?\$\$|\*\*.*?\*\*|\*[^*\s][^*]*?\*|_\{[^}]*\}|_[0-9A-Za-z]|\^\{[^}]*\}|\^[0-9A-Za-z])"
)


def parse_inline_runs(text: str, bold: bool = False) -> List[InlineRun]:
    """
    Split text into formatted runs.

    Supports **bold**, *italic*, _{sub} / _x, ^{sup} / ^x and inline
    $$math$$ (converted with latex_to_readable and re-tokenized). Newlines
    become line-break runs.

    Args:
        text: Source text
        bold: Force bold on plain runs (table headers)

    Returns:
        List of InlineRun
    """
    runs: List[InlineRun] = []
    if not text:
        return runs

    for part in _INLINE_TOKEN.split(text):
        if not part:
            continue

        if part.startswith("$$") and part.endswith("$$") and len(part) >= 4:
            runs.extend(parse_inline_runs(latex_to_readable(part[2:-2]), bold))
        elif part.startswith("**") and part.endswith("**") and len(part) >= 4:
            runs.append(InlineRun(part[2:-2], bold=True))
        elif part.startswith("*") and part.endswith("*") and len(part) >= 3:
            runs.append(InlineRun(part[1:-1], bold=bold, italic=True))
        elif part.startswith("_") and len(part) >= 2:
            runs.append(InlineRun(_unbrace(part[1:]), bold=bold, subscript=True))
        elif part.startswith("^") and len(part) >= 2:
            runs.append(InlineRun(_unbrace(part[1:]), bold=bold, superscript=True))
        else:
            lines = part.split("\n")
            for index, line in enumerate(lines):
                if line:
                    runs.append(InlineRun(line, bold=bold))
                if index < len(lines) - 1:
                    runs.append(InlineRun("", line_break=True))

    return runs


def _unbrace(content: str) -> str:
    if content.startswith("{") and content.endswith("}"):
        return content[1:-1]
    return content


_HTML_TAG = re.compile(r"</?[a-zA-Z][^>]*>")
_BOLD_TAGS = {"b", "strong", "th"}
_ITALIC_TAGS = {"i", "em"}


def markup_to_runs(markup: str, bold: bool = False) -> List[InlineRun]:
    """
    Runs for text that may carry inline HTML.

    Tags decide bold/italic/sub/superscript; text nodes still go through
    parse_inline_runs so Markdown markers and inline math keep working.
    """
    if not markup:
        return []
    if not _HTML_TAG.search(markup):
        return parse_inline_runs(markup, bold)

    runs: List[InlineRun] = []
    soup = BeautifulSoup(markup, "html.parser")
    for node in soup.descendants:
        if isinstance(node, Tag):
            if node.name == "br":
                runs.append(InlineRun("", line_break=True))
            continue
        if not isinstance(node, NavigableString) or isinstance(node, Comment):
            continue

        names = {parent.name for parent in node.parents}
        text = re.sub(r"\s*\n\s*", " ", str(node))
        for run in parse_inline_runs(text, bold or bool(names & _BOLD_TAGS)):
            run.italic = run.italic or bool(names & _ITALIC_TAGS)
            run.subscript = run.subscript or "sub" in names
            run.superscript = run.superscript or "sup" in names
            runs.append(run)

    return runs

"""
Integrity validation for reconstructed manuscripts.

Provides:
- Shared text normalization for original and generated text
- Word coverage between the raw input and the structured manuscript
- Missing IMRAD section detection
- Formatting artifact detection (broken cross-references, leftover placeholders)

The report is a trust signal for the editor. Validation never raises and
never blocks export.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any

from ..config import ValidationConfig

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

class ValidationStatus(Enum):
    """Overall verdict surfaced in the QC panel."""
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"


@dataclass
class ValidationReport:
    """Result of comparing the original input with the manuscript."""
    original_word_count: int
    generated_word_count: int
    coverage_percent: int
    status: ValidationStatus
    missing_sections: List[str] = field(default_factory=list)
    formatting_issues: List[str] = field(default_factory=list)

    @property
    def length_ratio(self) -> float:
        if self.original_word_count == 0:
            return 1.0
        return self.generated_word_count / self.original_word_count

    @property
    def summary(self) -> str:
        if self.status == ValidationStatus.SUCCESS:
            return "Content integrity looks good."
        if self.status == ValidationStatus.WARNING:
            return "Some content may be missing or malformed. Review before export."
        return "Significant content loss detected. Compare against the original before export."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalWordCount": self.original_word_count,
            "generatedWordCount": self.generated_word_count,
            "coveragePercent": self.coverage_percent,
            "status": self.status.value,
            "missingSections": list(self.missing_sections),
            "formattingIssues": list(self.formatting_issues),
        }


# ============================================================================
# Normalization
# ============================================================================

_TAG_PATTERN = re.compile(r"<[^>]+>")
_ENTITY_PATTERN = re.compile(r"&[#\w]+;")
_FIGURE_REF_PATTERN = re.compile(r"\[\[FIGURE:[^\]]*\]\]")
_PUNCT_PATTERN = re.compile(r"[^\w\s]")

BROKEN_REFERENCE = "Error! Reference source not found."
_PLACEHOLDER_PATTERN = re.compile(r"\[(?:insert|figure|table)[^\]]*\]", re.IGNORECASE)


def normalize_tokens(
    text: str,
    config: Optional[ValidationConfig] = None
) -> List[str]:
    """
    Normalize text into comparable word tokens.

    Strips tags, placeholder tokens, inline figure references, HTML entities
    and punctuation, lowercases, and drops short tokens.
    """
    config = config or ValidationConfig()
    if not text:
        return []

    text = _FIGURE_REF_PATTERN.sub(" ", text)
    text = _TAG_PATTERN.sub(" ", text)
    for token in config.placeholder_tokens:
        text = text.replace(token, " ")
    text = _ENTITY_PATTERN.sub(" ", text)
    text = _PUNCT_PATTERN.sub(" ", text)

    return [
        token for token in text.lower().split()
        if len(token) > config.min_token_length
    ]


# ============================================================================
# Checks
# ============================================================================

def compute_coverage(original_tokens: List[str], generated_tokens: List[str]) -> int:
    """Percentage of original tokens whose word appears in the generated text."""
    if not original_tokens:
        return 100

    generated = set(generated_tokens)
    found = sum(1 for token in original_tokens if token in generated)
    # Half up, so 94.5 reports as 95
    percent = int(100 * found / len(original_tokens) + 0.5)
    return max(0, min(100, percent))


def find_missing_sections(
    headings: List[str],
    canonical: List[str]
) -> List[str]:
    """Canonical sections that no heading mentions (case-insensitive substring)."""
    lowered = [h.lower() for h in headings]
    return [
        name for name in canonical
        if not any(name.lower() in heading for heading in lowered)
    ]


def find_formatting_issues(
    text: str,
    config: Optional[ValidationConfig] = None
) -> List[str]:
    """Detect known corruption artifacts in generated text."""
    config = config or ValidationConfig()
    issues = []
    text = _FIGURE_REF_PATTERN.sub(" ", text or "")
    for token in config.placeholder_tokens:
        text = text.replace(token, " ")

    broken = text.count(BROKEN_REFERENCE)
    if broken:
        issues.append(f"Broken cross-reference found {broken} time(s): \"{BROKEN_REFERENCE}\"")

    for match in _PLACEHOLDER_PATTERN.finditer(text):
        issues.append(f"Unresolved placeholder: {match.group(0)}")

    return issues


def _classify_status(
    coverage: int,
    original_count: int,
    generated_count: int,
    missing: List[str],
    issues: List[str],
    config: ValidationConfig
) -> ValidationStatus:
    if (
        coverage < config.danger_coverage
        or generated_count < config.danger_length_ratio * original_count
        or len(missing) > config.max_missing_sections
    ):
        return ValidationStatus.DANGER

    if (
        coverage < config.warning_coverage
        or generated_count < config.warning_length_ratio * original_count
        or missing
        or issues
    ):
        return ValidationStatus.WARNING

    return ValidationStatus.SUCCESS


# ============================================================================
# Public API
# ============================================================================

def validate_manuscript(
    original_text: str,
    document,
    config: Optional[ValidationConfig] = None
) -> ValidationReport:
    """
    Compare the raw input with a finalized manuscript.

    Args:
        original_text: Text that was sent to extraction (or manual mode)
        document: ManuscriptDocument snapshot
        config: Thresholds; defaults to ValidationConfig()

    Returns:
        ValidationReport
    """
    config = config or ValidationConfig()

    original_tokens = normalize_tokens(original_text, config)

    generated_parts = [document.title, document.abstract, " ".join(document.keywords)]
    generated_parts.extend(section.content for section in document.sections)
    generated_parts.extend(document.references)
    generated_text = "\n".join(p for p in generated_parts if p)
    generated_tokens = normalize_tokens(generated_text, config)

    coverage = compute_coverage(original_tokens, generated_tokens)
    missing = find_missing_sections(
        [section.heading for section in document.sections],
        config.canonical_sections
    )
    issues = find_formatting_issues(generated_text, config)

    status = _classify_status(
        coverage, len(original_tokens), len(generated_tokens), missing, issues, config
    )

    logger.info(
        f"Validation: coverage={coverage}% "
        f"words={len(generated_tokens)}/{len(original_tokens)} "
        f"missing={missing} issues={len(issues)} status={status.value}"
    )

    return ValidationReport(
        original_word_count=len(original_tokens),
        generated_word_count=len(generated_tokens),
        coverage_percent=coverage,
        status=status,
        missing_sections=missing,
        formatting_issues=issues,
    )

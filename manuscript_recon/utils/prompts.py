"""
Extraction prompt templates.

Builds the instruction block and response schema sent to the generative
backend. The instructions encode the content-fidelity rules: the model
segments the manuscript, it does not rewrite it.

Usage:
    from manuscript_recon.utils.prompts import build_extraction_prompt

    request = build_extraction_prompt(raw_text, figures, "Review Article")
    response = await backend.generate(model, request.prompt, request.schema, 0.1)
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

DEFAULT_ARTICLE_TYPE = "Original Research Article"

# Inline figure reference the backend inserts after a citing paragraph
FIGURE_REFERENCE_TEMPLATE = "[[FIGURE:{id}]]"


# =============================================================================
# Response Schema
# =============================================================================

AUTHOR_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "affiliation": {"type": "STRING"},
        "email": {"type": "STRING", "nullable": True},
        "isCorresponding": {"type": "BOOLEAN", "nullable": True},
    },
    "required": ["name", "affiliation"],
}

SECTION_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "header": {
            "type": "STRING",
            "description": "The section title exactly as written (e.g. Introduction, 2. Methods)",
        },
        "body": {
            "type": "STRING",
            "description": (
                "The full, verbatim body text of the section. Tables MUST be HTML "
                "<table> markup; equations MUST be wrapped in $$...$$."
            ),
        },
    },
    "required": ["header", "body"],
}

MANUSCRIPT_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "articleType": {"type": "STRING"},
        "doi": {"type": "STRING", "nullable": True},
        "abstract": {"type": "STRING"},
        "keywords": {"type": "ARRAY", "items": {"type": "STRING"}},
        "authors": {"type": "ARRAY", "items": AUTHOR_SCHEMA},
        "contentSections": {"type": "ARRAY", "items": SECTION_SCHEMA},
        "references": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["title", "authors", "abstract", "keywords", "contentSections", "references"],
}


# =============================================================================
# Instruction Templates
# =============================================================================

EXTRACTION_PROMPT = """You are a production editor for the {journal}.
Convert the raw manuscript text below into a single structured JSON object.
Article type hint: {article_type}. Report the detected type in "articleType".

STRICT CONTENT RULES (these are hard constraints):
1. NO SUMMARIZATION. Copy every sentence of every section verbatim. Do not shorten, paraphrase or omit anything.
2. NO GRAMMAR CORRECTION. Keep spelling, wording and punctuation exactly as written.
3. PARAGRAPHS: preserve every paragraph break as a doubled newline ("\\n\\n") inside section bodies. Only join lines that were broken in the middle of a sentence.
4. TABLES: convert any data laid out in rows and columns (plain text or existing HTML) into HTML <table> markup, using <thead> for the header row and <tbody> for the data rows.
5. EQUATIONS: wrap every mathematical expression in $$...$$ delimiters and keep each display equation on its own line.
6. NOISE: remove ONLY page numbers and running headers/footers. Nothing else may be removed.
7. STRUCTURE: split the text into title, authors (name, affiliation, email, corresponding flag), abstract, keywords, content sections in reading order, and references (one entry per item).
8. If the manuscript states a DOI, return it in "doi"; otherwise leave it empty.
9. Output ONLY valid JSON matching the schema. No commentary, no markdown fences.
{figure_rules}
Input Text:
{raw_text}
"""

FIGURE_RULES = """
FIGURES: the images below were removed from the text and replaced by "[FIGURE REMOVED]".
{manifest}
For each figure, insert the reference {example} on its own line immediately AFTER
the paragraph that first cites that figure number (e.g. "Figure 2" or "Fig. 2"),
using the figure's id exactly as listed. Insert each reference once. Drop the
"[FIGURE REMOVED]" markers.
"""


# =============================================================================
# Builder
# =============================================================================

@dataclass(frozen=True)
class ExtractionPrompt:
    """Instruction text plus the response schema for one extraction call."""
    prompt: str
    schema: Dict[str, Any]


def figure_reference(figure_id: str) -> str:
    return FIGURE_REFERENCE_TEMPLATE.format(id=figure_id)


def build_figure_manifest(figures: Sequence[Any]) -> str:
    lines = []
    for figure in figures:
        caption = getattr(figure, "caption", "") or f"Figure {figure.id}"
        lines.append(f"- id {figure.id}: {caption} -> {figure_reference(figure.id)}")
    return "\n".join(lines)


def build_extraction_prompt(
    raw_text: str,
    figures: Sequence[Any] = (),
    article_type: Optional[str] = None,
    journal: str = "Journal of Biomedical Sciences and Health"
) -> ExtractionPrompt:
    """
    Compose the extraction instruction and schema.

    Pure function of its inputs.

    Args:
        raw_text: Manuscript text (plain or HTML)
        figures: Figure manifest from the text extractor
        article_type: Expected article type, used as a hint
        journal: Journal name for the preamble

    Returns:
        ExtractionPrompt
    """
    figure_rules = ""
    if figures:
        figure_rules = FIGURE_RULES.format(
            manifest=build_figure_manifest(figures),
            example=figure_reference("<id>"),
        )

    prompt = EXTRACTION_PROMPT.format(
        journal=journal,
        article_type=article_type or DEFAULT_ARTICLE_TYPE,
        figure_rules=figure_rules,
        raw_text=raw_text,
    )
    return ExtractionPrompt(prompt=prompt, schema=MANUSCRIPT_SCHEMA)

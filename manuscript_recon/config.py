"""
Configuration and constants for the manuscript reconstruction pipeline.

This module provides:
- Global logging configuration
- Generative backend settings (candidate models, retries, backoff)
- Journal identity and publication-metadata defaults
- Layout, validation and export parameters
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from pathlib import Path
import logging

from dotenv import load_dotenv

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("manuscript_recon")


# ============================================================================
# Directory Paths
# ============================================================================

PACKAGE_DIR = Path(__file__).parent
PROJECT_ROOT = PACKAGE_DIR.parent

# Pick up GEMINI_API_KEY and friends from a local .env when present
load_dotenv(PROJECT_ROOT / ".env")


# ============================================================================
# Recovery Policy
# ============================================================================

class RecoveryPolicy(Enum):
    """What to do when a backend response lacks required fields."""
    PLACEHOLDER = "placeholder"  # backfill with placeholder content, mark recovered
    STRICT = "strict"            # treat as a failure of the current model


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class ExtractionConfig:
    """Generative backend configuration."""
    # Tried strictly in order: fast/cheap first, higher quality fallback second
    candidate_models: List[str] = field(default_factory=lambda: [
        "gemini-2.5-flash",
        "gemini-2.5-pro",
    ])
    max_attempts_per_model: int = 2
    # Delay before retry n is backoff_base_seconds * n
    backoff_base_seconds: float = 2.0
    temperature: float = 0.1
    max_output_tokens: int = 8192
    api_key: Optional[str] = None
    recovery_policy: RecoveryPolicy = RecoveryPolicy.PLACEHOLDER
    default_article_type: str = "Original Research Article"
    # 0 = send the whole manuscript
    max_input_chars: int = 0


@dataclass
class JournalConfig:
    """Journal identity and publication metadata defaults."""
    name: str = "Journal of Biomedical Sciences and Health"
    abbreviation: str = "JBSH"
    citation_title: str = "J. Biomed. Sci. Health"
    e_issn: str = "3047-7182"
    p_issn: str = "3062-6854"
    homepage: str = "https://ejournal.unkaha.ac.id/index.php/jbsh"
    publisher: str = "Universitas Karya Husada Semarang, Indonesia"
    default_volume: str = "3"
    default_issue: str = "1"
    default_pages: str = "1-12"
    doi_placeholder: str = "10.xxxxx/jbsh.vX.iX.xxxx"
    default_logo_url: str = "https://i.ibb.co.com/84Q0yL5/jbsh-logo.jpg"
    license_name: str = "Creative Commons Attribution 4.0 International License (CC BY 4.0)"
    license_url: str = "https://creativecommons.org/licenses/by/4.0/"
    editor_in_chief: str = "Editor-in-Chief"
    editor_title: str = "Journal of Biomedical Sciences and Health"
    loa_prefix: str = "JBSH"

    @property
    def issn_line(self) -> str:
        return f"e-ISSN: {self.e_issn} | p-ISSN: {self.p_issn}"


@dataclass
class LayoutConfig:
    """Content classification thresholds."""
    heading_max_length: int = 100
    equation_min_length: int = 2
    equation_max_length: int = 150
    equation_symbols: str = "=≈≠≤≥±×÷"


@dataclass
class ValidationConfig:
    """Integrity validation thresholds."""
    danger_coverage: float = 80.0
    warning_coverage: float = 95.0
    danger_length_ratio: float = 0.7
    warning_length_ratio: float = 0.9
    max_missing_sections: int = 2
    # Tokens of this length or shorter are ignored
    min_token_length: int = 2
    canonical_sections: List[str] = field(default_factory=lambda: [
        "Introduction", "Method", "Result", "Discussion", "Conclusion"
    ])
    placeholder_tokens: List[str] = field(default_factory=lambda: [
        "[FIGURE REMOVED]"
    ])


@dataclass
class ExportConfig:
    """Export configuration."""
    body_font: str = "Times New Roman"
    heading_font: str = "Arial"
    body_font_size: float = 10.0
    small_font_size: float = 8.0
    title_font_size: float = 16.0
    # Page margins in centimetres
    margin_top_cm: float = 2.0
    margin_bottom_cm: float = 2.0
    margin_side_cm: float = 1.8
    column_count: int = 2
    column_spacing_twips: int = 567
    first_line_indent_cm: float = 1.0
    figure_width_inches: float = 3.0
    brand_color: str = "#0F4C81"
    image_timeout_seconds: int = 15


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    journal: JournalConfig = field(default_factory=JournalConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    # Global settings
    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    config.extraction.api_key = (
        os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
    )

    models = os.environ.get("MANUSCRIPT_MODELS", "").strip()
    if models:
        config.extraction.candidate_models = [
            m.strip() for m in models.split(",") if m.strip()
        ]

    attempts = os.environ.get("MANUSCRIPT_MAX_ATTEMPTS", "").strip()
    if attempts.isdigit() and int(attempts) > 0:
        config.extraction.max_attempts_per_model = int(attempts)

    policy = os.environ.get("MANUSCRIPT_RECOVERY_POLICY", "").strip().lower()
    if policy:
        try:
            config.extraction.recovery_policy = RecoveryPolicy(policy)
        except ValueError:
            logger.warning(f"Unknown recovery policy '{policy}', keeping {config.extraction.recovery_policy.value}")

    if os.environ.get("MANUSCRIPT_DEBUG", "").lower() == "true":
        config.debug_mode = True

    return config


# ============================================================================
# JSON Schema Version
# ============================================================================

JSON_SCHEMA_VERSION = "1.0"

"""
Manuscript Reconstruction Pipeline
==================================

Turns an uploaded manuscript (DOCX, PDF, HTML or text) into a journal-styled
article for the Journal of Biomedical Sciences and Health.

Main components:
- Text extraction with embedded-figure harvesting and OCR fallback
- Resilient multi-model Gemini segmentation with JSON repair
- Structured manuscript model and editing store
- Content classification and figure placement
- Integrity validation against the source text
- HTML, PDF, DOCX and Letter of Acceptance export
"""

__version__ = "1.0.0"
__author__ = "Manuscript Reconstruction Team"

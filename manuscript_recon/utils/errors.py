"""Exceptions for the manuscript reconstruction pipeline."""

from typing import List, Optional


RETRYABLE_MARKERS = (
    "429",
    "RESOURCE_EXHAUSTED",
    "503",
    "UNAVAILABLE",
    "overloaded",
    "rate limit",
    "quota",
)

MANUAL_MODE_GUIDANCE = (
    "The manuscript could not be processed by the AI service. "
    "Try reducing the input size (for example, split the manuscript in half), "
    "or switch to Manual Mode to lay it out without AI."
)


def is_retryable_message(message: Optional[str]) -> bool:
    """True when an error message carries a rate-limit or overload signal."""
    if not message:
        return False
    lowered = message.lower()
    return any(marker.lower() in lowered for marker in RETRYABLE_MARKERS)


class ManuscriptReconError(Exception):
    """Base exception for all manuscript reconstruction errors."""
    pass


# Input

class ExtractorError(ManuscriptReconError):
    """Uploaded file is unsupported or unreadable."""
    def __init__(self, path: str, message: str, file_format: Optional[str] = None):
        self.path = path
        self.file_format = file_format
        super().__init__(f"{path}: {message}")


# Generative backend

class BackendError(ManuscriptReconError):
    """A single failed call to the generative backend."""
    def __init__(
        self,
        model: str,
        message: str,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None
    ):
        self.model = model
        self.message = message
        self.status_code = status_code
        if retryable is None:
            retryable = status_code in (429, 503) or is_retryable_message(message)
        self.retryable = retryable
        prefix = f"{model} error ({status_code})" if status_code else f"{model} error"
        super().__init__(f"{prefix}: {message}")


class ResponseFormatError(ManuscriptReconError):
    """Backend text could not be turned into a usable manuscript object."""
    pass


class ExtractionFailedError(ManuscriptReconError):
    """Every candidate model was exhausted without a usable result."""
    def __init__(self, last_error: Optional[str], attempts: Optional[List] = None):
        self.last_error = last_error
        self.attempts = attempts or []
        self.guidance = MANUAL_MODE_GUIDANCE
        detail = last_error or "AI processing failed"
        super().__init__(f"{detail}. {MANUAL_MODE_GUIDANCE}")


# Output

class ExportError(ManuscriptReconError):
    """A document writer could not produce its output."""
    pass

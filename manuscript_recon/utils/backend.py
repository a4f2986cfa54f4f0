"""
Generative backend clients.

Provides:
- GenerativeBackend interface used by the extraction client
- GeminiBackend built on google-generativeai
- Error translation into BackendError with a retryable flag
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import BackendError, is_retryable_message

logger = logging.getLogger(__name__)


# ============================================================================
# Interface
# ============================================================================

@dataclass
class BackendResponse:
    """Raw text returned by one backend call."""
    text: str
    finish_reason: Optional[str] = None


class GenerativeBackend(ABC):
    """Abstract generative text-to-structure service."""

    @abstractmethod
    async def generate(
        self,
        model: str,
        prompt: str,
        schema: Dict[str, Any],
        temperature: float,
        max_output_tokens: Optional[int] = None
    ) -> BackendResponse:
        """
        Run one generation call.

        Raises:
            BackendError: On any failure; ``retryable`` marks overload and
                rate-limit conditions
        """
        raise NotImplementedError


# ============================================================================
# Gemini
# ============================================================================

class GeminiBackend(GenerativeBackend):
    """Google Gemini via the google-generativeai SDK."""

    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key
        self._genai = None
        self._models: Dict[str, Any] = {}

    def _ensure_initialized(self, model: str):
        """Lazy initialization of the Gemini client."""
        if self._genai is not None:
            return

        if not self.api_key:
            raise BackendError(
                model,
                "No API key configured. Set GEMINI_API_KEY or GOOGLE_API_KEY.",
                retryable=False
            )

        try:
            import google.generativeai as genai
        except ImportError as e:
            raise BackendError(
                model,
                "google-generativeai is required for AI extraction. "
                "Install with: pip install google-generativeai",
                retryable=False
            ) from e

        genai.configure(api_key=self.api_key)
        self._genai = genai
        logger.info("Gemini client initialized")

    def _get_model(self, model: str):
        if model not in self._models:
            self._models[model] = self._genai.GenerativeModel(model)
        return self._models[model]

    async def generate(
        self,
        model: str,
        prompt: str,
        schema: Dict[str, Any],
        temperature: float,
        max_output_tokens: Optional[int] = None
    ) -> BackendResponse:
        self._ensure_initialized(model)

        generation_config = self._genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=schema,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

        logger.debug(f"Gemini request: model={model} prompt_chars={len(prompt)}")

        try:
            response = await asyncio.to_thread(
                self._get_model(model).generate_content,
                prompt,
                generation_config=generation_config
            )
        except Exception as e:
            raise translate_error(model, e) from e

        finish_reason = None
        if response.candidates:
            reason = getattr(response.candidates[0], "finish_reason", None)
            finish_reason = getattr(reason, "name", None) or (str(reason) if reason else None)
            if finish_reason == "MAX_TOKENS":
                logger.warning(f"{model} hit the output token limit; response is truncated")

        # .text raises when the response was blocked or has no parts
        try:
            text = response.text or ""
        except ValueError as e:
            logger.warning(f"{model} returned no usable text: {e}")
            text = ""

        return BackendResponse(text=text, finish_reason=finish_reason)


def translate_error(model: str, error: Exception) -> BackendError:
    """Map SDK and transport exceptions onto BackendError."""
    from google.api_core import exceptions as google_exceptions

    status_code = getattr(error, "code", None)
    if not isinstance(status_code, int):
        status_code = None

    if isinstance(error, (
        google_exceptions.ResourceExhausted,
        google_exceptions.TooManyRequests,
        google_exceptions.ServiceUnavailable,
    )):
        return BackendError(model, str(error), status_code=status_code, retryable=True)

    if isinstance(error, (
        google_exceptions.PermissionDenied,
        google_exceptions.Unauthenticated,
        google_exceptions.InvalidArgument,
        google_exceptions.NotFound,
    )):
        return BackendError(model, str(error), status_code=status_code, retryable=False)

    return BackendError(
        model,
        str(error) or type(error).__name__,
        status_code=status_code,
        retryable=is_retryable_message(str(error))
    )

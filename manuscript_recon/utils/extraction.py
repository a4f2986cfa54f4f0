"""
Resilient extraction client.

Provides:
- Ordered multi-model extraction with per-model retry and linear backoff
- Structural repair of truncated JSON before a model is abandoned
- Attempt history for diagnostics
- Aggregated failure with actionable guidance once every model is exhausted

Control flow is an explicit state machine:

    SELECTING_MODEL -> ATTEMPTING | EXHAUSTED
    ATTEMPTING -> SUCCESS | RETRYABLE_FAILURE | FATAL_FAILURE
    RETRYABLE_FAILURE -> ATTEMPTING (after backoff) | SELECTING_MODEL
    FATAL_FAILURE -> SELECTING_MODEL

Models and attempts are tried strictly in order, one call in flight at a time.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from ..config import ExtractionConfig, JournalConfig
from .backend import GenerativeBackend
from .errors import BackendError, ExtractionFailedError, ResponseFormatError
from .json_repair import parse_json_object
from .manuscript import (
    ManuscriptDocument,
    RawExtractionResult,
    normalize_extraction,
)
from .prompts import ExtractionPrompt, build_extraction_prompt

logger = logging.getLogger(__name__)


# ============================================================================
# States and Records
# ============================================================================

class ExtractionState(Enum):
    """States of the extraction state machine."""
    SELECTING_MODEL = "selecting_model"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"
    EXHAUSTED = "exhausted"


class AttemptOutcome(Enum):
    """Outcome of a single backend call."""
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"


TRANSITIONS: Dict[ExtractionState, Set[ExtractionState]] = {
    ExtractionState.SELECTING_MODEL: {ExtractionState.ATTEMPTING, ExtractionState.EXHAUSTED},
    ExtractionState.ATTEMPTING: {
        ExtractionState.SUCCESS,
        ExtractionState.RETRYABLE_FAILURE,
        ExtractionState.FATAL_FAILURE,
    },
    ExtractionState.RETRYABLE_FAILURE: {ExtractionState.ATTEMPTING, ExtractionState.SELECTING_MODEL},
    ExtractionState.FATAL_FAILURE: {ExtractionState.SELECTING_MODEL},
    ExtractionState.SUCCESS: set(),
    ExtractionState.EXHAUSTED: set(),
}

_OUTCOME_STATES = {
    AttemptOutcome.SUCCESS: ExtractionState.SUCCESS,
    AttemptOutcome.RETRYABLE_FAILURE: ExtractionState.RETRYABLE_FAILURE,
    AttemptOutcome.FATAL_FAILURE: ExtractionState.FATAL_FAILURE,
}


@dataclass
class ExtractionAttempt:
    """One backend call. Transient; kept only for diagnostics."""
    model_identifier: str
    attempt_number: int
    raw_response_text: str = ""
    outcome: Optional[AttemptOutcome] = None
    error: Optional[str] = None
    repaired: bool = False
    recovered: bool = False

    def to_dict(self) -> Dict:
        return {
            "model": self.model_identifier,
            "attempt": self.attempt_number,
            "outcome": self.outcome.value if self.outcome else None,
            "error": self.error,
            "repaired": self.repaired,
            "recovered": self.recovered,
            "response_chars": len(self.raw_response_text),
        }


@dataclass
class ExtractionResult:
    """Successful extraction plus the path taken to get there."""
    document: ManuscriptDocument
    model: str
    attempts: List[ExtractionAttempt] = field(default_factory=list)

    @property
    def recovered(self) -> bool:
        """True when the accepted response needed repair or placeholders."""
        return bool(self.attempts) and self.attempts[-1].recovered


# ============================================================================
# Client
# ============================================================================

SleepFunc = Callable[[float], Awaitable[None]]


class ResilientExtractionClient:
    """Segment raw manuscript text into a ManuscriptDocument via the backend."""

    def __init__(
        self,
        backend: GenerativeBackend,
        config: Optional[ExtractionConfig] = None,
        journal: Optional[JournalConfig] = None,
        sleep: SleepFunc = asyncio.sleep
    ):
        self.backend = backend
        self.config = config or ExtractionConfig()
        self.journal = journal or JournalConfig()
        self._sleep = sleep

        if not self.config.candidate_models:
            raise ValueError("At least one candidate model is required")
        if self.config.max_attempts_per_model < 1:
            raise ValueError("max_attempts_per_model must be >= 1")

    def backoff_delay(self, attempt_number: int) -> float:
        """Delay before retrying after the given failed attempt."""
        return self.config.backoff_base_seconds * attempt_number

    @staticmethod
    def _transition(current: ExtractionState, target: ExtractionState) -> ExtractionState:
        if target not in TRANSITIONS[current]:
            raise RuntimeError(f"Illegal extraction transition {current.value} -> {target.value}")
        logger.debug(f"Extraction state: {current.value} -> {target.value}")
        return target

    def build_request(
        self,
        raw_text: str,
        figures: Sequence = (),
        article_type: Optional[str] = None
    ) -> ExtractionPrompt:
        limit = self.config.max_input_chars
        if limit and len(raw_text) > limit:
            logger.warning(
                f"Input is {len(raw_text)} chars; only the first {limit} are sent for extraction"
            )
            raw_text = raw_text[:limit]

        return build_extraction_prompt(
            raw_text,
            figures,
            article_type or self.config.default_article_type,
            journal=self.journal.name,
        )

    async def extract(
        self,
        raw_text: str,
        figures: Sequence = (),
        article_type: Optional[str] = None
    ) -> ExtractionResult:
        """
        Extract a structured manuscript, falling back across candidate models.

        Args:
            raw_text: Manuscript text from the extractor or a paste
            figures: Figure manifest, used for inline figure references
            article_type: Article type hint

        Returns:
            ExtractionResult from the first model that succeeds

        Raises:
            ExtractionFailedError: When every model and attempt has failed
        """
        request = self.build_request(raw_text, figures, article_type)
        models = iter(self.config.candidate_models)

        state = ExtractionState.SELECTING_MODEL
        model: Optional[str] = None
        attempt_number = 0
        attempts: List[ExtractionAttempt] = []
        last_error: Optional[str] = None
        document: Optional[ManuscriptDocument] = None

        while True:
            if state == ExtractionState.SELECTING_MODEL:
                model = next(models, None)
                if model is None:
                    state = self._transition(state, ExtractionState.EXHAUSTED)
                else:
                    logger.info(f"Attempting extraction with model: {model}")
                    attempt_number = 1
                    state = self._transition(state, ExtractionState.ATTEMPTING)

            elif state == ExtractionState.ATTEMPTING:
                record, document = await self._attempt(model, attempt_number, request)
                attempts.append(record)
                if record.error:
                    last_error = record.error
                state = self._transition(state, _OUTCOME_STATES[record.outcome])

            elif state == ExtractionState.RETRYABLE_FAILURE:
                if attempt_number < self.config.max_attempts_per_model:
                    delay = self.backoff_delay(attempt_number)
                    logger.info(f"Retryable failure on {model}, waiting {delay:.1f}s before retry")
                    await self._sleep(delay)
                    attempt_number += 1
                    state = self._transition(state, ExtractionState.ATTEMPTING)
                else:
                    logger.warning(f"{model} exhausted {attempt_number} attempt(s), moving on")
                    state = self._transition(state, ExtractionState.SELECTING_MODEL)

            elif state == ExtractionState.FATAL_FAILURE:
                logger.warning(f"Abandoning {model}: {last_error}")
                state = self._transition(state, ExtractionState.SELECTING_MODEL)

            elif state == ExtractionState.SUCCESS:
                logger.info(
                    f"Extraction succeeded with {model} on attempt {attempt_number}"
                    + (" (recovered)" if attempts[-1].recovered else "")
                )
                return ExtractionResult(document=document, model=model, attempts=attempts)

            elif state == ExtractionState.EXHAUSTED:
                logger.error(f"All candidate models exhausted after {len(attempts)} attempt(s)")
                raise ExtractionFailedError(last_error, attempts)

    async def _attempt(
        self,
        model: str,
        attempt_number: int,
        request: ExtractionPrompt
    ) -> Tuple[ExtractionAttempt, Optional[ManuscriptDocument]]:
        """Run one backend call and classify its outcome."""
        record = ExtractionAttempt(model_identifier=model, attempt_number=attempt_number)
        logger.info(f"{model}: attempt {attempt_number}/{self.config.max_attempts_per_model}")

        try:
            response = await self.backend.generate(
                model,
                request.prompt,
                request.schema,
                self.config.temperature,
                self.config.max_output_tokens,
            )
        except BackendError as e:
            record.error = str(e)
            record.outcome = (
                AttemptOutcome.RETRYABLE_FAILURE if e.retryable else AttemptOutcome.FATAL_FAILURE
            )
            logger.warning(f"{model} attempt {attempt_number} failed ({record.outcome.value}): {e}")
            return record, None

        record.raw_response_text = response.text or ""
        if not record.raw_response_text.strip():
            record.error = f"Empty response from {model}"
            record.outcome = AttemptOutcome.RETRYABLE_FAILURE
            logger.warning(record.error)
            return record, None

        try:
            value, record.repaired = parse_json_object(record.raw_response_text)
        except json.JSONDecodeError as e:
            record.error = f"Response from {model} is not valid JSON even after repair: {e.msg}"
            record.outcome = AttemptOutcome.FATAL_FAILURE
            logger.error(record.error)
            return record, None

        try:
            raw = RawExtractionResult.from_json(value)
            document = normalize_extraction(raw, self.config.recovery_policy)
        except ResponseFormatError as e:
            record.error = f"Unusable response from {model}: {e}"
            record.outcome = AttemptOutcome.FATAL_FAILURE
            logger.error(record.error)
            return record, None

        record.recovered = record.repaired or bool(raw.missing_fields())
        record.outcome = AttemptOutcome.SUCCESS
        return record, document

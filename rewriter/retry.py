"""Retry controller: generate, parse, validate, and retry with tighter prompts.

Per request the controller moves through
PLANNED -> GENERATED -> VALIDATING -> PASSED | RETRYING | EXHAUSTED.
Only the prompt and temperature change between attempts; the ledger and
plan are never touched.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from .exceptions import GenerationError, GenerationUnavailableError, ResponseParseError
from .parser import ParsedResponse, parse_with_fallback
from .prompts import PromptPair, add_strict_constraints_to_prompt, build_retry_prompt
from .temperature import get_temperature_for_attempt
from .types import (
    Confidence,
    ContentType,
    EvidenceLedger,
    EvidenceMapItem,
    ValidationResult,
)
from .validator import get_critical_errors, validate_rewrite

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2
MAX_SCORE_GAIN = 10

SCORE_WEIGHTS = {
    "stronger_verb": 2,
    "added_metric": 2,
    "more_specific": 2,
    "removed_fluff": 1,
    "tailored_to_role": 1,
}

GenerateFn = Callable[[PromptPair, float], str]
ValidateFn = Callable[[str, str, EvidenceLedger, Iterable[EvidenceMapItem]], ValidationResult]


class RewriteState(str, Enum):
    PLANNED = "planned"
    GENERATED = "generated"
    VALIDATING = "validating"
    PASSED = "passed"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class AttemptRecord:
    """What happened on one attempt."""

    attempt: int
    temperature: float
    passed: bool = False
    critical_codes: tuple[str, ...] = ()
    error: str | None = None


@dataclass
class RetryOutcome:
    state: RewriteState
    parsed: ParsedResponse
    validation: ValidationResult
    attempts: int
    history: list[AttemptRecord] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.state == RewriteState.PASSED

    @property
    def retried(self) -> bool:
        return self.attempts > 1


class RetryController:
    """Runs the bounded attempt loop for one rewrite request.

    Args:
        generate: Callable taking a prompt and a temperature and returning
            raw backend text. Raises GenerationError on backend failure.
        content_type: Selects the temperature schedule.
        max_retries: Attempts allowed after the first one.
        validate: Validation function; defaults to ``validate_rewrite``.
    """

    def __init__(
        self,
        generate: GenerateFn,
        content_type: ContentType | str = ContentType.BULLET,
        max_retries: int = DEFAULT_MAX_RETRIES,
        validate: ValidateFn | None = None,
    ):
        self.generate = generate
        self.content_type = ContentType(content_type)
        self.max_retries = max(0, max_retries)
        self.validate = validate or validate_rewrite

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def _transition(self, state: RewriteState, attempt: int) -> RewriteState:
        logger.debug("Rewrite attempt %d -> %s", attempt + 1, state.value)
        return state

    def run(self, original: str, ledger: EvidenceLedger, prompt: PromptPair) -> RetryOutcome:
        """Attempt the rewrite until it validates or the budget runs out.

        Returns:
            RetryOutcome in state PASSED, or EXHAUSTED carrying the last
            validated attempt with ``validation.passed`` False.

        Raises:
            GenerationUnavailableError: If no attempt produced parseable output.
        """
        self._transition(RewriteState.PLANNED, 0)
        history: list[AttemptRecord] = []
        current_prompt = prompt
        last: tuple[ParsedResponse, ValidationResult] | None = None
        last_error: GenerationError | None = None

        for attempt in range(self.max_attempts):
            temperature = get_temperature_for_attempt(self.content_type, attempt)
            try:
                raw = self.generate(current_prompt, temperature)
            except GenerationError as e:
                logger.warning("Generation attempt %d failed: %s", attempt + 1, e.message)
                last_error = e
                history.append(AttemptRecord(attempt, temperature, error=e.code))
                continue
            self._transition(RewriteState.GENERATED, attempt)

            parsed = parse_with_fallback(raw)
            if parsed is None:
                last_error = ResponseParseError(raw)
                logger.warning("Attempt %d returned unparseable output", attempt + 1)
                history.append(AttemptRecord(attempt, temperature, error=last_error.code))
                current_prompt = add_strict_constraints_to_prompt(prompt)
                continue

            self._transition(RewriteState.VALIDATING, attempt)
            validation = self.validate(original, parsed.improved, ledger, parsed.evidence_map)
            last = (parsed, validation)

            if validation.passed:
                history.append(AttemptRecord(attempt, temperature, passed=True))
                self._transition(RewriteState.PASSED, attempt)
                return RetryOutcome(
                    state=RewriteState.PASSED,
                    parsed=parsed,
                    validation=validation,
                    attempts=attempt + 1,
                    history=history,
                )

            critical = get_critical_errors(validation)
            codes = tuple(item.code.value for item in critical)
            history.append(AttemptRecord(attempt, temperature, critical_codes=codes))
            logger.info("Attempt %d rejected: %s", attempt + 1, ", ".join(codes))

            if attempt + 1 < self.max_attempts:
                self._transition(RewriteState.RETRYING, attempt)
                current_prompt = add_strict_constraints_to_prompt(
                    build_retry_prompt(original, ledger, critical, prompt)
                )

        if last is None:
            raise GenerationUnavailableError(self.max_attempts, last_error)

        self._transition(RewriteState.EXHAUSTED, self.max_attempts - 1)
        parsed, validation = last
        return RetryOutcome(
            state=RewriteState.EXHAUSTED,
            parsed=parsed,
            validation=validation,
            attempts=self.max_attempts,
            history=history,
        )


def determine_confidence(outcome: RetryOutcome) -> Confidence:
    if not outcome.passed:
        return Confidence.LOW
    if outcome.retried or outcome.validation.items:
        return Confidence.MEDIUM
    return Confidence.HIGH


def calculate_score_gain(changes: dict[str, bool], outcome: RetryOutcome) -> int:
    """Rough 0-10 estimate of how much the rewrite improved the text."""
    if not outcome.passed:
        return 0
    gain = sum(weight for flag, weight in SCORE_WEIGHTS.items() if changes.get(flag))
    if outcome.retried:
        gain -= 1
    return max(0, min(gain, MAX_SCORE_GAIN))

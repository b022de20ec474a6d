"""Typed exception hierarchy for the rewrite engine.

Engine code raises these instead of returning error strings.
Callers (service, CLI, API) catch them and present them by ``code``.
"""


class RewriteEngineError(Exception):
    """Base exception for all rewrite engine errors."""

    code = "INTERNAL_ERROR"
    recoverable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
        }


class InvalidInputError(RewriteEngineError):
    """Raised when request text is empty, oversized, or otherwise unusable."""

    code = "INVALID_INPUT"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, {"field": field})
        self.field = field


class EvidenceBuildError(RewriteEngineError):
    """Raised when externally supplied entities cannot be turned into evidence."""

    code = "EVIDENCE_BUILD_ERROR"

    def __init__(self, message: str, category: str | None = None):
        super().__init__(message, {"category": category})
        self.category = category


class PlanningError(RewriteEngineError):
    """Raised when a plan would violate a construction invariant."""

    def __init__(self, message: str, action_type: str | None = None):
        super().__init__(message, {"action_type": action_type})
        self.action_type = action_type


class GenerationError(RewriteEngineError):
    """Raised when the generation backend fails or is unreachable."""

    code = "LLM_ERROR"
    recoverable = True

    def __init__(self, reason: str, details: dict | None = None):
        super().__init__(f"Generation failed: {reason}", details)
        self.reason = reason


class GenerationTimeoutError(GenerationError):
    """Raised when the generation backend exceeds its bounded wait."""

    code = "TIMEOUT"

    def __init__(self, timeout: float | None = None):
        reason = f"timed out after {timeout}s" if timeout else "timed out"
        super().__init__(reason, {"timeout": timeout})
        self.timeout = timeout


class ResponseParseError(GenerationError):
    """Raised when backend output contains no usable rewrite."""

    def __init__(self, raw_output: str):
        super().__init__("response could not be parsed", {"preview": raw_output[:200]})
        self.raw_output = raw_output


class GenerationUnavailableError(RewriteEngineError):
    """Raised when every attempt in the budget failed at the backend."""

    recoverable = False

    def __init__(self, attempts: int, last_error: GenerationError):
        super().__init__(
            f"Generation service unavailable after {attempts} attempt(s): {last_error.reason}",
            {"attempts": attempts, "last_error": last_error.to_dict()},
        )
        self.code = last_error.code
        self.attempts = attempts
        self.last_error = last_error


class FabricationError(RewriteEngineError):
    """Raised when validation finds ungrounded content in a rewrite."""

    code = "FABRICATION_ERROR"
    recoverable = True

    def __init__(self, items: list):
        codes = sorted({item.code.value for item in items})
        super().__init__(
            f"Rewrite contains ungrounded content: {', '.join(codes)}",
            {"codes": codes},
        )
        self.items = items


class MaxRetriesExceededError(RewriteEngineError):
    """Terminal state of a request whose attempts all failed validation.

    Not raised by the retry controller; exhausted results carry its ``code``
    so callers can tell a flagged rewrite apart from a clean one.
    """

    code = "MAX_RETRIES_EXCEEDED"

    def __init__(self, attempts: int):
        super().__init__(
            f"Rewrite still failed validation after {attempts} attempt(s)",
            {"attempts": attempts},
        )
        self.attempts = attempts


class InternalEngineError(RewriteEngineError):
    """Raised for logic defects that must never be swallowed."""

"""Anchor rewrite engine - evidence-anchored rewriting of resume content.

Pure, synchronous building blocks: evidence ledgers, micro-action plans,
prompts, response parsing, fabrication validation, retries and coherence.
The only I/O boundary is the ``generate`` callable given to RetryController.
"""

from .coherence import (
    apply_full_formatting,
    apply_full_formatting_to_all,
    detect_bullet_tense,
    detect_dominant_tense,
    make_ats_safe,
    unify_formatting,
    unify_to_dominant,
)
from .evidence import (
    build_evidence_ledger,
    build_section_evidence_ledger,
    build_summary_evidence_ledger,
)
from .exceptions import (
    EvidenceBuildError,
    FabricationError,
    GenerationError,
    GenerationTimeoutError,
    GenerationUnavailableError,
    InternalEngineError,
    InvalidInputError,
    MaxRetriesExceededError,
    PlanningError,
    ResponseParseError,
    RewriteEngineError,
)
from .lexicon import Lexicon, clear_lexicon_cache, load_lexicon
from .parser import extract_improved_text_fallback, parse_llm_response
from .planner import can_improve, plan_micro_actions
from .prompts import (
    PromptPair,
    build_bullet_rewrite_prompt,
    build_retry_prompt,
    build_section_rewrite_prompt,
    build_summary_rewrite_prompt,
)
from .retry import RetryController, RetryOutcome, RewriteState
from .temperature import get_temperature_for_attempt
from .types import (
    ActionType,
    Confidence,
    ContentType,
    EvidenceItem,
    EvidenceLedger,
    EvidenceMapItem,
    EvidenceScope,
    EvidenceType,
    MicroAction,
    RewritePlan,
    Severity,
    Tense,
    ValidationCode,
    ValidationItem,
    ValidationResult,
)
from .validator import (
    get_critical_errors,
    get_warnings,
    has_fabrication_errors,
    validate_evidence_map,
    validate_rewrite,
)

__all__ = [
    # Types
    "ActionType",
    "Confidence",
    "ContentType",
    "EvidenceItem",
    "EvidenceLedger",
    "EvidenceMapItem",
    "EvidenceScope",
    "EvidenceType",
    "MicroAction",
    "RewritePlan",
    "Severity",
    "Tense",
    "ValidationCode",
    "ValidationItem",
    "ValidationResult",
    # Lexicon
    "Lexicon",
    "load_lexicon",
    "clear_lexicon_cache",
    # Evidence
    "build_evidence_ledger",
    "build_section_evidence_ledger",
    "build_summary_evidence_ledger",
    # Planning
    "plan_micro_actions",
    "can_improve",
    # Prompts
    "PromptPair",
    "build_bullet_rewrite_prompt",
    "build_summary_rewrite_prompt",
    "build_section_rewrite_prompt",
    "build_retry_prompt",
    "get_temperature_for_attempt",
    # Parsing
    "parse_llm_response",
    "extract_improved_text_fallback",
    # Validation
    "validate_rewrite",
    "validate_evidence_map",
    "get_critical_errors",
    "get_warnings",
    "has_fabrication_errors",
    # Retry
    "RetryController",
    "RetryOutcome",
    "RewriteState",
    # Coherence
    "detect_bullet_tense",
    "detect_dominant_tense",
    "unify_to_dominant",
    "unify_formatting",
    "apply_full_formatting",
    "apply_full_formatting_to_all",
    "make_ats_safe",
    # Exceptions
    "RewriteEngineError",
    "InvalidInputError",
    "EvidenceBuildError",
    "PlanningError",
    "GenerationError",
    "GenerationTimeoutError",
    "GenerationUnavailableError",
    "ResponseParseError",
    "FabricationError",
    "MaxRetriesExceededError",
    "InternalEngineError",
]

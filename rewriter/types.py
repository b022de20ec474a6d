"""Core data structures shared across the rewrite engine.

Evidence, plans and validation results are frozen dataclasses: they are
built once per request and never mutated afterwards.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import EvidenceBuildError, PlanningError


# =============================================================================
# Enums
# =============================================================================


class ContentType(str, Enum):
    """Kinds of resume content the engine rewrites."""

    BULLET = "bullet"
    SUMMARY = "summary"
    SECTION = "section"


class EvidenceType(str, Enum):
    """Origin of an evidence item."""

    BULLET = "bullet"
    SECTION = "section"
    SKILLS = "skills"
    TOOLS = "tools"
    TITLES = "titles"
    INDUSTRIES = "industries"


class EvidenceScope(str, Enum):
    """How far beyond the original text a ledger may reach."""

    BULLET_ONLY = "bullet_only"
    SECTION = "section"
    RESUME = "resume"


class ActionType(str, Enum):
    """Atomic planned transformations."""

    VERB_UPGRADE = "verb_upgrade"
    FLUFF_REMOVAL = "fluff_removal"
    METRIC_SURFACING = "metric_surfacing"
    TOOL_SURFACING = "tool_surfacing"
    SPECIFICITY_INCREASE = "specificity_increase"
    ROLE_TAILORING = "role_tailoring"


SURFACING_ACTIONS = frozenset({ActionType.METRIC_SURFACING, ActionType.TOOL_SURFACING})


class RewriteGoal(str, Enum):
    """Primary aim of a plan."""

    IMPACT = "impact"
    CLARITY = "clarity"
    ATS = "ats"
    CONCISENESS = "conciseness"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


class ValidationCode(str, Enum):
    """Stable codes for validation findings."""

    # Fabrication
    NEW_NUMBER_ADDED = "NEW_NUMBER_ADDED"
    NEW_TOOL_ADDED = "NEW_TOOL_ADDED"
    NEW_COMPANY_ADDED = "NEW_COMPANY_ADDED"
    UNSUPPORTED_SCALE_CLAIM = "UNSUPPORTED_SCALE_CLAIM"
    UNSUPPORTED_TOOL_CLAIM = "UNSUPPORTED_TOOL_CLAIM"
    UNSUPPORTED_METRIC_CLAIM = "UNSUPPORTED_METRIC_CLAIM"
    # Evidence map integrity
    INVALID_EVIDENCE_ID = "INVALID_EVIDENCE_ID"
    SPAN_NOT_FOUND = "SPAN_NOT_FOUND"
    UNMAPPED_REWRITE = "UNMAPPED_REWRITE"
    # Diagnostics
    WEAK_EVIDENCE_MATCH = "WEAK_EVIDENCE_MATCH"
    LOW_OVERLAP = "LOW_OVERLAP"
    LENGTH_EXPLOSION = "LENGTH_EXPLOSION"
    WEAK_VERB = "WEAK_VERB"


FABRICATION_CODES = frozenset({
    ValidationCode.NEW_NUMBER_ADDED,
    ValidationCode.NEW_TOOL_ADDED,
    ValidationCode.NEW_COMPANY_ADDED,
    ValidationCode.UNSUPPORTED_SCALE_CLAIM,
    ValidationCode.UNSUPPORTED_TOOL_CLAIM,
    ValidationCode.UNSUPPORTED_METRIC_CLAIM,
})


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Tense(str, Enum):
    PAST = "past"
    PRESENT = "present"


# =============================================================================
# Evidence
# =============================================================================


@dataclass(frozen=True)
class EvidenceItem:
    """An atomic fact that can ground a claim in generated text."""

    id: str
    type: EvidenceType
    text: str
    normalized_terms: frozenset[str] = frozenset()


@dataclass(frozen=True)
class EvidenceLedger:
    """The closed set of evidence available to one rewrite request."""

    items: tuple[EvidenceItem, ...]
    scope: EvidenceScope = EvidenceScope.SECTION
    allow_resume_enrichment: bool = True

    def __post_init__(self):
        seen = set()
        for item in self.items:
            if item.id in seen:
                raise EvidenceBuildError(f"Duplicate evidence id: {item.id}")
            seen.add(item.id)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(item.id for item in self.items)

    def get(self, evidence_id: str) -> EvidenceItem | None:
        for item in self.items:
            if item.id == evidence_id:
                return item
        return None


@dataclass(frozen=True)
class EvidenceMapItem:
    """Asserts that a span of the improved text is backed by evidence."""

    improved_span: str
    evidence_ids: tuple[str, ...] = ()


# =============================================================================
# Planning
# =============================================================================


@dataclass(frozen=True)
class MicroAction:
    """One planned transformation.

    Surfacing actions must cite evidence; constructing one without
    ``evidence_ids`` raises ``PlanningError``.
    """

    type: ActionType
    data: dict[str, Any] = field(default_factory=dict, hash=False)
    evidence_ids: tuple[str, ...] = ()

    def __post_init__(self):
        if self.type in SURFACING_ACTIONS and not self.evidence_ids:
            raise PlanningError(
                f"{self.type.value} action requires evidence ids",
                action_type=self.type.value,
            )


@dataclass(frozen=True)
class RewriteConstraints:
    """Hard limits rendered into the prompt.

    Numbers and company names are open classes, so they are expressed as
    allow-sets: anything outside them is forbidden. Tools are also
    materialized as an explicit forbidden set against the known catalog.
    """

    max_length: int
    allowed_numbers: frozenset[str] = frozenset()
    allowed_tools: frozenset[str] = frozenset()
    allowed_companies: frozenset[str] = frozenset()
    forbidden_tools: frozenset[str] = frozenset()

    def forbids_tool(self, tool: str) -> bool:
        return tool.lower() not in self.allowed_tools

    def forbids_company(self, company: str) -> bool:
        return company.lower() not in self.allowed_companies


@dataclass(frozen=True)
class RewritePlan:
    transformations: tuple[MicroAction, ...]
    constraints: RewriteConstraints
    goal: RewriteGoal = RewriteGoal.IMPACT
    issues: tuple[str, ...] = ()
    needs_user_input: tuple[str, ...] = ()

    def has_action(self, action_type: ActionType) -> bool:
        return any(action.type == action_type for action in self.transformations)

    @property
    def action_types(self) -> list[ActionType]:
        return [action.type for action in self.transformations]


# =============================================================================
# Validation
# =============================================================================


@dataclass(frozen=True)
class ValidationItem:
    code: ValidationCode
    severity: Severity
    message: str
    span: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one rewrite attempt.

    ``passed`` is derived from the items: true iff none is critical.
    """

    items: tuple[ValidationItem, ...] = ()

    @property
    def passed(self) -> bool:
        return not any(item.severity == Severity.CRITICAL for item in self.items)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "items": [
                {
                    "code": item.code.value,
                    "severity": item.severity.value,
                    "message": item.message,
                    "span": item.span,
                }
                for item in self.items
            ],
        }

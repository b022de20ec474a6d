"""Pydantic models for the rewrite service.

Request and response models shared by CLI and API layers.
Services return these models; callers handle presentation.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from rewriter.types import (
    Confidence,
    ContentType,
    EvidenceScope,
    RewritePlan,
    Severity,
    ValidationResult,
)


# =============================================================================
# Enums
# =============================================================================


class RewriteStatus(str, Enum):
    """Terminal outcomes of a rewrite request."""

    PASSED = "passed"
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"


# =============================================================================
# Request Models
# =============================================================================


class ExtractedEntities(BaseModel):
    """Entities extracted from the full resume upstream."""

    skills: list[str] = Field(default_factory=list, description="Skills named on the resume")
    tools: list[str] = Field(default_factory=list, description="Tools and technologies")
    titles: list[str] = Field(default_factory=list, description="Job titles held")
    industries: list[str] = Field(default_factory=list, description="Industries worked in")


class Layer1Signals(BaseModel):
    """Upstream resume analysis passed through to the rewriter."""

    extracted: ExtractedEntities = Field(default_factory=ExtractedEntities)


class BulletContext(BaseModel):
    """Where a bullet sits on the resume."""

    section_type: str | None = Field(
        default=None, description="experience, summary, skills, headline or projects"
    )
    role: str | None = Field(default=None, description="Job title of the role the bullet belongs to")
    company: str | None = Field(default=None, description="Employer of that role")
    index: int | None = Field(default=None, description="Position of the bullet within its section")


class RewriteRequestBase(BaseModel):
    """Fields shared by every rewrite request."""

    target_role: str | None = Field(default=None, description="Role the resume is aimed at")
    evidence_scope: EvidenceScope | None = Field(
        default=None, description="How far evidence may reach; config default when omitted"
    )
    allow_resume_enrichment: bool | None = Field(
        default=None, description="Allow resume-level entities as evidence; config default when omitted"
    )
    layer1: Layer1Signals = Field(default_factory=Layer1Signals)


class BulletRewriteRequest(RewriteRequestBase):
    """Request to rewrite a single bullet."""

    type: Literal["bullet"] = "bullet"
    bullet: str = Field(description="Bullet text to rewrite")
    issues: list[str] = Field(default_factory=list, description="Issue tags such as weak_verb or no_metric")
    context: BulletContext | None = Field(default=None, description="Section and role context")
    section_bullets: list[str] = Field(
        default_factory=list, description="Other bullets from the same role"
    )


class SummaryRewriteRequest(RewriteRequestBase):
    """Request to rewrite a professional summary."""

    type: Literal["summary"] = "summary"
    summary: str = Field(description="Summary text to rewrite")
    experience_bullets: list[str] = Field(
        default_factory=list, description="Experience bullets the summary may condense"
    )


class SectionRewriteRequest(RewriteRequestBase):
    """Request to rewrite every bullet of one section."""

    type: Literal["section"] = "section"
    bullets: list[str] = Field(description="Bullets of the section, in order")
    section_title: str | None = Field(default=None, description="Section heading")
    role: str | None = Field(default=None, description="Job title for an experience section")
    company: str | None = Field(default=None, description="Employer for an experience section")


RewriteRequest = Annotated[
    Union[BulletRewriteRequest, SummaryRewriteRequest, SectionRewriteRequest],
    Field(discriminator="type"),
]

_rewrite_request_adapter = TypeAdapter(RewriteRequest)


def parse_rewrite_request(data: dict[str, Any]) -> BulletRewriteRequest | SummaryRewriteRequest | SectionRewriteRequest:
    """Validate a raw dict into the request model selected by its ``type``."""
    return _rewrite_request_adapter.validate_python(data)


class BatchRewriteRequest(BaseModel):
    """Request to rewrite several independent bullets concurrently."""

    bullets: list[str] = Field(description="Bullets to rewrite")
    target_role: str | None = Field(default=None)
    evidence_scope: EvidenceScope | None = Field(default=None)
    allow_resume_enrichment: bool | None = Field(default=None)
    layer1: Layer1Signals = Field(default_factory=Layer1Signals)
    max_concurrency: int | None = Field(default=None, ge=1, description="Worker limit")


class AnalyzeRequest(BaseModel):
    """Request for offline diagnostics and a rewrite plan."""

    text: str = Field(description="Bullet or summary text")
    content_type: ContentType = Field(default=ContentType.BULLET)
    issues: list[str] = Field(default_factory=list)
    target_role: str | None = Field(default=None)
    section_type: str | None = Field(default=None)
    section_bullets: list[str] = Field(default_factory=list)
    evidence_scope: EvidenceScope | None = Field(default=None)
    layer1: Layer1Signals = Field(default_factory=Layer1Signals)


class EvidenceMapEntry(BaseModel):
    """A span of the improved text and the evidence ids backing it."""

    improved_span: str
    evidence_ids: list[str] = Field(default_factory=list)


class ValidateRequest(BaseModel):
    """Request to validate a supplied rewrite without generating anything."""

    original: str
    improved: str
    evidence_map: list[EvidenceMapEntry] = Field(default_factory=list)
    section_bullets: list[str] = Field(default_factory=list)
    evidence_scope: EvidenceScope | None = Field(default=None)
    layer1: Layer1Signals = Field(default_factory=Layer1Signals)


# =============================================================================
# Response Models
# =============================================================================


class ValidationItemModel(BaseModel):
    code: str
    severity: Severity
    message: str
    span: str | None = None


class ValidationReport(BaseModel):
    """Validation outcome; ``passed`` is false whenever any item is critical."""

    passed: bool
    items: list[ValidationItemModel] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ValidationResult) -> ValidationReport:
        return cls(
            passed=result.passed,
            items=[
                ValidationItemModel(
                    code=item.code.value,
                    severity=item.severity,
                    message=item.message,
                    span=item.span,
                )
                for item in result.items
            ],
        )


class ChangeFlags(BaseModel):
    stronger_verb: bool = False
    added_metric: bool = False
    more_specific: bool = False
    removed_fluff: bool = False
    tailored_to_role: bool = False


class RewriteResult(BaseModel):
    """Result of rewriting one bullet or summary."""

    type: ContentType = ContentType.BULLET
    original: str
    improved: str
    evidence_map: list[EvidenceMapEntry] = Field(default_factory=list)
    validation: ValidationReport
    reasoning: str = ""
    changes: ChangeFlags = Field(default_factory=ChangeFlags)
    confidence: Confidence
    needs_user_input: list[str] = Field(default_factory=list)
    estimated_score_gain: int = Field(default=0, ge=0, le=10)
    attempts: int = 0
    status: RewriteStatus = RewriteStatus.PASSED
    error_code: str | None = None


class SectionValidationSummary(BaseModel):
    passed: bool
    total_critical: int = 0
    total_warnings: int = 0


class TenseReport(BaseModel):
    tense: str
    confidence: Confidence


class SectionRewriteResult(BaseModel):
    """Result of rewriting a whole section."""

    type: ContentType = ContentType.SECTION
    original_bullets: list[str]
    improved_bullets: list[str]
    per_bullet: list[RewriteResult]
    validation_summary: SectionValidationSummary
    tense: TenseReport
    section_notes: list[str] = Field(default_factory=list)
    estimated_aggregate_gain: int = 0
    confidence: Confidence


class ErrorDetail(BaseModel):
    code: str
    message: str
    recoverable: bool = False
    details: dict[str, Any] = Field(default_factory=dict)


class BatchRewriteItem(BaseModel):
    """One bullet's outcome in a batch; exactly one of result and error is set."""

    index: int
    result: RewriteResult | None = None
    error: ErrorDetail | None = None


class BatchRewriteResponse(BaseModel):
    results: list[BatchRewriteItem]


class PlannedAction(BaseModel):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    evidence_ids: list[str] = Field(default_factory=list)


class PlanSummary(BaseModel):
    goal: str
    transformations: list[PlannedAction] = Field(default_factory=list)
    needs_user_input: list[str] = Field(default_factory=list)
    max_length: int
    allowed_numbers: list[str] = Field(default_factory=list)
    allowed_tools: list[str] = Field(default_factory=list)

    @classmethod
    def from_plan(cls, plan: RewritePlan) -> PlanSummary:
        return cls(
            goal=plan.goal.value,
            transformations=[
                PlannedAction(
                    type=action.type.value,
                    data=dict(action.data),
                    evidence_ids=list(action.evidence_ids),
                )
                for action in plan.transformations
            ],
            needs_user_input=list(plan.needs_user_input),
            max_length=plan.constraints.max_length,
            allowed_numbers=sorted(plan.constraints.allowed_numbers),
            allowed_tools=sorted(plan.constraints.allowed_tools),
        )


class AnalyzeResponse(BaseModel):
    can_improve: bool
    diagnostics: dict[str, Any]
    plan: PlanSummary


class ValidateResponse(BaseModel):
    validation: ValidationReport
    has_fabrication_errors: bool
    evidence_ids: list[str] = Field(default_factory=list)

"""Rewrite service - evidence-anchored rewriting of bullets, summaries and sections.

Wires the rewrite engine to the Claude client: builds ledgers and plans,
runs the retry controller, and shapes results into Pydantic models.
"""

import functools
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from anthropic import APIError, APITimeoutError

from claude_client import EmptyResponseError
from rewriter.coherence import (
    apply_full_formatting_to_all,
    detect_dominant_tense,
    find_repeated_starts,
    get_inconsistent_bullets,
    has_varied_starts,
    is_too_long,
    is_too_short,
)
from rewriter.evidence import build_evidence_ledger, build_summary_evidence_ledger
from rewriter.exceptions import (
    GenerationError,
    GenerationTimeoutError,
    InternalEngineError,
    InvalidInputError,
    MaxRetriesExceededError,
    RewriteEngineError,
)
from rewriter.planner import analyze_text, can_improve, plan_micro_actions
from rewriter.prompts import (
    PromptPair,
    build_bullet_rewrite_prompt,
    build_section_rewrite_prompt,
    build_summary_rewrite_prompt,
    estimate_token_count,
)
from rewriter.retry import (
    RetryController,
    RetryOutcome,
    calculate_score_gain,
    determine_confidence,
)
from rewriter.types import (
    Confidence,
    ContentType,
    EvidenceLedger,
    EvidenceMapItem,
    EvidenceScope,
    RewritePlan,
    Severity,
)
from rewriter.validator import has_fabrication_errors, validate_rewrite

from .base_service import BaseService
from .models import (
    AnalyzeRequest,
    AnalyzeResponse,
    BatchRewriteItem,
    BulletRewriteRequest,
    ChangeFlags,
    ErrorDetail,
    EvidenceMapEntry,
    Layer1Signals,
    PlanSummary,
    RewriteResult,
    RewriteStatus,
    SectionRewriteRequest,
    SectionRewriteResult,
    SectionValidationSummary,
    SummaryRewriteRequest,
    TenseReport,
    ValidateRequest,
    ValidateResponse,
    ValidationReport,
)

logger = logging.getLogger(__name__)

# Room for the JSON envelope and evidence map around the rewritten text
MIN_RESPONSE_TOKENS = 400


class RewriteService(BaseService):
    """Service for evidence-anchored rewrites.

    Every generated text is validated against the request's evidence ledger
    before it is returned. Results that never pass validation come back
    flagged as exhausted, not as successes.
    """

    # =========================================================================
    # Dispatch
    # =========================================================================

    def rewrite(
        self,
        request: BulletRewriteRequest | SummaryRewriteRequest | SectionRewriteRequest,
    ) -> RewriteResult | SectionRewriteResult:
        """Rewrite any supported content, dispatching on ``request.type``."""
        if isinstance(request, BulletRewriteRequest):
            return self.rewrite_bullet(request)
        if isinstance(request, SummaryRewriteRequest):
            return self.rewrite_summary(request)
        if isinstance(request, SectionRewriteRequest):
            return self.rewrite_section(request)
        raise InternalEngineError(f"Unsupported rewrite request: {type(request).__name__}")

    # =========================================================================
    # Bullets
    # =========================================================================

    def rewrite_bullet(self, request: BulletRewriteRequest) -> RewriteResult:
        """Rewrite one bullet.

        Args:
            request: Bullet request with optional context and layer-1 entities.

        Returns:
            RewriteResult with status passed, exhausted or skipped.

        Raises:
            InvalidInputError: If the bullet is empty or too long.
            EvidenceBuildError: If the extracted entities are malformed.
            GenerationUnavailableError: If every attempt failed at the backend.
        """
        original = self._check_text(request.bullet, "bullet", self.thresholds["max_bullet_length"])
        ledger = build_evidence_ledger(
            original,
            extracted=self._extracted(request.layer1),
            section_bullets=request.section_bullets,
            scope=self._scope(request.evidence_scope),
            allow_resume_enrichment=self._allow_enrichment(request.allow_resume_enrichment),
        )
        plan = plan_micro_actions(
            original,
            ledger,
            issues=request.issues,
            target_role=request.target_role,
            section_type=request.context.section_type if request.context else None,
            content_type=ContentType.BULLET,
            max_length=self.thresholds["max_bullet_length"],
            lexicon=self.lexicon,
        )
        if not plan.transformations and not can_improve(original, self.lexicon):
            logger.debug("Bullet needs no rewrite: %s", original)
            return self._unchanged_result(ContentType.BULLET, original, plan)

        prompt = build_bullet_rewrite_prompt(original, ledger, plan, request.target_role)
        outcome = self._run(ContentType.BULLET, original, ledger, prompt)
        return self._to_result(ContentType.BULLET, original, plan, outcome)

    def rewrite_bullets_parallel(
        self,
        bullets: list[str],
        target_role: str | None = None,
        layer1: Layer1Signals | None = None,
        max_concurrency: int | None = None,
        evidence_scope: EvidenceScope | None = None,
        allow_resume_enrichment: bool | None = None,
    ) -> list[BatchRewriteItem]:
        """Rewrite independent bullets concurrently.

        Runs at most ``max_concurrency`` rewrites at once and waits for all of
        them. Results keep input order. An engine error in one bullet is
        recorded on that item and does not affect the others.
        """
        if not bullets:
            return []
        workers = max(1, min(max_concurrency or self.defaults["max_concurrency"], len(bullets)))
        requests = [
            BulletRewriteRequest(
                bullet=bullet,
                target_role=target_role,
                layer1=layer1 or Layer1Signals(),
                evidence_scope=evidence_scope,
                allow_resume_enrichment=allow_resume_enrichment,
            )
            for bullet in bullets
        ]

        items: list[BatchRewriteItem | None] = [None] * len(requests)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self.rewrite_bullet, request): index
                for index, request in enumerate(requests)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    items[index] = BatchRewriteItem(index=index, result=future.result())
                except RewriteEngineError as e:
                    logger.warning("Bullet %d failed: %s", index, e.message)
                    items[index] = BatchRewriteItem(index=index, error=ErrorDetail(**e.to_dict()))
        return items

    # =========================================================================
    # Summaries
    # =========================================================================

    def rewrite_summary(self, request: SummaryRewriteRequest) -> RewriteResult:
        """Rewrite a professional summary."""
        original = self._check_text(request.summary, "summary", self.thresholds["max_summary_length"])
        scope = self._scope(request.evidence_scope)
        extracted = self._extracted(request.layer1)
        allow = self._allow_enrichment(request.allow_resume_enrichment)
        if scope == EvidenceScope.RESUME:
            ledger = build_summary_evidence_ledger(
                original, extracted, request.experience_bullets, allow
            )
        else:
            ledger = build_evidence_ledger(
                original, extracted, request.experience_bullets, scope, allow
            )

        plan = plan_micro_actions(
            original,
            ledger,
            target_role=request.target_role,
            section_type="summary",
            content_type=ContentType.SUMMARY,
            max_length=self.thresholds["max_summary_length"],
            lexicon=self.lexicon,
        )
        prompt = build_summary_rewrite_prompt(original, ledger, plan, request.target_role)
        outcome = self._run(ContentType.SUMMARY, original, ledger, prompt)
        return self._to_result(ContentType.SUMMARY, original, plan, outcome)

    # =========================================================================
    # Sections
    # =========================================================================

    def rewrite_section(self, request: SectionRewriteRequest) -> SectionRewriteResult:
        """Rewrite every bullet of a section, then make the set coherent.

        Bullets that exhaust their retries keep their original text in
        ``improved_bullets``; their flagged rewrite stays in ``per_bullet``.
        """
        bullets = self._check_section(request.bullets)
        extracted = self._extracted(request.layer1)
        scope = self._scope(request.evidence_scope)
        allow = self._allow_enrichment(request.allow_resume_enrichment)
        section_type = "experience" if request.role else None

        per_bullet: list[RewriteResult] = []
        for index, bullet in enumerate(bullets):
            ledger = build_evidence_ledger(
                bullet,
                extracted=extracted,
                section_bullets=[b for i, b in enumerate(bullets) if i != index],
                scope=scope,
                allow_resume_enrichment=allow,
            )
            plan = plan_micro_actions(
                bullet,
                ledger,
                target_role=request.target_role,
                section_type=section_type,
                content_type=ContentType.SECTION,
                max_length=self.thresholds["max_bullet_length"],
                lexicon=self.lexicon,
            )
            if not plan.transformations and not can_improve(bullet, self.lexicon):
                per_bullet.append(self._unchanged_result(ContentType.SECTION, bullet, plan))
                continue
            prompt = build_section_rewrite_prompt(
                bullet, ledger, plan,
                siblings=bullets,
                section_title=request.section_title,
                target_role=request.target_role,
            )
            outcome = self._run(ContentType.SECTION, bullet, ledger, prompt)
            per_bullet.append(self._to_result(ContentType.SECTION, bullet, plan, outcome))

        notes: list[str] = []
        improved = []
        for index, result in enumerate(per_bullet):
            if result.status == RewriteStatus.EXHAUSTED:
                codes = sorted({
                    item.code for item in result.validation.items
                    if item.severity == Severity.CRITICAL
                })
                notes.append(f"Bullet {index + 1} kept its original text: {', '.join(codes)}")
                improved.append(result.original)
            else:
                improved.append(result.improved)

        if self.features["section_coherence_pass"]:
            inconsistent = get_inconsistent_bullets(improved, self.lexicon)
            improved = apply_full_formatting_to_all(improved, self.lexicon)
            if inconsistent:
                notes.append(f"Unified verb tense in {len(inconsistent)} bullet(s)")

        tense = detect_dominant_tense(
            improved,
            self.lexicon,
            high_ratio=self.thresholds["tense_high_ratio"],
            medium_ratio=self.thresholds["tense_medium_ratio"],
        )
        notes.extend(self._section_notes(improved))

        total_critical = sum(
            1 for r in per_bullet for item in r.validation.items if item.severity == Severity.CRITICAL
        )
        total_warnings = sum(
            1 for r in per_bullet for item in r.validation.items if item.severity == Severity.WARNING
        )
        gains = [r.estimated_score_gain for r in per_bullet]

        return SectionRewriteResult(
            original_bullets=bullets,
            improved_bullets=improved,
            per_bullet=per_bullet,
            validation_summary=SectionValidationSummary(
                passed=all(r.validation.passed for r in per_bullet),
                total_critical=total_critical,
                total_warnings=total_warnings,
            ),
            tense=TenseReport(tense=tense.tense.value, confidence=tense.confidence),
            section_notes=notes,
            estimated_aggregate_gain=round(sum(gains) / len(gains)) if gains else 0,
            confidence=self._section_confidence(per_bullet),
        )

    def _section_notes(self, bullets: list[str]) -> list[str]:
        notes = []
        for word, count in sorted(find_repeated_starts(bullets).items()):
            notes.append(f'"{word.capitalize()}" opens {count} bullets')
        if not has_varied_starts(bullets):
            notes.append("Opening verbs lack variety")
        for index, bullet in enumerate(bullets):
            if is_too_short(bullet, self.thresholds["min_bullet_length"]):
                notes.append(f"Bullet {index + 1} is very short")
            elif is_too_long(bullet, self.thresholds["max_bullet_length"]):
                notes.append(f"Bullet {index + 1} exceeds {self.thresholds['max_bullet_length']} characters")
        return notes

    @staticmethod
    def _section_confidence(results: list[RewriteResult]) -> Confidence:
        confidences = {r.confidence for r in results}
        if Confidence.LOW in confidences:
            return Confidence.LOW
        if confidences == {Confidence.HIGH}:
            return Confidence.HIGH
        return Confidence.MEDIUM

    # =========================================================================
    # Offline operations
    # =========================================================================

    def analyze(self, request: AnalyzeRequest) -> AnalyzeResponse:
        """Diagnostics and a rewrite plan, without calling the backend."""
        max_length = (
            self.thresholds["max_summary_length"]
            if request.content_type == ContentType.SUMMARY
            else self.thresholds["max_bullet_length"]
        )
        text = self._check_text(request.text, "text", max_length)
        ledger = build_evidence_ledger(
            text,
            extracted=self._extracted(request.layer1),
            section_bullets=request.section_bullets,
            scope=self._scope(request.evidence_scope),
            allow_resume_enrichment=self.defaults["allow_resume_enrichment"],
        )
        plan = plan_micro_actions(
            text,
            ledger,
            issues=request.issues,
            target_role=request.target_role,
            section_type=request.section_type,
            content_type=request.content_type,
            max_length=max_length,
            lexicon=self.lexicon,
        )
        diagnostics = analyze_text(text, self.lexicon)
        return AnalyzeResponse(
            can_improve=diagnostics.pop("can_improve"),
            diagnostics=diagnostics,
            plan=PlanSummary.from_plan(plan),
        )

    def validate(self, request: ValidateRequest) -> ValidateResponse:
        """Validate a supplied rewrite against a ledger built from the request."""
        original = self._check_text(request.original, "original", self.thresholds["max_summary_length"])
        ledger = build_evidence_ledger(
            original,
            extracted=self._extracted(request.layer1),
            section_bullets=request.section_bullets,
            scope=self._scope(request.evidence_scope),
            allow_resume_enrichment=self.defaults["allow_resume_enrichment"],
        )
        evidence_map = tuple(
            EvidenceMapItem(improved_span=entry.improved_span.strip(), evidence_ids=tuple(entry.evidence_ids))
            for entry in request.evidence_map
            if entry.improved_span.strip()
        )
        result = self._validator()(original, request.improved.strip(), ledger, evidence_map)
        return ValidateResponse(
            validation=ValidationReport.from_result(result),
            has_fabrication_errors=has_fabrication_errors(result),
            evidence_ids=sorted(ledger.ids),
        )

    # =========================================================================
    # Generation
    # =========================================================================

    def _generate(self, prompt: PromptPair, temperature: float, max_tokens: int) -> str:
        """Call Claude, translating API failures into engine errors."""
        try:
            return self.client.complete(
                system=prompt.system,
                user=prompt.user,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except APITimeoutError as e:
            raise GenerationTimeoutError(self.llm_settings["timeout_seconds"]) from e
        except (APIError, EmptyResponseError) as e:
            raise GenerationError(str(e) or type(e).__name__) from e

    def _validator(self):
        return functools.partial(
            validate_rewrite,
            lexicon=self.lexicon,
            low_overlap_floor=self.thresholds["low_overlap_floor"],
            evidence_overlap_threshold=self.thresholds["evidence_overlap_threshold"],
            max_length_multiplier=self.thresholds["max_length_multiplier"],
            check_overlap=self.features["low_overlap_check"],
            check_length=self.features["length_check"],
        )

    def _run(
        self,
        content_type: ContentType,
        original: str,
        ledger: EvidenceLedger,
        prompt: PromptPair,
    ) -> RetryOutcome:
        max_tokens = min(
            self.llm_settings["max_tokens"],
            MIN_RESPONSE_TOKENS + 4 * estimate_token_count(original),
        )
        max_retries = (
            self.llm_settings["max_retries"]
            if self.features["retry_on_validation_failure"]
            else 0
        )
        controller = RetryController(
            generate=functools.partial(self._generate, max_tokens=max_tokens),
            content_type=content_type,
            max_retries=max_retries,
            validate=self._validator(),
        )
        outcome = controller.run(original, ledger, prompt)
        if not outcome.passed:
            logger.info(
                "Rewrite exhausted after %d attempt(s); returning flagged result", outcome.attempts
            )
        return outcome

    # =========================================================================
    # Result shaping
    # =========================================================================

    def _to_result(
        self,
        content_type: ContentType,
        original: str,
        plan: RewritePlan,
        outcome: RetryOutcome,
    ) -> RewriteResult:
        parsed = outcome.parsed
        return RewriteResult(
            type=content_type,
            original=original,
            improved=parsed.improved,
            evidence_map=[
                EvidenceMapEntry(improved_span=item.improved_span, evidence_ids=list(item.evidence_ids))
                for item in parsed.evidence_map
            ],
            validation=ValidationReport.from_result(outcome.validation),
            reasoning=parsed.reasoning,
            changes=ChangeFlags(**parsed.changes),
            confidence=determine_confidence(outcome),
            needs_user_input=list(plan.needs_user_input),
            estimated_score_gain=calculate_score_gain(parsed.changes, outcome),
            attempts=outcome.attempts,
            status=RewriteStatus.PASSED if outcome.passed else RewriteStatus.EXHAUSTED,
            error_code=None if outcome.passed else MaxRetriesExceededError.code,
        )

    @staticmethod
    def _unchanged_result(content_type: ContentType, original: str, plan: RewritePlan) -> RewriteResult:
        return RewriteResult(
            type=content_type,
            original=original,
            improved=original,
            evidence_map=[EvidenceMapEntry(improved_span=original, evidence_ids=["E1"])],
            validation=ValidationReport(passed=True),
            reasoning="Already strong; no changes needed",
            confidence=Confidence.HIGH,
            needs_user_input=list(plan.needs_user_input),
            status=RewriteStatus.SKIPPED,
        )

    # =========================================================================
    # Input handling
    # =========================================================================

    @staticmethod
    def _check_text(text: str, field: str, max_length: int) -> str:
        text = (text or "").strip()
        if not text:
            raise InvalidInputError(f"{field} is empty", field=field)
        if len(text) > max_length:
            raise InvalidInputError(
                f"{field} is {len(text)} characters; the limit is {max_length}", field=field
            )
        return text

    def _check_section(self, bullets: list[str]) -> list[str]:
        if not bullets:
            raise InvalidInputError("Section has no bullets", field="bullets")
        limit = self.thresholds["max_section_bullets"]
        if len(bullets) > limit:
            raise InvalidInputError(
                f"Section has {len(bullets)} bullets; the limit is {limit}", field="bullets"
            )
        return [
            self._check_text(bullet, f"bullets[{index}]", self.thresholds["max_bullet_length"])
            for index, bullet in enumerate(bullets)
        ]

    @staticmethod
    def _extracted(layer1: Layer1Signals | None) -> dict:
        return layer1.extracted.model_dump() if layer1 else {}

    def _scope(self, scope: EvidenceScope | None) -> EvidenceScope:
        return EvidenceScope(scope or self.defaults["evidence_scope"])

    def _allow_enrichment(self, allow: bool | None) -> bool:
        return self.defaults["allow_resume_enrichment"] if allow is None else allow

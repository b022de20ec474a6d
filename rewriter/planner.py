"""Micro-action planner.

Pure analysis over the original text and its evidence ledger. Produces an
ordered plan of atomic transformations plus the hard constraints the
generation step must respect. No I/O.
"""

from typing import Iterable

from .evidence import get_evidence_by_type
from .fluff import detect_fluff, has_fluff
from .lexicon import Lexicon, get_lexicon
from .metrics import detect_implied_metrics, detect_metrics, extract_numbers, has_metric
from .overlap import get_significant_words, overlap_coefficient
from .patterns import (
    TECH_TERMS,
    TOOL_RELEVANCE,
    canonical_tech_term,
    extract_company_names,
    extract_tech_terms,
)
from .text import contains_phrase
from .types import (
    ActionType,
    ContentType,
    EvidenceLedger,
    EvidenceType,
    MicroAction,
    RewriteConstraints,
    RewriteGoal,
    RewritePlan,
)
from .verbs import (
    find_leading_weak_verb,
    find_weak_verbs,
    has_passive_voice,
    starts_with_strong_verb,
    starts_with_weak_verb,
    suggest_verb_upgrades,
)

DEFAULT_MAX_LENGTHS = {
    ContentType.BULLET: 200,
    ContentType.SECTION: 200,
    ContentType.SUMMARY: 500,
}

MAX_TOOL_SURFACING = 2
MIN_BULLET_LENGTH = 20
# Share of a section bullet's words that must match before its metric counts as the same work
METRIC_EVIDENCE_OVERLAP = 0.5

VAGUE_ISSUES = {"vague", "too_vague"}

# Sections where any resume-level tool may be named without asking the candidate
OPEN_ENRICHMENT_SECTIONS = {"summary", "skills", "headline", "projects"}


def _context_terms(original: str, ledger: EvidenceLedger) -> list[str]:
    terms = [word.lower() for word in original.split()]
    for item in ledger.items:
        terms.extend(item.normalized_terms)
    return terms


def _tool_mentioned(tool: str, text: str) -> bool:
    if canonical_tech_term(tool) in extract_tech_terms(text):
        return True
    return contains_phrase(text, tool)


def is_tool_relevant(tool: str, text: str) -> bool:
    """Whether surfacing ``tool`` fits what the bullet is about.

    Tools with a relevance entry need one of their domain keywords in the
    text. Others are considered relevant when the name is at least three
    characters long.
    """
    keywords = TOOL_RELEVANCE.get(canonical_tech_term(tool))
    if keywords is None:
        return len(tool) >= 3
    return any(contains_phrase(text, keyword) for keyword in keywords)


def allow_resume_enrichment_in_bullet(
    tool: str,
    ledger: EvidenceLedger,
    section_type: str | None = None,
) -> bool:
    """Whether a resume-level tool may be surfaced without asking the candidate.

    Experience bullets only accept tools that another bullet of the same
    role already mentions; summaries, skills, headlines and projects accept
    any. Without a section type the ledger's own enrichment flag decides.
    """
    if not ledger.allow_resume_enrichment:
        return False
    if section_type is None or section_type in OPEN_ENRICHMENT_SECTIONS:
        return True
    if section_type == "experience":
        return any(
            _tool_mentioned(tool, item.text)
            for item in get_evidence_by_type(ledger, EvidenceType.SECTION)
        )
    return False


def build_constraints(ledger: EvidenceLedger, max_length: int) -> RewriteConstraints:
    """Derive allow-sets from the ledger; anything outside them is forbidden."""
    numbers: set[str] = set()
    tools: set[str] = set()
    companies: set[str] = set()
    for item in ledger.items:
        numbers.update(token.text.lower() for token in extract_numbers(item.text))
        tools.update(extract_tech_terms(item.text))
        tools.update(
            canonical_tech_term(term) for term in item.normalized_terms
            if canonical_tech_term(term) in TECH_TERMS
        )
        companies.update(name.lower() for name in extract_company_names(item.text))
    return RewriteConstraints(
        max_length=max_length,
        allowed_numbers=frozenset(numbers),
        allowed_tools=frozenset(tools),
        allowed_companies=frozenset(companies),
        forbidden_tools=frozenset(TECH_TERMS - tools),
    )


def _verb_actions(
    original: str,
    ledger: EvidenceLedger,
    issues: set[str],
    lexicon: Lexicon,
) -> list[MicroAction]:
    weak = find_leading_weak_verb(original, lexicon)
    if weak:
        suggestions = suggest_verb_upgrades(
            weak.phrase, _context_terms(original, ledger), lexicon
        )
        return [MicroAction(
            type=ActionType.VERB_UPGRADE,
            data={"from": original[weak.start:weak.end], "suggestions": suggestions},
        )]
    if "weak_verb" in issues and not starts_with_strong_verb(original, lexicon):
        return [MicroAction(
            type=ActionType.SPECIFICITY_INCREASE,
            data={"target": "verb", "hint": "Open with a stronger action verb"},
        )]
    return []


def _fluff_actions(original: str, lexicon: Lexicon) -> list[MicroAction]:
    return [
        MicroAction(
            type=ActionType.FLUFF_REMOVAL,
            data={
                "phrase": original[match.start:match.end],
                "category": match.category,
                "replacement": match.replacement,
            },
        )
        for match in detect_fluff(original, lexicon)
    ]


def _metric_actions(
    original: str,
    ledger: EvidenceLedger,
    issues: set[str],
    lexicon: Lexicon,
) -> list[MicroAction]:
    if has_metric(original, lexicon):
        return []

    bullet_words = get_significant_words(original)
    supporting = [
        item for item in get_evidence_by_type(ledger, EvidenceType.SECTION)
        if extract_numbers(item.text)
        and overlap_coefficient(bullet_words, get_significant_words(item.text))
        >= METRIC_EVIDENCE_OVERLAP
    ]
    if supporting:
        return [MicroAction(
            type=ActionType.METRIC_SURFACING,
            data={
                "metrics": [
                    token.text for item in supporting for token in extract_numbers(item.text)
                ],
                "hint": "Carry over the recorded result for this same work",
            },
            evidence_ids=tuple(item.id for item in supporting),
        )]

    implied = detect_implied_metrics(original, lexicon)
    if "no_metric" in issues or implied:
        return [MicroAction(
            type=ActionType.SPECIFICITY_INCREASE,
            data={
                "target": "outcome",
                "hint": "Describe how and with what result, without inventing numbers",
                "implied_metrics": implied,
            },
        )]
    return []


def _tool_actions(
    original: str,
    ledger: EvidenceLedger,
    section_type: str | None,
    lexicon: Lexicon,
) -> tuple[list[MicroAction], list[str]]:
    """Tool surfacing actions plus questions for tools that need confirmation."""
    if has_metric(original, lexicon):
        return [], []

    actions: list[MicroAction] = []
    questions: list[str] = []
    seen: set[str] = set()
    for evidence_type in (EvidenceType.TOOLS, EvidenceType.SKILLS):
        for item in get_evidence_by_type(ledger, evidence_type):
            for tool in item.text.split(", "):
                key = canonical_tech_term(tool)
                if key in seen or _tool_mentioned(tool, original):
                    continue
                seen.add(key)
                if not is_tool_relevant(tool, original):
                    continue
                if len(actions) >= MAX_TOOL_SURFACING:
                    continue
                if allow_resume_enrichment_in_bullet(tool, ledger, section_type):
                    supporting = [item.id] + [
                        other.id for other in get_evidence_by_type(ledger, EvidenceType.SECTION)
                        if _tool_mentioned(tool, other.text)
                    ]
                    actions.append(MicroAction(
                        type=ActionType.TOOL_SURFACING,
                        data={"tool": tool},
                        evidence_ids=tuple(supporting),
                    ))
                else:
                    questions.append(f"Did you use {tool} in this role?")
    return actions, questions


def _role_actions(original: str, target_role: str | None) -> list[MicroAction]:
    if not target_role:
        return []
    keywords = sorted(get_significant_words(target_role))
    if not keywords or any(contains_phrase(original, word) for word in keywords):
        return []
    return [MicroAction(
        type=ActionType.ROLE_TAILORING,
        data={"target_role": target_role, "keywords": keywords},
    )]


def _determine_goal(
    original: str,
    actions: list[MicroAction],
    max_length: int,
) -> RewriteGoal:
    types = {action.type for action in actions}
    fluff_count = sum(1 for action in actions if action.type == ActionType.FLUFF_REMOVAL)
    if fluff_count >= 2 or len(original) > max_length:
        return RewriteGoal.CONCISENESS
    if types & {ActionType.VERB_UPGRADE, ActionType.METRIC_SURFACING, ActionType.TOOL_SURFACING}:
        return RewriteGoal.IMPACT
    if ActionType.SPECIFICITY_INCREASE in types:
        return RewriteGoal.CLARITY
    if ActionType.ROLE_TAILORING in types:
        return RewriteGoal.ATS
    return RewriteGoal.IMPACT


def plan_micro_actions(
    original: str,
    evidence: EvidenceLedger,
    issues: Iterable[str] = (),
    target_role: str | None = None,
    section_type: str | None = None,
    content_type: ContentType | str = ContentType.BULLET,
    max_length: int | None = None,
    lexicon: Lexicon | None = None,
) -> RewritePlan:
    """Plan the transformations for one piece of text.

    Args:
        original: Text to improve.
        evidence: Ledger built for this request.
        issues: Issue tags reported upstream (``weak_verb``, ``no_metric``,
            ``vague``, ...). Detectors run regardless; tags only add actions.
        target_role: Role the resume is aimed at, if known.
        section_type: ``experience``, ``summary``, ``skills``, ``headline``
            or ``projects``; governs tool enrichment.
        content_type: Selects the default ``max_length``.
        max_length: Override for the length cap.
        lexicon: Optional lexicon override.

    Returns:
        A RewritePlan. Surfacing actions always cite evidence.
    """
    lexicon = get_lexicon(lexicon)
    content_type = ContentType(content_type)
    issue_set = {issue.lower() for issue in issues}
    limit = max_length or DEFAULT_MAX_LENGTHS[content_type]

    actions: list[MicroAction] = []
    actions.extend(_verb_actions(original, evidence, issue_set, lexicon))
    actions.extend(_fluff_actions(original, lexicon))
    actions.extend(_metric_actions(original, evidence, issue_set, lexicon))

    if issue_set & VAGUE_ISSUES:
        actions.append(MicroAction(
            type=ActionType.SPECIFICITY_INCREASE,
            data={"target": "detail", "hint": "Name the concrete system, audience or deliverable"},
        ))
    if has_passive_voice(original):
        actions.append(MicroAction(
            type=ActionType.SPECIFICITY_INCREASE,
            data={"target": "voice", "hint": "Convert passive voice to active voice"},
        ))

    tool_actions, questions = _tool_actions(original, evidence, section_type, lexicon)
    actions.extend(tool_actions)
    actions.extend(_role_actions(original, target_role))

    return RewritePlan(
        transformations=tuple(actions),
        constraints=build_constraints(evidence, limit),
        goal=_determine_goal(original, actions, limit),
        issues=tuple(sorted(issue_set)),
        needs_user_input=tuple(questions),
    )


# =============================================================================
# Gates and diagnostics
# =============================================================================


def is_specific(text: str) -> bool:
    """Names enough concrete things to stand without a metric."""
    words = get_significant_words(text)
    if extract_tech_terms(text):
        return len(words) >= 3
    return len(words) >= 5


def can_improve(text: str, lexicon: Lexicon | None = None) -> bool:
    """Cheap gate: would a rewrite likely gain anything?

    True for weak or passive openings, fluff, very short text, or text with
    neither a metric nor enough specific detail. False for text that opens
    with a strong verb, carries a metric and has no fluff.
    """
    lexicon = get_lexicon(lexicon)
    text = text.strip()
    if not text:
        return False
    # Short text is always worth expanding, even when it opens strong and carries a metric.
    if len(text) < MIN_BULLET_LENGTH:
        return True
    if starts_with_weak_verb(text, lexicon) or has_passive_voice(text):
        return True
    if has_fluff(text, lexicon):
        return True
    if not starts_with_strong_verb(text, lexicon):
        return True
    return not has_metric(text, lexicon) and not is_specific(text)


def analyze_text(text: str, lexicon: Lexicon | None = None) -> dict:
    """Read-only diagnostics for callers that only want hints."""
    lexicon = get_lexicon(lexicon)
    return {
        "can_improve": can_improve(text, lexicon),
        "weak_verbs": [m.phrase for m in find_weak_verbs(text, lexicon)],
        "starts_with_strong_verb": starts_with_strong_verb(text, lexicon),
        "fluff": [m.phrase for m in detect_fluff(text, lexicon)],
        "metrics": [m.text for m in detect_metrics(text, lexicon)],
        "implied_metrics": detect_implied_metrics(text, lexicon),
        "passive_voice": has_passive_voice(text),
        "tech_terms": extract_tech_terms(text),
    }

"""Fabrication validator.

Checks a generated rewrite against its original text and evidence ledger.
Anything the rewrite asserts (numbers, tools, companies, scale language)
must trace back to one of them; evidence maps must point at real ledger
items and real spans of the rewrite.
"""

from typing import Iterable

from .evidence import get_all_normalized_terms
from .lexicon import Lexicon, get_lexicon
from .metrics import extract_numbers, find_new_numbers, find_new_scale_claims
from .overlap import (
    calculate_overlap_ratio,
    get_significant_words,
    is_substring_match,
    overlap_coefficient,
)
from .patterns import canonical_tech_term, extract_company_names, extract_tech_terms
from .text import collapse_whitespace, contains_phrase
from .types import (
    FABRICATION_CODES,
    EvidenceLedger,
    EvidenceMapItem,
    Severity,
    ValidationCode,
    ValidationItem,
    ValidationResult,
)
from .verbs import find_leading_weak_verb

__all__ = [
    "extract_tech_terms",
    "format_validation_result",
    "get_critical_errors",
    "get_warnings",
    "has_fabrication_errors",
    "validate_evidence_map",
    "validate_rewrite",
]

DEFAULT_LOW_OVERLAP_FLOOR = 0.3
DEFAULT_EVIDENCE_OVERLAP_THRESHOLD = 0.3
DEFAULT_MAX_LENGTH_MULTIPLIER = 2.0


def _critical(code: ValidationCode, message: str, span: str | None = None) -> ValidationItem:
    return ValidationItem(code=code, severity=Severity.CRITICAL, message=message, span=span)


def _warning(code: ValidationCode, message: str, span: str | None = None) -> ValidationItem:
    return ValidationItem(code=code, severity=Severity.WARNING, message=message, span=span)


def _known_tools(original: str, ledger: EvidenceLedger) -> set[str]:
    known = set(extract_tech_terms(original))
    for item in ledger.items:
        known.update(extract_tech_terms(item.text))
    known.update(canonical_tech_term(term) for term in get_all_normalized_terms(ledger))
    return known


def _company_grounded(name: str, sources: list[str]) -> bool:
    if any(contains_phrase(source, name) for source in sources):
        return True
    combined = " ".join(sources)
    return all(contains_phrase(combined, word) for word in name.split())


# =============================================================================
# Evidence map integrity
# =============================================================================


def validate_evidence_map(
    improved: str,
    evidence_map: Iterable[EvidenceMapItem],
    ledger: EvidenceLedger,
    overlap_threshold: float = DEFAULT_EVIDENCE_OVERLAP_THRESHOLD,
) -> list[ValidationItem]:
    """Referential integrity of an evidence map.

    Emits one INVALID_EVIDENCE_ID per unknown id, SPAN_NOT_FOUND when a
    mapped span does not occur in ``improved``, and a WEAK_EVIDENCE_MATCH
    warning when a span shares too little with every item it cites.
    """
    items: list[ValidationItem] = []
    improved_lower = improved.lower()
    known_ids = ledger.ids

    for entry in evidence_map:
        for evidence_id in entry.evidence_ids:
            if evidence_id not in known_ids:
                items.append(_critical(
                    ValidationCode.INVALID_EVIDENCE_ID,
                    f'Evidence id "{evidence_id}" does not exist in the ledger',
                    span=entry.improved_span,
                ))

        if entry.improved_span.lower() not in improved_lower:
            items.append(_critical(
                ValidationCode.SPAN_NOT_FOUND,
                f'Mapped span "{entry.improved_span}" does not appear in the rewrite',
                span=entry.improved_span,
            ))
            continue

        cited = [ledger.get(i) for i in entry.evidence_ids if i in known_ids]
        if not cited:
            continue
        best = max(
            1.0 if is_substring_match(entry.improved_span, item.text)
            else calculate_overlap_ratio(entry.improved_span, item.text)
            for item in cited
        )
        if best < overlap_threshold:
            items.append(_warning(
                ValidationCode.WEAK_EVIDENCE_MATCH,
                f'Span "{entry.improved_span}" shares little wording with '
                f'{", ".join(item.id for item in cited)} ({best:.0%})',
                span=entry.improved_span,
            ))
    return items


def _unmapped_claims(improved: str, evidence_map: list[EvidenceMapItem]) -> list[ValidationItem]:
    """Tools and numbers sitting outside every mapped span."""
    spans = [entry.improved_span for entry in evidence_map]
    mapped_tools: set[str] = set()
    for span in spans:
        mapped_tools.update(extract_tech_terms(span))

    items = []
    for tool in extract_tech_terms(improved):
        if tool not in mapped_tools:
            items.append(_critical(
                ValidationCode.UNSUPPORTED_TOOL_CLAIM,
                f'Tool "{tool}" is not covered by any evidence-mapped span',
                span=tool,
            ))
    for token in extract_numbers(improved):
        if not any(token.text.lower() in span.lower() for span in spans):
            items.append(_critical(
                ValidationCode.UNSUPPORTED_METRIC_CLAIM,
                f'Number "{token.text}" is not covered by any evidence-mapped span',
                span=token.text,
            ))
    return items


# =============================================================================
# Full validation
# =============================================================================


def validate_rewrite(
    original: str,
    improved: str,
    ledger: EvidenceLedger,
    evidence_map: Iterable[EvidenceMapItem] = (),
    lexicon: Lexicon | None = None,
    low_overlap_floor: float = DEFAULT_LOW_OVERLAP_FLOOR,
    evidence_overlap_threshold: float = DEFAULT_EVIDENCE_OVERLAP_THRESHOLD,
    max_length_multiplier: float = DEFAULT_MAX_LENGTH_MULTIPLIER,
    check_overlap: bool = True,
    check_length: bool = True,
) -> ValidationResult:
    """Validate one rewrite attempt.

    Args:
        original: The text that was rewritten.
        improved: The candidate rewrite.
        ledger: Evidence available to the request.
        evidence_map: Spans of ``improved`` with the evidence ids backing them.
            An empty map for changed text fails validation.
        lexicon: Optional lexicon override.
        low_overlap_floor: Overlap coefficient below which LOW_OVERLAP is reported.
        evidence_overlap_threshold: Minimum span/evidence overlap before
            WEAK_EVIDENCE_MATCH is reported.
        max_length_multiplier: Growth factor before LENGTH_EXPLOSION is reported.
        check_overlap: Emit the LOW_OVERLAP diagnostic.
        check_length: Emit the LENGTH_EXPLOSION diagnostic.

    Returns:
        ValidationResult; ``passed`` is False if any item is critical.
    """
    lexicon = get_lexicon(lexicon)
    evidence_map = list(evidence_map)
    ledger_texts = [item.text for item in ledger.items]
    items: list[ValidationItem] = []

    for token in find_new_numbers(improved, original, ledger_texts):
        items.append(_critical(
            ValidationCode.NEW_NUMBER_ADDED,
            f'Number "{token.text}" does not appear in the original or the evidence',
            span=token.text,
        ))

    known_tools = _known_tools(original, ledger)
    for tool in extract_tech_terms(improved):
        if tool not in known_tools:
            items.append(_critical(
                ValidationCode.NEW_TOOL_ADDED,
                f'Tool "{tool}" does not appear in the original or the evidence',
                span=tool,
            ))

    sources = [original, *ledger_texts]
    for name in extract_company_names(improved):
        if not _company_grounded(name, sources):
            items.append(_critical(
                ValidationCode.NEW_COMPANY_ADDED,
                f'Organization "{name}" does not appear in the original or the evidence',
                span=name,
            ))

    for claim in find_new_scale_claims(improved, original, ledger_texts, lexicon):
        items.append(_critical(
            ValidationCode.UNSUPPORTED_SCALE_CLAIM,
            f'Scale claim "{claim}" is not supported by the original or the evidence',
            span=claim,
        ))

    items.extend(validate_evidence_map(improved, evidence_map, ledger, evidence_overlap_threshold))

    changed = collapse_whitespace(improved).lower() != collapse_whitespace(original).lower()
    if not evidence_map and changed:
        items.append(_critical(
            ValidationCode.UNMAPPED_REWRITE,
            "Rewrite changed the text but provided no evidence map",
        ))
    elif evidence_map:
        items.extend(_unmapped_claims(improved, evidence_map))

    if check_length and original and len(improved) > max_length_multiplier * len(original):
        items.append(_warning(
            ValidationCode.LENGTH_EXPLOSION,
            f"Rewrite is {len(improved) / len(original):.1f}x the original length",
        ))

    if check_overlap:
        ratio = overlap_coefficient(get_significant_words(original), get_significant_words(improved))
        if changed and ratio < low_overlap_floor:
            items.append(_warning(
                ValidationCode.LOW_OVERLAP,
                f"Rewrite shares little wording with the original ({ratio:.0%})",
            ))

    weak = find_leading_weak_verb(improved, lexicon)
    if weak:
        items.append(_warning(
            ValidationCode.WEAK_VERB,
            f'Rewrite still opens with weak verb "{weak.phrase}"',
            span=improved[weak.start:weak.end],
        ))

    return ValidationResult(items=tuple(items))


# =============================================================================
# Result helpers
# =============================================================================


def get_critical_errors(result: ValidationResult) -> list[ValidationItem]:
    return [item for item in result.items if item.severity == Severity.CRITICAL]


def get_warnings(result: ValidationResult) -> list[ValidationItem]:
    return [item for item in result.items if item.severity == Severity.WARNING]


def has_fabrication_errors(result: ValidationResult) -> bool:
    """True iff any item is a fabrication code, whatever ``passed`` says."""
    return any(item.code in FABRICATION_CODES for item in result.items)


def format_validation_result(result: ValidationResult) -> str:
    if not result.items:
        return "PASSED: no issues"
    header = "PASSED" if result.passed else "FAILED"
    lines = [f"{header}: {len(get_critical_errors(result))} critical, {len(get_warnings(result))} warning(s)"]
    for item in result.items:
        lines.append(f"  [{item.severity.value}] {item.code.value}: {item.message}")
    return "\n".join(lines)

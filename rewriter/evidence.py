"""Evidence ledger construction and evidence-map helpers.

A ledger is the closed set of facts one rewrite request may draw on: the
original text itself (always ``E1``), optionally the other bullets of the
same section, and the entities extracted from the resume upstream.
"""

import re
from typing import Any, Iterable, Mapping

from .exceptions import EvidenceBuildError
from .patterns import STOP_WORDS, extract_tech_terms
from .types import (
    EvidenceItem,
    EvidenceLedger,
    EvidenceMapItem,
    EvidenceScope,
    EvidenceType,
)

ENTITY_CATEGORIES = ("skills", "tools", "titles", "industries")

ENTITY_IDS = {
    "skills": "E_skills",
    "tools": "E_tools",
    "titles": "E_titles",
    "industries": "E_industries",
}

# Entity categories each scope may draw on.
SCOPE_CATEGORIES = {
    EvidenceScope.BULLET_ONLY: (),
    EvidenceScope.SECTION: ("skills", "tools"),
    EvidenceScope.RESUME: ENTITY_CATEGORIES,
}

_TOKEN_RE = re.compile(r"[a-z0-9$#+][a-z0-9.+#%$/&'-]*")


def normalize_terms(text: str) -> frozenset[str]:
    """Significant lower-case tokens of free text.

    Numeric tokens are always kept, whatever their length, since they are
    what the numeric fabrication check compares against.
    """
    terms = set()
    for token in _TOKEN_RE.findall(text.lower()):
        token = token.strip(".,;:'-/")
        if not token:
            continue
        if any(ch.isdigit() for ch in token):
            terms.add(token)
        elif len(token) > 2 and token not in STOP_WORDS:
            terms.add(token)
    terms.update(extract_tech_terms(text))
    return frozenset(terms)


def normalize_entity_terms(entries: Iterable[str]) -> frozenset[str]:
    """Lower-cased, trimmed entity names."""
    return frozenset(entry.strip().lower() for entry in entries if entry and entry.strip())


def _check_entities(extracted: Mapping[str, Any] | None) -> dict[str, list[str]]:
    if extracted is None:
        return {}
    if not isinstance(extracted, Mapping):
        raise EvidenceBuildError(
            f"Extracted entities must be a mapping, got {type(extracted).__name__}"
        )
    checked = {}
    for category in ENTITY_CATEGORIES:
        values = extracted.get(category)
        if values is None:
            continue
        if isinstance(values, str) or not isinstance(values, (list, tuple)):
            raise EvidenceBuildError(
                f"Extracted {category} must be a list of strings", category=category
            )
        if not all(isinstance(v, str) for v in values):
            raise EvidenceBuildError(
                f"Extracted {category} must contain only strings", category=category
            )
        entries = [v.strip() for v in values if v.strip()]
        if entries:
            checked[category] = entries
    return checked


def _entity_items(
    extracted: Mapping[str, Any] | None,
    categories: Iterable[str],
) -> list[EvidenceItem]:
    entities = _check_entities(extracted)
    items = []
    for category in categories:
        entries = entities.get(category)
        if not entries:
            continue
        items.append(EvidenceItem(
            id=ENTITY_IDS[category],
            type=EvidenceType(category),
            text=", ".join(entries),
            normalized_terms=normalize_entity_terms(entries),
        ))
    return items


def _text_item(evidence_id: str, evidence_type: EvidenceType, text: str) -> EvidenceItem:
    return EvidenceItem(
        id=evidence_id,
        type=evidence_type,
        text=text,
        normalized_terms=normalize_terms(text),
    )


def build_evidence_ledger(
    bullet: str,
    extracted: Mapping[str, Any] | None = None,
    section_bullets: Iterable[str] | None = None,
    scope: EvidenceScope | str = EvidenceScope.RESUME,
    allow_resume_enrichment: bool = True,
) -> EvidenceLedger:
    """Build the ledger for a single bullet rewrite.

    Args:
        bullet: The original bullet text. Always becomes ``E1``.
        extracted: Entities extracted upstream, keyed by ``skills``,
            ``tools``, ``titles`` and ``industries``.
        section_bullets: Other bullets of the same section.
        scope: ``bullet_only`` keeps self-evidence only; ``section`` adds
            section bullets plus skills and tools; ``resume`` adds every
            entity category.
        allow_resume_enrichment: When False, entity-derived items are left out.

    Returns:
        An immutable ledger with at least one item.

    Raises:
        EvidenceBuildError: If ``extracted`` is malformed.
    """
    scope = EvidenceScope(scope)
    items = [_text_item("E1", EvidenceType.BULLET, bullet)]

    if scope != EvidenceScope.BULLET_ONLY:
        seen = {bullet.strip().lower()}
        for other in section_bullets or ():
            key = other.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            items.append(_text_item(f"E{len(items) + 1}", EvidenceType.SECTION, other.strip()))

    # Malformed entities are rejected even when enrichment is off
    entity_items = _entity_items(extracted, SCOPE_CATEGORIES[scope])
    if allow_resume_enrichment:
        items.extend(entity_items)

    return EvidenceLedger(
        items=tuple(items),
        scope=scope,
        allow_resume_enrichment=allow_resume_enrichment,
    )


def build_section_evidence_ledger(
    bullets: Iterable[str],
    extracted: Mapping[str, Any] | None = None,
    allow_resume_enrichment: bool = True,
) -> EvidenceLedger:
    """Ledger for a whole section: one ``section`` item per distinct bullet."""
    items = []
    seen = set()
    for bullet in bullets:
        key = bullet.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        items.append(_text_item(f"E{len(items) + 1}", EvidenceType.SECTION, bullet.strip()))
    if not items:
        raise EvidenceBuildError("Section ledger needs at least one non-empty bullet")

    entity_items = _entity_items(extracted, ENTITY_CATEGORIES)
    if allow_resume_enrichment:
        items.extend(entity_items)
    return EvidenceLedger(
        items=tuple(items),
        scope=EvidenceScope.SECTION,
        allow_resume_enrichment=allow_resume_enrichment,
    )


def build_summary_evidence_ledger(
    summary: str,
    extracted: Mapping[str, Any] | None = None,
    experience_bullets: Iterable[str] | None = None,
    allow_resume_enrichment: bool = True,
) -> EvidenceLedger:
    """Ledger for a professional summary.

    The summary is ``E1``; experience bullets, when given, may ground claims
    the summary condenses from elsewhere in the resume.
    """
    return build_evidence_ledger(
        summary,
        extracted=extracted,
        section_bullets=experience_bullets,
        scope=EvidenceScope.RESUME,
        allow_resume_enrichment=allow_resume_enrichment,
    )


# =============================================================================
# Lookups
# =============================================================================


def get_evidence_by_id(ledger: EvidenceLedger, evidence_id: str) -> EvidenceItem | None:
    return ledger.get(evidence_id)


def get_evidence_by_type(
    ledger: EvidenceLedger, evidence_type: EvidenceType | str
) -> list[EvidenceItem]:
    evidence_type = EvidenceType(evidence_type)
    return [item for item in ledger.items if item.type == evidence_type]


def get_all_normalized_terms(ledger: EvidenceLedger) -> frozenset[str]:
    """Union of every item's terms: the grounding vocabulary of the request."""
    terms: set[str] = set()
    for item in ledger.items:
        terms.update(item.normalized_terms)
    return frozenset(terms)


def _matches_item(item: EvidenceItem, term: str) -> bool:
    if term in item.normalized_terms:
        return True
    if any(term in t for t in item.normalized_terms):
        return True
    return term in item.text.lower()


def find_evidence_for_term(ledger: EvidenceLedger, term: str) -> EvidenceItem | None:
    """First item that mentions ``term`` (case-insensitive), or None."""
    term = term.strip().lower()
    if not term:
        return None
    for item in ledger.items:
        if _matches_item(item, term):
            return item
    return None


def term_exists_in_ledger(ledger: EvidenceLedger, term: str) -> bool:
    return find_evidence_for_term(ledger, term) is not None


# =============================================================================
# Evidence maps
# =============================================================================


def parse_evidence_map(raw: Any) -> tuple[EvidenceMapItem, ...]:
    """Convert a decoded JSON evidence map into typed items.

    Entries without a usable span are dropped; a single id given as a
    string is accepted. Unknown ids are kept for the validator to flag.
    """
    if not isinstance(raw, list):
        return ()
    items = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        span = entry.get("improved_span") or entry.get("span")
        if not isinstance(span, str) or not span.strip():
            continue
        ids = entry.get("evidence_ids", [])
        if isinstance(ids, str):
            ids = [ids]
        elif not isinstance(ids, list):
            ids = []
        items.append(EvidenceMapItem(
            improved_span=span.strip(),
            evidence_ids=tuple(str(i).strip() for i in ids if str(i).strip()),
        ))
    return tuple(items)


def get_referenced_evidence_ids(evidence_map: Iterable[EvidenceMapItem]) -> set[str]:
    ids = set()
    for item in evidence_map:
        ids.update(item.evidence_ids)
    return ids


def find_evidence_ids_for_span(
    evidence_map: Iterable[EvidenceMapItem], span: str
) -> list[str]:
    """Ids cited by every mapped span that contains ``span``."""
    span = span.lower()
    ids: list[str] = []
    for item in evidence_map:
        if span in item.improved_span.lower():
            ids.extend(i for i in item.evidence_ids if i not in ids)
    return ids


def is_span_mapped(evidence_map: Iterable[EvidenceMapItem], span: str) -> bool:
    return bool(find_evidence_ids_for_span(evidence_map, span))


def calculate_evidence_coverage(
    improved: str, evidence_map: Iterable[EvidenceMapItem]
) -> float:
    """Share of the improved text's non-space characters covered by mapped spans."""
    if not improved.strip():
        return 0.0
    covered = [False] * len(improved)
    lower = improved.lower()
    for item in evidence_map:
        start = lower.find(item.improved_span.lower())
        if start < 0:
            continue
        for i in range(start, start + len(item.improved_span)):
            covered[i] = True
    total = sum(1 for ch in improved if not ch.isspace())
    hits = sum(1 for ch, c in zip(improved, covered) if c and not ch.isspace())
    return round(hits / total, 3)


def format_evidence_map(evidence_map: Iterable[EvidenceMapItem]) -> str:
    lines = [
        f'"{item.improved_span}" <- {", ".join(item.evidence_ids) or "(none)"}'
        for item in evidence_map
    ]
    return "\n".join(lines)

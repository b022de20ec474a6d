"""Metric detection and numeric token extraction.

Explicit metrics come from the lexicon's regex table; numeric tokens used
for fabrication checks come from ``patterns.NUMBER_PATTERNS``.
"""

import re
from dataclasses import dataclass

from .lexicon import Lexicon, get_lexicon
from .patterns import NUMBER_PATTERNS, NUMBER_WORDS, SCALE_SUFFIXES, find_non_overlapping
from .text import contains_phrase


@dataclass(frozen=True)
class MetricMatch:
    text: str
    type: str
    start: int
    end: int


@dataclass(frozen=True)
class NumberToken:
    """A numeric token with its kind and comparable value."""

    text: str
    kind: str
    value: float | None


def infer_metric_type(token: str) -> str:
    token = token.strip().lower()
    if "%" in token or "percent" in token:
        return "percentage"
    if "$" in token:
        return "dollar_amount"
    if re.fullmatch(r"\d+(?:\.\d+)?x", token):
        return "multiplier"
    if re.search(r"\d+:\d+", token):
        return "ratio"
    if re.search(r"\d+\s?(?:-|to)\s?\d+", token):
        return "range"
    if re.search(r"hour|hr|day|week|month|year|minute|min|second|ms\b", token):
        return "time"
    return "count"


def detect_metrics(text: str, lexicon: Lexicon | None = None) -> list[MetricMatch]:
    """Find explicit metrics already present in text."""
    lexicon = get_lexicon(lexicon)
    spans = find_non_overlapping(text, list(lexicon.metric_patterns.items()))
    return [
        MetricMatch(text=text[start:end], type=infer_metric_type(text[start:end]), start=start, end=end)
        for start, end, _ in spans
    ]


def has_metric(text: str, lexicon: Lexicon | None = None) -> bool:
    return bool(detect_metrics(text, lexicon))


def detect_implied_metrics(text: str, lexicon: Lexicon | None = None) -> list[str]:
    """Qualitative language that could be quantified. Never asserts a number."""
    lexicon = get_lexicon(lexicon)
    return [phrase for phrase in lexicon.implied_metrics if contains_phrase(text, phrase)]


def has_implied_metric(text: str, lexicon: Lexicon | None = None) -> bool:
    return bool(detect_implied_metrics(text, lexicon))


def detect_scale_claims(text: str, lexicon: Lexicon | None = None) -> list[str]:
    lexicon = get_lexicon(lexicon)
    return [phrase for phrase in lexicon.scale_claims if contains_phrase(text, phrase)]


def has_quantifiable_content(text: str, lexicon: Lexicon | None = None) -> bool:
    return has_metric(text, lexicon) or has_implied_metric(text, lexicon)


# =============================================================================
# Numeric tokens
# =============================================================================


def extract_numeric_value(token: str) -> float | None:
    """Parse a numeric token into a float, expanding K/M/B suffixes.

    Examples:
        "40%" -> 40.0
        "$1.5M" -> 1500000.0
        "1,000+" -> 1000.0
        "five" -> 5.0
        "forty percent" -> 40.0
        "x10" -> 10.0
    """
    cleaned = token.strip().lower()
    if cleaned in NUMBER_WORDS:
        return float(NUMBER_WORDS[cleaned])
    match = re.search(r"(\d(?:[\d,]*\d)?(?:\.\d+)?)\s?([kmb](?![a-z]))?", cleaned)
    if not match:
        word = re.match(r"[a-z]+", cleaned)
        if word and word.group() in NUMBER_WORDS:
            return float(NUMBER_WORDS[word.group()])
        return None
    value = float(match.group(1).replace(",", ""))
    if match.group(2):
        value *= SCALE_SUFFIXES[match.group(2)]
    return value


def extract_numbers(text: str) -> list[NumberToken]:
    """Return every numeric token in text, most specific reading first."""
    tokens = []
    for start, end, kind in find_non_overlapping(text, NUMBER_PATTERNS):
        raw = text[start:end]
        if kind == "word":
            kind = "plain"
        elif kind == "scaled":
            kind = "plain"
        tokens.append(NumberToken(text=raw, kind=kind, value=extract_numeric_value(raw)))
    return tokens


def numbers_match(candidate: NumberToken, known: NumberToken) -> bool:
    """Whether ``candidate`` restates ``known``.

    Values must be equal. A plain number may restate any kind
    ("40" from "40%"), but a percentage, currency amount or multiplier
    needs a known token of the same kind.
    """
    if candidate.value is None or known.value is None:
        return candidate.text.lower() == known.text.lower()
    if abs(candidate.value - known.value) > 1e-9:
        return False
    return candidate.kind == "plain" or candidate.kind == known.kind


def find_new_numbers(
    improved: str,
    original: str,
    evidence_texts: list[str] | tuple[str, ...] = (),
) -> list[NumberToken]:
    """Numbers in ``improved`` that neither the original nor any evidence contains."""
    known = extract_numbers(original)
    for text in evidence_texts:
        known.extend(extract_numbers(text))
    return [
        token for token in extract_numbers(improved)
        if not any(numbers_match(token, k) for k in known)
    ]


def find_new_scale_claims(
    improved: str,
    original: str,
    evidence_texts: list[str] | tuple[str, ...] = (),
    lexicon: Lexicon | None = None,
) -> list[str]:
    sources = [original, *evidence_texts]
    return [
        claim for claim in detect_scale_claims(improved, lexicon)
        if not any(contains_phrase(source, claim) for source in sources)
    ]

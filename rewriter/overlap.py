"""Lexical overlap between generated spans and their cited evidence."""

import re

from .patterns import STEM_SUFFIXES, STOP_WORDS

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9.+#%$-]*")


def tokenize(text: str) -> list[str]:
    tokens = []
    for token in _WORD_RE.findall(text.lower()):
        token = token.rstrip(".-")
        if token:
            tokens.append(token)
    return tokens


def stem(word: str) -> str:
    """Strip one common suffix, keeping at least three characters."""
    for suffix in STEM_SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            return word[: -len(suffix)]
    return word


def get_significant_words(text: str) -> set[str]:
    """Stemmed tokens longer than two characters that are not stop words.

    Numbers are kept regardless of length.
    """
    words = set()
    for token in tokenize(text):
        if any(ch.isdigit() for ch in token):
            words.add(token)
        elif len(token) > 2 and token not in STOP_WORDS:
            words.add(stem(token))
    return words


def jaccard_similarity(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def overlap_coefficient(a: set[str], b: set[str]) -> float:
    """Intersection over the smaller set; 0.0 when either set is empty."""
    if not a or not b:
        return 0.0
    return len(a & b) / min(len(a), len(b))


def calculate_overlap_ratio(span: str, evidence_text: str) -> float:
    """Share of the span's significant words that also occur in the evidence."""
    span_words = get_significant_words(span)
    if not span_words:
        return 1.0
    return len(span_words & get_significant_words(evidence_text)) / len(span_words)


def verify_semantic_overlap(span: str, evidence_text: str, threshold: float = 0.3) -> bool:
    return calculate_overlap_ratio(span, evidence_text) >= threshold


def is_substring_match(span: str, evidence_text: str) -> bool:
    return span.strip().lower() in evidence_text.lower()


def analyze_overlap(original: str, improved: str) -> dict:
    """Word-level comparison of an original and its rewrite."""
    before = get_significant_words(original)
    after = get_significant_words(improved)
    return {
        "jaccard": round(jaccard_similarity(before, after), 3),
        "coefficient": round(overlap_coefficient(before, after), 3),
        "kept": sorted(before & after),
        "added": sorted(after - before),
        "removed": sorted(before - after),
    }

"""Fluff detection and deterministic removal."""

import re
from dataclasses import dataclass

from .lexicon import Lexicon, get_lexicon
from .text import collapse_whitespace

FLUFF_REASONS = {
    "fillers": "Filler word adds no meaning",
    "weak_descriptors": "Vague descriptor; name the specific items instead",
    "redundant_phrases": "Wordy phrase has a shorter equivalent",
    "vague_phrases": "Vague phrase; be concrete or drop it",
    "hype_words": "Hype word reads as unsupported self-praise",
    "unnecessary_adverbs": "Adverb claims quality without showing it",
    "cliches": "Cliché; show the trait through results instead",
}


@dataclass(frozen=True)
class FluffMatch:
    phrase: str
    category: str
    start: int
    end: int
    replacement: str


def detect_fluff(text: str, lexicon: Lexicon | None = None) -> list[FluffMatch]:
    """All fluff phrases in text, sorted by position, without overlaps.

    Longer phrases win, so "successfully completed" is not also reported
    as "successfully".
    """
    lexicon = get_lexicon(lexicon)
    candidates = [
        (phrase, category, replacement)
        for category, phrases in lexicon.fluff.items()
        for phrase, replacement in phrases.items()
    ]
    candidates.sort(key=lambda c: len(c[0]), reverse=True)

    found: list[FluffMatch] = []
    for phrase, category, replacement in candidates:
        pattern = rf"(?<![\w-]){re.escape(phrase)}(?![\w-])"
        for match in re.finditer(pattern, text, re.IGNORECASE):
            start, end = match.span()
            if any(start < f.end and end > f.start for f in found):
                continue
            found.append(FluffMatch(phrase, category, start, end, replacement))
    return sorted(found, key=lambda f: f.start)


def has_fluff(text: str, lexicon: Lexicon | None = None) -> bool:
    return bool(detect_fluff(text, lexicon))


def has_fluff_type(text: str, category: str, lexicon: Lexicon | None = None) -> bool:
    return any(f.category == category for f in detect_fluff(text, lexicon))


def count_fluff(text: str, lexicon: Lexicon | None = None) -> int:
    return len(detect_fluff(text, lexicon))


def remove_fluff(text: str, lexicon: Lexicon | None = None) -> str:
    """Apply every fluff replacement, working from the end of the string."""
    result = text
    for match in reversed(detect_fluff(text, lexicon)):
        original = result[match.start:match.end]
        replacement = match.replacement
        if replacement and original[:1].isupper():
            replacement = replacement[:1].upper() + replacement[1:]
        result = result[:match.start] + replacement + result[match.end:]
    result = collapse_whitespace(result)
    result = re.sub(r"\s+([,.;:])", r"\1", result)
    result = re.sub(r"^[,;:]\s*", "", result)
    if text[:1].isupper() and result[:1].islower():
        result = result[:1].upper() + result[1:]
    return result


def get_fluff_removal_suggestions(text: str, lexicon: Lexicon | None = None) -> list[dict]:
    return [
        {
            "phrase": f.phrase,
            "category": f.category,
            "replacement": f.replacement,
            "reason": FLUFF_REASONS.get(f.category, "Unnecessary wording"),
        }
        for f in detect_fluff(text, lexicon)
    ]

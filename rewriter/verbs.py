"""Weak-verb detection and ranked upgrade suggestions."""

import re
from dataclasses import dataclass
from typing import Iterable

from .lexicon import Lexicon, get_lexicon
from .text import find_phrase, first_word

WEAK_START_PATTERNS = [
    re.compile(rf"^\s*{phrase}\b", re.IGNORECASE)
    for phrase in (
        "worked on", "helped with", "helped", "was responsible for", "responsible for",
        "assisted with", "involved in", "participated in", "tasked with", "in charge of",
    )
]

PASSIVE_PATTERNS = [
    re.compile(r"\b(?:was|were)\s+\w+(?:ed|en)\b", re.IGNORECASE),
    re.compile(r"\b(?:has|have|had)\s+been\s+\w+(?:ed|en)\b", re.IGNORECASE),
    re.compile(r"\b(?:is|are)\s+being\s+\w+(?:ed|en)\b", re.IGNORECASE),
    re.compile(r"\b(?:was|were)\s+responsible\s+for\b", re.IGNORECASE),
]

MAX_SUGGESTIONS = 3


@dataclass(frozen=True)
class WeakVerbMatch:
    phrase: str
    start: int
    end: int

    @property
    def at_start(self) -> bool:
        return self.start == 0


def find_weak_verbs(text: str, lexicon: Lexicon | None = None) -> list[WeakVerbMatch]:
    """Weak verbs and phrases in text, longest phrase first, sorted by position.

    A shorter phrase inside a longer match ("helped" in "helped with")
    is not reported twice.
    """
    lexicon = get_lexicon(lexicon)
    matches: list[WeakVerbMatch] = []
    for phrase in lexicon.weak_phrases_longest_first:
        for match in re.finditer(rf"(?<![\w-]){re.escape(phrase)}(?![\w-])", text, re.IGNORECASE):
            start, end = match.span()
            if any(start < m.end and end > m.start for m in matches):
                continue
            matches.append(WeakVerbMatch(phrase=phrase, start=start, end=end))
    return sorted(matches, key=lambda m: m.start)


def find_leading_weak_verb(text: str, lexicon: Lexicon | None = None) -> WeakVerbMatch | None:
    """The weak verb the text opens with, ignoring leading whitespace and glyphs."""
    stripped = text.lstrip(" \t-•*·")
    offset = len(text) - len(stripped)
    matches = find_weak_verbs(stripped, lexicon)
    if matches and matches[0].start == 0:
        first = matches[0]
        return WeakVerbMatch(first.phrase, first.start + offset, first.end + offset)
    return None


def starts_with_weak_verb(text: str, lexicon: Lexicon | None = None) -> bool:
    if find_leading_weak_verb(text, lexicon):
        return True
    return any(pattern.match(text) for pattern in WEAK_START_PATTERNS)


def starts_with_strong_verb(text: str, lexicon: Lexicon | None = None) -> bool:
    lexicon = get_lexicon(lexicon)
    word = first_word(text)
    if not word:
        return False
    if word in lexicon.strong_verbs:
        return True
    # Present-tense forms of known strong verbs ("Lead", "Builds")
    base = word[:-1] if word.endswith("s") else word
    past = lexicon.tense_forms.get(base) or lexicon.tense_forms.get(word)
    return past in lexicon.strong_verbs if past else False


def has_passive_voice(text: str) -> bool:
    return any(pattern.search(text) for pattern in PASSIVE_PATTERNS)


def suggest_verb_upgrades(
    weak_phrase: str,
    context_terms: Iterable[str] = (),
    lexicon: Lexicon | None = None,
) -> list[str]:
    """Rank upgrade verbs for a weak phrase by contextual fit.

    Candidates come from the phrase's upgrade list plus any verb named by
    one of its context hints. A verb earns points for each hint whose key
    appears among ``context_terms`` (words from the bullet and the ledger);
    ties keep the lexicon's order.

    Args:
        weak_phrase: The weak verb or phrase as found in the text.
        context_terms: Lower-case terms describing the bullet's domain.
        lexicon: Optional lexicon override.

    Returns:
        Up to three verbs, best first. Empty for unknown phrases.
    """
    lexicon = get_lexicon(lexicon)
    entry = lexicon.weak_verbs.get(weak_phrase.lower())
    if entry is None:
        return []

    context = " ".join(t.lower() for t in context_terms)
    candidates = list(entry.upgrades)
    for verb in entry.context_hints.values():
        if verb not in candidates:
            candidates.append(verb)

    def score(index_verb: tuple[int, str]) -> tuple[int, int]:
        index, verb = index_verb
        hits = sum(
            1 for hint, hinted in entry.context_hints.items()
            if hinted == verb and find_phrase(context, hint)
        )
        return (-hits, index)

    ranked = sorted(enumerate(candidates), key=score)
    # Hint-only verbs need a hit to be suggested at all
    suggestions = [
        verb for index, verb in ranked
        if verb in entry.upgrades or score((index, verb))[0] < 0
    ]
    return suggestions[:MAX_SUGGESTIONS]


def suggest_verb_upgrade(
    weak_phrase: str,
    context_terms: Iterable[str] = (),
    lexicon: Lexicon | None = None,
) -> str | None:
    suggestions = suggest_verb_upgrades(weak_phrase, context_terms, lexicon)
    return suggestions[0] if suggestions else None

"""Cross-bullet coherence: tense, formatting and ATS-safe characters.

These functions operate on a collection of already-validated bullets.
None of them introduces content: they change verb form, whitespace,
punctuation and characters only.
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from .lexicon import Lexicon, get_lexicon
from .text import first_word
from .types import Confidence, Tense

DEFAULT_HIGH_RATIO = 0.8
DEFAULT_MEDIUM_RATIO = 0.6
MIN_UNIQUE_START_RATIO = 0.7
MIN_BULLET_LENGTH = 20
MAX_BULLET_LENGTH = 200

ATS_REPLACEMENTS = {
    "‘": "'",
    "’": "'",
    "‚": "'",
    "“": '"',
    "”": '"',
    "„": '"',
    "–": "-",
    "—": "-",
    "―": "-",
    "−": "-",
    "…": "...",
    "•": "-",
    "·": "-",
    "●": "-",
    "®": "",
    "™": "",
    "©": "",
    "\u00a0": " ",
    "\u2009": " ",
    "\u202f": " ",
    "\u200b": "",
}

_LEADING_GLYPHS = re.compile(r"^[\s\-•*·]+")
_TRAILING_PUNCTUATION = re.compile(r"[\s.!?]+$")


@dataclass(frozen=True)
class TenseSummary:
    tense: Tense
    confidence: Confidence
    past: int = 0
    present: int = 0

    def to_dict(self) -> dict:
        return {
            "tense": self.tense.value,
            "confidence": self.confidence.value,
            "past": self.past,
            "present": self.present,
        }


# =============================================================================
# Tense
# =============================================================================


def _present_base(word: str, lexicon: Lexicon) -> str | None:
    """Base form of a present-tense verb ("lead", "leads", "launches", "unifies")."""
    if word in lexicon.tense_forms:
        return word
    candidates = [word[:-1]] if word.endswith("s") else []
    if word.endswith("es"):
        candidates.append(word[:-2])
    if word.endswith("ies"):
        candidates.append(word[:-3] + "y")
    for candidate in candidates:
        if candidate in lexicon.tense_forms:
            return candidate
    return None


def detect_bullet_tense(text: str, lexicon: Lexicon | None = None) -> Tense | None:
    """Tense of the leading verb, or None when it cannot be told."""
    lexicon = get_lexicon(lexicon)
    word = first_word(text)
    if not word:
        return None
    if word in lexicon.past_forms:
        return Tense.PAST
    if _present_base(word, lexicon):
        return Tense.PRESENT
    if word.endswith("ed"):
        return Tense.PAST
    return None


def detect_dominant_tense(
    bullets: Iterable[str],
    lexicon: Lexicon | None = None,
    high_ratio: float = DEFAULT_HIGH_RATIO,
    medium_ratio: float = DEFAULT_MEDIUM_RATIO,
) -> TenseSummary:
    """Majority tense across bullets; past wins ties.

    Confidence is high when the winner holds at least ``high_ratio`` of the
    classified bullets, medium when it holds at least ``medium_ratio``, and
    low for anything closer to a tie.
    """
    counts = Counter(
        tense for tense in (detect_bullet_tense(b, lexicon) for b in bullets) if tense
    )
    past, present = counts[Tense.PAST], counts[Tense.PRESENT]
    total = past + present
    tense = Tense.PAST if past >= present else Tense.PRESENT
    if total == 0:
        return TenseSummary(Tense.PAST, Confidence.LOW, 0, 0)

    ratio = max(past, present) / total
    if ratio >= high_ratio:
        confidence = Confidence.HIGH
    elif ratio >= medium_ratio:
        confidence = Confidence.MEDIUM
    else:
        confidence = Confidence.LOW
    return TenseSummary(tense, confidence, past, present)


def _match_case(word: str, template: str) -> str:
    if template.isupper() and len(template) > 1:
        return word.upper()
    if template[:1].isupper():
        return word[:1].upper() + word[1:]
    return word


def convert_to_tense(text: str, target: Tense | str, lexicon: Lexicon | None = None) -> str:
    """Rewrite the leading verb into ``target`` tense, keeping its casing."""
    lexicon = get_lexicon(lexicon)
    target = Tense(target)
    match = re.match(r"([\s\-•*·]*)([A-Za-z][A-Za-z'-]*)(.*)", text, re.DOTALL)
    if not match:
        return text
    prefix, verb, rest = match.groups()
    lower = verb.lower()
    current = detect_bullet_tense(verb, lexicon)
    if current is None or current == target:
        return text

    if target == Tense.PAST:
        base = _present_base(lower, lexicon)
        replacement = lexicon.tense_forms.get(base) if base else None
    else:
        replacement = lexicon.past_forms.get(lower)
    if not replacement:
        return text
    return prefix + _match_case(replacement, verb) + rest


def unify_tense(bullets: Iterable[str], target: Tense | str, lexicon: Lexicon | None = None) -> list[str]:
    return [convert_to_tense(b, target, lexicon) for b in bullets]


def unify_to_dominant(bullets: list[str], lexicon: Lexicon | None = None) -> list[str]:
    summary = detect_dominant_tense(bullets, lexicon)
    return unify_tense(bullets, summary.tense, lexicon)


def has_consistent_tense(bullets: Iterable[str], lexicon: Lexicon | None = None) -> bool:
    tenses = {detect_bullet_tense(b, lexicon) for b in bullets} - {None}
    return len(tenses) <= 1


def get_inconsistent_bullets(bullets: list[str], lexicon: Lexicon | None = None) -> list[int]:
    """Indexes of bullets whose tense differs from the dominant one."""
    dominant = detect_dominant_tense(bullets, lexicon).tense
    return [
        i for i, bullet in enumerate(bullets)
        if detect_bullet_tense(bullet, lexicon) not in (None, dominant)
    ]


# =============================================================================
# Formatting
# =============================================================================


def unify_bullet_formatting(text: str) -> str:
    """Trim, strip bullet glyphs and trailing punctuation, capitalize."""
    text = re.sub(r"\s+", " ", text).strip()
    text = _LEADING_GLYPHS.sub("", text)
    text = _TRAILING_PUNCTUATION.sub("", text)
    if text[:1].islower():
        text = text[0].upper() + text[1:]
    return text


def unify_formatting(bullets: Iterable[str]) -> list[str]:
    return [unify_bullet_formatting(b) for b in bullets]


def make_ats_safe(text: str) -> str:
    """Replace typographic characters that applicant tracking systems mangle."""
    for char, replacement in ATS_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return re.sub(r"[ \t]{2,}", " ", text)


def standardize_numbers(text: str) -> str:
    text = re.sub(r"(\d)\s+%", r"\1%", text)
    text = re.sub(r"\$\s+(\d)", r"$\1", text)
    text = re.sub(r"(\d)\s+([KMB])\b", r"\1\2", text)
    text = re.sub(r"(\d)\s+x\b", r"\1x", text)
    return text


def apply_full_formatting(text: str) -> str:
    """ATS-safe characters, number spacing, then bullet formatting."""
    return unify_bullet_formatting(standardize_numbers(make_ats_safe(text)))


def apply_full_formatting_to_all(bullets: Iterable[str], lexicon: Lexicon | None = None) -> list[str]:
    formatted = [apply_full_formatting(b) for b in bullets]
    return unify_to_dominant(formatted, lexicon)


# =============================================================================
# Variety and length
# =============================================================================


def find_repeated_starts(bullets: Iterable[str]) -> dict[str, int]:
    counts = Counter(first_word(b) for b in bullets if first_word(b))
    return {word: n for word, n in counts.items() if n > 1}


def has_varied_starts(bullets: list[str], min_unique_ratio: float = MIN_UNIQUE_START_RATIO) -> bool:
    starts = [first_word(b) for b in bullets if first_word(b)]
    if len(starts) < 2:
        return True
    return len(set(starts)) / len(starts) >= min_unique_ratio


def is_too_short(text: str, min_length: int = MIN_BULLET_LENGTH) -> bool:
    return len(text.strip()) < min_length


def is_too_long(text: str, max_length: int = MAX_BULLET_LENGTH) -> bool:
    return len(text.strip()) > max_length

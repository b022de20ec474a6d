"""Small text helpers shared by the detectors."""

import re
from functools import lru_cache


@lru_cache(maxsize=2048)
def phrase_regex(phrase: str) -> re.Pattern:
    """Case-insensitive pattern matching a phrase on word boundaries."""
    return re.compile(rf"(?<![\w-]){re.escape(phrase)}(?![\w-])", re.IGNORECASE)


def find_phrase(text: str, phrase: str) -> re.Match | None:
    return phrase_regex(phrase).search(text)


def contains_phrase(text: str, phrase: str) -> bool:
    return find_phrase(text, phrase) is not None


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def first_word(text: str) -> str:
    """Leading word, lower-cased, with bullet glyphs and punctuation stripped."""
    match = re.match(r"[\s\-•*·]*([A-Za-z][A-Za-z'-]*)", text)
    return match.group(1).lower() if match else ""

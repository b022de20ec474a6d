"""Lexicon store: verb tables, fluff phrases and metric patterns.

Tables are read from JSON once per directory and frozen. Planner, validator
and coherence functions take a ``Lexicon`` argument and fall back to the
packaged one, so tests can swap in synthetic tables without patching.
"""

import dataclasses
import json
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

DATA_DIR = Path(__file__).parent / "data"

VERB_MAPPING_FILE = "verb_mapping.json"
FLUFF_PHRASES_FILE = "fluff_phrases.json"
METRIC_PATTERNS_FILE = "metric_patterns.json"


@dataclass(frozen=True)
class VerbEntry:
    """Upgrade candidates for one weak verb or phrase."""

    upgrades: tuple[str, ...]
    context_hints: Mapping[str, str]


@dataclass(frozen=True)
class Lexicon:
    """Immutable lookup tables shared by every request."""

    weak_verbs: Mapping[str, VerbEntry]
    strong_verbs: frozenset[str]
    tense_forms: Mapping[str, str]
    """Base form -> simple past, lower-case."""

    fluff: Mapping[str, Mapping[str, str]]
    """Category -> phrase -> replacement ("" deletes the phrase)."""

    metric_patterns: Mapping[str, re.Pattern]
    implied_metrics: tuple[str, ...]
    scale_claims: tuple[str, ...]

    @property
    def weak_phrases_longest_first(self) -> list[str]:
        return sorted(self.weak_verbs, key=len, reverse=True)

    @property
    def past_forms(self) -> Mapping[str, str]:
        """Simple past -> base form."""
        return {past: base for base, past in self.tense_forms.items()}

    def fluff_replacement(self, phrase: str) -> str:
        phrase = phrase.lower()
        for phrases in self.fluff.values():
            if phrase in phrases:
                return phrases[phrase]
        return ""

    def with_overrides(self, **tables) -> "Lexicon":
        """Return a copy with some tables replaced."""
        return dataclasses.replace(self, **tables)


def _read_json(directory: Path, filename: str) -> dict:
    path = directory / filename
    if not path.exists():
        raise FileNotFoundError(f"Lexicon file not found: {path}")
    with open(path) as f:
        return json.load(f)


def _compile_patterns(raw: dict[str, str]) -> Mapping[str, re.Pattern]:
    compiled = {}
    for name, pattern in raw.items():
        try:
            compiled[name] = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise ValueError(f"Invalid metric pattern '{name}': {e}") from e
    return MappingProxyType(compiled)


def build_lexicon(verb_data: dict, fluff_data: dict, metric_data: dict) -> Lexicon:
    """Freeze raw JSON tables into a Lexicon."""
    weak_verbs = {
        phrase.lower(): VerbEntry(
            upgrades=tuple(entry.get("upgrades", [])),
            context_hints=MappingProxyType(
                {k.lower(): v for k, v in entry.get("context_hints", {}).items()}
            ),
        )
        for phrase, entry in verb_data.get("weak_verbs", {}).items()
    }
    fluff = {
        category: MappingProxyType({p.lower(): r for p, r in phrases.items()})
        for category, phrases in fluff_data.items()
    }
    return Lexicon(
        weak_verbs=MappingProxyType(weak_verbs),
        strong_verbs=frozenset(v.lower() for v in verb_data.get("strong_verbs", [])),
        tense_forms=MappingProxyType(
            {k.lower(): v.lower() for k, v in verb_data.get("tense_forms", {}).items()}
        ),
        fluff=MappingProxyType(fluff),
        metric_patterns=_compile_patterns(metric_data.get("patterns", {})),
        implied_metrics=tuple(p.lower() for p in metric_data.get("implied_metrics", [])),
        scale_claims=tuple(p.lower() for p in metric_data.get("scale_claims", [])),
    )


@lru_cache(maxsize=8)
def load_lexicon(directory: str | None = None) -> Lexicon:
    """Load and cache the lexicon from a data directory.

    Args:
        directory: Directory holding the three lexicon JSON files.
            Defaults to the packaged ``rewriter/data``.
    """
    data_dir = Path(directory) if directory else DATA_DIR
    return build_lexicon(
        _read_json(data_dir, VERB_MAPPING_FILE),
        _read_json(data_dir, FLUFF_PHRASES_FILE),
        _read_json(data_dir, METRIC_PATTERNS_FILE),
    )


def get_lexicon(lexicon: Lexicon | None = None) -> Lexicon:
    return lexicon or load_lexicon()


def clear_lexicon_cache() -> None:
    load_lexicon.cache_clear()

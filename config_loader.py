"""Configuration loading utilities."""

import copy
import json
import os
from pathlib import Path

DEFAULT_SETTINGS = {
    "llm": {
        "model": "claude-sonnet-4-20250514",
        "max_tokens": 1024,
        "max_retries": 2,
        "timeout_seconds": 30,
    },
    "thresholds": {
        "max_bullet_length": 200,
        "max_summary_length": 500,
        "max_section_bullets": 10,
        "min_bullet_length": 20,
        "max_length_multiplier": 2.0,
        "low_overlap_floor": 0.3,
        "evidence_overlap_threshold": 0.3,
        "tense_high_ratio": 0.8,
        "tense_medium_ratio": 0.6,
    },
    "features": {
        "retry_on_validation_failure": True,
        "section_coherence_pass": True,
        "low_overlap_check": True,
        "length_check": True,
    },
    "defaults": {
        "evidence_scope": "resume",
        "allow_resume_enrichment": True,
        "max_concurrency": 3,
    },
    "lexicon_dir": None,
}


def load_config(config_path: str | None = None) -> dict:
    """Load configuration from config.json."""
    if config_path is None:
        config_path = Path(__file__).parent / "config.json"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        config = json.load(f)

    return get_engine_settings(config)


def get_engine_settings(config: dict | None = None) -> dict:
    """Merge a possibly partial config over DEFAULT_SETTINGS.

    Sections are merged key by key, so a config file may set only the
    values it cares about. Unknown top-level keys are kept as-is.
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)
    for key, value in (config or {}).items():
        if isinstance(value, dict) and isinstance(settings.get(key), dict):
            settings[key].update(value)
        else:
            settings[key] = value
    return settings


def get_anthropic_api_key() -> str:
    """Get Anthropic API key from environment."""
    key = os.environ.get("ANTHROPIC_API_KEY")
    if not key:
        raise ValueError(
            "ANTHROPIC_API_KEY environment variable not set. "
            "Set it with: export ANTHROPIC_API_KEY=your-key"
        )
    return key


def get_lexicon_dir(config: dict) -> Path | None:
    """Directory holding lexicon overrides, resolved against the project root."""
    lexicon_dir = config.get("lexicon_dir")
    if not lexicon_dir:
        return None
    path = Path(lexicon_dir)
    if not path.is_absolute():
        path = Path(__file__).parent / path
    return path

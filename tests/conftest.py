"""Shared test fixtures for Anchor tests."""

import json
from unittest.mock import MagicMock

import pytest

from config_loader import get_engine_settings
from rewriter.evidence import build_evidence_ledger
from rewriter.lexicon import load_lexicon


@pytest.fixture
def test_config():
    """Engine settings with the retry budget and thresholds at their defaults."""
    return get_engine_settings({
        "llm": {"model": "claude-test", "max_tokens": 512, "max_retries": 2, "timeout_seconds": 5},
        "defaults": {"evidence_scope": "resume", "allow_resume_enrichment": True, "max_concurrency": 2},
    })


@pytest.fixture
def lexicon():
    """The packaged lexicon."""
    return load_lexicon()


def make_response(improved, evidence_map=None, reasoning="Tightened wording", **changes):
    """Serialize a backend reply the way Claude is asked to format it."""
    return json.dumps({
        "improved": improved,
        "evidence_map": evidence_map if evidence_map is not None else [
            {"improved_span": improved, "evidence_ids": ["E1"]}
        ],
        "reasoning": reasoning,
        "changes": changes,
    })


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def mock_claude_client():
    """Create a mock Claude client that returns predictable responses."""
    client = MagicMock()
    client.complete.return_value = make_response(
        "Developed backend services", stronger_verb=True
    )
    client.get_token_usage.return_value = {
        "input_tokens": 100,
        "output_tokens": 50,
        "total_tokens": 150,
    }
    return client


@pytest.fixture
def sample_extracted():
    """Entities extracted from a sample resume."""
    return {
        "skills": ["Python", "Node.js"],
        "tools": ["Docker", "PostgreSQL"],
        "titles": ["Backend Engineer"],
        "industries": ["FinTech"],
    }


@pytest.fixture
def sample_section_bullets():
    """Bullets from one experience entry."""
    return [
        "Built payment reconciliation service with Docker",
        "Reduced reconciliation errors by 35% across 12 markets",
        "Mentored two junior engineers",
    ]


@pytest.fixture
def bullet_ledger(sample_extracted, sample_section_bullets):
    """Resume-scope ledger for a weak backend bullet."""
    return build_evidence_ledger(
        "Helped with backend development",
        extracted=sample_extracted,
        section_bullets=sample_section_bullets,
    )

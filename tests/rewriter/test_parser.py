"""Tests for response parsing."""

import json

from rewriter.parser import (
    DEFAULT_REASONING,
    extract_improved_text_fallback,
    extract_json_object,
    parse_llm_response,
    parse_with_fallback,
)
from rewriter.types import EvidenceMapItem


class TestParseLlmResponse:
    """Tests for the JSON path."""

    def test_full_response(self):
        raw = json.dumps({
            "improved": "Developed backend services",
            "evidence_map": [{"improved_span": "backend services", "evidence_ids": ["E1"]}],
            "reasoning": "Stronger verb",
            "changes": {"stronger_verb": True},
        })
        parsed = parse_llm_response(raw)
        assert parsed.improved == "Developed backend services"
        assert parsed.evidence_map == (EvidenceMapItem("backend services", ("E1",)),)
        assert parsed.reasoning == "Stronger verb"
        assert parsed.changes["stronger_verb"] is True
        assert parsed.changes["added_metric"] is False
        assert not parsed.from_fallback

    def test_json_inside_prose_and_fences(self):
        raw = 'Here you go:\n```json\n{"improved": "Built API", "evidence_map": []}\n```\nThanks'
        parsed = parse_llm_response(raw)
        assert parsed.improved == "Built API"
        assert parsed.reasoning == DEFAULT_REASONING

    def test_missing_required_fields(self):
        assert parse_llm_response('{"improved": "", "evidence_map": []}') is None
        assert parse_llm_response('{"improved": "Built API"}') is None
        assert parse_llm_response('{"improved": "Built API", "evidence_map": "E1"}') is None
        assert parse_llm_response("no json here") is None
        assert parse_llm_response("") is None

    def test_extract_json_object_skips_non_objects(self):
        assert extract_json_object('[1, 2] then {"a": 1}') == {"a": 1}
        assert extract_json_object("{broken") is None


class TestFallback:
    """Tests for the regex fallback path."""

    def test_improved_key_in_broken_json(self):
        raw = '{"improved": "Built API gateway", "evidence_map": [oops'
        assert extract_improved_text_fallback(raw) == "Built API gateway"

    def test_truncated_reply(self):
        raw = '{"improved": "Led migration of billing services to AWS'
        assert extract_improved_text_fallback(raw) == "Led migration of billing services to AWS"

    def test_escaped_quotes_are_kept(self):
        raw = '{"improved": "Shipped \\"Atlas\\" pricing API", "evidence_map": [oops'
        assert extract_improved_text_fallback(raw) == 'Shipped "Atlas" pricing API'

    def test_value_ending_in_quote(self):
        raw = '{"improved": "Launched \\"Atlas\\"", "evidence_map": [oops'
        assert extract_improved_text_fallback(raw) == 'Launched "Atlas"'

    def test_truncated_reply_parses_as_fallback(self):
        parsed = parse_with_fallback('{"improved": "Led migration to AWS')
        assert parsed.improved == "Led migration to AWS"
        assert parsed.from_fallback

    def test_prefix_line(self):
        assert extract_improved_text_fallback("Result: Built API gateway\nDone") == "Built API gateway"

    def test_nothing_found(self):
        assert extract_improved_text_fallback("I cannot help with that") is None

    def test_fallback_never_has_evidence(self):
        parsed = parse_with_fallback('{"improved": "Built API gateway", "evidence_map": [oops')
        assert parsed.from_fallback
        assert parsed.evidence_map == ()
        assert not any(parsed.changes.values())

    def test_json_path_preferred(self):
        parsed = parse_with_fallback('{"improved": "Built API", "evidence_map": []}')
        assert not parsed.from_fallback

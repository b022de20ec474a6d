"""Tests for the lexicon and the verb, fluff, metric and pattern detectors."""

import json

import pytest

from rewriter.fluff import count_fluff, detect_fluff, remove_fluff
from rewriter.lexicon import clear_lexicon_cache, load_lexicon
from rewriter.metrics import (
    detect_implied_metrics,
    detect_metrics,
    extract_numbers,
    find_new_numbers,
    find_new_scale_claims,
)
from rewriter.patterns import extract_company_names, extract_tech_terms
from rewriter.verbs import (
    find_leading_weak_verb,
    has_passive_voice,
    starts_with_strong_verb,
    starts_with_weak_verb,
    suggest_verb_upgrades,
)


class TestLexicon:
    """Tests for lexicon loading and overrides."""

    def test_packaged_lexicon_loads(self, lexicon):
        assert "helped with" in lexicon.weak_verbs
        assert "developed" in lexicon.strong_verbs
        assert lexicon.tense_forms["lead"] == "led"
        assert lexicon.past_forms["led"] == "lead"
        assert lexicon.fluff_replacement("in order to") == "to"

    def test_load_is_cached(self):
        assert load_lexicon() is load_lexicon()

    def test_custom_directory(self, tmp_path):
        (tmp_path / "verb_mapping.json").write_text(json.dumps({
            "weak_verbs": {"did": {"upgrades": ["Executed"]}},
            "strong_verbs": ["executed"],
            "tense_forms": {"execute": "executed"},
        }))
        (tmp_path / "fluff_phrases.json").write_text(json.dumps({"fillers": {"very": ""}}))
        (tmp_path / "metric_patterns.json").write_text(json.dumps({"patterns": {"pct": r"\d+%"}}))
        try:
            custom = load_lexicon(str(tmp_path))
            assert list(custom.weak_verbs) == ["did"]
            assert suggest_verb_upgrades("did", lexicon=custom) == ["Executed"]
            assert not detect_fluff("Basically done", custom)
        finally:
            clear_lexicon_cache()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_lexicon(str(tmp_path))

    def test_with_overrides(self, lexicon):
        custom = lexicon.with_overrides(strong_verbs=frozenset({"shipped"}))
        assert starts_with_strong_verb("Shipped billing", custom)
        assert not starts_with_strong_verb("Developed billing", custom)
        assert starts_with_strong_verb("Developed billing", lexicon)


class TestVerbs:
    """Tests for weak and strong verb detection."""

    def test_leading_weak_verb_prefers_longest_phrase(self):
        match = find_leading_weak_verb("- Helped with the launch")
        assert match.phrase == "helped with"
        assert "- Helped with the launch"[match.start:match.end] == "Helped with"

    def test_weak_start_patterns(self):
        assert starts_with_weak_verb("Responsible for payroll")
        assert not starts_with_weak_verb("Owned payroll")

    def test_present_tense_strong_verb(self):
        assert starts_with_strong_verb("Leads platform team")
        assert starts_with_strong_verb("Build pipelines")

    def test_passive_voice(self):
        assert has_passive_voice("The service was rewritten in Go")
        assert not has_passive_voice("Rewrote the service in Go")

    def test_suggestions_ranked_by_context(self):
        assert suggest_verb_upgrades("worked on", ["api"])[0] == "Built"
        assert suggest_verb_upgrades("worked on", []) == ["Developed", "Built", "Delivered"]
        assert suggest_verb_upgrades("unknown phrase") == []


class TestFluff:
    """Tests for fluff detection and removal."""

    def test_longer_phrase_wins(self):
        matches = detect_fluff("Successfully completed the rollout")
        assert [(m.phrase, m.category) for m in matches] == [
            ("successfully completed", "redundant_phrases")
        ]

    def test_remove_fluff(self):
        assert remove_fluff("Very effectively managed a variety of projects") == "Managed projects"
        assert remove_fluff("Met in order to plan releases") == "Met to plan releases"

    def test_count_fluff(self):
        assert count_fluff("Basically just shipped things") == 3
        assert count_fluff("Shipped billing") == 0


class TestMetrics:
    """Tests for metric detection and numeric tokens."""

    def test_detect_metric_types(self):
        types = {m.type for m in detect_metrics("Cut costs 40% and saved $2M in 3 months")}
        assert {"percentage", "dollar_amount", "time"} <= types

    def test_implied_metrics(self):
        assert detect_implied_metrics("Onboarded several clients") == ["several"]

    def test_extract_numbers_kinds(self):
        tokens = extract_numbers("Saved $1.5M, grew 40%, served 1M+ users, 3x faster, five teams")
        assert [(t.text, t.kind) for t in tokens] == [
            ("$1.5M", "currency"),
            ("40%", "percentage"),
            ("1M+", "plain"),
            ("3x", "multiplier"),
            ("five", "plain"),
        ]
        assert tokens[0].value == 1_500_000
        assert tokens[4].value == 5

    def test_extract_spelled_and_prefixed_numbers(self):
        tokens = extract_numbers("Cut spend forty percent, x10 throughput, eleven-person team, a dozen hires")
        assert [(t.text, t.kind, t.value) for t in tokens] == [
            ("forty percent", "percentage", 40),
            ("x10", "multiplier", 10),
            ("eleven", "plain", 11),
            ("dozen", "plain", 12),
        ]

    def test_restated_number_is_not_new(self):
        assert find_new_numbers("Achieved 40% reduction", "Reduced costs by 40%") == []

    def test_kind_mismatch_is_new(self):
        new = find_new_numbers("Saved 40%", "Saved $40")
        assert [t.text for t in new] == ["40%"]

    def test_number_from_evidence_is_not_new(self):
        assert find_new_numbers("Led 5 engineers", "Led engineers", ["Team of five engineers"]) == []

    def test_scale_claims(self):
        assert find_new_scale_claims("Built mission-critical API", "Built API") == ["mission-critical"]
        assert find_new_scale_claims("Built global API", "Built API", ["Launched global API"]) == []


class TestPatterns:
    """Tests for tech-term and company extraction."""

    def test_tech_terms_and_aliases(self):
        assert extract_tech_terms("Moved k8s jobs to Postgres via GitHub Actions") == [
            "kubernetes", "postgresql", "github actions"
        ]

    def test_case_sensitive_terms(self):
        assert extract_tech_terms("Rewrote the parser in Go") == ["golang"]
        assert extract_tech_terms("Led go-to-market launch") == []

    def test_company_names(self):
        assert "Goldman Sachs" in extract_company_names("Partnered with Goldman Sachs on payments")
        assert extract_company_names("Presented to the Finance team") == []

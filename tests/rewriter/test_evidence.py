"""Tests for evidence ledger construction and evidence-map helpers."""

import pytest

from rewriter.evidence import (
    build_evidence_ledger,
    build_section_evidence_ledger,
    build_summary_evidence_ledger,
    calculate_evidence_coverage,
    find_evidence_for_term,
    get_all_normalized_terms,
    get_evidence_by_type,
    get_referenced_evidence_ids,
    normalize_terms,
    parse_evidence_map,
)
from rewriter.exceptions import EvidenceBuildError
from rewriter.types import (
    EvidenceItem,
    EvidenceLedger,
    EvidenceMapItem,
    EvidenceScope,
    EvidenceType,
)


class TestBuildEvidenceLedger:
    """Tests for build_evidence_ledger."""

    def test_original_is_always_e1(self):
        ledger = build_evidence_ledger("Built API")
        assert ledger.items[0].id == "E1"
        assert ledger.items[0].type == EvidenceType.BULLET
        assert ledger.items[0].text == "Built API"

    def test_resume_scope_includes_every_category(self, bullet_ledger):
        assert bullet_ledger.ids == {
            "E1", "E2", "E3", "E4",
            "E_skills", "E_tools", "E_titles", "E_industries",
        }
        assert bullet_ledger.get("E_skills").text == "Python, Node.js"
        assert bullet_ledger.get("E_tools").normalized_terms == {"docker", "postgresql"}

    def test_section_scope_keeps_skills_and_tools_only(self, sample_extracted):
        ledger = build_evidence_ledger(
            "Built API", extracted=sample_extracted, scope=EvidenceScope.SECTION
        )
        assert ledger.ids == {"E1", "E_skills", "E_tools"}

    def test_bullet_only_scope_is_self_evidence(self, sample_extracted, sample_section_bullets):
        ledger = build_evidence_ledger(
            "Built API",
            extracted=sample_extracted,
            section_bullets=sample_section_bullets,
            scope="bullet_only",
        )
        assert ledger.ids == {"E1"}
        assert ledger.scope == EvidenceScope.BULLET_ONLY

    def test_enrichment_off_drops_entity_items(self, sample_extracted):
        ledger = build_evidence_ledger(
            "Built API", extracted=sample_extracted, allow_resume_enrichment=False
        )
        assert ledger.ids == {"E1"}
        assert ledger.allow_resume_enrichment is False

    def test_duplicate_and_empty_section_bullets_skipped(self):
        ledger = build_evidence_ledger(
            "Built API",
            section_bullets=["built api", "", "Wrote docs", "Wrote docs"],
        )
        assert [item.text for item in ledger.items] == ["Built API", "Wrote docs"]

    def test_malformed_entities_raise(self):
        with pytest.raises(EvidenceBuildError) as exc:
            build_evidence_ledger("Built API", extracted={"skills": "Python"})
        assert exc.value.category == "skills"

    def test_malformed_entities_raise_even_without_enrichment(self):
        with pytest.raises(EvidenceBuildError):
            build_evidence_ledger(
                "Built API", extracted={"tools": [1, 2]}, allow_resume_enrichment=False
            )

    def test_non_mapping_entities_raise(self):
        with pytest.raises(EvidenceBuildError):
            build_evidence_ledger("Built API", extracted=["Python"])

    def test_duplicate_ids_rejected(self):
        item = EvidenceItem(id="E1", type=EvidenceType.BULLET, text="x")
        with pytest.raises(EvidenceBuildError):
            EvidenceLedger(items=(item, item))


class TestSectionAndSummaryLedgers:
    """Tests for section and summary ledgers."""

    def test_section_ledger_numbers_each_bullet(self, sample_section_bullets):
        ledger = build_section_evidence_ledger(sample_section_bullets)
        assert [item.id for item in ledger.items] == ["E1", "E2", "E3"]
        assert all(item.type == EvidenceType.SECTION for item in ledger.items)

    def test_section_ledger_needs_a_bullet(self):
        with pytest.raises(EvidenceBuildError):
            build_section_evidence_ledger(["", "  "])

    def test_summary_ledger_uses_experience_bullets(self, sample_extracted):
        ledger = build_summary_evidence_ledger(
            "Backend engineer", sample_extracted, ["Shipped billing APIs"]
        )
        assert ledger.scope == EvidenceScope.RESUME
        assert ledger.get("E2").text == "Shipped billing APIs"
        assert "E_titles" in ledger.ids


class TestLookups:
    """Tests for ledger queries."""

    def test_get_evidence_by_type(self, bullet_ledger):
        section = get_evidence_by_type(bullet_ledger, "section")
        assert [item.id for item in section] == ["E2", "E3", "E4"]

    def test_normalized_terms_keep_numbers_and_tools(self):
        terms = normalize_terms("Reduced errors by 35% using Node.js")
        assert "35%" in terms
        assert "node.js" in terms
        assert "by" not in terms

    def test_all_normalized_terms_is_union(self, bullet_ledger):
        terms = get_all_normalized_terms(bullet_ledger)
        assert {"python", "docker", "35%", "reconciliation"} <= terms

    def test_find_evidence_for_term(self, bullet_ledger):
        assert find_evidence_for_term(bullet_ledger, "Docker").id == "E2"
        assert find_evidence_for_term(bullet_ledger, "kubernetes") is None


class TestEvidenceMaps:
    """Tests for parsing and inspecting evidence maps."""

    def test_parse_evidence_map(self):
        parsed = parse_evidence_map([
            {"improved_span": " Built API ", "evidence_ids": ["E1", " "]},
            {"improved_span": "with Docker", "evidence_ids": "E2"},
            {"improved_span": "", "evidence_ids": ["E1"]},
            "not a dict",
        ])
        assert parsed == (
            EvidenceMapItem("Built API", ("E1",)),
            EvidenceMapItem("with Docker", ("E2",)),
        )

    def test_parse_evidence_map_rejects_non_list(self):
        assert parse_evidence_map({"improved_span": "x"}) == ()

    def test_referenced_ids(self):
        evidence_map = [EvidenceMapItem("a", ("E1", "E2")), EvidenceMapItem("b", ("E2",))]
        assert get_referenced_evidence_ids(evidence_map) == {"E1", "E2"}

    def test_coverage(self):
        evidence_map = [EvidenceMapItem("Built API", ("E1",))]
        assert calculate_evidence_coverage("Built API", evidence_map) == 1.0
        assert calculate_evidence_coverage("Built API fast", evidence_map) < 1.0

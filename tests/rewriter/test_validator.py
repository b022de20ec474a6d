"""Tests for the fabrication validator."""

from rewriter.evidence import build_evidence_ledger
from rewriter.types import EvidenceMapItem, Severity, ValidationCode
from rewriter.validator import (
    format_validation_result,
    get_critical_errors,
    get_warnings,
    has_fabrication_errors,
    validate_evidence_map,
    validate_rewrite,
)


def codes(result):
    return [item.code for item in result.items]


class TestFabricationChecks:
    """Tests for numbers, tools, companies and scale claims."""

    def test_new_number_is_critical(self):
        ledger = build_evidence_ledger("Built API")
        improved = "Built API serving 1M+ requests/day"
        result = validate_rewrite(
            "Built API", improved, ledger, [EvidenceMapItem(improved, ("E1",))]
        )
        assert ValidationCode.NEW_NUMBER_ADDED in codes(result)
        assert not result.passed
        assert has_fabrication_errors(result)

    def _number_codes(self, original, improved):
        ledger = build_evidence_ledger(original)
        return codes(validate_rewrite(original, improved, ledger, [EvidenceMapItem(improved, ("E1",))]))

    def test_word_percentage_is_critical(self):
        found = self._number_codes(
            "Reduced infrastructure costs", "Reduced infrastructure costs by forty percent"
        )
        assert ValidationCode.NEW_NUMBER_ADDED in found

    def test_prefixed_multiplier_is_critical(self):
        found = self._number_codes("Improved build throughput", "Improved build throughput x10")
        assert ValidationCode.NEW_NUMBER_ADDED in found

    def test_hyphenated_number_word_is_critical(self):
        found = self._number_codes("Led an engineering team", "Led an eleven-person engineering team")
        assert ValidationCode.NEW_NUMBER_ADDED in found

    def test_large_number_words_are_critical(self):
        assert ValidationCode.NEW_NUMBER_ADDED in self._number_codes(
            "Served customers", "Served a million customers"
        )
        assert ValidationCode.NEW_NUMBER_ADDED in self._number_codes(
            "Hired engineers", "Hired a dozen engineers"
        )

    def test_word_percentage_restates_digits(self):
        found = self._number_codes("Reduced costs by 40%", "Reduced costs by forty percent")
        assert ValidationCode.NEW_NUMBER_ADDED not in found

    def test_restated_number_passes(self):
        ledger = build_evidence_ledger("Reduced costs by 40%")
        result = validate_rewrite(
            "Reduced costs by 40%",
            "Achieved 40% reduction in infrastructure costs",
            ledger,
            [EvidenceMapItem("40% reduction", ("E1",))],
        )
        assert ValidationCode.NEW_NUMBER_ADDED not in codes(result)
        assert ValidationCode.UNSUPPORTED_METRIC_CLAIM not in codes(result)

    def test_new_tool_is_critical(self):
        ledger = build_evidence_ledger("Built backend services")
        improved = "Built backend services with Kubernetes"
        result = validate_rewrite(
            "Built backend services", improved, ledger, [EvidenceMapItem(improved, ("E1",))]
        )
        assert ValidationCode.NEW_TOOL_ADDED in codes(result)

    def test_tool_from_ledger_is_allowed(self):
        ledger = build_evidence_ledger("Built backend services", extracted={"tools": ["Docker"]})
        improved = "Built backend services with Docker"
        result = validate_rewrite(
            "Built backend services",
            improved,
            ledger,
            [EvidenceMapItem("Built backend services", ("E1",)), EvidenceMapItem("Docker", ("E_tools",))],
        )
        assert result.passed
        assert not has_fabrication_errors(result)

    def test_new_company_is_critical(self):
        ledger = build_evidence_ledger("Built payment integrations")
        improved = "Built payment integrations with Goldman Sachs"
        result = validate_rewrite(
            "Built payment integrations", improved, ledger, [EvidenceMapItem(improved, ("E1",))]
        )
        assert ValidationCode.NEW_COMPANY_ADDED in codes(result)

    def test_scale_claim_is_critical(self):
        ledger = build_evidence_ledger("Maintained billing service")
        improved = "Maintained mission-critical billing service"
        result = validate_rewrite(
            "Maintained billing service", improved, ledger, [EvidenceMapItem(improved, ("E1",))]
        )
        assert ValidationCode.UNSUPPORTED_SCALE_CLAIM in codes(result)


class TestEvidenceMapChecks:
    """Tests for evidence-map integrity."""

    def test_unknown_id_reported_once(self):
        ledger = build_evidence_ledger("Managed the team roadmap")
        result = validate_rewrite(
            "Managed the team roadmap",
            "Owned the team roadmap",
            ledger,
            [EvidenceMapItem("Owned the team roadmap", ("INVALID_ID_123",))],
        )
        assert codes(result).count(ValidationCode.INVALID_EVIDENCE_ID) == 1
        assert not result.passed

    def test_span_not_found(self):
        ledger = build_evidence_ledger("Managed the team roadmap")
        items = validate_evidence_map(
            "Owned the team roadmap", [EvidenceMapItem("Owned the budget", ("E1",))], ledger
        )
        assert [item.code for item in items] == [ValidationCode.SPAN_NOT_FOUND]

    def test_weak_evidence_match_is_warning(self):
        ledger = build_evidence_ledger("Managed the team roadmap")
        items = validate_evidence_map(
            "Coordinated quarterly vendor negotiations",
            [EvidenceMapItem("Coordinated quarterly vendor negotiations", ("E1",))],
            ledger,
        )
        assert [item.code for item in items] == [ValidationCode.WEAK_EVIDENCE_MATCH]
        assert items[0].severity == Severity.WARNING

    def test_empty_map_with_changed_text_fails_closed(self):
        ledger = build_evidence_ledger("Managed the team roadmap")
        result = validate_rewrite("Managed the team roadmap", "Owned the team roadmap", ledger)
        assert codes(result) == [ValidationCode.UNMAPPED_REWRITE]
        assert not result.passed

    def test_empty_map_with_unchanged_text_passes(self):
        ledger = build_evidence_ledger("Managed the team roadmap")
        result = validate_rewrite("Managed the team roadmap", "managed  the team roadmap", ledger)
        assert result.passed

    def test_number_outside_mapped_spans(self):
        ledger = build_evidence_ledger("Cut costs by 40%")
        result = validate_rewrite(
            "Cut costs by 40%",
            "Reduced vendor costs by 40%",
            ledger,
            [EvidenceMapItem("Reduced vendor costs", ("E1",))],
        )
        assert ValidationCode.UNSUPPORTED_METRIC_CLAIM in codes(result)
        assert ValidationCode.NEW_NUMBER_ADDED not in codes(result)


class TestDiagnostics:
    """Tests for warning-level diagnostics."""

    def test_length_explosion(self):
        original = "Built dashboards"
        improved = "Built dashboards for finance and operations leadership reviews"
        result = validate_rewrite(
            original, improved, build_evidence_ledger(original), [EvidenceMapItem(improved, ("E1",))]
        )
        assert ValidationCode.LENGTH_EXPLOSION in codes(result)
        assert result.passed

    def test_length_check_can_be_disabled(self):
        original = "Built dashboards"
        improved = "Built dashboards for finance and operations leadership reviews"
        result = validate_rewrite(
            original, improved, build_evidence_ledger(original),
            [EvidenceMapItem(improved, ("E1",))], check_length=False,
        )
        assert ValidationCode.LENGTH_EXPLOSION not in codes(result)

    def test_low_overlap(self):
        original = "Managed the team roadmap"
        improved = "Coordinated quarterly vendor negotiations"
        result = validate_rewrite(
            original, improved, build_evidence_ledger(original), [EvidenceMapItem(improved, ("E1",))]
        )
        assert ValidationCode.LOW_OVERLAP in codes(result)

    def test_still_weak_opening(self):
        original = "Helped with onboarding"
        improved = "Helped with onboarding new engineers"
        result = validate_rewrite(
            original, improved, build_evidence_ledger(original), [EvidenceMapItem(improved, ("E1",))]
        )
        weak = [item for item in result.items if item.code == ValidationCode.WEAK_VERB]
        assert weak and weak[0].span == "Helped with"
        assert result.passed


class TestResultHelpers:
    """Tests for result helpers."""

    def test_split_and_format(self):
        ledger = build_evidence_ledger("Built API")
        improved = "Helped build API for 3 teams"
        result = validate_rewrite("Built API", improved, ledger, [EvidenceMapItem(improved, ("E1",))])

        assert all(item.severity == Severity.CRITICAL for item in get_critical_errors(result))
        assert all(item.severity == Severity.WARNING for item in get_warnings(result))
        text = format_validation_result(result)
        assert text.startswith("FAILED")
        assert "NEW_NUMBER_ADDED" in text

    def test_clean_result_format(self):
        ledger = build_evidence_ledger("Built API")
        result = validate_rewrite("Built API", "Built API", ledger)
        assert format_validation_result(result) == "PASSED: no issues"
        assert result.to_dict() == {"passed": True, "items": []}

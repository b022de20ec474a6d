"""Tests for the micro-action planner and its detectors."""

import pytest

from rewriter.evidence import build_evidence_ledger
from rewriter.exceptions import PlanningError
from rewriter.planner import (
    allow_resume_enrichment_in_bullet,
    analyze_text,
    build_constraints,
    can_improve,
    is_tool_relevant,
    plan_micro_actions,
)
from rewriter.types import ActionType, MicroAction, RewriteGoal


class TestVerbUpgrade:
    """Tests for weak-verb planning."""

    def test_weak_opening_plans_verb_upgrade(self):
        ledger = build_evidence_ledger(
            "Helped with backend development", extracted={"skills": ["Python", "Node.js"]}
        )
        plan = plan_micro_actions("Helped with backend development", ledger)

        assert plan.has_action(ActionType.VERB_UPGRADE)
        action = plan.transformations[0]
        assert action.data["from"] == "Helped with"
        assert action.data["suggestions"][:2] == ["Developed", "Engineered"]
        assert plan.goal == RewriteGoal.IMPACT

    def test_weak_verb_mid_sentence_is_not_upgraded(self):
        ledger = build_evidence_ledger("Designed onboarding that helped new hires")
        plan = plan_micro_actions("Designed onboarding that helped new hires", ledger)
        assert not plan.has_action(ActionType.VERB_UPGRADE)

    def test_weak_verb_issue_without_detection_adds_specificity(self):
        ledger = build_evidence_ledger("Onboarding guide for new hires")
        plan = plan_micro_actions("Onboarding guide for new hires", ledger, issues=["weak_verb"])
        targets = [a.data.get("target") for a in plan.transformations]
        assert "verb" in targets


class TestFluffAndMetrics:
    """Tests for fluff removal and metric planning."""

    def test_fluff_phrases_become_actions(self):
        text = "Successfully completed various migrations in order to cut costs"
        plan = plan_micro_actions(text, build_evidence_ledger(text))
        fluff = [a for a in plan.transformations if a.type == ActionType.FLUFF_REMOVAL]
        assert [a.data["phrase"] for a in fluff] == [
            "Successfully completed", "various", "in order to"
        ]
        assert fluff[0].data["replacement"] == "completed"
        assert plan.goal == RewriteGoal.CONCISENESS

    def test_metric_surfaced_from_matching_section_bullet(self):
        text = "Rebuilt reconciliation service"
        ledger = build_evidence_ledger(
            text,
            section_bullets=["Rebuilt reconciliation service, cutting errors by 35%"],
        )
        plan = plan_micro_actions(text, ledger)
        metric = [a for a in plan.transformations if a.type == ActionType.METRIC_SURFACING]
        assert len(metric) == 1
        assert metric[0].evidence_ids == ("E2",)
        assert metric[0].data["metrics"] == ["35%"]

    def test_unrelated_section_metric_is_not_surfaced(self):
        text = "Rebuilt reconciliation service"
        ledger = build_evidence_ledger(text, section_bullets=["Hired 4 designers for marketing"])
        plan = plan_micro_actions(text, ledger)
        assert not plan.has_action(ActionType.METRIC_SURFACING)

    def test_no_metric_issue_asks_for_outcome_without_numbers(self):
        text = "Rebuilt reconciliation service"
        plan = plan_micro_actions(text, build_evidence_ledger(text), issues=["no_metric"])
        outcome = [a for a in plan.transformations if a.data.get("target") == "outcome"]
        assert outcome and outcome[0].type == ActionType.SPECIFICITY_INCREASE

    def test_surfacing_without_evidence_is_rejected(self):
        with pytest.raises(PlanningError):
            MicroAction(type=ActionType.TOOL_SURFACING, data={"tool": "Docker"})


class TestToolSurfacing:
    """Tests for tool enrichment rules."""

    def test_relevant_skills_are_surfaced_with_evidence(self):
        ledger = build_evidence_ledger(
            "Helped with backend development", extracted={"skills": ["Python", "Node.js"]}
        )
        plan = plan_micro_actions("Helped with backend development", ledger)
        tools = [a for a in plan.transformations if a.type == ActionType.TOOL_SURFACING]
        assert [a.data["tool"] for a in tools] == ["Python", "Node.js"]
        assert all("E_skills" in a.evidence_ids for a in tools)

    def test_irrelevant_tool_is_skipped(self):
        text = "Planned quarterly offsite for the sales team"
        ledger = build_evidence_ledger(text, extracted={"tools": ["Figma"]})
        plan = plan_micro_actions(text, ledger)
        assert not plan.has_action(ActionType.TOOL_SURFACING)

    def test_experience_bullet_asks_about_unconfirmed_tool(self):
        text = "Worked on backend services"
        ledger = build_evidence_ledger(
            text,
            extracted={"tools": ["Docker"]},
            section_bullets=["Wrote onboarding docs"],
        )
        plan = plan_micro_actions(text, ledger, section_type="experience")
        assert not plan.has_action(ActionType.TOOL_SURFACING)
        assert plan.needs_user_input == ("Did you use Docker in this role?",)

    def test_experience_bullet_accepts_tool_seen_in_same_role(self):
        text = "Worked on backend services"
        ledger = build_evidence_ledger(
            text,
            extracted={"tools": ["Docker"]},
            section_bullets=["Containerized billing with Docker"],
        )
        plan = plan_micro_actions(text, ledger, section_type="experience")
        tool = [a for a in plan.transformations if a.type == ActionType.TOOL_SURFACING]
        assert tool[0].evidence_ids == ("E_tools", "E2")

    def test_at_most_two_tools(self):
        text = "Worked on backend API service"
        ledger = build_evidence_ledger(
            text, extracted={"tools": ["Python", "Docker", "PostgreSQL", "AWS"]}
        )
        plan = plan_micro_actions(text, ledger)
        tools = [a for a in plan.transformations if a.type == ActionType.TOOL_SURFACING]
        assert len(tools) == 2

    def test_enrichment_rules(self):
        ledger = build_evidence_ledger("Worked on dashboards", extracted={"tools": ["Tableau"]})
        assert allow_resume_enrichment_in_bullet("Tableau", ledger, "summary")
        assert allow_resume_enrichment_in_bullet("Tableau", ledger, None)
        assert not allow_resume_enrichment_in_bullet("Tableau", ledger, "experience")
        closed = build_evidence_ledger("Worked on dashboards", allow_resume_enrichment=False)
        assert not allow_resume_enrichment_in_bullet("Tableau", closed, "summary")

    def test_tool_relevance(self):
        assert is_tool_relevant("React", "Built dashboard components")
        assert not is_tool_relevant("React", "Negotiated vendor contracts")
        assert is_tool_relevant("Salesforce", "Negotiated vendor contracts")


class TestRoleAndConstraints:
    """Tests for role tailoring and constraint derivation."""

    def test_role_tailoring_when_role_words_missing(self):
        text = "Built billing service"
        plan = plan_micro_actions(text, build_evidence_ledger(text), target_role="Platform Engineer")
        role = [a for a in plan.transformations if a.type == ActionType.ROLE_TAILORING]
        assert role[0].data["target_role"] == "Platform Engineer"

    def test_constraints_are_allow_sets(self, bullet_ledger):
        constraints = build_constraints(bullet_ledger, 200)
        assert "35%" in constraints.allowed_numbers
        assert {"python", "node.js", "docker", "postgresql"} <= constraints.allowed_tools
        assert "kubernetes" in constraints.forbidden_tools
        assert constraints.forbids_tool("Kubernetes")
        assert not constraints.forbids_tool("Docker")

    def test_passive_voice_plans_active_rewrite(self):
        text = "Reports were generated for the finance team"
        plan = plan_micro_actions(text, build_evidence_ledger(text))
        assert any(a.data.get("target") == "voice" for a in plan.transformations)

    def test_default_max_length_by_content_type(self):
        text = "Built billing service"
        ledger = build_evidence_ledger(text)
        assert plan_micro_actions(text, ledger).constraints.max_length == 200
        assert plan_micro_actions(text, ledger, content_type="summary").constraints.max_length == 500


class TestCanImprove:
    """Tests for the improvement gate."""

    def test_strong_bullet_with_metric_cannot_improve(self):
        assert not can_improve("Developed REST API serving 1M+ requests/day, reducing latency by 40%")

    def test_weak_opening_can_improve(self):
        assert can_improve("Helped develop REST API serving 1M+ requests/day, reducing latency by 40%")

    def test_short_and_empty_text(self):
        assert can_improve("Did stuff")
        assert not can_improve("   ")

    def test_short_strong_bullet_can_improve(self):
        assert can_improve("Cut costs by 40%")
        assert not can_improve("Reduced infrastructure costs by 40% across 12 regions")

    def test_fluff_can_improve(self):
        assert can_improve("Developed very robust REST API serving 1M+ requests/day")

    def test_analyze_text_reports_diagnostics(self):
        report = analyze_text("Helped with various reports, reducing costs by 10%")
        assert report["can_improve"] is True
        assert report["weak_verbs"] == ["helped with"]
        assert report["fluff"] == ["various"]
        assert "10%" in report["metrics"]
        assert report["passive_voice"] is False

"""Prompt templates and builders for evidence-anchored rewrites."""

from dataclasses import dataclass
from typing import Iterable

from .types import (
    ActionType,
    EvidenceLedger,
    MicroAction,
    RewriteConstraints,
    RewritePlan,
    ValidationItem,
)

DEFAULT_TARGET_ROLE = "General professional role"
NO_TRANSFORMATIONS = "No specific transformations planned"


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str


SYSTEM_PROMPT_BASE = """You are a precise resume editor. You improve wording without changing facts.

You will receive the ORIGINAL text, an EVIDENCE LEDGER of facts about the candidate, and a list of planned TRANSFORMATIONS.

Rules:
- NEVER add a number, percentage, dollar amount or multiplier that is not in the original or the ledger
- NEVER add a tool, technology or framework that is not in the original or the ledger
- NEVER add a company, client or product name that is not in the original or the ledger
- NEVER add scale language ("massive", "enterprise-wide", "millions of") the evidence does not support
- NEVER change what the candidate did, only how it is worded
- NEVER cite an evidence id that is not listed in the ledger

Every part of your rewrite must be mapped to the evidence ids that support it.
If you cannot improve the text without breaking these rules, return the original text unchanged."""

SYSTEM_PROMPT_BULLET = SYSTEM_PROMPT_BASE + """

You are rewriting a single resume bullet:
- Open with a strong past-tense action verb
- Keep it to one line, no trailing period
- Prefer outcome and scope over responsibilities"""

SYSTEM_PROMPT_SUMMARY = SYSTEM_PROMPT_BASE + """

You are rewriting a professional summary:
- 2-4 sentences, first person implied (no "I")
- Lead with the candidate's role and strongest evidenced strengths
- Avoid clichés such as "results-driven" or "proven track record" entirely"""

SYSTEM_PROMPT_SECTION = SYSTEM_PROMPT_BASE + """

You are rewriting one bullet of a larger section:
- Keep the tense consistent with the rest of the section
- Do not repeat the opening verb used by the other bullets
- Keep it to one line, no trailing period"""

RESPONSE_FORMAT = """Respond with ONLY a JSON object:
{{
  "improved": "the rewritten text",
  "evidence_map": [
    {{"improved_span": "exact span copied from improved", "evidence_ids": ["E1"]}}
  ],
  "reasoning": "one sentence on what changed",
  "changes": {{
    "stronger_verb": true,
    "added_metric": false,
    "more_specific": true,
    "removed_fluff": false,
    "tailored_to_role": false
  }}
}}"""

USER_PROMPT_BULLET = """Rewrite this resume bullet.

## ORIGINAL:
{original}

## TARGET ROLE: {target_role}

## EVIDENCE LEDGER (the only facts you may use):
{evidence}

## TRANSFORMATIONS:
{transformations}

## CONSTRAINTS:
{constraints}

""" + RESPONSE_FORMAT

USER_PROMPT_SUMMARY = """Rewrite this professional summary.

## ORIGINAL SUMMARY:
{original}

## TARGET ROLE: {target_role}

## EVIDENCE LEDGER (the only facts you may use):
{evidence}

## TRANSFORMATIONS:
{transformations}

## CONSTRAINTS:
{constraints}

""" + RESPONSE_FORMAT

USER_PROMPT_SECTION = """Rewrite this bullet from the section "{section_title}".

## ORIGINAL:
{original}

## OTHER BULLETS IN THIS SECTION (context only):
{siblings}

## TARGET ROLE: {target_role}

## EVIDENCE LEDGER (the only facts you may use):
{evidence}

## TRANSFORMATIONS:
{transformations}

## CONSTRAINTS:
{constraints}

""" + RESPONSE_FORMAT

USER_PROMPT_RETRY = """Your previous rewrite was REJECTED by validation.

## ORIGINAL:
{original}

## VALIDATION ERRORS:
{errors}

## EVIDENCE LEDGER (the only facts you may use):
{evidence}

Fix every error above. Remove any claim you cannot map to a ledger id.
If in doubt, stay closer to the original wording.

## PREVIOUS INSTRUCTIONS:
{base_prompt}"""

STRICT_CONSTRAINTS_BLOCK = """

## STRICT CONSTRAINTS:
- Use ONLY numbers that appear verbatim in the original or the ledger
- Use ONLY tools named in the original or the ledger
- Do NOT name any organization that is not in the original or the ledger
- Map EVERY span of the rewrite to at least one ledger id
- Previous attempt was REJECTED. Be MORE conservative this time."""

GOOD_REWRITE_EXAMPLES = [
    {
        "original": "Helped with backend development",
        "evidence": 'E1 (bullet): "Helped with backend development"; E_skills (skills): "Python"',
        "improved": "Developed backend services in Python",
        "why": "Stronger verb; Python comes from the skills evidence",
    },
    {
        "original": "Responsible for reducing costs by 40%",
        "evidence": 'E1 (bullet): "Responsible for reducing costs by 40%"',
        "improved": "Reduced infrastructure costs by 40%",
        "why": "Same metric, active voice",
    },
]

BAD_REWRITE_EXAMPLES = [
    {
        "original": "Built API",
        "improved": "Built API serving 1M+ requests/day",
        "why": "1M+ appears nowhere in the evidence",
    },
    {
        "original": "Managed data pipeline",
        "improved": "Architected enterprise-wide Kafka data platform",
        "why": "Kafka and enterprise-wide scale are not evidenced",
    },
]


# =============================================================================
# Formatters
# =============================================================================


def format_evidence_ledger_for_prompt(ledger: EvidenceLedger) -> str:
    return "\n".join(f'{item.id} ({item.type.value}): "{item.text}"' for item in ledger.items)


def _describe_action(action: MicroAction) -> str:
    data = action.data
    if action.type == ActionType.VERB_UPGRADE:
        suggestions = data.get("suggestions") or []
        if suggestions:
            options = " / ".join(f'"{s}"' for s in suggestions)
            return f'Upgrade verb "{data.get("from")}" to {options}'
        return f'Replace weak verb "{data.get("from")}" with a stronger action verb'
    if action.type == ActionType.FLUFF_REMOVAL:
        if data.get("replacement"):
            return f'Replace "{data.get("phrase")}" with "{data["replacement"]}"'
        return f'Remove "{data.get("phrase")}"'
    if action.type == ActionType.METRIC_SURFACING:
        metrics = ", ".join(data.get("metrics", []))
        return f"Surface metric {metrics} (evidence {', '.join(action.evidence_ids)})"
    if action.type == ActionType.TOOL_SURFACING:
        return f'Mention {data.get("tool")} (evidence {", ".join(action.evidence_ids)})'
    if action.type == ActionType.ROLE_TAILORING:
        keywords = ", ".join(data.get("keywords", []))
        return f'Align wording with the {data.get("target_role")} role ({keywords}) without adding facts'
    return data.get("hint", "Make the text more specific using only the evidence")


def format_transformations_for_prompt(transformations: Iterable[MicroAction]) -> str:
    lines = [f"- {_describe_action(action)}" for action in transformations]
    return "\n".join(lines) if lines else NO_TRANSFORMATIONS


def build_constraint_strings(constraints: RewriteConstraints) -> list[str]:
    lines = [f"Maximum length: {constraints.max_length} characters"]
    if constraints.allowed_numbers:
        lines.append(f"Allowed numbers: {', '.join(sorted(constraints.allowed_numbers))}")
    else:
        lines.append("Allowed numbers: none. Do not add any numbers")
    if constraints.allowed_tools:
        lines.append(f"Allowed tools: {', '.join(sorted(constraints.allowed_tools))}")
    else:
        lines.append("Allowed tools: none. Do not name any tools")
    if constraints.allowed_companies:
        lines.append(f"Allowed organizations: {', '.join(sorted(constraints.allowed_companies))}")
    else:
        lines.append("Do not name any organizations")
    lines.append("Any number, tool or organization not listed above is forbidden")
    return lines


def format_constraints_for_prompt(constraints: RewriteConstraints) -> str:
    return "\n".join(f"- {line}" for line in build_constraint_strings(constraints))


def format_validation_errors_for_prompt(items: Iterable[ValidationItem]) -> str:
    return "\n".join(f"- {item.code.value}: {item.message}" for item in items)


def build_compact_evidence_summary(ledger: EvidenceLedger, max_chars: int = 80) -> str:
    """One short line per item, for logs and token-tight prompts."""
    parts = []
    for item in ledger.items:
        text = item.text if len(item.text) <= max_chars else item.text[: max_chars - 3] + "..."
        parts.append(f"{item.id}: {text}")
    return "; ".join(parts)


def estimate_token_count(text: str) -> int:
    return len(text) // 4


# =============================================================================
# Builders
# =============================================================================


def build_bullet_rewrite_prompt(
    original: str,
    ledger: EvidenceLedger,
    plan: RewritePlan,
    target_role: str | None = None,
) -> PromptPair:
    user = USER_PROMPT_BULLET.format(
        original=original,
        target_role=target_role or DEFAULT_TARGET_ROLE,
        evidence=format_evidence_ledger_for_prompt(ledger),
        transformations=format_transformations_for_prompt(plan.transformations),
        constraints=format_constraints_for_prompt(plan.constraints),
    )
    return PromptPair(system=SYSTEM_PROMPT_BULLET, user=user)


def build_summary_rewrite_prompt(
    original: str,
    ledger: EvidenceLedger,
    plan: RewritePlan,
    target_role: str | None = None,
) -> PromptPair:
    user = USER_PROMPT_SUMMARY.format(
        original=original,
        target_role=target_role or DEFAULT_TARGET_ROLE,
        evidence=format_evidence_ledger_for_prompt(ledger),
        transformations=format_transformations_for_prompt(plan.transformations),
        constraints=format_constraints_for_prompt(plan.constraints),
    )
    return PromptPair(system=SYSTEM_PROMPT_SUMMARY, user=user)


def build_section_rewrite_prompt(
    original: str,
    ledger: EvidenceLedger,
    plan: RewritePlan,
    siblings: Iterable[str] = (),
    section_title: str | None = None,
    target_role: str | None = None,
) -> PromptPair:
    sibling_lines = "\n".join(f"- {s}" for s in siblings if s != original) or "(none)"
    user = USER_PROMPT_SECTION.format(
        original=original,
        section_title=section_title or "Experience",
        siblings=sibling_lines,
        target_role=target_role or DEFAULT_TARGET_ROLE,
        evidence=format_evidence_ledger_for_prompt(ledger),
        transformations=format_transformations_for_prompt(plan.transformations),
        constraints=format_constraints_for_prompt(plan.constraints),
    )
    return PromptPair(system=SYSTEM_PROMPT_SECTION, user=user)


def build_retry_prompt(
    original: str,
    ledger: EvidenceLedger,
    errors: Iterable[ValidationItem],
    base_prompt: PromptPair,
) -> PromptPair:
    """Wrap the previous prompt with the validation errors it produced."""
    user = USER_PROMPT_RETRY.format(
        original=original,
        errors=format_validation_errors_for_prompt(errors),
        evidence=format_evidence_ledger_for_prompt(ledger),
        base_prompt=base_prompt.user,
    )
    return PromptPair(system=base_prompt.system, user=user)


def add_strict_constraints_to_prompt(prompt: PromptPair) -> PromptPair:
    if prompt.user.endswith(STRICT_CONSTRAINTS_BLOCK):
        return prompt
    return PromptPair(system=prompt.system, user=prompt.user + STRICT_CONSTRAINTS_BLOCK)


def add_examples_to_prompt(prompt: PromptPair) -> PromptPair:
    """Append good and bad rewrite examples to the system prompt."""
    lines = ["", "", "GOOD rewrites:"]
    for example in GOOD_REWRITE_EXAMPLES:
        lines.append(f'- "{example["original"]}" -> "{example["improved"]}" ({example["why"]})')
    lines.append("")
    lines.append("BAD rewrites (rejected):")
    for example in BAD_REWRITE_EXAMPLES:
        lines.append(f'- "{example["original"]}" -> "{example["improved"]}" ({example["why"]})')
    return PromptPair(system=prompt.system + "\n".join(lines), user=prompt.user)

"""Parsing of raw generation output into a structured rewrite."""

import json
import re
from dataclasses import dataclass, field
from typing import Any

from .evidence import parse_evidence_map
from .types import EvidenceMapItem

DEFAULT_REASONING = "Changes applied as planned"

CHANGE_FLAGS = ("stronger_verb", "added_metric", "more_specific", "removed_fluff", "tailored_to_role")

# JSON string value of "improved"; a reply cut off mid-string runs to the end.
_IMPROVED_VALUE = re.compile(r'"improved"\s*:\s*"((?:[^"\\]|\\.)*)\\?(?:"|$)', re.DOTALL)
_IMPROVED_LINE = re.compile(r'"?(?:improved|rewritten|result)"?\s*[:=]\s*"?([^\n"]+)', re.IGNORECASE)


@dataclass(frozen=True)
class ParsedResponse:
    improved: str
    evidence_map: tuple[EvidenceMapItem, ...] = ()
    reasoning: str = DEFAULT_REASONING
    changes: dict[str, bool] = field(default_factory=dict, hash=False)
    from_fallback: bool = False


def _strip_code_fences(text: str) -> str:
    if "```json" in text:
        return text.split("```json")[1].split("```")[0]
    if "```" in text:
        parts = text.split("```")
        if len(parts) >= 3:
            return parts[1]
    return text


def extract_json_object(text: str) -> dict[str, Any] | None:
    """First JSON object embedded in text, ignoring surrounding prose."""
    text = _strip_code_fences(text)
    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", text):
        try:
            value, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    return None


def _normalize_changes(raw: Any) -> dict[str, bool]:
    raw = raw if isinstance(raw, dict) else {}
    return {flag: bool(raw.get(flag, False)) for flag in CHANGE_FLAGS}


def parse_llm_response(raw_output: str) -> ParsedResponse | None:
    """Parse the backend's JSON reply.

    Requires a non-empty ``improved`` string and a list ``evidence_map``.
    ``reasoning`` and each ``changes`` flag default when missing.

    Returns:
        ParsedResponse, or None if no valid object is found.
    """
    if not raw_output:
        return None
    data = extract_json_object(raw_output)
    if data is None:
        return None

    improved = data.get("improved")
    if not isinstance(improved, str) or not improved.strip():
        return None
    if not isinstance(data.get("evidence_map"), list):
        return None

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = DEFAULT_REASONING

    return ParsedResponse(
        improved=improved.strip(),
        evidence_map=parse_evidence_map(data["evidence_map"]),
        reasoning=reasoning.strip(),
        changes=_normalize_changes(data.get("changes")),
    )


def _unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"', strict=False)
    except json.JSONDecodeError:
        return value


def extract_improved_text_fallback(raw_output: str) -> str | None:
    """Pull the rewritten text out of malformed output.

    Never produces an evidence map; a fallback rewrite therefore fails
    validation unless the text is unchanged.
    """
    if not raw_output:
        return None
    match = _IMPROVED_VALUE.search(raw_output)
    if match:
        text = _unescape(match.group(1)).strip()
        if text:
            return text
    match = _IMPROVED_LINE.search(raw_output)
    if match:
        text = match.group(1).strip().strip('",')
        if text:
            return text
    return None


def parse_with_fallback(raw_output: str) -> ParsedResponse | None:
    parsed = parse_llm_response(raw_output)
    if parsed is not None:
        return parsed
    improved = extract_improved_text_fallback(raw_output)
    if improved is None:
        return None
    return ParsedResponse(
        improved=improved,
        changes=_normalize_changes(None),
        from_fallback=True,
    )

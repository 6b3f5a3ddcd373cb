"""Parse-and-clamp layer between the planning model and the compiler.

The planning model is untrusted: its payload may be free text, partially
structured, oversized or simply wrong. Every field below has an explicit
validity predicate and a deterministic fallback; nothing is cast directly.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from ..constants import (
    DEFAULT_STEP_PURPOSE,
    DEFAULT_WORKFLOW_DESCRIPTION,
    DEFAULT_WORKFLOW_NAME,
    DESCRIPTION_MAX_CHARS,
    FIELD_MAX_CHARS,
    HINT_KEY_MAX_CHARS,
    HINT_VALUE_MAX_CHARS,
    MAX_MISSING_INPUTS,
    MAX_NOTES,
    MAX_STEPS,
    NOTE_MESSAGE_MAX_CHARS,
    PURPOSE_MAX_CHARS,
    QUESTION_MAX_CHARS,
    RAW_EXCERPT_MAX_CHARS,
    WORKFLOW_NAME_MAX_CHARS,
)
from ..errors import InvalidPlan
from .catalog import BLOCK_ALIASES, VALID_BLOCK_IDS
from .models import NOTE_TYPES, MissingInput, Note, Plan, Step

logger = logging.getLogger(__name__)

WORKFLOW_SECTION = "heading1_workflow"
NOTES_SECTION = "heading2_notes"

_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_CHANNEL_TOKEN = re.compile(r"<\|channel\|>[a-zA-Z0-9_-]+")
_MESSAGE_TOKEN = "<|message|>"


def sanitize(raw: Any) -> Plan:
    """Validate and clamp a decoded planner payload into a :class:`Plan`.

    Raises:
        InvalidPlan: ``raw`` is not an object, or no usable step survives.
    """
    if not isinstance(raw, Mapping):
        raise InvalidPlan("Planner response is not an object")

    workflow_section = raw.get(WORKFLOW_SECTION)
    if not isinstance(workflow_section, Mapping):
        workflow_section = raw
    notes_section = raw.get(NOTES_SECTION)
    if not isinstance(notes_section, Mapping):
        notes_section = raw

    steps = _sanitize_steps(workflow_section.get("steps"))
    if not steps:
        raise InvalidPlan("Planner returned no valid steps")

    missing_raw = notes_section.get("missingInputs")
    if missing_raw is None:
        missing_raw = raw.get("missingInputs")

    return Plan(
        workflow_name=_clean_text(
            workflow_section.get("workflowName"), WORKFLOW_NAME_MAX_CHARS
        )
        or DEFAULT_WORKFLOW_NAME,
        description=_clean_text(
            workflow_section.get("description"), DESCRIPTION_MAX_CHARS
        )
        or DEFAULT_WORKFLOW_DESCRIPTION,
        steps=steps,
        missing_inputs=_sanitize_missing_inputs(missing_raw),
        notes=_sanitize_notes(notes_section.get("notes")),
    )


def parse_planner_text(text: str) -> Dict[str, Any]:
    """Recover a planner payload object from free model text.

    Falls back to :func:`build_clarification_payload` when no JSON object can
    be recovered, so the caller always gets an object to sanitize.
    """
    plain = normalize_model_text(strip_code_fence(text))
    for candidate in (plain, extract_json_object(plain)):
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    logger.warning("Planner text held no JSON object; using clarification plan")
    return build_clarification_payload(plain)


def recover_plan(raw: Any) -> Plan:
    """Total variant of :func:`sanitize`: never raises.

    Strings go through text recovery first; anything unusable yields the fixed
    clarification plan.
    """
    payload = parse_planner_text(raw) if isinstance(raw, str) else raw
    try:
        return sanitize(payload)
    except InvalidPlan:
        excerpt = raw if isinstance(raw, str) else _safe_dump(raw)
        return sanitize(build_clarification_payload(excerpt))


def strip_code_fence(value: str) -> str:
    match = _CODE_FENCE.search(value)
    if match:
        return match.group(1).strip()
    return value.strip()


def normalize_model_text(value: str) -> str:
    """Drop chat-template control tokens some models leak into their output."""
    if _MESSAGE_TOKEN in value:
        return _MESSAGE_TOKEN.join(value.split(_MESSAGE_TOKEN)[1:]).strip()
    return _CHANNEL_TOKEN.sub("", value).replace("<|end|>", "").strip()


def extract_json_object(value: str) -> str:
    """Return the outermost ``{...}`` span of ``value`` or an empty string."""
    start = value.find("{")
    end = value.rfind("}")
    if start == -1 or end <= start:
        return ""
    return value[start : end + 1].strip()


def build_clarification_payload(raw_text: str) -> Dict[str, Any]:
    return {
        WORKFLOW_SECTION: {
            "workflowName": "Need Clarification",
            "description": "Could not derive a valid workflow JSON from model output; "
            "asking for clarification.",
            "steps": [
                {
                    "blockId": "telegram",
                    "purpose": "Ask user for clarification before building workflow.",
                    "configHints": {
                        "message": "Please clarify your request and required details."
                    },
                }
            ],
        },
        NOTES_SECTION: {
            "missingInputs": [
                {
                    "field": "intent",
                    "question": "Please clarify what you want to achieve "
                    "(trigger, action, constraints).",
                }
            ],
            "notes": [
                {
                    "type": "other",
                    "message": "Raw model output (trimmed): "
                    + raw_text[:RAW_EXCERPT_MAX_CHARS],
                }
            ],
        },
    }


def normalize_block_id(raw_block_id: str) -> Optional[str]:
    """Resolve a planner block id against the catalog, or ``None``."""
    trimmed = raw_block_id.strip()
    if not trimmed:
        return None
    if trimmed in VALID_BLOCK_IDS:
        return trimmed

    normalized = re.sub(r"[\s-]+", "_", trimmed.lower())
    mapped = BLOCK_ALIASES.get(normalized)
    if mapped in VALID_BLOCK_IDS:
        return mapped

    hyphenated = normalized.replace("_", "-")
    if hyphenated in VALID_BLOCK_IDS:
        return hyphenated
    return None


# ----------------------------------------------------------------------
# Section sanitizers


def _sanitize_steps(value: Any) -> List[Step]:
    if not isinstance(value, list):
        return []

    steps: List[Step] = []
    for item in value:
        if not isinstance(item, Mapping) or not isinstance(item.get("blockId"), str):
            continue
        block_id = normalize_block_id(item["blockId"])
        if block_id is None:
            logger.debug(f"Dropping step with unknown blockId {item['blockId']!r}")
            continue
        steps.append(
            Step(
                block_id=block_id,
                purpose=_clean_text(item.get("purpose"), PURPOSE_MAX_CHARS)
                or DEFAULT_STEP_PURPOSE,
                config_hints=_sanitize_hints(item.get("configHints")),
            )
        )
        if len(steps) == MAX_STEPS:
            break
    return steps


def _sanitize_hints(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    hints: Dict[str, str] = {}
    for key, hint in value.items():
        if not isinstance(key, str) or not isinstance(hint, str):
            continue
        key = key.strip()[:HINT_KEY_MAX_CHARS].rstrip()
        hint = hint.strip()[:HINT_VALUE_MAX_CHARS].rstrip()
        if key and hint:
            hints[key] = hint
    return hints


def _sanitize_missing_inputs(value: Any) -> List[MissingInput]:
    if not isinstance(value, list):
        return []
    items: List[MissingInput] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        field = _clean_text(item.get("field"), FIELD_MAX_CHARS)
        question = _clean_text(item.get("question"), QUESTION_MAX_CHARS)
        if field and question:
            items.append(MissingInput(field=field, question=question))
    return items[:MAX_MISSING_INPUTS]


def _sanitize_notes(value: Any) -> List[Note]:
    if not isinstance(value, list):
        return []
    notes: List[Note] = []
    for item in value:
        if not isinstance(item, Mapping) or item.get("type") not in NOTE_TYPES:
            continue
        message = _clean_text(item.get("message"), NOTE_MESSAGE_MAX_CHARS)
        if not message:
            continue
        notes.append(
            Note(
                type=item["type"],
                message=message,
                field=_clean_text(item.get("field"), FIELD_MAX_CHARS),
            )
        )
    return notes[:MAX_NOTES]


def _clean_text(value: Any, limit: int) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()[:limit].rstrip()
    return value or None


def _safe_dump(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)

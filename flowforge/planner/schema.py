"""JSON schema of the two-section planner response.

Sent to providers that support constrained decoding. The sanitizer never
relies on a provider having honored it.
"""

from __future__ import annotations

from typing import Any, Dict

from ..constants import (
    DESCRIPTION_MAX_CHARS,
    FIELD_MAX_CHARS,
    MAX_MISSING_INPUTS,
    MAX_NOTES,
    MAX_STEPS,
    NOTE_MESSAGE_MAX_CHARS,
    PURPOSE_MAX_CHARS,
    QUESTION_MAX_CHARS,
    WORKFLOW_NAME_MAX_CHARS,
)
from .models import NOTE_TYPES


def _string(max_length: int) -> Dict[str, Any]:
    return {"type": "string", "minLength": 1, "maxLength": max_length}


STEP_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["blockId", "purpose"],
    "properties": {
        "blockId": _string(100),
        "purpose": _string(PURPOSE_MAX_CHARS),
        "configHints": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}

MISSING_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["field", "question"],
    "properties": {
        "field": _string(FIELD_MAX_CHARS),
        "question": _string(QUESTION_MAX_CHARS),
    },
}

NOTE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["type", "message"],
    "properties": {
        "type": {"type": "string", "enum": list(NOTE_TYPES)},
        "message": _string(NOTE_MESSAGE_MAX_CHARS),
        "field": _string(FIELD_MAX_CHARS),
    },
}

PLANNER_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["heading1_workflow", "heading2_notes"],
    "properties": {
        "heading1_workflow": {
            "type": "object",
            "additionalProperties": False,
            "required": ["workflowName", "description", "steps"],
            "properties": {
                "workflowName": _string(WORKFLOW_NAME_MAX_CHARS),
                "description": _string(DESCRIPTION_MAX_CHARS),
                "steps": {
                    "type": "array",
                    "minItems": 1,
                    "maxItems": MAX_STEPS,
                    "items": STEP_SCHEMA,
                },
            },
        },
        "heading2_notes": {
            "type": "object",
            "additionalProperties": False,
            "required": ["missingInputs"],
            "properties": {
                "missingInputs": {
                    "type": "array",
                    "maxItems": MAX_MISSING_INPUTS,
                    "items": MISSING_INPUT_SCHEMA,
                },
                "notes": {"type": "array", "maxItems": MAX_NOTES, "items": NOTE_SCHEMA},
            },
        },
    },
}

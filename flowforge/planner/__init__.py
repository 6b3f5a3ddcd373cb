"""Planner-facing types: block catalog, plan model and output sanitizer."""

from .catalog import BLOCK_CATALOG, VALID_BLOCK_IDS, BlockDefinition, get_block
from .models import MissingInput, Note, Plan, Step
from .sanitizer import parse_planner_text, recover_plan, sanitize

__all__ = [
    "BLOCK_CATALOG",
    "VALID_BLOCK_IDS",
    "BlockDefinition",
    "MissingInput",
    "Note",
    "Plan",
    "Step",
    "get_block",
    "parse_planner_text",
    "recover_plan",
    "sanitize",
]

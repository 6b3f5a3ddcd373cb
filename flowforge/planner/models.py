"""Trusted plan representation produced by the sanitizer."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import Field

from ..contracts import CamelModel

NoteType = Literal["missing_data", "assumption", "risk", "preference", "other"]
NOTE_TYPES = ("missing_data", "assumption", "risk", "preference", "other")


class Step(CamelModel):
    """One planner-proposed action before compilation."""

    block_id: str
    purpose: str
    config_hints: Dict[str, str] = Field(default_factory=dict)


class MissingInput(CamelModel):
    field: str
    question: str


class Note(CamelModel):
    type: NoteType
    message: str
    field: Optional[str] = None


class Plan(CamelModel):
    """Sanitized automation plan.

    Instances are only built by :func:`flowforge.planner.sanitizer.sanitize`
    (or by trusted templates), so every ``Step.block_id`` is a catalog id.
    """

    workflow_name: str
    description: str
    steps: List[Step] = Field(default_factory=list)
    missing_inputs: List[MissingInput] = Field(default_factory=list)
    notes: List[Note] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing_inputs

    def missing_fields(self) -> List[str]:
        return [item.field for item in self.missing_inputs]

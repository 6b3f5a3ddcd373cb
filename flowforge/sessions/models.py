"""Per-conversation session record."""

from __future__ import annotations

from typing import Literal, Optional

from ..contracts import CamelModel
from ..planner.models import Plan

Channel = Literal["telegram", "a2a"]


def session_key(channel: str, channel_id: Optional[str], user_id: str) -> str:
    """Key a session by channel and chat id, falling back to the user id."""
    return f"{channel}:{channel_id or user_id}"


class Session(CamelModel):
    user_id: str
    last_plan: Optional[Plan] = None
    last_workflow_id: Optional[str] = None
    last_execution_id: Optional[str] = None
    last_time_block_id: Optional[str] = None

"""Error taxonomy for the FlowForge agent core.

Every error raised across a module boundary derives from :class:`FlowForgeError`
and carries a ``kind`` so a presentation layer can render a tailored message
without parsing exception text.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from .constants import USER_MESSAGE_MAX_CHARS


def _bounded(text: str, limit: int = USER_MESSAGE_MAX_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


class FlowForgeError(Exception):
    """Base exception for the FlowForge agent core."""

    kind = "error"

    @property
    def user_message(self) -> str:
        return _bounded(str(self))


class InvalidPlan(FlowForgeError):
    """The planner payload produced no usable steps."""

    kind = "invalid_plan"


class PlannerError(FlowForgeError):
    """The planning endpoint could not be used after all attempts."""

    kind = "planner_unavailable"


# ----------------------------------------------------------------------
# Plan-state errors


class PlanStateError(FlowForgeError):
    """The conversation is not in a state that allows execution."""

    kind = "plan_state"


class NoPlanToExecute(PlanStateError):
    kind = "no_plan"

    def __init__(self) -> None:
        super().__init__(
            "No plan to execute. Provide a prompt or plan, or run plan first."
        )


class PlanHasMissingInputs(PlanStateError):
    kind = "missing_inputs"

    def __init__(self, fields: List[str]) -> None:
        self.fields = list(fields)
        listed = ", ".join(self.fields)
        super().__init__(
            "Cannot execute: plan has missing inputs"
            + (f" ({listed})" if listed else "")
            + ". Add the missing details and plan again."
        )


class MissingIdentityLink(PlanStateError):
    kind = "missing_identity_link"

    def __init__(self, channel: str, message: Optional[str] = None) -> None:
        self.channel = channel
        super().__init__(
            message
            or "Telegram connection is not linked for this chat. "
            "Send your verify-... code first, then run execute again."
        )


class ExecutionNotConfigured(PlanStateError):
    kind = "execution_not_configured"

    def __init__(self) -> None:
        super().__init__(
            "Workflow execution is not configured (missing backend). "
            "Set BACKEND_BASE_URL to use execute."
        )


# ----------------------------------------------------------------------
# Compilation defects


class CompilationError(FlowForgeError):
    """A plan could not be compiled into a well-formed workflow graph."""

    kind = "compilation"


class EmptyPlan(CompilationError):
    kind = "empty_plan"

    def __init__(self) -> None:
        super().__init__("Cannot compile workflow: planner returned no steps.")


class NoActionableSteps(CompilationError):
    kind = "no_actionable_steps"

    def __init__(self) -> None:
        super().__init__(
            "Cannot compile workflow: time-block trigger requires at least one "
            "downstream action step."
        )


class UnknownBlock(CompilationError):
    kind = "unknown_block"

    def __init__(self, block_id: str, step_index: int) -> None:
        self.block_id = block_id
        self.step_index = step_index
        super().__init__(
            f'Unknown planner blockId "{block_id}" in step {step_index + 1}.'
        )


class InvalidWorkflowGraph(CompilationError):
    kind = "invalid_graph"


# ----------------------------------------------------------------------
# Backend call failures

RETRYABLE_REASONS = {"timeout", "connection"}


class BackendCallError(FlowForgeError):
    """Structured failure of an outbound call to an external service.

    Retryability and patchability are decided from ``status_code``, ``reason``
    and ``details``; the message text is for humans only.
    """

    kind = "backend"

    def __init__(
        self,
        operation: str,
        *,
        status_code: Optional[int] = None,
        reason: str = "http",
        message: Optional[str] = None,
        details: Optional[List[Dict[str, Any]]] = None,
        body: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        self.reason = reason
        self.details = details or []
        self.body = (body or "")[:2000]
        text = f"{operation} failed"
        if status_code is not None:
            text += f" with status {status_code}"
        if message:
            text += f": {message}"
        super().__init__(text)

    @property
    def retryable(self) -> bool:
        if self.reason in RETRYABLE_REASONS:
            return True
        if self.reason != "http" or self.status_code is None:
            return False
        return self.status_code >= 500 or self.status_code == 429

    def detail_fields(self) -> List[str]:
        return [
            d["field"]
            for d in self.details
            if isinstance(d, dict) and isinstance(d.get("field"), str)
        ]

    @classmethod
    def from_response(
        cls, operation: str, status_code: int, text: str
    ) -> "BackendCallError":
        """Build an error from a non-2xx response body."""
        message = None
        details: List[Dict[str, Any]] = []
        try:
            payload = json.loads(text) if text else None
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict):
                if isinstance(error.get("message"), str):
                    message = error["message"]
                raw_details = error.get("details")
                if isinstance(raw_details, list):
                    details = [d for d in raw_details if isinstance(d, dict)]
            elif isinstance(error, str):
                message = error
        if message is None and text and payload is None:
            message = text[:200]
        return cls(
            operation,
            status_code=status_code,
            message=message,
            details=details,
            body=text,
        )


def describe_error(exc: BaseException) -> str:
    """Render ``exc`` as a bounded, user-facing line."""
    if isinstance(exc, BackendCallError):
        if exc.reason == "timeout":
            return "The workflow service timed out. Please try again shortly."
        if exc.reason == "connection":
            return "The workflow service is unreachable right now. Please try again shortly."
        return exc.user_message
    if isinstance(exc, FlowForgeError):
        return exc.user_message
    return "Something went wrong while processing the request."

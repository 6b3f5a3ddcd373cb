"""HTTP clients for the planning endpoint and the workflow backend."""

from .base import BaseHttpClient, is_retryable, unwrap_envelope
from .context import ContextClient, IdentityLink, sanitize_context
from .planner import PlannerClient, sign_request
from .workflows import WorkflowClient, build_recurring_trigger_body

__all__ = [
    "BaseHttpClient",
    "ContextClient",
    "IdentityLink",
    "PlannerClient",
    "WorkflowClient",
    "build_recurring_trigger_body",
    "is_retryable",
    "sanitize_context",
    "sign_request",
    "unwrap_envelope",
]

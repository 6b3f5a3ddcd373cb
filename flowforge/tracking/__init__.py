"""Background tracking of workflow executions."""

from .messages import extract_tx_links, signing_link
from .tracker import ExecutionTracker, did_action_execute

__all__ = ["ExecutionTracker", "did_action_execute", "extract_tx_links", "signing_link"]

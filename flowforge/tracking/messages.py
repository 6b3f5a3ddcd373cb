"""User-facing texts sent while tracking executions."""

from __future__ import annotations

import re
from typing import List, NamedTuple, Optional
from urllib.parse import quote

from ..compiler.registries import explorer_tx_url, normalize_chain
from ..contracts import ExecutionStatus

TX_HASH = re.compile(r"^0x[a-fA-F0-9]{64}$")


class TxLink(NamedTuple):
    tx_hash: str
    url: str
    chain: Optional[str]


def extract_tx_links(status: ExecutionStatus) -> List[TxLink]:
    """Explorer links for every node output carrying a transaction hash."""
    links: List[TxLink] = []
    for node in status.node_executions:
        output = node.output_data or {}
        tx_hash = output.get("txHash")
        if not isinstance(tx_hash, str) or not TX_HASH.match(tx_hash.strip()):
            continue
        tx_hash = tx_hash.strip()
        chain = output.get("chain")
        chain = normalize_chain(chain) if isinstance(chain, str) and chain.strip() else None
        links.append(TxLink(tx_hash, explorer_tx_url(chain, tx_hash), chain))
    return links


def with_tx_links(message: str, status: Optional[ExecutionStatus]) -> str:
    if status is None:
        return message
    lines = [message] + [f"Transaction: {link.url}" for link in extract_tx_links(status)]
    return "\n".join(lines)


def signing_link(signing_base_url: str, execution_id: str) -> str:
    return f"{signing_base_url.rstrip('/')}/agent-onboarding?executionId={quote(execution_id, safe='')}"


def signing_message(signing_base_url: str, execution_id: str) -> str:
    return (
        "Action required: please sign the transaction to proceed.\n"
        f"{signing_link(signing_base_url, execution_id)}"
    )


def success_message(status: ExecutionStatus) -> str:
    return with_tx_links("Workflow execution completed successfully.", status)


def failure_message(status: ExecutionStatus) -> str:
    error = status.error_message
    return f"Workflow execution failed{f': {error}' if error else ''}."


def goal_achieved_message(status: Optional[ExecutionStatus]) -> str:
    return with_tx_links(
        "Scheduled action executed successfully. Monitoring is now stopped.", status
    )


def scheduled_run_failed_message(error: Optional[str]) -> str:
    return f"A scheduled run failed{f': {error}' if error else ''}. I will continue monitoring."


def _format_duration(seconds: float) -> str:
    seconds = int(seconds)
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds} seconds"


def timeout_message(duration_seconds: float) -> str:
    return (
        f"Monitoring window ended after {_format_duration(duration_seconds)}. "
        "The trigger condition was not met in time."
    )

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from .catalog import BLOCK_CATALOG

BACKEND_CHAINS = "ARBITRUM, ARBITRUM_SEPOLIA, ETHEREUM_SEPOLIA, BASE"
SWAP_PROVIDERS = "UNISWAP, UNISWAP_V4, RELAY, ONEINCH, LIFI"

_OUTPUT_CONTRACT = """{
  "heading1_workflow": {
    "workflowName": "string",
    "description": "string",
    "steps": [
      {"blockId": "string", "purpose": "string", "configHints": {"key": "value"}}
    ]
  },
  "heading2_notes": {
    "missingInputs": [{"field": "string", "question": "string"}],
    "notes": [
      {"type": "missing_data|assumption|risk|preference|other", "message": "string", "field": "optional string"}
    ]
  }
}"""


def build_system_prompt() -> str:
    """Instructions sent to the planning model with every request."""
    block_list = "\n".join(
        f"- {block.id} (backend: {block.backend_type}): {block.label} - {block.description}"
        for block in BLOCK_CATALOG
    )
    return (
        "You are the FlowForge workflow planner.\n"
        "You receive: available blocks, planning rules, and a user's natural-language request.\n"
        "Return JSON only.\n\n"
        f"Available blocks (use exact blockId values):\n{block_list}\n\n"
        "Backend configHints contract (values must match backend exactly or compilation will fail):\n"
        f'- Chains: use only these exact values in any "chain" field: {BACKEND_CHAINS}.\n'
        '- Swap (uniswap, oneinch, lifi, relay): configHints must include "chain", "fromToken", '
        '"toToken" (symbols such as USDC, WETH) and "amount" (numeric string). Optional: "swapType" '
        f'(EXACT_INPUT or EXACT_OUTPUT), "toChain", "provider" (one of {SWAP_PROVIDERS}).\n'
        '- Oracle (chainlink, pyth): include "feed" (e.g. "ETH/USD") when the user names an asset. '
        'Optional: "chain" (default ARBITRUM), "output".\n'
        '- If: include "condition" as a readable comparison such as "ETH/USD < 1750".\n'
        '- Telegram: put "connectionId" and "chatId" in configHints when provided in backend context; '
        "do not add them to missingInputs.\n"
        '- API: include "url" and "method". Email: include "to", "subject", "body" when known.\n\n'
        "Planning rules:\n"
        "1. For non-scheduled workflows do not include a start trigger; the compiler adds one.\n"
        '2. Keep steps linear; use "if" only for explicit conditions.\n'
        '3. Prefer "pyth" or "chainlink" for market price checks; "lifi" for cross-chain swaps.\n'
        '4. End notification-style workflows with "telegram" when the user expects chat updates.\n'
        "5. If essential values (token, chain, threshold, amount) are missing and not in context, "
        "list them in missingInputs.\n"
        '6. For time-based conditions ("when price drops below X", "every hour"), use "time-block" '
        'as the FIRST step with "intervalSeconds" (default "300") and "durationSeconds" '
        '(default "86400"), then the oracle check, then "if", then the action, then notification.\n'
        "7. Do not list scheduling details as missingInputs when defaults can be inferred.\n"
        "8. Purpose must explain each step in one short sentence.\n\n"
        f"Required output format:\n{_OUTPUT_CONTRACT}\n\n"
        "Respond with JSON only (no markdown, no prose)."
    )


def build_user_prompt(prompt: str, context: Optional[Dict[str, Any]] = None) -> str:
    """Merge trusted backend context into the user-facing request text."""
    if not context:
        return prompt
    return "\n".join(
        [
            f"User request: {prompt}",
            "",
            "Trusted backend context (safe fields only):",
            json.dumps(context, separators=(",", ":")),
            "",
            "Use this context to fill missing inputs when possible.",
        ]
    )


def build_messages(
    prompt: str,
    context: Optional[Dict[str, Any]] = None,
    system_prompt: Optional[str] = None,
) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt or build_system_prompt()},
        {"role": "user", "content": build_user_prompt(prompt, context)},
    ]

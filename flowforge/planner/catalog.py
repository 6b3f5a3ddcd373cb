"""Static registry of the action blocks the planner may use."""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict

# Backend node types the compiler treats specially.
START_TYPE = "START"
TIME_BLOCK_TYPE = "TIME_BLOCK"
TRIGGER_TYPES = frozenset({START_TYPE, TIME_BLOCK_TYPE})

TELEGRAM_TYPE = "TELEGRAM"
SLACK_TYPE = "SLACK"
EMAIL_TYPE = "EMAIL"
NOTIFICATION_TYPES = frozenset({TELEGRAM_TYPE, SLACK_TYPE, EMAIL_TYPE})

CHAINLINK_ORACLE_TYPE = "CHAINLINK_PRICE_ORACLE"
PYTH_ORACLE_TYPE = "PYTH_PRICE_ORACLE"
ORACLE_TYPES = frozenset({CHAINLINK_ORACLE_TYPE, PYTH_ORACLE_TYPE, "PRICE_ORACLE"})

IF_TYPE = "IF"

SWAP_TYPE = "SWAP"
LENDING_TYPE = "LENDING"

SCHEDULE_BLOCK_ID = "time-block"


class BlockDefinition(BaseModel):
    """Catalog entry mapping a planner-facing block id to a backend node type."""

    model_config = ConfigDict(frozen=True)

    id: str
    backend_type: str
    label: str
    description: str
    # The block can only run once the conversation is linked to a backend identity.
    requires_identity_link: bool = False


BLOCK_CATALOG: Tuple[BlockDefinition, ...] = (
    BlockDefinition(id="api", backend_type="API", label="HTTP Request", description="Make HTTP calls to external APIs."),
    BlockDefinition(
        id=SCHEDULE_BLOCK_ID,
        backend_type=TIME_BLOCK_TYPE,
        label="Scheduled Trigger",
        description="Run workflow on a schedule (one-time, interval, or cron). Use for delayed or recurring workflows.",
    ),
    BlockDefinition(
        id="telegram",
        backend_type=TELEGRAM_TYPE,
        label="Telegram",
        description="Send message updates to Telegram chat.",
        requires_identity_link=True,
    ),
    BlockDefinition(id="slack", backend_type=SLACK_TYPE, label="Slack", description="Send a message to Slack."),
    BlockDefinition(id="mail", backend_type=EMAIL_TYPE, label="Email", description="Send email notification."),
    BlockDefinition(id="if", backend_type=IF_TYPE, label="If / Condition", description="Branch flow based on condition true/false."),
    BlockDefinition(id="switch", backend_type="SWITCH", label="Switch", description="Route by multiple conditional cases."),
    BlockDefinition(id="wallet", backend_type="WALLET", label="Wallet", description="Access wallet context for onchain actions."),
    BlockDefinition(id="uniswap", backend_type=SWAP_TYPE, label="Uniswap Swap", description="Swap tokens on one chain."),
    BlockDefinition(id="oneinch", backend_type=SWAP_TYPE, label="1inch Swap", description="Swap tokens through 1inch aggregator."),
    BlockDefinition(id="lifi", backend_type=SWAP_TYPE, label="LiFi", description="Cross-chain bridge/swap flow."),
    BlockDefinition(id="relay", backend_type=SWAP_TYPE, label="Relay", description="Relay-powered token/tx routing."),
    BlockDefinition(id="aave", backend_type=LENDING_TYPE, label="Aave", description="Lending operations with Aave."),
    BlockDefinition(id="compound", backend_type=LENDING_TYPE, label="Compound", description="Lending operations with Compound."),
    BlockDefinition(
        id="chainlink",
        backend_type=CHAINLINK_ORACLE_TYPE,
        label="Chainlink",
        description="Read price/data from Chainlink feed.",
    ),
    BlockDefinition(id="pyth", backend_type=PYTH_ORACLE_TYPE, label="Pyth", description="Read price/data from Pyth feed."),
    BlockDefinition(
        id="ai-openai-chatgpt",
        backend_type="LLM_TRANSFORM",
        label="ChatGPT",
        description="AI transform/generation using OpenAI model.",
    ),
    BlockDefinition(
        id="ai-openrouter-qwen-free",
        backend_type="LLM_TRANSFORM",
        label="Qwen",
        description="AI transform/generation using OpenRouter Qwen.",
    ),
    BlockDefinition(
        id="ai-openrouter-glm-free",
        backend_type="LLM_TRANSFORM",
        label="GLM",
        description="AI transform/generation using OpenRouter GLM.",
    ),
    BlockDefinition(
        id="ai-openrouter-deepseek-free",
        backend_type="LLM_TRANSFORM",
        label="DeepSeek",
        description="AI transform/generation using OpenRouter DeepSeek.",
    ),
)

_BLOCKS_BY_ID: Dict[str, BlockDefinition] = {block.id: block for block in BLOCK_CATALOG}

VALID_BLOCK_IDS: FrozenSet[str] = frozenset(_BLOCKS_BY_ID)

# Loose spellings the planner model tends to produce, keyed by normalized form.
BLOCK_ALIASES: Dict[str, str] = {
    "swap": "uniswap",
    "lifi_swap": "lifi",
    "oneinch_swap": "oneinch",
    "uniswap_swap": "uniswap",
    "pyth_price_oracle": "pyth",
    "chainlink_price_oracle": "chainlink",
    "llm_transform": "ai-openai-chatgpt",
    "email": "mail",
}


def get_block(block_id: str) -> Optional[BlockDefinition]:
    """Return the catalog entry for ``block_id`` or ``None``."""
    return _BLOCKS_BY_ID.get(block_id)


def requires_identity_link(block_id: str) -> bool:
    block = get_block(block_id)
    return bool(block and block.requires_identity_link)


__all__ = [
    "BLOCK_ALIASES",
    "BLOCK_CATALOG",
    "BlockDefinition",
    "SCHEDULE_BLOCK_ID",
    "VALID_BLOCK_IDS",
    "get_block",
    "requires_identity_link",
]

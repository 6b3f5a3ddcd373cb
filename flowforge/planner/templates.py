"""Curated price-feed plans that bypass free-form planning."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from .models import Plan, Step


class OracleTemplateToken(BaseModel):
    id: str
    symbol: str
    pair_symbol: str
    name: str


ORACLE_TEMPLATE_TOKENS: List[OracleTemplateToken] = [
    OracleTemplateToken(id="ETH_USD", symbol="ETH", pair_symbol="ETH/USD", name="Ethereum / US Dollar"),
    OracleTemplateToken(id="BTC_USD", symbol="BTC", pair_symbol="BTC/USD", name="Bitcoin / US Dollar"),
    OracleTemplateToken(id="LINK_USD", symbol="LINK", pair_symbol="LINK/USD", name="Chainlink / US Dollar"),
    OracleTemplateToken(id="ARB_USD", symbol="ARB", pair_symbol="ARB/USD", name="Arbitrum / US Dollar"),
]


def find_template_token(value: str) -> Optional[OracleTemplateToken]:
    """Look a template token up by id, symbol or pair symbol (case-insensitive)."""
    wanted = value.strip().upper()
    for token in ORACLE_TEMPLATE_TOKENS:
        if wanted in (token.id, token.symbol, token.pair_symbol):
            return token
    return None


def build_oracle_prompt(token: OracleTemplateToken) -> str:
    """Constrained planner request for a Chainlink price → Telegram workflow."""
    return (
        f"Fetch the latest Chainlink price for {token.pair_symbol} on ARBITRUM and send it "
        "to this Telegram chat. "
        f'Use a single Chainlink oracle step (blockId "chainlink") with configHints.feed set '
        f'to exactly "{token.pair_symbol}" and chain set to "ARBITRUM". '
        'Then add a Telegram notification step (blockId "telegram") that sends a concise '
        "message including the human-readable price. "
        "Do not ask follow-up questions if everything can be inferred; prefer reasonable "
        "defaults. Keep the workflow linear: chainlink -> telegram."
    )


def build_oracle_plan(token: OracleTemplateToken) -> Plan:
    """Two-step plan; the notification message is filled in by the compiler."""
    return Plan(
        workflow_name=f"{token.pair_symbol} price on Arbitrum (Chainlink)",
        description=(
            f"Fetches the latest Chainlink price feed for {token.pair_symbol} on "
            "Arbitrum and sends it to this Telegram chat."
        ),
        steps=[
            Step(
                block_id="chainlink",
                purpose=f"{token.pair_symbol} price on ARBITRUM",
                config_hints={"feed": token.pair_symbol, "chain": "ARBITRUM"},
            ),
            Step(block_id="telegram", purpose=f"Price for {token.pair_symbol} on ARBITRUM"),
        ],
    )

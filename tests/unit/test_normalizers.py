"""Tests for per-node config normalization."""

import pytest

from flowforge.compiler.models import CompileContext, CompiledNode
from flowforge.compiler.normalizers import (
    feed_symbol_candidates,
    link_oracle_outputs,
    normalize_config,
    to_fixed_point,
)
from flowforge.compiler.registries import CHAINLINK_FEEDS, PYTH_FEEDS, ZERO_ADDRESS
from flowforge.planner.catalog import get_block


def _normalize(block_id, hints=None, purpose="Do it", context=None):
    warnings = []
    config = normalize_config(
        get_block(block_id), purpose, dict(hints or {}), context or CompileContext(), warnings
    )
    return config, warnings


def test_chainlink_feed_lookup():
    config, warnings = _normalize("chainlink", {"feed": "btc-usd", "chain": "arbitrum"})

    assert config["provider"] == "CHAINLINK"
    assert config["chain"] == "ARBITRUM"
    assert config["aggregatorAddress"] == CHAINLINK_FEEDS["ARBITRUM"]["BTC/USD"]
    assert config["staleAfterSeconds"] == 3600
    assert config["description"] == "Do it"
    assert warnings == []


def test_chainlink_unknown_feed_falls_back_with_warning():
    config, warnings = _normalize("chainlink", {"feed": "DOGE/USD"})

    assert config["aggregatorAddress"] == CHAINLINK_FEEDS["ARBITRUM"]["ETH/USD"]
    assert len(warnings) == 1
    assert "ETH/USD" in warnings[0]


def test_explicit_aggregator_is_kept():
    config, warnings = _normalize("chainlink", {"aggregatorAddress": "0xabc"})
    assert config["aggregatorAddress"] == "0xabc"
    assert warnings == []


def test_pyth_uses_wrapped_asset_alias():
    config, warnings = _normalize("pyth", {"asset": "weth"})

    assert config["provider"] == "PYTH"
    assert config["priceFeedId"] == PYTH_FEEDS["ETH/USD"]
    assert warnings == []


def test_feed_symbol_candidates_order():
    assert feed_symbol_candidates({"feed": "WBTC/USD", "asset": "arb"}) == [
        "WBTC/USD",
        "BTC/USD",
        "ARB/USD",
    ]


def test_oracle_output_mapping_and_bad_staleness():
    config, warnings = _normalize(
        "chainlink", {"feed": "ETH/USD", "output": "ethPrice", "staleAfterSeconds": "-5"}
    )

    assert config["outputMapping"] == {"ethPrice": "formattedAnswer"}
    assert config["staleAfterSeconds"] == 3600
    assert any("staleAfterSeconds" in w for w in warnings)


def test_telegram_gets_chat_and_connection_ids():
    config, warnings = _normalize(
        "telegram",
        {"text": "Price dropped"},
        context=CompileContext(conversation_id="chat-9", provider_connection_id="conn-1"),
    )

    assert config["message"] == "Price dropped"
    assert config["chatId"] == "chat-9"
    assert config["connectionId"] == "conn-1"
    assert warnings == []


def test_telegram_without_connection_warns():
    config, warnings = _normalize("telegram", purpose="Tell me")

    assert config["message"] == "Tell me"
    assert "chatId" not in config
    assert warnings == ["Telegram block is missing connectionId and will likely fail validation."]


def test_mail_message_goes_to_body():
    config, warnings = _normalize("mail", purpose="")

    assert config["body"] == "Email notification from workflow."
    assert "message" not in config
    assert warnings == []


def test_condition_from_text():
    config, warnings = _normalize("if", {"condition": "ETH/USD < 1750"})

    assert config["conditionText"] == "ETH/USD < 1750"
    assert config["condition"] == {
        "leftPath": "formattedAnswer",
        "operator": "LESS_THAN",
        "rightValue": "1750",
    }
    assert warnings == []


def test_condition_from_explicit_hints():
    config, warnings = _normalize(
        "if", {"leftPath": "formattedAnswer", "operator": "gte", "rightValue": "$2000"}
    )

    assert config["condition"] == {
        "leftPath": "formattedAnswer",
        "operator": "GREATER_THAN_OR_EQUAL",
        "rightValue": "2000",
    }
    assert "leftPath" not in config
    assert warnings == []


def test_incomplete_condition_hints_warn_and_are_kept():
    config, warnings = _normalize("if", {"leftPath": "formattedAnswer", "operator": "<"})

    assert config["condition"] == {"leftPath": "", "operator": "", "rightValue": ""}
    assert config["conditionHints"] == {"leftPath": "formattedAnswer", "operator": "<"}
    assert "leftPath" not in config
    assert warnings == ["If block has incomplete condition hints (missing rightValue)."]


def test_incomplete_condition_hints_fall_back_to_text():
    config, warnings = _normalize("if", {"operator": "<", "condition": "ETH/USD < 1750"})

    assert config["condition"]["rightValue"] == "1750"
    assert config["conditionHints"] == {"operator": "<"}
    assert len(warnings) == 1


def test_unparseable_condition_warns():
    config, warnings = _normalize("if", {"condition": "when cheap"})

    assert config["condition"] == {"leftPath": "", "operator": "", "rightValue": ""}
    assert len(warnings) == 1


@pytest.mark.parametrize(
    "amount, decimals, expected",
    [
        ("1.5", 6, "1500000"),
        ("0.1234567", 6, "123456"),
        ("10", 18, "10000000000000000000"),
        (".5", 2, "50"),
        ("1,000", 0, "1000"),
        ("abc", 6, None),
        ("-1", 6, None),
        (".", 6, None),
    ],
)
def test_to_fixed_point(amount, decimals, expected):
    assert to_fixed_point(amount, decimals) == expected


def test_swap_resolves_tokens_and_amount():
    config, warnings = _normalize(
        "uniswap", {"fromToken": "usdc", "toToken": "WETH", "amount": "250.1234567"}
    )

    assert config["provider"] == "UNISWAP"
    assert config["swapType"] == "EXACT_INPUT"
    assert config["chain"] == "ARBITRUM"
    assert config["fromToken"] == "USDC"
    assert config["fromTokenDecimals"] == 6
    assert config["toTokenDecimals"] == 18
    assert config["amount"] == "250123456"
    assert config["amountHuman"] == "250.1234567"
    assert warnings == []


def test_swap_exact_output_uses_output_decimals():
    config, _ = _normalize(
        "oneinch",
        {"fromToken": "WETH", "toToken": "USDC", "amount": "100", "swapType": "exact_output"},
    )

    assert config["provider"] == "ONEINCH"
    assert config["swapType"] == "EXACT_OUTPUT"
    assert config["amount"] == "100000000"


def test_swap_unknown_token_and_missing_amount_warn():
    config, warnings = _normalize("uniswap", {"fromToken": "PEPE", "toToken": "USDC"})

    assert config["fromTokenAddress"] == ZERO_ADDRESS
    assert config["fromTokenDecimals"] == 18
    assert "amount" not in config
    assert len(warnings) == 2


def _node(node_id, node_type, config=None):
    return CompiledNode(id=node_id, type=node_type, name=node_type, config=config or {})


def test_link_oracle_outputs_appends_reference():
    nodes = [
        _node("oracle", "CHAINLINK_PRICE_ORACLE"),
        _node("notify", "TELEGRAM", {"message": "ETH update"}),
    ]
    link_oracle_outputs(nodes)

    assert nodes[1].config["message"] == "ETH update\nPrice: {{oracle.formattedAnswer}}"


def test_link_oracle_outputs_respects_templates_and_adjacency():
    nodes = [
        _node("oracle", "PYTH_PRICE_ORACLE"),
        _node("notify", "TELEGRAM", {"message": "Now {{oracle.formattedAnswer}}"}),
        _node("mail", "EMAIL", {"body": "Done"}),
    ]
    link_oracle_outputs(nodes)

    assert nodes[1].config["message"] == "Now {{oracle.formattedAnswer}}"
    assert nodes[2].config["body"] == "Done"

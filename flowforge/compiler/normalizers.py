"""Per-node-type normalization of planner config hints.

Each normalizer mutates the node's ``config`` in place and appends a warning
for every value it had to default. Only structural problems are errors; a
config the backend may reject is still compiled.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from ..constants import DEFAULT_STALE_AFTER_SECONDS
from ..planner.catalog import (
    EMAIL_TYPE,
    IF_TYPE,
    NOTIFICATION_TYPES,
    ORACLE_TYPES,
    PYTH_ORACLE_TYPE,
    SWAP_TYPE,
    TELEGRAM_TYPE,
    BlockDefinition,
)
from .conditions import Condition, normalize_operator, parse_condition
from .models import CompileContext, CompiledNode
from .registries import (
    CHAINLINK_FEEDS,
    DEFAULT_CHAIN,
    DEFAULT_FEED_SYMBOL,
    DEFAULT_TOKEN_DECIMALS,
    FEED_ASSET_ALIASES,
    ORACLE_OUTPUT_KEY,
    ORACLE_PROVIDERS,
    PYTH_FEEDS,
    SWAP_PROVIDER_BY_BLOCK,
    SWAP_PROVIDERS,
    SWAP_TYPES,
    ZERO_ADDRESS,
    lookup_token,
    normalize_chain,
    normalize_feed_symbol,
)

logger = logging.getLogger(__name__)

_DECIMAL_AMOUNT = re.compile(r"^(\d*)(?:\.(\d*))?$")


def normalize_config(
    block: BlockDefinition,
    purpose: str,
    hints: Dict[str, str],
    context: CompileContext,
    warnings: List[str],
) -> Dict[str, Any]:
    """Build a node config from ``hints`` for the block's backend type."""
    config: Dict[str, Any] = dict(hints)
    backend_type = block.backend_type

    if backend_type in NOTIFICATION_TYPES:
        normalize_notification(block, config, purpose, context, warnings)
    elif backend_type in ORACLE_TYPES:
        normalize_oracle(backend_type, config, purpose, warnings)
    elif backend_type == IF_TYPE:
        normalize_condition(config, warnings)
    elif backend_type == SWAP_TYPE:
        normalize_swap(block, config, warnings)
    return config


def message_key(backend_type: str) -> str:
    """Config key holding the text a notification node sends."""
    return "body" if backend_type == EMAIL_TYPE else "message"


def normalize_notification(
    block: BlockDefinition,
    config: Dict[str, Any],
    purpose: str,
    context: CompileContext,
    warnings: List[str],
) -> None:
    key = message_key(block.backend_type)
    text = config.get("text")
    if not config.get(key) and isinstance(text, str) and text.strip():
        config[key] = text.strip()
    if not config.get(key):
        config[key] = purpose or f"{block.label} notification from workflow."

    if block.backend_type == TELEGRAM_TYPE and context.conversation_id and not config.get("chatId"):
        config["chatId"] = context.conversation_id

    if not block.requires_identity_link:
        return
    if context.provider_connection_id and not config.get("connectionId"):
        config["connectionId"] = context.provider_connection_id
    if not config.get("connectionId"):
        warnings.append(
            f"{block.label} block is missing connectionId and will likely fail validation."
        )


def normalize_oracle_provider(raw: Any, backend_type: str) -> str:
    if isinstance(raw, str) and raw.strip().upper() in ORACLE_PROVIDERS:
        return raw.strip().upper()
    return "PYTH" if backend_type == PYTH_ORACLE_TYPE else "CHAINLINK"


def feed_symbol_candidates(config: Dict[str, Any]) -> List[str]:
    """Feed symbols to try, most specific first.

    The explicit ``feed`` hint comes first, then an ``asset``/``currency``
    pair; wrapped assets are also tried under their underlying symbol.
    """
    candidates: List[str] = []
    feed = normalize_feed_symbol(config.get("feed"))
    if feed:
        candidates.append(feed)
    asset = config.get("asset")
    if isinstance(asset, str) and asset.strip():
        currency = config.get("currency")
        if not isinstance(currency, str) or not currency.strip():
            currency = "USD"
        candidates.append(f"{asset.strip().upper()}/{currency.strip().upper()}")

    expanded: List[str] = []
    for symbol in candidates:
        expanded.append(symbol)
        base, _, quote = symbol.partition("/")
        if base in FEED_ASSET_ALIASES and quote:
            expanded.append(f"{FEED_ASSET_ALIASES[base]}/{quote}")
    return list(dict.fromkeys(expanded))


def normalize_oracle(
    backend_type: str,
    config: Dict[str, Any],
    purpose: str,
    warnings: List[str],
) -> None:
    provider = normalize_oracle_provider(config.get("provider"), backend_type)
    config["provider"] = provider
    chain = normalize_chain(config.get("chain"))
    config["chain"] = chain
    candidates = feed_symbol_candidates(config)

    if provider == "CHAINLINK" and not config.get("aggregatorAddress"):
        feeds = CHAINLINK_FEEDS.get(chain, {})
        address = next((feeds[s] for s in candidates if s in feeds), None)
        if address is None:
            fallback = CHAINLINK_FEEDS.get(chain, CHAINLINK_FEEDS[DEFAULT_CHAIN])
            address = fallback.get(DEFAULT_FEED_SYMBOL, CHAINLINK_FEEDS[DEFAULT_CHAIN][DEFAULT_FEED_SYMBOL])
            warnings.append(
                f"Oracle block has no known Chainlink feed for {candidates or 'its hints'} "
                f"on {chain}; defaulted to the {DEFAULT_FEED_SYMBOL} feed."
            )
        config["aggregatorAddress"] = address

    if provider == "PYTH" and not config.get("priceFeedId"):
        feed_id = next((PYTH_FEEDS[s] for s in candidates if s in PYTH_FEEDS), None)
        if feed_id is None:
            feed_id = PYTH_FEEDS[DEFAULT_FEED_SYMBOL]
            warnings.append(
                f"Pyth oracle block has no known price feed for {candidates or 'its hints'}; "
                f"defaulted to the {DEFAULT_FEED_SYMBOL} feed."
            )
        config["priceFeedId"] = feed_id

    config["staleAfterSeconds"] = _stale_after(config.get("staleAfterSeconds"), warnings)

    output = config.get("output")
    if isinstance(output, str) and output.strip() and not config.get("outputMapping"):
        config["outputMapping"] = {output.strip(): ORACLE_OUTPUT_KEY}

    if not config.get("description"):
        config["description"] = purpose


def _stale_after(raw: Any, warnings: List[str]) -> int:
    if raw is None or raw == "":
        return DEFAULT_STALE_AFTER_SECONDS
    try:
        value = int(str(raw).strip())
    except ValueError:
        value = 0
    if value > 0:
        return value
    warnings.append(
        f'Invalid oracle staleAfterSeconds "{raw}", using default {DEFAULT_STALE_AFTER_SECONDS}.'
    )
    return DEFAULT_STALE_AFTER_SECONDS


def normalize_condition(config: Dict[str, Any], warnings: List[str]) -> None:
    explicit = {k: config.pop(k, None) for k in ("leftPath", "operator", "rightValue")}
    given = {k: v for k, v in explicit.items() if v is not None and str(v).strip()}
    if len(given) == len(explicit):
        condition = Condition(
            left_path=str(explicit["leftPath"]),
            operator=normalize_operator(explicit["operator"]) or "",
            right_value=str(explicit["rightValue"]).lstrip("$"),
        )
        if condition.is_empty:
            warnings.append(
                f'If block has unknown operator "{explicit["operator"]}"; condition left empty.'
            )
            condition = Condition()
        config["condition"] = condition.model_dump(by_alias=True)
        return
    if given:
        config["conditionHints"] = given
        missing = ", ".join(k for k in explicit if k not in given)
        warnings.append(f"If block has incomplete condition hints (missing {missing}).")

    text = config.get("condition")
    if not isinstance(text, str):
        text = config.get("conditionText")
    if isinstance(text, str) and text.strip():
        config["conditionText"] = text.strip()
    condition = parse_condition(text)
    if condition.is_empty and isinstance(text, str) and text.strip():
        warnings.append(f'Could not parse condition "{text.strip()}"; condition left empty.')
    config["condition"] = condition.model_dump(by_alias=True)


def to_fixed_point(amount: str, decimals: int) -> Optional[str]:
    """Convert a human decimal string to its integer base-unit string.

    Fractional digits beyond ``decimals`` are truncated. Returns ``None`` for
    anything that is not a plain non-negative decimal.
    """
    text = amount.strip().replace(",", "").replace("_", "")
    match = _DECIMAL_AMOUNT.match(text)
    if not match or not (match.group(1) or match.group(2)):
        return None
    whole = match.group(1) or "0"
    fraction = (match.group(2) or "")[:decimals].ljust(decimals, "0")
    return str(int(whole + fraction))


def normalize_swap(
    block: BlockDefinition, config: Dict[str, Any], warnings: List[str]
) -> None:
    provider = config.get("provider")
    if isinstance(provider, str) and provider.strip().upper() in SWAP_PROVIDERS:
        config["provider"] = provider.strip().upper()
    else:
        config["provider"] = SWAP_PROVIDER_BY_BLOCK.get(block.id, "UNISWAP")

    swap_type = str(config.get("swapType") or "").strip().upper()
    if swap_type not in SWAP_TYPES:
        if swap_type:
            warnings.append(f'Unknown swapType "{swap_type}", using EXACT_INPUT.')
        swap_type = "EXACT_INPUT"
    config["swapType"] = swap_type

    chain = normalize_chain(config.get("chain"))
    config["chain"] = chain
    to_chain = chain
    if config.get("toChain"):
        to_chain = normalize_chain(config["toChain"])
        config["toChain"] = to_chain

    from_decimals = _resolve_token(config, "fromToken", chain, warnings)
    to_decimals = _resolve_token(config, "toToken", to_chain, warnings)

    amount = config.get("amount")
    if not isinstance(amount, str) or not amount.strip():
        warnings.append(f"{block.label} block is missing amount and will likely fail validation.")
        return
    decimals = from_decimals if swap_type == "EXACT_INPUT" else to_decimals
    converted = to_fixed_point(amount, decimals)
    if converted is None:
        warnings.append(f'Could not parse swap amount "{amount}"; passing it through unchanged.')
        return
    config["amountHuman"] = amount.strip()
    config["amount"] = converted


def _resolve_token(
    config: Dict[str, Any], key: str, chain: str, warnings: List[str]
) -> int:
    symbol = config.get(key)
    if not isinstance(symbol, str) or not symbol.strip():
        warnings.append(f"Swap block is missing {key}; using the zero address.")
        config[f"{key}Address"] = ZERO_ADDRESS
        config[f"{key}Decimals"] = DEFAULT_TOKEN_DECIMALS
        return DEFAULT_TOKEN_DECIMALS

    symbol = symbol.strip().upper()
    config[key] = symbol
    token = lookup_token(chain, symbol)
    if token is None:
        warnings.append(f"Unknown token {symbol} on {chain}; using the zero address.")
        config[f"{key}Address"] = ZERO_ADDRESS
        config[f"{key}Decimals"] = DEFAULT_TOKEN_DECIMALS
        return DEFAULT_TOKEN_DECIMALS
    config[f"{key}Address"] = token.address
    config[f"{key}Decimals"] = token.decimals
    return token.decimals


def link_oracle_outputs(nodes: List[CompiledNode]) -> None:
    """Reference an oracle's answer from the notification right after it."""
    for previous, node in zip(nodes, nodes[1:]):
        if previous.type not in ORACLE_TYPES or node.type not in NOTIFICATION_TYPES:
            continue
        key = message_key(node.type)
        message = str(node.config.get(key) or "")
        if "{{" in message:
            continue
        reference = f"{{{{{previous.id}.{ORACLE_OUTPUT_KEY}}}}}"
        node.config[key] = f"{message}\nPrice: {reference}" if message else reference
        logger.debug(f"Linked notification node {node.id} to oracle node {previous.id}")

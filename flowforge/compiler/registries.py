"""Static chain, token and price-feed tables used during compilation."""

from __future__ import annotations

import re
from typing import Dict, NamedTuple, Optional

DEFAULT_CHAIN = "ARBITRUM"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_TOKEN_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
DEFAULT_TOKEN_DECIMALS = 18

# Key under which price-oracle nodes expose their human-readable answer.
ORACLE_OUTPUT_KEY = "formattedAnswer"

ORACLE_PROVIDERS = ("CHAINLINK", "PYTH")
SWAP_PROVIDERS = ("UNISWAP", "UNISWAP_V4", "RELAY", "ONEINCH", "LIFI")
SWAP_TYPES = ("EXACT_INPUT", "EXACT_OUTPUT")

SWAP_PROVIDER_BY_BLOCK: Dict[str, str] = {
    "uniswap": "UNISWAP",
    "oneinch": "ONEINCH",
    "lifi": "LIFI",
    "relay": "RELAY",
}


class TokenInfo(NamedTuple):
    address: str
    decimals: int


TOKENS: Dict[str, Dict[str, TokenInfo]] = {
    "ARBITRUM": {
        "ETH": TokenInfo(NATIVE_TOKEN_ADDRESS, 18),
        "WETH": TokenInfo("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18),
        "USDC": TokenInfo("0xaf88d065e77c8cC2239327C5EDb3A432268e5831", 6),
        "USDT": TokenInfo("0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", 6),
        "ARB": TokenInfo("0x912CE59144191C1204E64559FE8253a0e49E6548", 18),
        "WBTC": TokenInfo("0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f", 8),
        "LINK": TokenInfo("0xf97f4df75117a78c1A5a0DBb814Af92458539FB4", 18),
    },
    "ARBITRUM_SEPOLIA": {
        "ETH": TokenInfo(NATIVE_TOKEN_ADDRESS, 18),
        "WETH": TokenInfo("0x980B62Da83eFf3D4576C647993b0c1D7faf17c73", 18),
        "USDC": TokenInfo("0x75faf114eafb1BDbe2F0316DF893fd58CE46AA4d", 6),
    },
    "ETHEREUM": {
        "ETH": TokenInfo(NATIVE_TOKEN_ADDRESS, 18),
        "WETH": TokenInfo("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18),
        "USDC": TokenInfo("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
        "USDT": TokenInfo("0xdAC17F958D2ee523a2206206994597C13D831ec7", 6),
        "WBTC": TokenInfo("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 8),
    },
    "ETHEREUM_SEPOLIA": {
        "ETH": TokenInfo(NATIVE_TOKEN_ADDRESS, 18),
        "WETH": TokenInfo("0xfFf9976782d46CC05630D1f6eBAb18b2324d6B14", 18),
        "USDC": TokenInfo("0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238", 6),
    },
    "BASE": {
        "ETH": TokenInfo(NATIVE_TOKEN_ADDRESS, 18),
        "WETH": TokenInfo("0x4200000000000000000000000000000000000006", 18),
        "USDC": TokenInfo("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6),
    },
}

# (chain, feed symbol) -> Chainlink aggregator proxy
CHAINLINK_FEEDS: Dict[str, Dict[str, str]] = {
    "ARBITRUM": {
        "ETH/USD": "0x639Fe6ab55C921f74e7fac1ee960C0B6293ba612",
        "BTC/USD": "0x6ce185860a4963106506C203335A2910413708e9",
        "ARB/USD": "0xb2A824043730FE05F3DA2efaFa1CBbe83fa548D6",
        "LINK/USD": "0x86E53CF1B870786351Da77A57575e79CB55812CB",
    },
    "ETHEREUM": {
        "ETH/USD": "0x5f4eC3Df9cbd43714FE2740f5E3616155c5b8419",
        "BTC/USD": "0xF4030086522a5bEEa4988F8cA5B36dbC97BeE88c",
        "LINK/USD": "0x2c1d072e956AFFC0D435Cb7AC38EF18d24d9127c",
    },
    "BASE": {
        "ETH/USD": "0x71041dddad3595F9CEd3DcCFBe3D1F4b0a16Bb70",
    },
}

# Pyth price ids are chain-independent.
PYTH_FEEDS: Dict[str, str] = {
    "ETH/USD": "0xff61491a931112ddf1bd8147cd1b641375f79f5825126d665480874634fd0ace",
    "BTC/USD": "0xe62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43",
    "ARB/USD": "0x3fa4252848f9f0a1480be62745a4629d9eb1322aebab8a791e344b3b9c1adcf5",
    "LINK/USD": "0x8ac0c70fff57e9aefdf5edf44b51d62c2d433653cbb2cf5cc06bb115af04d221",
    "USDC/USD": "0xeaa020c61cc479712813461ce153894a96a6c00b21ed0cfc2798d1f9a9e9c94a",
}

DEFAULT_FEED_SYMBOL = "ETH/USD"

# Wrapped tokens price off the underlying asset's feed.
FEED_ASSET_ALIASES: Dict[str, str] = {"WETH": "ETH", "WBTC": "BTC"}

EXPLORER_TX_URLS: Dict[str, str] = {
    "ARBITRUM": "https://arbiscan.io/tx/",
    "ARBITRUM_SEPOLIA": "https://sepolia.arbiscan.io/tx/",
    "ETHEREUM": "https://etherscan.io/tx/",
    "ETHEREUM_SEPOLIA": "https://sepolia.etherscan.io/tx/",
    "BASE": "https://basescan.org/tx/",
    "UNICHAIN": "https://unichain.blockscout.com/tx/",
    "UNICHAIN_SEPOLIA": "https://sepolia-unichain.blockscout.com/tx/",
}
DEFAULT_EXPLORER_TX_URL = "https://etherscan.io/tx/"

_SEPARATORS = re.compile(r"[\s-]+")


def normalize_chain(raw: object, default: str = DEFAULT_CHAIN) -> str:
    """Canonical upper/underscore chain id, e.g. ``"Arbitrum Sepolia"`` -> ``ARBITRUM_SEPOLIA``."""
    if not isinstance(raw, str):
        return default
    normalized = _SEPARATORS.sub("_", raw.strip().upper())
    return normalized or default


def normalize_feed_symbol(raw: object) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    symbol = re.sub(r"\s+", "", raw).upper().replace("-", "/").replace("_", "/")
    return symbol or None


def lookup_token(chain: str, symbol: str) -> Optional[TokenInfo]:
    return TOKENS.get(chain, {}).get(symbol.strip().upper())


def explorer_tx_url(chain: Optional[str], tx_hash: str) -> str:
    base = DEFAULT_EXPLORER_TX_URL
    if chain:
        base = EXPLORER_TX_URLS.get(normalize_chain(chain), DEFAULT_EXPLORER_TX_URL)
    return f"{base}{tx_hash}"

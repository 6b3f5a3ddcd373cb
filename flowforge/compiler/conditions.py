"""Parsing of human-readable comparisons such as ``"ETH/USD < 1750"``."""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from ..contracts import CamelModel
from .registries import ORACLE_OUTPUT_KEY

# Two-character operators must be tried before their one-character prefixes.
OPERATORS = ("<=", ">=", "==", "!=", "<", ">", "=")

OPERATOR_NAMES: Dict[str, str] = {
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "==": "EQUALS",
    "=": "EQUALS",
    "!=": "NOT_EQUALS",
}

_OPERATOR_ALIASES: Dict[str, str] = {
    "lt": "LESS_THAN",
    "lte": "LESS_THAN_OR_EQUAL",
    "gt": "GREATER_THAN",
    "gte": "GREATER_THAN_OR_EQUAL",
    "eq": "EQUALS",
    "neq": "NOT_EQUALS",
    "ne": "NOT_EQUALS",
}

_PAIR_SYMBOL = re.compile(r"^[A-Za-z0-9]{2,10}\s*/\s*[A-Za-z]{2,5}$")
_GROUPED_NUMBER = re.compile(r"^-?\d{1,3}(,\d{3})+(\.\d+)?$")


class Condition(CamelModel):
    """Comparison triple evaluated by the backend's conditional node."""

    left_path: str = ""
    operator: str = ""
    right_value: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.left_path and self.operator and self.right_value)


def parse_condition(text: Any) -> Condition:
    """Split ``text`` around its comparison operator.

    A pair symbol on the left (``ETH/USD``) is replaced by the oracle output
    key so the condition evaluates against the preceding oracle node. Input
    that cannot be parsed yields an empty :class:`Condition`.
    """
    if not isinstance(text, str):
        return Condition()
    text = text.strip()
    for symbol in OPERATORS:
        index = text.find(symbol)
        if index == -1:
            continue
        left = text[:index].strip()
        right = text[index + len(symbol) :].strip()
        if not left or not right:
            return Condition()
        return Condition(
            left_path=_normalize_left(left),
            operator=OPERATOR_NAMES[symbol],
            right_value=_normalize_right(right),
        )
    return Condition()


def normalize_operator(raw: Any) -> Optional[str]:
    """Canonical operator name for a symbol, alias or canonical name."""
    if not isinstance(raw, str):
        return None
    value = raw.strip()
    if value in OPERATOR_NAMES:
        return OPERATOR_NAMES[value]
    upper = value.upper()
    if upper in OPERATOR_NAMES.values():
        return upper
    return _OPERATOR_ALIASES.get(value.lower())


def _normalize_left(left: str) -> str:
    if _PAIR_SYMBOL.match(left):
        return ORACLE_OUTPUT_KEY
    return left


def _normalize_right(right: str) -> str:
    right = right.lstrip("$").strip()
    if _GROUPED_NUMBER.match(right):
        right = right.replace(",", "")
    return right

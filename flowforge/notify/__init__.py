"""User notification channels."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FlowForgeConfig, load_config
from .base import BaseNotifier
from .inmemory import InMemoryNotifier
from .log import LoggingNotifier


def get_notifier(
    backend: Optional[str] = None, config: Optional[FlowForgeConfig] = None
) -> BaseNotifier:
    """Factory function to get the configured notifier."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("FLOWFORGE_NOTIFIER")
        or config.notifier.backend
    ).lower()

    if backend == "log":
        return LoggingNotifier()
    elif backend == "memory":
        return InMemoryNotifier()
    elif backend == "telegram":
        from .telegram import TelegramNotifier

        return TelegramNotifier(
            config.notifier.telegram_bot_token or "",
            config.notifier.telegram_api_base,
        )
    else:
        raise ValueError(f"Unsupported notifier backend: {backend}")


__all__ = ["BaseNotifier", "InMemoryNotifier", "LoggingNotifier", "get_notifier"]

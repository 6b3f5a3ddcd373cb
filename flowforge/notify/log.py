"""Notifier that writes messages to the log."""

from __future__ import annotations

import logging

from .base import BaseNotifier

logger = logging.getLogger(__name__)


class LoggingNotifier(BaseNotifier):
    async def send(self, destination: str, text: str) -> None:
        logger.info(f"[notify {destination}] {text}")

"""In-memory notifier for tests."""

from __future__ import annotations

from typing import List, Tuple

from .base import BaseNotifier


class InMemoryNotifier(BaseNotifier):
    """Records every message instead of delivering it."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str]] = []

    async def send(self, destination: str, text: str) -> None:
        self.sent.append((destination, text))

    def messages_for(self, destination: str) -> List[str]:
        return [text for dest, text in self.sent if dest == destination]

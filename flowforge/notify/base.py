"""Notifier interface for user-facing status messages."""

from __future__ import annotations

import abc


class BaseNotifier(metaclass=abc.ABCMeta):
    """Sends a text message to a destination (e.g. a chat id)."""

    @abc.abstractmethod
    async def send(self, destination: str, text: str) -> None:
        """Deliver ``text`` to ``destination``; raise on delivery failure."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release resources (no-op by default)."""
        pass

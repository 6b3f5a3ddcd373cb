"""Telegram Bot API notifier."""

from __future__ import annotations

from typing import Optional

import httpx

from ..clients.base import BaseHttpClient
from ..constants import DEFAULT_TIMEOUT_SECONDS
from ..errors import BackendCallError
from .base import BaseNotifier


class TelegramNotifier(BaseNotifier):
    """Deliver messages with the bot ``sendMessage`` method."""

    def __init__(
        self,
        bot_token: str,
        api_base: str = "https://api.telegram.org",
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not bot_token:
            raise ValueError("A bot token is required for TelegramNotifier")
        self._http = BaseHttpClient(
            f"{api_base.rstrip('/')}/bot{bot_token}",
            timeout=timeout,
            max_attempts=1,
            http_client=http_client,
        )

    async def send(self, destination: str, text: str) -> None:
        response = await self._http.send(
            "telegram sendMessage",
            "POST",
            "/sendMessage",
            json_body={"chat_id": destination, "text": text},
        )
        if response.is_error:
            raise BackendCallError.from_response(
                "telegram sendMessage", response.status_code, response.text
            )
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict) or payload.get("ok") is not True:
            raise BackendCallError(
                "telegram sendMessage",
                status_code=response.status_code,
                reason="invalid_response",
                message=str(payload.get("description")) if isinstance(payload, dict) else None,
            )

    async def aclose(self) -> None:
        await self._http.aclose()

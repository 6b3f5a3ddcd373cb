"""Best-effort planner context and identity-link lookups."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx
from pydantic import AliasChoices, BaseModel, Field

from ..config import BackendConfig
from ..errors import BackendCallError
from .base import BaseHttpClient

logger = logging.getLogger(__name__)

ContextValue = Union[str, int, float, bool, List[str]]

SAFE_CONTEXT_KEYS = frozenset(
    {
        "userAddress",
        "privyUserId",
        "telegramChatId",
        "preferredChains",
        "preferredTokens",
        "riskProfile",
        "slippageBps",
    }
)

DEFAULT_CONTEXT_FIELDS = (
    "telegramChatId",
    "privyUserId",
    "userAddress",
    "preferredChains",
    "preferredTokens",
)


class IdentityLink(BaseModel):
    """Backend identity linked to a chat channel."""

    connection_id: str = Field(validation_alias=AliasChoices("connectionId", "connection_id"))
    user_id: str = Field(validation_alias=AliasChoices("userId", "user_id"))


def sanitize_context(data: Any) -> Dict[str, ContextValue]:
    """Keep allow-listed keys whose values are scalars or lists of strings."""
    if not isinstance(data, dict):
        return {}
    if isinstance(data.get("context"), dict):
        data = data["context"]
    result: Dict[str, ContextValue] = {}
    for key, value in data.items():
        if key not in SAFE_CONTEXT_KEYS or value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            result[key] = value
        elif isinstance(value, list) and all(isinstance(item, str) for item in value):
            result[key] = list(value)
    return result


class ContextClient(BaseHttpClient):
    """Reads trusted per-user context and channel identity links."""

    def __init__(
        self,
        config: BackendConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(
            config.base_url,
            timeout=config.timeout_seconds,
            max_attempts=1,
            http_client=http_client,
        )
        self.config = config

    def _headers(self, user_id: str) -> Dict[str, str]:
        if not self.config.service_key:
            return {}
        return {"x-service-key": self.config.service_key, "x-on-behalf-of": user_id}

    async def fetch_context(
        self,
        user_id: str,
        chat_id: str,
        prompt: str,
        requested_fields: Iterable[str] = DEFAULT_CONTEXT_FIELDS,
        telegram_user_id: Optional[str] = None,
    ) -> Dict[str, ContextValue]:
        """Return allow-listed context, or ``{}`` when unavailable."""
        if not self.configured:
            return {}
        body: Dict[str, Any] = {
            "userId": user_id,
            "chatId": chat_id,
            "requestedFields": list(requested_fields),
            "prompt": prompt,
        }
        if telegram_user_id:
            body["telegramUserId"] = telegram_user_id
        try:
            data = await self.request_data(
                "fetch planner context",
                "POST",
                self.config.context_path,
                headers=self._headers(user_id),
                json_body=body,
                retry=False,
            )
        except BackendCallError as exc:
            logger.warning(f"Context fetch failed for {user_id}: {exc}")
            return {}
        return sanitize_context(data)

    async def fetch_identity_link(self, user_id: str, chat_id: str) -> Optional[IdentityLink]:
        """Resolve the identity linked to ``chat_id``.

        ``None`` means the chat is not linked; any other failure propagates.
        """
        try:
            data = await self.request_data(
                "fetch identity link",
                "GET",
                self.config.identity_link_path,
                headers=self._headers(user_id),
                params={"chatId": chat_id},
            )
        except BackendCallError as exc:
            if exc.status_code == 404:
                return None
            raise
        if not isinstance(data, dict):
            return None
        if isinstance(data.get("connection"), dict):
            data = data["connection"]
        connection_id = data.get("connectionId") or data.get("connection_id")
        if not connection_id:
            return None
        linked_user = data.get("userId") or data.get("user_id") or user_id
        return IdentityLink.model_validate(
            {"connectionId": str(connection_id), "userId": str(linked_user)}
        )

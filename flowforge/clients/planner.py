"""Client for the signed planning-model endpoint."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx

from ..config import PlannerConfig
from ..errors import BackendCallError, InvalidPlan, PlannerError
from ..planner.models import Plan
from ..planner.prompts import build_messages
from ..planner.sanitizer import parse_planner_text, recover_plan, sanitize
from ..planner.schema import PLANNER_RESPONSE_SCHEMA
from ..utils.retry import retry_async
from .base import BaseHttpClient, unwrap_envelope

logger = logging.getLogger(__name__)

CHAT_PATH = "/v1/chat"

# Providers that reject a JSON response schema in the request body.
SCHEMALESS_PROVIDERS = {"eigencloud"}


def sign_request(secret: str, method: str, path: str, body: str, timestamp: str) -> str:
    """Hex HMAC-SHA256 over ``"{timestamp}:{METHOD}:{path}:{body}"``."""
    payload = f"{timestamp}:{method.upper()}:{path}:{body}"
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def extract_planner_payload(data: Any) -> Any:
    """Pick the structured payload out of a chat response's ``data``.

    Structured ``json`` wins; otherwise ``text`` goes through text recovery,
    which always returns an object (possibly the clarification payload).
    """
    if isinstance(data, dict):
        if isinstance(data.get("json"), dict):
            return data["json"]
        text = data.get("text")
        if isinstance(text, str) and text.strip():
            return parse_planner_text(text)
    raise InvalidPlan("Planner returned empty text")


class PlannerClient(BaseHttpClient):
    """Generates sanitized plans from the planning endpoint."""

    def __init__(
        self,
        config: PlannerConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(
            config.base_url,
            timeout=config.timeout_seconds,
            max_attempts=config.max_attempts,
            retry_base_delay=config.retry_base_delay,
            http_client=http_client,
        )
        self.config = config

    def build_chat_body(
        self, prompt: str, user_id: str, context: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "provider": self.config.provider,
            "model": self.config.model_id,
            "messages": build_messages(prompt, context, self.config.system_prompt),
            "temperature": self.config.temperature,
        }
        if self.config.provider not in SCHEMALESS_PROVIDERS:
            body["responseSchema"] = PLANNER_RESPONSE_SCHEMA
        body["requestId"] = str(uuid4())
        body["userId"] = user_id
        return body

    def signed_headers(self, method: str, path: str, body: str) -> Dict[str, str]:
        if not self.config.hmac_secret:
            raise BackendCallError(
                "planner chat", reason="not_configured", message="HMAC secret is not configured"
            )
        timestamp = str(int(time.time() * 1000))
        return {
            "x-timestamp": timestamp,
            "x-signature": sign_request(self.config.hmac_secret, method, path, body, timestamp),
        }

    async def chat(
        self, prompt: str, user_id: str, context: Optional[Dict[str, Any]] = None
    ) -> Any:
        """One signed chat call; returns the envelope's ``data``."""
        body = json.dumps(self.build_chat_body(prompt, user_id, context))
        headers = self.signed_headers("POST", CHAT_PATH, body)
        response = await self.send("planner chat", "POST", CHAT_PATH, headers=headers, content=body)
        return unwrap_envelope("planner chat", response)

    async def generate_plan(
        self, prompt: str, user_id: str, context: Optional[Dict[str, Any]] = None
    ) -> Plan:
        """Ask the model for a plan and sanitize the answer.

        Unusable model output is retried, then replaced by the clarification
        plan. Only transport failures raise :class:`PlannerError`.
        """
        payloads: List[Any] = []

        async def attempt() -> Plan:
            data = await self.chat(prompt, user_id, context)
            payloads.append(data)
            return sanitize(extract_planner_payload(data))

        def retryable(exc: BaseException) -> bool:
            if isinstance(exc, InvalidPlan):
                return True
            return isinstance(exc, BackendCallError) and exc.retryable

        try:
            plan = await retry_async(
                attempt,
                attempts=self.max_attempts,
                is_retryable=retryable,
                base_delay=self.retry_base_delay,
                label="planner request",
            )
        except InvalidPlan as exc:
            logger.warning(f"Planner output unusable after {self.max_attempts} attempts: {exc}")
            return recover_plan(_raw_output(payloads[-1] if payloads else None))
        except BackendCallError as exc:
            raise PlannerError(f"Planner request failed: {exc}") from exc

        logger.info(f"Planner produced '{plan.workflow_name}' with {len(plan.steps)} steps")
        return plan


def _raw_output(data: Any) -> Any:
    if isinstance(data, dict):
        if isinstance(data.get("json"), dict):
            return data["json"]
        if isinstance(data.get("text"), str):
            return data["text"]
    return "" if data is None else data

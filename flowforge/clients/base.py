"""Shared HTTP plumbing for every external service the agent calls."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from ..constants import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_BASE_DELAY, DEFAULT_TIMEOUT_SECONDS
from ..errors import BackendCallError
from ..utils.retry import retry_async

logger = logging.getLogger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """Retry classifier driven by structured error fields only."""
    return isinstance(exc, BackendCallError) and exc.retryable


def unwrap_envelope(operation: str, response: httpx.Response) -> Any:
    """Return ``data`` from a ``{success, data}`` envelope or raise."""
    if response.is_error:
        raise BackendCallError.from_response(operation, response.status_code, response.text)
    try:
        payload = response.json()
    except ValueError as exc:
        raise BackendCallError(
            operation,
            status_code=response.status_code,
            reason="invalid_response",
            message="response is not JSON",
            body=response.text,
        ) from exc
    if not isinstance(payload, dict) or payload.get("success") is not True:
        message = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            message = payload["error"].get("message")
        raise BackendCallError(
            operation,
            status_code=response.status_code,
            reason="invalid_response",
            message=message or "unexpected response envelope",
            body=response.text,
        )
    return payload.get("data")


class BaseHttpClient:
    """Async JSON client with a per-request timeout and bounded retries.

    Every transport failure is converted into a :class:`BackendCallError`
    so callers decide retryability from ``reason`` and ``status_code``.
    """

    def __init__(
        self,
        base_url: Optional[str],
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_base_delay = retry_base_delay
        self._http = http_client
        self._owns_http = http_client is None

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _url(self, operation: str, path: str) -> str:
        if not self.base_url:
            raise BackendCallError(
                operation, reason="not_configured", message="base URL is not configured"
            )
        return f"{self.base_url}{path}"

    async def send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        content: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Perform one HTTP request without retries."""
        url = self._url(operation, path)
        if json_body is not None and content is None:
            content = json.dumps(json_body)
        request_headers = {"content-type": "application/json"}
        request_headers.update(headers or {})
        try:
            return await self._client().request(
                method,
                url,
                headers=request_headers,
                content=content,
                params=params,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            raise BackendCallError(operation, reason="timeout", message=str(exc) or "timed out") from exc
        except httpx.RequestError as exc:
            raise BackendCallError(operation, reason="connection", message=str(exc) or type(exc).__name__) from exc

    async def request_data(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        retry: bool = True,
        **kwargs: Any,
    ) -> Any:
        """Send a request and unwrap its envelope, retrying transient failures."""

        async def attempt() -> Any:
            response = await self.send(operation, method, path, **kwargs)
            return unwrap_envelope(operation, response)

        return await retry_async(
            attempt,
            attempts=self.max_attempts if retry else 1,
            is_retryable=is_retryable,
            base_delay=self.retry_base_delay,
            label=operation,
        )

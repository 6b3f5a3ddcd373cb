from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

from .constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_SIGNING_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    PLANNER_RETRY_BASE_DELAY,
    SCHEDULED_POLL_SECONDS,
    SINGLE_EXECUTION_POLL_SECONDS,
)


class PlannerConfig(BaseModel):
    """Connection settings for the planning model endpoint."""

    base_url: Optional[str] = None
    hmac_secret: Optional[str] = None
    provider: str = "eigencloud"
    model_id: str = "eigencloud-gpt-oss"
    temperature: float = 0.0
    system_prompt: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay: float = PLANNER_RETRY_BASE_DELAY


class BackendConfig(BaseModel):
    """Connection settings for the workflow backend and its context service."""

    base_url: Optional[str] = None
    service_key: Optional[str] = None
    workflows_path: str = "/api/v1/workflows"
    time_blocks_path: str = "/api/v1/time-blocks"
    context_path: str = "/api/v1/agent/context"
    identity_link_path: str = "/api/v1/integrations/telegram/connection"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_ATTEMPTS
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY


class TrackingConfig(BaseModel):
    poll_interval_seconds: float = SINGLE_EXECUTION_POLL_SECONDS
    scheduled_poll_interval_seconds: float = SCHEDULED_POLL_SECONDS
    signing_base_url: str = DEFAULT_SIGNING_BASE_URL


class RedisConfig(BaseModel):
    """Configuration for the Redis session store."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None


class SessionConfig(BaseModel):
    backend: Literal["inmemory", "redis"] = "inmemory"
    redis: RedisConfig = RedisConfig()
    ttl_seconds: int = 7 * 24 * 3600


class NotifierConfig(BaseModel):
    backend: Literal["log", "memory", "telegram"] = "log"
    telegram_bot_token: Optional[str] = None
    telegram_api_base: str = "https://api.telegram.org"


class FlowForgeConfig(BaseModel):
    """Top-level configuration model."""

    planner: PlannerConfig = PlannerConfig()
    backend: BackendConfig = BackendConfig()
    tracking: TrackingConfig = TrackingConfig()
    sessions: SessionConfig = SessionConfig()
    notifier: NotifierConfig = NotifierConfig()
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> FlowForgeConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWFORGE_CONFIG env
            variable or 'config.yaml' in the current directory.

    Environment variables listed in ``_apply_env_overrides`` win over the file.
    """

    config_path = path or os.getenv("FLOWFORGE_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowForgeConfig(**data)
    else:
        config = FlowForgeConfig()

    _apply_env_overrides(config)
    return config


def _apply_env_overrides(config: FlowForgeConfig) -> None:
    planner = config.planner
    planner.base_url = os.getenv("LLM_SERVICE_BASE_URL") or planner.base_url
    planner.hmac_secret = os.getenv("LLM_SERVICE_HMAC_SECRET") or planner.hmac_secret
    planner.model_id = os.getenv("LLM_MODEL") or planner.model_id
    planner.provider = os.getenv("LLM_PROVIDER") or planner.provider
    planner.system_prompt = os.getenv("LLM_SYSTEM_PROMPT") or planner.system_prompt

    backend = config.backend
    backend.base_url = os.getenv("BACKEND_BASE_URL") or backend.base_url
    backend.service_key = os.getenv("BACKEND_SERVICE_KEY") or backend.service_key
    timeout_ms = os.getenv("BACKEND_REQUEST_TIMEOUT_MS")
    if timeout_ms:
        backend.timeout_seconds = int(timeout_ms) / 1000

    frontend = os.getenv("FRONTEND_BASE_URL")
    if frontend:
        config.tracking.signing_base_url = frontend

    bot_token = os.getenv("TELEGRAM_BOT_TOKEN")
    if bot_token:
        config.notifier.telegram_bot_token = bot_token

    session_backend = os.getenv("FLOWFORGE_SESSION_BACKEND")
    if session_backend:
        config.sessions.backend = session_backend  # type: ignore[assignment]

    config.log_level = os.getenv("FLOWFORGE_LOG_LEVEL") or config.log_level

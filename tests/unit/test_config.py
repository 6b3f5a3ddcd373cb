"""Tests for configuration loading."""

from flowforge.config import load_config
from flowforge.sessions import get_session_store
from flowforge.sessions.redis import RedisSessionStore

ENV_VARS = (
    "LLM_SERVICE_BASE_URL",
    "LLM_SERVICE_HMAC_SECRET",
    "LLM_MODEL",
    "LLM_PROVIDER",
    "LLM_SYSTEM_PROMPT",
    "BACKEND_BASE_URL",
    "BACKEND_SERVICE_KEY",
    "BACKEND_REQUEST_TIMEOUT_MS",
    "FRONTEND_BASE_URL",
    "TELEGRAM_BOT_TOKEN",
    "FLOWFORGE_SESSION_BACKEND",
    "FLOWFORGE_LOG_LEVEL",
)


def _clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_load_config_from_env(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
planner:
  base_url: https://planner.example
  provider: openai
backend:
  base_url: https://backend.example
  max_retries: 4
sessions:
  backend: redis
  redis:
    host: testhost
    port: 1234
"""
    )
    monkeypatch.setenv("FLOWFORGE_CONFIG", str(config_path))

    config = load_config()
    assert config.planner.base_url == "https://planner.example"
    assert config.planner.provider == "openai"
    assert config.backend.max_retries == 4
    assert config.sessions.backend == "redis"
    assert config.sessions.redis.host == "testhost"
    assert config.sessions.redis.port == 1234


def test_missing_file_uses_defaults(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    config = load_config(str(tmp_path / "absent.yaml"))

    assert config.backend.base_url is None
    assert config.planner.provider == "eigencloud"
    assert config.tracking.poll_interval_seconds == 5.0
    assert config.log_level == "INFO"


def test_env_overrides_file(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    config_path = tmp_path / "config.yaml"
    config_path.write_text("backend:\n  base_url: https://file.example\n")
    monkeypatch.setenv("BACKEND_BASE_URL", "https://env.example")
    monkeypatch.setenv("BACKEND_REQUEST_TIMEOUT_MS", "2500")
    monkeypatch.setenv("FRONTEND_BASE_URL", "https://app.example")
    monkeypatch.setenv("LLM_SERVICE_HMAC_SECRET", "secret")

    config = load_config(str(config_path))
    assert config.backend.base_url == "https://env.example"
    assert config.backend.timeout_seconds == 2.5
    assert config.tracking.signing_base_url == "https://app.example"
    assert config.planner.hmac_secret == "secret"


def test_get_session_store_uses_config(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
sessions:
  backend: redis
  ttl_seconds: 120
  redis:
    host: confighost
    port: 6380
"""
    )
    monkeypatch.setenv("FLOWFORGE_CONFIG", str(config_path))

    store = get_session_store()
    assert isinstance(store, RedisSessionStore)
    assert store.host == "confighost"
    assert store.port == 6380
    assert store.ttl_seconds == 120

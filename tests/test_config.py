from __future__ import annotations

import pytest

_ENV_KEYS = (
    "APEX_AGENT_HOST",
    "APEX_AGENT_PORT",
    "APEX_AGENT_ENABLED",
    "APEX_AGENT_AUTO_RECONNECT",
    "APEX_AGENT_PERMISSIONS",
    "APEX_CDP_HOST",
    "APEX_CDP_PORT",
    "APEX_HTTP_TIMEOUT",
    "APEX_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_environment() -> None:
    from mcp_servers.apex_agent.config import AgentConfig
    from mcp_servers.apex_agent.permissions import AgentPermissions

    cfg = AgentConfig.from_env()
    assert (cfg.host, cfg.port) == ("localhost", 3052)
    assert cfg.enabled is True
    assert cfg.auto_reconnect is True
    assert cfg.permissions == AgentPermissions()
    assert cfg.cdp_http_base == "http://127.0.0.1:9222"
    assert cfg.http_timeout == 5.0
    assert cfg.log_level == "INFO"


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    from mcp_servers.apex_agent.config import AgentConfig

    monkeypatch.setenv("APEX_AGENT_HOST", "orchestrator.local")
    monkeypatch.setenv("APEX_AGENT_PORT", "4000")
    monkeypatch.setenv("APEX_AGENT_ENABLED", "0")
    monkeypatch.setenv("APEX_AGENT_AUTO_RECONNECT", "false")
    monkeypatch.setenv("APEX_AGENT_PERMISSIONS", '{"scripts": false}')
    monkeypatch.setenv("APEX_CDP_PORT", "9333")
    monkeypatch.setenv("APEX_HTTP_TIMEOUT", "1.5")
    monkeypatch.setenv("APEX_LOG_LEVEL", "debug")

    cfg = AgentConfig.from_env()
    assert (cfg.host, cfg.port) == ("orchestrator.local", 4000)
    assert cfg.enabled is False
    assert cfg.auto_reconnect is False
    assert cfg.permissions.scripts is False
    assert cfg.permissions.navigation is True
    assert cfg.cdp_http_base == "http://127.0.0.1:9333"
    assert cfg.http_timeout == 1.5
    assert cfg.log_level == "DEBUG"


def test_blank_values_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    from mcp_servers.apex_agent.config import AgentConfig

    monkeypatch.setenv("APEX_AGENT_HOST", "  ")
    monkeypatch.setenv("APEX_AGENT_ENABLED", "")

    cfg = AgentConfig.from_env()
    assert cfg.host == "localhost"
    assert cfg.enabled is True

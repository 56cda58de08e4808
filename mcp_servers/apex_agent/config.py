from __future__ import annotations

import os
from dataclasses import dataclass, field

from .permissions import AgentPermissions

DEFAULT_CONTROL_HOST = "localhost"
DEFAULT_CONTROL_PORT = 3052
DEFAULT_CDP_HOST = "127.0.0.1"
DEFAULT_CDP_PORT = 9222


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AgentConfig:
    host: str = DEFAULT_CONTROL_HOST
    port: int = DEFAULT_CONTROL_PORT
    enabled: bool = True
    auto_reconnect: bool = True
    permissions: AgentPermissions = field(default_factory=AgentPermissions)
    cdp_host: str = DEFAULT_CDP_HOST
    cdp_port: int = DEFAULT_CDP_PORT
    http_timeout: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> AgentConfig:
        host = os.environ.get("APEX_AGENT_HOST", DEFAULT_CONTROL_HOST).strip() or DEFAULT_CONTROL_HOST
        port = int(os.environ.get("APEX_AGENT_PORT", str(DEFAULT_CONTROL_PORT)))
        cdp_host = os.environ.get("APEX_CDP_HOST", DEFAULT_CDP_HOST).strip() or DEFAULT_CDP_HOST
        cdp_port = int(os.environ.get("APEX_CDP_PORT", str(DEFAULT_CDP_PORT)))
        timeout = float(os.environ.get("APEX_HTTP_TIMEOUT", "5"))
        return cls(
            host=host,
            port=port,
            enabled=_env_flag("APEX_AGENT_ENABLED", True),
            auto_reconnect=_env_flag("APEX_AGENT_AUTO_RECONNECT", True),
            permissions=AgentPermissions.parse(os.environ.get("APEX_AGENT_PERMISSIONS")),
            cdp_host=cdp_host,
            cdp_port=cdp_port,
            http_timeout=timeout,
            log_level=os.environ.get("APEX_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )

    @property
    def cdp_http_base(self) -> str:
        return f"http://{self.cdp_host}:{self.cdp_port}"

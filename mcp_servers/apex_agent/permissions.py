from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from typing import Any

from .errors import PolicyError

# Capability names as they appear in config (camelCase) mapped to field names.
_CAPABILITY_ALIASES = {
    "mouse": "mouse",
    "keyboard": "keyboard",
    "navigation": "navigation",
    "scripts": "scripts",
    "screenshot": "screenshot",
    "showcursor": "show_cursor",
    "show_cursor": "show_cursor",
    "highlighttarget": "highlight_target",
    "highlight_target": "highlight_target",
    "showtooltips": "show_tooltips",
    "show_tooltips": "show_tooltips",
}

_DENIED_MESSAGES = {
    "navigation": "Navigation not permitted",
    "screenshot": "Screenshots not permitted",
    "scripts": "Script execution not permitted",
}


def _norm_perm(raw: str) -> str | None:
    if not isinstance(raw, str):
        return None
    val = raw.strip().lower()
    return _CAPABILITY_ALIASES.get(val)


def _parse_perm_list(raw: Any) -> list[str]:
    if isinstance(raw, list):
        out: list[str] = []
        for item in raw:
            perm = _norm_perm(str(item))
            if perm:
                out.append(perm)
        return out
    if isinstance(raw, str):
        return [p for p in (_norm_perm(s) for s in raw.split(",")) if p]
    return []


def _truthy(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on", "allow", "granted"}
    return bool(raw)


@dataclass(frozen=True)
class AgentPermissions:
    """Per-capability grants. Every capability is granted unless configured otherwise."""

    mouse: bool = True
    keyboard: bool = True
    navigation: bool = True
    scripts: bool = True
    screenshot: bool = True
    show_cursor: bool = True
    highlight_target: bool = True
    show_tooltips: bool = True

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> AgentPermissions:
        values: dict[str, bool] = {}
        for key, val in (raw or {}).items():
            name = _norm_perm(str(key))
            if name:
                values[name] = _truthy(val)
        return cls(**values)

    @classmethod
    def only(cls, granted: list[str]) -> AgentPermissions:
        """Grant exactly the listed capabilities."""
        allowed = set(granted)
        return cls(**{f.name: f.name in allowed for f in fields(cls)})

    @classmethod
    def parse(cls, raw: str | None) -> AgentPermissions:
        """Parse a JSON object (``{"scripts": false}``) or a comma list of granted capabilities."""
        text = (raw or "").strip()
        if not text:
            return cls()
        if text.startswith("{"):
            try:
                data = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid permissions JSON: {exc}") from exc
            if not isinstance(data, dict):
                raise ValueError("Permissions JSON must be an object")
            return cls.from_mapping(data)
        return cls.only(_parse_perm_list(text))

    def granted(self, capability: str) -> bool:
        name = _norm_perm(capability)
        if name is None:
            return False
        return bool(getattr(self, name))

    def to_dict(self) -> dict[str, bool]:
        return {
            "mouse": self.mouse,
            "keyboard": self.keyboard,
            "navigation": self.navigation,
            "scripts": self.scripts,
            "screenshot": self.screenshot,
            "showCursor": self.show_cursor,
            "highlightTarget": self.highlight_target,
            "showTooltips": self.show_tooltips,
        }


@dataclass
class AgentPolicy:
    """Global enable flag plus per-capability grants.

    Capability checks only bite while the agent is enabled; the disabled gate is
    applied separately by the dispatcher.
    """

    enabled: bool = True
    permissions: AgentPermissions = field(default_factory=AgentPermissions)

    def require(self, capability: str) -> None:
        if not self.enabled:
            return
        if not self.permissions.granted(capability):
            raise PolicyError(_DENIED_MESSAGES.get(capability, f"{capability} not permitted"))

    def update(self, *, enabled: bool | None = None, permissions: dict[str, Any] | None = None) -> None:
        """Apply a settings change from the local UI.

        ``permissions`` is merged into the current grants: capabilities it does
        not mention keep their value, so a partial mapping never re-grants or
        revokes anything else. Send the full mapping to replace every grant.
        ``None`` leaves the grants untouched.
        """
        if enabled is not None:
            self.enabled = bool(enabled)
        if permissions is not None:
            merged = self.permissions.to_dict()
            merged.update(permissions)
            self.permissions = AgentPermissions.from_mapping(merged)

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "permissions": self.permissions.to_dict()}


__all__ = ["AgentPermissions", "AgentPolicy"]

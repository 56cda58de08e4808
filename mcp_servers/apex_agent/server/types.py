"""
Type definitions for tool calls, results and handler context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..errors import TargetResolutionError

if TYPE_CHECKING:
    from ..action_forwarder import ActionForwarder
    from ..browser import TargetProvider
    from ..permissions import AgentPolicy
    from ..session_manager import DebugSessionManager


def _explicit_target(msg: dict[str, Any], params: dict[str, Any]) -> str | None:
    for raw in (msg.get("targetId"), params.get("targetId"), params.get("tabId")):
        if raw not in (None, ""):
            return str(raw)
    return None


@dataclass(frozen=True)
class ToolCallRequest:
    """One inbound tool invocation. Immutable for the duration of the call."""

    tool: str
    params: dict[str, Any] = field(default_factory=dict)
    target_id: str | None = None

    @classmethod
    def from_message(cls, msg: dict[str, Any]) -> ToolCallRequest:
        """Build from a ``tool_call`` frame (or any ``{tool, params}`` message)."""
        raw = msg.get("params")
        params = dict(raw) if isinstance(raw, dict) else {}
        return cls(tool=str(msg.get("tool") or ""), params=params, target_id=_explicit_target(msg, params))


@dataclass(slots=True)
class ToolResult:
    """Result of a tool execution: a success payload or an error message, never both."""

    data: Any = None
    error_message: str | None = None

    @classmethod
    def json(cls, data: Any) -> ToolResult:
        return cls(data=data)

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(error_message=message or "Unknown error")

    @classmethod
    def from_outcome(cls, value: Any) -> ToolResult:
        """Wrap a collaborator's return value; a dict carrying ``error`` becomes an error result."""
        if isinstance(value, dict) and value.get("error"):
            return cls.error(str(value["error"]))
        return cls.json(value)

    @property
    def is_error(self) -> bool:
        return self.error_message is not None

    def to_payload(self) -> Any:
        if self.error_message is not None:
            return {"error": self.error_message}
        return self.data


@dataclass(slots=True)
class HandlerContext:
    """Collaborators available to every handler."""

    sessions: DebugSessionManager
    targets: TargetProvider
    forwarder: ActionForwarder
    policy: AgentPolicy


def require_target(target: Any) -> str:
    """Target id for handlers that need one (the dispatcher resolves it before the call)."""
    if target is None or not getattr(target, "id", None):
        raise TargetResolutionError("No active tab")
    return str(target.id)

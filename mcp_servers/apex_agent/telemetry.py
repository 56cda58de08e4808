"""Records kept in the per-target event logs.

Each record is built from raw CDP event params. Argument summaries and
descriptions are truncated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .server.redaction import redact_url_brief

MAX_CONSOLE_ARGS = 5
MAX_ARG_CHARS = 200
MAX_DESCRIPTION_CHARS = 200


def _str(x: Any, *, max_len: int = 500) -> str:
    try:
        s = str(x)
    except Exception:
        s = "<unstringifiable>"
    if len(s) <= max_len:
        return s
    return s[:max_len] + f"… <truncated len={len(s)}>"


def _remote_obj_to_str(obj: Any) -> str:
    """Best-effort conversion of CDP RemoteObject to short string."""
    if not isinstance(obj, dict):
        return _str(obj, max_len=MAX_ARG_CHARS)
    for k in ("value", "description"):
        if obj.get(k) not in (None, ""):
            return _str(obj.get(k), max_len=MAX_ARG_CHARS)
    return _str(obj.get("type") or "undefined", max_len=MAX_ARG_CHARS)


def _stack_top(params: dict[str, Any]) -> dict[str, Any] | None:
    """Top stack frame (if present) of a console/exception event."""
    st = params.get("stackTrace")
    if not isinstance(st, dict):
        return None
    frames = st.get("callFrames")
    if not isinstance(frames, list) or not frames:
        return None
    f0 = frames[0]
    if not isinstance(f0, dict):
        return None
    out: dict[str, Any] = {}
    if isinstance(f0.get("url"), str) and f0.get("url"):
        out["url"] = redact_url_brief(f0["url"])
    if isinstance(f0.get("functionName"), str) and f0.get("functionName"):
        out["functionName"] = _str(f0["functionName"], max_len=120)
    if isinstance(f0.get("lineNumber"), int):
        out["lineNumber"] = int(f0["lineNumber"])
    if isinstance(f0.get("columnNumber"), int):
        out["columnNumber"] = int(f0["columnNumber"])
    return out or None


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(slots=True)
class NetworkRequestRecord:
    """One request, enriched in place when its response arrives."""

    request_id: str
    url: str
    method: str
    timestamp: float | None = None
    resource_type: str | None = None
    initiator: str | None = None
    status: int | None = None
    status_text: str | None = None
    mime_type: str | None = None
    response_time: float | None = None

    @classmethod
    def from_event(cls, params: dict[str, Any]) -> NetworkRequestRecord:
        request = _dict(params.get("request"))
        return cls(
            request_id=str(params.get("requestId") or ""),
            url=str(request.get("url") or ""),
            method=str(request.get("method") or "GET"),
            timestamp=params.get("timestamp"),
            resource_type=params.get("type"),
            initiator=_dict(params.get("initiator")).get("type"),
        )

    def apply_response(self, params: dict[str, Any]) -> None:
        response = _dict(params.get("response"))
        status = response.get("status")
        self.status = int(status) if isinstance(status, (int, float)) else None
        self.status_text = response.get("statusText")
        self.mime_type = response.get("mimeType")
        self.response_time = params.get("timestamp")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "requestId": self.request_id,
            "url": self.url,
            "method": self.method,
            "timestamp": self.timestamp,
        }
        if self.resource_type:
            out["type"] = self.resource_type
        if self.initiator:
            out["initiator"] = self.initiator
        if self.status is not None:
            out["status"] = self.status
            out["statusText"] = self.status_text
            out["mimeType"] = self.mime_type
            out["responseTime"] = self.response_time
        return out


@dataclass(slots=True)
class ConsoleRecord:
    """Console API output or an uncaught exception (``kind`` tells them apart)."""

    level: str
    timestamp: float | None = None
    args: tuple[str, ...] = ()
    stack_frame: dict[str, Any] | None = None
    kind: str = "console"
    exception: str | None = None
    description: str | None = None
    url: str | None = None
    line_number: int | None = None

    @classmethod
    def from_console_event(cls, params: dict[str, Any]) -> ConsoleRecord:
        raw_args = params.get("args")
        args = raw_args[:MAX_CONSOLE_ARGS] if isinstance(raw_args, list) else []
        return cls(
            level=str(params.get("type") or "log"),
            timestamp=params.get("timestamp"),
            args=tuple(_remote_obj_to_str(a) for a in args),
            stack_frame=_stack_top(params),
        )

    @classmethod
    def from_exception_event(cls, params: dict[str, Any]) -> ConsoleRecord:
        details = _dict(params.get("exceptionDetails"))
        description = _dict(details.get("exception")).get("description")
        line = details.get("lineNumber")
        return cls(
            level="error",
            kind="exception",
            timestamp=params.get("timestamp"),
            exception=details.get("text"),
            description=description[:MAX_DESCRIPTION_CHARS] if isinstance(description, str) else None,
            url=details.get("url"),
            line_number=line if isinstance(line, int) else None,
            stack_frame=_stack_top(details),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.level, "timestamp": self.timestamp}
        if self.kind == "exception":
            out["kind"] = "exception"
            out["exception"] = self.exception
            out["description"] = self.description
            out["url"] = self.url
            out["lineNumber"] = self.line_number
        else:
            out["args"] = list(self.args)
        if self.stack_frame:
            out["stackTrace"] = self.stack_frame
        return out


@dataclass(slots=True)
class AnimationRecord:
    id: str | None
    name: str | None = None
    type: str | None = None
    duration: float | None = None
    delay: float | None = None

    @classmethod
    def from_event(cls, params: dict[str, Any]) -> AnimationRecord:
        # animationCreated carries only an id; animationStarted carries the full animation.
        animation = _dict(params.get("animation"))
        source = _dict(animation.get("source"))
        return cls(
            id=params.get("id") or animation.get("id"),
            name=animation.get("name"),
            type=animation.get("type"),
            duration=source.get("duration"),
            delay=source.get("delay"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "duration": self.duration,
            "delay": self.delay,
        }


__all__ = [
    "AnimationRecord",
    "ConsoleRecord",
    "NetworkRequestRecord",
]

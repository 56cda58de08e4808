"""Browser-side collaborators: target lookup, tab operations and the in-page executor.

The bridge core only talks to the ``TargetProvider`` and ``PageExecutor``
protocols. ``CdpBrowser`` implements both on top of the DevTools HTTP endpoints
and ``DebugSessionManager``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .errors import ProtocolError
from .session_cdp import CdpConnection
from .session_manager import DebugSessionManager

logger = logging.getLogger("apex.agent.browser")

EXECUTOR_GLOBAL = "__apexAgent"


@dataclass(frozen=True)
class TargetInfo:
    id: str
    url: str = ""
    title: str = ""
    type: str = "page"

    @classmethod
    def from_json(cls, item: dict[str, Any]) -> TargetInfo:
        return cls(
            id=str(item.get("id") or item.get("targetId") or ""),
            url=str(item.get("url") or ""),
            title=str(item.get("title") or ""),
            type=str(item.get("type") or "page"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "url": self.url, "title": self.title, "type": self.type}


class TargetProvider(Protocol):
    async def active_target(self) -> TargetInfo | None: ...

    async def get_target(self, target_id: str) -> TargetInfo | None: ...

    async def navigate(self, target_id: str, url: str) -> dict[str, Any]: ...

    async def close_target(self, target_id: str) -> dict[str, Any]: ...

    async def capture_screenshot(self, target_id: str, *, fmt: str = "png", quality: int = 90) -> dict[str, Any]: ...

    async def execute_script(self, target_id: str, script: str) -> dict[str, Any]: ...


class PageExecutor(Protocol):
    async def execute(self, target_id: str, message: dict[str, Any]) -> Any: ...


def _executor_expression(message: dict[str, Any]) -> str:
    payload = json.dumps(message, ensure_ascii=False)
    return (
        "(() => {"
        f" const agent = window.{EXECUTOR_GLOBAL};"
        " if (!agent || typeof agent.handleMessage !== 'function') {"
        " return { error: 'In-page executor not available' }; }"
        f" return agent.handleMessage({payload});"
        " })()"
    )


def _exception_text(details: dict[str, Any]) -> str:
    exc = details.get("exception") if isinstance(details.get("exception"), dict) else {}
    return str(exc.get("description") or details.get("text") or "Script threw an exception")


class CdpBrowser:
    """TargetProvider + PageExecutor over CDP."""

    def __init__(self, connection: CdpConnection, sessions: DebugSessionManager) -> None:
        self._conn = connection
        self._sessions = sessions

    async def list_targets(self) -> list[TargetInfo]:
        raw = await self._conn.get_json("/json/list")
        if not isinstance(raw, list):
            return []
        return [TargetInfo.from_json(item) for item in raw if isinstance(item, dict) and item.get("type") == "page"]

    async def active_target(self) -> TargetInfo | None:
        # /json/list is ordered most recently focused first.
        targets = await self.list_targets()
        return targets[0] if targets else None

    async def get_target(self, target_id: str) -> TargetInfo | None:
        for target in await self.list_targets():
            if target.id == target_id:
                return target
        return None

    async def _evaluate(self, target_id: str, expression: str) -> dict[str, Any]:
        return await self._sessions.send_command(
            target_id,
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
        )

    async def navigate(self, target_id: str, url: str) -> dict[str, Any]:
        await self._sessions.enable_domain(target_id, "Page")
        result = await self._sessions.send_command(target_id, "Page.navigate", {"url": url})
        if result.get("errorText"):
            raise ProtocolError(f"Navigation failed: {result['errorText']}")
        return {"success": True, "url": url}

    async def close_target(self, target_id: str) -> dict[str, Any]:
        await self._sessions.browser_command("Target.closeTarget", {"targetId": target_id})
        self._sessions.remove_target(target_id)
        return {"success": True, "message": f"Tab {target_id} closed"}

    async def capture_screenshot(self, target_id: str, *, fmt: str = "png", quality: int = 90) -> dict[str, Any]:
        params: dict[str, Any] = {"format": fmt}
        if fmt in ("jpeg", "webp"):
            params["quality"] = int(quality)
        result = await self._sessions.send_command(target_id, "Page.captureScreenshot", params)
        data = result.get("data")
        if not isinstance(data, str):
            raise ProtocolError("Page.captureScreenshot returned no data")
        return {"success": True, "dataUrl": f"data:image/{fmt};base64,{data}"}

    async def execute_script(self, target_id: str, script: str) -> dict[str, Any]:
        result = await self._evaluate(target_id, script)
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            return {"error": _exception_text(details)}
        remote = result.get("result") if isinstance(result.get("result"), dict) else {}
        return {"success": True, "result": remote.get("value")}

    async def execute(self, target_id: str, message: dict[str, Any]) -> Any:
        result = await self._evaluate(target_id, _executor_expression(message))
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            return {"error": _exception_text(details)}
        remote = result.get("result") if isinstance(result.get("result"), dict) else {}
        return remote.get("value")


__all__ = ["CdpBrowser", "PageExecutor", "TargetInfo", "TargetProvider"]

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest


class FakeConnection:
    """Stands in for both the DevTools HTTP endpoints and the CDP socket."""

    def __init__(self, targets: list[dict[str, Any]] | None = None) -> None:
        self.targets = targets if targets is not None else []
        self.sent: list[dict[str, Any]] = []
        self.responders: dict[str, Any] = {}
        self.manager: Any = None

    async def get_json(self, path: str) -> Any:
        assert path == "/json/list"
        return self.targets

    async def ensure_open(self) -> None:
        return None

    async def send(self, msg: dict[str, Any]) -> None:
        self.sent.append(msg)
        method = msg["method"]
        if method in self.responders:
            result = self.responders[method](msg)
        elif method == "Target.attachToTarget":
            result = {"sessionId": f"S-{msg['params']['targetId']}"}
        else:
            result = {}
        resp = {"id": msg["id"], "result": result}
        if "sessionId" in msg:
            resp["sessionId"] = msg["sessionId"]
        asyncio.get_running_loop().call_soon(self.manager.handle_message, resp)

    def sent_params(self, method: str) -> dict[str, Any]:
        return next(m for m in self.sent if m["method"] == method)["params"]


_TARGETS = [
    {"id": "A", "type": "page", "url": "https://a.test/", "title": "A"},
    {"id": "W", "type": "service_worker", "url": "https://a.test/sw.js"},
    {"id": "B", "type": "page", "url": "https://b.test/", "title": "B"},
]


def _browser(targets: list[dict[str, Any]] | None = None):
    from mcp_servers.apex_agent.browser import CdpBrowser
    from mcp_servers.apex_agent.session_manager import DebugSessionManager

    conn = FakeConnection(_TARGETS if targets is None else targets)
    sessions = DebugSessionManager(conn)
    conn.manager = sessions
    return CdpBrowser(conn, sessions), conn, sessions


def test_target_listing_keeps_pages_only() -> None:
    async def _run() -> None:
        browser, _, _ = _browser()
        assert [t.id for t in await browser.list_targets()] == ["A", "B"]
        assert (await browser.active_target()).url == "https://a.test/"
        assert (await browser.get_target("B")).title == "B"
        assert await browser.get_target("W") is None

        empty, _, _ = _browser([])
        assert await empty.active_target() is None

    asyncio.run(_run())


def test_navigate_enables_page_domain_and_reports_errors() -> None:
    from mcp_servers.apex_agent.errors import ProtocolError

    async def _run() -> None:
        browser, conn, _ = _browser()
        assert await browser.navigate("A", "https://c.test/") == {"success": True, "url": "https://c.test/"}
        assert [m["method"] for m in conn.sent] == ["Target.attachToTarget", "Page.enable", "Page.navigate"]

        conn.responders["Page.navigate"] = lambda msg: {"errorText": "net::ERR_NAME_NOT_RESOLVED"}
        with pytest.raises(ProtocolError, match="ERR_NAME_NOT_RESOLVED"):
            await browser.navigate("A", "https://nowhere.invalid/")

    asyncio.run(_run())


def test_close_target_purges_session_state() -> None:
    async def _run() -> None:
        browser, conn, sessions = _browser()
        await sessions.attach("A")
        sessions.handle_message(
            {"method": "Runtime.consoleAPICalled", "sessionId": "S-A", "params": {"type": "log", "args": []}}
        )

        assert await browser.close_target("A") == {"success": True, "message": "Tab A closed"}
        assert conn.sent_params("Target.closeTarget") == {"targetId": "A"}
        assert sessions.get_session("A") is None
        assert "A" not in sessions.logs

    asyncio.run(_run())


def test_screenshot_returns_data_url() -> None:
    async def _run() -> None:
        browser, conn, _ = _browser()
        conn.responders["Page.captureScreenshot"] = lambda msg: {"data": "iVBORw0"}

        png = await browser.capture_screenshot("A")
        assert png == {"success": True, "dataUrl": "data:image/png;base64,iVBORw0"}
        assert conn.sent_params("Page.captureScreenshot") == {"format": "png"}

        jpeg = await browser.capture_screenshot("A", fmt="jpeg", quality=60)
        assert jpeg["dataUrl"].startswith("data:image/jpeg;base64,")
        assert conn.sent[-1]["params"] == {"format": "jpeg", "quality": 60}

    asyncio.run(_run())


def test_execute_script_unwraps_value_or_exception() -> None:
    async def _run() -> None:
        browser, conn, _ = _browser()
        conn.responders["Runtime.evaluate"] = lambda msg: {"result": {"type": "number", "value": 4}}
        assert await browser.execute_script("A", "2+2") == {"success": True, "result": 4}

        conn.responders["Runtime.evaluate"] = lambda msg: {
            "result": {"type": "object"},
            "exceptionDetails": {"text": "Uncaught", "exception": {"description": "ReferenceError: x is not defined"}},
        }
        assert await browser.execute_script("A", "x") == {"error": "ReferenceError: x is not defined"}

    asyncio.run(_run())


def test_execute_hands_message_to_in_page_executor() -> None:
    async def _run() -> None:
        browser, conn, _ = _browser()
        conn.responders["Runtime.evaluate"] = lambda msg: {"result": {"type": "object", "value": {"clicked": True}}}

        message = {"type": "AGENT_ACTION", "action": {"type": "CLICK", "selector": "#go"}}
        assert await browser.execute("A", message) == {"clicked": True}

        params = conn.sent_params("Runtime.evaluate")
        assert params["returnByValue"] is True
        assert params["awaitPromise"] is True
        assert "window.__apexAgent" in params["expression"]
        assert json.dumps(message, ensure_ascii=False) in params["expression"]

    asyncio.run(_run())

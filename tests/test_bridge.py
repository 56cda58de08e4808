from __future__ import annotations

import asyncio
from typing import Any


class FakeTargets:
    def __init__(self) -> None:
        from mcp_servers.apex_agent.browser import TargetInfo

        self.active = TargetInfo(id="T1", url="https://example.com/", title="Example")
        self.navigations: list[tuple[str, str]] = []

    async def active_target(self):  # type: ignore[no-untyped-def]
        return self.active

    async def get_target(self, target_id: str):  # type: ignore[no-untyped-def]
        return self.active if target_id == self.active.id else None

    async def navigate(self, target_id: str, url: str) -> dict[str, Any]:
        self.navigations.append((target_id, url))
        return {"success": True, "url": url}

    async def close_target(self, target_id: str) -> dict[str, Any]:
        return {"success": True, "message": f"Tab {target_id} closed"}

    async def capture_screenshot(self, target_id: str, *, fmt: str = "png", quality: int = 90) -> dict[str, Any]:
        return {"success": True, "dataUrl": "data:image/png;base64,AAAA"}

    async def execute_script(self, target_id: str, script: str) -> dict[str, Any]:
        return {"success": True, "result": None}


class FakeExecutor:
    async def execute(self, target_id: str, message: dict[str, Any]) -> Any:
        return {"success": True, "action": message["action"]["type"]}


def _bridge(**overrides: Any):
    from mcp_servers.apex_agent.bridge import ApexBridge
    from mcp_servers.apex_agent.config import AgentConfig

    config = AgentConfig(host="127.0.0.1", port=1, auto_reconnect=False, **overrides)
    bridge = ApexBridge(config, targets=FakeTargets(), executor=FakeExecutor())
    notified: list[dict[str, Any]] = []
    bridge.channel.notify = notified.append  # type: ignore[method-assign]
    return bridge, notified


def test_status_and_unknown_messages() -> None:
    async def _run() -> None:
        bridge, _ = _bridge()
        status = await bridge.handle_local_message({"type": "GET_MCP_STATUS"})
        assert status["connected"] is False
        assert status["state"] == "disconnected"
        assert status["port"] == 1

        assert await bridge.handle_local_message({"type": "REBOOT"}) == {"error": "Unknown message type"}
        assert await bridge.handle_local_message({"type": "STOP_MCP_SERVER"}) == {"success": True}

    asyncio.run(_run())


def test_agent_enablement_gates_sidebar_tool_calls() -> None:
    async def _run() -> None:
        bridge, _ = _bridge()
        ack = await bridge.handle_local_message(
            {"type": "SET_AGENT_ENABLED", "enabled": False, "permissions": {"scripts": False}}
        )
        assert ack == {"success": True}

        agent = await bridge.handle_local_message({"type": "GET_AGENT_STATUS"})
        assert agent["enabled"] is False
        assert agent["permissions"]["scripts"] is False
        assert agent["permissions"]["navigation"] is True

        blocked = await bridge.handle_local_message(
            {"type": "SIDEBAR_TOOL_CALL", "tool": "browser_click", "params": {"selector": "#go"}}
        )
        assert blocked == {"error": "Agent control is disabled"}

        await bridge.handle_local_message({"type": "SET_AGENT_ENABLED", "enabled": True})
        allowed = await bridge.handle_local_message(
            {"type": "SIDEBAR_TOOL_CALL", "tool": "browser_click", "params": {"selector": "#go"}}
        )
        assert allowed == {"success": True, "action": "CLICK"}

    asyncio.run(_run())


def test_forwarded_actions_are_broadcast_locally() -> None:
    async def _run() -> None:
        bridge, notified = _bridge()
        events: list[dict[str, Any]] = []
        bridge.add_local_listener(events.append)

        await bridge.call_tool("browser_hover", {"selector": "#menu"})

        activity = [e for e in events if e["type"] == "AGENT_ACTIVITY"]
        assert activity == [{"type": "AGENT_ACTIVITY", "action": {"type": "HOVER", "details": '{"type": "HOVER", "selector": "#menu"}'}}]
        assert notified == []

    asyncio.run(_run())


def test_load_event_wakes_navigation_and_announces_active_page_only() -> None:
    async def _run() -> None:
        bridge, notified = _bridge()
        nav = asyncio.create_task(bridge.call_tool("browser_navigate", {"url": "https://example.com/next"}))
        await asyncio.sleep(0.01)

        bridge._on_session_event("T2", "Page.loadEventFired", {})
        bridge._on_session_event("T1", "Page.frameNavigated", {})
        await asyncio.sleep(0.01)
        assert not nav.done()
        assert notified == []

        bridge._on_session_event("T1", "Page.loadEventFired", {})
        assert await asyncio.wait_for(nav, timeout=1) == {"success": True, "url": "https://example.com/next"}
        await asyncio.sleep(0.01)
        assert notified == [{"type": "page_changed", "url": "https://example.com/", "title": "Example"}]

    asyncio.run(_run())


def test_status_changes_are_broadcast() -> None:
    async def _run() -> None:
        bridge, _ = _bridge()
        events: list[dict[str, Any]] = []
        bridge.add_local_listener(events.append)

        result = await bridge.handle_local_message({"type": "START_MCP_SERVER", "host": "127.0.0.1", "port": 1})
        assert result["success"] is False

        states = [e["state"] for e in events if e["type"] == "MCP_STATUS_CHANGED"]
        assert states == ["connecting", "disconnected"]
        await bridge.stop()

    asyncio.run(_run())


class FakeWire:
    """Answers CDP commands sent through the bridge's own session manager."""

    def __init__(self, bridge: Any) -> None:
        self.bridge = bridge
        self.sent: list[dict[str, Any]] = []

    async def ensure_open(self) -> None:
        return None

    async def send(self, msg: dict[str, Any]) -> None:
        self.sent.append(msg)
        method = msg["method"]
        if method == "Target.attachToTarget":
            result: dict[str, Any] = {"sessionId": f"S-{msg['params']['targetId']}"}
        elif method == "Runtime.evaluate":
            result = {"result": {"type": "object", "value": {"success": True}}}
        else:
            result = {}
        resp = {"id": msg["id"], "result": result}
        if "sessionId" in msg:
            resp["sessionId"] = msg["sessionId"]
        asyncio.get_running_loop().call_soon(self.bridge.sessions.handle_message, resp)


def test_load_after_forwarded_click_announces_page_change() -> None:
    from mcp_servers.apex_agent.bridge import ApexBridge
    from mcp_servers.apex_agent.config import AgentConfig

    async def _run() -> None:
        bridge = ApexBridge(AgentConfig(host="127.0.0.1", port=1, auto_reconnect=False), targets=FakeTargets())
        wire = FakeWire(bridge)
        bridge.connection.ensure_open = wire.ensure_open  # type: ignore[method-assign]
        bridge.connection.send = wire.send  # type: ignore[method-assign]
        notified: list[dict[str, Any]] = []
        bridge.channel.notify = notified.append  # type: ignore[method-assign]

        assert await bridge.call_tool("browser_click", {"selector": "#go"}) == {"success": True}
        assert [m["method"] for m in wire.sent] == ["Target.attachToTarget", "Page.enable", "Runtime.evaluate"]

        # The page navigates on its own after the click.
        bridge.sessions.handle_message({"method": "Page.loadEventFired", "sessionId": "S-T1", "params": {}})
        await asyncio.sleep(0.01)
        assert notified == [{"type": "page_changed", "url": "https://example.com/", "title": "Example"}]

    asyncio.run(_run())


def test_local_tab_helpers_resolve_active_or_explicit_tab() -> None:
    async def _run() -> None:
        bridge, _ = _bridge()
        events: list[dict[str, Any]] = []
        bridge.add_local_listener(events.append)

        active = await bridge.handle_local_message({"type": "GET_ACTIVE_TAB"})
        assert active == {"id": "T1", "url": "https://example.com/", "title": "Example", "type": "page"}

        info = await bridge.handle_local_message({"type": "GET_TAB_INFO", "tabId": "T1"})
        assert info["active"] is True
        assert await bridge.handle_local_message({"type": "GET_TAB_INFO", "tabId": "T9"}) == {"error": "No such tab: T9"}

        shot = await bridge.handle_local_message({"type": "TAKE_SCREENSHOT", "options": {"format": "png"}})
        assert shot == {"success": True, "dataUrl": "data:image/png;base64,AAAA"}
        bad = await bridge.handle_local_message({"type": "TAKE_SCREENSHOT", "options": {"format": "gif"}})
        assert bad == {"error": "Unsupported screenshot format: gif"}

        assert await bridge.handle_local_message({"type": "EXECUTE_SCRIPT", "script": "1+1"}) == {
            "success": True,
            "result": None,
        }

        acted = await bridge.handle_local_message({"type": "AGENT_ACTION", "action": {"type": "SCROLL"}})
        assert acted == {"success": True, "action": "SCROLL"}
        assert [e["action"]["type"] for e in events if e["type"] == "AGENT_ACTIVITY"] == ["SCROLL"]

        bridge.targets.active = None  # type: ignore[attr-defined]
        assert await bridge.handle_local_message({"type": "GET_ACTIVE_TAB"}) is None
        assert await bridge.handle_local_message({"type": "EXECUTE_SCRIPT", "script": "1"}) == {"error": "No target tab"}
        assert await bridge.handle_local_message({"type": "AGENT_ACTION", "action": {"type": "CLICK"}}) == {
            "error": "No target tab"
        }

    asyncio.run(_run())


def test_local_navigate_waits_for_load_and_honours_permissions() -> None:
    async def _run() -> None:
        bridge, _ = _bridge()
        nav = asyncio.create_task(bridge.handle_local_message({"type": "NAVIGATE", "url": "https://example.com/b"}))
        await asyncio.sleep(0.01)
        assert bridge.targets.navigations == [("T1", "https://example.com/b")]  # type: ignore[attr-defined]
        bridge._on_session_event("T1", "Page.loadEventFired", {})
        assert await asyncio.wait_for(nav, timeout=1) == {"success": True, "url": "https://example.com/b"}

        await bridge.handle_local_message(
            {"type": "SET_AGENT_ENABLED", "enabled": True, "permissions": {"navigation": False, "scripts": False}}
        )
        denied = await bridge.handle_local_message({"type": "NAVIGATE", "url": "https://example.com/c"})
        assert "error" in denied
        assert "error" in await bridge.handle_local_message({"type": "EXECUTE_SCRIPT", "script": "1"})
        assert bridge.targets.navigations == [("T1", "https://example.com/b")]  # type: ignore[attr-defined]

        # Capability grants only bite while the agent is enabled.
        await bridge.handle_local_message({"type": "SET_AGENT_ENABLED", "enabled": False})
        assert await bridge.handle_local_message({"type": "EXECUTE_SCRIPT", "script": "1"}) == {
            "success": True,
            "result": None,
        }

    asyncio.run(_run())

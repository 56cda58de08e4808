from __future__ import annotations

import asyncio
from typing import Any


class RecordingExecutor:
    def __init__(self, reply: Any = None) -> None:
        self.reply = reply if reply is not None else {"success": True}
        self.messages: list[tuple[str, dict[str, Any]]] = []

    async def execute(self, target_id: str, message: dict[str, Any]) -> Any:
        self.messages.append((target_id, message))
        return self.reply


class RecordingTargets:
    def __init__(self) -> None:
        self.navigations: list[tuple[str, str]] = []

    async def navigate(self, target_id: str, url: str) -> dict[str, Any]:
        self.navigations.append((target_id, url))
        return {"success": True, "url": url}


def _forwarder(**kwargs: Any):
    from mcp_servers.apex_agent.action_forwarder import ActionForwarder

    executor = RecordingExecutor(kwargs.pop("reply", None))
    targets = RecordingTargets()
    activity: list[dict[str, Any]] = []
    forwarder = ActionForwarder(executor, targets, on_activity=activity.append, **kwargs)
    return forwarder, executor, targets, activity


def test_forward_wraps_action_and_returns_result_verbatim() -> None:
    async def _run() -> None:
        forwarder, executor, _, _ = _forwarder(reply={"error": "Element not found"})
        result = await forwarder.forward({"type": "HOVER", "selector": "#menu"}, "T1")

        assert result == {"error": "Element not found"}
        assert executor.messages == [("T1", {"type": "AGENT_ACTION", "action": {"type": "HOVER", "selector": "#menu"}})]

    asyncio.run(_run())


def test_forward_publishes_truncated_activity() -> None:
    async def _run() -> None:
        forwarder, _, _, activity = _forwarder()
        await forwarder.forward({"type": "TYPE", "selector": "#q", "text": "x" * 500}, "T1")

        assert len(activity) == 1
        event = activity[0]
        assert event["type"] == "AGENT_ACTIVITY"
        assert event["action"]["type"] == "TYPE"
        assert len(event["action"]["details"]) == 100
        assert event["action"]["details"].startswith('{"type": "TYPE"')

    asyncio.run(_run())


def test_failing_activity_sink_does_not_break_forwarding() -> None:
    from mcp_servers.apex_agent.action_forwarder import ActionForwarder

    def _broken(event: dict[str, Any]) -> None:
        raise RuntimeError("sidebar gone")

    async def _run() -> None:
        forwarder = ActionForwarder(RecordingExecutor(), RecordingTargets(), on_activity=_broken)
        assert await forwarder.forward({"type": "CLICK", "selector": "a"}, "T1") == {"success": True}

    asyncio.run(_run())


def test_navigate_returns_once_load_completes() -> None:
    async def _run() -> None:
        forwarder, _, targets, _ = _forwarder(navigation_timeout=5.0)
        task = asyncio.create_task(forwarder.navigate("T1", "https://example.com/"))
        await asyncio.sleep(0.01)
        assert forwarder.pending_waiters("T1") == 1
        assert not task.done()

        assert forwarder.notify_load_complete("T2") == 0
        assert forwarder.notify_load_complete("T1") == 1

        result = await asyncio.wait_for(task, timeout=1)
        assert result == {"success": True, "url": "https://example.com/"}
        assert targets.navigations == [("T1", "https://example.com/")]
        assert forwarder.pending_waiters("T1") == 0

    asyncio.run(_run())


def test_navigate_succeeds_after_ceiling_without_load_signal() -> None:
    async def _run() -> None:
        forwarder, _, _, _ = _forwarder(navigation_timeout=0.05)
        loop = asyncio.get_running_loop()
        started = loop.time()

        result = await forwarder.navigate("T1", "https://slow.example/")

        assert result == {"success": True, "url": "https://slow.example/"}
        assert loop.time() - started >= 0.04
        assert forwarder.pending_waiters("T1") == 0

    asyncio.run(_run())


def test_concurrent_navigations_are_all_woken() -> None:
    async def _run() -> None:
        forwarder, _, _, _ = _forwarder(navigation_timeout=5.0)
        tasks = [asyncio.create_task(forwarder.navigate("T1", f"https://example.com/{i}")) for i in range(3)]
        await asyncio.sleep(0.01)

        assert forwarder.notify_load_complete("T1") == 3
        results = await asyncio.wait_for(asyncio.gather(*tasks), timeout=1)
        assert [r["url"] for r in results] == [f"https://example.com/{i}" for i in range(3)]

    asyncio.run(_run())

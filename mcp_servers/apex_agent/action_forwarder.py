from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from typing import Any

from .browser import PageExecutor, TargetProvider

logger = logging.getLogger("apex.agent.forwarder")

NAVIGATION_TIMEOUT = 10.0
ACTIVITY_DETAILS_CHARS = 100

ActivitySink = Callable[[dict[str, Any]], None]


def _activity_summary(action: dict[str, Any]) -> dict[str, Any]:
    try:
        details = json.dumps(action, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        details = str(action)
    return {"type": action.get("type"), "details": details[:ACTIVITY_DETAILS_CHARS]}


class ActionForwarder:
    """Hands structured actions to a target's in-page executor."""

    def __init__(
        self,
        executor: PageExecutor,
        targets: TargetProvider,
        *,
        on_activity: ActivitySink | None = None,
        navigation_timeout: float = NAVIGATION_TIMEOUT,
    ) -> None:
        self._executor = executor
        self._targets = targets
        self._on_activity = on_activity
        self.navigation_timeout = float(navigation_timeout)
        self._load_waiters: dict[str, list[asyncio.Future]] = {}

    async def forward(self, action: dict[str, Any], target_id: str) -> Any:
        """Deliver ``action`` and return the executor's result verbatim."""
        result = await self._executor.execute(target_id, {"type": "AGENT_ACTION", "action": action})
        self._publish_activity(action)
        return result

    def _publish_activity(self, action: dict[str, Any]) -> None:
        sink = self._on_activity
        if sink is None:
            return
        with contextlib.suppress(Exception):
            sink({"type": "AGENT_ACTIVITY", "action": _activity_summary(action)})

    async def navigate(self, target_id: str, url: str) -> dict[str, Any]:
        """Start a navigation and wait (bounded) for the target's next load-complete signal."""
        waiter = asyncio.get_running_loop().create_future()
        self._load_waiters.setdefault(target_id, []).append(waiter)
        try:
            await self._targets.navigate(target_id, url)
            try:
                await asyncio.wait_for(asyncio.shield(waiter), timeout=self.navigation_timeout)
            except asyncio.TimeoutError:
                logger.info("No load signal for %s within %.0fs; continuing", target_id, self.navigation_timeout)
        finally:
            self._discard_waiter(target_id, waiter)
        return {"success": True, "url": url}

    def notify_load_complete(self, target_id: str) -> int:
        """Resolve every waiter registered for ``target_id``. Returns how many were woken."""
        waiters = self._load_waiters.pop(target_id, [])
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(True)
        return len(waiters)

    def _discard_waiter(self, target_id: str, waiter: asyncio.Future) -> None:
        waiters = self._load_waiters.get(target_id)
        if not waiters:
            return
        with contextlib.suppress(ValueError):
            waiters.remove(waiter)
        if not waiters:
            self._load_waiters.pop(target_id, None)
        if not waiter.done():
            waiter.cancel()

    def pending_waiters(self, target_id: str) -> int:
        return len(self._load_waiters.get(target_id, []))


__all__ = ["ACTIVITY_DETAILS_CHARS", "NAVIGATION_TIMEOUT", "ActionForwarder"]

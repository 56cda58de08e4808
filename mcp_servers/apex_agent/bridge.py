"""Wiring: one bridge instance owns every component and their lifecycles."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .action_forwarder import ActionForwarder
from .browser import CdpBrowser, PageExecutor, TargetInfo, TargetProvider
from .config import AgentConfig
from .control_channel import ControlChannel
from .errors import BridgeError, ParamError, TargetResolutionError
from .permissions import AgentPolicy
from .server.dispatch import ToolDispatcher
from .server.params import NavigateParams, ScreenshotParams
from .server.types import HandlerContext
from .session_cdp import CdpConnection
from .session_manager import DebugSessionManager

logger = logging.getLogger("apex.agent")

LocalListener = Callable[[dict[str, Any]], None]


class ApexBridge:
    def __init__(
        self,
        config: AgentConfig | None = None,
        *,
        targets: TargetProvider | None = None,
        executor: PageExecutor | None = None,
    ) -> None:
        self.config = config if config is not None else AgentConfig.from_env()
        cfg = self.config

        self.connection = CdpConnection(cfg.cdp_host, cfg.cdp_port, http_timeout=cfg.http_timeout)
        self.sessions = DebugSessionManager(self.connection, auto_enable_domains=("Page",))
        self.connection.set_handlers(self.sessions.handle_message, self.sessions.handle_transport_closed)

        cdp_browser = CdpBrowser(self.connection, self.sessions)
        self.targets: TargetProvider = targets if targets is not None else cdp_browser
        self.executor: PageExecutor = executor if executor is not None else cdp_browser

        self.policy = AgentPolicy(enabled=cfg.enabled, permissions=cfg.permissions)
        self.forwarder = ActionForwarder(self.executor, self.targets, on_activity=self._broadcast)
        self.dispatcher = ToolDispatcher(
            HandlerContext(sessions=self.sessions, targets=self.targets, forwarder=self.forwarder, policy=self.policy)
        )
        self.channel = ControlChannel(
            self.dispatcher.dispatch,
            host=cfg.host,
            port=cfg.port,
            auto_reconnect=cfg.auto_reconnect,
        )

        self.sessions.add_event_listener(self._on_session_event)
        self.channel.add_status_listener(self._on_status_change)
        self._local_listeners: list[LocalListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._shutdown: asyncio.Event | None = None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self) -> dict[str, Any]:
        return await self.channel.start(self.config.host, self.config.port)

    async def stop(self) -> None:
        await self.channel.stop()
        await self.connection.close()
        for task in list(self._tasks):
            task.cancel()

    async def run_forever(self) -> None:
        self._shutdown = asyncio.Event()
        result = await self.start()
        if not result.get("success"):
            logger.warning("Initial connection failed: %s", result.get("error"))
        try:
            await self._shutdown.wait()
        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        if self._shutdown is not None:
            self._shutdown.set()

    # ------------------------------------------------------------------ #
    # Callers
    # ------------------------------------------------------------------ #

    async def call_tool(self, tool: str, params: dict[str, Any] | None = None, target_id: str | None = None) -> Any:
        return await self.dispatcher.call(tool, params, target_id)

    async def handle_local_message(self, msg: dict[str, Any]) -> Any:
        """Local control surface: status, start/stop, agent enablement, tab helpers and direct tool calls."""
        mtype = msg.get("type") if isinstance(msg, dict) else None
        if mtype == "GET_MCP_STATUS":
            return self.channel.status()
        if mtype == "START_MCP_SERVER":
            return await self.channel.start(msg.get("host"), msg.get("port"))
        if mtype == "STOP_MCP_SERVER":
            return await self.channel.stop()
        if mtype == "SET_AGENT_ENABLED":
            perms = msg.get("permissions")
            self.policy.update(
                enabled=bool(msg.get("enabled")),
                permissions=perms if isinstance(perms, dict) else None,
            )
            logger.info("Agent control %s", "enabled" if self.policy.enabled else "disabled")
            return {"success": True}
        if mtype == "GET_AGENT_STATUS":
            return self.policy.to_dict()
        if mtype == "SIDEBAR_TOOL_CALL":
            params = msg.get("params")
            return await self.call_tool(str(msg.get("tool") or ""), params if isinstance(params, dict) else {})
        route = self._tab_routes.get(mtype)
        if route is not None:
            try:
                return await route(self, msg)
            except BridgeError as exc:
                return {"error": str(exc)}
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s failed: %s", mtype, exc)
                return {"error": str(exc) or type(exc).__name__}
        return {"error": "Unknown message type"}

    def add_local_listener(self, listener: LocalListener) -> None:
        """Receive local broadcasts (AGENT_ACTIVITY, MCP_STATUS_CHANGED)."""
        self._local_listeners.append(listener)

    # ------------------------------------------------------------------ #
    # Local tab helpers
    # ------------------------------------------------------------------ #

    async def _resolve_tab(self, msg: dict[str, Any]) -> TargetInfo:
        raw = msg.get("tabId")
        if raw not in (None, ""):
            tab = await self.targets.get_target(str(raw))
            if tab is None:
                raise TargetResolutionError(f"No such tab: {raw}")
            return tab
        tab = await self.targets.active_target()
        if tab is None:
            raise TargetResolutionError("No target tab")
        return tab

    async def _get_active_tab(self, msg: dict[str, Any]) -> dict[str, Any] | None:
        active = await self.targets.active_target()
        return active.to_dict() if active is not None else None

    async def _get_tab_info(self, msg: dict[str, Any]) -> dict[str, Any]:
        tab = await self._resolve_tab(msg)
        active = await self.targets.active_target()
        return {**tab.to_dict(), "active": active is not None and active.id == tab.id}

    async def _navigate(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.policy.require("navigation")
        params = NavigateParams.from_args(msg)
        tab = await self._resolve_tab(msg)
        return await self.forwarder.navigate(tab.id, params.url)

    async def _take_screenshot(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.policy.require("screenshot")
        options = msg.get("options")
        params = ScreenshotParams.from_args(options if isinstance(options, dict) else {})
        # Always the visible tab.
        tab = await self._resolve_tab({})
        return await self.targets.capture_screenshot(tab.id, fmt=params.format, quality=params.quality)

    async def _execute_script(self, msg: dict[str, Any]) -> dict[str, Any]:
        self.policy.require("scripts")
        script = msg.get("script")
        if not isinstance(script, str) or not script:
            raise ParamError("Missing required parameter: script")
        tab = await self._resolve_tab(msg)
        return await self.targets.execute_script(tab.id, script)

    async def _agent_action(self, msg: dict[str, Any]) -> Any:
        action = msg.get("action")
        if not isinstance(action, dict):
            raise ParamError("Missing required parameter: action")
        tab = await self._resolve_tab(msg)
        return await self.forwarder.forward(action, tab.id)

    _tab_routes: dict[str, Callable[[ApexBridge, dict[str, Any]], Awaitable[Any]]] = {
        "GET_ACTIVE_TAB": _get_active_tab,
        "GET_TAB_INFO": _get_tab_info,
        "NAVIGATE": _navigate,
        "TAKE_SCREENSHOT": _take_screenshot,
        "EXECUTE_SCRIPT": _execute_script,
        "AGENT_ACTION": _agent_action,
    }

    # ------------------------------------------------------------------ #
    # Internal events
    # ------------------------------------------------------------------ #

    def _broadcast(self, event: dict[str, Any]) -> None:
        for listener in list(self._local_listeners):
            with contextlib.suppress(Exception):
                listener(event)

    def _on_status_change(self, status: dict[str, Any]) -> None:
        logger.info("Control channel %s", self.channel.badge()["title"])
        self._broadcast({"type": "MCP_STATUS_CHANGED", **status})

    def _on_session_event(self, target_id: str, method: str, params: dict[str, Any]) -> None:
        if method != "Page.loadEventFired":
            return
        self.forwarder.notify_load_complete(target_id)
        with contextlib.suppress(RuntimeError):
            task = asyncio.get_running_loop().create_task(self._announce_page_change(target_id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _announce_page_change(self, target_id: str) -> None:
        try:
            active = await self.targets.active_target()
        except Exception as exc:  # noqa: BLE001
            logger.debug("page_changed skipped: %s", exc)
            return
        if active is None or active.id != target_id:
            return
        self.channel.notify({"type": "page_changed", "url": active.url, "title": active.title})


__all__ = ["ApexBridge"]

"""Persistent websocket connection to the orchestrator.

State machine:

    Disconnected -> Connecting -> Connected -> Reconnecting -> Connecting ...

A close (or a failed open) while reconnecting is wanted schedules one retry after
a fixed delay, up to ``max_reconnect_attempts`` in a row. Past the ceiling the
channel stays Disconnected until ``start()`` is called again.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from .errors import ChannelConnectionError
from .server.types import ToolCallRequest
from .session_helpers import _decode_frame, _encode_frame, _import_websockets, _ws_is_open

logger = logging.getLogger("apex.agent.channel")

CLIENT_NAME = "apex-agent"
OPEN_TIMEOUT = 5.0
KEEPALIVE_INTERVAL = 30.0
RECONNECT_DELAY = 3.0
MAX_RECONNECT_ATTEMPTS = 10

ToolCallHandler = Callable[[ToolCallRequest], Awaitable[Any]]
StatusListener = Callable[[dict[str, Any]], None]
MessageListener = Callable[[dict[str, Any]], None]

_BADGES = {
    "connected": ("●", "#22c55e", "Apex Agent - Connected"),
    "reconnecting": ("◐", "#f59e0b", "Apex Agent - Reconnecting..."),
    "disconnected": ("○", "#666666", "Apex Agent - Disconnected"),
}


class ChannelState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class ControlChannel:
    def __init__(
        self,
        on_tool_call: ToolCallHandler,
        *,
        host: str = "localhost",
        port: int = 3052,
        auto_reconnect: bool = True,
        open_timeout: float = OPEN_TIMEOUT,
        keepalive_interval: float = KEEPALIVE_INTERVAL,
        reconnect_delay: float = RECONNECT_DELAY,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
    ) -> None:
        self._on_tool_call = on_tool_call
        self.host = host
        self.port = int(port)
        self.auto_reconnect = bool(auto_reconnect)
        self.open_timeout = float(open_timeout)
        self.keepalive_interval = float(keepalive_interval)
        self.reconnect_delay = float(reconnect_delay)
        self.max_reconnect_attempts = int(max_reconnect_attempts)

        self.state = ChannelState.DISCONNECTED
        self.retry_count = 0
        self._should_reconnect = False
        self._generation = 0
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._keepalive_task: asyncio.Task | None = None
        self._reconnect_timer: asyncio.TimerHandle | None = None
        self._connect_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._status_listeners: list[StatusListener] = []
        self._message_listeners: list[MessageListener] = []

    # ------------------------------------------------------------------ #
    # Status surface
    # ------------------------------------------------------------------ #

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @property
    def is_open(self) -> bool:
        return _ws_is_open(self._ws)

    @property
    def indicator(self) -> str:
        if self.state is ChannelState.CONNECTED:
            return "connected"
        if self.state is ChannelState.RECONNECTING:
            return "reconnecting"
        if self.state is ChannelState.CONNECTING and self.retry_count > 0:
            return "reconnecting"
        return "disconnected"

    @property
    def live_timers(self) -> int:
        return int(self._reconnect_timer is not None) + int(self._keepalive_task is not None)

    def status(self) -> dict[str, Any]:
        return {
            "connected": self.state is ChannelState.CONNECTED,
            "reconnecting": self.indicator == "reconnecting",
            "state": self.state.value,
            "retryCount": self.retry_count,
            "host": self.host,
            "port": self.port,
        }

    def badge(self) -> dict[str, str]:
        text, color, title = _BADGES[self.indicator]
        return {"text": text, "color": color, "title": title}

    def add_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def add_message_listener(self, listener: MessageListener) -> None:
        self._message_listeners.append(listener)

    def _set_state(self, state: ChannelState) -> None:
        if state is self.state:
            return
        self.state = state
        status = self.status()
        for listener in list(self._status_listeners):
            with contextlib.suppress(Exception):
                listener(status)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def start(self, host: str | None = None, port: int | None = None) -> dict[str, Any]:
        self._should_reconnect = True
        self.retry_count = 0
        return await self._connect(host, port)

    async def stop(self) -> dict[str, Any]:
        self._should_reconnect = False
        self._generation += 1
        self._cancel_reconnect_timer()
        self._stop_keepalive()

        await self._cancel_connect_task()

        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        self._set_state(ChannelState.DISCONNECTED)
        logger.info("Control channel stopped")
        return {"success": True}

    async def _connect(self, host: str | None, port: int | None) -> dict[str, Any]:
        self._cancel_reconnect_timer()
        await self._cancel_connect_task()
        if host:
            self.host = host
        if port:
            self.port = int(port)
        await self._drop_socket()

        # A stale attempt that still completes sees a newer generation and closes its socket.
        self._generation += 1
        generation = self._generation
        self._set_state(ChannelState.CONNECTING)
        websockets = _import_websockets()
        try:
            # Expiry cancels the pending open.
            ws = await asyncio.wait_for(self._open(websockets), timeout=self.open_timeout)
        except asyncio.TimeoutError:
            logger.warning("Control channel open timed out: %s", self.url)
            return self._open_failed(generation, "Connection timeout.")
        except ChannelConnectionError as exc:
            logger.warning("%s", exc)
            return self._open_failed(generation, "Failed to connect. Make sure MCP server is running.")

        if generation != self._generation:
            with contextlib.suppress(Exception):
                await ws.close()
            return {"success": False, "error": "Channel stopped"}

        self._ws = ws
        self.retry_count = 0
        self._set_state(ChannelState.CONNECTED)
        logger.info("Connected to MCP server on %s:%s", self.host, self.port)
        await self.send({"type": "register", "client": CLIENT_NAME})
        self._start_keepalive()
        self._reader = asyncio.create_task(self._read_loop(ws))
        return {"success": True, "host": self.host, "port": self.port}

    async def _open(self, websockets: Any) -> Any:
        try:
            return await websockets.connect(self.url, ping_interval=None, open_timeout=None)
        except Exception as exc:  # noqa: BLE001
            raise ChannelConnectionError(f"Control channel open failed: {self.url} ({exc})") from exc

    def _open_failed(self, generation: int, error: str) -> dict[str, Any]:
        if generation == self._generation:
            self._set_state(ChannelState.DISCONNECTED)
            self._handle_close()
        return {"success": False, "error": error}

    async def _drop_socket(self) -> None:
        """Close a previous socket without treating it as an unexpected close."""
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        self._stop_keepalive()
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()

    def _handle_close(self) -> None:
        self._ws = None
        self._stop_keepalive()
        self._cancel_reconnect_timer()
        if self._should_reconnect and self.auto_reconnect and self.retry_count < self.max_reconnect_attempts:
            self.retry_count += 1
            self._set_state(ChannelState.RECONNECTING)
            logger.info("Reconnecting... attempt %d/%d", self.retry_count, self.max_reconnect_attempts)
            loop = asyncio.get_running_loop()
            self._reconnect_timer = loop.call_later(self.reconnect_delay, self._on_reconnect_timer)
        else:
            self._set_state(ChannelState.DISCONNECTED)

    def _on_reconnect_timer(self) -> None:
        self._reconnect_timer = None
        self._connect_task = asyncio.create_task(self._connect(None, None))

    def _cancel_reconnect_timer(self) -> None:
        timer, self._reconnect_timer = self._reconnect_timer, None
        if timer is not None:
            timer.cancel()

    async def _cancel_connect_task(self) -> None:
        """Cancel an open attempt started by the reconnect timer and wait for it to unwind."""
        task = self._connect_task
        if task is None or task is asyncio.current_task():
            return
        self._connect_task = None
        if not task.done():
            task.cancel()
            await asyncio.wait({task})

    # ------------------------------------------------------------------ #
    # Keepalive
    # ------------------------------------------------------------------ #

    def _start_keepalive(self) -> None:
        self._stop_keepalive()
        self._keepalive_task = asyncio.create_task(self._keepalive_loop())

    def _stop_keepalive(self) -> None:
        task, self._keepalive_task = self._keepalive_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _keepalive_loop(self) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            if self.is_open:
                await self.send({"type": "ping"})

    # ------------------------------------------------------------------ #
    # Traffic
    # ------------------------------------------------------------------ #

    async def send(self, payload: dict[str, Any]) -> bool:
        """Best-effort send. Returns False when the socket is not open or the send failed."""
        ws = self._ws
        if not _ws_is_open(ws):
            return False
        try:
            await ws.send(_encode_frame(payload))
        except Exception as exc:  # noqa: BLE001
            logger.debug("Control channel send failed: %s", exc)
            return False
        return True

    def notify(self, payload: dict[str, Any]) -> None:
        """Fire-and-forget send; never raises."""
        if not self.is_open:
            return
        with contextlib.suppress(RuntimeError):
            self._track(asyncio.get_running_loop().create_task(self.send(payload)))

    def _track(self, task: asyncio.Task) -> None:
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                msg = _decode_frame(raw)
                if msg is None:
                    logger.warning("Failed to parse control message")
                    continue
                self._on_message(msg)
        except Exception as exc:  # noqa: BLE001
            logger.info("Control channel error: %s", exc)
        finally:
            if self._ws is ws:
                logger.info("Control channel closed")
                self._handle_close()

    def _on_message(self, msg: dict[str, Any]) -> None:
        mtype = msg.get("type")
        if mtype == "pong":
            return
        if mtype == "tool_call":
            self._track(asyncio.create_task(self._handle_tool_call(msg)))
            return
        for listener in list(self._message_listeners):
            with contextlib.suppress(Exception):
                listener(msg)

    async def _handle_tool_call(self, msg: dict[str, Any]) -> None:
        request = ToolCallRequest.from_message(msg)
        try:
            result = await self._on_tool_call(request)
        except Exception as exc:  # noqa: BLE001
            result = {"error": str(exc) or exc.__class__.__name__}
        if not self.is_open:
            logger.debug("Dropping result for %s: channel not open", request.tool)
            return
        await self.send({"type": "tool_result", "id": msg.get("id"), "result": result})


__all__ = [
    "CLIENT_NAME",
    "KEEPALIVE_INTERVAL",
    "MAX_RECONNECT_ATTEMPTS",
    "OPEN_TIMEOUT",
    "RECONNECT_DELAY",
    "ChannelState",
    "ControlChannel",
]

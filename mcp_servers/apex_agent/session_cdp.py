"""Browser-level CDP websocket transport.

One connection carries every target: sessions are attached in flattened mode and
their traffic is tagged with ``sessionId``. The connection is opened lazily and
reopened on demand after the browser goes away.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from .http_client import HttpClientError, http_get_json
from .session_helpers import _decode_frame, _encode_frame, _import_websockets, _ws_is_open

logger = logging.getLogger("apex.agent.cdp")

MessageCallback = Callable[[dict[str, Any]], None]
CloseCallback = Callable[[], None]


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        http_timeout: float = 5.0,
        open_timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.http_timeout = http_timeout
        self.open_timeout = open_timeout
        self.ws_url: str | None = None
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._open_lock = asyncio.Lock()
        self._on_message: MessageCallback | None = None
        self._on_close: CloseCallback | None = None

    @property
    def http_base(self) -> str:
        return f"http://{self.host}:{self.port}"

    def set_handlers(self, on_message: MessageCallback, on_close: CloseCallback | None = None) -> None:
        self._on_message = on_message
        self._on_close = on_close

    @property
    def is_open(self) -> bool:
        return _ws_is_open(self._ws)

    async def get_json(self, path: str) -> Any:
        """GET a DevTools HTTP endpoint (``/json/version``, ``/json/list``)."""
        url = f"{self.http_base}{path}"
        return await asyncio.to_thread(http_get_json, url, timeout=self.http_timeout)

    async def discover_ws_url(self) -> str:
        info = await self.get_json("/json/version")
        ws_url = info.get("webSocketDebuggerUrl") if isinstance(info, dict) else None
        if not isinstance(ws_url, str) or not ws_url:
            raise HttpClientError("Browser did not report webSocketDebuggerUrl")
        return ws_url

    async def ensure_open(self) -> None:
        if self.is_open:
            return
        async with self._open_lock:
            if self.is_open:
                return
            websockets = _import_websockets()
            ws_url = await self.discover_ws_url()
            ws = await websockets.connect(
                ws_url,
                ping_interval=None,
                open_timeout=self.open_timeout,
                max_size=None,
            )
            self.ws_url = ws_url
            self._ws = ws
            self._reader = asyncio.create_task(self._read_loop(ws))
            logger.info("CDP connected: %s", ws_url)
            # Without discovery the browser never reports targetDestroyed.
            await self.send({"id": 0, "method": "Target.setDiscoverTargets", "params": {"discover": True}})

    async def send(self, msg: dict[str, Any]) -> None:
        ws = self._ws
        if not _ws_is_open(ws):
            raise ConnectionError("CDP connection is not open")
        await ws.send(_encode_frame(msg))

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for raw in ws:
                msg = _decode_frame(raw)
                if msg is None or self._on_message is None:
                    continue
                try:
                    self._on_message(msg)
                except Exception:  # noqa: BLE001
                    logger.exception("CDP message handler failed")
        except Exception as exc:  # noqa: BLE001
            logger.info("CDP connection lost: %s", exc)
        finally:
            if self._ws is ws:
                self._ws = None
                if self._on_close is not None:
                    with contextlib.suppress(Exception):
                        self._on_close()

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()
        if reader is not None:
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await reader
        if ws is not None and self._on_close is not None:
            with contextlib.suppress(Exception):
                self._on_close()

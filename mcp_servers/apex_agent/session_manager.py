"""Per-target debugging sessions over a flattened CDP connection.

The manager owns one DebugSession per target id, the correlation tables for
in-flight commands and the per-target event logs. Everything runs on one event
loop, so no locks are taken; each mutation happens within a single turn.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from .bounded_log import LogStore
from .errors import ProtocolError, SessionError
from .telemetry import AnimationRecord, ConsoleRecord, NetworkRequestRecord

logger = logging.getLogger("apex.agent.sessions")

COMMAND_TIMEOUT = 30.0

EventListener = Callable[[str, str, dict[str, Any]], None]


class CdpTransport(Protocol):
    async def ensure_open(self) -> None: ...

    async def send(self, msg: dict[str, Any]) -> None: ...


@dataclass(slots=True)
class DebugSession:
    target_id: str
    session_id: str | None = None
    attached: bool = False
    enabled_domains: set[str] = field(default_factory=set)
    pending_commands: dict[int, asyncio.Future] = field(default_factory=dict)


def _fail_all(pending: dict[int, asyncio.Future], message: str) -> int:
    futures = list(pending.values())
    pending.clear()
    for fut in futures:
        if not fut.done():
            fut.set_exception(SessionError(message))
    return len(futures)


class DebugSessionManager:
    def __init__(
        self,
        transport: CdpTransport,
        *,
        logs: LogStore | None = None,
        command_timeout: float = COMMAND_TIMEOUT,
        auto_enable_domains: tuple[str, ...] = (),
    ) -> None:
        self._transport = transport
        self.logs = logs if logs is not None else LogStore()
        self.command_timeout = float(command_timeout)
        self.auto_enable_domains = tuple(auto_enable_domains)
        self._sessions: dict[str, DebugSession] = {}
        self._session_targets: dict[str, str] = {}
        self._browser_pending: dict[int, asyncio.Future] = {}
        self._attaching: dict[str, asyncio.Future] = {}
        self._event_listeners: list[EventListener] = []
        self._next_id = 1

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_session(self, target_id: str) -> DebugSession | None:
        return self._sessions.get(target_id)

    def is_attached(self, target_id: str) -> bool:
        session = self._sessions.get(target_id)
        return bool(session and session.attached)

    def target_for_session(self, session_id: str) -> str | None:
        return self._session_targets.get(session_id)

    def attached_targets(self) -> list[str]:
        return [tid for tid, s in self._sessions.items() if s.attached]

    def add_event_listener(self, listener: EventListener) -> None:
        self._event_listeners.append(listener)

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def _next_command_id(self) -> int:
        cmd_id = self._next_id
        self._next_id += 1
        return cmd_id

    async def _round_trip(
        self,
        pending: dict[int, asyncio.Future],
        method: str,
        params: dict[str, Any] | None,
        *,
        session_id: str | None = None,
    ) -> dict[str, Any]:
        await self._transport.ensure_open()
        cmd_id = self._next_command_id()
        fut = asyncio.get_running_loop().create_future()
        pending[cmd_id] = fut
        msg: dict[str, Any] = {"id": cmd_id, "method": method, "params": params or {}}
        if session_id:
            msg["sessionId"] = session_id
        try:
            await self._transport.send(msg)
            return await asyncio.wait_for(fut, timeout=self.command_timeout)
        except asyncio.TimeoutError as exc:
            raise ProtocolError(f"{method} timed out after {self.command_timeout:g}s") from exc
        except (ConnectionError, OSError) as exc:
            raise ProtocolError(f"{method} could not be sent: {exc}") from exc
        finally:
            pending.pop(cmd_id, None)

    async def browser_command(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a browser-level command (no session), e.g. ``Target.*``."""
        return await self._round_trip(self._browser_pending, method, params)

    async def send_command(
        self,
        target_id: str,
        method: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send ``method`` to ``target_id``, attaching first when needed."""
        session = self._sessions.get(target_id)
        if session is None or not session.attached:
            await self.attach(target_id)
            session = self._sessions.get(target_id)
            if session is None or not session.attached:
                raise SessionError(f"Session for target {target_id} detached")
        return await self._round_trip(
            session.pending_commands,
            method,
            params,
            session_id=session.session_id,
        )

    # ------------------------------------------------------------------ #
    # Attach / detach / domains
    # ------------------------------------------------------------------ #

    async def attach(self, target_id: str) -> dict[str, Any]:
        session = self._sessions.get(target_id)
        if session is not None and session.attached:
            return {"success": True, "already": True, "sessionId": session.session_id}

        inflight = self._attaching.get(target_id)
        if inflight is not None:
            if not await asyncio.shield(inflight):
                raise ProtocolError(f"Attach to target {target_id} failed")
            session = self._sessions.get(target_id)
            return {"success": True, "already": True, "sessionId": session.session_id if session else None}

        done = asyncio.get_running_loop().create_future()
        self._attaching[target_id] = done
        try:
            result = await self.browser_command("Target.attachToTarget", {"targetId": target_id, "flatten": True})
            session_id = result.get("sessionId")
            if not isinstance(session_id, str) or not session_id:
                raise ProtocolError("Target.attachToTarget returned no sessionId")
            self._sessions[target_id] = DebugSession(target_id=target_id, session_id=session_id, attached=True)
            self._session_targets[session_id] = target_id
            self.logs.get_or_create(target_id)
            done.set_result(True)
            logger.info("Attached to target %s (session %s)", target_id, session_id)
        except BaseException:
            if not done.done():
                done.set_result(False)
            raise
        finally:
            self._attaching.pop(target_id, None)

        for domain in self.auto_enable_domains:
            try:
                await self.enable_domain(target_id, domain)
            except (ProtocolError, SessionError) as exc:
                logger.warning("Could not enable %s on %s: %s", domain, target_id, exc)
        return {"success": True, "sessionId": session_id}

    async def detach(self, target_id: str) -> dict[str, Any]:
        session = self._sessions.get(target_id)
        if session is None or not session.attached:
            return {"success": True, "already": True}
        await self.browser_command("Target.detachFromTarget", {"sessionId": session.session_id})
        self._drop_session(target_id, "Session detached")
        logger.info("Detached from target %s", target_id)
        return {"success": True}

    async def enable_domain(self, target_id: str, domain: str) -> dict[str, Any]:
        session = self._sessions.get(target_id)
        if session is not None and session.attached and domain in session.enabled_domains:
            return {"success": True, "already": True}
        await self.send_command(target_id, f"{domain}.enable")
        session = self._sessions.get(target_id)
        if session is not None:
            session.enabled_domains.add(domain)
        return {"success": True}

    # ------------------------------------------------------------------ #
    # Cleanup
    # ------------------------------------------------------------------ #

    def _drop_session(self, target_id: str, reason: str) -> DebugSession | None:
        session = self._sessions.pop(target_id, None)
        if session is None:
            return None
        session.attached = False
        if session.session_id:
            self._session_targets.pop(session.session_id, None)
        failed = _fail_all(session.pending_commands, reason)
        if failed:
            logger.info("Failed %d pending command(s) for %s: %s", failed, target_id, reason)
        return session

    def remove_target(self, target_id: str) -> None:
        """Target closed: drop its session and all of its logs."""
        self._drop_session(target_id, "Target closed")
        if self.logs.purge(target_id):
            logger.debug("Purged logs for closed target %s", target_id)

    def handle_transport_closed(self) -> None:
        """The browser connection went away; every session is gone with it."""
        _fail_all(self._browser_pending, "Debugger connection closed")
        for target_id in list(self._sessions):
            self._drop_session(target_id, "Debugger connection closed")

    # ------------------------------------------------------------------ #
    # Inbound traffic
    # ------------------------------------------------------------------ #

    def handle_message(self, msg: dict[str, Any]) -> None:
        """Single entry point for every frame received from the browser."""
        if not isinstance(msg, dict):
            return
        method = msg.get("method")
        if "id" in msg and not isinstance(method, str):
            self._resolve_response(msg)
            return
        if not isinstance(method, str):
            return
        params = msg.get("params") if isinstance(msg.get("params"), dict) else {}

        if method == "Target.detachedFromTarget":
            target_id = params.get("targetId") or self._session_targets.get(str(params.get("sessionId") or ""))
            if target_id:
                # Backend-initiated: the logs stay readable until the target itself goes away.
                if self._drop_session(str(target_id), "Session detached") is not None:
                    logger.info("Target %s detached by the browser", target_id)
            return
        if method in ("Target.targetDestroyed", "Target.targetCrashed"):
            target_id = params.get("targetId")
            if target_id:
                self.remove_target(str(target_id))
            return

        session_id = msg.get("sessionId")
        if not isinstance(session_id, str):
            return
        target_id = self._session_targets.get(session_id)
        if target_id is None:
            return
        self.ingest_event(target_id, method, params)
        for listener in list(self._event_listeners):
            with contextlib.suppress(Exception):
                listener(target_id, method, params)

    def _resolve_response(self, msg: dict[str, Any]) -> None:
        raw_id = msg.get("id")
        if not isinstance(raw_id, int):
            return
        session_id = msg.get("sessionId")
        if isinstance(session_id, str):
            target_id = self._session_targets.get(session_id)
            session = self._sessions.get(target_id) if target_id else None
            fut = session.pending_commands.pop(raw_id, None) if session else None
        else:
            fut = self._browser_pending.pop(raw_id, None)
        if fut is None or fut.done():
            return
        err = msg.get("error")
        if err is not None:
            message = err.get("message") if isinstance(err, dict) else str(err)
            fut.set_exception(ProtocolError(message or "CDP command failed"))
            return
        result = msg.get("result")
        fut.set_result(result if isinstance(result, dict) else {})

    def ingest_event(self, target_id: str, method: str, params: dict[str, Any]) -> bool:
        """Route one session event into the target's logs. Returns True if recorded."""
        if target_id not in self._sessions:
            return False
        logs = self.logs.get_or_create(target_id)

        if method == "Network.requestWillBeSent":
            logs.network.append(NetworkRequestRecord.from_event(params))
        elif method == "Network.responseReceived":
            request_id = params.get("requestId")
            record = logs.network.find_last(lambda r: r.request_id == request_id)
            if record is None:
                return False
            record.apply_response(params)
        elif method == "Runtime.consoleAPICalled":
            logs.console.append(ConsoleRecord.from_console_event(params))
        elif method == "Runtime.exceptionThrown":
            logs.console.append(ConsoleRecord.from_exception_event(params))
        elif method in ("Animation.animationCreated", "Animation.animationStarted"):
            logs.animation.append(AnimationRecord.from_event(params))
        else:
            return False
        return True

    # ------------------------------------------------------------------ #
    # Log readers
    # ------------------------------------------------------------------ #

    def network_requests(self, target_id: str) -> list[dict[str, Any]]:
        logs = self.logs.get(target_id)
        return [r.to_dict() for r in logs.network] if logs else []

    def console_logs(self, target_id: str) -> list[dict[str, Any]]:
        logs = self.logs.get(target_id)
        return [r.to_dict() for r in logs.console] if logs else []

    def animations(self, target_id: str) -> list[dict[str, Any]]:
        logs = self.logs.get(target_id)
        return [r.to_dict() for r in logs.animation] if logs else []

    def reset_network_log(self, target_id: str) -> None:
        self.logs.get_or_create(target_id).network.clear()


__all__ = ["COMMAND_TIMEOUT", "CdpTransport", "DebugSession", "DebugSessionManager"]

"""
ToolDispatcher: gate, resolve the target, parse parameters, run the handler.

``dispatch`` never raises; every failure comes back as ``{"error": message}``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..errors import BridgeError, PolicyError, TargetResolutionError
from ..http_client import HttpClientError
from .definitions import DISABLED_EXEMPT_TOOLS, NO_TARGET_TOOLS, Tool
from .redaction import redact_tool_arguments
from .registry import ToolRegistry, create_default_registry
from .types import HandlerContext, ToolCallRequest, ToolResult

if TYPE_CHECKING:
    from ..browser import TargetInfo

logger = logging.getLogger("apex.agent.dispatch")


class ToolDispatcher:
    def __init__(self, ctx: HandlerContext, registry: ToolRegistry | None = None) -> None:
        self.ctx = ctx
        self.registry = registry if registry is not None else create_default_registry()

    async def dispatch(self, request: ToolCallRequest) -> Any:
        result = await self.run(request)
        return result.to_payload()

    async def call(self, tool: str, params: dict[str, Any] | None = None, target_id: str | None = None) -> Any:
        """In-process caller path."""
        return await self.dispatch(ToolCallRequest(tool=tool, params=dict(params or {}), target_id=target_id))

    async def run(self, request: ToolCallRequest) -> ToolResult:
        logger.info("tool call %s %s", request.tool, redact_tool_arguments(request.tool, request.params))
        try:
            result = await self._run(request)
        except BridgeError as exc:
            result = ToolResult.error(str(exc))
        except HttpClientError as exc:
            result = ToolResult.error(f"Browser unreachable: {exc}")
        except Exception as exc:  # noqa: BLE001
            logger.exception("Tool %s failed", request.tool)
            result = ToolResult.error(str(exc) or exc.__class__.__name__)
        if result.is_error:
            logger.info("tool %s -> error: %s", request.tool, result.error_message)
        return result

    async def _run(self, request: ToolCallRequest) -> ToolResult:
        tool = Tool.parse(request.tool)
        entry = self.registry.get(tool) if tool is not None else None
        if tool is None or entry is None:
            return ToolResult.error(f"Unknown tool: {request.tool}")
        handler, params_cls = entry

        if not self.ctx.policy.enabled and tool not in DISABLED_EXEMPT_TOOLS:
            raise PolicyError("Agent control is disabled")

        target: TargetInfo | None = None
        if tool not in NO_TARGET_TOOLS:
            target = await self._resolve_target(request.target_id)

        params = params_cls.from_args(request.params)
        return await handler(self.ctx, target, params)

    async def _resolve_target(self, explicit_id: str | None) -> TargetInfo:
        targets = self.ctx.targets
        if explicit_id:
            target = await targets.get_target(explicit_id)
            if target is None:
                raise TargetResolutionError(f"No such tab: {explicit_id}")
            return target
        target = await targets.active_target()
        if target is None:
            raise TargetResolutionError("No active tab")
        return target

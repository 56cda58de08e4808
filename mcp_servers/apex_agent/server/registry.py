"""
Tool registry: O(1) lookup from tool name to (handler, parameter struct).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from .definitions import Tool
from .types import ToolResult

if TYPE_CHECKING:
    from ..browser import TargetInfo
    from .types import HandlerContext

HandlerFunc = Callable[["HandlerContext", "TargetInfo | None", Any], Awaitable[ToolResult]]


class ToolRegistry:
    """Registry for tool handlers, built once at startup."""

    def __init__(self) -> None:
        # tool -> (handler, params_cls)
        self._handlers: dict[Tool, tuple[HandlerFunc, type]] = {}

    def register(self, tool: Tool, handler: HandlerFunc, params_cls: type) -> None:
        """Register a tool handler."""
        self._handlers[tool] = (handler, params_cls)

    def register_many(self, handlers: dict[Tool, tuple[HandlerFunc, type]]) -> None:
        """Register multiple handlers at once."""
        self._handlers.update(handlers)

    def get(self, tool: Tool) -> tuple[HandlerFunc, type] | None:
        return self._handlers.get(tool)

    def has(self, tool: Tool) -> bool:
        return tool in self._handlers

    def tools(self) -> list[Tool]:
        return list(self._handlers)


def create_default_registry() -> ToolRegistry:
    """Registry with every built-in handler."""
    from .handlers import ALL_HANDLERS

    registry = ToolRegistry()
    registry.register_many(ALL_HANDLERS)
    return registry

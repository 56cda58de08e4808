"""
Navigation tool handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..definitions import Tool
from ..params import NavigateParams
from ..types import ToolResult, require_target

if TYPE_CHECKING:
    from ...browser import TargetInfo
    from ..types import HandlerContext


async def handle_browser_navigate(ctx: HandlerContext, target: TargetInfo | None, params: NavigateParams) -> ToolResult:
    ctx.policy.require("navigation")
    result = await ctx.forwarder.navigate(require_target(target), params.url)
    return ToolResult.json(result)


NAVIGATION_HANDLERS: dict[Tool, tuple] = {
    Tool.NAVIGATE: (handle_browser_navigate, NavigateParams),
}

"""
Tab passthrough handlers: screenshot, raw script execution, closing a tab.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..definitions import Tool
from ..params import CloseTabParams, ScreenshotParams, ScriptParams
from ..types import ToolResult, require_target

if TYPE_CHECKING:
    from ...browser import TargetInfo
    from ..types import HandlerContext


async def handle_browser_screenshot(ctx: HandlerContext, target: TargetInfo | None, params: ScreenshotParams) -> ToolResult:
    ctx.policy.require("screenshot")
    result = await ctx.targets.capture_screenshot(require_target(target), fmt=params.format, quality=params.quality)
    return ToolResult.from_outcome(result)


async def handle_browser_execute_script(ctx: HandlerContext, target: TargetInfo | None, params: ScriptParams) -> ToolResult:
    ctx.policy.require("scripts")
    result = await ctx.targets.execute_script(require_target(target), params.script)
    return ToolResult.from_outcome(result)


async def handle_close_tab(ctx: HandlerContext, target: TargetInfo | None, params: CloseTabParams) -> ToolResult:
    result = await ctx.targets.close_target(params.tab_id)
    return ToolResult.from_outcome(result)


TAB_HANDLERS: dict[Tool, tuple] = {
    Tool.SCREENSHOT: (handle_browser_screenshot, ScreenshotParams),
    Tool.EXECUTE_SCRIPT: (handle_browser_execute_script, ScriptParams),
    Tool.CLOSE_TAB: (handle_close_tab, CloseTabParams),
}

"""
In-page action handlers.

Every handler here only shapes an action descriptor and hands it to the target's
in-page executor; the executor owns the DOM logic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..definitions import Tool
from ..params import (
    ClickByTextParams,
    ClickParams,
    ComputedStylesParams,
    DomTreeParams,
    ElementHtmlParams,
    ElementScriptParams,
    EmptyParams,
    FindByTextParams,
    PressKeyParams,
    QueryAllParams,
    ScriptParams,
    ScrollParams,
    SelectorParams,
    StorageParams,
    TypeParams,
    WaitForElementParams,
    WaitParams,
)
from ..types import ToolResult, require_target

if TYPE_CHECKING:
    from ...browser import TargetInfo
    from ..types import HandlerContext


async def _forward(ctx: HandlerContext, target: TargetInfo | None, action: dict[str, Any]) -> ToolResult:
    result = await ctx.forwarder.forward(action, require_target(target))
    return ToolResult.from_outcome(result)


async def handle_browser_click(ctx: HandlerContext, target: TargetInfo | None, params: ClickParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "CLICK", "selector": params.selector, "options": params.options})


async def handle_browser_type(ctx: HandlerContext, target: TargetInfo | None, params: TypeParams) -> ToolResult:
    action = {"type": "TYPE", "selector": params.selector, "text": params.text, "options": params.options}
    return await _forward(ctx, target, action)


async def handle_browser_scroll(ctx: HandlerContext, target: TargetInfo | None, params: ScrollParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "SCROLL", "selector": params.selector, "options": params.options})


async def handle_browser_hover(ctx: HandlerContext, target: TargetInfo | None, params: SelectorParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "HOVER", "selector": params.selector})


async def handle_browser_press_key(ctx: HandlerContext, target: TargetInfo | None, params: PressKeyParams) -> ToolResult:
    action = {
        "type": "PRESS_KEY",
        "key": params.key,
        "options": {
            "selector": params.selector,
            "modifiers": list(params.modifiers),
            "repeat": params.repeat,
            "delay": params.delay,
        },
    }
    return await _forward(ctx, target, action)


async def handle_browser_snapshot(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_SNAPSHOT"})


async def handle_browser_evaluate(ctx: HandlerContext, target: TargetInfo | None, params: ScriptParams) -> ToolResult:
    ctx.policy.require("scripts")
    return await _forward(ctx, target, {"type": "EVALUATE", "script": params.script})


async def handle_browser_wait(ctx: HandlerContext, target: TargetInfo | None, params: WaitParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "WAIT", "condition": params.condition, "timeout": params.timeout})


async def handle_get_page_info(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_PAGE_STATE"})


async def handle_get_element_info(ctx: HandlerContext, target: TargetInfo | None, params: SelectorParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_ELEMENT_INFO", "selector": params.selector})


async def handle_inspect_element(ctx: HandlerContext, target: TargetInfo | None, params: SelectorParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "INSPECT_ELEMENT", "selector": params.selector})


async def handle_get_dom_tree(ctx: HandlerContext, target: TargetInfo | None, params: DomTreeParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_DOM_TREE", "selector": params.selector, "depth": params.depth})


async def handle_get_computed_styles(
    ctx: HandlerContext, target: TargetInfo | None, params: ComputedStylesParams
) -> ToolResult:
    properties = list(params.properties) if params.properties else None
    action = {"type": "GET_COMPUTED_STYLES", "selector": params.selector, "properties": properties}
    return await _forward(ctx, target, action)


async def handle_get_element_html(ctx: HandlerContext, target: TargetInfo | None, params: ElementHtmlParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_ELEMENT_HTML", "selector": params.selector, "outer": params.outer})


async def handle_query_all(ctx: HandlerContext, target: TargetInfo | None, params: QueryAllParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "QUERY_ALL", "selector": params.selector, "limit": params.limit})


async def handle_get_console_logs(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_CONSOLE_LOGS"})


async def handle_get_network_info(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_NETWORK_INFO"})


async def handle_get_storage(ctx: HandlerContext, target: TargetInfo | None, params: StorageParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_STORAGE", "storageType": params.storage_type})


async def handle_get_cookies(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_COOKIES"})


async def handle_get_page_metrics(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_PAGE_METRICS"})


async def handle_find_by_text(ctx: HandlerContext, target: TargetInfo | None, params: FindByTextParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "FIND_BY_TEXT", "text": params.text, "tag": params.tag})


async def handle_browser_click_by_text(
    ctx: HandlerContext, target: TargetInfo | None, params: ClickByTextParams
) -> ToolResult:
    action = {
        "type": "CLICK_BY_TEXT",
        "text": params.text,
        "options": {"tag": params.tag, "exact": params.exact, "index": params.index},
    }
    return await _forward(ctx, target, action)


async def handle_browser_wait_for_element(
    ctx: HandlerContext, target: TargetInfo | None, params: WaitForElementParams
) -> ToolResult:
    action = {
        "type": "WAIT_FOR_ELEMENT",
        "selector": params.selector,
        "options": {"timeout": params.timeout, "visible": params.visible},
    }
    return await _forward(ctx, target, action)


async def handle_browser_execute_safe(ctx: HandlerContext, target: TargetInfo | None, params: ScriptParams) -> ToolResult:
    ctx.policy.require("scripts")
    return await _forward(ctx, target, {"type": "EXECUTE_SAFE", "code": params.script})


async def handle_browser_execute_on_element(
    ctx: HandlerContext, target: TargetInfo | None, params: ElementScriptParams
) -> ToolResult:
    ctx.policy.require("scripts")
    action = {"type": "EXECUTE_ON_ELEMENT", "selector": params.selector, "code": params.code}
    return await _forward(ctx, target, action)


async def handle_get_attributes(ctx: HandlerContext, target: TargetInfo | None, params: SelectorParams) -> ToolResult:
    return await _forward(ctx, target, {"type": "GET_ATTRIBUTES", "selector": params.selector})


PAGE_HANDLERS: dict[Tool, tuple] = {
    Tool.CLICK: (handle_browser_click, ClickParams),
    Tool.TYPE: (handle_browser_type, TypeParams),
    Tool.SCROLL: (handle_browser_scroll, ScrollParams),
    Tool.HOVER: (handle_browser_hover, SelectorParams),
    Tool.PRESS_KEY: (handle_browser_press_key, PressKeyParams),
    Tool.SNAPSHOT: (handle_browser_snapshot, EmptyParams),
    Tool.EVALUATE: (handle_browser_evaluate, ScriptParams),
    Tool.WAIT: (handle_browser_wait, WaitParams),
    Tool.PAGE_INFO: (handle_get_page_info, EmptyParams),
    Tool.ELEMENT_INFO: (handle_get_element_info, SelectorParams),
    Tool.INSPECT_ELEMENT: (handle_inspect_element, SelectorParams),
    Tool.DOM_TREE: (handle_get_dom_tree, DomTreeParams),
    Tool.COMPUTED_STYLES: (handle_get_computed_styles, ComputedStylesParams),
    Tool.ELEMENT_HTML: (handle_get_element_html, ElementHtmlParams),
    Tool.QUERY_ALL: (handle_query_all, QueryAllParams),
    Tool.CONSOLE_LOGS: (handle_get_console_logs, EmptyParams),
    Tool.NETWORK_INFO: (handle_get_network_info, EmptyParams),
    Tool.STORAGE: (handle_get_storage, StorageParams),
    Tool.COOKIES: (handle_get_cookies, EmptyParams),
    Tool.PAGE_METRICS: (handle_get_page_metrics, EmptyParams),
    Tool.FIND_BY_TEXT: (handle_find_by_text, FindByTextParams),
    Tool.CLICK_BY_TEXT: (handle_browser_click_by_text, ClickByTextParams),
    Tool.WAIT_FOR_ELEMENT: (handle_browser_wait_for_element, WaitForElementParams),
    Tool.EXECUTE_SAFE: (handle_browser_execute_safe, ScriptParams),
    Tool.EXECUTE_ON_ELEMENT: (handle_browser_execute_on_element, ElementScriptParams),
    Tool.ATTRIBUTES: (handle_get_attributes, SelectorParams),
}

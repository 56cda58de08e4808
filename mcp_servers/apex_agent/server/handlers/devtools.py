"""
Remote-debugging tool handlers.

These run protocol commands through the session manager (which auto-attaches and
caches enabled domains) and read the per-target event logs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...errors import ProtocolError
from ..definitions import Tool
from ..params import (
    CdpCommandParams,
    DomBreakpointParams,
    EmptyParams,
    OptionalSelectorParams,
    SelectorParams,
)
from ..types import ToolResult, require_target

if TYPE_CHECKING:
    from ...browser import TargetInfo
    from ...session_manager import DebugSessionManager
    from ..types import HandlerContext

MAX_HANDLER_DESCRIPTION = 200
MAX_AX_NODES = 50


async def _query_node(sessions: DebugSessionManager, target_id: str, selector: str) -> int:
    doc = await sessions.send_command(target_id, "DOM.getDocument", {"depth": 0})
    root = doc.get("root") if isinstance(doc.get("root"), dict) else {}
    try:
        found = await sessions.send_command(
            target_id,
            "DOM.querySelector",
            {"nodeId": root.get("nodeId"), "selector": selector},
        )
    except ProtocolError as exc:
        raise ProtocolError(f"Element not found: {selector}") from exc
    node_id = found.get("nodeId")
    if not node_id:
        raise ProtocolError(f"Element not found: {selector}")
    return int(node_id)


def _listener_summary(item: dict[str, Any]) -> dict[str, Any]:
    handler = item.get("handler") if isinstance(item.get("handler"), dict) else {}
    description = handler.get("description")
    return {
        "type": item.get("type"),
        "useCapture": item.get("useCapture"),
        "passive": item.get("passive"),
        "once": item.get("once"),
        "handler": description[:MAX_HANDLER_DESCRIPTION] if isinstance(description, str) else None,
        "scriptId": item.get("scriptId"),
        "lineNumber": item.get("lineNumber"),
        "columnNumber": item.get("columnNumber"),
    }


async def handle_cdp_attach(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return ToolResult.json(await ctx.sessions.attach(require_target(target)))


async def handle_cdp_detach(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    return ToolResult.json(await ctx.sessions.detach(require_target(target)))


async def handle_cdp_command(ctx: HandlerContext, target: TargetInfo | None, params: CdpCommandParams) -> ToolResult:
    result = await ctx.sessions.send_command(require_target(target), params.method, params.params)
    return ToolResult.json(result)


async def handle_get_event_listeners(
    ctx: HandlerContext, target: TargetInfo | None, params: SelectorParams
) -> ToolResult:
    tid = require_target(target)
    sessions = ctx.sessions
    await sessions.enable_domain(tid, "DOM")
    await sessions.enable_domain(tid, "DOMDebugger")
    node_id = await _query_node(sessions, tid, params.selector)
    resolved = await sessions.send_command(tid, "DOM.resolveNode", {"nodeId": node_id})
    obj = resolved.get("object") if isinstance(resolved.get("object"), dict) else {}
    listeners = await sessions.send_command(
        tid,
        "DOMDebugger.getEventListeners",
        {"objectId": obj.get("objectId"), "depth": 1, "pierce": True},
    )
    items = listeners.get("listeners") if isinstance(listeners.get("listeners"), list) else []
    return ToolResult.json(
        {"selector": params.selector, "listeners": [_listener_summary(i) for i in items if isinstance(i, dict)]}
    )


async def handle_start_network_monitor(
    ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams
) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "Network")
    ctx.sessions.reset_network_log(tid)
    return ToolResult.json({"success": True, "message": "Network monitoring started"})


async def handle_get_network_requests(
    ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams
) -> ToolResult:
    requests = ctx.sessions.network_requests(require_target(target))
    return ToolResult.json({"requests": requests, "count": len(requests)})


async def handle_start_cpu_profile(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "Profiler")
    await ctx.sessions.send_command(tid, "Profiler.start")
    return ToolResult.json({"success": True, "message": "CPU profiling started"})


async def handle_stop_cpu_profile(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    result = await ctx.sessions.send_command(require_target(target), "Profiler.stop")
    return ToolResult.json({"success": True, "profile": result.get("profile", result)})


async def handle_take_heap_snapshot(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    # Snapshot chunks arrive as HeapProfiler.addHeapSnapshotChunk events and are not reassembled.
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "HeapProfiler")
    await ctx.sessions.send_command(tid, "HeapProfiler.takeHeapSnapshot", {"reportProgress": False})
    return ToolResult.json({"success": True, "message": "Heap snapshot taken"})


async def handle_set_dom_breakpoint(
    ctx: HandlerContext, target: TargetInfo | None, params: DomBreakpointParams
) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "DOM")
    await ctx.sessions.enable_domain(tid, "DOMDebugger")
    node_id = await _query_node(ctx.sessions, tid, params.selector)
    await ctx.sessions.send_command(tid, "DOMDebugger.setDOMBreakpoint", {"nodeId": node_id, "type": params.type})
    return ToolResult.json({"success": True, "selector": params.selector, "type": params.type})


async def handle_remove_dom_breakpoint(
    ctx: HandlerContext, target: TargetInfo | None, params: DomBreakpointParams
) -> ToolResult:
    tid = require_target(target)
    node_id = await _query_node(ctx.sessions, tid, params.selector)
    await ctx.sessions.send_command(tid, "DOMDebugger.removeDOMBreakpoint", {"nodeId": node_id, "type": params.type})
    return ToolResult.json({"success": True, "selector": params.selector, "type": params.type})


async def handle_start_css_coverage(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "CSS")
    await ctx.sessions.send_command(tid, "CSS.startRuleUsageTracking")
    return ToolResult.json({"success": True, "message": "CSS coverage tracking started"})


async def handle_stop_css_coverage(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    result = await ctx.sessions.send_command(require_target(target), "CSS.stopRuleUsageTracking")
    return ToolResult.json({"success": True, "coverage": result})


async def handle_start_js_coverage(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "Profiler")
    await ctx.sessions.send_command(tid, "Profiler.startPreciseCoverage", {"callCount": True, "detailed": True})
    return ToolResult.json({"success": True, "message": "JS coverage tracking started"})


async def handle_stop_js_coverage(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    tid = require_target(target)
    result = await ctx.sessions.send_command(tid, "Profiler.takePreciseCoverage")
    await ctx.sessions.send_command(tid, "Profiler.stopPreciseCoverage")
    return ToolResult.json({"success": True, "coverage": result})


async def handle_get_cdp_console_logs(
    ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams
) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "Runtime")
    return ToolResult.json({"logs": ctx.sessions.console_logs(tid)})


async def handle_get_performance_metrics(
    ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams
) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "Performance")
    result = await ctx.sessions.send_command(tid, "Performance.getMetrics")
    return ToolResult.json({"metrics": result.get("metrics") or []})


async def handle_get_accessibility_tree(
    ctx: HandlerContext, target: TargetInfo | None, params: OptionalSelectorParams
) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "Accessibility")
    await ctx.sessions.enable_domain(tid, "DOM")
    query: dict[str, Any] = {"depth": 3}
    if params.selector:
        node_id = await _query_node(ctx.sessions, tid, params.selector)
        ax = await ctx.sessions.send_command(tid, "Accessibility.getPartialAXTree", {"nodeId": node_id})
    else:
        ax = await ctx.sessions.send_command(tid, "Accessibility.getFullAXTree", query)
    nodes = ax.get("nodes") if isinstance(ax.get("nodes"), list) else []
    return ToolResult.json({"tree": nodes[:MAX_AX_NODES]})


async def handle_get_layer_tree(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "LayerTree")
    result = await ctx.sessions.send_command(tid, "LayerTree.getLayers")
    return ToolResult.json({"layers": result.get("layers") or []})


async def handle_get_animations(ctx: HandlerContext, target: TargetInfo | None, params: EmptyParams) -> ToolResult:
    tid = require_target(target)
    await ctx.sessions.enable_domain(tid, "Animation")
    return ToolResult.json({"animations": ctx.sessions.animations(tid)})


DEVTOOLS_HANDLERS: dict[Tool, tuple] = {
    Tool.CDP_ATTACH: (handle_cdp_attach, EmptyParams),
    Tool.CDP_DETACH: (handle_cdp_detach, EmptyParams),
    Tool.CDP_COMMAND: (handle_cdp_command, CdpCommandParams),
    Tool.EVENT_LISTENERS: (handle_get_event_listeners, SelectorParams),
    Tool.START_NETWORK_MONITOR: (handle_start_network_monitor, EmptyParams),
    Tool.NETWORK_REQUESTS: (handle_get_network_requests, EmptyParams),
    Tool.START_CPU_PROFILE: (handle_start_cpu_profile, EmptyParams),
    Tool.STOP_CPU_PROFILE: (handle_stop_cpu_profile, EmptyParams),
    Tool.HEAP_SNAPSHOT: (handle_take_heap_snapshot, EmptyParams),
    Tool.SET_DOM_BREAKPOINT: (handle_set_dom_breakpoint, DomBreakpointParams),
    Tool.REMOVE_DOM_BREAKPOINT: (handle_remove_dom_breakpoint, DomBreakpointParams),
    Tool.START_CSS_COVERAGE: (handle_start_css_coverage, EmptyParams),
    Tool.STOP_CSS_COVERAGE: (handle_stop_css_coverage, EmptyParams),
    Tool.START_JS_COVERAGE: (handle_start_js_coverage, EmptyParams),
    Tool.STOP_JS_COVERAGE: (handle_stop_js_coverage, EmptyParams),
    Tool.CDP_CONSOLE_LOGS: (handle_get_cdp_console_logs, EmptyParams),
    Tool.PERFORMANCE_METRICS: (handle_get_performance_metrics, EmptyParams),
    Tool.ACCESSIBILITY_TREE: (handle_get_accessibility_tree, OptionalSelectorParams),
    Tool.LAYER_TREE: (handle_get_layer_tree, EmptyParams),
    Tool.ANIMATIONS: (handle_get_animations, EmptyParams),
}

"""
The closed set of tool names and the two exemption lists.
"""

from __future__ import annotations

from enum import Enum


class Tool(str, Enum):
    # Forwarded to the in-page executor
    CLICK = "browser_click"
    TYPE = "browser_type"
    SCROLL = "browser_scroll"
    HOVER = "browser_hover"
    PRESS_KEY = "browser_press_key"
    SNAPSHOT = "browser_snapshot"
    EVALUATE = "browser_evaluate"
    WAIT = "browser_wait"
    PAGE_INFO = "get_page_info"
    ELEMENT_INFO = "get_element_info"
    INSPECT_ELEMENT = "inspect_element"
    DOM_TREE = "get_dom_tree"
    COMPUTED_STYLES = "get_computed_styles"
    ELEMENT_HTML = "get_element_html"
    QUERY_ALL = "query_all"
    CONSOLE_LOGS = "get_console_logs"
    NETWORK_INFO = "get_network_info"
    STORAGE = "get_storage"
    COOKIES = "get_cookies"
    PAGE_METRICS = "get_page_metrics"
    FIND_BY_TEXT = "find_by_text"
    CLICK_BY_TEXT = "browser_click_by_text"
    WAIT_FOR_ELEMENT = "browser_wait_for_element"
    EXECUTE_SAFE = "browser_execute_safe"
    EXECUTE_ON_ELEMENT = "browser_execute_on_element"
    ATTRIBUTES = "get_attributes"

    # Navigation and tab passthroughs
    NAVIGATE = "browser_navigate"
    SCREENSHOT = "browser_screenshot"
    EXECUTE_SCRIPT = "browser_execute_script"
    CLOSE_TAB = "close_tab"

    # Remote debugging
    CDP_ATTACH = "cdp_attach"
    CDP_DETACH = "cdp_detach"
    CDP_COMMAND = "cdp_command"
    EVENT_LISTENERS = "get_event_listeners"
    START_NETWORK_MONITOR = "start_network_monitor"
    NETWORK_REQUESTS = "get_network_requests"
    START_CPU_PROFILE = "start_cpu_profile"
    STOP_CPU_PROFILE = "stop_cpu_profile"
    HEAP_SNAPSHOT = "take_heap_snapshot"
    SET_DOM_BREAKPOINT = "set_dom_breakpoint"
    REMOVE_DOM_BREAKPOINT = "remove_dom_breakpoint"
    START_CSS_COVERAGE = "start_css_coverage"
    STOP_CSS_COVERAGE = "stop_css_coverage"
    START_JS_COVERAGE = "start_js_coverage"
    STOP_JS_COVERAGE = "stop_js_coverage"
    CDP_CONSOLE_LOGS = "get_cdp_console_logs"
    PERFORMANCE_METRICS = "get_performance_metrics"
    ACCESSIBILITY_TREE = "get_accessibility_tree"
    LAYER_TREE = "get_layer_tree"
    ANIMATIONS = "get_animations"

    @classmethod
    def parse(cls, name: str) -> Tool | None:
        try:
            return cls(name)
        except ValueError:
            return None


# May run while agent control is disabled (inspection/management, no page mutation).
DISABLED_EXEMPT_TOOLS: frozenset[Tool] = frozenset(
    {
        Tool.SNAPSHOT,
        Tool.PAGE_INFO,
        Tool.CLOSE_TAB,
        Tool.CDP_ATTACH,
        Tool.CDP_DETACH,
        Tool.CDP_COMMAND,
    }
)

# Manage their own target; no implicit active-target resolution.
NO_TARGET_TOOLS: frozenset[Tool] = frozenset({Tool.CLOSE_TAB})

# Consult the "scripts" capability.
SCRIPT_TOOLS: frozenset[Tool] = frozenset(
    {
        Tool.EVALUATE,
        Tool.EXECUTE_SAFE,
        Tool.EXECUTE_ON_ELEMENT,
        Tool.EXECUTE_SCRIPT,
    }
)

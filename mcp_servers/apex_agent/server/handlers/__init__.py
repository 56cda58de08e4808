"""
Tool handlers organized by domain.

All handlers follow the signature: async (ctx, target, params) -> ToolResult
"""

from .devtools import DEVTOOLS_HANDLERS
from .navigation import NAVIGATION_HANDLERS
from .page import PAGE_HANDLERS
from .tabs import TAB_HANDLERS

# Aggregate all handlers
ALL_HANDLERS: dict = {
    **PAGE_HANDLERS,
    **NAVIGATION_HANDLERS,
    **TAB_HANDLERS,
    **DEVTOOLS_HANDLERS,
}

__all__ = [
    "ALL_HANDLERS",
    "DEVTOOLS_HANDLERS",
    "NAVIGATION_HANDLERS",
    "PAGE_HANDLERS",
    "TAB_HANDLERS",
]

"""
Per-tool parameter structs.

Each struct carries only the fields its tool reads; defaults mirror the values
the in-page executor expects when a field is omitted (or falsy).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..errors import ParamError

DOM_BREAKPOINT_TYPES = ("subtree-modified", "attribute-modified", "node-removed")


def _opt_str(args: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        val = args.get(key)
        if isinstance(val, str) and val:
            return val
    return None


def _req_str(args: dict[str, Any], *keys: str) -> str:
    val = _opt_str(args, *keys)
    if val is None:
        raise ParamError(f"Missing required parameter: {' or '.join(keys)}")
    return val


def _int_or(args: dict[str, Any], key: str, default: int) -> int:
    val = args.get(key)
    if not val:
        return default
    try:
        return int(val)
    except (TypeError, ValueError) as exc:
        raise ParamError(f"Parameter {key} must be an integer") from exc


def _not_false(args: dict[str, Any], key: str) -> bool:
    return args.get(key) is not False


def _options(args: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in args.items() if k not in ("targetId", "tabId")}


@dataclass(frozen=True)
class EmptyParams:
    @classmethod
    def from_args(cls, args: dict[str, Any]) -> EmptyParams:
        return cls()


@dataclass(frozen=True)
class SelectorParams:
    selector: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> SelectorParams:
        return cls(selector=_req_str(args, "selector", "ref"))


@dataclass(frozen=True)
class ClickParams:
    selector: str
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ClickParams:
        return cls(selector=_req_str(args, "selector", "ref"), options=_options(args))


@dataclass(frozen=True)
class TypeParams:
    selector: str
    text: str
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> TypeParams:
        text = args.get("text")
        if text is None:
            raise ParamError("Missing required parameter: text")
        return cls(selector=_req_str(args, "selector", "ref"), text=str(text), options=_options(args))


@dataclass(frozen=True)
class ScrollParams:
    selector: str = "window"
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ScrollParams:
        return cls(selector=_opt_str(args, "selector") or "window", options=_options(args))


@dataclass(frozen=True)
class PressKeyParams:
    key: str
    selector: str | None = None
    modifiers: tuple[str, ...] = ()
    repeat: int = 1
    delay: int = 50

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> PressKeyParams:
        modifiers = args.get("modifiers") or []
        if not isinstance(modifiers, list):
            raise ParamError("Parameter modifiers must be a list")
        return cls(
            key=_req_str(args, "key"),
            selector=_opt_str(args, "selector", "ref"),
            modifiers=tuple(str(m) for m in modifiers),
            repeat=_int_or(args, "repeat", 1),
            delay=_int_or(args, "delay", 50),
        )


@dataclass(frozen=True)
class ScriptParams:
    script: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ScriptParams:
        return cls(script=_req_str(args, "script", "code"))


@dataclass(frozen=True)
class ElementScriptParams:
    selector: str
    code: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ElementScriptParams:
        return cls(selector=_req_str(args, "selector"), code=_req_str(args, "code", "script"))


@dataclass(frozen=True)
class WaitParams:
    condition: dict[str, Any] = field(default_factory=dict)
    timeout: int | None = None

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> WaitParams:
        timeout = args.get("timeout")
        return cls(condition=_options(args), timeout=int(timeout) if isinstance(timeout, (int, float)) else None)


@dataclass(frozen=True)
class ScreenshotParams:
    format: str = "png"
    quality: int = 90

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ScreenshotParams:
        fmt = (_opt_str(args, "format") or "png").lower()
        if fmt not in ("png", "jpeg", "webp"):
            raise ParamError(f"Unsupported screenshot format: {fmt}")
        return cls(format=fmt, quality=_int_or(args, "quality", 90))


@dataclass(frozen=True)
class DomTreeParams:
    selector: str | None = None
    depth: int = 3

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> DomTreeParams:
        return cls(selector=_opt_str(args, "selector"), depth=_int_or(args, "depth", 3))


@dataclass(frozen=True)
class ComputedStylesParams:
    selector: str
    properties: tuple[str, ...] | None = None

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ComputedStylesParams:
        props = args.get("properties")
        if props is not None and not isinstance(props, list):
            raise ParamError("Parameter properties must be a list")
        return cls(selector=_req_str(args, "selector"), properties=tuple(str(p) for p in props) if props else None)


@dataclass(frozen=True)
class ElementHtmlParams:
    selector: str
    outer: bool = True

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ElementHtmlParams:
        return cls(selector=_req_str(args, "selector"), outer=_not_false(args, "outer"))


@dataclass(frozen=True)
class QueryAllParams:
    selector: str
    limit: int = 20

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> QueryAllParams:
        return cls(selector=_req_str(args, "selector"), limit=_int_or(args, "limit", 20))


@dataclass(frozen=True)
class StorageParams:
    storage_type: str = "local"

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> StorageParams:
        return cls(storage_type=_opt_str(args, "type") or "local")


@dataclass(frozen=True)
class FindByTextParams:
    text: str
    tag: str | None = None

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> FindByTextParams:
        return cls(text=_req_str(args, "text"), tag=_opt_str(args, "tag"))


@dataclass(frozen=True)
class ClickByTextParams:
    text: str
    tag: str | None = None
    exact: bool = False
    index: int = 0

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> ClickByTextParams:
        return cls(
            text=_req_str(args, "text"),
            tag=_opt_str(args, "tag"),
            exact=bool(args.get("exact") or False),
            index=_int_or(args, "index", 0),
        )


@dataclass(frozen=True)
class WaitForElementParams:
    selector: str
    timeout: int = 10000
    visible: bool = True

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> WaitForElementParams:
        return cls(
            selector=_req_str(args, "selector"),
            timeout=_int_or(args, "timeout", 10000),
            visible=_not_false(args, "visible"),
        )


@dataclass(frozen=True)
class NavigateParams:
    url: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> NavigateParams:
        return cls(url=_req_str(args, "url"))


@dataclass(frozen=True)
class CloseTabParams:
    tab_id: str

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> CloseTabParams:
        raw = args.get("tabId", args.get("targetId"))
        if raw in (None, ""):
            raise ParamError("Missing required parameter: tabId")
        return cls(tab_id=str(raw))


@dataclass(frozen=True)
class CdpCommandParams:
    method: str
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> CdpCommandParams:
        raw = args.get("params") or {}
        if not isinstance(raw, dict):
            raise ParamError("Parameter params must be an object")
        return cls(method=_req_str(args, "method"), params=dict(raw))


@dataclass(frozen=True)
class DomBreakpointParams:
    selector: str
    type: str = "subtree-modified"

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> DomBreakpointParams:
        bp_type = _opt_str(args, "type") or "subtree-modified"
        if bp_type not in DOM_BREAKPOINT_TYPES:
            raise ParamError(f"Unsupported DOM breakpoint type: {bp_type}")
        return cls(selector=_req_str(args, "selector"), type=bp_type)


@dataclass(frozen=True)
class OptionalSelectorParams:
    selector: str | None = None

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> OptionalSelectorParams:
        return cls(selector=_opt_str(args, "selector"))

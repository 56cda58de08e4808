"""Redaction of tool arguments and URLs before they reach the log.

Prefers safety over fidelity: typed text, script bodies and anything under a
secret-looking key is replaced with a size summary.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_SENSITIVE_SUBSTRINGS = (
    "token",
    "secret",
    "password",
    "passwd",
    "pwd",
    "authorization",
    "cookie",
    "session",
    "jwt",
    "bearer",
    "api-key",
    "api_key",
    "apikey",
)

# Avoid false-positives like "author" while still catching the bare key.
_SENSITIVE_EXACT = {"auth"}

# Keys whose values are page input or code rather than structure.
_TOOL_PAYLOAD_KEYS: dict[str, frozenset[str]] = {
    "browser_type": frozenset({"text"}),
    "browser_evaluate": frozenset({"script", "code"}),
    "browser_execute_safe": frozenset({"script", "code"}),
    "browser_execute_on_element": frozenset({"script", "code"}),
    "browser_execute_script": frozenset({"script", "code"}),
    "cdp_command": frozenset({"params"}),
}


def is_sensitive_key(key: str) -> bool:
    k = (key or "").strip().lower()
    if not k:
        return False
    if k in _SENSITIVE_EXACT:
        return True
    return any(s in k for s in _SENSITIVE_SUBSTRINGS)


def redact_url(url: str) -> str:
    """Redact secret-looking query params and userinfo; other params are kept."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    changed = False
    netloc = parts.netloc
    query = parts.query
    if "@" in netloc:
        netloc = netloc.split("@", 1)[1]
        changed = True

    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        out_pairs = [(k, "<redacted>" if v and is_sensitive_key(k) else v) for k, v in pairs]
        if out_pairs != pairs:
            query = urlencode(out_pairs, doseq=True)
            changed = True

    if not changed:
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def redact_url_brief(url: str) -> str:
    """Low-noise URL redaction (drops query+fragment; removes userinfo)."""
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.netloc.split("@", 1)[1] if "@" in parts.netloc else parts.netloc
    return urlunsplit((parts.scheme, netloc, parts.path, "", ""))


def _redacted_summary(value: Any) -> str:
    if value is None:
        return "<redacted>"
    if isinstance(value, str):
        return f"<redacted str len={len(value)}>"
    if isinstance(value, (list, tuple, set)):
        return f"<redacted list len={len(value)}>"
    if isinstance(value, dict):
        return f"<redacted dict keys={len(value)}>"
    return "<redacted>"


def _redact_any(value: Any, *, tool: str, key: str | None, depth: int) -> Any:
    lk = (key or "").lower()
    if depth == 0 and lk in _TOOL_PAYLOAD_KEYS.get(tool, ()):
        return _redacted_summary(value)
    if lk and is_sensitive_key(lk):
        return _redacted_summary(value)
    if isinstance(value, dict):
        return {k: _redact_any(v, tool=tool, key=str(k), depth=depth + 1) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_any(v, tool=tool, key=key, depth=depth + 1) for v in value]
    if isinstance(value, str) and lk == "url":
        return redact_url(value)
    return value


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    if not isinstance(args, dict):
        return {}
    return {k: _redact_any(v, tool=tool, key=str(k), depth=0) for k, v in args.items()}


__all__ = [
    "is_sensitive_key",
    "redact_tool_arguments",
    "redact_url",
    "redact_url_brief",
]

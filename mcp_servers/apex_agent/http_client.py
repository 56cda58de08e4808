"""Minimal JSON-over-HTTP client for the DevTools discovery endpoints."""

from __future__ import annotations

import json
import urllib.parse
from typing import Any
from urllib.error import URLError
from urllib.request import Request, urlopen


class HttpClientError(Exception):
    pass


def _build_request(url: str) -> Request:
    return Request(url, headers={"User-Agent": "apex-agent/1.0"})


def http_get_json(url: str, *, timeout: float = 5.0, max_bytes: int = 2_000_000) -> Any:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise HttpClientError("Only http/https are supported")
    try:
        with urlopen(_build_request(url), timeout=timeout) as resp:
            body = resp.read(max_bytes + 1)
    except (TimeoutError, URLError, OSError) as exc:
        raise HttpClientError(str(exc)) from exc
    if len(body) > max_bytes:
        raise HttpClientError(f"Response from {parsed.path or '/'} exceeds {max_bytes} bytes")
    try:
        return json.loads(body.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as exc:
        raise HttpClientError(f"Invalid JSON from {parsed.path or '/'}: {exc}") from exc

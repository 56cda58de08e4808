"""Helpers shared by the two websocket clients (CDP transport and control channel)."""

from __future__ import annotations

import json
from typing import Any


def _import_websockets():
    try:
        import websockets  # type: ignore[import-not-found]

        return websockets
    except Exception as exc:  # noqa: BLE001
        raise RuntimeError(
            "The bridge requires the 'websockets' Python package. Install it (pip install websockets)."
        ) from exc


def _ws_is_open(ws: Any) -> bool:
    """True when ``ws`` is a websockets connection in the OPEN state."""
    if ws is None:
        return False
    state = getattr(ws, "state", None)
    if state is None:
        return False
    return getattr(state, "name", str(state)) == "OPEN"


def _decode_frame(raw: Any) -> dict[str, Any] | None:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    try:
        msg = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return msg if isinstance(msg, dict) else None


def _encode_frame(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False)

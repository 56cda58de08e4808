"""Error taxonomy for the bridge.

Every error here is local to one operation. The dispatcher turns them into a
structured ``{"error": message}`` result; none of them cross a component boundary
as an uncaught failure.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for bridge errors (message is what the caller sees)."""


class ChannelConnectionError(BridgeError):
    """Control channel open failure, open timeout or unexpected close."""


class PolicyError(BridgeError):
    """Agent control disabled, or a specific capability not permitted."""


class TargetResolutionError(BridgeError):
    """No target could be resolved for a tool call."""


class ProtocolError(BridgeError):
    """A remote-debugging command failed or could not be delivered."""


class SessionError(BridgeError):
    """The debugging session went away while a command was in flight."""


class ParamError(BridgeError):
    """A tool call is missing a required parameter or has a malformed one."""


__all__ = [
    "BridgeError",
    "ChannelConnectionError",
    "ParamError",
    "PolicyError",
    "ProtocolError",
    "SessionError",
    "TargetResolutionError",
]

"""
Apex Agent bridge entry point.

Reads configuration from the environment (see config.py), connects to the
orchestrator and serves tool calls until interrupted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from .bridge import ApexBridge
from .config import AgentConfig

logger = logging.getLogger("apex.agent")

__all__ = ["main", "run"]


async def run(config: AgentConfig) -> None:
    bridge = ApexBridge(config)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, bridge.request_shutdown)
    logger.info(
        "apex-agent: control=ws://%s:%s cdp=%s enabled=%s",
        config.host,
        config.port,
        config.cdp_http_base,
        config.enabled,
    )
    await bridge.run_forever()


def main() -> None:
    """Main entry point for the bridge."""
    config = AgentConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[apex] control={os.environ.get('APEX_AGENT_HOST', 'localhost')}:{os.environ.get('APEX_AGENT_PORT', '3052')} | "
    f"cdp={os.environ.get('APEX_CDP_HOST', '127.0.0.1')}:{os.environ.get('APEX_CDP_PORT', '9222')} | "
    f"enabled={os.environ.get('APEX_AGENT_ENABLED', '1')}",
    file=sys.stderr,
)

from mcp_servers.apex_agent.main import main  # noqa: E402

if __name__ == "__main__":
    main()

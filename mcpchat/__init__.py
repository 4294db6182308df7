"""
MCPChat - function-calling chat agent backed by MCP tool servers.

The model decides whether to answer directly or call a tool. Tools live
in a separate executable that speaks MCP (JSON-RPC) over stdin/stdout.

Architecture:
- The tool server is spawned once per request: initialize, tools/list, tools/call
- The tool catalog is translated to model function declarations on every message
- At most one tool round per message: ask, execute, ask again, answer
- No memory between messages
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

from mcpchat.core.orchestrator import NO_RESPONSE, Orchestrator
from mcpchat.errors import (
    ChannelError,
    ConfigError,
    MCPChatError,
    ModelAPIError,
    ToolExecutionError,
)

__all__ = [
    "Orchestrator",
    "NO_RESPONSE",
    "MCPChatError",
    "ChannelError",
    "ConfigError",
    "ModelAPIError",
    "ToolExecutionError",
    "__version__",
]

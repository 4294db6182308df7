"""
MCP side of MCPChat.

Tool servers are reached over stdio: one child process per JSON-RPC
request. Only ``initialize``, ``tools/list`` and ``tools/call`` are spoken.
"""

from mcpchat.mcp.schema import (
    DEFAULT_RESULT_TEXT,
    JSONRPCRequest,
    JSONRPCResponse,
    ToolDescriptor,
    extract_result_text,
    to_function_declarations,
)
from mcpchat.mcp.transport import Channel, StdioProcessChannel

__all__ = [
    "DEFAULT_RESULT_TEXT",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "ToolDescriptor",
    "extract_result_text",
    "to_function_declarations",
    "Channel",
    "StdioProcessChannel",
]

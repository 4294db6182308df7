"""
Demo MCP tool server with a single ``hello_world`` tool.

Reads JSON-RPC requests from stdin, one per line, until EOF and writes
one response line per request to stdout. Works with the one-process-per
request channel as well as with a long-lived client.

    python -m mcpchat.demo_server
"""

import json
import sys
from typing import Any, Callable, Dict, Optional, TextIO

from mcpchat.mcp.schema import ToolDescriptor

SERVER_INFO = {"name": "Demo", "version": "1.0.0"}
DEFAULT_PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

HELLO_WORLD = ToolDescriptor(
    name="hello_world",
    description="Say hello to someone",
    input_schema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Name of the person to greet"},
        },
        "required": ["name"],
    },
)


def _text_result(text: str, is_error: bool = False) -> Dict[str, Any]:
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


def hello_world(arguments: Dict[str, Any]) -> Dict[str, Any]:
    if "name" not in arguments:
        return _text_result("name parameter is required", is_error=True)
    name = arguments["name"]
    if not isinstance(name, str):
        return _text_result("name must be a string", is_error=True)
    return _text_result(f"Hello, {name}! How are you doing today?")


TOOLS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    HELLO_WORLD.name: hello_world,
}


class RPCError(Exception):
    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


def handle(method: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """Dispatch one request, returning its ``result`` or raising RPCError."""
    if method == "initialize":
        return {
            "protocolVersion": params.get("protocolVersion", DEFAULT_PROTOCOL_VERSION),
            "capabilities": {"tools": {}},
            "serverInfo": SERVER_INFO,
        }
    if method == "tools/list":
        return {"tools": [HELLO_WORLD.model_dump(by_alias=True)]}
    if method == "tools/call":
        name = params.get("name")
        tool = TOOLS.get(name)
        if tool is None:
            raise RPCError(INVALID_PARAMS, f"unknown tool: {name}")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise RPCError(INVALID_PARAMS, "arguments must be an object")
        return tool(arguments)
    raise RPCError(METHOD_NOT_FOUND, f"method not found: {method}")


def handle_line(line: str) -> Optional[Dict[str, Any]]:
    """Turn one request line into one response message, or None for notifications."""
    try:
        request = json.loads(line)
    except ValueError as exc:
        return {"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": str(exc)}}

    if not isinstance(request, dict):
        return {"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": "request must be an object"}}

    if "id" not in request:
        return None

    request_id = request["id"]
    params = request.get("params") or {}
    try:
        if not isinstance(params, dict):
            raise RPCError(INVALID_PARAMS, "params must be an object")
        result = handle(request.get("method", ""), params)
    except RPCError as exc:
        return {"jsonrpc": "2.0", "id": request_id, "error": {"code": exc.code, "message": exc.message}}
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def serve(stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> None:
    """Answer requests until stdin is closed."""
    for line in stdin:
        if not line.strip():
            continue
        response = handle_line(line)
        if response is not None:
            stdout.write(json.dumps(response) + "\n")
            stdout.flush()


def main() -> None:
    """Entry point."""
    serve()


if __name__ == "__main__":
    main()

"""MCP server communication over a child process's stdin/stdout (JSON-RPC)."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from mcpchat import __version__
from mcpchat.errors import ChannelError
from mcpchat.mcp.schema import (
    JSONRPCRequest,
    JSONRPCResponse,
    ToolDescriptor,
    parse_tool_catalog,
)

logger = logging.getLogger(__name__)

DEFAULT_PROTOCOL_VERSION = "2024-11-05"

# Every call runs in its own process, so requests are never pipelined.
REQUEST_ID = 1


class Channel(ABC):
    """
    A way of reaching a tool server.

    Implementations only need ``call()``; the MCP helpers below are
    built on it, so the orchestrator never knows how requests travel.
    """

    @abstractmethod
    def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> JSONRPCResponse:
        """Send one request and return the parsed response envelope."""

    # ── MCP Protocol ──────────────────────────────────────────────────────

    def initialize(self, protocol_version: str = DEFAULT_PROTOCOL_VERSION) -> Dict[str, Any]:
        """Perform the MCP initialize handshake."""
        response = self.call("initialize", {
            "protocolVersion": protocol_version,
            "capabilities": {"tools": {}},
            "clientInfo": {"name": "mcpchat", "version": __version__},
        })
        if response.is_error:
            raise ChannelError(response.error_text())
        return response.result or {}

    def list_tools(self) -> List[ToolDescriptor]:
        """Fetch the tool catalog from the MCP server."""
        response = self.call("tools/list")
        if response.is_error:
            raise ChannelError(response.error_text())
        return parse_tool_catalog(response.result)

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> JSONRPCResponse:
        """Call a tool. Error envelopes are returned, not raised."""
        return self.call("tools/call", {"name": name, "arguments": arguments or {}})


class StdioProcessChannel(Channel):
    """
    Spawn the MCP server once per request.

    The request is written to the child's stdin, stdin is closed, and the
    whole of stdout is read after the process exits. Nothing survives
    between calls, so a user turn costs one process start per request
    (three without tool use, four with).
    """

    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = 30.0,
    ):
        self.command = command
        self.args = args or []
        self.env = env or {}
        self.timeout = timeout

    def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> JSONRPCResponse:
        request = JSONRPCRequest(id=REQUEST_ID, method=method, params=params)
        logger.debug("MCP request %s (id=%s) -> %s", method, request.id, self.command)

        merged_env = {**os.environ, **self.env}
        try:
            completed = subprocess.run(
                [self.command] + self.args,
                input=request.to_line().encode(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=merged_env,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise ChannelError(f"MCP server command not found: {self.command}")
        except subprocess.TimeoutExpired:
            raise ChannelError(f"MCP server timed out after {self.timeout}s on {method}")
        except OSError as exc:
            raise ChannelError(f"MCP server could not be started: {exc}")

        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        if stderr:
            logger.debug("MCP server stderr: %s", stderr)

        if completed.returncode != 0:
            raise ChannelError(
                f"MCP server error: exited with status {completed.returncode} on {method}"
                + (f": {stderr}" if stderr else "")
            )

        output = completed.stdout.decode("utf-8", errors="replace")
        logger.debug("MCP server output: %s", output)

        if not output.strip():
            raise ChannelError("MCP server returned empty response")

        return self._parse_response(output, request.id)

    @staticmethod
    def _parse_response(output: str, request_id: int) -> JSONRPCResponse:
        """Pick the response to ``request_id`` out of the child's stdout."""
        try:
            messages = [json.loads(output)]
        except ValueError:
            messages = []
            for line in output.splitlines():
                if not line.strip():
                    continue
                try:
                    messages.append(json.loads(line))
                except ValueError as exc:
                    raise ChannelError(f"failed to parse MCP response: {exc}, output: {output}")

        for message in messages:
            if not isinstance(message, dict):
                raise ChannelError(f"failed to parse MCP response: not an object, output: {output}")
            # notifications and server-initiated requests
            if "method" in message or "id" not in message:
                continue
            try:
                response = JSONRPCResponse(**message)
            except ValidationError as exc:
                raise ChannelError(f"failed to parse MCP response: {exc}") from exc
            if response.id != request_id:
                logger.debug("Skipping MCP response with id %r", response.id)
                continue
            return response

        raise ChannelError(f"MCP server output held no response to request {request_id}: {output}")

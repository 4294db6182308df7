"""Data models for the MCP wire protocol, and translation to the model-facing schema."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mcpchat.errors import ChannelError
from mcpchat.providers.schema import FunctionCall, FunctionDeclaration, FunctionResponse

DEFAULT_RESULT_TEXT = "Tool executed successfully"


class JSONRPCRequest(BaseModel):
    """Request envelope sent to the tool server."""

    jsonrpc: str = "2.0"
    id: int = 1
    method: str
    params: Optional[Dict[str, Any]] = None

    def to_line(self) -> str:
        """Serialize as a single newline-terminated JSON line."""
        return json.dumps(self.model_dump(exclude_none=True)) + "\n"


class JSONRPCError(BaseModel):
    code: int = 0
    message: str = ""
    data: Any = None


class JSONRPCResponse(BaseModel):
    """Response envelope read back from the tool server."""

    jsonrpc: str = "2.0"
    id: Optional[Union[int, str]] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[JSONRPCError] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def error_text(self) -> str:
        if self.error is None:
            return ""
        return f"MCP error {self.error.code}: {self.error.message}"


class ToolDescriptor(BaseModel):
    """A tool as described by the tool server's ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    # Servers may send null for optional fields.
    @field_validator("description", mode="before")
    @classmethod
    def null_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("input_schema", mode="before")
    @classmethod
    def null_input_schema(cls, value: Any) -> Any:
        return {} if value is None else value


class ToolsListResult(BaseModel):
    tools: List[ToolDescriptor] = Field(default_factory=list)


# ── Translation ───────────────────────────────────────────────────────────


def parse_tool_catalog(result: Optional[Dict[str, Any]]) -> List[ToolDescriptor]:
    """Validate a ``tools/list`` result into descriptors."""
    try:
        return ToolsListResult(**(result or {})).tools
    except ValidationError as exc:
        raise ChannelError(f"invalid tools/list result: {exc}") from exc


def to_function_declarations(tools: Sequence[ToolDescriptor]) -> List[FunctionDeclaration]:
    """One-to-one, order-preserving rename of tool descriptors to function declarations."""
    return [
        FunctionDeclaration(
            name=tool.name,
            description=tool.description,
            parameters=tool.input_schema,
        )
        for tool in tools
    ]


def to_call_params(call: FunctionCall) -> Dict[str, Any]:
    """Build ``tools/call`` params from a model function call."""
    return {"name": call.name, "arguments": call.args}


def to_function_response(call: FunctionCall, result_text: str) -> FunctionResponse:
    """Wrap tool output as the function response handed back to the model."""
    return FunctionResponse(name=call.name, response={"result": result_text})


def _first_text(content: Any) -> Optional[str]:
    if not isinstance(content, list):
        return None
    for block in content:
        if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str):
            return block["text"]
    return None


def extract_result_text(result: Any) -> str:
    """
    Return the text of the first ``text`` content block of a ``tools/call`` result.

    Falls back to ``DEFAULT_RESULT_TEXT`` when there is no content or no
    text block. Never raises.
    """
    if not isinstance(result, dict):
        return DEFAULT_RESULT_TEXT
    text = _first_text(result.get("content"))
    return DEFAULT_RESULT_TEXT if text is None else text


def extract_error_text(result: Any) -> str:
    """Text of a failed ``tools/call`` result, for error messages."""
    text = _first_text(result.get("content")) if isinstance(result, dict) else None
    return text or "no details given"


def is_error_result(result: Any) -> bool:
    """True when a ``tools/call`` result reports an application-level failure."""
    return isinstance(result, dict) and result.get("isError") is True

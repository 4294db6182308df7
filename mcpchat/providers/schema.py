"""Data models for the model-facing conversation: turns, parts, function calls, candidates."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Role = Literal["user", "model", "function"]


class FunctionCall(BaseModel):
    """A structured request from the model to invoke a tool."""

    name: str
    args: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("args", mode="before")
    @classmethod
    def null_args(cls, value: Any) -> Any:
        return {} if value is None else value


class FunctionResponse(BaseModel):
    """A tool result handed back to the model."""

    name: str
    response: Dict[str, Any] = Field(default_factory=dict)


class Part(BaseModel):
    """
    One content part of a turn.

    A part is a tagged variant: exactly one of ``text``, ``function_call``
    or ``function_response`` is set. The check runs both when parts are
    built locally and when they are parsed from a model response.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    function_call: Optional[FunctionCall] = Field(default=None, alias="functionCall")
    function_response: Optional[FunctionResponse] = Field(default=None, alias="functionResponse")

    @model_validator(mode="after")
    def check_one_variant(self) -> "Part":
        present = [
            name
            for name, value in (
                ("text", self.text),
                ("functionCall", self.function_call),
                ("functionResponse", self.function_response),
            )
            if value is not None
        ]
        if len(present) != 1:
            raise ValueError(
                f"part must carry exactly one of text/functionCall/functionResponse, got {present or 'none'}"
            )
        return self

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_function_call(cls, call: FunctionCall) -> "Part":
        return cls(function_call=call)

    @classmethod
    def from_function_response(cls, response: FunctionResponse) -> "Part":
        return cls(function_response=response)

    def to_wire(self) -> Dict[str, Any]:
        """Wire form, camelCase keys, only the populated variant."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Content(BaseModel):
    """A conversation turn: a role plus ordered parts."""

    role: Role = "model"
    parts: List[Part] = Field(default_factory=list)

    def first_part(self) -> Optional[Part]:
        return self.parts[0] if self.parts else None

    def to_wire(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": [p.to_wire() for p in self.parts]}


class FunctionDeclaration(BaseModel):
    """Model-facing description of one callable tool."""

    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)


class Candidate(BaseModel):
    """One generated answer from the model."""

    model_config = ConfigDict(populate_by_name=True)

    content: Content = Field(default_factory=Content)
    finish_reason: str = Field(default="", alias="finishReason")


class GenerateResponse(BaseModel):
    """Response body of a generate call."""

    candidates: List[Candidate] = Field(default_factory=list)


def build_request_body(
    turns: List[Content], tools: List[FunctionDeclaration]
) -> Dict[str, Any]:
    """Serialize turns and tool catalog into one generate request body."""
    body: Dict[str, Any] = {"contents": [turn.to_wire() for turn in turns]}
    if tools:
        body["tools"] = [{"function_declarations": [t.model_dump() for t in tools]}]
    return body

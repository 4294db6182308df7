"""Tests for the orchestrator state machine."""

import sys

import pytest

from mcpchat.core.orchestrator import NO_RESPONSE, Orchestrator
from mcpchat.errors import ChannelError, ModelAPIError, ToolExecutionError
from mcpchat.mcp.schema import DEFAULT_RESULT_TEXT, JSONRPCError, JSONRPCResponse
from mcpchat.mcp.transport import Channel, StdioProcessChannel
from mcpchat.providers.base import ModelClient
from mcpchat.providers.schema import (
    Candidate,
    Content,
    FunctionCall,
    Part,
    build_request_body,
)

HELLO_TOOL = {
    "name": "hello_world",
    "description": "Say hello to someone",
    "inputSchema": {
        "type": "object",
        "properties": {"name": {"type": "string"}},
        "required": ["name"],
    },
}


# ═══════════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════════

class FakeChannel(Channel):
    """Records every request and answers from canned data."""

    def __init__(self, tools=None, tool_result=None, tool_error=None, fail_on=None):
        self.tools = [HELLO_TOOL] if tools is None else tools
        self.tool_result = tool_result or {"content": [{"type": "text", "text": "Hello, Ann!"}]}
        self.tool_error = tool_error
        self.fail_on = fail_on
        self.calls = []

    @property
    def methods(self):
        return [method for method, _ in self.calls]

    def call(self, method, params=None):
        self.calls.append((method, params))
        if method == self.fail_on:
            raise ChannelError("MCP server returned empty response")
        if method == "initialize":
            return JSONRPCResponse(id=1, result={"protocolVersion": params["protocolVersion"]})
        if method == "tools/list":
            return JSONRPCResponse(id=1, result={"tools": self.tools})
        if self.tool_error is not None:
            return JSONRPCResponse(id=1, error=self.tool_error)
        return JSONRPCResponse(id=1, result=self.tool_result)


class FakeModel(ModelClient):
    """Returns scripted candidates (or raises scripted errors) in order."""

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    @property
    def provider_name(self):
        return "fake"

    def generate(self, turns, tools):
        self.requests.append(build_request_body(list(turns), list(tools)))
        outcome = self.script.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def text_candidate(text):
    return Candidate(content=Content(role="model", parts=[Part.from_text(text)]), finish_reason="STOP")


def call_candidate(name, args):
    call = FunctionCall(name=name, args=args)
    return Candidate(content=Content(role="model", parts=[Part.from_function_call(call)]), finish_reason="STOP")


def empty_candidate():
    return Candidate(content=Content(role="model", parts=[]), finish_reason="STOP")


# ═══════════════════════════════════════════════════════════════════════════════
# Direct answers
# ═══════════════════════════════════════════════════════════════════════════════

class TestDirectAnswer:
    def test_text_answer_skips_tools(self):
        channel = FakeChannel()
        model = FakeModel(text_candidate("hi"))

        answer = Orchestrator(channel, model).process_message("hello there")

        assert answer == "hi"
        assert channel.methods == ["initialize", "tools/list"]
        assert len(model.requests) == 1

    def test_first_request_carries_catalog(self):
        channel = FakeChannel()
        model = FakeModel(text_candidate("hi"))

        Orchestrator(channel, model).process_message("hello there")

        request = model.requests[0]
        assert request["contents"] == [{"role": "user", "parts": [{"text": "hello there"}]}]
        assert request["tools"] == [{"function_declarations": [{
            "name": "hello_world",
            "description": "Say hello to someone",
            "parameters": HELLO_TOOL["inputSchema"],
        }]}]

    def test_initialize_payload(self):
        channel = FakeChannel()

        Orchestrator(channel, FakeModel(text_candidate("hi")), protocol_version="2025-01-01").process_message("x")

        _, params = channel.calls[0]
        assert params["protocolVersion"] == "2025-01-01"
        assert params["capabilities"] == {"tools": {}}

    def test_no_parts_returns_sentinel(self):
        answer = Orchestrator(FakeChannel(), FakeModel(empty_candidate())).process_message("x")
        assert answer == NO_RESPONSE

    def test_empty_catalog(self):
        model = FakeModel(text_candidate("hi"))

        Orchestrator(FakeChannel(tools=[]), model).process_message("x")

        assert "tools" not in model.requests[0]


# ═══════════════════════════════════════════════════════════════════════════════
# Tool round
# ═══════════════════════════════════════════════════════════════════════════════

class TestToolRound:
    def test_function_call_runs_tool_once(self):
        channel = FakeChannel()
        model = FakeModel(call_candidate("hello_world", {"name": "Ann"}), text_candidate("Ann was greeted"))

        answer = Orchestrator(channel, model).process_message("Hello Ann")

        assert answer == "Ann was greeted"
        assert channel.methods == ["initialize", "tools/list", "tools/call"]
        assert channel.calls[2][1] == {"name": "hello_world", "arguments": {"name": "Ann"}}

    def test_follow_up_conversation(self):
        model = FakeModel(call_candidate("hello_world", {"name": "Ann"}), text_candidate("done"))

        Orchestrator(FakeChannel(), model).process_message("Hello Ann")

        assert len(model.requests) == 2
        contents = model.requests[1]["contents"]
        assert [turn["role"] for turn in contents] == ["user", "model", "function"]
        assert contents[0]["parts"] == [{"text": "Hello Ann"}]
        assert contents[1]["parts"] == [{"functionCall": {"name": "hello_world", "args": {"name": "Ann"}}}]
        assert contents[2]["parts"] == [{"functionResponse": {
            "name": "hello_world",
            "response": {"result": "Hello, Ann!"},
        }}]
        assert model.requests[1]["tools"] == model.requests[0]["tools"]

    def test_tool_without_text_uses_default(self):
        model = FakeModel(call_candidate("hello_world", {}), text_candidate("ok"))

        Orchestrator(FakeChannel(tool_result={"content": []}), model).process_message("x")

        response = model.requests[1]["contents"][2]["parts"][0]["functionResponse"]["response"]
        assert response == {"result": DEFAULT_RESULT_TEXT}

    def test_follow_up_without_parts(self):
        model = FakeModel(call_candidate("hello_world", {"name": "Ann"}), empty_candidate())

        answer = Orchestrator(FakeChannel(), model).process_message("x")

        assert answer == NO_RESPONSE

    def test_only_one_tool_round(self):
        channel = FakeChannel()
        model = FakeModel(
            call_candidate("hello_world", {"name": "Ann"}),
            call_candidate("hello_world", {"name": "Bob"}),
        )

        answer = Orchestrator(channel, model).process_message("x")

        assert answer == NO_RESPONSE
        assert channel.methods.count("tools/call") == 1
        assert len(model.requests) == 2


# ═══════════════════════════════════════════════════════════════════════════════
# Failures
# ═══════════════════════════════════════════════════════════════════════════════

class TestFailures:
    @pytest.mark.parametrize("method", ["initialize", "tools/list"])
    def test_channel_failure_while_fetching_tools(self, method):
        channel = FakeChannel(fail_on=method)
        model = FakeModel(text_candidate("never"))

        with pytest.raises(ChannelError, match="failed to get tools"):
            Orchestrator(channel, model).process_message("x")

        assert channel.methods[-1] == method
        assert model.requests == []

    def test_channel_failure_during_tool_call(self):
        channel = FakeChannel(fail_on="tools/call")
        model = FakeModel(call_candidate("hello_world", {"name": "Ann"}), text_candidate("never"))

        with pytest.raises(ChannelError, match="tool execution error"):
            Orchestrator(channel, model).process_message("x")

        assert len(model.requests) == 1

    def test_zero_candidates_before_tools(self):
        channel = FakeChannel()
        model = FakeModel(ModelAPIError("no response from model (zero candidates)"))

        with pytest.raises(ModelAPIError, match="model API error"):
            Orchestrator(channel, model).process_message("x")

        assert "tools/call" not in channel.methods

    def test_follow_up_failure(self):
        model = FakeModel(
            call_candidate("hello_world", {"name": "Ann"}),
            ModelAPIError("HTTP 500: boom", status_code=500),
        )

        with pytest.raises(ModelAPIError, match="model follow-up error") as exc_info:
            Orchestrator(FakeChannel(), model).process_message("x")

        assert exc_info.value.status_code == 500

    def test_error_envelope_from_tool(self):
        channel = FakeChannel(tool_error=JSONRPCError(code=-32602, message="unknown tool: nope"))
        model = FakeModel(call_candidate("nope", {}), text_candidate("never"))

        with pytest.raises(ToolExecutionError, match="unknown tool") as exc_info:
            Orchestrator(channel, model).process_message("x")

        assert exc_info.value.tool_name == "nope"
        assert len(model.requests) == 1

    def test_tool_reports_failure(self):
        channel = FakeChannel(tool_result={
            "isError": True,
            "content": [{"type": "text", "text": "name parameter is required"}],
        })
        model = FakeModel(call_candidate("hello_world", {}), text_candidate("never"))

        with pytest.raises(ToolExecutionError, match="name parameter is required"):
            Orchestrator(channel, model).process_message("x")


# ═══════════════════════════════════════════════════════════════════════════════
# Statelessness
# ═══════════════════════════════════════════════════════════════════════════════

class TestIdempotence:
    def _run(self):
        channel = FakeChannel()
        model = FakeModel(call_candidate("hello_world", {"name": "Ann"}), text_candidate("Hi Ann"))
        answer = Orchestrator(channel, model).process_message("Hello Ann")
        return answer, model.requests, channel.calls

    def test_same_input_same_conversation(self):
        first = self._run()
        second = self._run()

        assert first == second

    def test_reused_orchestrator_keeps_no_history(self):
        channel = FakeChannel()
        model = FakeModel(text_candidate("one"), text_candidate("two"))
        orchestrator = Orchestrator(channel, model)

        orchestrator.process_message("same")
        orchestrator.process_message("same")

        assert model.requests[0] == model.requests[1]
        assert channel.methods == ["initialize", "tools/list"] * 2


# ═══════════════════════════════════════════════════════════════════════════════
# End to end with the demo server
# ═══════════════════════════════════════════════════════════════════════════════

class TestWithDemoServer:
    def test_hello_world_round(self):
        channel = StdioProcessChannel(command=sys.executable, args=["-m", "mcpchat.demo_server"])
        model = FakeModel(call_candidate("hello_world", {"name": "Ann"}), text_candidate("Said hi to Ann"))

        answer = Orchestrator(channel, model).process_message("Hello Ann")

        assert answer == "Said hi to Ann"
        function_part = model.requests[1]["contents"][2]["parts"][0]
        assert function_part["functionResponse"]["response"] == {
            "result": "Hello, Ann! How are you doing today?",
        }

    def test_missing_argument_is_tool_error(self):
        channel = StdioProcessChannel(command=sys.executable, args=["-m", "mcpchat.demo_server"])
        model = FakeModel(call_candidate("hello_world", {}), text_candidate("never"))

        with pytest.raises(ToolExecutionError, match="name parameter is required"):
            Orchestrator(channel, model).process_message("Hello")

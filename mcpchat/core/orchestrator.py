"""
MCPChat Orchestrator - one user message in, one answer out.

Each call to ``process_message`` walks the same path:

    AWAITING_TOOLS -> AWAITING_MODEL_DECISION -> DONE
                                              -> AWAITING_TOOL_EXECUTION
                                                 -> AWAITING_FOLLOW_UP -> DONE

Nothing is kept between calls: the tool catalog is fetched again and the
conversation starts from a single user turn every time. At most one tool
is executed per message.
"""

import logging
from enum import Enum
from typing import List, Sequence

from mcpchat.errors import ChannelError, ModelAPIError, ToolExecutionError
from mcpchat.mcp.schema import (
    extract_error_text,
    extract_result_text,
    is_error_result,
    to_call_params,
    to_function_declarations,
    to_function_response,
)
from mcpchat.mcp.transport import DEFAULT_PROTOCOL_VERSION, Channel, StdioProcessChannel
from mcpchat.providers.base import GeminiClient, ModelClient
from mcpchat.providers.schema import (
    Candidate,
    Content,
    FunctionCall,
    FunctionDeclaration,
    Part,
)
from mcpchat.validation.config import Config

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response generated"


class TurnState(str, Enum):
    AWAITING_TOOLS = "awaiting_tools"
    AWAITING_MODEL_DECISION = "awaiting_model_decision"
    AWAITING_TOOL_EXECUTION = "awaiting_tool_execution"
    AWAITING_FOLLOW_UP = "awaiting_follow_up"
    DONE = "done"


class Orchestrator:
    """
    Bridges a function-calling model and an MCP tool server.

    Holds only read-only collaborators, so one instance may serve
    concurrent ``process_message`` calls from several threads.
    """

    def __init__(
        self,
        channel: Channel,
        model: ModelClient,
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
    ):
        self.channel = channel
        self.model = model
        self.protocol_version = protocol_version

    @classmethod
    def from_config(cls, config: Config) -> "Orchestrator":
        """Build an orchestrator from validated configuration."""
        config.require()
        server = config.merged.server
        channel = StdioProcessChannel(
            command=config.get_server_command(),
            args=server.args,
            env=server.env,
            timeout=server.timeout,
        )
        return cls(
            channel=channel,
            model=GeminiClient.from_config(config),
            protocol_version=server.protocol_version,
        )

    # ── Entry point ───────────────────────────────────────────────────────

    def process_message(self, user_message: str) -> str:
        """
        Answer one user message, running at most one tool.

        Returns:
            The model's text answer, or ``NO_RESPONSE`` when the model
            gave no text. A follow-up answer whose first part is another
            function call also yields ``NO_RESPONSE``; that call is not
            run and its empty text is never returned.

        Raises:
            ChannelError: The tool server could not be reached or answered garbage.
            ModelAPIError: The model call failed or returned no candidates.
            ToolExecutionError: The tool reported a failure.
        """
        self._enter(TurnState.AWAITING_TOOLS)
        tools = self._get_available_tools()

        self._enter(TurnState.AWAITING_MODEL_DECISION)
        user_turn = Content(role="user", parts=[Part.from_text(user_message)])
        candidate = self._generate([user_turn], tools, stage="model API error")

        first = candidate.content.first_part()
        if first is not None and first.function_call is not None:
            return self._run_tool_round(user_turn, first.function_call, tools)

        self._enter(TurnState.DONE)
        if first is not None and first.text is not None:
            return first.text
        return NO_RESPONSE

    # ── States ────────────────────────────────────────────────────────────

    def _get_available_tools(self) -> List[FunctionDeclaration]:
        try:
            self.channel.initialize(self.protocol_version)
            descriptors = self.channel.list_tools()
        except ChannelError as exc:
            raise ChannelError(f"failed to get tools: {exc}") from exc
        return to_function_declarations(descriptors)

    def _run_tool_round(
        self,
        user_turn: Content,
        call: FunctionCall,
        tools: Sequence[FunctionDeclaration],
    ) -> str:
        self._enter(TurnState.AWAITING_TOOL_EXECUTION)
        result_text = self._execute_tool(call)

        self._enter(TurnState.AWAITING_FOLLOW_UP)
        turns = [
            user_turn,
            Content(role="model", parts=[Part.from_function_call(call)]),
            Content(
                role="function",
                parts=[Part.from_function_response(to_function_response(call, result_text))],
            ),
        ]
        candidate = self._generate(turns, tools, stage="model follow-up error")

        self._enter(TurnState.DONE)
        first = candidate.content.first_part()
        if first is not None and first.text is not None:
            return first.text
        if first is not None and first.function_call is not None:
            logger.warning(
                "Model asked for a second tool call (%s); only one tool round runs per message",
                first.function_call.name,
            )
        return NO_RESPONSE

    def _execute_tool(self, call: FunctionCall) -> str:
        logger.debug("Executing tool %s with %s", call.name, call.args)
        try:
            response = self.channel.call_tool(**to_call_params(call))
        except ChannelError as exc:
            raise ChannelError(f"tool execution error: {exc}") from exc

        if response.is_error:
            raise ToolExecutionError(
                f"tool execution error: {response.error_text()}", tool_name=call.name
            )
        if is_error_result(response.result):
            raise ToolExecutionError(
                f"tool execution error: {call.name} failed: {extract_error_text(response.result)}",
                tool_name=call.name,
            )
        return extract_result_text(response.result)

    # ── Helpers ───────────────────────────────────────────────────────────

    def _generate(
        self,
        turns: List[Content],
        tools: Sequence[FunctionDeclaration],
        stage: str,
    ) -> Candidate:
        try:
            return self.model.generate(turns, tools)
        except ModelAPIError as exc:
            raise ModelAPIError(f"{stage}: {exc}", status_code=exc.status_code) from exc

    @staticmethod
    def _enter(state: TurnState) -> None:
        logger.debug("Turn state -> %s", state.value)

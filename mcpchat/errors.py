"""
MCPChat errors.

Every failure that can leave a user message unanswered is one of the
classes below, so callers can catch ``MCPChatError`` once.
"""


class MCPChatError(Exception):
    """Base class for all MCPChat errors."""


class ConfigError(MCPChatError):
    """Raised when there's a configuration error."""


class ChannelError(MCPChatError):
    """Raised when the tool server process cannot be spawned, fails, or answers garbage."""


class ModelAPIError(MCPChatError):
    """Raised on model transport failures, unparseable bodies, or zero candidates."""

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class ToolExecutionError(MCPChatError):
    """Raised when a well-formed ``tools/call`` response reports a tool failure."""

    def __init__(self, message: str, tool_name: str = ""):
        self.tool_name = tool_name
        super().__init__(message)

"""
MCPChat validation module.

This module provides configuration validation and schema enforcement.
"""

from mcpchat.errors import ConfigError
from mcpchat.validation.config import Config, MCPChatConfig

__all__ = ["Config", "ConfigError", "MCPChatConfig"]

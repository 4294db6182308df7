"""
MCPChat providers module.

This module provides the model client abstraction and the conversation
data model it speaks.
"""

from mcpchat.providers.base import GeminiClient, ModelClient
from mcpchat.providers.schema import (
    Candidate,
    Content,
    FunctionCall,
    FunctionDeclaration,
    FunctionResponse,
    Part,
)

__all__ = [
    "GeminiClient",
    "ModelClient",
    "Candidate",
    "Content",
    "FunctionCall",
    "FunctionDeclaration",
    "FunctionResponse",
    "Part",
]

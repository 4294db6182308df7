"""
MCPChat core module.

Contains the orchestrator that ties the model client to the tool server.
"""

from mcpchat.core.orchestrator import NO_RESPONSE, Orchestrator, TurnState

__all__ = ["NO_RESPONSE", "Orchestrator", "TurnState"]

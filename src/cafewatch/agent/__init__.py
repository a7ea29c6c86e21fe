"""Terminal-side agent for cafewatch.

Keeps a terminal registered with the registry server by sending
heartbeats, and picks up launch directives addressed to it.

Public API:
    TerminalAgent -- Heartbeat and launch-polling client
    AgentError -- Raised when the server cannot be reached
"""

from cafewatch.agent.client import AgentError, TerminalAgent

__all__ = ["AgentError", "TerminalAgent"]

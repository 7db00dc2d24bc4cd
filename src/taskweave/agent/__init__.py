"""
agent/ — Agent core, session models and delegation.
"""

from taskweave.agent.core import Agent, result_key
from taskweave.agent.delegation import DelegationManager
from taskweave.agent.state import (
    AgentContext,
    AgentMode,
    AgentResponse,
    AgentStatus,
    MemoryOptions,
    SessionConfiguration,
    SessionState,
)

__all__ = [
    "Agent",
    "DelegationManager",
    "result_key",
    "AgentContext",
    "AgentMode",
    "AgentResponse",
    "AgentStatus",
    "MemoryOptions",
    "SessionConfiguration",
    "SessionState",
]

"""
taskweave — agent execution runtime.

Turns a textual instruction into validated capability invocations and a
synthesized response, with per-session memory and bounded delegation.
"""

from taskweave.agent import Agent, AgentResponse, AgentStatus, SessionConfiguration
from taskweave.capabilities import CapabilityRegistry, setup_capabilities
from taskweave.memory import SessionMemory
from taskweave.reasoning import LLMReasoningProvider, RuleBasedProvider

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentResponse",
    "AgentStatus",
    "SessionConfiguration",
    "CapabilityRegistry",
    "setup_capabilities",
    "SessionMemory",
    "LLMReasoningProvider",
    "RuleBasedProvider",
]

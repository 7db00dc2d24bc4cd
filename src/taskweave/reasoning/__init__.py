"""
reasoning/ — Reasoning providers.

Two interchangeable strategies behind ReasoningProvider:
    RuleBasedProvider     → deterministic pattern matching, no network
    LLMReasoningProvider  → hosted model + staged JSON decoding
"""

from taskweave.reasoning.base import ReasoningProvider
from taskweave.reasoning.generative import LLMReasoningProvider
from taskweave.reasoning.parsing import (
    coerce_decision,
    decode_reply,
    find_balanced_object,
    parse_reply,
    strict_decode,
)
from taskweave.reasoning.rules import DEFAULT_RULES, Rule, RuleBasedProvider
from taskweave.reasoning.types import (
    CapabilityCall,
    Decision,
    NextAction,
    ParsedReply,
    ParseStage,
)

__all__ = [
    "ReasoningProvider",
    "RuleBasedProvider",
    "LLMReasoningProvider",
    "Rule",
    "DEFAULT_RULES",
    "CapabilityCall",
    "Decision",
    "NextAction",
    "ParsedReply",
    "ParseStage",
    "strict_decode",
    "find_balanced_object",
    "decode_reply",
    "coerce_decision",
    "parse_reply",
]

"""
reasoning/rules.py — Deterministic Reasoning Provider

Matches the input against an ordered rule list. The first rule whose
pattern matches, and whose capability the session may use, produces exactly
one capability call. When nothing matches, a default reply lists the
available capabilities.

No network, no failure mode beyond "no rule matched".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from taskweave.brain.types import Message
from taskweave.observability.logger import get_logger
from taskweave.reasoning.base import ReasoningProvider
from taskweave.reasoning.types import CapabilityCall, Decision, NextAction

log = get_logger(__name__)


@dataclass(frozen=True)
class Rule:
    """
    pattern     → searched (case-insensitive) in the input
    capability  → name of the capability to call on a match
    parameters  → builds the call parameters from the regex match
    """
    name: str
    pattern: re.Pattern
    capability: str
    parameters: Callable[[re.Match], dict[str, Any]]
    message: str
    reasoning: str = ""

    def match(self, text: str) -> Optional[re.Match]:
        return self.pattern.search(text)


def _rule(
    name: str,
    pattern: str,
    capability: str,
    parameters: Callable[[re.Match], dict[str, Any]],
    message: str,
    reasoning: str,
) -> Rule:
    return Rule(
        name=name,
        pattern=re.compile(pattern, re.IGNORECASE),
        capability=capability,
        parameters=parameters,
        message=message,
        reasoning=reasoning,
    )


DEFAULT_RULES: tuple[Rule, ...] = (
    _rule(
        "calculate",
        r"\bcalcul(?:ate)?\s+(.+)",
        "calculator",
        lambda m: {"expression": m.group(1).strip()},
        "Calculating the expression...",
        "User asked for a calculation",
    ),
    _rule(
        "read_file",
        r"(?:\bread file|\blire)\s+(.+)",
        "read_file",
        lambda m: {"path": m.group(1).strip()},
        "Reading the file...",
        "User wants to read a file",
    ),
    _rule(
        "list_directory",
        r"\blist(?:e)?\s+(.+)",
        "list_directory",
        lambda m: {"path": m.group(1).strip()},
        "Listing directory contents...",
        "User wants to list directory contents",
    ),
    _rule(
        "time",
        r"\b(?:time|heure)",
        "get_timestamp",
        lambda m: {"format": "readable"},
        "Getting current timestamp...",
        "User wants to know the current time",
    ),
)


class RuleBasedProvider(ReasoningProvider):
    """Pattern-matching provider used for demos, tests and offline operation."""

    supports_synthesis = False

    def __init__(self, rules: Optional[Sequence[Rule]] = None):
        self.rules: tuple[Rule, ...] = tuple(DEFAULT_RULES if rules is None else rules)

    async def think(
        self,
        system_prompt: str,
        history: Sequence[Message],
        capability_names: Sequence[str],
        user_input: str,
    ) -> Decision:
        available = set(capability_names)
        for rule in self.rules:
            if rule.capability not in available:
                continue
            match = rule.match(user_input)
            if match is None:
                continue
            log.debug("rules.matched", rule=rule.name, capability=rule.capability)
            return Decision(
                message=rule.message,
                capability_calls=[
                    CapabilityCall(
                        name=rule.capability,
                        parameters=rule.parameters(match),
                        reasoning=rule.reasoning or None,
                    )
                ],
                next_action=NextAction.COMPLETE,
                metadata={"rule": rule.name},
            )

        log.debug("rules.no_match")
        listed = ", ".join(capability_names) if capability_names else "none"
        return Decision(
            message=(
                f'I understand you want: "{user_input}". '
                f"Available capabilities: {listed}. "
                'Try asking me to "calculate 2+2" or "list ." or "get time"'
            ),
            next_action=NextAction.COMPLETE,
        )

"""
reasoning/base.py — Reasoning Provider interface
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from taskweave.brain.types import Message
from taskweave.reasoning.types import Decision


class ReasoningProvider(ABC):
    """
    Produces a Decision from a system prompt, prior history, the names of
    the capabilities the session may use, and the current input.

    Implementations contain their own failures: think() returns a Decision
    for every input.
    """

    # When True the agent runs a second synthesis pass after capabilities ran
    supports_synthesis: bool = False

    @abstractmethod
    async def think(
        self,
        system_prompt: str,
        history: Sequence[Message],
        capability_names: Sequence[str],
        user_input: str,
    ) -> Decision:
        ...

    async def synthesize(
        self,
        user_input: str,
        decision: Decision,
        history: Sequence[Message],
    ) -> Optional[Decision]:
        """Summarise capability results for the user. None means no summary."""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"

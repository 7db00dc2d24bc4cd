"""
reasoning/generative.py — LLM-backed Reasoning Provider

Builds an enriched system prompt (the caller's prompt + capability manifest +
output contract), sends the conversation through a BaseLLMClient and decodes
the reply with the staged parser in reasoning.parsing.

Transport failures never escape: every LLMError (and anything unexpected)
becomes a terminal Decision whose message carries the error text and whose
metadata["error"] is set. No retries are attempted.
"""

from __future__ import annotations

from typing import Optional, Sequence

from taskweave.brain.llm_client import BaseLLMClient, LLMError
from taskweave.brain.types import LLMConfig, Message, Role
from taskweave.capabilities.registry import CapabilityRegistry
from taskweave.observability.logger import get_logger
from taskweave.reasoning.base import ReasoningProvider
from taskweave.reasoning.parsing import parse_reply
from taskweave.reasoning.types import Decision

log = get_logger(__name__)


_OUTPUT_CONTRACT = """\
## Response Format
Analyze the user's request and decide which capabilities to use, if any.
Respond with a single JSON object and nothing else:
{
  "reasoning": "Your reasoning about the task",
  "message": "Your message for the user",
  "capabilityCalls": [
    {
      "name": "capability_name",
      "parameters": {"param1": "value1"},
      "reasoning": "Why this capability is needed"
    }
  ],
  "nextAction": "complete" | "continue" | "await_input" | "spawn_subagent"
}

If no capabilities are needed, use an empty list: "capabilityCalls": []
Only call capabilities listed under Available Capabilities."""

_SYNTHESIS_SYSTEM = (
    "You are an analyst who turns raw capability results into a clear, "
    "useful answer for the user."
)

_SYNTHESIS_PROMPT = """\
The user asked: "{user_input}"

I have executed the following capabilities:
{calls}

The results are now in the conversation history.

Analyze these results and provide a complete and useful response to the user.
Highlight the most important information.

Respond directly, without JSON formatting."""


class LLMReasoningProvider(ReasoningProvider):
    """
    Reasoning through a hosted language model.

    Args:
        llm_client: Any BaseLLMClient (Anthropic, OpenAI or a test double).
        config:     Per-request model settings.
        registry:   Source of the capability manifest embedded in the prompt.
    """

    supports_synthesis = True

    def __init__(
        self,
        llm_client: BaseLLMClient,
        config: LLMConfig,
        registry: CapabilityRegistry,
    ):
        self._llm = llm_client
        self._config = config
        self._registry = registry

    # ── Prompt construction ───────────────────────────────────────────────────

    def build_system_prompt(self, system_prompt: str, capability_names: Sequence[str]) -> str:
        manifest = self._registry.describe(capability_names) if capability_names else ""
        return (
            f"{system_prompt}\n\n"
            f"## Available Capabilities\n{manifest or '(none)'}\n\n"
            f"{_OUTPUT_CONTRACT}"
        )

    @staticmethod
    def build_messages(history: Sequence[Message], user_input: str) -> list[Message]:
        """
        History without system messages, roles collapsed to user/assistant,
        then the current input as the final user turn.
        """
        messages = [
            Message(
                role=Role.USER if m.role == Role.USER else Role.ASSISTANT,
                content=m.content,
            )
            for m in history
            if m.role != Role.SYSTEM
        ]
        messages.append(Message.user(user_input))
        return messages

    # ── ReasoningProvider ─────────────────────────────────────────────────────

    async def think(
        self,
        system_prompt: str,
        history: Sequence[Message],
        capability_names: Sequence[str],
        user_input: str,
    ) -> Decision:
        system = self.build_system_prompt(system_prompt, capability_names)
        messages = self.build_messages(history, user_input)

        try:
            text = await self._complete(messages, system)
        except Exception as e:
            return self._error_decision(e)

        decision = parse_reply(text)
        log.info(
            "reasoning.think.done",
            parse_stage=decision.metadata.get("parse_stage"),
            calls=len(decision.capability_calls),
            next_action=decision.next_action.value,
        )
        return decision

    async def synthesize(
        self,
        user_input: str,
        decision: Decision,
        history: Sequence[Message],
    ) -> Optional[Decision]:
        calls = "\n".join(
            f"- {c.name}: {c.reasoning or 'no reasoning given'}"
            for c in decision.capability_calls
        )
        prompt = _SYNTHESIS_PROMPT.format(user_input=user_input, calls=calls)
        messages = self.build_messages(history, prompt)

        try:
            text = await self._complete(messages, _SYNTHESIS_SYSTEM)
        except Exception as e:
            return self._error_decision(e)

        log.info("reasoning.synthesize.done", chars=len(text))
        return Decision(
            message=text.strip(),
            next_action=decision.next_action,
            metadata={"synthesized": True},
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _complete(self, messages: list[Message], system: str) -> str:
        log.debug(
            "reasoning.request",
            model=self._config.model,
            messages=len(messages),
        )
        response = await self._llm.generate(messages=messages, config=self._config, system=system)
        return response.text

    @staticmethod
    def _error_decision(error: Exception) -> Decision:
        if isinstance(error, LLMError):
            log.warning(
                "reasoning.llm_error",
                error=str(error),
                error_type=type(error).__name__,
                provider=error.provider,
            )
        else:
            log.error(
                "reasoning.unexpected_error",
                error=str(error),
                error_type=type(error).__name__,
                exc_info=True,
            )
        text = str(error) or type(error).__name__
        return Decision.from_error(
            message=f"Reasoning provider error: {text}",
            error=text,
            error_type=type(error).__name__,
        )

    def __repr__(self) -> str:
        return f"<LLMReasoningProvider model={self._config.model}>"


"""
brain/anthropic_client.py — Anthropic Messages API transport

The system prompt is a top-level request field, and the conversation must
alternate user/assistant turns, so adjacent same-role entries are folded
together before sending.
"""

from __future__ import annotations

from typing import Any, Optional

import anthropic
from anthropic import AsyncAnthropic

from taskweave.brain.llm_client import BaseLLMClient
from taskweave.brain.types import (
    FinishReason,
    LLMConfig,
    LLMResponse,
    Message,
    Provider,
    Role,
    TokenUsage,
)
from taskweave.observability.logger import get_logger

log = get_logger(__name__)

_STOP_REASONS = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
}


class AnthropicClient(BaseLLMClient):

    provider = Provider.ANTHROPIC
    sdk = anthropic

    def __init__(self, api_key: str, base_url: Optional[str] = None):
        super().__init__(api_key=api_key, base_url=base_url)
        self._client = AsyncAnthropic(api_key=api_key, base_url=base_url)

    async def _send(self, payload: list[dict], config: LLMConfig, system: Optional[str]) -> Any:
        return await self._client.messages.create(
            model=config.model,
            system=system or anthropic.NOT_GIVEN,
            messages=payload,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout=config.timeout_seconds,
        )

    def _wire_messages(self, messages: list[Message], system: Optional[str] = None) -> list[dict]:
        # system text goes in the request field, TOOL turns read as assistant output
        turns: list[dict] = []
        for message in messages:
            if message.role is Role.SYSTEM:
                continue
            speaker = "user" if message.role is Role.USER else "assistant"
            text = message.content or ""
            if turns and turns[-1]["role"] == speaker:
                turns[-1]["content"] = f"{turns[-1]['content']}\n\n{text}"
            else:
                turns.append({"role": speaker, "content": text})
        return turns

    def _parse_response(self, raw: Any) -> LLMResponse:
        text = "".join(
            block.text for block in raw.content if getattr(block, "type", None) == "text"
        )
        usage = raw.usage
        return LLMResponse(
            content=text or None,
            finish_reason=_STOP_REASONS.get(raw.stop_reason or "end_turn", FinishReason.STOP),
            usage=TokenUsage(
                input_tokens=usage.input_tokens if usage else 0,
                output_tokens=usage.output_tokens if usage else 0,
            ),
            model=raw.model,
            provider=self.provider,
        )

    async def health_check(self) -> bool:
        """models.list() validates the key without spending tokens."""
        try:
            await self._client.models.list()
        except anthropic.APIError as e:
            log.warning("anthropic.health_check.failed", error=str(e), error_type=type(e).__name__)
            return False
        return True

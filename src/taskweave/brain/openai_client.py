"""
brain/openai_client.py — OpenAI Chat Completions transport

Works against api.openai.com or any compatible endpoint given as base_url.
The system prompt is sent as the first chat message.
"""

from __future__ import annotations

from typing import Any, Optional

import openai
from openai import AsyncOpenAI

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

_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
}


class OpenAIClient(BaseLLMClient):

    provider = Provider.OPENAI
    sdk = openai

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
    ):
        super().__init__(api_key=api_key, base_url=base_url)
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, organization=organization)

    async def _send(self, payload: list[dict], config: LLMConfig, system: Optional[str]) -> Any:
        return await self._client.chat.completions.create(
            model=config.model,
            messages=payload,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            top_p=config.top_p,
            timeout=config.timeout_seconds,
        )

    def _wire_messages(self, messages: list[Message], system: Optional[str] = None) -> list[dict]:
        chat = [{"role": "system", "content": system}] if system else []
        chat.extend(
            {
                "role": "user" if m.role is Role.USER else "assistant",
                "content": m.content or "",
            }
            for m in messages
            if m.role is not Role.SYSTEM
        )
        return chat

    def _parse_response(self, raw: Any) -> LLMResponse:
        choice = raw.choices[0]
        usage = raw.usage
        return LLMResponse(
            content=choice.message.content,
            finish_reason=_FINISH_REASONS.get(choice.finish_reason or "stop", FinishReason.STOP),
            usage=TokenUsage(
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
            ),
            model=raw.model,
            provider=self.provider,
        )

    async def health_check(self) -> bool:
        try:
            await self._client.models.list()
        except openai.APIError as e:
            log.warning("openai.health_check.failed", error=str(e), error_type=type(e).__name__)
            return False
        return True

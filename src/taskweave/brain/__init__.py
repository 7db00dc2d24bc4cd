"""
brain — LLM transport for the generative reasoning provider.

LLMClientFactory turns the `llm` settings section into a client and a
per-request LLMConfig.
"""

from __future__ import annotations

from taskweave.brain.llm_client import BaseLLMClient, create_llm_client, translate_sdk_error
from taskweave.brain.types import (
    FinishReason,
    LLMConfig,
    LLMResponse,
    Message,
    Provider,
    Role,
    TokenUsage,
)

__all__ = [
    "BaseLLMClient",
    "FinishReason",
    "LLMClientFactory",
    "LLMConfig",
    "LLMResponse",
    "Message",
    "Provider",
    "Role",
    "TokenUsage",
    "create_llm_client",
    "translate_sdk_error",
]

_FALLBACK_MODELS = {
    Provider.ANTHROPIC: "claude-3-haiku-20240307",
    Provider.OPENAI: "gpt-4o",
}


class LLMClientFactory:

    @staticmethod
    def create(provider: str, api_key: str | None = None, base_url: str | None = None) -> BaseLLMClient:
        """
        Raises:
            ValueError:         provider is not one of Provider.
            LLMConnectionError: api_key is missing.
        """
        name = provider.strip().lower()
        if name not in {p.value for p in Provider}:
            raise ValueError(
                f"Unknown LLM provider '{name}', expected one of "
                f"{sorted(p.value for p in Provider)}"
            )
        return create_llm_client(name, api_key=api_key, base_url=base_url)

    @staticmethod
    def from_settings(settings) -> BaseLLMClient:
        llm = settings.llm
        return LLMClientFactory.create(llm.provider, api_key=settings.llm_api_key, base_url=llm.base_url)

    @staticmethod
    def config_from_settings(settings) -> LLMConfig:
        llm = settings.llm
        return LLMConfig(
            model=llm.model or LLMClientFactory.default_model(llm.provider),
            temperature=llm.temperature,
            max_tokens=llm.max_tokens,
            timeout_seconds=llm.timeout_seconds,
        )

    @staticmethod
    def default_model(provider: str) -> str:
        return _FALLBACK_MODELS[Provider(provider.strip().lower())]

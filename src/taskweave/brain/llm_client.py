"""
brain/llm_client.py — LLM Transport Base

BaseLLMClient owns the request lifecycle shared by every provider:

    translate messages → SDK call → normalise errors → LLMResponse

Subclasses supply the three provider-specific pieces (_send, _wire_messages,
_parse_response). A failed call fails once; there is no retry layer.
"""

from __future__ import annotations

import types
from abc import ABC, abstractmethod
from typing import Any, Optional

from taskweave.brain.types import LLMConfig, LLMResponse, Message, Provider
from taskweave.exceptions import (  # noqa: F401 — re-export
    LLMConnectionError,
    LLMContextError,
    LLMError,
    LLMInvalidRequestError,
    LLMRateLimitError,
)
from taskweave.observability.logger import get_logger

log = get_logger(__name__)

_CONTEXT_MARKERS = ("context", "too long", "maximum context")


def translate_sdk_error(error: Exception, sdk: types.ModuleType, provider: str) -> LLMError:
    """
    Map an anthropic / openai SDK exception onto the LLMError family.

    Both SDKs expose the same exception names, so the SDK module is passed
    in and the checks run against its classes. Order matters: the status
    errors all inherit from sdk.APIError.
    """
    text = str(error)
    if isinstance(error, sdk.AuthenticationError):
        return LLMConnectionError(text, provider=provider, status_code=401)
    if isinstance(error, sdk.RateLimitError):
        return LLMRateLimitError(text, provider=provider, retry_after=_retry_after(error))
    if isinstance(error, sdk.BadRequestError):
        if any(marker in text.lower() for marker in _CONTEXT_MARKERS):
            return LLMContextError(text, provider=provider, status_code=400)
        return LLMInvalidRequestError(text, provider=provider, status_code=400)
    if isinstance(error, sdk.APIConnectionError):
        return LLMConnectionError(text, provider=provider)
    return LLMError(text, provider=provider, status_code=getattr(error, "status_code", None))


def _retry_after(error: Exception) -> Optional[float]:
    headers = getattr(getattr(error, "response", None), "headers", None)
    try:
        return float(headers.get("retry-after"))
    except (AttributeError, TypeError, ValueError):
        return None


class BaseLLMClient(ABC):
    """
    Abstract base for all LLM provider clients.

    generate() is shared; subclasses implement:
      - _send()           → one SDK request, SDK exceptions propagate
      - _wire_messages()  → internal Messages → provider payload
      - _parse_response() → provider response → LLMResponse
      - health_check()
    """

    provider: Provider
    sdk: types.ModuleType

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key
        self.base_url = base_url

    async def generate(
        self,
        messages: list[Message],
        config: LLMConfig,
        system: Optional[str] = None,
    ) -> LLMResponse:
        """
        Call the LLM once and return a normalised response.

        `messages` carries the conversation only; the system prompt travels
        separately in `system`.

        Raises:
            LLMError subclasses for every transport or provider failure.
        """
        name = self.provider.value
        payload = self._wire_messages(messages, system)
        log.debug(f"{name}.generate.start", model=config.model, message_count=len(payload))

        try:
            raw = await self._send(payload, config, system)
        except self.sdk.APIError as e:
            error = translate_sdk_error(e, self.sdk, name)
            log.warning(
                f"{name}.generate.failed",
                error=str(e),
                error_type=type(error).__name__,
                status_code=error.status_code,
            )
            raise error from e

        response = self._parse_response(raw)
        log.debug(
            f"{name}.generate.complete",
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            finish_reason=response.finish_reason.value,
        )
        return response

    @abstractmethod
    async def _send(self, payload: list[dict], config: LLMConfig, system: Optional[str]) -> Any:
        ...

    @abstractmethod
    def _wire_messages(self, messages: list[Message], system: Optional[str]) -> list[dict]:
        ...

    @abstractmethod
    def _parse_response(self, raw: Any) -> LLMResponse:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the provider is reachable and the API key is valid."""
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} base_url={self.base_url or 'default'}>"


# ─────────────────────────────────────────────────────────────────────────────
# Client Factory
# ─────────────────────────────────────────────────────────────────────────────

_KEY_ENV = {
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
}


def create_llm_client(
    provider: Provider | str,
    api_key: Optional[str],
    base_url: Optional[str] = None,
) -> BaseLLMClient:
    """Build the client for `provider`. SDK modules are imported on demand."""
    provider = Provider(provider)
    if not api_key:
        raise LLMConnectionError(f"{_KEY_ENV[provider]} is required", provider=provider.value)

    if provider is Provider.ANTHROPIC:
        from taskweave.brain.anthropic_client import AnthropicClient
        return AnthropicClient(api_key=api_key, base_url=base_url)

    from taskweave.brain.openai_client import OpenAIClient
    return OpenAIClient(api_key=api_key, base_url=base_url)

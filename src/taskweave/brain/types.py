"""
brain/types.py — Conversation and LLM transport models

Message is both the unit the LLM clients send and the record kept in the
session conversation log. Provider clients normalise their SDK responses
into LLMResponse.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current time; all stored timestamps are UTC."""
    return datetime.now(timezone.utc)


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    # a capability result recorded in the conversation
    TOOL = "tool"


class Provider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class FinishReason(str, Enum):
    STOP = "stop"
    LENGTH = "length"


class Message(BaseModel):
    """
    One conversation entry. The log is append-only, so position is identity;
    timestamp defaults to the moment of construction.
    """

    role: Role
    content: str = ""
    metadata: Optional[dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=utcnow)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, metadata: Optional[dict[str, Any]] = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, metadata=metadata)

    @classmethod
    def tool(cls, content: str, metadata: Optional[dict[str, Any]] = None) -> "Message":
        return cls(role=Role.TOOL, content=content, metadata=metadata)

    def to_record(self) -> dict[str, Any]:
        """Snapshot form: plain JSON types, ISO-8601 timestamp, no null metadata."""
        record = self.model_dump(mode="json")
        if record["metadata"] is None:
            del record["metadata"]
        return record


class LLMConfig(BaseModel):
    """Sampling and timeout parameters for one generate() call."""

    model: str
    temperature: float = 0.1
    max_tokens: int = 4000
    top_p: float = 1.0
    timeout_seconds: float = 60.0


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMResponse(BaseModel):
    content: Optional[str] = None
    finish_reason: FinishReason = FinishReason.STOP
    usage: TokenUsage = Field(default_factory=TokenUsage)
    # model reported by the provider, which may be more specific than requested
    model: str = ""
    provider: Provider = Provider.ANTHROPIC

    @property
    def text(self) -> str:
        return self.content or ""

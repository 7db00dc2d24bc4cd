"""
reasoning/types.py — Reasoning Data Models

A Decision is the structured output of one reasoning step: a user-facing
message, zero or more capability calls, and a continuation directive.

JSON keys follow the wire contract (camelCase): `capabilityCalls`,
`nextAction`. Python attribute names are snake_case; both spellings are
accepted on input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


class NextAction(str, Enum):
    CONTINUE = "continue"
    AWAIT_INPUT = "await_input"
    SPAWN_SUBAGENT = "spawn_subagent"
    COMPLETE = "complete"

    @classmethod
    def parse(cls, value: Any) -> "NextAction":
        """
        Lenient conversion: accepts enum members, snake_case, camelCase
        ("awaitInput") and any casing. Unknown values become COMPLETE.
        """
        if isinstance(value, NextAction):
            return value
        if not isinstance(value, str):
            return cls.COMPLETE
        normalised = _CAMEL_BOUNDARY.sub(r"_\1", value.strip().replace("-", "_")).lower()
        try:
            return cls(normalised)
        except ValueError:
            return cls.COMPLETE


class CapabilityCall(BaseModel):
    """One requested capability invocation."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(validation_alias=AliasChoices("name", "toolName", "capability"))
    parameters: dict[str, Any] = Field(default_factory=dict)
    reasoning: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "parameters": dict(self.parameters)}
        if self.reasoning is not None:
            data["reasoning"] = self.reasoning
        return data


class Decision(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    capability_calls: list[CapabilityCall] = Field(
        default_factory=list,
        validation_alias=AliasChoices("capabilityCalls", "capability_calls"),
        serialization_alias="capabilityCalls",
    )
    next_action: NextAction = Field(
        default=NextAction.COMPLETE,
        validation_alias=AliasChoices("nextAction", "next_action"),
        serialization_alias="nextAction",
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("next_action", mode="before")
    @classmethod
    def _lenient_next_action(cls, v: Any) -> NextAction:
        return NextAction.parse(v)

    @classmethod
    def from_error(cls, message: str, error: str, **metadata: Any) -> "Decision":
        """Terminal decision carrying a contained failure."""
        return cls(
            message=message,
            next_action=NextAction.COMPLETE,
            metadata={"error": error, **metadata},
        )

    @property
    def is_error(self) -> bool:
        return bool(self.metadata.get("error"))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ─────────────────────────────────────────────────────────────────────────────
# Staged parsing
# ─────────────────────────────────────────────────────────────────────────────


class ParseStage(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    STRICT = "strict"          # the whole reply decoded as one object
    SUBSTRING = "substring"    # first balanced {...} inside the reply decoded
    FALLBACK = "fallback"      # no object found; raw reply used as the message


@dataclass(frozen=True)
class ParsedReply:
    """Outcome of the staged decode, before coercion into a Decision."""
    stage: ParseStage
    raw: str
    payload: Optional[dict[str, Any]] = None

    @property
    def decoded(self) -> bool:
        return self.payload is not None

"""
agent/state.py — Agent Session Models

SessionConfiguration is supplied by the caller and never mutated.
SessionState is a frozen snapshot produced on demand by Agent.state; the
live agent keeps its mutable fields privately and never hands them out.
"""

from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskweave.brain.types import Message, utcnow
from taskweave.reasoning.types import CapabilityCall, Decision, NextAction


class AgentStatus(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    EXECUTING_CAPABILITY = "executing_capability"
    WAITING_FOR_INPUT = "waiting_for_input"
    COMPLETED = "completed"
    ERROR = "error"


class AgentMode(str, Enum):
    AUTONOMOUS = "autonomous"
    INTERACTIVE = "interactive"
    PLANNING = "planning"


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────


class MemoryOptions(BaseModel):
    """
    enabled          → persist()/load_memory() do anything at all
    persist_to_disk  → snapshot file is written/read
    memory_path      → explicit snapshot file; else memory_dir/<session_id>.json

    A subagent shares its parent's session_id, so its file carries its own
    agent id as well: memory_dir/<session_id>.<agent_id>.json, or the
    agent id inserted before the extension of memory_path.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    persist_to_disk: bool = False
    memory_path: Optional[str] = None
    memory_dir: Optional[str] = None

    def resolve_path(self, session_id: str, agent_id: Optional[str] = None) -> Optional[str]:
        if self.memory_path:
            if agent_id is None:
                return self.memory_path
            stem, ext = os.path.splitext(self.memory_path)
            return f"{stem}.{agent_id}{ext or '.json'}"
        if self.memory_dir:
            name = session_id if agent_id is None else f"{session_id}.{agent_id}"
            return f"{self.memory_dir.rstrip('/')}/{name}.json"
        return None


class SessionConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    system_prompt: str = "You are a helpful agent. Use the available capabilities when they help."
    capabilities: tuple[str, ...] = ()
    mode: AgentMode = AgentMode.AUTONOMOUS
    can_spawn_subagents: bool = False
    max_iterations: Optional[int] = Field(default=10, ge=1)
    max_subagents: int = Field(default=5, ge=0)
    memory: MemoryOptions = Field(default_factory=MemoryOptions)

    @field_validator("capabilities", mode="before")
    @classmethod
    def _as_tuple(cls, v: Any) -> tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,)
        return tuple(v)

    @classmethod
    def from_settings(cls, settings, capabilities=(), **overrides: Any) -> "SessionConfiguration":
        """Build a configuration from the `agent` and `memory` settings sections."""
        agent = settings.agent
        mem = settings.memory
        values: dict[str, Any] = {
            "name": agent.name,
            "description": agent.description,
            "system_prompt": agent.system_prompt,
            "capabilities": capabilities,
            "mode": agent.mode,
            "can_spawn_subagents": agent.can_spawn_subagents,
            "max_iterations": agent.max_iterations,
            "max_subagents": agent.max_subagents,
            "memory": MemoryOptions(
                enabled=mem.enabled,
                persist_to_disk=mem.persist_to_disk,
                memory_dir=mem.memory_dir,
            ),
        }
        values.update(overrides)
        return cls(**values)


# ─────────────────────────────────────────────────────────────────────────────
# Snapshots
# ─────────────────────────────────────────────────────────────────────────────


class AgentContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    parent_id: Optional[str] = None
    messages: list[Message] = Field(default_factory=list)
    working_memory: dict[str, Any] = Field(default_factory=dict)
    available_capabilities: list[str] = Field(default_factory=list)
    environment: dict[str, Any] = Field(default_factory=dict)


class SessionState(BaseModel):
    """Immutable point-in-time view of one agent, including its subagents."""
    model_config = ConfigDict(frozen=True)

    id: str
    configuration: SessionConfiguration
    status: AgentStatus
    context: AgentContext
    current_task: Optional[str] = None
    iteration_count: int = 0
    subagents: dict[str, "SessionState"] = Field(default_factory=dict)
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None


SessionState.model_rebuild()


# ─────────────────────────────────────────────────────────────────────────────
# Caller-facing response
# ─────────────────────────────────────────────────────────────────────────────


class AgentResponse(BaseModel):
    message: str
    capability_calls: list[CapabilityCall] = Field(default_factory=list)
    next_action: NextAction = NextAction.COMPLETE
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_decision(cls, decision: Decision, message: Optional[str] = None) -> "AgentResponse":
        return cls(
            message=decision.message if message is None else message,
            capability_calls=list(decision.capability_calls),
            next_action=decision.next_action,
            metadata=dict(decision.metadata),
        )

    @classmethod
    def error(cls, message: str, **metadata: Any) -> "AgentResponse":
        return cls(message=message, next_action=NextAction.COMPLETE, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        """{message, capabilityCalls, nextAction, metadata}."""
        return {
            "message": self.message,
            "capabilityCalls": [c.to_dict() for c in self.capability_calls],
            "nextAction": self.next_action.value,
            "metadata": dict(self.metadata),
        }

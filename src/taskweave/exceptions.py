"""
exceptions.py — taskweave Error Hierarchy

All taskweave-specific exceptions live here. Every layer of the runtime
raises typed subclasses of TaskweaveError — never bare Exception.

Import from here, not from individual modules:
    from taskweave.exceptions import QuotaError, MemoryStoreError

Hierarchy:
    TaskweaveError
    ├── CapabilityError
    │   ├── DuplicateCapabilityError
    │   ├── CapabilityNotFoundError
    │   ├── CapabilityValidationError
    │   │   ├── MissingParametersError
    │   │   └── InvalidParameterError
    │   └── CapabilityExecutionError
    ├── ProviderError
    │   └── LLMError
    │       ├── LLMConnectionError
    │       ├── LLMRateLimitError
    │       ├── LLMContextError
    │       └── LLMInvalidRequestError
    ├── AgentError
    │   └── IterationLimitError
    ├── DelegationError
    │   ├── QuotaError
    │   └── SubagentPermissionError
    └── SessionMemoryError
        ├── MemoryNotConfiguredError
        └── MemoryStoreError

Only DelegationError subclasses are meant to reach callers. Capability and
provider errors are contained by the registry and the reasoning provider and
surface as failed results or degraded decisions.
"""

from __future__ import annotations

from typing import Optional


# ─────────────────────────────────────────────────────────────────────────────
# Root
# ─────────────────────────────────────────────────────────────────────────────

class TaskweaveError(Exception):
    """Base class for all taskweave exceptions."""


# ─────────────────────────────────────────────────────────────────────────────
# Capability layer
# ─────────────────────────────────────────────────────────────────────────────

class CapabilityError(TaskweaveError):
    """Base for capability registry errors."""


class DuplicateCapabilityError(CapabilityError):
    """A capability with this name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Capability "{name}" is already registered')


class CapabilityNotFoundError(CapabilityError, LookupError):
    """Requested capability is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Capability "{name}" not found')


class CapabilityValidationError(CapabilityError, ValueError):
    """Capability parameters failed validation."""


class MissingParametersError(CapabilityValidationError):
    """One or more required parameters were not supplied."""

    def __init__(self, capability: str, missing: list[str]) -> None:
        self.capability = capability
        self.missing = list(missing)
        super().__init__(f"Missing required parameters: {', '.join(self.missing)}")


class InvalidParameterError(CapabilityValidationError):
    """A supplied parameter was rejected by its kind check or validator."""

    def __init__(self, capability: str, parameter: str, reason: str) -> None:
        self.capability = capability
        self.parameter = parameter
        self.reason = reason
        super().__init__(f'Invalid parameter "{parameter}": {reason}')


class CapabilityExecutionError(CapabilityError):
    """The capability's execute function raised."""


# ─────────────────────────────────────────────────────────────────────────────
# Reasoning provider layer
# ─────────────────────────────────────────────────────────────────────────────

class ProviderError(TaskweaveError):
    """Reasoning transport unreachable or produced unusable output."""


class LLMError(ProviderError):
    """An LLM SDK call failed. Carries the provider name and HTTP status when known."""

    def __init__(self, message: str, *, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


class LLMConnectionError(LLMError):
    """Network failure, timeout, missing key or rejected credentials."""


class LLMRateLimitError(LLMError):
    """HTTP 429. retry_after is the provider hint in seconds, if any."""

    def __init__(self, message: str, *, provider: str = "", retry_after: Optional[float] = None):
        super().__init__(message, provider=provider, status_code=429)
        self.retry_after = retry_after


class LLMContextError(LLMError):
    """The prompt does not fit the model's context window."""


class LLMInvalidRequestError(LLMError):
    """HTTP 400 for any reason other than context length."""


# ─────────────────────────────────────────────────────────────────────────────
# Agent layer
# ─────────────────────────────────────────────────────────────────────────────

class AgentError(TaskweaveError):
    """Base for agent orchestration errors."""


class IterationLimitError(AgentError):
    """The session reached max_iterations; no further turns are accepted."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Iteration limit reached ({limit})")


# ─────────────────────────────────────────────────────────────────────────────
# Delegation layer
# ─────────────────────────────────────────────────────────────────────────────

class DelegationError(TaskweaveError):
    """Base for subagent delegation errors raised to the caller of spawn()."""


class QuotaError(DelegationError):
    """The parent already holds max_subagents children."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Maximum number of subagents ({limit}) reached")


class SubagentPermissionError(DelegationError, PermissionError):
    """The parent configuration does not allow spawning subagents."""

    def __init__(self, agent_name: str) -> None:
        self.agent_name = agent_name
        super().__init__(f'Agent "{agent_name}" is not allowed to spawn subagents')


# ─────────────────────────────────────────────────────────────────────────────
# Memory layer
# ─────────────────────────────────────────────────────────────────────────────

class SessionMemoryError(TaskweaveError):
    """Base for session memory errors."""


class MemoryNotConfiguredError(SessionMemoryError):
    """persist()/load() called on a memory with no snapshot path."""


class MemoryStoreError(SessionMemoryError):
    """Reading or writing the snapshot file failed."""


__all__ = [
    "TaskweaveError",
    # Capability
    "CapabilityError",
    "DuplicateCapabilityError",
    "CapabilityNotFoundError",
    "CapabilityValidationError",
    "MissingParametersError",
    "InvalidParameterError",
    "CapabilityExecutionError",
    # Provider
    "ProviderError",
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMContextError",
    "LLMInvalidRequestError",
    # Agent
    "AgentError",
    "IterationLimitError",
    # Delegation
    "DelegationError",
    "QuotaError",
    "SubagentPermissionError",
    # Memory
    "SessionMemoryError",
    "MemoryNotConfiguredError",
    "MemoryStoreError",
]

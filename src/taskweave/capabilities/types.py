"""
capabilities/types.py — Capability System Data Models

Shared types used by the capability registry, the built-in capabilities and
the agent core.

A capability is described by a CapabilityDescriptor (name, description,
tagged parameter list) and executed through Capability.execute(), which
always yields a CapabilityResult.
"""

from __future__ import annotations

import inspect
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────


class ParameterKind(str, Enum):
    """Wire type of a capability parameter."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"

    def accepts(self, value: Any) -> bool:
        # bool is a subclass of int, so it must be excluded from NUMBER explicitly
        if self is ParameterKind.STRING:
            return isinstance(value, str)
        if self is ParameterKind.NUMBER:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self is ParameterKind.BOOLEAN:
            return isinstance(value, bool)
        if self is ParameterKind.OBJECT:
            return isinstance(value, dict)
        return isinstance(value, (list, tuple))


class PermissionLevel(str, Enum):
    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"
    ADMIN = "admin"


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a parameter validator: valid, or invalid with a reason."""
    valid: bool
    reason: str = ""

    @classmethod
    def ok(cls) -> "ValidationOutcome":
        return cls(valid=True)

    @classmethod
    def fail(cls, reason: str) -> "ValidationOutcome":
        return cls(valid=False, reason=reason)

    @classmethod
    def coerce(cls, value: Union["ValidationOutcome", bool, None]) -> "ValidationOutcome":
        """Accept a plain bool (or None meaning valid) from simple predicates."""
        if isinstance(value, ValidationOutcome):
            return value
        if value is None or value is True:
            return cls.ok()
        return cls.fail("validation failed")

    def __bool__(self) -> bool:
        return self.valid


Validator = Callable[[Any], Union[ValidationOutcome, bool, None]]


# ─────────────────────────────────────────────────────────────────────────────
# Descriptors
# ─────────────────────────────────────────────────────────────────────────────


class ParameterSpec(BaseModel):
    """One declared parameter of a capability."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    kind: ParameterKind = ParameterKind.STRING
    description: str = ""
    required: bool = True
    validator: Optional[Validator] = Field(default=None, exclude=True)

    def check(self, value: Any) -> ValidationOutcome:
        """Kind check, then the injected validator. A raising validator counts as a failure."""
        if not self.kind.accepts(value):
            return ValidationOutcome.fail(
                f"expected {self.kind.value}, got {type(value).__name__}"
            )
        if self.validator is None:
            return ValidationOutcome.ok()
        try:
            return ValidationOutcome.coerce(self.validator(value))
        except Exception as e:
            return ValidationOutcome.fail(str(e) or type(e).__name__)


class CapabilityDescriptor(BaseModel):
    """
    Full metadata for a registered capability.
    Stored in the CapabilityRegistry and rendered into reasoning prompts.
    """
    name: str
    description: str
    parameters: list[ParameterSpec] = Field(default_factory=list)
    permission_level: Optional[PermissionLevel] = None
    requires_permission: bool = False

    @property
    def required_parameters(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    @property
    def optional_parameters(self) -> list[str]:
        return [p.name for p in self.parameters if not p.required]

    def to_manifest(self) -> dict[str, Any]:
        """JSON-friendly summary for prompts and introspection."""
        return {
            "name": self.name,
            "description": self.description,
            "required": self.required_parameters,
            "optional": self.optional_parameters,
            "parameters": [
                {
                    "name": p.name,
                    "kind": p.kind.value,
                    "description": p.description,
                    "required": p.required,
                }
                for p in self.parameters
            ],
        }

    def to_markdown(self) -> str:
        lines = [
            f"  - {p.name} ({p.kind.value}){' *required*' if p.required else ''}: {p.description}"
            for p in self.parameters
        ]
        params = "\n".join(lines) if lines else "  (none)"
        return f"### {self.name}\n{self.description}\n\nParameters:\n{params}\n"


# ─────────────────────────────────────────────────────────────────────────────
# Result
# ─────────────────────────────────────────────────────────────────────────────


class CapabilityResult(BaseModel):
    """The outcome of a capability invocation. Always well-formed."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @classmethod
    def ok(cls, data: Any = None, **metadata: Any) -> "CapabilityResult":
        return cls(success=True, data=data, metadata=metadata or None)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "CapabilityResult":
        return cls(success=False, error=error, metadata=metadata or None)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dict; non-serialisable data is stringified."""
        return json.loads(self.to_json(indent=None))

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.model_dump(exclude_none=True), indent=indent, default=str)


# ─────────────────────────────────────────────────────────────────────────────
# Capability interface
# ─────────────────────────────────────────────────────────────────────────────


class Capability(ABC):
    """
    Base class for externally implemented capabilities.

    Subclasses set `descriptor` (class or instance attribute) and implement
    `execute(params)`. execute() may raise; the registry converts exceptions
    into failed results.
    """

    descriptor: CapabilityDescriptor

    @property
    def name(self) -> str:
        return self.descriptor.name

    @abstractmethod
    async def execute(self, params: dict[str, Any]) -> CapabilityResult:
        ...

    def __repr__(self) -> str:
        return f"<Capability:{self.name}>"


class FunctionCapability(Capability):
    """
    Adapts a plain function into a Capability.

    The function receives the parameters as keyword arguments. It may be
    sync or async, and may return a CapabilityResult or any other value
    (which the registry wraps as successful data).
    """

    def __init__(self, descriptor: CapabilityDescriptor, fn: Callable[..., Any]):
        self.descriptor = descriptor
        self._fn = fn

    async def execute(self, params: dict[str, Any]) -> CapabilityResult:
        result = self._fn(**params)
        if inspect.isawaitable(result):
            result = await result
        return result

    @property
    def fn(self) -> Callable[..., Union[Any, Awaitable[Any]]]:
        return self._fn

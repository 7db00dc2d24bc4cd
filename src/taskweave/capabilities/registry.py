"""
capabilities/registry.py — Capability Registry

Catalog, validation and dispatch of named capabilities.

The registry is passed explicitly into every Agent; there is no module-level
singleton. A process-wide instance, when wanted, is built once by
taskweave.bootstrap.

Invocation pipeline (invoke never raises):
    lookup            → CapabilityNotFoundError text if absent
    required params   → MissingParametersError text listing every missing name
    kind + validator  → InvalidParameterError text at the first violation
    execute           → any exception mapped to {success: false, error: ...}

Usage:
    registry = CapabilityRegistry()

    @registry.capability(
        name="add",
        description="Add two numbers",
        parameters=[
            ParameterSpec(name="a", kind=ParameterKind.NUMBER),
            ParameterSpec(name="b", kind=ParameterKind.NUMBER),
        ],
    )
    async def add(a: float, b: float) -> CapabilityResult:
        return CapabilityResult.ok({"result": a + b})

    result = await registry.invoke("add", {"a": 2, "b": 3})
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Optional

from taskweave.capabilities.types import (
    Capability,
    CapabilityDescriptor,
    CapabilityResult,
    FunctionCapability,
    ParameterSpec,
    PermissionLevel,
)
from taskweave.exceptions import (
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    InvalidParameterError,
    MissingParametersError,
)
from taskweave.observability.logger import get_logger

log = get_logger(__name__)


class CapabilityRegistry:
    """
    Maps capability names to Capability objects.

    Safe for concurrent invoke() once registration is finished. The map
    itself carries no lock, so register/unregister must not race with
    invoke traffic.
    """

    def __init__(self):
        self._capabilities: dict[str, Capability] = {}

    # ── Registration ──────────────────────────────────────────────────────────

    def register(self, capability: Capability) -> None:
        """Register a capability. Raises DuplicateCapabilityError if the name exists."""
        name = capability.descriptor.name
        if name in self._capabilities:
            raise DuplicateCapabilityError(name)
        self._capabilities[name] = capability
        log.debug(
            "registry.registered",
            capability=name,
            parameters=len(capability.descriptor.parameters),
        )

    def register_many(self, capabilities: Iterable[Capability]) -> None:
        for capability in capabilities:
            self.register(capability)

    def capability(
        self,
        name: str,
        description: str,
        parameters: Optional[list[ParameterSpec]] = None,
        permission_level: Optional[PermissionLevel] = None,
        requires_permission: bool = False,
    ) -> Callable:
        """
        Decorator registering a plain function as a capability.
        The function itself is returned unchanged.
        """
        def decorator(fn: Callable) -> Callable:
            descriptor = CapabilityDescriptor(
                name=name,
                description=description,
                parameters=parameters or [],
                permission_level=permission_level,
                requires_permission=requires_permission,
            )
            self.register(FunctionCapability(descriptor, fn))
            return fn

        return decorator

    def unregister(self, name: str) -> bool:
        """Remove a capability. Returns True if it existed."""
        removed = self._capabilities.pop(name, None) is not None
        if removed:
            log.debug("registry.unregistered", capability=name)
        return removed

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, name: str) -> Optional[Capability]:
        return self._capabilities.get(name)

    def has(self, name: str) -> bool:
        return name in self._capabilities

    def names(self) -> list[str]:
        return list(self._capabilities)

    def list_descriptors(self, names: Optional[Iterable[str]] = None) -> list[CapabilityDescriptor]:
        """Descriptors in registration order, or for the given subset (unknown names skipped)."""
        if names is None:
            return [c.descriptor for c in self._capabilities.values()]
        return [
            self._capabilities[n].descriptor
            for n in names
            if n in self._capabilities
        ]

    def manifest(self, names: Optional[Iterable[str]] = None) -> list[dict[str, Any]]:
        return [d.to_manifest() for d in self.list_descriptors(names)]

    def describe(self, names: Optional[Iterable[str]] = None) -> str:
        """Markdown manifest for embedding in a reasoning prompt."""
        return "\n---\n".join(d.to_markdown() for d in self.list_descriptors(names))

    # ── Invocation ────────────────────────────────────────────────────────────

    async def invoke(self, name: str, params: Optional[dict[str, Any]] = None) -> CapabilityResult:
        """
        Validate and execute a capability.

        Returns:
            CapabilityResult (always — never raises, errors are captured in result).
        """
        params = dict(params or {})
        start_ms = time.monotonic() * 1000

        # ── Step 1: Lookup ────────────────────────────────────────────────────
        capability = self._capabilities.get(name)
        if capability is None:
            log.warning("registry.invoke.not_found", capability=name)
            return CapabilityResult.fail(
                str(CapabilityNotFoundError(name)), error_type="not_found"
            )

        descriptor = capability.descriptor

        # ── Step 2: Required parameters ───────────────────────────────────────
        missing = [p.name for p in descriptor.parameters if p.required and p.name not in params]
        if missing:
            log.warning("registry.invoke.missing_parameters", capability=name, missing=missing)
            return CapabilityResult.fail(
                str(MissingParametersError(name, missing)),
                error_type="missing_parameters",
                missing=missing,
            )

        # ── Step 3: Kind + validator, declaration order, fail fast ────────────
        for spec in descriptor.parameters:
            if spec.name not in params:
                continue
            outcome = spec.check(params[spec.name])
            if not outcome.valid:
                err = InvalidParameterError(name, spec.name, outcome.reason)
                log.warning(
                    "registry.invoke.invalid_parameter",
                    capability=name,
                    parameter=spec.name,
                    reason=outcome.reason,
                )
                return CapabilityResult.fail(
                    str(err), error_type="invalid_parameter", parameter=spec.name
                )

        # ── Step 4: Execute ───────────────────────────────────────────────────
        log.info("registry.invoke.start", capability=name)
        try:
            raw = await capability.execute(params)
        except Exception as e:
            duration_ms = time.monotonic() * 1000 - start_ms
            log.error(
                "registry.invoke.execution_error",
                capability=name,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 1),
                exc_info=True,
            )
            return CapabilityResult.fail(
                str(e) or type(e).__name__, error_type="execution_error"
            )

        result = raw if isinstance(raw, CapabilityResult) else CapabilityResult.ok(raw)
        duration_ms = time.monotonic() * 1000 - start_ms
        log.info(
            "registry.invoke.done",
            capability=name,
            success=result.success,
            duration_ms=round(duration_ms, 1),
        )
        return result

    # ── Dunder ────────────────────────────────────────────────────────────────

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)

    def __repr__(self) -> str:
        return f"<CapabilityRegistry capabilities={list(self._capabilities.keys())}>"

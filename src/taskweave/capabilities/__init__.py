"""
capabilities/__init__.py — taskweave Capability System

Public interface for the capability system.

Usage:
    from taskweave.capabilities import CapabilityRegistry, setup_capabilities

    registry = CapabilityRegistry()
    setup_capabilities(registry)          # registers the built-in pack
    result = await registry.invoke("calculator", {"expression": "2 + 2"})
"""

from __future__ import annotations

from taskweave.capabilities.registry import CapabilityRegistry
from taskweave.capabilities.types import (
    Capability,
    CapabilityDescriptor,
    CapabilityResult,
    FunctionCapability,
    ParameterKind,
    ParameterSpec,
    PermissionLevel,
    ValidationOutcome,
    Validator,
)

__all__ = [
    "CapabilityRegistry",
    "setup_capabilities",
    # Types
    "Capability",
    "CapabilityDescriptor",
    "CapabilityResult",
    "FunctionCapability",
    "ParameterKind",
    "ParameterSpec",
    "PermissionLevel",
    "ValidationOutcome",
    "Validator",
]


def setup_capabilities(
    registry: CapabilityRegistry,
    enable_utility: bool = True,
    enable_filesystem: bool = True,
) -> CapabilityRegistry:
    """
    Register the built-in capabilities on `registry`.

    Call once at startup, before any agent starts invoking.

    Args:
        enable_utility:    Register calculator, wait, get_timestamp.
        enable_filesystem: Register read_file, write_file, list_directory.
    """
    from taskweave.capabilities.builtin import FILESYSTEM_CAPABILITIES, UTILITY_CAPABILITIES

    if enable_utility:
        registry.register_many(UTILITY_CAPABILITIES)
    if enable_filesystem:
        registry.register_many(FILESYSTEM_CAPABILITIES)
    return registry

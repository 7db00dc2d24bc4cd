"""
capabilities/validators.py — Reusable parameter validators

Each factory returns a predicate `value -> ValidationOutcome` suitable for
ParameterSpec.validator. The registry runs validators after the kind check,
in parameter declaration order, and stops at the first failure.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from taskweave.capabilities.types import ParameterKind, ValidationOutcome, Validator


def of_kind(kind: ParameterKind | str) -> Validator:
    kind = ParameterKind(kind)

    def _check(value: Any) -> ValidationOutcome:
        if kind.accepts(value):
            return ValidationOutcome.ok()
        return ValidationOutcome.fail(f"expected {kind.value}, got {type(value).__name__}")

    return _check


def non_empty() -> Validator:
    """Reject empty / whitespace-only strings and empty collections."""
    def _check(value: Any) -> ValidationOutcome:
        if isinstance(value, str):
            empty = not value.strip()
        else:
            try:
                empty = len(value) == 0
            except TypeError:
                empty = False
        return ValidationOutcome.fail("must not be empty") if empty else ValidationOutcome.ok()

    return _check


def one_of(choices: Iterable[Any]) -> Validator:
    allowed = list(choices)

    def _check(value: Any) -> ValidationOutcome:
        if value in allowed:
            return ValidationOutcome.ok()
        return ValidationOutcome.fail(f"must be one of {allowed}, got {value!r}")

    return _check


def in_range(minimum: Optional[float] = None, maximum: Optional[float] = None) -> Validator:
    """Inclusive numeric bounds."""
    def _check(value: Any) -> ValidationOutcome:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return ValidationOutcome.fail(f"expected number, got {type(value).__name__}")
        if minimum is not None and value < minimum:
            return ValidationOutcome.fail(f"must be >= {minimum}")
        if maximum is not None and value > maximum:
            return ValidationOutcome.fail(f"must be <= {maximum}")
        return ValidationOutcome.ok()

    return _check


def matches(pattern: str, flags: int = 0) -> Validator:
    regex = re.compile(pattern, flags)

    def _check(value: Any) -> ValidationOutcome:
        if isinstance(value, str) and regex.search(value):
            return ValidationOutcome.ok()
        return ValidationOutcome.fail(f"must match /{pattern}/")

    return _check


def all_of(*validators: Validator) -> Validator:
    """Run validators in order; the first failure wins."""
    def _check(value: Any) -> ValidationOutcome:
        for validator in validators:
            outcome = ValidationOutcome.coerce(validator(value))
            if not outcome.valid:
                return outcome
        return ValidationOutcome.ok()

    return _check

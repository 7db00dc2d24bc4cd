"""
capabilities/builtin/utility.py — Utility Capabilities

  - calculator     → evaluate an arithmetic expression (AST-restricted, no eval)
  - get_timestamp  → current time as iso / unix / readable
  - wait           → sleep for up to 10 seconds
"""

from __future__ import annotations

import ast
import asyncio
import math
import operator
from datetime import datetime, timezone
from typing import Any, Optional

from taskweave.capabilities.types import (
    CapabilityDescriptor,
    CapabilityResult,
    FunctionCapability,
    ParameterKind,
    ParameterSpec,
)
from taskweave.capabilities.validators import in_range, non_empty, one_of

_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

# Powers beyond these bounds are refused before being computed
_MAX_EXPONENT = 1000
_MAX_RESULT_BITS = 1 << 16


def evaluate_expression(expression: str) -> float | int:
    """Evaluate + - * / // % ** and parentheses over numeric literals."""
    tree = ast.parse(expression.strip(), mode="eval")
    return _eval_node(tree.body)


def _eval_node(node: ast.AST) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) \
            and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow):
            _check_power(left, right)
        return _BIN_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise ValueError(f"unsupported expression element: {type(node).__name__}")


def _check_power(base: Any, exponent: Any) -> None:
    if abs(exponent) > _MAX_EXPONENT:
        raise ValueError(f"exponent too large: {exponent}")
    if abs(base) > 1 and math.log2(abs(base)) * abs(exponent) > _MAX_RESULT_BITS:
        raise ValueError("result too large")


async def calculator(expression: str) -> CapabilityResult:
    try:
        result = evaluate_expression(expression)
    except (SyntaxError, ValueError, ZeroDivisionError, OverflowError) as e:
        return CapabilityResult.fail(f"Failed to evaluate expression: {e}")
    return CapabilityResult.ok({"expression": expression, "result": result})


async def get_timestamp(format: Optional[str] = None) -> CapabilityResult:
    now = datetime.now(timezone.utc)
    fmt = format or "iso"
    if fmt == "unix":
        timestamp: str | int = int(now.timestamp())
    elif fmt == "readable":
        timestamp = now.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")
    else:
        timestamp = now.isoformat()
    return CapabilityResult.ok({"timestamp": timestamp, "format": fmt})


async def wait(milliseconds: float) -> CapabilityResult:
    await asyncio.sleep(milliseconds / 1000)
    return CapabilityResult.ok({"waited": milliseconds, "message": f"Waited {milliseconds}ms"})


CALCULATOR = FunctionCapability(
    CapabilityDescriptor(
        name="calculator",
        description="Evaluates mathematical expressions safely",
        parameters=[
            ParameterSpec(
                name="expression",
                kind=ParameterKind.STRING,
                description='The mathematical expression to evaluate (e.g., "2 + 2 * 3")',
                validator=non_empty(),
            ),
        ],
    ),
    calculator,
)

GET_TIMESTAMP = FunctionCapability(
    CapabilityDescriptor(
        name="get_timestamp",
        description="Gets the current timestamp in various formats",
        parameters=[
            ParameterSpec(
                name="format",
                kind=ParameterKind.STRING,
                description='Format: "iso", "unix", or "readable"',
                required=False,
                validator=one_of(["iso", "unix", "readable"]),
            ),
        ],
    ),
    get_timestamp,
)

WAIT = FunctionCapability(
    CapabilityDescriptor(
        name="wait",
        description="Waits for a specified number of milliseconds",
        parameters=[
            ParameterSpec(
                name="milliseconds",
                kind=ParameterKind.NUMBER,
                description="Number of milliseconds to wait (0-10000)",
                validator=in_range(0, 10_000),
            ),
        ],
    ),
    wait,
)

UTILITY_CAPABILITIES = [CALCULATOR, WAIT, GET_TIMESTAMP]

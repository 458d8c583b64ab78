"""
Arithmetic command.

Expressions are parsed with :mod:`ast` and evaluated by walking a small
whitelist of node types; names other than the listed functions and
constants are rejected, so nothing reaches ``eval``.
"""

from __future__ import annotations

import ast
import logging
import math
import operator
from collections.abc import Callable, Sequence
from typing import Any

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 1000
MAX_EXPONENT = 1000
# keeps integer results well under the interpreter's int-to-str digit limit
MAX_RESULT_BITS = 10_000

_BINARY_OPS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: dict[type[ast.unaryop], Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "sqrt": math.sqrt,
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
}

_CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}


def _bits(value: Any) -> float:
    """Approximate bit length of the magnitude of ``value``."""
    magnitude = abs(value)
    if magnitude <= 1:
        return 0.0
    return math.log2(magnitude)


def _check_power_size(base: Any, exponent: Any) -> None:
    if exponent > 0 and exponent * _bits(base) > MAX_RESULT_BITS:
        raise ValueError("Result too large")


def _check_product_size(left: Any, right: Any) -> None:
    if _bits(left) + _bits(right) > MAX_RESULT_BITS:
        raise ValueError("Result too large")


def _eval_node(node: ast.AST) -> int | float:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)

    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ValueError(f"Unsupported literal: {node.value!r}")
        return node.value

    if isinstance(node, ast.BinOp):
        op = _BINARY_OPS.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator: {type(node.op).__name__}")
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow):
            if abs(right) > MAX_EXPONENT:
                raise ValueError("Exponent too large")
            _check_power_size(left, right)
        elif isinstance(node.op, ast.Mult):
            _check_product_size(left, right)
        if isinstance(node.op, (ast.Div, ast.FloorDiv, ast.Mod)) and right == 0:
            raise ValueError("Division by zero")
        return op(left, right)

    if isinstance(node, ast.UnaryOp):
        op = _UNARY_OPS.get(type(node.op))
        if op is None:
            raise ValueError(f"Unsupported operator: {type(node.op).__name__}")
        return op(_eval_node(node.operand))

    if isinstance(node, ast.Name):
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise ValueError(f"Unknown name: {node.id}")

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
            raise ValueError("Unsupported function call")
        if node.keywords:
            raise ValueError("Keyword arguments are not supported")
        args = [_eval_node(arg) for arg in node.args]
        return _FUNCTIONS[node.func.id](*args)

    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def evaluate_expression(expression: str) -> int | float:
    """
    Evaluate an arithmetic expression.

    Args:
        expression: e.g. ``"2 + 3 * 4"`` or ``"sqrt(16) + pi"``

    Returns:
        The numeric result

    Raises:
        ValueError: If the expression is empty, too long, malformed, uses
            anything outside the supported operators and functions, or does
            not produce a finite number
    """
    text = expression.strip()
    if not text:
        raise ValueError("Empty expression")
    if len(text) > MAX_EXPRESSION_LENGTH:
        raise ValueError("Expression too long")

    try:
        tree = ast.parse(text, mode="eval")
    except (SyntaxError, RecursionError) as e:
        raise ValueError(f"Invalid expression: {text}") from e

    try:
        result = _eval_node(tree)
    except (TypeError, OverflowError, RecursionError) as e:
        raise ValueError(f"Could not evaluate expression: {e}") from e

    if isinstance(result, bool) or not isinstance(result, (int, float)):
        raise ValueError("Result is not a number")
    if isinstance(result, float) and not math.isfinite(result):
        raise ValueError("Result is not a finite number")
    return result


def format_number(value: int | float) -> str:
    """Render integral values without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        return f"{value:.10g}"
    return str(value)


def handle_calc(full_args: str, args: Sequence[str], context: Any = None) -> str:
    result = evaluate_expression(full_args)
    logger.debug("Calculated %r = %r", full_args, result)
    return format_number(result)

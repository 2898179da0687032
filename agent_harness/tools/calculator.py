"""Arithmetic calculator tool backed by a restricted AST evaluator."""

import ast
import operator
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from agent_harness.tools.base import ToolDefinition

MAX_EXPRESSION_LENGTH = 200
MAX_RESULT_BITS = 1024

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS: dict[type[ast.unaryop], Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


class CalculateInput(BaseModel):
    """Input schema for the calculator tool."""

    expression: str = Field(..., description="Math expression, e.g., '(100*1.08)-50'")


def evaluate_expression(expression: str) -> int | float:
    """Evaluate a plain arithmetic expression.

    Only numeric literals, parentheses and + - * / // % ** are accepted.

    Raises:
        ValueError: If the expression is empty, too long or uses anything else
        ZeroDivisionError: On division by zero
    """
    if not expression.strip():
        raise ValueError("Expression is empty")
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ValueError(f"Expression longer than {MAX_EXPRESSION_LENGTH} characters")

    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression: {e.msg}") from e

    return _evaluate(tree.body)


def _evaluate(node: ast.AST) -> int | float:
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        left = _evaluate(node.left)
        right = _evaluate(node.right)
        _check_result_size(node.op, left, right)
        result = _BINARY_OPERATORS[type(node.op)](left, right)
        if isinstance(result, complex):
            raise ValueError("Result is not a real number")
        return result

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate(node.operand))

    raise ValueError(f"Unsupported syntax: {type(node).__name__}")


def _check_result_size(op: ast.operator, left: int | float, right: int | float) -> None:
    """Reject integer products and powers whose result would exceed MAX_RESULT_BITS.

    Float arithmetic is bounded by the float range and raises OverflowError instead.
    """
    if not (isinstance(left, int) and isinstance(right, int)):
        return

    if isinstance(op, ast.Pow) and right > 0 and abs(left) > 1:
        bits = (abs(left).bit_length() - 1) * right + 1
    elif isinstance(op, ast.Mult):
        bits = abs(left).bit_length() + abs(right).bit_length() - 1
    else:
        return

    if bits > MAX_RESULT_BITS:
        raise ValueError(f"Result too large (more than {MAX_RESULT_BITS} bits)")


def calculate(params: CalculateInput) -> dict[str, Any]:
    try:
        value = evaluate_expression(params.expression)
    except (ValueError, ZeroDivisionError, OverflowError) as e:
        return {"expression": params.expression, "error": str(e) or type(e).__name__}

    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return {"expression": params.expression, "result": str(value)}


def create_calculator_tool() -> ToolDefinition:
    return ToolDefinition(
        name="calculate",
        description="Evaluate a mathematical expression. Supports basic arithmetic.",
        input_schema_class=CalculateInput,
        handler=calculate,
    )

import math
from typing import Any

from .exceptions import ZekkenRuntimeError, ZekkenTypeError
from .models import display
from .types import TypeCanon

ARITHMETIC = {"int", "float", "complex"}
ORDERED = ("<", ">", "<=", ">=")


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def _mismatch(op: str, left: Any, right: Any) -> ZekkenTypeError:
    return ZekkenTypeError(
        f"Unsupported operand types for '{op}': "
        f"{TypeCanon.type_of(left)} and {TypeCanon.type_of(right)}"
    )


def binary_op(op: str, left: Any, right: Any) -> Any:
    """Apply a non-short-circuit binary operator to two evaluated operands."""
    if op == "==":
        return TypeCanon.equal(left, right)
    if op == "!=":
        return not TypeCanon.equal(left, right)

    lt, rt = TypeCanon.type_of(left), TypeCanon.type_of(right)
    if op == "+" and "string" in (lt, rt):
        return display(left) + display(right)

    if op in ORDERED:
        comparable = (lt in TypeCanon.NUMERIC and rt in TypeCanon.NUMERIC) or (
            lt == rt == "string"
        )
        if not comparable:
            raise _mismatch(op, left, right)
        if op == "<":
            return left < right
        if op == ">":
            return left > right
        if op == "<=":
            return left <= right
        return left >= right

    if lt not in ARITHMETIC or rt not in ARITHMETIC:
        raise _mismatch(op, left, right)
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        if right == 0:
            raise ZekkenRuntimeError("Division by zero")
        if lt == rt == "int":
            return _trunc_div(left, right)
        return left / right
    if op == "%":
        if "complex" in (lt, rt):
            raise _mismatch(op, left, right)
        if right == 0:
            raise ZekkenRuntimeError("Modulo by zero")
        if lt == rt == "int":
            return left - right * _trunc_div(left, right)
        return math.fmod(left, right)
    raise ZekkenTypeError(f"Unknown operator '{op}'")


def unary_op(op: str, operand: Any) -> Any:
    tag = TypeCanon.type_of(operand)
    if op == "-":
        if tag not in ARITHMETIC:
            raise ZekkenTypeError(f"Operator '-' expects a number, got {tag}")
        return -operand
    if op == "!":
        if tag != "bool":
            raise ZekkenTypeError(f"Operator '!' expects bool, got {tag}")
        return not operand
    raise ZekkenTypeError(f"Unknown operator '{op}'")

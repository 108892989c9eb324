import math
from typing import List, TYPE_CHECKING

from .exceptions import ZekkenRuntimeError, ZekkenTypeError
from .methods import round_half_away
from .types import TypeCanon

if TYPE_CHECKING:
    from .registry import NativeRegistry

Vector = List[float]
Matrix = List[List[float]]


def vector(values: list) -> Vector:
    out = []
    for v in values:
        if not TypeCanon.accepts("number", v):
            raise ZekkenTypeError(
                f"math.vector: elements must be numbers, got {TypeCanon.type_of(v)}"
            )
        out.append(float(v))
    return out


def matrix(rows: list) -> Matrix:
    if not rows:
        raise ZekkenRuntimeError("math.matrix: a matrix needs at least one row")
    result = []
    for row in rows:
        if not isinstance(row, list):
            raise ZekkenTypeError(
                f"math.matrix: rows must be arrays, got {TypeCanon.type_of(row)}"
            )
        result.append(vector(row))
    width = len(result[0])
    if any(len(row) != width for row in result):
        raise ZekkenRuntimeError("math.matrix: rows must all have the same length")
    return result


def dot(a: list, b: list) -> float:
    left, right = vector(a), vector(b)
    if len(left) != len(right):
        raise ZekkenRuntimeError(
            f"math.dot: vectors differ in length ({len(left)} and {len(right)})"
        )
    total = 0.0
    for x, y in zip(left, right):
        total += x * y
    return total


def matmul(a: list, b: list) -> Matrix:
    left, right = matrix(a), matrix(b)
    inner = len(left[0])
    if inner != len(right):
        raise ZekkenRuntimeError(
            f"math.matmul: cannot multiply {len(left)}x{inner} "
            f"by {len(right)}x{len(right[0])}"
        )
    result = []
    for row in left:
        out_row = []
        for j in range(len(right[0])):
            acc = 0.0
            for k in range(inner):
                acc += row[k] * right[k][j]
            out_row.append(acc)
        result.append(out_row)
    return result


def transpose(m: list) -> Matrix:
    rows = matrix(m)
    return [[row[j] for row in rows] for j in range(len(rows[0]))]


def register_into(registry: "NativeRegistry") -> None:
    registry.constant("math", "PI", math.pi)
    registry.constant("math", "E", math.e)
    registry.constant("math", "I", 1j)

    registry.register("math.sqrt", math.sqrt, ("number",), "float")
    registry.register("math.pow", math.pow, ("float", "float"), "float")
    registry.register("math.abs", abs, ("number",), "number")
    registry.register("math.sin", math.sin, ("float",), "float")
    registry.register("math.cos", math.cos, ("float",), "float")
    registry.register("math.tan", math.tan, ("float",), "float")
    registry.register("math.floor", math.floor, ("number",), "int")
    registry.register("math.ceil", math.ceil, ("number",), "int")
    registry.register("math.round", round_half_away, ("number",), "int")
    registry.register("math.min", min, ("number", "number"), "number")
    registry.register("math.max", max, ("number", "number"), "number")

    registry.register("math.vector", vector, ("arr",), "arr")
    registry.register("math.matrix", matrix, ("arr",), "arr")
    registry.register("math.dot", dot, ("arr", "arr"), "float")
    registry.register("math.matmul", matmul, ("arr", "arr"), "arr")
    registry.register("math.transpose", transpose, ("arr",), "arr")

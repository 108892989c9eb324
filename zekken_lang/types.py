from typing import Any, List, Sequence

from lark import Tree

from .exceptions import ZekkenTypeError
from .models import Function, NativeFunction


class TypeCanon:
    NUMERIC = {"int", "float"}
    ANNOTATIONS = {"int", "float", "string", "bool", "arr", "obj", "fn", "any"}

    @classmethod
    def type_of(cls, value: Any) -> str:
        if isinstance(value, bool):
            return "bool"
        if isinstance(value, int):
            return "int"
        if isinstance(value, float):
            return "float"
        if isinstance(value, complex):
            return "complex"
        if isinstance(value, str):
            return "string"
        if isinstance(value, list):
            return "arr"
        if isinstance(value, dict):
            return "obj"
        if isinstance(value, (Function, NativeFunction)):
            return "fn"
        if value is None:
            return "null"
        return "unknown"

    @classmethod
    def are_compatible(cls, declared: str, actual: str) -> bool:
        if declared == "any" or declared == actual:
            return True
        if declared == "float" and actual == "int":
            return True
        return False

    @classmethod
    def coerce(cls, declared: str, value: Any) -> Any:
        """Widen ``value`` to the storage form ``declared`` asks for."""
        if declared == "float" and cls.type_of(value) == "int":
            return float(value)
        return value

    @classmethod
    def implied_by(cls, node: Any) -> str:
        """Guess the annotation an initializer's syntactic form implies."""
        if not isinstance(node, Tree):
            return "any"
        kind = node.data
        if kind == "literal":
            return {
                "int": "int",
                "float": "float",
                "string": "string",
                "bool": "bool",
            }.get(node.children[0], "any")
        if kind == "array":
            return "arr"
        if kind == "object":
            return "obj"
        if kind == "lambda_expr":
            return "fn"
        if kind == "unary":
            if node.children[0] == "!":
                return "bool"
            return cls.implied_by(node.children[1])
        if kind == "binary":
            op = node.children[0]
            if op in ("==", "!=", "<", ">", "<=", ">=", "&&", "||"):
                return "bool"
            left = cls.implied_by(node.children[1])
            right = cls.implied_by(node.children[2])
            if op == "+" and "string" in (left, right):
                return "string"
            if left in cls.NUMERIC and right in cls.NUMERIC:
                return "float" if "float" in (left, right) else "int"
        return "any"

    @classmethod
    def accepts(cls, param: str, value: Any) -> bool:
        actual = cls.type_of(value)
        if param == "number":
            return actual in cls.NUMERIC
        return cls.are_compatible(param, actual)

    @classmethod
    def check_args(
        cls, label: str, params: Sequence[str], args: Sequence[Any]
    ) -> List[Any]:
        """Validate a call against a fixed signature and return coerced args."""
        if len(args) != len(params):
            plural = "" if len(params) == 1 else "s"
            raise ZekkenTypeError(
                f"{label} expects {len(params)} argument{plural}, got {len(args)}"
            )
        checked = []
        for i, (param, arg) in enumerate(zip(params, args), start=1):
            if not cls.accepts(param, arg):
                raise ZekkenTypeError(
                    f"{label}: argument {i} must be {param}, got {cls.type_of(arg)}"
                )
            checked.append(cls.coerce(param, arg))
        return checked

    @classmethod
    def equal(cls, left: Any, right: Any) -> bool:
        """Structural equality; int and float compare by value."""
        lt, rt = cls.type_of(left), cls.type_of(right)
        if lt != rt:
            numeric = cls.NUMERIC | {"complex"}
            return lt in numeric and rt in numeric and left == right
        if lt == "arr":
            return len(left) == len(right) and all(
                cls.equal(a, b) for a, b in zip(left, right)
            )
        if lt == "obj":
            return left.keys() == right.keys() and all(
                cls.equal(v, right[k]) for k, v in left.items()
            )
        if isinstance(left, Function):
            return left is right
        return left == right

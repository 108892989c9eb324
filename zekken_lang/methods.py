"""Built-in methods, dispatched on the receiver's type tag.

Every method takes the receiver first and then the call's arguments, which
are checked against ``params`` before the method body runs.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from .exceptions import ZekkenReferenceError, ZekkenRuntimeError
from .models import display
from .types import TypeCanon


@dataclass(frozen=True)
class Method:
    func: Callable[..., Any]
    params: Tuple[str, ...] = ()


def round_half_away(x: float) -> int:
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ZekkenRuntimeError(f"Cannot convert \"{text}\" to int") from None


def _to_float(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        raise ZekkenRuntimeError(f"Cannot convert \"{text}\" to float") from None


def _split(text: str, sep: str) -> List[str]:
    if sep == "":
        return list(text)
    return text.split(sep)


def _push(items: list, value: Any) -> int:
    items.append(value)
    return len(items)


def _pop(items: list) -> Any:
    if not items:
        raise ZekkenRuntimeError("Cannot pop from an empty array")
    return items.pop()


def _index_of(items: list, value: Any) -> int:
    for i, item in enumerate(items):
        if TypeCanon.equal(item, value):
            return i
    return -1


def _remove(obj: dict, key: str) -> Any:
    if key not in obj:
        raise ZekkenRuntimeError(f"Key '{key}' not found")
    return obj.pop(key)


METHODS: Dict[str, Dict[str, Method]] = {
    "string": {
        "length": Method(len),
        "toUpper": Method(str.upper),
        "toLower": Method(str.lower),
        "trim": Method(str.strip),
        "split": Method(_split, ("string",)),
        "contains": Method(lambda s, sub: sub in s, ("string",)),
        "replace": Method(str.replace, ("string", "string")),
        "startsWith": Method(str.startswith, ("string",)),
        "endsWith": Method(str.endswith, ("string",)),
        "toInt": Method(_to_int),
        "toFloat": Method(_to_float),
    },
    "arr": {
        "length": Method(len),
        "push": Method(_push, ("any",)),
        "pop": Method(_pop),
        "join": Method(lambda items, sep: sep.join(display(v) for v in items), ("string",)),
        "first": Method(lambda items: items[0] if items else None),
        "last": Method(lambda items: items[-1] if items else None),
        "contains": Method(lambda items, v: _index_of(items, v) >= 0, ("any",)),
        "reverse": Method(lambda items: items[::-1]),
        "indexOf": Method(_index_of, ("any",)),
    },
    "obj": {
        "keys": Method(lambda obj: list(obj.keys())),
        "values": Method(lambda obj: list(obj.values())),
        "entries": Method(lambda obj: [[k, v] for k, v in obj.items()]),
        "has": Method(lambda obj, key: key in obj, ("string",)),
        "length": Method(len),
        "remove": Method(_remove, ("string",)),
    },
    "int": {
        "round": Method(lambda n: n),
        "floor": Method(lambda n: n),
        "ceil": Method(lambda n: n),
        "isEven": Method(lambda n: n % 2 == 0),
        "isOdd": Method(lambda n: n % 2 != 0),
        "abs": Method(abs),
        "toString": Method(display),
        "toFloat": Method(float),
    },
    "float": {
        "round": Method(round_half_away),
        "floor": Method(math.floor),
        "ceil": Method(math.ceil),
        "isEven": Method(lambda x: x % 2 == 0),
        "abs": Method(abs),
        "toString": Method(display),
        "toInt": Method(int),
    },
    "bool": {
        "toString": Method(display),
    },
}


def has_method(receiver: Any, name: str) -> bool:
    return name in METHODS.get(TypeCanon.type_of(receiver), {})


MUTATING = {("arr", "push"), ("arr", "pop"), ("obj", "remove")}


def is_mutating(receiver: Any, name: str) -> bool:
    return (TypeCanon.type_of(receiver), name) in MUTATING


def call_method(receiver: Any, name: str, args: List[Any]) -> Any:
    tag = TypeCanon.type_of(receiver)
    method = METHODS.get(tag, {}).get(name)
    if method is None:
        raise ZekkenReferenceError(f"{tag} has no method '{name}'")
    checked = TypeCanon.check_args(f"{tag}.{name}", method.params, args)
    try:
        return method.func(receiver, *checked)
    except (OverflowError, ValueError) as e:
        raise ZekkenRuntimeError(f"{tag}.{name} failed: {e}") from None

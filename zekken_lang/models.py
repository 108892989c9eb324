import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, TYPE_CHECKING

from .exceptions import ZekkenRuntimeError

if TYPE_CHECKING:
    from .scope import Environment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Function:
    name: str
    params: List[Tuple[str, str]]
    body: Any
    closure: "Environment" = field(compare=False, repr=False)


@dataclass(frozen=True)
class NativeFunction:
    key: str


@dataclass(frozen=True)
class ReturnValue:
    value: Any


class BreakSignal:
    pass


class ContinueSignal:
    pass


BREAK = BreakSignal()
CONTINUE = ContinueSignal()

SIGNALS = (ReturnValue, BreakSignal, ContinueSignal)


@dataclass
class ZekkenConfig:
    base_path: str = field(default_factory=os.getcwd)
    filename: str = "<main>"
    color: str = "auto"
    max_recursion: int = 1000

    @classmethod
    def from_env(cls, **overrides: Any) -> "ZekkenConfig":
        color = os.environ.get("ZEKKEN_COLOR", "auto")
        if os.environ.get("NO_COLOR"):
            color = "never"
        config = cls(color=color, max_recursion=_env_limit("ZEKKEN_MAX_RECURSION", 1000))
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        return config


def _env_limit(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value < 1:
        logger.warning("ignoring %s=%r: expected a positive integer", name, raw)
        return default
    return value


def detach(value: Any) -> Any:
    """Copy Arrays and Objects all the way down; other values are immutable."""
    try:
        return _copy(value)
    except RecursionError:
        raise ZekkenRuntimeError("Value is nested too deeply to copy") from None


def _copy(value: Any) -> Any:
    if isinstance(value, list):
        return [_copy(v) for v in value]
    if isinstance(value, dict):
        return {k: _copy(v) for k, v in value.items()}
    return value


def display(value: Any, nested: bool = False) -> str:
    """Render a runtime value the way ``@println`` shows it."""
    try:
        return _render(value, nested)
    except RecursionError:
        raise ZekkenRuntimeError("Value is nested too deeply to display") from None


def _render(value: Any, nested: bool) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, complex):
        return f"{_render(value.real, False)} + {_render(value.imag, False)}i"
    if isinstance(value, str):
        return f'"{value}"' if nested else value
    if isinstance(value, list):
        return "[" + ", ".join(_render(v, True) for v in value) + "]"
    if isinstance(value, dict):
        inner = ", ".join(f"{k}: {_render(v, True)}" for k, v in value.items())
        return "{" + inner + "}"
    if isinstance(value, Function):
        return f"<function {value.name}>"
    if isinstance(value, NativeFunction):
        return f"<native function {value.key}>"
    return str(value)

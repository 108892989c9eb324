import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, TYPE_CHECKING

from .exceptions import (
    InternalError,
    ZekkenReferenceError,
    ZekkenRuntimeError,
)
from .models import NativeFunction
from .types import TypeCanon

if TYPE_CHECKING:
    from .interfaces import IOHandler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NativeEntry:
    qualname: str
    func: Callable[..., Any]
    # None means variadic: any number of arguments of any type.
    params: Optional[Tuple[str, ...]]
    returns: str = "any"


class NativeRegistry:
    """Name table for host capabilities.

    Entries are keyed by ``module.name`` or, for builtins, by ``@name``. Every
    call goes through :meth:`invoke`, which checks the signature before the
    host function runs.
    """

    def __init__(self):
        self._entries: Dict[str, NativeEntry] = {}
        self._modules: Dict[str, Dict[str, Any]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _guard(self, key: str) -> None:
        if self._frozen:
            raise InternalError(f"Cannot register '{key}': the registry is frozen")

    def register(
        self,
        qualname: str,
        func: Callable[..., Any],
        params: Optional[Tuple[str, ...]] = (),
        returns: str = "any",
    ) -> NativeFunction:
        self._guard(qualname)
        self._entries[qualname] = NativeEntry(qualname, func, params, returns)
        handle = NativeFunction(qualname)
        if not qualname.startswith("@"):
            module, _, name = qualname.partition(".")
            self._modules.setdefault(module, {})[name] = handle
        return handle

    def constant(self, module: str, name: str, value: Any) -> None:
        self._guard(f"{module}.{name}")
        self._modules.setdefault(module, {})[name] = value

    def freeze(self) -> "NativeRegistry":
        self._frozen = True
        logger.debug(
            "native registry frozen with %d entries across modules %s",
            len(self._entries),
            sorted(self._modules),
        )
        return self

    def has_module(self, name: str) -> bool:
        return name in self._modules

    def module(self, name: str) -> Dict[str, Any]:
        """Return a fresh Object holding the module's entries, in registration order."""
        if name not in self._modules:
            raise ZekkenReferenceError(f"Unknown module '{name}'")
        return dict(self._modules[name])

    def builtin(self, name: str) -> NativeFunction:
        if name not in self._entries:
            raise ZekkenReferenceError(f"Unknown builtin '{name}'")
        return NativeFunction(name)

    def lookup(self, key: str) -> NativeEntry:
        entry = self._entries.get(key)
        if entry is None:
            raise ZekkenReferenceError(f"Unknown native function '{key}'")
        return entry

    def invoke(self, key: str, args: list) -> Any:
        entry = self.lookup(key)
        if entry.params is not None:
            args = TypeCanon.check_args(entry.qualname, entry.params, args)
        try:
            result = entry.func(*args)
        except RecursionError:
            raise ZekkenRuntimeError(f"{entry.qualname} failed: input is nested too deeply") from None
        except (OSError, ValueError, OverflowError) as e:
            raise ZekkenRuntimeError(f"{entry.qualname} failed: {e}") from None
        if not TypeCanon.accepts(entry.returns, result):
            raise InternalError(
                f"{entry.qualname} returned {TypeCanon.type_of(result)}, "
                f"declared {entry.returns}"
            )
        return TypeCanon.coerce(entry.returns, result)

    @classmethod
    def default(cls, base_path: str, io: "IOHandler") -> "NativeRegistry":
        """Build the standard registry: builtins plus math, fs, os and json."""
        from . import mathlib
        from .stdlib import StdLib

        registry = cls()
        mathlib.register_into(registry)
        StdLib(base_path, io).register_into(registry)
        return registry.freeze()

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .exceptions import ZekkenReferenceError, ZekkenTypeError
from .models import detach
from .types import TypeCanon


def check_annotation(name: str, declared: str, value: Any) -> Any:
    actual = TypeCanon.type_of(value)
    if not TypeCanon.are_compatible(declared, actual):
        raise ZekkenTypeError(
            f"Type mismatch for '{name}': expected {declared}, got {actual}"
        )
    return TypeCanon.coerce(declared, value)


@dataclass
class Binding:
    value: Any
    mutable: bool = True
    declared_type: str = "any"


class Environment:
    """One lexical frame. Closures keep a reference to the frame they were
    created in, and each frame keeps its parent alive.

    Arrays and Objects are copied on the way in, so two bindings never share
    one container.
    """

    def __init__(self, parent: Optional["Environment"] = None):
        self.parent = parent
        self.bindings: Dict[str, Binding] = {}

    def child(self) -> "Environment":
        return Environment(self)

    def declare(
        self, name: str, value: Any, mutable: bool = True, declared_type: str = "any"
    ) -> None:
        self.bindings[name] = Binding(detach(value), mutable, declared_type)

    def resolve(self, name: str) -> Optional[Binding]:
        env: Optional[Environment] = self
        while env is not None:
            binding = env.bindings.get(name)
            if binding is not None:
                return binding
            env = env.parent
        return None

    def assign(self, name: str, value: Any) -> Binding:
        binding = self.resolve(name)
        if binding is None:
            raise ZekkenReferenceError(f"Cannot assign to undeclared variable '{name}'")
        if not binding.mutable:
            raise ZekkenTypeError(f"Cannot reassign constant '{name}'")
        binding.value = check_annotation(name, binding.declared_type, detach(value))
        return binding


import logging
import os
from typing import Any, Dict, List, TYPE_CHECKING

from .exceptions import CATCHABLE, ZekkenRuntimeError
from .parser import parse_source

if TYPE_CHECKING:
    from .interpreter import ZekkenInterpreter

logger = logging.getLogger(__name__)


class Module:
    def __init__(self, path: str, exports: Dict[str, Any]):
        self.path = path
        self.exports = exports

    def __getitem__(self, key: str) -> Any:
        return self.exports[key]

    def __contains__(self, key: str) -> bool:
        return key in self.exports


class ModuleManager:
    """Loads included source files once per run and detects include cycles."""

    def __init__(self, root_path: str):
        self.root_path = os.path.abspath(root_path)
        self._modules: Dict[str, Module] = {}
        self._loading: List[str] = [self.root_path]

    def resolve(self, requestor_path: str, rel_path: str) -> str:
        base_dir = os.path.dirname(requestor_path)
        return os.path.abspath(os.path.join(base_dir, rel_path))

    def load_module(
        self, requestor_path: str, rel_path: str, host: "ZekkenInterpreter"
    ) -> Module:
        abs_path = self.resolve(requestor_path, rel_path)

        if abs_path in self._modules:
            return self._modules[abs_path]
        if abs_path in self._loading:
            start = self._loading.index(abs_path)
            chain = [os.path.basename(p) for p in self._loading[start:]]
            chain.append(os.path.basename(abs_path))
            raise ZekkenRuntimeError(f"Circular include: {' -> '.join(chain)}")
        if not os.path.isfile(abs_path):
            raise ZekkenRuntimeError(f"Cannot include '{rel_path}': file not found")

        logger.debug("loading %s (requested by %s)", abs_path, requestor_path)
        with open(abs_path, "r", encoding="utf-8") as f:
            source = f.read()
        tree, errors = parse_source(source)
        if errors:
            first = errors[0]
            raise ZekkenRuntimeError(
                f"Cannot include '{rel_path}': {first.message} "
                f"(line {first.line}, column {first.column})"
            )

        self._loading.append(abs_path)
        try:
            child = host.spawn(abs_path)
            child.visit(tree)
            module = Module(abs_path, dict(child.exported))
        except CATCHABLE as err:
            # Re-raised unpositioned so it lands on the include statement.
            where = os.path.basename(abs_path)
            if err.line is not None:
                where += f", line {err.line}, column {err.column}"
            raise type(err)(f"{err.message} (in {where})", hint=err.hint) from err
        finally:
            self._loading.pop()
        self._modules[abs_path] = module
        logger.debug("loaded %s exporting %s", abs_path, list(module.exports))
        return module

"""Embedding entry points: run a source text and collect output and diagnostics."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .diagnostics import Diagnostic
from .exceptions import InternalError, ProgramExit, ZekkenError
from .interfaces import BufferedIO, IOHandler
from .interpreter import ZekkenInterpreter
from .models import ZekkenConfig
from .parser import parse_source
from .registry import NativeRegistry

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    output: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    value: Any = None
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        return not self.diagnostics


class Session:
    """An interpreter whose globals persist across :meth:`feed` calls (REPL)."""

    def __init__(
        self,
        config: Optional[ZekkenConfig] = None,
        registry: Optional[NativeRegistry] = None,
        io: Optional[IOHandler] = None,
    ):
        self.config = config if config is not None else ZekkenConfig()
        self.io = io if io is not None else BufferedIO()
        self.registry = (
            registry
            if registry is not None
            else NativeRegistry.default(self.config.base_path, self.io)
        )
        self.interpreter = ZekkenInterpreter(self.registry, self.io, self.config)

    def check(self, source: str) -> List[Diagnostic]:
        _, errors = parse_source(source)
        return [Diagnostic.from_error(e) for e in errors]

    def feed(self, source: str) -> RunResult:
        result = RunResult()
        start = len(getattr(self.io, "lines", []))

        tree, errors = parse_source(source)
        if errors:
            result.diagnostics = [Diagnostic.from_error(e) for e in errors]
            result.exit_code = 1
            return result

        try:
            result.value = self.interpreter.visit(tree)
        except ProgramExit as exit_:
            result.exit_code = exit_.code
        except InternalError as err:
            logger.error("internal error: %s", err)
            result.diagnostics.append(Diagnostic.from_error(err))
        except ZekkenError as err:
            result.diagnostics.append(Diagnostic.from_error(err))
        except RecursionError:
            result.diagnostics.append(Diagnostic("runtime", "Host recursion limit reached"))
        except Exception as e:
            logger.exception("evaluator crashed")
            result.diagnostics.append(
                Diagnostic("internal", f"{type(e).__name__}: {e}")
            )
        finally:
            self.interpreter.env = self.interpreter.globals

        if result.diagnostics and result.exit_code == 0:
            result.exit_code = 1
        result.output = list(getattr(self.io, "lines", [])[start:])
        return result


def run(
    source: str,
    *,
    config: Optional[ZekkenConfig] = None,
    registry: Optional[NativeRegistry] = None,
    io: Optional[IOHandler] = None,
) -> RunResult:
    """Lex, parse and evaluate ``source`` in a fresh session."""
    return Session(config=config, registry=registry, io=io).feed(source)

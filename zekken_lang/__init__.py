from .grammar import ZEKKEN_LEXICON, KEYWORDS, TYPE_NAMES
from .exceptions import (
    ZekkenError,
    LexError,
    ZekkenSyntaxError,
    ZekkenReferenceError,
    ZekkenTypeError,
    ZekkenRuntimeError,
    InternalError,
    ProgramExit,
)
from .interfaces import IOHandler, BufferedIO, ConsoleIO
from .models import (
    Function,
    NativeFunction,
    ReturnValue,
    BreakSignal,
    ContinueSignal,
    ZekkenConfig,
    display,
)
from .lexer import scan
from .parser import Parser, parse, parse_source, SYNC_KEYWORDS
from .scope import Environment, Binding
from .types import TypeCanon
from .registry import NativeEntry, NativeRegistry
from .modules import Module, ModuleManager
from .interpreter import ZekkenInterpreter
from .diagnostics import Diagnostic, render_diagnostics, supports_color
from .runtime import RunResult, Session, run

__version__ = "0.1.0"

__all__ = [
    "ZEKKEN_LEXICON",
    "KEYWORDS",
    "TYPE_NAMES",
    "ZekkenError",
    "LexError",
    "ZekkenSyntaxError",
    "ZekkenReferenceError",
    "ZekkenTypeError",
    "ZekkenRuntimeError",
    "InternalError",
    "ProgramExit",
    "IOHandler",
    "BufferedIO",
    "ConsoleIO",
    "Function",
    "NativeFunction",
    "ReturnValue",
    "BreakSignal",
    "ContinueSignal",
    "ZekkenConfig",
    "display",
    "scan",
    "Parser",
    "parse",
    "parse_source",
    "SYNC_KEYWORDS",
    "Environment",
    "Binding",
    "TypeCanon",
    "NativeEntry",
    "NativeRegistry",
    "Module",
    "ModuleManager",
    "ZekkenInterpreter",
    "Diagnostic",
    "render_diagnostics",
    "supports_color",
    "RunResult",
    "Session",
    "run",
]

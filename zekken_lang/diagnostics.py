import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, TextIO, Tuple

from .exceptions import ZekkenError
from .grammar import TYPE_NAMES
from .lexer import highlight_tokens

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"

KIND_LABELS = {
    "lex": "Lex Error",
    "syntax": "Syntax Error",
    "reference": "Reference Error",
    "type": "Type Error",
    "runtime": "Runtime Error",
    "internal": "Internal Error",
}

KIND_COLORS = {
    "lex": "\033[31m",
    "syntax": "\033[31m",
    "reference": "\033[35m",
    "type": "\033[33m",
    "runtime": "\033[91m",
    "internal": "\033[41;97m",
}

CONTROL_KEYWORDS = frozenset(
    {"if", "else", "for", "in", "while", "try", "catch", "return", "break", "continue"}
)

CATEGORY_COLORS = {
    "comment": "\033[90m",
    "string": "\033[32m",
    "builtin": "\033[33m",
    "keyword-control": "\033[35m",
    "keyword": "\033[34m",
    "type": "\033[36m",
    "number": "\033[93m",
    "boolean": "\033[93m",
    "operator": "\033[37m",
}


def classify(token_type: str, text: str) -> str:
    """Map a lexer token to a highlighting category."""
    if token_type in ("LINE_COMMENT", "BLOCK_COMMENT", "UNTERMINATED_COMMENT"):
        return "comment"
    if token_type in ("STRING", "UNTERMINATED_STRING"):
        return "string"
    if token_type == "BUILTIN":
        return "builtin"
    if token_type == "KEYWORD":
        if text in TYPE_NAMES:
            return "type"
        if text in CONTROL_KEYWORDS:
            return "keyword-control"
        return "keyword"
    if token_type in ("INT", "FLOAT"):
        return "number"
    if token_type in ("BOOL", "NULL"):
        return "boolean"
    if token_type in ("OPERATOR", "PUNCTUATION"):
        return "operator"
    if token_type == "IDENTIFIER":
        return "variable"
    return "text"


def highlight_line(text: str) -> List[Tuple[str, str]]:
    return [(classify(kind, chunk), chunk) for kind, chunk in highlight_tokens(text)]


def _paint(text: str) -> str:
    out = []
    for category, chunk in highlight_line(text):
        color = CATEGORY_COLORS.get(category)
        out.append(f"{color}{chunk}{RESET}" if color else chunk)
    return "".join(out)


def supports_color(mode: str = "auto", stream: Optional[TextIO] = None) -> bool:
    if mode == "always":
        return True
    if mode == "never" or os.environ.get("NO_COLOR"):
        return False
    return bool(stream is not None and hasattr(stream, "isatty") and stream.isatty())


@dataclass(frozen=True)
class Diagnostic:
    kind: str
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    hint: Optional[str] = None

    @classmethod
    def from_error(cls, err: ZekkenError) -> "Diagnostic":
        return cls(err.kind, err.message, err.line, err.column, err.hint)

    @property
    def label(self) -> str:
        return KIND_LABELS.get(self.kind, "Error")

    def format(
        self, lines: Sequence[str], color: bool = False, filename: str = "<main>"
    ) -> str:
        if color:
            kind_color, bold, dim, reset = KIND_COLORS.get(self.kind, ""), BOLD, DIM, RESET
        else:
            kind_color = bold = dim = reset = ""

        out = [f"{bold}{kind_color}{self.label}{reset}{bold}: {self.message}{reset}"]
        out.append(f"{dim}  ┌─{reset} {filename}")
        if self.line is not None:
            out.append(f"{dim}  ├─[{reset} Line {self.line}, Column {self.column} {dim}]{reset}")
            if 1 <= self.line <= len(lines):
                code = lines[self.line - 1]
                shown = _paint(code) if color else code
                pad = "".join(
                    "\t" if ch == "\t" else " " for ch in code[: max((self.column or 1) - 1, 0)]
                )
                out.append(f"{dim}  │{reset} {shown}")
                out.append(f"{dim}  │{reset} {pad}{bold}{kind_color}^{reset}")
        if self.hint:
            out.append(f"{dim}  ={reset} {self.hint}")
        return "\n".join(out)


def sort_key(diag: Diagnostic) -> Tuple[int, int]:
    return (diag.line or 0, diag.column or 0)


def render_diagnostics(
    diagnostics: Iterable[Diagnostic],
    source: str,
    color: bool = False,
    filename: str = "<main>",
) -> str:
    """Render every diagnostic against ``source``, in source order."""
    lines = source.splitlines()
    ordered = sorted(diagnostics, key=sort_key)
    return "\n\n".join(d.format(lines, color=color, filename=filename) for d in ordered)

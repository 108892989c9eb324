from typing import Optional


class ZekkenError(Exception):
    """Base exception for the runtime."""

    kind = "runtime"

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.hint = hint

    def locate(self, line: Optional[int], column: Optional[int]) -> "ZekkenError":
        if self.line is None and line is not None:
            self.line = line
            self.column = column
        return self

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


class LexError(ZekkenError):
    """Raised when the source contains a malformed token."""

    kind = "lex"


class ZekkenSyntaxError(ZekkenError):
    """A recoverable grammar error; the parser collects these."""

    kind = "syntax"


class ZekkenReferenceError(ZekkenError):
    kind = "reference"


class ZekkenTypeError(ZekkenError):
    kind = "type"


class ZekkenRuntimeError(ZekkenError):
    kind = "runtime"


class InternalError(ZekkenError):
    """An evaluator invariant was violated. Always a defect."""

    kind = "internal"


# Errors a program may intercept with try/catch.
CATCHABLE = (ZekkenReferenceError, ZekkenTypeError, ZekkenRuntimeError)


class ProgramExit(Exception):
    """Raised by os.exit to stop the running program."""

    def __init__(self, code: int):
        super().__init__(f"exit({code})")
        self.code = code

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional


class IOHandler(ABC):
    """Abstracts I/O so interpreters can be hosted in different frontends."""

    @abstractmethod
    def write_line(self, text: str) -> None: ...

    @abstractmethod
    def read_input(self, prompt: str) -> str: ...


class BufferedIO(IOHandler):
    """Collects printed lines in memory and serves input from a fixed list."""

    def __init__(self, inputs: Optional[Iterable[str]] = None):
        self.lines: List[str] = []
        self._inputs = list(inputs or [])

    def write_line(self, text: str) -> None:
        self.lines.append(text)

    def read_input(self, prompt: str) -> str:
        return self._inputs.pop(0) if self._inputs else ""


class ConsoleIO(BufferedIO):
    """Console-backed I/O used by the CLI and REPL.

    Lines are echoed as they are produced and also recorded, so a run driven
    from the console still returns its full output.
    """

    def write_line(self, text: str) -> None:
        super().write_line(text)
        print(text, flush=True)

    def read_input(self, prompt: str) -> str:
        try:
            return input(prompt)
        except EOFError:
            return ""

import json
import os
import platform
import shutil
import time
from typing import Any, List, TYPE_CHECKING

from .exceptions import ProgramExit, ZekkenRuntimeError
from .interfaces import IOHandler
from .models import display

if TYPE_CHECKING:
    from .registry import NativeRegistry


class StdLib:
    """Host side of the ``fs``, ``os`` and ``json`` modules and the ``@`` builtins."""

    def __init__(self, base_path: str, io: IOHandler):
        self.base_path = os.path.abspath(base_path)
        self.io = io

    def register_into(self, registry: "NativeRegistry") -> None:
        registry.register("@println", self._println, None, "null")
        registry.register("@input", self.io.read_input, ("string",), "string")
        registry.register("@parse_json", self._json_parse, ("string",))

        registry.register("fs.read", self._read, ("string",), "string")
        registry.register("fs.write", self._write, ("string", "string"), "null")
        registry.register("fs.append", self._append, ("string", "string"), "null")
        registry.register("fs.list", self._list, ("string",), "arr")
        registry.register("fs.exists", lambda p: os.path.exists(self._path(p)), ("string",), "bool")
        registry.register("fs.isFile", lambda p: os.path.isfile(self._path(p)), ("string",), "bool")
        registry.register("fs.isDir", lambda p: os.path.isdir(self._path(p)), ("string",), "bool")
        registry.register("fs.createDir", self._create_dir, ("string",), "null")
        registry.register("fs.removeDir", self._remove_dir, ("string",), "null")
        registry.register("fs.removeFile", self._remove_file, ("string",), "null")

        registry.register("os.cwd", os.getcwd, (), "string")
        registry.register("os.platform", lambda: platform.system().lower(), (), "string")
        registry.register("os.getEnv", lambda k: os.environ.get(k), ("string",))
        registry.register("os.setEnv", self._set_env, ("string", "string"), "null")
        registry.register("os.removeEnv", self._remove_env, ("string",), "null")
        registry.register("os.exit", self._exit, ("int",), "null")
        registry.register("os.pid", os.getpid, (), "int")
        registry.register("os.sleep", self._sleep, ("int",), "null")

        registry.register("json.parse", self._json_parse, ("string",))
        registry.register("json.stringify", self._json_stringify, ("any",), "string")

    def _path(self, path: str) -> str:
        return os.path.join(self.base_path, path)

    # --- builtins ---

    def _println(self, *values: Any) -> None:
        self.io.write_line(" ".join(display(v) for v in values))

    # --- fs ---

    def _read(self, path: str) -> str:
        target = self._path(path)
        if not os.path.isfile(target):
            raise ZekkenRuntimeError(f"File not found: '{path}'")
        with open(target, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, path: str, content: str) -> None:
        with open(self._path(path), "w", encoding="utf-8") as f:
            f.write(content)

    def _append(self, path: str, content: str) -> None:
        with open(self._path(path), "a", encoding="utf-8") as f:
            f.write(content)

    def _list(self, path: str) -> List[str]:
        return sorted(os.listdir(self._path(path)))

    def _create_dir(self, path: str) -> None:
        os.makedirs(self._path(path), exist_ok=True)

    def _remove_dir(self, path: str) -> None:
        shutil.rmtree(self._path(path))

    def _remove_file(self, path: str) -> None:
        os.remove(self._path(path))

    # --- os ---

    @staticmethod
    def _set_env(key: str, value: str) -> None:
        os.environ[key] = value

    @staticmethod
    def _remove_env(key: str) -> None:
        os.environ.pop(key, None)

    @staticmethod
    def _exit(code: int) -> None:
        raise ProgramExit(code)

    @staticmethod
    def _sleep(ms: int) -> None:
        time.sleep(max(ms, 0) / 1000.0)

    # --- json ---

    @staticmethod
    def _json_parse(text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ZekkenRuntimeError(
                f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}"
            ) from None

    @staticmethod
    def _json_stringify(value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, default=display)

"""Zekken entrypoint module exposing the public API and CLI."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from zekken_lang import (
    ConsoleIO,
    RunResult,
    Session,
    ZekkenConfig,
    display,
    render_diagnostics,
    run,
    supports_color,
)

__all__ = ["run", "run_repl", "run_file", "main"]

logger = logging.getLogger("zekken")


def _report(result: RunResult, source: str, config: ZekkenConfig) -> None:
    if not result.diagnostics:
        return
    color = supports_color(config.color, sys.stderr)
    print(
        render_diagnostics(
            result.diagnostics, source, color=color, filename=config.filename
        ),
        file=sys.stderr,
    )


def run_repl(session: Session) -> int:  # pragma: no cover
    print("Zekken interactive shell. Type 'exit' to leave.")
    while True:
        try:
            text = input(">> ").strip()
        except EOFError:
            print()
            return 0
        except KeyboardInterrupt:
            print()
            continue
        if not text:
            continue
        if text in ("exit", "quit"):
            return 0
        result = session.feed(text)
        _report(result, text, session.config)
        if result.value is not None and not result.diagnostics:
            print(f"=> {display(result.value)}")


def run_file(path: str, config: ZekkenConfig, check_only: bool = False) -> int:
    entry_path = os.path.abspath(path)
    config.base_path = os.path.dirname(entry_path)
    config.filename = os.path.basename(entry_path)
    try:
        with open(entry_path, "r", encoding="utf-8") as f:
            source = f.read()
    except OSError as e:
        print(f"zekken: cannot read '{path}': {e.strerror}", file=sys.stderr)
        return 1

    if check_only:
        session = Session(config=config, io=ConsoleIO())
        result = RunResult(diagnostics=session.check(source))
    else:
        result = run(source, config=config, io=ConsoleIO())
    _report(result, source, config)
    if result.diagnostics:
        return 1
    return result.exit_code


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Zekken script interpreter")
    parser.add_argument("script", nargs="?", help="Path to a .zk source file")
    parser.add_argument(
        "--color",
        choices=("auto", "always", "never"),
        default=None,
        help="Colorize diagnostics (default: auto, or $ZEKKEN_COLOR)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        help="Logging verbosity for interpreter internals",
    )
    parser.add_argument(
        "--max-recursion",
        type=int,
        default=None,
        help="Maximum call depth (default: 1000, or $ZEKKEN_MAX_RECURSION)",
    )
    parser.add_argument(
        "--check", action="store_true", help="Only lex and parse the script"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    config = ZekkenConfig.from_env(color=args.color, max_recursion=args.max_recursion)
    logger.debug("configuration: %s", config)

    if not args.script:
        return run_repl(Session(config=config, io=ConsoleIO()))
    return run_file(args.script, config, check_only=args.check)


if __name__ == "__main__":
    sys.exit(main())

"""Helpers for building and inspecting syntax trees.

The parser produces plain ``lark.Tree`` instances so that the evaluator can
dispatch on ``tree.data`` the same way any lark ``Interpreter`` does.  Each
node carries the line and column of the token that started it in ``meta``.
"""

from typing import Any, Optional, Tuple

from lark import Token, Tree


def make(kind: str, at: Any, *children: Any) -> Tree:
    """Build a node positioned at ``at`` (a token or another node)."""
    node = Tree(kind, list(children))
    line, column = position(at)
    if line is not None:
        node.meta.line = line
        node.meta.column = column
        node.meta.empty = False
    return node


def position(node: Any) -> Tuple[Optional[int], Optional[int]]:
    if isinstance(node, Tree) and not node.meta.empty:
        return node.meta.line, node.meta.column
    if isinstance(node, Token):
        return node.line, node.column
    return None, None


def is_builtin_name(name: str) -> bool:
    return name.startswith("@")

import logging
import os
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional

from lark import Tree
from lark.visitors import Interpreter

from .exceptions import (
    CATCHABLE,
    InternalError,
    ZekkenError,
    ZekkenReferenceError,
    ZekkenRuntimeError,
    ZekkenTypeError,
)
from .interfaces import IOHandler
from .lexer import unescape
from .methods import call_method, has_method, is_mutating
from .models import (
    BREAK,
    CONTINUE,
    SIGNALS,
    Function,
    NativeFunction,
    ReturnValue,
    ZekkenConfig,
    detach,
)
from .modules import ModuleManager
from .nodes import is_builtin_name, position
from .operators import binary_op, unary_op
from .registry import NativeRegistry
from .scope import Environment, check_annotation
from .types import TypeCanon

logger = logging.getLogger(__name__)

# Python frames used per level of script recursion, with headroom.
_FRAMES_PER_CALL = 40


class ZekkenInterpreter(Interpreter):
    def __init__(
        self,
        registry: NativeRegistry,
        io_handler: IOHandler,
        config: Optional[ZekkenConfig] = None,
        module_manager: Optional[ModuleManager] = None,
    ):
        self.config = config if config is not None else ZekkenConfig()
        self.registry = registry
        self.io = io_handler
        self.base_path = os.path.abspath(self.config.base_path)
        self._current_file = os.path.join(self.base_path, self.config.filename)
        self.module_manager = (
            module_manager
            if module_manager is not None
            else ModuleManager(self._current_file)
        )

        self.globals = Environment()
        self.env = self.globals
        self.exported: Dict[str, Any] = {}
        self._native_modules: Dict[str, Dict[str, Any]] = {}
        self._depth = 0
        self._loop_depth = 0
        self._max_recursion = self.config.max_recursion

        wanted = self._max_recursion * _FRAMES_PER_CALL + 200
        if sys.getrecursionlimit() < wanted:
            sys.setrecursionlimit(wanted)

    def spawn(self, path: str) -> "ZekkenInterpreter":
        """A fresh interpreter for an included file, sharing this run's host state."""
        config = replace(
            self.config,
            base_path=os.path.dirname(path),
            filename=os.path.basename(path),
        )
        return ZekkenInterpreter(self.registry, self.io, config, self.module_manager)

    def visit(self, tree: Tree) -> Any:
        try:
            return super().visit(tree)
        except ZekkenError as err:
            raise err.locate(*position(tree))

    def __default__(self, tree):
        raise InternalError(f"No evaluation rule for node '{tree.data}'")

    def _execute(self, statements: List[Tree], env: Environment) -> Any:
        previous, self.env = self.env, env
        try:
            result = None
            for stmt in statements:
                result = self.visit(stmt)
                if isinstance(result, SIGNALS):
                    return result
            return result
        finally:
            self.env = previous

    def _condition(self, node: Tree, context: str) -> bool:
        value = self.visit(node)
        if not isinstance(value, bool):
            raise ZekkenTypeError(
                f"{context} condition must be bool, got {TypeCanon.type_of(value)}"
            ).locate(*position(node))
        return value

    # --- Root Statements ---

    def program(self, tree):
        result = self._execute(tree.children, self.globals)
        if isinstance(result, ReturnValue):
            return result.value
        return result

    def var_decl(self, tree):
        name_tok, declared, mutable, init = tree.children
        name = str(name_tok)
        value = self.visit(init)
        if isinstance(value, Function) and value.name == "<lambda>":
            value = replace(value, name=name)
        value = check_annotation(name, declared, value)
        existing = self.env.bindings.get(name)
        if existing is not None and not existing.mutable:
            raise ZekkenTypeError(f"Cannot redeclare constant '{name}'")
        self.env.declare(name, value, mutable, declared)

    def func_decl(self, tree):
        name_tok, params, body = tree.children
        func = Function(str(name_tok), self._params(params), body, self.env)
        self.env.declare(func.name, func, mutable=False, declared_type="fn")

    def expr_stmt(self, tree):
        return self.visit(tree.children[0])

    def use_stmt(self, tree):
        module_tok, names = tree.children
        module = self._native_module(str(module_tok))
        if names is None:
            self.env.declare(str(module_tok), module, mutable=False, declared_type="obj")
            return
        for name_tok in names.children:
            name = str(name_tok)
            if name not in module:
                raise ZekkenReferenceError(
                    f"Module '{module_tok}' has no entry '{name}'"
                ).locate(name_tok.line, name_tok.column)
            value = module[name]
            self.env.declare(name, value, mutable=False, declared_type=TypeCanon.type_of(value))

    def include_stmt(self, tree):
        path_tok, names = tree.children
        rel_path = unescape(str(path_tok))
        module = self.module_manager.load_module(self._current_file, rel_path, self)
        if names is None:
            wanted = list(module.exports)
        else:
            wanted = [str(n) for n in names.children]
        for name in wanted:
            if name not in module:
                raise ZekkenReferenceError(f"'{name}' is not exported by '{rel_path}'")
            value = module[name]
            self.env.declare(name, value, mutable=False, declared_type=TypeCanon.type_of(value))

    def export_stmt(self, tree):
        for name_tok in tree.children[0].children:
            name = str(name_tok)
            binding = self.env.resolve(name)
            if binding is None:
                raise ZekkenReferenceError(
                    f"Cannot export undefined value '{name}'"
                ).locate(name_tok.line, name_tok.column)
            self.exported[name] = detach(binding.value)

    # --- Flow Control ---

    def block(self, tree):
        return self._execute(tree.children, self.env.child())

    def if_chain(self, tree):
        *branches, else_block = tree.children
        for branch in branches:
            cond, body = branch.children
            if self._condition(cond, "if"):
                return self.visit(body)
        if else_block is not None:
            return self.visit(else_block)
        return None

    def while_loop(self, tree):
        cond, body = tree.children
        self._loop_depth += 1
        try:
            while self._condition(cond, "while"):
                result = self.visit(body)
                if isinstance(result, ReturnValue):
                    return result
                if result is BREAK:
                    break
        finally:
            self._loop_depth -= 1
        return None

    def for_in(self, tree):
        binders, iterable_node, body = tree.children
        names = [str(b) for b in binders.children]
        iterable = self.visit(iterable_node)
        if isinstance(iterable, dict):
            pairs = list(iterable.items())
        elif isinstance(iterable, (list, str)):
            pairs = list(enumerate(iterable))
        else:
            raise ZekkenTypeError(
                f"Cannot iterate over {TypeCanon.type_of(iterable)}"
            ).locate(*position(iterable_node))

        self._loop_depth += 1
        try:
            for key, value in pairs:
                frame = self.env.child()
                if len(names) == 1:
                    frame.declare(names[0], value)
                else:
                    frame.declare(names[0], key)
                    frame.declare(names[1], value)
                result = self._execute(body.children, frame)
                if isinstance(result, ReturnValue):
                    return result
                if result is BREAK:
                    break
        finally:
            self._loop_depth -= 1
        return None

    def try_catch(self, tree):
        body, param, handler = tree.children
        try:
            return self.visit(body)
        except CATCHABLE as err:
            logger.debug("caught %s error: %s", err.kind, err)
            frame = self.env.child()
            frame.declare(str(param), err.message, declared_type="string")
            return self._execute(handler.children, frame)

    def return_stmt(self, tree):
        expr = tree.children[0]
        return ReturnValue(self.visit(expr) if expr is not None else None)

    def break_stmt(self, tree):
        if self._loop_depth == 0:
            raise ZekkenRuntimeError("'break' used outside of a loop")
        return BREAK

    def continue_stmt(self, tree):
        if self._loop_depth == 0:
            raise ZekkenRuntimeError("'continue' used outside of a loop")
        return CONTINUE

    # --- Functions ---

    @staticmethod
    def _params(node: Tree) -> List:
        return [(str(p.children[0]), p.children[1]) for p in node.children]

    def lambda_expr(self, tree):
        params, body = tree.children
        return Function("<lambda>", self._params(params), body, self.env)

    def call(self, tree):
        callee, args_node = tree.children
        if callee.data == "member":
            receiver = self.visit(callee.children[0])
            name = str(callee.children[1])
            args = [self.visit(a) for a in args_node.children]
            if isinstance(receiver, dict) and name in receiver:
                return self.call_value(receiver[name], args)
            if is_mutating(receiver, name):
                self._check_mutable_root(callee.children[0])
            return call_method(receiver, name, [detach(a) for a in args])
        func = self.visit(callee)
        args = [self.visit(a) for a in args_node.children]
        return self.call_value(func, args)

    def call_value(self, func: Any, args: List[Any]) -> Any:
        if isinstance(func, Function):
            return self._invoke_function(func, args)
        if isinstance(func, NativeFunction):
            return self.registry.invoke(func.key, args)
        raise ZekkenTypeError(f"A value of type {TypeCanon.type_of(func)} is not callable")

    def _invoke_function(self, func: Function, args: List[Any]) -> Any:
        if len(args) != len(func.params):
            raise ZekkenRuntimeError(
                f"{func.name} expects {len(func.params)} argument(s), got {len(args)}"
            )
        if self._depth >= self._max_recursion:
            raise ZekkenRuntimeError(
                f"Maximum recursion depth exceeded ({self._max_recursion})"
            )
        frame = func.closure.child()
        for (name, declared), arg in zip(func.params, args):
            if not TypeCanon.accepts(declared, arg):
                raise ZekkenTypeError(
                    f"Argument '{name}' of {func.name} must be {declared}, "
                    f"got {TypeCanon.type_of(arg)}"
                )
            frame.declare(name, TypeCanon.coerce(declared, arg), True, declared)

        self._depth += 1
        saved_loops, self._loop_depth = self._loop_depth, 0
        try:
            result = self._execute(func.body.children, frame)
        except RecursionError:
            raise ZekkenRuntimeError("Host recursion limit reached") from None
        finally:
            self._depth -= 1
            self._loop_depth = saved_loops
        if isinstance(result, ReturnValue):
            return result.value
        return None

    # --- Data Access & Mutation ---

    def _native_module(self, name: str) -> Dict[str, Any]:
        if name not in self._native_modules:
            self._native_modules[name] = self.registry.module(name)
        return self._native_modules[name]

    def identifier(self, tree):
        name = tree.children[0]
        binding = self.env.resolve(name)
        if binding is not None:
            return binding.value
        if is_builtin_name(name):
            return self.registry.builtin(name)
        if self.registry.has_module(name):
            return self._native_module(name)
        raise ZekkenReferenceError(f"'{name}' is not defined")

    def member(self, tree):
        obj = self.visit(tree.children[0])
        name = str(tree.children[1])
        if isinstance(obj, dict):
            if name not in obj:
                raise ZekkenRuntimeError(f"Key '{name}' not found")
            return obj[name]
        if has_method(obj, name):
            raise ZekkenTypeError(
                f"'{name}' is a method; call it with '{name} => ||'"
            )
        raise ZekkenReferenceError(
            f"{TypeCanon.type_of(obj)} has no member '{name}'"
        )

    def _check_index(self, container: Any, key: Any) -> Any:
        tag = TypeCanon.type_of(container)
        if tag in ("arr", "string"):
            if TypeCanon.type_of(key) != "int":
                raise ZekkenTypeError(
                    f"{tag} index must be int, got {TypeCanon.type_of(key)}"
                )
            if not 0 <= key < len(container):
                raise ZekkenRuntimeError(
                    f"Index {key} out of bounds for {tag} of length {len(container)}"
                )
            return key
        if tag == "obj":
            if not isinstance(key, str):
                raise ZekkenTypeError(f"obj key must be string, got {TypeCanon.type_of(key)}")
            return key
        raise ZekkenTypeError(f"Cannot index into {tag}")

    def index(self, tree):
        container = self.visit(tree.children[0])
        key = self._check_index(container, self.visit(tree.children[1]))
        if isinstance(container, dict) and key not in container:
            raise ZekkenRuntimeError(f"Key '{key}' not found")
        return container[key]

    def _check_mutable_root(self, node: Tree) -> None:
        """Refuse in-place changes to a container reached from a constant."""
        while node.data in ("member", "index"):
            node = node.children[0]
        if node.data != "identifier":
            return
        name = node.children[0]
        binding = self.env.resolve(name)
        if binding is None and self.registry.has_module(name):
            raise ZekkenTypeError(f"Cannot modify native module '{name}'")
        if binding is not None and not binding.mutable:
            raise ZekkenTypeError(f"Cannot reassign constant '{name}'")

    def assign(self, tree):
        target, op, value_node = tree.children

        if target.data == "identifier":
            name = target.children[0]
            value = self.visit(value_node)
            if op != "=":
                value = binary_op(op[0], self.visit(target), value)
            return self.env.assign(name, value).value

        self._check_mutable_root(target)
        container = self.visit(target.children[0])
        if target.data == "member":
            if not isinstance(container, dict):
                raise ZekkenTypeError(
                    f"Cannot set a member on {TypeCanon.type_of(container)}"
                )
            key = str(target.children[1])
        else:
            if isinstance(container, str):
                raise ZekkenTypeError("Strings are immutable")
            key = self._check_index(container, self.visit(target.children[1]))

        value = self.visit(value_node)
        if op != "=":
            if isinstance(container, dict) and key not in container:
                raise ZekkenRuntimeError(f"Key '{key}' not found")
            value = binary_op(op[0], container[key], value)
        container[key] = detach(value)
        return value

    # --- Expressions & Atoms ---

    def binary(self, tree):
        op, left_node, right_node = tree.children
        if op in ("&&", "||"):
            left = self._logical_operand(op, left_node)
            if op == "&&" and not left:
                return False
            if op == "||" and left:
                return True
            return self._logical_operand(op, right_node)
        return binary_op(op, self.visit(left_node), self.visit(right_node))

    def _logical_operand(self, op: str, node: Tree) -> bool:
        value = self.visit(node)
        if not isinstance(value, bool):
            raise ZekkenTypeError(
                f"Operator '{op}' expects bool operands, got {TypeCanon.type_of(value)}"
            ).locate(*position(node))
        return value

    def unary(self, tree):
        op, operand = tree.children
        return unary_op(op, self.visit(operand))

    def literal(self, tree):
        return tree.children[1]

    def array(self, tree):
        return [self.visit(c) for c in tree.children]

    def object(self, tree):
        result: Dict[str, Any] = {}
        for pair in tree.children:
            key, value_node = pair.children
            result[key] = self.visit(value_node)
        return result

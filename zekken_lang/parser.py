from typing import List, Optional, Tuple

from lark import Token, Tree

from .exceptions import LexError, ZekkenError, ZekkenSyntaxError
from .grammar import TYPE_NAMES
from .lexer import scan, unescape
from .nodes import make
from .types import TypeCanon

# Statement-start keywords the parser can resume at after an error.
SYNC_KEYWORDS = frozenset(
    {
        "let",
        "const",
        "func",
        "if",
        "for",
        "while",
        "try",
        "return",
        "break",
        "continue",
        "use",
        "include",
        "export",
    }
)

ASSIGN_OPS = ("=", "+=", "-=", "*=", "/=", "%=")

# Binary operators, lowest precedence first.
PRECEDENCE = (
    ("||",),
    ("&&",),
    ("==", "!="),
    ("<", ">", "<=", ">="),
    ("+", "-"),
    ("*", "/", "%"),
)

LITERAL_TYPES = {
    "INT": ("int", int),
    "FLOAT": ("float", float),
    "STRING": ("string", unescape),
    "BOOL": ("bool", lambda s: s == "true"),
    "NULL": ("null", lambda s: None),
}


def describe(tok: Token) -> str:
    if tok.type == "EOF":
        return "end of input"
    return f"'{tok}'"


class Parser:
    """Recursive-descent parser over the token list produced by :func:`scan`.

    Errors do not stop the parse: each one is recorded and the parser skips to
    the next statement boundary, so a single pass reports every problem.
    """

    def __init__(self, tokens: List[Token]):
        if not tokens or tokens[-1].type != "EOF":
            raise ValueError("token stream must end with an EOF token")
        self.tokens = tokens
        self.pos = 0
        self.errors: List[ZekkenSyntaxError] = []

    def parse(self) -> Tuple[Tree, List[ZekkenSyntaxError]]:
        start = self.peek()
        statements = self.statements(until=None)
        return make("program", start, *statements), self.errors

    # --- Token cursor ---

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def previous(self) -> Optional[Token]:
        return self.tokens[self.pos - 1] if self.pos > 0 else None

    def at_end(self) -> bool:
        return self.peek().type == "EOF"

    def advance(self) -> Token:
        tok = self.peek()
        if not self.at_end():
            self.pos += 1
        return tok

    def check(self, type_: str, *values: str) -> bool:
        tok = self.peek()
        if tok.type != type_:
            return False
        return not values or str(tok) in values

    def match(self, type_: str, *values: str) -> Optional[Token]:
        if self.check(type_, *values):
            return self.advance()
        return None

    def expect(self, type_: str, value: Optional[str], message: str) -> Token:
        if value is None:
            tok = self.match(type_)
        else:
            tok = self.match(type_, value)
        if tok is None:
            wanted = f"'{value}'" if value is not None else type_.lower()
            raise self.error(message, expected=wanted)
        return tok

    def error(
        self, message: str, tok: Optional[Token] = None, expected: Optional[str] = None
    ) -> ZekkenSyntaxError:
        tok = tok if tok is not None else self.peek()
        hint = None
        if expected is not None:
            hint = f"Expected {expected}, found {describe(tok)}"
        return ZekkenSyntaxError(message, tok.line, tok.column, hint=hint)

    # --- Recovery ---

    def synchronize(self, start: int) -> None:
        """Skip to the next statement boundary.

        Always consumes at least one token past ``start``; stops after a ``;``,
        before a ``}``, before a statement keyword or at end of input.
        """
        if self.pos == start:
            self.advance()
        while not self.at_end():
            prev = self.previous()
            if prev is not None and prev.type == "PUNCTUATION" and prev == ";":
                return
            if self.check("PUNCTUATION", "}"):
                return
            if self.check("KEYWORD") and str(self.peek()) in SYNC_KEYWORDS:
                return
            self.advance()

    def statements(self, until: Optional[str]) -> List[Tree]:
        body: List[Tree] = []
        while not self.at_end():
            if until is not None and self.check("PUNCTUATION", until):
                break
            if self.match("PUNCTUATION", ";"):
                continue
            start = self.pos
            try:
                body.append(self.statement())
            except ZekkenSyntaxError as err:
                self.errors.append(err)
                self.synchronize(start)
            except RecursionError:
                self.errors.append(self.error("Expression is nested too deeply"))
                self.synchronize(start)
        return body

    # --- Statements ---

    def statement(self) -> Tree:
        tok = self.peek()
        if tok.type == "KEYWORD":
            handler = {
                "let": self.var_decl,
                "const": self.var_decl,
                "func": self.func_decl,
                "if": self.if_chain,
                "for": self.for_in,
                "while": self.while_loop,
                "try": self.try_catch,
                "return": self.return_stmt,
                "break": self.loop_jump,
                "continue": self.loop_jump,
                "use": self.use_stmt,
                "include": self.include_stmt,
                "export": self.export_stmt,
            }.get(str(tok))
            if handler is not None:
                return handler()
        expr = self.expression()
        self.end_statement()
        return make("expr_stmt", expr, expr)

    def end_statement(self) -> None:
        if self.match("PUNCTUATION", ";"):
            return
        if self.check("PUNCTUATION", "}") or self.at_end():
            return
        raise self.error("Expected ';' after statement", expected="';'")

    def block(self) -> Tree:
        lbrace = self.expect("PUNCTUATION", "{", "Expected '{' to open a block")
        body = self.statements(until="}")
        self.expect("PUNCTUATION", "}", "Expected '}' to close the block")
        return make("block", lbrace, *body)

    def type_name(self) -> str:
        tok = self.peek()
        if tok.type == "KEYWORD" and str(tok) in TYPE_NAMES:
            self.advance()
            return str(tok)
        raise self.error(
            f"Unknown type {describe(tok)}",
            expected="one of " + ", ".join(sorted(TYPE_NAMES)),
        )

    def var_decl(self) -> Tree:
        keyword = self.advance()
        mutable = keyword == "let"
        name = self.expect("IDENTIFIER", None, f"Expected a name after '{keyword}'")

        if self.match("OPERATOR", "->"):
            params = self.params()
            body = self.block()
            self.match("PUNCTUATION", ";")
            fn = make("lambda_expr", name, params, body)
            return make("var_decl", keyword, name, "fn", mutable, fn)

        if not self.match("PUNCTUATION", ":"):
            missing_at = self.peek()
            implied = "any"
            if self.match("OPERATOR", "="):
                try:
                    implied = TypeCanon.implied_by(self.expression())
                except ZekkenSyntaxError:
                    pass
            raise ZekkenSyntaxError(
                f"Missing type annotation for '{name}'; the initializer implies '{implied}'",
                missing_at.line,
                missing_at.column,
                hint=f"write '{keyword} {name}: {implied} = ...'",
            )
        declared = self.type_name()
        self.expect("OPERATOR", "=", f"Expected '=' to initialize '{name}'")
        init = self.expression()
        self.end_statement()
        return make("var_decl", keyword, name, declared, mutable, init)

    def params(self) -> Tree:
        start = self.peek()
        params: List[Tree] = []
        if self.match("OPERATOR", "||"):
            return make("params", start)
        self.expect("OPERATOR", "|", "Expected '|' to open the parameter list")
        if self.match("OPERATOR", "|"):
            return make("params", start)
        while True:
            name = self.expect("IDENTIFIER", None, "Expected a parameter name")
            self.expect("PUNCTUATION", ":", f"Expected ':' and a type for parameter '{name}'")
            params.append(make("param", name, name, self.type_name()))
            if self.match("PUNCTUATION", ","):
                continue
            self.expect("OPERATOR", "|", "Expected '|' to close the parameter list")
            return make("params", start, *params)

    def func_decl(self) -> Tree:
        keyword = self.advance()
        name = self.expect("IDENTIFIER", None, "Expected a function name after 'func'")
        params = self.params()
        body = self.block()
        return make("func_decl", keyword, name, params, body)

    def if_chain(self) -> Tree:
        keyword = self.advance()
        branches = [make("branch", keyword, self.expression(), self.block())]
        else_block = None
        while self.match("KEYWORD", "else"):
            at = self.match("KEYWORD", "if")
            if at is None:
                else_block = self.block()
                break
            branches.append(make("branch", at, self.expression(), self.block()))
        return make("if_chain", keyword, *branches, else_block)

    def for_in(self) -> Tree:
        keyword = self.advance()
        bar = self.expect("OPERATOR", "|", "Expected '|' before the loop variables")
        names = [self.expect("IDENTIFIER", None, "Expected a loop variable name")]
        if self.match("PUNCTUATION", ","):
            names.append(self.expect("IDENTIFIER", None, "Expected a second loop variable name"))
        self.expect("OPERATOR", "|", "Expected '|' after the loop variables")
        self.expect("KEYWORD", "in", "Expected 'in' after the loop variables")
        iterable = self.expression()
        body = self.block()
        return make("for_in", keyword, make("binders", bar, *names), iterable, body)

    def while_loop(self) -> Tree:
        keyword = self.advance()
        cond = self.expression()
        return make("while_loop", keyword, cond, self.block())

    def try_catch(self) -> Tree:
        keyword = self.advance()
        body = self.block()
        self.expect("KEYWORD", "catch", "Expected 'catch' after the try block")
        self.expect("OPERATOR", "|", "Expected '|' before the error name")
        param = self.expect("IDENTIFIER", None, "Expected a name for the caught error")
        self.expect("OPERATOR", "|", "Expected '|' after the error name")
        handler = self.block()
        return make("try_catch", keyword, body, param, handler)

    def return_stmt(self) -> Tree:
        keyword = self.advance()
        value = None
        if not (
            self.check("PUNCTUATION", ";", "}") or self.at_end()
        ):
            value = self.expression()
        self.end_statement()
        return make("return_stmt", keyword, value)

    def loop_jump(self) -> Tree:
        keyword = self.advance()
        self.end_statement()
        return make(f"{keyword}_stmt", keyword)

    def name_list(self, closing: Optional[str]) -> Tree:
        start = self.peek()
        names = [self.expect("IDENTIFIER", None, "Expected a name")]
        while self.match("PUNCTUATION", ","):
            if closing is not None and self.check("PUNCTUATION", closing):
                break
            names.append(self.expect("IDENTIFIER", None, "Expected a name after ','"))
        if closing is not None:
            self.expect("PUNCTUATION", closing, f"Expected '{closing}' after the names")
        return make("names", start, *names)

    def use_stmt(self) -> Tree:
        keyword = self.advance()
        names = None
        if self.match("PUNCTUATION", "{"):
            names = self.name_list("}")
            self.expect("KEYWORD", "from", "Expected 'from' after the imported names")
        module = self.expect("IDENTIFIER", None, "Expected a module name")
        self.end_statement()
        return make("use_stmt", keyword, module, names)

    def include_stmt(self) -> Tree:
        keyword = self.advance()
        names = None
        if self.match("PUNCTUATION", "{"):
            names = self.name_list("}")
        elif self.check("IDENTIFIER"):
            single = self.advance()
            names = make("names", single, single)
        if names is not None:
            self.expect("KEYWORD", "from", "Expected 'from' after the included names")
        path = self.expect("STRING", None, "Expected a file path string")
        self.end_statement()
        return make("include_stmt", keyword, path, names)

    def export_stmt(self) -> Tree:
        keyword = self.advance()
        names = self.name_list(None)
        self.end_statement()
        return make("export_stmt", keyword, names)

    # --- Expressions ---

    def expression(self) -> Tree:
        return self.assignment()

    def assignment(self) -> Tree:
        target = self.binary(0)
        op = self.match("OPERATOR", *ASSIGN_OPS)
        if op is None:
            return target
        if target.data not in ("identifier", "member", "index"):
            raise self.error("Invalid assignment target", op)
        value = self.assignment()
        return make("assign", target, target, str(op), value)

    def binary(self, level: int) -> Tree:
        if level == len(PRECEDENCE):
            return self.unary()
        left = self.binary(level + 1)
        while True:
            op = self.match("OPERATOR", *PRECEDENCE[level])
            if op is None:
                return left
            right = self.binary(level + 1)
            left = make("binary", left, str(op), left, right)

    def unary(self) -> Tree:
        op = self.match("OPERATOR", "!", "-")
        if op is not None:
            return make("unary", op, str(op), self.unary())
        return self.postfix()

    def postfix(self) -> Tree:
        expr = self.primary()
        while True:
            if self.match("PUNCTUATION", "."):
                name = self.peek()
                if name.type not in ("IDENTIFIER", "KEYWORD"):
                    raise self.error("Expected a member name after '.'", expected="name")
                self.advance()
                expr = make("member", expr, expr, name)
            elif self.match("PUNCTUATION", "["):
                key = self.expression()
                self.expect("PUNCTUATION", "]", "Expected ']' after the index")
                expr = make("index", expr, expr, key)
            elif self.match("OPERATOR", "=>"):
                expr = make("call", expr, expr, self.arguments())
            else:
                return expr

    def arguments(self) -> Tree:
        start = self.peek()
        if self.match("OPERATOR", "||"):
            return make("args", start)
        self.expect("OPERATOR", "|", "Expected '|' to open the argument list")
        args: List[Tree] = []
        if self.match("OPERATOR", "|"):
            return make("args", start)
        while True:
            args.append(self.expression())
            if self.match("PUNCTUATION", ","):
                continue
            self.expect("OPERATOR", "|", "Expected '|' to close the argument list")
            return make("args", start, *args)

    def primary(self) -> Tree:
        tok = self.peek()
        if tok.type in LITERAL_TYPES:
            self.advance()
            kind, convert = LITERAL_TYPES[tok.type]
            return make("literal", tok, kind, convert(str(tok)))
        if tok.type in ("IDENTIFIER", "BUILTIN"):
            self.advance()
            return make("identifier", tok, str(tok))
        if self.match("PUNCTUATION", "("):
            inner = self.expression()
            self.expect("PUNCTUATION", ")", "Expected ')' to close the group")
            return inner
        if self.match("PUNCTUATION", "["):
            return self.array(tok)
        if self.match("PUNCTUATION", "{"):
            return self.object(tok)
        if self.check("OPERATOR", "|", "||"):
            params = self.params()
            return make("lambda_expr", tok, params, self.block())
        raise self.error(f"Unexpected {describe(tok)}", expected="an expression")

    def array(self, start: Token) -> Tree:
        items: List[Tree] = []
        while not self.check("PUNCTUATION", "]"):
            items.append(self.expression())
            if not self.match("PUNCTUATION", ","):
                break
        self.expect("PUNCTUATION", "]", "Expected ']' to close the array")
        return make("array", start, *items)

    def object(self, start: Token) -> Tree:
        pairs: List[Tree] = []
        while not self.check("PUNCTUATION", "}"):
            key = self.peek()
            if key.type == "STRING":
                name = unescape(str(key))
            elif key.type in ("IDENTIFIER", "KEYWORD", "BOOL", "NULL"):
                name = str(key)
            else:
                raise self.error("Expected an object key", expected="a name or string")
            self.advance()
            self.expect("PUNCTUATION", ":", f"Expected ':' after key '{name}'")
            pairs.append(make("pair", key, name, self.expression()))
            if not self.match("PUNCTUATION", ","):
                break
        self.expect("PUNCTUATION", "}", "Expected '}' to close the object")
        return make("object", start, *pairs)


def parse(tokens: List[Token]) -> Tuple[Tree, List[ZekkenSyntaxError]]:
    return Parser(tokens).parse()


def parse_source(source: str) -> Tuple[Optional[Tree], List[ZekkenError]]:
    """Lex and parse ``source``; lexing failures come back as a single error."""
    try:
        tokens = scan(source)
    except LexError as err:
        return None, [err]
    tree, errors = parse(tokens)
    return tree, list(errors)

from __future__ import annotations

import unittest

from lark import Tree

import zekken_lang
from zekken_lang.lexer import scan
from zekken_lang.parser import SYNC_KEYWORDS, Parser, parse_source


def _parse(source: str) -> Tree:
    tree, errors = parse_source(source)
    if errors:
        raise AssertionError(f"unexpected errors: {[str(e) for e in errors]}")
    return tree


def _errors(source: str) -> list:
    _, errors = parse_source(source)
    return errors


class ParserShapeTests(unittest.TestCase):
    def test_var_decl(self) -> None:
        stmt = _parse("const pi: float = 3.14;").children[0]
        self.assertEqual(stmt.data, "var_decl")
        name, declared, mutable, init = stmt.children
        self.assertEqual(str(name), "pi")
        self.assertEqual(declared, "float")
        self.assertFalse(mutable)
        self.assertEqual(init, Tree("literal", ["float", 3.14]))

    def test_lambda_declaration_sugar(self) -> None:
        stmt = _parse("let add -> |a: int, b: int| { return a + b; }").children[0]
        self.assertEqual(stmt.data, "var_decl")
        self.assertEqual(stmt.children[1], "fn")
        fn = stmt.children[3]
        self.assertEqual(fn.data, "lambda_expr")
        params = fn.children[0]
        self.assertEqual([(str(p.children[0]), p.children[1]) for p in params.children], [("a", "int"), ("b", "int")])

    def test_precedence(self) -> None:
        expr = _parse("1 + 2 * 3 == 7 && !false;").children[0].children[0]
        self.assertEqual(expr.data, "binary")
        self.assertEqual(expr.children[0], "&&")
        eq = expr.children[1]
        self.assertEqual(eq.children[0], "==")
        add = eq.children[1]
        self.assertEqual(add.children[0], "+")
        self.assertEqual(add.children[2].children[0], "*")
        self.assertEqual(expr.children[2].data, "unary")

    def test_left_associativity(self) -> None:
        expr = _parse("10 - 4 - 3;").children[0].children[0]
        self.assertEqual(expr.children[0], "-")
        self.assertEqual(expr.children[1].data, "binary")
        self.assertEqual(expr.children[2], Tree("literal", ["int", 3]))

    def test_assignment_is_right_associative(self) -> None:
        expr = _parse("a = b = 1;").children[0].children[0]
        self.assertEqual(expr.data, "assign")
        self.assertEqual(expr.children[2].data, "assign")

    def test_member_call_chain(self) -> None:
        expr = _parse('"a,b".split => |","|.length => ||;').children[0].children[0]
        self.assertEqual(expr.data, "call")
        member = expr.children[0]
        self.assertEqual(member.data, "member")
        self.assertEqual(str(member.children[1]), "length")
        inner = member.children[0]
        self.assertEqual(inner.data, "call")
        self.assertEqual(len(inner.children[1].children), 1)

    def test_empty_argument_list_forms(self) -> None:
        for source in ("f => ||;", "f => | |;"):
            call = _parse(source).children[0].children[0]
            self.assertEqual(call.children[1].children, [])

    def test_if_chain(self) -> None:
        stmt = _parse("if a { } else if b { } else { }").children[0]
        self.assertEqual(stmt.data, "if_chain")
        self.assertEqual([c.data for c in stmt.children], ["branch", "branch", "block"])

    def test_if_without_else(self) -> None:
        stmt = _parse("if a { }").children[0]
        self.assertIsNone(stmt.children[-1])

    def test_for_in_binders(self) -> None:
        one = _parse("for |v| in xs { }").children[0]
        two = _parse("for |k, v| in {a: 1} { }").children[0]
        self.assertEqual([str(n) for n in one.children[0].children], ["v"])
        self.assertEqual([str(n) for n in two.children[0].children], ["k", "v"])
        self.assertEqual(two.children[1].data, "object")

    def test_try_catch(self) -> None:
        stmt = _parse("try { x; } catch |e| { y; }").children[0]
        self.assertEqual(stmt.data, "try_catch")
        self.assertEqual(str(stmt.children[1]), "e")

    def test_use_include_export(self) -> None:
        program = _parse(
            'use math;\nuse { pow, sqrt } from math;\ninclude "a.zk";\n'
            'include helper from "b.zk";\ninclude { x, y } from "c.zk";\nexport x, y;'
        )
        kinds = [s.data for s in program.children]
        self.assertEqual(kinds, ["use_stmt", "use_stmt", "include_stmt", "include_stmt", "include_stmt", "export_stmt"])
        self.assertIsNone(program.children[0].children[1])
        self.assertEqual([str(n) for n in program.children[1].children[1].children], ["pow", "sqrt"])
        self.assertEqual([str(n) for n in program.children[3].children[1].children], ["helper"])

    def test_semicolon_optional_before_brace_and_eof(self) -> None:
        program = _parse("func f || { return 1 }\nf => ||")
        self.assertEqual([s.data for s in program.children], ["func_decl", "expr_stmt"])

    def test_nodes_carry_positions(self) -> None:
        program = _parse("let a: int = 1;\n  a = 2;")
        assign = program.children[1].children[0]
        self.assertEqual((assign.meta.line, assign.meta.column), (2, 3))

    def test_parse_is_deterministic(self) -> None:
        source = "func f |n: int| { if n < 2 { return n; } return f => |n - 1| + 1; }\n@println => |f => |5| |"
        first = _parse(source)
        second = _parse(source)
        self.assertEqual(first, second)


class ParserRecoveryTests(unittest.TestCase):
    def test_reports_every_error(self) -> None:
        source = "let a: int = ;\nlet b = 5;\nconst c: int = (1 + 2;\n"
        errors = _errors(source)
        self.assertEqual(len(errors), 3)
        self.assertEqual([(e.line, e.column) for e in errors], [(1, 14), (2, 7), (3, 22)])
        self.assertTrue(all(isinstance(e, zekken_lang.ZekkenSyntaxError) for e in errors))

    def test_missing_annotation_names_implied_type(self) -> None:
        cases = {
            "let a = 5;": "int",
            "let a = 2.5;": "float",
            'let a = "s";': "string",
            "let a = 1 < 2;": "bool",
            "let a = [1];": "arr",
            "let a = {k: 1};": "obj",
            "let a = |x: int| { };": "fn",
            "let a = f => ||;": "any",
        }
        for source, implied in cases.items():
            with self.subTest(source=source):
                errors = _errors(source)
                self.assertEqual(len(errors), 1)
                self.assertIn(f"implies '{implied}'", errors[0].message)

    def test_missing_annotation_with_unparsable_initializer(self) -> None:
        for source in ("let q = ;", "let q = (1 + ;"):
            with self.subTest(source=source):
                errors = _errors(source)
                self.assertEqual(len(errors), 1)
                self.assertIn("Missing type annotation for 'q'", errors[0].message)
                self.assertIn("implies 'any'", errors[0].message)

    def test_error_hint_names_expected_and_found(self) -> None:
        errors = _errors("let a: int = 1 let b: int = 2;")
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].hint, "Expected ';', found 'let'")

    def test_errors_inside_blocks_are_recovered(self) -> None:
        source = "func f || {\n  let x: int = ;\n  let y: int = ;\n}\nlet z: int = ;"
        errors = _errors(source)
        self.assertEqual([e.line for e in errors], [2, 3, 5])

    def test_position_after_multiline_comment(self) -> None:
        errors = _errors("/* line1\nline2\n*/ let x: int = ;")
        self.assertEqual([(e.line, e.column) for e in errors], [(3, 17)])

    def test_position_after_multiline_string(self) -> None:
        errors = _errors('let s: string = "a\nb";\nlet t: int = ;')
        self.assertEqual([(e.line, e.column) for e in errors], [(3, 14)])

    def test_unknown_type(self) -> None:
        errors = _errors("let a: number = 1;")
        self.assertEqual(len(errors), 1)
        self.assertIn("Unknown type", errors[0].message)

    def test_invalid_assignment_target(self) -> None:
        errors = _errors("1 = 2;")
        self.assertEqual(errors[0].message, "Invalid assignment target")

    def test_lex_error_is_returned_not_raised(self) -> None:
        tree, errors = parse_source('"open')
        self.assertIsNone(tree)
        self.assertIsInstance(errors[0], zekken_lang.LexError)

    def test_unclosed_block_at_eof(self) -> None:
        errors = _errors("while true {\n  x = 1;\n")
        self.assertEqual(len(errors), 1)
        self.assertIn("'}'", errors[0].message)


class SynchronizeTests(unittest.TestCase):
    def _parser(self, source: str) -> Parser:
        return Parser(scan(source))

    def test_sync_keywords_are_statement_starters(self) -> None:
        self.assertIn("let", SYNC_KEYWORDS)
        self.assertIn("func", SYNC_KEYWORDS)
        self.assertNotIn("else", SYNC_KEYWORDS)

    def test_always_advances(self) -> None:
        p = self._parser("let let")
        p.synchronize(0)
        self.assertEqual(p.pos, 1)

    def test_stops_after_semicolon(self) -> None:
        p = self._parser("a b c ; d")
        p.synchronize(0)
        self.assertEqual(str(p.peek()), "d")

    def test_stops_before_closing_brace(self) -> None:
        p = self._parser("a b } c")
        p.synchronize(0)
        self.assertEqual(str(p.peek()), "}")

    def test_stops_before_statement_keyword(self) -> None:
        p = self._parser("a b while c")
        p.synchronize(0)
        self.assertEqual(str(p.peek()), "while")

    def test_stops_at_eof(self) -> None:
        p = self._parser("a b c")
        p.synchronize(0)
        self.assertTrue(p.at_end())

    def test_requires_eof_terminated_stream(self) -> None:
        with self.assertRaises(ValueError):
            Parser(scan("a")[:-1])


if __name__ == "__main__":
    unittest.main(verbosity=2)

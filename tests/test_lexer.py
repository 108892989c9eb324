from __future__ import annotations

import unittest

import zekken_lang
from zekken_lang.lexer import highlight_tokens, scan, unescape


def _kinds(source: str) -> list[tuple[str, str]]:
    return [(t.type, str(t)) for t in scan(source)]


class LexerTests(unittest.TestCase):
    def test_declaration_tokens(self) -> None:
        self.assertEqual(
            _kinds("let x: int = 5;"),
            [
                ("KEYWORD", "let"),
                ("IDENTIFIER", "x"),
                ("PUNCTUATION", ":"),
                ("KEYWORD", "int"),
                ("OPERATOR", "="),
                ("INT", "5"),
                ("PUNCTUATION", ";"),
                ("EOF", ""),
            ],
        )

    def test_call_arrow_and_builtin(self) -> None:
        kinds = _kinds("@println => |a, 1.5|")
        self.assertEqual(kinds[0], ("BUILTIN", "@println"))
        self.assertEqual(kinds[1], ("OPERATOR", "=>"))
        self.assertEqual(kinds[2], ("OPERATOR", "|"))
        self.assertIn(("FLOAT", "1.5"), kinds)

    def test_multi_char_operators_win(self) -> None:
        ops = [v for k, v in _kinds("a == b != c <= d >= e && f || g -> h += 1") if k == "OPERATOR"]
        self.assertEqual(ops, ["==", "!=", "<=", ">=", "&&", "||", "->", "+="])

    def test_literal_kinds(self) -> None:
        kinds = dict((v, k) for k, v in _kinds("true false null 'x' \"y\" 3 4.25"))
        self.assertEqual(kinds["true"], "BOOL")
        self.assertEqual(kinds["false"], "BOOL")
        self.assertEqual(kinds["null"], "NULL")
        self.assertEqual(kinds["'x'"], "STRING")
        self.assertEqual(kinds['"y"'], "STRING")
        self.assertEqual(kinds["3"], "INT")
        self.assertEqual(kinds["4.25"], "FLOAT")

    def test_comments_are_skipped(self) -> None:
        kinds = _kinds("// note\nlet /* inline */ y")
        self.assertEqual([v for _, v in kinds], ["let", "y", ""])

    def test_block_comments_do_not_nest(self) -> None:
        # The first */ closes the comment, leaving a stray "*/".
        kinds = _kinds("/* outer /* inner */ */")
        self.assertEqual([v for _, v in kinds], ["*", "/", ""])

    def test_positions_after_multiline_comment(self) -> None:
        tokens = scan("/* one\ntwo\n*/ x")
        x = tokens[0]
        self.assertEqual((str(x), x.line, x.column), ("x", 3, 4))

    def test_positions_after_multiline_string(self) -> None:
        tokens = scan('"a\nbc" y')
        y = tokens[1]
        self.assertEqual((y.line, y.column), (2, 5))

    def test_eof_sits_after_last_character(self) -> None:
        eof = scan("a\nbcd")[-1]
        self.assertEqual(eof.type, "EOF")
        self.assertEqual((eof.line, eof.column), (2, 4))

    def test_unterminated_string(self) -> None:
        with self.assertRaises(zekken_lang.LexError) as ctx:
            scan('let s: string = "open')
        self.assertEqual((ctx.exception.line, ctx.exception.column), (1, 17))
        self.assertIn("Unterminated string", ctx.exception.message)

    def test_unterminated_block_comment(self) -> None:
        with self.assertRaises(zekken_lang.LexError) as ctx:
            scan("x\n  /* never closed")
        self.assertEqual((ctx.exception.line, ctx.exception.column), (2, 3))

    def test_unrecognized_character(self) -> None:
        with self.assertRaises(zekken_lang.LexError) as ctx:
            scan("let a: int = 1;\n$")
        self.assertEqual((ctx.exception.line, ctx.exception.column), (2, 1))
        self.assertIn("'$'", ctx.exception.message)

    def test_unescape(self) -> None:
        self.assertEqual(unescape(r'"a\nb\t\"q\"\\"'), 'a\nb\t"q"\\')
        self.assertEqual(unescape(r"'it\'s'"), "it's")
        self.assertEqual(unescape(r'"\z"'), "z")

    def test_highlight_tokens_cover_text(self) -> None:
        text = "let x: int = 5; // done"
        chunks = list(highlight_tokens(text))
        self.assertEqual("".join(c for _, c in chunks), text)
        self.assertIn(("LINE_COMMENT", "// done"), chunks)

    def test_highlight_falls_back_on_bad_input(self) -> None:
        text = "x $ y"
        chunks = list(highlight_tokens(text))
        self.assertEqual("".join(c for _, c in chunks), text)
        self.assertEqual(chunks[-1][0], "TEXT")


if __name__ == "__main__":
    unittest.main(verbosity=2)

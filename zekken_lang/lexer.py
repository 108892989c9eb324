import logging
from typing import Iterator, List, Tuple

from lark import Lark, Token
from lark.exceptions import UnexpectedCharacters

from .exceptions import LexError
from .grammar import BOOL_LITERALS, ESCAPES, KEYWORDS, NULL_LITERAL, ZEKKEN_LEXICON

logger = logging.getLogger(__name__)

_LEXER = Lark(ZEKKEN_LEXICON, parser=None, lexer="basic")


def scan(source: str) -> List[Token]:
    """Tokenize ``source`` into a list of tokens terminated by an EOF token.

    Positions come from lark's line counter, which also advances through
    newlines inside strings and block comments.
    """
    tokens: List[Token] = []
    try:
        for tok in _LEXER.lex(source):
            tokens.append(_classify(tok))
    except UnexpectedCharacters as e:
        raise LexError(
            f"Unrecognized character {e.char!r}", e.line, e.column
        ) from None
    tokens.append(_eof(source))
    return tokens


def _classify(tok: Token) -> Token:
    if tok.type == "UNTERMINATED_STRING":
        raise LexError(
            "Unterminated string literal",
            tok.line,
            tok.column,
            hint=f"add a closing {tok[0]} to end the string",
        )
    if tok.type == "UNTERMINATED_COMMENT":
        raise LexError(
            "Unterminated block comment",
            tok.line,
            tok.column,
            hint="add '*/' to close the comment",
        )
    if tok.type == "NAME":
        if tok in BOOL_LITERALS:
            return tok.update(type="BOOL")
        if tok == NULL_LITERAL:
            return tok.update(type="NULL")
        if tok in KEYWORDS:
            return tok.update(type="KEYWORD")
        return tok.update(type="IDENTIFIER")
    return tok


def _eof(source: str) -> Token:
    line = source.count("\n") + 1
    column = len(source) - (source.rfind("\n") + 1) + 1
    return Token("EOF", "", len(source), line, column, line, column, len(source))


def unescape(lexeme: str) -> str:
    """Turn a quoted STRING lexeme into its runtime text."""
    body = lexeme[1:-1]
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def highlight_tokens(text: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(token_type, text)`` pairs that cover ``text`` exactly.

    Used by the diagnostics renderer; trivia is kept and anything the lexer
    rejects is yielded as a single ``TEXT`` chunk.
    """
    pos = 0
    try:
        for tok in _LEXER.lex(text, dont_ignore=True):
            if tok.type == "NAME":
                tok = _classify(tok)
            pos = tok.end_pos
            yield tok.type, str(tok)
    except (UnexpectedCharacters, LexError):
        logger.debug("highlighting fell back to plain text at offset %d", pos)
    if pos < len(text):
        yield "TEXT", text[pos:]

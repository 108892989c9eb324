ZEKKEN_LEXICON = r"""
    start: _token*

    _token: NAME | BUILTIN | FLOAT | INT | STRING | OPERATOR | PUNCTUATION
          | UNTERMINATED_STRING | UNTERMINATED_COMMENT

    // --- TRIVIA ---
    BLOCK_COMMENT.4: /\/\*[\s\S]*?\*\//
    LINE_COMMENT.4: /\/\/[^\n]*/
    UNTERMINATED_COMMENT.3: /\/\*[\s\S]*/

    // --- LITERALS ---
    STRING.3: /"(?:[^"\\]|\\[\s\S])*"/
            | /'(?:[^'\\]|\\[\s\S])*'/
    UNTERMINATED_STRING.2: /"(?:[^"\\]|\\[\s\S])*/
                         | /'(?:[^'\\]|\\[\s\S])*/
    FLOAT.2: /\d+\.\d+/
    INT: /\d+/

    // --- NAMES ---
    BUILTIN: /@[A-Za-z_][A-Za-z0-9_]*/
    NAME: /[A-Za-z_][A-Za-z0-9_]*/

    // --- SYMBOLS (longest first) ---
    OPERATOR: /=>|->|==|!=|<=|>=|&&|\|\||[-+*\/%]=|[-+*\/%<>=!|&]/
    PUNCTUATION: /[(){}\[\],;:.]/

    %import common.WS
    %ignore WS
    %ignore LINE_COMMENT
    %ignore BLOCK_COMMENT
"""

TYPE_NAMES = frozenset({"int", "float", "string", "bool", "arr", "obj", "fn", "any"})

KEYWORDS = frozenset(
    {
        "let",
        "const",
        "func",
        "if",
        "else",
        "for",
        "in",
        "while",
        "try",
        "catch",
        "return",
        "break",
        "continue",
        "use",
        "include",
        "export",
        "from",
    }
) | TYPE_NAMES

BOOL_LITERALS = frozenset({"true", "false"})
NULL_LITERAL = "null"

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}

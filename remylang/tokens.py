"""Token kinds and the keyword/operator tables used by the lexer.

Tokens are `lark.Token` instances: `type` holds the token kind, `value`
holds the lexeme exactly as it appears in the source, and `line`/`column`
give its 1-based start position.
"""

from __future__ import annotations

from lark import Token

# Literal and name kinds
INT = 'INT'
FLOAT = 'FLOAT'
STRING = 'STRING'
CHAR = 'CHAR'
IDENT = 'IDENT'
EOF = 'EOF'

KEYWORDS = {
    'if': 'IF',
    'else': 'ELSE',
    'while': 'WHILE',
    'func': 'FUNC',
    'return': 'RETURN',
    'True': 'TRUE',
    'False': 'FALSE',
}

# Longest operators first so that `==` wins over `=` and `**` over `*`.
OPERATORS = [
    ('**', 'POWER'),
    ('==', 'EQEQ'),
    ('!=', 'BANGEQ'),
    ('<=', 'LESSEQ'),
    ('>=', 'GREATEREQ'),
    ('&&', 'AND'),
    ('||', 'OR'),
    ('->', 'ARROW'),
    ('+=', 'PLUSEQ'),
    ('-=', 'MINUSEQ'),
    ('*=', 'STAREQ'),
    ('/=', 'SLASHEQ'),
    ('%=', 'PERCENTEQ'),
    ('+', 'PLUS'),
    ('-', 'MINUS'),
    ('*', 'STAR'),
    ('/', 'SLASH'),
    ('%', 'PERCENT'),
    ('<', 'LESS'),
    ('>', 'GREATER'),
    ('=', 'EQUAL'),
    ('!', 'BANG'),
    ('(', 'LPAR'),
    (')', 'RPAR'),
    ('{', 'LBRACE'),
    ('}', 'RBRACE'),
    ('[', 'LSQB'),
    (']', 'RSQB'),
    (';', 'SEMICOLON'),
    (',', 'COMMA'),
]

# Reverse lookup used when rendering "expected ..." messages.
SYMBOLS = {kind: text for text, kind in OPERATORS}
SYMBOLS.update({kind: word for word, kind in KEYWORDS.items()})

COMPOUND_ASSIGN = {
    'PLUSEQ': '+',
    'MINUSEQ': '-',
    'STAREQ': '*',
    'SLASHEQ': '/',
    'PERCENTEQ': '%',
}


def make_token(kind: str, lexeme: str, start_pos: int, line: int, column: int,
               end_line: int, end_column: int, end_pos: int) -> Token:
    return Token(kind, lexeme, start_pos, line, column, end_line, end_column, end_pos)


def describe(kind: str) -> str:
    """Human readable name for a token kind, e.g. "';'" or "identifier"."""
    if kind in SYMBOLS:
        return f"'{SYMBOLS[kind]}'"
    return {
        INT: 'integer literal',
        FLOAT: 'float literal',
        STRING: 'string literal',
        CHAR: 'char literal',
        IDENT: 'identifier',
        EOF: 'end of input',
    }.get(kind, kind)


def describe_token(token: Token) -> str:
    if token.type in (INT, FLOAT, STRING, CHAR, IDENT):
        return f"{describe(token.type)} {token.value}"
    return describe(token.type)

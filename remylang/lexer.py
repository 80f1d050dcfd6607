"""Lexer for the RemyLang language.

The lexer turns source text into a stream of `lark.Token` objects. Tokens
are produced lazily by `Lexer.lex()`; iterating the same `Lexer` again
starts over from the beginning of the source. `tokenize` is the eager
convenience wrapper used by the rest of the pipeline.

String and char tokens keep their lexeme exactly as written (quotes and
escapes included). The lexer validates escapes so that `unescape` can
decode them later without failing.
"""

from __future__ import annotations

from typing import Iterator, List

from lark import Token

from .errors import Diagnostic, LexError
from .tokens import (
    CHAR, EOF, FLOAT, IDENT, INT, KEYWORDS, OPERATORS, STRING, make_token,
)

ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '0': '\0',
    '"': '"',
    "'": "'",
    '\\': '\\',
}


def is_digit(c: str) -> bool:
    return len(c) == 1 and '0' <= c <= '9'


def is_ident_start(c: str) -> bool:
    return c.isascii() and (c.isalpha() or c == '_')


def is_ident_char(c: str) -> bool:
    return c.isascii() and (c.isalnum() or c == '_')


def unescape(body: str) -> str:
    """Decode the escapes of a validated string or char body."""
    out: List[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == '\\':
            out.append(ESCAPES[body[i + 1]])
            i += 2
            continue
        out.append(c)
        i += 1
    return ''.join(out)


class Lexer:
    """Converts source code into tokens, one at a time."""

    def __init__(self, source: str):
        self.source = source
        self.reset()

    def reset(self) -> None:
        self.pos = 0
        self.line = 1
        self.column = 1

    def __iter__(self) -> Iterator[Token]:
        # Each iteration gets its own cursor.
        return Lexer(self.source).lex()

    # Character helpers

    def peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        if i < len(self.source):
            return self.source[i]
        return ''

    def advance(self, n: int = 1) -> None:
        for _ in range(n):
            if self.pos >= len(self.source):
                return
            if self.source[self.pos] == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def error(self, kind: str, message: str, line: int, column: int) -> LexError:
        return LexError(Diagnostic(kind, message, line, column))

    def token(self, kind: str, start: int, line: int, column: int) -> Token:
        return make_token(kind, self.source[start:self.pos], start, line, column,
                          self.line, self.column, self.pos)

    # Main loop

    def lex(self) -> Iterator[Token]:
        self.reset()
        while True:
            self.skip_trivia()
            if self.pos >= len(self.source):
                break
            yield self.next_token()
        yield make_token(EOF, '', self.pos, self.line, self.column,
                         self.line, self.column, self.pos)

    def skip_trivia(self) -> None:
        """Skip whitespace and comments."""
        while self.pos < len(self.source):
            c = self.peek()
            if c in ' \t\r\n':
                self.advance()
            elif c == '/' and self.peek(1) == '/':
                while self.pos < len(self.source) and self.peek() != '\n':
                    self.advance()
            elif c == '/' and self.peek(1) == '*':
                line, column = self.line, self.column
                self.advance(2)
                while not (self.peek() == '*' and self.peek(1) == '/'):
                    if self.pos >= len(self.source):
                        raise self.error('UnterminatedBlockComment',
                                         "unterminated block comment, expected '*/'",
                                         line, column)
                    self.advance()
                self.advance(2)
            else:
                return

    def next_token(self) -> Token:
        c = self.peek()
        if is_digit(c):
            return self.read_number()
        if is_ident_start(c):
            return self.read_identifier()
        if c == '"':
            return self.read_string()
        if c == "'":
            return self.read_char()
        return self.read_operator()

    def read_number(self) -> Token:
        start, line, column = self.pos, self.line, self.column
        kind = INT
        while is_digit(self.peek()):
            self.advance()
        if self.peek() == '.' and is_digit(self.peek(1)):
            kind = FLOAT
            self.advance()
            while is_digit(self.peek()):
                self.advance()
            if self.peek() == '.':
                raise self.error('MalformedNumber',
                                 f"malformed number {self.source[start:self.pos + 1]!r}: "
                                 "only one decimal point is allowed",
                                 line, column)
        elif self.peek() == '.':
            raise self.error('MalformedNumber',
                             f"malformed number {self.source[start:self.pos + 1]!r}: "
                             "expected a digit after the decimal point",
                             line, column)
        if is_ident_char(self.peek()):
            raise self.error('MalformedNumber',
                             f"malformed number: unexpected {self.peek()!r} after digits",
                             line, column)
        return self.token(kind, start, line, column)

    def read_identifier(self) -> Token:
        start, line, column = self.pos, self.line, self.column
        while is_ident_char(self.peek()):
            self.advance()
        word = self.source[start:self.pos]
        return self.token(KEYWORDS.get(word, IDENT), start, line, column)

    def read_escape(self) -> None:
        # Positioned on the backslash.
        esc_line, esc_column = self.line, self.column
        self.advance()
        c = self.peek()
        if c == '':
            return
        if c not in ESCAPES:
            raise self.error('InvalidEscape', f"invalid escape sequence '\\{c}'",
                             esc_line, esc_column)
        self.advance()

    def read_string(self) -> Token:
        start, line, column = self.pos, self.line, self.column
        self.advance()  # opening quote
        while True:
            c = self.peek()
            if c == '' or c == '\n':
                raise self.error('UnterminatedString',
                                 "unterminated string, expected closing '\"'",
                                 line, column)
            if c == '\\':
                self.read_escape()
                continue
            self.advance()
            if c == '"':
                break
        return self.token(STRING, start, line, column)

    def read_char(self) -> Token:
        start, line, column = self.pos, self.line, self.column
        self.advance()  # opening quote
        count = 0
        while True:
            c = self.peek()
            if c == '' or c == '\n':
                raise self.error('UnterminatedChar',
                                 "unterminated char literal, expected closing \"'\"",
                                 line, column)
            if c == "'":
                self.advance()
                break
            if c == '\\':
                self.read_escape()
            else:
                self.advance()
            count += 1
        if count != 1:
            raise self.error('InvalidCharLiteral',
                             f"char literal must hold exactly one character, found {count}",
                             line, column)
        return self.token(CHAR, start, line, column)

    def read_operator(self) -> Token:
        start, line, column = self.pos, self.line, self.column
        for text, kind in OPERATORS:
            if self.source.startswith(text, self.pos):
                self.advance(len(text))
                return self.token(kind, start, line, column)
        c = self.peek()
        if c in '&|':
            message = f"unexpected {c!r}, expected '{c}{c}'"
        else:
            message = f"unknown operator or character {c!r}"
        raise self.error('UnknownOperator', message, line, column)


def tokenize(source: str) -> List[Token]:
    """Convert source code into a list of tokens ending with EOF."""
    return list(Lexer(source).lex())

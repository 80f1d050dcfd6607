"""Diagnostics and error types for the RemyLang pipeline.

Each pipeline stage raises its own subclass of `RemyError`: the lexer raises
`LexError`, the parser `ParseError` and the interpreter `RemyRuntimeError`.
All of them carry a `Diagnostic` describing the failure so that front ends
can present it without knowing which stage produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class Diagnostic:
    """A single error report: its kind, a message and a 1-based position.

    A line of 0 means the position is not known yet; the interpreter fills
    it in from the AST node being evaluated.
    """
    kind: str
    message: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.kind}: {self.message}"


class RemyError(Exception):
    """Base class for every error raised by the pipeline."""
    def __init__(self, diagnostic: Diagnostic):
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic

    @property
    def kind(self) -> str:
        return self.diagnostic.kind

    def __str__(self) -> str:
        return str(self.diagnostic)


class LexError(RemyError):
    """Raised by the lexer for malformed source text."""


class ParseError(RemyError):
    """Raised by the parser when the token stream does not fit the grammar."""


class RemyRuntimeError(RemyError):
    """Raised by the interpreter when evaluation fails."""

    def locate(self, line: int, column: int) -> None:
        # Only the innermost node gets to set the position.
        if self.diagnostic.line == 0:
            self.diagnostic.line = line
            self.diagnostic.column = column


class ReturnSignal(Exception):
    """Internal signal carrying a return value up to the call boundary."""
    def __init__(self, value: Any):
        super().__init__('return')
        self.value = value

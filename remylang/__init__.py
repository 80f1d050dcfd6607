# RemyLang language package
# This package provides a lexer, parser and interpreter for the RemyLang language.
from .errors import Diagnostic, RemyError, LexError, ParseError, RemyRuntimeError
from .lexer import Lexer, tokenize
from .parser import Parser, parse, parse_program
from .interpreter import Interpreter, run_program, run_file, check_program

__all__ = [
    'tokenize',
    'parse',
    'parse_program',
    'run_program',
    'run_file',
    'check_program',
    'Lexer',
    'Parser',
    'Interpreter',
    'Diagnostic',
    'RemyError',
    'LexError',
    'ParseError',
    'RemyRuntimeError',
]

"""CLI entry point for the RemyLang interpreter.

Usage:
    python -m remylang [-v|-vv|-vvv] <program_file>
    python -m remylang --check <program_file>
    python -m remylang --tokens <program_file>

Options:
  -v            Increase debug verbosity (can be repeated)
  --check       Lex and parse the program and report diagnostics without running it
  --tokens      Print the token stream of the program

Debug information is written to `debug.txt` in the current directory when
verbosity is greater than zero. When the program defines `Main` returning an
Int, that value becomes the exit status.
"""

import argparse
import sys
from pathlib import Path
from .errors import RemyError
from .interpreter import Interpreter, check_program
from .lexer import tokenize
from .parser import parse_program


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog='remylang', description="RemyLang language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--check', action='store_true', help='only lex and parse the program')
    group.add_argument('--tokens', action='store_true', help='print the token stream of the program')
    parser.add_argument('program', help='RemyLang program file (.remy)')
    args = parser.parse_args(argv)

    program_file = Path(args.program)
    if not program_file.exists():
        print(f"Error: file {program_file} not found", file=sys.stderr)
        sys.exit(1)
    with open(program_file, 'r', encoding='utf-8') as f:
        source = f.read()

    if args.check:
        diagnostics = check_program(source)
        for diagnostic in diagnostics:
            print(f"{program_file}:{diagnostic}", file=sys.stderr)
        if diagnostics:
            sys.exit(1)
        print(f"{program_file}: ok")
        return

    try:
        if args.tokens:
            for token in tokenize(source):
                print(f"{token.line}:{token.column} {token.type} {token.value!r}")
            return
        ast_program = parse_program(source)
        interpreter = Interpreter(debug_level=args.v)
        result = interpreter.run(ast_program)
    except RemyError as e:
        print(f"{program_file}:{e}", file=sys.stderr)
        sys.exit(1)
    if isinstance(result, int) and not isinstance(result, bool) and result != 0:
        sys.exit(result)


if __name__ == '__main__':
    main()

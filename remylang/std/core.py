import builtins
from typing import Any, Dict, List, Optional, TextIO

from remylang.builtin_function import BuiltinFunction
from remylang.errors import Diagnostic, RemyRuntimeError
from remylang.types import VOID, ArrayVal, TypeSpec, to_string, type_name


def core_builtins(output: Optional[TextIO] = None) -> Dict[str, BuiltinFunction]:
    """Build the fixed builtin table: print, input and len.

    `print` writes to `output`, or to whatever `sys.stdout` is at call time
    when no stream is given.
    """

    def std_print(args: List[Any]) -> Any:
        print(to_string(args[0]), file=output)
        return VOID

    def std_input(args: List[Any]) -> Any:
        try:
            return builtins.input()
        except EOFError:
            return ''

    def std_len(args: List[Any]) -> Any:
        value = args[0]
        if not isinstance(value, ArrayVal):
            raise RemyRuntimeError(Diagnostic('TypeMismatch',
                                              f'len expects an Array, got {type_name(value)}'))
        return len(value.items)

    return {
        'print': BuiltinFunction('print', 1, TypeSpec.void(), std_print),
        'input': BuiltinFunction('input', 0, TypeSpec.string(), std_input),
        'len': BuiltinFunction('len', 1, TypeSpec.integer(), std_len),
    }

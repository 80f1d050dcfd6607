"""Interpreter for the RemyLang language.

This module implements the tree-walking evaluator and the convenience
entry points that chain it with the lexer and parser. Execution happens in
two passes over the program: function declarations are bound first so every
function can see every other one, then the remaining top-level statements
run in order. When a `Main` function exists it is called last and its
result becomes the result of the run.

Values are checked against declared types at declarations, assignments,
calls and returns; there is no implicit coercion between types.
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, TextIO, Tuple

from .ast import (
    ArrayLit, Assign, BinaryOp, Block, Call, CompoundAssign, ExprStmt,
    FuncDecl, Grouping, IfStmt, Index, Literal, Node, Program, ReturnStmt,
    UnaryOp, VarDecl, Variable, WhileStmt,
)
from .builtin_function import BuiltinFunction
from .environment import Environment
from .errors import Diagnostic, RemyError, RemyRuntimeError, ReturnSignal
from .lexer import tokenize
from .parser import parse, parse_program, recursion_limit
from .std import core_builtins
from .types import (
    VOID, ArrayVal, CharVal, FunctionValue, TypeSpec, adopt_type,
    check_value, copy_value, is_numeric, to_string, type_name, type_of,
)

ARITHMETIC_OPS = ('+', '-', '*', '/', '%', '**')
COMPARISON_OPS = ('<', '>', '<=', '>=')


def int_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def fail(kind: str, message: str) -> RemyRuntimeError:
    return RemyRuntimeError(Diagnostic(kind, message))


class Interpreter:
    """Core interpreter that executes a RemyLang AST."""
    def __init__(self, debug_level: int = 0, debug_file: str = 'debug.txt',
                 max_call_depth: int = 100, output: Optional[TextIO] = None):
        self.output = output
        self.global_env = Environment()
        self.builtins = core_builtins(output)
        self.debug_level = debug_level
        self.debug_file = debug_file
        self.debug_fp: Optional[TextIO] = None
        self.max_call_depth = max_call_depth
        self.call_depth = 0

    def debug(self, msg: str, level: int = 1):
        if self.debug_level >= level:
            if self.debug_fp is None:
                self.debug_fp = open(self.debug_file, 'w', encoding='utf-8')
            self.debug_fp.write(msg + '\n')
            self.debug_fp.flush()

    # Public API
    def run(self, program: Program, env: Optional[Environment] = None) -> Any:
        # Every run starts from its own global scope and builtin table.
        self.global_env = env if env is not None else Environment()
        self.builtins = core_builtins(self.output)
        self.call_depth = 0
        try:
            # Each RemyLang call nests a bounded number of Python frames.
            with recursion_limit(self.max_call_depth * 40 + 1000):
                return self.run_program_body(program)
        except RecursionError:
            raise RemyRuntimeError(Diagnostic(
                'StackOverflow', 'maximum recursion depth of the host interpreter exceeded'))
        finally:
            if self.debug_fp:
                self.debug_fp.close()
                self.debug_fp = None

    def run_program_body(self, program: Program) -> Any:
        # Pass 1: bind every top-level function.
        for stmt in program.body:
            if isinstance(stmt, FuncDecl):
                self.execute(stmt, self.global_env)
        # Pass 2: everything else, in order.
        for stmt in program.body:
            if not isinstance(stmt, FuncDecl):
                self.execute(stmt, self.global_env)
        main = self.global_env.values.get('Main')
        if isinstance(main, FunctionValue):
            self.debug('enter Main')
            try:
                return self.call_function(main, [])
            except RemyRuntimeError as exc:
                exc.locate(main.body.line, main.body.column)
                raise
        return VOID

    def execute_block(self, statements: List[Node], env: Environment) -> Any:
        for stmt in statements:
            result = self.execute(stmt, env)
            # propagate return signals
            if isinstance(result, ReturnSignal):
                return result
        return None

    def execute(self, node: Node, env: Environment) -> Any:
        try:
            return self.execute_node(node, env)
        except RemyRuntimeError as exc:
            exc.locate(node.line, node.column)
            raise

    def evaluate(self, node: Node, env: Environment) -> Any:
        try:
            return self.evaluate_node(node, env)
        except RemyRuntimeError as exc:
            exc.locate(node.line, node.column)
            raise

    def execute_node(self, node: Node, env: Environment) -> Any:
        if isinstance(node, VarDecl):
            value = copy_value(self.evaluate(node.expr, env))
            env.declare(node.name, node.type_spec, value)
            self.debug(f"declare {node.name}: {node.type_spec} = {to_string(value)}", 2)
            return None
        if isinstance(node, FuncDecl):
            if node.name in self.builtins:
                raise fail('DuplicateDeclaration',
                           f'{node.name} is a builtin function and cannot be redefined')
            func_value = FunctionValue(node.name, node.params, node.return_type, node.body, env)
            env.declare(node.name, func_value.type_spec, func_value)
            self.debug(f"define function {node.name}: {func_value.type_spec}", 2)
            return None
        if isinstance(node, Assign):
            value = copy_value(self.evaluate(node.value, env))
            self.assign_lvalue(node.target, value, env)
            return None
        if isinstance(node, CompoundAssign):
            self.compound_assign(node, env)
            return None
        if isinstance(node, Block):
            # new scope for the block; dropped when the block is left
            return self.execute_block(node.statements, env.child())
        if isinstance(node, IfStmt):
            truthy = self.condition(node.condition, env, 'if')
            self.debug(f"if condition at {node.line}:{node.column} -> {truthy}", 3)
            if truthy:
                return self.execute(node.then_block, env)
            if node.else_branch is not None:
                return self.execute(node.else_branch, env)
            return None
        if isinstance(node, WhileStmt):
            while self.condition(node.condition, env, 'while'):
                # executing the body Block gives each iteration a fresh scope
                res = self.execute(node.body, env)
                if isinstance(res, ReturnSignal):
                    return res
            self.debug(f"while loop at {node.line}:{node.column} finished", 3)
            return None
        if isinstance(node, ReturnStmt):
            if self.call_depth == 0:
                raise fail('ReturnOutsideFunction', 'return statement outside of a function')
            value = self.evaluate(node.value, env) if node.value is not None else VOID
            return ReturnSignal(value)
        if isinstance(node, ExprStmt):
            self.evaluate(node.expr, env)
            return None
        raise NotImplementedError(f"execute: unexpected node type {type(node)}")

    def evaluate_node(self, node: Node, env: Environment) -> Any:
        if isinstance(node, Literal):
            if node.literal_type.kind == 'Char':
                return CharVal(node.value)
            return node.value
        if isinstance(node, Variable):
            return env.get(node.name)
        if isinstance(node, Grouping):
            return self.evaluate(node.inner, env)
        if isinstance(node, ArrayLit):
            return self.build_array([copy_value(self.evaluate(el, env)) for el in node.elements])
        if isinstance(node, UnaryOp):
            operand = self.evaluate(node.operand, env)
            if node.op == '-':
                if not is_numeric(operand):
                    raise fail('TypeMismatch', f'unary - expects Int or Float, got {type_name(operand)}')
                return -operand
            if node.op == '!':
                self.require_bool(operand, '!')
                return not operand
            raise NotImplementedError(f'unsupported unary operator {node.op}')
        if isinstance(node, BinaryOp):
            left = self.evaluate(node.left, env)
            # Short-circuit for && and ||
            if node.op in ('&&', '||'):
                self.require_bool(left, node.op)
                if node.op == '&&' and not left:
                    return False
                if node.op == '||' and left:
                    return True
                right = self.evaluate(node.right, env)
                self.require_bool(right, node.op)
                return right
            right = self.evaluate(node.right, env)
            return self.apply_binary_op(node.op, left, right)
        if isinstance(node, Index):
            array, index = self.resolve_index(node, env)
            return array.items[index]
        if isinstance(node, Call):
            return self.call(node, env)
        raise NotImplementedError(f"evaluate: unexpected node type {type(node)}")

    def condition(self, node: Node, env: Environment, keyword: str) -> bool:
        value = self.evaluate(node, env)
        if not isinstance(value, bool):
            raise fail('TypeMismatch', f'{keyword} condition must be Bool, got {type_name(value)}')
        return value

    def require_bool(self, value: Any, op: str):
        if not isinstance(value, bool):
            raise fail('TypeMismatch', f'operator {op} expects Bool operands, got {type_name(value)}')

    def build_array(self, items: List[Any]) -> ArrayVal:
        # The first element with a known type fixes the element type; nested
        # empty literals take it on afterwards.
        elem_type: Optional[TypeSpec] = None
        for item in items:
            item_type = type_of(item)
            if item_type != TypeSpec('Array'):
                elem_type = item_type
                break
        if elem_type is not None and elem_type.kind == 'Void':
            raise fail('TypeMismatch', 'array elements cannot be Void')
        array = ArrayVal(elem_type, items)
        if elem_type is None:
            return array
        adopt_type(array, TypeSpec.array(elem_type))
        for item in items:
            try:
                check_value(item, elem_type)
            except TypeError as e:
                raise fail('TypeMismatch', f'array elements must share one type: {e}')
        return array

    def resolve_index(self, node: Index, env: Environment) -> Tuple[ArrayVal, int]:
        target = self.evaluate(node.target, env)
        index = self.evaluate(node.index, env)
        if not isinstance(target, ArrayVal):
            raise fail('TypeMismatch', f'cannot index a value of type {type_name(target)}')
        if isinstance(index, bool) or not isinstance(index, int):
            raise fail('TypeMismatch', f'array index must be Int, got {type_name(index)}')
        if index < 0 or index >= len(target.items):
            raise fail('IndexOutOfBounds',
                       f'index {index} out of bounds for array of length {len(target.items)}')
        return target, index

    def assign_lvalue(self, target: Node, value: Any, env: Environment):
        # target can be Variable or Index
        if isinstance(target, Variable):
            env.set(target.name, value)
            self.debug(f"assign {target.name} = {to_string(value)}", 2)
            return
        array, index = self.resolve_index(target, env)
        self.store_element(array, index, value)

    def store_element(self, array: ArrayVal, index: int, value: Any):
        adopt_type(value, array.elem_type)
        try:
            check_value(value, array.elem_type)
        except TypeError as e:
            raise fail('TypeMismatch', f'cannot store into array element: {e}')
        array.items[index] = value

    def compound_assign(self, node: CompoundAssign, env: Environment):
        value = self.evaluate(node.value, env)
        target = node.target
        if isinstance(target, Variable):
            current = env.get(target.name)
            env.set(target.name, self.apply_binary_op(node.op, current, value))
            self.debug(f"assign {target.name} {node.op}= {to_string(value)}", 2)
            return
        # The index expression is evaluated once.
        array, index = self.resolve_index(target, env)
        self.store_element(array, index, self.apply_binary_op(node.op, array.items[index], value))

    def call(self, node: Call, env: Environment) -> Any:
        if node.callee in self.builtins:
            func = self.builtins[node.callee]
        else:
            scope = env.resolve(node.callee)
            if scope is None:
                raise fail('UndefinedFunction', f'undefined function {node.callee}')
            func = scope.values[node.callee]
        args = [self.evaluate(arg, env) for arg in node.args]
        return self.call_function(func, args)

    def call_function(self, func: Any, args: List[Any]) -> Any:
        if isinstance(func, BuiltinFunction):
            if len(args) != func.arity:
                raise fail('ArityMismatch',
                           f"{func.name} expects {func.arity} argument(s), got {len(args)}")
            return func.fn(args)
        if not isinstance(func, FunctionValue):
            raise fail('NotCallable', f'a value of type {type_name(func)} is not callable')
        if len(args) != len(func.params):
            raise fail('ArityMismatch',
                       f"{func.name} expects {len(func.params)} argument(s), got {len(args)}")
        if self.call_depth >= self.max_call_depth:
            raise fail('StackOverflow',
                       f'maximum call depth of {self.max_call_depth} exceeded in {func.name}')
        # Create new environment for call; closure's env is parent
        call_env = func.env.child()
        for param, arg in zip(func.params, args):
            try:
                check_value(arg, param.type_spec)
            except TypeError as e:
                raise fail('TypeMismatch', f"argument {param.name} of {func.name}: {e}")
            call_env.declare(param.name, param.type_spec, copy_value(arg))
        self.debug(f"call {func.name}({', '.join(to_string(a) for a in args)})")
        self.call_depth += 1
        try:
            res = self.execute_block(func.body.statements, call_env)
        finally:
            self.call_depth -= 1
        if isinstance(res, ReturnSignal):
            ret_val = res.value
        elif func.return_type.kind != 'Void':
            raise fail('MissingReturn',
                       f"function {func.name} must return {func.return_type} but reached its end")
        else:
            ret_val = VOID
        if func.return_type.kind == 'Void':
            if ret_val is not VOID:
                raise fail('TypeMismatch', f"function {func.name} returns Void but returned a value")
        else:
            adopt_type(ret_val, func.return_type)
            try:
                check_value(ret_val, func.return_type)
            except TypeError as e:
                raise fail('TypeMismatch', f"return type mismatch in function {func.name}: {e}")
        self.debug(f"return from {func.name}: {to_string(ret_val)}")
        return ret_val

    def apply_binary_op(self, op: str, a: Any, b: Any) -> Any:
        if op in ARITHMETIC_OPS:
            return self.arithmetic(op, a, b)
        if op in COMPARISON_OPS:
            if is_numeric(a) and is_numeric(b):
                pass
            elif isinstance(a, str) and isinstance(b, str):
                pass
            elif isinstance(a, CharVal) and isinstance(b, CharVal):
                a, b = a.char, b.char
            else:
                raise self.mismatch(op, a, b)
            if op == '<':
                return a < b
            if op == '>':
                return a > b
            if op == '<=':
                return a <= b
            return a >= b
        if op in ('==', '!='):
            if not self.comparable(a, b):
                raise self.mismatch(op, a, b)
            eq = self.equal_values(a, b)
            return eq if op == '==' else not eq
        raise NotImplementedError(f'unknown operator {op}')

    def arithmetic(self, op: str, a: Any, b: Any) -> Any:
        if op == '+' and isinstance(a, str) and isinstance(b, str):
            return a + b
        if not (is_numeric(a) and is_numeric(b)):
            raise self.mismatch(op, a, b)
        if op in ('/', '%') and b == 0:
            raise fail('DivisionByZero', 'division by zero' if op == '/' else 'modulo by zero')
        is_float = isinstance(a, float) or isinstance(b, float)
        if op == '+':
            return a + b
        if op == '-':
            return a - b
        if op == '*':
            return a * b
        if op == '/':
            return a / b if is_float else int_div(a, b)
        if op == '%':
            # sign follows the dividend
            return math.fmod(a, b) if is_float else a - b * int_div(a, b)
        # op == '**'
        if not is_float and b >= 0:
            return a ** b
        if a == 0 and b < 0:
            raise fail('DivisionByZero', 'zero raised to a negative power')
        try:
            return math.pow(a, b)
        except (ValueError, OverflowError) as e:
            raise fail('InvalidOperation', f'cannot compute {to_string(a)} ** {to_string(b)}: {e}')

    def mismatch(self, op: str, a: Any, b: Any) -> RemyRuntimeError:
        return fail('TypeMismatch',
                    f'unsupported operand types for {op}: {type_name(a)} and {type_name(b)}')

    def comparable(self, a: Any, b: Any) -> bool:
        if is_numeric(a) and is_numeric(b):
            return True
        if isinstance(a, ArrayVal) and isinstance(b, ArrayVal):
            return a.elem_type is None or b.elem_type is None or a.elem_type == b.elem_type
        return type_of(a) == type_of(b)

    def equal_values(self, a: Any, b: Any) -> bool:
        if isinstance(a, ArrayVal) and isinstance(b, ArrayVal):
            if len(a.items) != len(b.items):
                return False
            return all(self.comparable(x, y) and self.equal_values(x, y)
                       for x, y in zip(a.items, b.items))
        return a == b


def run_program(source: str, debug_level: int = 0, output: Optional[TextIO] = None) -> Any:
    """Convenience function to lex, parse and run a program from source."""
    ast_program = parse_program(source)
    interpreter = Interpreter(debug_level=debug_level, output=output)
    return interpreter.run(ast_program)


def run_file(file_path: str, debug_level: int = 0) -> Any:
    """Read, parse and run a RemyLang source file."""
    with open(file_path, 'r', encoding='utf-8') as f:
        source = f.read()
    return run_program(source, debug_level=debug_level)


def check_program(source: str) -> List[Diagnostic]:
    """Lex and parse only, returning the diagnostics found (empty when valid)."""
    try:
        parse(tokenize(source))
    except RemyError as exc:
        return [exc.diagnostic]
    return []

"""Parser for the RemyLang language.

A recursive-descent parser over the token list produced by the lexer.
Statements are parsed by dedicated methods; expressions use precedence
climbing (Pratt parsing) driven by the `BINARY_OPS` table below.

The parser performs no error recovery: the first unexpected token raises
a `ParseError` naming what was expected and what was found.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, Union

from lark import Token

from .ast import (
    ArrayLit, Assign, BinaryOp, Block, Call, CompoundAssign, ExprStmt,
    FuncDecl, FuncParam, Grouping, IfStmt, Index, Literal, Node, Program,
    ReturnStmt, UnaryOp, VarDecl, Variable, WhileStmt,
)
from .errors import Diagnostic, ParseError
from .lexer import tokenize, unescape
from .tokens import (
    CHAR, COMPOUND_ASSIGN, EOF, FLOAT, IDENT, INT, STRING, describe,
    describe_token, make_token,
)
from .types import PRIMITIVE_TYPES, TypeSpec

# token kind -> (operator, binding power, right associative)
BINARY_OPS = {
    'OR': ('||', 1, False),
    'AND': ('&&', 2, False),
    'EQEQ': ('==', 3, False),
    'BANGEQ': ('!=', 3, False),
    'LESS': ('<', 4, False),
    'GREATER': ('>', 4, False),
    'LESSEQ': ('<=', 4, False),
    'GREATEREQ': ('>=', 4, False),
    'PLUS': ('+', 5, False),
    'MINUS': ('-', 5, False),
    'STAR': ('*', 6, False),
    'SLASH': ('/', 6, False),
    'PERCENT': ('%', 6, False),
    'POWER': ('**', 7, True),
}

UNARY_OPS = {'MINUS': '-', 'BANG': '!'}

TYPE_NAMES = PRIMITIVE_TYPES + ('Array', 'Void')

# Host frames available while parsing; each nesting level takes a few.
PARSE_RECURSION_LIMIT = 4000


@contextmanager
def recursion_limit(limit: int) -> Iterator[None]:
    """Raise the host recursion limit to at least `limit` for the duration."""
    previous = sys.getrecursionlimit()
    if previous < limit:
        sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


class Parser:
    def __init__(self, tokens: Iterable[Token]):
        self.tokens: List[Token] = list(tokens)
        if not self.tokens or self.tokens[-1].type != EOF:
            # Streams cut short still end in EOF so errors have a position.
            last = self.tokens[-1] if self.tokens else None
            line = last.end_line if last is not None and last.end_line else 1
            column = last.end_column if last is not None and last.end_column else 1
            self.tokens.append(make_token(EOF, '', 0, line, column, line, column, 0))
        self.pos = 0

    # Token helpers

    def peek(self, offset: int = 0) -> Token:
        i = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[i]

    def advance(self) -> Token:
        token = self.peek()
        if token.type != EOF:
            self.pos += 1
        return token

    def check(self, kind: str) -> bool:
        return self.peek().type == kind

    def match(self, kind: str) -> bool:
        if self.check(kind):
            self.advance()
            return True
        return False

    def expect(self, kind: str, context: str = '') -> Token:
        if self.check(kind):
            return self.advance()
        raise self.unexpected(describe(kind) + context)

    def unexpected(self, expected: str, token: Optional[Token] = None) -> ParseError:
        token = token if token is not None else self.peek()
        found = describe_token(token)
        kind = 'UnexpectedEndOfInput' if token.type == EOF else 'UnexpectedToken'
        return ParseError(Diagnostic(kind, f"expected {expected}, found {found}",
                                     token.line, token.column))

    def error(self, kind: str, message: str, token: Token) -> ParseError:
        return ParseError(Diagnostic(kind, message, token.line, token.column))

    @staticmethod
    def at(node: Node, token: Token) -> Node:
        node.line = token.line
        node.column = token.column
        return node

    # Program and statements

    def parse_program(self) -> Program:
        start = self.peek()
        statements: List[Node] = []
        while not self.check(EOF):
            statements.append(self.parse_statement())
        return self.at(Program(statements), start)

    def parse_statement(self) -> Node:
        token = self.peek()
        if token.type == 'FUNC':
            return self.parse_func_decl()
        if token.type == 'IF':
            return self.parse_if_stmt()
        if token.type == 'WHILE':
            return self.parse_while_stmt()
        if token.type == 'RETURN':
            return self.parse_return_stmt()
        if token.type == 'LBRACE':
            return self.parse_block()
        if self.is_declaration_start():
            return self.parse_var_decl()
        return self.parse_assign_or_expr()

    def is_declaration_start(self) -> bool:
        # `Type name` or `Array<`; any `IDENT IDENT` pair is a declaration
        # attempt, so unknown type names get a proper diagnostic.
        token = self.peek()
        if token.type != IDENT:
            return False
        following = self.peek(1).type
        if following == IDENT:
            return True
        return token.value == 'Array' and following == 'LESS'

    def parse_var_decl(self) -> VarDecl:
        start = self.peek()
        type_spec = self.parse_type()
        name = self.expect(IDENT, ' (variable name)')
        self.expect('EQUAL', " after variable name")
        expr = self.parse_expression()
        self.expect('SEMICOLON', ' after declaration')
        return self.at(VarDecl(type_spec, name.value, expr), start)

    def parse_assign_or_expr(self) -> Node:
        start = self.peek()
        expr = self.parse_expression()
        op_token = self.peek()
        if op_token.type == 'EQUAL' or op_token.type in COMPOUND_ASSIGN:
            if not isinstance(expr, (Variable, Index)):
                raise self.error('InvalidAssignmentTarget',
                                 'only a variable or an array element can be assigned to',
                                 start)
            self.advance()
            value = self.parse_expression()
            self.expect('SEMICOLON', ' after assignment')
            if op_token.type == 'EQUAL':
                return self.at(Assign(expr, value), start)
            return self.at(CompoundAssign(expr, COMPOUND_ASSIGN[op_token.type], value), start)
        self.expect('SEMICOLON', ' after expression')
        return self.at(ExprStmt(expr), start)

    def parse_type(self, allow_void: bool = False) -> TypeSpec:
        token = self.peek()
        if token.type != IDENT:
            raise self.unexpected('type name')
        if token.value not in TYPE_NAMES:
            raise self.error('InvalidTypeAnnotation',
                             f"unknown type {token.value!r}, expected one of "
                             "Int, Float, String, Bool, Char, Array<T>",
                             token)
        self.advance()
        if token.value == 'Void':
            if not allow_void:
                raise self.error('InvalidTypeAnnotation',
                                 'Void is only allowed as a return type', token)
            return TypeSpec.void()
        if token.value == 'Array':
            if not self.check('LESS'):
                raise self.error('InvalidTypeAnnotation',
                                 'Array needs an element type, e.g. Array<Int>', token)
            self.advance()
            element = self.parse_type()
            self.expect('GREATER', ' to close the array type')
            return TypeSpec.array(element)
        return TypeSpec(token.value)

    def parse_func_decl(self) -> FuncDecl:
        start = self.expect('FUNC')
        name = self.expect(IDENT, ' (function name)')
        self.expect('LPAR', ' after function name')
        params: List[FuncParam] = []
        if not self.check('RPAR'):
            while True:
                type_spec = self.parse_type()
                param_name = self.expect(IDENT, ' (parameter name)')
                params.append(FuncParam(type_spec, param_name.value))
                if not self.match('COMMA'):
                    break
        self.expect('RPAR', ' after parameters')
        return_type = TypeSpec.void()
        if self.match('ARROW'):
            return_type = self.parse_type(allow_void=True)
        body = self.parse_block()
        return self.at(FuncDecl(name.value, params, return_type, body), start)

    def parse_block(self) -> Block:
        start = self.expect('LBRACE')
        statements: List[Node] = []
        while not self.check('RBRACE'):
            if self.check(EOF):
                raise self.unexpected("'}' to close the block")
            statements.append(self.parse_statement())
        self.advance()
        return self.at(Block(statements), start)

    def parse_condition(self, keyword: str) -> Node:
        self.expect('LPAR', f" after '{keyword}'")
        condition = self.parse_expression()
        self.expect('RPAR', ' after condition')
        return condition

    def parse_if_stmt(self) -> IfStmt:
        start = self.expect('IF')
        condition = self.parse_condition('if')
        then_block = self.parse_block()
        else_branch: Optional[Union[Block, IfStmt]] = None
        if self.match('ELSE'):
            if self.check('IF'):
                else_branch = self.parse_if_stmt()
            else:
                else_branch = self.parse_block()
        return self.at(IfStmt(condition, then_block, else_branch), start)

    def parse_while_stmt(self) -> WhileStmt:
        start = self.expect('WHILE')
        condition = self.parse_condition('while')
        body = self.parse_block()
        return self.at(WhileStmt(condition, body), start)

    def parse_return_stmt(self) -> ReturnStmt:
        start = self.expect('RETURN')
        value: Optional[Node] = None
        if not self.check('SEMICOLON'):
            value = self.parse_expression()
        self.expect('SEMICOLON', ' after return')
        return self.at(ReturnStmt(value), start)

    # Expression parsing (Pratt parser)

    def parse_expression(self, min_power: int = 0) -> Node:
        left = self.parse_unary()
        while self.peek().type in BINARY_OPS:
            op, power, right_assoc = BINARY_OPS[self.peek().type]
            if power < min_power:
                break
            op_token = self.advance()
            # Left-associative operators bind their right side one level tighter.
            right = self.parse_expression(power if right_assoc else power + 1)
            left = self.at(BinaryOp(op, left, right), op_token)
        return left

    def parse_unary(self) -> Node:
        token = self.peek()
        if token.type in UNARY_OPS:
            self.advance()
            operand = self.parse_unary()
            return self.at(UnaryOp(UNARY_OPS[token.type], operand), token)
        return self.parse_postfix()

    def parse_postfix(self) -> Node:
        node = self.parse_primary()
        while True:
            if self.check('LSQB'):
                token = self.advance()
                index = self.parse_expression()
                self.expect('RSQB', ' after index')
                node = self.at(Index(node, index), token)
                continue
            if self.check('LPAR') and isinstance(node, Variable):
                self.advance()
                args = self.parse_arguments()
                node = Call(node.name, args, line=node.line, column=node.column)
                continue
            break
        return node

    def parse_arguments(self) -> List[Node]:
        args: List[Node] = []
        if not self.check('RPAR'):
            while True:
                args.append(self.parse_expression())
                if not self.match('COMMA'):
                    break
        self.expect('RPAR', ' after arguments')
        return args

    def parse_primary(self) -> Node:
        token = self.peek()
        kind = token.type
        if kind == INT:
            self.advance()
            return self.at(Literal(int(token.value), TypeSpec.integer()), token)
        if kind == FLOAT:
            self.advance()
            return self.at(Literal(float(token.value), TypeSpec.float_()), token)
        if kind == STRING:
            self.advance()
            return self.at(Literal(unescape(token.value[1:-1]), TypeSpec.string()), token)
        if kind == CHAR:
            self.advance()
            return self.at(Literal(unescape(token.value[1:-1]), TypeSpec.char()), token)
        if kind in ('TRUE', 'FALSE'):
            self.advance()
            return self.at(Literal(kind == 'TRUE', TypeSpec.boolean()), token)
        if kind == IDENT:
            self.advance()
            return self.at(Variable(token.value), token)
        if kind == 'LSQB':
            self.advance()
            elements: List[Node] = []
            if not self.check('RSQB'):
                while True:
                    elements.append(self.parse_expression())
                    if not self.match('COMMA'):
                        break
            self.expect('RSQB', ' after array elements')
            return self.at(ArrayLit(elements), token)
        if kind == 'LPAR':
            self.advance()
            inner = self.parse_expression()
            self.expect('RPAR', ' after expression')
            return self.at(Grouping(inner), token)
        raise self.unexpected('expression')


def parse(tokens: Iterable[Token]) -> Program:
    """Parse a token sequence into a Program AST."""
    parser = Parser(tokens)
    try:
        with recursion_limit(PARSE_RECURSION_LIMIT):
            return parser.parse_program()
    except RecursionError:
        token = parser.peek()
        raise ParseError(Diagnostic('NestingTooDeep', 'program is nested too deeply to parse',
                                    token.line, token.column)) from None


def parse_program(source: str) -> Program:
    """Tokenize and parse RemyLang source code into a Program AST."""
    return parse(tokenize(source))

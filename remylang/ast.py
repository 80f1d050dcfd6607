"""Abstract Syntax Tree (AST) definitions for the RemyLang language.

The AST classes defined in this module represent the syntactic structure
of parsed RemyLang programs. They are built once by the parser and read by
the interpreter, which never mutates them. Every node records the line and
column of its first token; positions do not take part in node equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from .types import TypeSpec


@dataclass
class Node:
    """Base class for all AST nodes."""
    line: int = field(default=0, kw_only=True, compare=False, repr=False)
    column: int = field(default=0, kw_only=True, compare=False, repr=False)


@dataclass
class Program(Node):
    body: List[Node]


# Expressions

@dataclass
class Literal(Node):
    value: Any
    literal_type: TypeSpec


@dataclass
class Variable(Node):
    name: str


@dataclass
class BinaryOp(Node):
    op: str
    left: Node
    right: Node


@dataclass
class UnaryOp(Node):
    op: str
    operand: Node


@dataclass
class Grouping(Node):
    inner: Node


@dataclass
class Call(Node):
    callee: str
    args: List[Node]


@dataclass
class Index(Node):
    target: Node
    index: Node


@dataclass
class ArrayLit(Node):
    elements: List[Node]


# Statements

@dataclass
class ExprStmt(Node):
    expr: Node


@dataclass
class VarDecl(Node):
    type_spec: TypeSpec
    name: str
    expr: Node


@dataclass
class Assign(Node):
    target: Union[Variable, Index]
    value: Node


@dataclass
class CompoundAssign(Node):
    target: Union[Variable, Index]
    op: str  # the arithmetic operator, e.g. '+' for '+='
    value: Node


@dataclass
class Block(Node):
    statements: List[Node]


@dataclass
class IfStmt(Node):
    condition: Node
    then_block: Block
    else_branch: Optional[Union[Block, 'IfStmt']] = None


@dataclass
class WhileStmt(Node):
    condition: Node
    body: Block


@dataclass
class ReturnStmt(Node):
    value: Optional[Node] = None


@dataclass
class FuncParam:
    type_spec: TypeSpec
    name: str


@dataclass
class FuncDecl(Node):
    name: str
    params: List[FuncParam]
    return_type: TypeSpec
    body: Block

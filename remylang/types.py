"""Type definitions and helpers for RemyLang.

This module defines the runtime type system used by the interpreter. It
includes the `TypeSpec` class describing language-level types, the classes
representing runtime values that have no direct Python counterpart, and
utilities for checking values against type specifications and rendering
them as text.

Scalar values map onto Python objects: Int is `int`, Float is `float`,
String is `str` and Bool is `bool`. Because `bool` is a subclass of `int`
every check below tests for `bool` first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

PRIMITIVE_TYPES = ('Int', 'Float', 'String', 'Bool', 'Char')


@dataclass(frozen=True)
class TypeSpec:
    """Represents a RemyLang type specification.

    A type is described by its `kind` (one of 'Int', 'Float', 'String',
    'Bool', 'Char', 'Array', 'Function' or 'Void') and optionally type
    arguments. For example, `Array<Int>` becomes
    `TypeSpec(kind='Array', args=(TypeSpec(kind='Int'),))`. Function types
    keep their parameter types followed by the return type in `args`.
    """
    kind: str
    args: Tuple['TypeSpec', ...] = ()

    def __repr__(self) -> str:
        if self.kind == 'Function':
            params = ", ".join(repr(a) for a in self.args[:-1])
            return f"Function({params}) -> {self.args[-1]!r}"
        if not self.args:
            return self.kind
        inner = ", ".join(repr(a) for a in self.args)
        return f"{self.kind}<{inner}>"

    __str__ = __repr__

    # Convenience constructors
    @staticmethod
    def integer() -> 'TypeSpec':
        return TypeSpec('Int')

    @staticmethod
    def float_() -> 'TypeSpec':
        return TypeSpec('Float')

    @staticmethod
    def string() -> 'TypeSpec':
        return TypeSpec('String')

    @staticmethod
    def boolean() -> 'TypeSpec':
        return TypeSpec('Bool')

    @staticmethod
    def char() -> 'TypeSpec':
        return TypeSpec('Char')

    @staticmethod
    def array(elem: 'TypeSpec') -> 'TypeSpec':
        return TypeSpec('Array', (elem,))

    @staticmethod
    def function(params: List['TypeSpec'], ret: 'TypeSpec') -> 'TypeSpec':
        return TypeSpec('Function', tuple(params) + (ret,))

    @staticmethod
    def void() -> 'TypeSpec':
        return TypeSpec('Void')

    @property
    def element(self) -> 'TypeSpec':
        return self.args[0]


@dataclass(frozen=True)
class VoidVal:
    """The value of a call to a function that returns nothing."""
    def __repr__(self) -> str:
        return 'void'


VOID = VoidVal()


@dataclass(frozen=True)
class CharVal:
    """A single character. Kept apart from `str` so Char and String differ."""
    char: str

    def __repr__(self) -> str:
        return f"Char({self.char!r})"


@dataclass
class ArrayVal:
    """Represents a RemyLang array value.

    An array has an element type (a TypeSpec) and a list of contained items.
    The element type of an empty array literal is not known until it is
    bound to a declared type, so it is None until then.
    """
    elem_type: Optional[TypeSpec]
    items: List[Any]

    def __repr__(self) -> str:
        return f"Array({self.elem_type!r}, {self.items!r})"


@dataclass
class FunctionValue:
    """A user-defined function closed over the scope it was declared in."""
    name: str
    params: List[Any]
    return_type: TypeSpec
    body: Any
    env: Any = field(repr=False, compare=False)

    @property
    def type_spec(self) -> TypeSpec:
        return TypeSpec.function([p.type_spec for p in self.params], self.return_type)

    def __repr__(self) -> str:
        return f"<function {self.name}>"


def type_of(value: Any) -> TypeSpec:
    """Return the RemyLang type of a runtime value."""
    if isinstance(value, bool):
        return TypeSpec.boolean()
    if isinstance(value, int):
        return TypeSpec.integer()
    if isinstance(value, float):
        return TypeSpec.float_()
    if isinstance(value, str):
        return TypeSpec.string()
    if isinstance(value, CharVal):
        return TypeSpec.char()
    if isinstance(value, ArrayVal):
        if value.elem_type is None:
            return TypeSpec('Array')
        return TypeSpec.array(value.elem_type)
    if isinstance(value, VoidVal):
        return TypeSpec.void()
    if isinstance(value, FunctionValue):
        return value.type_spec
    # Builtins have no declared signature.
    return TypeSpec('Function')


def type_name(value: Any) -> str:
    return repr(type_of(value))


def is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_value(value: Any, spec: TypeSpec) -> bool:
    """Check whether a runtime value matches a type specification.

    Returns True if the value conforms to the given type specification and
    raises a Python TypeError with a descriptive message otherwise. The
    caller turns that into a TypeMismatch diagnostic.
    """
    if spec.kind == 'Array':
        if not isinstance(value, ArrayVal):
            raise TypeError(f"expected {spec}, got {type_name(value)}")
        # Literals made only of empty arrays have no element type yet.
        if value.elem_type is None:
            for item in value.items:
                check_value(item, spec.element)
            return True
        if value.elem_type != spec.element:
            raise TypeError(f"expected {spec}, got {type_name(value)}")
        return True
    actual = type_of(value)
    if actual != spec:
        raise TypeError(f"expected {spec}, got {actual}")
    return True


def adopt_type(value: Any, spec: TypeSpec) -> Any:
    """Stamp declared element types onto untyped empty array literals."""
    if isinstance(value, ArrayVal) and spec.kind == 'Array':
        if value.elem_type is None:
            value.elem_type = spec.element
        for item in value.items:
            adopt_type(item, spec.element)
    return value


def copy_value(value: Any) -> Any:
    """Copy a value for binding. Arrays are values, so they are copied deeply."""
    if isinstance(value, ArrayVal):
        return ArrayVal(value.elem_type, [copy_value(item) for item in value.items])
    return value


def to_string(value: Any) -> str:
    """Convert a RemyLang value to the text `print` shows for it."""
    if isinstance(value, bool):
        return 'True' if value else 'False'
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return value
    if isinstance(value, CharVal):
        return value.char
    if isinstance(value, ArrayVal):
        return '[' + ', '.join(to_string(item) for item in value.items) + ']'
    if isinstance(value, VoidVal):
        return 'void'
    return repr(value)

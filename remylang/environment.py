from typing import Any, Dict, Optional

from remylang.errors import Diagnostic, RemyRuntimeError
from remylang.types import TypeSpec, adopt_type, check_value


class Environment:
    """A lexical scope mapping names to declared types and values.

    Scopes are chained through `parent`; the chain from the innermost scope
    out to the global one is the interpreter's scope stack. A child scope is
    created for every block, call and loop iteration and simply dropped when
    control leaves it, so no binding outlives its scope.
    """
    def __init__(self, parent: Optional['Environment'] = None):
        self.parent = parent
        self.values: Dict[str, Any] = {}
        self.types: Dict[str, TypeSpec] = {}

    def child(self) -> 'Environment':
        return Environment(parent=self)

    def resolve(self, name: str) -> Optional['Environment']:
        """Return the innermost scope that binds `name`, if any."""
        env: Optional[Environment] = self
        while env is not None:
            if name in env.values:
                return env
            env = env.parent
        return None

    def get(self, name: str) -> Any:
        env = self.resolve(name)
        if env is None:
            raise RemyRuntimeError(Diagnostic('UndefinedVariable', f'undefined variable {name}'))
        return env.values[name]

    def set(self, name: str, value: Any):
        env = self.resolve(name)
        if env is None:
            raise RemyRuntimeError(Diagnostic(
                'UndefinedVariable',
                f"assignment to undefined variable {name}; declare it first with 'Type {name} = ...'"))
        declared = env.types[name]
        adopt_type(value, declared)
        try:
            check_value(value, declared)
        except TypeError as e:
            raise RemyRuntimeError(Diagnostic('TypeMismatch', f'cannot assign to {name}: {e}'))
        env.values[name] = value

    def declare(self, name: str, type_spec: TypeSpec, value: Any):
        if name in self.values:
            raise RemyRuntimeError(Diagnostic('DuplicateDeclaration',
                                              f'{name} is already declared in this scope'))
        adopt_type(value, type_spec)
        try:
            check_value(value, type_spec)
        except TypeError as e:
            raise RemyRuntimeError(Diagnostic('TypeMismatch', f'cannot declare {name}: {e}'))
        self.values[name] = value
        self.types[name] = type_spec

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from remylang.types import TypeSpec


@dataclass
class BuiltinFunction:
    name: str
    arity: int
    return_type: TypeSpec
    fn: Callable[[List[Any]], Any]
    def __repr__(self) -> str:
        return f"<builtin {self.name}>"

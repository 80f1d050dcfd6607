from .core import core_builtins

__all__ = ['core_builtins']

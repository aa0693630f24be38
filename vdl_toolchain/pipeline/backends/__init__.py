"""
Code generation backends.

Contains the built-in generators and the registry used to look them up by
target kind.
"""

from __future__ import annotations

from .base import CodeBackend
from .ir_backend import IrBackend
from .python_backend import PythonBackend
from .typescript_backend import TypeScriptBackend

BACKENDS: dict[str, type[CodeBackend]] = {
    "python": PythonBackend,
    "typescript": TypeScriptBackend,
    "ir": IrBackend,
}


def get_backend(name: str) -> type[CodeBackend]:
    """Return the backend class registered under ``name``."""
    try:
        return BACKENDS[name]
    except KeyError:
        raise ValueError(f"unknown generator {name!r} (expected one of {', '.join(sorted(BACKENDS))})") from None


__all__ = [
    "BACKENDS",
    "CodeBackend",
    "IrBackend",
    "PythonBackend",
    "TypeScriptBackend",
    "get_backend",
]

"""
Output module.

Contains the atomic writer used by built-in generators and plugins alike.
"""

from __future__ import annotations

from .atomic_writer import AtomicWriter, GeneratedFile, check_relative_path

__all__ = [
    "AtomicWriter",
    "GeneratedFile",
    "check_relative_path",
]

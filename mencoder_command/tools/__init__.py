"""
Executable discovery.
"""

from .paths import BinaryKind, BinaryLocator, forget_paths

__all__ = ["BinaryKind", "BinaryLocator", "forget_paths"]

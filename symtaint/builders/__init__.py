"""Instruction semantics builders."""

from . import base, flags, alu  # noqa: F401
from .base import HANDLERS, IRBuilder

__all__ = ["HANDLERS", "IRBuilder", "alu", "base", "flags"]

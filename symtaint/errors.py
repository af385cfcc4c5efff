"""Exception hierarchy shared by the analysis core."""
from __future__ import annotations

from typing import Optional


class SymTaintError(RuntimeError):
    """Base class for every error raised by the analysis core.

    The builder pipeline annotates the error with the address and mnemonic of
    the instruction being processed before it reaches the caller.
    """

    def __init__(self, message: str, address: Optional[int] = None, mnemonic: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.address = address
        self.mnemonic = mnemonic

    def annotate(self, address: int, mnemonic: str) -> "SymTaintError":
        if self.address is None:
            self.address = address
        if self.mnemonic is None:
            self.mnemonic = mnemonic
        return self

    def __str__(self) -> str:
        if self.address is None:
            return self.message
        return f"{self.message} (at {self.address:#x}: {self.mnemonic})"


class UnconfiguredOperands(SymTaintError):
    """Raised when a builder is processed before its operands were bound."""


class UnsupportedAddressingMode(SymTaintError):
    """Raised when no handler is registered for the decoded operand types."""


class WidthMismatch(SymTaintError):
    """Raised when an expression is built from operands of inconsistent widths."""


class InvalidContextTarget(SymTaintError):
    """Raised when concrete context is set on an isolated flag."""


class UnknownRegister(SymTaintError):
    """Raised when a register name is not part of the architecture."""


class UnknownTaintPolicy(SymTaintError):
    """Raised when no taint policy is registered for an opcode class."""


class TraceFormatError(SymTaintError):
    """Raised when a trace line cannot be turned into a decoded instruction."""

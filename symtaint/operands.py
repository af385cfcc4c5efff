"""Decoded operand types and addressing-mode classification."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from .arch import RegisterRef

REG_IMM = "reg-imm"
REG_REG = "reg-reg"
REG_MEM = "reg-mem"
MEM_IMM = "mem-imm"
MEM_REG = "mem-reg"

ADDRESSING_MODES = (REG_IMM, REG_REG, REG_MEM, MEM_IMM, MEM_REG)


@dataclass(frozen=True)
class Immediate:
    value: int
    bits: int

    kind = "imm"

    def __str__(self) -> str:
        return hex(self.value)

    def to_dict(self) -> dict:
        return {"type": self.kind, "value": self.value, "bits": self.bits}


@dataclass(frozen=True)
class RegisterOperand:
    ref: RegisterRef

    kind = "reg"

    @property
    def bits(self) -> int:
        return self.ref.bits

    def __str__(self) -> str:
        return self.ref.name

    def to_dict(self) -> dict:
        return {"type": self.kind, "name": self.ref.name, "bits": self.bits}


@dataclass(frozen=True)
class MemoryOperand:
    """A resolved memory access: concrete address and size in bytes."""

    address: int
    size: int

    kind = "mem"

    @property
    def bits(self) -> int:
        return self.size * 8

    def __str__(self) -> str:
        return f"[{self.address:#x}:{self.size}]"

    def to_dict(self) -> dict:
        return {"type": self.kind, "address": self.address, "size": self.size}


Operand = Union[Immediate, RegisterOperand, MemoryOperand]


def addressing_mode(operands: Sequence[Operand]) -> str:
    """Name of the operand-type combination, e.g. ``reg-imm``."""
    return "-".join(operand.kind for operand in operands)

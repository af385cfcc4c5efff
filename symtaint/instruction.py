"""Decoded input instructions and analysed output instructions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple, Union

from .arch import RegisterRef
from .context import ContextHandler
from .errors import InvalidContextTarget
from .operands import MemoryOperand, Operand, RegisterOperand
from .state import SymbolicElement

MAX_OPCODE_SIZE = 32


def _check_opcodes(opcodes: bytes) -> bytes:
    opcodes = bytes(opcodes)
    if len(opcodes) > MAX_OPCODE_SIZE:
        raise ValueError(f"opcode bytes too long ({len(opcodes)} > {MAX_OPCODE_SIZE})")
    return opcodes


class _CheckedOpcodes:
    """Validates ``opcodes`` on every assignment, including the dataclass __init__."""

    def __setattr__(self, name, value):
        if name == "opcodes":
            value = _check_opcodes(value)
        super().__setattr__(name, value)


@dataclass
class DecodedInstruction(_CheckedOpcodes):
    """What the decoder hands over: operands plus the concrete context to load."""

    address: int
    mnemonic: str
    operands: List[Operand] = field(default_factory=list)
    disassembly: str = ""
    opcodes: bytes = b""
    thread_id: int = 0
    is_branch: bool = False
    is_condition_taken: bool = False
    is_control_flow: bool = False
    register_context: List[Tuple[RegisterRef, int]] = field(default_factory=list)
    memory_context: List[Tuple[MemoryOperand, int]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.mnemonic = self.mnemonic.lower()
        if not self.disassembly:
            rendered = ", ".join(str(operand) for operand in self.operands)
            self.disassembly = f"{self.mnemonic} {rendered}".strip()

    def update_context(self, target: Union[RegisterRef, RegisterOperand, MemoryOperand], value: int) -> None:
        """Queue a concrete value to load into the context before processing."""
        if isinstance(target, RegisterOperand):
            target = target.ref
        if isinstance(target, RegisterRef):
            if target.is_flag:
                raise InvalidContextTarget(f"cannot update the context of isolated flag '{target.name}'")
            self.register_context.append((target, value))
        elif isinstance(target, MemoryOperand):
            self.memory_context.append((target, value))
        else:
            raise TypeError(f"expected a register or memory operand, got {type(target).__name__}")

    def apply_context(self, context: ContextHandler) -> None:
        for ref, value in self.register_context:
            context.set_register_value(ref, value)
        for mem, value in self.memory_context:
            context.set_memory_value(mem.address, mem.size, value)


@dataclass
class Instruction(_CheckedOpcodes):
    """Result of processing one instruction: its operands and symbolic elements."""

    address: int
    disassembly: str
    opcodes: bytes = b""
    mnemonic: str = ""
    operands: List[Operand] = field(default_factory=list)
    elements: List[SymbolicElement] = field(default_factory=list)
    thread_id: int = 0
    is_branch: bool = False
    is_condition_taken: bool = False
    is_control_flow: bool = False

    @property
    def next_address(self) -> int:
        return self.address + len(self.opcodes)

    @property
    def first_operand(self) -> Operand:
        return self._operand(0, "first")

    @property
    def second_operand(self) -> Operand:
        return self._operand(1, "second")

    @property
    def third_operand(self) -> Operand:
        return self._operand(2, "third")

    def _operand(self, index: int, label: str) -> Operand:
        if index >= len(self.operands):
            raise IndexError(f"instruction at {self.address:#x} has no {label} operand")
        return self.operands[index]

    def add_element(self, element: SymbolicElement) -> None:
        self.elements.append(element)

    def is_tainted(self) -> bool:
        return any(element.taint for element in self.elements)

    def __str__(self) -> str:
        return f"{self.address:#x}: {self.disassembly}"

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "mnemonic": self.mnemonic,
            "next_address": self.next_address,
            "disassembly": self.disassembly,
            "opcodes": self.opcodes.hex(),
            "thread_id": self.thread_id,
            "operands": [operand.to_dict() for operand in self.operands],
            "elements": [element.to_dict() for element in self.elements],
            "branch": self.is_branch,
            "condition_taken": self.is_condition_taken,
            "control_flow": self.is_control_flow,
            "tainted": self.is_tainted(),
        }

"""Versioned symbolic identifiers for registers and memory."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from . import ast
from .arch import RegisterRef
from .operands import MemoryOperand

LOGGER = logging.getLogger(__name__)

# Returned by the resolvers when a location was never written symbolically
UNSET = -1

Destination = Union[RegisterRef, MemoryOperand]


@dataclass(frozen=True)
class SymbolicElement:
    """One versioned write produced while processing an instruction.

    Immutable once created, except that the taint engine stamps ``taint``
    exactly once right after the element is registered.
    """

    id: int
    expression: ast.Node
    destination: Destination
    taint: bool = False
    comment: str = ""
    _stamped: bool = field(default=False, repr=False, compare=False)

    def stamp_taint(self, tainted: bool) -> None:
        if self._stamped:
            raise ValueError(f"taint of #{self.id} was already stamped")
        object.__setattr__(self, "taint", tainted)
        object.__setattr__(self, "_stamped", True)

    @property
    def bits(self) -> int:
        return self.expression.bits

    @property
    def is_memory(self) -> bool:
        return isinstance(self.destination, MemoryOperand)

    def reference(self) -> ast.Reference:
        return ast.Reference(self.id, self.bits)

    def __str__(self) -> str:
        text = f"#{self.id} = {self.expression}"
        if self.comment:
            text += f" ; {self.comment}"
        return text

    def to_dict(self) -> dict:
        if self.is_memory:
            destination = {"type": "mem", "address": self.destination.address, "size": self.destination.size}
        else:
            destination = {"type": "reg", "name": self.destination.name}
        return {
            "id": self.id,
            "expression": str(self.expression),
            "destination": destination,
            "taint": self.taint,
            "comment": self.comment,
        }


@dataclass
class SymbolicStateManager:
    """Maps canonical registers and memory addresses to their latest version.

    Only integer ids are kept here; the elements themselves belong to the
    instructions that produced them.
    """

    next_id: int = 0
    registers: Dict[str, int] = field(default_factory=dict)
    memory: Dict[int, int] = field(default_factory=dict)
    widths: Dict[int, int] = field(default_factory=dict)
    offsets: Dict[int, int] = field(default_factory=dict)
    # id -> full canonical value before a partial write; bits outside the
    # written sub-register are read from it
    surrounds: Dict[int, ast.Node] = field(default_factory=dict)

    def resolve_register(self, canonical: str) -> int:
        return self.registers.get(canonical, UNSET)

    def resolve_memory(self, address: int) -> int:
        return self.memory.get(address, UNSET)

    def width_of(self, symbolic_id: int) -> Optional[int]:
        return self.widths.get(symbolic_id)

    def offset_of(self, symbolic_id: int) -> int:
        """Bit position the version was written at inside its canonical register."""
        return self.offsets.get(symbolic_id, 0)

    def surround_of(self, symbolic_id: int) -> Optional[ast.Node]:
        return self.surrounds.get(symbolic_id)

    def create_register_element(
        self,
        expression: ast.Node,
        destination: RegisterRef,
        comment: str = "",
        surround: Optional[ast.Node] = None,
    ) -> SymbolicElement:
        element = self._new_element(expression, destination, comment)
        self.registers[destination.canonical] = element.id
        if destination.low:
            self.offsets[element.id] = destination.low
        if surround is not None:
            self.surrounds[element.id] = surround
        LOGGER.debug("%s <- %s", destination.canonical, element)
        return element

    def create_memory_element(
        self, expression: ast.Node, destination: MemoryOperand, comment: str = ""
    ) -> SymbolicElement:
        element = self._new_element(expression, destination, comment)
        self.memory[destination.address] = element.id
        LOGGER.debug("[%#x] <- %s", destination.address, element)
        return element

    def reset(self) -> None:
        """Forget every version; ids keep growing so none is ever reissued."""
        self.registers.clear()
        self.memory.clear()
        self.widths.clear()
        self.offsets.clear()
        self.surrounds.clear()

    def _new_element(self, expression: ast.Node, destination: Destination, comment: str) -> SymbolicElement:
        element = SymbolicElement(self.next_id, expression, destination, comment=comment)
        self.widths[element.id] = expression.bits
        self.next_id += 1
        return element

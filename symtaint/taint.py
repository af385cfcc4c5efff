"""Taint state and per-addressing-mode spreading rules."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Set, Union

from . import operands as ops
from .arch import RegisterRef
from .errors import UnknownTaintPolicy
from .operands import Immediate, MemoryOperand, Operand, RegisterOperand
from .state import SymbolicElement

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaintPolicy:
    """How the destination taint is recomputed for one opcode class."""

    name: str
    combine: Callable[[bool, bool], bool]


# Arithmetic and logic opcodes read their destination: taint accumulates
ALU = TaintPolicy("alu", lambda destination, source: destination or source)
# Move-like opcodes overwrite their destination: taint is replaced
MOVE = TaintPolicy("move", lambda destination, source: source)

DEFAULT_POLICIES = {policy.name: policy for policy in (ALU, MOVE)}

Target = Union[RegisterRef, MemoryOperand, RegisterOperand, Immediate]


class TaintEngine:
    def __init__(self) -> None:
        self.tainted_registers: Set[str] = set()
        self.tainted_memory: Set[int] = set()
        self.policies: Dict[str, TaintPolicy] = dict(DEFAULT_POLICIES)
        self._rules = {
            ops.REG_IMM: self.spread_reg_imm,
            ops.REG_REG: self.spread_reg_reg,
            ops.REG_MEM: self.spread_reg_mem,
            ops.MEM_IMM: self.spread_mem_imm,
            ops.MEM_REG: self.spread_mem_reg,
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_register_tainted(self, ref: RegisterRef) -> bool:
        return ref.canonical in self.tainted_registers

    def is_memory_tainted(self, address: int, size: int = 1) -> bool:
        return any(address + offset in self.tainted_memory for offset in range(size))

    def is_tainted(self, target: Target) -> bool:
        if isinstance(target, Immediate):
            return False
        if isinstance(target, RegisterOperand):
            return self.is_register_tainted(target.ref)
        if isinstance(target, MemoryOperand):
            return self.is_memory_tainted(target.address, target.size)
        return self.is_register_tainted(target)

    # ------------------------------------------------------------------
    # Direct manipulation
    # ------------------------------------------------------------------
    def taint_register(self, ref: RegisterRef) -> None:
        self.tainted_registers.add(ref.canonical)

    def untaint_register(self, ref: RegisterRef) -> None:
        self.tainted_registers.discard(ref.canonical)

    def taint_memory(self, address: int, size: int = 1) -> None:
        self.tainted_memory.update(range(address, address + size))

    def untaint_memory(self, address: int, size: int = 1) -> None:
        self.tainted_memory.difference_update(range(address, address + size))

    def set_register_taint(self, ref: RegisterRef, tainted: bool) -> None:
        if tainted:
            self.taint_register(ref)
        else:
            self.untaint_register(ref)

    def set_memory_taint(self, mem: MemoryOperand, tainted: bool) -> None:
        if tainted:
            self.taint_memory(mem.address, mem.size)
        else:
            self.untaint_memory(mem.address, mem.size)

    def reset(self) -> None:
        self.tainted_registers.clear()
        self.tainted_memory.clear()

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------
    def register_policy(self, policy: TaintPolicy) -> None:
        self.policies[policy.name] = policy

    def policy(self, opcode_class: str) -> TaintPolicy:
        try:
            return self.policies[opcode_class]
        except KeyError:
            raise UnknownTaintPolicy(f"no taint policy for opcode class '{opcode_class}'") from None

    # ------------------------------------------------------------------
    # Spreading rules
    # ------------------------------------------------------------------
    def spread(
        self,
        opcode_class: str,
        mode: str,
        element: SymbolicElement,
        destination: Operand,
        source: Operand,
    ) -> bool:
        """Apply the rule for ``(opcode_class, mode)`` and stamp ``element``."""
        policy = self.policy(opcode_class)
        rule = self._rules[mode]
        tainted = rule(policy, destination, source)
        element.stamp_taint(tainted)
        if tainted:
            LOGGER.debug("%s tainted by %s (%s)", destination, source, policy.name)
        return tainted

    def spread_reg_imm(self, policy: TaintPolicy, destination: RegisterOperand, source: Immediate) -> bool:
        tainted = policy.combine(self.is_register_tainted(destination.ref), False)
        self.set_register_taint(destination.ref, tainted)
        return tainted

    def spread_reg_reg(self, policy: TaintPolicy, destination: RegisterOperand, source: RegisterOperand) -> bool:
        tainted = policy.combine(
            self.is_register_tainted(destination.ref), self.is_register_tainted(source.ref)
        )
        self.set_register_taint(destination.ref, tainted)
        return tainted

    def spread_reg_mem(self, policy: TaintPolicy, destination: RegisterOperand, source: MemoryOperand) -> bool:
        tainted = policy.combine(
            self.is_register_tainted(destination.ref),
            self.is_memory_tainted(source.address, source.size),
        )
        self.set_register_taint(destination.ref, tainted)
        return tainted

    def spread_mem_imm(self, policy: TaintPolicy, destination: MemoryOperand, source: Immediate) -> bool:
        return self._spread_bytes(policy, destination, False)

    def spread_mem_reg(self, policy: TaintPolicy, destination: MemoryOperand, source: RegisterOperand) -> bool:
        return self._spread_bytes(policy, destination, self.is_register_tainted(source.ref))

    def _spread_bytes(self, policy: TaintPolicy, destination: MemoryOperand, source: bool) -> bool:
        """Apply ``policy`` to every byte of the access on its own."""
        for address in range(destination.address, destination.address + destination.size):
            if policy.combine(address in self.tainted_memory, source):
                self.tainted_memory.add(address)
            else:
                self.tainted_memory.discard(address)
        return self.is_memory_tainted(destination.address, destination.size)

    def spread_flag(self, element: SymbolicElement, flag: RegisterRef, result: SymbolicElement) -> bool:
        """A flag derived from ``result`` carries its taint."""
        element.stamp_taint(result.taint)
        self.set_register_taint(flag, result.taint)
        return element.taint

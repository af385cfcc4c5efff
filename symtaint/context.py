"""Concrete machine state supplied by the caller."""
from __future__ import annotations

import logging
from typing import Dict

from .arch import FLAG_BITS, Architecture, RegisterRef
from .errors import InvalidContextTarget

LOGGER = logging.getLogger(__name__)


class ContextHandler:
    """Concrete register and memory values for the instruction being analysed.

    Register values are stored per canonical register, memory per byte. The
    analysis core only reads from it; the caller feeds it through
    :meth:`set_register_value` and :meth:`set_memory_value` (load accesses)
    before each instruction is processed.
    """

    def __init__(self, arch: Architecture) -> None:
        self.arch = arch
        self._registers: Dict[str, int] = {}
        self._memory: Dict[int, int] = {}

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def canonicalize(self, ref: RegisterRef) -> str:
        return self.arch.canonicalize(ref)

    def register_width(self, ref: RegisterRef) -> int:
        return ref.bits

    def register_value(self, ref: RegisterRef) -> int:
        if ref.is_flag:
            flags = self._registers.get(self.arch.flags_register, 0)
            return (flags >> FLAG_BITS[ref.name]) & 1
        full = self._registers.get(self.canonicalize(ref), 0)
        return (full >> ref.low) & ((1 << ref.bits) - 1)

    def memory_value(self, address: int, size: int) -> int:
        """Little-endian value of ``size`` bytes at ``address``."""
        value = 0
        for offset in range(size):
            value |= self._memory.get(address + offset, 0) << (8 * offset)
        return value

    # ------------------------------------------------------------------
    # Context update interface
    # ------------------------------------------------------------------
    def set_register_value(self, ref: RegisterRef, value: int) -> None:
        if ref.is_flag:
            raise InvalidContextTarget(f"cannot set the context of isolated flag '{ref.name}'")
        canonical = self.canonicalize(ref)
        mask = ((1 << ref.bits) - 1) << ref.low
        current = self._registers.get(canonical, 0)
        self._registers[canonical] = (current & ~mask) | ((value << ref.low) & mask)
        LOGGER.debug("context %s <- %#x", ref.name, value)

    def set_memory_value(self, address: int, size: int, value: int) -> None:
        """Record the concrete bytes observed by a load access."""
        if size <= 0:
            raise ValueError(f"invalid memory access size {size}")
        for offset in range(size):
            self._memory[address + offset] = (value >> (8 * offset)) & 0xFF
        LOGGER.debug("context [%#x:%d] <- %#x", address, size, value)

    def clear(self) -> None:
        self._registers.clear()
        self._memory.clear()

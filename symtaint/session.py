"""Analysis session: the shared state one instruction trace is processed against."""
from __future__ import annotations

import logging
from typing import Optional

from .arch import get_architecture
from .builders import IRBuilder
from .config import AnalysisConfig
from .context import ContextHandler
from .instruction import DecodedInstruction, Instruction
from .opcodes import opcode_table
from .state import SymbolicStateManager
from .taint import TaintEngine

LOGGER = logging.getLogger(__name__)


class Session:
    """Owns the context handler, symbolic state and taint state of one trace.

    Instructions must be processed one at a time; sharing a session between
    threads requires external serialisation.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or AnalysisConfig()
        self.arch = get_architecture(self.config.arch)
        self.opcodes = opcode_table(self.config.flags)
        self.context = ContextHandler(self.arch)
        self.state = SymbolicStateManager()
        self.taint = TaintEngine()
        self._seed_taint()

    def _seed_taint(self) -> None:
        for name in self.config.tainted_registers:
            self.taint.taint_register(self.arch.register(name))
        for address, size in self.config.tainted_memory:
            self.taint.taint_memory(address, size)

    def builder(self, decoded: DecodedInstruction) -> IRBuilder:
        return IRBuilder.from_decoded(decoded, self.opcodes)

    def process(self, decoded: DecodedInstruction) -> Instruction:
        """Load the instruction's concrete context, then translate it."""
        decoded.apply_context(self.context)
        inst = self.builder(decoded).process(self.context, self.state, self.taint)
        inst.thread_id = decoded.thread_id
        inst.is_branch = decoded.is_branch
        inst.is_condition_taken = decoded.is_condition_taken
        inst.is_control_flow = decoded.is_control_flow
        LOGGER.debug("%s%s", inst, " [tainted]" if inst.is_tainted() else "")
        return inst

    def reset(self) -> None:
        """Drop symbolic, taint and concrete state; configured taint is re-applied."""
        self.state.reset()
        self.taint.reset()
        self.context.clear()
        self._seed_taint()

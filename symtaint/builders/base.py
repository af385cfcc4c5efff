"""Builder framework: operand resolution, handler table and the IR builder."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .. import ast
from ..arch import RegisterRef
from ..context import ContextHandler
from ..errors import SymTaintError, UnconfiguredOperands, UnsupportedAddressingMode, WidthMismatch
from ..instruction import DecodedInstruction, Instruction
from ..opcodes import OPCODES, OpcodeSpec
from ..operands import Immediate, MemoryOperand, Operand, RegisterOperand, addressing_mode
from ..state import UNSET, SymbolicElement, SymbolicStateManager
from ..taint import TaintEngine

LOGGER = logging.getLogger(__name__)

Handler = Callable[
    [OpcodeSpec, ContextHandler, SymbolicStateManager, TaintEngine, Sequence[Operand]],
    List[SymbolicElement],
]

# (mnemonic, addressing mode) -> handler
HANDLERS: Dict[Tuple[str, str], Handler] = {}


def handles(mnemonics: Iterable[str], mode: str) -> Callable[[Handler], Handler]:
    """Register the decorated function as the handler of ``mode`` for ``mnemonics``."""

    def decorator(func: Handler) -> Handler:
        for mnemonic in mnemonics:
            HANDLERS[(mnemonic, mode)] = func
        return func

    return decorator


# ----------------------------------------------------------------------
# Operand resolution
# ----------------------------------------------------------------------
def _splice(outer: ast.Node, node: ast.Node, offset: int) -> ast.Node:
    """``outer`` with ``node`` written over its bits starting at ``offset``."""
    parts = []
    top = offset + node.bits
    if top < outer.bits:
        parts.append(ast.extract(outer.bits - 1, top, outer))
    parts.append(node)
    if offset:
        parts.append(ast.extract(offset - 1, 0, outer))
    return parts[0] if len(parts) == 1 else ast.concat(*parts)


def _view(node: ast.Node, offset: int, low: int, bits: int, outer: Optional[ast.Node] = None) -> ast.Node:
    """Bits ``low .. low+bits-1`` of a register whose latest write is ``node``
    placed at ``offset``. Bits outside ``node`` come from ``outer``, the full
    value before the write, or read as zero when the write cleared them."""
    high = low + bits - 1
    if offset <= low and high < offset + node.bits:
        return ast.extract(high - offset, low - offset, node)
    if outer is None:
        return ast.extract(high, low, ast.zero_extend(high + 1 - node.bits, node))
    return ast.extract(high, low, _splice(outer, node, offset))


def clears_upper_bits(ref: RegisterRef) -> bool:
    """Writes through the full register, or a 32-bit write on x86-64, leave
    nothing of the previous value behind."""
    return ref.is_canonical or (ref.low == 0 and ref.bits == 32)


def surrounding_bits(context: ContextHandler, state: SymbolicStateManager, ref: RegisterRef) -> Optional[ast.Node]:
    """Full canonical value a write through ``ref`` is merged into, if any."""
    if ref.is_flag or clears_upper_bits(ref):
        return None
    return read_register(context, state, context.arch.canonical_register(ref))


def read_register(context: ContextHandler, state: SymbolicStateManager, ref: RegisterRef) -> ast.Node:
    """Reference to the latest version of ``ref`` or its concrete value."""
    symbolic_id = state.resolve_register(context.canonicalize(ref))
    if symbolic_id == UNSET:
        return ast.bv(context.register_value(ref), context.register_width(ref))
    version = ast.ref(symbolic_id, state.width_of(symbolic_id))
    return _view(version, state.offset_of(symbolic_id), ref.low, ref.bits, state.surround_of(symbolic_id))


def read_memory(context: ContextHandler, state: SymbolicStateManager, mem: MemoryOperand) -> ast.Node:
    symbolic_id = state.resolve_memory(mem.address)
    if symbolic_id == UNSET:
        return ast.bv(context.memory_value(mem.address, mem.size), mem.bits)
    version = ast.ref(symbolic_id, state.width_of(symbolic_id))
    if version.bits >= mem.bits:
        return ast.extract(mem.bits - 1, 0, version)
    # bytes past the stored version are read at their own address
    stored = version.bits // 8
    rest = read_memory(context, state, MemoryOperand(mem.address + stored, mem.size - stored))
    return ast.concat(rest, version)


def read_immediate(imm: Immediate, bits: int) -> ast.BitVector:
    """Immediate sign-extended from its declared width to ``bits``."""
    if imm.bits > bits:
        raise WidthMismatch(f"{imm.bits}-bit immediate {imm} used with a {bits}-bit operand")
    literal = ast.bv(imm.value, imm.bits)
    value = literal.value
    if imm.bits < bits and value >> (imm.bits - 1):
        value |= ((1 << bits) - 1) ^ ((1 << imm.bits) - 1)
    return ast.BitVector(value, bits)


def read_operand(
    context: ContextHandler, state: SymbolicStateManager, operand: Operand, bits: int
) -> ast.Node:
    if isinstance(operand, Immediate):
        return read_immediate(operand, bits)
    if isinstance(operand, RegisterOperand):
        return read_register(context, state, operand.ref)
    return read_memory(context, state, operand)


# ----------------------------------------------------------------------
# Builder
# ----------------------------------------------------------------------
class IRBuilder:
    """Translates one decoded instruction into symbolic elements.

    Operands must be bound with :meth:`set_operands` (or passed to
    :meth:`process`) before processing. A builder is single use: once
    processing failed it should be discarded.
    """

    def __init__(
        self,
        address: int,
        disassembly: str,
        mnemonic: str,
        opcodes: bytes = b"",
        opcode_table: Optional[Mapping[str, OpcodeSpec]] = None,
    ) -> None:
        self.address = address
        self.disassembly = disassembly
        self.mnemonic = mnemonic.lower()
        self.opcodes = opcodes
        self.opcode_table = opcode_table if opcode_table is not None else OPCODES
        self._operands: Optional[List[Operand]] = None

    @classmethod
    def from_decoded(
        cls, decoded: DecodedInstruction, opcode_table: Optional[Mapping[str, OpcodeSpec]] = None
    ) -> "IRBuilder":
        builder = cls(decoded.address, decoded.disassembly, decoded.mnemonic, decoded.opcodes, opcode_table)
        builder.set_operands(decoded.operands)
        return builder

    @property
    def operands(self) -> Optional[List[Operand]]:
        return self._operands

    def set_operands(self, operands: Iterable[Operand]) -> None:
        self._operands = list(operands)

    def check_setup(self) -> None:
        if self._operands is None:
            raise UnconfiguredOperands("operands were not bound before processing")

    def select(self) -> Tuple[OpcodeSpec, Handler, str]:
        mode = addressing_mode(self._operands or [])
        spec = self.opcode_table.get(self.mnemonic)
        handler = HANDLERS.get((self.mnemonic, mode))
        if spec is None or handler is None:
            raise UnsupportedAddressingMode(f"no semantics for {self.mnemonic} with {mode or 'no'} operands")
        return spec, handler, mode

    def process(
        self,
        context: ContextHandler,
        state: SymbolicStateManager,
        taint: TaintEngine,
        operands: Optional[Iterable[Operand]] = None,
    ) -> Instruction:
        if operands is not None:
            self.set_operands(operands)
        try:
            self.check_setup()
            spec, handler, mode = self.select()
            inst = Instruction(
                self.address,
                self.disassembly,
                self.opcodes,
                mnemonic=self.mnemonic,
                operands=list(self._operands),
            )
            for element in handler(spec, context, state, taint, inst.operands):
                inst.add_element(element)
        except SymTaintError as exc:
            raise exc.annotate(self.address, self.mnemonic)
        LOGGER.debug("%s [%s] -> %d element(s)", inst, mode, len(inst.elements))
        return inst

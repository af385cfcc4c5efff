"""Capstone adapter turning raw x86 bytes into decoded instructions."""
from __future__ import annotations

import logging
from typing import Callable, Dict

from .arch import Architecture
from .context import ContextHandler
from .errors import TraceFormatError
from .instruction import DecodedInstruction
from .operands import Immediate, MemoryOperand, Operand, RegisterOperand

LOGGER = logging.getLogger(__name__)

# Jcc condition over the concrete status flags
_CONDITIONS: Dict[str, Callable[[Dict[str, int]], bool]] = {
    "jo": lambda f: f["of"] == 1,
    "jno": lambda f: f["of"] == 0,
    "jb": lambda f: f["cf"] == 1,
    "jae": lambda f: f["cf"] == 0,
    "je": lambda f: f["zf"] == 1,
    "jne": lambda f: f["zf"] == 0,
    "jbe": lambda f: f["cf"] == 1 or f["zf"] == 1,
    "ja": lambda f: f["cf"] == 0 and f["zf"] == 0,
    "js": lambda f: f["sf"] == 1,
    "jns": lambda f: f["sf"] == 0,
    "jp": lambda f: f["pf"] == 1,
    "jnp": lambda f: f["pf"] == 0,
    "jl": lambda f: f["sf"] != f["of"],
    "jge": lambda f: f["sf"] == f["of"],
    "jle": lambda f: f["zf"] == 1 or f["sf"] != f["of"],
    "jg": lambda f: f["zf"] == 0 and f["sf"] == f["of"],
}

# Jumps taken when the count register is zero
_COUNTER_JUMPS = {"jcxz": "cx", "jecxz": "ecx", "jrcxz": "rcx"}

# LOOPcc: the count register is decremented first, then tested with the flags
_LOOPS: Dict[str, Callable[[Dict[str, int]], bool]] = {
    "loop": lambda f: True,
    "loope": lambda f: f["zf"] == 1,
    "loopz": lambda f: f["zf"] == 1,
    "loopne": lambda f: f["zf"] == 0,
    "loopnz": lambda f: f["zf"] == 0,
}


class Decoder:
    """Lazy capstone wrapper bound to one architecture."""

    def __init__(self, arch: Architecture) -> None:
        self.arch = arch
        self.cs = self._init_capstone(arch)

    @staticmethod
    def _init_capstone(arch: Architecture):
        try:
            from capstone import CS_ARCH_X86, CS_MODE_32, CS_MODE_64, Cs
        except ImportError as exc:  # pragma: no cover - dependency absent
            raise RuntimeError("capstone is required to decode raw instruction bytes") from exc
        cs = Cs(CS_ARCH_X86, CS_MODE_64 if arch.address_bits == 64 else CS_MODE_32)
        cs.detail = True
        return cs

    def decode(self, code: bytes, address: int, context: ContextHandler) -> DecodedInstruction:
        """Decode the first instruction of ``code``.

        Memory operands are resolved to concrete addresses with the register
        values currently held by ``context``.
        """
        from capstone import CS_GRP_CALL, CS_GRP_IRET, CS_GRP_JUMP, CS_GRP_RET

        insn = next(self.cs.disasm(bytes(code), address, 1), None)
        if insn is None:
            raise TraceFormatError(f"cannot decode {bytes(code).hex()}", address=address)

        operands = [self._operand(insn, op, context) for op in insn.operands]
        is_branch = insn.group(CS_GRP_JUMP)
        is_control_flow = any(insn.group(group) for group in (CS_GRP_JUMP, CS_GRP_CALL, CS_GRP_RET, CS_GRP_IRET))
        decoded = DecodedInstruction(
            address=insn.address,
            mnemonic=insn.mnemonic,
            operands=operands,
            disassembly=f"{insn.mnemonic} {insn.op_str}".strip(),
            opcodes=bytes(insn.bytes),
            is_branch=is_branch,
            is_condition_taken=is_control_flow and self._taken(insn.mnemonic, context),
            is_control_flow=is_control_flow,
        )
        LOGGER.debug("decoded %#x: %s", decoded.address, decoded.disassembly)
        return decoded

    def _operand(self, insn, op, context: ContextHandler) -> Operand:
        from capstone.x86 import X86_OP_IMM, X86_OP_MEM, X86_OP_REG

        if op.type == X86_OP_REG:
            return RegisterOperand(self.arch.register(insn.reg_name(op.reg)))
        if op.type == X86_OP_IMM:
            bits = op.size * 8
            return Immediate(op.imm & ((1 << bits) - 1), bits)
        if op.type == X86_OP_MEM:
            return MemoryOperand(self._effective_address(insn, op.mem, context), op.size)
        raise TraceFormatError(f"unsupported operand in '{insn.mnemonic} {insn.op_str}'", address=insn.address)

    def _effective_address(self, insn, mem, context: ContextHandler) -> int:
        from capstone.x86 import X86_REG_INVALID, X86_REG_RIP

        address = mem.disp
        if mem.base == X86_REG_RIP:
            address += insn.address + insn.size
        elif mem.base != X86_REG_INVALID:
            address += context.register_value(self.arch.register(insn.reg_name(mem.base)))
        if mem.index != X86_REG_INVALID:
            address += context.register_value(self.arch.register(insn.reg_name(mem.index))) * mem.scale
        return address & ((1 << self.arch.address_bits) - 1)

    def _taken(self, mnemonic: str, context: ContextHandler) -> bool:
        if mnemonic in _COUNTER_JUMPS:
            return context.register_value(self.arch.register(_COUNTER_JUMPS[mnemonic])) == 0
        flags = {flag.name: context.register_value(flag) for flag in self.arch.flags()}
        if mnemonic in _LOOPS:
            counter = self.arch.register("rcx" if self.arch.address_bits == 64 else "ecx")
            remaining = (context.register_value(counter) - 1) & ((1 << counter.bits) - 1)
            return remaining != 0 and _LOOPS[mnemonic](flags)
        condition = _CONDITIONS.get(mnemonic)
        if condition is None:
            # jmp, call, ret and friends always transfer control
            return True
        return condition(flags)

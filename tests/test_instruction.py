import pytest

from symtaint import DecodedInstruction, Instruction
from symtaint.arch import get_architecture
from symtaint.context import ContextHandler
from symtaint.errors import InvalidContextTarget
from symtaint.instruction import MAX_OPCODE_SIZE
from symtaint.operands import Immediate, MemoryOperand, RegisterOperand

X64 = get_architecture("x86_64")


def test_next_address_follows_opcode_length():
    inst = Instruction(0x401000, "add eax, 5", bytes.fromhex("83c005"))
    assert inst.next_address == 0x401003
    assert str(inst) == "0x401000: add eax, 5"


def test_opcodes_longer_than_limit_are_rejected():
    with pytest.raises(ValueError):
        Instruction(0x0, "nop", b"\x90" * (MAX_OPCODE_SIZE + 1))
    with pytest.raises(ValueError):
        DecodedInstruction(0x0, "nop", opcodes=b"\x90" * (MAX_OPCODE_SIZE + 1))


def test_opcodes_are_checked_on_assignment():
    inst = Instruction(0x401000, "nop", b"\x90")
    with pytest.raises(ValueError):
        inst.opcodes = b"\x90" * (MAX_OPCODE_SIZE + 1)
    assert inst.opcodes == b"\x90"
    inst.opcodes = bytearray(b"\x83\xc0\x05")
    assert isinstance(inst.opcodes, bytes)
    assert inst.next_address == 0x401003
    insn = DecodedInstruction(0x0, "nop")
    with pytest.raises(ValueError):
        insn.opcodes = b"\x90" * (MAX_OPCODE_SIZE + 1)


def test_operand_accessors():
    eax = RegisterOperand(X64.register("eax"))
    inst = Instruction(0x0, "add eax, 5", operands=[eax, Immediate(5, 32)])
    assert inst.first_operand == eax
    assert inst.second_operand == Immediate(5, 32)
    with pytest.raises(IndexError):
        inst.third_operand


def test_decoded_instruction_builds_disassembly():
    insn = DecodedInstruction(0x10, "ADD", [RegisterOperand(X64.register("eax")), MemoryOperand(0x1000, 4)])
    assert insn.mnemonic == "add"
    assert insn.disassembly == "add eax, [0x1000:4]"


def test_context_updates_are_applied_in_order():
    insn = DecodedInstruction(0x10, "add")
    insn.update_context(X64.register("rax"), 0xFFFF)
    insn.update_context(RegisterOperand(X64.register("al")), 0x01)
    insn.update_context(MemoryOperand(0x1000, 2), 0xBEEF)
    context = ContextHandler(X64)
    insn.apply_context(context)
    assert context.register_value(X64.register("rax")) == 0xFF01
    assert context.memory_value(0x1000, 2) == 0xBEEF


def test_flags_cannot_be_given_as_context():
    insn = DecodedInstruction(0x10, "add")
    with pytest.raises(InvalidContextTarget):
        insn.update_context(X64.register("zf"), 1)
    with pytest.raises(TypeError):
        insn.update_context(Immediate(1, 8), 1)


def test_instruction_serialisation(session, reg, imm, decoded):
    inst = session.process(decoded("add", reg("eax"), imm(5), opcodes=bytes.fromhex("83c005")))
    data = inst.to_dict()
    assert data["address"] == 0x401000
    assert data["mnemonic"] == "add"
    assert data["next_address"] == 0x401003
    assert data["opcodes"] == "83c005"
    assert data["operands"][0] == {"type": "reg", "name": "eax", "bits": 32}
    assert [element["id"] for element in data["elements"]] == [0, 1]
    assert data["tainted"] is False

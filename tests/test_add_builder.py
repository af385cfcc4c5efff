from symtaint import ast, smt
from symtaint.operands import MemoryOperand


def test_add_register_immediate_without_symbolic_history(session, reg, imm, decoded):
    insn = decoded("add", reg("eax"), imm(5))
    insn.update_context(session.arch.register("eax"), 10)

    inst = session.process(insn)

    primary, zf = inst.elements
    assert primary.id == 0
    assert str(primary.expression) == "(bvadd 0x0000000A:32 0x00000005:32)"
    assert primary.comment == "ADD operation"
    assert primary.taint is False
    assert zf.id == 1
    assert str(zf.expression) == "(ite (= #0 0x00000000:32) 0x1:1 0x0:1)"
    assert zf.comment == "Zero flag"
    assert session.state.resolve_register("rax") == 0
    assert session.state.resolve_register("zf") == 1
    assert smt.evaluate(primary.expression) == 15
    assert smt.evaluate(zf.expression, {0: primary.expression}) == 0


def test_add_register_register_with_symbolic_and_tainted_destination(session, reg, decoded):
    state = session.state
    for _ in range(3):
        state.create_register_element(ast.bv(0, 32), session.arch.register("ecx"))
    previous = state.create_register_element(ast.bv(7, 32), session.arch.register("eax"))
    assert previous.id == 3
    session.taint.taint_register(session.arch.register("eax"))
    session.taint.taint_register(session.arch.register("ebx"))

    insn = decoded("add", reg("eax"), reg("ebx"))
    insn.update_context(session.arch.register("ebx"), 0x20)
    inst = session.process(insn)

    primary, zf = inst.elements
    assert str(primary.expression) == "(bvadd #3 0x00000020:32)"
    assert primary.taint is True
    assert zf.taint is True
    assert state.resolve_register("rax") == primary.id == 4
    assert session.taint.is_register_tainted(session.arch.register("rax"))


def test_add_memory_immediate(session, mem, imm, decoded):
    insn = decoded("add", mem(0x1000, 4), imm(1))
    insn.update_context(MemoryOperand(0x1000, 4), 7)

    inst = session.process(insn)

    primary = inst.elements[0]
    assert str(primary.expression) == "(bvadd 0x00000007:32 0x00000001:32)"
    assert primary.is_memory
    assert session.state.resolve_memory(0x1000) == primary.id
    assert primary.taint is False
    assert not session.taint.is_memory_tainted(0x1000, 4)


def test_add_memory_immediate_keeps_memory_taint(session, mem, imm, decoded):
    session.taint.taint_memory(0x1000, 4)
    inst = session.process(decoded("add", mem(0x1000, 4), imm(1)))
    assert inst.elements[0].taint is True
    assert session.taint.is_memory_tainted(0x1000, 4)


def test_add_reads_back_previous_memory_version(session, reg, mem, imm, decoded):
    first = session.process(decoded("add", mem(0x1000, 4), imm(1))).elements[0]
    inst = session.process(decoded("add", reg("eax"), mem(0x1000, 4)))
    assert str(inst.elements[0].expression) == f"(bvadd 0x00000000:32 #{first.id})"


def test_chained_adds_reference_previous_version(session, reg, imm, decoded):
    first = session.process(decoded("add", reg("eax"), imm(1))).elements[0]
    second = session.process(decoded("add", reg("eax"), imm(2))).elements[0]
    assert str(second.expression) == f"(bvadd #{first.id} 0x00000002:32)"
    assert smt.evaluate(second.expression, {first.id: first.expression}) == 3


def test_negative_immediate_is_sign_extended(session, reg, imm, decoded):
    insn = decoded("add", reg("eax"), imm(0xFF, 8))
    insn.update_context(session.arch.register("eax"), 1)
    primary = session.process(insn).elements[0]
    assert str(primary.expression) == "(bvadd 0x00000001:32 0xFFFFFFFF:32)"
    assert smt.evaluate(primary.expression) == 0

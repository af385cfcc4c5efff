import dataclasses

import pytest

from symtaint import ast
from symtaint.arch import get_architecture
from symtaint.operands import MemoryOperand
from symtaint.state import UNSET, SymbolicElement, SymbolicStateManager

X64 = get_architecture("x86_64")


def test_unwritten_locations_resolve_to_unset():
    state = SymbolicStateManager()
    assert state.resolve_register("rax") == UNSET
    assert state.resolve_memory(0x1000) == UNSET


def test_ids_are_assigned_in_creation_order():
    state = SymbolicStateManager()
    first = state.create_register_element(ast.bv(1, 32), X64.register("eax"))
    second = state.create_memory_element(ast.bv(2, 32), MemoryOperand(0x1000, 4))
    third = state.create_register_element(ast.bv(3, 8), X64.register("bl"))
    assert [first.id, second.id, third.id] == [0, 1, 2]
    assert state.next_id == 3


def test_latest_write_wins_and_lookups_are_idempotent():
    state = SymbolicStateManager()
    state.create_register_element(ast.bv(1, 64), X64.register("rax"))
    latest = state.create_register_element(ast.bv(2, 32), X64.register("eax"))
    assert state.resolve_register("rax") == latest.id
    assert state.resolve_register("rax") == latest.id
    assert state.width_of(latest.id) == 32


def test_high_byte_writes_remember_their_offset():
    state = SymbolicStateManager()
    element = state.create_register_element(ast.bv(0x12, 8), X64.register("ah"))
    assert state.offset_of(element.id) == 8
    assert state.resolve_register("rax") == element.id


def test_reset_keeps_ids_growing():
    state = SymbolicStateManager()
    state.create_register_element(ast.bv(1, 32), X64.register("eax"))
    state.reset()
    assert state.resolve_register("rax") == UNSET
    element = state.create_register_element(ast.bv(1, 32), X64.register("eax"))
    assert element.id == 1


def test_element_rendering_and_serialisation():
    state = SymbolicStateManager()
    element = state.create_register_element(
        ast.bvadd(ast.bv(10, 32), ast.bv(5, 32)), X64.register("eax"), comment="ADD operation"
    )
    assert str(element) == "#0 = (bvadd 0x0000000A:32 0x00000005:32) ; ADD operation"
    assert element.reference() == ast.Reference(0, 32)
    data = element.to_dict()
    assert data["destination"] == {"type": "reg", "name": "eax"}
    assert data["taint"] is False
    mem = state.create_memory_element(ast.bv(0, 8), MemoryOperand(0x20, 1))
    assert mem.is_memory
    assert mem.to_dict()["destination"] == {"type": "mem", "address": 0x20, "size": 1}


def test_elements_are_frozen_and_taint_is_stamped_once():
    element = SymbolicElement(0, ast.bv(1, 32), X64.register("eax"))
    with pytest.raises(dataclasses.FrozenInstanceError):
        element.taint = True
    with pytest.raises(dataclasses.FrozenInstanceError):
        element.expression = ast.bv(2, 32)
    element.stamp_taint(True)
    assert element.taint is True
    with pytest.raises(ValueError):
        element.stamp_taint(False)
    assert element.taint is True


def test_partial_writes_keep_their_surround():
    state = SymbolicStateManager()
    before = ast.bv(0xAABB, 64)
    element = state.create_register_element(ast.bv(0x12, 8), X64.register("ah"), surround=before)
    assert state.surround_of(element.id) is before
    full = state.create_register_element(ast.bv(1, 64), X64.register("rax"))
    assert state.surround_of(full.id) is None
    state.reset()
    assert state.surround_of(element.id) is None

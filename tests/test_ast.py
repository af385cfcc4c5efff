import dataclasses

import pytest

from symtaint import ast
from symtaint.errors import WidthMismatch


def test_literal_rendering_pads_to_width():
    assert str(ast.bv(10, 32)) == "0x0000000A:32"
    assert str(ast.bv(1, 1)) == "0x1:1"
    assert str(ast.bv(0xAB, 8)) == "0xAB:8"
    assert str(ast.bv(0, 64)) == "0x0000000000000000:64"


def test_negative_literal_is_twos_complement():
    assert ast.bv(-1, 8) == ast.BitVector(0xFF, 8)
    assert ast.bv(-128, 8).value == 0x80


def test_literal_that_does_not_fit_is_rejected():
    with pytest.raises(WidthMismatch):
        ast.bv(0x100, 8)
    with pytest.raises(WidthMismatch):
        ast.bv(-129, 8)


def test_operator_rendering_is_prefix():
    expr = ast.bvadd(ast.ref(3, 32), ast.bv(5, 32))
    assert str(expr) == "(bvadd #3 0x00000005:32)"
    assert expr.bits == 32


def test_binary_operator_rejects_width_mismatch():
    with pytest.raises(WidthMismatch):
        ast.bvadd(ast.bv(1, 32), ast.bv(1, 16))


def test_extract_and_zero_extend():
    value = ast.ref(7, 32)
    low = ast.extract(7, 0, value)
    assert str(low) == "((_ extract 7 0) #7)"
    assert low.bits == 8
    assert ast.extract(31, 0, value) is value
    wide = ast.zero_extend(32, value)
    assert str(wide) == "((_ zero_extend 32) #7)"
    assert wide.bits == 64
    with pytest.raises(WidthMismatch):
        ast.extract(32, 0, value)


def test_extract_of_literal_folds():
    assert ast.extract(15, 8, ast.bv(0xAABB, 64)) == ast.BitVector(0xAA, 8)
    assert str(ast.extract(63, 16, ast.bv(0xFFFF0000BEEF, 64))) == "0x0000FFFF0000:48"


def test_is_zero_builds_one_bit_ite():
    flag = ast.is_zero(ast.ref(0, 32))
    assert str(flag) == "(ite (= #0 0x00000000:32) 0x1:1 0x0:1)"
    assert flag.bits == 1


def test_ite_requires_boolean_condition():
    with pytest.raises(WidthMismatch):
        ast.ite(ast.bv(1, 1), ast.bv(1, 1), ast.bv(0, 1))


def test_boolean_terms_cannot_feed_bitvector_operators():
    with pytest.raises(WidthMismatch):
        ast.bvand(ast.equal(ast.bv(0, 1), ast.bv(0, 1)), ast.bv(1, 1))


def test_concat_width_and_rendering():
    joined = ast.concat(ast.bv(0, 32), ast.ref(1, 32))
    assert joined.bits == 64
    assert str(joined) == "(concat 0x00000000:32 #1)"


def test_references_collects_ids():
    expr = ast.bvxor(ast.bvadd(ast.ref(1, 8), ast.ref(2, 8)), ast.extract(7, 0, ast.ref(9, 16)))
    assert expr.references() == {1, 2, 9}


def test_nodes_are_immutable():
    literal = ast.bv(1, 8)
    with pytest.raises(dataclasses.FrozenInstanceError):
        literal.value = 2

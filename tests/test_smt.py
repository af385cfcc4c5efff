import pytest
import z3

from symtaint import ast, smt
from symtaint.errors import WidthMismatch


def test_literal_arithmetic_evaluates():
    expr = ast.bvadd(ast.bv(0xFFFFFFFF, 32), ast.bv(2, 32))
    assert smt.evaluate(expr) == 1


def test_reference_bound_to_integer():
    expr = ast.bvsub(ast.ref(0, 8), ast.bv(1, 8))
    assert smt.evaluate(expr, {0: 0}) == 0xFF


def test_reference_bound_to_expression_tree_is_expanded():
    primary = ast.bvadd(ast.bv(10, 32), ast.bv(5, 32))
    zero = ast.is_zero(ast.ref(0, 32))
    assert smt.evaluate(zero, {0: primary}) == 0
    assert smt.evaluate(zero, {0: ast.bvsub(ast.bv(5, 32), ast.bv(5, 32))}) == 1


def test_unbound_reference_is_free_variable():
    term = smt.to_z3(ast.bvadd(ast.ref(4, 16), ast.bv(1, 16)))
    assert "ref_4" in str(term)
    with pytest.raises(ValueError):
        smt.evaluate(ast.ref(4, 16))


def test_binding_of_wrong_width_is_rejected():
    with pytest.raises(WidthMismatch):
        smt.to_z3(ast.ref(0, 32), {0: ast.bv(1, 8)})


def test_extract_concat_and_zero_extend_match_z3():
    value = ast.bv(0x12345678, 32)
    assert smt.evaluate(ast.extract(15, 8, value)) == 0x56
    assert smt.evaluate(ast.zero_extend(32, value)) == 0x12345678
    assert smt.evaluate(ast.concat(ast.bv(0xAB, 8), ast.bv(0xCD, 8))) == 0xABCD


def test_free_references_can_be_solved_for():
    # ref_0 + 5 == 0 has exactly one 8-bit solution
    zero = ast.is_zero(ast.bvadd(ast.ref(0, 8), ast.bv(5, 8)))
    solver = z3.Solver()
    solver.add(smt.to_z3(zero) == z3.BitVecVal(1, 1))
    assert solver.check() == z3.sat
    assert solver.model()[z3.BitVec("ref_0", 8)].as_long() == 0xFB

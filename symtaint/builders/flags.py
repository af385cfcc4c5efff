"""Status flag expressions.

Every builder takes the result (a reference to the primary element) and the
two operand terms the result was computed from, and returns a one-bit term.
"""
from __future__ import annotations

from typing import Callable, Dict, List

from .. import ast
from ..arch import Architecture
from ..opcodes import FLAG_NAMES, OpcodeSpec
from ..state import SymbolicElement, SymbolicStateManager
from ..taint import TaintEngine

FlagBuilder = Callable[[ast.Node, ast.Node, ast.Node], ast.Node]


def zf(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    return ast.is_zero(result)


def sf(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    return ast.msb(result)


def pf(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    # set when the low byte holds an even number of ones
    parity = ast.extract(0, 0, result)
    for bit in range(1, 8):
        parity = ast.bvxor(parity, ast.extract(bit, bit, result))
    return ast.bvnot(parity)


def af(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    return ast.extract(4, 4, ast.bvxor(ast.bvxor(lhs, rhs), result))


def cf_add(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    carries = ast.bvor(ast.bvand(lhs, rhs), ast.bvand(ast.bvor(lhs, rhs), ast.bvnot(result)))
    return ast.msb(carries)


def cf_sub(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    borrows = ast.bvor(
        ast.bvand(ast.bvnot(lhs), rhs),
        ast.bvand(ast.bvnot(ast.bvxor(lhs, rhs)), result),
    )
    return ast.msb(borrows)


def of_add(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    return ast.msb(ast.bvand(ast.bvxor(lhs, ast.bvnot(rhs)), ast.bvxor(lhs, result)))


def of_sub(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    return ast.msb(ast.bvand(ast.bvxor(lhs, rhs), ast.bvxor(lhs, result)))


def cleared(result: ast.Node, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    return ast.bv(0, 1)


FLAG_BUILDERS: Dict[str, Dict[str, FlagBuilder]] = {
    "add": {"af": af, "cf": cf_add, "of": of_add, "pf": pf, "sf": sf, "zf": zf},
    "sub": {"af": af, "cf": cf_sub, "of": of_sub, "pf": pf, "sf": sf, "zf": zf},
    "logic": {"cf": cleared, "of": cleared, "pf": pf, "sf": sf, "zf": zf},
}


def emit_flags(
    spec: OpcodeSpec,
    arch: Architecture,
    state: SymbolicStateManager,
    taint: TaintEngine,
    result: SymbolicElement,
    lhs: ast.Node,
    rhs: ast.Node,
) -> List[SymbolicElement]:
    """Register one element per declared flag of ``spec``, in declared order."""
    elements: List[SymbolicElement] = []
    if not spec.flags:
        return elements
    builders = FLAG_BUILDERS[spec.flag_family]
    reference = result.reference()
    for flag in spec.flags:
        flag_ref = arch.register(flag)
        expression = builders[flag](reference, lhs, rhs)
        element = state.create_register_element(expression, flag_ref, comment=FLAG_NAMES[flag])
        taint.spread_flag(element, flag_ref, result)
        elements.append(element)
    return elements

"""Two-operand ALU and move semantics for every supported addressing mode.

Each handler follows the same pipeline: resolve both operands, combine them
with the opcode operator, register the result against the destination,
spread taint, then register the declared flag elements.
"""
from __future__ import annotations

from typing import List, Sequence

from .. import ast
from .. import operands as ops
from ..context import ContextHandler
from ..errors import WidthMismatch
from ..opcodes import OPCODES, OpcodeSpec
from ..operands import Operand
from ..state import SymbolicElement, SymbolicStateManager
from ..taint import TaintEngine
from .base import handles, read_operand, surrounding_bits
from .flags import emit_flags

MNEMONICS = tuple(OPCODES)


def _semantics(spec: OpcodeSpec, lhs: ast.Node, rhs: ast.Node) -> ast.Node:
    if spec.operator is None:
        if rhs.bits != lhs.bits:
            raise WidthMismatch(f"cannot move a {rhs.bits}-bit value into a {lhs.bits}-bit destination")
        return rhs
    return ast.binary(spec.operator, lhs, rhs)


def _translate(
    spec: OpcodeSpec,
    mode: str,
    context: ContextHandler,
    state: SymbolicStateManager,
    taint: TaintEngine,
    operands: Sequence[Operand],
) -> List[SymbolicElement]:
    destination, source = operands
    lhs = read_operand(context, state, destination, destination.bits)
    rhs = read_operand(context, state, source, destination.bits)
    expression = _semantics(spec, lhs, rhs)

    if mode in (ops.MEM_IMM, ops.MEM_REG):
        element = state.create_memory_element(expression, destination, comment=spec.comment)
    else:
        element = state.create_register_element(
            expression,
            destination.ref,
            comment=spec.comment,
            surround=surrounding_bits(context, state, destination.ref),
        )

    taint.spread(spec.opcode_class, mode, element, destination, source)
    return [element] + emit_flags(spec, context.arch, state, taint, element, lhs, rhs)


@handles(MNEMONICS, ops.REG_IMM)
def reg_imm(spec, context, state, taint, operands):
    return _translate(spec, ops.REG_IMM, context, state, taint, operands)


@handles(MNEMONICS, ops.REG_REG)
def reg_reg(spec, context, state, taint, operands):
    return _translate(spec, ops.REG_REG, context, state, taint, operands)


@handles(MNEMONICS, ops.REG_MEM)
def reg_mem(spec, context, state, taint, operands):
    return _translate(spec, ops.REG_MEM, context, state, taint, operands)


@handles(MNEMONICS, ops.MEM_IMM)
def mem_imm(spec, context, state, taint, operands):
    return _translate(spec, ops.MEM_IMM, context, state, taint, operands)


@handles(MNEMONICS, ops.MEM_REG)
def mem_reg(spec, context, state, taint, operands):
    return _translate(spec, ops.MEM_REG, context, state, taint, operands)

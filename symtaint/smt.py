"""Translation of expression trees into z3 terms."""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Union

import z3

from . import ast
from .errors import WidthMismatch

_BINARY = {
    "bvadd": lambda a, b: a + b,
    "bvsub": lambda a, b: a - b,
    "bvmul": lambda a, b: a * b,
    "bvand": lambda a, b: a & b,
    "bvor": lambda a, b: a | b,
    "bvxor": lambda a, b: a ^ b,
    "bvshl": lambda a, b: a << b,
    "bvlshr": z3.LShR,
}

_UNARY = {
    "bvnot": lambda a: ~a,
    "bvneg": lambda a: -a,
}

Binding = Union[z3.ExprRef, ast.Node, int]


class Translator:
    """Converts nodes to z3, resolving ``#id`` leaves through ``references``.

    A reference bound to another expression tree is expanded recursively, an
    integer binding becomes a constant, and an unbound reference becomes a
    free bitvector variable named ``ref_<id>``.
    """

    def __init__(self, references: Optional[Mapping[int, Binding]] = None) -> None:
        self.references = references or {}
        self._cache: Dict[int, z3.ExprRef] = {}

    def translate(self, node: ast.Node) -> z3.ExprRef:
        if isinstance(node, ast.BitVector):
            return z3.BitVecVal(node.value, node.bits)
        if isinstance(node, ast.Reference):
            return self._reference(node)
        if isinstance(node, ast.BinaryOp):
            return _BINARY[node.operator](self.translate(node.lhs), self.translate(node.rhs))
        if isinstance(node, ast.UnaryOp):
            return _UNARY[node.operator](self.translate(node.operand))
        if isinstance(node, ast.Equal):
            return self.translate(node.lhs) == self.translate(node.rhs)
        if isinstance(node, ast.Ite):
            return z3.If(
                self.translate(node.condition),
                self.translate(node.then),
                self.translate(node.otherwise),
            )
        if isinstance(node, ast.Extract):
            return z3.Extract(node.high, node.low, self.translate(node.operand))
        if isinstance(node, ast.ZeroExtend):
            return z3.ZeroExt(node.extra, self.translate(node.operand))
        if isinstance(node, ast.Concat):
            return z3.Concat(*[self.translate(part) for part in node.parts])
        raise TypeError(f"cannot translate {type(node).__name__}")

    def _reference(self, node: ast.Reference) -> z3.ExprRef:
        if node.id in self._cache:
            return self._cache[node.id]
        binding = self.references.get(node.id)
        if binding is None:
            term = z3.BitVec(f"ref_{node.id}", node.bits)
        elif isinstance(binding, int):
            term = z3.BitVecVal(binding, node.bits)
        elif isinstance(binding, ast.Node):
            term = self.translate(binding)
        else:
            term = binding
        if term.size() != node.bits:
            raise WidthMismatch(f"#{node.id} is bound to a {term.size()}-bit term, expected {node.bits}")
        self._cache[node.id] = term
        return term


def to_z3(node: ast.Node, references: Optional[Mapping[int, Binding]] = None) -> z3.ExprRef:
    return Translator(references).translate(node)


def evaluate(node: ast.Node, references: Optional[Mapping[int, Binding]] = None) -> int:
    """Concrete value of ``node``; every reference must be bound."""
    term = z3.simplify(to_z3(node, references))
    if z3.is_true(term):
        return 1
    if z3.is_false(term):
        return 0
    if not z3.is_bv_value(term):
        raise ValueError(f"expression is not concrete under the given bindings: {term}")
    return term.as_long()

"""Bitvector expression trees and their textual SMT-like rendering.

Every node is immutable. Constructors validate widths eagerly so that a
modelling bug surfaces as :class:`WidthMismatch` at the point where the bad
term is built instead of being truncated silently further down the pipeline.

Rendering rules (stable, consumed by the external solver layer)::

    literal      0x0000000A:32        zero padded hex, one digit per nibble
    reference    #12
    operator     (bvadd <a> <b>)
    extract      ((_ extract 7 0) <a>)
    zero extend  ((_ zero_extend 32) <a>)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Set, Tuple

from .errors import WidthMismatch

BINARY_OPERATORS = ("bvadd", "bvsub", "bvmul", "bvand", "bvor", "bvxor", "bvshl", "bvlshr")
UNARY_OPERATORS = ("bvnot", "bvneg")


class Node:
    """Common behaviour of expression nodes."""

    __slots__ = ()

    bits: int
    boolean = False

    @property
    def children(self) -> Tuple["Node", ...]:
        return ()

    def walk(self) -> Iterator["Node"]:
        """Yield this node and every node below it, parents first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def references(self) -> Set[int]:
        return {node.id for node in self.walk() if isinstance(node, Reference)}


def _check_bitvector(node: Node, what: str) -> None:
    if node.boolean:
        raise WidthMismatch(f"{what} expects a bitvector operand, got boolean term {node}")


@dataclass(frozen=True)
class BitVector(Node):
    value: int
    bits: int

    def __post_init__(self) -> None:
        if self.bits <= 0:
            raise WidthMismatch(f"literal width must be positive, got {self.bits}")
        if not 0 <= self.value < (1 << self.bits):
            raise WidthMismatch(f"literal {self.value:#x} does not fit in {self.bits} bits")

    def __str__(self) -> str:
        digits = max(1, (self.bits + 3) // 4)
        return f"0x{self.value:0{digits}X}:{self.bits}"


@dataclass(frozen=True)
class Reference(Node):
    """Leaf pointing at a previously created symbolic element."""

    id: int
    bits: int

    def __post_init__(self) -> None:
        if self.id < 0:
            raise ValueError(f"invalid symbolic id {self.id}")
        if self.bits <= 0:
            raise WidthMismatch(f"reference width must be positive, got {self.bits}")

    def __str__(self) -> str:
        return f"#{self.id}"


@dataclass(frozen=True)
class BinaryOp(Node):
    operator: str
    lhs: Node
    rhs: Node

    def __post_init__(self) -> None:
        if self.operator not in BINARY_OPERATORS:
            raise ValueError(f"unknown binary operator {self.operator}")
        _check_bitvector(self.lhs, self.operator)
        _check_bitvector(self.rhs, self.operator)
        if self.lhs.bits != self.rhs.bits:
            raise WidthMismatch(
                f"{self.operator} operands differ in width: {self.lhs.bits} vs {self.rhs.bits}"
            )

    @property
    def bits(self) -> int:  # type: ignore[override]
        return self.lhs.bits

    @property
    def children(self) -> Tuple[Node, ...]:
        return (self.lhs, self.rhs)

    def __str__(self) -> str:
        return f"({self.operator} {self.lhs} {self.rhs})"


@dataclass(frozen=True)
class UnaryOp(Node):
    operator: str
    operand: Node

    def __post_init__(self) -> None:
        if self.operator not in UNARY_OPERATORS:
            raise ValueError(f"unknown unary operator {self.operator}")
        _check_bitvector(self.operand, self.operator)

    @property
    def bits(self) -> int:  # type: ignore[override]
        return self.operand.bits

    @property
    def children(self) -> Tuple[Node, ...]:
        return (self.operand,)

    def __str__(self) -> str:
        return f"({self.operator} {self.operand})"


@dataclass(frozen=True)
class Equal(Node):
    """Boolean equality; only usable as the condition of an :class:`Ite`."""

    lhs: Node
    rhs: Node
    boolean = True

    def __post_init__(self) -> None:
        _check_bitvector(self.lhs, "=")
        _check_bitvector(self.rhs, "=")
        if self.lhs.bits != self.rhs.bits:
            raise WidthMismatch(f"= operands differ in width: {self.lhs.bits} vs {self.rhs.bits}")

    @property
    def bits(self) -> int:  # type: ignore[override]
        return 1

    @property
    def children(self) -> Tuple[Node, ...]:
        return (self.lhs, self.rhs)

    def __str__(self) -> str:
        return f"(= {self.lhs} {self.rhs})"


@dataclass(frozen=True)
class Ite(Node):
    condition: Node
    then: Node
    otherwise: Node

    def __post_init__(self) -> None:
        if not self.condition.boolean:
            raise WidthMismatch(f"ite condition must be boolean, got {self.condition}")
        _check_bitvector(self.then, "ite")
        _check_bitvector(self.otherwise, "ite")
        if self.then.bits != self.otherwise.bits:
            raise WidthMismatch(
                f"ite branches differ in width: {self.then.bits} vs {self.otherwise.bits}"
            )

    @property
    def bits(self) -> int:  # type: ignore[override]
        return self.then.bits

    @property
    def children(self) -> Tuple[Node, ...]:
        return (self.condition, self.then, self.otherwise)

    def __str__(self) -> str:
        return f"(ite {self.condition} {self.then} {self.otherwise})"


@dataclass(frozen=True)
class Extract(Node):
    high: int
    low: int
    operand: Node

    def __post_init__(self) -> None:
        _check_bitvector(self.operand, "extract")
        if not 0 <= self.low <= self.high < self.operand.bits:
            raise WidthMismatch(
                f"cannot extract bits {self.high}..{self.low} from a {self.operand.bits}-bit term"
            )

    @property
    def bits(self) -> int:  # type: ignore[override]
        return self.high - self.low + 1

    @property
    def children(self) -> Tuple[Node, ...]:
        return (self.operand,)

    def __str__(self) -> str:
        return f"((_ extract {self.high} {self.low}) {self.operand})"


@dataclass(frozen=True)
class ZeroExtend(Node):
    extra: int
    operand: Node

    def __post_init__(self) -> None:
        _check_bitvector(self.operand, "zero_extend")
        if self.extra < 0:
            raise WidthMismatch(f"cannot zero extend by {self.extra} bits")

    @property
    def bits(self) -> int:  # type: ignore[override]
        return self.operand.bits + self.extra

    @property
    def children(self) -> Tuple[Node, ...]:
        return (self.operand,)

    def __str__(self) -> str:
        return f"((_ zero_extend {self.extra}) {self.operand})"


@dataclass(frozen=True)
class Concat(Node):
    """Concatenation, most significant part first."""

    parts: Tuple[Node, ...]

    def __post_init__(self) -> None:
        if len(self.parts) < 2:
            raise ValueError("concat needs at least two parts")
        for part in self.parts:
            _check_bitvector(part, "concat")

    @property
    def bits(self) -> int:  # type: ignore[override]
        return sum(part.bits for part in self.parts)

    @property
    def children(self) -> Tuple[Node, ...]:
        return self.parts

    def __str__(self) -> str:
        return "(concat " + " ".join(str(part) for part in self.parts) + ")"


# ----------------------------------------------------------------------
# Construction helpers
# ----------------------------------------------------------------------
def bv(value: int, bits: int) -> BitVector:
    """Build a literal; negative values are taken as two's complement."""
    if value < 0:
        if value < -(1 << (bits - 1)):
            raise WidthMismatch(f"literal {value} does not fit in {bits} bits")
        value &= (1 << bits) - 1
    return BitVector(value, bits)


def ref(symbolic_id: int, bits: int) -> Reference:
    return Reference(symbolic_id, bits)


def binary(operator: str, lhs: Node, rhs: Node) -> BinaryOp:
    return BinaryOp(operator, lhs, rhs)


def bvadd(lhs: Node, rhs: Node) -> BinaryOp:
    return BinaryOp("bvadd", lhs, rhs)


def bvsub(lhs: Node, rhs: Node) -> BinaryOp:
    return BinaryOp("bvsub", lhs, rhs)


def bvand(lhs: Node, rhs: Node) -> BinaryOp:
    return BinaryOp("bvand", lhs, rhs)


def bvor(lhs: Node, rhs: Node) -> BinaryOp:
    return BinaryOp("bvor", lhs, rhs)


def bvxor(lhs: Node, rhs: Node) -> BinaryOp:
    return BinaryOp("bvxor", lhs, rhs)


def bvnot(operand: Node) -> UnaryOp:
    return UnaryOp("bvnot", operand)


def equal(lhs: Node, rhs: Node) -> Equal:
    return Equal(lhs, rhs)


def ite(condition: Node, then: Node, otherwise: Node) -> Ite:
    return Ite(condition, then, otherwise)


def extract(high: int, low: int, operand: Node) -> Node:
    if low == 0 and high == operand.bits - 1:
        return operand
    if isinstance(operand, BitVector) and 0 <= low <= high < operand.bits:
        return BitVector((operand.value >> low) & ((1 << (high - low + 1)) - 1), high - low + 1)
    return Extract(high, low, operand)


def zero_extend(extra: int, operand: Node) -> Node:
    if extra == 0:
        return operand
    return ZeroExtend(extra, operand)


def concat(*parts: Node) -> Concat:
    return Concat(tuple(parts))


def is_zero(operand: Node) -> Ite:
    """One-bit term that is 1 when ``operand`` equals zero."""
    return Ite(Equal(operand, BitVector(0, operand.bits)), BitVector(1, 1), BitVector(0, 1))


def msb(operand: Node) -> Node:
    return extract(operand.bits - 1, operand.bits - 1, operand)

"""Per-opcode semantic configuration.

Which status flags an opcode models is data in this table rather than code
in the builders. Only the zero flag is modelled by default; the remaining
arithmetic flags have semantics available and can be switched on per
session through :func:`opcode_table`.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterable, Mapping, Optional, Tuple

# Order in which flag elements are appended to an instruction
CANONICAL_FLAG_ORDER = ("af", "cf", "of", "pf", "sf", "zf")

FLAG_NAMES = {
    "af": "Adjust flag",
    "cf": "Carry flag",
    "of": "Overflow flag",
    "pf": "Parity flag",
    "sf": "Sign flag",
    "zf": "Zero flag",
}

# Flags each semantic family knows how to compute. AF is undefined after
# logic operations on x86, so that family cannot model it.
SUPPORTED_FLAGS = {
    "add": ("af", "cf", "of", "pf", "sf", "zf"),
    "sub": ("af", "cf", "of", "pf", "sf", "zf"),
    "logic": ("cf", "of", "pf", "sf", "zf"),
}


@dataclass(frozen=True)
class OpcodeSpec:
    mnemonic: str
    opcode_class: str
    operator: Optional[str]
    flags: Tuple[str, ...] = ()
    flag_family: Optional[str] = None

    @property
    def comment(self) -> str:
        return f"{self.mnemonic.upper()} operation"


OPCODES: Dict[str, OpcodeSpec] = {
    "add": OpcodeSpec("add", "alu", "bvadd", ("zf",), "add"),
    "sub": OpcodeSpec("sub", "alu", "bvsub", ("zf",), "sub"),
    "and": OpcodeSpec("and", "alu", "bvand", ("zf",), "logic"),
    "or": OpcodeSpec("or", "alu", "bvor", ("zf",), "logic"),
    "xor": OpcodeSpec("xor", "alu", "bvxor", ("zf",), "logic"),
    "mov": OpcodeSpec("mov", "move", None),
}


def order_flags(spec: OpcodeSpec, flags: Iterable[str]) -> Tuple[str, ...]:
    """Validate ``flags`` for ``spec`` and return them in canonical order."""
    requested = {flag.lower() for flag in flags}
    unknown = requested - set(CANONICAL_FLAG_ORDER)
    if unknown:
        raise ValueError(f"unknown flag(s) for {spec.mnemonic}: {', '.join(sorted(unknown))}")
    supported = set(SUPPORTED_FLAGS.get(spec.flag_family, ()))
    missing = requested - supported
    if missing:
        raise ValueError(f"{spec.mnemonic} has no semantics for flag(s): {', '.join(sorted(missing))}")
    return tuple(flag for flag in CANONICAL_FLAG_ORDER if flag in requested)


def opcode_table(overrides: Optional[Mapping[str, Iterable[str]]] = None) -> Dict[str, OpcodeSpec]:
    """Default table with the declared flag sets replaced by ``overrides``."""
    table = dict(OPCODES)
    for mnemonic, flags in (overrides or {}).items():
        key = mnemonic.lower()
        if key not in table:
            raise ValueError(f"unknown opcode '{mnemonic}' in flag configuration")
        table[key] = replace(table[key], flags=order_flags(table[key], flags))
    return table

"""Register catalogues for x86 and x86-64 and sub-register aliasing."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from .errors import UnknownRegister

# Bit position of each status flag inside (e|r)flags
FLAG_BITS = {
    "cf": 0,
    "pf": 2,
    "af": 4,
    "zf": 6,
    "sf": 7,
    "tf": 8,
    "if": 9,
    "df": 10,
    "of": 11,
}


@dataclass(frozen=True)
class RegisterRef:
    """A register as named by an instruction operand.

    ``canonical`` is the full-width architectural register the name aliases
    into and ``low`` the position of its least significant bit there.
    """

    name: str
    canonical: str
    bits: int
    low: int = 0
    is_flag: bool = False

    @property
    def high(self) -> int:
        return self.low + self.bits - 1

    @property
    def is_canonical(self) -> bool:
        return self.name == self.canonical

    def __str__(self) -> str:
        return self.name


class Architecture:
    """Name lookup and canonicalisation over one register catalogue."""

    def __init__(self, name: str, address_bits: int, flags_register: str, registers: Iterable[RegisterRef]) -> None:
        self.name = name
        self.address_bits = address_bits
        self.flags_register = flags_register
        self._registers: Dict[str, RegisterRef] = {}
        for reg in registers:
            self._registers[reg.name] = reg

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._registers

    def __repr__(self) -> str:
        return f"Architecture({self.name!r})"

    def register(self, name: str) -> RegisterRef:
        try:
            return self._registers[name.lower()]
        except KeyError:
            raise UnknownRegister(f"unknown register '{name}' for {self.name}") from None

    def canonicalize(self, ref: RegisterRef) -> str:
        if ref.name not in self._registers:
            raise UnknownRegister(f"unknown register '{ref.name}' for {self.name}")
        return ref.canonical

    def canonical_register(self, ref: RegisterRef) -> RegisterRef:
        return self._registers[self.canonicalize(ref)]

    def canonical_registers(self) -> List[RegisterRef]:
        return [reg for reg in self._registers.values() if reg.is_canonical]

    def flags(self) -> List[RegisterRef]:
        return [reg for reg in self._registers.values() if reg.is_flag]


def _legacy_family(letter: str, wide: bool) -> List[RegisterRef]:
    canonical = f"r{letter}x" if wide else f"e{letter}x"
    regs = [
        RegisterRef(f"{letter}x", canonical, 16),
        RegisterRef(f"{letter}h", canonical, 8, low=8),
        RegisterRef(f"{letter}l", canonical, 8),
    ]
    if wide:
        regs.insert(0, RegisterRef(f"e{letter}x", canonical, 32))
    regs.insert(0, RegisterRef(canonical, canonical, 64 if wide else 32))
    return regs


def _index_family(base: str, wide: bool) -> List[RegisterRef]:
    # si, di, bp, sp
    canonical = f"r{base}" if wide else f"e{base}"
    regs = [RegisterRef(canonical, canonical, 64 if wide else 32)]
    if wide:
        regs.append(RegisterRef(f"e{base}", canonical, 32))
    regs.append(RegisterRef(base, canonical, 16))
    if wide:
        regs.append(RegisterRef(f"{base}l", canonical, 8))
    return regs


def _extended_family(number: int) -> List[RegisterRef]:
    canonical = f"r{number}"
    return [
        RegisterRef(canonical, canonical, 64),
        RegisterRef(f"{canonical}d", canonical, 32),
        RegisterRef(f"{canonical}w", canonical, 16),
        RegisterRef(f"{canonical}b", canonical, 8),
    ]


def _flag_registers() -> List[RegisterRef]:
    return [RegisterRef(flag, flag, 1, is_flag=True) for flag in FLAG_BITS]


def _build_x86_64() -> Architecture:
    regs: List[RegisterRef] = []
    for letter in "abcd":
        regs.extend(_legacy_family(letter, wide=True))
    for base in ("si", "di", "bp", "sp"):
        regs.extend(_index_family(base, wide=True))
    for number in range(8, 16):
        regs.extend(_extended_family(number))
    regs.append(RegisterRef("rip", "rip", 64))
    regs.append(RegisterRef("rflags", "rflags", 64))
    regs.append(RegisterRef("eflags", "rflags", 32))
    regs.extend(_flag_registers())
    return Architecture("x86_64", 64, "rflags", regs)


def _build_x86() -> Architecture:
    regs: List[RegisterRef] = []
    for letter in "abcd":
        regs.extend(_legacy_family(letter, wide=False))
    for base in ("si", "di", "bp", "sp"):
        regs.extend(_index_family(base, wide=False))
    regs.append(RegisterRef("eip", "eip", 32))
    regs.append(RegisterRef("eflags", "eflags", 32))
    regs.extend(_flag_registers())
    return Architecture("x86", 32, "eflags", regs)


ARCHITECTURES = {
    "x86_64": _build_x86_64,
    "x86": _build_x86,
}


def get_architecture(name: str) -> Architecture:
    try:
        factory = ARCHITECTURES[name]
    except KeyError:
        raise ValueError(f"unsupported architecture '{name}' (expected one of {sorted(ARCHITECTURES)})") from None
    return factory()


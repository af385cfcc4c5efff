"""Session configuration and logging setup."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class AnalysisConfig:
    arch: str = "x86_64"
    # mnemonic -> flags to model, replacing the opcode table default
    flags: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    tainted_registers: List[str] = field(default_factory=list)
    tainted_memory: List[Tuple[int, int]] = field(default_factory=list)


def parse_int(text: str) -> int:
    return int(text, 0)


def parse_flag_overrides(specs: Optional[Iterable[str]]) -> Dict[str, Tuple[str, ...]]:
    """Turn ``["add=zf,cf", "mov="]`` into ``{"add": ("zf", "cf"), "mov": ()}``."""
    overrides: Dict[str, Tuple[str, ...]] = {}
    for spec in specs or []:
        if "=" not in spec:
            raise ValueError(f"invalid flag specification '{spec}' (expected MNEMONIC=FLAG,...)")
        mnemonic, _, flags = spec.partition("=")
        overrides[mnemonic.strip().lower()] = tuple(flag.strip() for flag in flags.split(",") if flag.strip())
    return overrides


def parse_memory_range(spec: str) -> Tuple[int, int]:
    """Parse ``ADDR[:SIZE]``; the size defaults to one byte."""
    address, _, size = spec.partition(":")
    return parse_int(address), parse_int(size) if size else 1


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)

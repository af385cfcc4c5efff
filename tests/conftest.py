import sys
from pathlib import Path

import pytest

# Ensure the project package is importable when tests run via pytest
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from symtaint import AnalysisConfig, DecodedInstruction, Session  # noqa: E402
from symtaint.operands import Immediate, MemoryOperand, RegisterOperand  # noqa: E402

ADDRESS = 0x401000


@pytest.fixture
def session() -> Session:
    return Session()


@pytest.fixture
def all_flags_session() -> Session:
    every = ("af", "cf", "of", "pf", "sf", "zf")
    return Session(AnalysisConfig(flags={"add": every, "sub": every, "xor": ("cf", "of", "pf", "sf", "zf")}))


@pytest.fixture
def reg(session):
    def build(name: str, arch=None) -> RegisterOperand:
        return RegisterOperand((arch or session.arch).register(name))

    return build


@pytest.fixture
def imm():
    def build(value: int, bits: int = 32) -> Immediate:
        return Immediate(value, bits)

    return build


@pytest.fixture
def mem():
    def build(address: int, size: int = 4) -> MemoryOperand:
        return MemoryOperand(address, size)

    return build


@pytest.fixture
def decoded():
    def build(mnemonic, *operands, address=ADDRESS, opcodes=b"\x90") -> DecodedInstruction:
        return DecodedInstruction(address=address, mnemonic=mnemonic, operands=list(operands), opcodes=opcodes)

    return build

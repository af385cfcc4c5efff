"""symtaint: instruction semantics, symbolic state and taint propagation for x86."""

__all__ = [
    "AnalysisConfig",
    "DecodedInstruction",
    "Instruction",
    "Session",
    "UNSET",
    "arch",
    "ast",
    "builders",
    "context",
    "errors",
    "operands",
    "smt",
    "state",
    "taint",
]

from . import arch, ast, builders, context, errors, operands, smt, state, taint  # noqa: E402
from .config import AnalysisConfig  # noqa: E402
from .instruction import DecodedInstruction, Instruction  # noqa: E402
from .session import Session  # noqa: E402
from .state import UNSET  # noqa: E402

__version__ = "0.1.0"

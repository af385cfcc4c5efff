import json
from datetime import datetime
from typing import Any, Iterable, List, Tuple

from .errors import SymTaintError


def _ranges(addresses: Iterable[int]) -> List[Tuple[int, int]]:
    """Collapse byte addresses into (start, size) runs."""
    runs: List[Tuple[int, int]] = []
    for address in sorted(addresses):
        if runs and runs[-1][0] + runs[-1][1] == address:
            runs[-1] = (runs[-1][0], runs[-1][1] + 1)
        else:
            runs.append((address, 1))
    return runs


class TraceRecord:
    def __init__(self, arch="x86_64"):
        self.trace_info = {
            "timestamp": datetime.now().isoformat(),
            "arch": arch,
            "instructions": [],
            "errors": [],
            "final_state": None
        }

    @property
    def instructions(self):
        return self.trace_info["instructions"]

    @property
    def errors(self):
        return self.trace_info["errors"]

    def add_instruction(self, instruction):
        """
        Record a processed instruction

        Args:
            instruction: Instruction object
        """
        self.trace_info["instructions"].append(instruction.to_dict())

    def add_error(self, address: Any, error: SymTaintError):
        self.trace_info["errors"].append({
            "address": error.address if error.address is not None else address,
            "mnemonic": error.mnemonic,
            "error": type(error).__name__,
            "message": error.message
        })

    def set_final_state(self, session):
        """
        Set final state of the analysis

        Args:
            session: Session the trace was processed against
        """
        self.trace_info["final_state"] = {
            "registers": dict(sorted(session.state.registers.items())),
            "memory": {hex(k): v for k, v in sorted(session.state.memory.items())},
            "next_id": session.state.next_id,
            "tainted_registers": sorted(session.taint.tainted_registers),
            "tainted_memory": [[hex(start), size] for start, size in _ranges(session.taint.tainted_memory)]
        }


def save_trace(trace_record, filename):
    """
    Write the collected instructions, errors and final state as JSON

    Args:
        trace_record: TraceRecord to serialise
        filename: Output path
    """
    with open(filename, 'w') as f:
        json.dump(trace_record.trace_info, f, indent=2)

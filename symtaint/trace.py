"""JSON-lines trace loading and trace-level processing.

One instruction per line. Either decoded operands are given::

    {"address": "0x401000", "mnemonic": "add",
     "operands": [{"type": "reg", "name": "eax"}, {"type": "imm", "value": 5, "bits": 32}],
     "context": {"registers": {"eax": 10}, "memory": [["0x1000", 4, 7]]}}

or the raw bytes, decoded through capstone once the context is loaded::

    {"address": "0x401000", "bytes": "83c005", "context": {"registers": {"eax": 10}}}

Blank lines and lines starting with ``#`` are ignored.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional

from .arch import Architecture
from .decoder import Decoder
from .errors import SymTaintError, TraceFormatError
from .instruction import DecodedInstruction
from .operands import Immediate, MemoryOperand, Operand, RegisterOperand
from .session import Session
from .trace_recorder import TraceRecord

LOGGER = logging.getLogger(__name__)


def _int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def load_trace(path: Path) -> Iterator[Dict[str, Any]]:
    """Yield the raw JSON records of a trace file."""
    with open(path, "r") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                raise TraceFormatError(f"{path}:{lineno}: invalid JSON ({exc.msg})") from exc
            if not isinstance(record, dict) or "address" not in record:
                raise TraceFormatError(f"{path}:{lineno}: expected an object with an address")
            yield record


def parse_operand(payload: Dict[str, Any], arch: Architecture) -> Operand:
    kind = payload.get("type")
    if kind == "reg":
        return RegisterOperand(arch.register(payload["name"]))
    if kind == "imm":
        return Immediate(_int(payload["value"]), int(payload.get("bits", arch.address_bits)))
    if kind == "mem":
        return MemoryOperand(_int(payload["address"]), int(payload["size"]))
    raise TraceFormatError(f"unknown operand type {kind!r}")


def parse_record(record: Dict[str, Any], arch: Architecture) -> DecodedInstruction:
    """Build a decoded instruction, with its context, from a record."""
    try:
        decoded = DecodedInstruction(
            address=_int(record["address"]),
            mnemonic=record["mnemonic"],
            operands=[parse_operand(item, arch) for item in record.get("operands", [])],
            disassembly=record.get("disassembly", ""),
            opcodes=bytes.fromhex(record.get("bytes", "")),
            thread_id=int(record.get("thread_id", 0)),
        )
    except (KeyError, ValueError) as exc:
        raise TraceFormatError(f"malformed trace record: {exc}") from exc
    load_context(decoded, record.get("context") or {}, arch)
    return decoded


def load_context(decoded: DecodedInstruction, context: Dict[str, Any], arch: Architecture) -> None:
    try:
        for name, value in (context.get("registers") or {}).items():
            decoded.update_context(arch.register(name), _int(value))
        for address, size, value in context.get("memory") or []:
            if int(size) <= 0:
                raise ValueError(f"invalid memory access size {size}")
            decoded.update_context(MemoryOperand(_int(address), int(size)), _int(value))
    except (AttributeError, TypeError, ValueError) as exc:
        raise TraceFormatError(
            f"malformed context: {exc}", address=decoded.address, mnemonic=decoded.mnemonic or None
        ) from exc


def decode_record(session: Session, record: Dict[str, Any], decoder: Optional[Decoder] = None) -> DecodedInstruction:
    if "mnemonic" in record:
        return parse_record(record, session.arch)
    if "bytes" not in record:
        raise TraceFormatError("trace record needs either a mnemonic or raw bytes")
    try:
        address = _int(record["address"])
        code = bytes.fromhex(record["bytes"])
    except ValueError as exc:
        raise TraceFormatError(f"malformed trace record: {exc}") from exc
    # Operand addresses depend on the concrete registers, load them first
    pending = DecodedInstruction(address=address, mnemonic="")
    load_context(pending, record.get("context") or {}, session.arch)
    pending.apply_context(session.context)
    decoder = decoder or Decoder(session.arch)
    decoded = decoder.decode(code, address, session.context)
    decoded.thread_id = int(record.get("thread_id", 0))
    return decoded


def run_trace(
    session: Session,
    records: Iterable[Dict[str, Any]],
    record: Optional[TraceRecord] = None,
    decoder: Optional[Decoder] = None,
) -> TraceRecord:
    """Process every record; a failing instruction is recorded and skipped."""
    record = record or TraceRecord(session.arch.name)
    for item in records:
        try:
            if "mnemonic" not in item and decoder is None:
                decoder = Decoder(session.arch)
            decoded = decode_record(session, item, decoder)
            inst = session.process(decoded)
        except SymTaintError as exc:
            LOGGER.warning("skipping instruction: %s", exc)
            record.add_error(item.get("address"), exc)
            continue
        record.add_instruction(inst)
    record.set_final_state(session)
    return record

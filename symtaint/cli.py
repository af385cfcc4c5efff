"""Command line interface for symtaint."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import trace
from .arch import ARCHITECTURES
from .config import AnalysisConfig, configure_logging, parse_flag_overrides, parse_memory_range
from .errors import SymTaintError
from .session import Session
from .trace_recorder import save_trace

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="symtaint", description="Instruction-level symbolic execution and taint tracking")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Translate a JSON-lines instruction trace")
    run_parser.add_argument("trace", type=Path, help="Path to the JSON-lines trace")
    run_parser.add_argument("--output", "-o", type=Path, default=Path("trace_result.json"), help="Output JSON path")
    run_parser.add_argument("--arch", choices=sorted(ARCHITECTURES), default="x86_64", help="Target architecture")
    run_parser.add_argument("--flags", action="append", metavar="MNEMONIC=FLAG,...",
                            help="Status flags to model for an opcode, e.g. add=cf,zf (repeatable)")
    run_parser.add_argument("--taint-reg", action="append", dest="taint_regs", default=[],
                            help="Register tainted before the first instruction (repeatable)")
    run_parser.add_argument("--taint-mem", action="append", dest="taint_mem", default=[], metavar="ADDR[:SIZE]",
                            help="Memory range tainted before the first instruction (repeatable)")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "run":
        try:
            config = AnalysisConfig(
                arch=args.arch,
                flags=parse_flag_overrides(args.flags),
                tainted_registers=list(args.taint_regs),
                tainted_memory=[parse_memory_range(spec) for spec in args.taint_mem],
            )
            session = Session(config)
            record = trace.run_trace(session, trace.load_trace(args.trace))
        except (SymTaintError, ValueError, OSError) as exc:
            LOGGER.error("%s", exc)
            return 2
        save_trace(record, args.output)
        print(f"[+] {len(record.instructions)} instruction(s) written to {args.output}")
        if record.errors:
            print(f"[!] {len(record.errors)} instruction(s) skipped")
            return 1
        return 0

    parser.error("unknown command")
    return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
lmckit — Little Man Computer Toolkit
====================================

One CLI for the assembler and the emulator:
    lmckit asm    — Assemble LMC source, print the listing
    lmckit run    — Assemble and run a program
    lmckit test   — Run the test directives embedded in a program
    lmckit debug  — Step through a program interactively

Usage:
    python lmckit.py <command> [options]
    python lmckit.py --help
    python lmckit.py <command> --help

Examples:
    python lmckit.py asm examples/bin_to_dec.lmc --symbols
    python lmckit.py run examples/bin_to_dec.lmc --input 5,1,0,1,0,0
    python lmckit.py run examples/countdown.lmc --trace
    python lmckit.py test examples/bin_to_dec.lmc
    python lmckit.py -v debug examples/countdown.lmc --input 3

Exit status: 0 success, 1 assembly/run-time/test failure, 2 internal error.
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from lmc_assembler import Assembler, AssemblerError, __version__
from lmc_emulator import (
    Debugger, LMCEmulator, MachineError, MachineState, StopReason, Verdict,
    log_trace_event, parse_step_count, run_tests, summarize,
)
from lmc_emulator.console import ConsoleInput
from lmc_emulator.cpu.decoder import disassemble
from lmc_emulator.mem.memory import Memory

log = logging.getLogger("lmckit")

out = Console(highlight=False)
err = Console(stderr=True, highlight=False)

_VERDICT_STYLE = {
    Verdict.PASS: "green",
    Verdict.FAIL: "red",
    Verdict.ERROR: "bold red",
    Verdict.NOT_HALTED: "yellow",
}


# ═════════════════════════════════════════════════════════════════════════════
# LOGGING
# ═════════════════════════════════════════════════════════════════════════════

# Handlers installed by setup_logging(), replaced on every call
_handlers: List[logging.Handler] = []


def setup_logging(console_level: int = logging.WARNING,
                  log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger and return the lmckit logger.

    Console: rich handler at console_level.
    File (optional): everything at DEBUG, pipe-separated format.

    Calling it again swaps out the handlers from the previous call and
    leaves any other root handlers alone.
    """
    root = logging.getLogger()
    while _handlers:
        old = _handlers.pop()
        root.removeHandler(old)
        old.close()
    root.setLevel(logging.DEBUG if log_file else console_level)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        _handlers.append(fh)

    ch = RichHandler(
        console=err,
        level=console_level,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    _handlers.append(ch)

    for handler in _handlers:
        root.addHandler(handler)

    log.debug("Logger initialized, console level %s", logging.getLevelName(console_level))
    if log_file:
        log.info("Log file: %s", log_file)
    return log


def _console_level(args) -> int:
    if args.quiet:
        return logging.ERROR
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    return logging.WARNING


# ═════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═════════════════════════════════════════════════════════════════════════════

def _read_source(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _assemble_file(path: str):
    asm = Assembler()
    program = asm.assemble(_read_source(path))
    log.info("Assembled %s: %d words, %d labels, %d tests",
             path, len(program.image), len(program.symbols), len(program.tests))
    return asm, program


def _parse_inputs(text: Optional[str]) -> Optional[List[int]]:
    """Parse '--input 1,0,1' into a list. None means prompt on the console."""
    if text is None:
        return None
    values = []
    for entry in text.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            value = int(entry)
        except ValueError:
            raise ValueError(f"Input value '{entry}' is not an integer") from None
        if not 0 <= value <= 999:
            raise ValueError(f"Input value {value} out of range 0-999")
        values.append(value)
    return values


def _build_emulator(program, input_text: Optional[str], trace: bool = False) -> LMCEmulator:
    inputs = _parse_inputs(input_text)
    provider = ConsoleInput(console=out) if inputs is None else None

    def sink(event):
        log_trace_event(event)
        if trace:
            out.print(event.display())

    return LMCEmulator(MachineState.from_program(program, inputs or ()),
                       input_provider=provider, trace_sink=sink)


def _fmt_values(values) -> str:
    return "[" + ", ".join(str(v) for v in values) + "]"


# ═════════════════════════════════════════════════════════════════════════════
# COMMAND IMPLEMENTATIONS
# ═════════════════════════════════════════════════════════════════════════════

# ── asm ──────────────────────────────────────────────────────────────────
def cmd_asm(args) -> int:
    asm, program = _assemble_file(args.input)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write("\n".join(f"{word:03d}" for word in program.image) + "\n")
        out.print(f"Wrote {len(program.image)} words to {args.output}")
    else:
        out.print(asm.get_listing(), markup=False)

    if args.symbols:
        out.print()
        out.print("SYMBOLS")
        for name, addr in sorted(program.symbols.items(), key=lambda kv: kv[1]):
            out.print(f"  {addr:02d}  {name}", markup=False)
    return 0


# ── run ──────────────────────────────────────────────────────────────────
def cmd_run(args) -> int:
    _, program = _assemble_file(args.input)
    emu = _build_emulator(program, args.input_values, trace=args.trace)

    reason = emu.run(args.max_steps)
    state = emu.state

    for value in state.outbox:
        out.print(value)
    out.print(f"{state.steps} instructions, in: {_fmt_values(state.taken)}, "
              f"out: {_fmt_values(state.outbox)}", style="dim")
    if emu.input_provider is not None and emu.input_provider.history:
        out.print(f"typed at the console: {_fmt_values(emu.input_provider.history)}", style="dim")

    if reason is StopReason.TIMEOUT:
        err.print(f"Program did not halt within {args.max_steps} steps", style="yellow")
        return 1
    return 0


# ── test ─────────────────────────────────────────────────────────────────
def cmd_test(args) -> int:
    _, program = _assemble_file(args.input)
    if not program.tests:
        out.print("No test directives found")
        return 0

    try:
        results = run_tests(program, args.max_steps, names=args.only)
    except KeyError as e:
        err.print(f"Unknown test: {escape(str(e))}", style="red")
        return 1

    table = Table(title=args.input)
    table.add_column("Test")
    table.add_column("Verdict")
    table.add_column("Expected")
    table.add_column("Actual")
    table.add_column("Steps", justify="right")
    table.add_column("Detail")
    for r in results:
        detail = f"{r.error_kind}: {r.detail}" if r.error_kind else r.detail
        table.add_row(
            escape(r.name),
            f"[{_VERDICT_STYLE[r.verdict]}]{r.verdict.value}[/]",
            escape(_fmt_values(r.expected)),
            escape(_fmt_values(r.actual)),
            str(r.steps),
            escape(detail),
        )
    out.print(table)
    out.print(summarize(results))

    return 0 if all(r.passed for r in results) else 1


# ── debug ────────────────────────────────────────────────────────────────
def _show_next(emu: LMCEmulator):
    pc = emu.regs.PC
    if emu.state.running and 0 <= pc < len(emu.mem):
        out.print(f"next: {pc:02d}  {disassemble(emu.mem.read(pc))}")


def cmd_debug(args) -> int:
    _, program = _assemble_file(args.input)
    emu = _build_emulator(program, args.input_values, trace=False)
    dbg = Debugger(emu)

    out.print("Enter a step count (blank = 1), m to dump memory, q to quit")
    out.print(emu.regs.display())
    _show_next(emu)
    while True:
        try:
            reply = out.input("step> ")
        except EOFError:
            break
        command = reply.strip().lower()
        if command in ("q", "quit"):
            break
        if command == "m":
            out.print(emu.mem.dump(), markup=False)
            continue
        try:
            count = parse_step_count(reply)
        except ValueError as e:
            err.print(escape(str(e)), style="red")
            continue

        before = emu.mem.snapshot()
        result = dbg.step(count)
        for event in result.events:
            out.print(event.display())
        for addr, (old, new) in Memory.diff_snapshots(before, emu.mem.snapshot()).items():
            out.print(f"mem[{addr:02d}] {old:03d} -> {new:03d}", markup=False)
        out.print(f"{result.registers.display()}  [{result.status.value}]", markup=False)

        if result.error is not None:
            err.print(f"{result.error.kind}: {escape(str(result.error))}", style="red")
        if result.halted:
            out.print(f"out: {_fmt_values(emu.state.outbox)}")
            break
        _show_next(emu)

    return 1 if emu.state.fault is not None else 0


COMMANDS = {
    "asm": cmd_asm,
    "run": cmd_run,
    "test": cmd_test,
    "debug": cmd_debug,
}


# ═════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ═════════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lmckit",
        description="Little Man Computer toolkit: assemble, run, test, debug",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""commands:
  asm     Assemble LMC source, print the listing
  run     Assemble and run a program
  test    Run the test directives embedded in a program
  debug   Step through a program interactively
""",
    )
    parser.add_argument("--version", action="version", version=f"lmckit {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More console logging (-v info, -vv debug)")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Only log errors to the console")
    parser.add_argument("--log-file", default=None,
                        help="Also write a DEBUG log to this file")
    sub = parser.add_subparsers(dest="command", metavar="command")

    # ── asm ──────────────────────────────────────────────────────────────
    p_asm = sub.add_parser("asm", help="Assemble LMC source, print the listing")
    p_asm.add_argument("input", help="Input .lmc file")
    p_asm.add_argument("-o", "--output", help="Write the object words, one per line")
    p_asm.add_argument("--symbols", action="store_true", help="Print the symbol table")

    # ── run ──────────────────────────────────────────────────────────────
    p_run = sub.add_parser("run", help="Assemble and run a program")
    p_run.add_argument("input", help="Input .lmc file")
    p_run.add_argument("--input", dest="input_values", default=None,
                       help="Comma-separated inputs, e.g. 5,1,0,1,0,0 (default: prompt)")
    p_run.add_argument("--trace", action="store_true", help="Print every executed instruction")
    p_run.add_argument("--max-steps", type=int, default=LMCEmulator.DEFAULT_MAX_STEPS,
                       help=f"Step ceiling (default: {LMCEmulator.DEFAULT_MAX_STEPS})")

    # ── test ─────────────────────────────────────────────────────────────
    p_test = sub.add_parser("test", help="Run embedded test directives")
    p_test.add_argument("input", help="Input .lmc file")
    p_test.add_argument("--only", action="append", default=None, metavar="NAME",
                        help="Run only this test (repeatable)")
    p_test.add_argument("--max-steps", type=int, default=LMCEmulator.DEFAULT_MAX_STEPS,
                        help=f"Step ceiling per test (default: {LMCEmulator.DEFAULT_MAX_STEPS})")

    # ── debug ────────────────────────────────────────────────────────────
    p_dbg = sub.add_parser("debug", help="Step through a program interactively")
    p_dbg.add_argument("input", help="Input .lmc file")
    p_dbg.add_argument("--input", dest="input_values", default=None,
                       help="Comma-separated inputs (default: prompt)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    setup_logging(_console_level(args), args.log_file)

    handler = COMMANDS[args.command]
    try:
        return handler(args)
    except FileNotFoundError as e:
        err.print(f"Error: File not found: {escape(str(e.filename))}", style="red")
        return 1
    except AssemblerError as e:
        err.print(f"Assembly error ({e.kind}): {escape(str(e))}", style="red")
        if e.line_text:
            err.print(f"    {escape(e.line_text.strip())}")
        return 1
    except MachineError as e:
        err.print(f"Run-time error ({e.kind}): {escape(str(e))}", style="red")
        return 1
    except ValueError as e:
        err.print(f"Error: {escape(str(e))}", style="red")
        return 1
    except Exception as e:
        log.exception("Internal error")
        err.print(f"Internal error: {escape(str(e))}", style="bold red")
        return 2


if __name__ == "__main__":
    sys.exit(main())

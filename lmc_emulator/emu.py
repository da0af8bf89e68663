"""
LMC Emulator — Execution Engine

Fetch-decode-execute loop for the ten LMC instructions.

Execution model (one step):
  1. Fetch the word at PC. PC past the last cell is a fatal error: there
     is no implicit halt at the end of memory.
  2. Decode it (cpu/decoder.py).
  3. Advance PC by one. Branches overwrite PC afterwards.
  4. Execute the instruction handler.
  5. Hand a TraceEvent to the trace sink, if one is attached.

Termination:
  - HALT:     'hlt' executed
  - TIMEOUT:  run() step ceiling reached before a halt
  - fatal errors raise a MachineError subclass and leave the machine halted

The engine never prompts. When 'inp' finds the input queue empty it calls
the input provider if one was supplied (interactive runs), otherwise the
run fails with InputExhaustedError.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from .cpu import alu
from .cpu.decoder import decode, IllegalOpcode
from .cpu.regs import RegisterSnapshot
from .mem.memory import MEMORY_SIZE
from .state import MachineState

log = logging.getLogger(__name__)


class StopReason(Enum):
    HALT = 'HALT'
    PAUSE = 'PAUSE'
    TIMEOUT = 'TIMEOUT'
    ERROR = 'ERROR'


@dataclass(frozen=True)
class TraceEvent:
    """One executed instruction and the registers it left behind."""
    step: int
    address: int
    word: int
    mnemonic: str
    operand: Optional[int]
    accumulator: int
    neg_flag: bool
    pc: int

    def display(self) -> str:
        ins = self.mnemonic if self.operand is None else f"{self.mnemonic} {self.operand:02d}"
        return (f"#{self.step:<5} {self.address:02d}: {self.word:03d} {ins:<7}"
                f" PC={self.pc:02d} ACC={self.accumulator:03d} NEG={int(self.neg_flag)}")


# ──────────────────────────────────────────────
# Run-time errors
# ──────────────────────────────────────────────

class MachineError(RuntimeError):
    """Fatal run-time error. Aborts the current run only."""

    kind = 'MachineError'

    def __init__(self, message: str, step: int, registers: RegisterSnapshot):
        self.message = message
        self.step = step
        self.registers = registers
        super().__init__(f"Step {step}: {message} [{registers.display()}]")


class AddressOverflowError(MachineError):
    """Program counter ran past address 99."""
    kind = 'AddressOverflowError'


class InputExhaustedError(MachineError):
    """'inp' executed with an empty input queue and no input provider."""
    kind = 'InputExhaustedError'


class InputRangeError(MachineError):
    """Input provider returned a value outside 0-999."""
    kind = 'InputRangeError'


class IllegalInstructionError(MachineError):
    """Fetched word is not in the instruction table."""
    kind = 'IllegalInstructionError'


InputProvider = Callable[[], int]
TraceSink = Callable[[TraceEvent], None]


class LMCEmulator:
    """Little Man Computer execution engine.

    Usage:
        emu = LMCEmulator.from_program(program, inputs=[5, 1, 0, 1, 0, 0])
        reason = emu.run(max_steps=1000)
        print(emu.state.outbox)  # [20]
    """

    DEFAULT_MAX_STEPS = 10_000

    def __init__(self, state: Optional[MachineState] = None,
                 input_provider: Optional[InputProvider] = None,
                 trace_sink: Optional[TraceSink] = None):
        self.state = state if state is not None else MachineState()
        self.input_provider = input_provider
        self.trace_sink = trace_sink

        # Instruction dispatch table (built in _build_dispatch)
        self._dispatch = self._build_dispatch()

    @classmethod
    def from_program(cls, program, inputs: Iterable[int] = (), **kwargs) -> 'LMCEmulator':
        """Build an emulator around a fresh state loaded from program."""
        return cls(MachineState.from_program(program, inputs), **kwargs)

    @property
    def regs(self):
        return self.state.regs

    @property
    def mem(self):
        return self.state.mem

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[TraceEvent]:
        """Execute one instruction. Returns its TraceEvent.

        Raises a MachineError subclass on a fatal error, after marking the
        machine halted. Stepping a halted machine does nothing.
        """
        state = self.state
        if state.halted:
            log.warning("Cannot step: machine is halted")
            return None

        regs = state.regs
        pc = regs.PC
        try:
            if not 0 <= pc < MEMORY_SIZE:
                raise self._fault(AddressOverflowError,
                                  f"Program counter {pc} ran past the end of memory")
            word = state.mem.read(pc)
            try:
                mnem, operand = decode(word)
            except IllegalOpcode as e:
                raise self._fault(IllegalInstructionError, f"{e} at address {pc:02d}")

            regs.PC = pc + 1
            self._dispatch[mnem](operand)
        except MachineError as e:
            state.halted = True
            state.fault = e
            log.info("Machine stopped: %s", e)
            raise

        event = TraceEvent(
            step=state.steps, address=pc, word=word,
            mnemonic=mnem, operand=operand,
            accumulator=regs.ACC, neg_flag=regs.NEG, pc=regs.PC,
        )
        state.steps += 1
        if self.trace_sink is not None:
            self.trace_sink(event)
        return event

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Run until halt or until max_steps instructions have executed.

        Returns HALT or TIMEOUT. Fatal errors propagate as MachineError.
        """
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS

        executed = 0
        while not self.state.halted:
            if executed >= max_steps:
                log.info("Step ceiling of %d reached without halting", max_steps)
                return StopReason.TIMEOUT
            self.step()
            executed += 1

        return StopReason.ERROR if self.state.fault is not None else StopReason.HALT

    def _fault(self, cls, message: str) -> MachineError:
        return cls(message, self.state.steps, self.state.regs.snapshot())

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════
    # Handler signature: handler(operand). operand is None for inp/out/hlt.
    # Only add and sub touch NEG.

    def _build_dispatch(self) -> dict:
        """Build mnemonic -> handler dispatch table."""
        return {
            'lda': self._op_lda,
            'sto': self._op_sto,
            'add': self._op_add,
            'sub': self._op_sub,
            'inp': self._op_inp,
            'out': self._op_out,
            'hlt': self._op_hlt,
            'brz': self._op_brz,
            'brp': self._op_brp,
            'bra': self._op_bra,
        }

    # ── Load/Store ──

    def _op_lda(self, addr):
        self.regs.ACC = self.mem.read(addr)

    def _op_sto(self, addr):
        self.mem.write(addr, self.regs.ACC)

    # ── Arithmetic ──

    def _op_add(self, addr):
        val = self.mem.read(addr)
        if alu.overflowed(self.regs.ACC, val):
            log.debug("%d + %d >= 1000: overflow", self.regs.ACC, val)
        self.regs.ACC, self.regs.NEG = alu.add(self.regs.ACC, val)

    def _op_sub(self, addr):
        val = self.mem.read(addr)
        result, neg = alu.sub(self.regs.ACC, val)
        if neg:
            log.debug("%d - %d < 0: underflow, NEG set", self.regs.ACC, val)
        self.regs.ACC, self.regs.NEG = result, neg

    # ── I/O ──

    def _op_inp(self, _):
        state = self.state
        if not state.inbox:
            if self.input_provider is None:
                raise self._fault(InputExhaustedError, "'inp' with empty input queue")
            value = self.input_provider()
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 999:
                raise self._fault(InputRangeError, f"Input value {value!r} out of range 0-999")
            state.inbox.append(value)

        value = state.inbox.popleft()
        state.taken.append(value)
        self.regs.ACC = value
        log.debug("%d was input value", value)

    def _op_out(self, _):
        self.state.outbox.append(self.regs.ACC)
        log.debug("%d was output value", self.regs.ACC)

    def _op_hlt(self, _):
        self.state.halted = True
        log.debug("Halted after %d steps", self.state.steps + 1)

    # ── Branches ──

    def _op_brz(self, addr):
        if self.regs.ACC == 0:
            self.regs.PC = addr

    def _op_brp(self, addr):
        if not self.regs.NEG:
            self.regs.PC = addr

    def _op_bra(self, addr):
        self.regs.PC = addr

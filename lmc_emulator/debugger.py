"""
LMC Emulator — Debug Stepper

Runs a machine a few instructions at a time and reports where it stopped.
The same state can be stepped again indefinitely; once it has halted every
further batch reports the halt without executing anything.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .cpu.regs import RegisterSnapshot
from .emu import LMCEmulator, MachineError, StopReason, TraceEvent
from .state import MachineState

log = logging.getLogger(__name__)


@dataclass
class StepBatchResult:
    """Outcome of one step batch.

    status is PAUSE when the batch ran out of steps with the machine still
    running, HALT after 'hlt', ERROR after a fatal run-time error.
    """
    registers: RegisterSnapshot
    status: StopReason
    events: List[TraceEvent] = field(default_factory=list)
    error: Optional[MachineError] = None
    steps_executed: int = 0

    @property
    def halted(self) -> bool:
        return self.status in (StopReason.HALT, StopReason.ERROR)


class Debugger:
    """Step-batch driver around one LMCEmulator."""

    def __init__(self, emulator: LMCEmulator):
        self.emu = emulator

    @property
    def state(self) -> MachineState:
        return self.emu.state

    def step(self, count: int = 1) -> StepBatchResult:
        """Execute up to count instructions, stopping early on halt or error."""
        if count < 1:
            raise ValueError(f"Step count must be positive, got {count}")

        state = self.state
        events: List[TraceEvent] = []
        error: Optional[MachineError] = None

        for _ in range(count):
            if not state.running:
                break
            try:
                events.append(self.emu.step())
            except MachineError as e:
                error = e
                break

        if state.fault is not None:
            status = StopReason.ERROR
            error = state.fault
        elif state.halted:
            status = StopReason.HALT
        else:
            status = StopReason.PAUSE

        log.debug("Batch of %d: %d executed, %s", count, len(events), status.value)
        return StepBatchResult(
            registers=state.regs.snapshot(),
            status=status,
            events=events,
            error=error,
            steps_executed=len(events),
        )


def step_batch(state: MachineState, count: int = 1, input_provider=None,
               trace_sink=None) -> StepBatchResult:
    """Step state by up to count instructions."""
    emu = LMCEmulator(state, input_provider=input_provider, trace_sink=trace_sink)
    return Debugger(emu).step(count)


def parse_step_count(text: str) -> int:
    """Turn a prompt reply into a step count. Blank means one step."""
    text = text.strip()
    if not text:
        return 1
    try:
        count = int(text)
    except ValueError:
        raise ValueError(f"Not a step count: {text!r}") from None
    if count < 1:
        raise ValueError(f"Step count must be positive, got {count}")
    return count

"""
LMC Emulator — Machine State

One MachineState per run or test case. It owns private copies of everything
the engine mutates (registers, memory, input queue, output log), so runs
built from the same Program never share or alias state.
"""

from collections import deque
from typing import Deque, Iterable, List, Optional

from .cpu.regs import Registers
from .mem.memory import Memory


class MachineState:
    """Registers, memory and I/O baskets of one LMC."""

    def __init__(self, image: Iterable[int] = (), inputs: Iterable[int] = ()):
        self.regs = Registers()
        self.mem = Memory(image)
        self.inbox: Deque[int] = deque()   # Pending inputs, FIFO
        self.outbox: List[int] = []        # Values written by 'out'
        self.taken: List[int] = []         # Values consumed by 'inp'
        self.halted: bool = False
        self.steps: int = 0                # Instructions executed so far
        self.fault = None                  # MachineError that halted the run, if any
        self.feed(inputs)

    @classmethod
    def from_program(cls, program, inputs: Iterable[int] = ()) -> 'MachineState':
        """Fresh state loaded from an assembled Program's image."""
        return cls(program.image, inputs)

    def feed(self, values: Iterable[int]):
        """Append values to the input queue."""
        for value in values:
            if not 0 <= value <= 999:
                raise ValueError(f"Input value {value} out of range 0-999")
            self.inbox.append(value)

    @property
    def running(self) -> bool:
        return not self.halted

"""
LMC Emulator — CPU Register Set

Register model for the Little Man Computer:
  ACC — accumulator, one decimal word (0-999)
  PC  — program counter, address of the next instruction (0-99; 100 after
        the last cell executes, which the fetch stage rejects)
  NEG — negative flag, set by a 'sub' whose result went below zero.
        Cleared at the start of every 'add' and 'sub', and left untouched by
        every other instruction. 'brp' branches while it is clear.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RegisterSnapshot:
    """Immutable copy of the register set, attached to trace events and errors."""
    accumulator: int
    pc: int
    neg_flag: bool

    def display(self) -> str:
        return f"PC={self.pc:02d} ACC={self.accumulator:03d} NEG={int(self.neg_flag)}"


class Registers:
    """LMC CPU register set."""

    __slots__ = ('ACC', 'PC', 'NEG')

    def __init__(self):
        self.ACC: int = 0       # Accumulator
        self.PC: int = 0        # Program counter
        self.NEG: bool = False  # Negative flag

    def snapshot(self) -> RegisterSnapshot:
        return RegisterSnapshot(accumulator=self.ACC, pc=self.PC, neg_flag=self.NEG)

    def display(self) -> str:
        """Format register state for debugging."""
        return self.snapshot().display()

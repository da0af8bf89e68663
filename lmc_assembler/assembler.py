"""
Two-pass assembler for the Little Man Computer.

Input:  LMC assembly text (see lexer.py for the line grammar)
Output: Program (memory image, symbol table and test directives)

Machine word encoding (3 decimal digits, 000-999):
  hlt      000
  add xx   1xx
  sub xx   2xx
  sto xx   3xx
  lda xx   5xx
  bra xx   6xx
  brz xx   7xx
  brp xx   8xx
  inp      901
  out      902
  dat nnn  nnn      (raw data word, not an instruction)

How the two-pass algorithm works:
  Pass 1: Walk the lexed lines with an address counter starting at 0. Every
          instruction or dat line takes exactly one cell. A label is bound to
          the counter value at the moment it is seen, i.e. the address of the
          next instruction, so 'loop: lda x' and 'loop:' on its own line
          followed by 'lda x' resolve identically.
  Pass 2: Resolve every operand against the finished symbol table, range
          check it and encode the word. Test directives are collected as-is
          after their values are range checked.

The passes are never interleaved: pass 2 only starts once the symbol table
is complete, which is what makes forward references work.
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from .errors import (
    AssemblerError, AsmSyntaxError, DuplicateLabelError,
    UndefinedLabelError, ValueRangeError, AddressOverflowError,
)
from .lexer import (
    AsmLine, Literal, TestDirective, tokenize,
    DATA_MNEMONICS, INHERENT_MNEMONICS,
)

__all__ = ['Assembler', 'Program', 'assemble', 'OPCODES', 'MEMORY_SIZE']


MEMORY_SIZE = 100
MAX_ADDRESS = MEMORY_SIZE - 1
MAX_WORD = 999


# ──────────────────────────────────────────────
# LMC Opcode Table
# ──────────────────────────────────────────────
# Format: { 'mnemonic': base_code }
# Address-taking instructions encode as base_code + address.

OPCODES: Dict[str, int] = {}

def _op(mnemonic: str, code: int):
    """Register an opcode entry."""
    OPCODES[mnemonic] = code

_op('hlt', 0)
_op('add', 100)
_op('sub', 200)
_op('sto', 300)
_op('lda', 500)
_op('bra', 600)
_op('brz', 700)
_op('brp', 800)
_op('inp', 901)
_op('out', 902)


# ──────────────────────────────────────────────
# Assembly result
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Program:
    """Assembled program.

    image is one encoded word per instruction/dat line, in address order.
    It is read-only template data: every run copies it into its own memory.
    """
    image: Tuple[int, ...]
    symbols: Mapping[str, int]
    tests: Tuple[TestDirective, ...]

    def memory(self) -> List[int]:
        """Return the image zero-padded to the full 100-cell address space."""
        return list(self.image) + [0] * (MEMORY_SIZE - len(self.image))

    def test(self, name: str) -> TestDirective:
        for case in self.tests:
            if case.name == name:
                return case
        raise KeyError(name)


# ──────────────────────────────────────────────
# The Assembler
# ──────────────────────────────────────────────

class Assembler:
    """Two-pass LMC assembler.

    Usage:
        asm = Assembler()
        program = asm.assemble(source_text)
        print(asm.get_listing())
    """

    def __init__(self):
        self.symbols: Dict[str, int] = {}       # Label table: name -> address
        self.pc: int = 0                         # Address counter
        self.image: List[int] = []               # Encoded words, address order
        self.tests: List[TestDirective] = []     # Test directives, source order
        self._lines: List[AsmLine] = []          # Lexed source lines
        self._addresses: Dict[int, int] = {}     # line_num -> address

    def assemble(self, source: str) -> Program:
        """Assemble source text into a Program.

        Fail-fast: the first error raises an AssemblerError subclass carrying
        the offending line, and no image is kept.
        """
        self.symbols = {}
        self.image = []
        self.tests = []
        self._addresses = {}

        try:
            self._lines = tokenize(source)
            self._pass1()
            self._pass2()
        except AssemblerError:
            self.image = []
            self.tests = []
            raise

        return Program(
            image=tuple(self.image),
            symbols=MappingProxyType(dict(self.symbols)),
            tests=tuple(self.tests),
        )

    def _pass1(self):
        """Pass 1: bind labels to addresses by counting instruction lines."""
        self.pc = 0
        test_names = set()

        for line in self._lines:
            if line.label is not None:
                if line.label in self.symbols:
                    raise DuplicateLabelError(
                        f"Label '{line.label}' already defined "
                        f"(address {self.symbols[line.label]:02d})",
                        line.line_num, line.raw)
                self.symbols[line.label] = self.pc

            if line.test is not None:
                if line.test.name in test_names:
                    raise AsmSyntaxError(
                        f"Duplicate test name '{line.test.name}'",
                        line.line_num, line.raw)
                test_names.add(line.test.name)

            if line.is_instruction:
                if self.pc > MAX_ADDRESS:
                    raise AddressOverflowError(
                        f"Program too large: '{line.mnemonic}' would be placed at "
                        f"address {self.pc}, memory holds {MEMORY_SIZE} cells",
                        line.line_num, line.raw)
                self._addresses[line.line_num] = self.pc
                self.pc += 1

    def _pass2(self):
        """Pass 2: resolve operands and encode every instruction word."""
        for line in self._lines:
            if line.test is not None:
                self._check_test(line)
                self.tests.append(line.test)
            if line.is_instruction:
                self.image.append(self._encode(line))

    def _encode(self, line: AsmLine) -> int:
        mnem = line.mnemonic
        if mnem in INHERENT_MNEMONICS:
            return OPCODES[mnem]
        value = self._resolve(line)
        if mnem in DATA_MNEMONICS:
            return value
        return OPCODES[mnem] + value

    def _resolve(self, line: AsmLine) -> int:
        """Resolve an operand to its number, range checked for the mnemonic."""
        operand = line.operand
        limit = MAX_WORD if line.mnemonic in DATA_MNEMONICS else MAX_ADDRESS

        if isinstance(operand, Literal):
            if not 0 <= operand.value <= limit:
                raise ValueRangeError(
                    f"'{line.mnemonic}' operand {operand.value} out of range 0-{limit}",
                    line.line_num, line.raw)
            return operand.value

        if operand.name not in self.symbols:
            raise UndefinedLabelError(
                f"Label '{operand.name}' is not defined", line.line_num, line.raw)
        addr = self.symbols[operand.name]
        if addr > limit:
            raise AddressOverflowError(
                f"Label '{operand.name}' resolves to address {addr}, "
                f"past the end of memory", line.line_num, line.raw)
        return addr

    def _check_test(self, line: AsmLine):
        case = line.test
        for value in case.inputs + case.outputs:
            if not 0 <= value <= MAX_WORD:
                raise ValueRangeError(
                    f"Test '{case.name}' value {value} out of range 0-{MAX_WORD}",
                    line.line_num, line.raw)

    def get_listing(self) -> str:
        """Return a human-readable listing showing address, word, and source."""
        lines = []
        lines.append(f"{'ADDR':>4}  {'WORD':>4}  SOURCE")
        lines.append("-" * 48)

        for asmline in self._lines:
            raw = asmline.raw.strip()
            addr = self._addresses.get(asmline.line_num)
            if addr is not None and addr < len(self.image):
                lines.append(f"{addr:>4}   {self.image[addr]:03d}  {raw}"[:78])
            elif raw:
                lines.append(f"{'':>4}  {'':>4}  {raw}"[:78])

        return '\n'.join(lines)


# ──────────────────────────────────────────────
# Convenience functions
# ──────────────────────────────────────────────

def assemble(source: str) -> Program:
    """Assemble source text, return the Program."""
    return Assembler().assemble(source)

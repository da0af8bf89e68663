"""
LMC Assembler
=============
A two-pass assembler for the Little Man Computer: 100 decimal memory cells,
one accumulator, ten instructions.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
    │ LMC text │───>│  Lexer   │───>│  Pass 1  │───>│  Pass 2  │───> Program
    │ (.lmc)   │    │ (lines)  │    │ (labels) │    │ (encode) │    (image, symbols, tests)
    └──────────┘    └──────────┘    └──────────┘    └──────────┘

    - lexer.py:     One record per line: label, instruction, test directive
    - assembler.py: Symbol table pass, resolve/encode pass, listing
    - errors.py:    Fail-fast assembly error taxonomy (all carry line numbers)

The Program produced here is consumed by lmc_emulator (engine, debugger and
test runner).
"""

__version__ = "0.2.0"

from .errors import (
    AssemblerError, AsmSyntaxError, DuplicateLabelError,
    UndefinedLabelError, ValueRangeError, AddressOverflowError,
)
from .lexer import AsmLine, Literal, Symbol, TestDirective, lex_line, tokenize
from .assembler import Assembler, Program, assemble, OPCODES, MEMORY_SIZE


def assemble_source(source: str, *, output: str = "program"):
    """Assemble LMC source to a Program, a listing, or a padded memory image.

    Args:
        source: LMC assembly source text.
        output: 'program' (default), 'listing', or 'memory'.

    Returns:
        Program, listing text (str), or the 100-cell memory list.
    """
    asm = Assembler()
    program = asm.assemble(source)

    if output == 'listing':
        return asm.get_listing()
    elif output == 'memory':
        return program.memory()
    return program

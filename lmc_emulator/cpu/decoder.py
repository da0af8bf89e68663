"""
LMC Emulator — Instruction Decoder

Maps a 3-digit memory word to (mnemonic, operand). The table mirrors the
encoding table in lmc_assembler/assembler.py; any word the assembler can
emit for an instruction decodes back to the same mnemonic/operand pair.

Decoding rules:
  000, 901, 902   hlt, inp, out (exact words)
  1xx..8xx        first digit selects the instruction, last two are the address
  001-099, 4xx    not in the table -> IllegalOpcode
  other 9xx       not in the table -> IllegalOpcode

Memory is a single von Neumann space, so a data cell reached by the program
counter is decoded by these same rules.
"""

from typing import Optional, Tuple

# Exact-word instructions (no operand)
EXACT_OPCODES = {
    0: 'hlt',
    901: 'inp',
    902: 'out',
}

# Address instructions. Format: first_digit -> mnemonic
ADDR_OPCODES = {
    1: 'add',
    2: 'sub',
    3: 'sto',
    5: 'lda',
    6: 'bra',
    7: 'brz',
    8: 'brp',
}


class IllegalOpcode(Exception):
    """Raised for a word outside the instruction table."""
    def __init__(self, word: int):
        self.word = word
        super().__init__(f"Illegal instruction word {word:03d}")


def decode(word: int) -> Tuple[str, Optional[int]]:
    """Decode a memory word. Returns (mnemonic, operand or None)."""
    if word in EXACT_OPCODES:
        return (EXACT_OPCODES[word], None)
    if not 0 <= word <= 999:
        raise IllegalOpcode(word)

    first, operand = divmod(word, 100)
    if first not in ADDR_OPCODES:
        raise IllegalOpcode(word)
    return (ADDR_OPCODES[first], operand)


def disassemble(word: int) -> str:
    """Render a word as assembly text; undecodable words render as dat."""
    try:
        mnem, operand = decode(word)
    except IllegalOpcode:
        return f"dat {word:03d}"
    if operand is None:
        return mnem
    return f"{mnem} {operand:02d}"

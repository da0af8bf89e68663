"""
Assembly-time error taxonomy for the LMC assembler.

Every error is fatal to assembly: the first one raised aborts the run and no
partial memory image is produced. Each carries the 1-based source line number
and the raw line text so the caller can report it without the source file.
"""

from __future__ import annotations

__all__ = [
    'AssemblerError', 'AsmSyntaxError', 'DuplicateLabelError',
    'UndefinedLabelError', 'ValueRangeError', 'AddressOverflowError',
]


class AssemblerError(Exception):
    """Base class for assembly errors."""

    kind = 'AssemblerError'

    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.message = message
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class AsmSyntaxError(AssemblerError):
    """Malformed line, bad label/test name or wrong operand arity."""
    kind = 'SyntaxError'


class DuplicateLabelError(AssemblerError):
    kind = 'DuplicateLabelError'


class UndefinedLabelError(AssemblerError):
    kind = 'UndefinedLabelError'


class ValueRangeError(AssemblerError):
    """Literal operand, data word or test value outside its legal range."""
    kind = 'ValueRangeError'


class AddressOverflowError(AssemblerError):
    """Program does not fit in the 100-cell address space."""
    kind = 'AddressOverflowError'

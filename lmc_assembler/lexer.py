"""
Line lexer for LMC assembly source.

Each source line yields one AsmLine record carrying at most:
  - a label definition          loop:
  - an instruction + operand    lda count
  - a test directive            .twenty [5, 1, 0, 1, 0, 0] [20]

Comments run from the first unescaped ';' to end of line and never affect
addressing. Blank and comment-only lines produce an empty record.

Line grammar:
    line      := [label ':'] [mnemonic [operand]] [';' comment]
               | '.' name '[' ints ']' '[' ints ']' [';' comment]
    label     := [A-Za-z_][A-Za-z0-9_]*
    operand   := integer | label
    ints      := (integer (',' integer)*)?

Operands stay unresolved here: an integer becomes Literal(value) and a name
becomes Symbol(name). The assembler's second pass closes them over the
symbol table built by the first pass.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .errors import AsmSyntaxError

__all__ = [
    'Literal', 'Symbol', 'Operand', 'TestDirective', 'AsmLine',
    'lex_line', 'tokenize',
    'ADDRESS_MNEMONICS', 'DATA_MNEMONICS', 'INHERENT_MNEMONICS', 'MNEMONICS',
]


# ──────────────────────────────────────────────
# Mnemonic arity classes
# ──────────────────────────────────────────────

ADDRESS_MNEMONICS = frozenset({'lda', 'sto', 'add', 'sub', 'brz', 'brp', 'bra'})
DATA_MNEMONICS = frozenset({'dat'})
INHERENT_MNEMONICS = frozenset({'inp', 'out', 'hlt'})
MNEMONICS = ADDRESS_MNEMONICS | DATA_MNEMONICS | INHERENT_MNEMONICS

_NAME_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
_INT_RE = re.compile(r'[+-]?[0-9]+')
_TEST_RE = re.compile(
    r'^\.(?P<name>\S*?)\s*\[(?P<inputs>[^\[\]]*)\]\s*\[(?P<outputs>[^\[\]]*)\]$'
)


# ──────────────────────────────────────────────
# Token records
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Literal:
    """Numeric operand, used as-is after range checking."""
    value: int


@dataclass(frozen=True)
class Symbol:
    """Label reference, resolved against the symbol table in pass 2."""
    name: str


Operand = Union[Literal, Symbol]


@dataclass(frozen=True)
class TestDirective:
    """Named fixture: input sequence and expected output sequence."""
    __test__ = False

    name: str
    inputs: Tuple[int, ...]
    outputs: Tuple[int, ...]


@dataclass
class AsmLine:
    """Lexed assembly source line."""
    line_num: int
    raw: str = ""
    label: Optional[str] = None
    mnemonic: Optional[str] = None
    operand: Optional[Operand] = None
    test: Optional[TestDirective] = None

    @property
    def is_instruction(self) -> bool:
        """True when the line occupies a memory cell (instruction or dat)."""
        return self.mnemonic is not None


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _strip_comment(line: str) -> str:
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
        elif ch == '\\':
            escaped = True
        elif ch == ';':
            return line[:i]
    return line


def _check_name(name: str, what: str, line_num: int, raw: str) -> str:
    if not _NAME_RE.fullmatch(name):
        raise AsmSyntaxError(f"Invalid {what} name '{name}'", line_num, raw)
    if name.lower() in MNEMONICS:
        raise AsmSyntaxError(
            f"Mnemonic '{name}' is reserved and cannot be used as a {what} name",
            line_num, raw)
    return name


def _parse_int_list(text: str, line_num: int, raw: str) -> Tuple[int, ...]:
    text = text.strip()
    if not text:
        return ()
    values = []
    for entry in text.split(','):
        entry = entry.strip()
        if not _INT_RE.fullmatch(entry):
            raise AsmSyntaxError(
                f"Test directive entry '{entry}' is not an integer", line_num, raw)
        values.append(int(entry))
    return tuple(values)


def _parse_test(text: str, line_num: int, raw: str) -> TestDirective:
    m = _TEST_RE.match(text)
    if not m:
        raise AsmSyntaxError(
            "Malformed test directive, expected: .name [inputs] [outputs]",
            line_num, raw)
    name = _check_name(m.group('name'), 'test', line_num, raw)
    return TestDirective(
        name=name,
        inputs=_parse_int_list(m.group('inputs'), line_num, raw),
        outputs=_parse_int_list(m.group('outputs'), line_num, raw),
    )


def _parse_operand(text: str, line_num: int, raw: str) -> Operand:
    if _INT_RE.fullmatch(text):
        return Literal(int(text))
    if _NAME_RE.fullmatch(text):
        if text.lower() in MNEMONICS:
            raise AsmSyntaxError(
                f"Mnemonic '{text}' cannot be used as an operand", line_num, raw)
        return Symbol(text)
    raise AsmSyntaxError(f"Invalid operand '{text}'", line_num, raw)


# ──────────────────────────────────────────────
# Lexer entry points
# ──────────────────────────────────────────────

def lex_line(line: str, line_num: int) -> AsmLine:
    """Lex one source line. Raises AsmSyntaxError on malformed input."""
    result = AsmLine(line_num=line_num, raw=line)

    text = _strip_comment(line).strip()
    if not text:
        return result

    if text.startswith('.'):
        result.test = _parse_test(text, line_num, line)
        return result

    colon = text.find(':')
    if colon >= 0:
        result.label = _check_name(text[:colon].strip(), 'label', line_num, line)
        text = text[colon + 1:].strip()
        if not text:
            return result

    parts = text.split()
    mnemonic = parts[0].lower()
    if mnemonic not in MNEMONICS:
        raise AsmSyntaxError(f"Unknown mnemonic '{parts[0]}'", line_num, line)

    operands = parts[1:]
    if mnemonic in INHERENT_MNEMONICS:
        if operands:
            raise AsmSyntaxError(
                f"'{mnemonic}' takes no operand (got '{' '.join(operands)}')",
                line_num, line)
    else:
        if len(operands) != 1:
            raise AsmSyntaxError(
                f"'{mnemonic}' takes exactly one operand (got {len(operands)})",
                line_num, line)
        result.operand = _parse_operand(operands[0], line_num, line)

    result.mnemonic = mnemonic
    return result


def tokenize(source: str) -> List[AsmLine]:
    """Lex every line of source text, numbering lines from 1."""
    return [lex_line(line, i) for i, line in enumerate(source.splitlines(), 1)]

"""
Line lexer tests.

Tests cover:
  - Labels, mnemonics and operands (Literal vs Symbol)
  - Comments, including escaped ';'
  - Test directives
  - Malformed lines (syntax errors carry the line number)
"""

import pytest
from lmc_assembler import AsmSyntaxError, Literal, Symbol, lex_line, tokenize


class TestInstructions:
    def test_label_and_instruction(self):
        line = lex_line("loop:   lda count", 3)
        assert line.label == "loop"
        assert line.mnemonic == "lda"
        assert line.operand == Symbol("count")
        assert line.is_instruction

    def test_numeric_operand_is_literal(self):
        line = lex_line("  add 42", 1)
        assert line.operand == Literal(42)
        assert line.label is None

    def test_inherent_instruction_has_no_operand(self):
        for mnem in ("inp", "out", "hlt"):
            line = lex_line(mnem, 1)
            assert line.mnemonic == mnem
            assert line.operand is None

    def test_mnemonics_are_case_insensitive(self):
        line = lex_line("LDA x", 1)
        assert line.mnemonic == "lda"

    def test_label_on_its_own_line(self):
        line = lex_line("done:", 7)
        assert line.label == "done"
        assert not line.is_instruction

    def test_negative_dat_is_kept_for_range_check(self):
        """Signed values lex fine; the assembler rejects them later."""
        assert lex_line("dat -1", 1).operand == Literal(-1)


class TestComments:
    def test_comment_only_and_blank_lines_are_empty(self):
        for text in ("", "   ", "; just a comment", "   ; indented"):
            line = lex_line(text, 1)
            assert line.label is None
            assert line.mnemonic is None
            assert line.test is None

    def test_trailing_comment_is_ignored(self):
        line = lex_line("out ; print it", 1)
        assert line.mnemonic == "out"
        assert line.operand is None

    def test_escaped_semicolon_stays_in_line(self):
        """An escaped ';' is part of the text, so the name below is invalid."""
        with pytest.raises(AsmSyntaxError, match="Invalid test name"):
            lex_line(r".t\;x [] [] ; real comment", 1)


class TestDirectiveLines:
    def test_directive_fields(self):
        line = lex_line(".twenty [5, 1, 0, 1, 0, 0] [20]", 25)
        assert line.test.name == "twenty"
        assert line.test.inputs == (5, 1, 0, 1, 0, 0)
        assert line.test.outputs == (20,)
        assert not line.is_instruction

    def test_empty_lists(self):
        line = lex_line(".fail1 [] [0]", 1)
        assert line.test.inputs == ()
        assert line.test.outputs == (0,)

    def test_directive_with_comment(self):
        line = lex_line(".one [1, 1] [1]   ; single bit", 1)
        assert line.test.outputs == (1,)

    def test_missing_output_list(self):
        with pytest.raises(AsmSyntaxError, match="Malformed test directive"):
            lex_line(".broken [1, 2]", 4)

    def test_non_integer_entry(self):
        with pytest.raises(AsmSyntaxError, match="not an integer"):
            lex_line(".bad [1, x] [2]", 1)


class TestSyntaxErrors:
    def test_unknown_mnemonic(self):
        with pytest.raises(AsmSyntaxError, match="Unknown mnemonic 'jmp'") as exc:
            lex_line("  jmp 10", 9)
        assert exc.value.line_num == 9
        assert exc.value.line_text == "  jmp 10"
        assert str(exc.value).startswith("Line 9:")

    def test_missing_operand(self):
        with pytest.raises(AsmSyntaxError, match="exactly one operand"):
            lex_line("lda", 1)

    def test_extra_operand(self):
        with pytest.raises(AsmSyntaxError, match="takes no operand"):
            lex_line("hlt 5", 1)

    def test_two_operands(self):
        with pytest.raises(AsmSyntaxError, match="exactly one operand"):
            lex_line("add 1 2", 1)

    def test_invalid_label_name(self):
        with pytest.raises(AsmSyntaxError, match="Invalid label name"):
            lex_line("1abc: hlt", 1)

    def test_mnemonic_is_reserved_as_label(self):
        with pytest.raises(AsmSyntaxError, match="reserved"):
            lex_line("out: dat 0", 1)

    def test_invalid_operand(self):
        with pytest.raises(AsmSyntaxError, match="Invalid operand"):
            lex_line("lda 1x", 1)


class TestTokenize:
    def test_lines_numbered_from_one(self):
        lines = tokenize("inp\n\nout\nhlt")
        assert [l.line_num for l in lines] == [1, 2, 3, 4]
        assert [l.mnemonic for l in lines] == ["inp", None, "out", "hlt"]

    def test_error_reports_source_line(self):
        with pytest.raises(AsmSyntaxError) as exc:
            tokenize("inp\nout\nbogus\nhlt")
        assert exc.value.line_num == 3

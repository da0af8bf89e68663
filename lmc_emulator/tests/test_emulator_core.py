"""
LMC Emulator — Core Integration Tests

Tests that prove the engine executes assembled LMC programs with the right
arithmetic, flag and branch behavior. Programs are assembled from source
with lmc_assembler so addresses stay readable.
"""

import logging

import pytest
from lmc_assembler import assemble
from lmc_emulator import (
    AddressOverflowError, IllegalInstructionError, InputExhaustedError,
    InputRangeError, LMCEmulator, MachineState, StopReason, TraceRecorder,
)
from lmc_emulator.cpu import alu
from lmc_emulator.cpu.decoder import IllegalOpcode, decode, disassemble
from lmc_emulator.mem.memory import Memory


def _emu(source: str, inputs=(), **kwargs) -> LMCEmulator:
    return LMCEmulator.from_program(assemble(source), inputs=inputs, **kwargs)


def _run(source: str, inputs=()) -> LMCEmulator:
    emu = _emu(source, inputs)
    assert emu.run() is StopReason.HALT
    return emu


# ═══════════════════════════════════════════════
# Test Group 1: Individual Instructions
# ═══════════════════════════════════════════════

class TestLoadStore:
    def test_lda(self):
        emu = _emu("lda 2\nhlt\ndat 42")
        emu.step()
        assert emu.regs.ACC == 42
        assert emu.regs.PC == 1

    def test_sto(self):
        emu = _run("inp\nsto 9\nhlt", [314])
        assert emu.mem.read(9) == 314

    def test_initial_state(self):
        emu = _emu("hlt")
        assert (emu.regs.ACC, emu.regs.PC, emu.regs.NEG) == (0, 0, False)
        assert emu.state.outbox == []


class TestArithmetic:
    def test_add(self):
        emu = _run("lda a\nadd b\nout\nhlt\na: dat 20\nb: dat 22")
        assert emu.state.outbox == [42]

    def test_add_wraps_without_error(self):
        """998 + 5 = 3, no flag, no error."""
        emu = _run("lda a\nadd b\nout\nhlt\na: dat 998\nb: dat 5")
        assert emu.state.outbox == [3]
        assert emu.regs.NEG is False

    def test_sub(self):
        emu = _run("lda a\nsub b\nout\nhlt\na: dat 50\nb: dat 8")
        assert emu.state.outbox == [42]
        assert emu.regs.NEG is False

    def test_sub_underflow(self):
        """0 - 1 = 999 with NEG set."""
        emu = _run("lda z\nsub o\nout\nhlt\nz: dat 0\no: dat 1")
        assert emu.state.outbox == [999]
        assert emu.regs.NEG is True

    def test_add_clears_neg(self):
        emu = _run("lda z\nsub o\nadd o\nhlt\nz: dat 0\no: dat 1")
        assert emu.regs.ACC == 0
        assert emu.regs.NEG is False

    def test_sub_without_underflow_clears_neg(self):
        emu = _run("lda z\nsub o\nsub z\nhlt\nz: dat 0\no: dat 1")
        assert emu.regs.NEG is False

    def test_alu_helpers(self):
        assert alu.add(998, 5) == (3, False)
        assert alu.sub(0, 1) == (999, True)
        assert alu.sub(5, 5) == (0, False)
        assert alu.overflowed(500, 500)
        assert not alu.overflowed(499, 500)


class TestIO:
    def test_inputs_consumed_in_order(self):
        emu = _run("inp\nout\ninp\nout\nhlt", [7, 8])
        assert emu.state.outbox == [7, 8]
        assert emu.state.taken == [7, 8]

    def test_input_exhausted(self):
        emu = _emu("inp\ninp\nhlt", [1])
        with pytest.raises(InputExhaustedError) as exc:
            emu.run()
        assert exc.value.step == 1
        assert exc.value.kind == "InputExhaustedError"
        assert emu.state.halted
        assert emu.state.fault is exc.value

    def test_input_provider_used_when_queue_empty(self):
        asked = []

        def provider():
            asked.append(True)
            return 77

        emu = _emu("inp\ninp\nout\nhlt", [1], input_provider=provider)
        emu.run()
        assert emu.state.outbox == [77]
        assert len(asked) == 1

    def test_input_provider_out_of_range(self):
        emu = _emu("inp\nhlt", input_provider=lambda: 1000)
        with pytest.raises(InputRangeError):
            emu.run()

    def test_input_provider_bool_rejected(self):
        """True is an int subclass but not a machine word."""
        emu = _emu("inp\nhlt", input_provider=lambda: True)
        with pytest.raises(InputRangeError, match="True"):
            emu.run()
        assert emu.state.taken == []

    def test_feed_rejects_bad_value(self):
        with pytest.raises(ValueError):
            MachineState(inputs=[1000])


class TestBranches:
    def test_bra(self):
        emu = _run("bra 2\nout\nhlt")
        assert emu.state.outbox == []

    def test_brz_taken_and_not_taken(self):
        taken = _run("lda z\nbrz 4\nout\nhlt\nhlt\nz: dat 0")
        assert taken.regs.PC == 5
        not_taken = _run("lda z\nbrz 4\nhlt\nhlt\nhlt\nz: dat 3")
        assert not_taken.regs.PC == 3

    def test_brp_not_taken_after_underflow(self):
        emu = _run("lda z\nsub o\nbrp 5\nout\nhlt\nhlt\nz: dat 0\no: dat 1")
        assert emu.state.outbox == [999]

    def test_brp_follows_last_arithmetic_result(self):
        """lda, sto and bra leave the flag alone, so brp still sees the underflow."""
        src = """
                lda z
                sub o       ; NEG set
                lda big     ; acc = 500, NEG unchanged
                sto tmp
                bra next
        next:   brp pos
                out         ; reached: NEG still set
                hlt
        pos:    hlt
        z:      dat 0
        o:      dat 1
        big:    dat 500
        tmp:    dat 0
        """
        emu = _run(src)
        assert emu.state.outbox == [500]

    def test_brp_taken_on_clear_flag(self):
        emu = _run("lda o\nbrp 3\nout\nhlt\no: dat 1")
        assert emu.state.outbox == []


# ═══════════════════════════════════════════════
# Test Group 2: Termination and faults
# ═══════════════════════════════════════════════

class TestTermination:
    def test_only_zero_word_halts(self):
        assert decode(0) == ("hlt", None)
        assert _emu("dat 0").run() is StopReason.HALT

    def test_branch_into_small_data_word_is_illegal(self):
        """Words 001-099 are not instructions, so running into data faults."""
        emu = _emu("bra d\nd: dat 7")
        with pytest.raises(IllegalInstructionError, match="007") as exc:
            emu.run()
        assert exc.value.step == 1
        assert exc.value.registers.pc == 1
        assert emu.state.halted

    def test_timeout(self):
        emu = _emu("loop: bra loop")
        assert emu.run(max_steps=50) is StopReason.TIMEOUT
        assert emu.state.steps == 50
        assert not emu.state.halted

    def test_run_resumes_after_timeout(self):
        emu = _emu("inp\nsub o\nbrp 1\nhlt\no: dat 1", [5])
        assert emu.run(max_steps=2) is StopReason.TIMEOUT
        assert emu.run() is StopReason.HALT

    def test_pc_past_memory(self):
        """100 non-halting cells run off the end of memory."""
        emu = _emu("lda 0\n" * 100)
        with pytest.raises(AddressOverflowError) as exc:
            emu.run()
        assert exc.value.step == 100
        assert exc.value.registers.pc == 100

    def test_illegal_instruction(self):
        emu = _emu("dat 400")
        with pytest.raises(IllegalInstructionError, match="400"):
            emu.step()
        assert emu.state.halted

    def test_step_on_halted_machine_is_noop(self, caplog):
        emu = _run("hlt")
        with caplog.at_level(logging.WARNING):
            assert emu.step() is None
        assert "halted" in caplog.text
        assert emu.state.steps == 1

    def test_run_after_fault_reports_error(self):
        emu = _emu("inp\nhlt")
        with pytest.raises(InputExhaustedError):
            emu.run()
        assert emu.run() is StopReason.ERROR


class TestIsolation:
    def test_program_image_never_mutated(self):
        prog = assemble("inp\nsto 0\nhlt")
        image = prog.image
        LMCEmulator.from_program(prog, inputs=[123]).run()
        assert prog.image == image
        fresh = MachineState.from_program(prog)
        assert fresh.mem.read(0) == 901

    def test_self_modifying_code(self):
        """Code and data share one space: storing over an instruction changes it."""
        emu = _run("lda h\nsto 3\nout\nout\nhlt\nh: dat 0")
        assert emu.state.outbox == [0]


# ═══════════════════════════════════════════════
# Test Group 3: Decoder, memory and trace
# ═══════════════════════════════════════════════

class TestDecoder:
    def test_table(self):
        assert decode(901) == ("inp", None)
        assert decode(902) == ("out", None)
        assert decode(199) == ("add", 99)
        assert decode(842) == ("brp", 42)

    def test_illegal_words(self):
        for word in (1, 42, 99, 400, 499, 900, 903, 999):
            with pytest.raises(IllegalOpcode):
                decode(word)

    def test_disassemble(self):
        assert disassemble(505) == "lda 05"
        assert disassemble(901) == "inp"
        assert disassemble(450) == "dat 450"


class TestMemory:
    def test_out_of_range(self):
        mem = Memory()
        with pytest.raises(IndexError):
            mem.read(100)
        with pytest.raises(IndexError):
            mem.write(-1, 0)

    def test_image_too_large(self):
        with pytest.raises(ValueError):
            Memory([0] * 101)

    def test_diff_and_dump(self):
        mem = Memory([1, 2, 3])
        before = mem.snapshot()
        mem.write(1, 9)
        assert Memory.diff_snapshots(before, mem.snapshot()) == {1: (2, 9)}
        assert mem.dump(0, 10).startswith("00  001 009 003 000")


class TestTrace:
    def test_one_event_per_step(self):
        rec = TraceRecorder()
        emu = _emu("inp\nout\nhlt", [5], trace_sink=rec)
        emu.run()
        assert len(rec) == 3
        first = rec.events[0]
        assert (first.step, first.address, first.word, first.mnemonic) == (0, 0, 901, "inp")
        assert first.accumulator == 5
        assert first.pc == 1
        assert rec.events[-1].mnemonic == "hlt"

    def test_trace_does_not_change_results(self):
        plain = _run("inp\nout\nhlt", [5])
        traced = _emu("inp\nout\nhlt", [5], trace_sink=TraceRecorder())
        traced.run()
        assert plain.state.outbox == traced.state.outbox

    def test_recorder_limit(self):
        rec = TraceRecorder(limit=2)
        _emu("inp\nout\nhlt", [5], trace_sink=rec).run()
        assert [e.mnemonic for e in rec.events] == ["out", "hlt"]

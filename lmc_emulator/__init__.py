# LMC Emulator — Little Man Computer execution engine
# Part of the lmckit toolchain
#
# Layout:
#   cpu/        register set, decoder, decimal ALU
#   mem/        100-cell word memory
#   state.py    per-run machine state (registers, memory, I/O queues)
#   emu.py      fetch-decode-execute engine and run-time errors
#   debugger.py step batches for interactive debugging
#   testrunner.py  runs the test directives embedded in a program
#   trace.py    trace sinks
#   console.py  interactive input provider (rich prompt)

from .state import MachineState
from .emu import (
    LMCEmulator, StopReason, TraceEvent,
    MachineError, AddressOverflowError, InputExhaustedError,
    InputRangeError, IllegalInstructionError,
)
from .debugger import Debugger, StepBatchResult, step_batch, parse_step_count
from .testrunner import Verdict, TestResult, run_test, run_tests, summarize
from .trace import TraceRecorder, log_trace_event

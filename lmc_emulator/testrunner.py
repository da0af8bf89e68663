"""
LMC Emulator — Test Directive Runner

Runs the `.name [ins] [outs]` cases embedded in a source file against the
assembled image. Every case gets a fresh MachineState, so cases never see
each other's memory writes and the Program image is never touched.

Verdicts:
  PASS        halted and the output log equals the expected outputs
  FAIL        halted with different outputs (diff in detail)
  ERROR       fatal run-time error (kind in error_kind)
  NOT_HALTED  step ceiling reached without a halt
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .emu import LMCEmulator, MachineError, StopReason
from .state import MachineState

log = logging.getLogger(__name__)


class Verdict(Enum):
    PASS = 'PASS'
    FAIL = 'FAIL'
    ERROR = 'ERROR'
    NOT_HALTED = 'NOT_HALTED'


@dataclass
class TestResult:
    """Outcome of one test directive."""
    __test__ = False

    name: str
    verdict: Verdict
    expected: Tuple[int, ...] = ()
    actual: Tuple[int, ...] = ()
    steps: int = 0
    error_kind: Optional[str] = None
    error: Optional[MachineError] = None
    detail: str = ''

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASS


def _diff_outputs(expected, actual) -> str:
    for idx, (want, got) in enumerate(zip(expected, actual)):
        if want != got:
            return f"output {idx}: expected {want}, got {got}"
    if len(actual) < len(expected):
        return f"missing outputs: expected {len(expected)} values, got {len(actual)}"
    return f"extra outputs: expected {len(expected)} values, got {len(actual)}"


def run_test(program, case, max_steps: Optional[int] = None) -> TestResult:
    """Run one TestDirective against program. Never raises MachineError."""
    if max_steps is None:
        max_steps = LMCEmulator.DEFAULT_MAX_STEPS

    emu = LMCEmulator(MachineState.from_program(program, case.inputs))
    expected = tuple(case.outputs)

    try:
        reason = emu.run(max_steps)
    except MachineError as e:
        log.debug("Test %s: %s", case.name, e)
        return TestResult(
            name=case.name, verdict=Verdict.ERROR, expected=expected,
            actual=tuple(emu.state.outbox), steps=emu.state.steps,
            error_kind=e.kind, error=e, detail=e.message,
        )

    actual = tuple(emu.state.outbox)
    if reason is StopReason.TIMEOUT:
        verdict = Verdict.NOT_HALTED
        detail = f"did not halt within {max_steps} steps"
    elif actual == expected:
        verdict = Verdict.PASS
        detail = ''
    else:
        verdict = Verdict.FAIL
        detail = _diff_outputs(expected, actual)

    log.debug("Test %s: %s after %d steps", case.name, verdict.value, emu.state.steps)
    return TestResult(
        name=case.name, verdict=verdict, expected=expected, actual=actual,
        steps=emu.state.steps, detail=detail,
    )


def run_tests(program, max_steps: Optional[int] = None,
              names: Optional[Iterable[str]] = None) -> List[TestResult]:
    """Run the program's test directives in source order.

    names restricts the run to the listed cases; an unknown name is a KeyError.
    """
    if names is None:
        cases = list(program.tests)
    else:
        cases = [program.test(name) for name in names]
    return [run_test(program, case, max_steps) for case in cases]


def summarize(results: List[TestResult]) -> str:
    passed = sum(1 for r in results if r.passed)
    return f"{passed}/{len(results)} tests passed"

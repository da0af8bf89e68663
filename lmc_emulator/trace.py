"""
LMC Emulator — Trace Sinks

Ready-made callables for LMCEmulator(trace_sink=...). A sink receives one
TraceEvent per executed instruction.
"""

import logging
from collections import deque
from typing import Deque

from .emu import TraceEvent

trace_log = logging.getLogger("lmc_emulator.trace")


def log_trace_event(event: TraceEvent):
    """Write one trace line at DEBUG on the lmc_emulator.trace logger."""
    trace_log.debug("%s", event.display())


class TraceRecorder:
    """Collect trace events in memory, keeping the newest `limit` (0 = all)."""

    def __init__(self, limit: int = 0):
        self.events: Deque[TraceEvent] = deque(maxlen=limit or None)

    def __call__(self, event: TraceEvent):
        self.events.append(event)

    def __len__(self) -> int:
        return len(self.events)

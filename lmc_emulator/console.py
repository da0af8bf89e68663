"""
LMC Emulator — Interactive Input

Input provider that asks the operator for a value whenever 'inp' finds the
input queue empty. Only the CLI attaches it; test runs stay non-interactive.
"""

import logging
from typing import List, Optional

from rich.console import Console
from rich.prompt import IntPrompt

log = logging.getLogger(__name__)


class ConsoleInput:
    """Prompt for one word at a time until a value in 0-999 is entered."""

    def __init__(self, console: Optional[Console] = None, prompt: str = "inp"):
        self.console = console or Console()
        self.prompt = prompt
        self.history: List[int] = []

    def __call__(self) -> int:
        while True:
            value = IntPrompt.ask(f"[bold cyan]{self.prompt}[/] (0-999)", console=self.console)
            if 0 <= value <= 999:
                break
            self.console.print(f"[red]{value} is out of range 0-999[/]")
            log.debug("Rejected console input %d", value)
        self.history.append(value)
        return value

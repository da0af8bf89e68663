"""
LMC Emulator — 100-Cell Memory

Memory map:
  00–99  one decimal word (000–999) per cell

Code and data share the one address space; nothing distinguishes an
instruction cell from a data cell, so a program may overwrite its own code.
Cells past the end of the loaded image start at zero.
"""

from typing import Dict, Iterable, Tuple

MEMORY_SIZE = 100


class Memory:
    """Flat, word-addressable LMC memory."""

    def __init__(self, image: Iterable[int] = ()):
        self._mem = [0] * MEMORY_SIZE
        self.load_image(image)

    def __len__(self) -> int:
        return MEMORY_SIZE

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        if not 0 <= addr < MEMORY_SIZE:
            raise IndexError(f"Address {addr} outside memory (0-{MEMORY_SIZE - 1})")
        return self._mem[addr]

    def write(self, addr: int, value: int):
        if not 0 <= addr < MEMORY_SIZE:
            raise IndexError(f"Address {addr} outside memory (0-{MEMORY_SIZE - 1})")
        self._mem[addr] = value

    # --- Bulk load ---

    def load_image(self, image: Iterable[int]):
        """Copy an assembled image into memory, zero-filling the rest.

        The image itself is never referenced after the copy.
        """
        words = list(image)
        if len(words) > MEMORY_SIZE:
            raise ValueError(f"Image of {len(words)} words does not fit in {MEMORY_SIZE} cells")
        self._mem = words + [0] * (MEMORY_SIZE - len(words))

    # --- Snapshots ---

    def snapshot(self) -> Tuple[int, ...]:
        return tuple(self._mem)

    @staticmethod
    def diff_snapshots(snap_a: Tuple[int, ...], snap_b: Tuple[int, ...]) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changed cells."""
        return {
            addr: (old, new)
            for addr, (old, new) in enumerate(zip(snap_a, snap_b))
            if old != new
        }

    # --- Dump ---

    def dump(self, start: int = 0, length: int = MEMORY_SIZE) -> str:
        """Produce a decimal dump of memory, ten cells per row."""
        lines = []
        end = min(start + length, MEMORY_SIZE)
        for row in range(start - start % 10, end, 10):
            cells = ' '.join(f'{self._mem[addr]:03d}' for addr in range(row, min(row + 10, end)))
            lines.append(f'{row:02d}  {cells}')
        return '\n'.join(lines)

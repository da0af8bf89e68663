"""
LMC Emulator — ALU Operations

Decimal wraparound arithmetic on 3-digit words. Each function returns
(result, neg_flag); the caller writes both back to the register set.

  add: (a + b) mod 1000, never negative. Overflow past 999 wraps silently.
  sub: a - b; a negative raw result sets the flag and wraps to raw + 1000.
"""

WORD_MODULUS = 1000


def add(a: int, b: int) -> tuple:
    """Add two words. Clears NEG."""
    return ((a + b) % WORD_MODULUS, False)


def sub(a: int, b: int) -> tuple:
    """Subtract b from a. Sets NEG on underflow."""
    raw = a - b
    if raw < 0:
        return ((raw + WORD_MODULUS) % WORD_MODULUS, True)
    return (raw, False)


def overflowed(a: int, b: int) -> bool:
    """True when a + b wrapped past 999."""
    return a + b >= WORD_MODULUS

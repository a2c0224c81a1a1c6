"""Deterministic, portable question ordering.

The generator and traversal are pinned down exactly (Mulberry32 plus a
Fisher-Yates pass from the last index down) instead of using ``random.Random``,
so the same seed yields the same order in any process and in any language that
reimplements the two functions below.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF


class Mulberry32:
    """32-bit Mulberry32 generator, seeded once."""

    def __init__(self, seed: int) -> None:
        self._state = int(seed) & _MASK32

    def next_u32(self) -> int:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK32)) & _MASK32
        return (t ^ (t >> 14)) & _MASK32

    def below(self, n: int) -> int:
        """Return an index in [0, n) as floor(u32 * n / 2**32)."""

        if n <= 0:
            raise ValueError("n must be > 0")
        return (self.next_u32() * n) >> 32


def seeded_shuffle(sequence: Sequence[T], seed: int) -> list[T]:
    """Return a new list holding a seed-determined permutation of ``sequence``."""

    out = list(sequence)
    if len(out) < 2:
        return out

    rng = Mulberry32(seed)
    for i in range(len(out) - 1, 0, -1):
        j = rng.below(i + 1)
        out[i], out[j] = out[j], out[i]
    return out

"""Portable seeded pseudo-randomness for plan generation.

Uses splitmix64 rather than ``random.Random`` so a plan can be reproduced
from its seed by any implementation, independent of interpreter version.
Each (date, meal slot) gets its own sub-seed, so reordering slots does not
change the draws of the other slots.
"""

from __future__ import annotations

import hashlib
from typing import Sequence, TypeVar

T = TypeVar("T")

_MASK64 = (1 << 64) - 1


def derive_seed(seed: int, *parts: object) -> int:
    """Derive a 64-bit sub-seed from a master seed and key parts.

    Example:
        >>> derive_seed(0, "2026-01-05", "lunch") == derive_seed(0, "2026-01-05", "lunch")
        True
    """
    key = "|".join([str(int(seed))] + [str(p) for p in parts])
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


class SplitMix64:
    """splitmix64 generator (Steele, Lea & Flood)."""

    def __init__(self, seed: int):
        self.state = seed & _MASK64
        self.draws = 0

    def next_u64(self) -> int:
        self.state = (self.state + 0x9E3779B97F4A7C15) & _MASK64
        z = self.state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK64
        self.draws += 1
        return z ^ (z >> 31)

    def randbelow(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        if n <= 0:
            raise ValueError(f"n must be positive, got {n}")
        return (self.next_u64() * n) >> 64

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both inclusive."""
        if high < low:
            raise ValueError(f"empty range [{low}, {high}]")
        return low + self.randbelow(high - low + 1)

    def choice(self, seq: Sequence[T]) -> T:
        if not seq:
            raise IndexError("cannot choose from an empty sequence")
        return seq[self.randbelow(len(seq))]

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        """Draw k distinct elements (partial Fisher-Yates), order preserved by draw."""
        pool = list(seq)
        k = max(0, min(k, len(pool)))
        for i in range(k):
            j = i + self.randbelow(len(pool) - i)
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:k]

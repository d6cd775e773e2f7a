"""Deterministic per-cycle random source (mulberry32).

Every probabilistic decision in a cycle draws from the single ``CycleRng``
held by the cycle context. Nothing in the resolution or ripple code
touches the ``random`` module.
"""

from __future__ import annotations

import secrets
import zlib
from typing import Protocol

MASK = 0xFFFFFFFF
_GOLDEN = 0x6D2B79F5


class RandomSource(Protocol):
    """Zero-argument callable returning a float in [0, 1)."""

    def __call__(self) -> float: ...


def cycle_seed(base_seed: int, cycle_id: int) -> int:
    """Seed for one cycle: base seed XOR cycle id, as an unsigned 32-bit value."""
    return (base_seed ^ cycle_id) & MASK


def entropy_seed() -> int:
    """Fresh 32-bit seed from the OS entropy pool, for unseeded normal runs."""
    return secrets.randbits(32)


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK


class CycleRng:
    """mulberry32 generator.

    ``seed`` is kept so the context can record it; ``draws`` counts values
    consumed, which makes divergence between two runs easy to spot.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed & MASK
        self._state = self.seed
        self.draws = 0

    def __call__(self) -> float:
        self._state = (self._state + _GOLDEN) & MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t = (t ^ ((t + _imul(t ^ (t >> 7), t | 61)) & MASK)) & MASK
        self.draws += 1
        return ((t ^ (t >> 14)) & MASK) / 4294967296

    def derive(self, tag: str) -> CycleRng:
        """Named sub-stream: the seed salted with crc32(tag). The parent stream is not advanced."""
        return CycleRng(self.seed ^ zlib.crc32(tag.encode("utf-8")))

    def __repr__(self) -> str:
        return f"CycleRng(seed={self.seed}, draws={self.draws})"

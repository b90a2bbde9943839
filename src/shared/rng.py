"""Deterministic pseudo-random generator for reproducible grid runs.

Every component that needs randomness owns (or is handed) its own
``SeededRandom``.  Two instances built with the same seed and driven by
the same sequence of calls produce bit-identical output, so a whole
simulation is reproducible from its seed.

The core is the Mulberry32 mixer over a 32-bit state; all derived draws
(ranges, Gaussian, weighted pick, UUID tokens …) are expressed through
:meth:`SeededRandom.next`.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SEED = 12345

_MASK32 = 0xFFFFFFFF
_GOLDEN = 0x6D2B79F5
_TWO_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """32-bit multiply, low word only."""
    return (a * b) & _MASK32


class SeededRandom:
    """Mulberry32 generator with a handful of convenience draws."""

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self._seed = int(seed)
        self._state = self._seed & _MASK32

    # ── core ─────────────────────────────────────────────────────────

    def next(self) -> float:
        """Return the next float in [0, 1)."""
        self._state = (self._state + _GOLDEN) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    def reset(self) -> None:
        self._state = self._seed & _MASK32

    def set_seed(self, seed: int) -> None:
        self._seed = int(seed)
        self._state = self._seed & _MASK32
        log.debug("RNG reseeded: %d", self._seed)

    def get_seed(self) -> int:
        return self._seed

    # ── derived draws ────────────────────────────────────────────────

    def next_int(self, lo: int, hi: int) -> int:
        """Integer in [lo, hi], both ends inclusive."""
        return math.floor(self.next() * (hi - lo + 1)) + lo

    def next_float(self, lo: float, hi: float) -> float:
        return self.next() * (hi - lo) + lo

    def next_bool(self, probability: float = 0.5) -> bool:
        return self.next() < probability

    def pick(self, seq: Sequence[T]) -> T | None:
        if not seq:
            return None
        return seq[math.floor(self.next() * len(seq))]

    def pick_n(self, seq: Sequence[T], n: int) -> list[T]:
        """Pick ``n`` distinct elements (without replacement)."""
        return self.shuffle(seq)[:n]

    def shuffle(self, seq: Sequence[T]) -> list[T]:
        """Fisher–Yates shuffle; returns a new list, input untouched."""
        out = list(seq)
        for i in range(len(out) - 1, 0, -1):
            j = math.floor(self.next() * (i + 1))
            out[i], out[j] = out[j], out[i]
        return out

    def next_gaussian(self, mean: float = 0.0, std: float = 1.0) -> float:
        """Box–Muller transform on two consecutive draws."""
        u1 = self.next()
        u2 = self.next()
        # next() can return exactly 0.0
        u1 = max(u1, 1.0 / _TWO_32)
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return z0 * std + mean

    def next_exponential(self, lam: float = 1.0) -> float:
        return -math.log(1.0 - self.next()) / lam

    def weighted_pick(self, items: Sequence[T], weights: Sequence[float]) -> T:
        total = sum(weights)
        r = self.next() * total
        for item, w in zip(items, weights):
            r -= w
            if r <= 0:
                return item
        return items[-1]

    def next_uuid(self) -> str:
        """UUID-v4 shaped token built from generator draws."""
        chars: list[str] = []
        for c in "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx":
            if c not in "xy":
                chars.append(c)
                continue
            r = math.floor(self.next() * 16)
            v = r if c == "x" else (r & 0x3) | 0x8
            chars.append(format(v, "x"))
        return "".join(chars)

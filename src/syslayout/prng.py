"""
Seedable pseudo random numbers for placement and jiggle.

Layout code never calls the global ``random`` module so that a run can be
reproduced exactly from its seed.
"""

from __future__ import annotations

from typing import Optional
import time


class PseudoRandom:
    """Linear congruential pseudo random number generator."""

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = time.time_ns() & 0x7FFFFFFF
        self.seed = seed
        self.a = 214013
        self.c = 2531011
        self.m = 2147483648
        self.range = 32768

    def get_next(self) -> float:
        """Get random real in [0, 1)."""
        self.seed = (self.seed * self.a + self.c) % self.m
        return (self.seed >> 16) / self.range

    def get_next_between(self, min_val: float, max_val: float) -> float:
        """Get random real between min and max."""
        return min_val + self.get_next() * (max_val - min_val)

    def jiggle(self) -> float:
        """Tiny non-zero offset used to separate coincident points."""
        return (self.get_next() - 0.5) * 1e-6 or 1e-7

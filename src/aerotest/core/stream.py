"""Deterministic uniform stream.

A Park-Miller style multiplicative congruential generator. The whole engine
is a pure function of (rule table, stream draws, previously derived values),
so this generator is the only source of variation in a run.

    state_0 = seed mod M          (coerced to M - 1 when it lands on 0)
    state_n = state_{n-1} * A mod M
    draw_n  = (state_n - 1) / (M - 1)     in [0, 1)

Each run owns its stream. Downstream consumers receive children via
``fork(salt)`` so their draw counts never shift each other's sequences.
"""

from __future__ import annotations

import numpy as np

from .constants import FORK_STRIDE, STREAM_MODULUS, STREAM_MULTIPLIER


class DeterministicStream:
    """Reproducible sequence of uniform draws in [0, 1)."""

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)
        state = self.seed % STREAM_MODULUS
        if state <= 0:
            state = STREAM_MODULUS - 1
        self._state = state
        self._count = 0

    @property
    def draws(self) -> int:
        """Number of values drawn so far."""
        return self._count

    def draw(self) -> float:
        """Advance the generator and return the next value."""
        self._state = (self._state * STREAM_MULTIPLIER) % STREAM_MODULUS
        self._count += 1
        return (self._state - 1) / (STREAM_MODULUS - 1)

    def uniform(self, low: float, high: float) -> float:
        """Map one draw onto [low, high)."""
        return low + (high - low) * self.draw()

    def symmetric(self, band: float) -> float:
        """One draw mapped onto [-band, band)."""
        return band * (2.0 * self.draw() - 1.0)

    def draw_array(self, n: int) -> np.ndarray:
        """Draw ``n`` values in order.

        Equivalent to calling :meth:`draw` ``n`` times.
        """
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        out = np.empty(n, dtype=np.float64)
        state = self._state
        m = STREAM_MODULUS
        a = STREAM_MULTIPLIER
        for i in range(n):
            state = (state * a) % m
            out[i] = state
        self._state = state
        self._count += n
        out -= 1.0
        out /= m - 1
        return out

    def fork(self, salt: int) -> DeterministicStream:
        """Child stream derived from the seed only, not from current state."""
        return DeterministicStream((self.seed + int(salt) * FORK_STRIDE) % STREAM_MODULUS)

    def __repr__(self) -> str:
        return f"DeterministicStream(seed={self.seed}, draws={self._count})"

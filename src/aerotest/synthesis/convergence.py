"""Solver convergence history.

Each residual field follows

    r(i) = r0 * exp(-k * i) * (1 + noise(i)),   |noise| <= NOISE_AMPLITUDE

with k chosen so the envelope lands on a per-field terminal target after N
iterations. The history is state-free: it depends on the stream only.

Draw order (fork SALT_CONVERGENCE):
    1. run quality (shared terminal magnitude)
    2. for each field in RESIDUAL_FIELDS: terminal offset, initial amplitude
    3. N x 4 noise draws, iteration-major, fields in RESIDUAL_FIELDS order
"""

from __future__ import annotations

import numpy as np

from ..core.constants import CONVERGENCE_THRESHOLD, RELAXED_THRESHOLD
from ..core.stream import DeterministicStream
from ..core.types import RESIDUAL_FIELDS, ResidualHistory, ResidualSample

INITIAL_RESIDUALS = {
    "continuity": 1.0,
    "x_velocity": 0.5,
    "y_velocity": 0.3,
    "z_velocity": 0.3,
}
TERMINAL_LOG10_RANGE = (-6.8, -4.9)
TERMINAL_FIELD_SPREAD = 0.3  # decades
NOISE_AMPLITUDE = 0.25

STATUS_CONVERGED = "Converged"
STATUS_RELAXED = "Converged (Relaxed)"
STATUS_DIVERGED = "Diverged"


def classify(final_max: float, threshold: float, relaxed_threshold: float) -> str:
    """Label a run from its largest final residual."""
    if final_max < threshold:
        return STATUS_CONVERGED
    if final_max < relaxed_threshold:
        return STATUS_RELAXED
    return STATUS_DIVERGED


def generate_history(
    stream: DeterministicStream,
    n_iterations: int,
    threshold: float = CONVERGENCE_THRESHOLD,
    relaxed_threshold: float = RELAXED_THRESHOLD,
) -> ResidualHistory:
    """Build the residual history for one run.

    Args:
        stream: Child stream reserved for this stage.
        n_iterations: Number of samples (>= 2).
        threshold: Final residuals must sit below this to count as converged.
        relaxed_threshold: Upper limit for "Converged (Relaxed)".

    Returns:
        ResidualHistory with iterations 1..n_iterations.
    """
    if n_iterations < 2:
        raise ValueError(f"n_iterations must be >= 2, got {n_iterations}")

    lo, hi = TERMINAL_LOG10_RANGE
    base_log10 = lo + (hi - lo) * stream.draw()

    initial = np.empty(len(RESIDUAL_FIELDS))
    terminal = np.empty(len(RESIDUAL_FIELDS))
    for j, name in enumerate(RESIDUAL_FIELDS):
        offset = stream.symmetric(TERMINAL_FIELD_SPREAD)
        amplitude = 0.8 + 0.4 * stream.draw()
        initial[j] = INITIAL_RESIDUALS[name] * amplitude
        terminal[j] = 10.0 ** (base_log10 + offset)

    rates = np.log(initial / terminal) / (n_iterations - 1)
    noise = stream.draw_array(n_iterations * len(RESIDUAL_FIELDS)).reshape(n_iterations, -1)
    noise = NOISE_AMPLITUDE * (2.0 * noise - 1.0)

    i = np.arange(n_iterations, dtype=np.float64)[:, None]
    values = initial[None, :] * np.exp(-rates[None, :] * i) * (1.0 + noise)

    samples = tuple(
        ResidualSample(
            iteration=int(k + 1),
            continuity=float(row[0]),
            x_velocity=float(row[1]),
            y_velocity=float(row[2]),
            z_velocity=float(row[3]),
        )
        for k, row in enumerate(values)
    )
    status = classify(float(values[-1].max()), threshold, relaxed_threshold)
    return ResidualHistory(samples=samples, status=status, threshold=threshold)


def decay_slopes(history: ResidualHistory) -> dict[str, float]:
    """Least-squares slope of log10(residual) vs iteration, per field."""
    it = history.iterations().astype(np.float64)
    return {
        name: float(np.polyfit(it, np.log10(history.field_array(name)), 1)[0])
        for name in RESIDUAL_FIELDS
    }

"""Optimization narrative ("AI optimization" trace).

Deterministic, phrase-table driven. There is no learned model behind it:
the epochs are a geometric sequence of Cd reductions, so Cd strictly
decreases and each step improves less than the one before.

Draw order (fork SALT_NARRATIVE):
    1. total improvement fraction
    2. decay ratio of the per-step improvements
    3. one phrase draw per epoch
"""

from __future__ import annotations

import math

import numpy as np

from ..core.constants import CORRECTION_MODEL_VERSION
from ..core.stream import DeterministicStream
from ..core.types import NeuralCorrection, OptimizationEpoch

TOTAL_IMPROVEMENT_RANGE = (0.04, 0.12)
DECAY_RATIO_RANGE = (0.55, 0.80)
CONFIDENCE_FLOOR = 50.0
CONFIDENCE_SPAN = 45.0
CONFIDENCE_SCALE = 0.05
CORRECTION_CONFIDENCE = 80.0

MUTATION_PHRASES: tuple[str, ...] = (
    "Tapered front wing endplates to weaken tip vortices",
    "Raised nose cone tip to clean airflow onto the underbody",
    "Filleted sidepod leading edges to delay separation",
    "Reduced rear wing angle of attack by 1.5 degrees",
    "Smoothed canister housing transition into the rear wheels",
    "Thinned front wing trailing edge to cut pressure drag",
    "Shortened wheel pod fairings to shrink wetted area",
    "Added boat-tail taper to the rear body section",
    "Lowered halo profile within visibility limits",
    "Aligned front wheel fairing with local flow direction",
    "Rounded chassis underside to reduce ground-effect drag",
    "Blended rear wing supports into the body shell",
    "Cambered front wing mainplane for a cleaner wake",
    "Closed the gap between wheel and pod to stop recirculation",
    "Re-profiled tether line guide to reduce interference drag",
    "Trimmed surface finish allowance for lower skin friction",
)


def confidence_for(total_improvement: float) -> float:
    """Bounded confidence score in [50, 95) from the total fractional gain."""
    gain = max(total_improvement, 0.0)
    return CONFIDENCE_FLOOR + CONFIDENCE_SPAN * (1.0 - math.exp(-gain / CONFIDENCE_SCALE))


def generate_narrative(
    cd: float,
    stream: DeterministicStream,
    n_epochs: int,
) -> tuple[tuple[OptimizationEpoch, ...], NeuralCorrection]:
    """Build the optimization epochs and the terminal correction record.

    Args:
        cd: Synthesized drag coefficient the narrative starts from.
        stream: Child stream reserved for this stage.
        n_epochs: Number of epochs (>= 1).

    Returns:
        (epochs, correction)
    """
    if n_epochs < 1:
        raise ValueError(f"n_epochs must be positive, got {n_epochs}")

    total = stream.uniform(*TOTAL_IMPROVEMENT_RANGE)
    ratio = stream.uniform(*DECAY_RATIO_RANGE)

    weights = ratio ** np.arange(n_epochs, dtype=np.float64)
    steps = cd * total * weights / weights.sum()

    epochs: list[OptimizationEpoch] = []
    current = cd
    for k, step in enumerate(steps):
        index = min(int(stream.draw() * len(MUTATION_PHRASES)), len(MUTATION_PHRASES) - 1)
        previous = current
        current = previous - float(step)
        epochs.append(
            OptimizationEpoch(
                epoch=k + 1,
                result_cd=current,
                improvement_pct=100.0 * (previous - current) / previous,
                mutation=MUTATION_PHRASES[index],
            )
        )

    achieved = (cd - current) / cd
    confidence = round(confidence_for(achieved), 1)
    applied = confidence >= CORRECTION_CONFIDENCE
    correction = NeuralCorrection(
        version=CORRECTION_MODEL_VERSION,
        confidence=confidence,
        correction_applied=applied,
        original_cd=cd,
        optimized_cd=current,
        formula=f"Cd* = {cd:.4f} x (1 - {achieved:.4f}) = {current:.4f}",
        reason=(
            f"{n_epochs} refinement epochs reduced Cd by {100.0 * achieved:.2f}%"
            + ("." if applied else "; below the confidence needed to apply the correction.")
        ),
    )
    return tuple(epochs), correction

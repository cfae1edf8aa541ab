"""Optimization narrative invariants."""

import numpy as np
import pytest

from aerotest.core.constants import CORRECTION_MODEL_VERSION
from aerotest.core.stream import DeterministicStream
from aerotest.synthesis.narrative import MUTATION_PHRASES, confidence_for, generate_narrative


@pytest.mark.parametrize("n_epochs", [5, 6, 12, 15])
def test_strictly_decreasing_cd(n_epochs):
    rng = np.random.default_rng(11)
    for seed in rng.integers(0, 2**31, size=200):
        cd = 0.12 + 0.2 * (int(seed) % 1000) / 1000
        epochs, correction = generate_narrative(cd, DeterministicStream(int(seed)), n_epochs)
        assert len(epochs) == n_epochs
        assert epochs[0].result_cd < cd
        for prev, cur in zip(epochs, epochs[1:]):
            assert cur.result_cd < prev.result_cd
            assert cur.improvement_pct <= prev.improvement_pct
        assert correction.optimized_cd == epochs[-1].result_cd
        assert correction.original_cd == cd


def test_epoch_numbers_and_phrases():
    epochs, _ = generate_narrative(0.2, DeterministicStream(521), 6)
    assert [e.epoch for e in epochs] == list(range(1, 7))
    assert all(e.mutation in MUTATION_PHRASES for e in epochs)


def test_draw_count():
    s = DeterministicStream(521)
    generate_narrative(0.2, s, 12)
    assert s.draws == 2 + 12


def test_confidence_bounded():
    assert confidence_for(0.0) == 50.0
    assert 50.0 < confidence_for(0.04) < confidence_for(0.12) < 95.0
    _, correction = generate_narrative(0.2, DeterministicStream(3), 6)
    assert 50.0 <= correction.confidence < 95.0
    assert correction.version == CORRECTION_MODEL_VERSION
    assert correction.formula.startswith("Cd* = 0.2000")


def test_total_improvement_range():
    for seed in range(1, 200):
        _, correction = generate_narrative(0.25, DeterministicStream(seed), 8)
        achieved = 1.0 - correction.optimized_cd / correction.original_cd
        assert 0.04 - 1e-12 <= achieved <= 0.12 + 1e-12


def test_invalid_epoch_count():
    with pytest.raises(ValueError):
        generate_narrative(0.2, DeterministicStream(1), 0)

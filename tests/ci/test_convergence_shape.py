"""Residual history shape and labelling."""

import numpy as np
import pytest

from aerotest.core.constants import CONVERGENCE_THRESHOLD, RELAXED_THRESHOLD
from aerotest.core.stream import DeterministicStream
from aerotest.core.types import RESIDUAL_FIELDS
from aerotest.synthesis.convergence import (
    STATUS_CONVERGED,
    STATUS_DIVERGED,
    STATUS_RELAXED,
    classify,
    decay_slopes,
    generate_history,
)


@pytest.mark.parametrize("seed", [1, 521, 99991, 2**30 + 7, 1234567])
@pytest.mark.parametrize("n", [200, 500])
def test_negative_log_slope(seed, n):
    history = generate_history(DeterministicStream(seed), n)
    slopes = decay_slopes(history)
    assert set(slopes) == set(RESIDUAL_FIELDS)
    for name, slope in slopes.items():
        assert slope < 0.0, f"{name} does not decay (slope {slope})"


def test_iterations_strictly_increasing():
    history = generate_history(DeterministicStream(8), 200)
    it = history.iterations()
    assert it[0] == 1
    assert it[-1] == 200
    assert np.all(np.diff(it) > 0)


def test_spans_several_decades():
    history = generate_history(DeterministicStream(8), 200)
    for name in RESIDUAL_FIELDS:
        values = history.field_array(name)
        assert np.all(values > 0.0)
        assert np.log10(values[0] / values[-1]) > 3.0


def test_label_matches_threshold():
    rng = np.random.default_rng(3)
    for seed in rng.integers(0, 2**31, size=300):
        history = generate_history(DeterministicStream(int(seed)), 200)
        final = max(getattr(history.final, name) for name in RESIDUAL_FIELDS)
        assert (history.status == STATUS_CONVERGED) == (final < CONVERGENCE_THRESHOLD)
        if history.status != STATUS_CONVERGED:
            assert history.status in (STATUS_RELAXED, STATUS_DIVERGED)


def test_tight_threshold_is_not_silently_passed():
    history = generate_history(
        DeterministicStream(521), 200, threshold=1e-12, relaxed_threshold=1e-11
    )
    assert history.status == STATUS_DIVERGED


def test_classify():
    assert classify(1e-6, CONVERGENCE_THRESHOLD, RELAXED_THRESHOLD) == STATUS_CONVERGED
    assert classify(5e-5, CONVERGENCE_THRESHOLD, RELAXED_THRESHOLD) == STATUS_RELAXED
    assert classify(1e-3, CONVERGENCE_THRESHOLD, RELAXED_THRESHOLD) == STATUS_DIVERGED


def test_unknown_field():
    history = generate_history(DeterministicStream(1), 10)
    with pytest.raises(KeyError):
        history.field_array("pressure")


def test_too_few_iterations():
    with pytest.raises(ValueError):
        generate_history(DeterministicStream(1), 1)

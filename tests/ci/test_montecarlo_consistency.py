"""Monte Carlo aggregate and subset invariants."""

import numpy as np
import pytest

from aerotest.core.stream import DeterministicStream
from aerotest.synthesis.aero import synthesize_coefficients
from aerotest.synthesis.montecarlo import (
    CD_RANGE,
    SUBSET_TOLERANCE,
    TIME_CAP_S,
    TIME_FLOOR_S,
    simulate_population,
    simulate_race,
    stratified_subset,
)
from aerotest.synthesis.parameters import synthesize_parameters


def _inputs(seed: int):
    s = DeterministicStream(seed)
    params, _ = synthesize_parameters(s)
    coeffs = synthesize_coefficients(params, s)
    return params, coeffs.cd, s


@pytest.mark.parametrize("seed", [521, 17, 4_000_037, 2**31 - 2])
def test_ordering_and_subset_mean(seed):
    params, cd, s = _inputs(seed)
    pred, _ = simulate_race(params, cd, s.fork(3), 5000, visualization_points=250)

    assert pred.sample_count == 5000
    assert pred.best_race_time <= pred.average_race_time <= pred.worst_race_time
    assert pred.worst_finish_line_speed <= pred.average_finish_line_speed
    assert pred.average_finish_line_speed <= pred.best_finish_line_speed
    assert pred.worst_start_speed <= pred.average_start_speed <= pred.best_start_speed
    assert pred.worst_average_speed <= pred.average_speed <= pred.best_average_speed

    assert 0 < len(pred.sampled_points) <= 250
    drift = abs(pred.sampled_mean_time - pred.average_race_time) / pred.average_race_time
    assert drift < SUBSET_TOLERANCE


def test_times_are_finite_and_plausible():
    params, cd, s = _inputs(521)
    pred, _ = simulate_race(params, cd, s.fork(3), 2000)
    assert pred.is_physical
    assert pred.trust_index > 90.0
    assert TIME_FLOOR_S <= pred.best_race_time
    assert pred.worst_race_time < TIME_CAP_S
    assert pred.std_dev_time > 0.0


def test_deterministic():
    params, cd, s = _inputs(99)
    a, _ = simulate_race(params, cd, s.fork(3), 1000)
    b, _ = simulate_race(params, cd, DeterministicStream(s.fork(3).seed), 1000)
    assert a == b


def test_four_draws_per_trial():
    params, cd, s = _inputs(5)
    child = s.fork(3)
    simulate_population(params, cd, child, 300)
    assert child.draws == 1200


def test_out_of_range_cd_is_clamped():
    params, _, s = _inputs(521)
    pred, events = simulate_race(params, 25.0, s.fork(3), 500)
    assert pred.average_drag == CD_RANGE[1]
    assert any(e.name == "cd" and e.clamped == CD_RANGE[1] for e in events)
    assert np.isfinite(pred.average_race_time)
    assert pred.best_race_time > 0.0


def test_negative_cd_is_clamped():
    params, _, s = _inputs(521)
    pred, events = simulate_race(params, -1.0, s.fork(3), 500)
    assert pred.average_drag == CD_RANGE[0]
    assert events


def test_subset_bounded_by_population():
    values = np.arange(10, dtype=np.float64)
    picks = stratified_subset(values, 50)
    assert len(picks) == 10
    assert len(set(picks.tolist())) == 10


def test_subset_is_stride_through_sorted_values():
    values = np.linspace(1.0, 2.0, 1000)[::-1].copy()
    picks = stratified_subset(values, 10)
    chosen = np.sort(values[picks])
    assert np.all(np.diff(chosen) > 0)
    assert chosen.mean() == pytest.approx(values.mean(), rel=1e-3)


def test_zero_samples_rejected():
    params, cd, s = _inputs(1)
    with pytest.raises(ValueError):
        simulate_race(params, cd, s.fork(3), 0)

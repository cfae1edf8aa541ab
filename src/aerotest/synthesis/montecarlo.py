"""Monte Carlo race-time simulation.

Closed-form two-phase model over a 20 m track, solved per trial with numpy:

    boost (0 <= t < tau):  m dv/dt = F - R - k v^2
        v(x) = v_t * sqrt(1 - exp(-2 k x / m)),  v_t = sqrt((F - R) / k)
        t(x) = acosh(exp(k x / m)) / beta,       beta = sqrt(k (F - R)) / m
    coast (t >= tau):      m dv/dt = -(R + k v^2)
        v = v_r * tan(theta),  cos(theta) = cos(theta_0) * exp(k x' / m)
        t' = (theta_0 - theta) / gamma,          gamma = sqrt(k R) / m

with k = 0.5 * rho * Cd * A. A car that stops before the line gets the time
cap and counts against the trust index.

Draw order (fork SALT_MONTE_CARLO): 4 draws per trial, trial-major:
    thrust, boost duration, track resistance, timing jitter.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..core.constants import AIR_DENSITY, START_GATE_M, TRACK_DISTANCE_M
from ..core.design import DesignParameters
from ..core.stream import DeterministicStream
from ..core.types import ClampEvent, MonteCarloPoint, RaceTimePrediction

BASE_THRUST_N = 11.0
THRUST_VARIANCE = 0.03
BOOST_DURATION_S = 0.12
BOOST_VARIANCE = 0.03
BASE_RESISTANCE_N = 0.12  # rolling + tether line
RESISTANCE_VARIANCE = 0.05
REACTION_TIME_S = 0.11
TIMING_JITTER_S = 0.010

TIME_FLOOR_S = 0.916
TIME_CAP_S = 5.0
CD_RANGE = (0.05, 1.5)
MASS_RANGE_G = (30.0, 200.0)

SUBSET_TOLERANCE = 0.01


@dataclass
class RacePopulation:
    """Full per-trial arrays (not stored on the result)."""

    time: np.ndarray
    start_speed: np.ndarray
    finish_speed: np.ndarray
    thrust: np.ndarray
    resistance: np.ndarray
    jitter: np.ndarray
    stalled: np.ndarray
    floored: np.ndarray


def clamp_inputs(cd: float, mass_g: float) -> tuple[float, float, list[ClampEvent]]:
    """Pull Cd and mass into the physically sane range."""
    events: list[ClampEvent] = []
    cd_c = float(np.clip(cd, *CD_RANGE))
    if cd_c != cd:
        events.append(ClampEvent(stage="monte_carlo", name="cd", raw=float(cd), clamped=cd_c))
    mass_c = float(np.clip(mass_g, *MASS_RANGE_G))
    if mass_c != mass_g:
        events.append(
            ClampEvent(stage="monte_carlo", name="total_weight", raw=float(mass_g), clamped=mass_c)
        )
    return cd_c, mass_c, events


def _speed_and_time_at(
    x: float,
    m: float,
    k: float,
    net_boost: np.ndarray,
    resistance: np.ndarray,
    tau: np.ndarray,
    x_tau: np.ndarray,
    v_tau: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Speed and elapsed time when each trial reaches distance ``x``.

    Returns:
        (speed, time, stalled) arrays.
    """
    v_t = np.sqrt(net_boost / k)
    beta = np.sqrt(k * net_boost) / m
    in_boost = x <= x_tau

    # Boost phase
    v_boost = v_t * np.sqrt(-np.expm1(-2.0 * k * x / m))
    t_boost = np.arccosh(np.exp(k * x / m)) / beta

    # Coast phase
    v_r = np.sqrt(resistance / k)
    gamma = np.sqrt(k * resistance) / m
    theta_0 = np.arctan(v_tau / v_r)
    cos_theta = np.cos(theta_0) * np.exp(k * np.maximum(x - x_tau, 0.0) / m)
    stalled = (~in_boost) & (cos_theta >= 1.0)
    theta = np.arccos(np.clip(cos_theta, -1.0, 1.0))
    v_coast = v_r * np.tan(theta)
    t_coast = tau + (theta_0 - theta) / gamma

    speed = np.where(in_boost, v_boost, np.where(stalled, 0.0, v_coast))
    time = np.where(in_boost, t_boost, np.where(stalled, np.inf, t_coast))
    return speed, time, stalled


def simulate_population(
    params: DesignParameters,
    cd: float,
    stream: DeterministicStream,
    n_samples: int,
) -> tuple[RacePopulation, float, list[ClampEvent]]:
    """Run every trial.

    Returns:
        (population, clamped_cd, clamp_events)
    """
    if n_samples < 1:
        raise ValueError(f"n_samples must be positive, got {n_samples}")

    cd_c, mass_g, events = clamp_inputs(cd, params.total_weight)
    m = mass_g / 1000.0
    k = 0.5 * AIR_DENSITY * cd_c * params.frontal_area_m2

    u = stream.draw_array(4 * n_samples).reshape(n_samples, 4)
    thrust = BASE_THRUST_N * (1.0 + THRUST_VARIANCE * (2.0 * u[:, 0] - 1.0))
    tau = BOOST_DURATION_S * (1.0 + BOOST_VARIANCE * (2.0 * u[:, 1] - 1.0))
    resistance = BASE_RESISTANCE_N * (1.0 + RESISTANCE_VARIANCE * (2.0 * u[:, 2] - 1.0))
    jitter = TIMING_JITTER_S * u[:, 3]

    net_boost = np.maximum(thrust - resistance, 1e-9)
    v_t = np.sqrt(net_boost / k)
    beta = np.sqrt(k * net_boost) / m
    v_tau = v_t * np.tanh(beta * tau)
    x_tau = (m / k) * np.log(np.cosh(beta * tau))

    args = (m, k, net_boost, resistance, tau, x_tau, v_tau)
    start_speed, _, _ = _speed_and_time_at(START_GATE_M, *args)
    finish_speed, run_time, stalled = _speed_and_time_at(TRACK_DISTANCE_M, *args)

    raw = run_time + REACTION_TIME_S + jitter
    floored = raw < TIME_FLOOR_S
    total = np.clip(raw, TIME_FLOOR_S, TIME_CAP_S)

    population = RacePopulation(
        time=total,
        start_speed=start_speed,
        finish_speed=finish_speed,
        thrust=thrust,
        resistance=resistance,
        jitter=jitter,
        stalled=stalled | (raw > TIME_CAP_S),
        floored=floored,
    )
    return population, cd_c, events


def stratified_subset(values: np.ndarray, k: int) -> np.ndarray:
    """Indices of a midpoint-quantile stride through ``values`` sorted ascending.

    The subset mean tracks the population mean without re-sampling.
    """
    n = len(values)
    k = max(1, min(k, n))
    order = np.argsort(values, kind="stable")
    picks = ((np.arange(k) + 0.5) * n / k).astype(np.int64)
    return order[np.minimum(picks, n - 1)]


def _quartile_delta(driver: np.ndarray, time: np.ndarray) -> float:
    """Mean time of the top driver quartile minus the bottom quartile (ms)."""
    q1, q3 = np.quantile(driver, [0.25, 0.75])
    low = time[driver <= q1]
    high = time[driver >= q3]
    if low.size == 0 or high.size == 0:
        return 0.0
    return float((high.mean() - low.mean()) * 1000.0)


def summarize(
    population: RacePopulation, cd: float, visualization_points: int
) -> RaceTimePrediction:
    """Aggregate a population into a RaceTimePrediction."""
    time = population.time
    n = len(time)
    avg_time = float(time.mean())

    subset = stratified_subset(time, visualization_points)
    sampled = tuple(
        MonteCarloPoint(time=float(time[i]), start_speed=float(population.start_speed[i]))
        for i in subset
    )

    n_clamped = int(np.count_nonzero(population.stalled | population.floored))
    finite = bool(np.all(np.isfinite(time)) and np.all(np.isfinite(population.finish_speed)))

    return RaceTimePrediction(
        sample_count=n,
        best_race_time=float(time.min()),
        worst_race_time=float(time.max()),
        average_race_time=avg_time,
        std_dev_time=float(time.std()),
        average_drag=float(cd),
        best_finish_line_speed=float(population.finish_speed.max()),
        worst_finish_line_speed=float(population.finish_speed.min()),
        average_finish_line_speed=float(population.finish_speed.mean()),
        best_start_speed=float(population.start_speed.max()),
        worst_start_speed=float(population.start_speed.min()),
        average_start_speed=float(population.start_speed.mean()),
        best_average_speed=TRACK_DISTANCE_M / float(time.min()),
        worst_average_speed=TRACK_DISTANCE_M / float(time.max()),
        average_speed=TRACK_DISTANCE_M / avg_time,
        sampled_points=sampled,
        trust_index=round(100.0 * (1.0 - n_clamped / n), 2),
        is_physical=finite and not bool(np.any(population.stalled)),
        launch_variance=float(population.jitter.std() * 1000.0),
        track_condition_sensitivity=_quartile_delta(population.resistance, time),
        canister_performance_delta=-_quartile_delta(population.thrust, time),
    )


def simulate_race(
    params: DesignParameters,
    cd: float,
    stream: DeterministicStream,
    n_samples: int,
    visualization_points: int = 250,
) -> tuple[RaceTimePrediction, list[ClampEvent]]:
    """Run the Monte Carlo population and summarize it.

    Args:
        params: Design parameters (mass and frontal area are used).
        cd: Drag coefficient; clamped into CD_RANGE before use.
        stream: Child stream reserved for this stage.
        n_samples: Number of trials.
        visualization_points: Size bound of the sampled subset.

    Returns:
        (prediction, clamp_events)
    """
    population, cd_c, events = simulate_population(params, cd, stream, n_samples)
    return summarize(population, cd_c, visualization_points), events

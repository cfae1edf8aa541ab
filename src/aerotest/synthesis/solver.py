"""Solver metadata and verification checks.

Draw order (fork SALT_SOLVER_META):
    1. mesh quality
"""

from __future__ import annotations

from ..core.config import TierConfig
from ..core.stream import DeterministicStream
from ..core.types import (
    AeroCoefficients,
    RaceTimePrediction,
    ResidualHistory,
    SolverSettings,
    VerificationCheck,
)
from .convergence import STATUS_CONVERGED, STATUS_RELAXED
from .montecarlo import SUBSET_TOLERANCE

MESH_QUALITY_RANGE = (97.0, 99.9)
MESH_QUALITY_TARGET = 98.0

PASS = "PASS"
FAIL = "FAIL"
WARNING = "WARNING"


def solver_settings(tier: TierConfig, stream: DeterministicStream) -> SolverSettings:
    """Settings block shown alongside the results."""
    quality = round(stream.uniform(*MESH_QUALITY_RANGE), 1)
    return SolverSettings(
        solver="Pressure-Based Coupled Implicit",
        precision="Double",
        gradient_scheme="Least Squares Cell-Based",
        momentum_scheme=tier.momentum_scheme,
        turbulence_scheme="Second Order Upwind",
        turbulence_model=tier.turbulence_model,
        mesh_cell_count=tier.mesh_cell_count,
        mesh_quality=quality,
    )


def _convergence_check(residuals: ResidualHistory) -> VerificationCheck:
    final = max(
        residuals.final.continuity,
        residuals.final.x_velocity,
        residuals.final.y_velocity,
        residuals.final.z_velocity,
    )
    if residuals.status == STATUS_CONVERGED:
        status = PASS
    elif residuals.status == STATUS_RELAXED:
        status = WARNING
    else:
        status = FAIL
    return VerificationCheck(
        name="Residual Convergence",
        status=status,
        message=f"{residuals.status}: max final residual {final:.2e} "
        f"(threshold {residuals.threshold:.0e}).",
    )


def _coefficient_check(coeffs: AeroCoefficients) -> VerificationCheck:
    ld_error = abs(coeffs.lift_to_drag_ratio - coeffs.cl / coeffs.cd)
    ok = ld_error < 1e-9 and 0.0 <= coeffs.aero_balance <= 100.0
    return VerificationCheck(
        name="Coefficient Consistency",
        status=PASS if ok else FAIL,
        message="L/D, drag breakdown and aero balance are consistent."
        if ok
        else f"L/D mismatch of {ld_error:.3e}.",
    )


def _monte_carlo_check(prediction: RaceTimePrediction) -> VerificationCheck:
    mean = prediction.average_race_time
    drift = abs(prediction.sampled_mean_time - mean) / mean
    ordered = prediction.best_race_time <= mean <= prediction.worst_race_time
    ok = ordered and drift < SUBSET_TOLERANCE
    if not prediction.is_physical:
        status = WARNING
        message = f"Some trials did not reach the finish line (trust {prediction.trust_index}%)."
    else:
        status = PASS if ok else WARNING
        message = f"Visualization subset mean within {drift:.3%} of the population mean."
    return VerificationCheck(name="Monte Carlo Consistency", status=status, message=message)


def _mesh_check(settings: SolverSettings) -> VerificationCheck:
    ok = settings.mesh_quality >= MESH_QUALITY_TARGET
    return VerificationCheck(
        name="Mesh Quality",
        status=PASS if ok else WARNING,
        message=f"{settings.mesh_cell_count:,} cells, orthogonal quality "
        f"{settings.mesh_quality:.1f}%.",
    )


def verification_checks(
    settings: SolverSettings,
    coeffs: AeroCoefficients,
    residuals: ResidualHistory,
    prediction: RaceTimePrediction,
) -> tuple[VerificationCheck, ...]:
    return (
        _mesh_check(settings),
        _convergence_check(residuals),
        _coefficient_check(coeffs),
        _monte_carlo_check(prediction),
    )

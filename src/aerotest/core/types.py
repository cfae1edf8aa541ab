"""Core types for simulation context and results.

This module defines the canonical records that form the interface between
the synthesis stages and their consumers (charts, 3-D viewers, checklists,
external stores). Everything except ``SimulationContext`` is produced once
per run and never mutated.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from .constants import CAR_CLASSES, THRUST_MODELS, TIERS
from .design import DesignParameters

if TYPE_CHECKING:
    from ..synthesis.flowfield import FlowField


@dataclass(frozen=True)
class SimulationContext:
    """Context for one simulation run.

    Attributes:
        tier: Sample-count selector, "standard" or "premium".
        car_class: Display label only.
        thrust_model: Display label only.
    """

    tier: str = "standard"
    car_class: str = "Professional"
    thrust_model: str = "standard"

    def __post_init__(self) -> None:
        if self.tier not in TIERS:
            raise ValueError(f"tier must be one of {TIERS}, got {self.tier!r}")
        if self.car_class not in CAR_CLASSES:
            raise ValueError(f"car_class must be one of {CAR_CLASSES}, got {self.car_class!r}")
        if self.thrust_model not in THRUST_MODELS:
            raise ValueError(
                f"thrust_model must be one of {THRUST_MODELS}, got {self.thrust_model!r}"
            )

    @property
    def is_premium(self) -> bool:
        return self.tier == "premium"


@dataclass(frozen=True)
class GeometryFeatures:
    """Scalar features extracted from an uploaded geometry file.

    ``keyword_counts`` maps each keyword of the extraction table to its
    (capped) occurrence count. ``fallback`` is True when no coordinates were
    found and the nominal envelope was substituted.
    """

    min_x: float
    max_x: float
    min_y: float
    max_y: float
    min_z: float
    max_z: float
    points: int
    faces: int
    shells: int
    curves: int
    byte_length: int
    keyword_counts: tuple[tuple[str, int], ...] = ()
    coordinate_count: int = 0
    fallback: bool = False

    @property
    def extents(self) -> tuple[float, float, float]:
        return (self.max_x - self.min_x, self.max_y - self.min_y, self.max_z - self.min_z)


@dataclass(frozen=True)
class ClampEvent:
    """A synthesized value pulled back into its admissible range."""

    stage: str
    name: str
    raw: float
    clamped: float


@dataclass(frozen=True)
class DragBreakdown:
    pressure: int
    skin_friction: int


@dataclass(frozen=True)
class AeroCoefficients:
    """Drag/lift coefficients and derived quantities.

    Invariants: ``lift_to_drag_ratio == cl / cd`` and the drag breakdown sums
    to exactly 100.
    """

    cd: float
    cl: float
    lift_to_drag_ratio: float
    drag_breakdown: DragBreakdown
    aero_balance: float  # % front

    def __post_init__(self) -> None:
        total = self.drag_breakdown.pressure + self.drag_breakdown.skin_friction
        if total != 100:
            raise ValueError(f"drag breakdown must sum to 100, got {total}")


@dataclass(frozen=True)
class PerformancePoint:
    speed: float  # m/s
    ld_ratio: float
    drag_force: float  # N
    lift_force: float  # N


@dataclass(frozen=True)
class ResidualSample:
    iteration: int
    continuity: float
    x_velocity: float
    y_velocity: float
    z_velocity: float


RESIDUAL_FIELDS = ("continuity", "x_velocity", "y_velocity", "z_velocity")


@dataclass(frozen=True)
class ResidualHistory:
    """Solver convergence history.

    Attributes:
        samples: Ordered samples with strictly increasing iteration.
        status: "Converged", "Converged (Relaxed)" or "Diverged".
        threshold: Threshold the final residuals were judged against.
    """

    samples: tuple[ResidualSample, ...]
    status: str
    threshold: float

    @property
    def final(self) -> ResidualSample:
        return self.samples[-1]

    def field_array(self, name: str) -> np.ndarray:
        """Return one residual field as an array."""
        if name not in RESIDUAL_FIELDS:
            raise KeyError(f"Unknown residual field: {name}")
        return np.array([getattr(s, name) for s in self.samples], dtype=np.float64)

    def iterations(self) -> np.ndarray:
        return np.array([s.iteration for s in self.samples], dtype=np.int64)


@dataclass(frozen=True)
class MonteCarloPoint:
    time: float
    start_speed: float


@dataclass(frozen=True)
class RaceTimePrediction:
    """Aggregate statistics of the Monte Carlo race population.

    Times in seconds, speeds in m/s, sensitivities in ms.
    """

    sample_count: int
    best_race_time: float
    worst_race_time: float
    average_race_time: float
    std_dev_time: float
    average_drag: float
    best_finish_line_speed: float
    worst_finish_line_speed: float
    average_finish_line_speed: float
    best_start_speed: float
    worst_start_speed: float
    average_start_speed: float
    best_average_speed: float
    worst_average_speed: float
    average_speed: float
    sampled_points: tuple[MonteCarloPoint, ...]
    trust_index: float
    is_physical: bool
    launch_variance: float
    track_condition_sensitivity: float
    canister_performance_delta: float

    @property
    def sampled_mean_time(self) -> float:
        if not self.sampled_points:
            return float("nan")
        return float(np.mean([p.time for p in self.sampled_points]))


@dataclass(frozen=True)
class OptimizationEpoch:
    epoch: int
    result_cd: float
    improvement_pct: float
    mutation: str


@dataclass(frozen=True)
class NeuralCorrection:
    """Terminal record of the optimization narrative."""

    version: str
    confidence: float
    correction_applied: bool
    original_cd: float
    optimized_cd: float
    formula: str
    reason: str


@dataclass(frozen=True)
class SolverSettings:
    solver: str
    precision: str
    gradient_scheme: str
    momentum_scheme: str
    turbulence_scheme: str
    turbulence_model: str
    mesh_cell_count: int
    mesh_quality: float


@dataclass(frozen=True)
class VerificationCheck:
    name: str
    status: str  # PASS | FAIL | WARNING
    message: str


@dataclass(frozen=True)
class ScrutineeringItem:
    rule_id: str
    description: str
    status: str  # PASS | FAIL
    value: str
    notes: str


@dataclass(frozen=True)
class AeroResult:
    """Top-level result of one simulation run.

    Superseded by later runs, never edited. ``diag`` carries timings, clamp
    events and versions; it is excluded from :meth:`content_hash`.
    """

    id: str
    file_name: str
    timestamp: str
    tier: str
    car_class: str
    thrust_model: str
    seed: int
    geometry: GeometryFeatures
    parameters: DesignParameters
    coefficients: AeroCoefficients
    performance_curve: tuple[PerformancePoint, ...]
    residuals: ResidualHistory
    flow_field: FlowField
    race_time_prediction: RaceTimePrediction
    epochs: tuple[OptimizationEpoch, ...]
    correction: NeuralCorrection
    solver_settings: SolverSettings
    verification_checks: tuple[VerificationCheck, ...]
    scrutineering_report: tuple[ScrutineeringItem, ...]
    suggestions: str
    flow_analysis: str
    audit_log: str | None = None
    diag: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def cd(self) -> float:
        return self.coefficients.cd

    @property
    def cl(self) -> float:
        return self.coefficients.cl

    @property
    def convergence_status(self) -> str:
        return self.residuals.status

    def to_dict(self, include_flow_field: bool = False) -> dict[str, Any]:
        """Serialize to plain JSON-compatible types.

        The flow field is large; it is only included on request.
        """
        out: dict[str, Any] = {
            "id": self.id,
            "file_name": self.file_name,
            "timestamp": self.timestamp,
            "tier": self.tier,
            "car_class": self.car_class,
            "thrust_model": self.thrust_model,
            "audit_log": self.audit_log,
        }
        out.update(self._content_dict())
        out["flow_field"] = {"point_count": self.flow_field.point_count}
        if include_flow_field:
            out["flow_field"]["points"] = self.flow_field.points.tolist()
        out["diag"] = self.diag
        return out

    def _content_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "geometry": asdict(self.geometry),
            "parameters": self.parameters.to_dict(),
            "coefficients": asdict(self.coefficients),
            "performance_curve": [asdict(p) for p in self.performance_curve],
            "residuals": {
                "status": self.residuals.status,
                "threshold": self.residuals.threshold,
                "final": asdict(self.residuals.final),
                "history": [asdict(s) for s in self.residuals.samples],
            },
            "race_time_prediction": asdict(self.race_time_prediction),
            "epochs": [asdict(e) for e in self.epochs],
            "correction": asdict(self.correction),
            "solver_settings": asdict(self.solver_settings),
            "verification_checks": [asdict(c) for c in self.verification_checks],
            "scrutineering_report": [asdict(s) for s in self.scrutineering_report],
            "suggestions": self.suggestions,
            "flow_analysis": self.flow_analysis,
        }

    def content_hash(self) -> str:
        """Stable hash of all deterministic content.

        Excludes id, file name, timestamp and diagnostics. The flow field is
        represented by its own digest.
        """
        data = self._content_dict()
        data["tier"] = self.tier
        data["flow_field"] = self.flow_field.digest()
        s = json.dumps(data, sort_keys=True)
        return hashlib.sha256(s.encode("utf-8")).hexdigest()[:16]

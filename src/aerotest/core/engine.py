"""Simulation run: THE canonical entry point.

Interface:
    run_simulation(data, file_name, ctx, config) -> AeroResult

Flow:
    1. extract_features(data) -> GeometryFeatures
    2. build_seed(features) -> root DeterministicStream
    3. synthesize_parameters(root)            11 root draws
    4. synthesize_coefficients(params, root)  4 root draws
    5. forked consumers: convergence, flow field, Monte Carlo, narrative,
       solver metadata (each with its own salt)
    6. scrutineering, suggestions, verification checks
    7. Assemble AeroResult with diagnostics

Degraded input and clamped values are part of normal operation. Anything
else raised inside a run is wrapped in EngineFault.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from ..analysis.scrutineering import scrutinize
from ..analysis.suggestions import flow_analysis_text, generate_suggestions
from ..geometry.features import extract_features
from ..geometry.seed import build_seed, features_digest
from ..synthesis.aero import performance_curve, synthesize_coefficients
from ..synthesis.convergence import generate_history
from ..synthesis.flowfield import FlowField
from ..synthesis.montecarlo import simulate_race
from ..synthesis.narrative import generate_narrative
from ..synthesis.parameters import synthesize_parameters
from ..synthesis.solver import solver_settings, verification_checks
from .config import EngineConfig, default_config
from .constants import (
    ENGINE_VERSION,
    MODEL_VERSION_RACE,
    MODEL_VERSION_SYNTHESIS,
    SALT_CONVERGENCE,
    SALT_FLOW_FIELD,
    SALT_MONTE_CARLO,
    SALT_NARRATIVE,
    SALT_SOLVER_META,
)
from .logging import get_logger
from .stream import DeterministicStream
from .types import AeroResult, SimulationContext

logger = get_logger(__name__)

ProgressCallback = Callable[[int, str, str], None]

# (percent, stage label) reported after each stage completes
STAGES: dict[str, tuple[int, str]] = {
    "geometry": (5, "Analyzing Geometry"),
    "seed": (10, "Seeding Solver"),
    "parameters": (20, "Synthesizing Design Parameters"),
    "coefficients": (30, "Computing Aerodynamic Coefficients"),
    "convergence": (45, "Solving Flow (Residuals)"),
    "flow_field": (55, "Preparing Flow Field"),
    "monte_carlo": (75, "Running Monte Carlo Race Simulation"),
    "narrative": (85, "AI Optimization Pass"),
    "analysis": (95, "Scrutineering"),
    "assembled": (100, "Finalizing Results"),
}


class EngineFault(RuntimeError):
    """Unexpected failure during a run. The run produces no result."""


def _notify(progress: ProgressCallback | None, key: str, message: str) -> None:
    if progress is None:
        return
    pct, label = STAGES[key]
    progress(pct, label, message)


def _synthesize(
    data: bytes | str,
    file_name: str,
    ctx: SimulationContext,
    config: EngineConfig,
    progress: ProgressCallback | None,
    result_id: str,
    timestamp: str,
) -> AeroResult:
    tier = config.tier(ctx.tier)
    timings: dict[str, float] = {}
    t0 = time.perf_counter()

    def lap(key: str) -> None:
        nonlocal t0
        now = time.perf_counter()
        timings[f"{key}_ms"] = (now - t0) * 1000
        logger.debug(f"{key} completed", elapsed_ms=timings[f"{key}_ms"], tier=ctx.tier)
        t0 = now

    features = extract_features(
        data,
        max_coordinate_matches=config.max_coordinate_matches,
        max_keyword_matches=config.max_keyword_matches,
    )
    lap("geometry")
    _notify(progress, "geometry", f"{features.coordinate_count} coordinates scanned")

    seed = build_seed(features)
    root = DeterministicStream(seed)
    lap("seed")
    _notify(progress, "seed", f"Seed {seed}")

    car_name = Path(file_name).stem
    params, clamps = synthesize_parameters(root, car_name=car_name)
    lap("parameters")
    _notify(progress, "parameters", f"{len(clamps)} values clamped")

    coeffs = synthesize_coefficients(params, root)
    curve = performance_curve(params, coeffs)
    lap("coefficients")
    _notify(progress, "coefficients", f"Cd {coeffs.cd:.4f}, Cl {coeffs.cl:.4f}")

    residuals = generate_history(
        root.fork(SALT_CONVERGENCE),
        tier.convergence_iterations,
        threshold=config.convergence_threshold,
        relaxed_threshold=config.relaxed_threshold,
    )
    lap("convergence")
    _notify(progress, "convergence", residuals.status)

    flow_field = FlowField(
        params,
        root.fork(SALT_FLOW_FIELD),
        tier.flow_field_points,
        free_stream_speed=config.free_stream_speed,
    )
    lap("flow_field")
    _notify(progress, "flow_field", f"{flow_field.point_count} points")

    prediction, race_clamps = simulate_race(
        params,
        coeffs.cd,
        root.fork(SALT_MONTE_CARLO),
        tier.monte_carlo_samples,
        visualization_points=tier.visualization_points,
    )
    clamps.extend(race_clamps)
    lap("monte_carlo")
    _notify(
        progress,
        "monte_carlo",
        f"{prediction.sample_count} trials, mean {prediction.average_race_time:.3f}s",
    )

    epochs, correction = generate_narrative(
        coeffs.cd, root.fork(SALT_NARRATIVE), tier.narrative_epochs
    )
    lap("narrative")
    _notify(
        progress,
        "narrative",
        f"Cd {correction.original_cd:.4f} -> {correction.optimized_cd:.4f}",
    )

    settings = solver_settings(tier, root.fork(SALT_SOLVER_META))
    checks = verification_checks(settings, coeffs, residuals, prediction)
    report = scrutinize(params)
    suggestions = generate_suggestions(coeffs)
    analysis = flow_analysis_text(coeffs, residuals.status)
    lap("analysis")
    passed = sum(1 for item in report if item.status == "PASS")
    _notify(progress, "analysis", f"{passed}/{len(report)} rules passed")

    for event in clamps:
        logger.debug(
            "Value clamped",
            stage=event.stage,
            name=event.name,
            raw=event.raw,
            clamped=event.clamped,
        )

    diag = {
        "seed": seed,
        "features_digest": features_digest(features),
        "fallback_geometry": features.fallback,
        "root_draws": root.draws,
        "clamps": [asdict(e) for e in clamps],
        "timings": timings,
        "versions": {
            "engine": ENGINE_VERSION,
            "synthesis": MODEL_VERSION_SYNTHESIS,
            "race": MODEL_VERSION_RACE,
            "correction": correction.version,
        },
    }

    result = AeroResult(
        id=result_id,
        file_name=file_name,
        timestamp=timestamp,
        tier=ctx.tier,
        car_class=ctx.car_class,
        thrust_model=ctx.thrust_model,
        seed=seed,
        geometry=features,
        parameters=params,
        coefficients=coeffs,
        performance_curve=curve,
        residuals=residuals,
        flow_field=flow_field,
        race_time_prediction=prediction,
        epochs=epochs,
        correction=correction,
        solver_settings=settings,
        verification_checks=checks,
        scrutineering_report=report,
        suggestions=suggestions,
        flow_analysis=analysis,
        diag=diag,
    )
    _notify(progress, "assembled", f"Result {result_id}")
    return result


def run_simulation(
    data: bytes | str,
    file_name: str = "geometry.step",
    ctx: SimulationContext | None = None,
    config: EngineConfig | None = None,
    progress: ProgressCallback | None = None,
    result_id: str | None = None,
    timestamp: str | None = None,
) -> AeroResult:
    """Run one simulation over uploaded geometry content.

    Args:
        data: Raw file bytes (or decoded text).
        file_name: Upload name; its stem becomes the car name.
        ctx: Tier and display labels. Defaults to the standard tier.
        config: Engine configuration. Defaults to :func:`default_config`.
        progress: Called as ``progress(percent, stage, message)`` after each stage.
        result_id: Identifier for the result; a random one is generated if omitted.
        timestamp: ISO timestamp; defaults to the current UTC time.

    Returns:
        AeroResult. Every field except id, timestamp and ``diag`` timings is a
        pure function of (data, tier, config).

    Raises:
        ValueError: Invalid tier for the given config.
        EngineFault: Any unexpected failure during synthesis.
    """
    ctx = ctx or SimulationContext()
    config = config or default_config()
    config.tier(ctx.tier)
    result_id = result_id or uuid.uuid4().hex[:12]
    timestamp = timestamp or datetime.now(timezone.utc).isoformat()

    start = time.perf_counter()
    try:
        result = _synthesize(data, file_name, ctx, config, progress, result_id, timestamp)
    except Exception as exc:
        logger.error(
            "Simulation failed",
            file_name=file_name,
            tier=ctx.tier,
            error=f"{type(exc).__name__}: {exc}",
        )
        raise EngineFault(f"Simulation of {file_name!r} failed: {exc}") from exc

    elapsed = time.perf_counter() - start
    result.diag["timings"]["total_ms"] = elapsed * 1000
    logger.info(
        "Simulation completed",
        result_id=result.id,
        file_name=file_name,
        tier=ctx.tier,
        seed=result.seed,
        cd=result.cd,
        status=result.convergence_status,
        elapsed_ms=elapsed * 1000,
    )
    return result


def simulate_file(
    path: str | Path,
    ctx: SimulationContext | None = None,
    config: EngineConfig | None = None,
    progress: ProgressCallback | None = None,
) -> AeroResult:
    """Read a geometry file and run it. I/O errors propagate unchanged."""
    path = Path(path)
    data = path.read_bytes()
    return run_simulation(data, file_name=path.name, ctx=ctx, config=config, progress=progress)

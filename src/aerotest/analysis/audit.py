"""Dual-run audit.

A standard-tier result is compared against a premium baseline of the same
geometry. Coefficients come from the root stream only, so any Cd/Cl drift
means the tier leaked into a stage it must not touch. Race time is allowed a
small drift from the smaller Monte Carlo population.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.types import AeroResult

CD_DRIFT_LIMIT = 0.03
CL_DRIFT_LIMIT = 0.05
CL_NEGLIGIBLE = 1e-4
RACE_TIME_DRIFT_LIMIT = 0.02


@dataclass(frozen=True)
class AuditReport:
    """Outcome of one audit.

    Attributes:
        passed: True when every drift is within its limit.
        cd_drift: Relative Cd difference.
        cl_drift: Relative Cl difference (0 when Cl is negligible).
        race_time_drift: Relative difference in average race time.
        notes: One line per check.
    """

    passed: bool
    cd_drift: float
    cl_drift: float
    race_time_drift: float
    notes: tuple[str, ...]

    def to_log(self) -> str:
        head = "AUDIT PASSED" if self.passed else "AUDIT FAILED"
        return "\n".join((head, *self.notes))


def _relative(a: float, b: float) -> float:
    if b == 0.0:
        return 0.0 if a == 0.0 else float("inf")
    return abs(a - b) / abs(b)


def audit_against_baseline(candidate: AeroResult, baseline: AeroResult) -> AuditReport:
    """Compare ``candidate`` with a higher-fidelity ``baseline`` run."""
    notes: list[str] = []
    passed = True

    cd_drift = _relative(candidate.cd, baseline.cd)
    ok = cd_drift <= CD_DRIFT_LIMIT
    passed &= ok
    notes.append(
        f"Cd {candidate.cd:.4f} vs baseline {baseline.cd:.4f}: drift {cd_drift:.2%} "
        f"({'ok' if ok else 'exceeds ' + format(CD_DRIFT_LIMIT, '.0%')})"
    )

    cl_drift = 0.0
    if abs(baseline.cl) > CL_NEGLIGIBLE:
        cl_drift = _relative(candidate.cl, baseline.cl)
        ok = cl_drift <= CL_DRIFT_LIMIT
        passed &= ok
        notes.append(
            f"Cl {candidate.cl:.4f} vs baseline {baseline.cl:.4f}: drift {cl_drift:.2%} "
            f"({'ok' if ok else 'exceeds ' + format(CL_DRIFT_LIMIT, '.0%')})"
        )
    else:
        notes.append("Cl negligible; skipped")

    t_candidate = candidate.race_time_prediction.average_race_time
    t_baseline = baseline.race_time_prediction.average_race_time
    race_time_drift = _relative(t_candidate, t_baseline)
    ok = race_time_drift <= RACE_TIME_DRIFT_LIMIT
    passed &= ok
    notes.append(
        f"Average race time {t_candidate:.4f}s vs baseline {t_baseline:.4f}s: "
        f"drift {race_time_drift:.2%} "
        f"({'ok' if ok else 'exceeds ' + format(RACE_TIME_DRIFT_LIMIT, '.0%')})"
    )

    return AuditReport(
        passed=bool(passed),
        cd_drift=cd_drift,
        cl_drift=cl_drift,
        race_time_drift=race_time_drift,
        notes=tuple(notes),
    )

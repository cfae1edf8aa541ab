"""Aerodynamic coefficient synthesis.

Cd and Cl are smooth functions of the design parameters, each perturbed by
one root-stream draw within a +/-8% band.

Draw order (root stream, immediately after the parameter stage):
    1. Cd perturbation
    2. Cl perturbation
    3. pressure/skin-friction split
    4. aero balance jitter
"""

from __future__ import annotations

import numpy as np

from ..core.constants import AIR_DENSITY
from ..core.design import DesignParameters
from ..core.stream import DeterministicStream
from ..core.types import AeroCoefficients, DragBreakdown, PerformancePoint

PERTURBATION_BAND = 0.08
CD_BODY_FLOOR = 0.130
PRESSURE_SHARE_RANGE = (35, 65)
BALANCE_WINDOW = (40.0, 60.0)
BALANCE_JITTER = 6.0
COEFF_DECIMALS = 4

PERFORMANCE_SPEEDS = np.arange(5.0, 30.0 + 1e-9, 2.5)


def body_drag(params: DesignParameters) -> float:
    """Slenderness-driven body drag, floored so simple shapes stay plausible."""
    shape_factor = params.total_length / params.total_width
    return max(CD_BODY_FLOOR, 0.24 - shape_factor * 0.015)


def wing_drag(params: DesignParameters) -> float:
    thickness_ratio = params.front_wing_thickness / params.front_wing_chord
    front = 0.02 * thickness_ratio * (params.front_wing_span / params.total_width)
    rear = 0.01 * (params.rear_wing_span / 85.0) * (params.rear_wing_height / 65.0)
    return front + rear


def front_downforce(params: DesignParameters) -> float:
    aspect_ratio = params.front_wing_span / params.front_wing_chord
    return 0.03 * aspect_ratio / (aspect_ratio + 2.0)


def rear_downforce(params: DesignParameters) -> float:
    return 0.02 * (params.rear_wing_span / 85.0) * (0.5 + 0.5 * params.rear_wing_height / 65.0)


def synthesize_coefficients(
    params: DesignParameters, stream: DeterministicStream
) -> AeroCoefficients:
    """Derive Cd, Cl, L/D, drag breakdown and aero balance.

    Consumes exactly four draws from ``stream``.
    """
    u_cd = stream.draw()
    u_cl = stream.draw()
    u_split = stream.draw()
    u_balance = stream.draw()

    cd_base = body_drag(params) + wing_drag(params)
    cd = round(cd_base * (1.0 + PERTURBATION_BAND * (2.0 * u_cd - 1.0)), COEFF_DECIMALS)

    cl_front = front_downforce(params)
    cl_rear = rear_downforce(params)
    cl = round(
        (cl_front + cl_rear) * (1.0 + PERTURBATION_BAND * (2.0 * u_cl - 1.0)), COEFF_DECIMALS
    )

    lo, hi = PRESSURE_SHARE_RANGE
    pressure = int(round(lo + (hi - lo) * u_split))
    breakdown = DragBreakdown(pressure=pressure, skin_friction=100 - pressure)

    front_share = 100.0 * cl_front / (cl_front + cl_rear)
    balance = 50.0 + 0.4 * (front_share - 50.0) + BALANCE_JITTER * (2.0 * u_balance - 1.0)
    balance = round(float(np.clip(balance, *BALANCE_WINDOW)), 1)

    return AeroCoefficients(
        cd=cd,
        cl=cl,
        lift_to_drag_ratio=cl / cd,
        drag_breakdown=breakdown,
        aero_balance=balance,
    )


def performance_curve(
    params: DesignParameters,
    coeffs: AeroCoefficients,
    speeds: np.ndarray = PERFORMANCE_SPEEDS,
) -> tuple[PerformancePoint, ...]:
    """Drag and lift force over a speed sweep. No stream draws."""
    area = params.frontal_area_m2
    q = 0.5 * AIR_DENSITY * np.asarray(speeds, dtype=np.float64) ** 2
    drag = q * coeffs.cd * area
    lift = q * coeffs.cl * area
    return tuple(
        PerformancePoint(
            speed=float(v),
            ld_ratio=coeffs.lift_to_drag_ratio,
            drag_force=float(d),
            lift_force=float(l),
        )
        for v, d, l in zip(speeds, drag, lift)
    )

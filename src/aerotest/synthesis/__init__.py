"""Synthesis stages. Each is a pure function of its inputs and stream."""

from .aero import performance_curve, synthesize_coefficients
from .convergence import generate_history
from .flowfield import FlowField
from .montecarlo import simulate_race
from .narrative import generate_narrative
from .parameters import synthesize_parameters
from .solver import solver_settings, verification_checks

__all__ = [
    "FlowField",
    "generate_history",
    "generate_narrative",
    "performance_curve",
    "simulate_race",
    "solver_settings",
    "synthesize_coefficients",
    "synthesize_parameters",
    "verification_checks",
]

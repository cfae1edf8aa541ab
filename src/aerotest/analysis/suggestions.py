"""Markdown improvement suggestions derived from the coefficients."""

from __future__ import annotations

from ..core.types import AeroCoefficients

LD_LOW = 3.5
LD_HIGH = 5.0
BALANCE_REAR_LIMIT = 45.0
BALANCE_FRONT_LIMIT = 55.0
PRESSURE_DRAG_HIGH = 75


def generate_suggestions(coeffs: AeroCoefficients) -> str:
    """Return a markdown list of suggestions for the given coefficients."""
    items: list[str] = []

    ld = coeffs.lift_to_drag_ratio
    if ld < LD_LOW:
        items.append(
            f"**Low Aerodynamic Efficiency (L/D: {ld:.2f}):** The car generates a lot of drag "
            "for the downforce it produces. Simplify the wing profiles and smooth the "
            "transitions between body panels."
        )
    elif ld > LD_HIGH:
        items.append(
            f"**Excellent Aerodynamic Efficiency (L/D: {ld:.2f}):** The design is very "
            "efficient. Further gains will come from cutting weight or refining the surface "
            "finish."
        )

    balance = coeffs.aero_balance
    if balance < BALANCE_REAR_LIMIT:
        items.append(
            f"**Rear-Biased Aero Balance ({balance:.1f}% front):** Too much downforce sits at "
            "the rear, which can cause understeer. Add front wing area or reduce the rear "
            "wing angle."
        )
    elif balance > BALANCE_FRONT_LIMIT:
        items.append(
            f"**Front-Biased Aero Balance ({balance:.1f}% front):** Too much downforce sits at "
            "the front, which can make the car unstable. Increase the rear wing size or "
            "angle."
        )

    pressure = coeffs.drag_breakdown.pressure
    if pressure > PRESSURE_DRAG_HIGH:
        items.append(
            f"**High Pressure Drag ({pressure}%):** Most of the drag comes from the car's "
            "shape. Blunt surfaces and sharp edges are the usual cause; round them off."
        )

    if not items:
        return (
            "The design shows balanced aerodynamic characteristics. "
            "No critical issues detected."
        )
    return "\n".join(f"* {item}" for item in items)


def flow_analysis_text(coeffs: AeroCoefficients, convergence_status: str) -> str:
    """Short plain-text summary of the flow features."""
    pressure = coeffs.drag_breakdown.pressure
    if pressure >= 55:
        dominant = "pressure drag dominates, pointing at separation behind blunt surfaces"
    else:
        dominant = "skin friction dominates, so the flow stays attached over most of the body"
    return (
        f"Solver status: {convergence_status}. Cd {coeffs.cd:.4f}, Cl {coeffs.cl:.4f}, "
        f"aero balance {coeffs.aero_balance:.1f}% front. Drag split {pressure}% pressure / "
        f"{coeffs.drag_breakdown.skin_friction}% skin friction; {dominant}."
    )

"""Design parameter record and its flat encoding.

Layout (ENCODING_VERSION = "1.0"), one float per rule in table order:
    x[0]  total_length          x[6]  rear_wing_height
    x[1]  total_width           x[7]  rear_wing_span
    x[2]  total_weight          x[8]  halo_visibility_score
    x[3]  front_wing_span       x[9]  no_go_zone_clearance
    x[4]  front_wing_chord      x[10] visibility_score
    x[5]  front_wing_thickness
"""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np

from .constants import FRONTAL_HEIGHT_MM
from .rules import DESIGN_RULES

ENCODING_VERSION = "1.0"

PARAMETER_FIELDS: tuple[str, ...] = tuple(rule.field for rule in DESIGN_RULES)
N_PARAMS = len(PARAMETER_FIELDS)


@dataclass(frozen=True)
class DesignParameters:
    """Synthesized physical description of the vehicle.

    Attributes:
        car_name: Display name (upload filename without extension).
        total_length: Overall length (mm).
        total_width: Width at the axles (mm).
        total_weight: Mass (g).
        front_wing_span: Front wing span (mm).
        front_wing_chord: Front wing chord (mm).
        front_wing_thickness: Front wing thickness (mm).
        rear_wing_height: Rear wing height above the track (mm).
        rear_wing_span: Rear wing span (mm).
        halo_visibility_score: Halo plan visibility (%).
        no_go_zone_clearance: No-go-zone clearance (mm).
        visibility_score: Side/plan visibility (%).
    """

    car_name: str
    total_length: float
    total_width: float
    total_weight: float
    front_wing_span: float
    front_wing_chord: float
    front_wing_thickness: float
    rear_wing_height: float
    rear_wing_span: float
    halo_visibility_score: float
    no_go_zone_clearance: float
    visibility_score: float

    def to_array(self) -> np.ndarray:
        """Convert to flat array in rule-table order."""
        return np.array([getattr(self, name) for name in PARAMETER_FIELDS], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray, car_name: str = "") -> DesignParameters:
        """Create from flat array in rule-table order."""
        if len(arr) != N_PARAMS:
            raise ValueError(f"Expected {N_PARAMS} parameters, got {len(arr)}")
        values = {name: float(v) for name, v in zip(PARAMETER_FIELDS, arr)}
        return cls(car_name=car_name, **values)

    @property
    def body_height(self) -> float:
        """Body height proxy (mm); the rear wing sits at ~60% of body height."""
        return self.rear_wing_height / 0.6

    @property
    def frontal_area_m2(self) -> float:
        """Frontal area proxy (m^2) from width and the standard frontal height."""
        return (self.total_width / 1000.0) * (FRONTAL_HEIGHT_MM / 1000.0)

    def to_dict(self) -> dict[str, float | str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def bounds() -> tuple[np.ndarray, np.ndarray]:
    """Return admissible lower and upper bounds for each parameter.

    Returns:
        (xl, xu) tuple of bound arrays, each of length N_PARAMS.
    """
    pairs = [rule.admissible_range() for rule in DESIGN_RULES]
    xl = np.array([lo for lo, _ in pairs], dtype=np.float64)
    xu = np.array([hi for _, hi in pairs], dtype=np.float64)
    return xl, xu


def mid_bounds_parameters(car_name: str = "mid-bounds") -> DesignParameters:
    """Return parameters at the midpoint of the admissible bounds."""
    xl, xu = bounds()
    return DesignParameters.from_array((xl + xu) / 2, car_name=car_name)

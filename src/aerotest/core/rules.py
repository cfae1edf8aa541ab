"""Design rule table.

Single source of truth for per-parameter synthesis ranges and the
regulatory limits the scrutineering report checks against.

Conventions:
    - ``minimum``/``maximum`` are the regulation limits. Either may be None.
    - A one-sided rule synthesizes over [min, 1.5 * min] or [0.5 * max, max].
    - ``bias`` is an exponent on the draw: > 1 pulls toward the lower bound,
      < 1 toward the upper bound, 1 is uniform.
    - ``floor``/``ceiling`` are hard physical clamps applied after rounding.

The bias values are tuned so the rules that historically cost points at
scrutineering (D4.3.2 halo, D7.6.3 front wing thickness, T3.5 width) sit close
to their limits. Keep them as they are.
"""

from __future__ import annotations

from dataclasses import dataclass

ONE_SIDED_MIN_FACTOR = 1.5
ONE_SIDED_MAX_FACTOR = 0.5


@dataclass(frozen=True)
class DesignRule:
    """Named parameter descriptor."""

    rule_id: str
    field: str
    description: str
    unit: str
    minimum: float | None = None
    maximum: float | None = None
    bias: float = 1.0
    precision: int = 1
    floor: float | None = None
    ceiling: float | None = None

    def __post_init__(self) -> None:
        if self.minimum is None and self.maximum is None:
            raise ValueError(f"rule {self.rule_id} needs a minimum or a maximum")
        if self.bias <= 0:
            raise ValueError(f"rule {self.rule_id} bias must be positive, got {self.bias}")

    def synthesis_range(self) -> tuple[float, float]:
        """Return (lo, hi) used to map a draw onto this rule."""
        if self.minimum is not None and self.maximum is not None:
            return float(self.minimum), float(self.maximum)
        if self.minimum is not None:
            return float(self.minimum), float(self.minimum) * ONE_SIDED_MIN_FACTOR
        return float(self.maximum) * ONE_SIDED_MAX_FACTOR, float(self.maximum)

    def admissible_range(self) -> tuple[float, float]:
        """Synthesis range intersected with the hard floor/ceiling."""
        lo, hi = self.synthesis_range()
        if self.floor is not None:
            lo = max(lo, self.floor)
        if self.ceiling is not None:
            hi = min(hi, self.ceiling)
        return lo, hi

    def violation(self, value: float) -> str | None:
        """Return a failure note, or None when ``value`` satisfies the rule."""
        if self.minimum is not None and value < self.minimum:
            return f"Value is below the minimum of {self.minimum}{self.unit}."
        if self.maximum is not None and value > self.maximum:
            return f"Value is above the maximum of {self.maximum}{self.unit}."
        return None


DESIGN_RULES: tuple[DesignRule, ...] = (
    DesignRule("T3.4", "total_length", "Total Length", "mm", 170.0, 210.0),
    DesignRule(
        "T3.5", "total_width", "Total Width (at axles)", "mm", None, 85.0, bias=0.35, floor=50.0
    ),
    DesignRule("T3.6", "total_weight", "Total Weight (Min)", "g", 55.0, None, bias=1.6, floor=55.0),
    DesignRule("T7.6.1", "front_wing_span", "Front Wing Span", "mm", 75.0, None, ceiling=85.0),
    DesignRule("T7.6.2", "front_wing_chord", "Front Wing Chord", "mm", 15.0, 25.0),
    DesignRule(
        "D7.6.3",
        "front_wing_thickness",
        "Front Wing Thickness",
        "mm",
        3.5,
        12.0,
        bias=2.0,
        precision=2,
    ),
    DesignRule("T8.5", "rear_wing_height", "Rear Wing Height (Max)", "mm", None, 65.0, bias=0.8),
    DesignRule("T8.6.1", "rear_wing_span", "Rear Wing Span", "mm", 65.0, None, ceiling=85.0),
    DesignRule(
        "D4.3.2",
        "halo_visibility_score",
        "Halo Plan Visibility",
        "%",
        80.0,
        None,
        bias=2.5,
        precision=0,
        ceiling=100.0,
    ),
    DesignRule("D4.2", "no_go_zone_clearance", "No-Go-Zone Clearance", "mm", 1.0, None, bias=1.5),
    DesignRule(
        "D6.2",
        "visibility_score",
        "Side/Plan Visibility",
        "%",
        90.0,
        None,
        precision=0,
        ceiling=100.0,
    ),
)


def get_rule(rule_id: str) -> DesignRule:
    """Look up a rule by regulation id."""
    for rule in DESIGN_RULES:
        if rule.rule_id == rule_id:
            return rule
    raise KeyError(f"Unknown design rule: {rule_id}")


def rule_fields() -> list[str]:
    """Parameter fields in table order."""
    return [rule.field for rule in DESIGN_RULES]

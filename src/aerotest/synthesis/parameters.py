"""Design parameter synthesis.

Draw order: exactly one root-stream draw per rule, in DESIGN_RULES order.
Nothing else may draw from the root stream before this stage.

For each rule:
    1. u = stream.draw()
    2. value = lo + (hi - lo) * u ** bias       (lo, hi) = rule.synthesis_range()
    3. round to rule.precision decimals
    4. clamp into (lo, hi), then into the rule's hard floor/ceiling
"""

from __future__ import annotations

from collections.abc import Sequence

from ..core.design import DesignParameters
from ..core.rules import DESIGN_RULES, DesignRule
from ..core.stream import DeterministicStream
from ..core.types import ClampEvent


def synthesize_value(rule: DesignRule, u: float) -> tuple[float, ClampEvent | None]:
    """Map one uniform draw onto a rule.

    Returns:
        (value, clamp_event) where clamp_event is set when a hard
        floor/ceiling had to be applied.
    """
    lo, hi = rule.synthesis_range()
    raw = lo + (hi - lo) * (u**rule.bias)
    value = round(raw, rule.precision)
    value = min(max(value, lo), hi)

    clamped = value
    if rule.floor is not None and clamped < rule.floor:
        clamped = rule.floor
    if rule.ceiling is not None and clamped > rule.ceiling:
        clamped = rule.ceiling

    event = None
    if clamped != value:
        event = ClampEvent(stage="parameters", name=rule.field, raw=value, clamped=clamped)
    return float(clamped), event


def synthesize_parameters(
    stream: DeterministicStream,
    car_name: str = "",
    rules: Sequence[DesignRule] = DESIGN_RULES,
) -> tuple[DesignParameters, list[ClampEvent]]:
    """Apply every rule in order against the stream.

    Args:
        stream: Root stream, positioned at the start of the run.
        car_name: Display name carried on the record.
        rules: Rule table; must cover every DesignParameters field.

    Returns:
        (parameters, clamp_events)
    """
    values: dict[str, float] = {}
    events: list[ClampEvent] = []
    for rule in rules:
        value, event = synthesize_value(rule, stream.draw())
        values[rule.field] = value
        if event is not None:
            events.append(event)

    return DesignParameters(car_name=car_name, **values), events

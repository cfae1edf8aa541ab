"""Scrutineering report over the design rule table."""

from __future__ import annotations

from collections.abc import Sequence

from ..core.design import DesignParameters
from ..core.rules import DESIGN_RULES, DesignRule
from ..core.types import ScrutineeringItem

PASS = "PASS"
FAIL = "FAIL"


def _format_value(rule: DesignRule, value: float) -> str:
    return f"{value:.{rule.precision}f}{rule.unit}"


def check_rule(rule: DesignRule, params: DesignParameters) -> ScrutineeringItem:
    """Check one parameter against its rule."""
    value = float(getattr(params, rule.field))
    note = rule.violation(value)
    return ScrutineeringItem(
        rule_id=rule.rule_id,
        description=rule.description,
        status=FAIL if note else PASS,
        value=_format_value(rule, value),
        notes=note or "",
    )


def scrutinize(
    params: DesignParameters, rules: Sequence[DesignRule] = DESIGN_RULES
) -> tuple[ScrutineeringItem, ...]:
    """One item per rule, in table order.

    Synthesized parameters always pass; caller-supplied parameters may not.
    """
    return tuple(check_rule(rule, params) for rule in rules)


def failures(report: Sequence[ScrutineeringItem]) -> list[ScrutineeringItem]:
    return [item for item in report if item.status == FAIL]

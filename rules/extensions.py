"""Handlers for the PrevDam, PrevRisk, RiskDamPair and ColorForEach conditions.

These are not part of the default :data:`rules.conditions.registry`.  Pass
:func:`build_prevention_registry` (or a registry extended with
:func:`register_prevention_conditions`) as ``condition_registry`` to turn them
on.  Each one holds when its count is positive:

* ``PrevDam``: Damage prevented by the preliminary Grit.
* ``PrevRisk``: Risk prevented by the preliminary Veil.
* ``RiskDamPair``: the smaller of the two.
* ``ColorForEach``: distinct colors among the selected non-Gate nodes.
"""

from __future__ import annotations

from .conditions import ConditionRegistry, EvaluationContext
from .schema import ExtensionCondition


def damage_prevented(context: EvaluationContext) -> int:
    if context.prevention is None:
        return 0
    return max(0, context.prevention.damage_prevented)


def risk_prevented(context: EvaluationContext) -> int:
    if context.prevention is None:
        return 0
    return max(0, context.prevention.risk_prevented)


def _prev_dam(condition: ExtensionCondition, context: EvaluationContext) -> bool:
    return damage_prevented(context) > 0


def _prev_risk(condition: ExtensionCondition, context: EvaluationContext) -> bool:
    return risk_prevented(context) > 0


def _risk_dam_pair(condition: ExtensionCondition, context: EvaluationContext) -> bool:
    return min(damage_prevented(context), risk_prevented(context)) > 0


def _color_for_each(condition: ExtensionCondition, context: EvaluationContext) -> bool:
    return len(context.selected_colors()) > 0


PREVENTION_HANDLERS = {
    "PrevDam": _prev_dam,
    "PrevRisk": _prev_risk,
    "RiskDamPair": _risk_dam_pair,
    "ColorForEach": _color_for_each,
}


def register_prevention_conditions(target: ConditionRegistry) -> ConditionRegistry:
    """Register the four handlers on ``target``; names already taken raise ``ValueError``."""

    for name, handler in PREVENTION_HANDLERS.items():
        target.register(name, handler)
    return target


def build_prevention_registry() -> ConditionRegistry:
    return register_prevention_conditions(ConditionRegistry())


__all__ = [
    "PREVENTION_HANDLERS",
    "build_prevention_registry",
    "damage_prevented",
    "register_prevention_conditions",
    "risk_prevented",
]

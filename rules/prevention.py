"""Resource pools and the Grit/Veil prevention calculator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Dict, Tuple

from .schema import PoolStat

GRIT_PER_DAMAGE = 2
VEIL_PER_RISK = 2


@dataclass(frozen=True)
class Pools:
    """The five signed running totals produced by a pass."""

    damage: int = 0
    risk: int = 0
    money: int = 0
    grit: int = 0
    veil: int = 0

    def get(self, stat: PoolStat) -> int:
        return getattr(self, stat.value)

    def with_value(self, stat: PoolStat, value: int) -> "Pools":
        return replace(self, **{stat.value: value})

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class PreventionBreakdown:
    """How much Damage and Risk the accumulated Grit and Veil soak up."""

    raw_damage: int
    raw_risk: int
    damage_prevented: int
    risk_prevented: int
    grit_consumed: int
    veil_consumed: int
    grit_remaining: int
    veil_remaining: int
    final_damage: int
    final_risk: int

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _prevented(total: int, shield: int, ratio: int) -> int:
    # Only positive totals shrink, and never below zero.
    if total <= 0:
        return 0
    return max(0, min(shield // ratio, total))


def prevent(pools: Pools) -> Tuple[Pools, PreventionBreakdown]:
    """Apply prevention to ``pools``.

    Two Grit prevent one Damage and two Veil prevent one Risk.  The returned
    pools carry the reduced Damage and Risk while Grit and Veil keep their
    accumulated values; what was spent is reported in the breakdown only.
    """

    damage_prevented = _prevented(pools.damage, pools.grit, GRIT_PER_DAMAGE)
    risk_prevented = _prevented(pools.risk, pools.veil, VEIL_PER_RISK)
    grit_consumed = damage_prevented * GRIT_PER_DAMAGE
    veil_consumed = risk_prevented * VEIL_PER_RISK

    breakdown = PreventionBreakdown(
        raw_damage=pools.damage,
        raw_risk=pools.risk,
        damage_prevented=damage_prevented,
        risk_prevented=risk_prevented,
        grit_consumed=grit_consumed,
        veil_consumed=veil_consumed,
        grit_remaining=pools.grit - grit_consumed,
        veil_remaining=pools.veil - veil_consumed,
        final_damage=pools.damage - damage_prevented,
        final_risk=pools.risk - risk_prevented,
    )
    final = replace(pools, damage=breakdown.final_damage, risk=breakdown.final_risk)
    return final, breakdown


__all__ = ["GRIT_PER_DAMAGE", "VEIL_PER_RISK", "Pools", "PreventionBreakdown", "prevent"]

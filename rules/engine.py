"""Pool aggregation: one full, deterministic recomputation pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.errors import ContractEngineError, ErrorDetails

from .availability import AvailabilityStateMachine, NodeState
from .conditions import ConditionRegistry, EvaluationContext, evaluate_in_context
from .errors import DivisionByZero, MalformedEffect, UnknownConditionKind
from .parser import parse_effect
from .prevention import Pools, PreventionBreakdown, prevent
from .schema import Contract, Effect, ExtensionCondition, Operator, Runner

logger = logging.getLogger(__name__)

# (position, slot), node id, slot, parsed effect
_Pending = Tuple[Tuple[int, int], str, int, Effect]


class EffectOutcome(str, Enum):
    APPLIED = "applied"
    CONDITION_NOT_MET = "condition_not_met"
    ERROR = "error"


@dataclass(frozen=True)
class TraceEntry:
    """What happened to one effect slot of one selected node."""

    node_id: str
    slot: int
    raw: str
    outcome: EffectOutcome
    stat: Optional[str] = None
    before: Optional[int] = None
    after: Optional[int] = None
    error: Optional[ErrorDetails] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "node_id": self.node_id,
            "slot": self.slot,
            "raw": self.raw,
            "outcome": self.outcome.value,
        }
        if self.stat is not None:
            payload["stat"] = self.stat
        if self.before is not None:
            payload["before"] = self.before
            payload["after"] = self.after
        if self.error is not None:
            payload["error"] = {"code": self.error.code, "message": self.error.message}
        return payload


@dataclass(frozen=True)
class PoolResult:
    """Outcome of a recomputation pass.

    ``preliminary_prevention`` is only set when an extension condition was
    evaluated during the pass.
    """

    pools: Pools
    raw_pools: Pools
    prevention: PreventionBreakdown
    trace: Tuple[TraceEntry, ...]
    selected: Tuple[str, ...]
    preliminary_prevention: Optional[PreventionBreakdown] = None

    def failures(self) -> Tuple[TraceEntry, ...]:
        return tuple(entry for entry in self.trace if entry.outcome is EffectOutcome.ERROR)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "pools": self.pools.as_dict(),
            "raw_pools": self.raw_pools.as_dict(),
            "prevention": self.prevention.as_dict(),
            "trace": [entry.to_payload() for entry in self.trace],
            "selected": list(self.selected),
        }
        if self.preliminary_prevention is not None:
            payload["preliminary_prevention"] = self.preliminary_prevention.as_dict()
        return payload


def apply_effect(pools: Pools, effect: Effect) -> Pools:
    """Apply ``effect`` to ``pools`` with integer arithmetic.

    Division floors and raises :class:`DivisionByZero` for a zero amount.
    """

    current = pools.get(effect.stat)
    if effect.operator is Operator.ADD:
        value = current + effect.amount
    elif effect.operator is Operator.SUBTRACT:
        value = current - effect.amount
    elif effect.operator is Operator.MULTIPLY:
        value = current * effect.amount
    elif effect.operator is Operator.DIVIDE:
        if effect.amount == 0:
            raise DivisionByZero(effect.raw)
        value = current // effect.amount
    else:  # pragma: no cover - exhaustive guard
        raise MalformedEffect(effect.raw, "operator", str(effect.operator), "unsupported operator")
    return pools.with_value(effect.stat, value)


class PoolAggregator:
    """Recomputes the five pools of a contract from scratch.

    Effects of effectively selected nodes are applied in a canonical order so
    the result does not depend on the order the player picked nodes in:
    additive effects (``+``/``-``) first, then multiplicative ones
    (``*``/``/``), each group walked in contract order and effect slot order.

    Extension conditions are checked after the built-in ones.  Their context
    carries the preliminary prevention: the Grit/Veil breakdown of the pools
    after every additive effect with a satisfied built-in condition.
    """

    def __init__(self, contract: Contract, *, condition_registry: Optional[ConditionRegistry] = None) -> None:
        self._contract = contract
        self._registry = condition_registry
        self._availability = AvailabilityStateMachine(contract)

    @property
    def contract(self) -> Contract:
        return self._contract

    def recompute(self, selection: Iterable[str], runners: Iterable[Runner]) -> PoolResult:
        roster = tuple(runners)
        states = self._availability.recompute(selection, roster)
        selected = tuple(node_id for node_id, state in states.items() if state is NodeState.SELECTED)
        context = EvaluationContext.build(roster, selected, self._contract)

        entries: Dict[Tuple[int, int], TraceEntry] = {}
        satisfied: List[_Pending] = []
        deferred: List[_Pending] = []

        for node_id in selected:
            node = self._contract.node(node_id)
            if node.is_gate:
                continue
            position = self._contract.position(node_id)
            for slot, raw in node.effect_slots():
                key = (position, slot)
                try:
                    effect = parse_effect(raw, condition_registry=self._registry)
                except (MalformedEffect, UnknownConditionKind) as exc:
                    self._record_error(entries, key, node_id, slot, raw, exc)
                    continue
                pending = (key, node_id, slot, effect)
                if isinstance(effect.condition, ExtensionCondition):
                    deferred.append(pending)
                elif self._check(entries, pending, context):
                    satisfied.append(pending)

        preliminary: Optional[PreventionBreakdown] = None
        if deferred:
            base = Pools()
            for _, _, _, effect in satisfied:
                if effect.operator.is_additive:
                    base = apply_effect(base, effect)
            preliminary = prevent(base)[1]
            late_context = context.with_prevention(preliminary)
            satisfied.extend(pending for pending in deferred if self._check(entries, pending, late_context))

        ordered = sorted(satisfied, key=lambda pending: pending[0])
        additive = [pending for pending in ordered if pending[3].operator.is_additive]
        multiplicative = [pending for pending in ordered if not pending[3].operator.is_additive]

        pools = Pools()
        for key, node_id, slot, effect in additive + multiplicative:
            before = pools.get(effect.stat)
            try:
                pools = apply_effect(pools, effect)
            except DivisionByZero as exc:
                logger.warning("Skipping effect %d of node %s: %s", slot, node_id, exc)
                entries[key] = TraceEntry(
                    node_id, slot, effect.raw, EffectOutcome.ERROR, stat=effect.stat.value, error=exc.details
                )
                continue
            entries[key] = TraceEntry(
                node_id,
                slot,
                effect.raw,
                EffectOutcome.APPLIED,
                stat=effect.stat.value,
                before=before,
                after=pools.get(effect.stat),
            )

        final, breakdown = prevent(pools)
        trace = tuple(entries[key] for key in sorted(entries))
        logger.debug(
            "Recomputed pools for %d selected nodes: %s (prevented %d damage, %d risk)",
            len(selected),
            final.as_dict(),
            breakdown.damage_prevented,
            breakdown.risk_prevented,
        )
        return PoolResult(
            pools=final,
            raw_pools=pools,
            prevention=breakdown,
            trace=trace,
            selected=selected,
            preliminary_prevention=preliminary,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _check(
        self,
        entries: Dict[Tuple[int, int], TraceEntry],
        pending: _Pending,
        context: EvaluationContext,
    ) -> bool:
        key, node_id, slot, effect = pending
        try:
            met = evaluate_in_context(
                effect.condition, context.for_source(node_id), condition_registry=self._registry
            )
        except UnknownConditionKind as exc:
            self._record_error(entries, key, node_id, slot, effect.raw, exc)
            return False
        if not met:
            entries[key] = TraceEntry(
                node_id, slot, effect.raw, EffectOutcome.CONDITION_NOT_MET, stat=effect.stat.value
            )
        return met

    @staticmethod
    def _record_error(
        entries: Dict[Tuple[int, int], TraceEntry],
        key: Tuple[int, int],
        node_id: str,
        slot: int,
        raw: str,
        exc: ContractEngineError,
    ) -> None:
        logger.warning("Skipping effect %d of node %s: %s", slot, node_id, exc)
        entries[key] = TraceEntry(node_id, slot, raw, EffectOutcome.ERROR, error=exc.details)


def recompute_pools(
    contract: Contract,
    selection: Iterable[str],
    runners: Iterable[Runner],
    *,
    condition_registry: Optional[ConditionRegistry] = None,
) -> PoolResult:
    """Run one full recomputation pass over ``contract``."""

    return PoolAggregator(contract, condition_registry=condition_registry).recompute(selection, runners)


__all__ = [
    "EffectOutcome",
    "PoolAggregator",
    "PoolResult",
    "TraceEntry",
    "apply_effect",
    "recompute_pools",
]

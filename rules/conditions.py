"""Condition and gate evaluation plus the extension condition registry.

Every evaluation is a pure function of the condition, a roster snapshot, a
selection snapshot and the contract.  Nothing here mutates its inputs, so the
aggregator can re-run a pass as often as it likes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Protocol, Sequence, Tuple, TypeVar

from .errors import UnknownConditionKind
from .prevention import PreventionBreakdown
from .schema import (
    AlwaysCondition,
    Condition,
    Contract,
    ExtensionCondition,
    GateRule,
    NodeColor,
    NodeColorComboCondition,
    NodeColorCondition,
    NodeGate,
    Runner,
    RunnerStat,
    RunnerStatCondition,
    RunnerStatGate,
    RunnerTypeCondition,
    RunnerTypeGate,
)


@dataclass(frozen=True)
class EvaluationContext:
    """Immutable snapshot handed to every condition check.

    ``prevention`` is the preliminary Grit/Veil breakdown of the additive
    phase.  It is only filled in once the aggregator has applied every
    additive effect whose condition is built in.
    """

    runners: Tuple[Runner, ...]
    selection: FrozenSet[str]
    contract: Optional[Contract] = None
    source: Optional[str] = None
    prevention: Optional[PreventionBreakdown] = None

    @classmethod
    def build(
        cls,
        runners: Iterable[Runner],
        selection: Iterable[str],
        contract: Optional[Contract] = None,
        *,
        source: Optional[str] = None,
        prevention: Optional[PreventionBreakdown] = None,
    ) -> "EvaluationContext":
        return cls(
            runners=tuple(runners),
            selection=frozenset(selection),
            contract=contract,
            source=source,
            prevention=prevention,
        )

    def for_source(self, source: Optional[str]) -> "EvaluationContext":
        return replace(self, source=source)

    def with_prevention(self, prevention: Optional[PreventionBreakdown]) -> "EvaluationContext":
        return replace(self, prevention=prevention)

    def active_runners(self) -> Tuple[Runner, ...]:
        return tuple(runner for runner in self.runners if runner.is_active)

    def stat_total(self, stats: Sequence[RunnerStat]) -> int:
        return _stat_total(self.runners, stats)

    def selected_colors(self, *, exclude: Optional[str] = None) -> FrozenSet[NodeColor]:
        """Colors of selected non-Gate nodes, optionally ignoring one node."""

        if self.contract is None:
            return frozenset()
        colors = set()
        for node_id in self.selection:
            if node_id == exclude or node_id not in self.contract:
                continue
            node = self.contract.node(node_id)
            if not node.is_gate:
                colors.add(node.color)
        return frozenset(colors)


class ConditionHandler(Protocol):
    """Callable protocol for extension condition handlers."""

    def __call__(self, condition: ExtensionCondition, context: EvaluationContext) -> bool:  # pragma: no cover - protocol
        ...


HandlerT = TypeVar("HandlerT", bound=Callable[..., bool])


class ConditionRegistry:
    """Registry keeping the mapping between extension condition names and callables."""

    def __init__(self) -> None:
        self._handlers: Dict[str, ConditionHandler] = {}

    def register(self, name: str, handler: Optional[HandlerT] = None):  # type: ignore[override]
        if handler is None:
            def decorator(func: HandlerT) -> HandlerT:
                self.register(name, func)
                return func

            return decorator
        if name in self._handlers:
            raise ValueError(f"Handler already registered for condition '{name}'")
        self._handlers[name] = handler
        return handler

    def unregister(self, name: str) -> None:
        self._handlers.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._handlers))

    def get(self, name: str) -> ConditionHandler:
        try:
            return self._handlers[name]
        except KeyError as exc:
            raise UnknownConditionKind(name) from exc

    def evaluate(self, condition: ExtensionCondition, context: EvaluationContext) -> bool:
        handler = self.get(condition.name)
        return bool(handler(condition, context))


# Ships empty: PrevDam, PrevRisk, RiskDamPair and ColorForEach stay
# UnknownConditionKind unless a registry from rules.extensions is passed in.
registry = ConditionRegistry()


def _stat_total(runners: Iterable[Runner], stats: Sequence[RunnerStat]) -> int:
    return sum(runner.stat(stat) for runner in runners if runner.is_active for stat in stats)


def evaluate_in_context(
    condition: Condition,
    context: EvaluationContext,
    *,
    condition_registry: Optional[ConditionRegistry] = None,
) -> bool:
    """Decide whether ``condition`` holds for ``context``."""

    if isinstance(condition, AlwaysCondition):
        return True
    if isinstance(condition, RunnerTypeCondition):
        return any(runner.type is condition.runner_type for runner in context.active_runners())
    if isinstance(condition, RunnerStatCondition):
        return condition.comparison.compare(context.stat_total(condition.stats), condition.value)
    if isinstance(condition, NodeColorCondition):
        return condition.color in context.selected_colors(exclude=context.source)
    if isinstance(condition, NodeColorComboCondition):
        return set(condition.colors) <= context.selected_colors()
    if isinstance(condition, ExtensionCondition):
        active_registry = registry if condition_registry is None else condition_registry
        return active_registry.evaluate(condition, context)
    raise UnknownConditionKind(str(getattr(condition, "kind", type(condition).__name__)))


def evaluate_condition(
    condition: Condition,
    runners: Iterable[Runner],
    selection: Iterable[str],
    contract: Optional[Contract] = None,
    *,
    source: Optional[str] = None,
    prevention: Optional[PreventionBreakdown] = None,
    condition_registry: Optional[ConditionRegistry] = None,
) -> bool:
    """Evaluate an effect condition against a roster and selection snapshot.

    ``source`` names the node carrying the effect; ``NodeColor`` only looks at
    the *other* selected nodes.
    """

    context = EvaluationContext.build(runners, selection, contract, source=source, prevention=prevention)
    return evaluate_in_context(condition, context, condition_registry=condition_registry)


def evaluate_gate(rule: GateRule, runners: Iterable[Runner], selection: Iterable[str]) -> bool:
    """Evaluate a parsed gate rule.

    ``Node`` gates with a zero threshold require every listed node; any other
    threshold is an at-least count.  Each listed entry counts, so ``A,A;2`` is
    met by selecting ``A``.  Runner gates only count non-Empty runners.
    """

    if isinstance(rule, NodeGate):
        chosen = frozenset(selection)
        matched = sum(1 for node_id in rule.node_ids if node_id in chosen)
        if rule.threshold == 0:
            return matched == len(rule.node_ids)
        return matched >= rule.threshold
    if isinstance(rule, RunnerTypeGate):
        wanted = frozenset(rule.runner_types)
        matched = sum(1 for runner in runners if runner.is_active and runner.type in wanted)
        return matched >= rule.threshold
    if isinstance(rule, RunnerStatGate):
        return _stat_total(runners, rule.stats) >= rule.threshold
    raise TypeError(f"Unsupported gate rule: {type(rule)!r}")  # pragma: no cover - exhaustive guard


__all__ = [
    "ConditionHandler",
    "ConditionRegistry",
    "EvaluationContext",
    "evaluate_condition",
    "evaluate_gate",
    "evaluate_in_context",
    "registry",
]

"""Parsers turning raw effect and gate strings into structured rules.

Effect strings follow ``Condition;Operator;Amount;Stat`` and gate strings
follow ``Kind:Params;Threshold``.  Both parsers are pure and raise on the
first problem found, naming the offending fragment.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .conditions import ConditionRegistry, registry
from .errors import (
    EmptyGateCondition,
    EmptyGateParameters,
    InvalidGateNodeId,
    InvalidGateThreshold,
    MalformedEffect,
    MalformedGateString,
    UnknownConditionKind,
    UnknownGateKind,
    UnknownGateRunnerStat,
    UnknownGateRunnerType,
)
from .schema import (
    NODE_ID_PATTERN,
    AlwaysCondition,
    Comparison,
    Condition,
    Effect,
    ExtensionCondition,
    GateKind,
    GateRule,
    NodeColor,
    NodeColorComboCondition,
    NodeColorCondition,
    NodeGate,
    Operator,
    PoolStat,
    RunnerStat,
    RunnerStatCondition,
    RunnerStatGate,
    RunnerType,
    RunnerTypeCondition,
    RunnerTypeGate,
)

#: Condition names seen in contract data whose evaluation rule is supplied by
#: the condition registry rather than built in.
EXTENSION_KINDS = ("PrevDam", "PrevRisk", "RiskDamPair", "ColorForEach")

_INTEGER = re.compile(r"^[+-]?\d+$")
_THRESHOLD = re.compile(r"^\+?\d+$")
_NODE_ID = re.compile(NODE_ID_PATTERN)
_RUNNER_STAT = re.compile(
    r"^(?P<stats>[A-Za-z]+(?:\s*\+\s*[A-Za-z]+)*)\s*(?P<op>>=|<=|==|=|>|<)\s*(?P<value>[+-]?\d+)$"
)


def _split_list(text: str, separator: str = ",", *, unique: bool = True) -> List[str]:
    seen: List[str] = []
    for part in text.split(separator):
        item = part.strip()
        if item and (not unique or item not in seen):
            seen.append(item)
    return seen


# ------------------------------------------------------------------ effects
def parse_condition(
    text: str,
    *,
    condition_registry: Optional[ConditionRegistry] = None,
    raw: Optional[str] = None,
) -> Condition:
    """Parse the condition field of an effect string.

    Raises :class:`UnknownConditionKind` for names that are neither built in,
    listed in :data:`EXTENSION_KINDS`, nor registered as extensions.
    """

    raw = text if raw is None else raw
    text = text.strip()
    if not text:
        raise MalformedEffect(raw, "condition", text, "condition cannot be empty")

    name, separator, value = text.partition(":")
    name = name.strip()
    value = value.strip()

    if name == "None":
        if value:
            raise MalformedEffect(raw, "condition", text, "'None' takes no value")
        return AlwaysCondition()

    if name == "RunnerType":
        try:
            runner_type = RunnerType.from_string(value)
        except ValueError:
            runner_type = None
        if runner_type is None or runner_type is RunnerType.EMPTY:
            raise MalformedEffect(raw, "condition", value or text, f"unknown runner type {value!r}")
        return RunnerTypeCondition(runner_type=runner_type)

    if name == "RunnerStat":
        match = _RUNNER_STAT.match(value)
        if match is None:
            raise MalformedEffect(
                raw, "condition", value or text, "RunnerStat needs '<stat><op><n>', e.g. 'muscle>=3'"
            )
        stats = []
        for part in match.group("stats").split("+"):
            try:
                stats.append(RunnerStat.from_string(part))
            except ValueError:
                raise MalformedEffect(raw, "condition", part.strip(), f"unknown runner stat {part.strip()!r}")
        operator = match.group("op")
        comparison = Comparison.EQUAL if operator == "==" else Comparison(operator)
        return RunnerStatCondition(stats=tuple(stats), comparison=comparison, value=int(match.group("value")))

    if name == "NodeColor":
        try:
            return NodeColorCondition(color=NodeColor.from_string(value))
        except ValueError:
            raise MalformedEffect(raw, "condition", value or text, f"unknown node color {value!r}")

    if name == "NodeColorCombo":
        colors = []
        for part in _split_list(value):
            try:
                colors.append(NodeColor.from_string(part))
            except ValueError:
                raise MalformedEffect(raw, "condition", part, f"unknown node color {part!r}")
        if not colors:
            raise MalformedEffect(raw, "condition", text, "NodeColorCombo needs at least one color")
        return NodeColorComboCondition(colors=tuple(colors))

    active_registry = registry if condition_registry is None else condition_registry
    if name in EXTENSION_KINDS or name in active_registry:
        return ExtensionCondition(name=name, argument=value or None)

    raise UnknownConditionKind(name)


def parse_effect(raw: str, *, condition_registry: Optional[ConditionRegistry] = None) -> Effect:
    """Parse ``Condition;Operator;Amount;Stat`` into an :class:`Effect`."""

    raw = "" if raw is None else raw
    parts = raw.split(";")
    if len(parts) != 4:
        raise MalformedEffect(
            raw, "field_count", raw, f"expected 4 ';'-separated fields, got {len(parts)}"
        )
    condition_text, operator_text, amount_text, stat_text = (part.strip() for part in parts)

    condition = parse_condition(condition_text, condition_registry=condition_registry, raw=raw)

    try:
        operator = Operator(operator_text)
    except ValueError:
        allowed = ", ".join(member.value for member in Operator)
        raise MalformedEffect(raw, "operator", operator_text, f"operator must be one of {allowed}")

    if not _INTEGER.match(amount_text):
        raise MalformedEffect(raw, "amount", amount_text, f"amount must be an integer, got {amount_text!r}")

    try:
        stat = PoolStat.from_string(stat_text)
    except ValueError:
        allowed = ", ".join(member.value for member in PoolStat)
        raise MalformedEffect(raw, "stat", stat_text, f"stat must be one of {allowed}")

    return Effect(condition=condition, operator=operator, amount=int(amount_text), stat=stat, raw=raw)


# -------------------------------------------------------------------- gates
def parse_gate(raw: str) -> GateRule:
    """Parse ``Kind:Params;Threshold`` into a gate rule."""

    if raw is None or not raw.strip():
        raise EmptyGateCondition(raw or "", raw or "", "gate condition cannot be empty")

    parts = raw.split(";")
    if len(parts) != 2:
        raise MalformedGateString(raw, raw, "expected exactly 'Kind:Params;Threshold'")
    condition_part, threshold_text = parts[0].strip(), parts[1].strip()

    kind_text, _, params_text = condition_part.partition(":")
    kind_text = kind_text.strip()
    try:
        kind = GateKind(kind_text)
    except ValueError:
        raise UnknownGateKind(raw, kind_text, "gate must start with Node:, RunnerType: or RunnerStat:")

    # Node gates count every listed entry, repeats included.
    params = _split_list(params_text, unique=kind is not GateKind.NODE)
    if not params:
        raise EmptyGateParameters(raw, condition_part, f"{kind.value} gate needs at least one parameter")

    if not _THRESHOLD.match(threshold_text):
        raise InvalidGateThreshold(raw, threshold_text, "threshold must be a non-negative integer")
    threshold = int(threshold_text)

    if kind is GateKind.NODE:
        for node_id in params:
            if not _NODE_ID.match(node_id):
                raise InvalidGateNodeId(
                    raw, node_id, "node ids may only contain letters, digits, '_' and '-'"
                )
        return NodeGate(node_ids=tuple(params), threshold=threshold)

    if kind is GateKind.RUNNER_TYPE:
        runner_types = []
        for name in params:
            try:
                runner_type = RunnerType.from_string(name)
            except ValueError:
                runner_type = None
            if runner_type is None or runner_type is RunnerType.EMPTY:
                raise UnknownGateRunnerType(raw, name, f"unknown runner type {name!r}")
            if runner_type not in runner_types:
                runner_types.append(runner_type)
        return RunnerTypeGate(runner_types=tuple(runner_types), threshold=threshold)

    stats = []
    for name in params:
        try:
            stat = RunnerStat.from_string(name)
        except ValueError:
            raise UnknownGateRunnerStat(raw, name, f"unknown runner stat {name!r}")
        if stat not in stats:
            stats.append(stat)
    return RunnerStatGate(stats=tuple(stats), threshold=threshold)


__all__ = ["EXTENSION_KINDS", "parse_condition", "parse_effect", "parse_gate"]

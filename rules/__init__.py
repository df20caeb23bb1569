"""Public package interface for the contract evaluation engine."""

from .availability import AvailabilityStateMachine, NodeState, recompute_availability
from .conditions import (
    ConditionRegistry,
    EvaluationContext,
    evaluate_condition,
    evaluate_gate,
    evaluate_in_context,
    registry,
)
from .engine import EffectOutcome, PoolAggregator, PoolResult, TraceEntry, apply_effect, recompute_pools
from .errors import (
    DivisionByZero,
    EmptyGateCondition,
    EmptyGateParameters,
    InvalidGateCondition,
    InvalidGateNodeId,
    InvalidGateThreshold,
    MalformedEffect,
    MalformedGateString,
    NodeNotFoundError,
    UnknownConditionKind,
    UnknownGateKind,
    UnknownGateRunnerStat,
    UnknownGateRunnerType,
)
from .extensions import build_prevention_registry, register_prevention_conditions
from .parser import EXTENSION_KINDS, parse_condition, parse_effect, parse_gate
from .prevention import Pools, PreventionBreakdown, prevent
from .schema import (
    Comparison,
    Condition,
    Contract,
    Effect,
    GateRule,
    Node,
    NodeColor,
    NodeKind,
    Operator,
    PoolStat,
    Runner,
    RunnerCondition,
    RunnerStat,
    RunnerType,
    default_roster,
    get_contract_json_schema,
)
from .validation import Severity, ValidationIssue, ValidationReport, validate_contract

__all__ = [
    "EXTENSION_KINDS",
    "AvailabilityStateMachine",
    "Comparison",
    "Condition",
    "ConditionRegistry",
    "Contract",
    "DivisionByZero",
    "Effect",
    "EffectOutcome",
    "EmptyGateCondition",
    "EmptyGateParameters",
    "EvaluationContext",
    "GateRule",
    "InvalidGateCondition",
    "InvalidGateNodeId",
    "InvalidGateThreshold",
    "MalformedEffect",
    "MalformedGateString",
    "Node",
    "NodeColor",
    "NodeKind",
    "NodeNotFoundError",
    "NodeState",
    "Operator",
    "PoolAggregator",
    "PoolResult",
    "PoolStat",
    "Pools",
    "PreventionBreakdown",
    "Runner",
    "RunnerCondition",
    "RunnerStat",
    "RunnerType",
    "Severity",
    "TraceEntry",
    "UnknownConditionKind",
    "UnknownGateKind",
    "UnknownGateRunnerStat",
    "UnknownGateRunnerType",
    "ValidationIssue",
    "ValidationReport",
    "apply_effect",
    "build_prevention_registry",
    "default_roster",
    "evaluate_condition",
    "evaluate_gate",
    "evaluate_in_context",
    "get_contract_json_schema",
    "parse_condition",
    "parse_effect",
    "parse_gate",
    "prevent",
    "recompute_availability",
    "recompute_pools",
    "register_prevention_conditions",
    "registry",
    "validate_contract",
]

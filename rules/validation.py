"""Static checks over a contract, collected into a report instead of raised."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .conditions import ConditionRegistry, registry
from .errors import DivisionByZero, InvalidGateCondition, MalformedEffect, UnknownConditionKind
from .parser import parse_effect, parse_gate
from .schema import Contract, ExtensionCondition, NodeGate, Operator


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in a contract."""

    severity: Severity
    code: str
    message: str
    node_id: Optional[str] = None
    field: Optional[str] = None
    fragment: Optional[str] = None

    def to_payload(self) -> Dict[str, Optional[str]]:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "field": self.field,
            "fragment": self.fragment,
        }


@dataclass
class ValidationReport:
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> Tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.severity is Severity.ERROR)

    @property
    def warnings(self) -> Tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.severity is Severity.WARNING)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def for_node(self, node_id: str) -> Tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.node_id == node_id)

    def add(self, severity: Severity, code: str, message: str, **kwargs: Optional[str]) -> None:
        self.issues.append(ValidationIssue(severity, code, message, **kwargs))


def validate_contract(
    contract: Contract, *, condition_registry: Optional[ConditionRegistry] = None
) -> ValidationReport:
    """Check every node of ``contract`` and report what an evaluation pass would trip over.

    Errors mark data the engine will skip (malformed effects, broken gate
    strings, dangling connections).  Warnings flag data that is accepted but
    probably not what the author meant.
    """

    active_registry = registry if condition_registry is None else condition_registry
    report = ValidationReport()

    if not contract.start_nodes():
        report.add(Severity.WARNING, "WARN_NO_START_NODE", "Contract has no Start node")

    for source, target in contract.unknown_connections():
        report.add(
            Severity.ERROR,
            "ERR_UNKNOWN_CONNECTION",
            f"Node '{source}' connects to unknown node '{target}'",
            node_id=source,
            field="connections",
            fragment=target,
        )

    for node in contract.nodes:
        if node.is_gate:
            try:
                rule = parse_gate(node.gate_condition or "")
            except InvalidGateCondition as exc:
                report.add(
                    Severity.ERROR,
                    exc.code,
                    str(exc),
                    node_id=node.id,
                    field="gate_condition",
                    fragment=exc.fragment,
                )
            else:
                if isinstance(rule, NodeGate):
                    for node_id in dict.fromkeys(rule.node_ids):
                        if node_id not in contract:
                            report.add(
                                Severity.WARNING,
                                "WARN_GATE_UNKNOWN_NODE",
                                f"Gate on node '{node.id}' references unknown node '{node_id}'",
                                node_id=node.id,
                                field="gate_condition",
                                fragment=node_id,
                            )
            if node.effect_slots():
                report.add(
                    Severity.WARNING,
                    "WARN_GATE_EFFECTS_IGNORED",
                    f"Effects on gate node '{node.id}' are never applied",
                    node_id=node.id,
                )
            continue

        if node.gate_condition:
            report.add(
                Severity.WARNING,
                "WARN_GATE_CONDITION_IGNORED",
                f"Node '{node.id}' is not a Gate; its gate condition is ignored",
                node_id=node.id,
                field="gate_condition",
                fragment=node.gate_condition,
            )

        for slot, raw in node.effect_slots():
            field_name = f"effect{slot}"
            try:
                effect = parse_effect(raw, condition_registry=active_registry)
            except MalformedEffect as exc:
                report.add(Severity.ERROR, exc.code, str(exc), node_id=node.id, field=field_name, fragment=exc.fragment)
                continue
            except UnknownConditionKind as exc:
                report.add(Severity.ERROR, exc.code, str(exc), node_id=node.id, field=field_name, fragment=exc.kind)
                continue

            if effect.operator is Operator.DIVIDE and effect.amount == 0:
                exc = DivisionByZero(raw)
                report.add(Severity.ERROR, exc.code, str(exc), node_id=node.id, field=field_name, fragment="0")
            if isinstance(effect.condition, ExtensionCondition) and effect.condition.name not in active_registry:
                report.add(
                    Severity.WARNING,
                    "WARN_UNHANDLED_CONDITION",
                    f"No handler registered for condition '{effect.condition.name}'",
                    node_id=node.id,
                    field=field_name,
                    fragment=effect.condition.name,
                )

    return report


__all__ = ["Severity", "ValidationIssue", "ValidationReport", "validate_contract"]

"""Custom exceptions raised by the rules subsystem."""

from __future__ import annotations

from core.errors import ContractEngineError, ErrorDetails


class MalformedEffect(ContractEngineError, ValueError):
    """Raised when an effect string cannot be parsed.

    ``reason`` is one of ``field_count``, ``condition``, ``operator``,
    ``amount`` or ``stat`` and ``fragment`` is the offending piece of text.
    """

    error_code = "ERR_MALFORMED_EFFECT"

    def __init__(self, raw: str, reason: str, fragment: str, message: str) -> None:
        full = f"Malformed effect {raw!r}: {message}"
        super().__init__(full, details=ErrorDetails(code=self.error_code, message=full))
        self.raw = raw
        self.reason = reason
        self.fragment = fragment


class UnknownConditionKind(ContractEngineError, ValueError):
    """Raised when a condition names a kind with no known evaluation rule."""

    error_code = "ERR_UNKNOWN_CONDITION_KIND"

    def __init__(self, kind: str) -> None:
        message = f"Unknown condition kind '{kind}'"
        super().__init__(message, details=ErrorDetails(code=self.error_code, message=message))
        self.kind = kind


class InvalidGateCondition(ContractEngineError, ValueError):
    """Base class for gate strings that fail to parse.

    Every subclass carries the exact ``fragment`` that broke parsing so that
    editors can highlight it.
    """

    error_code = "ERR_INVALID_GATE"
    reason = "invalid"

    def __init__(self, raw: str, fragment: str, message: str) -> None:
        full = f"Invalid gate condition {raw!r}: {message}"
        super().__init__(full, details=ErrorDetails(code=f"{self.error_code}_{self.reason.upper()}", message=full))
        self.raw = raw
        self.fragment = fragment


class EmptyGateCondition(InvalidGateCondition):
    reason = "empty"


class MalformedGateString(InvalidGateCondition):
    """Gate strings need exactly ``Kind:Params;Threshold``."""

    reason = "field_count"


class UnknownGateKind(InvalidGateCondition):
    reason = "unknown_kind"


class EmptyGateParameters(InvalidGateCondition):
    reason = "empty_parameters"


class InvalidGateThreshold(InvalidGateCondition):
    reason = "threshold"


class UnknownGateRunnerType(InvalidGateCondition):
    reason = "runner_type"


class UnknownGateRunnerStat(InvalidGateCondition):
    reason = "runner_stat"


class InvalidGateNodeId(InvalidGateCondition):
    reason = "node_id"


class DivisionByZero(ContractEngineError, ArithmeticError):
    """Raised when an effect divides a pool by zero."""

    error_code = "ERR_DIVISION_BY_ZERO"

    def __init__(self, raw: str) -> None:
        message = f"Effect {raw!r} divides by zero"
        super().__init__(message, details=ErrorDetails(code=self.error_code, message=message))
        self.raw = raw


class NodeNotFoundError(ContractEngineError, KeyError):
    """Raised when a requested node identifier is not part of the contract."""

    error_code = "ERR_NODE_NOT_FOUND"

    def __init__(self, node_id: str) -> None:
        message = f"Node '{node_id}' not found"
        super().__init__(message, details=ErrorDetails(code=self.error_code, message=message))
        self.node_id = node_id

    def __str__(self) -> str:
        return self.details.message


__all__ = [
    "DivisionByZero",
    "EmptyGateCondition",
    "EmptyGateParameters",
    "InvalidGateCondition",
    "InvalidGateNodeId",
    "InvalidGateThreshold",
    "MalformedEffect",
    "MalformedGateString",
    "NodeNotFoundError",
    "UnknownConditionKind",
    "UnknownGateKind",
    "UnknownGateRunnerStat",
    "UnknownGateRunnerType",
]

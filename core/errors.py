"""Custom exception types used across the project."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorDetails:
    """Structured metadata associated with an exception."""

    code: str
    message: str


class ContractEngineError(Exception):
    """Base class for every error raised by the contract engine."""

    error_code = "ERR_CONTRACT_ENGINE"

    def __init__(self, message: str, *, details: ErrorDetails | None = None) -> None:
        super().__init__(message)
        self.details = details or ErrorDetails(code=self.error_code, message=message)

    @property
    def code(self) -> str:
        return self.details.code


class IllegalSelectionError(ContractEngineError):
    """Raised when a node that is not ``Available`` is selected."""

    error_code = "ERR_ILLEGAL_SELECTION"

    def __init__(self, node_id: str, state: str) -> None:
        message = f"Node '{node_id}' cannot be selected while {state}"
        super().__init__(message, details=ErrorDetails(code=self.error_code, message=message))
        self.node_id = node_id
        self.state = state


__all__ = ["ContractEngineError", "ErrorDetails", "IllegalSelectionError"]

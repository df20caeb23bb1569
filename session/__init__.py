"""Stateful session and contract resolution built on the rules engine."""

from .config import BalancingConfig
from .contract_session import ContractSession
from .resolution import (
    ContractResolver,
    DamageEffect,
    DamageRoll,
    DamageTableEntry,
    DamageTableError,
    ResolutionResult,
    parse_damage_table,
)
from .runner_generator import NameTable, RunnerGenerator, generate_runner, generate_runner_batch
from .types import SessionSnapshot

__all__ = [
    "BalancingConfig",
    "ContractResolver",
    "ContractSession",
    "DamageEffect",
    "DamageRoll",
    "DamageTableEntry",
    "DamageTableError",
    "NameTable",
    "ResolutionResult",
    "RunnerGenerator",
    "SessionSnapshot",
    "generate_runner",
    "generate_runner_batch",
    "parse_damage_table",
]

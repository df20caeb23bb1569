"""Balancing constants used by the session and contract resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Iterable, Mapping

logger = logging.getLogger(__name__)

# Spreadsheet parameter names mapped to attribute names.
_PARAMETER_NAMES = {
    "contractBaseReward": "contract_base_reward",
    "maxDamageRollValue": "max_damage_roll_value",
    "playerLevelPerContract": "player_level_per_contract",
    "maxRunnerStat": "max_runner_stat",
    "runnerMainStatAllocation": "runner_main_stat_allocation",
    "runnerRandomStatAllocation": "runner_random_stat_allocation",
}


@dataclass(frozen=True)
class BalancingConfig:
    """Tunable constants used by :class:`ContractSession` and :class:`ContractResolver`."""

    contract_base_reward: int = 1000
    max_damage_roll_value: int = 100
    player_level_per_contract: int = 1
    max_runner_stat: int = 10
    runner_main_stat_allocation: int = 2
    runner_random_stat_allocation: int = 2

    def __post_init__(self) -> None:
        if self.contract_base_reward < 0:
            raise ValueError("contract_base_reward cannot be negative")
        if self.max_damage_roll_value < 1:
            raise ValueError("max_damage_roll_value must be at least 1")
        if self.max_runner_stat < 0:
            raise ValueError("max_runner_stat cannot be negative")
        if self.runner_main_stat_allocation < 0 or self.runner_random_stat_allocation < 0:
            raise ValueError("runner stat allocations cannot be negative")

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "BalancingConfig":
        """Build a config from ``Parameter``/``Value`` rows.

        Unknown parameters and non-numeric values are skipped with a warning;
        everything not mentioned keeps its default.
        """

        known = {item.name for item in fields(cls)}
        overrides: Dict[str, int] = {}
        for record in records:
            parameter = str(record.get("Parameter", "")).strip()
            name = _PARAMETER_NAMES.get(parameter, parameter)
            if name not in known:
                logger.warning("Ignoring unknown balancing parameter %r", parameter)
                continue
            try:
                overrides[name] = int(float(str(record.get("Value", "")).strip()))
            except (OverflowError, ValueError):
                logger.warning("Ignoring non-numeric value for %s: %r", parameter, record.get("Value"))
        return replace(cls(), **overrides)

    def as_dict(self) -> Dict[str, int]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


__all__ = ["BalancingConfig"]

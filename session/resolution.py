"""Contract resolution: damage rolls against a damage table and the final payout."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.errors import ContractEngineError
from core.random_control import generator_from_seed_sequence, generator_state_digest, seed_sequence_for
from rules.engine import PoolResult
from rules.schema import Runner, RunnerCondition
from session.config import BalancingConfig

logger = logging.getLogger(__name__)

_RANGE = re.compile(r"^\s*(\d+)\s*(?:-\s*(\d+))?\s*$")


class DamageEffect(str, Enum):
    INJURY = "Injury"
    DEATH = "Death"
    REDUCE = "Reduce"
    EXTRA = "Extra"
    NO_EFFECT = "No Effect"


class DamageTableError(ContractEngineError, ValueError):
    """Raised when a damage table row cannot be parsed."""

    error_code = "ERR_DAMAGE_TABLE"


@dataclass(frozen=True)
class DamageTableEntry:
    """One row of the damage table; ``value`` is a percentage for Reduce/Extra."""

    min_roll: int
    max_roll: int
    effect: DamageEffect
    value: int = 0

    def matches(self, roll: int) -> bool:
        return self.min_roll <= roll <= self.max_roll


def parse_damage_table(records: Iterable[Mapping[str, Any]]) -> Tuple[DamageTableEntry, ...]:
    """Parse ``Roll Range``/``Effect`` rows such as ``1-10``/``Reduce 15``."""

    entries: List[DamageTableEntry] = []
    for record in records:
        range_text = str(record.get("Roll Range", ""))
        match = _RANGE.match(range_text)
        if match is None:
            raise DamageTableError(f"Invalid roll range {range_text!r}")
        low = int(match.group(1))
        high = int(match.group(2) or match.group(1))
        if high < low:
            raise DamageTableError(f"Roll range {range_text!r} is reversed")

        effect_text = str(record.get("Effect", "")).strip()
        name, _, amount = effect_text.partition(" ")
        value = 0
        if name in (DamageEffect.REDUCE.value, DamageEffect.EXTRA.value):
            try:
                value = int(amount.strip())
            except ValueError:
                raise DamageTableError(f"Effect {effect_text!r} needs a whole percentage")
            effect = DamageEffect(name)
        else:
            try:
                effect = DamageEffect(effect_text)
            except ValueError:
                raise DamageTableError(f"Unknown damage effect {effect_text!r}")
        entries.append(DamageTableEntry(min_roll=low, max_roll=high, effect=effect, value=value))
    return tuple(entries)


@dataclass(frozen=True)
class DamageRoll:
    """Outcome of a single roll."""

    number: int
    roll: int
    effect: DamageEffect
    value: int
    description: str
    target_slot: Optional[int]
    reward_after: int


@dataclass(frozen=True)
class ResolutionResult:
    final_reward: int
    risk_applied: int
    player_level_gained: int
    rolls: Tuple[DamageRoll, ...]
    runners: Tuple[Runner, ...]
    leveled_up: Tuple[int, ...] = ()
    rng_digest: str = field(default="", compare=False)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "final_reward": self.final_reward,
            "risk_applied": self.risk_applied,
            "player_level_gained": self.player_level_gained,
            "rolls": [
                {
                    "number": roll.number,
                    "roll": roll.roll,
                    "effect": roll.effect.value,
                    "value": roll.value,
                    "description": roll.description,
                    "target_slot": roll.target_slot,
                    "reward_after": roll.reward_after,
                }
                for roll in self.rolls
            ],
            "runners": [runner.model_dump(mode="json") for runner in self.runners],
            "leveled_up": list(self.leveled_up),
        }


class ContractResolver:
    """Turns the pools of a finished contract into a payout and runner casualties.

    One roll in ``1..max_damage_roll_value`` is made per point of final damage.
    ``Reduce``/``Extra`` move the running reward by a percentage of its
    current value; ``Injury``/``Death`` change the condition of a random
    non-Empty runner.  Every non-Empty runner still alive afterwards gains a
    level and one completed contract.  All randomness comes from one seeded
    NumPy generator.
    """

    def __init__(
        self,
        damage_table: Sequence[DamageTableEntry],
        *,
        config: BalancingConfig | None = None,
        seed: Optional[int] = None,
    ) -> None:
        self._table = tuple(damage_table)
        self._config = config or BalancingConfig()
        self._seed_sequence = seed_sequence_for(seed)
        self._rng = generator_from_seed_sequence(self._seed_sequence)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def reset(self) -> None:
        """Rewind the generator so the next resolution repeats the first one."""

        self._rng = generator_from_seed_sequence(self._seed_sequence)

    def state_digest(self) -> str:
        return generator_state_digest(self._rng)

    def resolve(self, result: PoolResult, runners: Iterable[Runner]) -> ResolutionResult:
        roster = list(runners)
        reward = float(self._config.contract_base_reward + result.pools.money)
        damage = max(0, result.pools.damage)
        risk = max(0, result.pools.risk)

        rolls: List[DamageRoll] = []
        for number in range(1, damage + 1):
            roll = int(self._rng.integers(1, self._config.max_damage_roll_value + 1))
            entry = self._lookup(roll)
            effect = entry.effect if entry is not None else DamageEffect.NO_EFFECT
            value = entry.value if entry is not None else 0
            target: Optional[int] = None

            if effect is DamageEffect.INJURY:
                description, target = self._injure(roster)
            elif effect is DamageEffect.DEATH:
                description, target = self._kill(roster)
            elif effect is DamageEffect.REDUCE:
                reward = max(0.0, reward - reward * value / 100)
                description = f"Reward reduced by {value}%"
            elif effect is DamageEffect.EXTRA:
                reward = reward + reward * value / 100
                description = f"Reward increased by {value}%"
            else:
                description = "No effect"

            logger.debug("Roll %d/%d: %d -> %s", number, damage, roll, description)
            rolls.append(
                DamageRoll(
                    number=number,
                    roll=roll,
                    effect=effect,
                    value=value,
                    description=description,
                    target_slot=target,
                    reward_after=int(reward // 1),
                )
            )

        final_reward = max(0, int(reward // 1))
        leveled_up = self._level_up(roster)
        logger.info("Contract resolved: reward %d, risk %d, %d damage rolls", final_reward, risk, len(rolls))
        return ResolutionResult(
            final_reward=final_reward,
            risk_applied=risk,
            player_level_gained=self._config.player_level_per_contract,
            rolls=tuple(rolls),
            runners=tuple(roster),
            leveled_up=leveled_up,
            rng_digest=self.state_digest(),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _lookup(self, roll: int) -> Optional[DamageTableEntry]:
        for entry in self._table:
            if entry.matches(roll):
                return entry
        logger.warning("No damage table entry covers roll %d", roll)
        return None

    def _candidates(self, roster: List[Runner], condition: RunnerCondition) -> List[int]:
        return [index for index, runner in enumerate(roster) if runner.is_active and runner.condition is condition]

    def _set_condition(self, roster: List[Runner], index: int, condition: RunnerCondition) -> Runner:
        updated = Runner.model_validate({**roster[index].model_dump(), "condition": condition})
        roster[index] = updated
        return updated

    def _pick(self, candidates: List[int]) -> int:
        return candidates[int(self._rng.integers(0, len(candidates)))]

    def _injure(self, roster: List[Runner]) -> Tuple[str, Optional[int]]:
        ready = self._candidates(roster, RunnerCondition.READY)
        if ready:
            runner = self._set_condition(roster, self._pick(ready), RunnerCondition.INJURED)
            return f"{self._label(runner)} got injured", runner.slot
        injured = self._candidates(roster, RunnerCondition.INJURED)
        if injured:
            runner = self._set_condition(roster, self._pick(injured), RunnerCondition.DEAD)
            return f"{self._label(runner)} died (all runners were already injured)", runner.slot
        return "No effect (all runners dead)", None

    def _kill(self, roster: List[Runner]) -> Tuple[str, Optional[int]]:
        injured = self._candidates(roster, RunnerCondition.INJURED)
        if injured:
            runner = self._set_condition(roster, self._pick(injured), RunnerCondition.DEAD)
            return f"{self._label(runner)} died", runner.slot
        ready = self._candidates(roster, RunnerCondition.READY)
        if ready:
            runner = self._set_condition(roster, self._pick(ready), RunnerCondition.INJURED)
            return f"{self._label(runner)} got injured (no runners were injured)", runner.slot
        return "No effect (all runners dead)", None

    @staticmethod
    def _level_up(roster: List[Runner]) -> Tuple[int, ...]:
        # Survivors gain a level; stats stay as they are.
        slots: List[int] = []
        for index, runner in enumerate(roster):
            if not runner.is_active or runner.condition is RunnerCondition.DEAD:
                continue
            roster[index] = Runner.model_validate(
                {
                    **runner.model_dump(),
                    "level": runner.level + 1,
                    "contracts_completed": runner.contracts_completed + 1,
                }
            )
            slots.append(runner.slot)
        return tuple(slots)

    @staticmethod
    def _label(runner: Runner) -> str:
        return runner.name or f"{runner.type.value} in slot {runner.slot}"


__all__ = [
    "ContractResolver",
    "DamageEffect",
    "DamageRoll",
    "DamageTableEntry",
    "DamageTableError",
    "ResolutionResult",
    "parse_damage_table",
]

"""Procedural runners: random type, stat allocation and a two-part name."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from core.random_control import generator_from_seed_sequence, generator_state_digest, seed_sequence_for
from rules.schema import ROSTER_SIZE, Runner, RunnerStat, RunnerType
from session.config import BalancingConfig

logger = logging.getLogger(__name__)

#: Types a generated runner can roll; Empty is never generated.
GENERATED_TYPES = (RunnerType.HACKER, RunnerType.FACE, RunnerType.MUSCLE, RunnerType.NINJA)
STAT_ORDER = (RunnerStat.FACE, RunnerStat.MUSCLE, RunnerStat.HACKER, RunnerStat.NINJA)
FALLBACK_NAME = "Runner Unknown"


@dataclass(frozen=True)
class NameTable:
    """First and second name parts a runner name is drawn from."""

    first_parts: Tuple[str, ...] = ()
    second_parts: Tuple[str, ...] = ()

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[str]]) -> "NameTable":
        """Read two-column rows; blank cells are skipped on either side."""

        first: List[str] = []
        second: List[str] = []
        for row in rows:
            cells = [str(cell).strip() for cell in row]
            if len(cells) < 2:
                logger.warning("Skipping name table row with %d cell(s)", len(cells))
                continue
            if cells[0]:
                first.append(cells[0])
            if cells[1]:
                second.append(cells[1])
        return cls(first_parts=tuple(first), second_parts=tuple(second))

    @property
    def is_usable(self) -> bool:
        return bool(self.first_parts) and bool(self.second_parts)


class RunnerGenerator:
    """Seeded source of new runners.

    A runner gets a uniformly random type, ``runner_main_stat_allocation``
    points in the stat matching that type and ``runner_random_stat_allocation``
    single points spread over random stats.  ``reset`` rewinds the generator.
    """

    def __init__(
        self,
        names: NameTable | None = None,
        *,
        config: BalancingConfig | None = None,
        seed: Optional[int] = None,
    ) -> None:
        self._names = names or NameTable()
        self._config = config or BalancingConfig()
        self._seed_sequence = seed_sequence_for(seed)
        self._rng = generator_from_seed_sequence(self._seed_sequence)

    def reset(self) -> None:
        self._rng = generator_from_seed_sequence(self._seed_sequence)

    def state_digest(self) -> str:
        return generator_state_digest(self._rng)

    def generate(self, *, slot: int = 0, level: int = 1) -> Runner:
        runner_type = GENERATED_TYPES[int(self._rng.integers(0, len(GENERATED_TYPES)))]
        stats = {stat.value: 0 for stat in STAT_ORDER}
        stats[runner_type.value.lower()] = self._config.runner_main_stat_allocation
        for _ in range(self._config.runner_random_stat_allocation):
            stat = STAT_ORDER[int(self._rng.integers(0, len(STAT_ORDER)))]
            stats[stat.value] += 1
        runner = Runner(slot=slot, type=runner_type, name=self._name(), level=level, **stats)
        logger.debug("Generated %s %r with %s", runner_type.value, runner.name, stats)
        return runner

    def generate_batch(self, size: int) -> Tuple[Runner, ...]:
        """Generate ``size`` level-1 runners; slots wrap around the roster."""

        if size < 0:
            raise ValueError("batch size cannot be negative")
        return tuple(self.generate(slot=index % ROSTER_SIZE) for index in range(size))

    def _name(self) -> str:
        if not self._names.is_usable:
            logger.warning("Name table is empty, using %r", FALLBACK_NAME)
            return FALLBACK_NAME
        first = self._names.first_parts[int(self._rng.integers(0, len(self._names.first_parts)))]
        second = self._names.second_parts[int(self._rng.integers(0, len(self._names.second_parts)))]
        return f"{first} {second}"


def generate_runner(
    names: NameTable | None = None,
    *,
    config: BalancingConfig | None = None,
    seed: Optional[int] = None,
    slot: int = 0,
    level: int = 1,
) -> Runner:
    return RunnerGenerator(names, config=config, seed=seed).generate(slot=slot, level=level)


def generate_runner_batch(
    size: int,
    names: NameTable | None = None,
    *,
    config: BalancingConfig | None = None,
    seed: Optional[int] = None,
) -> Tuple[Runner, ...]:
    return RunnerGenerator(names, config=config, seed=seed).generate_batch(size)


__all__ = [
    "FALLBACK_NAME",
    "GENERATED_TYPES",
    "NameTable",
    "RunnerGenerator",
    "generate_runner",
    "generate_runner_batch",
]

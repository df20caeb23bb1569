import pytest

from rules.schema import RunnerCondition, RunnerStat, RunnerType
from session.config import BalancingConfig
from session.runner_generator import (
    FALLBACK_NAME,
    GENERATED_TYPES,
    NameTable,
    RunnerGenerator,
    generate_runner,
    generate_runner_batch,
)

NAMES = NameTable(first_parts=("Neon", "Chrome", "Static"), second_parts=("Fox", "Wire"))


def _main_stat(runner_type: RunnerType) -> RunnerStat:
    return RunnerStat(runner_type.value.lower())


def test_generated_runner_follows_the_allocation() -> None:
    for seed in range(20):
        runner = generate_runner(NAMES, seed=seed)

        assert runner.type in GENERATED_TYPES
        assert runner.condition is RunnerCondition.READY
        assert (runner.level, runner.contracts_completed) == (1, 0)
        total = sum(runner.stat(stat) for stat in RunnerStat)
        assert total == 4
        assert runner.stat(_main_stat(runner.type)) >= 2
        first, second = runner.name.split(" ")
        assert first in NAMES.first_parts
        assert second in NAMES.second_parts


def test_allocations_come_from_the_config() -> None:
    config = BalancingConfig(runner_main_stat_allocation=5, runner_random_stat_allocation=0)

    runner = generate_runner(NAMES, config=config, seed=3)

    assert runner.stat(_main_stat(runner.type)) == 5
    assert sum(runner.stat(stat) for stat in RunnerStat) == 5


def test_empty_name_table_uses_the_fallback_name() -> None:
    assert generate_runner(seed=1).name == FALLBACK_NAME
    assert generate_runner(NameTable(first_parts=("Neon",)), seed=1).name == FALLBACK_NAME


def test_same_seed_same_runners_and_reset_replays() -> None:
    generator = RunnerGenerator(NAMES, seed=99)
    first = generator.generate_batch(5)

    assert first == generate_runner_batch(5, NAMES, seed=99)

    generator.reset()
    assert generator.generate_batch(5) == first


def test_batch_wraps_slots_around_the_roster() -> None:
    batch = generate_runner_batch(5, NAMES, seed=7)

    assert [runner.slot for runner in batch] == [0, 1, 2, 0, 1]
    assert generate_runner_batch(0, NAMES, seed=7) == ()
    with pytest.raises(ValueError):
        generate_runner_batch(-1, NAMES, seed=7)


def test_state_digest_moves_with_each_runner() -> None:
    generator = RunnerGenerator(NAMES, seed=11)
    before = generator.state_digest()

    generator.generate(slot=2, level=4)

    assert generator.state_digest() != before


def test_name_table_from_rows_skips_blank_cells() -> None:
    table = NameTable.from_rows([["Neon", "Fox"], ["", "Wire"], ["Chrome", " "], ["lonely"]])

    assert table == NameTable(first_parts=("Neon", "Chrome"), second_parts=("Fox", "Wire"))
    assert table.is_usable
    assert not NameTable().is_usable

import pytest

from rules.conditions import ConditionRegistry
from rules.errors import MalformedEffect, UnknownConditionKind
from rules.parser import parse_condition, parse_effect
from rules.schema import (
    AlwaysCondition,
    Comparison,
    ExtensionCondition,
    NodeColor,
    NodeColorComboCondition,
    NodeColorCondition,
    Operator,
    PoolStat,
    RunnerStat,
    RunnerStatCondition,
    RunnerType,
    RunnerTypeCondition,
)


def test_parse_simple_money_effect() -> None:
    effect = parse_effect("None;+;50;Money")

    assert isinstance(effect.condition, AlwaysCondition)
    assert effect.operator is Operator.ADD
    assert effect.amount == 50
    assert effect.stat is PoolStat.MONEY
    assert effect.raw == "None;+;50;Money"


def test_parse_effect_accepts_negative_amount_and_whitespace() -> None:
    effect = parse_effect(" RunnerType:hacker ; - ; -3 ; risk ")

    assert effect.condition == RunnerTypeCondition(runner_type=RunnerType.HACKER)
    assert effect.operator is Operator.SUBTRACT
    assert effect.amount == -3
    assert effect.stat is PoolStat.RISK


def test_parse_runner_stat_condition_with_summed_stats() -> None:
    condition = parse_condition("RunnerStat:face+Muscle>=6")

    assert condition == RunnerStatCondition(
        stats=(RunnerStat.FACE, RunnerStat.MUSCLE), comparison=Comparison.GREATER_EQUAL, value=6
    )


def test_double_equals_is_an_alias_for_equals() -> None:
    condition = parse_condition("RunnerStat:ninja==2")

    assert isinstance(condition, RunnerStatCondition)
    assert condition.comparison is Comparison.EQUAL


def test_parse_color_conditions() -> None:
    assert parse_condition("NodeColor:red") == NodeColorCondition(color=NodeColor.RED)
    combo = parse_condition("NodeColorCombo:Red, Blue,Red")
    assert combo == NodeColorComboCondition(colors=(NodeColor.RED, NodeColor.BLUE))


def test_division_by_zero_is_still_syntactically_valid() -> None:
    effect = parse_effect("None;/;0;Damage")

    assert effect.operator is Operator.DIVIDE
    assert effect.amount == 0


@pytest.mark.parametrize(
    ("raw", "reason", "fragment"),
    [
        ("None;+;5", "field_count", "None;+;5"),
        ("None;+;5;damage;extra", "field_count", "None;+;5;damage;extra"),
        ("None;%;5;damage", "operator", "%"),
        ("None;+;five;damage", "amount", "five"),
        ("None;+;2.5;damage", "amount", "2.5"),
        ("None;+;5;health", "stat", "health"),
        ("RunnerType:Wizard;+;5;damage", "condition", "Wizard"),
        ("RunnerType:Empty;+;5;damage", "condition", "Empty"),
        ("RunnerStat:luck>=2;+;5;damage", "condition", "luck"),
        ("RunnerStat:muscle;+;5;damage", "condition", "muscle"),
        ("NodeColor:Pink;+;5;damage", "condition", "Pink"),
        (";+;5;damage", "condition", ""),
    ],
)
def test_malformed_effects_report_reason_and_fragment(raw: str, reason: str, fragment: str) -> None:
    with pytest.raises(MalformedEffect) as excinfo:
        parse_effect(raw)

    assert excinfo.value.reason == reason
    assert excinfo.value.fragment == fragment
    assert excinfo.value.code == "ERR_MALFORMED_EFFECT"


def test_unknown_condition_kind_is_rejected_at_parse_time() -> None:
    with pytest.raises(UnknownConditionKind) as excinfo:
        parse_effect("Moon:full;+;1;money")

    assert excinfo.value.kind == "Moon"


def test_extension_kinds_parse_to_extension_conditions() -> None:
    effect = parse_effect("PrevDam;+;1;money")

    assert effect.condition == ExtensionCondition(name="PrevDam")
    assert parse_condition("ColorForEach:Red") == ExtensionCondition(name="ColorForEach", argument="Red")


def test_registered_names_are_accepted_by_the_parser() -> None:
    custom = ConditionRegistry()
    custom.register("Always", lambda condition, context: True)

    effect = parse_effect("Always;+;1;veil", condition_registry=custom)

    assert effect.condition == ExtensionCondition(name="Always")

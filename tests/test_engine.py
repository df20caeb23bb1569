import itertools

import pytest

from rules.conditions import ConditionRegistry
from rules.engine import EffectOutcome, PoolAggregator, apply_effect, recompute_pools
from rules.errors import DivisionByZero
from rules.parser import parse_effect
from rules.prevention import Pools
from rules.schema import Contract, Node, Runner, default_roster


def _star(*effects: tuple) -> Contract:
    """Start node ``S`` connected to one node per effect pair, named N1, N2, ..."""

    children = [
        Node(id=f"N{index}", color=color, effect1=first, effect2=second)
        for index, (color, first, second) in enumerate(effects, start=1)
    ]
    nodes = [Node(id="S", kind="Start", connections=[child.id for child in children])]
    nodes.extend(children)
    return Contract(nodes=nodes)


def test_money_effect_applies_regardless_of_roster() -> None:
    contract = _star(("Grey", "None;+;50;Money", None))

    for roster in (default_roster(), (Runner(slot=0, type="Ninja", ninja=5),)):
        result = recompute_pools(contract, ("S", "N1"), roster)
        assert result.pools.money == 50


def test_unselected_nodes_contribute_nothing() -> None:
    contract = _star(("Grey", "None;+;50;Money", None))

    result = recompute_pools(contract, ("S",), default_roster())

    assert result.pools == Pools()
    assert result.trace == ()


def test_trace_records_applied_and_unmet_effects() -> None:
    contract = _star(("Red", "None;+;3;damage", "RunnerType:Face;+;2;risk"))

    result = recompute_pools(contract, ("S", "N1"), default_roster())

    assert [entry.outcome for entry in result.trace] == [EffectOutcome.APPLIED, EffectOutcome.CONDITION_NOT_MET]
    applied = result.trace[0]
    assert (applied.node_id, applied.slot, applied.stat, applied.before, applied.after) == ("N1", 1, "damage", 0, 3)
    assert result.pools.risk == 0


def test_selection_order_does_not_change_the_result() -> None:
    contract = _star(
        ("Grey", "None;+;10;money", "None;+;6;grit"),
        ("Red", "None;*;3;money", "None;+;4;damage"),
        ("Blue", "None;-;4;money", "NodeColor:Red;/;2;grit"),
        ("Green", "None;/;2;money", "None;+;1;damage"),
    )
    picks = contract.node_ids

    results = [recompute_pools(contract, order, default_roster()) for order in itertools.permutations(picks)]

    first = results[0]
    assert all(result == first for result in results)
    # Additive effects first: money 10 - 4 = 6, then * 3 / 2 = 9; grit 6 / 2 = 3.
    assert first.raw_pools == Pools(damage=5, risk=0, money=9, grit=3, veil=0)
    assert first.prevention.damage_prevented == 1
    assert first.pools.damage == 4


def test_recompute_is_idempotent() -> None:
    contract = _star(("Red", "None;+;3;damage", "None;+;5;grit"), ("Blue", "NodeColor:Red;+;2;veil", None))
    aggregator = PoolAggregator(contract)
    roster = (Runner(slot=0, type="Hacker", hacker=2),)

    first = aggregator.recompute(("S", "N1", "N2"), roster)
    second = aggregator.recompute(("S", "N1", "N2"), roster)

    assert first == second
    assert first.to_payload() == second.to_payload()


def test_division_by_zero_is_recorded_and_skipped() -> None:
    contract = _star(("Grey", "None;/;0;Damage", "None;+;5;money"), ("Grey", "None;+;4;damage", None))

    result = recompute_pools(contract, ("S", "N1", "N2"), default_roster())

    assert result.pools.damage == 4
    assert result.pools.money == 5
    failures = result.failures()
    assert len(failures) == 1
    assert failures[0].node_id == "N1"
    assert failures[0].error.code == "ERR_DIVISION_BY_ZERO"


def test_malformed_and_unknown_effects_do_not_abort_the_pass() -> None:
    contract = _star(
        ("Grey", "None;+;lots;damage", "PrevDam;+;2;damage"),
        ("Grey", "None;+;1;damage", None),
    )

    result = recompute_pools(contract, ("S", "N1", "N2"), default_roster())

    assert result.pools.damage == 1
    codes = [entry.error.code for entry in result.failures()]
    assert codes == ["ERR_MALFORMED_EFFECT", "ERR_UNKNOWN_CONDITION_KIND"]


def test_registered_extension_conditions_are_applied() -> None:
    custom = ConditionRegistry()
    custom.register("PrevDam", lambda condition, context: len(context.selection) >= 2)
    contract = _star(("Grey", "PrevDam;+;2;veil", None))

    result = recompute_pools(contract, ("S", "N1"), default_roster(), condition_registry=custom)

    assert result.pools.veil == 2
    assert result.failures() == ()


def test_gate_effects_are_ignored() -> None:
    gate = Node(id="G", kind="Gate", gate_condition="Node:S;0", effect1="None;+;99;money")
    contract = Contract(nodes=[Node(id="S", kind="Start", connections=["G"]), gate])

    result = recompute_pools(contract, ("S", "G"), default_roster())

    assert result.selected == ("S", "G")
    assert result.pools.money == 0


def test_unsupported_selections_are_not_counted() -> None:
    contract = _star(("Grey", "None;+;7;money", None))

    # N1 without its parent S is not effectively selected.
    result = recompute_pools(contract, ("N1",), default_roster())

    assert result.selected == ()
    assert result.pools.money == 0


def test_prevention_runs_after_aggregation() -> None:
    contract = _star(("Grey", "None;+;5;damage", "None;+;7;grit"), ("Grey", "None;+;4;risk", "None;+;1;veil"))

    result = recompute_pools(contract, ("S", "N1", "N2"), default_roster())

    assert result.pools.damage == 2
    assert result.pools.grit == 7
    assert result.pools.risk == 4
    assert result.prevention.damage_prevented == 3
    assert result.prevention.risk_prevented == 0


def test_apply_effect_floors_division() -> None:
    pools = Pools(money=-7)

    assert apply_effect(pools, parse_effect("None;/;2;money")).money == -4

    with pytest.raises(DivisionByZero):
        apply_effect(pools, parse_effect("None;/;0;money"))

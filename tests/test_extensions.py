import itertools

import pytest

from rules.conditions import ConditionRegistry, evaluate_condition, registry
from rules.engine import EffectOutcome, recompute_pools
from rules.errors import UnknownConditionKind
from rules.extensions import build_prevention_registry, register_prevention_conditions
from rules.parser import parse_condition
from rules.prevention import Pools, prevent
from rules.schema import Contract, Node, default_roster


def _contract() -> Contract:
    return Contract(
        nodes=[
            Node(id="S", kind="Start", connections=["N1", "N2", "N3"]),
            Node(id="N1", color="Red", effect1="None;+;5;damage", effect2="None;+;4;grit"),
            Node(id="N2", color="Blue", effect1="PrevDam;+;100;money", effect2="PrevRisk;+;7;money"),
            Node(id="N3", color="Green", effect1="None;+;3;risk", effect2="None;+;6;veil"),
        ]
    )


def test_default_registry_stays_empty() -> None:
    assert registry.names() == ()
    with pytest.raises(UnknownConditionKind):
        evaluate_condition(parse_condition("RiskDamPair"), default_roster(), ())


def test_prevention_registry_knows_all_four_kinds() -> None:
    assert build_prevention_registry().names() == ("ColorForEach", "PrevDam", "PrevRisk", "RiskDamPair")

    taken = ConditionRegistry()
    taken.register("PrevDam", lambda condition, context: True)
    with pytest.raises(ValueError):
        register_prevention_conditions(taken)


def test_prev_dam_reads_the_preliminary_prevention() -> None:
    result = recompute_pools(
        _contract(), ("S", "N1", "N2"), default_roster(), condition_registry=build_prevention_registry()
    )

    assert result.preliminary_prevention is not None
    assert result.preliminary_prevention.damage_prevented == 2
    assert result.preliminary_prevention.risk_prevented == 0
    assert result.pools.money == 100
    assert result.pools.damage == 3
    outcomes = {(entry.node_id, entry.slot): entry.outcome for entry in result.trace}
    assert outcomes[("N2", 1)] is EffectOutcome.APPLIED
    assert outcomes[("N2", 2)] is EffectOutcome.CONDITION_NOT_MET
    assert "preliminary_prevention" in result.to_payload()


def test_prev_risk_and_pairs_need_both_shields() -> None:
    extensions = build_prevention_registry()
    contract = Contract(
        nodes=[
            Node(id="S", kind="Start", connections=["D", "P", "V"]),
            Node(id="D", effect1="None;+;2;damage", effect2="None;+;2;grit"),
            Node(id="P", effect1="RiskDamPair;+;1;money", effect2="None;+;1;risk"),
            Node(id="V", effect1="None;+;2;veil", effect2="PrevRisk;+;10;money"),
        ]
    )

    without_veil = recompute_pools(contract, ("S", "D", "P"), default_roster(), condition_registry=extensions)
    assert without_veil.pools.money == 0

    with_veil = recompute_pools(contract, ("S", "D", "P", "V"), default_roster(), condition_registry=extensions)
    assert with_veil.pools.money == 11


def test_preliminary_prevention_ignores_multiplicative_effects() -> None:
    contract = Contract(
        nodes=[
            Node(id="S", kind="Start", connections=["A", "B"]),
            Node(id="A", effect1="None;+;4;damage", effect2="None;+;4;grit"),
            Node(id="B", effect1="None;*;0;grit", effect2="PrevDam;+;1;money"),
        ]
    )

    result = recompute_pools(
        contract, ("S", "A", "B"), default_roster(), condition_registry=build_prevention_registry()
    )

    assert result.preliminary_prevention == prevent(Pools(damage=4, grit=4))[1]
    assert result.pools.money == 1
    assert result.prevention.damage_prevented == 0
    assert result.pools.damage == 4


def test_extension_effects_do_not_feed_their_own_prevention() -> None:
    contract = Contract(
        nodes=[
            Node(id="S", kind="Start", connections=["A"]),
            Node(id="A", effect1="PrevDam;+;4;grit", effect2="None;+;3;damage"),
        ]
    )

    result = recompute_pools(
        contract, ("S", "A"), default_roster(), condition_registry=build_prevention_registry()
    )

    assert result.pools.grit == 0
    assert result.pools.damage == 3
    assert result.trace[0].outcome is EffectOutcome.CONDITION_NOT_MET


def test_color_for_each_counts_selected_non_gate_nodes() -> None:
    contract = Contract(
        nodes=[
            Node(id="S", kind="Start", color="Red", connections=["C"]),
            Node(id="C", color="Blue", effect1="ColorForEach;+;1;money"),
        ]
    )
    extensions = build_prevention_registry()

    assert evaluate_condition(parse_condition("ColorForEach"), (), ("C",), contract, condition_registry=extensions)
    assert not evaluate_condition(parse_condition("ColorForEach"), (), (), contract, condition_registry=extensions)
    assert recompute_pools(contract, ("S", "C"), default_roster(), condition_registry=extensions).pools.money == 1


def test_extension_results_do_not_depend_on_pick_order() -> None:
    extensions = build_prevention_registry()
    contract = _contract()
    picks = ("S", "N1", "N2", "N3")

    baseline = recompute_pools(contract, picks, default_roster(), condition_registry=extensions)
    assert baseline.pools.money == 107

    for order in itertools.permutations(picks):
        assert recompute_pools(contract, order, default_roster(), condition_registry=extensions) == baseline


def test_passes_without_extension_conditions_have_no_preliminary_prevention() -> None:
    result = recompute_pools(_contract(), ("S", "N1", "N3"), default_roster())

    assert result.preliminary_prevention is None

from rules.prevention import Pools, prevent


def test_grit_prevents_damage_at_two_to_one() -> None:
    final, breakdown = prevent(Pools(damage=5, grit=7))

    assert breakdown.damage_prevented == 3
    assert breakdown.grit_consumed == 6
    assert breakdown.grit_remaining == 1
    assert final.damage == 2
    assert final.grit == 7


def test_odd_veil_below_two_prevents_nothing() -> None:
    final, breakdown = prevent(Pools(risk=4, veil=1))

    assert breakdown.risk_prevented == 0
    assert breakdown.veil_consumed == 0
    assert final.risk == 4


def test_prevention_never_exceeds_the_total() -> None:
    final, breakdown = prevent(Pools(damage=2, grit=20, risk=1, veil=9))

    assert breakdown.damage_prevented == 2
    assert breakdown.grit_consumed == 4
    assert breakdown.risk_prevented == 1
    assert final.damage == 0
    assert final.risk == 0


def test_negative_totals_are_left_alone() -> None:
    final, breakdown = prevent(Pools(damage=-3, grit=10, risk=-1, veil=4))

    assert breakdown.damage_prevented == 0
    assert breakdown.risk_prevented == 0
    assert final.damage == -3
    assert final.risk == -1


def test_negative_grit_prevents_nothing() -> None:
    final, breakdown = prevent(Pools(damage=4, grit=-6))

    assert breakdown.damage_prevented == 0
    assert final.damage == 4


def test_money_is_untouched() -> None:
    final, _ = prevent(Pools(money=-40, damage=1, grit=2))

    assert final.money == -40

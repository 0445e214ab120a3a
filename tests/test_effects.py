"""Tests for applying resolved outcomes to unit state."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from mechcombat.attacks import AttackType
from mechcombat.combat import AttackOutcome, DamageRecord, StatusChange, StatusKind
from mechcombat.criticals import CriticalHit, HitLocationOverride, Knockback, PilotEffect, PilotEffectKind
from mechcombat.effects import ApplyResult, EffectApplicator, troops_for_damage
from mechcombat.errors import InvariantViolation, OutcomeAlreadyApplied
from mechcombat.locations import HitLocation
from mechcombat.units import Ability, MovementState, MoveType, SwarmAttachment, UnitRoster
from tests.helpers.factories import make_context, make_infantry, make_mech, make_vehicle


def _outcome(attacker, target, attack_type=AttackType.PUNCH, **fields) -> AttackOutcome:
    fields.setdefault("hit", True)
    return AttackOutcome(attacker_id=attacker.id, target_id=target.id, attack_type=attack_type, **fields)


def test_troop_conversion_rounds_up() -> None:
    assert troops_for_damage(6) == 3
    assert troops_for_damage(5) == 3
    assert troops_for_damage(1) == 1
    assert troops_for_damage(0) == 0


def test_infantry_takes_damage_as_troops() -> None:
    infantry = make_infantry(troops=10)
    result = ApplyResult(outcome_id="direct")
    EffectApplicator().damage_unit(infantry, HitLocation.SQUAD, 6, result)
    assert infantry.troops == 7
    assert result.troops_lost == {"inf-a": 3}


def test_outcome_applies_only_once() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    outcome = _outcome(attacker, target, damage=5, location=HitLocation.CENTER_TORSO)
    applicator = EffectApplicator()

    applicator.apply(target, attacker, outcome)
    assert target.armor[HitLocation.CENTER_TORSO] == 27
    with pytest.raises(OutcomeAlreadyApplied):
        applicator.apply(target, attacker, outcome)
    assert target.armor[HitLocation.CENTER_TORSO] == 27


def test_rejected_outcome_changes_nothing() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    applicator = EffectApplicator()

    negative = _outcome(attacker, target, damage=-3, location=HitLocation.CENTER_TORSO)
    with pytest.raises(InvariantViolation):
        applicator.apply(target, attacker, negative)
    assert not applicator.was_applied(negative)
    assert not attacker.has_attacked

    stranger = _outcome(attacker, target, damage=2, location=HitLocation.CENTER_TORSO,
                        extra_damage=[DamageRecord("mech-z", HitLocation.HEAD, 2)])
    with pytest.raises(InvariantViolation):
        applicator.apply(target, attacker, stranger)
    assert target.armor[HitLocation.CENTER_TORSO] == 32


def test_mismatched_units_are_rejected() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    outcome = _outcome(attacker, target, damage=2)
    with pytest.raises(InvariantViolation):
        EffectApplicator().apply(attacker, target, outcome)


@given(hits=st.lists(st.integers(min_value=0, max_value=40), max_size=8))
@settings(max_examples=50)
def test_troops_never_rise_or_go_negative(hits: list[int]) -> None:
    infantry = make_infantry(troops=28)
    applicator = EffectApplicator()
    previous = infantry.troops
    for amount in hits:
        applicator.damage_unit(infantry, HitLocation.SQUAD, amount, ApplyResult(outcome_id="h"))
        assert 0 <= infantry.troops <= previous
        previous = infantry.troops
    assert infantry.eliminated == (infantry.troops == 0)


def test_eliminated_platoon_is_out_of_action() -> None:
    infantry = make_infantry(troops=3, swarm=SwarmAttachment("inf-a", "mech-b", HitLocation.HEAD))
    result = ApplyResult(outcome_id="x")
    EffectApplicator().damage_unit(infantry, HitLocation.SQUAD, 20, result)
    assert infantry.troops == 0
    assert infantry.out_of_action
    assert infantry.swarm is None
    assert result.eliminated == ["inf-a"]


def test_mech_damage_moves_inward() -> None:
    mech = make_mech()
    EffectApplicator().damage_unit(mech, HitLocation.LEFT_ARM, 30, ApplyResult(outcome_id="x"))
    assert mech.armor[HitLocation.LEFT_ARM] == 0
    assert mech.structure[HitLocation.LEFT_ARM] == 0
    assert mech.armor[HitLocation.LEFT_TORSO] == 18
    assert mech.structure[HitLocation.LEFT_TORSO] == 12
    assert not mech.destroyed


def test_rear_armor_covers_center_structure() -> None:
    mech = make_mech()
    EffectApplicator().damage_unit(mech, HitLocation.REAR_TORSO, 10, ApplyResult(outcome_id="x"))
    assert mech.armor[HitLocation.REAR_TORSO] == 0
    assert mech.structure[HitLocation.CENTER_TORSO] == 14
    assert mech.armor[HitLocation.CENTER_TORSO] == 32


def test_head_destruction() -> None:
    mech = make_mech()
    result = ApplyResult(outcome_id="x")
    EffectApplicator().damage_unit(mech, HitLocation.HEAD, 12, result)
    assert mech.destroyed
    assert result.destroyed == ["mech-a"]
    assert EffectApplicator().damage_unit(mech, HitLocation.CENTER_TORSO, 5, result) == 0


def test_vehicle_armor_then_structure() -> None:
    vehicle = make_vehicle()
    applicator = EffectApplicator()
    applicator.damage_unit(vehicle, HitLocation.FRONT, 6, ApplyResult(outcome_id="x"))
    assert vehicle.armor[HitLocation.FRONT] == 2
    assert vehicle.structure == 4

    result = ApplyResult(outcome_id="y")
    applicator.damage_unit(vehicle, HitLocation.FRONT, 10, result)
    assert vehicle.structure == 0
    assert vehicle.destroyed
    assert result.damage_applied == {"veh-a": 6}


def test_location_override_redirects_damage() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    outcome = _outcome(attacker, target, attack_type=AttackType.DFA, damage=12,
                       location=HitLocation.CENTER_TORSO, critical=True,
                       critical_effects=[HitLocationOverride(HitLocation.HEAD)])
    result = EffectApplicator().apply(target, attacker, outcome)
    assert target.destroyed
    assert target.armor[HitLocation.CENTER_TORSO] == 32
    assert result.destroyed == ["mech-b"]


def test_destroyed_mech_sheds_swarmers() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    rider = make_infantry("inf-b", position=(3, 2), swarm=SwarmAttachment("inf-b", "mech-b", HitLocation.LEFT_TORSO))
    roster = UnitRoster([attacker, target, rider])
    outcome = _outcome(attacker, target, damage=12, location=HitLocation.HEAD)

    EffectApplicator().apply(target, attacker, outcome, roster=roster)
    assert target.destroyed
    assert rider.swarm is None
    assert rider.fatigue == 2


def test_criticals_and_pilot_effects() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    outcome = _outcome(attacker, target, damage=2, location=HitLocation.LEFT_LEG, critical=True,
                       critical_effects=[CriticalHit(HitLocation.LEFT_LEG),
                                         PilotEffect(PilotEffectKind.STUNNED, 2)])
    result = EffectApplicator().apply(target, attacker, outcome)
    assert target.critical_hits == {HitLocation.LEFT_LEG: 1}
    assert target.stunned
    assert len(result.transitions) == 2


def test_missed_attack_skips_criticals() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    outcome = _outcome(attacker, target, hit=False, critical_effects=[CriticalHit(HitLocation.HEAD)])
    EffectApplicator().apply(target, attacker, outcome)
    assert target.critical_hits == {}
    assert attacker.has_attacked


def test_knockback_stops_at_map_edge() -> None:
    context = make_context()
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    applicator = EffectApplicator()
    applicator.apply(target, attacker, _outcome(attacker, target, critical_effects=[Knockback(1)]), context)
    assert target.position == (4, 2)

    attacker.position, target.position = (8, 2), (9, 2)
    applicator.apply(target, attacker, _outcome(attacker, target, critical_effects=[Knockback(1)]), context)
    assert target.position == (9, 2)


def test_status_requests_are_carried_out() -> None:
    attacker, target = make_mech("mech-a"), make_mech("mech-b", position=(3, 2))
    outcome = _outcome(attacker, target, attack_type=AttackType.DFA, status_changes=[
        StatusChange("mech-a", StatusKind.MOVE, (3, 2)),
        StatusChange("mech-a", StatusKind.PRONE),
        StatusChange("mech-a", StatusKind.HEAT, 2),
        StatusChange("mech-b", StatusKind.PRONE),
    ])
    EffectApplicator().apply(target, attacker, outcome)
    assert attacker.position == (3, 2)
    assert attacker.is_prone and target.is_prone
    assert attacker.heat == 2


def test_swarm_attachment_moves_infantry_onto_mech() -> None:
    infantry = make_infantry(troops=20)
    mech = make_mech("mech-b", position=(2, 2))
    outcome = _outcome(infantry, mech, attack_type=AttackType.SWARM, damage=4, location=HitLocation.CENTER_TORSO,
                       troop_losses={"inf-a": 2},
                       status_changes=[StatusChange("inf-a", StatusKind.ATTACH_SWARM, "mech-b",
                                                    HitLocation.CENTER_TORSO)])
    EffectApplicator().apply(mech, infantry, outcome)
    assert infantry.swarm == SwarmAttachment("inf-a", "mech-b", HitLocation.CENTER_TORSO)
    assert infantry.position == (2, 2)
    assert infantry.troops == 18


def test_second_swarm_is_refused_before_anything_changes() -> None:
    infantry = make_infantry(swarm=SwarmAttachment("inf-a", "mech-x", HitLocation.HEAD))
    mech = make_mech("mech-b", position=(2, 2))
    outcome = _outcome(infantry, mech, attack_type=AttackType.SWARM, damage=4,
                       status_changes=[StatusChange("inf-a", StatusKind.ATTACH_SWARM, "mech-b",
                                                    HitLocation.HEAD)])
    applicator = EffectApplicator()
    with pytest.raises(InvariantViolation):
        applicator.apply(mech, infantry, outcome)
    assert not applicator.was_applied(outcome)
    assert mech.armor[HitLocation.CENTER_TORSO] == 32


def test_spent_equipment_leaves_the_unit() -> None:
    infantry = make_infantry(equipment=("demo_charge", "rifle"))
    mech = make_mech("mech-b", position=(2, 2))
    applicator = EffectApplicator()

    greedy = _outcome(infantry, mech, hit=False, consumed_equipment=[("inf-a", "demo_charge", 2)])
    with pytest.raises(InvariantViolation):
        applicator.apply(mech, infantry, greedy)

    outcome = _outcome(infantry, mech, hit=False, consumed_equipment=[("inf-a", "demo_charge", 1)])
    applicator.apply(mech, infantry, outcome)
    assert [e.name for e in infantry.equipment] == ["rifle"]


def test_minefield_needs_a_context() -> None:
    infantry = make_infantry(equipment=("anti_mech_mine",))
    mech = make_mech("mech-b", position=(2, 2))
    context = make_context()
    outcome = _outcome(infantry, mech, attack_type=AttackType.MINE_PLACEMENT, damage=6,
                       location=HitLocation.LEFT_LEG,
                       status_changes=[StatusChange("mech-b", StatusKind.MINEFIELD, 6)],
                       consumed_equipment=[("inf-a", "anti_mech_mine", 1)])
    EffectApplicator().apply(mech, infantry, outcome, context)

    assert len(context.minefields) == 1
    mines = context.minefields[0]
    assert (mines.q, mines.r, mines.owner_id, mines.damage) == (2, 2, "inf-a", 6)
    assert not infantry.has_equipment("anti_mech_mine")

    for _ in range(3):
        context.tick_minefields()
    assert context.minefields == []


def test_end_of_turn_resets() -> None:
    applicator = EffectApplicator()
    mech = make_mech(jumped=3, has_attacked=True, suppressed=True, pilot_effects={"stunned": 2, "injured": 1})
    applicator.end_of_turn(mech)
    assert not mech.has_attacked
    assert mech.movement == MovementState(MoveType.NONE, 0)
    assert not mech.suppressed
    assert mech.pilot_effects == {"stunned": 1}

    resting = make_infantry(fatigue=3)
    riding = make_infantry("inf-b", fatigue=3, swarm=SwarmAttachment("inf-b", "mech-a", HitLocation.HEAD))
    applicator.end_of_turn(resting)
    applicator.end_of_turn(riding)
    assert resting.fatigue == 2
    assert riding.fatigue == 3



def test_attacking_reveals_a_hidden_unit() -> None:
    attacker = make_infantry("inf-a", position=(3, 2), hidden=True)
    target = make_mech("mech-b", position=(2, 2))
    result = EffectApplicator().apply(target, attacker, _outcome(attacker, target, hit=False))
    assert not attacker.hidden
    assert attacker.has_attacked
    assert result.transitions == ["inf-a: revealed"]


def test_entrenchment_cooldown_runs_down() -> None:
    applicator = EffectApplicator()
    diggers = make_infantry(abilities={Ability.ENTRENCHMENT})
    applicator.entrench(diggers)
    assert diggers.entrenched
    assert diggers.entrench_cooldown == 2

    applicator.end_of_turn(diggers)
    assert diggers.entrenched
    assert diggers.entrench_cooldown == 1
    applicator.abandon_entrenchment(diggers)
    assert not diggers.entrenched

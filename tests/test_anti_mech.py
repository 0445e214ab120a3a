"""Tests for infantry anti-mech attacks and dislodging."""

import pytest

from mechcombat.attacks import AttackParams, AttackType, DislodgeMethod
from mechcombat.combat import AntiMechCombat, StatusKind
from mechcombat.criticals import CriticalHit, ForcedPilotingRoll, PilotEffect, PilotEffectKind
from mechcombat.effects import EffectApplicator
from mechcombat.locations import HitLocation
from mechcombat.map import TerrainType
from mechcombat.units import MovementState, MoveType, Posture, SwarmAttachment
from tests.helpers.factories import ScriptedDice, make_context, make_infantry, make_mech

PARAMS = AttackParams()


def _swarmers(troops: int = 20, equipment=("srm", "jump_pack", "vibro_blade"), **fields):
    return make_infantry("inf-a", troops=troops, position=(3, 2), equipment=equipment, **fields)


def test_assault_mech_needs_magnetic_clamp() -> None:
    infantry = _swarmers(anti_mech_training=True)
    target = make_mech("mech-b", tonnage=85, position=(2, 2))
    result = AntiMechCombat(rng_seed=1).validate(infantry, target, AttackType.SWARM, make_context(), PARAMS)

    assert not result.legal
    assert result.reason == "Swarming a 85-ton mech requires a magnetic clamp (80+ tons)"


def test_heavy_mech_needs_jump_pack_or_training() -> None:
    infantry = _swarmers(equipment=("srm",))
    target = make_mech("mech-b", tonnage=60, position=(2, 2))
    combat = AntiMechCombat(rng_seed=1)
    context = make_context()

    result = combat.validate(infantry, target, AttackType.SWARM, context, PARAMS)
    assert not result.legal
    assert "jump pack" in result.reason

    infantry.anti_mech_training = True
    assert combat.validate(infantry, target, AttackType.SWARM, context, PARAMS).legal


def test_swarm_preconditions() -> None:
    combat = AntiMechCombat(rng_seed=1)
    context = make_context()
    target = make_mech("mech-b", tonnage=50, position=(2, 2))

    moved = _swarmers(movement=MovementState(MoveType.WALK, 1))
    assert combat.validate(moved, target, AttackType.SWARM, context, PARAMS).reason == \
        "Cannot swarm after moving this turn"

    too_few = _swarmers(troops=9)
    assert "at least 10 troops" in combat.validate(too_few, target, AttackType.SWARM, context, PARAMS).reason

    far = _swarmers()
    far.position = (5, 2)
    assert not combat.validate(far, target, AttackType.SWARM, context, PARAMS).legal

    attached = _swarmers(swarm=SwarmAttachment("inf-a", "mech-x", HitLocation.HEAD))
    assert "already swarming" in combat.validate(attached, target, AttackType.SWARM, context, PARAMS).reason

    assert not combat.validate(make_mech("m", position=(3, 2)), target, AttackType.SWARM, context, PARAMS).legal


def test_leg_attack_needs_same_hex() -> None:
    combat = AntiMechCombat(rng_seed=1)
    context = make_context()
    target = make_mech("mech-b", position=(2, 2))
    infantry = _swarmers()
    assert not combat.validate(infantry, target, AttackType.LEG_ATTACK, context, PARAMS).legal
    infantry.position = (2, 2)
    assert combat.validate(infantry, target, AttackType.LEG_ATTACK, context, PARAMS).legal


def test_equipment_requirements() -> None:
    combat = AntiMechCombat(rng_seed=1)
    context = make_context()
    target = make_mech("mech-b", position=(2, 2))
    infantry = _swarmers(equipment=("rifle",))

    assert "anti-mech mine" in combat.validate(infantry, target, AttackType.MINE_PLACEMENT, context, PARAMS).reason
    assert "demo charge" in combat.validate(infantry, target, AttackType.EXPLOSIVE, context, PARAMS).reason

    infantry.swarm = SwarmAttachment("inf-a", "mech-b", HitLocation.HEAD)
    assert "vibro blade" in combat.validate(infantry, target, AttackType.CRITICAL_SYSTEM, context, PARAMS).reason


def test_follow_up_attacks_need_attachment() -> None:
    combat = AntiMechCombat(rng_seed=1)
    context = make_context()
    target = make_mech("mech-b", position=(2, 2))
    infantry = _swarmers()
    result = combat.validate(infantry, target, AttackType.CONTINUE_SWARM, context, PARAMS)
    assert result.reason == "inf-a is not swarming mech-b"


def test_swarm_to_hit() -> None:
    infantry = _swarmers(equipment=("magnetic_clamp", "climbing_gear"))
    target = make_mech("mech-b", tonnage=85, position=(2, 2))
    context = make_context(terrain={(2, 2): TerrainType.WOODS})
    to_hit = AntiMechCombat(rng_seed=1).calculate_to_hit(infantry, target, AttackType.SWARM, context, PARAMS)
    assert [(m.label, m.delta) for m in to_hit.modifiers] == [
        ("assault target", -1),
        ("climbing gear", -1),
        ("magnetic clamp", -2),
        ("woods cover", -1),
    ]
    assert to_hit.target_number == 3


def test_successful_swarm_requests_attachment() -> None:
    infantry = _swarmers()
    target = make_mech("mech-b", tonnage=50, position=(2, 2))
    dice = ScriptedDice(faces=[6, 3, 3], chances=[False])
    combat = AntiMechCombat(dice=dice)
    context = make_context()
    to_hit = combat.calculate_to_hit(infantry, target, AttackType.SWARM, context, PARAMS)
    outcome = combat.resolve(infantry, target, AttackType.SWARM, to_hit, context, PARAMS)

    assert outcome.hit
    assert outcome.damage == 12
    assert outcome.location == HitLocation.CENTER_TORSO
    assert outcome.troop_losses == {"inf-a": 5}
    changes = [(c.unit_id, c.kind, c.value) for c in outcome.status_changes]
    assert changes == [
        ("inf-a", StatusKind.FATIGUE, 2),
        ("inf-a", StatusKind.ATTACH_SWARM, "mech-b"),
    ]
    assert outcome.status_changes[1].location == HitLocation.CENTER_TORSO


def test_failed_swarm_costs_troops() -> None:
    infantry = _swarmers(troops=24)
    target = make_mech("mech-b", tonnage=50, position=(2, 2))
    dice = ScriptedDice().push_2d6(4)
    combat = AntiMechCombat(dice=dice)
    context = make_context()
    to_hit = combat.calculate_to_hit(infantry, target, AttackType.SWARM, context, PARAMS)
    outcome = combat.resolve(infantry, target, AttackType.SWARM, to_hit, context, PARAMS)
    assert not outcome.hit
    assert outcome.troop_losses == {"inf-a": 4}
    assert outcome.damage == 0


def test_continue_swarm_hits_automatically() -> None:
    infantry = _swarmers(troops=15, swarm=SwarmAttachment("inf-a", "mech-b", HitLocation.LEFT_TORSO))
    target = make_mech("mech-b", tonnage=50, position=(2, 2), piloting=5)
    dice = ScriptedDice(chances=[False]).push_2d6(10)
    combat = AntiMechCombat(dice=dice)
    context = make_context()
    to_hit = combat.calculate_to_hit(infantry, target, AttackType.CONTINUE_SWARM, context, PARAMS)
    outcome = combat.resolve(infantry, target, AttackType.CONTINUE_SWARM, to_hit, context, PARAMS)

    assert outcome.hit
    assert outcome.roll is None
    assert outcome.location == HitLocation.LEFT_TORSO
    assert outcome.damage == 15 // 3 + 2
    assert outcome.troop_losses == {"inf-a": 3}
    assert ForcedPilotingRoll(1) in outcome.critical_effects


def test_mine_placement_leaves_a_minefield_request() -> None:
    infantry = _swarmers(troops=12, equipment=("anti_mech_mine",))
    target = make_mech("mech-b", position=(2, 2))
    dice = ScriptedDice(faces=[6, 6, 4], chances=[False])
    combat = AntiMechCombat(dice=dice)
    context = make_context()
    to_hit = combat.calculate_to_hit(infantry, target, AttackType.MINE_PLACEMENT, context, PARAMS)
    outcome = combat.resolve(infantry, target, AttackType.MINE_PLACEMENT, to_hit, context, PARAMS)

    assert outcome.hit
    assert outcome.damage == 6
    assert outcome.location == HitLocation.LEFT_LEG
    assert outcome.consumed_equipment == [("inf-a", "anti_mech_mine", 1)]
    assert ("mech-b", StatusKind.MINEFIELD, 6) in [(c.unit_id, c.kind, c.value) for c in outcome.status_changes]


def test_dislodge_by_shaking() -> None:
    mech = make_mech("mech-b", position=(2, 2))
    infantry = _swarmers(swarm=SwarmAttachment("inf-a", "mech-b", HitLocation.HEAD))
    infantry.position = (2, 2)
    params = AttackParams(method=DislodgeMethod.SHAKE)
    dice = ScriptedDice(chances=[True]).push_2d6(11)
    combat = AntiMechCombat(dice=dice)
    context = make_context()

    assert combat.validate(mech, infantry, AttackType.DISLODGE, context, params).legal
    to_hit = combat.calculate_to_hit(mech, infantry, AttackType.DISLODGE, context, params)
    outcome = combat.resolve(mech, infantry, AttackType.DISLODGE, to_hit, context, params)

    assert outcome.hit
    assert outcome.troop_losses == {"inf-a": 10}
    assert [(c.unit_id, c.kind) for c in outcome.status_changes] == [("inf-a", StatusKind.DETACH_SWARM)]


def test_dislodge_rules() -> None:
    mech = make_mech("mech-b", position=(2, 2))
    infantry = _swarmers()
    combat = AntiMechCombat(rng_seed=1)
    context = make_context()

    water = AttackParams(method=DislodgeMethod.WATER)
    assert "not swarming" in combat.validate(mech, infantry, AttackType.DISLODGE, context, water).reason

    infantry.swarm = SwarmAttachment("inf-a", "mech-b", HitLocation.HEAD)
    assert combat.validate(mech, infantry, AttackType.DISLODGE, context, water).reason == \
        "Mech is not in a water hex"
    assert combat.validate(mech, infantry, AttackType.DISLODGE, context, PARAMS).reason == \
        "Dislodge requires a method"

    deep = make_context(terrain={(2, 2): TerrainType.DEEP_WATER})
    assert combat.validate(mech, infantry, AttackType.DISLODGE, deep, water).legal


def _resolve(combat, attacker, target, attack_type, context, params=PARAMS):
    to_hit = combat.calculate_to_hit(attacker, target, attack_type, context, params)
    return combat.resolve(attacker, target, attack_type, to_hit, context, params)


def _changes(outcome):
    return [(c.unit_id, c.kind, c.value) for c in outcome.status_changes]


@pytest.mark.parametrize("terrain,damage,modifier", [
    (None, 9, 3),
    (TerrainType.ROUGH, 10, 4),
    (TerrainType.WOODS, 10, 4),
])
def test_leg_attack(terrain, damage, modifier) -> None:
    infantry = _swarmers(troops=20, equipment=("vibro_blade",))
    infantry.position = (2, 2)
    target = make_mech("mech-b", tonnage=50, position=(2, 2))
    context = make_context(terrain={(2, 2): terrain} if terrain else None)
    dice = ScriptedDice(faces=[6, 2, 5]).push_2d6(10)

    outcome = _resolve(AntiMechCombat(dice=dice), infantry, target, AttackType.LEG_ATTACK, context)

    assert outcome.hit
    # 20 // 3 + 3 for the vibro blade, +1 on rough footing
    assert outcome.damage == damage
    assert outcome.location == HitLocation.LEFT_LEG
    assert outcome.troop_losses == {"inf-a": 2}
    assert outcome.critical_effects == [ForcedPilotingRoll(modifier)]
    assert _changes(outcome) == [("inf-a", StatusKind.FATIGUE, 1)]
    assert any("passes piloting roll (10 vs" in m for m in outcome.messages)


def test_leg_attack_can_topple_the_mech() -> None:
    infantry = _swarmers(troops=12, equipment=("rifle",))
    infantry.position = (2, 2)
    target = make_mech("mech-b", tonnage=50, position=(2, 2))
    dice = ScriptedDice(faces=[6, 3, 1]).push_2d6(5, 7)

    outcome = _resolve(AntiMechCombat(dice=dice), infantry, target, AttackType.LEG_ATTACK, make_context())

    assert outcome.damage == 4
    assert outcome.location == HitLocation.RIGHT_LEG
    assert outcome.critical_effects == [ForcedPilotingRoll(3)]
    assert ("mech-b", StatusKind.PRONE, None) in _changes(outcome)
    assert [(d.unit_id, d.location, d.amount) for d in outcome.extra_damage] == \
        [("mech-b", HitLocation.CENTER_TORSO, 5)]


def test_explosive_uses_every_charge() -> None:
    infantry = _swarmers(troops=10, equipment=[{"name": "demo_charge", "quantity": 3}])
    target = make_mech("mech-b", tonnage=50, position=(2, 2))
    dice = ScriptedDice().push_2d6(8, 7)
    context = make_context()

    outcome = _resolve(AntiMechCombat(dice=dice), infantry, target, AttackType.EXPLOSIVE, context)

    assert outcome.hit
    assert outcome.damage == 15
    assert outcome.location == HitLocation.CENTER_TORSO
    assert outcome.troop_losses == {"inf-a": 2}
    assert outcome.consumed_equipment == [("inf-a", "demo_charge", 3)]

    EffectApplicator().apply(target, infantry, outcome, context)
    assert infantry.equipment_count("demo_charge") == 0
    assert not infantry.has_equipment("demo_charge")
    assert infantry.troops == 8
    assert target.armor[HitLocation.CENTER_TORSO] == 17


@pytest.mark.parametrize("location,effect", [
    (HitLocation.HEAD, PilotEffect(PilotEffectKind.INJURED, 2)),
    (HitLocation.CENTER_TORSO, CriticalHit(HitLocation.CENTER_TORSO, 2)),
    (HitLocation.REAR_TORSO, CriticalHit(HitLocation.CENTER_TORSO, 2)),
])
def test_critical_system_always_crits(location, effect) -> None:
    infantry = _swarmers(troops=15, equipment=("vibro_blade",),
                         swarm=SwarmAttachment("inf-a", "mech-b", location))
    infantry.position = (2, 2)
    target = make_mech("mech-b", tonnage=50, position=(2, 2))
    dice = ScriptedDice().push_2d6(9)
    combat = AntiMechCombat(dice=dice)
    context = make_context()

    assert combat.validate(infantry, target, AttackType.CRITICAL_SYSTEM, context, PARAMS).legal
    to_hit = combat.calculate_to_hit(infantry, target, AttackType.CRITICAL_SYSTEM, context, PARAMS)
    assert to_hit.target_number == 8
    outcome = combat.resolve(infantry, target, AttackType.CRITICAL_SYSTEM, to_hit, context, PARAMS)

    assert outcome.hit
    # 15 // 3 + 2
    assert outcome.damage == 7
    assert outcome.location == location
    assert outcome.critical
    assert outcome.critical_effects == [effect]
    assert outcome.troop_losses == {"inf-a": 3}
    assert _changes(outcome) == [("inf-a", StatusKind.FATIGUE, 3)]


def test_inferno_swarm_heats_the_mech() -> None:
    infantry = _swarmers(troops=20, equipment=("inferno",))
    target = make_mech("mech-b", tonnage=50, position=(2, 2))
    dice = ScriptedDice(faces=[6, 3, 3], chances=[False])

    outcome = _resolve(AntiMechCombat(dice=dice), infantry, target, AttackType.SWARM, make_context())

    assert outcome.hit
    assert outcome.damage == 11
    assert _changes(outcome) == [
        ("inf-a", StatusKind.FATIGUE, 2),
        ("inf-a", StatusKind.ATTACH_SWARM, "mech-b"),
        ("mech-b", StatusKind.HEAT, 4),
    ]


def _swarmed_mech(troops: int = 20, terrain=None):
    mech = make_mech("mech-b", tonnage=50, position=(2, 2))
    infantry = _swarmers(troops=troops, swarm=SwarmAttachment("inf-a", "mech-b", HitLocation.LEFT_TORSO))
    infantry.position = (2, 2)
    context = make_context(terrain={(2, 2): terrain} if terrain else None)
    return mech, infantry, context


def test_dislodge_by_rolling() -> None:
    mech, infantry, context = _swarmed_mech()
    params = AttackParams(method=DislodgeMethod.ROLL)
    dice = ScriptedDice(chances=[True]).push_2d6(7)

    outcome = _resolve(AntiMechCombat(dice=dice), mech, infantry, AttackType.DISLODGE, context, params)

    assert outcome.hit
    assert outcome.troop_losses == {"inf-a": 10}
    assert outcome.location == HitLocation.LEFT_TORSO
    # 50 // 20 self-damage from the roll
    assert [(d.unit_id, d.location, d.amount) for d in outcome.extra_damage] == \
        [("mech-b", HitLocation.CENTER_TORSO, 2)]
    assert _changes(outcome) == [
        ("mech-b", StatusKind.PRONE, None),
        ("inf-a", StatusKind.DETACH_SWARM, "mech-b"),
    ]

    mech.posture = Posture.PRONE
    assert AntiMechCombat(rng_seed=1).validate(mech, infantry, AttackType.DISLODGE, context, params).reason == \
        "Mech is already prone"


def test_dislodge_in_shallow_water() -> None:
    mech, infantry, context = _swarmed_mech(troops=15, terrain=TerrainType.WATER)
    context.get_hex((2, 2)).depth = 1
    params = AttackParams(method=DislodgeMethod.WATER)
    combat = AntiMechCombat(dice=ScriptedDice(chances=[False]))

    assert combat.validate(mech, infantry, AttackType.DISLODGE, context, params).legal
    outcome = _resolve(combat, mech, infantry, AttackType.DISLODGE, context, params)

    # ceil(15 / (4 - depth)) while they hold on
    assert not outcome.hit
    assert outcome.troop_losses == {"inf-a": 5}
    assert outcome.status_changes == []
    assert "inf-a holds on through the water" in outcome.messages


def test_dislodge_in_deep_water() -> None:
    mech, infantry, context = _swarmed_mech(troops=15, terrain=TerrainType.DEEP_WATER)
    params = AttackParams(method=DislodgeMethod.WATER)
    outcome = _resolve(AntiMechCombat(dice=ScriptedDice(chances=[True])), mech, infantry,
                       AttackType.DISLODGE, context, params)

    assert outcome.hit
    assert outcome.troop_losses == {"inf-a": 8}
    assert _changes(outcome) == [("inf-a", StatusKind.DETACH_SWARM, "mech-b")]


def test_dislodge_with_fire() -> None:
    mech, infantry, context = _swarmed_mech()
    params = AttackParams(method=DislodgeMethod.FIRE)
    outcome = _resolve(AntiMechCombat(dice=ScriptedDice(chances=[False])), mech, infantry,
                       AttackType.DISLODGE, context, params)

    assert not outcome.hit
    assert outcome.troop_losses == {"inf-a": 10}
    assert _changes(outcome) == [("mech-b", StatusKind.HEAT, 5)]

"""
Critical effects - secondary outcomes beyond base damage.

The effect vocabulary is closed; renderers and logs switch on EffectKind.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from .attacks import AttackType
from .dice import Dice
from .locations import HitLocation, ARMS, LEGS, BLADE_CRIT_TABLE


class EffectKind(Enum):
    ACTUATOR_DAMAGE = "ACTUATOR_DAMAGE"
    FORCED_PSR = "FORCED_PSR"
    KNOCKBACK = "KNOCKBACK"
    INTERNAL_DAMAGE = "INTERNAL_DAMAGE"
    HIT_LOCATION_OVERRIDE = "HIT_LOCATION_OVERRIDE"
    CRITICAL_HIT = "CRITICAL_HIT"
    PILOT_EFFECT = "PILOT_EFFECT"


class PilotEffectKind(Enum):
    STUNNED = "stunned"
    INJURED = "injured"


@dataclass(frozen=True)
class CriticalEffect:
    kind: ClassVar[EffectKind]

    def describe(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class ActuatorDamage(CriticalEffect):
    location: HitLocation
    severity: int = 1

    kind: ClassVar[EffectKind] = EffectKind.ACTUATOR_DAMAGE

    def describe(self) -> str:
        return f"Actuator damaged in {self.location.value}"


@dataclass(frozen=True)
class ForcedPilotingRoll(CriticalEffect):
    modifier: int

    kind: ClassVar[EffectKind] = EffectKind.FORCED_PSR

    def describe(self) -> str:
        return f"Forced piloting roll ({self.modifier:+d})"


@dataclass(frozen=True)
class Knockback(CriticalEffect):
    distance: int = 1

    kind: ClassVar[EffectKind] = EffectKind.KNOCKBACK

    def describe(self) -> str:
        return f"Knocked back {self.distance} hex(es)"


@dataclass(frozen=True)
class InternalDamage(CriticalEffect):
    location: HitLocation
    amount: int

    kind: ClassVar[EffectKind] = EffectKind.INTERNAL_DAMAGE

    def describe(self) -> str:
        return f"{self.amount} internal damage to {self.location.value}"


@dataclass(frozen=True)
class HitLocationOverride(CriticalEffect):
    location: HitLocation

    kind: ClassVar[EffectKind] = EffectKind.HIT_LOCATION_OVERRIDE

    def describe(self) -> str:
        return f"Hit redirected to {self.location.value}"


@dataclass(frozen=True)
class CriticalHit(CriticalEffect):
    location: HitLocation
    count: int = 1

    kind: ClassVar[EffectKind] = EffectKind.CRITICAL_HIT

    def describe(self) -> str:
        return f"{self.count} critical hit(s) in {self.location.value}"


@dataclass(frozen=True)
class PilotEffect(CriticalEffect):
    effect: PilotEffectKind
    duration: int = 1

    kind: ClassVar[EffectKind] = EffectKind.PILOT_EFFECT

    def describe(self) -> str:
        return f"Pilot {self.effect.value} for {self.duration} turn(s)"


MELEE_CRITICAL_ROLL = 10


def melee_critical(attack_type: AttackType, attacker_tonnage: int, dice: Dice) -> list[CriticalEffect]:
    """Effects for a melee attack whose critical roll came up 10+."""
    if attack_type == AttackType.PUNCH:
        if dice.chance(0.5):
            return [ActuatorDamage(dice.rng.choice(ARMS))]
    elif attack_type == AttackType.KICK:
        if dice.chance(0.5):
            return [ForcedPilotingRoll(2)]
    elif attack_type == AttackType.CHARGE:
        effects: list[CriticalEffect] = [Knockback(1)]
        if dice.chance(0.3):
            effects.append(InternalDamage(HitLocation.CENTER_TORSO,
                                          math.ceil(attacker_tonnage / 20)))
        return effects
    elif attack_type in (AttackType.HATCHET, AttackType.AXE, AttackType.SWORD):
        location = BLADE_CRIT_TABLE[dice.roll_die(6)]
        return [CriticalHit(location, dice.roll_die(3))]
    elif attack_type in (AttackType.CLUB, AttackType.MACE):
        if dice.roll_die(6) <= 2:
            return [PilotEffect(PilotEffectKind.STUNNED, 1)]
    return []


def location_critical(location: HitLocation, attack_type: AttackType) -> list[CriticalEffect]:
    """Anti-mech critical table keyed by hit location, then attack type."""
    if location == HitLocation.HEAD:
        duration = 2 if attack_type == AttackType.CRITICAL_SYSTEM else 1
        return [PilotEffect(PilotEffectKind.INJURED, duration)]
    if location in LEGS:
        effects: list[CriticalEffect] = [ActuatorDamage(location)]
        if attack_type in (AttackType.LEG_ATTACK, AttackType.MINE_PLACEMENT):
            effects.append(ForcedPilotingRoll(1))
        return effects
    if location in ARMS:
        return [ActuatorDamage(location)]
    if location == HitLocation.REAR_TORSO:
        location = HitLocation.CENTER_TORSO
    count = 2 if attack_type == AttackType.CRITICAL_SYSTEM else 1
    return [CriticalHit(location, count)]

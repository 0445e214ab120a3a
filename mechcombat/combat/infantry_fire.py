"""
Infantry fire resolution - ranged small-arms and support weapon fire.

Handles:
- Range from carried equipment and line of sight
- Training, armor and tactics modifiers
- Damage scaling by troop count, equipment and target type
- Suppression and morale checks against infantry targets
"""

import logging
from typing import Optional

from ..attacks import AttackParams, AttackType
from ..context import BattleContext
from ..criticals import CriticalHit
from ..dice import round_half_up
from ..map import TerrainType
from ..modifiers import ModifierAccumulator, ToHitResult
from ..units import (
    Unit, Infantry, Equipment, Ability, InfantryArmor, Morale, Motive, Quality,
)
from .base import CombatResolver, AttackOutcome, StatusKind, ValidationResult

logger = logging.getLogger(__name__)


class InfantryFireCombat(CombatResolver):
    """Resolves ranged fire by infantry platoons."""

    ATTACK_TYPES = (AttackType.INFANTRY_FIRE,)

    BASE_TO_HIT = 7
    SMALL_ARMS_RANGE = 1

    QUALITY_MODIFIER = {
        Quality.GREEN: 1,
        Quality.REGULAR: 0,
        Quality.VETERAN: -1,
        Quality.ELITE: -2,
    }

    ARMOR_DAMAGE = {
        InfantryArmor.NONE: 1.0,
        InfantryArmor.BATTLE_ARMOR: 1.5,
        InfantryArmor.POWER_ARMOR: 2.0,
    }

    CLOSE_TERRAIN = (
        TerrainType.LIGHT_WOODS, TerrainType.WOODS, TerrainType.HEAVY_WOODS,
        TerrainType.URBAN, TerrainType.BUILDING,
    )

    def ranged_weapons(self, unit: Unit) -> list[Equipment]:
        return [e for e in unit.equipment if e.range > 0 and e.quantity > 0]

    def max_range(self, unit: Unit) -> int:
        ranges = [e.range for e in self.ranged_weapons(unit)]
        return max(ranges) if ranges else self.SMALL_ARMS_RANGE

    def best_weapon(self, unit: Unit, distance: int) -> Optional[Equipment]:
        """Highest-multiplier weapon that reaches the target."""
        usable = [e for e in self.ranged_weapons(unit) if e.range >= distance]
        if not usable:
            return None
        return max(usable, key=lambda e: e.damage_multiplier)

    def validate(self, attacker: Unit, target: Unit, attack_type: AttackType,
                 context: BattleContext, params: AttackParams) -> ValidationResult:
        failure = self.check_common(attacker, target, context)
        if failure:
            return failure
        if not isinstance(attacker, Infantry):
            return ValidationResult.illegal("Only infantry can make infantry fire attacks")
        if attacker.has_attacked:
            return ValidationResult.illegal(f"{attacker.id} has already fired this turn")
        if attacker.is_swarming:
            return ValidationResult.illegal(f"{attacker.id} is swarming and cannot fire")

        distance = attacker.distance_to(target)
        max_range = self.max_range(attacker)
        if distance > max_range:
            return ValidationResult.illegal(
                f"Target at {distance} hexes is beyond maximum range {max_range}"
            )
        los = context.hex_map.has_line_of_sight(attacker.position, target.position)
        if not los.has_los:
            return ValidationResult.illegal(f"No line of sight (blocked at {los.intervening[-1]})")
        return ValidationResult.ok()

    def calculate_to_hit(self, attacker: Unit, target: Unit, attack_type: AttackType,
                         context: BattleContext, params: AttackParams) -> ToHitResult:
        distance = attacker.distance_to(target)
        acc = ModifierAccumulator(self.BASE_TO_HIT)
        acc.add("range", max(0, distance - 1))
        acc.add_if(self.best_weapon(attacker, distance) is None, "no suitable weapon", 2)

        if attacker.movement.has_moved:
            foot = getattr(attacker, "motive", Motive.FOOT) == Motive.FOOT
            acc.add("attacker moved", 2 if foot else 1)
        acc.add_if(target.movement.has_moved, "target moved", 1)

        target_hex = context.get_hex(target.position)
        attacker_hex = context.get_hex(attacker.position)
        if target_hex:
            acc.add(f"target in {target_hex.terrain.value}", target_hex.cover)

        if isinstance(attacker, Infantry):
            if (attacker.has_ability(Ability.GUERRILLA) and attacker_hex
                    and attacker_hex.terrain in self.CLOSE_TERRAIN):
                acc.add("guerrilla tactics", -1)
            acc.add_if(attacker.armor_type != InfantryArmor.NONE, attacker.armor_type.value, -1)
            acc.add_if(attacker.special_forces, "special forces", -1)
            acc.add(f"{attacker.quality.value} troops", self.QUALITY_MODIFIER[attacker.quality])
            acc.add_if(attacker.morale == Morale.BREAKING, "breaking", 2)

        acc.add_if(attacker.entrenched, "entrenched", -1)
        acc.add_if(attacker.suppressed, "suppressed", 2)
        acc.add_if(target.is_prone, "target prone", -2)
        if isinstance(target, Infantry) and target.has_ability(Ability.STEALTH):
            acc.add("target stealth", 1)

        self.add_weather(acc, context, night=1, fog=1)
        return acc.result()

    def calculate_damage(self, attacker: Infantry, target: Unit,
                         weapon: Optional[Equipment], outcome: AttackOutcome) -> int:
        damage = float(max(1, attacker.troops // 5))
        damage *= weapon.damage_multiplier if weapon else 1.0
        if attacker.special_forces:
            damage += 1
        damage *= self.ARMOR_DAMAGE[attacker.armor_type]
        if attacker.entrenched:
            damage *= 1.2
        if attacker.suppressed:
            damage *= 0.5
        if attacker.has_ability(Ability.AMBUSH) and attacker.hidden and not attacker.has_attacked:
            damage *= 1.5
            outcome.note(f"{attacker.id} fires from ambush")

        anti_infantry = any(e.anti_infantry for e in self.ranged_weapons(attacker))
        anti_mech = any(e.anti_mech and e.quantity > 0 for e in attacker.equipment)
        if target.is_infantry and anti_infantry:
            damage *= 1.5
        elif target.is_mech and not anti_mech:
            damage *= 0.5
        elif target.is_vehicle and getattr(target, "motive", None) in (Motive.HOVER, Motive.VTOL):
            damage *= 1.2

        damage = self.fatigue_scaled(damage, attacker)
        return max(1, round_half_up(damage))

    def resolve(self, attacker: Unit, target: Unit, attack_type: AttackType,
                to_hit: ToHitResult, context: BattleContext,
                params: AttackParams) -> AttackOutcome:
        outcome = self.new_outcome(attacker, target, attack_type, to_hit)
        outcome.roll, outcome.hit = self.roll_to_hit(to_hit)
        distance = attacker.distance_to(target)
        weapon = self.best_weapon(attacker, distance)
        logger.debug(f"infantry fire {attacker.id} -> {target.id}: "
                     f"{to_hit.describe()}, rolled {outcome.roll}")

        if weapon and weapon.one_time_use:
            outcome.consumed_equipment.append((attacker.id, weapon.name, 1))

        if not outcome.hit:
            outcome.note(f"{attacker.id} fire misses ({outcome.roll} vs {to_hit.target_number})")
            return outcome

        outcome.damage = self.calculate_damage(attacker, target, weapon, outcome)
        outcome.location = self.roll_location(target)
        outcome.note(f"{attacker.id} hits {target.id} for {outcome.damage} "
                     f"({outcome.location.value})")

        if outcome.roll == 12 and not target.is_infantry:
            outcome.critical = True
            outcome.critical_effects.append(CriticalHit(outcome.location, 1))
            outcome.note(f"Critical: {outcome.critical_effects[-1].describe()}")

        if target.is_infantry and any(e.anti_infantry for e in self.ranged_weapons(attacker)):
            if self.dice.roll_die(6) <= 3:
                outcome.request(target.id, StatusKind.SUPPRESS, True)
                outcome.note(f"{target.id} is suppressed")

        self.infantry_casualty_checks(target, outcome.damage, outcome)
        return outcome

"""
Melee resolution - physical attacks between adjacent units.

Handles:
- Punches, kicks, pushes and charges
- Clubs and melee weapons (hatchet, sword, axe, mace)
- Forced piloting rolls and melee criticals
"""

import logging
import math

from ..attacks import AttackParams, AttackType, MELEE_WEAPONS
from ..context import BattleContext
from ..criticals import Knockback, MELEE_CRITICAL_ROLL, melee_critical
from ..dice import round_half_up
from ..locations import LEG_TABLE
from ..map import TerrainType
from ..modifiers import ModifierAccumulator, ToHitResult
from ..units import Unit, MoveType
from .base import CombatResolver, AttackOutcome, DamageRecord, ValidationResult

logger = logging.getLogger(__name__)


class MeleeCombat(CombatResolver):
    """Resolves physical attacks."""

    ATTACK_TYPES = (
        AttackType.PUNCH, AttackType.KICK, AttackType.CHARGE, AttackType.PUSH,
        AttackType.CLUB, *MELEE_WEAPONS,
    )

    ATTACK_MODIFIER = {
        AttackType.PUNCH: 0,
        AttackType.KICK: 2,
        AttackType.CHARGE: 1,
        AttackType.PUSH: 1,
        AttackType.CLUB: 1,
        AttackType.HATCHET: 1,
        AttackType.SWORD: 0,
        AttackType.AXE: 2,
        AttackType.MACE: 1,
    }

    WEAPON_MULTIPLIER = {
        AttackType.HATCHET: 1.5,
        AttackType.SWORD: 1.3,
        AttackType.AXE: 1.4,
        AttackType.MACE: 1.2,
    }

    # Piloting roll the target must make after being hit
    TARGET_PSR = {
        AttackType.KICK: 2,
        AttackType.CHARGE: 2,
        AttackType.PUSH: 1,
    }

    ATTACKER_TERRAIN = {
        TerrainType.DEEP_WATER: 1,
        TerrainType.ROUGH: 1,
    }

    TARGET_TERRAIN = {
        TerrainType.LIGHT_WOODS: 1,
        TerrainType.WOODS: 1,
        TerrainType.HEAVY_WOODS: 2,
        TerrainType.DEEP_WATER: 1,
    }

    MIN_CHARGE_HEXES = 3
    HEAT_THRESHOLD = 15

    def validate(self, attacker: Unit, target: Unit, attack_type: AttackType,
                 context: BattleContext, params: AttackParams) -> ValidationResult:
        failure = self.check_common(attacker, target, context)
        if failure:
            return failure

        if attack_type == AttackType.CHARGE:
            if attacker.is_infantry:
                return ValidationResult.illegal("Infantry cannot charge")
        elif not attacker.is_mech:
            return ValidationResult.illegal(f"Only mechs can {attack_type.value}")

        if target.is_flying:
            return ValidationResult.illegal("Cannot make physical attacks against flying units")
        if attacker.has_attacked:
            return ValidationResult.illegal(f"{attacker.id} has already attacked this turn")
        if attacker.distance_to(target) != 1:
            return ValidationResult.illegal("Target must be adjacent")

        if attack_type == AttackType.CLUB or attack_type in MELEE_WEAPONS:
            if not attacker.has_equipment(attack_type.value):
                return ValidationResult.illegal(f"{attacker.id} carries no {attack_type.value}")

        if attack_type == AttackType.PUNCH and getattr(attacker, "quad", False):
            return ValidationResult.illegal("Quad mechs cannot punch")

        if attack_type in (AttackType.KICK, AttackType.CHARGE) and attacker.is_prone:
            return ValidationResult.illegal(f"A prone unit cannot {attack_type.value}")

        if attack_type == AttackType.CHARGE:
            movement = attacker.movement
            if movement.move_type == MoveType.JUMP:
                return ValidationResult.illegal("Cannot charge after jumping")
            if movement.hexes_moved < self.MIN_CHARGE_HEXES:
                return ValidationResult.illegal(
                    f"Charge requires moving at least {self.MIN_CHARGE_HEXES} hexes"
                )
            if target.size_class - attacker.size_class > 1:
                return ValidationResult.illegal(
                    "Cannot charge a target more than one size class larger"
                )

        return ValidationResult.ok()

    def calculate_to_hit(self, attacker: Unit, target: Unit, attack_type: AttackType,
                         context: BattleContext, params: AttackParams) -> ToHitResult:
        acc = ModifierAccumulator(getattr(attacker, "piloting", 5))
        acc.add(attack_type.value, self.ATTACK_MODIFIER[attack_type])
        acc.add("attacker movement", self.attacker_movement_modifier(attacker.movement))
        acc.add("target movement", self.target_movement_modifier(target.movement))
        acc.add_if(attacker.is_prone, "attacker prone", 2)
        acc.add_if(target.is_prone, "target prone", -2)
        acc.add("damaged actuators", len(getattr(attacker, "damaged_actuators", [])))
        if attacker.heat >= self.HEAT_THRESHOLD:
            acc.add("heat", (attacker.heat - 10) // 5)

        attacker_hex = context.get_hex(attacker.position)
        target_hex = context.get_hex(target.position)
        if attacker_hex:
            acc.add(f"attacker in {attacker_hex.terrain.value}",
                    self.ATTACKER_TERRAIN.get(attacker_hex.terrain, 0))
        if target_hex:
            acc.add(f"target in {target_hex.terrain.value}",
                    self.TARGET_TERRAIN.get(target_hex.terrain, 0))
        if attacker_hex and target_hex:
            if attacker_hex.elevation > target_hex.elevation:
                acc.add("higher ground", -1)
            elif attacker_hex.elevation < target_hex.elevation:
                acc.add("lower ground", 1)

        self.add_weather(acc, context)
        return acc.result()

    def calculate_damage(self, attacker: Unit, target: Unit, attack_type: AttackType,
                         context: BattleContext) -> int:
        tonnage = attacker.tonnage
        if attack_type == AttackType.PUSH:
            return 0
        if attack_type == AttackType.PUNCH:
            damage = math.ceil(tonnage / 10)
        elif attack_type == AttackType.KICK:
            damage = math.ceil(tonnage / 5)
        elif attack_type == AttackType.CHARGE:
            damage = math.ceil(tonnage / 10 * attacker.movement.hexes_moved)
        elif attack_type == AttackType.CLUB:
            damage = math.ceil(tonnage / 5)
        else:
            damage = round_half_up(math.ceil(tonnage / 5) * self.WEAPON_MULTIPLIER[attack_type])

        attacker_hex = context.get_hex(attacker.position)
        target_hex = context.get_hex(target.position)
        if target_hex and target_hex.is_deep_water:
            damage -= 1
        if attacker_hex and target_hex and attacker_hex.elevation > target_hex.elevation:
            damage += 1
        return max(1, damage)

    def resolve(self, attacker: Unit, target: Unit, attack_type: AttackType,
                to_hit: ToHitResult, context: BattleContext,
                params: AttackParams) -> AttackOutcome:
        outcome = self.new_outcome(attacker, target, attack_type, to_hit)
        outcome.roll, outcome.hit = self.roll_to_hit(to_hit)
        logger.debug(f"{attack_type.value} {attacker.id} -> {target.id}: "
                     f"{to_hit.describe()}, rolled {outcome.roll}")

        if not outcome.hit:
            outcome.note(f"{attacker.id} misses with {attack_type.value} "
                         f"({outcome.roll} vs {to_hit.target_number})")
            if attack_type == AttackType.KICK:
                self.forced_piloting_roll(attacker, 0, outcome, "missed kick")
            return outcome

        outcome.damage = self.calculate_damage(attacker, target, attack_type, context)
        if attack_type == AttackType.KICK and target.is_mech:
            outcome.location = self.roll_location(target, LEG_TABLE, dice=1)
        else:
            outcome.location = self.roll_location(target)
        outcome.note(f"{attacker.id} hits {target.id} with {attack_type.value} "
                     f"for {outcome.damage} ({outcome.location.value})")

        if attack_type == AttackType.PUSH:
            outcome.critical_effects.append(Knockback(1))

        if target.is_mech and self.dice.roll_2d6() >= MELEE_CRITICAL_ROLL:
            effects = melee_critical(attack_type, attacker.tonnage, self.dice)
            if effects:
                outcome.critical = True
                outcome.critical_effects.extend(effects)
                for effect in effects:
                    outcome.note(f"Critical: {effect.describe()}")

        if attack_type == AttackType.CHARGE:
            self_damage = math.ceil(target.tonnage / 10)
            outcome.extra_damage.append(DamageRecord(
                attacker.id, self.roll_location(attacker), self_damage, "charge impact"))
            outcome.note(f"{attacker.id} takes {self_damage} from the charge")
            self.forced_piloting_roll(attacker, 2, outcome, "charge")

        psr = self.TARGET_PSR.get(attack_type, 0)
        if attack_type in (AttackType.PUNCH, AttackType.CLUB) and outcome.damage >= 10:
            psr = 1
        if attack_type in self.TARGET_PSR or psr:
            self.forced_piloting_roll(target, psr, outcome, attack_type.value)
        self.resolve_forced_rolls(target, outcome)
        self.infantry_casualty_checks(target, outcome.damage, outcome)
        return outcome

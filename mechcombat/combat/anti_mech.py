"""
Anti-mech resolution - infantry attacks on BattleMechs at close quarters.

Handles:
- Swarm attacks and the follow-up turns while attached
- Leg attacks, mine placement and demolition charges
- Critical-system targeting by swarming troops
- Mech attempts to dislodge swarming infantry
"""

import logging
import math

from ..attacks import AttackParams, AttackType, DislodgeMethod
from ..context import BattleContext
from ..criticals import ForcedPilotingRoll, location_critical
from ..locations import LEG_TABLE, SWARM_TABLE
from ..map import TerrainType
from ..modifiers import ModifierAccumulator, ToHitResult
from ..units import Unit, Infantry, Mech, Quality
from .base import (
    CombatResolver, AttackOutcome, DamageRecord, StatusKind, ValidationResult,
)

logger = logging.getLogger(__name__)


class AntiMechCombat(CombatResolver):
    """Resolves infantry anti-mech attacks and mech countermeasures."""

    ATTACK_TYPES = (
        AttackType.SWARM, AttackType.LEG_ATTACK, AttackType.MINE_PLACEMENT,
        AttackType.EXPLOSIVE, AttackType.CRITICAL_SYSTEM,
        AttackType.CONTINUE_SWARM, AttackType.DISLODGE,
    )

    MIN_TROOPS = {
        AttackType.LEG_ATTACK: 5,
        AttackType.SWARM: 10,
        AttackType.MINE_PLACEMENT: 3,
        AttackType.EXPLOSIVE: 3,
        AttackType.CRITICAL_SYSTEM: 3,
    }

    MAX_DISTANCE = {
        AttackType.LEG_ATTACK: 0,
        AttackType.SWARM: 1,
        AttackType.MINE_PLACEMENT: 1,
        AttackType.EXPLOSIVE: 1,
    }

    BASE_TO_HIT = {
        AttackType.SWARM: 8,
        AttackType.LEG_ATTACK: 7,
        AttackType.MINE_PLACEMENT: 6,
        AttackType.EXPLOSIVE: 7,
        AttackType.CRITICAL_SYSTEM: 8,
    }

    QUALITY_MODIFIER = {
        Quality.GREEN: 1,
        Quality.REGULAR: 0,
        Quality.VETERAN: -1,
        Quality.ELITE: -2,
    }

    MINE_QUALITY_DAMAGE = {
        Quality.GREEN: -1,
        Quality.REGULAR: 0,
        Quality.VETERAN: 1,
        Quality.ELITE: 2,
    }

    CRITICAL_CHANCE = {
        AttackType.SWARM: 0.3,
        AttackType.MINE_PLACEMENT: 0.4,
        AttackType.CRITICAL_SYSTEM: 1.0,
        AttackType.CONTINUE_SWARM: 0.2,
    }

    FATIGUE = {
        AttackType.LEG_ATTACK: 1,
        AttackType.SWARM: 2,
        AttackType.MINE_PLACEMENT: 1,
        AttackType.EXPLOSIVE: 1,
        AttackType.CRITICAL_SYSTEM: 3,
    }

    HEAVY_SWARM_TONNAGE = 55
    ASSAULT_SWARM_TONNAGE = 80
    DEMO_CHARGE_DAMAGE = 5
    INFERNO_HEAT = 4
    FIRE_HEAT = 5

    # Validation
    def validate(self, attacker: Unit, target: Unit, attack_type: AttackType,
                 context: BattleContext, params: AttackParams) -> ValidationResult:
        failure = self.check_common(attacker, target, context)
        if failure:
            return failure
        if attack_type == AttackType.DISLODGE:
            return self._validate_dislodge(attacker, target, context, params)

        if not isinstance(attacker, Infantry):
            return ValidationResult.illegal("Only infantry can make anti-mech attacks")
        if not isinstance(target, Mech):
            return ValidationResult.illegal("Anti-mech attacks require a mech target")
        if attacker.has_attacked:
            return ValidationResult.illegal(f"{attacker.id} has already attacked this turn")

        if attack_type in (AttackType.CONTINUE_SWARM, AttackType.CRITICAL_SYSTEM):
            if attacker.swarm is None or attacker.swarm.mech_id != target.id:
                return ValidationResult.illegal(f"{attacker.id} is not swarming {target.id}")
            if attack_type == AttackType.CONTINUE_SWARM:
                return ValidationResult.ok()

        min_troops = self.MIN_TROOPS[attack_type]
        if attacker.troops < min_troops:
            return ValidationResult.illegal(
                f"{attack_type.value} requires at least {min_troops} troops "
                f"({attacker.troops} remaining)"
            )

        if attack_type == AttackType.CRITICAL_SYSTEM:
            if not attacker.has_equipment("vibro_blade"):
                return ValidationResult.illegal("Critical-system targeting requires a vibro blade")
            return ValidationResult.ok()

        distance = attacker.distance_to(target)
        max_distance = self.MAX_DISTANCE[attack_type]
        if distance > max_distance:
            return ValidationResult.illegal(
                f"{attack_type.value} requires distance {max_distance} or less (is {distance})"
            )

        if attack_type == AttackType.SWARM:
            if attacker.swarm is not None:
                return ValidationResult.illegal(
                    f"{attacker.id} is already swarming {attacker.swarm.mech_id}"
                )
            if attacker.movement.has_moved:
                return ValidationResult.illegal("Cannot swarm after moving this turn")
            if target.tonnage >= self.ASSAULT_SWARM_TONNAGE and not attacker.has_equipment("magnetic_clamp"):
                return ValidationResult.illegal(
                    f"Swarming a {target.tonnage}-ton mech requires a magnetic clamp "
                    f"({self.ASSAULT_SWARM_TONNAGE}+ tons)"
                )
            if (target.tonnage >= self.HEAVY_SWARM_TONNAGE and not attacker.has_equipment("jump_pack")
                    and not attacker.anti_mech_training):
                return ValidationResult.illegal(
                    f"Swarming a {target.tonnage}-ton mech requires a jump pack "
                    f"or anti-mech training ({self.HEAVY_SWARM_TONNAGE}+ tons)"
                )

        if attack_type == AttackType.MINE_PLACEMENT and not attacker.has_equipment("anti_mech_mine"):
            return ValidationResult.illegal("Mine placement requires an anti-mech mine")
        if attack_type == AttackType.EXPLOSIVE and not attacker.has_equipment("demo_charge"):
            return ValidationResult.illegal("Explosive attack requires a demo charge")

        return ValidationResult.ok()

    def _validate_dislodge(self, attacker: Unit, target: Unit, context: BattleContext,
                           params: AttackParams) -> ValidationResult:
        if not isinstance(attacker, Mech):
            return ValidationResult.illegal("Only mechs can dislodge swarming infantry")
        if not isinstance(target, Infantry):
            return ValidationResult.illegal("Dislodge targets swarming infantry")
        if target.swarm is None or target.swarm.mech_id != attacker.id:
            return ValidationResult.illegal(f"{target.id} is not swarming {attacker.id}")
        if attacker.has_attacked:
            return ValidationResult.illegal(f"{attacker.id} has already acted this turn")
        if params.method is None:
            return ValidationResult.illegal("Dislodge requires a method")
        if params.method == DislodgeMethod.WATER:
            cell = context.get_hex(attacker.position)
            if cell.terrain not in (TerrainType.WATER, TerrainType.DEEP_WATER):
                return ValidationResult.illegal("Mech is not in a water hex")
            if cell.depth < 1:
                return ValidationResult.illegal("Water is not deep enough to affect infantry")
        if params.method == DislodgeMethod.ROLL and attacker.is_prone:
            return ValidationResult.illegal("Mech is already prone")
        return ValidationResult.ok()

    # To-hit
    def calculate_to_hit(self, attacker: Unit, target: Unit, attack_type: AttackType,
                         context: BattleContext, params: AttackParams) -> ToHitResult:
        if attack_type in (AttackType.CONTINUE_SWARM, AttackType.DISLODGE):
            # No to-hit roll; the attack lands automatically or rides a percentage gate
            return ModifierAccumulator(2).result()

        acc = ModifierAccumulator(self.BASE_TO_HIT[attack_type])
        acc.add_if(attack_type == AttackType.CRITICAL_SYSTEM, "critical system", 2)
        if isinstance(attacker, Infantry):
            acc.add(f"{attacker.quality.value} troops", self.QUALITY_MODIFIER[attacker.quality])
        acc.add("target movement", self.target_movement_modifier(target.movement))

        if target.tonnage < 40:
            acc.add("light target", 1)
        elif target.tonnage >= 80:
            acc.add("assault target", -1)

        if attack_type == AttackType.SWARM:
            acc.add_if(attacker.has_equipment("climbing_gear"), "climbing gear", -1)
            acc.add_if(attacker.has_equipment("magnetic_clamp"), "magnetic clamp", -2)
        elif attack_type == AttackType.LEG_ATTACK:
            acc.add_if(attacker.has_equipment("vibro_blade"), "vibro blade", -1)
        elif attack_type == AttackType.CRITICAL_SYSTEM:
            acc.add_if(attacker.has_equipment("vibro_blade"), "vibro blade", -2)

        target_hex = context.get_hex(target.position)
        if target_hex and target_hex.is_wooded:
            acc.add("woods cover", -1)

        self.add_weather(acc, context, night=1)
        return acc.result()

    # Damage
    def calculate_damage(self, attacker: Infantry, target: Unit, attack_type: AttackType,
                         context: BattleContext) -> int:
        troops = attacker.troops
        if attack_type == AttackType.SWARM:
            damage = max(1, troops // 2)
            damage += 1 if attacker.has_equipment("inferno") else 0
            damage += 2 if attacker.has_equipment("vibro_blade") else 0
            damage += 2 if attacker.has_equipment("magshot") else 0
        elif attack_type == AttackType.LEG_ATTACK:
            damage = max(1, troops // 3)
            damage += 3 if attacker.has_equipment("vibro_blade") else 0
            damage += 5 if attacker.has_equipment("demo_charge") else 0
            if self._rough_footing(target, context):
                damage += 1
        elif attack_type == AttackType.MINE_PLACEMENT:
            damage = max(2, troops // 2) + self.MINE_QUALITY_DAMAGE[attacker.quality]
        elif attack_type == AttackType.EXPLOSIVE:
            damage = self.DEMO_CHARGE_DAMAGE * attacker.equipment_count("demo_charge")
        elif attack_type == AttackType.CRITICAL_SYSTEM:
            damage = max(1, troops // 3) + 2
        else:  # continue swarm
            damage = max(1, troops // 3)
            damage += 1 if attacker.has_equipment("inferno") else 0
            damage += 2 if attacker.has_equipment("vibro_blade") else 0

        damage = max(1, math.floor(self.fatigue_scaled(damage, attacker)))
        return min(damage, troops * 2)

    def _rough_footing(self, target: Unit, context: BattleContext) -> bool:
        cell = context.get_hex(target.position)
        return bool(cell) and (cell.terrain == TerrainType.ROUGH or cell.is_wooded)

    def attacker_losses(self, attacker: Infantry, attack_type: AttackType, hit: bool) -> int:
        troops = attacker.troops
        if not hit:
            if attack_type == AttackType.SWARM:
                return math.ceil(troops / 6)
            return math.ceil(troops * 0.05)
        return {
            AttackType.SWARM: math.ceil(troops / 4),
            AttackType.LEG_ATTACK: math.ceil(troops * 0.10),
            AttackType.MINE_PLACEMENT: math.ceil(troops / 10),
            AttackType.EXPLOSIVE: math.ceil(troops * 0.15),
            AttackType.CRITICAL_SYSTEM: math.ceil(troops / 5),
            AttackType.CONTINUE_SWARM: math.ceil(troops / 5),
        }[attack_type]

    # Resolution
    def resolve(self, attacker: Unit, target: Unit, attack_type: AttackType,
                to_hit: ToHitResult, context: BattleContext,
                params: AttackParams) -> AttackOutcome:
        if attack_type == AttackType.DISLODGE:
            return self._resolve_dislodge(attacker, target, to_hit, context, params)

        outcome = self.new_outcome(attacker, target, attack_type, to_hit)
        if attack_type == AttackType.CONTINUE_SWARM:
            outcome.hit = True
        else:
            outcome.roll, outcome.hit = self.roll_to_hit(to_hit)
            logger.debug(f"{attack_type.value} {attacker.id} -> {target.id}: "
                         f"{to_hit.describe()}, rolled {outcome.roll}")

        fatigue = self.FATIGUE.get(attack_type, 0)
        if fatigue:
            outcome.request(attacker.id, StatusKind.FATIGUE, fatigue)
        self._consume_equipment(attacker, attack_type, outcome)

        losses = self.attacker_losses(attacker, attack_type, outcome.hit)
        if losses:
            outcome.troop_losses[attacker.id] = losses

        if not outcome.hit:
            outcome.note(f"{attacker.id} fails {attack_type.value} "
                         f"({outcome.roll} vs {to_hit.target_number}), losing {losses} troops")
            return outcome

        outcome.damage = self.calculate_damage(attacker, target, attack_type, context)
        outcome.location = self._hit_location(attacker, target, attack_type)
        outcome.note(f"{attacker.id} {attack_type.value} hits {target.id} for "
                     f"{outcome.damage} ({outcome.location.value}), losing {losses} troops")

        if attack_type == AttackType.SWARM:
            outcome.request(attacker.id, StatusKind.ATTACH_SWARM, target.id, outcome.location)
        if attack_type in (AttackType.SWARM, AttackType.CONTINUE_SWARM) and attacker.has_equipment("inferno"):
            outcome.request(target.id, StatusKind.HEAT, self.INFERNO_HEAT)
        if attack_type == AttackType.MINE_PLACEMENT:
            outcome.request(target.id, StatusKind.MINEFIELD, outcome.damage)

        chance = self.CRITICAL_CHANCE.get(attack_type, 0.0)
        if chance and self.dice.chance(chance):
            outcome.critical = True
            outcome.critical_effects.extend(location_critical(outcome.location, attack_type))
            for effect in outcome.critical_effects:
                outcome.note(f"Critical: {effect.describe()}")

        if attack_type == AttackType.LEG_ATTACK:
            modifier = min(3, attacker.troops // 4)
            if self._rough_footing(target, context):
                modifier += 1
            outcome.critical_effects.append(ForcedPilotingRoll(modifier))
        elif attack_type == AttackType.CONTINUE_SWARM:
            outcome.critical_effects.append(ForcedPilotingRoll(1))

        self.resolve_forced_rolls(target, outcome)
        return outcome

    def _hit_location(self, attacker: Infantry, target: Unit, attack_type: AttackType):
        if attack_type in (AttackType.CONTINUE_SWARM, AttackType.CRITICAL_SYSTEM):
            return attacker.swarm.location
        if attack_type == AttackType.SWARM:
            return self.roll_location(target, SWARM_TABLE, dice=1)
        if attack_type in (AttackType.LEG_ATTACK, AttackType.MINE_PLACEMENT):
            return self.roll_location(target, LEG_TABLE, dice=1)
        return self.roll_location(target)

    def _consume_equipment(self, attacker: Infantry, attack_type: AttackType, outcome: AttackOutcome):
        if attack_type == AttackType.EXPLOSIVE:
            count = attacker.equipment_count("demo_charge")
            outcome.consumed_equipment.append((attacker.id, "demo_charge", count))
        elif attack_type == AttackType.MINE_PLACEMENT:
            outcome.consumed_equipment.append((attacker.id, "anti_mech_mine", 1))
        elif attack_type == AttackType.LEG_ATTACK and attacker.has_equipment("demo_charge"):
            outcome.consumed_equipment.append((attacker.id, "demo_charge", 1))

    def _resolve_dislodge(self, mech: Mech, infantry: Infantry, to_hit: ToHitResult,
                          context: BattleContext, params: AttackParams) -> AttackOutcome:
        outcome = self.new_outcome(mech, infantry, AttackType.DISLODGE, to_hit)
        troops = infantry.troops
        method = params.method

        if method == DislodgeMethod.SHAKE:
            chance = 0.4
            losses = math.ceil(troops / 3)
            self.forced_piloting_roll(mech, 1, outcome, "violent shaking")
        elif method == DislodgeMethod.ROLL:
            chance = 0.7
            losses = math.ceil(troops / 2)
            self_damage = mech.tonnage // 20
            outcome.request(mech.id, StatusKind.PRONE)
            if self_damage:
                outcome.extra_damage.append(DamageRecord(
                    mech.id, self.roll_location(mech), self_damage, "rolling"))
        elif method == DislodgeMethod.WATER:
            depth = min(3, context.get_hex(mech.position).depth)
            chance = 0.3 * depth
            losses = math.ceil(troops / (4 - depth))
        else:
            chance = 0.5
            losses = math.ceil(troops / 2)
            outcome.request(mech.id, StatusKind.HEAT, self.FIRE_HEAT)

        outcome.hit = self.dice.chance(chance)
        if outcome.hit:
            losses = max(losses, math.ceil(troops / 2))
            outcome.request(infantry.id, StatusKind.DETACH_SWARM, mech.id)
            outcome.note(f"{mech.id} dislodges {infantry.id} ({method.value})")
        else:
            outcome.note(f"{infantry.id} holds on through the {method.value}")

        outcome.troop_losses[infantry.id] = min(losses, troops)
        outcome.location = infantry.swarm.location
        return outcome

"""
Jump attack resolution - attacks delivered from a jump.

Handles:
- Death From Above (DFA): landing on the target from a jump
- Jump-jet attacks: scorching an adjacent target with jump exhaust
"""

import logging
import math
from typing import Optional

from ..attacks import AttackParams, AttackType
from ..context import BattleContext
from ..criticals import CriticalHit, HitLocationOverride, MELEE_CRITICAL_ROLL
from ..dice import Dice, HEX_DIRECTIONS
from ..locations import HitLocation, DFA_MECH_TABLE
from ..map import TerrainType
from ..modifiers import ModifierAccumulator, ToHitResult
from ..units import Unit, Mech
from .base import CombatResolver, AttackOutcome, DamageRecord, StatusKind, ValidationResult

logger = logging.getLogger(__name__)


class JumpCombat(CombatResolver):
    """Resolves DFA and jump-jet attacks."""

    ATTACK_TYPES = (AttackType.DFA, AttackType.JUMP_JET)

    DFA_BASE = 9
    JUMP_JET_BASE = 7
    BASELINE_PILOTING = 4
    DFA_HEAT = 2
    JUMP_JET_HEAT_HIT = 3
    JUMP_JET_HEAT_MISS = 2
    MAX_JUMP_JET_DAMAGE = 5
    HEAD_OVERRIDE_CHANCE = 0.7

    DFA_TARGET_TERRAIN = {
        TerrainType.ROUGH: 1,
        TerrainType.LIGHT_WOODS: 1,
        TerrainType.WOODS: 1,
        TerrainType.HEAVY_WOODS: 1,
        TerrainType.DEEP_WATER: 1,
    }

    def __init__(self, dice: Optional[Dice] = None, rng_seed: Optional[int] = None,
                 crash_margin: int = 3):
        super().__init__(dice=dice, rng_seed=rng_seed)
        self.crash_margin = crash_margin

    def jump_distance(self, attacker: Unit, params: AttackParams) -> int:
        if params.jump_distance is not None:
            return params.jump_distance
        return attacker.movement.hexes_moved

    def validate(self, attacker: Unit, target: Unit, attack_type: AttackType,
                 context: BattleContext, params: AttackParams) -> ValidationResult:
        failure = self.check_common(attacker, target, context)
        if failure:
            return failure

        if attack_type == AttackType.DFA:
            if not isinstance(attacker, Mech):
                return ValidationResult.illegal("Only mechs can perform Death From Above")
            if target.is_flying:
                return ValidationResult.illegal("Cannot perform DFA against flying units")
            if not attacker.movement.jumped:
                return ValidationResult.illegal("Attacker must have jumped this turn to perform DFA")
            if self.jump_distance(attacker, params) < 1:
                return ValidationResult.illegal("DFA requires a jump of at least 1 hex")
            if attacker.distance_to(target) != 1:
                return ValidationResult.illegal("Target must be adjacent for DFA")
        else:
            if not isinstance(attacker, Mech):
                return ValidationResult.illegal("Only mechs can make jump-jet attacks")
            if not attacker.movement.jumped:
                return ValidationResult.illegal("Attacker must be jumping to use its jump jets")
            if self.jump_distance(attacker, params) < 1:
                return ValidationResult.illegal("Jump-jet attacks require a jump of at least 1 hex")
            if attacker.jump_jets <= 0:
                return ValidationResult.illegal(f"{attacker.id} has no jump jets")
            if attacker.distance_to(target) > 1:
                return ValidationResult.illegal("Target must be within 1 hex of the jump path")

        if attacker.has_attacked:
            return ValidationResult.illegal(f"{attacker.id} has already attacked this turn")
        return ValidationResult.ok()

    def calculate_to_hit(self, attacker: Unit, target: Unit, attack_type: AttackType,
                         context: BattleContext, params: AttackParams) -> ToHitResult:
        jump = self.jump_distance(attacker, params)
        piloting = getattr(attacker, "piloting", self.BASELINE_PILOTING)

        if attack_type == AttackType.JUMP_JET:
            acc = ModifierAccumulator(self.JUMP_JET_BASE)
            acc.add("piloting", piloting - self.BASELINE_PILOTING)
            acc.add("target movement", self.target_movement_modifier(target.movement))
            acc.add("jump distance", jump // 2)
            return acc.result()

        acc = ModifierAccumulator(self.DFA_BASE)
        acc.add("piloting", piloting - self.BASELINE_PILOTING)
        acc.add("jump distance", jump // 3)
        acc.add("target movement", self.target_movement_modifier(target.movement))
        acc.add_if(target.is_prone, "target prone", -2)
        if isinstance(attacker, Mech):
            acc.add("attacker damage", math.floor(attacker.damage_fraction * 10))

        attacker_hex = context.get_hex(attacker.position)
        target_hex = context.get_hex(target.position)
        if attacker_hex and target_hex and attacker_hex.elevation > target_hex.elevation:
            acc.add("elevation advantage", -(attacker_hex.elevation - target_hex.elevation))
        acc.add_if(context.low_visibility, "low visibility", 1)
        if target_hex:
            acc.add(f"target in {target_hex.terrain.value}",
                    self.DFA_TARGET_TERRAIN.get(target_hex.terrain, 0))
        return acc.result()

    def dfa_damage(self, attacker: Unit) -> tuple[int, int]:
        """(target damage, attacker leg damage) for a DFA."""
        target_damage = math.ceil(attacker.tonnage / 10) * 2
        return target_damage, math.ceil(target_damage / 2)

    def resolve(self, attacker: Unit, target: Unit, attack_type: AttackType,
                to_hit: ToHitResult, context: BattleContext,
                params: AttackParams) -> AttackOutcome:
        outcome = self.new_outcome(attacker, target, attack_type, to_hit)
        outcome.roll, outcome.hit = self.roll_to_hit(to_hit)
        logger.debug(f"{attack_type.value} {attacker.id} -> {target.id}: "
                     f"{to_hit.describe()}, rolled {outcome.roll}")

        if attack_type == AttackType.JUMP_JET:
            return self._resolve_jump_jet(attacker, target, outcome)
        return self._resolve_dfa(attacker, target, outcome, context)

    def miss_landing(self, attacker: Unit, target: Unit, context: BattleContext) -> tuple[int, int]:
        """Random hex next to the target that exists on the map, else the attacker's own hex."""
        q, r = target.position
        neighbours = [(q + dq, r + dr) for dq, dr in HEX_DIRECTIONS]
        on_map = [hex_pos for hex_pos in neighbours if context.get_hex(hex_pos) is not None]
        if not on_map:
            return attacker.position
        return on_map[self.dice.roll_die(len(on_map)) - 1]

    def _resolve_dfa(self, attacker: Unit, target: Unit, outcome: AttackOutcome,
                     context: BattleContext) -> AttackOutcome:
        target_damage, self_damage = self.dfa_damage(attacker)

        if outcome.hit:
            outcome.damage = target_damage
            if target.is_mech:
                outcome.location = self.roll_location(target, DFA_MECH_TABLE)
            else:
                outcome.location = self.roll_location(target)
            outcome.note(f"{attacker.id} lands on {target.id} for {target_damage} "
                         f"({outcome.location.value})")

            if target.is_mech and self.dice.roll_2d6() >= MELEE_CRITICAL_ROLL:
                outcome.critical = True
                if self.dice.chance(self.HEAD_OVERRIDE_CHANCE):
                    outcome.critical_effects.append(HitLocationOverride(HitLocation.HEAD))
                    outcome.location = HitLocation.HEAD
                else:
                    outcome.critical_effects.append(CriticalHit(outcome.location, 1))
                outcome.note(f"Critical: {outcome.critical_effects[-1].describe()}")

            self.forced_piloting_roll(target, 2, outcome, "death from above")
            self.infantry_casualty_checks(target, outcome.damage, outcome)
            landing = target.position
        else:
            margin = outcome.target_number - outcome.roll
            landing = self.miss_landing(attacker, target, context)
            if margin >= self.crash_margin:
                self_damage *= 2
                outcome.note(f"{attacker.id} crashes badly (missed by {margin})")
            else:
                outcome.note(f"{attacker.id} misses the DFA and lands beside {target.id}")

        self._leg_damage(attacker, self_damage, outcome)
        outcome.request(attacker.id, StatusKind.MOVE, landing)
        outcome.request(attacker.id, StatusKind.PRONE)
        outcome.request(attacker.id, StatusKind.HEAT, self.DFA_HEAT)
        return outcome

    def _leg_damage(self, attacker: Unit, amount: int, outcome: AttackOutcome):
        """Split landing damage across both legs."""
        left = math.ceil(amount / 2)
        right = amount - left
        outcome.extra_damage.append(DamageRecord(attacker.id, HitLocation.LEFT_LEG, left, "landing"))
        if right:
            outcome.extra_damage.append(DamageRecord(attacker.id, HitLocation.RIGHT_LEG, right, "landing"))
        outcome.note(f"{attacker.id} takes {amount} landing damage to the legs")

    def _resolve_jump_jet(self, attacker: Mech, target: Unit, outcome: AttackOutcome) -> AttackOutcome:
        if not outcome.hit:
            outcome.note(f"{attacker.id} jump-jet attack misses")
            outcome.request(attacker.id, StatusKind.HEAT, self.JUMP_JET_HEAT_MISS)
            return outcome

        outcome.damage = min(self.MAX_JUMP_JET_DAMAGE, attacker.jump_jets)
        outcome.location = self.roll_location(target)
        outcome.note(f"{attacker.id} scorches {target.id} for {outcome.damage} "
                     f"({outcome.location.value})")
        if not target.is_infantry and self.dice.roll_die(6) == 6:
            outcome.critical = True
            outcome.critical_effects.append(CriticalHit(outcome.location, 1))
            outcome.note(f"Critical: {outcome.critical_effects[-1].describe()}")
        outcome.request(attacker.id, StatusKind.HEAT, self.JUMP_JET_HEAT_HIT)
        self.infantry_casualty_checks(target, outcome.damage, outcome)
        return outcome

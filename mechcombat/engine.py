"""
Attack engine - the public entry point for attack resolution.

Routes each attack type to its family resolver and runs the pipeline:
validate -> to-hit -> roll -> damage and criticals. Applying the outcome
is a separate call, so callers can preview an attack before committing it.
"""

import logging
from typing import Optional

from .attacks import AttackFamily, AttackParams, AttackRequest, AttackType
from .combat import (
    AntiMechCombat, CombatResolver, InfantryFireCombat, JumpCombat, MeleeCombat,
    AttackOutcome, FailureKind, ValidationResult,
)
from .config import EngineConfig
from .context import BattleContext
from .dice import Dice
from .effects import ApplyResult, EffectApplicator
from .errors import CombatError, IllegalTransition, UnitNotFound
from .map import hex_distance
from .modifiers import ToHitResult
from .status import UnitStatusMachine
from .units import Unit, Infantry, UnitRoster

logger = logging.getLogger(__name__)


class AttackEngine:
    """Validates, resolves and applies attacks between units."""

    def __init__(
        self,
        dice: Optional[Dice] = None,
        seed: Optional[int] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig()
        if seed is None:
            seed = self.config.seed
        self.dice = dice if dice is not None else Dice(seed)
        self.status = UnitStatusMachine()

        # Family resolvers share one entropy source
        self.melee = MeleeCombat(dice=self.dice)
        self.infantry_fire = InfantryFireCombat(dice=self.dice)
        self.anti_mech = AntiMechCombat(dice=self.dice)
        self.jump = JumpCombat(dice=self.dice, crash_margin=self.config.crash_margin)
        self.resolvers: dict[AttackFamily, CombatResolver] = {
            AttackFamily.MELEE: self.melee,
            AttackFamily.INFANTRY_FIRE: self.infantry_fire,
            AttackFamily.ANTI_MECH: self.anti_mech,
            AttackFamily.JUMP: self.jump,
        }

        self.applicator = EffectApplicator(self.status)

    def resolver_for(self, attack_type: AttackType) -> CombatResolver:
        return self.resolvers[attack_type.family]

    def validate_attack(
        self,
        attacker: Unit,
        target: Unit,
        attack_type: AttackType,
        context: BattleContext,
        params: Optional[AttackParams] = None,
    ) -> ValidationResult:
        """Whether the attack may be attempted; never mutates state."""
        params = params or AttackParams()
        result = self.resolver_for(attack_type).validate(attacker, target, attack_type, context, params)
        if result.kind == FailureKind.NOT_FOUND:
            logger.warning(f"{attack_type.value} {attacker.id} -> {target.id}: {result.reason}")
        elif not result.legal:
            logger.info(f"Illegal {attack_type.value} {attacker.id} -> {target.id}: {result.reason}")
        return result

    def calculate_to_hit(
        self,
        attacker: Unit,
        target: Unit,
        attack_type: AttackType,
        context: BattleContext,
        params: Optional[AttackParams] = None,
    ) -> ToHitResult:
        params = params or AttackParams()
        return self.resolver_for(attack_type).calculate_to_hit(attacker, target, attack_type, context, params)

    def execute_attack(
        self,
        attacker: Unit,
        target: Unit,
        attack_type: AttackType,
        context: BattleContext,
        params: Optional[AttackParams] = None,
    ) -> AttackOutcome:
        """Validate and resolve an attack. The outcome is not applied."""
        params = params or AttackParams()
        validation = self.validate_attack(attacker, target, attack_type, context, params)
        if not validation.legal:
            return AttackOutcome.failed(attacker.id, target.id, attack_type, validation)

        resolver = self.resolver_for(attack_type)
        to_hit = resolver.calculate_to_hit(attacker, target, attack_type, context, params)
        outcome = resolver.resolve(attacker, target, attack_type, to_hit, context, params)
        logger.debug(f"{attack_type.value} {attacker.id} -> {target.id}: "
                     f"{'hit' if outcome.hit else 'miss'}, {outcome.damage} damage")
        return outcome

    def apply_outcome(
        self,
        target: Unit,
        attacker: Unit,
        outcome: AttackOutcome,
        context: Optional[BattleContext] = None,
        roster: Optional[UnitRoster] = None,
    ) -> ApplyResult:
        """Commit an outcome to unit state; a second call with the same outcome is refused."""
        try:
            result = self.applicator.apply(target, attacker, outcome, context, roster)
        except CombatError as e:
            logger.error(f"Could not apply outcome {outcome.outcome_id}: {e}")
            return ApplyResult.failed(outcome.outcome_id, str(e), FailureKind.INVARIANT)
        for message in result.messages:
            logger.info(message)
        return result

    def resolve_request(
        self,
        request: AttackRequest,
        roster: UnitRoster,
        context: BattleContext,
        apply: bool = True,
    ) -> tuple[AttackOutcome, Optional[ApplyResult]]:
        """Look both units up by id, resolve the attack and optionally apply it."""
        try:
            attacker = roster.require(request.attacker_id)
            target = roster.require(request.target_id)
        except UnitNotFound as e:
            logger.warning(f"{request.attack_type.value} request rejected: {e}")
            validation = ValidationResult.not_found(str(e))
            return AttackOutcome.failed(request.attacker_id, request.target_id,
                                        request.attack_type, validation), None

        outcome = self.execute_attack(attacker, target, request.attack_type, context, request.params)
        if not outcome.success or not apply:
            return outcome, None
        return outcome, self.apply_outcome(target, attacker, outcome, context, roster)

    # Status actions outside an attack
    def rally(self, unit: Infantry, previous_position: tuple[int, int], roster: UnitRoster) -> bool:
        """Rally a Breaking unit that fell back from the nearest enemy."""
        enemy = roster.nearest_enemy(unit)
        if enemy is None:
            moved_away = True
        else:
            before = hex_distance(*previous_position, *enemy.position)
            moved_away = unit.distance_to(enemy) > before
        roll = self.dice.roll_2d6()
        try:
            return self.status.rally(unit, moved_away, roll)
        except IllegalTransition as e:
            logger.info(str(e))
            return False

    def detach(self, infantry: Infantry) -> ValidationResult:
        """Voluntary release from a swarmed mech."""
        if not isinstance(infantry, Infantry) or infantry.swarm is None:
            return ValidationResult.illegal(f"{infantry.id} is not swarming")
        self.applicator.detach(infantry)
        return ValidationResult.ok()

    def entrench(self, infantry: Infantry) -> ValidationResult:
        """Dig in before moving or firing; counts as the unit's action."""
        if not isinstance(infantry, Infantry):
            return ValidationResult.illegal(f"Only infantry can entrench ({infantry.id})")
        if infantry.out_of_action:
            return ValidationResult.illegal(f"{infantry.id} is out of action")
        if infantry.entrenched:
            return ValidationResult.illegal(f"{infantry.id} is already entrenched")
        if infantry.is_swarming:
            return ValidationResult.illegal(f"{infantry.id} is swarming and cannot entrench")
        if infantry.movement.has_moved or infantry.has_attacked:
            return ValidationResult.illegal("Cannot entrench after moving or firing")
        if infantry.entrench_cooldown > 0:
            return ValidationResult.illegal(
                f"Entrenchment on cooldown for {infantry.entrench_cooldown} turns")
        self.applicator.entrench(infantry)
        return ValidationResult.ok()

    def abandon_entrenchment(self, infantry: Infantry) -> ValidationResult:
        if not infantry.entrenched:
            return ValidationResult.illegal(f"{infantry.id} is not entrenched")
        self.applicator.abandon_entrenchment(infantry)
        return ValidationResult.ok()

    def end_of_turn(self, roster: UnitRoster, context: Optional[BattleContext] = None):
        for unit in roster.units.values():
            self.applicator.end_of_turn(unit)
        if context is not None:
            context.tick_minefields()
            context.turn += 1

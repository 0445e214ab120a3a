"""
Base attack resolution with the mechanics every family shares.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..attacks import AttackParams, AttackType
from ..context import BattleContext
from ..criticals import CriticalEffect, ForcedPilotingRoll
from ..dice import Dice
from ..locations import HitLocation, MECH_TABLE, VEHICLE_TABLE, INFANTRY_TABLE
from ..map import Weather
from ..modifiers import ModifierAccumulator, ToHitResult
from ..status import UnitStatusMachine
from ..units import Unit, Infantry, Morale, MoveType, MovementState

logger = logging.getLogger(__name__)


class FailureKind(Enum):
    ILLEGAL = "illegal"
    NOT_FOUND = "not_found"
    INVARIANT = "invariant"


@dataclass
class ValidationResult:
    legal: bool
    reason: Optional[str] = None
    kind: Optional[FailureKind] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(legal=True)

    @classmethod
    def illegal(cls, reason: str) -> "ValidationResult":
        return cls(legal=False, reason=reason, kind=FailureKind.ILLEGAL)

    @classmethod
    def not_found(cls, reason: str) -> "ValidationResult":
        return cls(legal=False, reason=reason, kind=FailureKind.NOT_FOUND)


class StatusKind(Enum):
    PRONE = "prone"
    MORALE_FAILURE = "morale_failure"
    ATTACH_SWARM = "attach_swarm"
    DETACH_SWARM = "detach_swarm"
    SUPPRESS = "suppress"
    MOVE = "move"
    HEAT = "heat"
    FATIGUE = "fatigue"
    MINEFIELD = "minefield"


@dataclass
class StatusChange:
    """A requested status transition, carried out by the effect applicator."""
    unit_id: str
    kind: StatusKind
    value: Any = None
    location: Optional[HitLocation] = None


@dataclass
class DamageRecord:
    """Damage beyond the primary hit: self-damage, falls, secondary hits."""
    unit_id: str
    location: HitLocation
    amount: int
    reason: str = ""


@dataclass
class AttackOutcome:
    """Everything a resolved attack would do, before anything is mutated."""
    attacker_id: str
    target_id: str
    attack_type: AttackType
    success: bool = True
    reason: Optional[str] = None
    failure: Optional[FailureKind] = None
    hit: bool = False
    roll: Optional[int] = None
    target_number: Optional[int] = None
    to_hit: Optional[ToHitResult] = None
    damage: int = 0
    location: Optional[HitLocation] = None
    critical: bool = False
    critical_effects: list[CriticalEffect] = field(default_factory=list)
    status_changes: list[StatusChange] = field(default_factory=list)
    extra_damage: list[DamageRecord] = field(default_factory=list)
    troop_losses: dict[str, int] = field(default_factory=dict)
    consumed_equipment: list[tuple[str, str, int]] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    outcome_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def failed(cls, attacker_id: str, target_id: str, attack_type: AttackType,
               validation: ValidationResult) -> "AttackOutcome":
        return cls(
            attacker_id=attacker_id, target_id=target_id, attack_type=attack_type,
            success=False, reason=validation.reason, failure=validation.kind,
            messages=[validation.reason or "Attack not allowed"],
        )

    def request(self, unit_id: str, kind: StatusKind, value: Any = None,
                location: Optional[HitLocation] = None):
        self.status_changes.append(StatusChange(unit_id, kind, value, location))

    def note(self, message: str):
        self.messages.append(message)


class CombatResolver:
    """Base class for an attack family."""

    ATTACK_TYPES: tuple[AttackType, ...] = ()

    def __init__(self, dice: Optional[Dice] = None, rng_seed: Optional[int] = None):
        self.dice = dice if dice is not None else Dice(rng_seed)
        self.rng = self.dice.rng
        self.status = UnitStatusMachine()

    # Family hooks
    def validate(self, attacker: Unit, target: Unit, attack_type: AttackType,
                 context: BattleContext, params: AttackParams) -> ValidationResult:
        raise NotImplementedError

    def calculate_to_hit(self, attacker: Unit, target: Unit, attack_type: AttackType,
                         context: BattleContext, params: AttackParams) -> ToHitResult:
        raise NotImplementedError

    def resolve(self, attacker: Unit, target: Unit, attack_type: AttackType,
                to_hit: ToHitResult, context: BattleContext,
                params: AttackParams) -> AttackOutcome:
        raise NotImplementedError

    # Shared validation
    def check_common(self, attacker: Unit, target: Unit,
                     context: BattleContext) -> Optional[ValidationResult]:
        """Checks every family makes before its own rules."""
        if context.get_hex(attacker.position) is None:
            return ValidationResult.not_found(f"Hex {attacker.position} not found")
        if context.get_hex(target.position) is None:
            return ValidationResult.not_found(f"Hex {target.position} not found")
        if attacker.id == target.id:
            return ValidationResult.illegal("A unit cannot attack itself")
        if attacker.out_of_action:
            return ValidationResult.illegal(f"{attacker.id} is out of action")
        if target.out_of_action:
            return ValidationResult.illegal(f"{target.id} is out of action")
        if attacker.stunned:
            return ValidationResult.illegal(f"{attacker.id} is stunned")
        if attacker.shutdown:
            return ValidationResult.illegal(f"{attacker.id} is shut down")
        if isinstance(attacker, Infantry) and attacker.morale == Morale.BROKEN:
            return ValidationResult.illegal(f"{attacker.id} is broken and cannot attack")
        return None

    # Shared modifiers
    def attacker_movement_modifier(self, movement: MovementState) -> int:
        """Penalty for the attacker's own movement, graduated by move type."""
        hexes = movement.hexes_moved
        if movement.move_type == MoveType.WALK:
            if hexes <= 2:
                return 1
            if hexes <= 4:
                return 2
            return 3
        if movement.move_type == MoveType.RUN:
            return min(hexes, 5)
        if movement.move_type == MoveType.JUMP:
            return min(hexes + 1, 6)
        return 0

    def target_movement_modifier(self, movement: MovementState) -> int:
        return {
            MoveType.NONE: 0,
            MoveType.WALK: 1,
            MoveType.RUN: 2,
            MoveType.JUMP: 3,
        }[movement.move_type]

    def add_weather(self, acc: ModifierAccumulator, context: BattleContext,
                    night: int = 0, fog: int = 0):
        acc.add(f"weather ({context.weather.value})", context.weather_modifier())
        acc.add_if(context.is_night, "night", night)
        acc.add_if(context.weather == Weather.FOG, "fog", fog)

    # Rolls
    def roll_to_hit(self, to_hit: ToHitResult) -> tuple[int, bool]:
        roll = self.dice.roll_2d6()
        return roll, roll >= to_hit.target_number

    def new_outcome(self, attacker: Unit, target: Unit, attack_type: AttackType,
                    to_hit: Optional[ToHitResult]) -> AttackOutcome:
        outcome = AttackOutcome(attacker_id=attacker.id, target_id=target.id,
                                attack_type=attack_type, to_hit=to_hit)
        if to_hit is not None:
            outcome.target_number = to_hit.target_number
        return outcome

    def standard_table(self, target: Unit) -> dict:
        if target.is_infantry:
            return INFANTRY_TABLE
        if target.is_vehicle:
            return VEHICLE_TABLE
        return MECH_TABLE

    def roll_location(self, target: Unit, table: Optional[dict] = None, dice: int = 2) -> HitLocation:
        """Hit location on `table`, or the target type's standard 2d6 table."""
        if target.is_infantry:
            return HitLocation.SQUAD
        if table is None:
            table = self.standard_table(target)
            dice = 2
        default = HitLocation.FRONT if target.is_vehicle else HitLocation.CENTER_TORSO
        return self.dice.roll_location(table, dice=dice, default=default)

    def fatigue_scaled(self, damage: float, attacker: Unit) -> float:
        """Tired infantry hit softer once fatigue passes 5."""
        fatigue = getattr(attacker, "fatigue", 0)
        if fatigue > 5:
            return damage * (1 - (fatigue - 5) / 10)
        return damage

    # Follow-up checks resolved with the attack
    def forced_piloting_roll(self, unit: Unit, modifier: int, outcome: AttackOutcome,
                             reason: str) -> bool:
        """Roll a piloting check for a standing mech; a failure means a fall."""
        if not unit.is_mech or unit.is_prone:
            return False
        if any(change.unit_id == unit.id and change.kind == StatusKind.PRONE
               for change in outcome.status_changes):
            return False
        target_number = unit.piloting + modifier
        roll = self.dice.roll_2d6()
        if roll >= target_number:
            outcome.note(f"{unit.id} passes piloting roll ({roll} vs {target_number}, {reason})")
            return False

        fall_damage = math.ceil(unit.tonnage / 10)
        location = self.roll_location(unit)
        outcome.request(unit.id, StatusKind.PRONE)
        outcome.extra_damage.append(DamageRecord(unit.id, location, fall_damage, "fall"))
        outcome.note(f"{unit.id} fails piloting roll ({roll} vs {target_number}, {reason}) "
                     f"and falls for {fall_damage}")
        logger.debug(f"PSR failed for {unit.id}: {roll} < {target_number}")
        return True

    def resolve_forced_rolls(self, target: Unit, outcome: AttackOutcome):
        for effect in outcome.critical_effects:
            if isinstance(effect, ForcedPilotingRoll):
                self.forced_piloting_roll(target, effect.modifier, outcome, "critical")

    def infantry_casualty_checks(self, target: Unit, damage: int, outcome: AttackOutcome):
        """Morale check for infantry that survives taking casualties."""
        if not isinstance(target, Infantry) or damage <= 0:
            return
        losses = math.ceil(damage / 2)
        troops_after = max(0, target.troops - losses)
        if troops_after == 0:
            outcome.note(f"{target.id} will be eliminated")
            return
        check = self.status.roll_morale_check(target, self.dice, troops_after)
        if check.passed:
            outcome.note(f"{target.id} holds (morale {check.roll}{check.modifier:+d} vs {check.target})")
        else:
            outcome.request(target.id, StatusKind.MORALE_FAILURE)
            outcome.note(f"{target.id} fails morale ({check.roll}{check.modifier:+d} vs {check.target})")

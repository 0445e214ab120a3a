"""
Effect application - the only place combat mutates unit state.

Handles:
- Armor and structure damage for mechs and vehicles, troop losses for infantry
- Critical effects, status transitions and equipment consumption
- Once-only application of each outcome
- End-of-turn bookkeeping
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from .combat.base import AttackOutcome, FailureKind, StatusChange, StatusKind
from .context import BattleContext, Minefield
from .criticals import (
    ActuatorDamage, CriticalHit, HitLocationOverride, InternalDamage, Knockback, PilotEffect,
)
from .errors import InvariantViolation, OutcomeAlreadyApplied
from .locations import HitLocation, TRANSFER
from .status import UnitStatusMachine, MAX_FATIGUE
from .units import Unit, Mech, Infantry, Vehicle, Ability, MovementState, UnitRoster

logger = logging.getLogger(__name__)

TROOP_DAMAGE_RATIO = 2
ENTRENCH_COOLDOWN = 2


@dataclass
class ApplyResult:
    """What an applied outcome actually changed."""
    outcome_id: str
    success: bool = True
    reason: Optional[str] = None
    failure: Optional[FailureKind] = None
    damage_applied: dict[str, int] = field(default_factory=dict)
    troops_lost: dict[str, int] = field(default_factory=dict)
    destroyed: list[str] = field(default_factory=list)
    eliminated: list[str] = field(default_factory=list)
    transitions: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)

    @classmethod
    def failed(cls, outcome_id: str, reason: str, kind: FailureKind) -> "ApplyResult":
        return cls(outcome_id=outcome_id, success=False, reason=reason, failure=kind,
                   messages=[reason])

    def add_damage(self, unit_id: str, amount: int):
        self.damage_applied[unit_id] = self.damage_applied.get(unit_id, 0) + amount

    def add_losses(self, unit_id: str, troops: int):
        self.troops_lost[unit_id] = self.troops_lost.get(unit_id, 0) + troops

    def note(self, message: str):
        self.messages.append(message)


def troops_for_damage(damage: int) -> int:
    """Troopers lost to a hit: one per two points, rounded up."""
    return math.ceil(damage / TROOP_DAMAGE_RATIO)


class EffectApplicator:
    """Commits resolved outcomes to unit state, at most once each."""

    def __init__(self, status: Optional[UnitStatusMachine] = None):
        self.status = status or UnitStatusMachine()
        self.applied: set[str] = set()

    def was_applied(self, outcome: AttackOutcome) -> bool:
        return outcome.outcome_id in self.applied

    def apply(
        self,
        target: Unit,
        attacker: Unit,
        outcome: AttackOutcome,
        context: Optional[BattleContext] = None,
        roster: Optional[UnitRoster] = None,
    ) -> ApplyResult:
        """Apply every consequence carried by `outcome`."""
        if outcome.outcome_id in self.applied:
            raise OutcomeAlreadyApplied(outcome.outcome_id)
        self._check_outcome(target, attacker, outcome)
        self.applied.add(outcome.outcome_id)

        units = {attacker.id: attacker, target.id: target}
        result = ApplyResult(outcome_id=outcome.outcome_id)

        location = outcome.location
        for effect in outcome.critical_effects:
            if isinstance(effect, HitLocationOverride):
                location = effect.location

        if outcome.hit and outcome.damage > 0:
            self.damage_unit(target, location, outcome.damage, result)

        for record in outcome.extra_damage:
            self.damage_unit(units[record.unit_id], record.location, record.amount, result)

        for unit_id, losses in outcome.troop_losses.items():
            unit = units[unit_id]
            if isinstance(unit, Infantry):
                self.lose_troops(unit, losses, result)

        if outcome.hit:
            for effect in outcome.critical_effects:
                self._apply_critical(target, attacker, effect, context, result)

        for change in outcome.status_changes:
            self._apply_status(units, change, attacker, context, result)

        for unit_id, name, quantity in outcome.consumed_equipment:
            self._consume(units[unit_id], name, quantity)

        attacker.has_attacked = True
        if attacker.hidden:
            attacker.hidden = False
            result.transitions.append(f"{attacker.id}: revealed")

        for unit in units.values():
            if unit.destroyed and unit.is_mech:
                self._release_swarms(unit, units, roster, result)

        result.messages.extend(outcome.messages)
        return result

    def _check_outcome(self, target: Unit, attacker: Unit, outcome: AttackOutcome):
        if not outcome.success:
            raise InvariantViolation(f"Outcome {outcome.outcome_id} failed validation and cannot be applied")
        if outcome.target_id != target.id or outcome.attacker_id != attacker.id:
            raise InvariantViolation(
                f"Outcome {outcome.outcome_id} is for {outcome.attacker_id} -> {outcome.target_id}, "
                f"not {attacker.id} -> {target.id}"
            )
        if outcome.damage < 0:
            raise InvariantViolation(f"Negative damage {outcome.damage} in outcome {outcome.outcome_id}")
        known = {target.id, attacker.id}
        for record in outcome.extra_damage:
            if record.amount < 0:
                raise InvariantViolation(f"Negative damage {record.amount} to {record.unit_id}")
            if record.unit_id not in known:
                raise InvariantViolation(f"Damage for {record.unit_id}, who is not part of this attack")
        for unit_id, losses in outcome.troop_losses.items():
            if losses < 0:
                raise InvariantViolation(f"Negative troop loss {losses} for {unit_id}")
            if unit_id not in known:
                raise InvariantViolation(f"Troop loss for {unit_id}, who is not part of this attack")
        for change in outcome.status_changes:
            if change.unit_id not in known:
                raise InvariantViolation(f"Status change for {change.unit_id}, who is not part of this attack")
            if change.kind == StatusKind.ATTACH_SWARM:
                swarmer = target if change.unit_id == target.id else attacker
                if not isinstance(swarmer, Infantry) or swarmer.swarm is not None:
                    raise InvariantViolation(f"{change.unit_id} cannot take on another swarm attachment")
        for unit_id, name, quantity in outcome.consumed_equipment:
            unit = target if unit_id == target.id else attacker
            if unit_id not in known or unit.equipment_count(name) < quantity:
                raise InvariantViolation(f"{unit_id} does not carry {quantity}x {name}")

    # Damage
    def damage_unit(self, unit: Unit, location: Optional[HitLocation], amount: int,
                    result: ApplyResult) -> int:
        if amount < 0:
            raise InvariantViolation(f"Negative damage {amount} to {unit.id}")
        if amount == 0 or unit.out_of_action:
            return 0
        if isinstance(unit, Mech):
            absorbed = self._damage_mech(unit, location or HitLocation.CENTER_TORSO, amount)
        elif isinstance(unit, Vehicle):
            absorbed = self._damage_vehicle(unit, location or HitLocation.FRONT, amount)
        elif isinstance(unit, Infantry):
            losses = self.lose_troops(unit, troops_for_damage(amount), result)
            absorbed = min(amount, losses * TROOP_DAMAGE_RATIO)
        else:
            raise InvariantViolation(f"Cannot damage unit of kind {unit.kind}")

        result.add_damage(unit.id, absorbed)
        where = f" ({location.value})" if location else ""
        logger.info(f"{unit.id} takes {amount} damage{where}")

        if not unit.destroyed and self._is_destroyed(unit):
            unit.destroyed = True
            result.destroyed.append(unit.id)
            result.note(f"{unit.id} is destroyed")
            logger.info(f"{unit.id} destroyed")
        return absorbed

    def _damage_mech(self, mech: Mech, location: HitLocation, amount: int) -> int:
        """Armor first, then structure; leftover moves inward."""
        remaining = amount
        current: Optional[HitLocation] = location
        while remaining > 0 and current is not None:
            armor = mech.armor.get(current, 0)
            taken = min(armor, remaining)
            mech.armor[current] = armor - taken
            remaining -= taken

            # Rear armor sits over the center torso's structure
            inner = HitLocation.CENTER_TORSO if current == HitLocation.REAR_TORSO else current
            if remaining > 0:
                structure = mech.structure.get(inner, 0)
                taken = min(structure, remaining)
                mech.structure[inner] = structure - taken
                remaining -= taken
            current = TRANSFER.get(inner) if remaining > 0 else None
        return amount - remaining

    def _damage_vehicle(self, vehicle: Vehicle, location: HitLocation, amount: int) -> int:
        armor = vehicle.armor.get(location, 0)
        taken = min(armor, amount)
        vehicle.armor[location] = armor - taken
        remaining = amount - taken
        structure_taken = min(vehicle.structure, remaining)
        vehicle.structure -= structure_taken
        return taken + structure_taken

    def _is_destroyed(self, unit: Unit) -> bool:
        if isinstance(unit, Mech):
            return (unit.structure.get(HitLocation.HEAD, 1) <= 0
                    or unit.structure.get(HitLocation.CENTER_TORSO, 1) <= 0)
        if isinstance(unit, Vehicle):
            return unit.structure <= 0
        return False

    def lose_troops(self, infantry: Infantry, losses: int, result: ApplyResult) -> int:
        """Remove troopers, never below zero; returns how many were lost."""
        if losses < 0:
            raise InvariantViolation(f"Negative troop loss {losses} for {infantry.id}")
        losses = min(losses, infantry.troops)
        if losses == 0:
            return 0
        infantry.troops -= losses
        result.add_losses(infantry.id, losses)
        logger.info(f"{infantry.id} loses {losses} troops ({infantry.troops} remaining)")
        if infantry.eliminated:
            if infantry.swarm is not None:
                self.status.detach(infantry)
            result.eliminated.append(infantry.id)
            result.note(f"{infantry.id} is eliminated")
            logger.info(f"{infantry.id} eliminated")
        return losses

    # Criticals
    def _apply_critical(self, target: Unit, attacker: Unit, effect, context: Optional[BattleContext],
                        result: ApplyResult):
        if target.out_of_action:
            return
        if isinstance(effect, ActuatorDamage) and isinstance(target, Mech):
            target.damaged_actuators.extend([effect.location] * effect.severity)
        elif isinstance(effect, CriticalHit) and isinstance(target, (Mech, Vehicle)):
            target.critical_hits[effect.location] = target.critical_hits.get(effect.location, 0) + effect.count
        elif isinstance(effect, InternalDamage) and isinstance(target, Mech):
            structure = target.structure.get(effect.location, 0)
            taken = min(structure, effect.amount)
            target.structure[effect.location] = structure - taken
            result.add_damage(target.id, taken)
            if self._is_destroyed(target):
                target.destroyed = True
                result.destroyed.append(target.id)
                logger.info(f"{target.id} destroyed by internal damage")
        elif isinstance(effect, PilotEffect):
            key = effect.effect.value
            target.pilot_effects[key] = max(target.pilot_effects.get(key, 0), effect.duration)
        elif isinstance(effect, Knockback):
            self._knockback(target, attacker, effect.distance, context, result)
        else:
            return
        result.transitions.append(f"{target.id}: {effect.describe()}")
        logger.info(f"{target.id}: {effect.describe()}")

    def _knockback(self, target: Unit, attacker: Unit, distance: int,
                   context: Optional[BattleContext], result: ApplyResult):
        """Push the target away from the attacker, stopping at the map edge."""
        dq = target.position[0] - attacker.position[0]
        dr = target.position[1] - attacker.position[1]
        position = target.position
        for _ in range(distance):
            step = (position[0] + dq, position[1] + dr)
            if context is not None and context.get_hex(step) is None:
                break
            position = step
        if position != target.position:
            target.position = position
            result.note(f"{target.id} pushed to {position}")

    # Status
    def _apply_status(self, units: dict[str, Unit], change: StatusChange, attacker: Unit,
                      context: Optional[BattleContext], result: ApplyResult):
        unit = units[change.unit_id]
        kind = change.kind

        if kind == StatusKind.MOVE:
            unit.position = tuple(change.value)
        elif kind == StatusKind.HEAT:
            unit.heat += change.value
        elif kind == StatusKind.MINEFIELD:
            if context is None:
                raise InvariantViolation("Placing a minefield needs a battle context")
            q, r = unit.position
            context.minefields.append(Minefield(q=q, r=r, owner_id=attacker.id, damage=change.value))
            result.note(f"Minefield laid at {unit.position}")
        elif unit.out_of_action:
            return
        elif kind == StatusKind.PRONE:
            if not self.status.knock_prone(unit):
                return
        elif kind == StatusKind.MORALE_FAILURE:
            self.status.fail_morale(unit)
        elif kind == StatusKind.ATTACH_SWARM:
            mech = units[change.value]
            if mech.out_of_action:
                return
            self.status.attach(unit, mech, change.location)
            unit.position = mech.position
        elif kind == StatusKind.DETACH_SWARM:
            if not self.status.detach(unit, units.get(change.value)):
                return
        elif kind == StatusKind.SUPPRESS:
            unit.suppressed = bool(change.value)
        elif kind == StatusKind.FATIGUE:
            unit.fatigue = min(MAX_FATIGUE, unit.fatigue + change.value)
        result.transitions.append(f"{unit.id}: {kind.value}")

    def _consume(self, unit: Unit, name: str, quantity: int):
        """Use up one-time equipment; spent items leave the equipment list."""
        remaining = quantity
        for item in list(unit.equipment):
            if remaining <= 0:
                break
            if item.name != name:
                continue
            used = min(item.quantity, remaining)
            item.quantity -= used
            remaining -= used
            if item.quantity <= 0:
                unit.equipment.remove(item)
        logger.info(f"{unit.id} expends {quantity}x {name}")

    def _release_swarms(self, mech: Mech, units: dict[str, Unit], roster: Optional[UnitRoster],
                        result: ApplyResult):
        """A destroyed mech sheds every platoon still clinging to it."""
        candidates = list(roster.units.values()) if roster is not None else list(units.values())
        for unit in candidates:
            if isinstance(unit, Infantry) and unit.swarm is not None and unit.swarm.mech_id == mech.id:
                self.status.detach(unit, mech)
                result.transitions.append(f"{unit.id}: detached from destroyed {mech.id}")

    # Status actions outside an attack
    def entrench(self, infantry: Infantry):
        """Dig in; entrenching takes the unit's action for the turn."""
        infantry.entrenched = True
        infantry.has_attacked = True
        if infantry.has_ability(Ability.ENTRENCHMENT):
            infantry.entrench_cooldown = ENTRENCH_COOLDOWN
        logger.info(f"{infantry.id} entrenches at {infantry.position}")

    def abandon_entrenchment(self, infantry: Infantry):
        infantry.entrenched = False
        logger.info(f"{infantry.id} abandons its entrenchment")

    def detach(self, infantry: Infantry) -> bool:
        return self.status.detach(infantry)

    # Turn bookkeeping
    def end_of_turn(self, unit: Unit):
        """Per-turn resets once every attack has been applied."""
        unit.has_attacked = False
        unit.movement = MovementState()
        unit.suppressed = False
        unit.pilot_effects = {effect: turns - 1 for effect, turns in unit.pilot_effects.items() if turns > 1}
        if isinstance(unit, Infantry) and not unit.is_swarming and unit.fatigue > 0:
            unit.fatigue -= 1
        if isinstance(unit, Infantry) and unit.entrench_cooldown > 0:
            unit.entrench_cooldown -= 1

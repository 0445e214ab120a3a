"""
Unit status state machine.

Handles:
- Infantry morale: Steady -> Breaking -> Broken, Breaking -> Steady on rally
- Mech posture: Standing <-> Prone
- Swarm attachment: Unattached -> Swarming(mech, location) -> Unattached
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .dice import Dice
from .errors import IllegalTransition
from .locations import HitLocation
from .units import Unit, Infantry, Mech, Morale, Posture, SwarmAttachment

logger = logging.getLogger(__name__)

MORALE_TARGET = 8
RALLY_TARGET = 8
MAX_FATIGUE = 10
DETACH_FATIGUE = 2


@dataclass
class MoraleCheck:
    roll: int
    modifier: int
    target: int
    passed: bool


class UnitStatusMachine:
    """Legal status transitions; every combat-time status write goes through here."""

    MORALE_FAILURE = {
        Morale.STEADY: Morale.BREAKING,
        Morale.BREAKING: Morale.BROKEN,
        Morale.BROKEN: Morale.BROKEN,
    }

    # Morale
    def morale_modifier(self, unit: Infantry, troops_after: Optional[int] = None) -> int:
        """Casualty and state penalties applied to a morale roll."""
        troops = unit.troops if troops_after is None else troops_after
        lost = 1.0 - troops / max(1, unit.max_troops)
        modifier = 0
        if lost >= 0.5:
            modifier -= 3
        elif lost >= 0.3:
            modifier -= 2
        elif lost >= 0.1:
            modifier -= 1
        if unit.morale == Morale.BREAKING:
            modifier -= 1
        return modifier

    def roll_morale_check(self, unit: Infantry, dice: Dice, troops_after: Optional[int] = None) -> MoraleCheck:
        roll = dice.roll_2d6()
        modifier = self.morale_modifier(unit, troops_after)
        passed = roll + modifier >= MORALE_TARGET
        return MoraleCheck(roll=roll, modifier=modifier, target=MORALE_TARGET, passed=passed)

    def fail_morale(self, unit: Unit) -> Morale:
        """Advance one step along the failure path."""
        if not isinstance(unit, Infantry):
            raise IllegalTransition(f"{unit.id} has no morale state")
        previous = unit.morale
        unit.morale = self.MORALE_FAILURE[previous]
        if unit.morale != previous:
            logger.info(f"{unit.id} morale {previous.value} -> {unit.morale.value}")
        if unit.morale == Morale.BROKEN and unit.swarm is not None:
            # Broken troops cannot hold on to a mech
            self.detach(unit)
        return unit.morale

    def rally(self, unit: Infantry, moved_away: bool, roll: int) -> bool:
        """Breaking -> Steady, only after falling back and passing the rally roll."""
        if unit.morale == Morale.BROKEN:
            raise IllegalTransition(f"{unit.id} is broken and cannot rally")
        if unit.morale != Morale.BREAKING:
            return False
        if not moved_away or roll < RALLY_TARGET:
            return False
        unit.morale = Morale.STEADY
        logger.info(f"{unit.id} rallied (roll {roll})")
        return True

    # Posture
    def knock_prone(self, unit: Unit) -> bool:
        if unit.is_infantry:
            raise IllegalTransition(f"{unit.id} has no mech posture")
        if unit.posture == Posture.PRONE:
            return False
        unit.posture = Posture.PRONE
        logger.info(f"{unit.id} falls prone")
        return True

    def stand(self, unit: Unit) -> bool:
        if unit.posture == Posture.STANDING:
            return False
        unit.posture = Posture.STANDING
        return True

    # Swarm
    def attach(self, infantry: Infantry, mech: Mech, location: HitLocation) -> SwarmAttachment:
        if infantry.swarm is not None:
            raise IllegalTransition(
                f"{infantry.id} is already swarming {infantry.swarm.mech_id}"
            )
        if infantry.morale == Morale.BROKEN:
            raise IllegalTransition(f"{infantry.id} is broken and cannot swarm")
        if infantry.eliminated:
            raise IllegalTransition(f"{infantry.id} is eliminated")
        attachment = SwarmAttachment(infantry_id=infantry.id, mech_id=mech.id, location=location)
        infantry.swarm = attachment
        logger.info(f"{infantry.id} swarms {mech.id} at {location.value}")
        return attachment

    def detach(self, infantry: Infantry, mech: Optional[Mech] = None) -> bool:
        """Clear the attachment; fatigue rises whenever troops let go."""
        attachment = infantry.swarm
        if attachment is None:
            return False
        if mech is not None and attachment.mech_id != mech.id:
            raise IllegalTransition(
                f"{infantry.id} is swarming {attachment.mech_id}, not {mech.id}"
            )
        infantry.swarm = None
        infantry.fatigue = min(MAX_FATIGUE, infantry.fatigue + DETACH_FATIGUE)
        logger.info(f"{infantry.id} detaches from {attachment.mech_id}")
        return True

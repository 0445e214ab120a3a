"""
Attack vocabulary shared by the resolvers and callers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class AttackFamily(Enum):
    MELEE = "melee"
    INFANTRY_FIRE = "infantry_fire"
    ANTI_MECH = "anti_mech"
    JUMP = "jump"


class AttackType(Enum):
    # Melee
    PUNCH = "punch"
    KICK = "kick"
    CHARGE = "charge"
    PUSH = "push"
    CLUB = "club"
    HATCHET = "hatchet"
    SWORD = "sword"
    AXE = "axe"
    MACE = "mace"
    # Ranged infantry
    INFANTRY_FIRE = "infantry_fire"
    # Anti-mech
    SWARM = "swarm"
    LEG_ATTACK = "leg_attack"
    MINE_PLACEMENT = "mine_placement"
    EXPLOSIVE = "explosive"
    CRITICAL_SYSTEM = "critical_system"
    CONTINUE_SWARM = "continue_swarm"
    DISLODGE = "dislodge"
    # Jump
    DFA = "dfa"
    JUMP_JET = "jump_jet"

    @property
    def family(self) -> AttackFamily:
        return FAMILY_OF[self]


MELEE_WEAPONS = (AttackType.HATCHET, AttackType.SWORD, AttackType.AXE, AttackType.MACE)

FAMILY_OF = {
    AttackType.PUNCH: AttackFamily.MELEE,
    AttackType.KICK: AttackFamily.MELEE,
    AttackType.CHARGE: AttackFamily.MELEE,
    AttackType.PUSH: AttackFamily.MELEE,
    AttackType.CLUB: AttackFamily.MELEE,
    AttackType.HATCHET: AttackFamily.MELEE,
    AttackType.SWORD: AttackFamily.MELEE,
    AttackType.AXE: AttackFamily.MELEE,
    AttackType.MACE: AttackFamily.MELEE,
    AttackType.INFANTRY_FIRE: AttackFamily.INFANTRY_FIRE,
    AttackType.SWARM: AttackFamily.ANTI_MECH,
    AttackType.LEG_ATTACK: AttackFamily.ANTI_MECH,
    AttackType.MINE_PLACEMENT: AttackFamily.ANTI_MECH,
    AttackType.EXPLOSIVE: AttackFamily.ANTI_MECH,
    AttackType.CRITICAL_SYSTEM: AttackFamily.ANTI_MECH,
    AttackType.CONTINUE_SWARM: AttackFamily.ANTI_MECH,
    AttackType.DISLODGE: AttackFamily.ANTI_MECH,
    AttackType.DFA: AttackFamily.JUMP,
    AttackType.JUMP_JET: AttackFamily.JUMP,
}


class DislodgeMethod(Enum):
    SHAKE = "shake"
    ROLL = "roll"
    WATER = "water"
    FIRE = "fire"


@dataclass
class AttackParams:
    """Optional attack-specific inputs."""
    jump_distance: Optional[int] = None
    method: Optional[DislodgeMethod] = None


@dataclass
class AttackRequest:
    attacker_id: str
    target_id: str
    attack_type: AttackType
    params: AttackParams = field(default_factory=AttackParams)

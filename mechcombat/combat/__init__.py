"""
Attack resolution modules, one per attack family.

Families: melee, infantry fire, anti-mech, jump (DFA and jump jets)
"""

from .base import (
    CombatResolver, AttackOutcome, DamageRecord, FailureKind,
    StatusChange, StatusKind, ValidationResult,
)
from .melee import MeleeCombat
from .infantry_fire import InfantryFireCombat
from .anti_mech import AntiMechCombat
from .jump import JumpCombat

__all__ = [
    "CombatResolver",
    "AttackOutcome",
    "DamageRecord",
    "FailureKind",
    "StatusChange",
    "StatusKind",
    "ValidationResult",
    "MeleeCombat",
    "InfantryFireCombat",
    "AntiMechCombat",
    "JumpCombat",
]

"""
Attack resolution engine for a hex-based BattleTech-style wargame.

Core modules:
- dice: Seedable source for every random outcome
- modifiers: To-hit modifier accumulation and clamping
- units: Mechs, infantry and vehicles, and the YAML unit catalog
- combat/: Per-family validation, to-hit and resolution
- effects: The applicator that commits outcomes to unit state
- status: Morale, posture and swarm state machine
- engine: The public AttackEngine
"""

from .attacks import AttackFamily, AttackType, AttackParams, AttackRequest, DislodgeMethod
from .combat import AttackOutcome, DamageRecord, FailureKind, StatusChange, StatusKind, ValidationResult
from .config import EngineConfig, load_config, configure_logging
from .context import BattleContext, Minefield, Phase, TimeOfDay
from .criticals import (
    CriticalEffect, EffectKind, ActuatorDamage, ForcedPilotingRoll, Knockback,
    InternalDamage, HitLocationOverride, CriticalHit, PilotEffect, PilotEffectKind,
)
from .dice import Dice
from .effects import ApplyResult, EffectApplicator
from .engine import AttackEngine
from .errors import CombatError, UnitNotFound, InvariantViolation, OutcomeAlreadyApplied, IllegalTransition
from .locations import HitLocation
from .map import HexMap, HexCell, TerrainType, Weather
from .modifiers import Modifier, ModifierAccumulator, ToHitResult
from .status import UnitStatusMachine
from .units import (
    Unit, Mech, Infantry, Vehicle, Equipment, MovementState, SwarmAttachment,
    UnitCatalog, UnitRoster, MoveType, Posture, Morale, Quality, InfantryArmor, Motive, Ability,
)

__all__ = [
    # Engine
    "AttackEngine", "EffectApplicator", "ApplyResult", "UnitStatusMachine",
    # Requests and results
    "AttackFamily", "AttackType", "AttackParams", "AttackRequest", "DislodgeMethod",
    "AttackOutcome", "DamageRecord", "FailureKind", "StatusChange", "StatusKind",
    "ValidationResult", "Modifier", "ModifierAccumulator", "ToHitResult",
    # Critical effects
    "CriticalEffect", "EffectKind", "ActuatorDamage", "ForcedPilotingRoll", "Knockback",
    "InternalDamage", "HitLocationOverride", "CriticalHit", "PilotEffect", "PilotEffectKind",
    # Units
    "Unit", "Mech", "Infantry", "Vehicle", "Equipment", "MovementState", "SwarmAttachment",
    "UnitCatalog", "UnitRoster", "MoveType", "Posture", "Morale", "Quality",
    "InfantryArmor", "Motive", "Ability", "HitLocation",
    # Battlefield
    "BattleContext", "Minefield", "Phase", "TimeOfDay", "HexMap", "HexCell", "TerrainType", "Weather",
    # Randomness
    "Dice",
    # Configuration
    "EngineConfig", "load_config", "configure_logging",
    # Errors
    "CombatError", "UnitNotFound", "InvariantViolation", "OutcomeAlreadyApplied", "IllegalTransition",
]

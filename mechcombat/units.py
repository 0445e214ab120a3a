"""
Unit state for attack resolution.

Handles mechs, infantry platoons and vehicles, the equipment they carry,
and the catalog that builds them from YAML templates.
"""

import logging
import math
import uuid
import yaml
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional
from pathlib import Path

from .errors import UnitNotFound
from .locations import HitLocation, VEHICLE_LOCATIONS
from .map import hex_distance

logger = logging.getLogger(__name__)


class UnitKind(Enum):
    MECH = "mech"
    INFANTRY = "infantry"
    VEHICLE = "vehicle"


class MoveType(Enum):
    NONE = "none"
    WALK = "walk"
    RUN = "run"
    JUMP = "jump"


class Posture(Enum):
    STANDING = "standing"
    PRONE = "prone"


class Morale(Enum):
    STEADY = "steady"
    BREAKING = "breaking"
    BROKEN = "broken"


class Quality(Enum):
    GREEN = "green"
    REGULAR = "regular"
    VETERAN = "veteran"
    ELITE = "elite"


class InfantryArmor(Enum):
    NONE = "none"
    BATTLE_ARMOR = "battle_armor"
    POWER_ARMOR = "power_armor"


class Motive(Enum):
    FOOT = "foot"
    MOTORIZED = "motorized"
    JUMP = "jump"
    TRACKED = "tracked"
    WHEELED = "wheeled"
    HOVER = "hover"
    VTOL = "vtol"


class Ability(Enum):
    STEALTH = "stealth"
    AMBUSH = "ambush"
    GUERRILLA = "guerrilla"
    ENTRENCHMENT = "entrenchment"


@dataclass
class Equipment:
    """A carried item, tagged with what it can do."""
    name: str
    range: int = 0
    damage_multiplier: float = 1.0
    anti_mech: bool = False
    anti_infantry: bool = False
    one_time_use: bool = False
    quantity: int = 1


@dataclass
class MovementState:
    """What the unit did in the movement phase this turn."""
    move_type: MoveType = MoveType.NONE
    hexes_moved: int = 0

    @property
    def has_moved(self) -> bool:
        return self.move_type != MoveType.NONE

    @property
    def jumped(self) -> bool:
        return self.move_type == MoveType.JUMP


@dataclass
class SwarmAttachment:
    """Infantry clinging to a mech at a body location."""
    infantry_id: str
    mech_id: str
    location: HitLocation


@dataclass
class Unit:
    """Base class for all combat units."""
    id: str
    name: str
    team: str
    position: tuple[int, int] = (0, 0)
    tonnage: int = 0
    movement: MovementState = field(default_factory=MovementState)
    posture: Posture = Posture.STANDING
    entrenched: bool = False
    suppressed: bool = False
    hidden: bool = False
    shutdown: bool = False
    has_attacked: bool = False
    heat: int = 0
    equipment: list[Equipment] = field(default_factory=list)
    pilot_effects: dict[str, int] = field(default_factory=dict)  # effect -> turns left
    destroyed: bool = False

    kind: ClassVar[UnitKind]

    @property
    def is_mech(self) -> bool:
        return self.kind == UnitKind.MECH

    @property
    def is_infantry(self) -> bool:
        return self.kind == UnitKind.INFANTRY

    @property
    def is_vehicle(self) -> bool:
        return self.kind == UnitKind.VEHICLE

    @property
    def is_prone(self) -> bool:
        return self.posture == Posture.PRONE

    @property
    def is_flying(self) -> bool:
        return False

    @property
    def stunned(self) -> bool:
        return self.pilot_effects.get("stunned", 0) > 0

    @property
    def out_of_action(self) -> bool:
        """Destroyed or eliminated units can neither attack nor be targeted."""
        return self.destroyed

    @property
    def size_class(self) -> int:
        return size_class(self.tonnage)

    def has_equipment(self, name: str) -> bool:
        return any(e.name == name and e.quantity > 0 for e in self.equipment)

    def get_equipment(self, name: str) -> Optional[Equipment]:
        for item in self.equipment:
            if item.name == name and item.quantity > 0:
                return item
        return None

    def equipment_count(self, name: str) -> int:
        return sum(e.quantity for e in self.equipment if e.name == name)

    def distance_to(self, other: "Unit") -> int:
        return hex_distance(self.position[0], self.position[1],
                            other.position[0], other.position[1])


@dataclass
class Mech(Unit):
    """BattleMech with per-location armor and internal structure."""
    piloting: int = 5
    gunnery: int = 4
    jump_jets: int = 0
    quad: bool = False
    armor: dict[HitLocation, int] = field(default_factory=dict)
    structure: dict[HitLocation, int] = field(default_factory=dict)
    max_armor: int = 0
    damaged_actuators: list[HitLocation] = field(default_factory=list)
    critical_hits: dict[HitLocation, int] = field(default_factory=dict)

    kind: ClassVar[UnitKind] = UnitKind.MECH

    def __post_init__(self):
        if not self.structure:
            self.structure = default_structure(self.tonnage)
        if not self.armor:
            self.armor = default_armor(self.structure)
        if not self.max_armor:
            self.max_armor = sum(self.armor.values())

    @property
    def armor_remaining(self) -> int:
        return sum(self.armor.values())

    @property
    def damage_fraction(self) -> float:
        """Share of starting armor already lost (0.0-1.0)."""
        if self.max_armor <= 0:
            return 0.0
        return max(0.0, 1.0 - self.armor_remaining / self.max_armor)


@dataclass
class Infantry(Unit):
    """Infantry platoon; damage is paid in troopers."""
    troops: int = 28
    max_troops: int = 28
    quality: Quality = Quality.REGULAR
    armor_type: InfantryArmor = InfantryArmor.NONE
    motive: Motive = Motive.FOOT
    special_forces: bool = False
    anti_mech_training: bool = False
    abilities: set[Ability] = field(default_factory=set)
    morale: Morale = Morale.STEADY
    fatigue: int = 0
    entrench_cooldown: int = 0
    swarm: Optional[SwarmAttachment] = None

    kind: ClassVar[UnitKind] = UnitKind.INFANTRY

    @property
    def eliminated(self) -> bool:
        return self.troops <= 0

    @property
    def out_of_action(self) -> bool:
        return self.destroyed or self.eliminated

    @property
    def is_swarming(self) -> bool:
        return self.swarm is not None

    @property
    def casualty_fraction(self) -> float:
        if self.max_troops <= 0:
            return 0.0
        return 1.0 - self.troops / self.max_troops

    def has_ability(self, ability: Ability) -> bool:
        return ability in self.abilities


@dataclass
class Vehicle(Unit):
    """Combat vehicle with facing armor and a single structure pool."""
    piloting: int = 5
    gunnery: int = 4
    motive: Motive = Motive.TRACKED
    armor: dict[HitLocation, int] = field(default_factory=dict)
    structure: int = 0
    critical_hits: dict[HitLocation, int] = field(default_factory=dict)
    immobilized: bool = False

    kind: ClassVar[UnitKind] = UnitKind.VEHICLE

    def __post_init__(self):
        if not self.structure:
            self.structure = max(1, math.ceil(self.tonnage / 10))
        if not self.armor:
            per_facing = max(1, math.ceil(self.tonnage / 5))
            self.armor = {loc: per_facing for loc in VEHICLE_LOCATIONS}

    @property
    def is_flying(self) -> bool:
        return self.motive == Motive.VTOL


def size_class(tonnage: int) -> int:
    """0 infantry, 1 light, 2 medium, 3 heavy, 4 assault."""
    if tonnage <= 0:
        return 0
    if tonnage <= 35:
        return 1
    if tonnage <= 55:
        return 2
    if tonnage <= 75:
        return 3
    return 4


def default_structure(tonnage: int) -> dict[HitLocation, int]:
    """Approximate internal structure by tonnage."""
    ct = max(1, round(tonnage * 0.32))
    side = max(1, round(tonnage * 0.24))
    arm = max(1, round(tonnage * 0.16))
    leg = max(1, round(tonnage * 0.24))
    return {
        HitLocation.HEAD: 3,
        HitLocation.CENTER_TORSO: ct,
        HitLocation.LEFT_TORSO: side,
        HitLocation.RIGHT_TORSO: side,
        HitLocation.LEFT_ARM: arm,
        HitLocation.RIGHT_ARM: arm,
        HitLocation.LEFT_LEG: leg,
        HitLocation.RIGHT_LEG: leg,
    }


def default_armor(structure: dict[HitLocation, int]) -> dict[HitLocation, int]:
    armor = {loc: value * 2 for loc, value in structure.items()}
    armor[HitLocation.HEAD] = 9
    armor[HitLocation.REAR_TORSO] = max(1, structure[HitLocation.CENTER_TORSO] // 2)
    return armor


class UnitCatalog:
    """Builds units from the YAML templates and equipment profiles."""

    def __init__(self, data_path: Path | str = "data"):
        self.data_path = Path(data_path)
        self.templates: dict[str, dict] = {}
        self.equipment_profiles: dict[str, dict] = {}

        self._load_equipment_profiles()
        self._load_templates()

    def _load_equipment_profiles(self):
        path = self.data_path / "schema" / "equipment.yaml"
        if not path.exists():
            self._create_default_equipment_profiles()
            return

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        self.equipment_profiles = data.get("equipment", {})
        logger.info(f"Loaded {len(self.equipment_profiles)} equipment profiles")

    def _create_default_equipment_profiles(self):
        """Profiles used when no equipment schema is present."""
        self.equipment_profiles = {
            "rifle": {"range": 3, "damage_multiplier": 1.0},
            "laser": {"range": 4, "damage_multiplier": 1.2},
            "srm": {"range": 3, "damage_multiplier": 1.5, "anti_mech": True},
            "mg": {"range": 2, "damage_multiplier": 1.0, "anti_infantry": True},
            "flamer": {"range": 1, "damage_multiplier": 1.3, "anti_infantry": True},
            "inferno": {"range": 2, "damage_multiplier": 1.4, "anti_mech": True},
            "support_weapon": {"range": 3, "damage_multiplier": 1.5},
            "demo_charge": {"range": 1, "damage_multiplier": 2.5, "anti_mech": True,
                            "one_time_use": True},
            "anti_mech_mine": {"anti_mech": True, "one_time_use": True},
            "vibro_blade": {"anti_mech": True},
            "magnetic_clamp": {"anti_mech": True},
            "magshot": {"anti_mech": True},
            "jump_pack": {},
            "climbing_gear": {},
            "hatchet": {},
            "sword": {},
            "axe": {},
            "mace": {},
            "club": {},
        }

    def _load_templates(self):
        path = self.data_path / "schema" / "units.yaml"
        if not path.exists():
            logger.warning(f"Unit templates not found: {path}")
            return

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        groups = {"mechs": "mech", "infantry": "infantry", "vehicles": "vehicle"}
        for group, kind in groups.items():
            for key, template in (data.get(group) or {}).items():
                template = dict(template)
                template.setdefault("kind", kind)
                self.templates[key] = template
        logger.info(f"Loaded {len(self.templates)} unit templates")

    def make_equipment(self, spec) -> Equipment:
        """Build equipment from a name or a {name, quantity, ...} mapping."""
        if isinstance(spec, str):
            spec = {"name": spec}
        name = spec["name"]
        profile = dict(self.equipment_profiles.get(name, {}))
        profile.update({k: v for k, v in spec.items() if k != "name"})
        return Equipment(
            name=name,
            range=profile.get("range", 0),
            damage_multiplier=profile.get("damage_multiplier", 1.0),
            anti_mech=profile.get("anti_mech", False),
            anti_infantry=profile.get("anti_infantry", False),
            one_time_use=profile.get("one_time_use", False),
            quantity=profile.get("quantity", 1),
        )

    def create(
        self,
        template_key: str,
        team: str,
        position: tuple[int, int] = (0, 0),
        unit_id: Optional[str] = None,
        **overrides,
    ) -> Unit:
        """Instantiate a unit from a template, with field overrides."""
        template = self.templates.get(template_key)
        if template is None:
            raise KeyError(f"Unknown unit template: {template_key}")

        data = {k: v for k, v in template.items() if k not in ("kind", "equipment")}
        data.update(overrides)
        equipment = [self.make_equipment(e) for e in template.get("equipment", [])]
        unit_id = unit_id or str(uuid.uuid4())
        common = dict(id=unit_id, name=data.pop("name", template_key), team=team,
                      position=tuple(position), equipment=equipment)

        kind = UnitKind(template["kind"])
        if kind == UnitKind.MECH:
            return Mech(**common, **_mech_fields(data))
        if kind == UnitKind.VEHICLE:
            return Vehicle(**common, **_vehicle_fields(data))
        return Infantry(**common, **_infantry_fields(data))


def _mech_fields(data: dict) -> dict:
    fields = dict(data)
    for key in ("armor", "structure"):
        if key in fields:
            fields[key] = {HitLocation(loc): value for loc, value in fields[key].items()}
    return fields


def _vehicle_fields(data: dict) -> dict:
    fields = dict(data)
    if "motive" in fields:
        fields["motive"] = Motive(fields["motive"])
    if "armor" in fields:
        fields["armor"] = {HitLocation(loc): value for loc, value in fields["armor"].items()}
    return fields


def _infantry_fields(data: dict) -> dict:
    fields = dict(data)
    fields.setdefault("max_troops", fields.get("troops", 28))
    if "quality" in fields:
        fields["quality"] = Quality(fields["quality"])
    if "armor_type" in fields:
        fields["armor_type"] = InfantryArmor(fields["armor_type"])
    if "motive" in fields:
        fields["motive"] = Motive(fields["motive"])
    if "abilities" in fields:
        fields["abilities"] = {Ability(a) for a in fields["abilities"]}
    return fields


class UnitRoster:
    """All units on the battlefield, by id."""

    def __init__(self, units: Optional[list[Unit]] = None):
        self.units: dict[str, Unit] = {}
        for unit in units or []:
            self.add(unit)

    def add(self, unit: Unit):
        self.units[unit.id] = unit

    def get_unit(self, unit_id: str) -> Optional[Unit]:
        return self.units.get(unit_id)

    def require(self, unit_id: str) -> Unit:
        unit = self.units.get(unit_id)
        if unit is None:
            raise UnitNotFound(unit_id)
        return unit

    def get_units_at(self, position: tuple[int, int]) -> list[Unit]:
        return [u for u in self.units.values() if u.position == tuple(position)]

    def get_enemies(self, unit: Unit) -> list[Unit]:
        return [u for u in self.units.values()
                if u.team != unit.team and not u.out_of_action]

    def nearest_enemy(self, unit: Unit) -> Optional[Unit]:
        enemies = self.get_enemies(unit)
        if not enemies:
            return None
        return min(enemies, key=unit.distance_to)

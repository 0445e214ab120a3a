"""
Battlefield context handed to the resolvers.

Weather, time of day and phase are read-only inputs owned by the turn
orchestrator; minefields are the one piece of hex state combat writes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .map import HexMap, HexCell, Weather


class TimeOfDay(Enum):
    DAWN = "dawn"
    DAY = "day"
    DUSK = "dusk"
    NIGHT = "night"


class Phase(Enum):
    MOVEMENT = "movement"
    WEAPON_ATTACK = "weapon_attack"
    PHYSICAL_ATTACK = "physical_attack"
    HEAT = "heat"
    END = "end"


@dataclass
class Minefield:
    """Anti-mech mines left in a hex by infantry."""
    q: int
    r: int
    owner_id: str
    damage: int
    turns_remaining: int = 3


@dataclass
class BattleContext:
    hex_map: HexMap
    weather: Weather = Weather.CLEAR
    time_of_day: TimeOfDay = TimeOfDay.DAY
    phase: Phase = Phase.PHYSICAL_ATTACK
    turn: int = 1
    minefields: list[Minefield] = field(default_factory=list)

    @property
    def is_night(self) -> bool:
        return self.time_of_day == TimeOfDay.NIGHT

    @property
    def low_visibility(self) -> bool:
        return self.is_night or self.weather == Weather.FOG

    def get_hex(self, position: tuple[int, int]) -> Optional[HexCell]:
        return self.hex_map.get_hex(*position)

    def distance(self, pos_a: tuple[int, int], pos_b: tuple[int, int]) -> int:
        return self.hex_map.distance(pos_a, pos_b)

    def weather_modifier(self) -> int:
        """Shared weather tier: light precipitation +1, heavy +2."""
        if self.weather in (Weather.HEAVY_RAIN, Weather.BLIZZARD):
            return 2
        if self.weather in (Weather.RAIN, Weather.SNOW):
            return 1
        return 0

    def tick_minefields(self):
        for mines in self.minefields:
            mines.turns_remaining -= 1
        self.minefields = [m for m in self.minefields if m.turns_remaining > 0]

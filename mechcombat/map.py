"""
Hex grid battlefield for attack resolution.

Uses axial coordinates (q, r). The engine only reads from the map:
hex lookup, distance and line of sight.
"""

import logging
import yaml
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from pathlib import Path

logger = logging.getLogger(__name__)


class TerrainType(Enum):
    CLEAR = "clear"
    ROUGH = "rough"
    LIGHT_WOODS = "light_woods"
    WOODS = "woods"
    HEAVY_WOODS = "heavy_woods"
    WATER = "water"
    DEEP_WATER = "deep_water"
    BUILDING = "building"
    URBAN = "urban"
    RUBBLE = "rubble"
    SWAMP = "swamp"
    ICE = "ice"
    LAVA = "lava"


WOODED = (TerrainType.LIGHT_WOODS, TerrainType.WOODS, TerrainType.HEAVY_WOODS)


class Weather(Enum):
    CLEAR = "clear"
    RAIN = "rain"
    HEAVY_RAIN = "heavy_rain"
    SNOW = "snow"
    BLIZZARD = "blizzard"
    FOG = "fog"


@dataclass
class TerrainInfo:
    """Terrain type properties loaded from schema."""
    id: str
    name: str
    los_blocking: bool | str  # True, False, or "partial"
    cover: int = 0


@dataclass
class HexCell:
    """Individual hex cell in the grid."""
    q: int
    r: int
    terrain: TerrainType = TerrainType.CLEAR
    elevation: int = 0
    depth: int = 0  # water depth in levels
    cover: int = 0
    unit_ids: list[str] = field(default_factory=list)

    @property
    def s(self) -> int:
        """Third cube coordinate (q + r + s = 0)."""
        return -self.q - self.r

    @property
    def occupied(self) -> bool:
        return bool(self.unit_ids)

    @property
    def is_wooded(self) -> bool:
        return self.terrain in WOODED

    @property
    def is_deep_water(self) -> bool:
        return self.terrain == TerrainType.DEEP_WATER or self.depth >= 2


@dataclass
class LineOfSight:
    has_los: bool
    intervening: list[tuple[int, int]] = field(default_factory=list)


def hex_distance(q1: int, r1: int, q2: int, r2: int) -> int:
    """Distance in hexes between two axial coordinates."""
    return (abs(q1 - q2) + abs(q1 + r1 - q2 - r2) + abs(r1 - r2)) // 2


class HexMap:
    """
    Battlefield hex grid.

    Cells span `width` columns and `height` rows in an offset rectangle,
    stored by axial coordinate.
    """

    def __init__(self, width: int = 16, height: int = 17, data_path: Path | str = "data"):
        self.data_path = Path(data_path)
        self.width = width
        self.height = height
        self.cells: dict[tuple[int, int], HexCell] = {}
        self.terrain_info: dict[str, TerrainInfo] = {}

        self._load_terrain_schema()
        self._generate_hex_grid()

    def _load_terrain_schema(self):
        """Load terrain type definitions from schema."""
        schema_path = self.data_path / "schema" / "terrain.yaml"
        if not schema_path.exists():
            self._create_default_terrain_info()
            return

        with open(schema_path) as f:
            schema = yaml.safe_load(f) or {}

        for terrain_id, info in schema.get("terrain_types", {}).items():
            self.terrain_info[terrain_id] = TerrainInfo(
                id=terrain_id,
                name=info.get("name", terrain_id),
                los_blocking=info.get("los_blocking", False),
                cover=info.get("cover", 0),
            )
        logger.debug(f"Loaded {len(self.terrain_info)} terrain types from {schema_path}")

    def _create_default_terrain_info(self):
        """Create default terrain info if schema not found."""
        defaults = {
            "clear": (False, 0),
            "rough": (False, 0),
            "light_woods": ("partial", 1),
            "woods": ("partial", 1),
            "heavy_woods": (True, 2),
            "water": (False, 0),
            "deep_water": (False, 0),
            "building": (True, 2),
            "urban": ("partial", 1),
            "rubble": (False, 1),
            "swamp": (False, 0),
            "ice": (False, 0),
            "lava": (False, 0),
        }
        for tid, (blocking, cover) in defaults.items():
            self.terrain_info[tid] = TerrainInfo(
                id=tid, name=tid.replace("_", " ").title(),
                los_blocking=blocking, cover=cover,
            )

    def _generate_hex_grid(self):
        """Generate an offset-rectangle of clear hexes."""
        for q in range(self.width):
            offset = q // 2
            for row in range(self.height):
                r = row - offset
                self.cells[(q, r)] = HexCell(q=q, r=r)

    def load_layout(self, layout: list[dict]):
        """Apply terrain overrides, e.g. from a scenario file's `map` section."""
        for entry in layout:
            q, r = entry["q"], entry["r"]
            terrain = TerrainType(entry.get("terrain", "clear"))
            cell = self.cells.get((q, r))
            if cell is None:
                cell = HexCell(q=q, r=r)
                self.cells[(q, r)] = cell
            cell.terrain = terrain
            cell.elevation = entry.get("elevation", 0)
            cell.depth = entry.get("depth", 2 if terrain == TerrainType.DEEP_WATER else 0)
            info = self.terrain_info.get(terrain.value)
            cell.cover = entry.get("cover", info.cover if info else 0)

    def set_terrain(self, q: int, r: int, terrain: TerrainType, elevation: int = 0, depth: int = 0):
        self.load_layout([{"q": q, "r": r, "terrain": terrain.value,
                           "elevation": elevation, "depth": depth}])

    def _round_hex(self, q: float, r: float) -> tuple[int, int]:
        """Round fractional hex coordinates to nearest hex."""
        s = -q - r
        rq, rr, rs = round(q), round(r), round(s)

        q_diff = abs(rq - q)
        r_diff = abs(rr - r)
        s_diff = abs(rs - s)

        if q_diff > r_diff and q_diff > s_diff:
            rq = -rr - rs
        elif r_diff > s_diff:
            rr = -rq - rs

        return (int(rq), int(rr))

    # Hex operations
    def get_hex(self, q: int, r: int) -> Optional[HexCell]:
        """Get cell at coordinates."""
        return self.cells.get((q, r))

    def get_neighbors(self, q: int, r: int) -> list[HexCell]:
        """Get all adjacent hex cells."""
        directions = [(1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1)]
        neighbors = []
        for dq, dr in directions:
            cell = self.get_hex(q + dq, r + dr)
            if cell:
                neighbors.append(cell)
        return neighbors

    def distance(self, pos_a: tuple[int, int], pos_b: tuple[int, int]) -> int:
        return hex_distance(pos_a[0], pos_a[1], pos_b[0], pos_b[1])

    # Line of sight
    def has_line_of_sight(self, pos_a: tuple[int, int], pos_b: tuple[int, int]) -> LineOfSight:
        """
        Trace the hex line between two positions.

        Solid terrain blocks outright; two partial hexes (woods, urban) block.
        An observer above an intervening hex sees over it.
        """
        origin = self.get_hex(*pos_a)
        origin_elevation = origin.elevation if origin else 0
        path = self._get_hex_line(pos_a[0], pos_a[1], pos_b[0], pos_b[1])

        intervening = []
        partial = 0
        for q, r in path[1:-1]:  # Exclude start and end
            cell = self.get_hex(q, r)
            if not cell:
                continue

            info = self.terrain_info.get(cell.terrain.value)
            if not info or not info.los_blocking:
                continue
            if origin_elevation > cell.elevation:
                continue

            intervening.append((q, r))
            if info.los_blocking is True:
                return LineOfSight(has_los=False, intervening=intervening)
            partial += 1
            if partial >= 2:
                return LineOfSight(has_los=False, intervening=intervening)

        return LineOfSight(has_los=True, intervening=intervening)

    def _get_hex_line(self, q1: int, r1: int, q2: int, r2: int) -> list[tuple[int, int]]:
        """Get all hexes along a line between two points."""
        n = hex_distance(q1, r1, q2, r2)
        if n == 0:
            return [(q1, r1)]

        results = []
        for i in range(n + 1):
            t = i / n
            # Nudge off exact hex edges so ties resolve consistently
            q = q1 + (q2 - q1) * t + 1e-6
            r = r1 + (r2 - r1) * t + 1e-6
            results.append(self._round_hex(q, r))

        return results

"""
Random outcome service - every die roll in the engine goes through here.

Handles:
- Single dice and multi-die sums
- Percentage gates
- Table lookups with a default for out-of-range rolls
- Cluster rolls (fraction of a base count)
"""

import math
import random
from typing import Any, Optional, TypeVar

T = TypeVar("T")

# Axial direction vectors, indexed by a 1d6 result minus one
HEX_DIRECTIONS = [(1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1)]


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


class Dice:
    """Seedable source of all randomness used during resolution."""

    # 2d6 roll -> fraction of the base count that connects
    CLUSTER_TABLE = {
        2: 0.0,
        3: 0.17,
        4: 0.33,
        5: 0.5,
        6: 0.67,
        7: 0.83,
        8: 1.0,
        9: 1.17,
        10: 1.33,
        11: 1.5,
        12: 1.67,
    }
    CLUSTER_DEFAULT = 0.5

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random(seed)

    def roll_die(self, sides: int = 6) -> int:
        return self.rng.randint(1, sides)

    def roll_sum(self, count: int, sides: int = 6) -> int:
        """Sum of `count` dice with `sides` faces."""
        return sum(self.roll_die(sides) for _ in range(count))

    def roll_2d6(self) -> int:
        return self.roll_sum(2, 6)

    def chance(self, probability: float) -> bool:
        """Percentage gate, true with the given probability (0.0-1.0)."""
        return self.rng.random() < probability

    def roll_table(self, table: dict[int, T], roll: int, default: Any = None) -> T:
        """Look up a roll in a table, falling back to default when off the table."""
        return table.get(roll, default)

    def roll_cluster(self, base_count: int, roll: Optional[int] = None) -> int:
        """How many of `base_count` hits connect, using the cluster table."""
        if base_count <= 0:
            return 0
        if roll is None:
            roll = self.roll_2d6()
        fraction = self.roll_table(self.CLUSTER_TABLE, roll, self.CLUSTER_DEFAULT)
        return max(1, round_half_up(base_count * fraction))

    def roll_location(self, table: dict[int, T], modifier: int = 0, dice: int = 2, default: Any = None) -> T:
        """Roll on a location table; 2d6 rolls are clamped to 2-12 after modifiers."""
        roll = self.roll_sum(dice, 6) + modifier
        if dice == 2:
            roll = max(2, min(12, roll))
        else:
            roll = max(1, min(6 * dice, roll))
        return self.roll_table(table, roll, default)

    def roll_direction(self) -> tuple[int, int]:
        """Random axial hex direction."""
        return HEX_DIRECTIONS[self.roll_die(6) - 1]

"""
Hit locations and the roll tables that select them.
"""

from enum import Enum


class HitLocation(Enum):
    # Mech
    HEAD = "head"
    CENTER_TORSO = "center_torso"
    LEFT_TORSO = "left_torso"
    RIGHT_TORSO = "right_torso"
    REAR_TORSO = "rear_torso"
    LEFT_ARM = "left_arm"
    RIGHT_ARM = "right_arm"
    LEFT_LEG = "left_leg"
    RIGHT_LEG = "right_leg"
    # Vehicle
    FRONT = "front"
    LEFT_SIDE = "left_side"
    RIGHT_SIDE = "right_side"
    REAR = "rear"
    TURRET = "turret"
    # Infantry
    SQUAD = "squad"


HL = HitLocation

MECH_LOCATIONS = (
    HL.HEAD, HL.CENTER_TORSO, HL.LEFT_TORSO, HL.RIGHT_TORSO,
    HL.LEFT_ARM, HL.RIGHT_ARM, HL.LEFT_LEG, HL.RIGHT_LEG,
)
VEHICLE_LOCATIONS = (HL.FRONT, HL.LEFT_SIDE, HL.RIGHT_SIDE, HL.REAR, HL.TURRET)
ARMS = (HL.LEFT_ARM, HL.RIGHT_ARM)
LEGS = (HL.LEFT_LEG, HL.RIGHT_LEG)
TORSOS = (HL.CENTER_TORSO, HL.LEFT_TORSO, HL.RIGHT_TORSO, HL.REAR_TORSO)

# 2d6 tables
MECH_TABLE = {
    2: HL.CENTER_TORSO,
    3: HL.RIGHT_ARM, 4: HL.RIGHT_ARM,
    5: HL.RIGHT_LEG,
    6: HL.RIGHT_TORSO,
    7: HL.CENTER_TORSO,
    8: HL.LEFT_TORSO,
    9: HL.LEFT_LEG,
    10: HL.LEFT_ARM, 11: HL.LEFT_ARM,
    12: HL.HEAD,
}

DFA_MECH_TABLE = {
    2: HL.CENTER_TORSO,
    3: HL.RIGHT_TORSO, 4: HL.RIGHT_TORSO,
    5: HL.RIGHT_ARM,
    6: HL.RIGHT_LEG,
    7: HL.CENTER_TORSO,
    8: HL.LEFT_LEG,
    9: HL.LEFT_ARM,
    10: HL.LEFT_TORSO, 11: HL.LEFT_TORSO,
    12: HL.HEAD,
}

VEHICLE_TABLE = {
    2: HL.REAR, 3: HL.REAR, 4: HL.REAR,
    5: HL.RIGHT_SIDE, 6: HL.RIGHT_SIDE,
    7: HL.FRONT, 8: HL.FRONT,
    9: HL.LEFT_SIDE, 10: HL.LEFT_SIDE,
    11: HL.TURRET, 12: HL.TURRET,
}

INFANTRY_TABLE = {roll: HL.SQUAD for roll in range(2, 13)}

# 1d6 tables
LEG_TABLE = {1: HL.RIGHT_LEG, 2: HL.RIGHT_LEG, 3: HL.RIGHT_LEG,
             4: HL.LEFT_LEG, 5: HL.LEFT_LEG, 6: HL.LEFT_LEG}

SWARM_TABLE = {
    1: HL.HEAD, 2: HL.HEAD,
    3: HL.CENTER_TORSO,
    4: HL.RIGHT_TORSO,
    5: HL.LEFT_TORSO,
    6: HL.REAR_TORSO,
}

BLADE_CRIT_TABLE = {
    1: HL.RIGHT_ARM, 2: HL.RIGHT_ARM,
    3: HL.LEFT_ARM, 4: HL.LEFT_ARM,
    5: HL.RIGHT_TORSO,
    6: HL.LEFT_TORSO,
}

# Where damage spills once a location's structure is gone
TRANSFER = {
    HL.LEFT_ARM: HL.LEFT_TORSO,
    HL.RIGHT_ARM: HL.RIGHT_TORSO,
    HL.LEFT_LEG: HL.LEFT_TORSO,
    HL.RIGHT_LEG: HL.RIGHT_TORSO,
    HL.LEFT_TORSO: HL.CENTER_TORSO,
    HL.RIGHT_TORSO: HL.CENTER_TORSO,
}

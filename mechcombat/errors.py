"""
Exceptions raised inside the resolution pipeline.

Rule violations are never raised; they come back as ValidationResult values.
These exceptions cover caller bugs and broken invariants, and AttackEngine
turns them into structured failures at the public boundary.
"""


class CombatError(Exception):
    """Base class for attack resolution errors."""


class UnitNotFound(CombatError):
    """A referenced unit is absent from the roster."""

    def __init__(self, unit_id: str):
        super().__init__(f"Unit not found: {unit_id}")
        self.unit_id = unit_id


class InvariantViolation(CombatError):
    """An operation would leave unit state inconsistent."""


class OutcomeAlreadyApplied(InvariantViolation):
    def __init__(self, outcome_id: str):
        super().__init__(f"Outcome {outcome_id} has already been applied")
        self.outcome_id = outcome_id


class IllegalTransition(InvariantViolation):
    """A status change that the unit's state machine does not allow."""

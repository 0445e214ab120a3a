"""
Modifier accumulation for to-hit numbers.

Every to-hit calculation records (label, delta) pairs in declaration order
and folds them into a clamped target number.
"""

from dataclasses import dataclass, field

MIN_TARGET = 2
MAX_TARGET = 12


@dataclass(frozen=True)
class Modifier:
    label: str
    delta: int


@dataclass
class ToHitResult:
    """Audit trail and final number for one to-hit calculation."""
    base: int
    modifiers: list[Modifier] = field(default_factory=list)
    total_modifier: int = 0
    target_number: int = MIN_TARGET

    @property
    def unclamped(self) -> int:
        return self.base + self.total_modifier

    def describe(self) -> str:
        parts = [f"base {self.base}"]
        parts += [f"{m.label} {m.delta:+d}" for m in self.modifiers]
        return ", ".join(parts) + f" => {self.target_number}"


def clamp_target(value: int) -> int:
    return max(MIN_TARGET, min(MAX_TARGET, value))


class ModifierAccumulator:
    """Ordered list of modifiers sharing one base value."""

    def __init__(self, base: int):
        self.base = base
        self.modifiers: list[Modifier] = []

    def add(self, label: str, delta: int) -> "ModifierAccumulator":
        """Record a modifier; zero deltas are dropped from the audit trail."""
        if delta:
            self.modifiers.append(Modifier(label, int(delta)))
        return self

    def add_if(self, condition: bool, label: str, delta: int) -> "ModifierAccumulator":
        if condition:
            self.add(label, delta)
        return self

    def extend(self, modifiers: list[Modifier]) -> "ModifierAccumulator":
        for mod in modifiers:
            self.add(mod.label, mod.delta)
        return self

    @property
    def total(self) -> int:
        return sum(m.delta for m in self.modifiers)

    def result(self) -> ToHitResult:
        total = self.total
        return ToHitResult(
            base=self.base,
            modifiers=list(self.modifiers),
            total_modifier=total,
            target_number=clamp_target(self.base + total),
        )

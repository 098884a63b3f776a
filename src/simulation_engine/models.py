"""Data models for the simulation engine."""

from dataclasses import dataclass
from typing import Optional, Tuple

from src.simulation_engine.config import SECONDS_PER_HOUR


@dataclass(frozen=True)
class Progress:
    """A training position: fully at ``level`` plus ``percent_to_next``
    of the next level's effort already banked.

    ``percent_to_next`` must lie in ``[0, 100)``; 100% is really
    ``Progress(level + 1, 0)``.
    """

    level: int
    percent_to_next: float = 0.0

    def __post_init__(self):
        if self.level < 0:
            raise ValueError(f"level must be >= 0, got {self.level}")
        if not 0 <= self.percent_to_next < 100:
            raise ValueError(
                f"percent_to_next must be in [0, 100), got {self.percent_to_next}"
            )

    @property
    def fraction(self) -> float:
        return self.percent_to_next / 100


@dataclass(frozen=True)
class Modifiers:
    """Per-call training bonuses.

    ``loyalty_percent``, ``double_event`` and ``private_dummy`` change how
    much progress a charge yields. ``vip`` only changes how fast charges
    are used up.
    """

    loyalty_percent: int = 0
    double_event: bool = False
    private_dummy: bool = False
    vip: bool = False

    def __post_init__(self):
        if self.loyalty_percent < 0:
            raise ValueError(
                f"loyalty_percent must be >= 0, got {self.loyalty_percent}"
            )


@dataclass(frozen=True)
class EffortApplication:
    """Outcome of spending effort from a starting position."""

    progress: Progress
    leftover_effort: float  # effort left unused at the table ceiling
    capped: bool


@dataclass(frozen=True)
class WeaponRequirement:
    """How many units of one resource alone would reach the target."""

    name: str
    count: int
    charges: int
    real_cost: float
    estimated_seconds: float


@dataclass(frozen=True)
class WeaponsNeededResult:
    """Result of the inverse solve (target level -> resources)."""

    total_charges: int
    total_effort: float
    weapons: Tuple[WeaponRequirement, ...]
    estimated_seconds: float
    resource_index: int

    @property
    def estimated_hours(self) -> float:
        return self.estimated_seconds / SECONDS_PER_HOUR

    def weapon(self, name: str) -> Optional[WeaponRequirement]:
        for requirement in self.weapons:
            if requirement.name == name:
                return requirement
        return None


@dataclass(frozen=True)
class SkillGainResult:
    """Result of the forward solve (resources -> resulting level)."""

    final_skill: int
    final_percent: float
    levels_gained: int
    total_charges: int
    total_effort: float
    real_cost: float
    estimated_seconds: float
    capped: bool = False  # stopped at the highest configured level

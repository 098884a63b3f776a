"""Immutable rule-table entities.

Everything here is built once by the rule-table builder and never mutated.
Mappings are exposed read-only so a RuleSet can be shared freely between
callers.
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from src.rule_tables.validation import RuleTableError


@dataclass(frozen=True)
class LevelBracket:
    """A contiguous span of levels sharing one difficulty multiplier."""

    level_from: int
    level_to: float  # inclusive; ``inf`` for an open-ended top bracket
    multiplier: float

    def contains(self, level: int) -> bool:
        return self.level_from <= level <= self.level_to


@dataclass(frozen=True)
class LevelMultiplierTable:
    """Ordered, gap-free brackets for one category group.

    A table whose last bracket ends at ``N`` lets a character train
    through level ``N``, so ``max_level`` (the highest reachable level)
    is ``N + 1``. Open-ended tables have no ceiling.
    """

    group: str
    brackets: Tuple[LevelBracket, ...]

    @property
    def min_level(self) -> int:
        return self.brackets[0].level_from

    @property
    def max_level(self) -> float:
        return self.brackets[-1].level_to + 1

    @property
    def open_ended_from(self) -> Optional[int]:
        """First level of the open-ended top bracket, or None for closed tables."""
        last = self.brackets[-1]
        return last.level_from if math.isinf(last.level_to) else None

    def multiplier_for(self, level: int) -> float:
        """Bracket lookup. Raises RuleTableError outside every bracket."""
        for bracket in self.brackets:
            if bracket.contains(level):
                return bracket.multiplier
        raise RuleTableError(
            f"Level {level} is outside the {self.group!r} multiplier table "
            f"({self.min_level}-{self.brackets[-1].level_to:g})"
        )


@dataclass(frozen=True)
class SkillCategoryRule:
    """Progression parameters for one trainable skill."""

    category: str
    label: str
    group: str
    curve: str  # "constant" or "exponential"
    skill_constant: float
    level_offset: int


@dataclass(frozen=True)
class VocationRule:
    vocation: str
    label: str
    relevant_skills: Tuple[str, ...]


@dataclass(frozen=True)
class TrainingResource:
    """A training weapon in the catalog."""

    name: str
    charges_per_unit: int
    real_cost: float
    attack_interval_seconds: float
    effort_per_charge: float


@dataclass(frozen=True)
class RuleSet:
    """A complete, validated snapshot of the training rule tables."""

    categories: Mapping[str, SkillCategoryRule]
    multiplier_tables: Mapping[str, LevelMultiplierTable]
    vocations: Mapping[str, VocationRule]
    vocation_rates: Mapping[Tuple[str, str], float]
    resources: Tuple[TrainingResource, ...]

    @classmethod
    def create(
        cls,
        categories: Dict[str, SkillCategoryRule],
        multiplier_tables: Dict[str, LevelMultiplierTable],
        vocations: Dict[str, VocationRule],
        vocation_rates: Dict[Tuple[str, str], float],
        resources: Tuple[TrainingResource, ...],
    ) -> "RuleSet":
        """Factory that freezes plain dicts into read-only mappings."""
        return cls(
            categories=MappingProxyType(dict(categories)),
            multiplier_tables=MappingProxyType(dict(multiplier_tables)),
            vocations=MappingProxyType(dict(vocations)),
            vocation_rates=MappingProxyType(dict(vocation_rates)),
            resources=tuple(resources),
        )

    # ------------------------------------------------------------------
    # Tag resolution
    # ------------------------------------------------------------------
    def category(self, category: str) -> SkillCategoryRule:
        try:
            return self.categories[category]
        except KeyError:
            raise ValueError(
                f"Unknown skill category {category!r}. "
                f"Must be one of: {sorted(self.categories)}"
            ) from None

    def vocation(self, vocation: str) -> VocationRule:
        try:
            return self.vocations[vocation]
        except KeyError:
            raise ValueError(
                f"Unknown vocation {vocation!r}. "
                f"Must be one of: {sorted(self.vocations)}"
            ) from None

    # ------------------------------------------------------------------
    # Rule lookups
    # ------------------------------------------------------------------
    def table_for(self, category: str) -> LevelMultiplierTable:
        group = self.category(category).group
        try:
            return self.multiplier_tables[group]
        except KeyError:
            raise RuleTableError(f"No level multiplier table for group {group!r}") from None

    def level_multiplier(self, category: str, level: int) -> float:
        return self.table_for(category).multiplier_for(level)

    def open_ended_from(self, category: str) -> Optional[int]:
        return self.table_for(category).open_ended_from

    def vocation_rate(self, vocation: str, category: str) -> float:
        """Keyed lookup; an undefined pair is a configuration defect."""
        self.vocation(vocation)
        self.category(category)
        try:
            return self.vocation_rates[(vocation, category)]
        except KeyError:
            raise RuleTableError(
                f"No vocation rate defined for {vocation}/{category}"
            ) from None

    def min_level(self, category: str) -> int:
        return self.table_for(category).min_level

    def max_level(self, category: str) -> float:
        return self.table_for(category).max_level

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    def resource(self, index: int) -> Optional[TrainingResource]:
        """Catalog entry at *index*, or None when out of range."""
        if isinstance(index, bool) or not isinstance(index, int):
            return None
        if 0 <= index < len(self.resources):
            return self.resources[index]
        return None

    def resource_index(self, name: str) -> Optional[int]:
        for i, resource in enumerate(self.resources):
            if resource.name.lower() == name.lower():
                return i
        return None

    # ------------------------------------------------------------------
    # Vocation helpers
    # ------------------------------------------------------------------
    def relevant_skills(self, vocation: str) -> Tuple[str, ...]:
        """Skills for *vocation*, most relevant (primary) first."""
        return self.vocation(vocation).relevant_skills

    def default_skill(self, vocation: str) -> Optional[str]:
        skills = self.relevant_skills(vocation)
        return skills[0] if skills else None

    def describe(self) -> Dict[str, object]:
        """Summary counts, used by the table check command."""
        ceilings = {
            group: (table.min_level, table.max_level)
            for group, table in self.multiplier_tables.items()
        }
        expected_pairs = len(self.vocations) * len(self.categories)
        return {
            "categories": len(self.categories),
            "vocations": len(self.vocations),
            "vocation_rates": f"{len(self.vocation_rates)}/{expected_pairs}",
            "resources": len(self.resources),
            "level_ranges": {
                group: f"{low}-{'open' if math.isinf(high) else int(high)}"
                for group, (low, high) in sorted(ceilings.items())
            },
        }

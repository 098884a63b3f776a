"""Skill training calculator.

Answers the two inverse questions a player asks:

* **Weapons needed**: how many training weapons take a character from
  its current progress to a target level.
* **Skill gain**: what level a number of weapons of one type reaches.

Both directions share the EffortAccumulator, so accumulation and rounding
agree: spending exactly the charges reported by the inverse solve lands on
the target level.
"""

import logging
import math
from typing import Optional

import pandas as pd

from src.rule_tables.builder import get_default_rule_set
from src.rule_tables.models import RuleSet
from src.simulation_engine.config import MAX_DISPLAY_PERCENT, PERCENT_DECIMALS
from src.simulation_engine.effort import EffortAccumulator
from src.simulation_engine.models import (
    Modifiers,
    Progress,
    SkillGainResult,
    WeaponRequirement,
    WeaponsNeededResult,
)
from src.simulation_engine.modifiers import (
    charges_for_effort,
    effort_per_charge,
    training_seconds,
    units_for_charges,
)

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = [
    "level",
    "multiplier",
    "level_effort",
    "remaining_effort",
    "cumulative_effort",
    "cumulative_charges",
]


class SkillTrainingCalculator:
    """Forward and inverse training solver over one rule set.

    Out-of-domain input (target not above current, non-positive counts,
    ``percent_to_next`` outside ``[0, 100)``, levels outside the tables)
    yields ``None`` rather than an exception. Unknown vocation or category
    tags raise ``ValueError``; rule-table defects raise ``RuleTableError``.
    """

    def __init__(self, rules: Optional[RuleSet] = None):
        self.rules = rules if rules is not None else get_default_rule_set()
        self.accumulator = EffortAccumulator(self.rules)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def calculate_weapons_needed(
        self,
        category: str,
        vocation: str,
        current_level: int,
        percent_to_next: float,
        target_level: int,
        modifiers: Optional[Modifiers] = None,
        resource_index: int = 0,
    ) -> Optional[WeaponsNeededResult]:
        """Resources required to reach *target_level*.

        Every catalog resource is reported as an independent alternative
        ("how many of only this type"). ``total_charges`` and
        ``estimated_seconds`` refer to the resource at *resource_index*.

        Returns:
            :class:`WeaponsNeededResult`, or None for out-of-domain input.
        """
        self._resolve_tags(category, vocation)
        modifiers = modifiers or Modifiers()

        problem = self._check_progress(category, current_level, percent_to_next)
        if problem is None:
            problem = self._check_target(category, current_level, target_level)
        if problem is None and self.rules.resource(resource_index) is None:
            problem = f"no training resource at index {resource_index}"
        if problem is not None:
            logger.debug("No weapons-needed result: %s", problem)
            return None

        progress = Progress(current_level, percent_to_next)
        total_effort = self.accumulator.effort_to_reach_level(
            category, vocation, progress, target_level
        )
        if not math.isfinite(total_effort):
            logger.debug("No weapons-needed result: effort to level %d overflows", target_level)
            return None

        weapons = []
        for resource in self.rules.resources:
            charges = charges_for_effort(total_effort, effort_per_charge(resource, modifiers))
            count = units_for_charges(charges, resource)
            weapons.append(WeaponRequirement(
                name=resource.name,
                count=count,
                charges=charges,
                real_cost=count * resource.real_cost,
                estimated_seconds=training_seconds(charges, resource, modifiers),
            ))

        selected = weapons[resource_index]
        logger.debug(
            "%s %s %d -> %d: %.2f effort, %d charges of %s",
            vocation, category, current_level, target_level,
            total_effort, selected.charges, selected.name,
        )
        return WeaponsNeededResult(
            total_charges=selected.charges,
            total_effort=total_effort,
            weapons=tuple(weapons),
            estimated_seconds=selected.estimated_seconds,
            resource_index=resource_index,
        )

    def calculate_skill_gain(
        self,
        category: str,
        vocation: str,
        resource_index: int,
        resource_count: int,
        current_level: int,
        percent_to_next: float,
        modifiers: Optional[Modifiers] = None,
    ) -> Optional[SkillGainResult]:
        """Level reached by spending *resource_count* units of one resource.

        Returns:
            :class:`SkillGainResult`, or None for out-of-domain input.
        """
        self._resolve_tags(category, vocation)
        modifiers = modifiers or Modifiers()

        resource = self.rules.resource(resource_index)
        problem = self._check_progress(category, current_level, percent_to_next)
        if problem is None and current_level >= self.rules.max_level(category):
            problem = f"level {current_level} is already at the {category} ceiling"
        if problem is None and resource is None:
            problem = f"no training resource at index {resource_index}"
        if problem is None and (
            isinstance(resource_count, bool)
            or not isinstance(resource_count, int)
            or resource_count < 1
        ):
            problem = f"resource count must be an integer >= 1, got {resource_count!r}"
        if problem is not None:
            logger.debug("No skill-gain result: %s", problem)
            return None

        total_charges = resource_count * resource.charges_per_unit
        total_effort = total_charges * effort_per_charge(resource, modifiers)

        start = Progress(current_level, percent_to_next)
        outcome = self.accumulator.apply_effort(category, vocation, start, total_effort)
        final = outcome.progress

        final_percent = min(round(final.percent_to_next, PERCENT_DECIMALS), MAX_DISPLAY_PERCENT)
        logger.debug(
            "%s %s %d x %s from %d (%.2f%%): reached %d (%.2f%%)%s",
            vocation, category, resource_count, resource.name,
            current_level, percent_to_next, final.level, final_percent,
            " [capped]" if outcome.capped else "",
        )
        return SkillGainResult(
            final_skill=final.level,
            final_percent=final_percent,
            levels_gained=final.level - current_level,
            total_charges=total_charges,
            total_effort=total_effort,
            real_cost=resource_count * resource.real_cost,
            estimated_seconds=training_seconds(total_charges, resource, modifiers),
            capped=outcome.capped,
        )

    def training_schedule(
        self,
        category: str,
        vocation: str,
        current_level: int,
        percent_to_next: float,
        target_level: int,
        modifiers: Optional[Modifiers] = None,
        resource_index: int = 0,
    ) -> Optional[pd.DataFrame]:
        """Level-by-level breakdown of the path to *target_level*.

        One row per level trained with columns ``level``, ``multiplier``,
        ``level_effort`` (0% -> 100%), ``remaining_effort`` (what is still
        to do in that level), ``cumulative_effort`` and
        ``cumulative_charges`` (for the resource at *resource_index*).

        Returns None for the same input the inverse solve rejects.
        """
        self._resolve_tags(category, vocation)
        modifiers = modifiers or Modifiers()

        resource = self.rules.resource(resource_index)
        problem = self._check_progress(category, current_level, percent_to_next)
        if problem is None:
            problem = self._check_target(category, current_level, target_level)
        if problem is None and resource is None:
            problem = f"no training resource at index {resource_index}"
        if problem is not None:
            logger.debug("No training schedule: %s", problem)
            return None

        rows = []
        for level in range(current_level, target_level):
            full = self.accumulator.level_effort(category, vocation, level)
            done = percent_to_next / 100 if level == current_level else 0.0
            rows.append({
                "level": level,
                "multiplier": self.rules.level_multiplier(category, level),
                "level_effort": full,
                "remaining_effort": full * (1 - done),
            })

        schedule = pd.DataFrame(rows, columns=SCHEDULE_COLUMNS[:4])
        schedule["cumulative_effort"] = schedule["remaining_effort"].cumsum()
        per_charge = effort_per_charge(resource, modifiers)
        schedule["cumulative_charges"] = schedule["cumulative_effort"].apply(
            lambda effort: charges_for_effort(effort, per_charge)
        ).astype(int)
        return schedule[SCHEDULE_COLUMNS]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _resolve_tags(self, category: str, vocation: str) -> None:
        """Raise ValueError for tags the rule tables do not define."""
        self.rules.category(category)
        self.rules.vocation(vocation)

    def _check_progress(
        self,
        category: str,
        level: int,
        percent_to_next: float,
    ) -> Optional[str]:
        """Reason *level*/*percent_to_next* is unusable, or None."""
        if isinstance(level, bool) or not isinstance(level, int):
            return f"level must be an integer, got {level!r}"
        if percent_to_next is None or math.isnan(percent_to_next):
            return "percent_to_next is missing"
        if not 0 <= percent_to_next < 100:
            return f"percent_to_next must be in [0, 100), got {percent_to_next}"
        floor = self.rules.min_level(category)
        if level < max(floor, 0):
            return f"level {level} is below the {category} table floor ({floor})"
        return None

    def _check_target(
        self,
        category: str,
        current_level: int,
        target_level: int,
    ) -> Optional[str]:
        if isinstance(target_level, bool) or not isinstance(target_level, int):
            return f"target level must be an integer, got {target_level!r}"
        if target_level <= current_level:
            return f"target level {target_level} is not above current level {current_level}"
        ceiling = self.rules.max_level(category)
        if target_level > ceiling:
            return f"target level {target_level} is above the {category} ceiling ({ceiling:g})"
        return None


# ----------------------------------------------------------------------
# Module-level API over the default rule tables
# ----------------------------------------------------------------------

def calculate_weapons_needed(
    category: str,
    vocation: str,
    current_level: int,
    percent_to_next: float,
    target_level: int,
    modifiers: Optional[Modifiers] = None,
    resource_index: int = 0,
    rules: Optional[RuleSet] = None,
) -> Optional[WeaponsNeededResult]:
    """See :meth:`SkillTrainingCalculator.calculate_weapons_needed`."""
    return SkillTrainingCalculator(rules).calculate_weapons_needed(
        category, vocation, current_level, percent_to_next,
        target_level, modifiers, resource_index,
    )


def calculate_skill_gain(
    category: str,
    vocation: str,
    resource_index: int,
    resource_count: int,
    current_level: int,
    percent_to_next: float,
    modifiers: Optional[Modifiers] = None,
    rules: Optional[RuleSet] = None,
) -> Optional[SkillGainResult]:
    """See :meth:`SkillTrainingCalculator.calculate_skill_gain`."""
    return SkillTrainingCalculator(rules).calculate_skill_gain(
        category, vocation, resource_index, resource_count,
        current_level, percent_to_next, modifiers,
    )

"""Effort accumulation over the level-multiplier brackets.

Effort is the abstract training currency both solvers exchange. The effort
to train through a single level ``L`` (from 0% to 100%) is::

    constant curve:     skill_constant * rate * multiplier(L)
    exponential curve:  skill_constant * rate ** (L - level_offset) * multiplier(L)

where ``rate`` is the vocation rate constant for the category and
``multiplier(L)`` comes from the bracket containing ``L``. Spans crossing
closed brackets are summed level by level. Inside an open-ended top bracket
the per-level efforts form a geometric series (ratio 1 for the constant
curve), so spans there are summed and solved in closed form.
"""

import logging
import math

from src.rule_tables.models import RuleSet
from src.rule_tables.validation import RuleTableError
from src.simulation_engine.config import EFFORT_REL_TOLERANCE
from src.simulation_engine.models import EffortApplication, Progress

logger = logging.getLogger(__name__)


def _covers(available: float, needed: float) -> bool:
    """True when *available* effort completes *needed*, allowing float drift."""
    return available >= needed - needed * EFFORT_REL_TOLERANCE


def _series_effort(first: float, ratio: float, levels: int) -> float:
    """Effort for *levels* consecutive levels costing first, first*ratio, ..."""
    if levels <= 0:
        return 0.0
    if ratio == 1:
        return first * levels
    try:
        return first * (ratio ** levels - 1) / (ratio - 1)
    except OverflowError:
        return math.inf


def _whole_levels(first: float, ratio: float, effort: float) -> int:
    """Number of whole levels of the series that *effort* completes."""
    if effort <= 0 or not math.isfinite(first):
        return 0
    if ratio == 1:
        levels = int(effort // first)
    else:
        levels = int(math.log1p(effort * (ratio - 1) / first) / math.log(ratio))
    levels = max(levels, 0)

    # the estimate can be one off either way
    while levels > 0 and not _covers(effort, _series_effort(first, ratio, levels)):
        levels -= 1
    while _covers(effort, _series_effort(first, ratio, levels + 1)):
        levels += 1
    return levels


class EffortAccumulator:
    """Convert between progress positions and effort for one rule set.

    Stateless apart from the (immutable) rule set.
    """

    def __init__(self, rules: RuleSet):
        self.rules = rules

    def level_effort(self, category: str, vocation: str, level: int) -> float:
        """Effort to go from 0% to 100% of *level*.

        Raises:
            RuleTableError: if the vocation rate is undefined or *level*
                falls outside every multiplier bracket.
        """
        rule = self.rules.category(category)
        rate = self.rules.vocation_rate(vocation, category)
        multiplier = self.rules.level_multiplier(category, level)

        if rule.curve == "exponential":
            try:
                base = rule.skill_constant * rate ** (level - rule.level_offset)
            except OverflowError:
                return math.inf
        else:
            base = rule.skill_constant * rate
        return base * multiplier

    def level_growth(self, category: str, vocation: str) -> float:
        """Ratio between consecutive level efforts inside one bracket."""
        if self.rules.category(category).curve == "exponential":
            return self.rules.vocation_rate(vocation, category)
        return 1.0

    def _open_bracket_growth(self, category: str, vocation: str) -> float:
        ratio = self.level_growth(category, vocation)
        if ratio < 1:
            raise RuleTableError(
                f"Per-level effort shrinks in the open-ended {category} bracket "
                f"for {vocation} (rate {ratio:g})"
            )
        return ratio

    def banked_effort(self, category: str, vocation: str, progress: Progress) -> float:
        """Effort already spent inside ``progress.level``."""
        if progress.percent_to_next == 0:
            return 0.0
        return self.level_effort(category, vocation, progress.level) * progress.fraction

    def effort_to_reach_level(
        self,
        category: str,
        vocation: str,
        from_progress: Progress,
        to_level: int,
    ) -> float:
        """Total effort from *from_progress* to 0% of *to_level*.

        Returns 0.0 when *to_level* is not above the current level, and
        ``inf`` when the total does not fit in a float.
        """
        if to_level <= from_progress.level:
            return 0.0

        first = self.level_effort(category, vocation, from_progress.level)
        total = first * (1 - from_progress.fraction)

        open_from = self.rules.open_ended_from(category)
        stop = to_level
        if open_from is not None:
            stop = min(to_level, max(open_from, from_progress.level + 1))

        for level in range(from_progress.level + 1, stop):
            total += self.level_effort(category, vocation, level)
        if stop < to_level:
            total += _series_effort(
                self.level_effort(category, vocation, stop),
                self._open_bracket_growth(category, vocation),
                to_level - stop,
            )

        logger.debug(
            "Effort %s/%s %d (%.2f%%) -> %d: %.4f",
            vocation, category, from_progress.level,
            from_progress.percent_to_next, to_level, total,
        )
        return total

    def apply_effort(
        self,
        category: str,
        vocation: str,
        from_progress: Progress,
        effort: float,
    ) -> EffortApplication:
        """Spend *effort* starting at *from_progress*.

        Advances through as many whole levels as the effort covers and
        expresses the remainder as ``percent_to_next``. Training stops at
        the table ceiling; effort beyond it is reported as leftover.
        """
        ceiling = self.rules.max_level(category)
        open_from = self.rules.open_ended_from(category)
        level = from_progress.level
        percent = from_progress.percent_to_next
        remaining = max(effort, 0.0)

        while level < ceiling:
            full = self.level_effort(category, vocation, level)
            needed = full * (1 - percent / 100)
            if not _covers(remaining, needed):
                percent += remaining / full * 100
                return EffortApplication(
                    progress=Progress(level, percent),
                    leftover_effort=0.0,
                    capped=False,
                )
            remaining = max(remaining - needed, 0.0)
            level += 1
            percent = 0.0

            if open_from is not None and level >= open_from:
                first = self.level_effort(category, vocation, level)
                ratio = self._open_bracket_growth(category, vocation)
                skipped = _whole_levels(first, ratio, remaining)
                if skipped:
                    remaining = max(remaining - _series_effort(first, ratio, skipped), 0.0)
                    level += skipped

        logger.debug(
            "Effort for %s/%s capped at level %d with %.4f left over",
            vocation, category, level, remaining,
        )
        return EffortApplication(
            progress=Progress(level, 0.0),
            leftover_effort=remaining,
            capped=True,
        )

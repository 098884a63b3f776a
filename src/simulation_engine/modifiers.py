"""Efficiency and speed modifier pipelines.

The two are applied at different stages and never mixed:

* **Efficiency** (loyalty, double event, private dummy) scales the effort
  one charge yields, so it changes how many charges a goal needs.
* **Speed** (VIP) scales how quickly charges are spent, so it changes only
  the real-time estimate.
"""

import math

from src.rule_tables.models import TrainingResource
from src.simulation_engine.config import (
    CHARGE_REL_TOLERANCE,
    DOUBLE_EVENT_MULTIPLIER,
    LOYALTY_PERCENT_DIVISOR,
    PRIVATE_DUMMY_MULTIPLIER,
    VIP_SPEED_MULTIPLIER,
)
from src.simulation_engine.models import Modifiers


def efficiency_multiplier(modifiers: Modifiers) -> float:
    """Combined yield multiplier of every active efficiency bonus.

    Formula::

        efficiency = (1 + loyalty / 100) * (2 if double event) * (1.1 if private dummy)
    """
    multiplier = 1.0 + modifiers.loyalty_percent / LOYALTY_PERCENT_DIVISOR
    if modifiers.double_event:
        multiplier *= DOUBLE_EVENT_MULTIPLIER
    if modifiers.private_dummy:
        multiplier *= PRIVATE_DUMMY_MULTIPLIER
    return multiplier


def speed_multiplier(modifiers: Modifiers) -> float:
    return VIP_SPEED_MULTIPLIER if modifiers.vip else 1.0


def effort_per_charge(resource: TrainingResource, modifiers: Modifiers) -> float:
    return resource.effort_per_charge * efficiency_multiplier(modifiers)


def ceil_with_tolerance(value: float) -> int:
    """Round up, unless *value* is an integer plus floating-point drift."""
    nearest = round(value)
    if math.isclose(value, nearest, rel_tol=CHARGE_REL_TOLERANCE, abs_tol=0.0):
        return int(nearest)
    return math.ceil(value)


def charges_for_effort(effort: float, per_charge: float) -> int:
    """Whole charges needed to bank *effort* at *per_charge* effort each."""
    if effort <= 0:
        return 0
    return ceil_with_tolerance(effort / per_charge)


def units_for_charges(charges: int, resource: TrainingResource) -> int:
    return -(-charges // resource.charges_per_unit)


def training_seconds(
    charges: int,
    resource: TrainingResource,
    modifiers: Modifiers,
) -> float:
    """Real time to spend *charges* on *resource*; only VIP shortens it."""
    return charges * resource.attack_interval_seconds / speed_multiplier(modifiers)

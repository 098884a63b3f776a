from src.simulation_engine.models import (
    Modifiers,
    Progress,
    SkillGainResult,
    WeaponRequirement,
    WeaponsNeededResult,
)
from src.simulation_engine.skill_calculator import (
    SkillTrainingCalculator,
    calculate_skill_gain,
    calculate_weapons_needed,
)

__all__ = [
    "Modifiers",
    "Progress",
    "SkillGainResult",
    "SkillTrainingCalculator",
    "WeaponRequirement",
    "WeaponsNeededResult",
    "calculate_skill_gain",
    "calculate_weapons_needed",
]

"""Shared fixtures for the skill calculator test suite."""

import pandas as pd
import pytest

from src.rule_tables.builder import load_rule_set, rule_set_from_frames
from src.rule_tables.config import RULES_DIR
from src.simulation_engine.skill_calculator import SkillTrainingCalculator


# ------------------------------------------------------------------
# Synthetic tables: cheap to construct, no I/O
# ------------------------------------------------------------------

def _frames(category_rows, bracket_rows, rate_rows, resource_rows):
    return dict(
        categories=pd.DataFrame(
            category_rows,
            columns=["category", "label", "group", "curve", "skill_constant", "level_offset"],
        ),
        multipliers=pd.DataFrame(
            bracket_rows, columns=["group", "level_from", "level_to", "multiplier"]
        ),
        vocations=pd.DataFrame(
            [(v, v.title(), ";".join(r for r in rate_rows[v])) for v in rate_rows],
            columns=["vocation", "label", "relevant_skills"],
        ),
        vocation_rates=pd.DataFrame(
            [{"vocation": v, **rates} for v, rates in rate_rows.items()]
        ),
        resources=pd.DataFrame(
            resource_rows,
            columns=["name", "charges_per_unit", "real_cost", "attack_interval_seconds"],
        ),
    )


@pytest.fixture(scope="session")
def flat_rules():
    """One flat bracket (multiplier 1.0) and a linear curve.

    Level effort is exactly ``rate``: 1.1 for knight/sword, 2.0 for
    sorcerer/sword.
    """
    return rule_set_from_frames(**_frames(
        category_rows=[
            ("sword", "Sword Fighting", "skill", "constant", 1, 0),
            ("magic", "Magic Level", "magic", "constant", 1, 0),
        ],
        bracket_rows=[
            ("skill", 0, 299, 1.0),
            ("magic", 0, 299, 1.0),
        ],
        rate_rows={
            "knight": {"sword": 1.1, "magic": 3.0},
            "sorcerer": {"sword": 2.0, "magic": 1.1},
        },
        resource_rows=[
            ("Single", 1, 1, 2),
            ("Pack", 10, 8, 2),
        ],
    ))


@pytest.fixture(scope="session")
def stepped_rules():
    """Exponential curve with three brackets and whole-number efforts.

    knight/sword: level_effort(L) = 10 * 2**L * multiplier(L), where the
    multiplier is 1 for 0-4, 3 for 5-9 and 5 for 10-19 (ceiling 20).
    The "monk" vocation has no sword rate.
    """
    return rule_set_from_frames(**_frames(
        category_rows=[
            ("sword", "Sword Fighting", "skill", "exponential", 10, 0),
        ],
        bracket_rows=[
            ("skill", 0, 4, 1),
            ("skill", 5, 9, 3),
            ("skill", 10, 19, 5),
        ],
        rate_rows={
            "knight": {"sword": 2.0},
            "monk": {"sword": None},
        },
        resource_rows=[
            ("Single", 1, 1, 2),
            ("Box", 100, 30, 3),
        ],
    ))


@pytest.fixture(scope="session")
def open_flat_rules():
    """Constant curve with no ceiling: every knight/sword level costs 1.1."""
    return rule_set_from_frames(**_frames(
        category_rows=[
            ("sword", "Sword Fighting", "skill", "constant", 1, 0),
        ],
        bracket_rows=[
            ("skill", 0, "inf", 1.0),
        ],
        rate_rows={
            "knight": {"sword": 1.1},
        },
        resource_rows=[
            ("Single", 1, 1, 2),
            ("Daily", 45000, 390, 2),
        ],
    ))


@pytest.fixture(scope="session")
def open_exponential_rules():
    """knight/sword level effort is 2**L; the bracket from level 5 has no end."""
    return rule_set_from_frames(**_frames(
        category_rows=[
            ("sword", "Sword Fighting", "skill", "exponential", 1, 0),
        ],
        bracket_rows=[
            ("skill", 0, 4, 1.0),
            ("skill", 5, "inf", 1.0),
        ],
        rate_rows={
            "knight": {"sword": 2.0},
        },
        resource_rows=[
            ("Single", 1, 1, 2),
        ],
    ))


# ------------------------------------------------------------------
# Bundled tables: read once per session
# ------------------------------------------------------------------

@pytest.fixture(scope="session")
def bundled_rules():
    return load_rule_set(RULES_DIR)


@pytest.fixture(scope="session")
def calculator(bundled_rules):
    return SkillTrainingCalculator(bundled_rules)


@pytest.fixture(scope="session")
def flat_calculator(flat_rules):
    return SkillTrainingCalculator(flat_rules)


@pytest.fixture(scope="session")
def stepped_calculator(stepped_rules):
    return SkillTrainingCalculator(stepped_rules)

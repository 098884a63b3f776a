"""Tests for the forward and inverse training solvers."""

import pytest

from src.rule_tables.validation import RuleTableError
from src.simulation_engine import (
    Modifiers,
    SkillTrainingCalculator,
    calculate_skill_gain,
    calculate_weapons_needed,
)
from src.simulation_engine.skill_calculator import SCHEDULE_COLUMNS

BUNDLED_WEAPONS = ["Regular", "Durable", "Lasting", "Lasting (Daily Reward)", "Daily"]


# ── Scenarios ────────────────────────────────────────────────────────

class TestFlatScenario:
    """Rate 1.1, one flat bracket of 1.0, single-charge weapon."""

    def test_one_level_effort_and_charges(self, flat_calculator):
        result = flat_calculator.calculate_weapons_needed("sword", "knight", 10, 0, 11)
        assert result.total_effort == pytest.approx(1.1)
        assert result.total_charges == 2

    def test_double_event_halves_charges(self, flat_calculator):
        plain = flat_calculator.calculate_weapons_needed("sword", "knight", 10, 0, 11)
        doubled = flat_calculator.calculate_weapons_needed(
            "sword", "knight", 10, 0, 11, Modifiers(double_event=True)
        )
        assert doubled.total_charges == 1
        assert doubled.estimated_seconds == pytest.approx(plain.estimated_seconds / 2)

    def test_double_event_gets_further_on_same_charges(self, flat_calculator):
        plain = flat_calculator.calculate_skill_gain("sword", "knight", 0, 2, 10, 0)
        doubled = flat_calculator.calculate_skill_gain(
            "sword", "knight", 0, 2, 10, 0, Modifiers(double_event=True)
        )
        assert (plain.final_skill, plain.final_percent) == (11, pytest.approx(81.82))
        assert (doubled.final_skill, doubled.final_percent) > (plain.final_skill, plain.final_percent)
        assert doubled.estimated_seconds == plain.estimated_seconds

    def test_pack_skill_gain(self, flat_calculator):
        result = flat_calculator.calculate_skill_gain("sword", "knight", 1, 1, 10, 0)
        assert result.final_skill == 19
        assert result.final_percent == pytest.approx(9.09)
        assert result.levels_gained == 9
        assert result.total_charges == 10
        assert result.real_cost == 8
        assert result.estimated_seconds == 20

    def test_pack_count_rounds_up(self, flat_calculator):
        result = flat_calculator.calculate_weapons_needed("sword", "knight", 10, 0, 20)
        assert result.total_effort == pytest.approx(11)
        assert result.weapon("Single").count == 11
        pack = result.weapon("Pack")
        assert (pack.charges, pack.count, pack.real_cost) == (11, 2, 16)


class TestBundledTables:
    def test_first_skill_level(self, calculator):
        result = calculator.calculate_weapons_needed("sword", "knight", 10, 0, 11)
        assert result.total_effort == pytest.approx(5)
        assert result.total_charges == 5
        assert result.estimated_seconds == 10
        assert [w.name for w in result.weapons] == BUNDLED_WEAPONS
        assert all(w.count == 1 for w in result.weapons)
        assert result.weapon("Regular").real_cost == 40
        assert result.weapon("Lasting (Daily Reward)").real_cost == 0

    def test_one_regular_weapon(self, calculator):
        result = calculator.calculate_skill_gain("sword", "knight", 0, 1, 10, 0)
        assert result.final_skill == 35
        assert result.final_percent == pytest.approx(15.26)
        assert result.levels_gained == 25
        assert result.total_charges == 500
        assert result.real_cost == 40
        assert result.estimated_seconds == 1000

    def test_magic_is_harder_for_knights(self, calculator):
        knight = calculator.calculate_weapons_needed("magic", "knight", 5, 0, 10)
        sorcerer = calculator.calculate_weapons_needed("magic", "sorcerer", 5, 0, 10)
        assert knight.total_charges > sorcerer.total_charges

    def test_bracket_change_makes_levels_harder(self, calculator):
        before = calculator.calculate_weapons_needed("sword", "knight", 79, 0, 80)
        after = calculator.calculate_weapons_needed("sword", "knight", 81, 0, 82)
        # two levels of 1.1 growth, then a rate step from 10 to 7
        assert after.total_effort == pytest.approx(before.total_effort * 1.1 ** 2 * 10 / 7)

    def test_counts_follow_charges_per_unit(self, calculator, bundled_rules):
        result = calculator.calculate_weapons_needed("sword", "knight", 100, 0, 121)
        for resource, weapon in zip(bundled_rules.resources, result.weapons):
            assert weapon.count == -(-weapon.charges // resource.charges_per_unit)
            assert weapon.real_cost == weapon.count * resource.real_cost


# ── Weapons Needed ───────────────────────────────────────────────────

class TestWeaponsNeeded:
    def test_each_resource_reported_independently(self, stepped_calculator):
        result = stepped_calculator.calculate_weapons_needed("sword", "knight", 3, 0, 7)
        single, box = result.weapons
        assert (single.charges, single.count, single.real_cost) == (3120, 3120, 3120)
        assert (box.charges, box.count, box.real_cost) == (3120, 32, 960)

    def test_selected_resource_drives_totals(self, stepped_calculator):
        result = stepped_calculator.calculate_weapons_needed(
            "sword", "knight", 3, 0, 7, resource_index=1
        )
        assert result.resource_index == 1
        assert result.total_charges == 3120
        assert result.estimated_seconds == 3120 * 3
        assert result.estimated_hours == pytest.approx(2.6)

    def test_weapon_lookup_by_name(self, stepped_calculator):
        result = stepped_calculator.calculate_weapons_needed("sword", "knight", 3, 0, 7)
        assert result.weapon("Box").count == 32
        assert result.weapon("Crate") is None

    def test_reaching_ceiling_allowed(self, stepped_calculator):
        assert stepped_calculator.calculate_weapons_needed("sword", "knight", 0, 0, 20) is not None

    def test_undefined_rate_fails_loudly(self, stepped_calculator):
        with pytest.raises(RuleTableError, match="monk/sword"):
            stepped_calculator.calculate_weapons_needed("sword", "monk", 3, 0, 7)


# ── Skill Gain ───────────────────────────────────────────────────────

class TestSkillGain:
    def test_cap_reports_levels_gained(self, flat_calculator):
        result = flat_calculator.calculate_skill_gain("sword", "knight", 1, 1, 295, 0)
        assert result.final_skill == 300
        assert result.levels_gained == 5
        assert result.capped is True

    def test_percent_never_shows_complete(self, flat_calculator):
        # one charge from 9.0905% ends a hair under 100%
        result = flat_calculator.calculate_skill_gain("sword", "knight", 0, 1, 10, 9.0905)
        assert result.final_skill == 10
        assert result.final_percent == 99.99

    def test_partial_start_carries_over(self, flat_calculator):
        result = flat_calculator.calculate_skill_gain("sword", "knight", 0, 1, 10, 50)
        assert result.final_skill == 11
        assert result.final_percent == pytest.approx(40.91)


# ── Inverse Consistency & Rounding ───────────────────────────────────

class TestInverseConsistency:
    @pytest.mark.parametrize("current,percent,target", [
        (0, 0, 5),
        (3, 0, 7),
        (3, 50, 12),
        (9, 25, 19),
        (0, 0, 20),
    ])
    def test_exact_charges_land_on_target(self, stepped_calculator, current, percent, target):
        needed = stepped_calculator.calculate_weapons_needed("sword", "knight", current, percent, target)
        gain = stepped_calculator.calculate_skill_gain(
            "sword", "knight", 0, needed.total_charges, current, percent
        )
        assert gain.final_skill == target
        assert gain.final_percent == pytest.approx(0, abs=1e-6)

    @pytest.mark.parametrize("vocation,category,current,percent,target", [
        ("knight", "sword", 10, 0, 60),
        ("paladin", "distance", 80, 35.5, 101),
        ("druid", "magic", 0, 12.3, 90),
        ("monk", "fist", 119, 99.5, 125),
    ])
    def test_returned_counts_never_fall_short(
        self, calculator, vocation, category, current, percent, target
    ):
        mods = Modifiers(loyalty_percent=25, private_dummy=True)
        needed = calculator.calculate_weapons_needed(category, vocation, current, percent, target, mods)
        for index, weapon in enumerate(needed.weapons):
            gain = calculator.calculate_skill_gain(
                category, vocation, index, weapon.count, current, percent, mods
            )
            assert gain.final_skill >= target


# ── Monotonicity ─────────────────────────────────────────────────────

class TestMonotonicity:
    def test_more_weapons_never_less_skill(self, calculator):
        previous = (0, 0.0)
        for count in range(1, 21):
            result = calculator.calculate_skill_gain("sword", "knight", 0, count, 10, 0)
            current = (result.final_skill, result.final_percent)
            assert current >= previous
            previous = current

    def test_higher_target_never_fewer_charges(self, calculator):
        previous = 0
        for target in range(51, 120):
            result = calculator.calculate_weapons_needed("distance", "paladin", 50, 40, target)
            assert result.total_charges >= previous
            previous = result.total_charges


# ── Modifier Separation ──────────────────────────────────────────────

class TestModifierSeparation:
    def test_vip_changes_time_only(self, calculator):
        plain = calculator.calculate_weapons_needed("sword", "knight", 50, 0, 80)
        vip = calculator.calculate_weapons_needed("sword", "knight", 50, 0, 80, Modifiers(vip=True))
        assert vip.total_charges == plain.total_charges
        assert vip.total_effort == plain.total_effort
        assert vip.estimated_seconds < plain.estimated_seconds

    @pytest.mark.parametrize("mods", [
        Modifiers(double_event=True),
        Modifiers(private_dummy=True),
        Modifiers(loyalty_percent=50),
    ])
    def test_efficiency_changes_charges_not_seconds_per_charge(self, calculator, mods):
        plain = calculator.calculate_weapons_needed("sword", "knight", 50, 0, 80)
        boosted = calculator.calculate_weapons_needed("sword", "knight", 50, 0, 80, mods)
        assert boosted.total_charges < plain.total_charges
        assert boosted.total_effort == plain.total_effort
        assert boosted.estimated_seconds / boosted.total_charges == pytest.approx(
            plain.estimated_seconds / plain.total_charges
        )

    def test_vip_does_not_change_skill_gain(self, calculator):
        plain = calculator.calculate_skill_gain("sword", "knight", 0, 3, 10, 0)
        vip = calculator.calculate_skill_gain("sword", "knight", 0, 3, 10, 0, Modifiers(vip=True))
        assert (vip.final_skill, vip.final_percent) == (plain.final_skill, plain.final_percent)
        assert vip.estimated_seconds < plain.estimated_seconds


# ── Boundaries & Invalid Input ───────────────────────────────────────

class TestBoundaries:
    @pytest.mark.parametrize("target", [10, 9])
    def test_target_not_above_current(self, calculator, target):
        assert calculator.calculate_weapons_needed("sword", "knight", 10, 0, target) is None

    def test_percent_range_endpoints(self, calculator, bundled_rules):
        low = calculator.calculate_weapons_needed("sword", "knight", 10, 0, 20)
        high = calculator.calculate_weapons_needed("sword", "knight", 10, 99.99, 20)
        next_level = calculator.calculate_weapons_needed("sword", "knight", 11, 0, 20)
        assert high.total_effort < low.total_effort
        level_10 = low.total_effort - next_level.total_effort
        assert high.total_effort == pytest.approx(next_level.total_effort + level_10 * 0.0001)

    @pytest.mark.parametrize("percent", [100, 150, -1, float("nan")])
    def test_percent_out_of_range(self, calculator, percent):
        assert calculator.calculate_weapons_needed("sword", "knight", 10, percent, 20) is None
        assert calculator.calculate_skill_gain("sword", "knight", 0, 1, 10, percent) is None

    def test_level_below_table_floor(self, calculator):
        assert calculator.calculate_weapons_needed("sword", "knight", 0, 0, 20) is None
        assert calculator.calculate_weapons_needed("magic", "knight", 0, 0, 20) is not None

    @pytest.mark.parametrize("level", [-1, 10.5, True])
    def test_non_integer_or_negative_level(self, calculator, level):
        assert calculator.calculate_weapons_needed("sword", "knight", level, 0, 20) is None

    def test_target_above_ceiling(self, calculator):
        assert calculator.calculate_weapons_needed("sword", "knight", 10, 0, 301) is None
        assert calculator.calculate_weapons_needed("sword", "knight", 10, 0, 300) is not None

    @pytest.mark.parametrize("count", [0, -3, 1.5, float("nan"), True])
    def test_non_positive_or_fractional_count(self, calculator, count):
        assert calculator.calculate_skill_gain("sword", "knight", 0, count, 10, 0) is None

    def test_total_charges_are_whole(self, calculator):
        result = calculator.calculate_skill_gain("sword", "knight", 0, 3, 10, 0)
        assert isinstance(result.total_charges, int)
        assert result.total_charges == 1500

    @pytest.mark.parametrize("index", [5, -1])
    def test_unknown_resource_index(self, calculator, index):
        assert calculator.calculate_skill_gain("sword", "knight", index, 1, 10, 0) is None
        assert calculator.calculate_weapons_needed(
            "sword", "knight", 10, 0, 20, resource_index=index
        ) is None

    def test_already_at_ceiling(self, calculator):
        assert calculator.calculate_skill_gain("sword", "knight", 0, 1, 300, 0) is None

    def test_unknown_tags_raise(self, calculator):
        with pytest.raises(ValueError, match="Unknown vocation"):
            calculator.calculate_weapons_needed("sword", "pirate", 10, 0, 20)
        with pytest.raises(ValueError, match="Unknown skill category"):
            calculator.calculate_skill_gain("lance", "knight", 0, 1, 10, 0)


# ── Training Schedule ────────────────────────────────────────────────

class TestTrainingSchedule:
    def test_rows_per_level(self, flat_calculator):
        df = flat_calculator.training_schedule("sword", "knight", 10, 50, 13)
        assert list(df.columns) == SCHEDULE_COLUMNS
        assert df["level"].tolist() == [10, 11, 12]
        assert df["remaining_effort"].tolist() == pytest.approx([0.55, 1.1, 1.1])
        assert df["cumulative_effort"].tolist() == pytest.approx([0.55, 1.65, 2.75])
        assert df["cumulative_charges"].tolist() == [1, 2, 3]

    def test_last_row_matches_weapons_needed(self, calculator):
        df = calculator.training_schedule("magic", "druid", 40, 20, 75)
        needed = calculator.calculate_weapons_needed("magic", "druid", 40, 20, 75)
        assert df["cumulative_effort"].iloc[-1] == pytest.approx(needed.total_effort)
        assert df["cumulative_charges"].iloc[-1] == needed.total_charges

    def test_multiplier_column_follows_brackets(self, stepped_calculator):
        df = stepped_calculator.training_schedule("sword", "knight", 3, 0, 12)
        assert df["multiplier"].tolist() == [1, 1, 3, 3, 3, 3, 3, 5, 5]

    def test_invalid_input_returns_none(self, calculator):
        assert calculator.training_schedule("sword", "knight", 20, 0, 10) is None


# ── Open-Ended Tables ────────────────────────────────────────────────

class TestOpenEndedTables:
    def test_many_daily_weapons_on_flat_table(self, open_flat_rules):
        calc = SkillTrainingCalculator(open_flat_rules)
        result = calc.calculate_skill_gain("sword", "knight", 1, 2000, 10, 0)
        assert result.total_charges == 90_000_000
        assert result.final_skill == 81_818_191
        assert result.levels_gained == 81_818_181
        assert result.final_percent == pytest.approx(81.82, abs=0.01)
        assert result.capped is False

    def test_far_target_on_flat_table(self, open_flat_rules):
        calc = SkillTrainingCalculator(open_flat_rules)
        result = calc.calculate_weapons_needed("sword", "knight", 10, 0, 1_000_010)
        assert result.total_effort == pytest.approx(1_100_000)
        assert result.weapon("Daily").count == 25

    def test_overflowing_target_has_no_result(self, open_exponential_rules):
        calc = SkillTrainingCalculator(open_exponential_rules)
        assert calc.calculate_weapons_needed("sword", "knight", 0, 0, 1_000_000) is None


# ── Module-Level API ─────────────────────────────────────────────────

class TestModuleFunctions:
    def test_explicit_rules(self, flat_rules):
        result = calculate_weapons_needed("sword", "knight", 10, 0, 11, rules=flat_rules)
        assert result.total_charges == 2
        gain = calculate_skill_gain("sword", "knight", 1, 1, 10, 0, rules=flat_rules)
        assert gain.final_skill == 19

    def test_default_rules(self):
        result = calculate_weapons_needed("sword", "knight", 10, 0, 11)
        assert result.total_charges == 5
        assert calculate_skill_gain("sword", "knight", 0, 0, 10, 0) is None

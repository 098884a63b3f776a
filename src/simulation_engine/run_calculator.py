"""Command-line front end for the skill training calculator.

Usage:
    python -m src.simulation_engine.run_calculator needed CATEGORY VOCATION CURRENT TARGET [options]
    python -m src.simulation_engine.run_calculator gain CATEGORY VOCATION CURRENT --count N [options]
    python -m src.simulation_engine.run_calculator check [--rules-dir DIR]

Examples:
    python -m src.simulation_engine.run_calculator needed sword knight 80 100 --percent 35
    python -m src.simulation_engine.run_calculator gain magic druid 90 --resource 2 --count 10 --double-event
    python -m src.simulation_engine.run_calculator check
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from src.logging_config import setup_logging
from src.rule_tables.builder import load_rule_set
from src.rule_tables.ingestion import IngestionError
from src.rule_tables.models import RuleSet
from src.rule_tables.validation import RuleTableError
from src.simulation_engine.formatters import format_duration, format_number
from src.simulation_engine.models import Modifiers, SkillGainResult, WeaponsNeededResult
from src.simulation_engine.skill_calculator import SkillTrainingCalculator

logger = logging.getLogger(__name__)

NO_RESULT = "No result: check the levels, percentage and weapon count."


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Skill training calculator")
    parser.add_argument("--rules-dir", type=Path, default=None, help="Directory of rule-table CSVs.")
    parser.add_argument("--log-level", default="WARNING", help="Console log level.")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_training_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("category", help="Skill category, e.g. sword or magic.")
        p.add_argument("vocation", help="Vocation, e.g. knight.")
        p.add_argument("current", type=int, help="Current skill level.")
        p.add_argument("--percent", type=float, default=0.0, help="Percent to next level [0, 100).")
        p.add_argument("--resource", type=int, default=0, help="Catalog index of the training weapon.")
        p.add_argument("--loyalty", type=int, default=0, help="Loyalty bonus percent.")
        p.add_argument("--double-event", action="store_true", help="Double skill event active.")
        p.add_argument("--private-dummy", action="store_true", help="Training on a private dummy.")
        p.add_argument("--vip", action="store_true", help="VIP speed bonus active.")
        p.add_argument("--json", action="store_true", help="Emit machine-readable JSON output.")

    needed = sub.add_parser("needed", help="Weapons needed to reach a target level.")
    add_training_args(needed)
    needed.add_argument("target", type=int, help="Target skill level.")

    gain = sub.add_parser("gain", help="Skill reached with a number of weapons.")
    add_training_args(gain)
    gain.add_argument("--count", type=int, required=True, help="Number of weapons.")

    sub.add_parser("check", help="Validate the rule tables and print a summary.")
    return parser


def _modifiers_from_args(args: argparse.Namespace) -> Modifiers:
    return Modifiers(
        loyalty_percent=args.loyalty,
        double_event=args.double_event,
        private_dummy=args.private_dummy,
        vip=args.vip,
    )


def _print_weapons_needed(result: WeaponsNeededResult, rules: RuleSet, args) -> None:
    print(f"Total charges needed: {format_number(result.total_charges)}")
    print("Weapons required (each type on its own):")
    for weapon in result.weapons:
        print(
            f"  {weapon.name:<24} {format_number(weapon.count):>8}"
            f"  {format_number(weapon.real_cost):>10} cost"
        )
    print(f"Estimated time: {format_duration(result.estimated_seconds)}")
    # multipliers are stored as 1 / server rate
    print(f"Server rate: {1 / rules.level_multiplier(args.category, args.current):g}x")
    print(f"Vocation rate: b={rules.vocation_rate(args.vocation, args.category):g}")


def _print_skill_gain(result: SkillGainResult, rules: RuleSet, args) -> None:
    resource = rules.resource(args.resource)
    print(f"Final skill: {result.final_skill} ({result.final_percent:.2f}%)")
    print(f"Levels gained: +{result.levels_gained}")
    print(f"Weapons: {args.count}x {resource.name} ({format_number(result.total_charges)} charges)")
    print(f"Total cost: {format_number(result.real_cost)}")
    print(f"Estimated time: {format_duration(result.estimated_seconds)}")
    if result.capped:
        print("Reached the highest configured level; remaining charges are unused.")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the calculator CLI and return a process exit code."""
    args = _build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        rules = load_rule_set(args.rules_dir)
    except (IngestionError, RuleTableError) as e:
        logger.error("Could not load rule tables: %s", e)
        print(f"Rule tables are invalid: {e}", file=sys.stderr)
        return 1

    if args.command == "check":
        for key, value in rules.describe().items():
            print(f"{key}: {value}")
        return 0

    calculator = SkillTrainingCalculator(rules)
    try:
        if args.command == "needed":
            result = calculator.calculate_weapons_needed(
                args.category, args.vocation, args.current, args.percent,
                args.target, _modifiers_from_args(args), args.resource,
            )
        else:
            result = calculator.calculate_skill_gain(
                args.category, args.vocation, args.resource, args.count,
                args.current, args.percent, _modifiers_from_args(args),
            )
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2
    except RuleTableError as e:
        logger.error("Rule table defect: %s", e)
        print(f"Rule tables are invalid: {e}", file=sys.stderr)
        return 1

    if result is None:
        print(NO_RESULT)
        return 0

    if args.json:
        print(json.dumps(asdict(result), indent=2))
    elif args.command == "needed":
        _print_weapons_needed(result, rules, args)
    else:
        _print_skill_gain(result, rules, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Build immutable RuleSet snapshots from rule-table CSVs.

Pipeline:
    RuleTableIngester.read_all()  ->  raw DataFrames
    RuleTableValidator.validate_all()  ->  cleaned DataFrames
    build_rule_set()  ->  frozen RuleSet

The process-wide default snapshot is built lazily on first use. Reloading
builds a complete new snapshot first and then replaces the reference in a
single assignment, so readers never observe a half-built table.
"""

import logging
import threading
from pathlib import Path

import pandas as pd

from src.rule_tables.ingestion import RuleTableIngester
from src.rule_tables.models import (
    LevelBracket,
    LevelMultiplierTable,
    RuleSet,
    SkillCategoryRule,
    TrainingResource,
    VocationRule,
)
from src.rule_tables.validation import RuleTableValidator

logger = logging.getLogger(__name__)

_default_rule_set: RuleSet | None = None
_default_lock = threading.Lock()


def build_rule_set(cleaned: dict[str, pd.DataFrame]) -> RuleSet:
    """Convert validated DataFrames into a frozen RuleSet.

    Args:
        cleaned: Output of :meth:`RuleTableValidator.validate_all`.
    """
    categories = {
        row.category: SkillCategoryRule(
            category=row.category,
            label=row.label,
            group=row.group,
            curve=row.curve,
            skill_constant=float(row.skill_constant),
            level_offset=int(row.level_offset),
        )
        for row in cleaned["categories"].itertuples(index=False)
    }

    tables = {}
    for group, brackets in cleaned["multipliers"].groupby("group", sort=True):
        tables[group] = LevelMultiplierTable(
            group=group,
            brackets=tuple(
                LevelBracket(
                    level_from=int(row.level_from),
                    level_to=float(row.level_to),
                    multiplier=float(row.multiplier),
                )
                for row in brackets.itertuples(index=False)
            ),
        )

    vocations = {
        row.vocation: VocationRule(
            vocation=row.vocation,
            label=row.label,
            relevant_skills=tuple(row.relevant_skills),
        )
        for row in cleaned["vocations"].itertuples(index=False)
    }

    rates = {
        (row.vocation, row.category): float(row.rate)
        for row in cleaned["vocation_rates"].itertuples(index=False)
    }

    resources = tuple(
        TrainingResource(
            name=row.name,
            charges_per_unit=int(row.charges_per_unit),
            real_cost=float(row.real_cost),
            attack_interval_seconds=float(row.attack_interval_seconds),
            effort_per_charge=float(row.effort_per_charge),
        )
        for row in cleaned["resources"].itertuples(index=False)
    )

    return RuleSet.create(
        categories=categories,
        multiplier_tables=tables,
        vocations=vocations,
        vocation_rates=rates,
        resources=resources,
    )


def rule_set_from_frames(
    categories: pd.DataFrame,
    multipliers: pd.DataFrame,
    vocations: pd.DataFrame,
    vocation_rates: pd.DataFrame,
    resources: pd.DataFrame,
) -> RuleSet:
    """Validate and build a RuleSet from in-memory tables."""
    cleaned = RuleTableValidator().validate_all({
        "categories": categories,
        "multipliers": multipliers,
        "vocations": vocations,
        "vocation_rates": vocation_rates,
        "resources": resources,
    })
    return build_rule_set(cleaned)


def load_rule_set(rules_dir: Path | None = None) -> RuleSet:
    """Read, validate and build the rule tables found in *rules_dir*.

    Raises:
        IngestionError: if a file is missing or unreadable.
        RuleTableError: if the tables violate a table invariant.
    """
    ingester = RuleTableIngester(rules_dir)
    raw = ingester.read_all()
    rule_set = build_rule_set(RuleTableValidator().validate_all(raw))
    logger.info("Loaded rule set from %s: %s", ingester.rules_dir, rule_set.describe())
    return rule_set


def get_default_rule_set() -> RuleSet:
    """Return the process-wide rule snapshot, building it on first use."""
    global _default_rule_set
    rule_set = _default_rule_set
    if rule_set is not None:
        return rule_set
    with _default_lock:
        if _default_rule_set is None:
            _default_rule_set = load_rule_set()
        return _default_rule_set


def reload_default_rule_set(rules_dir: Path | None = None) -> RuleSet:
    """Rebuild the default snapshot and swap it in.

    If the new tables fail to load, the previous snapshot stays in place
    and the error propagates.
    """
    global _default_rule_set
    fresh = load_rule_set(rules_dir)
    with _default_lock:
        _default_rule_set = fresh
    logger.info("Default rule set reloaded")
    return fresh

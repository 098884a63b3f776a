"""Cleaning and validation of raw rule tables.

Turns the DataFrames produced by RuleTableIngester into normalized tables
the builder can trust:
- Lower-case tag columns (category, group, vocation)
- Numeric columns parsed, with non-numeric cells rejected
- Server rates converted to multipliers (multiplier = 1 / rate)
- Level brackets sorted, contiguous and non-overlapping per group
- Wide vocation-rate table melted to one row per (vocation, category)

Every table-level defect is collected and reported together in a single
RuleTableError.
"""

import logging
import math

import pandas as pd

from src.rule_tables.config import (
    DEFAULT_EFFORT_PER_CHARGE,
    LIST_SEPARATOR,
    MULTIPLIER_VALUE_COLUMNS,
    OPEN_ENDED_LEVEL,
    OPEN_ENDED_TOKENS,
    VALID_CURVES,
)

logger = logging.getLogger(__name__)


class RuleTableError(Exception):
    """Raised when rule-table configuration is malformed or incomplete."""

    pass


def _raise_if_errors(table: str, errors: list[str]) -> None:
    if errors:
        raise RuleTableError(
            f"Invalid {table} table:\n" + "\n".join(f"  - {e}" for e in errors)
        )


def _parse_level_to(value) -> float:
    """Parse a bracket upper bound, honouring the open-ended sentinel.

    Examples:
        "80"  -> 80.0
        "inf" -> inf
        "abc" -> nan
    """
    if pd.isna(value):
        return float("nan")
    text = str(value).strip().lower()
    if text in OPEN_ENDED_TOKENS:
        return OPEN_ENDED_LEVEL
    try:
        return float(text)
    except ValueError:
        return float("nan")


def _is_whole(series: pd.Series) -> pd.Series:
    finite = series.where(series.abs() != math.inf, 0)
    return (finite % 1) == 0


class RuleTableValidator:
    """Cleans and validates raw rule tables before any calculation runs."""

    # ------------------------------------------------------------------
    # Skill categories
    # ------------------------------------------------------------------
    def clean_categories(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalize the skill category table.

        Returns columns: category, label, group, curve, skill_constant,
        level_offset.
        """
        out = df.copy()
        errors: list[str] = []

        for col in ("category", "group", "curve"):
            out[col] = out[col].astype("string").str.strip().str.lower()
        out["label"] = out["label"].fillna(out["category"]).astype(str)

        blank = out["category"].isna() | (out["category"] == "")
        if blank.any():
            errors.append(f"{int(blank.sum())} row(s) with no category name")

        dupes = out.loc[out["category"].duplicated(), "category"].tolist()
        if dupes:
            errors.append(f"duplicate categories: {dupes}")

        bad_groups = out.loc[out["group"].isna() | (out["group"] == ""), "category"].tolist()
        if bad_groups:
            errors.append(f"categories with no group: {bad_groups}")

        bad_curves = out.loc[~out["curve"].isin(VALID_CURVES), "category"].tolist()
        if bad_curves:
            errors.append(
                f"unknown curve for {bad_curves} (expected one of {sorted(VALID_CURVES)})"
            )

        out["skill_constant"] = pd.to_numeric(out["skill_constant"], errors="coerce")
        bad_constant = out.loc[
            out["skill_constant"].isna() | (out["skill_constant"] <= 0), "category"
        ].tolist()
        if bad_constant:
            errors.append(f"skill_constant must be positive for {bad_constant}")

        out["level_offset"] = pd.to_numeric(out["level_offset"], errors="coerce")
        bad_offset = out.loc[
            out["level_offset"].isna() | ~_is_whole(out["level_offset"].fillna(0.5)),
            "category",
        ].tolist()
        if bad_offset:
            errors.append(f"level_offset must be a whole number for {bad_offset}")

        _raise_if_errors("skill category", errors)

        out["category"] = out["category"].astype(str)
        out["group"] = out["group"].astype(str)
        out["curve"] = out["curve"].astype(str)
        out["skill_constant"] = out["skill_constant"].astype(float)
        out["level_offset"] = out["level_offset"].astype(int)
        logger.debug("Cleaned skill categories: %d rows", len(out))
        return out[["category", "label", "group", "curve", "skill_constant", "level_offset"]]

    # ------------------------------------------------------------------
    # Level multiplier brackets
    # ------------------------------------------------------------------
    def clean_multipliers(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalize and check the level bracket table.

        Brackets within a group must be sorted, contiguous (each
        ``level_from`` is the previous ``level_to + 1``) and
        non-overlapping. Only the last bracket of a group may be
        open-ended.

        Returns columns: group, level_from, level_to, multiplier.
        """
        out = df.copy()
        errors: list[str] = []

        out["group"] = out["group"].astype("string").str.strip().str.lower()
        if (out["group"].isna() | (out["group"] == "")).any():
            errors.append("bracket row(s) with no group")

        multiplier = pd.Series(float("nan"), index=out.index)
        if "multiplier" in out.columns:
            multiplier = pd.to_numeric(out["multiplier"], errors="coerce")
        if "rate" in out.columns:
            rate = pd.to_numeric(out["rate"], errors="coerce")
            if (rate <= 0).any():
                errors.append("server rates must be positive")
            multiplier = multiplier.fillna(1.0 / rate.where(rate > 0))
        if not any(col in out.columns for col in MULTIPLIER_VALUE_COLUMNS):
            errors.append("brackets need a 'multiplier' or 'rate' column")
        out["multiplier"] = multiplier

        if out["multiplier"].isna().any():
            rows = out.index[out["multiplier"].isna()].tolist()
            errors.append(f"missing or non-numeric multiplier in row(s) {rows}")
        if (out["multiplier"] <= 0).any():
            errors.append("multipliers must be positive")

        out["level_from"] = pd.to_numeric(out["level_from"], errors="coerce")
        out["level_to"] = out["level_to"].apply(_parse_level_to)

        bad_from = out["level_from"].isna() | (out["level_from"] < 0) | ~_is_whole(
            out["level_from"].fillna(0.5)
        )
        if bad_from.any():
            errors.append(f"level_from must be a whole number >= 0 (row(s) {out.index[bad_from].tolist()})")

        bad_to = out["level_to"].isna() | ~_is_whole(out["level_to"].fillna(0.5))
        if bad_to.any():
            errors.append(f"level_to must be a whole number or 'inf' (row(s) {out.index[bad_to].tolist()})")

        _raise_if_errors("level multiplier", errors)

        inverted = out["level_to"] < out["level_from"]
        if inverted.any():
            errors.append(f"level_to below level_from in row(s) {out.index[inverted].tolist()}")

        out = out.sort_values(["group", "level_from"], kind="stable").reset_index(drop=True)
        for group, brackets in out.groupby("group", sort=True):
            errors.extend(self._check_bracket_sequence(group, brackets))

        _raise_if_errors("level multiplier", errors)

        out["group"] = out["group"].astype(str)
        out["level_from"] = out["level_from"].astype(int)
        out["level_to"] = out["level_to"].astype(float)
        logger.debug(
            "Cleaned level multipliers: %d brackets in %d group(s)",
            len(out), out["group"].nunique(),
        )
        return out[["group", "level_from", "level_to", "multiplier"]]

    @staticmethod
    def _check_bracket_sequence(group: str, brackets: pd.DataFrame) -> list[str]:
        """Find gaps, overlaps and misplaced open-ended brackets in one group."""
        errors = []
        expected_next = brackets["level_to"] + 1
        actual_next = brackets["level_from"].shift(-1)

        for prev_to, nxt, expected in zip(
            brackets["level_to"].iloc[:-1], actual_next.iloc[:-1], expected_next.iloc[:-1]
        ):
            if math.isinf(prev_to):
                errors.append(f"{group}: open-ended bracket is not the last one")
            elif nxt > expected:
                errors.append(f"{group}: gap between levels {int(prev_to)} and {int(nxt)}")
            elif nxt < expected:
                errors.append(f"{group}: bracket starting at {int(nxt)} overlaps level {int(prev_to)}")
        return errors

    # ------------------------------------------------------------------
    # Vocations
    # ------------------------------------------------------------------
    def clean_vocations(self, df: pd.DataFrame, categories: pd.DataFrame) -> pd.DataFrame:
        """Normalize vocations and split their relevant-skill lists.

        Returns columns: vocation, label, relevant_skills (tuple of tags).
        """
        out = df.copy()
        errors: list[str] = []
        known = set(categories["category"])

        out["vocation"] = out["vocation"].astype("string").str.strip().str.lower()
        if (out["vocation"].isna() | (out["vocation"] == "")).any():
            errors.append("vocation row(s) with no name")
        dupes = out.loc[out["vocation"].duplicated(), "vocation"].tolist()
        if dupes:
            errors.append(f"duplicate vocations: {dupes}")
        out["label"] = out["label"].fillna(out["vocation"]).astype(str)

        def split_skills(cell) -> tuple:
            if pd.isna(cell):
                return ()
            parts = (p.strip().lower() for p in str(cell).split(LIST_SEPARATOR))
            return tuple(p for p in parts if p)

        out["relevant_skills"] = out["relevant_skills"].apply(split_skills)
        for vocation, skills in zip(out["vocation"], out["relevant_skills"]):
            unknown = [s for s in skills if s not in known]
            if unknown:
                errors.append(f"{vocation}: unknown relevant skills {unknown}")
            if not skills:
                logger.warning("Vocation %s lists no relevant skills", vocation)

        _raise_if_errors("vocation", errors)
        out["vocation"] = out["vocation"].astype(str)
        return out[["vocation", "label", "relevant_skills"]]

    # ------------------------------------------------------------------
    # Vocation rate constants
    # ------------------------------------------------------------------
    def clean_vocation_rates(
        self,
        df: pd.DataFrame,
        categories: pd.DataFrame,
        vocations: pd.DataFrame,
    ) -> pd.DataFrame:
        """Melt the wide rate table into one row per defined pair.

        Blank cells mean "not defined": they are dropped (with a warning)
        so that looking the pair up later fails loudly instead of
        defaulting.

        Returns columns: vocation, category, rate.
        """
        out = df.copy()
        errors: list[str] = []
        known_categories = set(categories["category"])
        known_vocations = set(vocations["vocation"])

        out.columns = [str(c).strip().lower() for c in out.columns]
        out["vocation"] = out["vocation"].astype("string").str.strip().str.lower()

        unknown_columns = [c for c in out.columns if c != "vocation" and c not in known_categories]
        if unknown_columns:
            errors.append(f"rate columns for unknown categories: {unknown_columns}")

        unknown_vocations = sorted(set(out["vocation"].dropna()) - known_vocations)
        if unknown_vocations:
            errors.append(f"rates for unknown vocations: {unknown_vocations}")

        dupes = out.loc[out["vocation"].duplicated(), "vocation"].tolist()
        if dupes:
            errors.append(f"duplicate vocation rows: {dupes}")

        _raise_if_errors("vocation rate", errors)

        long = out.melt(id_vars="vocation", var_name="category", value_name="raw_rate")
        long["rate"] = pd.to_numeric(long["raw_rate"], errors="coerce")

        non_numeric = long["raw_rate"].notna() & long["rate"].isna()
        for vocation, category in zip(long.loc[non_numeric, "vocation"], long.loc[non_numeric, "category"]):
            errors.append(f"{vocation}/{category}: rate is not a number")

        non_positive = long["rate"] <= 0
        for vocation, category in zip(long.loc[non_positive, "vocation"], long.loc[non_positive, "category"]):
            errors.append(f"{vocation}/{category}: rate must be positive")

        _raise_if_errors("vocation rate", errors)

        undefined = long["rate"].isna()
        if undefined.any():
            pairs = [f"{v}/{c}" for v, c in zip(long.loc[undefined, "vocation"], long.loc[undefined, "category"])]
            logger.warning("No vocation rate defined for: %s", ", ".join(pairs))

        missing_rows = sorted(known_vocations - set(out["vocation"]))
        if missing_rows:
            logger.warning("Vocations with no rate row at all: %s", missing_rows)

        long = long.loc[~undefined, ["vocation", "category", "rate"]].reset_index(drop=True)
        long["vocation"] = long["vocation"].astype(str)
        long["rate"] = long["rate"].astype(float)
        logger.debug("Cleaned vocation rates: %d defined pairs", len(long))
        return long

    # ------------------------------------------------------------------
    # Training resources
    # ------------------------------------------------------------------
    def clean_resources(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalize the resource catalog, preserving row order (catalog index).

        Returns columns: name, charges_per_unit, real_cost,
        attack_interval_seconds, effort_per_charge.
        """
        out = df.copy().reset_index(drop=True)
        errors: list[str] = []

        out["name"] = out["name"].astype("string").str.strip()
        if (out["name"].isna() | (out["name"] == "")).any():
            errors.append("resource row(s) with no name")
        dupes = out.loc[out["name"].duplicated(), "name"].tolist()
        if dupes:
            errors.append(f"duplicate resources: {dupes}")

        if "effort_per_charge" not in out.columns:
            out["effort_per_charge"] = DEFAULT_EFFORT_PER_CHARGE

        for col in ("charges_per_unit", "real_cost", "attack_interval_seconds", "effort_per_charge"):
            out[col] = pd.to_numeric(out[col], errors="coerce")
        out["effort_per_charge"] = out["effort_per_charge"].fillna(DEFAULT_EFFORT_PER_CHARGE)

        charges = out["charges_per_unit"]
        bad_charges = charges.isna() | (charges < 1) | ~_is_whole(charges.fillna(0.5))
        if bad_charges.any():
            errors.append(f"charges_per_unit must be a whole number >= 1 for {out.loc[bad_charges, 'name'].tolist()}")

        bad_cost = out["real_cost"].isna() | (out["real_cost"] < 0)
        if bad_cost.any():
            errors.append(f"real_cost must be >= 0 for {out.loc[bad_cost, 'name'].tolist()}")

        bad_interval = out["attack_interval_seconds"].isna() | (out["attack_interval_seconds"] <= 0)
        if bad_interval.any():
            errors.append(
                f"attack_interval_seconds must be positive for {out.loc[bad_interval, 'name'].tolist()}"
            )

        if (out["effort_per_charge"] <= 0).any():
            errors.append("effort_per_charge must be positive")

        if out.empty:
            errors.append("catalog is empty")

        _raise_if_errors("training resource", errors)

        out["name"] = out["name"].astype(str)
        out["charges_per_unit"] = out["charges_per_unit"].astype(int)
        logger.debug("Cleaned training resources: %d rows", len(out))
        return out[["name", "charges_per_unit", "real_cost", "attack_interval_seconds", "effort_per_charge"]]

    # ------------------------------------------------------------------
    # Whole rule set
    # ------------------------------------------------------------------
    def validate_all(self, data: dict[str, pd.DataFrame]) -> dict[str, pd.DataFrame]:
        """Clean all five tables returned by RuleTableIngester.read_all().

        Expects keys: categories, multipliers, vocations, vocation_rates,
        resources. Returns a dict with the same keys, each cleaned.

        Raises:
            RuleTableError: on the first table that fails, or when a
                category group has no multiplier brackets.
        """
        categories = self.clean_categories(data["categories"])
        multipliers = self.clean_multipliers(data["multipliers"])

        missing_groups = sorted(set(categories["group"]) - set(multipliers["group"]))
        if missing_groups:
            raise RuleTableError(f"No level multiplier brackets for group(s): {missing_groups}")

        vocations = self.clean_vocations(data["vocations"], categories)
        rates = self.clean_vocation_rates(data["vocation_rates"], categories, vocations)
        self._check_open_ended_growth(categories, multipliers, rates)
        return {
            "categories": categories,
            "multipliers": multipliers,
            "vocations": vocations,
            "vocation_rates": rates,
            "resources": self.clean_resources(data["resources"]),
        }

    @staticmethod
    def _check_open_ended_growth(
        categories: pd.DataFrame,
        multipliers: pd.DataFrame,
        rates: pd.DataFrame,
    ) -> None:
        """An open-ended bracket needs per-level effort that never shrinks.

        With an exponential curve and a rate below 1 the level efforts
        converge, so a finite amount of effort would buy unlimited levels.
        """
        open_groups = set(multipliers.loc[multipliers["level_to"] == OPEN_ENDED_LEVEL, "group"])
        exponential = categories.loc[
            categories["group"].isin(open_groups) & (categories["curve"] == "exponential"),
            "category",
        ]
        shrinking = rates.loc[rates["category"].isin(exponential) & (rates["rate"] < 1)]
        if not shrinking.empty:
            pairs = [f"{v}/{c}" for v, c in zip(shrinking["vocation"], shrinking["category"])]
            raise RuleTableError(
                f"Per-level effort shrinks in an open-ended bracket for: {pairs}"
            )

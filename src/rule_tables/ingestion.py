"""CSV ingestion for the training rule tables.

Reads the five rule-table files into raw DataFrames:
- Skill categories (group, progression curve, constants)
- Level multiplier brackets per category group
- Vocations and their relevant skills
- Vocation rate constants (wide: one column per category)
- Training resource catalog

Only structural problems are handled here (missing files, missing
columns, blank rows). Value checks belong to RuleTableValidator.
"""

import logging
from pathlib import Path

import pandas as pd

from src.rule_tables.config import FILE_NAMES, REQUIRED_COLUMNS, RULES_DIR

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Raised when a rule-table CSV cannot be read."""


class RuleTableIngester:
    """Reads rule-table CSV files from a rules directory.

    Each read method returns a DataFrame with:
    - Whitespace-stripped string cells
    - Fully blank rows removed
    - All required columns present
    """

    def __init__(self, rules_dir: Path | None = None):
        self.rules_dir = Path(rules_dir) if rules_dir is not None else RULES_DIR

    def _resolve_path(self, table_key: str) -> Path:
        """Build the full file path for a given table key, raising if missing."""
        filepath = self.rules_dir / FILE_NAMES[table_key]
        if not filepath.exists():
            raise FileNotFoundError(f"Expected rule table not found: {filepath}")
        return filepath

    def _read_table(self, table_key: str, dtype: dict | None = None) -> pd.DataFrame:
        filepath = self._resolve_path(table_key)
        logger.debug("Reading %s table: %s", table_key, filepath.name)

        df = pd.read_csv(filepath, skipinitialspace=True, comment="#", dtype=dtype)
        df.columns = [str(col).strip() for col in df.columns]

        missing = [col for col in REQUIRED_COLUMNS[table_key] if col not in df.columns]
        if missing:
            raise IngestionError(
                f"{filepath.name} is missing required columns: {missing}"
            )

        for col in df.columns:
            if pd.api.types.is_string_dtype(df[col]):
                df[col] = df[col].str.strip()

        df = df.dropna(how="all").reset_index(drop=True)
        logger.debug("Loaded %d rows from %s", len(df), filepath.name)
        return df

    # ------------------------------------------------------------------
    # Individual tables
    # ------------------------------------------------------------------
    def read_categories(self) -> pd.DataFrame:
        """Columns: category, label, group, curve, skill_constant, level_offset."""
        return self._read_table("categories")

    def read_multipliers(self) -> pd.DataFrame:
        """Columns: group, level_from, level_to and one of multiplier / rate.

        ``level_to`` is read as text so the open-ended ``inf`` sentinel
        survives until validation.
        """
        return self._read_table("multipliers", dtype={"level_to": str})

    def read_vocations(self) -> pd.DataFrame:
        """Columns: vocation, label, relevant_skills (``;``-separated)."""
        return self._read_table("vocations")

    def read_vocation_rates(self) -> pd.DataFrame:
        """Wide table: ``vocation`` plus one rate column per skill category."""
        return self._read_table("vocation_rates")

    def read_resources(self) -> pd.DataFrame:
        """Columns: name, charges_per_unit, real_cost, attack_interval_seconds.

        An optional ``effort_per_charge`` column overrides the catalog default.
        """
        return self._read_table("resources")

    def read_all(self) -> dict[str, pd.DataFrame]:
        """Read all five rule tables and return them as a dict.

        Returns:
            dict with keys: 'categories', 'multipliers', 'vocations',
            'vocation_rates', 'resources'

        Raises:
            IngestionError: if any file cannot be read.
        """
        try:
            tables = {
                "categories": self.read_categories(),
                "multipliers": self.read_multipliers(),
                "vocations": self.read_vocations(),
                "vocation_rates": self.read_vocation_rates(),
                "resources": self.read_resources(),
            }
        except IngestionError:
            raise
        except Exception as e:
            raise IngestionError(f"Failed to read rule tables from {self.rules_dir}: {e}") from e

        logger.info(
            "Read rule tables from %s: %d categories, %d brackets, %d vocations, %d resources",
            self.rules_dir,
            len(tables["categories"]), len(tables["multipliers"]),
            len(tables["vocations"]), len(tables["resources"]),
        )
        return tables

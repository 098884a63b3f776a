from pathlib import Path

# Base project directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
RULES_DIR = DATA_DIR / "rules"

# Rule table file names
FILE_NAMES = {
    "categories": "skill_categories.csv",
    "multipliers": "level_multipliers.csv",
    "vocations": "vocations.csv",
    "vocation_rates": "vocation_rates.csv",
    "resources": "training_resources.csv",
}

# Columns every file must carry (extra columns are ignored)
REQUIRED_COLUMNS = {
    "categories": ["category", "label", "group", "curve", "skill_constant", "level_offset"],
    "multipliers": ["group", "level_from", "level_to"],
    "vocations": ["vocation", "label", "relevant_skills"],
    "vocation_rates": ["vocation"],
    "resources": ["name", "charges_per_unit", "real_cost", "attack_interval_seconds"],
}

# Level brackets carry either a difficulty multiplier or a published
# server rate (multiplier = 1 / rate).
MULTIPLIER_VALUE_COLUMNS = ("multiplier", "rate")

# Progression curves understood by the effort accumulator
VALID_CURVES = {"constant", "exponential"}

# Separator for list-valued cells (vocations.relevant_skills)
LIST_SEPARATOR = ";"

# Top-bracket sentinel for open-ended tables
OPEN_ENDED_LEVEL = float("inf")
OPEN_ENDED_TOKENS = {"inf", "infinity", "*"}

# Catalog default when a resource row omits effort_per_charge
DEFAULT_EFFORT_PER_CHARGE = 1.0

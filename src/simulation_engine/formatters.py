"""Human-readable renderings of calculator figures."""

from src.simulation_engine.config import HOURS_PER_DAY, SECONDS_PER_HOUR, SECONDS_PER_MINUTE


def format_duration(seconds: float) -> str:
    """Render a training time the way the calculator page shows it.

    Each unit is rounded before it is split, so "3 days 24h" never appears.

    Examples:
        1500    -> "25 minutes"
        36000   -> "10 hours"
        270000  -> "3 days 3h"
    """
    minutes = round(seconds / SECONDS_PER_MINUTE)
    if minutes < 60:
        return f"{minutes} minutes"
    hours = round(seconds / SECONDS_PER_HOUR)
    if hours < HOURS_PER_DAY:
        return f"{hours} hours"
    days, rest = divmod(hours, HOURS_PER_DAY)
    return f"{days} days {rest}h"


def format_number(value: float) -> str:
    """Thousands-separated number; whole values lose their decimals."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"

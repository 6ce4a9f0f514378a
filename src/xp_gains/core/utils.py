"""
Small numeric and time helpers shared by the engine.

Rounding follows the half-up convention (2.5 -> 3) used by every formula in
the engine; Python's built-in round() rounds half to even and would drift
from persisted values.
"""

import math
from datetime import datetime, timezone

KG_PER_LB = 2.20462


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return min(high, max(low, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer; exact halves round toward +infinity."""
    return int(math.floor(value + 0.5))


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    """Serialize a datetime to ISO-8601, assuming UTC for naive values."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat()


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts the trailing ``Z`` form written by JavaScript clients.

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def kg_to_lbs(kg: float) -> float:
    """Convert kilograms to pounds, rounded to one decimal."""
    return round_half_up(kg * KG_PER_LB * 10) / 10


def lbs_to_kg(lbs: float) -> float:
    """Convert pounds to kilograms, rounded to one decimal."""
    return round_half_up(lbs / KG_PER_LB * 10) / 10


def format_weight(weight_kg: float, unit: str = "kg") -> str:
    """Format a stored kg weight for display in the user's unit."""
    if unit == "lbs":
        return f"{kg_to_lbs(weight_kg)} lbs"
    return f"{weight_kg:g} kg"

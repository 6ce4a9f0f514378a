"""
Spillover: secondary-muscle XP for compound exercises.

Each secondary skill receives round(primary_xp * fraction), computed
independently from the same primary amount.  Spillover is awarded silently
(callers do not announce level-ups for it) but is persisted exactly like
primary XP.
"""

from typing import Mapping

from .catalog.registry import get_catalog
from .models import SpilloverXp
from .utils import round_half_up


def spillover_table() -> Mapping[str, Mapping[str, float]]:
    return get_catalog().spillover


def has_spillover(exercise_id: str, table: Mapping[str, Mapping[str, float]] | None = None) -> bool:
    table = spillover_table() if table is None else table
    return bool(table.get(exercise_id))


def spillover_for(
    exercise_id: str,
    primary_xp: int,
    table: Mapping[str, Mapping[str, float]] | None = None,
) -> list[SpilloverXp]:
    """
    Spillover entries for one set of ``exercise_id``.

    Args:
        exercise_id: Exercise that was performed
        primary_xp: XP awarded to the primary skill
        table: Override of the catalog spillover table

    Returns:
        One SpilloverXp per secondary skill, in table order; empty when the
        exercise has no spillover.
    """
    table = spillover_table() if table is None else table
    fractions = table.get(exercise_id)
    if not fractions:
        return []
    return [
        SpilloverXp(skill_id=skill_id, xp=round_half_up(primary_xp * fraction))
        for skill_id, fraction in fractions.items()
    ]

"""
Set XP formula.

    xp = round(base_xp * reps_factor * intensity_factor)
    xp = round(xp * diminishing_multiplier)      # repeated same-weight sets
    xp = round(xp * (1 + neglected_bonus))       # muscle untrained for 7+ days
    xp = max(1, xp)

Rounding is half-up at every step.
"""

import math
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from .catalog.base import Exercise
from .config import DEFAULT_XP_CONFIG, MIN_XP_PER_SET, XpConfig
from .models import RecentSet, WorkoutSet, XpEvent
from .utils import clamp, parse_iso, round_half_up, utc_now


def reps_factor(reps: int, config: XpConfig = DEFAULT_XP_CONFIG) -> float:
    """clamp(reps / 10, 0.6, 2.0)"""
    return clamp(reps / config.reps_baseline, config.reps_factor_min, config.reps_factor_max)


def intensity_factor(
    weight_kg: float,
    reference_weight: float,
    config: XpConfig = DEFAULT_XP_CONFIG,
) -> float:
    """
    clamp(sqrt(weight / reference), 0.7, 1.6); 1.0 for bodyweight movements.

    The square root keeps the bonus sub-linear so very heavy, low-rep work
    does not dominate.
    """
    if reference_weight <= 0:
        return 1.0
    return clamp(
        math.sqrt(max(0.0, weight_kg) / reference_weight),
        config.intensity_factor_min,
        config.intensity_factor_max,
    )


def grace_sets(skill_level: int, config: XpConfig = DEFAULT_XP_CONFIG) -> int:
    """Same-weight sets allowed at full XP: 1 + floor(level / 15)."""
    return 1 + max(0, skill_level) // config.grace_levels_per_set


def apply_diminishing_returns(
    xp: int,
    exercise_id: str,
    weight_kg: float,
    reps: int,
    skill_level: int,
    recent_sets: Iterable[RecentSet],
    config: XpConfig = DEFAULT_XP_CONFIG,
) -> int:
    """
    Throttle XP for repeated sets of one exercise at the same weight.

    Once the number of recent same-weight sets reaches the grace count, the
    multipliers (1.0, 0.85, 0.7, 0.5, 0.3) apply in order, the last one
    repeating.  Beating the best rep count at that weight is progress and
    escapes the throttle entirely.
    """
    same_weight_count = 0
    best_reps = 0
    for recent in recent_sets:
        if recent.exercise_id == exercise_id and recent.weight == weight_kg:
            same_weight_count += 1
            best_reps = max(best_reps, recent.reps)

    grace = grace_sets(skill_level, config)
    if reps <= best_reps and same_weight_count >= grace:
        multipliers = config.diminishing_multipliers
        idx = min(same_weight_count - grace, len(multipliers) - 1)
        return round_half_up(xp * multipliers[idx])
    return xp


def xp_for_set(
    exercise: Exercise,
    reps: int,
    weight_kg: float,
    skill_level: int,
    recent_sets: Iterable[RecentSet] = (),
    is_neglected: bool = False,
    config: XpConfig = DEFAULT_XP_CONFIG,
) -> int:
    """
    XP to award for one logged set.

    Args:
        exercise: Catalog or custom exercise
        reps: Reps performed
        weight_kg: Load in kg (ignored for bodyweight movements)
        skill_level: Current level of the exercise's skill
        recent_sets: Lookback used for diminishing returns
        is_neglected: Whether the neglect bonus applies

    Returns:
        XP amount (at least 1)
    """
    if exercise.uses_fixed_xp:
        xp = int(exercise.custom_xp_per_set)  # type: ignore[attr-defined]
    else:
        base_xp = config.base_xp_for(exercise.type)
        xp = round_half_up(
            base_xp
            * reps_factor(reps, config)
            * intensity_factor(weight_kg, exercise.reference_weight, config)
        )

    xp = apply_diminishing_returns(
        xp, exercise.id, weight_kg, reps, skill_level, recent_sets, config
    )

    if is_neglected:
        xp = round_half_up(xp * (1 + config.neglected_bonus))

    return max(MIN_XP_PER_SET, xp)


def is_skill_neglected(
    skill_id: str,
    events: Sequence[XpEvent],
    now: datetime | None = None,
    days: int = DEFAULT_XP_CONFIG.neglected_days,
) -> bool:
    """
    True if the skill was trained before but not within the last ``days``.

    Only workout-type events count as training.  A skill that has never been
    trained is not neglected (no bonus for untouched muscles).
    """
    now = now or utc_now()
    cutoff = now - timedelta(days=days)

    trained_before = False
    for event in events:
        if event.type != "workout" or event.skill_id != skill_id:
            continue
        trained_before = True
        if parse_iso(event.created_at) > cutoff:
            return False
    return trained_before


def session_total_xp(sets: Iterable[WorkoutSet]) -> int:
    """Total XP of a list of sets, spillover included."""
    return sum(s.xp_earned + sum(spill.xp for spill in s.spillover) for s in sets)

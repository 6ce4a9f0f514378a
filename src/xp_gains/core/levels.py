"""
Level curve: XP <-> level.

The cumulative XP table is geometric and built once per LevelCurve:

    table[1] = 0
    table[L] = table[L-1] + round(base * growth^(L-2))    for L in 2..max+1

Each increment is rounded individually, so the closed-form geometric sum
drifts from the table; every lookup goes through the table.
"""

from bisect import bisect_right
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping

from .catalog.registry import load_xp_config, skill_ids
from .config import DEFAULT_XP_CONFIG, XpConfig
from .utils import round_half_up


@dataclass(frozen=True)
class LevelCurve:
    """
    Precomputed cumulative XP table.

    ``table[L]`` is the total XP needed to reach level L; index 0 is unused
    and index max_level + 1 is the (unreachable) cap used for progress.
    """

    max_level: int
    table: tuple[int, ...]

    @classmethod
    def from_config(cls, config: XpConfig = DEFAULT_XP_CONFIG) -> "LevelCurve":
        table = [0, 0]
        for level in range(2, config.max_level + 2):
            increment = round_half_up(config.base * config.growth_rate ** (level - 2))
            table.append(table[-1] + increment)
        return cls(max_level=config.max_level, table=tuple(table))

    def xp_for_level(self, level: int) -> int:
        """Total XP needed to reach ``level`` (0 for level <= 1, capped at max)."""
        if level <= 1:
            return 0
        return self.table[min(level, self.max_level)]

    def xp_to_next_level(self, level: int) -> int:
        """XP between ``level`` and ``level + 1``; 0 at max level."""
        if level >= self.max_level:
            return 0
        level = max(level, 1)
        return self.table[level + 1] - self.table[level]

    def level_from_xp(self, xp: int) -> int:
        """Greatest level L in 1..max with xp >= table[L]."""
        if xp < 0:
            return 1
        # table[1..max]; bisect_right counts the entries <= xp
        level = bisect_right(self.table, xp, lo=1, hi=self.max_level + 1) - 1
        return max(1, level)

    def progress_to_next_level(self, xp: int) -> int:
        """Percent (0-100) of the way from the current level to the next."""
        level = self.level_from_xp(xp)
        if level >= self.max_level:
            return 100
        floor_xp = self.table[level]
        span = self.table[level + 1] - floor_xp
        into = max(0, xp - floor_xp)
        return min(100, (100 * into) // span)

    @property
    def max_xp(self) -> int:
        """XP needed for the max level."""
        return self.table[self.max_level]


@lru_cache(maxsize=1)
def default_curve() -> LevelCurve:
    """The process-scoped curve built from DEFAULT_XP_CONFIG."""
    return LevelCurve.from_config(DEFAULT_XP_CONFIG)


@lru_cache(maxsize=1)
def configured_curve() -> LevelCurve:
    """The curve built from the catalog's xp_config overrides, if any."""
    return LevelCurve.from_config(load_xp_config())


def xp_for_level(level: int, curve: LevelCurve | None = None) -> int:
    return (curve or default_curve()).xp_for_level(level)


def xp_to_next_level(level: int, curve: LevelCurve | None = None) -> int:
    return (curve or default_curve()).xp_to_next_level(level)


def level_from_xp(xp: int, curve: LevelCurve | None = None) -> int:
    return (curve or default_curve()).level_from_xp(xp)


def progress_to_next_level(xp: int, curve: LevelCurve | None = None) -> int:
    return (curve or default_curve()).progress_to_next_level(xp)


def total_level(skill_xp: Mapping[str, int], curve: LevelCurve | None = None) -> int:
    """
    Sum of levels across all skills.

    Skills missing from ``skill_xp`` count as level 1, so the minimum is the
    number of skills (14).
    """
    curve = curve or default_curve()
    ids = skill_ids()
    total = sum(curve.level_from_xp(skill_xp.get(skill_id, 0)) for skill_id in ids)
    return max(len(ids), total)


def did_level_up(previous_xp: int, new_xp: int, curve: LevelCurve | None = None) -> bool:
    return level_from_xp(new_xp, curve) > level_from_xp(previous_xp, curve)


def new_level_if_level_up(
    previous_xp: int,
    new_xp: int,
    curve: LevelCurve | None = None,
) -> int | None:
    """The new level when the XP change crossed a level boundary, else None."""
    previous = level_from_xp(previous_xp, curve)
    current = level_from_xp(new_xp, curve)
    return current if current > previous else None


def is_max_level(xp: int, curve: LevelCurve | None = None) -> bool:
    curve = curve or default_curve()
    return curve.level_from_xp(xp) >= curve.max_level


def xp_to_max_level(xp: int, curve: LevelCurve | None = None) -> int:
    curve = curve or default_curve()
    return max(0, curve.max_xp - xp)

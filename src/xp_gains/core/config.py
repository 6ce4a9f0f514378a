"""
Configuration constants for the XP engine.

All adjustable parameters are centralized here for easy tuning.
Calibration target: level 99 in a skill takes roughly 6-8 years at a
baseline volume of 3-4 quality sets per muscle per week.
"""

from dataclasses import dataclass, fields
from typing import Any, Final

# =============================================================================
# LEVEL CURVE
# =============================================================================

MAX_LEVEL: Final[int] = 99
LEVEL_BASE_XP: Final[int] = 150  # XP needed for level 1 -> 2
LEVEL_GROWTH_RATE: Final[float] = 1.03  # 3% more XP per level

# =============================================================================
# SET XP FORMULA
# =============================================================================

BASE_XP_COMPOUND: Final[int] = 50
BASE_XP_ISOLATION: Final[int] = 35

REPS_BASELINE: Final[int] = 10  # 10 reps = 1.0x
REPS_FACTOR_MIN: Final[float] = 0.6
REPS_FACTOR_MAX: Final[float] = 2.0

INTENSITY_FACTOR_MIN: Final[float] = 0.7
INTENSITY_FACTOR_MAX: Final[float] = 1.6

MIN_XP_PER_SET: Final[int] = 1

# =============================================================================
# DIMINISHING RETURNS
# =============================================================================

# Applied once the level-scaled grace period of same-weight sets is used up
DIMINISHING_MULTIPLIERS: Final[tuple[float, ...]] = (1.0, 0.85, 0.7, 0.5, 0.3)
GRACE_LEVELS_PER_SET: Final[int] = 15  # grace = 1 + level // 15
RECENT_SETS_LIMIT: Final[int] = 50

# =============================================================================
# NEGLECTED MUSCLE BONUS
# =============================================================================

NEGLECTED_DAYS: Final[int] = 7
NEGLECTED_BONUS: Final[float] = 0.10

# =============================================================================
# PERSISTENCE
# =============================================================================

CURRENT_SCHEMA_VERSION: Final[int] = 1
STATE_KEY: Final[str] = "xpgains_state"
LOG_KEY: Final[str] = "xpgains_log"
SAVE_DEBOUNCE_SECONDS: Final[float] = 0.5


@dataclass(frozen=True)
class XpConfig:
    """Tunable parameters consumed by the level curve and the set formula."""

    max_level: int = MAX_LEVEL
    base: int = LEVEL_BASE_XP
    growth_rate: float = LEVEL_GROWTH_RATE
    base_xp_compound: int = BASE_XP_COMPOUND
    base_xp_isolation: int = BASE_XP_ISOLATION
    reps_baseline: int = REPS_BASELINE
    reps_factor_min: float = REPS_FACTOR_MIN
    reps_factor_max: float = REPS_FACTOR_MAX
    intensity_factor_min: float = INTENSITY_FACTOR_MIN
    intensity_factor_max: float = INTENSITY_FACTOR_MAX
    diminishing_multipliers: tuple[float, ...] = DIMINISHING_MULTIPLIERS
    grace_levels_per_set: int = GRACE_LEVELS_PER_SET
    neglected_days: int = NEGLECTED_DAYS
    neglected_bonus: float = NEGLECTED_BONUS

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_level < 2:
            raise ValueError("max_level must be at least 2")
        if self.base <= 0:
            raise ValueError("base must be positive")
        if self.growth_rate < 1.0:
            raise ValueError("growth_rate must be >= 1.0")
        if not self.diminishing_multipliers:
            raise ValueError("diminishing_multipliers must not be empty")
        if self.neglected_days <= 0:
            raise ValueError("neglected_days must be positive")

    def base_xp_for(self, exercise_type: str) -> int:
        """Base XP for an exercise type; anything not compound counts as isolation."""
        if exercise_type == "compound":
            return self.base_xp_compound
        return self.base_xp_isolation


DEFAULT_XP_CONFIG: Final[XpConfig] = XpConfig()


def xp_config_from_dict(overrides: dict[str, Any]) -> XpConfig:
    """
    Build an XpConfig from a (possibly partial) dict of overrides.

    Unknown keys are ignored so that a user override file written for a newer
    release does not break an older one.

    Args:
        overrides: Mapping of XpConfig field name -> value

    Returns:
        XpConfig with overrides applied on top of the defaults
    """
    known = {f.name for f in fields(XpConfig)}
    values = {k: v for k, v in overrides.items() if k in known}
    if "diminishing_multipliers" in values:
        values["diminishing_multipliers"] = tuple(
            float(m) for m in values["diminishing_multipliers"]
        )
    return XpConfig(**values)

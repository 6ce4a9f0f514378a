"""
Base types for the static catalog.

Skills are the 14 trainable muscle groups; exercises award XP to exactly one
skill (plus optional spillover to others).  Custom exercises are user-created
and live in GameState rather than in the bundled catalog.
"""

from dataclasses import dataclass, field
from typing import Literal

BodyRegion = Literal["upper", "lower"]
ExerciseType = Literal["compound", "isolation"]
CustomExerciseType = Literal["compound", "isolation", "bodyweight"]
XpMode = Literal["standard", "custom"]


@dataclass(frozen=True)
class Skill:
    """One trainable muscle group."""

    id: str
    name: str
    body_region: BodyRegion


@dataclass(frozen=True)
class EquipmentType:
    """One kind of equipment the user may own."""

    id: str
    name: str


@dataclass(frozen=True)
class Subcategory:
    """Finer grouping of exercises inside one skill (e.g. upper chest)."""

    id: str
    skill_id: str
    name: str


@dataclass(frozen=True)
class WeightConfig:
    """Weight selector bounds in kg."""

    min: float
    max: float
    step: float
    default: float

    def __post_init__(self) -> None:
        if self.min < 0:
            raise ValueError("weight.min must be non-negative")
        if self.max < self.min:
            raise ValueError("weight.max must be >= weight.min")
        if self.step <= 0:
            raise ValueError("weight.step must be positive")


@dataclass(frozen=True)
class Exercise:
    """
    Catalog entry for one exercise.

    reference_weight is the kg load that earns an intensity factor of 1.0;
    0 marks a bodyweight movement (intensity factor fixed at 1.0).
    """

    id: str
    skill_id: str
    name: str
    type: str  # "compound" | "isolation" (custom exercises may say "bodyweight")
    weight: WeightConfig
    reference_weight: float
    subcategory_ids: tuple[str, ...] = ()
    required_equipment: tuple[str, ...] = ()

    @property
    def is_bodyweight(self) -> bool:
        return self.reference_weight <= 0

    @property
    def uses_fixed_xp(self) -> bool:
        """True when the exercise awards a flat XP amount per set."""
        return False


@dataclass(frozen=True)
class CustomExercise(Exercise):
    """
    User-created exercise.

    With xp_mode="custom" and a positive custom_xp_per_set every set is worth
    that flat amount (before diminishing returns and the neglect bonus).
    """

    xp_mode: XpMode = "standard"
    custom_xp_per_set: int | None = None
    is_custom: bool = True

    def __post_init__(self) -> None:
        if self.xp_mode not in ("standard", "custom"):
            raise ValueError(f"Invalid xp_mode: {self.xp_mode!r}")
        if self.custom_xp_per_set is not None and self.custom_xp_per_set < 0:
            raise ValueError("custom_xp_per_set must be non-negative")

    @property
    def uses_fixed_xp(self) -> bool:
        return self.xp_mode == "custom" and bool(self.custom_xp_per_set)


@dataclass(frozen=True)
class Catalog:
    """
    The full static catalog.

    spillover maps a compound exercise id to {secondary skill id: fraction}.
    xp_overrides carries the optional ``xp_config`` section of the YAML.
    """

    skills: tuple[Skill, ...]
    equipment: tuple[EquipmentType, ...]
    subcategories: tuple[Subcategory, ...]
    exercises: dict[str, Exercise]
    spillover: dict[str, dict[str, float]] = field(default_factory=dict)
    xp_overrides: dict = field(default_factory=dict)

    @property
    def skill_ids(self) -> tuple[str, ...]:
        return tuple(s.id for s in self.skills)

    @property
    def equipment_ids(self) -> tuple[str, ...]:
        return tuple(e.id for e in self.equipment)

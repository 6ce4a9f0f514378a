"""
Data models for xp-gains.

GameState is the root aggregate persisted as a single JSON blob.  Every
model that is part of GameState is a frozen dataclass with tuple sequences:
transitions in state.py derive a new aggregate with dataclasses.replace and
never mutate the one they were given.

LogEntry, RecentSet and the *Input types belong to the calling layer and
are not persisted inside GameState.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Literal

from .catalog.base import CustomExercise
from .config import CURRENT_SCHEMA_VERSION, RECENT_SETS_LIMIT

XpEventType = Literal["workout", "spillover", "bonus", "manual", "undo"]
Unit = Literal["kg", "lbs"]
Theme = Literal["classic", "mithril"]
ChallengeType = Literal["short", "regular", "ironman"]
ChallengeFocus = Literal["full", "upper", "lower"]

XP_EVENT_TYPES: tuple[str, ...] = ("workout", "spillover", "bonus", "manual", "undo")


# =============================================================================
# XP EVENTS AND SESSIONS
# =============================================================================


@dataclass(frozen=True)
class SpilloverXp:
    """Secondary XP awarded to one skill by a compound exercise."""

    skill_id: str
    xp: int


@dataclass(frozen=True)
class XpEvent:
    """
    Atomic, append-only record of an XP change.

    client_event_id is the idempotency key: applying two events with the same
    client_event_id changes skill XP only once.  amount is non-negative for
    every type except "undo", which carries the (non-positive) compensation.
    """

    id: str
    client_event_id: str
    source_session_id: str
    skill_id: str
    type: XpEventType
    amount: int
    created_at: str
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate event data."""
        if self.type not in XP_EVENT_TYPES:
            raise ValueError(f"Invalid xp event type: {self.type}")
        if self.type == "undo":
            if self.amount > 0:
                raise ValueError("undo events must have a non-positive amount")
        elif self.amount < 0:
            raise ValueError("amount must be non-negative")


@dataclass(frozen=True)
class WorkoutSet:
    reps: int
    weight_kg: float
    xp_earned: int
    spillover: tuple[SpilloverXp, ...] = ()


@dataclass(frozen=True)
class WorkoutExercise:
    exercise_id: str
    skill_id: str
    sets: tuple[WorkoutSet, ...] = ()


@dataclass(frozen=True)
class WorkoutSession:
    """A completed workout; total_xp_earned includes spillover."""

    id: str
    completed_at: str
    exercises: tuple[WorkoutExercise, ...] = ()
    total_xp_earned: int = 0
    program_id: str | None = None
    workout_id: str | None = None
    duration_seconds: int | None = None


# =============================================================================
# PLANS AND CHALLENGES
# =============================================================================


@dataclass(frozen=True)
class PlanItem:
    skill_id: str
    exercise_id: str
    target_sets: int | None = None
    target_reps: int | None = None
    target_weight_kg: float | None = None


@dataclass(frozen=True)
class TrainingPlan:
    id: str
    name: str
    created_at: str
    updated_at: str
    items: tuple[PlanItem, ...] = ()


@dataclass(frozen=True)
class ChallengeExercise:
    exercise_id: str
    target_sets: int
    completed_sets: int = 0

    @property
    def is_done(self) -> bool:
        return self.completed_sets >= self.target_sets


@dataclass(frozen=True)
class ChallengeSkill:
    skill_id: str
    exercises: tuple[ChallengeExercise, ...] = ()


@dataclass(frozen=True)
class Challenge:
    """A randomly generated quest: hit the target sets for every exercise."""

    id: str
    type: ChallengeType
    focus: ChallengeFocus
    started_at: str
    skills: tuple[ChallengeSkill, ...] = ()
    completed: bool = False
    completed_at: str | None = None


# =============================================================================
# GAME STATE
# =============================================================================


@dataclass(frozen=True)
class Profile:
    local_user_id: str
    created_at: str
    display_name: str | None = None


@dataclass(frozen=True)
class Body:
    """Optional body metrics; every field may be unknown."""

    height_cm: float | None = None
    weight_kg: float | None = None
    body_fat_percent: float | None = None
    age: int | None = None
    sex: Literal["male", "female", "other"] | None = None

    def __post_init__(self) -> None:
        """Validate body metrics."""
        if self.sex is not None and self.sex not in ("male", "female", "other"):
            raise ValueError(f"Invalid sex: {self.sex}")
        for name in ("height_cm", "weight_kg", "age"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive")
        if self.body_fat_percent is not None and not 0 <= self.body_fat_percent <= 100:
            raise ValueError("body_fat_percent must be between 0 and 100")


@dataclass(frozen=True)
class Stats:
    """Per-skill XP.  A skill missing from skill_xp has 0 XP."""

    skill_xp: dict[str, int] = field(default_factory=dict)

    def xp_for(self, skill_id: str) -> int:
        return self.skill_xp.get(skill_id, 0)


@dataclass(frozen=True)
class Progress:
    active_program_id: str | None = None
    current_day: int | None = None
    streak_count: int = 0
    last_workout_at: str | None = None


@dataclass(frozen=True)
class History:
    workout_sessions: tuple[WorkoutSession, ...] = ()
    xp_events: tuple[XpEvent, ...] = ()

    def has_event(self, client_event_id: str) -> bool:
        return any(e.client_event_id == client_event_id for e in self.xp_events)

    def has_session(self, session_id: str) -> bool:
        return any(s.id == session_id for s in self.workout_sessions)


@dataclass(frozen=True)
class UserSettings:
    unit: Unit = "kg"
    theme: Theme = "classic"
    language: str = "en"

    def __post_init__(self) -> None:
        """Validate settings."""
        if self.unit not in ("kg", "lbs"):
            raise ValueError(f"Invalid unit: {self.unit!r}. Must be 'kg' or 'lbs'.")
        if self.theme not in ("classic", "mithril"):
            raise ValueError(f"Invalid theme: {self.theme!r}. Must be 'classic' or 'mithril'.")


@dataclass(frozen=True)
class EquipmentSettings:
    """Equipment filter: when enabled, only exercises the user can do are offered."""

    enabled: bool = False
    available: tuple[str, ...] = ()


@dataclass(frozen=True)
class Meta:
    last_modified_at: str
    pending_sync: bool = False
    last_sync_at: str | None = None


@dataclass(frozen=True)
class GameState:
    """
    Complete persisted state for one user.

    Single writer: only the reducer functions in state.py derive new
    instances, and only StateStorage persists them.
    """

    profile: Profile
    meta: Meta
    schema_version: int = CURRENT_SCHEMA_VERSION
    stats: Stats = field(default_factory=Stats)
    progress: Progress = field(default_factory=Progress)
    history: History = field(default_factory=History)
    settings: UserSettings = field(default_factory=UserSettings)
    favorites: dict[str, bool] = field(default_factory=dict)
    custom_exercises: tuple[CustomExercise, ...] = ()
    training_plans: tuple[TrainingPlan, ...] = ()
    equipment: EquipmentSettings = field(default_factory=EquipmentSettings)
    body: Body | None = None
    challenge: Challenge | None = None

    @property
    def skill_xp(self) -> dict[str, int]:
        return self.stats.skill_xp


# =============================================================================
# CALLER-OWNED RECORDS
# =============================================================================


@dataclass(frozen=True)
class LogEntry:
    """
    UI-facing projection of one completed set.

    Owned by the calling layer; used for undo and for display.
    """

    id: str
    timestamp: str
    skill_id: str
    exercise_id: str
    weight: float
    reps: int
    xp_awarded: int
    spillover: tuple[SpilloverXp, ...] = ()
    subcategory_id: str | None = None


@dataclass(frozen=True)
class RecentSet:
    """One recently logged set, used only for the diminishing-returns lookback."""

    exercise_id: str
    weight: float
    reps: int
    timestamp: str = ""


class RecentSetBuffer:
    """
    Bounded buffer of the most recent sets (oldest dropped first).

    Iterates oldest -> newest so it can be passed straight to xp_for_set.
    """

    def __init__(self, sets: Iterable[RecentSet] = (), maxlen: int = RECENT_SETS_LIMIT):
        self._sets: deque[RecentSet] = deque(sets, maxlen=maxlen)

    def add(self, recent: RecentSet) -> None:
        self._sets.append(recent)

    def __iter__(self) -> Iterator[RecentSet]:
        return iter(self._sets)

    def __len__(self) -> int:
        return len(self._sets)

    @property
    def maxlen(self) -> int:
        return self._sets.maxlen or 0

    @classmethod
    def from_log(cls, entries: Iterable[LogEntry], maxlen: int = RECENT_SETS_LIMIT) -> "RecentSetBuffer":
        """Rebuild the buffer from logged sets (oldest first)."""
        return cls(
            (RecentSet(e.exercise_id, e.weight, e.reps, e.timestamp) for e in entries),
            maxlen=maxlen,
        )


@dataclass(frozen=True)
class SetInput:
    exercise_id: str
    reps: int
    weight_kg: float = 0.0

    def __post_init__(self) -> None:
        """Validate set data."""
        if self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.weight_kg < 0:
            raise ValueError("weight_kg must be non-negative")


@dataclass(frozen=True)
class WorkoutExerciseInput:
    exercise_id: str
    sets: tuple[SetInput, ...] = ()


@dataclass(frozen=True)
class WorkoutSessionInput:
    exercises: tuple[WorkoutExerciseInput, ...] = ()
    id: str | None = None
    program_id: str | None = None
    workout_id: str | None = None
    duration_seconds: int | None = None

"""
Set and workout completion for xp-gains.

Turns logged sets into XP events, applies them to the game state and builds
the records the calling layer keeps (log entries, workout sessions).  Every
client event id is derived from session + exercise + set index, so
submitting the same logical set twice is detected as a duplicate by
apply_xp_event.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from .catalog.base import Exercise
from .catalog.registry import resolve_exercise
from .config import DEFAULT_XP_CONFIG, XpConfig
from .levels import LevelCurve, default_curve
from .models import (
    GameState,
    LogEntry,
    RecentSet,
    RecentSetBuffer,
    SetInput,
    SpilloverXp,
    WorkoutExercise,
    WorkoutSession,
    WorkoutSessionInput,
    WorkoutSet,
    XpEvent,
)
from .spillover import spillover_for
from .state import add_workout_session, apply_xp_events
from .utils import to_iso, utc_now
from .xp import is_skill_neglected, xp_for_set


@dataclass(frozen=True)
class SetResult:
    """Outcome of complete_set()."""

    new_state: GameState
    xp_earned: int
    spillover: tuple[SpilloverXp, ...]
    log_entry: LogEntry
    xp_events: tuple[XpEvent, ...]


@dataclass(frozen=True)
class WorkoutResult:
    """Outcome of complete_workout()."""

    new_state: GameState
    session: WorkoutSession
    xp_events: tuple[XpEvent, ...] = ()
    log_entries: tuple[LogEntry, ...] = ()


@dataclass
class _ScoredSet:
    """One set after scoring, before it is applied to state."""

    xp_earned: int
    spillover: tuple[SpilloverXp, ...]
    events: list[XpEvent] = field(default_factory=list)
    log_entry: LogEntry | None = None


def set_event_prefix(session_id: str, exercise_id: str, set_index: int) -> str:
    """Stable id of one logical set; also the LogEntry id."""
    return f"{session_id}_{exercise_id}_{set_index}"


def _score_set(
    exercise: Exercise,
    set_input: SetInput,
    *,
    skill_level: int,
    neglected: bool,
    recent_sets: Iterable[RecentSet],
    session_id: str,
    set_index: int,
    created_at: str,
    config: XpConfig,
) -> _ScoredSet:
    xp_earned = xp_for_set(
        exercise,
        set_input.reps,
        set_input.weight_kg,
        skill_level,
        recent_sets,
        is_neglected=neglected,
        config=config,
    )
    spillover = tuple(spillover_for(exercise.id, xp_earned))
    prefix = set_event_prefix(session_id, exercise.id, set_index)

    events = [
        XpEvent(
            id=str(uuid.uuid4()),
            client_event_id=f"{prefix}_primary",
            source_session_id=session_id,
            skill_id=exercise.skill_id,
            type="workout",
            amount=xp_earned,
            created_at=created_at,
            meta={
                "exerciseId": exercise.id,
                "reps": set_input.reps,
                "weightKg": set_input.weight_kg,
                "setIndex": set_index,
            },
        )
    ]
    for spill_index, spill in enumerate(spillover):
        events.append(
            XpEvent(
                id=str(uuid.uuid4()),
                client_event_id=f"{prefix}_spill_{spill_index}",
                source_session_id=session_id,
                skill_id=spill.skill_id,
                type="spillover",
                amount=spill.xp,
                created_at=created_at,
                meta={"sourceExerciseId": exercise.id, "sourceSkillId": exercise.skill_id},
            )
        )

    log_entry = LogEntry(
        id=prefix,
        timestamp=created_at,
        skill_id=exercise.skill_id,
        exercise_id=exercise.id,
        weight=set_input.weight_kg,
        reps=set_input.reps,
        xp_awarded=xp_earned,
        spillover=spillover,
        subcategory_id=exercise.subcategory_ids[0] if exercise.subcategory_ids else None,
    )
    return _ScoredSet(xp_earned=xp_earned, spillover=spillover, events=events, log_entry=log_entry)


def complete_set(
    state: GameState,
    exercise_id: str,
    set_input: SetInput,
    recent_sets: Iterable[RecentSet] = (),
    *,
    session_id: str | None = None,
    set_index: int = 0,
    now: datetime | None = None,
    config: XpConfig = DEFAULT_XP_CONFIG,
    curve: LevelCurve | None = None,
) -> SetResult:
    """
    Log one set in real time.

    Args:
        state: Current game state
        exercise_id: Standard or custom exercise id
        set_input: Reps and weight performed
        recent_sets: Lookback for diminishing returns (oldest first)
        session_id: Groups sets of one workout; a fresh id is generated if omitted
        set_index: Position of the set within the exercise
        now: Clock override

    Returns:
        SetResult with the new state and everything that was awarded

    Raises:
        UnknownExerciseError: If the exercise id is unknown; state is untouched
    """
    exercise = resolve_exercise(exercise_id, state.custom_exercises)
    curve = curve or default_curve()
    now = now or utc_now()
    session_id = session_id or f"single_{uuid.uuid4().hex}"

    scored = _score_set(
        exercise,
        set_input,
        skill_level=curve.level_from_xp(state.stats.xp_for(exercise.skill_id)),
        neglected=is_skill_neglected(
            exercise.skill_id, state.history.xp_events, now, config.neglected_days
        ),
        recent_sets=recent_sets,
        session_id=session_id,
        set_index=set_index,
        created_at=to_iso(now),
        config=config,
    )

    return SetResult(
        new_state=apply_xp_events(state, scored.events, now),
        xp_earned=scored.xp_earned,
        spillover=scored.spillover,
        log_entry=scored.log_entry,
        xp_events=tuple(scored.events),
    )


def complete_workout(
    state: GameState,
    session_input: WorkoutSessionInput,
    *,
    now: datetime | None = None,
    config: XpConfig = DEFAULT_XP_CONFIG,
    curve: LevelCurve | None = None,
) -> WorkoutResult:
    """
    Process a finished workout in one go.

    Skill levels and neglect are read from ``state`` as it was when the
    workout started.  A recent-set buffer is kept across the whole session,
    so repeated same-weight sets are throttled even across separate
    entries for the same exercise.  The reported session total includes spillover.

    Raises:
        UnknownExerciseError: If any exercise id is unknown; state is untouched
    """
    exercises = [
        resolve_exercise(entry.exercise_id, state.custom_exercises)
        for entry in session_input.exercises
    ]

    curve = curve or default_curve()
    now = now or utc_now()
    completed_at = to_iso(now)
    session_id = session_input.id or str(uuid.uuid4())

    recent = RecentSetBuffer()
    all_events: list[XpEvent] = []
    log_entries: list[LogEntry] = []
    processed: list[WorkoutExercise] = []
    total_xp = 0
    next_index: dict[str, int] = {}

    for exercise, entry in zip(exercises, session_input.exercises):
        skill_level = curve.level_from_xp(state.stats.xp_for(exercise.skill_id))
        neglected = is_skill_neglected(
            exercise.skill_id, state.history.xp_events, now, config.neglected_days
        )

        sets: list[WorkoutSet] = []
        for set_input in entry.sets:
            # indices keep counting when an exercise is listed twice
            set_index = next_index.get(exercise.id, 0)
            next_index[exercise.id] = set_index + 1
            scored = _score_set(
                exercise,
                set_input,
                skill_level=skill_level,
                neglected=neglected,
                recent_sets=recent,
                session_id=session_id,
                set_index=set_index,
                created_at=completed_at,
                config=config,
            )
            all_events.extend(scored.events)
            log_entries.append(scored.log_entry)
            recent.add(RecentSet(exercise.id, set_input.weight_kg, set_input.reps, completed_at))

            workout_set = WorkoutSet(
                reps=set_input.reps,
                weight_kg=set_input.weight_kg,
                xp_earned=scored.xp_earned,
                spillover=scored.spillover,
            )
            total_xp += workout_set.xp_earned + sum(s.xp for s in workout_set.spillover)
            sets.append(workout_set)

        processed.append(
            WorkoutExercise(exercise_id=exercise.id, skill_id=exercise.skill_id, sets=tuple(sets))
        )

    session = WorkoutSession(
        id=session_id,
        completed_at=completed_at,
        exercises=tuple(processed),
        total_xp_earned=total_xp,
        program_id=session_input.program_id,
        workout_id=session_input.workout_id,
        duration_seconds=session_input.duration_seconds,
    )

    new_state = apply_xp_events(state, all_events, now)
    new_state = add_workout_session(new_state, session, now)

    return WorkoutResult(
        new_state=new_state,
        session=session,
        xp_events=tuple(all_events),
        log_entries=tuple(log_entries),
    )


def undo_log_entry(
    state: GameState,
    log_entry: LogEntry,
    *,
    now: datetime | None = None,
) -> GameState:
    """
    Reverse the XP of one logged set.

    The original events stay in history.  Compensating "undo" events are
    appended instead, each carrying minus the XP actually removed (skill XP
    never drops below 0).  Replaying history from scratch therefore yields
    the same skill XP, and undoing the same entry twice changes nothing.
    """
    now = now or utc_now()
    created_at = to_iso(now)

    targets: list[tuple[str, str, int]] = [
        (f"{log_entry.id}_undo_primary", log_entry.skill_id, log_entry.xp_awarded)
    ]
    targets.extend(
        (f"{log_entry.id}_undo_spill_{spill.skill_id}", spill.skill_id, spill.xp)
        for spill in log_entry.spillover
    )

    # Amounts depend on the XP left after earlier subtractions, so apply one by one
    for client_event_id, skill_id, amount in targets:
        if state.history.has_event(client_event_id):
            continue
        removed = min(amount, state.stats.xp_for(skill_id))
        event = XpEvent(
            id=str(uuid.uuid4()),
            client_event_id=client_event_id,
            source_session_id=log_entry.id,
            skill_id=skill_id,
            type="undo",
            amount=-removed,
            created_at=created_at,
            meta={"undoOf": log_entry.id, "exerciseId": log_entry.exercise_id},
        )
        state = apply_xp_events(state, [event], now)

    return state

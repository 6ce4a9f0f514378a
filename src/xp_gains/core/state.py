"""
Game state transitions.

Every function here takes a GameState and returns a new one; the input is
never modified.  Any transition that changes state refreshes
meta.last_modified_at and sets meta.pending_sync.  Transitions keyed by a
stable id (XP events, sessions, custom exercises) are idempotent.
"""

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from .catalog.base import CustomExercise
from .catalog.registry import is_valid_equipment_id, skill_ids
from .config import CURRENT_SCHEMA_VERSION
from .levels import LevelCurve, default_curve
from .models import (
    Body,
    Challenge,
    EquipmentSettings,
    GameState,
    Meta,
    Profile,
    Stats,
    TrainingPlan,
    WorkoutSession,
    XpEvent,
)
from .utils import to_iso, utc_now


def initial_skill_xp() -> dict[str, int]:
    """Every skill at 0 XP."""
    return {skill_id: 0 for skill_id in skill_ids()}


def create_initial_state(
    local_user_id: str | None = None,
    now: datetime | None = None,
) -> GameState:
    """A fresh state: all skills at 0 XP, default settings, nothing pending."""
    stamp = to_iso(now or utc_now())
    return GameState(
        schema_version=CURRENT_SCHEMA_VERSION,
        profile=Profile(local_user_id=local_user_id or str(uuid.uuid4()), created_at=stamp),
        stats=Stats(skill_xp=initial_skill_xp()),
        meta=Meta(last_modified_at=stamp, pending_sync=False),
    )


def _touch(state: GameState, now: datetime | None = None) -> Meta:
    """Meta for a state-affecting change."""
    return replace(state.meta, last_modified_at=to_iso(now or utc_now()), pending_sync=True)


def apply_xp_event(
    state: GameState,
    event: XpEvent,
    now: datetime | None = None,
) -> GameState:
    """
    Apply one XP event.

    An event whose client_event_id is already in history is ignored and the
    input state is returned as-is, so replaying an event never double-counts.
    Skill XP is floored at 0.
    """
    if state.history.has_event(event.client_event_id):
        return state

    skill_xp = dict(state.stats.skill_xp)
    skill_xp[event.skill_id] = max(0, skill_xp.get(event.skill_id, 0) + event.amount)

    return replace(
        state,
        stats=replace(state.stats, skill_xp=skill_xp),
        history=replace(state.history, xp_events=state.history.xp_events + (event,)),
        meta=_touch(state, now),
    )


def apply_xp_events(
    state: GameState,
    events: Iterable[XpEvent],
    now: datetime | None = None,
) -> GameState:
    """Fold apply_xp_event over events in order."""
    for event in events:
        state = apply_xp_event(state, event, now)
    return state


def add_workout_session(
    state: GameState,
    session: WorkoutSession,
    now: datetime | None = None,
) -> GameState:
    """Append a session (no-op if its id is already recorded)."""
    if state.history.has_session(session.id):
        return state

    return replace(
        state,
        history=replace(
            state.history,
            workout_sessions=state.history.workout_sessions + (session,),
        ),
        progress=replace(state.progress, last_workout_at=session.completed_at),
        meta=_touch(state, now),
    )


def update_settings(state: GameState, now: datetime | None = None, **changes) -> GameState:
    """Update any of unit / theme / language."""
    return replace(state, settings=replace(state.settings, **changes), meta=_touch(state, now))


def toggle_favorite(state: GameState, exercise_id: str, now: datetime | None = None) -> GameState:
    favorites = dict(state.favorites)
    if favorites.get(exercise_id):
        del favorites[exercise_id]
    else:
        favorites[exercise_id] = True
    return replace(state, favorites=favorites, meta=_touch(state, now))


def add_custom_exercise(
    state: GameState,
    exercise: CustomExercise,
    now: datetime | None = None,
) -> GameState:
    """Add a custom exercise (no-op if the id already exists)."""
    if any(e.id == exercise.id for e in state.custom_exercises):
        return state
    return replace(
        state,
        custom_exercises=state.custom_exercises + (exercise,),
        meta=_touch(state, now),
    )


def remove_custom_exercise(
    state: GameState,
    exercise_id: str,
    now: datetime | None = None,
) -> GameState:
    return replace(
        state,
        custom_exercises=tuple(e for e in state.custom_exercises if e.id != exercise_id),
        meta=_touch(state, now),
    )


def add_training_plan(
    state: GameState,
    plan: TrainingPlan,
    now: datetime | None = None,
) -> GameState:
    """Add a plan; a plan with an existing id replaces the old one."""
    if any(p.id == plan.id for p in state.training_plans):
        return update_training_plan(state, plan, now)
    return replace(
        state,
        training_plans=state.training_plans + (plan,),
        meta=_touch(state, now),
    )


def update_training_plan(
    state: GameState,
    plan: TrainingPlan,
    now: datetime | None = None,
) -> GameState:
    return replace(
        state,
        training_plans=tuple(plan if p.id == plan.id else p for p in state.training_plans),
        meta=_touch(state, now),
    )


def remove_training_plan(
    state: GameState,
    plan_id: str,
    now: datetime | None = None,
) -> GameState:
    return replace(
        state,
        training_plans=tuple(p for p in state.training_plans if p.id != plan_id),
        meta=_touch(state, now),
    )


def set_challenge(
    state: GameState,
    challenge: Challenge | None,
    now: datetime | None = None,
) -> GameState:
    return replace(state, challenge=challenge, meta=_touch(state, now))


def update_equipment(
    state: GameState,
    enabled: bool,
    available: Sequence[str],
    now: datetime | None = None,
) -> GameState:
    """
    Replace the equipment filter.

    Raises:
        ValueError: If an equipment id is not in the catalog
    """
    unknown = [e for e in available if not is_valid_equipment_id(e)]
    if unknown:
        raise ValueError(f"Unknown equipment: {', '.join(unknown)}")
    return replace(
        state,
        equipment=EquipmentSettings(enabled=enabled, available=tuple(dict.fromkeys(available))),
        meta=_touch(state, now),
    )


def update_body(state: GameState, now: datetime | None = None, **changes) -> GameState:
    """Merge body metrics into the existing ones."""
    body = replace(state.body or Body(), **changes)
    return replace(state, body=body, meta=_touch(state, now))


def update_profile(state: GameState, display_name: str, now: datetime | None = None) -> GameState:
    return replace(
        state,
        profile=replace(state.profile, display_name=display_name),
        meta=_touch(state, now),
    )


def mark_synced(state: GameState, now: datetime | None = None) -> GameState:
    """Record a successful remote sync."""
    return replace(
        state,
        meta=replace(state.meta, pending_sync=False, last_sync_at=to_iso(now or utc_now())),
    )


def has_progress(state: GameState) -> bool:
    """True once any XP, session or event exists."""
    return (
        any(xp > 0 for xp in state.stats.skill_xp.values())
        or bool(state.history.workout_sessions)
        or bool(state.history.xp_events)
    )


def calibrate_skills(
    state: GameState,
    target_levels: Mapping[str, int],
    curve: LevelCurve | None = None,
    now: datetime | None = None,
) -> GameState:
    """
    Set skills to the exact XP of a target level.

    Used when migrating from another tracker.  The XP is overwritten, not
    added; targets outside 1..max_level and unknown skills are ignored.
    """
    curve = curve or default_curve()
    valid = set(skill_ids())
    skill_xp = dict(state.stats.skill_xp)
    for skill_id, level in target_levels.items():
        if skill_id in valid and 1 <= level <= curve.max_level:
            skill_xp[skill_id] = curve.xp_for_level(level)
    return replace(
        state,
        stats=replace(state.stats, skill_xp=skill_xp),
        meta=_touch(state, now),
    )


def reset_progress(state: GameState, now: datetime | None = None) -> GameState:
    """Start over, keeping the user id, settings and equipment."""
    fresh = create_initial_state(state.profile.local_user_id, now)
    return replace(fresh, settings=state.settings, equipment=state.equipment)

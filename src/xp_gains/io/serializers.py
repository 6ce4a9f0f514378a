"""
JSON serialization for game state models.

Handles conversion between the frozen dataclasses in core.models and the
camelCase JSON-compatible dicts persisted under the state key.  Optional
fields are omitted from the output when unset.
"""

import json
from typing import Any

from ..core.catalog.base import CustomExercise, WeightConfig
from ..core.config import CURRENT_SCHEMA_VERSION
from ..core.models import (
    XP_EVENT_TYPES,
    Body,
    Challenge,
    ChallengeExercise,
    ChallengeSkill,
    EquipmentSettings,
    GameState,
    History,
    LogEntry,
    Meta,
    PlanItem,
    Profile,
    Progress,
    SpilloverXp,
    Stats,
    TrainingPlan,
    UserSettings,
    WorkoutExercise,
    WorkoutSession,
    WorkoutSet,
    XpEvent,
)
from ..core.utils import parse_iso


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def validate_choice(value: Any, choices: tuple, name: str) -> Any:
    """
    Validate that a value is one of ``choices``.

    Raises:
        ValidationError: If value is not allowed
    """
    if value not in choices:
        raise ValidationError(f"Invalid {name}: {value!r}. Must be one of {choices}")
    return value


def _put(d: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        d[key] = value


# =============================================================================
# EVENTS AND SESSIONS
# =============================================================================


def spillover_to_dict(spill: SpilloverXp) -> dict[str, Any]:
    return {"skillId": spill.skill_id, "xp": spill.xp}


def dict_to_spillover(data: dict[str, Any]) -> SpilloverXp:
    validate_non_negative(data.get("xp", 0), "spillover xp")
    return SpilloverXp(skill_id=str(data["skillId"]), xp=int(data["xp"]))


def xp_event_to_dict(event: XpEvent) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": event.id,
        "clientEventId": event.client_event_id,
        "sourceSessionId": event.source_session_id,
        "skillId": event.skill_id,
        "type": event.type,
        "amount": event.amount,
        "createdAt": event.created_at,
    }
    if event.meta:
        d["meta"] = dict(event.meta)
    return d


def dict_to_xp_event(data: dict[str, Any]) -> XpEvent:
    """
    Convert dict to XpEvent.

    Raises:
        ValidationError: If data is invalid
    """
    event_type = validate_choice(data.get("type"), XP_EVENT_TYPES, "xp event type")
    amount = int(data["amount"])
    if event_type != "undo":
        validate_non_negative(amount, "amount")
    elif amount > 0:
        raise ValidationError(f"undo amount must be non-positive, got {amount}")
    created_at = data.get("createdAt")
    try:
        parse_iso(created_at)
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid xp event createdAt: {created_at!r}") from None

    return XpEvent(
        id=str(data["id"]),
        client_event_id=str(data["clientEventId"]),
        source_session_id=str(data.get("sourceSessionId", "")),
        skill_id=str(data["skillId"]),
        type=event_type,
        amount=amount,
        created_at=str(data["createdAt"]),
        meta=dict(data.get("meta") or {}),
    )


def workout_set_to_dict(workout_set: WorkoutSet) -> dict[str, Any]:
    d: dict[str, Any] = {
        "reps": workout_set.reps,
        "weightKg": workout_set.weight_kg,
        "xpEarned": workout_set.xp_earned,
    }
    if workout_set.spillover:
        d["spillover"] = [spillover_to_dict(s) for s in workout_set.spillover]
    return d


def dict_to_workout_set(data: dict[str, Any]) -> WorkoutSet:
    validate_non_negative(data.get("reps", 0), "reps")
    validate_non_negative(data.get("weightKg", 0), "weightKg")
    validate_non_negative(data.get("xpEarned", 0), "xpEarned")
    return WorkoutSet(
        reps=int(data["reps"]),
        weight_kg=float(data.get("weightKg", 0.0)),
        xp_earned=int(data.get("xpEarned", 0)),
        spillover=tuple(dict_to_spillover(s) for s in data.get("spillover") or ()),
    )


def workout_session_to_dict(session: WorkoutSession) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": session.id,
        "completedAt": session.completed_at,
        "exercises": [
            {
                "exerciseId": ex.exercise_id,
                "skillId": ex.skill_id,
                "sets": [workout_set_to_dict(s) for s in ex.sets],
            }
            for ex in session.exercises
        ],
        "totalXpEarned": session.total_xp_earned,
    }
    _put(d, "programId", session.program_id)
    _put(d, "workoutId", session.workout_id)
    _put(d, "durationSeconds", session.duration_seconds)
    return d


def dict_to_workout_session(data: dict[str, Any]) -> WorkoutSession:
    exercises = tuple(
        WorkoutExercise(
            exercise_id=str(ex["exerciseId"]),
            skill_id=str(ex["skillId"]),
            sets=tuple(dict_to_workout_set(s) for s in ex.get("sets") or ()),
        )
        for ex in data.get("exercises") or ()
    )
    duration = data.get("durationSeconds")
    return WorkoutSession(
        id=str(data["id"]),
        completed_at=str(data["completedAt"]),
        exercises=exercises,
        total_xp_earned=int(data.get("totalXpEarned", 0)),
        program_id=data.get("programId"),
        workout_id=data.get("workoutId"),
        duration_seconds=int(duration) if duration is not None else None,
    )


# =============================================================================
# PLANS, CHALLENGES, CUSTOM EXERCISES
# =============================================================================


def training_plan_to_dict(plan: TrainingPlan) -> dict[str, Any]:
    items = []
    for item in plan.items:
        d: dict[str, Any] = {"skillId": item.skill_id, "exerciseId": item.exercise_id}
        _put(d, "targetSets", item.target_sets)
        _put(d, "targetReps", item.target_reps)
        _put(d, "targetWeightKg", item.target_weight_kg)
        items.append(d)
    return {
        "id": plan.id,
        "name": plan.name,
        "items": items,
        "createdAt": plan.created_at,
        "updatedAt": plan.updated_at,
    }


def dict_to_training_plan(data: dict[str, Any]) -> TrainingPlan:
    items = tuple(
        PlanItem(
            skill_id=str(item["skillId"]),
            exercise_id=str(item["exerciseId"]),
            target_sets=item.get("targetSets"),
            target_reps=item.get("targetReps"),
            target_weight_kg=item.get("targetWeightKg"),
        )
        for item in data.get("items") or ()
    )
    return TrainingPlan(
        id=str(data["id"]),
        name=str(data.get("name", "")),
        created_at=str(data.get("createdAt", "")),
        updated_at=str(data.get("updatedAt", "")),
        items=items,
    )


def challenge_to_dict(challenge: Challenge) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": challenge.id,
        "type": challenge.type,
        "focus": challenge.focus,
        "skills": [
            {
                "skillId": skill.skill_id,
                "exercises": [
                    {
                        "exerciseId": ex.exercise_id,
                        "targetSets": ex.target_sets,
                        "completedSets": ex.completed_sets,
                    }
                    for ex in skill.exercises
                ],
            }
            for skill in challenge.skills
        ],
        "startedAt": challenge.started_at,
        "completed": challenge.completed,
    }
    _put(d, "completedAt", challenge.completed_at)
    return d


def dict_to_challenge(data: dict[str, Any]) -> Challenge:
    validate_choice(data.get("type"), ("short", "regular", "ironman"), "challenge type")
    validate_choice(data.get("focus", "full"), ("full", "upper", "lower"), "challenge focus")
    skills = tuple(
        ChallengeSkill(
            skill_id=str(skill["skillId"]),
            exercises=tuple(
                ChallengeExercise(
                    exercise_id=str(ex["exerciseId"]),
                    target_sets=int(ex["targetSets"]),
                    completed_sets=int(ex.get("completedSets", 0)),
                )
                for ex in skill.get("exercises") or ()
            ),
        )
        for skill in data.get("skills") or ()
    )
    return Challenge(
        id=str(data["id"]),
        type=data["type"],
        focus=data.get("focus", "full"),
        started_at=str(data.get("startedAt", "")),
        skills=skills,
        completed=bool(data.get("completed", False)),
        completed_at=data.get("completedAt"),
    )


def custom_exercise_to_dict(exercise: CustomExercise) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": exercise.id,
        "name": exercise.name,
        "skillId": exercise.skill_id,
        "type": exercise.type,
        "weight": {
            "min": exercise.weight.min,
            "max": exercise.weight.max,
            "step": exercise.weight.step,
            "default": exercise.weight.default,
        },
        "referenceWeight": exercise.reference_weight,
        "xpMode": exercise.xp_mode,
        "isCustom": True,
    }
    _put(d, "customXpPerSet", exercise.custom_xp_per_set)
    if exercise.subcategory_ids:
        d["subcategoryIds"] = list(exercise.subcategory_ids)
    if exercise.required_equipment:
        d["requiredEquipment"] = list(exercise.required_equipment)
    return d


def dict_to_custom_exercise(data: dict[str, Any]) -> CustomExercise:
    """
    Convert dict to CustomExercise.

    Raises:
        ValidationError: If data is invalid
    """
    validate_choice(data.get("type"), ("compound", "isolation", "bodyweight"), "exercise type")
    weight = data.get("weight") or {}
    custom_xp = data.get("customXpPerSet")
    try:
        return CustomExercise(
            id=str(data["id"]),
            skill_id=str(data["skillId"]),
            name=str(data.get("name", data["id"])),
            type=data["type"],
            weight=WeightConfig(
                min=float(weight.get("min", 0)),
                max=float(weight.get("max", 0)),
                step=float(weight.get("step", 1)),
                default=float(weight.get("default", 0)),
            ),
            reference_weight=float(data.get("referenceWeight", 0)),
            subcategory_ids=tuple(data.get("subcategoryIds") or ()),
            required_equipment=tuple(data.get("requiredEquipment") or ()),
            xp_mode=data.get("xpMode", "standard"),
            custom_xp_per_set=int(custom_xp) if custom_xp is not None else None,
        )
    except ValueError as e:
        raise ValidationError(f"Invalid custom exercise {data.get('id')!r}: {e}") from e


# =============================================================================
# GAME STATE
# =============================================================================


def body_to_dict(body: Body) -> dict[str, Any]:
    d: dict[str, Any] = {}
    _put(d, "heightCm", body.height_cm)
    _put(d, "weightKg", body.weight_kg)
    _put(d, "bodyFatPercent", body.body_fat_percent)
    _put(d, "age", body.age)
    _put(d, "sex", body.sex)
    return d


def dict_to_body(data: dict[str, Any]) -> Body:
    try:
        return Body(
            height_cm=data.get("heightCm"),
            weight_kg=data.get("weightKg"),
            body_fat_percent=data.get("bodyFatPercent"),
            age=data.get("age"),
            sex=data.get("sex"),
        )
    except ValueError as e:
        raise ValidationError(f"Invalid body metrics: {e}") from e


def game_state_to_dict(state: GameState) -> dict[str, Any]:
    """
    Convert GameState to the persisted camelCase dict.

    Args:
        state: GameState to convert

    Returns:
        Dict representation
    """
    profile: dict[str, Any] = {
        "localUserId": state.profile.local_user_id,
        "createdAt": state.profile.created_at,
    }
    _put(profile, "displayName", state.profile.display_name)

    progress: dict[str, Any] = {"streakCount": state.progress.streak_count}
    _put(progress, "activeProgramId", state.progress.active_program_id)
    _put(progress, "currentDay", state.progress.current_day)
    _put(progress, "lastWorkoutAt", state.progress.last_workout_at)

    meta: dict[str, Any] = {
        "lastModifiedAt": state.meta.last_modified_at,
        "pendingSync": state.meta.pending_sync,
    }
    _put(meta, "lastSyncAt", state.meta.last_sync_at)

    d: dict[str, Any] = {
        "schemaVersion": state.schema_version,
        "profile": profile,
        "stats": {"skillXp": dict(state.stats.skill_xp)},
        "progress": progress,
        "history": {
            "workoutSessions": [workout_session_to_dict(s) for s in state.history.workout_sessions],
            "xpEvents": [xp_event_to_dict(e) for e in state.history.xp_events],
        },
        "settings": {
            "unit": state.settings.unit,
            "theme": state.settings.theme,
            "language": state.settings.language,
        },
        "favorites": dict(state.favorites),
        "customExercises": [custom_exercise_to_dict(e) for e in state.custom_exercises],
        "trainingPlans": [training_plan_to_dict(p) for p in state.training_plans],
        "equipment": {
            "enabled": state.equipment.enabled,
            "available": list(state.equipment.available),
        },
        "challenge": challenge_to_dict(state.challenge) if state.challenge else None,
        "meta": meta,
    }
    if state.body is not None:
        d["body"] = body_to_dict(state.body)
    return d


def dict_to_game_state(data: dict[str, Any]) -> GameState:
    """
    Convert a fully-populated dict to GameState.

    Callers loading untrusted records should go through
    migrations.validate_and_normalize, which fills defaults first.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        profile = data["profile"]
        stats = data.get("stats") or {}
        progress = data.get("progress") or {}
        history = data.get("history") or {}
        settings = data.get("settings") or {}
        equipment = data.get("equipment") or {}
        meta = data.get("meta") or {}

        skill_xp = {}
        for skill_id, xp in (stats.get("skillXp") or {}).items():
            skill_xp[str(skill_id)] = int(validate_non_negative(xp, f"skillXp[{skill_id}]"))

        return GameState(
            schema_version=int(data.get("schemaVersion", CURRENT_SCHEMA_VERSION)),
            profile=Profile(
                local_user_id=str(profile["localUserId"]),
                created_at=str(profile["createdAt"]),
                display_name=profile.get("displayName"),
            ),
            body=dict_to_body(data["body"]) if data.get("body") else None,
            stats=Stats(skill_xp=skill_xp),
            progress=Progress(
                active_program_id=progress.get("activeProgramId"),
                current_day=progress.get("currentDay"),
                streak_count=int(progress.get("streakCount") or 0),
                last_workout_at=progress.get("lastWorkoutAt"),
            ),
            history=History(
                workout_sessions=tuple(
                    dict_to_workout_session(s) for s in history.get("workoutSessions") or ()
                ),
                xp_events=tuple(dict_to_xp_event(e) for e in history.get("xpEvents") or ()),
            ),
            settings=UserSettings(
                unit=settings.get("unit", "kg"),
                theme=settings.get("theme", "classic"),
                language=settings.get("language", "en"),
            ),
            favorites={str(k): bool(v) for k, v in (data.get("favorites") or {}).items() if v},
            custom_exercises=tuple(
                dict_to_custom_exercise(e) for e in data.get("customExercises") or ()
            ),
            training_plans=tuple(
                dict_to_training_plan(p) for p in data.get("trainingPlans") or ()
            ),
            equipment=EquipmentSettings(
                enabled=bool(equipment.get("enabled", False)),
                available=tuple(equipment.get("available") or ()),
            ),
            challenge=dict_to_challenge(data["challenge"]) if data.get("challenge") else None,
            meta=Meta(
                last_modified_at=str(meta["lastModifiedAt"]),
                pending_sync=bool(meta.get("pendingSync", False)),
                last_sync_at=meta.get("lastSyncAt"),
            ),
        )
    except ValidationError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Invalid game state: {e!r}") from e


def state_to_json(state: GameState, indent: int | None = None) -> str:
    """
    Serialize GameState to a JSON string.

    Args:
        state: GameState to serialize
        indent: Pretty-print indent (None for a compact single line)
    """
    separators = None if indent else (",", ":")
    return json.dumps(game_state_to_dict(state), indent=indent, separators=separators)


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse a JSON document that must be an object.

    Raises:
        ValidationError: If JSON is invalid or not an object
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Expected a JSON object, got {type(data).__name__}")
    return data


# =============================================================================
# LOG ENTRIES (owned by the calling layer)
# =============================================================================


def log_entry_to_dict(entry: LogEntry) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": entry.id,
        "timestamp": entry.timestamp,
        "skillId": entry.skill_id,
        "exerciseId": entry.exercise_id,
        "weight": entry.weight,
        "reps": entry.reps,
        "xpAwarded": entry.xp_awarded,
    }
    if entry.spillover:
        d["spillover"] = [spillover_to_dict(s) for s in entry.spillover]
    _put(d, "subcategoryId", entry.subcategory_id)
    return d


def dict_to_log_entry(data: dict[str, Any]) -> LogEntry:
    """
    Convert dict to LogEntry.

    Raises:
        ValidationError: If data is invalid
    """
    validate_non_negative(data.get("reps", 0), "reps")
    validate_non_negative(data.get("weight", 0), "weight")
    validate_non_negative(data.get("xpAwarded", 0), "xpAwarded")
    try:
        return LogEntry(
            id=str(data["id"]),
            timestamp=str(data.get("timestamp", "")),
            skill_id=str(data["skillId"]),
            exercise_id=str(data["exerciseId"]),
            weight=float(data.get("weight", 0.0)),
            reps=int(data.get("reps", 0)),
            xp_awarded=int(data.get("xpAwarded", 0)),
            spillover=tuple(dict_to_spillover(s) for s in data.get("spillover") or ()),
            subcategory_id=data.get("subcategoryId"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid log entry: {e!r}") from e

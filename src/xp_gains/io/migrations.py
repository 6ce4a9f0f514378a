"""
Schema migrations for persisted game state.

A persisted record is classified as one of two shapes:

    LegacyRecord   no numeric schemaVersion, flat skillXp / skill_xp keys (v0)
    CurrentRecord  carries a numeric schemaVersion

Migrations are registered by the version they upgrade FROM and must return
a record tagged with the next version.  When a step is missing the record is
abandoned and a fresh state is returned; the loss is logged, never silent.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from loguru import logger

from ..core.catalog.registry import skill_ids
from ..core.config import CURRENT_SCHEMA_VERSION
from ..core.models import GameState
from ..core.state import create_initial_state, initial_skill_xp
from ..core.utils import parse_iso, to_iso, utc_now
from .serializers import ValidationError, dict_to_game_state

Migration = Callable[[dict[str, Any]], dict[str, Any]]


class MigrationGapError(Exception):
    """No migration is registered for an intermediate schema version."""

    def __init__(self, version: int):
        super().__init__(f"No migration registered for schema version {version}")
        self.version = version


# =============================================================================
# RECORD SHAPES
# =============================================================================


def _has_numeric_version(record: Mapping[str, Any]) -> bool:
    version = record.get("schemaVersion")
    return isinstance(version, int) and not isinstance(version, bool)


@dataclass(frozen=True)
class LegacyRecord:
    """Flat record written before schema versioning (v0)."""

    raw: Mapping[str, Any]

    @staticmethod
    def matches(record: Mapping[str, Any]) -> bool:
        return not _has_numeric_version(record) and (
            "skillXp" in record or "skill_xp" in record
        )


@dataclass(frozen=True)
class CurrentRecord:
    """Record that carries its own schemaVersion."""

    raw: Mapping[str, Any]
    version: int

    @staticmethod
    def matches(record: Mapping[str, Any]) -> bool:
        return _has_numeric_version(record)


def classify_record(record: Mapping[str, Any]) -> LegacyRecord | CurrentRecord:
    """
    Tag a raw record with its shape.

    A record with neither a version nor legacy keys is assumed current.
    """
    if CurrentRecord.matches(record):
        return CurrentRecord(raw=record, version=int(record["schemaVersion"]))
    if LegacyRecord.matches(record):
        return LegacyRecord(raw=record)
    return CurrentRecord(raw=record, version=CURRENT_SCHEMA_VERSION)


def detect_schema_version(record: Mapping[str, Any]) -> int:
    shape = classify_record(record)
    if isinstance(shape, LegacyRecord):
        return 0
    return shape.version


def needs_migration(record: Mapping[str, Any]) -> bool:
    """True unless the record carries a numeric schemaVersion >= current."""
    if not _has_numeric_version(record):
        return True
    return record["schemaVersion"] < CURRENT_SCHEMA_VERSION


# =============================================================================
# v0 -> v1
# =============================================================================


def _first(record: Mapping[str, Any], *keys: str, kind: type = object) -> Any:
    """Value of the first key present with the expected type, else None."""
    for key in keys:
        value = record.get(key)
        if value is not None and isinstance(value, kind):
            return value
    return None


def _legacy_timestamp(value: Any, fallback: str) -> str:
    """Legacy timestamps are epoch milliseconds; later ones ISO strings."""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        try:
            return to_iso(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return fallback
    if isinstance(value, str) and value:
        try:
            return to_iso(parse_iso(value))
        except ValueError:
            return fallback
    return fallback


def legacy_log_entries_to_events(entries: Any, now: str) -> list[dict[str, Any]]:
    """
    One workout event per legacy log entry, plus one spillover event per
    spillover line.  Entries without a skill or a numeric XP are skipped.
    """
    if not isinstance(entries, list):
        return []

    events: list[dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        skill_id = entry.get("skillId") or entry.get("skill_id")
        xp = entry.get("xpAwarded", entry.get("xp_awarded"))
        if not skill_id or not isinstance(xp, (int, float)) or isinstance(xp, bool):
            continue

        entry_id = str(entry.get("id") or uuid.uuid4())
        created_at = _legacy_timestamp(entry.get("timestamp"), now)
        events.append(
            {
                "id": entry_id,
                "clientEventId": f"legacy_{entry_id}",
                "sourceSessionId": "legacy_import",
                "skillId": skill_id,
                "type": "workout",
                "amount": max(0, int(xp)),
                "createdAt": created_at,
                "meta": {
                    "exerciseId": entry.get("exerciseId") or entry.get("exercise_id"),
                    "reps": entry.get("reps"),
                    "weightKg": entry.get("weight"),
                },
            }
        )
        spillover = entry.get("spillover")
        for spill in spillover if isinstance(spillover, list) else ():
            if not isinstance(spill, dict) or not spill.get("skillId"):
                continue
            spill_xp = spill.get("xp") or 0
            if not isinstance(spill_xp, (int, float)) or isinstance(spill_xp, bool):
                continue
            events.append(
                {
                    "id": str(uuid.uuid4()),
                    "clientEventId": f"legacy_{entry_id}_spill_{spill['skillId']}",
                    "sourceSessionId": "legacy_import",
                    "skillId": spill["skillId"],
                    "type": "spillover",
                    "amount": max(0, int(spill_xp)),
                    "createdAt": created_at,
                }
            )
    return events


def _legacy_custom_exercise(raw: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": raw.get("id") or f"custom_{uuid.uuid4().hex[:8]}",
        "name": raw.get("name") or "Custom Exercise",
        "skillId": raw.get("skillId") or raw.get("muscleId") or "chest",
        "type": raw.get("type") or "isolation",
        "weight": raw.get("weight") or {"min": 0, "max": 100, "step": 2.5, "default": 20},
        "referenceWeight": raw.get("referenceWeight") or 0,
        "xpMode": raw.get("xpMode") or "standard",
        "customXpPerSet": raw.get("customXpPerSet"),
        "isCustom": True,
    }


def _legacy_training_plan(raw: Mapping[str, Any], now: str) -> dict[str, Any]:
    return {
        "id": raw.get("id") or str(uuid.uuid4()),
        "name": raw.get("name") or "Unnamed Plan",
        "items": raw.get("items") if isinstance(raw.get("items"), list) else [],
        "createdAt": raw.get("createdAt") or now,
        "updatedAt": raw.get("updatedAt") or now,
    }


def migrate_v0_to_v1(record: dict[str, Any]) -> dict[str, Any]:
    """
    Rebuild a structured v1 record from the flat legacy keys.

    Both camelCase and snake_case legacy spellings are accepted.  The result
    is flagged pendingSync so it is written back in the new shape.
    """
    now = to_iso(utc_now())

    legacy_xp = _first(record, "skillXp", "skill_xp", kind=dict) or {}
    skill_xp = initial_skill_xp()
    for skill_id in skill_ids():
        value = legacy_xp.get(skill_id)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            skill_xp[skill_id] = max(0, int(value))

    settings = _first(record, "settings", kind=dict) or {}
    custom = _first(record, "customExercises", "custom_exercises", kind=list) or []
    plans = _first(record, "trainingPlans", "training_plans", kind=list) or []
    equipment_mode = _first(record, "equipmentMode", "equipment_mode")
    equipment = record.get("equipment")

    return {
        "schemaVersion": 1,
        "profile": {
            "localUserId": record.get("localUserId") or str(uuid.uuid4()),
            "displayName": record.get("displayName"),
            "createdAt": record.get("createdAt") or now,
        },
        "stats": {"skillXp": skill_xp},
        "progress": {"streakCount": 0, "lastWorkoutAt": record.get("lastWorkoutAt")},
        "history": {
            "workoutSessions": [],
            "xpEvents": legacy_log_entries_to_events(
                _first(record, "logEntries", "log_entries", kind=list), now
            ),
        },
        "settings": {
            "unit": settings.get("unit") or "kg",
            "theme": settings.get("theme") or "classic",
            "language": settings.get("lang") or record.get("lang") or settings.get("language") or "en",
        },
        "favorites": _first(record, "favorites", kind=dict) or {},
        "customExercises": [_legacy_custom_exercise(e) for e in custom if isinstance(e, dict)],
        "trainingPlans": [_legacy_training_plan(p, now) for p in plans if isinstance(p, dict)],
        "equipment": {
            "enabled": equipment_mode in ("1", 1, True),
            "available": list(equipment) if isinstance(equipment, list) else [],
        },
        "meta": {"lastModifiedAt": now, "pendingSync": True},
    }


MIGRATIONS: dict[int, Migration] = {
    0: migrate_v0_to_v1,
}


# =============================================================================
# DRIVER
# =============================================================================


def _section(record: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = record.get(key)
    return value if isinstance(value, dict) else {}


def validate_and_normalize(record: Mapping[str, Any]) -> GameState:
    """
    Default every field of a current-shape record and build the GameState.

    Skills missing from skillXp are filled with 0 and negative values are
    raised to 0, so the reducer never needs to check the state's shape.

    Raises:
        ValidationError: If a present field has an invalid value
    """
    now = to_iso(utc_now())
    profile = _section(record, "profile")
    stats = _section(record, "stats")
    progress = _section(record, "progress")
    history = _section(record, "history")
    settings = _section(record, "settings")
    equipment = _section(record, "equipment")
    meta = _section(record, "meta")

    skill_xp = initial_skill_xp()
    for skill_id, value in _section(stats, "skillXp").items():
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            skill_xp[skill_id] = max(0, int(value))

    normalized = {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "profile": {
            "localUserId": profile.get("localUserId") or str(uuid.uuid4()),
            "displayName": profile.get("displayName"),
            "createdAt": profile.get("createdAt") or now,
        },
        "body": record.get("body") if isinstance(record.get("body"), dict) else None,
        "stats": {"skillXp": skill_xp},
        "progress": {
            "activeProgramId": progress.get("activeProgramId"),
            "currentDay": progress.get("currentDay"),
            "streakCount": progress.get("streakCount") or 0,
            "lastWorkoutAt": progress.get("lastWorkoutAt"),
        },
        "history": {
            "workoutSessions": history.get("workoutSessions") or [],
            "xpEvents": history.get("xpEvents") or [],
        },
        "settings": {
            "unit": settings.get("unit") or "kg",
            "theme": settings.get("theme") or "classic",
            "language": settings.get("language") or "en",
        },
        "favorites": _section(record, "favorites"),
        "customExercises": record.get("customExercises") or [],
        "trainingPlans": record.get("trainingPlans") or [],
        "equipment": {
            "enabled": bool(equipment.get("enabled", False)),
            "available": equipment.get("available") or [],
        },
        "challenge": record.get("challenge") or None,
        "meta": {
            "lastModifiedAt": meta.get("lastModifiedAt") or now,
            "lastSyncAt": meta.get("lastSyncAt"),
            "pendingSync": bool(meta.get("pendingSync", False)),
        },
    }
    return dict_to_game_state(normalized)


def run_migrations(
    record: dict[str, Any],
    migrations: Mapping[int, Migration] | None = None,
) -> dict[str, Any]:
    """
    Apply registered migrations until the record is current.

    Raises:
        MigrationGapError: If a step is missing or does not advance the version
        ValidationError: If a step cannot read the record
    """
    migrations = MIGRATIONS if migrations is None else migrations
    version = detect_schema_version(record)

    while version < CURRENT_SCHEMA_VERSION:
        migration = migrations.get(version)
        if migration is None:
            raise MigrationGapError(version)
        try:
            record = migration(record)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ValidationError(f"Cannot migrate state from schema v{version}: {exc!r}") from exc
        next_version = detect_schema_version(record)
        if next_version != version + 1:
            raise MigrationGapError(version)
        logger.info(f"Migrated state from schema v{version} to v{next_version}")
        version = next_version

    return record


def migrate_state(
    record: dict[str, Any],
    migrations: Mapping[int, Migration] | None = None,
) -> GameState:
    """
    Bring any persisted record up to the current schema.

    A missing migration step yields a fresh initial state (logged as a
    warning); MigrationGapError never reaches the caller.

    Raises:
        ValidationError: If the migrated record has invalid field values
    """
    version = detect_schema_version(record)
    if version > CURRENT_SCHEMA_VERSION:
        logger.warning(
            f"State schema v{version} is newer than supported v{CURRENT_SCHEMA_VERSION}; "
            "reading it as current"
        )

    try:
        record = run_migrations(record, migrations)
    except MigrationGapError as exc:
        logger.warning(f"{exc}; starting from a fresh state")
        return create_initial_state()

    return validate_and_normalize(record)

"""
YAML -> Catalog loader.

Loads the static catalog from the bundled ``src/xp_gains/catalog.yaml``.

User overrides: place a ``catalog.yaml`` in ``~/.xp-gains/`` (or in the
directory named by ``$XP_GAINS_HOME``).  The user file is deep-merged over
the bundled one, so only changed keys need to be listed.  A user exercise
whose id does not exist in the bundled file is added to the catalog.

Usage (internal, called by registry.py):
    from .loader import load_catalog
    catalog = load_catalog()
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

import yaml

from .base import Catalog, EquipmentType, Exercise, Skill, Subcategory, WeightConfig

_REQUIRED_EXERCISE_FIELDS: frozenset[str] = frozenset(
    {
        "skill_id",
        "name",
        "type",
        "weight",
        "reference_weight",
    }
)

_REQUIRED_SECTIONS: tuple[str, ...] = ("skills", "equipment", "exercises")


def weight_config_from_value(value: object) -> WeightConfig:
    """
    Convert a weight spec to WeightConfig.

    Accepts either the compact ``[min, max, step, default]`` list form or a
    mapping with the same keys.

    Raises:
        ValueError: If the value has the wrong shape
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 4:
            raise ValueError(f"weight list must have 4 items, got {len(value)}")
        low, high, step, default = value
        return WeightConfig(float(low), float(high), float(step), float(default))
    if isinstance(value, dict):
        missing = {"min", "max", "step", "default"} - set(value)
        if missing:
            raise ValueError(f"weight missing fields: {sorted(missing)}")
        return WeightConfig(
            min=float(value["min"]),
            max=float(value["max"]),
            step=float(value["step"]),
            default=float(value["default"]),
        )
    raise ValueError(f"weight must be a list or mapping, got {type(value).__name__}")


def exercise_from_dict(exercise_id: str, d: dict) -> Exercise:
    """Convert a raw dict (from YAML) to an Exercise.

    Raises ValueError if any required field is absent.
    """
    missing = _REQUIRED_EXERCISE_FIELDS - set(d)
    if missing:
        raise ValueError(f"Exercise missing fields: {sorted(missing)}")

    ex_type = str(d["type"])
    if ex_type not in ("compound", "isolation"):
        raise ValueError(f"Exercise type must be compound or isolation, got {ex_type!r}")

    return Exercise(
        id=exercise_id,
        skill_id=str(d["skill_id"]),
        name=str(d["name"]),
        type=ex_type,
        weight=weight_config_from_value(d["weight"]),
        reference_weight=float(d["reference_weight"]),
        subcategory_ids=tuple(str(s) for s in d.get("subcategory_ids") or ()),
        required_equipment=tuple(str(e) for e in d.get("required_equipment") or ()),
    )


def _spillover_from_dict(raw: dict, skill_ids: set[str]) -> dict[str, dict[str, float]]:
    """Validate the spillover table: known skills, fractions in (0, 1]."""
    table: dict[str, dict[str, float]] = {}
    for exercise_id, mapping in raw.items():
        if not isinstance(mapping, dict):
            raise ValueError(f"spillover[{exercise_id!r}] must be a mapping")
        entries: dict[str, float] = {}
        for skill_id, fraction in mapping.items():
            if skill_id not in skill_ids:
                raise ValueError(f"spillover[{exercise_id!r}] names unknown skill {skill_id!r}")
            fraction = float(fraction)
            if not 0.0 < fraction <= 1.0:
                raise ValueError(
                    f"spillover[{exercise_id!r}][{skill_id!r}] must be in (0, 1], got {fraction}"
                )
            entries[skill_id] = fraction
        table[str(exercise_id)] = entries
    return table


def catalog_from_dict(data: dict) -> Catalog:
    """
    Build a Catalog from the merged YAML document.

    Individual exercises that fail validation are skipped with a warning;
    a missing top-level section raises ValueError.
    """
    missing = [s for s in _REQUIRED_SECTIONS if not data.get(s)]
    if missing:
        raise ValueError(f"catalog missing sections: {missing}")

    skills = tuple(
        Skill(id=str(s["id"]), name=str(s["name"]), body_region=s["body_region"])
        for s in data["skills"]
    )
    skill_ids = {s.id for s in skills}
    equipment = tuple(
        EquipmentType(id=str(e["id"]), name=str(e["name"])) for e in data["equipment"]
    )
    subcategories = tuple(
        Subcategory(id=str(s["id"]), skill_id=str(s["skill_id"]), name=str(s["name"]))
        for s in data.get("subcategories") or ()
    )

    exercises: dict[str, Exercise] = {}
    for exercise_id, raw in data["exercises"].items():
        try:
            ex = exercise_from_dict(str(exercise_id), raw or {})
            if ex.skill_id not in skill_ids:
                raise ValueError(f"unknown skill {ex.skill_id!r}")
        except ValueError as exc:
            warnings.warn(
                f"xp-gains: skipping exercise '{exercise_id}' ({exc})",
                stacklevel=2,
            )
            continue
        exercises[ex.id] = ex

    spillover = _spillover_from_dict(data.get("spillover") or {}, skill_ids)

    return Catalog(
        skills=skills,
        equipment=equipment,
        subcategories=subcategories,
        exercises=exercises,
        spillover=spillover,
        xp_overrides=dict(data.get("xp_config") or {}),
    )


def _load_yaml_file(path: Path) -> dict:
    """Load a YAML file; return {} when the document is not a mapping."""
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def get_bundled_catalog_path() -> Path:
    """Return the path of the catalog.yaml shipped with the package."""
    # loader.py lives at src/xp_gains/core/catalog/loader.py
    return Path(__file__).parent.parent.parent / "catalog.yaml"


def get_user_home() -> Path:
    """Return the per-user data directory (``$XP_GAINS_HOME`` or ~/.xp-gains)."""
    override = os.environ.get("XP_GAINS_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".xp-gains"


def get_user_catalog_path() -> Path | None:
    """Return the user's catalog.yaml override if it exists, else None."""
    p = get_user_home() / "catalog.yaml"
    return p if p.is_file() else None


def load_catalog(
    bundled_path: Path | None = None,
    user_path: Path | None = None,
) -> Catalog:
    """
    Load and merge the catalog from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/xp_gains/catalog.yaml
    2. User override (``user_path`` or the default location)

    A user override that cannot be parsed is ignored with a warning.

    Raises:
        RuntimeError: If the bundled catalog is missing or invalid
    """
    bundled_path = bundled_path or get_bundled_catalog_path()
    try:
        data = _load_yaml_file(bundled_path)
    except (OSError, yaml.YAMLError) as exc:
        raise RuntimeError(f"xp-gains: cannot read bundled catalog {bundled_path}: {exc}") from exc

    user_path = user_path or get_user_catalog_path()
    if user_path is not None:
        try:
            user_data = _load_yaml_file(user_path)
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(
                f"xp-gains: ignoring user catalog {user_path} ({exc})",
                stacklevel=2,
            )
        else:
            data = _deep_merge(data, user_data)

    try:
        return catalog_from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise RuntimeError(f"xp-gains: invalid catalog ({exc})") from exc

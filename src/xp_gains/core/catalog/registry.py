"""
Catalog registry.

The catalog is loaded once from YAML (see loader.py) and cached.  Use the
lookup helpers below rather than touching the Catalog directly.  If loading
fails a RuntimeError is raised: the engine cannot run without skill and
exercise definitions.
"""

import random
from functools import lru_cache
from typing import Iterable, Sequence

from ..config import XpConfig, xp_config_from_dict
from .base import Catalog, CustomExercise, Exercise, Skill, Subcategory
from .loader import load_catalog


class UnknownExerciseError(ValueError):
    """Raised when an exercise id is in neither the catalog nor the custom list."""

    def __init__(self, exercise_id: str):
        super().__init__(f"Unknown exercise '{exercise_id}'")
        self.exercise_id = exercise_id


@lru_cache(maxsize=1)
def get_catalog() -> Catalog:
    """Return the process-wide catalog, loading it on first use."""
    return load_catalog()


@lru_cache(maxsize=1)
def load_xp_config() -> XpConfig:
    """XpConfig with the catalog's optional ``xp_config`` section applied."""
    return xp_config_from_dict(get_catalog().xp_overrides)


def skill_ids() -> tuple[str, ...]:
    return get_catalog().skill_ids


def get_skill(skill_id: str) -> Skill | None:
    for skill in get_catalog().skills:
        if skill.id == skill_id:
            return skill
    return None


def is_valid_skill_id(skill_id: str) -> bool:
    return skill_id in get_catalog().skill_ids


def get_skills_by_region(region: str) -> list[Skill]:
    return [s for s in get_catalog().skills if s.body_region == region]


def is_valid_equipment_id(equipment_id: str) -> bool:
    return equipment_id in get_catalog().equipment_ids


def get_subcategories_by_skill(skill_id: str) -> list[Subcategory]:
    return [sc for sc in get_catalog().subcategories if sc.skill_id == skill_id]


def find_exercise(exercise_id: str) -> Exercise | None:
    """Return the catalog Exercise for exercise_id, or None."""
    return get_catalog().exercises.get(exercise_id)


def get_exercise(exercise_id: str) -> Exercise:
    """
    Return the catalog Exercise for the given exercise_id.

    Raises:
        UnknownExerciseError: If exercise_id is not in the catalog
    """
    exercise = find_exercise(exercise_id)
    if exercise is None:
        raise UnknownExerciseError(exercise_id)
    return exercise


def resolve_exercise(
    exercise_id: str,
    custom_exercises: Iterable[CustomExercise] = (),
) -> Exercise:
    """
    Look an exercise up in the combined catalog (standard + custom).

    Standard exercises win on an id clash.

    Raises:
        UnknownExerciseError: If the id is in neither
    """
    exercise = find_exercise(exercise_id)
    if exercise is not None:
        return exercise
    for custom in custom_exercises:
        if custom.id == exercise_id:
            return custom
    raise UnknownExerciseError(exercise_id)


def get_exercises_by_skill(skill_id: str) -> list[Exercise]:
    return [e for e in get_catalog().exercises.values() if e.skill_id == skill_id]


def get_exercises_by_subcategory(subcategory_id: str) -> list[Exercise]:
    return [e for e in get_catalog().exercises.values() if subcategory_id in e.subcategory_ids]


def filter_exercises_by_equipment(
    exercises: Sequence[Exercise],
    available: Sequence[str],
) -> list[Exercise]:
    """
    Keep exercises the user can perform with the available equipment.

    An exercise qualifies if the user owns ANY of its listed equipment
    options.  An empty ``available`` list disables filtering.
    """
    if not available:
        return list(exercises)
    owned = set(available)
    return [
        e for e in exercises
        if not e.required_equipment or owned.intersection(e.required_equipment)
    ]


def random_skills(
    count: int,
    region: str | None = None,
    rng: random.Random | None = None,
) -> list[Skill]:
    """Pick up to ``count`` distinct skills, optionally limited to one body region."""
    rng = rng or random.Random()
    pool = get_skills_by_region(region) if region else list(get_catalog().skills)
    return rng.sample(pool, min(count, len(pool)))


def random_exercises(
    skill_id: str,
    count: int,
    rng: random.Random | None = None,
) -> list[Exercise]:
    """Pick up to ``count`` distinct exercises that train ``skill_id``."""
    rng = rng or random.Random()
    pool = get_exercises_by_skill(skill_id)
    return rng.sample(pool, min(count, len(pool)))

"""
Static catalog for xp-gains.

Skills, equipment, exercises and the spillover table are described in
catalog.yaml and exposed through the registry helpers.
"""

from .base import Catalog, CustomExercise, EquipmentType, Exercise, Skill, Subcategory, WeightConfig
from .registry import (
    UnknownExerciseError,
    get_catalog,
    get_exercise,
    load_xp_config,
    resolve_exercise,
    skill_ids,
)

__all__ = [
    "Catalog",
    "CustomExercise",
    "EquipmentType",
    "Exercise",
    "Skill",
    "Subcategory",
    "WeightConfig",
    "UnknownExerciseError",
    "get_catalog",
    "get_exercise",
    "load_xp_config",
    "resolve_exercise",
    "skill_ids",
]

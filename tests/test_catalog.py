"""Catalog loading, user overrides and registry lookups."""

import pytest

from xp_gains.core.catalog.base import CustomExercise, WeightConfig
from xp_gains.core.catalog.loader import load_catalog, weight_config_from_value
from xp_gains.core.catalog.registry import (
    UnknownExerciseError,
    filter_exercises_by_equipment,
    get_catalog,
    get_exercise,
    get_exercises_by_skill,
    get_skills_by_region,
    get_subcategories_by_skill,
    resolve_exercise,
)
from xp_gains.core.config import xp_config_from_dict


class TestBundledCatalog:

    def test_fourteen_skills(self):
        assert len(get_catalog().skills) == 14

    def test_regions(self):
        assert len(get_skills_by_region("upper")) == 9
        assert len(get_skills_by_region("lower")) == 5

    def test_exercise_count(self):
        assert len(get_catalog().exercises) == 54

    def test_every_skill_has_exercises(self):
        for skill in get_catalog().skills:
            assert get_exercises_by_skill(skill.id), skill.id

    def test_spillover_keys_are_compound_exercises(self):
        catalog = get_catalog()
        for exercise_id in catalog.spillover:
            assert catalog.exercises[exercise_id].type == "compound"

    def test_subcategories_belong_to_skill(self):
        assert {sc.id for sc in get_subcategories_by_skill("chest")} == {
            "chest_upper",
            "chest_mid",
            "chest_lower",
        }

    def test_bodyweight_flag(self):
        assert get_exercise("pull_ups").is_bodyweight
        assert not get_exercise("bench_press").is_bodyweight


class TestLookups:

    def _custom(self, exercise_id: str = "custom_sled_push") -> CustomExercise:
        return CustomExercise(
            id=exercise_id,
            skill_id="quads",
            name="Sled Push",
            type="compound",
            weight=WeightConfig(0, 200, 10, 50),
            reference_weight=80,
        )

    def test_unknown_exercise(self):
        with pytest.raises(UnknownExerciseError, match="moon_press"):
            get_exercise("moon_press")

    def test_resolve_custom(self):
        assert resolve_exercise("custom_sled_push", [self._custom()]).name == "Sled Push"

    def test_standard_wins_on_clash(self):
        assert resolve_exercise("squat", [self._custom("squat")]).name == "Squat"

    def test_resolve_unknown(self):
        with pytest.raises(UnknownExerciseError):
            resolve_exercise("moon_press", [self._custom()])

    def test_filter_by_equipment(self):
        chest = get_exercises_by_skill("chest")
        ids = {e.id for e in filter_exercises_by_equipment(chest, ["bodyweight"])}
        assert ids == {"push_ups"}

    def test_empty_equipment_disables_filter(self):
        chest = get_exercises_by_skill("chest")
        assert filter_exercises_by_equipment(chest, []) == chest


class TestWeightConfig:

    def test_list_form(self):
        assert weight_config_from_value([20, 220, 2.5, 60]) == WeightConfig(20, 220, 2.5, 60)

    def test_mapping_form(self):
        value = {"min": 0, "max": 50, "step": 1, "default": 10}
        assert weight_config_from_value(value) == WeightConfig(0, 50, 1, 10)

    def test_wrong_length_rejected(self):
        with pytest.raises(ValueError):
            weight_config_from_value([1, 2, 3])

    def test_max_below_min_rejected(self):
        with pytest.raises(ValueError):
            WeightConfig(50, 10, 1, 20)


class TestUserOverrides:
    """catalog.yaml in the user's home is deep-merged over the bundled one."""

    def test_changed_key_merged(self, tmp_path):
        user = tmp_path / "catalog.yaml"
        user.write_text("exercises:\n  bench_press:\n    reference_weight: 100\n")
        catalog = load_catalog(user_path=user)
        bench = catalog.exercises["bench_press"]
        assert bench.reference_weight == 100
        assert bench.name == "Bench Press"

    def test_new_exercise_added(self, tmp_path):
        user = tmp_path / "catalog.yaml"
        user.write_text(
            "exercises:\n"
            "  zercher_squat:\n"
            "    {skill_id: quads, name: Zercher Squat, type: compound,"
            " weight: [20, 200, 5, 60], reference_weight: 90}\n"
        )
        catalog = load_catalog(user_path=user)
        assert catalog.exercises["zercher_squat"].skill_id == "quads"
        assert len(catalog.exercises) == 55

    def test_invalid_exercise_skipped_with_warning(self, tmp_path):
        user = tmp_path / "catalog.yaml"
        user.write_text("exercises:\n  broken_lift:\n    skill_id: chest\n")
        with pytest.warns(UserWarning, match="broken_lift"):
            catalog = load_catalog(user_path=user)
        assert "broken_lift" not in catalog.exercises

    def test_unparseable_user_file_ignored(self, tmp_path):
        user = tmp_path / "catalog.yaml"
        user.write_text("exercises: [unclosed\n")
        with pytest.warns(UserWarning, match="ignoring user catalog"):
            catalog = load_catalog(user_path=user)
        assert len(catalog.exercises) == 54

    def test_unknown_spillover_skill_is_an_error(self, tmp_path):
        user = tmp_path / "catalog.yaml"
        user.write_text("spillover:\n  squat: {wings: 0.5}\n")
        with pytest.raises(RuntimeError, match="wings"):
            load_catalog(user_path=user)

    def test_xp_config_section(self, tmp_path):
        user = tmp_path / "catalog.yaml"
        user.write_text("xp_config:\n  base: 200\n  diminishing_multipliers: [1, 0.5]\n  colour: red\n")
        catalog = load_catalog(user_path=user)
        config = xp_config_from_dict(catalog.xp_overrides)
        assert config.base == 200
        assert config.diminishing_multipliers == (1.0, 0.5)
        assert config.growth_rate == pytest.approx(1.03)

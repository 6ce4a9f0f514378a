"""
XP formula and spillover tests.

Values are hand-computed from

    xp = round(base * clamp(reps/10, 0.6, 2.0) * clamp(sqrt(w/ref), 0.7, 1.6))

then diminishing returns, neglect bonus and the 1 XP floor, all rounded
half-up.  bench_press: compound (base 50), reference weight 80 kg.
"""

from datetime import datetime, timedelta, timezone

import pytest

from xp_gains.core.catalog.base import CustomExercise, WeightConfig
from xp_gains.core.catalog.registry import get_exercise
from xp_gains.core.config import XpConfig
from xp_gains.core.models import RecentSet, SpilloverXp, WorkoutSet, XpEvent
from xp_gains.core.spillover import has_spillover, spillover_for
from xp_gains.core.xp import (
    apply_diminishing_returns,
    grace_sets,
    intensity_factor,
    is_skill_neglected,
    reps_factor,
    session_total_xp,
    xp_for_set,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _bench_sets(count: int, weight: float = 80.0, reps: int = 10) -> list[RecentSet]:
    return [RecentSet("bench_press", weight, reps) for _ in range(count)]


def _event(skill_id: str, when: datetime, event_type: str = "workout") -> XpEvent:
    return XpEvent(
        id="e",
        client_event_id=f"{skill_id}_{when.isoformat()}_{event_type}",
        source_session_id="s",
        skill_id=skill_id,
        type=event_type,
        amount=10,
        created_at=when.isoformat(),
    )


def _custom(xp_mode: str = "custom", custom_xp: int | None = 25) -> CustomExercise:
    return CustomExercise(
        id="custom_band_curl",
        skill_id="biceps",
        name="Band Curl",
        type="isolation",
        weight=WeightConfig(0, 50, 1, 10),
        reference_weight=0,
        xp_mode=xp_mode,
        custom_xp_per_set=custom_xp,
    )


# ===========================================================================
# Factors
# ===========================================================================

class TestRepsFactor:
    """clamp(reps / 10, 0.6, 2.0)"""

    def test_baseline(self):
        assert reps_factor(10) == pytest.approx(1.0)

    def test_linear_inside_range(self):
        assert reps_factor(15) == pytest.approx(1.5)

    def test_low_reps_clamp(self):
        assert reps_factor(3) == pytest.approx(0.6)
        assert reps_factor(0) == pytest.approx(0.6)

    def test_high_reps_clamp(self):
        assert reps_factor(50) == pytest.approx(2.0)


class TestIntensityFactor:
    """clamp(sqrt(weight / reference), 0.7, 1.6)"""

    def test_reference_weight_is_one(self):
        assert intensity_factor(80, 80) == pytest.approx(1.0)

    def test_square_root(self):
        # sqrt(100/64) = 1.25
        assert intensity_factor(100, 64) == pytest.approx(1.25)

    def test_light_weight_clamps(self):
        assert intensity_factor(20, 80) == pytest.approx(0.7)

    def test_heavy_weight_clamps(self):
        assert intensity_factor(320, 80) == pytest.approx(1.6)

    def test_bodyweight_is_one(self):
        assert intensity_factor(40, 0) == pytest.approx(1.0)


class TestGraceSets:
    """1 + floor(level / 15)"""

    @pytest.mark.parametrize("level,expected", [(1, 1), (14, 1), (15, 2), (29, 2), (30, 3), (99, 7)])
    def test_grace(self, level, expected):
        assert grace_sets(level) == expected


# ===========================================================================
# xp_for_set
# ===========================================================================

class TestXpForSet:

    def test_baseline_compound(self):
        # 50 * 1.0 * 1.0
        assert xp_for_set(get_exercise("bench_press"), 10, 80, skill_level=1) == 50

    def test_double_reps(self):
        # 50 * 2.0
        assert xp_for_set(get_exercise("bench_press"), 20, 80, skill_level=1) == 100

    def test_low_reps_clamped(self):
        # 3 reps would be 0.3x, clamped to 0.6 -> 30
        assert xp_for_set(get_exercise("bench_press"), 3, 80, skill_level=1) == 30

    def test_isolation_base(self):
        # dumbbell_curl: isolation, reference 16 kg
        assert xp_for_set(get_exercise("dumbbell_curl"), 10, 16, skill_level=1) == 35

    def test_heavy_set_capped(self):
        # 50 * 1.0 * 1.6
        assert xp_for_set(get_exercise("bench_press"), 10, 320, skill_level=1) == 80

    def test_light_set_floored(self):
        # 50 * 1.0 * 0.7
        assert xp_for_set(get_exercise("bench_press"), 10, 20, skill_level=1) == 35

    def test_bodyweight_ignores_added_weight(self):
        assert xp_for_set(get_exercise("pull_ups"), 10, 20, skill_level=1) == 50

    def test_neglect_bonus(self):
        # 50 * 1.10
        assert xp_for_set(get_exercise("bench_press"), 10, 80, 1, is_neglected=True) == 55

    def test_minimum_one_xp(self):
        # base 1 * 0.6 * 0.7 = 0.42 -> 0 -> floored at 1
        config = XpConfig(base_xp_compound=1)
        assert xp_for_set(get_exercise("bench_press"), 3, 20, 1, config=config) == 1

    def test_fixed_xp_custom_exercise(self):
        assert xp_for_set(_custom(), 3, 0, skill_level=1) == 25
        assert xp_for_set(_custom(), 30, 50, skill_level=1) == 25

    def test_custom_mode_without_amount_uses_formula(self):
        # isolation base 35, bodyweight -> 35
        assert xp_for_set(_custom(custom_xp=None), 10, 0, skill_level=1) == 35

    def test_standard_custom_exercise_uses_formula(self):
        assert xp_for_set(_custom(xp_mode="standard"), 20, 0, skill_level=1) == 70


class TestDiminishingReturns:
    """Same-weight repeats past the grace count: x1.0, 0.85, 0.7, 0.5, 0.3, 0.3..."""

    @pytest.mark.parametrize(
        "previous,expected",
        [
            (0, 50),   # nothing to compare against
            (1, 50),   # grace used up, first multiplier is 1.0
            (2, 43),   # 42.5 -> 43
            (3, 35),
            (4, 25),
            (5, 15),
            (9, 15),   # last multiplier repeats
        ],
    )
    def test_multiplier_sequence_at_level_one(self, previous, expected):
        xp = xp_for_set(get_exercise("bench_press"), 10, 80, 1, _bench_sets(previous))
        assert xp == expected

    def test_higher_level_gets_more_grace(self):
        # level 15 -> 2 grace sets
        assert xp_for_set(get_exercise("bench_press"), 10, 80, 15, _bench_sets(2)) == 50
        assert xp_for_set(get_exercise("bench_press"), 10, 80, 15, _bench_sets(3)) == 43

    def test_beating_best_reps_escapes_throttle(self):
        # 11 reps > best 10 -> 50 * 1.1 = 55, no multiplier
        assert xp_for_set(get_exercise("bench_press"), 11, 80, 1, _bench_sets(5)) == 55

    def test_matching_best_reps_is_throttled(self):
        recent = _bench_sets(2, reps=8) + _bench_sets(1, reps=12)
        # 3 prior sets, best 12 -> 60 * 0.7 = 42
        assert xp_for_set(get_exercise("bench_press"), 12, 80, 1, recent) == 42

    def test_other_weights_not_counted(self):
        assert xp_for_set(get_exercise("bench_press"), 10, 80, 1, _bench_sets(5, weight=82.5)) == 50

    def test_other_exercises_not_counted(self):
        recent = [RecentSet("incline_bench", 80, 10) for _ in range(5)]
        assert xp_for_set(get_exercise("bench_press"), 10, 80, 1, recent) == 50

    def test_neglect_applied_after_throttle(self):
        # 50 * 0.85 = 43, then 43 * 1.1 = 47.3 -> 47
        xp = xp_for_set(get_exercise("bench_press"), 10, 80, 1, _bench_sets(2), is_neglected=True)
        assert xp == 47

    def test_apply_directly(self):
        assert apply_diminishing_returns(100, "bench_press", 80, 10, 1, _bench_sets(3)) == 70


class TestNeglect:
    """Trained before, but not within the last 7 days."""

    def test_never_trained_is_not_neglected(self):
        assert not is_skill_neglected("chest", [], NOW)

    def test_eight_days_ago_is_neglected(self):
        events = [_event("chest", NOW - timedelta(days=8))]
        assert is_skill_neglected("chest", events, NOW)

    def test_six_days_ago_is_not_neglected(self):
        events = [_event("chest", NOW - timedelta(days=6))]
        assert not is_skill_neglected("chest", events, NOW)

    def test_any_recent_event_counts(self):
        events = [
            _event("chest", NOW - timedelta(days=30)),
            _event("chest", NOW - timedelta(days=2)),
        ]
        assert not is_skill_neglected("chest", events, NOW)

    def test_spillover_is_not_training(self):
        events = [
            _event("chest", NOW - timedelta(days=10)),
            _event("chest", NOW - timedelta(days=1), event_type="spillover"),
        ]
        assert is_skill_neglected("chest", events, NOW)

    def test_other_skills_ignored(self):
        events = [_event("quads", NOW - timedelta(days=10))]
        assert not is_skill_neglected("chest", events, NOW)


# ===========================================================================
# Spillover
# ===========================================================================

class TestSpillover:
    """round(primary * fraction) per secondary skill, independently."""

    def test_squat_at_100(self):
        spill = {s.skill_id: s.xp for s in spillover_for("squat", 100)}
        assert spill == {"glutes": 25, "hamstrings": 15, "core": 10, "back_erector": 5}

    def test_bench_rounds_half_up(self):
        # triceps 50 * 0.15 = 7.5 -> 8, delts 50 * 0.10 = 5
        spill = {s.skill_id: s.xp for s in spillover_for("bench_press", 50)}
        assert spill == {"triceps": 8, "delts": 5}

    def test_isolation_has_none(self):
        assert spillover_for("dumbbell_curl", 100) == []
        assert not has_spillover("dumbbell_curl")

    def test_unknown_exercise_has_none(self):
        assert spillover_for("custom_band_curl", 100) == []

    def test_custom_table(self):
        table = {"thing": {"chest": 0.5}}
        assert spillover_for("thing", 9, table) == [SpilloverXp("chest", 5)]
        assert has_spillover("thing", table)

    def test_scales_with_primary(self):
        small = sum(s.xp for s in spillover_for("deadlift", 100))
        large = sum(s.xp for s in spillover_for("deadlift", 1000))
        assert large == 10 * small

    def test_never_exceeds_primary(self):
        for primary in (1, 7, 50, 333):
            for spill in spillover_for("deadlift", primary):
                assert 0 <= spill.xp <= primary


class TestSessionTotal:
    def test_includes_spillover(self):
        sets = [
            WorkoutSet(10, 80, 50, (SpilloverXp("triceps", 8), SpilloverXp("delts", 5))),
            WorkoutSet(10, 16, 35),
        ]
        assert session_total_xp(sets) == 98

"""
Set/workout completion and undo tests.

bench_press at 10 x 80 kg on a fresh profile earns 50 XP with spillover
triceps 8 (7.5 rounded up) and delts 5.  squat at 10 x 120 kg earns 50 with
glutes 13, hamstrings 8, core 5 and back_erector 3.
"""

from datetime import datetime, timedelta, timezone

import pytest

from xp_gains.core.catalog.base import CustomExercise, WeightConfig
from xp_gains.core.catalog.registry import UnknownExerciseError
from xp_gains.core.models import SetInput, WorkoutExerciseInput, WorkoutSessionInput
from xp_gains.core.state import add_custom_exercise, apply_xp_events, calibrate_skills, create_initial_state
from xp_gains.core.workout import complete_set, complete_workout, undo_log_entry

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _fresh():
    return create_initial_state("user-1", NOW)


def _bench(reps: int = 10, weight: float = 80.0) -> SetInput:
    return SetInput("bench_press", reps, weight)


def _workout(*entries: tuple[str, list[tuple[int, float]]], session_id: str = "w1") -> WorkoutSessionInput:
    return WorkoutSessionInput(
        id=session_id,
        exercises=tuple(
            WorkoutExerciseInput(exercise_id, tuple(SetInput(exercise_id, r, w) for r, w in sets))
            for exercise_id, sets in entries
        ),
    )


def _replay(state):
    """Skill XP rebuilt from the event history alone."""
    return apply_xp_events(_fresh(), state.history.xp_events, NOW).stats.skill_xp


# ===========================================================================
# complete_set
# ===========================================================================

class TestCompleteSet:

    def test_awards_primary_and_spillover(self):
        result = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        assert result.xp_earned == 50
        assert {s.skill_id: s.xp for s in result.spillover} == {"triceps": 8, "delts": 5}

        xp = result.new_state.stats
        assert (xp.xp_for("chest"), xp.xp_for("triceps"), xp.xp_for("delts")) == (50, 8, 5)

    def test_event_ids_are_stable(self):
        result = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", set_index=2, now=NOW)
        assert [e.client_event_id for e in result.xp_events] == [
            "s1_bench_press_2_primary",
            "s1_bench_press_2_spill_0",
            "s1_bench_press_2_spill_1",
        ]
        assert [e.type for e in result.xp_events] == ["workout", "spillover", "spillover"]

    def test_primary_event_meta(self):
        result = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        assert result.xp_events[0].meta == {
            "exerciseId": "bench_press",
            "reps": 10,
            "weightKg": 80.0,
            "setIndex": 0,
        }

    def test_log_entry(self):
        entry = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW).log_entry
        assert entry.id == "s1_bench_press_0"
        assert entry.skill_id == "chest"
        assert entry.xp_awarded == 50
        assert entry.subcategory_id == "chest_mid"
        assert entry.timestamp == NOW.isoformat()

    def test_resubmitting_same_set_is_a_no_op(self):
        first = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        again = complete_set(first.new_state, "bench_press", _bench(), session_id="s1", now=NOW)
        assert again.new_state.stats.skill_xp == first.new_state.stats.skill_xp
        assert len(again.new_state.history.xp_events) == 3

    def test_generated_session_ids_differ(self):
        a = complete_set(_fresh(), "bench_press", _bench(), now=NOW)
        b = complete_set(a.new_state, "bench_press", _bench(), now=NOW)
        assert b.new_state.stats.xp_for("chest") == 100

    def test_unknown_exercise_raises(self):
        state = _fresh()
        with pytest.raises(UnknownExerciseError) as exc_info:
            complete_set(state, "moon_press", SetInput("moon_press", 10, 80), now=NOW)
        assert exc_info.value.exercise_id == "moon_press"
        assert state.history.xp_events == ()

    def test_input_state_unchanged(self):
        state = _fresh()
        complete_set(state, "bench_press", _bench(), now=NOW)
        assert state.stats.xp_for("chest") == 0

    def test_neglected_skill_gets_bonus(self):
        earlier = complete_set(_fresh(), "bench_press", _bench(), session_id="old", now=NOW - timedelta(days=8))
        result = complete_set(earlier.new_state, "bench_press", _bench(), session_id="new", now=NOW)
        assert result.xp_earned == 55

    def test_recently_trained_skill_gets_no_bonus(self):
        earlier = complete_set(_fresh(), "bench_press", _bench(), session_id="old", now=NOW - timedelta(days=3))
        result = complete_set(earlier.new_state, "bench_press", _bench(), session_id="new", now=NOW)
        assert result.xp_earned == 50

    def test_custom_exercise(self):
        custom = CustomExercise(
            id="custom_band_curl",
            skill_id="biceps",
            name="Band Curl",
            type="isolation",
            weight=WeightConfig(0, 50, 1, 10),
            reference_weight=0,
            xp_mode="custom",
            custom_xp_per_set=25,
        )
        state = add_custom_exercise(_fresh(), custom, NOW)
        result = complete_set(state, "custom_band_curl", SetInput("custom_band_curl", 12), now=NOW)
        assert result.xp_earned == 25
        assert result.spillover == ()
        assert result.new_state.stats.xp_for("biceps") == 25


# ===========================================================================
# complete_workout
# ===========================================================================

class TestCompleteWorkout:

    def test_totals_include_spillover(self):
        # bench: 2 x (50 + 8 + 5) = 126, squat: 50 + 13 + 8 + 5 + 3 = 79
        result = complete_workout(
            _fresh(),
            _workout(("bench_press", [(10, 80), (10, 80)]), ("squat", [(10, 120)])),
            now=NOW,
        )
        assert result.session.total_xp_earned == 205

        xp = result.new_state.stats
        assert xp.xp_for("chest") == 100
        assert xp.xp_for("triceps") == 16
        assert xp.xp_for("quads") == 50
        assert xp.xp_for("glutes") == 13
        assert xp.xp_for("back_erector") == 3

    def test_session_recorded(self):
        result = complete_workout(_fresh(), _workout(("bench_press", [(10, 80)])), now=NOW)
        sessions = result.new_state.history.workout_sessions
        assert [s.id for s in sessions] == ["w1"]
        assert result.new_state.progress.last_workout_at == NOW.isoformat()
        assert sessions[0].exercises[0].skill_id == "chest"

    def test_repeated_sets_throttled_within_session(self):
        result = complete_workout(
            _fresh(), _workout(("bench_press", [(10, 80), (10, 80), (10, 80)])), now=NOW
        )
        assert [s.xp_earned for s in result.session.exercises[0].sets] == [50, 50, 43]

    def test_repeated_exercise_keeps_counting_set_index(self):
        result = complete_workout(
            _fresh(),
            _workout(("bench_press", [(10, 80)]), ("bench_press", [(8, 90)])),
            now=NOW,
        )
        assert [e.id for e in result.log_entries] == ["w1_bench_press_0", "w1_bench_press_1"]
        assert result.new_state.stats.xp_for("chest") > 50

    def test_replaying_session_is_a_no_op(self):
        workout = _workout(("bench_press", [(10, 80)]), ("squat", [(10, 120)]))
        first = complete_workout(_fresh(), workout, now=NOW)
        again = complete_workout(first.new_state, workout, now=NOW)
        assert again.new_state.stats.skill_xp == first.new_state.stats.skill_xp
        assert len(again.new_state.history.workout_sessions) == 1

    def test_unknown_exercise_rejects_whole_workout(self):
        state = _fresh()
        with pytest.raises(UnknownExerciseError):
            complete_workout(state, _workout(("bench_press", [(10, 80)]), ("moon_press", [(5, 10)])), now=NOW)
        assert state.stats.xp_for("chest") == 0

    def test_matches_set_by_set_logging(self):
        workout = complete_workout(_fresh(), _workout(("squat", [(10, 120)])), now=NOW)
        single = complete_set(_fresh(), "squat", SetInput("squat", 10, 120), session_id="w1", now=NOW)
        assert workout.new_state.stats.skill_xp == single.new_state.stats.skill_xp

    def test_history_replay_reproduces_xp(self):
        result = complete_workout(
            _fresh(), _workout(("bench_press", [(10, 80)]), ("deadlift", [(5, 140)])), now=NOW
        )
        assert _replay(result.new_state) == result.new_state.stats.skill_xp


# ===========================================================================
# undo_log_entry
# ===========================================================================

class TestUndo:

    def test_reverses_primary_and_spillover(self):
        result = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        state = undo_log_entry(result.new_state, result.log_entry, now=NOW)
        assert all(xp == 0 for xp in state.stats.skill_xp.values())

    def test_original_events_kept_and_compensated(self):
        result = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        state = undo_log_entry(result.new_state, result.log_entry, now=NOW)
        undo_events = [e for e in state.history.xp_events if e.type == "undo"]
        assert len(state.history.xp_events) == 6
        assert {e.client_event_id: e.amount for e in undo_events} == {
            "s1_bench_press_0_undo_primary": -50,
            "s1_bench_press_0_undo_spill_triceps": -8,
            "s1_bench_press_0_undo_spill_delts": -5,
        }

    def test_replay_after_undo_matches(self):
        first = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        second = complete_set(first.new_state, "squat", SetInput("squat", 10, 120), session_id="s1", now=NOW)
        state = undo_log_entry(second.new_state, first.log_entry, now=NOW)
        assert _replay(state) == state.stats.skill_xp
        assert state.stats.xp_for("quads") == 50
        assert state.stats.xp_for("chest") == 0

    def test_double_undo_is_a_no_op(self):
        result = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        once = undo_log_entry(result.new_state, result.log_entry, now=NOW)
        assert undo_log_entry(once, result.log_entry, now=NOW) is once

    def test_never_drops_below_zero(self):
        result = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        # chest recalibrated to level 1 (0 XP) before the undo
        state = calibrate_skills(result.new_state, {"chest": 1})
        state = undo_log_entry(state, result.log_entry, now=NOW)
        assert state.stats.xp_for("chest") == 0
        assert state.stats.xp_for("triceps") == 0
        primary_undo = next(
            e for e in state.history.xp_events if e.client_event_id.endswith("_undo_primary")
        )
        assert primary_undo.amount == 0

    def test_only_removes_what_the_set_gave(self):
        first = complete_set(_fresh(), "bench_press", _bench(), session_id="s1", now=NOW)
        second = complete_set(first.new_state, "bench_press", _bench(12), session_id="s1", set_index=1, now=NOW)
        state = undo_log_entry(second.new_state, second.log_entry, now=NOW)
        assert state.stats.skill_xp == first.new_state.stats.skill_xp

"""
Random workout challenges.

A challenge picks a few skills (optionally from one body region), a few
exercises per skill, and a target number of sets for each exercise.
"""

import random
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Final, NamedTuple

from .catalog.registry import random_exercises, random_skills
from .models import Challenge, ChallengeExercise, ChallengeFocus, ChallengeSkill, ChallengeType
from .utils import to_iso, utc_now


class ChallengeShape(NamedTuple):
    muscles: int
    exercises: int
    sets: int


CHALLENGE_SHAPES: Final[dict[str, ChallengeShape]] = {
    "short": ChallengeShape(muscles=1, exercises=1, sets=4),
    "regular": ChallengeShape(muscles=2, exercises=3, sets=3),
    "ironman": ChallengeShape(muscles=3, exercises=4, sets=4),
}


class ChallengeProgress(NamedTuple):
    completed: int
    total: int
    percentage: int


def generate_challenge(
    challenge_type: ChallengeType,
    focus: ChallengeFocus = "full",
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> Challenge:
    """
    Build a new random challenge.

    Regular challenges get a random 3 or 4 sets per exercise; the other
    types use their fixed set count.
    """
    if challenge_type not in CHALLENGE_SHAPES:
        raise ValueError(f"Unknown challenge type: {challenge_type!r}")
    if focus not in ("full", "upper", "lower"):
        raise ValueError(f"Unknown challenge focus: {focus!r}")

    rng = rng or random.Random()
    shape = CHALLENGE_SHAPES[challenge_type]
    region = None if focus == "full" else focus

    skills = []
    for skill in random_skills(shape.muscles, region, rng):
        exercises = tuple(
            ChallengeExercise(
                exercise_id=exercise.id,
                target_sets=rng.randint(3, 4) if challenge_type == "regular" else shape.sets,
            )
            for exercise in random_exercises(skill.id, shape.exercises, rng)
        )
        skills.append(ChallengeSkill(skill_id=skill.id, exercises=exercises))

    return Challenge(
        id=str(uuid.uuid4()),
        type=challenge_type,
        focus=focus,
        started_at=to_iso(now or utc_now()),
        skills=tuple(skills),
    )


def update_challenge_progress(
    challenge: Challenge,
    exercise_id: str,
    now: datetime | None = None,
) -> Challenge:
    """Count one completed set of ``exercise_id`` (capped at the target)."""
    skills = tuple(
        replace(
            skill,
            exercises=tuple(
                replace(ex, completed_sets=min(ex.completed_sets + 1, ex.target_sets))
                if ex.exercise_id == exercise_id
                else ex
                for ex in skill.exercises
            ),
        )
        for skill in challenge.skills
    )
    completed = all(ex.is_done for skill in skills for ex in skill.exercises)
    return replace(
        challenge,
        skills=skills,
        completed=completed,
        completed_at=to_iso(now or utc_now()) if completed else None,
    )


def is_exercise_in_challenge(challenge: Challenge, exercise_id: str) -> bool:
    return any(
        ex.exercise_id == exercise_id
        for skill in challenge.skills
        for ex in skill.exercises
    )


def challenge_progress(challenge: Challenge) -> ChallengeProgress:
    completed = total = 0
    for skill in challenge.skills:
        for ex in skill.exercises:
            total += ex.target_sets
            completed += ex.completed_sets
    percentage = (completed * 100) // total if total > 0 else 0
    return ChallengeProgress(completed, total, percentage)


def remaining_exercises(challenge: Challenge) -> list[ChallengeExercise]:
    return [ex for skill in challenge.skills for ex in skill.exercises if not ex.is_done]

"""Session commands: log-set, undo, history, challenge."""

import re
from typing import Annotated, Optional

import typer

from ...core.catalog.registry import UnknownExerciseError, load_xp_config
from ...core.challenges import generate_challenge, is_exercise_in_challenge, update_challenge_progress
from ...core.levels import configured_curve, new_level_if_level_up
from ...core.models import GameState, RecentSetBuffer, SetInput
from ...core.state import set_challenge
from ...core.utils import lbs_to_kg, utc_now
from ...core.workout import complete_set, set_event_prefix, undo_log_entry
from .. import views
from ..app import DataDirOption, app, get_storage, load_log, load_or_exit, save_or_exit


def _next_set_index(state: GameState, session_id: str, exercise_id: str) -> int:
    """
    Next free set index for an exercise in a session.

    Counted from the events in history, which are kept after an undo, so an
    index is never reused.
    """
    prefix = set_event_prefix(session_id, exercise_id, 0)[:-1]
    pattern = re.compile(re.escape(prefix) + r"\d+_primary")
    return sum(1 for e in state.history.xp_events if pattern.fullmatch(e.client_event_id))


@app.command("log-set")
def log_set(
    exercise_id: Annotated[str, typer.Argument(help="Exercise ID, e.g. bench_press")],
    reps: Annotated[int, typer.Argument(help="Reps performed")],
    weight: Annotated[
        float,
        typer.Argument(help="Weight in your display unit (0 for bodyweight)"),
    ] = 0.0,
    data_dir: DataDirOption = None,
) -> None:
    """
    Log one set and award XP.

    Sets logged on the same day share a session, so repeating the same
    weight over and over earns less XP once the grace sets are used up.

    Example:
        xp-gains log-set bench_press 10 80
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)
    log = load_log(storage)

    weight_kg = lbs_to_kg(weight) if state.settings.unit == "lbs" else weight
    try:
        set_input = SetInput(exercise_id=exercise_id, reps=reps, weight_kg=weight_kg)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    now = utc_now()
    session_id = f"cli_{now:%Y%m%d}"
    try:
        result = complete_set(
            state,
            exercise_id,
            set_input,
            RecentSetBuffer.from_log(log),
            session_id=session_id,
            set_index=_next_set_index(state, session_id, exercise_id),
            now=now,
            config=load_xp_config(),
            curve=configured_curve(),
        )
    except UnknownExerciseError as e:
        views.print_error(str(e))
        views.print_info("Run 'exercises' to list valid IDs.")
        raise typer.Exit(1)

    skill_id = result.log_entry.skill_id
    level_up = new_level_if_level_up(
        state.stats.xp_for(skill_id), result.new_state.stats.xp_for(skill_id), configured_curve()
    )

    new_state = result.new_state
    finished_challenge = False
    if new_state.challenge is not None and not new_state.challenge.completed:
        if is_exercise_in_challenge(new_state.challenge, exercise_id):
            progressed = update_challenge_progress(new_state.challenge, exercise_id, now)
            new_state = set_challenge(new_state, progressed, now)
            finished_challenge = progressed.completed

    save_or_exit(storage, new_state, log + [result.log_entry])
    views.print_set_result(result, level_up)
    if finished_challenge:
        views.print_success("Challenge complete!")


@app.command()
def undo(
    data_dir: DataDirOption = None,
) -> None:
    """
    Undo the most recently logged set.

    The XP is taken back from every skill that received it, never dropping
    a skill below 0 XP.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)
    log = load_log(storage)

    if not log:
        views.print_error("Nothing to undo.")
        raise typer.Exit(1)

    entry = log[-1]
    state = undo_log_entry(state, entry)
    save_or_exit(storage, state, log[:-1])
    views.print_success(f"Undid {entry.exercise_id} x{entry.reps} (-{entry.xp_awarded} XP)")


@app.command()
def history(
    data_dir: DataDirOption = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Show only the last N sets (0 = all)"),
    ] = 20,
) -> None:
    """
    Show logged sets, oldest first.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)
    log = load_log(storage)
    if limit > 0:
        log = log[-limit:]
    views.print_log(log, state.settings.unit)


@app.command()
def challenge(
    challenge_type: Annotated[
        Optional[str],
        typer.Argument(help="Start a new challenge: short, regular or ironman"),
    ] = None,
    focus: Annotated[
        str,
        typer.Option("--focus", "-f", help="Body region: full, upper or lower"),
    ] = "full",
    data_dir: DataDirOption = None,
) -> None:
    """
    Show the active challenge, or start a new one.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)

    if challenge_type is None:
        if state.challenge is None:
            views.print_info("No active challenge. Start one with: xp-gains challenge regular")
            return
        views.print_challenge(state.challenge)
        return

    try:
        new_challenge = generate_challenge(challenge_type, focus)  # type: ignore[arg-type]
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    state = set_challenge(state, new_challenge)
    save_or_exit(storage, state)
    views.print_challenge(new_challenge)

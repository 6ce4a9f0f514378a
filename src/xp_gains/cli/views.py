"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of skills, logged sets and challenges.
"""

from rich.console import Console
from rich.table import Table

from ..core.catalog.base import Exercise
from ..core.catalog.registry import get_catalog, get_skill
from ..core.challenges import challenge_progress
from ..core.levels import configured_curve, total_level
from ..core.models import Challenge, GameState, LogEntry
from ..core.utils import format_weight
from ..core.workout import SetResult

console = Console()


def skill_name(skill_id: str) -> str:
    skill = get_skill(skill_id)
    return skill.name if skill else skill_id


def format_skills_table(state: GameState) -> Table:
    """
    Create a Rich table with one row per skill.

    Args:
        state: Game state to display

    Returns:
        Rich Table object
    """
    curve = configured_curve()
    table = Table(title=f"Skills  (total level {total_level(state.stats.skill_xp, curve)})")

    table.add_column("Skill", style="cyan")
    table.add_column("Region", style="dim")
    table.add_column("Level", justify="right", style="bold")
    table.add_column("XP", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("To next", justify="right")

    for skill in get_catalog().skills:
        xp = state.stats.xp_for(skill.id)
        level = curve.level_from_xp(xp)
        to_next = curve.xp_for_level(level + 1) - xp if level < curve.max_level else 0
        table.add_row(
            skill.name,
            skill.body_region,
            str(level),
            f"{xp:,}",
            f"{curve.progress_to_next_level(xp)}%",
            f"{to_next:,}" if level < curve.max_level else "MAX",
        )

    return table


def status_dict(state: GameState) -> dict:
    """Machine-readable status for --json output."""
    curve = configured_curve()
    return {
        "total_level": total_level(state.stats.skill_xp, curve),
        "skills": {
            skill.id: {
                "xp": state.stats.xp_for(skill.id),
                "level": curve.level_from_xp(state.stats.xp_for(skill.id)),
                "progress": curve.progress_to_next_level(state.stats.xp_for(skill.id)),
            }
            for skill in get_catalog().skills
        },
        "pending_sync": state.meta.pending_sync,
        "last_workout_at": state.progress.last_workout_at,
    }


def format_log_table(entries: list[LogEntry], unit: str = "kg") -> Table:
    table = Table(title="Logged Sets")

    table.add_column("#", justify="right", style="dim", width=3)
    table.add_column("When", style="cyan")
    table.add_column("Exercise", style="magenta")
    table.add_column("Reps", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("XP", justify="right", style="bold")
    table.add_column("Spillover")

    catalog = get_catalog()
    for i, entry in enumerate(entries, 1):
        exercise = catalog.exercises.get(entry.exercise_id)
        spill = ", ".join(f"{skill_name(s.skill_id)} +{s.xp}" for s in entry.spillover)
        table.add_row(
            str(i),
            entry.timestamp[:16].replace("T", " "),
            exercise.name if exercise else entry.exercise_id,
            str(entry.reps),
            format_weight(entry.weight, unit) if entry.weight > 0 else "BW",
            f"+{entry.xp_awarded}",
            spill or "-",
        )

    return table


def print_log(entries: list[LogEntry], unit: str = "kg") -> None:
    if not entries:
        console.print("[yellow]No sets logged yet.[/yellow]")
        return
    console.print(format_log_table(entries, unit))


def format_exercises_table(
    exercises: list[Exercise],
    favorites: dict[str, bool],
    unit: str = "kg",
) -> Table:
    table = Table(title="Exercises")

    table.add_column("", width=1, style="yellow")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Skill", style="magenta")
    table.add_column("Type", style="dim")
    table.add_column("Ref. weight", justify="right")

    for exercise in exercises:
        table.add_row(
            "*" if favorites.get(exercise.id) else "",
            exercise.id,
            exercise.name,
            skill_name(exercise.skill_id),
            exercise.type,
            format_weight(exercise.reference_weight, unit) if not exercise.is_bodyweight else "BW",
        )

    return table


def print_set_result(result: SetResult, level_up: int | None = None) -> None:
    """
    Print XP awarded for one set.

    Spillover is listed quietly; only the primary skill announces a level-up.
    """
    entry = result.log_entry
    console.print(
        f"[bold green]+{result.xp_earned} XP[/bold green] {skill_name(entry.skill_id)}"
    )
    for spill in result.spillover:
        console.print(f"  [dim]+{spill.xp} {skill_name(spill.skill_id)}[/dim]")
    if level_up is not None:
        console.print(
            f"[bold yellow]Level up! {skill_name(entry.skill_id)} is now level {level_up}[/bold yellow]"
        )


def print_challenge(challenge: Challenge) -> None:
    progress = challenge_progress(challenge)
    state = "[green]completed[/green]" if challenge.completed else f"{progress.percentage}%"
    console.print(
        f"[bold]Challenge[/bold] ({challenge.type}, {challenge.focus}): "
        f"{progress.completed}/{progress.total} sets, {state}"
    )
    catalog = get_catalog()
    for skill in challenge.skills:
        console.print(f"  [cyan]{skill_name(skill.skill_id)}[/cyan]")
        for ex in skill.exercises:
            exercise = catalog.exercises.get(ex.exercise_id)
            mark = "[green]done[/green]" if ex.is_done else f"{ex.completed_sets}/{ex.target_sets}"
            console.print(f"    {exercise.name if exercise else ex.exercise_id} ({ex.exercise_id}): {mark}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")

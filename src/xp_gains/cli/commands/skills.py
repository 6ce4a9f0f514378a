"""Skill commands: status, exercises, calibrate."""

import json
from typing import Annotated, Optional

import typer

from ...core.catalog.registry import (
    filter_exercises_by_equipment,
    get_catalog,
    get_exercises_by_skill,
    is_valid_skill_id,
)
from ...core.levels import configured_curve
from ...core.state import calibrate_skills
from .. import views
from ..app import DataDirOption, app, get_storage, load_or_exit, save_or_exit


def parse_skill_levels(pairs: list[str]) -> dict[str, int]:
    """
    Parse ``skill=level`` arguments.

    Raises:
        typer.BadParameter: On a malformed pair, unknown skill or level out of range
    """
    max_level = configured_curve().max_level
    targets: dict[str, int] = {}
    for pair in pairs:
        skill_id, sep, level_str = pair.partition("=")
        skill_id = skill_id.strip()
        if not sep or not level_str.strip().isdigit():
            raise typer.BadParameter(f"Expected SKILL=LEVEL, got {pair!r}")
        if not is_valid_skill_id(skill_id):
            raise typer.BadParameter(f"Unknown skill {skill_id!r}")
        level = int(level_str)
        if not 1 <= level <= max_level:
            raise typer.BadParameter(f"Level for {skill_id} must be between 1 and {max_level}")
        targets[skill_id] = level
    return targets


@app.command()
def status(
    data_dir: DataDirOption = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output machine-readable JSON"),
    ] = False,
) -> None:
    """
    Show level, XP and progress for every skill.
    """
    state = load_or_exit(get_storage(data_dir))

    if as_json:
        print(json.dumps(views.status_dict(state), indent=2))
        return

    views.console.print(views.format_skills_table(state))
    if state.challenge is not None:
        views.console.print()
        views.print_challenge(state.challenge)


@app.command()
def exercises(
    data_dir: DataDirOption = None,
    skill: Annotated[
        Optional[str],
        typer.Option("--skill", "-s", help="Only list exercises for this skill"),
    ] = None,
) -> None:
    """
    List catalog and custom exercises.

    When the equipment filter is enabled, only exercises you can do with
    your equipment are shown.  Favorites are marked with *.
    """
    state = load_or_exit(get_storage(data_dir))

    if skill is not None and not is_valid_skill_id(skill):
        views.print_error(f"Unknown skill '{skill}'")
        raise typer.Exit(1)

    pool = get_exercises_by_skill(skill) if skill else list(get_catalog().exercises.values())
    pool += [e for e in state.custom_exercises if skill is None or e.skill_id == skill]
    if state.equipment.enabled:
        pool = filter_exercises_by_equipment(pool, state.equipment.available)

    views.console.print(views.format_exercises_table(pool, state.favorites, state.settings.unit))


@app.command()
def calibrate(
    levels: Annotated[
        list[str],
        typer.Argument(help="Target levels as SKILL=LEVEL, e.g. chest=20 quads=15"),
    ],
    data_dir: DataDirOption = None,
) -> None:
    """
    Set skills to an exact level (for moving over from another tracker).

    The XP of each named skill is overwritten, not added to.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)

    targets = parse_skill_levels(levels)
    state = calibrate_skills(state, targets, configured_curve())
    save_or_exit(storage, state)

    for skill_id, level in targets.items():
        views.print_success(f"{views.skill_name(skill_id)} set to level {level}")

"""Profile management commands: init, settings, favorite, equipment, export, import, reset."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...core.catalog.registry import find_exercise
from ...core.state import (
    create_initial_state,
    reset_progress,
    toggle_favorite,
    update_equipment,
    update_profile,
    update_settings,
)
from ...io.storage import MalformedImportError, PersistenceError
from .. import views
from ..app import DataDirOption, app, get_storage, is_initialized, load_or_exit, save_or_exit


@app.command()
def init(
    data_dir: DataDirOption = None,
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Display name"),
    ] = None,
    unit: Annotated[
        str,
        typer.Option("--unit", "-u", help="Weight unit (kg/lbs)"),
    ] = "kg",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing state without prompting"),
    ] = False,
) -> None:
    """
    Create a fresh profile with every skill at level 1.
    """
    storage = get_storage(data_dir)

    if is_initialized(storage) and not force:
        views.print_warning("A saved state already exists.")
        if not views.confirm_action("Start over and overwrite it?"):
            views.print_info("Cancelled.")
            raise typer.Exit(0)

    state = create_initial_state()
    try:
        state = update_settings(state, unit=unit)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if name:
        state = update_profile(state, name)

    save_or_exit(storage, state, [])
    views.print_success("Profile created. Log your first set with: xp-gains log-set EXERCISE REPS WEIGHT")


@app.command()
def settings(
    data_dir: DataDirOption = None,
    unit: Annotated[
        Optional[str],
        typer.Option("--unit", "-u", help="Weight unit (kg/lbs)"),
    ] = None,
    theme: Annotated[
        Optional[str],
        typer.Option("--theme", "-t", help="Theme (classic/mithril)"),
    ] = None,
    language: Annotated[
        Optional[str],
        typer.Option("--language", "-l", help="Language code, e.g. en"),
    ] = None,
) -> None:
    """
    Show or change settings.  With no options, prints the current values.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)

    changes = {
        k: v for k, v in (("unit", unit), ("theme", theme), ("language", language)) if v is not None
    }
    if changes:
        try:
            state = update_settings(state, **changes)
        except ValueError as e:
            views.print_error(str(e))
            raise typer.Exit(1)
        save_or_exit(storage, state)
        views.print_success("Settings updated.")

    s = state.settings
    views.console.print(f"unit: {s.unit}\ntheme: {s.theme}\nlanguage: {s.language}")


@app.command()
def favorite(
    exercise_id: Annotated[str, typer.Argument(help="Exercise ID to star or unstar")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Toggle an exercise as favorite.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)

    known = find_exercise(exercise_id) is not None or any(
        e.id == exercise_id for e in state.custom_exercises
    )
    if not known:
        views.print_error(f"Unknown exercise '{exercise_id}'")
        raise typer.Exit(1)

    state = toggle_favorite(state, exercise_id)
    save_or_exit(storage, state)
    if state.favorites.get(exercise_id):
        views.print_success(f"Added {exercise_id} to favorites.")
    else:
        views.print_success(f"Removed {exercise_id} from favorites.")


@app.command()
def export(
    path: Annotated[
        Optional[Path],
        typer.Argument(help="Write the backup here instead of printing it"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Export the saved state as pretty-printed JSON.
    """
    storage = get_storage(data_dir)
    load_or_exit(storage)

    try:
        text = asyncio.run(storage.export_state())
    except PersistenceError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if path is None:
        print(text)
        return
    path.write_text(text + "\n", encoding="utf-8")
    views.print_success(f"Exported to {path}")


@app.command("import")
def import_(
    path: Annotated[Path, typer.Argument(help="Backup file created by 'export'")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Restore state from a backup.  Nothing is changed if the file is invalid.
    """
    storage = get_storage(data_dir)

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        views.print_error(f"Cannot read {path}: {e}")
        raise typer.Exit(1)

    try:
        state = asyncio.run(storage.import_state(text))
    except (MalformedImportError, PersistenceError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Imported state for {state.profile.display_name or state.profile.local_user_id}")


@app.command()
def reset(
    data_dir: DataDirOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Reset without prompting"),
    ] = False,
) -> None:
    """
    Reset all XP and history.  Settings and equipment are kept.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)

    if not force and not views.confirm_action("Reset all progress?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    save_or_exit(storage, reset_progress(state), [])
    views.print_success("Progress reset.")


@app.command()
def equipment(
    available: Annotated[
        Optional[list[str]],
        typer.Argument(help="Equipment you own, e.g. barbell bench dumbbells"),
    ] = None,
    data_dir: DataDirOption = None,
    enable: Annotated[
        bool,
        typer.Option("--enable/--disable", help="Filter exercises by your equipment"),
    ] = True,
) -> None:
    """
    Set the equipment you own and turn the exercise filter on or off.
    """
    storage = get_storage(data_dir)
    state = load_or_exit(storage)

    owned = list(available) if available else list(state.equipment.available)
    try:
        state = update_equipment(state, enable, owned)
    except ValueError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    save_or_exit(storage, state)
    status = "on" if state.equipment.enabled else "off"
    views.print_success(f"Equipment filter {status}: {', '.join(state.equipment.available) or 'none'}")

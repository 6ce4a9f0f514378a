"""Shared Typer app object, shared option types, and storage utilities."""

import asyncio
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger

from ..core.config import STATE_KEY
from ..core.models import GameState, LogEntry
from ..io.storage import FileStorageAdapter, PersistenceError, StateStorage, get_default_data_dir
from . import views

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-D", help="Directory holding the saved state (default ~/.xp-gains/data)"),
]

app = typer.Typer(
    name="xp-gains",
    help="Level up 14 muscle groups like RPG skills by logging your sets.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    """Route engine diagnostics to stderr; warnings and up unless verbose."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="DEBUG" if verbose else "WARNING",
        colorize=True,
    )


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging on stderr"),
    ] = False,
) -> None:
    setup_logging(verbose)


def get_storage(data_dir: Path | None) -> StateStorage:
    """Get state storage for the given directory or the default location."""
    return StateStorage(FileStorageAdapter(data_dir or get_default_data_dir()))


def is_initialized(storage: StateStorage) -> bool:
    keys = asyncio.run(storage.adapter.get_all_keys())
    return STATE_KEY in keys


def load_or_exit(storage: StateStorage) -> GameState:
    """Load state, exiting with a hint when nothing has been initialized yet."""
    if not is_initialized(storage):
        views.print_error("No saved state found.")
        views.print_info("Run 'init' first.")
        raise typer.Exit(1)
    try:
        return asyncio.run(storage.load_state())
    except PersistenceError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def save_or_exit(storage: StateStorage, state: GameState, log: list[LogEntry] | None = None) -> None:
    """Persist state (and the log, when given) immediately."""

    async def _save() -> None:
        await storage.save_state(state, immediate=True)
        if log is not None:
            await storage.save_log(log)

    try:
        asyncio.run(_save())
    except PersistenceError as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def load_log(storage: StateStorage) -> list[LogEntry]:
    try:
        return asyncio.run(storage.load_log())
    except PersistenceError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

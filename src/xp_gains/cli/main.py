"""
CLI entry point using Typer.

Provides commands for tracking muscle-group XP:
- init: Create a fresh profile
- log-set / undo / history: Log sets, take the last one back, list them
- status: Levels and progress for every skill
- calibrate: Jump skills to a known level
- exercises / favorite / equipment: Browse and filter the catalog
- challenge: Random workout quests
- settings / export / import / reset: Housekeeping
"""

from .app import app
from .commands import profile, sessions, skills  # noqa: F401  (registers commands)

__all__ = ["app"]


if __name__ == "__main__":
    app()

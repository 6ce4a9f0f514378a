"""
Persistence for game state.

StateStorage keeps one JSON blob per user under a fixed key in any
StorageAdapter.  Saves are debounced: saves inside the window collapse to
the last state and are written once.  A failed background write is recorded
and reported but never rolls back the caller's in-memory state.
"""

import asyncio
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Callable, Protocol

from loguru import logger

from ..core.catalog.loader import get_user_home
from ..core.config import LOG_KEY, SAVE_DEBOUNCE_SECONDS, STATE_KEY
from ..core.models import GameState, LogEntry
from ..core.state import create_initial_state
from .migrations import MigrationGapError, migrate_state, needs_migration, run_migrations, validate_and_normalize
from .serializers import (
    ValidationError,
    dict_to_log_entry,
    log_entry_to_dict,
    parse_json_object,
    state_to_json,
)

_REQUIRED_IMPORT_FIELDS = ("schemaVersion", "profile", "stats")
_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class PersistenceError(Exception):
    """The storage adapter failed to read or write."""

    pass


class MalformedImportError(ValidationError):
    """An imported document is not valid JSON or lacks required fields."""

    pass


class StorageAdapter(Protocol):
    """Asynchronous string key-value store."""

    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def get_all_keys(self) -> list[str]: ...


class InMemoryStorageAdapter:
    """Dict-backed adapter for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def get_all_keys(self) -> list[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()


class FileStorageAdapter:
    """
    One ``<key>.json`` file per key inside a directory.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash never leaves a half-written blob.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    async def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    async def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def get_all_keys(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))


def get_default_data_dir() -> Path:
    """Directory used by the CLI when --data-dir is not given."""
    return get_user_home() / "data"


class StateStorage:
    """
    Load, save, import and export GameState through a StorageAdapter.

    Only the most recent state passed to save_state() within the debounce
    window is written.  flush() writes it right away.  Errors from
    background writes land in ``last_error`` and the ``on_error`` callback;
    immediate saves and flushes raise PersistenceError instead.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        debounce_seconds: float = SAVE_DEBOUNCE_SECONDS,
        on_error: Callable[[Exception], None] | None = None,
        key: str = STATE_KEY,
    ):
        self.adapter = adapter
        self.debounce_seconds = debounce_seconds
        self.on_error = on_error
        self.key = key
        self.last_error: Exception | None = None
        self._pending: GameState | None = None
        self._timer: asyncio.Task | None = None
        self._write_lock = asyncio.Lock()

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    async def load_state(self) -> GameState:
        """
        Load the stored state, migrating it if needed.

        No stored blob yields a fresh state.  A blob that cannot be parsed
        is logged and replaced by a fresh state.  A migrated state is
        written back immediately; if that write fails it is reported
        through ``last_error`` and ``on_error`` and the state still returned.

        Raises:
            PersistenceError: If the adapter cannot be read
        """
        try:
            raw = await self.adapter.get_item(self.key)
        except Exception as exc:
            raise PersistenceError(f"Failed to read {self.key}: {exc}") from exc

        if raw is None:
            return create_initial_state()

        try:
            record = parse_json_object(raw)
            migrated = needs_migration(record)
            state = migrate_state(record)
        except ValidationError as exc:
            logger.error(f"Stored state is unreadable, starting fresh: {exc}")
            return create_initial_state()

        if migrated:
            try:
                await self._write(state)
            except PersistenceError as exc:
                # last_error is already set; the migrated state is still good
                if self.on_error is not None:
                    self.on_error(exc)
        return state

    async def save_state(self, state: GameState, immediate: bool = False) -> None:
        """
        Schedule (or, with ``immediate``, perform) a write of ``state``.

        Raises:
            PersistenceError: Only for immediate writes
        """
        if immediate:
            self._cancel_timer()
            self._pending = None
            await self._write(state)
            return

        self._pending = state
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._write_later())

    async def flush(self) -> None:
        """
        Write any pending state now.

        Raises:
            PersistenceError: If the write fails
        """
        self._cancel_timer()
        state, self._pending = self._pending, None
        if state is not None:
            await self._write(state)
        else:
            # a background write may be in progress
            async with self._write_lock:
                pass

    async def clear(self) -> None:
        """Drop any pending save and remove the stored state."""
        self._cancel_timer()
        self._pending = None
        try:
            await self.adapter.remove_item(self.key)
        except Exception as exc:
            raise PersistenceError(f"Failed to remove {self.key}: {exc}") from exc

    async def export_state(self) -> str:
        """Pretty-printed JSON of the stored state (pending saves flushed first)."""
        await self.flush()
        state = await self.load_state()
        return state_to_json(state, indent=2)

    async def import_state(self, text: str) -> GameState:
        """
        Replace the stored state with an exported document.

        The document is parsed, checked, migrated and normalized before
        anything is written; on any failure nothing is persisted.

        Raises:
            MalformedImportError: If the document is invalid
            PersistenceError: If the write fails
        """
        try:
            record = parse_json_object(text)
        except ValidationError as exc:
            raise MalformedImportError(f"Invalid JSON format: {exc}") from exc

        missing = [k for k in _REQUIRED_IMPORT_FIELDS if record.get(k) is None]
        if missing:
            raise MalformedImportError(
                f"Invalid state format: missing required fields ({', '.join(missing)})"
            )
        version = record["schemaVersion"]
        if not isinstance(version, int) or isinstance(version, bool):
            raise MalformedImportError(f"Invalid state format: schemaVersion must be an integer, got {version!r}")

        try:
            state = validate_and_normalize(run_migrations(record))
        except MigrationGapError as exc:
            raise MalformedImportError(str(exc)) from exc
        except ValidationError as exc:
            raise MalformedImportError(f"Invalid state format: {exc}") from exc

        await self.save_state(state, immediate=True)
        logger.info(f"Imported state for user {state.profile.local_user_id}")
        return state

    async def load_log(self) -> list[LogEntry]:
        """
        Load the caller-owned log entries (oldest first).

        Raises:
            PersistenceError: If the adapter cannot be read
        """
        try:
            raw = await self.adapter.get_item(LOG_KEY)
        except Exception as exc:
            raise PersistenceError(f"Failed to read {LOG_KEY}: {exc}") from exc
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
            return [dict_to_log_entry(d) for d in data]
        except (json.JSONDecodeError, TypeError, ValidationError) as exc:
            logger.error(f"Stored log is unreadable, ignoring it: {exc}")
            return []

    async def save_log(self, entries: list[LogEntry]) -> None:
        """
        Raises:
            PersistenceError: If the write fails
        """
        payload = json.dumps([log_entry_to_dict(e) for e in entries], separators=(",", ":"))
        try:
            await self.adapter.set_item(LOG_KEY, payload)
        except Exception as exc:
            raise PersistenceError(f"Failed to write {LOG_KEY}: {exc}") from exc

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _write_later(self) -> None:
        await asyncio.sleep(self.debounce_seconds)
        # past the sleep: detach so a newer save cannot cancel this write
        self._timer = None
        state, self._pending = self._pending, None
        if state is None:
            return
        try:
            await self._write(state)
        except PersistenceError as exc:
            if self.on_error is not None:
                self.on_error(exc)

    async def _write(self, state: GameState) -> None:
        payload = state_to_json(state)
        async with self._write_lock:
            try:
                await self.adapter.set_item(self.key, payload)
            except Exception as exc:
                self.last_error = exc
                logger.error(f"Failed to save state: {exc}")
                raise PersistenceError(f"Failed to write {self.key}: {exc}") from exc
        self.last_error = None
        logger.debug("Saved state", key=self.key, bytes=len(payload))

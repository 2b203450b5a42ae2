import asyncio
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from config import config
from errors import LoadError, PersistError
from models import AppSettings

_FIELDS = ("refresh_interval_secs", "window_hours", "usage_limit_tokens", "theme")


def _get_conn(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            refresh_interval_secs INTEGER NOT NULL,
            window_hours REAL NOT NULL,
            usage_limit_tokens INTEGER,
            theme TEXT NOT NULL
        )
    """)
    conn.commit()
    return conn


def load_settings(path: Path) -> AppSettings:
    try:
        conn = _get_conn(path)
        try:
            row = conn.execute(
                f"SELECT {', '.join(_FIELDS)} FROM settings WHERE id = 1"
            ).fetchone()
        finally:
            conn.close()
    except (sqlite3.Error, OSError) as exc:
        raise LoadError(f"Could not read settings from {path}: {exc}") from exc
    if row is None:
        raise LoadError(f"No settings stored in {path}")
    try:
        return AppSettings.model_validate(dict(zip(_FIELDS, row)))
    except ValidationError as exc:
        raise LoadError(f"Stored settings are invalid: {exc}") from exc


def save_settings(path: Path, settings: AppSettings) -> None:
    data = settings.model_dump(mode="json")
    try:
        conn = _get_conn(path)
        try:
            conn.execute(
                f"INSERT OR REPLACE INTO settings (id, {', '.join(_FIELDS)}) "
                "VALUES (1, ?, ?, ?, ?)",
                tuple(data[f] for f in _FIELDS),
            )
            conn.commit()
        finally:
            conn.close()
    except (sqlite3.Error, OSError) as exc:
        raise PersistError(f"Could not write settings to {path}: {exc}") from exc


class SettingsDatabase:
    """Async load/persist of AppSettings backed by a single-row SQLite table."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path or config.db_path)

    async def load(self) -> AppSettings:
        return await asyncio.to_thread(load_settings, self.path)

    async def persist(self, settings: AppSettings) -> None:
        await asyncio.to_thread(save_settings, self.path, settings)

import sqlite3

import pytest

from db import SettingsDatabase, load_settings, save_settings
from errors import LoadError, PersistError
from models import AppSettings, ThemePreference


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "nested" / "settings.db"


def test_load_without_stored_settings_raises(db_path):
    with pytest.raises(LoadError):
        load_settings(db_path)


def test_save_then_load(db_path):
    settings = AppSettings(
        refresh_interval_secs=60, window_hours=8, usage_limit_tokens=2_000_000, theme="dark"
    )
    save_settings(db_path, settings)
    assert load_settings(db_path) == settings


def test_save_overwrites_single_row(db_path):
    save_settings(db_path, AppSettings(window_hours=2))
    save_settings(db_path, AppSettings(window_hours=3, usage_limit_tokens=None))

    conn = sqlite3.connect(str(db_path))
    rows = conn.execute(
        "SELECT refresh_interval_secs, window_hours, usage_limit_tokens, theme FROM settings"
    ).fetchall()
    conn.close()
    assert rows == [(180, 3.0, None, "system")]


def test_invalid_stored_row_raises_load_error(db_path):
    save_settings(db_path, AppSettings())
    conn = sqlite3.connect(str(db_path))
    conn.execute("UPDATE settings SET refresh_interval_secs = 7")
    conn.commit()
    conn.close()
    with pytest.raises(LoadError):
        load_settings(db_path)


def test_unwritable_location_raises_persist_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    with pytest.raises(PersistError):
        save_settings(blocker / "settings.db", AppSettings())


@pytest.mark.asyncio
async def test_async_backend_round_trip(db_path):
    backend = SettingsDatabase(db_path)
    await backend.persist(AppSettings(theme=ThemePreference.LIGHT))
    loaded = await backend.load()
    assert loaded.theme is ThemePreference.LIGHT

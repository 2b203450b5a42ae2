import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from errors import LoadError, PersistError
from models import AppSettings

log = logging.getLogger(__name__)


class SettingsBackend(Protocol):
    async def load(self) -> AppSettings: ...

    async def persist(self, settings: AppSettings) -> None: ...


class SettingsStore:
    """In-memory AppSettings with optimistic updates and best-effort persistence.

    Updates are applied synchronously in call order. Each update schedules a
    write of the complete settings value; a failed write is logged and the
    in-memory value is kept.
    """

    def __init__(self, backend: SettingsBackend):
        self._backend = backend
        self._settings = AppSettings()
        self._pending: set[asyncio.Task] = set()
        self._listeners: list[Callable[[AppSettings], None]] = []

    @property
    def settings(self) -> AppSettings:
        return self._settings

    async def load(self) -> AppSettings:
        try:
            loaded = await self._backend.load()
        except LoadError as exc:
            log.debug("Using default settings: %s", exc)
            return self._settings
        self._apply(loaded)
        return loaded

    def update_settings(self, patch: AppSettings | Mapping[str, Any]) -> AppSettings:
        if isinstance(patch, AppSettings):
            patch = patch.model_dump()
        merged = AppSettings.model_validate({**self._settings.model_dump(), **patch})
        self._apply(merged)
        task = asyncio.create_task(self._persist(merged))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return merged

    async def _persist(self, settings: AppSettings) -> None:
        try:
            await self._backend.persist(settings)
        except PersistError as exc:
            log.error("Failed to save settings: %s", exc)

    async def flush(self) -> None:
        """Wait for every scheduled persist to finish."""
        while self._pending:
            await asyncio.gather(*self._pending)

    def subscribe(self, callback: Callable[[AppSettings], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _apply(self, settings: AppSettings) -> None:
        self._settings = settings
        for callback in list(self._listeners):
            callback(settings)

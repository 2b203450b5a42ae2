import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from models import Theme, ThemePreference

log = logging.getLogger(__name__)


class DarkModeSignal(Protocol):
    def is_dark(self) -> bool: ...

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]: ...


@dataclass
class _Explicit:
    theme: Theme


@dataclass
class _FollowSystem:
    unsubscribe: Callable[[], None]


class ThemeResolver:
    """Resolves a light/dark/system preference to a concrete theme.

    Only the system mode holds a subscription to the dark-mode signal; it is
    detached as soon as the preference changes or the resolver is disposed.
    """

    def __init__(self, signal: DarkModeSignal, preference: ThemePreference = ThemePreference.SYSTEM):
        self._signal = signal
        self._mode: _Explicit | _FollowSystem | None = None
        self._preference = ThemePreference(preference)
        self._theme = Theme.LIGHT
        self._listeners: list[Callable[[Theme], None]] = []
        self._disposed = False
        self._activate()

    @property
    def preference(self) -> ThemePreference:
        return self._preference

    @property
    def theme(self) -> Theme:
        return self._theme

    def set_preference(self, preference: ThemePreference | str) -> None:
        preference = ThemePreference(preference)
        if self._disposed or preference == self._preference:
            return
        self._detach()
        self._preference = preference
        self._activate()

    def subscribe(self, callback: Callable[[Theme], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._detach()
        self._listeners.clear()

    def _activate(self) -> None:
        if self._preference == ThemePreference.SYSTEM:
            self._mode = _FollowSystem(self._signal.subscribe(self._on_signal))
            self._set_theme(self._read_signal())
        else:
            self._mode = _Explicit(Theme(self._preference.value))
            self._set_theme(self._mode.theme)

    def _detach(self) -> None:
        if isinstance(self._mode, _FollowSystem):
            self._mode.unsubscribe()
        self._mode = None

    def _read_signal(self) -> Theme:
        return Theme.DARK if self._signal.is_dark() else Theme.LIGHT

    def _on_signal(self) -> None:
        if isinstance(self._mode, _FollowSystem):
            self._set_theme(self._read_signal())

    def _set_theme(self, theme: Theme) -> None:
        if theme == self._theme:
            return
        log.debug("Theme resolved to %s", theme.value)
        self._theme = theme
        for callback in list(self._listeners):
            callback(theme)

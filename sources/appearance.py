import logging
import subprocess
from collections.abc import Callable

log = logging.getLogger(__name__)


def detect_dark_mode() -> bool:
    """Read the macOS interface style; anything else counts as light."""
    try:
        raw = subprocess.run(
            ["defaults", "read", "-g", "AppleInterfaceStyle"],
            capture_output=True, text=True, timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        log.debug("Appearance lookup failed: %s", exc)
        return False
    if raw.returncode != 0:
        # The key is absent in light mode.
        return False
    return raw.stdout.strip().lower() == "dark"


class SystemAppearance:
    """The OS dark-mode flag plus change notifications."""

    def __init__(self, dark: bool | None = None):
        self._dark = detect_dark_mode() if dark is None else dark
        self._callbacks: list[Callable[[], None]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def is_dark(self) -> bool:
        return self._dark

    def set_dark(self, dark: bool) -> None:
        if dark == self._dark:
            return
        self._dark = dark
        for callback in list(self._callbacks):
            callback()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

import logging
from collections.abc import Callable

log = logging.getLogger(__name__)


class ChangeChannel:
    """Zero-payload "usage data changed" notifications."""

    def __init__(self):
        self._callbacks: list[Callable[[], None]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def notify(self) -> None:
        log.debug("Usage data changed, notifying %d subscribers", len(self._callbacks))
        for callback in list(self._callbacks):
            callback()

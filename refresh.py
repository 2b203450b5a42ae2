import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol

from models import UsageSnapshot, UsageState

log = logging.getLogger(__name__)

FetchSnapshot = Callable[[float], Awaitable[UsageSnapshot]]


class ChangeSubscription(Protocol):
    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]: ...


class RefreshState(str, Enum):
    INITIAL_LOADING = "initial-loading"
    READY = "ready"
    READY_STALE_ERROR = "ready-stale-error"
    REFRESHING = "refreshing"
    FAILED = "failed"


class UsageRefreshController:
    """Keeps the current usage snapshot fresh.

    A snapshot is fetched on start, every ``interval_secs`` afterwards, on each
    "usage data changed" notification and on every explicit ``refresh()``.
    Each fetch is asked for the current ``window_hours``.
    Refreshes are not deduplicated: when several are in flight the last one to
    resolve wins, unless ``ordered`` is set, in which case a response older
    than the last applied one is dropped.

    ``dispose()`` cancels the timer and detaches the change subscription;
    fetches still in flight complete but their results are discarded.
    """

    def __init__(
        self,
        fetch: FetchSnapshot,
        changes: ChangeSubscription,
        interval_secs: float = 180,
        window_hours: float = 5.0,
        ordered: bool = False,
    ):
        self._fetch = fetch
        self._changes = changes
        self._interval = interval_secs
        self._window_hours = window_hours
        self._ordered = ordered

        self._snapshot: UsageSnapshot | None = None
        self._error: str | None = None
        self._loading = True
        self._in_flight = 0
        self._issued = 0
        self._applied = 0

        self._timer: asyncio.Task | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[[], None]] = []
        self._started = False
        self._disposed = False

    @property
    def snapshot(self) -> UsageSnapshot | None:
        return self._snapshot

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def interval_secs(self) -> float:
        return self._interval

    @property
    def window_hours(self) -> float:
        return self._window_hours

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def polling(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def state(self) -> RefreshState:
        if self._snapshot is None:
            if self._error is not None and not self._loading and not self._in_flight:
                return RefreshState.FAILED
            return RefreshState.INITIAL_LOADING
        if self._in_flight:
            return RefreshState.REFRESHING
        if self._error is not None:
            return RefreshState.READY_STALE_ERROR
        return RefreshState.READY

    def view(self) -> UsageState:
        return UsageState(
            state=self.state.value,
            loading=self._loading,
            error=self._error,
            snapshot=self._snapshot,
        )

    def start(self) -> None:
        if self._started or self._disposed:
            return
        self._started = True
        self._schedule()
        self._spawn_refresh()

    async def refresh(self) -> None:
        if self._disposed:
            return
        self._issued += 1
        seq = self._issued
        self._in_flight += 1
        self._notify()
        try:
            snapshot = await self._fetch(self._window_hours)
        except Exception as exc:
            if not self._disposed and self._accepts(seq):
                log.warning("Usage refresh failed: %s", exc)
                self._error = str(exc) or exc.__class__.__name__
        else:
            if not self._disposed and self._accepts(seq):
                self._snapshot = snapshot
                self._error = None
        finally:
            self._in_flight -= 1
            if not self._disposed:
                self._loading = False
                self._notify()

    def set_interval(self, interval_secs: float) -> None:
        """Restart the polling timer with a new period."""
        if interval_secs == self._interval:
            return
        self._interval = interval_secs
        if self._started and not self._disposed:
            log.debug("Refresh interval changed to %ss, restarting timer", interval_secs)
            self._teardown()
            self._schedule()
            self._spawn_refresh()

    def set_window_hours(self, window_hours: float) -> None:
        if window_hours == self._window_hours:
            return
        self._window_hours = window_hours
        if self._started and not self._disposed:
            log.debug("Usage window changed to %sh, refetching", window_hours)
            self._spawn_refresh()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._teardown()
        self._listeners.clear()

    async def wait_idle(self) -> None:
        """Wait until no spawned refresh is pending."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, *exc_info):
        self.dispose()

    def _accepts(self, seq: int) -> bool:
        if self._ordered and seq < self._applied:
            log.debug("Dropping stale refresh #%d (applied #%d)", seq, self._applied)
            return False
        self._applied = max(self._applied, seq)
        return True

    def _schedule(self) -> None:
        self._timer = asyncio.create_task(self._tick(self._interval), name="usage-refresh-timer")
        self._unsubscribe = self._changes.subscribe(self._spawn_refresh)

    def _teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _tick(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn_refresh()

    def _spawn_refresh(self) -> None:
        if self._disposed:
            return
        task = asyncio.create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

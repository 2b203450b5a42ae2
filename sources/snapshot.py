import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request

from pydantic import ValidationError

from config import config
from errors import FetchError
from models import UsageSnapshot

log = logging.getLogger(__name__)


class HttpSnapshotSource:
    """Fetches complete usage snapshots from the snapshot producer over HTTP."""

    def __init__(self, url: str | None = None, timeout: float | None = None):
        self.url = url or config.snapshot_url
        self.timeout = timeout if timeout is not None else config.fetch_timeout_secs

    def _url(self, window_hours: float | None) -> str:
        if window_hours is None:
            return self.url
        query = urllib.parse.urlencode({"window_hours": f"{window_hours:g}"})
        sep = "&" if "?" in self.url else "?"
        return f"{self.url}{sep}{query}"

    def _get(self, window_hours: float | None = None) -> UsageSnapshot:
        req = urllib.request.Request(self._url(window_hours), headers={"Accept": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = json.loads(resp.read())
        except urllib.error.HTTPError as exc:
            raise FetchError(f"Snapshot request failed: HTTP {exc.code}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise FetchError(f"Snapshot producer unreachable: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise FetchError(f"Snapshot response is not JSON: {exc}") from exc

        try:
            return UsageSnapshot.model_validate(body)
        except ValidationError as exc:
            log.debug("Rejected snapshot body: %s", body)
            raise FetchError(f"Snapshot response is invalid: {exc.error_count()} errors") from exc

    async def fetch(self, window_hours: float | None = None) -> UsageSnapshot:
        """Fetch a snapshot aggregated over the last ``window_hours`` hours.

        Without ``window_hours`` the producer uses its own default window.
        """
        return await asyncio.to_thread(self._get, window_hours)


"""Release-week tracking.

The shop publishes a ``release_week`` token with its catalog.  When it
changes, every product id loaded so far is stale and the catalog has to
be reloaded.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from .config import ERROR_DELAY_MS
from .scraper import CatalogClient
from .utils import retry_forever

logger = logging.getLogger(__name__)

_UNSET = object()


class ReleaseWeekTracker:
    def __init__(
        self,
        client: CatalogClient,
        *,
        error_delay_ms: int = ERROR_DELAY_MS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.error_delay_ms = error_delay_ms
        self._sleep = sleep
        self._baseline: Any = _UNSET
        self._lock = threading.Lock()

    @property
    def baseline(self) -> Any:
        """The week the loaded catalog belongs to, or None before the first check."""
        with self._lock:
            return None if self._baseline is _UNSET else self._baseline

    def _observe_week(self) -> Any:
        for attempt in retry_forever(self.error_delay_ms, "checking week", log=logger, sleep=self._sleep):
            with attempt:
                return self.client.fetch_week()

    def check_week(self) -> bool:
        """Return True if the shop's release week differs from the baseline.

        The first call only records the baseline and returns False.  Later
        calls never move the baseline, so a rollover keeps being reported
        until `rebase` is called after a completed reload.
        """
        week = self._observe_week()
        with self._lock:
            if self._baseline is _UNSET:
                self._baseline = week
                logger.info("Loaded week: %s", week)
                return False
            return week != self._baseline

    def rebase(self, week: Any) -> None:
        with self._lock:
            if self._baseline is not _UNSET and self._baseline != week:
                logger.info("Release week moved from %s to %s", self._baseline, week)
            self._baseline = week


__all__ = ["ReleaseWeekTracker"]

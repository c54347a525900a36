"""Polling engine.

`RestockMonitor` owns all of the process state: the snapshot store, the
release-week tracker and the worker pool used to fan product fetches out.
It alternates between two phases forever:

* loading: fetch the catalog and one stock snapshot per product;
* monitoring: re-fetch every product each cycle and notify on sizes whose
  stock level moved to 1.

A restock or a release-week rollover sends it back to loading.  Every
network call retries itself after ``error_delay_ms`` until it succeeds;
only an unreadable proxy file stops the process.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Union

from .config import ERROR_DELAY_MS, MAX_WORKERS, MONITOR_DELAY_MS, RESTOCK_DELAY_MS
from .notifier import DiscordNotifier, RestockEvent
from .scraper import (CatalogClient, CatalogEntry, CellChange, StockSnapshot,
                      StyleRecord, diff_styles)
from .store import SnapshotStore
from .utils import (MonitorStopped, NotFoundError, ProxyPoolError, ReloadRequired,
                    retry_forever)
from .week import ReleaseWeekTracker

logger = logging.getLogger(__name__)


class StockCheck(enum.Enum):
    UNCHANGED = "unchanged"
    RESTOCKED = "restocked"
    RELOAD = "reload"


class RestockMonitor:
    def __init__(
        self,
        client: CatalogClient,
        notifier: DiscordNotifier,
        *,
        week_tracker: Optional[ReleaseWeekTracker] = None,
        store: Optional[SnapshotStore] = None,
        restock_delay_ms: int = RESTOCK_DELAY_MS,
        monitor_delay_ms: int = MONITOR_DELAY_MS,
        error_delay_ms: int = ERROR_DELAY_MS,
        max_workers: int = MAX_WORKERS,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.client = client
        self.notifier = notifier
        self.store = store or SnapshotStore()
        self.restock_delay_ms = restock_delay_ms
        self.monitor_delay_ms = monitor_delay_ms
        self.error_delay_ms = error_delay_ms
        self._stopped = threading.Event()
        # Waiting on the stop event lets close() cut every delay short.
        self._sleep = sleep or self._stopped.wait
        self.week_tracker = week_tracker or ReleaseWeekTracker(
            client, error_delay_ms=error_delay_ms, sleep=self._pause
        )
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="stock")

    def _pause(self, seconds: float) -> None:
        self._sleep(seconds)
        if self._stopped.is_set():
            raise MonitorStopped()

    def _wait(self, label: str, delay_ms: int) -> None:
        logger.info("Waiting %s Delay... %dms", label, delay_ms)
        self._pause(delay_ms / 1000.0)

    # ---- Catalog loading ----------------------------------------------------

    def _load_once(self) -> None:
        self.week_tracker.check_week()

        logger.info("Loading products...")
        catalog = self.client.fetch_catalog()
        # Bootstrap fetches below compare not-founds against the week being loaded.
        self.week_tracker.rebase(catalog.release_week)
        snapshots = list(self._executor.map(self.fetch_snapshot, catalog.entries))

        self.store.replace_all(snapshots)
        logger.info("Loaded products! (%d products, week %s)", len(self.store), catalog.release_week)

    def load_catalog(self) -> None:
        """Populate the snapshot store from a fresh catalog, retrying until it works."""
        for attempt in retry_forever(self.error_delay_ms, "loading products", log=logger, sleep=self._pause):
            with attempt:
                try:
                    self._load_once()
                except ReloadRequired as e:
                    # A product vanished mid-load because the week moved; start over.
                    raise RuntimeError(f"release week changed during load ({e})") from e

    # ---- Stock fetching -----------------------------------------------------

    def _fetch_styles(self, product_id: str) -> List[StyleRecord]:
        for attempt in retry_forever(
            self.error_delay_ms, f"fetching stock for {product_id}", log=logger, sleep=self._pause
        ):
            with attempt:
                try:
                    return self.client.fetch_styles(product_id)
                except NotFoundError:
                    if self.week_tracker.check_week():
                        raise ReloadRequired(product_id)
                    raise

    def fetch_snapshot(self, entry: CatalogEntry) -> StockSnapshot:
        return StockSnapshot(product=entry, styles=self._fetch_styles(entry.id))

    def check_stock(self, product_id: str) -> StockCheck:
        """Re-fetch one product and notify for every size that came back in stock.

        The stored snapshot is left as is: diffs always run against the
        snapshot taken by the last catalog load.
        """
        snapshot = self.store.get(product_id)
        if snapshot is None:
            logger.warning("No snapshot for product %s; skipping", product_id)
            return StockCheck.UNCHANGED

        try:
            styles = self._fetch_styles(product_id)
        except ReloadRequired:
            logger.info("New week detected. Loading new products...")
            return StockCheck.RELOAD

        product = snapshot.product
        restocked = False
        for cell in diff_styles(snapshot.styles, styles):
            if cell.change is CellChange.RESTOCKED:
                restocked = True
                logger.info("Restock!: %s (%s / %s)", product.name, cell.style, cell.size)
                self.notifier.notify(
                    RestockEvent(
                        title=product.name,
                        url=self.client.product_url(product_id),
                        style=cell.style,
                        size=cell.size,
                        image_url=product.image_url,
                    )
                )
            elif cell.old_level is None:
                logger.warning(
                    "%s: %s / %s was not in the loaded snapshot; style/size layout changed",
                    product.name, cell.style, cell.size,
                )
            elif cell.change is CellChange.OTHER:
                logger.debug(
                    "%s (%s / %s): stock %s -> %s",
                    product.name, cell.style, cell.size, cell.old_level, cell.new_level,
                )
        return StockCheck.RESTOCKED if restocked else StockCheck.UNCHANGED

    def fetch_stock(
        self, product: Union[CatalogEntry, str], bootstrap: bool = False
    ) -> Union[StockSnapshot, StockCheck]:
        """Bootstrap mode returns a fresh snapshot; diff mode returns a `StockCheck`."""
        if bootstrap:
            if not isinstance(product, CatalogEntry):
                raise TypeError("bootstrap fetch needs a CatalogEntry")
            return self.fetch_snapshot(product)
        product_id = product.id if isinstance(product, CatalogEntry) else product
        return self.check_stock(product_id)

    # ---- Monitoring ---------------------------------------------------------

    def run_cycle(self) -> StockCheck:
        """Check every known product once and combine the results."""
        results = list(self._executor.map(self.check_stock, self.store.ids()))
        if StockCheck.RELOAD in results:
            return StockCheck.RELOAD
        if StockCheck.RESTOCKED in results:
            return StockCheck.RESTOCKED
        return StockCheck.UNCHANGED

    def monitor(self) -> StockCheck:
        """Run cycles until a reload is due; return what triggered it."""
        logger.info("Monitoring...")
        while True:
            try:
                outcome = self.run_cycle()
                if outcome is StockCheck.RELOAD:
                    return outcome
                if outcome is StockCheck.RESTOCKED:
                    self._wait("Restock", self.restock_delay_ms)
                    return outcome
            except (ProxyPoolError, MonitorStopped):
                raise
            except Exception:
                logger.exception("Error running monitor")
            self._wait("Monitor", self.monitor_delay_ms)

    def run(self) -> None:
        """Load, monitor, reload; until `close` is called."""
        while not self._stopped.is_set():
            self.load_catalog()
            self.monitor()

    def close(self) -> None:
        """Stop retry loops at their next wait and drop queued fetches."""
        self._stopped.set()
        self._executor.shutdown(wait=False, cancel_futures=True)


__all__ = ["RestockMonitor", "StockCheck"]

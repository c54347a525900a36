from __future__ import annotations

import json
import threading
from collections import deque
from typing import Any, Dict, Iterable, List, Optional

import pytest
import requests

from restock_monitor.scraper import Catalog, CatalogEntry, parse_styles


def make_response(status: int, body: Any, url: str = "https://shop.test/x.json") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    resp.encoding = "utf-8"
    resp.reason = "OK" if status < 400 else "Error"
    resp.url = url
    return resp


def styles_payload(style: str, sizes: Iterable[str], levels: Iterable[int]) -> Dict[str, Any]:
    return {
        "styles": [
            {
                "name": style,
                "sizes": [{"name": s, "stock_level": lvl} for s, lvl in zip(sizes, levels)],
            }
        ]
    }


def entry(pid: str = "A1", name: str = "Box Logo Tee") -> CatalogEntry:
    return CatalogEntry.from_api({"id": pid, "name": name, "image_url_hi": f"//img.test/{pid}.jpg"})


class FakeClient:
    """Scripted stand-in for CatalogClient.

    Queued results are consumed in order; the last one repeats once a
    queue is down to a single item.  Exceptions in a queue are raised.
    """

    base_url = "https://shop.test"

    def __init__(
        self,
        entries: List[CatalogEntry],
        styles: Dict[str, List[Any]],
        weeks: Optional[List[Any]] = None,
        catalog_week: Any = "1",
        catalog_failures: Optional[List[Exception]] = None,
    ) -> None:
        self.entries = entries
        self.catalog_weeks = deque(catalog_week if isinstance(catalog_week, list) else [catalog_week])
        self.catalog_calls = 0
        self.catalog_failures = deque(catalog_failures or [])
        self.styles = {pid: deque(items) for pid, items in styles.items()}
        self.weeks = deque(weeks if weeks is not None else [self.catalog_weeks[0]])
        self.style_calls: Dict[str, int] = {}
        self.week_calls = 0
        self._lock = threading.Lock()

    @staticmethod
    def _next(queue: deque) -> Any:
        item = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def fetch_catalog(self) -> Catalog:
        self.catalog_calls += 1
        if self.catalog_failures:
            raise self.catalog_failures.popleft()
        return Catalog(release_week=self._next(self.catalog_weeks), entries=list(self.entries))

    def fetch_week(self) -> Any:
        with self._lock:
            self.week_calls += 1
            return self._next(self.weeks)

    def fetch_styles(self, product_id: str):
        with self._lock:
            self.style_calls[product_id] = self.style_calls.get(product_id, 0) + 1
            item = self._next(self.styles[product_id])
        return parse_styles(item) if isinstance(item, dict) else item

    def product_url(self, product_id: str) -> str:
        return f"{self.base_url}/shop/{product_id}"


class FakeNotifier:
    def __init__(self) -> None:
        self.events = []
        self._lock = threading.Lock()

    def notify(self, event) -> None:
        with self._lock:
            self.events.append(event)

    def close(self) -> None:
        pass


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()

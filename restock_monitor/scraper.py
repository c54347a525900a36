from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import requests

from .config import BASE_URL, REQUEST_TIMEOUT
from .proxies import ProxySelector, requests_proxies
from .utils import FetchError, MalformedResponseError, NotFoundError, get_http_session

logger = logging.getLogger(__name__)

IN_STOCK = 1


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    path: str
    image_url: str

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "CatalogEntry":
        try:
            pid = str(item["id"])
            name = str(item["name"])
        except (KeyError, TypeError) as e:
            raise MalformedResponseError(f"Catalog entry without id/name: {item!r}") from e
        image = item.get("image_url_hi") or item.get("image_url") or ""
        return cls(id=pid, name=name, path=f"/shop/{pid}", image_url=_absolute_image_url(image))


@dataclass
class SizeRecord:
    name: str
    stock_level: int


@dataclass
class StyleRecord:
    name: str
    sizes: List[SizeRecord] = field(default_factory=list)


@dataclass
class StockSnapshot:
    product: CatalogEntry
    styles: List[StyleRecord] = field(default_factory=list)


@dataclass
class Catalog:
    release_week: Any
    entries: List[CatalogEntry]


class CellChange(enum.Enum):
    UNCHANGED = "unchanged"
    RESTOCKED = "restocked"
    OTHER = "other"


@dataclass
class CellDiff:
    style: str
    size: str
    old_level: Optional[int]
    new_level: int
    change: CellChange


def _absolute_image_url(src: str) -> str:
    src = (src or "").strip()
    if src.startswith("//"):
        return "https:" + src
    return src


def _build_catalog_endpoint(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/shop.json"


def _build_product_endpoint(base_url: str, product_id: str) -> str:
    return f"{base_url.rstrip('/')}/shop/{product_id}.json"


def parse_styles(payload: Dict[str, Any]) -> List[StyleRecord]:
    """Parse a product-detail payload, keeping the remote style/size order."""
    try:
        return [
            StyleRecord(
                name=str(style.get("name", "")),
                sizes=[
                    SizeRecord(name=str(size.get("name", "")), stock_level=size["stock_level"])
                    for size in style.get("sizes") or []
                ],
            )
            for style in payload["styles"]
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise MalformedResponseError(f"Unexpected product payload: {e!r}") from e


def parse_catalog(payload: Dict[str, Any]) -> Catalog:
    try:
        week = payload["release_week"]
        categories = payload["products_and_categories"]
        entries = [
            CatalogEntry.from_api(item)
            for items in categories.values()
            for item in items
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise MalformedResponseError(f"Unexpected catalog payload: {e!r}") from e
    return Catalog(release_week=week, entries=entries)


def _cell(styles: List[StyleRecord], j: int, i: int) -> Optional[int]:
    if j >= len(styles) or i >= len(styles[j].sizes):
        return None
    return styles[j].sizes[i].stock_level


def diff_styles(old: List[StyleRecord], new: List[StyleRecord]) -> List[CellDiff]:
    """Compare two stock payloads cell by cell.

    Cells are matched by position (style index, size index), not by name:
    the shop is assumed to keep its ordering stable between fetches of the
    same product.  A cell missing from `old` breaks that assumption and is
    reported as OTHER with `old_level` None, never as a restock.

    A cell is RESTOCKED iff it exists in both, its level changed and the
    new level is 1.
    """
    diffs: List[CellDiff] = []
    for j, style in enumerate(new):
        for i, size in enumerate(style.sizes):
            old_level = _cell(old, j, i)
            new_level = size.stock_level
            if old_level is None:
                change = CellChange.OTHER
            elif old_level == new_level:
                change = CellChange.UNCHANGED
            elif new_level == IN_STOCK:
                change = CellChange.RESTOCKED
            else:
                change = CellChange.OTHER
            diffs.append(CellDiff(style.name, size.name, old_level, new_level, change))
    return diffs


def restocked_cells(diffs: Iterable[CellDiff]) -> List[CellDiff]:
    return [d for d in diffs if d.change is CellChange.RESTOCKED]


class CatalogClient:
    """Single-request adapter for the shop's JSON endpoints.

    Every call is one GET; retrying is left to the caller.  Failures are
    classified as `NotFoundError` (the shop's "Not Found" payload) or
    `FetchError` (anything else).
    """

    def __init__(
        self,
        *,
        base_url: str = BASE_URL,
        proxy_selector: Optional[ProxySelector] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.proxy_selector = proxy_selector
        self.session = session or get_http_session(self.base_url)
        self.timeout = timeout

    def product_url(self, product_id: str) -> str:
        return f"{self.base_url}/shop/{product_id}"

    def get_json(self, url: str) -> Any:
        route = self.proxy_selector.select_proxy() if self.proxy_selector else None
        try:
            resp = self.session.get(url, proxies=requests_proxies(route), timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"GET {url} failed: {e}") from e

        if resp.status_code == 404 and _is_not_found_payload(resp):
            raise NotFoundError(f"404 - {resp.text.strip()}")
        if not resp.ok:
            raise FetchError(f"{resp.status_code} - {resp.text.strip()[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(f"GET {url} returned invalid JSON: {e}") from e

    def fetch_catalog(self) -> Catalog:
        return parse_catalog(self.get_json(_build_catalog_endpoint(self.base_url)))

    def fetch_week(self) -> Any:
        payload = self.get_json(_build_catalog_endpoint(self.base_url))
        if not isinstance(payload, dict) or "release_week" not in payload:
            raise MalformedResponseError("Catalog payload without release_week")
        return payload["release_week"]

    def fetch_styles(self, product_id: str) -> List[StyleRecord]:
        return parse_styles(self.get_json(_build_product_endpoint(self.base_url, product_id)))

    def close(self) -> None:
        self.session.close()


def _is_not_found_payload(resp: requests.Response) -> bool:
    try:
        body = resp.json()
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("error") == "Not Found"


__all__ = [
    "CatalogEntry",
    "SizeRecord",
    "StyleRecord",
    "StockSnapshot",
    "Catalog",
    "CellChange",
    "CellDiff",
    "CatalogClient",
    "parse_catalog",
    "parse_styles",
    "diff_styles",
    "restocked_cells",
]

"""In-memory snapshot store.

One `StockSnapshot` per product id, rebuilt wholesale by every catalog
load.  Nothing is persisted across restarts.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .scraper import StockSnapshot


class SnapshotStore:
    def __init__(self) -> None:
        self._snapshots: Dict[str, StockSnapshot] = {}

    def replace_all(self, snapshots: Iterable[StockSnapshot]) -> None:
        """Drop every stored snapshot and store `snapshots` instead."""
        # Swap in a fully built dict so concurrent readers never see a partial store.
        self._snapshots = {s.product.id: s for s in snapshots}

    def get(self, product_id: str) -> Optional[StockSnapshot]:
        return self._snapshots.get(product_id)

    def ids(self) -> List[str]:
        return list(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._snapshots


__all__ = ["SnapshotStore"]

"""Proxy rotation.

The pool is a newline-delimited file of ``host:port`` or
``host:port:user:pass`` entries, read once on first use.  Every request
draws an independent random entry; ``localhost`` and blank lines mean
"go direct".
"""

from __future__ import annotations

import logging
import random
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .utils import ProxyPoolError

logger = logging.getLogger(__name__)

_DIRECT = ("localhost", "")


def format_proxy(entry: Optional[str]) -> Optional[str]:
    """Turn a pool entry into a route usable by requests, or None for direct."""
    if entry is None:
        return None
    entry = entry.strip()
    if entry in _DIRECT:
        return None
    parts = entry.replace(" ", "_", 1).split(":")
    if len(parts) > 3:
        return f"http://{parts[2]}:{parts[3]}@{parts[0]}:{parts[1]}"
    return f"http://{parts[0]}:{parts[1]}" if len(parts) > 1 else f"http://{parts[0]}"


def requests_proxies(route: Optional[str]) -> Optional[Dict[str, str]]:
    if not route:
        return None
    return {"http": route, "https": route}


class ProxySelector:
    def __init__(
        self,
        proxy_file: str,
        *,
        enabled: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.proxy_file = proxy_file
        self.enabled = enabled
        self._rng = rng or random.Random()
        self._pool: Optional[List[str]] = None
        self._lock = threading.Lock()

    def _load(self) -> List[str]:
        with self._lock:
            if self._pool is None:
                try:
                    text = Path(self.proxy_file).read_text(encoding="utf-8")
                except OSError as e:
                    raise ProxyPoolError(f"Cannot read proxy file {self.proxy_file!r}: {e}") from e
                self._pool = [line.strip() for line in text.splitlines()] or [""]
                logger.info("Loaded %d proxies from %s", len(self._pool), self.proxy_file)
            return self._pool

    def select_proxy(self) -> Optional[str]:
        if not self.enabled:
            return None
        return format_proxy(self._rng.choice(self._load()))


__all__ = ["ProxySelector", "format_proxy", "requests_proxies"]

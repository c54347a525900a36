"""
Restock monitoring service package.

This package contains modules for polling a shop's JSON catalog, keeping
in-memory stock snapshots, detecting sizes that come back in stock,
notifying Discord and coordinating the monitoring loop.  See README.md
for details.
"""

__all__ = [
    "config",
    "monitor",
    "notifier",
    "proxies",
    "scraper",
    "store",
    "week",
    "main",
    "utils",
]

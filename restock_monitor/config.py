"""Configuration loader.

Reads environment variables and `.env` to configure the service.
Delays are expressed in milliseconds, matching the monitor's log output.
"""

from __future__ import annotations

import os
from typing import Optional
from pathlib import Path

from dotenv import load_dotenv

# Load variables from a .env file if present (project root).
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: Optional[float]) -> Optional[float]:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# ---- Remote shop -------------------------------------------------------------

# Root of the shop. Should not include a trailing slash.
BASE_URL: str = _get_env("BASE_URL", "https://www.supremenewyork.com")

# Seconds; unset means no explicit timeout (transport default).
REQUEST_TIMEOUT: Optional[float] = _parse_float(_get_env("REQUEST_TIMEOUT"), None)

# ---- Delays (ms) -------------------------------------------------------------

# After a detected restock, wait this long before reloading the catalog.
RESTOCK_DELAY_MS: int = _parse_int(_get_env("RESTOCK_DELAY_MS"), 1000)

# Steady-state poll interval.
MONITOR_DELAY_MS: int = _parse_int(_get_env("MONITOR_DELAY_MS"), 1000)

# Delay before any retry.
ERROR_DELAY_MS: int = _parse_int(_get_env("ERROR_DELAY_MS"), 1500)

# Number of product fetches in flight at once.
MAX_WORKERS: int = _parse_int(_get_env("MAX_WORKERS"), 16)

# ---- Proxies -----------------------------------------------------------------

USE_PROXIES: bool = _parse_bool(_get_env("USE_PROXIES", "false"), False)

# Newline-delimited host:port or host:port:user:pass entries.
PROXY_FILE: str = _get_env("PROXY_FILE", "proxies.txt") or ""

# ---- Discord -----------------------------------------------------------------

# Discord webhook URL. Required for sending notifications.
DISCORD_WEBHOOK_URL: Optional[str] = _get_env("DISCORD_WEBHOOK_URL")

WEBHOOK_FOOTER: str = _get_env("WEBHOOK_FOOTER", "restock-monitor") or ""
WEBHOOK_COLOR: int = _parse_int(_get_env("WEBHOOK_COLOR"), 7785669)

# Logging level: DEBUG, INFO, WARNING, ERROR.
LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO") or "INFO"


# ---- Validation --------------------------------------------------------------

def validate() -> None:
    """Validate required configuration parameters."""
    if not DISCORD_WEBHOOK_URL:
        raise RuntimeError(
            "DISCORD_WEBHOOK_URL must be set. See .env.example for details."
        )
    if USE_PROXIES and not PROXY_FILE:
        raise RuntimeError("USE_PROXIES is enabled but PROXY_FILE is empty.")


def as_dict(mask_secrets: bool = True) -> dict:
    """Return the effective configuration, for the startup dump."""
    webhook = DISCORD_WEBHOOK_URL or ""
    if mask_secrets and webhook:
        webhook = webhook[:32] + "..." if len(webhook) > 32 else "***"
    return {
        "baseUrl": BASE_URL,
        "restockDelay": RESTOCK_DELAY_MS,
        "monitorDelay": MONITOR_DELAY_MS,
        "errorDelay": ERROR_DELAY_MS,
        "maxWorkers": MAX_WORKERS,
        "requestTimeout": REQUEST_TIMEOUT,
        "proxies": {"useProxies": USE_PROXIES, "proxyFile": PROXY_FILE},
        "discord": {
            "webhook": webhook,
            "webhookFooter": WEBHOOK_FOOTER,
            "webhookColor": WEBHOOK_COLOR,
        },
        "logLevel": LOG_LEVEL,
    }


__all__ = [
    "BASE_URL",
    "REQUEST_TIMEOUT",
    "RESTOCK_DELAY_MS",
    "MONITOR_DELAY_MS",
    "ERROR_DELAY_MS",
    "MAX_WORKERS",
    "USE_PROXIES",
    "PROXY_FILE",
    "DISCORD_WEBHOOK_URL",
    "WEBHOOK_FOOTER",
    "WEBHOOK_COLOR",
    "LOG_LEVEL",
    "validate",
    "as_dict",
]

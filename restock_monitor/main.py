from __future__ import annotations

import json
import logging

from . import config
from .monitor import RestockMonitor
from .notifier import DiscordNotifier
from .proxies import ProxySelector
from .scraper import CatalogClient
from .utils import get_http_session

BANNER = r"""
   ___          __           __     __  ___          _ __
  / _ \___ ___ / /____  ____/ /__  /  |/  /__  ___  (_) /____  ____
 / , _/ -_|_-</ __/ _ \/ __/  '_/ / /|_/ / _ \/ _ \/ / __/ _ \/ __/
/_/|_|\__/___/\__/\___/\__/_/\_\ /_/  /_/\___/_//_/_/\__/\___/_/
"""


def setup_logging() -> None:
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_monitor() -> RestockMonitor:
    """Wire the engine from the module-level configuration."""
    selector = ProxySelector(config.PROXY_FILE, enabled=config.USE_PROXIES)
    client = CatalogClient(
        base_url=config.BASE_URL,
        proxy_selector=selector,
        session=get_http_session(config.BASE_URL, pool_size=config.MAX_WORKERS),
        timeout=config.REQUEST_TIMEOUT,
    )
    notifier = DiscordNotifier(
        config.DISCORD_WEBHOOK_URL,
        footer=config.WEBHOOK_FOOTER,
        color=config.WEBHOOK_COLOR,
    )
    return RestockMonitor(
        client,
        notifier,
        restock_delay_ms=config.RESTOCK_DELAY_MS,
        monitor_delay_ms=config.MONITOR_DELAY_MS,
        error_delay_ms=config.ERROR_DELAY_MS,
        max_workers=config.MAX_WORKERS,
    )


def main() -> None:
    """Initialise and run the monitor until the process is stopped."""
    config.validate()
    setup_logging()
    logger = logging.getLogger(__name__)

    print(BANNER)
    logger.info("Config:\n%s", json.dumps(config.as_dict(), indent=4))

    monitor = build_monitor()
    try:
        monitor.run()
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
    finally:
        monitor.close()
        monitor.notifier.close()
        monitor.client.close()


if __name__ == "__main__":
    main()

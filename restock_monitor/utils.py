"""Helper utilities.

This module centralises common helper functions such as creating a
configured HTTP session, the error taxonomy shared by the fetchers and
the retry policies applied to network calls.
"""

from __future__ import annotations

import logging
import ssl
import time
from typing import Any, Callable, Dict, Optional

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from tenacity import (RetryCallState, Retrying, after_log, retry,
                      retry_if_exception_type, retry_if_not_exception_type,
                      stop_after_attempt, wait_exponential, wait_fixed)


logger = logging.getLogger(__name__)

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 8.0.0; Pixel 2 XL Build/OPD1.170816.004) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/79.0.3945.79 Mobile Safari/537.36"
)


class FetchError(Exception):
    """A failed or malformed exchange with the shop API (transient)."""


class NotFoundError(FetchError):
    """The shop answered with its "Not Found" payload."""


class MalformedResponseError(FetchError):
    """The response decoded but did not have the expected shape."""


class ReloadRequired(Exception):
    """The release week rolled over; every known product id is stale."""


class ProxyPoolError(RuntimeError):
    """The proxy list could not be read. Fatal."""


class MonitorStopped(Exception):
    """The monitor was closed while a retry loop was waiting."""


class HTTPError(Exception):
    """Raised when an HTTP request fails (after retries, if retryable)."""


class RetryableHTTPError(HTTPError):
    """Server-side failure or rate limit (5xx, 429); worth another attempt."""


class TLS12Adapter(HTTPAdapter):
    """HTTPS adapter pinned to TLS 1.2, the only version the shop negotiates reliably."""

    def _ssl_context(self) -> ssl.SSLContext:
        ctx = ssl.create_default_context()
        ctx.minimum_version = ssl.TLSVersion.TLSv1_2
        ctx.maximum_version = ssl.TLSVersion.TLSv1_2
        return ctx

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        kwargs["ssl_context"] = self._ssl_context()
        super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, proxy: str, **proxy_kwargs: Any):
        proxy_kwargs["ssl_context"] = self._ssl_context()
        return super().proxy_manager_for(proxy, **proxy_kwargs)


def get_http_session(base_url: Optional[str] = None, pool_size: int = 10) -> requests.Session:
    """Return a new HTTP session with the shop's expected headers.

    The session looks like the mobile site's XHR calls and pins HTTPS to
    TLS 1.2.  Caller is responsible for closing the session or letting it
    be garbage collected.
    """
    session = requests.Session()
    session.headers.update(
        {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Pragma": "no-cache",
            "User-Agent": MOBILE_USER_AGENT,
            "X-Requested-With": "XMLHttpRequest",
        }
    )
    if base_url:
        session.headers["Origin"] = base_url.rstrip("/")
    session.mount("https://", TLS12Adapter(pool_connections=pool_size, pool_maxsize=pool_size))
    return session


def _raise_for_status(resp: Response) -> None:
    try:
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HTTPError(str(e)) from e


def retryable_request(method: Callable[[requests.Session, str, Dict[str, Any]], Response]) -> Callable[..., Response]:
    """Decorator factory to apply retry logic to HTTP calls.

    The decorated function must accept a `requests.Session` as its first
    argument, followed by URL and optional kwargs, and return a
    `requests.Response`.  Retries are attempted for network errors, server
    errors (status >= 500) and rate limiting (429).  Any other 4xx is
    raised at once as `HTTPError`: a wrong webhook URL will not fix itself.
    At most 5 attempts are made with exponential back-off of 1-10 seconds.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((requests.RequestException, RetryableHTTPError)),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> Response:
        response = method(session, url, **kwargs)
        if response.status_code >= 500 or response.status_code == 429:
            raise RetryableHTTPError(f"Server returned status {response.status_code}")
        _raise_for_status(response)
        return response

    return wrapper


def _log_failure(log: logging.Logger, what: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        log.error("Error %s: %s", what, exc)

    return before_sleep


def retry_forever(
    delay_ms: int,
    what: str,
    *,
    log: logging.Logger = logger,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Return a `Retrying` that never gives up.

    Every `Exception` is retried after a fixed `delay_ms`, except
    `ReloadRequired` (a signal, not a failure), `ProxyPoolError` (fatal)
    and `MonitorStopped`.  `KeyboardInterrupt` and other `BaseException`s
    are never retried.  Each failed attempt is logged before the sleep.
    """
    return Retrying(
        wait=wait_fixed(delay_ms / 1000.0),
        retry=(
            retry_if_exception_type(Exception)
            & retry_if_not_exception_type((ReloadRequired, ProxyPoolError, MonitorStopped))
        ),
        before_sleep=_log_failure(log, what),
        sleep=sleep,
        reraise=True,
    )


__all__ = [
    "get_http_session",
    "retryable_request",
    "retry_forever",
    "HTTPError",
    "RetryableHTTPError",
    "MonitorStopped",
    "FetchError",
    "NotFoundError",
    "MalformedResponseError",
    "ReloadRequired",
    "ProxyPoolError",
    "TLS12Adapter",
]

"""Helper utilities.

This module centralises common helper functions such as creating a
configured HTTP session and applying retry policies to network calls.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import requests
from requests import Response
from tenacity import (after_log, retry, retry_if_exception_type,
                      stop_after_attempt, wait_exponential)


logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120 Safari/537.36"
)

RETRY_WAIT = wait_exponential(multiplier=1, min=1, max=10)


class WatchError(Exception):
    """Base class for every error raised by the watcher."""


class HTTPError(WatchError):
    """Raised when the remote side answers with a server error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def get_http_session() -> requests.Session:
    """Return a new HTTP session with browser-like default headers.

    A realistic User-Agent and language header reduce the chance of the
    product page answering with a bot-block page.  Caller is responsible
    for closing the session.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
    )
    return session


def retryable_request(
    method: Callable[..., Response], *, attempts: int = 3
) -> Callable[..., Response]:
    """Apply retry logic to an idempotent HTTP call.

    The decorated function must accept a `requests.Session` as its first
    argument, followed by URL and optional kwargs, and return a
    `requests.Response`.  Connection errors, timeouts and HTTP >= 500 are
    retried with exponential back-off between 1 and 10 seconds.  Any
    other response is handed back untouched so the caller decides what a
    non-200 means.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(max(1, attempts)),
        wait=RETRY_WAIT,
        retry=(
            retry_if_exception_type(requests.ConnectionError)
            | retry_if_exception_type(requests.Timeout)
            | retry_if_exception_type(HTTPError)
        ),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> Response:
        response = method(session, url, **kwargs)
        if response.status_code >= 500:
            raise HTTPError(
                f"Server returned status {response.status_code}",
                status_code=response.status_code,
            )
        return response

    return wrapper


__all__ = ["get_http_session", "retryable_request", "HTTPError", "WatchError", "BROWSER_USER_AGENT"]

"""Product page fetcher.

One GET over TLS to the configured page with browser-like headers.  The
run cannot produce a verdict without content, so anything other than a
200 is a fatal `FetchFailure`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from .utils import HTTPError, WatchError, get_http_session, retryable_request

logger = logging.getLogger(__name__)


class FetchFailure(WatchError):
    """The product page could not be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class Page:
    text: str
    content: bytes


def _get(session: requests.Session, url: str, **kwargs) -> requests.Response:
    return session.get(url, **kwargs)


def fetch_page(
    url: str,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = 20.0,
    attempts: int = 3,
) -> Page:
    """Return the page at `url`, raising `FetchFailure` unless it answers 200.

    `content` holds the bytes as received; `text` is the decoded body.
    """
    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        get = retryable_request(_get, attempts=attempts)
        try:
            resp = get(session, url, timeout=timeout, allow_redirects=True)
        except HTTPError as e:
            raise FetchFailure(f"Page fetch failed: HTTP {e.status_code}", status_code=e.status_code) from e
        except requests.RequestException as e:
            raise FetchFailure(f"Page fetch failed: {e}") from e

        if resp.status_code != 200:
            raise FetchFailure(f"Page fetch failed: HTTP {resp.status_code}", status_code=resp.status_code)

        logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
        return Page(text=resp.text, content=resp.content)
    finally:
        if close_session:
            session.close()


__all__ = ["fetch_page", "FetchFailure", "Page"]

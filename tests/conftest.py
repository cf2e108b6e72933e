from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests

from stock_watch.config import Settings
from stock_watch.emailer import NotificationFailure


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", content: Optional[bytes] = None) -> None:
        self.status_code = status_code
        self.text = text
        self.content = text.encode("utf-8") if content is None else content


class FakeSession:
    """Stands in for requests.Session; replays queued responses."""

    def __init__(self, get: Optional[List[Any]] = None, post: Optional[List[Any]] = None) -> None:
        self._get = list(get or [])
        self._post = list(post or [])
        self.get_calls: List[Dict[str, Any]] = []
        self.post_calls: List[Dict[str, Any]] = []
        self.closed = False

    @staticmethod
    def _next(queue: List[Any]) -> FakeResponse:
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.get_calls.append({"url": url, **kwargs})
        return self._next(self._get)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.post_calls.append({"url": url, **kwargs})
        return self._next(self._post)

    def close(self) -> None:
        self.closed = True


class FakeNotifier:
    def __init__(self, fail_on: tuple = ()) -> None:
        self.fail_on = fail_on
        self.sent: List[Dict[str, Any]] = []

    def send(self, subject: str, text: str, recipients) -> None:
        recipients = list(recipients)
        if any(word in subject for word in self.fail_on):
            raise NotificationFailure("rejected", status_code=401, body='{"errors": []}')
        self.sent.append({"subject": subject, "text": text, "recipients": recipients})


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        page_url="https://store.example.com/deck",
        email_api_key="SG.test",
        primary_recipient="me@example.com",
        sender_address="watcher@example.com",
        secondary_recipient="5551234567@sms.example.com",
        state_file=tmp_path / "last_state.json",
        product_name="Steam Deck",
        fetch_attempts=1,
    )


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture(autouse=True)
def no_network(monkeypatch: pytest.MonkeyPatch) -> None:
    def _blocked(*args, **kwargs):
        raise AssertionError("network access in tests")

    monkeypatch.setattr(requests.Session, "request", _blocked)

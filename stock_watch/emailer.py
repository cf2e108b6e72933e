"""Email notifier via the SendGrid v3 mail API.

Sends plain-text notifications to one or more recipients.  Each send is a
single authenticated POST; a non-2xx answer raises `NotificationFailure`
and is not retried.  Keep bodies short & link out.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

import requests

from .clock import CivilMoment
from .config import Settings
from .utils import WatchError

logger = logging.getLogger(__name__)


class NotificationFailure(WatchError):
    """A notification was not accepted by the delivery service."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _status_label(in_stock: bool) -> str:
    return "IN STOCK" if in_stock else "OUT OF STOCK"


def build_restock_message(settings: Settings, fingerprint: str) -> Tuple[str, str]:
    subject = f"{settings.product_name}: BACK IN STOCK"
    text = f"IN STOCK: {settings.page_url}\n(page hash: {fingerprint})"
    return subject, text


def build_daily_message(
    settings: Settings, moment: CivilMoment, in_stock: bool, fingerprint: str
) -> Tuple[str, str]:
    subject = f"{settings.product_name} daily stock check"
    stamp = f"{moment.date} {moment.clock} {moment.tz_abbrev}".rstrip()
    text = (
        f"Daily check ({stamp})\n"
        f"Status: {_status_label(in_stock)}\n"
        f"{settings.page_url}\n"
        f"(page hash: {fingerprint})"
    )
    return subject, text


def build_test_message(settings: Settings, in_stock: bool, fingerprint: str) -> Tuple[str, str]:
    subject = f"TEST: {settings.product_name} watcher"
    text = (
        "Test email from the stock watcher.\n"
        f"{settings.page_url}\n"
        f"(in_stock={in_stock}, hash={fingerprint})"
    )
    return subject, text


def build_payload(sender: str, recipients: Iterable[str], subject: str, text: str) -> dict:
    return {
        "personalizations": [{"to": [{"email": addr} for addr in recipients]}],
        "from": {"email": sender},
        "subject": subject,
        "content": [{"type": "text/plain", "value": text}],
    }


class SendGridNotifier:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def send(self, subject: str, text: str, recipients: Iterable[str]) -> None:
        to: List[str] = [r for r in recipients if r]
        if not to:
            raise NotificationFailure("No recipients for notification")

        payload = build_payload(self.settings.sender_address, to, subject, text)
        headers = {
            "Authorization": f"Bearer {self.settings.email_api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            resp = self.session.post(
                self.settings.email_api_url,
                json=payload,
                headers=headers,
                timeout=self.settings.http_timeout,
            )
        except requests.RequestException as e:
            raise NotificationFailure(f"Email send failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise NotificationFailure(
                f"Email send failed: {resp.status_code} {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        logger.info("Email sent to %s (subject=%s)", ", ".join(to), subject)

    def close(self) -> None:
        self.session.close()


__all__ = [
    "SendGridNotifier",
    "NotificationFailure",
    "build_restock_message",
    "build_daily_message",
    "build_test_message",
    "build_payload",
]

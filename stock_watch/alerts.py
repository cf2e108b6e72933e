"""Alert decisions for a single run.

Two independent triggers are checked every run, restock first:

- restock: verdict rose from out-of-stock to in-stock since the last run.
  Sent to every alert recipient, at any time of day.
- daily report: the local clock is inside the report window and no report
  has gone out for today's date yet.  Sent to the primary recipient only.

A failed send is logged and never blocks the next trigger or the state
update; the alert is simply lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Protocol, Tuple

from .clock import CivilMoment, in_window
from .config import Settings
from .emailer import (NotificationFailure, build_daily_message,
                      build_restock_message, build_test_message)
from .state import WatchState

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, subject: str, text: str, recipients: Iterable[str]) -> None: ...


@dataclass
class RunOutcome:
    verdict: bool
    fingerprint: str
    state: WatchState
    restock_sent: bool = False
    daily_sent: bool = False
    failures: List[Tuple[str, NotificationFailure]] = field(default_factory=list)


def should_send_restock(verdict: bool, prior: WatchState) -> bool:
    return verdict and not prior.last_in_stock


def should_send_daily(
    moment: CivilMoment, prior: WatchState, hour: int = 8, window_minutes: int = 15
) -> bool:
    return in_window(moment, hour, window_minutes) and prior.last_daily_report_date != moment.date


def _try_send(
    notifier: Notifier,
    kind: str,
    subject: str,
    text: str,
    recipients: List[str],
    failures: List[Tuple[str, NotificationFailure]],
) -> bool:
    try:
        notifier.send(subject, text, recipients)
    except NotificationFailure as e:
        failures.append((kind, e))
        logger.error(
            "Failed to send %s email to %s (status=%s): %s",
            kind, ", ".join(recipients), e.status_code, e.body or e,
        )
        return False
    logger.info("%s email sent.", kind.capitalize())
    return True


def process_run(
    settings: Settings,
    prior: WatchState,
    verdict: bool,
    fingerprint: str,
    moment: CivilMoment,
    notifier: Notifier,
) -> RunOutcome:
    """Send whatever this run calls for and return the next state to persist."""
    failures: List[Tuple[str, NotificationFailure]] = []

    if settings.send_test_email:
        subject, text = build_test_message(settings, verdict, fingerprint)
        _try_send(notifier, "test", subject, text, settings.alert_recipients, failures)

    restock_sent = False
    if should_send_restock(verdict, prior):
        subject, text = build_restock_message(settings, fingerprint)
        restock_sent = _try_send(notifier, "restock", subject, text, settings.alert_recipients, failures)

    next_state = replace(prior, last_in_stock=verdict, last_fingerprint=fingerprint)

    daily_sent = False
    if should_send_daily(moment, prior, settings.report_hour, settings.report_window_minutes):
        subject, text = build_daily_message(settings, moment, verdict, fingerprint)
        daily_sent = _try_send(notifier, "daily", subject, text, settings.report_recipients, failures)
        # advances even on failure: a failed report is skipped until tomorrow
        next_state.last_daily_report_date = moment.date

    return RunOutcome(
        verdict=verdict,
        fingerprint=fingerprint,
        state=next_state,
        restock_sent=restock_sent,
        daily_sent=daily_sent,
        failures=failures,
    )


__all__ = ["Notifier", "RunOutcome", "process_run", "should_send_restock", "should_send_daily"]

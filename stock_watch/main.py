"""Single-run entrypoint.

Meant to be invoked once per tick by an external scheduler (cron, CI
schedule, ...).  The scheduler must not start a run while the previous
one is still going: the state file has no locking.

Exit codes: 0 ok, 1 run failed (fetch, persist or unexpected error),
2 configuration missing or invalid.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
from datetime import datetime
from typing import List, Optional

import requests

from . import classifier, clock, config, fetcher
from .alerts import Notifier, RunOutcome, process_run
from .emailer import SendGridNotifier
from .state import PersistFailure, StateStore
from .utils import get_http_session

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def setup_logging(level_name: str = "INFO") -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def run_once(
    settings: config.Settings,
    *,
    now: Optional[datetime] = None,
    session: Optional[requests.Session] = None,
    store: Optional[StateStore] = None,
    notifier: Optional[Notifier] = None,
) -> RunOutcome:
    """Perform one fetch-classify-notify-persist cycle.

    Raises `FetchFailure` before any side effect and `PersistFailure` after
    notifications have already gone out.
    """
    logger = logging.getLogger(__name__)

    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True
    own_notifier: Optional[SendGridNotifier] = None
    try:
        page = fetcher.fetch_page(
            settings.page_url,
            session=session,
            timeout=settings.http_timeout,
            attempts=settings.fetch_attempts,
        )
        verdict = classifier.classify(page.text)
        page_hash = classifier.fingerprint(page.content)

        store = store or StateStore(settings.state_file)
        prior = store.load()
        logger.info("in_stock=%s prev=%s hash=%s", verdict, prior.last_in_stock, page_hash)

        moment = clock.evaluate(now, settings.timezone)
        if notifier is None:
            notifier = own_notifier = SendGridNotifier(settings)
        outcome = process_run(settings, prior, verdict, page_hash, moment, notifier)

        store.save(outcome.state)
        return outcome
    finally:
        if own_notifier is not None:
            own_notifier.close()
        if close_session:
            session.close()


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="stock-watch",
        description="Check a product page once and email on restock / daily report.",
    )
    parser.add_argument("--test-email", action="store_true", help="also send a diagnostic test email this run")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        settings = config.load_settings()
    except config.ConfigurationMissing as e:
        setup_logging(args.log_level or "INFO")
        logging.getLogger(__name__).error("%s", e)
        return EXIT_CONFIG

    if args.test_email:
        settings = dataclasses.replace(settings, send_test_email=True)
    setup_logging(args.log_level or settings.log_level)
    logger = logging.getLogger(__name__)

    try:
        outcome = run_once(settings)
    except fetcher.FetchFailure as e:
        logger.error("%s", e)
        return EXIT_FAILURE
    except PersistFailure as e:
        logger.error("Notifications were handled but state was not saved: %s", e)
        return EXIT_FAILURE
    except Exception:
        logger.exception("Unexpected error during run")
        return EXIT_FAILURE

    if outcome.failures:
        logger.warning("Run finished with %d failed notification(s)", len(outcome.failures))
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from stock_watch import config, main
from stock_watch.classifier import fingerprint
from stock_watch.fetcher import FetchFailure
from stock_watch.state import PersistFailure, StateStore, WatchState

from conftest import FakeNotifier, FakeResponse, FakeSession

PAGE_IN_STOCK = "<h1>Steam Deck</h1><button>Buy Now</button>"
JAN2_0810_ET = datetime(2024, 1, 2, 13, 10, tzinfo=timezone.utc)
JAN2_1400_ET = datetime(2024, 1, 2, 19, 0, tzinfo=timezone.utc)


def _write_state(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")


def test_restock_and_daily_report_end_to_end(settings, notifier: FakeNotifier) -> None:
    _write_state(settings.state_file, {"lastInStock": False, "lastHash": "abc", "lastDailyReportDate": "2024-01-01"})
    session = FakeSession(get=[FakeResponse(200, PAGE_IN_STOCK)])

    outcome = main.run_once(settings, now=JAN2_0810_ET, session=session, notifier=notifier)

    assert len(notifier.sent) == 2
    assert len(notifier.sent[0]["recipients"]) == 2
    assert notifier.sent[1]["recipients"] == ["me@example.com"]
    expected = WatchState(True, fingerprint(PAGE_IN_STOCK), "2024-01-02")
    assert outcome.state == expected
    assert StateStore(settings.state_file).load() == expected


def test_steady_in_stock_afternoon_sends_nothing(settings, notifier: FakeNotifier) -> None:
    _write_state(settings.state_file, {"lastInStock": True, "lastHash": "old", "lastDailyReportDate": "2024-01-02"})
    session = FakeSession(get=[FakeResponse(200, PAGE_IN_STOCK)])

    main.run_once(settings, now=JAN2_1400_ET, session=session, notifier=notifier)

    assert notifier.sent == []
    assert StateStore(settings.state_file).load() == WatchState(True, fingerprint(PAGE_IN_STOCK), "2024-01-02")


def test_back_to_back_runs_in_window_send_one_daily_report(settings, notifier: FakeNotifier) -> None:
    page = "<span>Sold out</span>"
    for minute in (10, 11):
        session = FakeSession(get=[FakeResponse(200, page)])
        now = datetime(2024, 1, 2, 13, minute, tzinfo=timezone.utc)
        main.run_once(settings, now=now, session=session, notifier=notifier)

    assert [m["subject"] for m in notifier.sent] == ["Steam Deck daily stock check"]


def test_corrupt_state_file_is_treated_as_fresh(settings, notifier: FakeNotifier) -> None:
    settings.state_file.write_text("{{{", encoding="utf-8")
    session = FakeSession(get=[FakeResponse(200, PAGE_IN_STOCK)])

    main.run_once(settings, now=JAN2_1400_ET, session=session, notifier=notifier)

    assert [m["subject"] for m in notifier.sent] == ["Steam Deck: BACK IN STOCK"]


def test_fetch_failure_has_no_side_effects(settings, notifier: FakeNotifier) -> None:
    session = FakeSession(get=[FakeResponse(403, "denied")])
    with pytest.raises(FetchFailure):
        main.run_once(settings, now=JAN2_0810_ET, session=session, notifier=notifier)
    assert notifier.sent == []
    assert not settings.state_file.exists()


class _BrokenStore(StateStore):
    def save(self, state: WatchState) -> None:
        raise PersistFailure("disk full")


def test_persist_failure_surfaces_after_notifications(settings, notifier: FakeNotifier) -> None:
    session = FakeSession(get=[FakeResponse(200, PAGE_IN_STOCK)])
    store = _BrokenStore(settings.state_file)
    with pytest.raises(PersistFailure):
        main.run_once(settings, now=JAN2_1400_ET, session=session, store=store, notifier=notifier)
    assert len(notifier.sent) == 1


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    monkeypatch.setattr(config, "DOTENV_PATH", tmp_path / "missing.env")
    for name in ("PAGE_URL", "EMAIL_API_KEY", "PRIMARY_RECIPIENT", "SENDER_ADDRESS", "SECONDARY_RECIPIENT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def _set_required(env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env.setenv("PAGE_URL", "https://store.example.com/deck")
    env.setenv("EMAIL_API_KEY", "SG.key")
    env.setenv("PRIMARY_RECIPIENT", "me@example.com")
    env.setenv("SENDER_ADDRESS", "watcher@example.com")
    env.setenv("STATE_FILE", str(tmp_path / "state.json"))


def test_main_missing_config_exits_2(env) -> None:
    assert main.main([]) == main.EXIT_CONFIG


def test_main_fetch_failure_exits_1(env, tmp_path: Path) -> None:
    _set_required(env, tmp_path)

    def fail(settings, **kwargs):
        raise FetchFailure("Page fetch failed: HTTP 503", status_code=503)

    env.setattr(main, "run_once", fail)
    assert main.main([]) == main.EXIT_FAILURE


def test_main_persist_failure_exits_1(env, tmp_path: Path) -> None:
    _set_required(env, tmp_path)

    def fail(settings, **kwargs):
        raise PersistFailure("read-only filesystem")

    env.setattr(main, "run_once", fail)
    assert main.main([]) == main.EXIT_FAILURE


def test_main_success_and_test_email_flag(env, tmp_path: Path) -> None:
    _set_required(env, tmp_path)
    seen = {}

    def ok(settings, **kwargs):
        seen["settings"] = settings
        return main.RunOutcome(verdict=False, fingerprint="h", state=WatchState())

    env.setattr(main, "run_once", ok)
    assert main.main(["--test-email"]) == main.EXIT_OK
    assert seen["settings"].send_test_email is True
    assert seen["settings"].state_file == tmp_path / "state.json"


def test_state_hash_is_taken_over_raw_page_bytes(settings, notifier: FakeNotifier) -> None:
    raw = "<p>Café – Buy Now</p>".encode("utf-8")
    session = FakeSession(get=[FakeResponse(200, raw.decode("iso-8859-1"), content=raw)])

    outcome = main.run_once(settings, now=JAN2_1400_ET, session=session, notifier=notifier)

    assert outcome.verdict is True
    assert outcome.state.last_fingerprint == fingerprint(raw)

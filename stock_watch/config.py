"""Configuration loader.

Reads environment variables and `.env` to configure a single watcher run.
Everything is collected into one immutable `Settings` value that is built
once at startup and handed to each component that needs it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from .utils import WatchError

DOTENV_PATH = Path(__file__).resolve().parents[1] / ".env"

REQUIRED_VARS = ("PAGE_URL", "EMAIL_API_KEY", "PRIMARY_RECIPIENT", "SENDER_ADDRESS")

DEFAULT_EMAIL_API_URL = "https://api.sendgrid.com/v3/mail/send"


class ConfigurationMissing(WatchError, RuntimeError):
    """One or more required settings are absent."""


class ConfigurationInvalid(ConfigurationMissing):
    """A setting is present but cannot be used."""


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes")


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value is not None else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    page_url: str
    email_api_key: str
    primary_recipient: str
    sender_address: str
    secondary_recipient: Optional[str] = None
    state_file: Path = Path("last_state.json")
    timezone: str = "America/New_York"
    report_hour: int = 8
    report_window_minutes: int = 15
    product_name: str = "Product"
    email_api_url: str = DEFAULT_EMAIL_API_URL
    http_timeout: float = 20.0
    fetch_attempts: int = 3
    send_test_email: bool = False
    log_level: str = "INFO"

    @property
    def alert_recipients(self) -> List[str]:
        """Primary plus secondary channel, used for restock alerts."""
        recipients: List[str] = []
        for addr in (self.primary_recipient, self.secondary_recipient):
            if addr and addr not in recipients:
                recipients.append(addr)
        return recipients

    @property
    def report_recipients(self) -> List[str]:
        """Primary only; the daily report stays off the urgent channel."""
        return [self.primary_recipient]


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build `Settings` from `env` (defaults to `.env` + process environment).

    Raises `ConfigurationMissing` naming every absent required variable, and
    `ConfigurationInvalid` when the report timezone is unknown.
    """
    if env is None:
        load_dotenv(dotenv_path=DOTENV_PATH)
        env = os.environ

    def get(name: str, default: Optional[str] = None) -> Optional[str]:
        value = env.get(name)
        if value is None or not value.strip():
            return default
        return value.strip()

    missing = [name for name in REQUIRED_VARS if not get(name)]
    if missing:
        raise ConfigurationMissing(f"Missing env vars: {', '.join(missing)}")

    timezone = get("REPORT_TIMEZONE", "America/New_York")
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationInvalid(f"Unknown REPORT_TIMEZONE: {timezone!r}") from e

    report_hour = _parse_int(get("REPORT_HOUR"), 8)
    if not 0 <= report_hour <= 23:
        raise ConfigurationInvalid(f"REPORT_HOUR must be 0-23, got {report_hour}")
    window = _parse_int(get("REPORT_WINDOW_MINUTES"), 15)
    if not 1 <= window <= 60:
        raise ConfigurationInvalid(f"REPORT_WINDOW_MINUTES must be 1-60, got {window}")

    return Settings(
        page_url=get("PAGE_URL"),
        email_api_key=get("EMAIL_API_KEY"),
        primary_recipient=get("PRIMARY_RECIPIENT"),
        sender_address=get("SENDER_ADDRESS"),
        secondary_recipient=get("SECONDARY_RECIPIENT"),
        state_file=Path(get("STATE_FILE", "last_state.json")),
        timezone=timezone,
        report_hour=report_hour,
        report_window_minutes=window,
        product_name=get("PRODUCT_NAME", "Product"),
        email_api_url=get("EMAIL_API_URL", DEFAULT_EMAIL_API_URL),
        http_timeout=_parse_float(get("HTTP_TIMEOUT_SECONDS"), 20.0),
        fetch_attempts=_parse_int(get("FETCH_ATTEMPTS"), 3),
        send_test_email=_parse_bool(get("SEND_TEST_EMAIL"), False),
        log_level=get("LOG_LEVEL", "INFO"),
    )


__all__ = [
    "Settings",
    "load_settings",
    "ConfigurationMissing",
    "ConfigurationInvalid",
    "REQUIRED_VARS",
    "DEFAULT_EMAIL_API_URL",
]

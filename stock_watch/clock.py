"""Civil-time helpers for the daily report window.

The report is anchored to local wall-clock time, so the instant is
converted with the zone's own offset rules (tz database via `zoneinfo`)
rather than a fixed UTC offset.

On DST transition days the zone may map zero or two instants onto a
given wall-clock minute.  Whatever `zoneinfo` reports for the instant is
taken as authoritative; no special casing is done.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class CivilMoment:
    date: str  # YYYY-MM-DD
    hour: int
    minute: int
    tz_abbrev: str = ""

    @property
    def clock(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def evaluate(instant: Optional[datetime], timezone_name: str) -> CivilMoment:
    """Convert `instant` to wall-clock fields in `timezone_name`.

    Naive datetimes are taken to be UTC.  `None` means now.
    """
    if instant is None:
        instant = datetime.now(timezone.utc)
    elif instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    local = instant.astimezone(ZoneInfo(timezone_name))
    return CivilMoment(
        date=local.strftime("%Y-%m-%d"),
        hour=local.hour,
        minute=local.minute,
        tz_abbrev=local.tzname() or "",
    )


def in_window(moment: CivilMoment, hour: int = 8, window_minutes: int = 15) -> bool:
    return moment.hour == hour and moment.minute < window_minutes


__all__ = ["CivilMoment", "evaluate", "in_window"]

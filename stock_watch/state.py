"""JSON persistence layer for the watcher's last-known state.

A single `WatchState` snapshot lives in one file.  Writes go to a temp
file first and are then moved into place so a reader never sees a half
written document.  There is no locking: runs must not overlap.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from .utils import WatchError

logger = logging.getLogger(__name__)


class StateUnavailable(WatchError):
    """The state file is missing or unreadable."""


class PersistFailure(WatchError):
    """The state file could not be written."""


@dataclass
class WatchState:
    last_in_stock: bool = False
    last_fingerprint: str = ""
    last_daily_report_date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastInStock": self.last_in_stock,
            "lastHash": self.last_fingerprint,
            "lastDailyReportDate": self.last_daily_report_date,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "WatchState":
        if not isinstance(data, dict):
            raise StateUnavailable(f"expected a JSON object, got {type(data).__name__}")
        in_stock = data.get("lastInStock", False)
        fp = data.get("lastHash", "")
        report_date = data.get("lastDailyReportDate", "")
        if not isinstance(in_stock, bool):
            raise StateUnavailable(f"lastInStock is not a bool: {in_stock!r}")
        if not isinstance(fp, str) or not isinstance(report_date, str):
            raise StateUnavailable("lastHash/lastDailyReportDate must be strings")
        return cls(last_in_stock=in_stock, last_fingerprint=fp, last_daily_report_date=report_date)


class StateStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> WatchState:
        if not self.path.is_file():
            raise StateUnavailable(f"{self.path} does not exist")
        try:
            raw = json.loads(self.path.read_text("utf-8"))
        except (OSError, UnicodeDecodeError, ValueError, RecursionError) as e:
            raise StateUnavailable(str(e)) from e
        return WatchState.from_dict(raw)

    def load(self) -> WatchState:
        """Return the persisted state, or defaults when there is none usable."""
        try:
            return self._read()
        except StateUnavailable as e:
            if self.path.exists():
                logger.warning("Could not load state from %s (%s); starting from defaults", self.path, e)
            else:
                logger.info("No state file at %s; starting from defaults", self.path)
            return WatchState()

    def save(self, state: WatchState) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise PersistFailure(f"Failed saving state to {self.path}: {e}") from e


__all__ = ["WatchState", "StateStore", "StateUnavailable", "PersistFailure"]

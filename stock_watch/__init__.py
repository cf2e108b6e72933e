"""
Single-product stock watcher.

This package checks one product page per run, decides whether it looks
purchasable, emails on a restock and once a day at a fixed local time,
and remembers the last state between runs in a small JSON file.
"""

__version__ = "0.1.0"

__all__ = [
    "alerts",
    "classifier",
    "clock",
    "config",
    "emailer",
    "fetcher",
    "main",
    "state",
    "utils",
]

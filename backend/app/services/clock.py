"""
Clock
=====
"Today" decides streaks, the one-entry-per-day rule and date labels, so
it is injected everywhere instead of read from the wall clock inline.
Tests pass a lambda returning a fixed date.
"""

from __future__ import annotations

import time
from datetime import date
from typing import Callable

Clock = Callable[[], date]


def local_today() -> date:
    """The device's local calendar day."""
    return date.today()


def now_millis() -> int:
    return int(time.time() * 1000)

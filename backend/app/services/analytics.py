"""
Mood Analytics
==============
Pure functions behind the home, history and insights screens: averages,
best mood, colour bands, the 7-bar trend chart and the daily streak.

Nothing here reads the clock or touches storage. Callers pass "today"
explicitly, so a test can pin it.

Streak policy: the chain must end today. No entry today means a streak
of 0 even if yesterday and the day before were logged, and the walk
back stops at the first missing day.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from app.models.checkin import CheckIn
from app.models.insight import MoodBand, MoodSummary, TrendPoint

TREND_WINDOW = 7
DEFAULT_CHART_HEIGHT = 120.0
MAX_STREAK_DAYS = 365

MOOD_BAND_COLORS: dict[MoodBand, str] = {
    MoodBand.LOW: "#ff6b6b",       # red
    MoodBand.MID_LOW: "#ffd93d",   # yellow
    MoodBand.MID_HIGH: "#6bcf7f",  # light green
    MoodBand.HIGH: "#4ecdc4",      # teal
}

_MOOD_EMOJIS = ("😢", "😟", "😕", "😐", "🙂", "😊", "😄", "😃", "😁", "🤩")


def most_recent_first(check_ins: Iterable[CheckIn]) -> list[CheckIn]:
    return sorted(check_ins, key=lambda c: (c.date, c.timestamp), reverse=True)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def average_mood(check_ins: Sequence[CheckIn]) -> float:
    """Mean mood, or 0.0 for an empty history."""
    if not check_ins:
        return 0.0
    return sum(c.mood for c in check_ins) / len(check_ins)


def best_mood(check_ins: Sequence[CheckIn]) -> Optional[int]:
    if not check_ins:
        return None
    return max(c.mood for c in check_ins)


def calculate_streak(check_ins: Iterable[CheckIn], today: date) -> int:
    """Consecutive logged days ending today."""
    logged = {c.date for c in check_ins}
    streak = 0
    day = today
    while streak < MAX_STREAK_DAYS and day in logged:
        streak += 1
        day -= timedelta(days=1)
    return streak


def summarize(check_ins: Sequence[CheckIn], today: date) -> MoodSummary:
    return MoodSummary(
        total_entries=len(check_ins),
        average_mood=round(average_mood(check_ins), 1),
        best_mood=best_mood(check_ins),
        streak=calculate_streak(check_ins, today),
    )


# ---------------------------------------------------------------------------
# Bands & chart
# ---------------------------------------------------------------------------

def mood_band(mood: int) -> MoodBand:
    if mood <= 3:
        return MoodBand.LOW
    if mood <= 5:
        return MoodBand.MID_LOW
    if mood <= 7:
        return MoodBand.MID_HIGH
    return MoodBand.HIGH


def mood_color(mood: int) -> str:
    return MOOD_BAND_COLORS[mood_band(mood)]


def mood_emoji(mood: int) -> str:
    index = min(max(mood, 1), len(_MOOD_EMOJIS)) - 1
    return _MOOD_EMOJIS[index]


def trend_series(
    check_ins: Iterable[CheckIn],
    max_height: float = DEFAULT_CHART_HEIGHT,
) -> list[TrendPoint]:
    """The last 7 entries, oldest first, as chart bars."""
    recent = most_recent_first(check_ins)[:TREND_WINDOW]
    recent.reverse()
    return [
        TrendPoint(
            date=c.date,
            label=format_date_short(c.date),
            mood=c.mood,
            height=c.mood / 10 * max_height,
            color=mood_color(c.mood),
        )
        for c in recent
    ]


# ---------------------------------------------------------------------------
# Date labels
# ---------------------------------------------------------------------------

def format_date_short(day: date) -> str:
    """'Oct 16'"""
    return f"{day:%b} {day.day}"


def format_full_date(day: date) -> str:
    """'Fri, Oct 16, 2026'"""
    return f"{day:%a}, {day:%b} {day.day}, {day.year}"


def format_relative_date(day: date, today: date) -> str:
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return format_date_short(day)

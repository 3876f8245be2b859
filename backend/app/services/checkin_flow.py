"""
Check-in Flow
=============
The screens' actions as explicit pipelines:

    read (repository) -> generate (orchestrator) -> write (repository)

Each stage short-circuits the next: a failed insight is never written,
and a storage error surfaces before any model call is made.

This is also where the user-facing fallback texts live. The orchestrator
only says "failed, because X"; what the user sees instead is decided here.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from app.config import get_settings
from app.models.checkin import DEFAULT_GOAL, DEFAULT_USER_NAME, CheckIn
from app.models.insight import InsightResult, InsightsSummaryResponse, PatternInsight
from app.services.analytics import summarize, trend_series
from app.services.checkin_repository import (
    CheckInRepository,
    CheckInValidationError,
    get_checkin_repository,
)
from app.services.clock import now_millis
from app.services.insight_orchestrator import (
    RECENT_MOOD_WINDOW,
    InsightOrchestrator,
    get_insight_orchestrator,
)

logger = logging.getLogger(__name__)

WELCOME_INSIGHT = (
    "Welcome to your wellness journey! Start by completing your first daily "
    "check-in. Regular tracking helps identify patterns in your mood and "
    "provides personalized recommendations. Take a moment each day to reflect "
    "on how you're feeling."
)
PATTERN_FALLBACK = (
    "Your wellness journey is unique. Keep tracking your mood to unlock "
    "personalized AI insights!"
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class CheckInNotFoundError(Exception):
    def __init__(self, day: date) -> None:
        self.day = day
        super().__init__(f"No check-in for {day.isoformat()}")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CheckInService:
    """Check-in, insight and history actions for one local user."""

    def __init__(
        self,
        repository: CheckInRepository | None = None,
        orchestrator: InsightOrchestrator | None = None,
    ) -> None:
        self._repo = repository or get_checkin_repository()
        self._orchestrator = orchestrator or get_insight_orchestrator()

    @property
    def repository(self) -> CheckInRepository:
        return self._repo

    def today(self) -> date:
        return self._repo.clock()

    async def preview_insight(self, mood: int, journal: str) -> InsightResult:
        """Insight for a mood + journal the user has not saved yet."""
        if not journal or not journal.strip():
            raise CheckInValidationError("journal", "must not be empty")

        check_ins = await self._repo.get_all()
        recent_moods = [c.mood for c in check_ins[:RECENT_MOOD_WINDOW]]
        goal = await self._goal()

        return await self._orchestrator.generate_entry_insight(mood, journal, goal, recent_moods)

    async def submit_checkin(self, mood: int, journal: str, ai_insight: str = "") -> CheckIn:
        """Save today's check-in. A second submission on the same day is refused."""
        entry = CheckIn(
            id=str(uuid.uuid4()),
            date=self.today(),
            mood=mood,
            journal=journal,
            ai_insight=ai_insight or "",
            timestamp=now_millis(),
        )
        await self._repo.insert_if_absent(entry)
        return entry

    async def attach_insight(self, day: date) -> InsightResult:
        """Generate an insight for a stored entry and merge it into the record."""
        check_ins = await self._repo.get_all()
        entry = next((c for c in check_ins if c.date == day), None)
        if entry is None:
            raise CheckInNotFoundError(day)

        prior_moods = [c.mood for c in check_ins if c.date < day][:RECENT_MOOD_WINDOW]
        goal = await self._goal()

        result = await self._orchestrator.generate_entry_insight(
            entry.mood, entry.journal, goal, prior_moods
        )
        if not result.ok:
            return result

        updated = await self._repo.update(day, {"ai_insight": result.text})
        if updated is None:
            logger.info("Check-in for %s was deleted while its insight was generated", day)
            raise CheckInNotFoundError(day)
        return result

    async def pattern_insights(self) -> PatternInsight:
        check_ins = await self._repo.get_all()
        if not check_ins:
            return PatternInsight(text=WELCOME_INSIGHT, ai_generated=False, check_in_count=0)

        profile = await self._repo.get_profile()
        name = profile.name if profile else DEFAULT_USER_NAME

        result = await self._orchestrator.analyze_mood_patterns(check_ins, name)
        if result.ok:
            return PatternInsight(text=result.text, ai_generated=True, check_in_count=len(check_ins))
        return PatternInsight(text=PATTERN_FALLBACK, ai_generated=False, check_in_count=len(check_ins))

    async def summary(self) -> InsightsSummaryResponse:
        check_ins = await self._repo.get_all()
        return InsightsSummaryResponse(
            summary=summarize(check_ins, self.today()),
            trend=trend_series(check_ins, max_height=get_settings().trend_chart_height),
        )

    async def _goal(self) -> str:
        profile = await self._repo.get_profile()
        return profile.goal if profile else DEFAULT_GOAL


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_service: Optional[CheckInService] = None


def get_checkin_service() -> CheckInService:
    global _default_service
    if _default_service is None:
        _default_service = CheckInService()
    return _default_service

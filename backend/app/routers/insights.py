"""
Insights Router
===============
GET /api/v1/insights/summary: Stats + 7-day trend chart.
GET /api/v1/insights/patterns: AI analysis across the whole history.

summary:
    total_entries, average_mood (1 decimal, 0 when empty), best_mood
    (null when empty), streak (consecutive days ending today), and the
    last 7 entries oldest-first as chart bars with their band colour.

patterns:
    Always 200 with displayable text. A brand-new user gets the welcome
    message without a model call; a failed model call gets the static
    "keep tracking" message. ``ai_generated`` tells the app which one
    it is showing.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from app.db.store import StorageError
from app.models.insight import InsightsSummaryResponse, PatternInsight
from app.services.checkin_flow import get_checkin_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/insights", tags=["insights"])


def _storage_failure(exc: StorageError) -> HTTPException:
    logger.error("Failed to load check-ins for insights: %s", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": "Failed to load check-ins", "code": "storage_error"},
    )


@router.get(
    "/summary",
    response_model=InsightsSummaryResponse,
    summary="Mood statistics and trend chart",
)
async def get_summary() -> InsightsSummaryResponse:
    try:
        return await get_checkin_service().summary()
    except StorageError as exc:
        raise _storage_failure(exc) from exc


@router.get(
    "/patterns",
    response_model=PatternInsight,
    summary="AI analysis of mood patterns",
    description=(
        "Analyses the full check-in history. Falls back to static text for new "
        "users or when the AI service is unavailable."
    ),
)
async def get_patterns() -> PatternInsight:
    try:
        return await get_checkin_service().pattern_insights()
    except StorageError as exc:
        raise _storage_failure(exc) from exc

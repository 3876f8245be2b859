"""
Check-in Router
===============
/api/v1/checkins: the daily check-in screen and the history list.

    GET    /api/v1/checkins                    All entries, newest first
    GET    /api/v1/checkins/today              Today's entry
    GET    /api/v1/checkins/{date}             One day's entry
    POST   /api/v1/checkins                    Save today's check-in
    DELETE /api/v1/checkins/{id}               Delete an entry
    POST   /api/v1/checkins/insight/preview    Insight for an unsaved entry
    POST   /api/v1/checkins/{date}/insight     Generate + attach an insight

A failed insight is not an HTTP error: the response carries
``success: false`` and the app shows its own "try again" message.
Storage failures are 500s; nothing is half-written.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Response, status

from app.db.store import StorageError
from app.models.checkin import CheckIn, CheckInCreate, InsightPreviewRequest
from app.models.insight import InsightResponse
from app.services.checkin_flow import (
    CheckInNotFoundError,
    get_checkin_service,
)
from app.services.checkin_repository import CheckInExistsError, CheckInValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/checkins", tags=["checkins"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _storage_failure(exc: StorageError, message: str) -> HTTPException:
    logger.error("%s: %s", message, exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": message, "code": "storage_error"},
    )


def _not_found(day: date) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": f"No check-in for {day.isoformat()}", "code": "checkin_not_found"},
    )


def _invalid(exc: CheckInValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": str(exc), "code": "invalid_checkin", "field": exc.field},
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get("", response_model=list[CheckIn], summary="List all check-ins")
async def list_checkins() -> list[CheckIn]:
    try:
        return await get_checkin_service().repository.get_all()
    except StorageError as exc:
        raise _storage_failure(exc, "Failed to load check-ins") from exc


@router.get(
    "/today",
    response_model=CheckIn,
    summary="Get today's check-in",
    responses={404: {"description": "No check-in yet today"}},
)
async def get_today_checkin() -> CheckIn:
    service = get_checkin_service()
    try:
        entry = await service.repository.get_today()
    except StorageError as exc:
        raise _storage_failure(exc, "Failed to load check-in") from exc
    if entry is None:
        raise _not_found(service.today())
    return entry


@router.get("/{day}", response_model=CheckIn, summary="Get the check-in for a date")
async def get_checkin_by_date(day: date) -> CheckIn:
    try:
        entry = await get_checkin_service().repository.get_by_date(day)
    except StorageError as exc:
        raise _storage_failure(exc, "Failed to load check-in") from exc
    if entry is None:
        raise _not_found(day)
    return entry


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=CheckIn,
    status_code=status.HTTP_201_CREATED,
    summary="Save today's check-in",
    responses={
        201: {"description": "Check-in saved"},
        409: {"description": "Already checked in today"},
        422: {"description": "Validation error (mood range, empty journal)"},
    },
)
async def submit_checkin(body: CheckInCreate) -> CheckIn:
    try:
        return await get_checkin_service().submit_checkin(body.mood, body.journal, body.ai_insight)
    except CheckInExistsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "You've already checked in today", "code": "already_checked_in"},
        ) from exc
    except CheckInValidationError as exc:
        raise _invalid(exc) from exc
    except StorageError as exc:
        raise _storage_failure(exc, "Failed to save check-in") from exc


@router.delete(
    "/{checkin_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a check-in",
)
async def delete_checkin(checkin_id: str) -> Response:
    try:
        await get_checkin_service().repository.delete(checkin_id)
    except StorageError as exc:
        raise _storage_failure(exc, "Failed to delete check-in") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

@router.post(
    "/insight/preview",
    response_model=InsightResponse,
    summary="Generate an insight for an unsaved entry",
)
async def preview_insight(body: InsightPreviewRequest) -> InsightResponse:
    try:
        result = await get_checkin_service().preview_insight(body.mood, body.journal)
    except CheckInValidationError as exc:
        raise _invalid(exc) from exc
    except StorageError as exc:
        raise _storage_failure(exc, "Failed to load check-ins") from exc
    return InsightResponse.from_result(result)


@router.post(
    "/{day}/insight",
    response_model=InsightResponse,
    summary="Generate an insight and attach it to a saved entry",
    responses={404: {"description": "No check-in for that date"}},
)
async def attach_insight(day: date) -> InsightResponse:
    try:
        result = await get_checkin_service().attach_insight(day)
    except CheckInNotFoundError as exc:
        raise _not_found(day) from exc
    except StorageError as exc:
        raise _storage_failure(exc, "Failed to save insight") from exc
    return InsightResponse.from_result(result)

"""
Profile Router
==============
GET    /api/v1/profile: The onboarded user's profile.
PUT    /api/v1/profile: Onboarding: write (or fully replace) the profile.
DELETE /api/v1/profile: "Add new user": clears the profile AND every check-in.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Response, status

from app.db.store import StorageError
from app.models.checkin import UserProfile, UserProfileCreate
from app.services.checkin_repository import get_checkin_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/profile", tags=["profile"])


@router.get(
    "",
    response_model=UserProfile,
    summary="Get the user profile",
    responses={404: {"description": "Onboarding not completed"}},
)
async def get_profile() -> UserProfile:
    try:
        profile = await get_checkin_repository().get_profile()
    except StorageError as exc:
        logger.error("Failed to load profile: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to load profile", "code": "storage_error"},
        ) from exc

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "No profile yet, complete onboarding first", "code": "profile_not_found"},
        )
    return profile


@router.put("", response_model=UserProfile, summary="Create or replace the user profile")
async def put_profile(body: UserProfileCreate) -> UserProfile:
    profile = UserProfile(
        name=body.name,
        age=body.age,
        goal=body.goal,
        created_at=datetime.now(timezone.utc),
    )
    try:
        await get_checkin_repository().save_profile(profile)
    except StorageError as exc:
        logger.error("Failed to save profile: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save profile", "code": "storage_error"},
        ) from exc

    logger.info("Profile saved")
    return profile


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear all data (profile and check-ins)",
)
async def clear_all_data() -> Response:
    try:
        await get_checkin_repository().clear_all()
    except StorageError as exc:
        logger.error("Failed to clear data: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to switch user. Please try again.", "code": "storage_error"},
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Check-in & Profile Schemas
==========================
Pydantic models for the journal data the app keeps on the device.

Key design decisions:
- CheckIn is the stored shape. It is deliberately lenient so that an
  older or hand-edited payload still loads; the write-side invariants
  (mood range, non-blank journal) are enforced by the repository before
  anything touches disk.
- CheckInCreate is the request shape and rejects bad input at the edge.
- Stored JSON keeps the camelCase keys the mobile client has always
  written (aiInsight, createdAt); Python code uses snake_case.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MOOD_MIN = 1
MOOD_MAX = 10
JOURNAL_MAX_LENGTH = 500

DEFAULT_USER_NAME = "Friend"
DEFAULT_GOAL = "Better wellbeing"

WELLNESS_GOALS = (
    "Reduce stress & anxiety",
    "Improve mood stability",
    "Build healthy habits",
    "Better sleep quality",
    "Increase self-awareness",
)


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------

class CheckIn(BaseModel):
    """One dated record of mood, journal text and optional AI insight."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    date: dt.date = Field(..., description="Local calendar day, YYYY-MM-DD. Natural key.")
    mood: int
    journal: str
    ai_insight: str = Field(default="", alias="aiInsight")
    timestamp: int = Field(..., description="Creation instant, ms since epoch.")

    @field_validator("ai_insight", mode="before")
    @classmethod
    def _none_insight_is_empty(cls, value):
        return "" if value is None else value


class CheckInCreate(BaseModel):
    """Payload the mobile app sends when the user saves today's check-in."""

    mood: int = Field(
        ...,
        ge=MOOD_MIN,
        le=MOOD_MAX,
        description="Self-reported mood score. 1 = very low, 10 = excellent.",
    )
    journal: str = Field(..., max_length=JOURNAL_MAX_LENGTH)
    ai_insight: str = Field(
        default="",
        description="Insight previewed before saving, attached to the new entry.",
    )

    @field_validator("journal")
    @classmethod
    def _journal_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("journal must not be empty")
        return value


class InsightPreviewRequest(BaseModel):
    """Unsaved mood + journal the user wants an insight for."""

    mood: int = Field(..., ge=MOOD_MIN, le=MOOD_MAX)
    journal: str = Field(..., max_length=JOURNAL_MAX_LENGTH)

    @field_validator("journal")
    @classmethod
    def _journal_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("journal must not be empty")
        return value


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class UserProfile(BaseModel):
    """The single profile written during onboarding.

    Read-side only fills in defaults; it does not police the shape.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = DEFAULT_USER_NAME
    age: Optional[int] = None
    goal: str = DEFAULT_GOAL
    created_at: Optional[dt.datetime] = Field(default=None, alias="createdAt")

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_USER_NAME
        return value

    @field_validator("goal", mode="before")
    @classmethod
    def _default_goal(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_GOAL
        return value


class UserProfileCreate(BaseModel):
    """Onboarding form submission."""

    name: str = Field(..., max_length=100)
    age: int = Field(..., ge=1, le=130)
    goal: str = Field(
        ...,
        max_length=200,
        description="One of WELLNESS_GOALS or the user's own wording.",
    )

    @field_validator("name", "goal")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

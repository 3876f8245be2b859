"""
Insight & Analytics Schemas
===========================
Result types for AI insight requests and the derived statistics the
history and home screens render.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# AI insight results
# ---------------------------------------------------------------------------

class InsightState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TextGenerationResponse(BaseModel):
    """What the text-generation capability hands back for one prompt."""

    success: bool
    text: str = ""
    error: Optional[str] = None


class InsightResult(BaseModel):
    """Terminal outcome of one insight request: text or a failure reason."""

    state: InsightState
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is InsightState.SUCCEEDED

    @classmethod
    def succeeded(cls, text: str) -> "InsightResult":
        return cls(state=InsightState.SUCCEEDED, text=text)

    @classmethod
    def failed(cls, reason: str) -> "InsightResult":
        return cls(state=InsightState.FAILED, error=reason)


class InsightResponse(BaseModel):
    """API shape for a single insight call."""

    success: bool
    text: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: InsightResult) -> "InsightResponse":
        return cls(success=result.ok, text=result.text, error=result.error)


class PatternInsight(BaseModel):
    """Cross-entry analysis, already resolved to displayable text."""

    text: str
    ai_generated: bool = Field(
        ...,
        description="False when the text is a canned welcome or fallback message.",
    )
    check_in_count: int


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

class MoodBand(str, Enum):
    LOW = "low"
    MID_LOW = "mid-low"
    MID_HIGH = "mid-high"
    HIGH = "high"


class TrendPoint(BaseModel):
    """One bar in the mood trend chart."""

    date: dt.date
    label: str
    mood: int
    height: float
    color: str


class MoodSummary(BaseModel):
    total_entries: int
    average_mood: float
    best_mood: Optional[int] = None
    streak: int


class InsightsSummaryResponse(BaseModel):
    summary: MoodSummary
    trend: list[TrendPoint]

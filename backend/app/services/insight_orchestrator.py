"""
Insight Orchestrator
====================
Turns journal data into prompts, makes exactly one model call per
request and reports the outcome as an InsightResult.

Each request walks ``idle -> requesting -> succeeded | failed`` and then
stops. Every request is its own InsightRequest, returned by ``run``, so
overlapping requests never share state. There is no retry and no
fabricated text on failure: the caller owns the fallback message. A
successful reply with empty text counts as malformed and fails.

The orchestrator never writes to storage; attaching an insight to a
check-in is the check-in flow's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from app.config import Settings, get_settings
from app.models.checkin import CheckIn
from app.models.insight import InsightResult, InsightState, TextGenerationResponse
from app.services.analytics import average_mood, format_full_date, most_recent_first
from app.services.text_generation import TextGenerator, get_text_generator

logger = logging.getLogger(__name__)

RECENT_MOOD_WINDOW = 7
AI_DISABLED_REASON = "AI insights are disabled"


# ---------------------------------------------------------------------------
# Request state
# ---------------------------------------------------------------------------

_TRANSITIONS = {
    InsightState.IDLE: {InsightState.REQUESTING},
    InsightState.REQUESTING: {InsightState.SUCCEEDED, InsightState.FAILED},
    InsightState.SUCCEEDED: set(),
    InsightState.FAILED: set(),
}


@dataclass
class InsightRequest:
    """Lifecycle of one round trip to the model."""

    kind: str
    state: InsightState = InsightState.IDLE
    history: list[InsightState] = field(default_factory=lambda: [InsightState.IDLE])
    result: Optional[InsightResult] = None

    def advance(self, new_state: InsightState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal insight transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
        self.history.append(new_state)

    def finish(self, result: InsightResult) -> None:
        self.advance(result.state)
        self.result = result


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def build_entry_prompt(
    mood: int,
    journal: str,
    goal: str,
    recent_moods: Sequence[int],
) -> str:
    moods = list(recent_moods)[:RECENT_MOOD_WINDOW]
    if moods:
        history = ", ".join(str(m) for m in moods)
        context = f"Their previous mood scores, most recent first: {history}."
    else:
        context = "This is one of their first check-ins, so there is no mood history yet."

    return (
        "A user of a mood journaling app just completed today's check-in.\n"
        f"Mood today: {mood}/10.\n"
        f"Their wellness goal: {goal}.\n"
        f"{context}\n\n"
        f"Journal entry:\n\"\"\"\n{journal.strip()}\n\"\"\"\n\n"
        "Write a short, encouraging insight (2-4 sentences) that reflects on "
        "what they wrote, notes any change against their recent moods, and "
        "suggests one small, concrete action that supports their goal."
    )


def build_pattern_prompt(check_ins: Sequence[CheckIn], user_name: str) -> str:
    chronological = list(reversed(most_recent_first(check_ins)))
    lines = [
        f"- {format_full_date(c.date)}: mood {c.mood}/10. Journal: {c.journal.strip()}"
        for c in chronological
    ]
    entries = "\n".join(lines) if lines else "- (no entries yet)"

    return (
        f"Here is the mood journal history for {user_name}, oldest first "
        f"({len(chronological)} entries, average mood "
        f"{average_mood(chronological):.1f}/10):\n"
        f"{entries}\n\n"
        f"Address {user_name} by name. Identify patterns in their mood over "
        "time, recurring themes in what they write, and what seems to lift or "
        "lower their mood. Finish with two or three personalised, practical "
        "recommendations. Keep it under 250 words."
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class InsightOrchestrator:
    """Builds insight prompts and maps model responses to results."""

    def __init__(
        self,
        generator: TextGenerator | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._generator = generator or get_text_generator()
        self._settings = settings or get_settings()

    async def generate_entry_insight(
        self,
        mood: int,
        journal: str,
        goal: str,
        recent_moods: Sequence[int],
    ) -> InsightResult:
        """Single-entry wellness insight. Caller guarantees a non-blank journal."""
        prompt = build_entry_prompt(mood, journal, goal, recent_moods)
        return (await self.run("entry", prompt)).result

    async def analyze_mood_patterns(
        self,
        check_ins: Sequence[CheckIn],
        user_name: str,
    ) -> InsightResult:
        """Cross-entry analysis of the whole history."""
        prompt = build_pattern_prompt(check_ins, user_name)
        return (await self.run("patterns", prompt)).result

    async def run(self, kind: str, prompt: str) -> InsightRequest:
        """One round trip to the model; the returned request carries the result."""
        request = InsightRequest(kind=kind)

        if not self._settings.enable_ai_insights:
            logger.debug("Skipping %s insight: AI insights disabled", kind)
            request.advance(InsightState.REQUESTING)
            request.finish(InsightResult.failed(AI_DISABLED_REASON))
            return request

        request.advance(InsightState.REQUESTING)
        try:
            response = await self._generator.generate(prompt)
        except Exception as exc:
            # Any exception from the capability is just another failure
            logger.exception("%s insight request raised", kind.capitalize())
            request.finish(InsightResult.failed(str(exc) or exc.__class__.__name__))
            return request

        result = _to_result(response)
        request.finish(result)

        if result.ok:
            logger.info("%s insight generated (%d chars)", kind.capitalize(), len(result.text or ""))
        else:
            logger.warning("%s insight failed: %s", kind.capitalize(), result.error)
        return request


def _to_result(response: object) -> InsightResult:
    # success with an empty text is a malformed reply, not an insight
    if not isinstance(response, TextGenerationResponse):
        return InsightResult.failed("Unexpected response from AI service")
    if not response.success:
        return InsightResult.failed(response.error or "AI service request failed")
    if not response.text:
        return InsightResult.failed("AI service returned no text")
    return InsightResult.succeeded(response.text)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_orchestrator: InsightOrchestrator | None = None


def get_insight_orchestrator() -> InsightOrchestrator:
    global _default_orchestrator
    if _default_orchestrator is None:
        _default_orchestrator = InsightOrchestrator()
    return _default_orchestrator

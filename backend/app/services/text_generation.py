"""
Text Generation Client
======================
The narrow seam between the app and the hosted language model.

Contract: ``generate(prompt)`` returns a TextGenerationResponse that is
either ``success=True`` with text or ``success=False`` with a readable
error. Transport failures, non-2xx responses and replies without a text
block all land on the failure side. No retries, no backoff: the user
decides whether to tap "try again".

What is sent: the prompt only. No device identifiers, no timestamps
beyond the dates already inside the prompt.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from app.config import Settings, get_settings
from app.models.insight import TextGenerationResponse

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"

_SYSTEM_PROMPT = """\
You are a warm, supportive wellness companion inside a personal mood \
journaling app. You are not a therapist and never diagnose.

Rules:
- Reply in plain prose, no markdown headings, no bullet lists longer than three items.
- Keep it under 150 words unless asked for a longer analysis.
- Be specific to what the person wrote; avoid generic platitudes.
- If the text mentions self-harm or crisis, gently encourage reaching out \
to a trusted person or local emergency services.
"""


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class InsightRequestError(Exception):
    """The model call failed or came back without usable text."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        self.reason = reason
        self.status_code = status_code
        super().__init__(reason)


# ---------------------------------------------------------------------------
# Capability interface
# ---------------------------------------------------------------------------


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> TextGenerationResponse: ...


# ---------------------------------------------------------------------------
# Claude implementation
# ---------------------------------------------------------------------------


class ClaudeTextGenerator:
    """Generates insight text through the Anthropic Messages API."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._api_url = ANTHROPIC_MESSAGES_URL

    async def generate(self, prompt: str) -> TextGenerationResponse:
        try:
            text = await self._call_claude_api(prompt)
        except InsightRequestError as exc:
            logger.warning("Insight generation failed: %s", exc.reason)
            return TextGenerationResponse(success=False, error=exc.reason)
        except httpx.HTTPError as exc:
            logger.warning("Insight generation transport error: %s", exc.__class__.__name__)
            return TextGenerationResponse(success=False, error=f"Network error: {exc.__class__.__name__}")
        return TextGenerationResponse(success=True, text=text)

    async def _call_claude_api(self, prompt: str) -> str:
        if not self._settings.anthropic_api_key:
            raise InsightRequestError("AI service is not configured")

        headers = {
            "x-api-key": self._settings.anthropic_api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }

        payload = {
            "model": self._settings.anthropic_model,
            "max_tokens": self._settings.anthropic_max_tokens,
            "system": _SYSTEM_PROMPT,
            "messages": [
                {
                    "role": "user",
                    "content": prompt,
                }
            ],
        }

        async with httpx.AsyncClient(timeout=self._settings.ai_request_timeout_seconds) as client:
            response = await client.post(
                self._api_url,
                headers=headers,
                json=payload,
            )

        if response.status_code >= 400:
            raise InsightRequestError(
                f"AI service returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise InsightRequestError("AI service returned malformed JSON") from exc

        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list):
            raise InsightRequestError("AI service response had no content")

        text_parts = [
            block["text"]
            for block in content
            if isinstance(block, dict) and block.get("type") == "text" and block.get("text")
        ]
        if not text_parts:
            raise InsightRequestError("AI service returned no text")
        return "\n".join(text_parts)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_generator: ClaudeTextGenerator | None = None


def get_text_generator() -> ClaudeTextGenerator:
    global _default_generator
    if _default_generator is None:
        _default_generator = ClaudeTextGenerator()
    return _default_generator

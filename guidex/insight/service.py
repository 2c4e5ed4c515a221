"""
Fail-soft facade over the insight adapter.

Mentoring features are supplementary, so nothing here raises: every
InsightError is logged and turned into a fallback value.
"""
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional

from guidex.exceptions import InsightError
from guidex.insight.adapters import BaseInsightAdapter, create_insight_adapter
from guidex.logger import get_logger
from guidex.models import clamp_sentiment
from guidex.utils import load_prompt

COMPLETE_FALLBACK = "I encountered an error. Let's try again."
STREAM_FALLBACK = "Error connecting to the mentor service."

logger = get_logger("insight")


@dataclass
class SentimentResult:
    mood: str
    summary: str
    sentiment: int

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> Optional["SentimentResult"]:
        if not isinstance(payload, dict) or not payload:
            return None
        mood = str(payload.get("mood") or "").strip()
        if not mood or "sentiment" not in payload:
            return None
        return cls(
            mood=mood,
            summary=str(payload.get("summary") or "").strip(),
            sentiment=clamp_sentiment(payload.get("sentiment")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"mood": self.mood, "summary": self.summary, "sentiment": self.sentiment}


class InsightService:
    """complete / stream_complete / synthesize_speech / analyze_sentiment."""

    def __init__(self, adapter: Optional[BaseInsightAdapter] = None):
        self.adapter = adapter or create_insight_adapter()

    @property
    def model_name(self) -> str:
        return self.adapter.get_model_name()

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        if system_prompt is None:
            system_prompt = load_prompt("mentor_system")
        try:
            text = await self.adapter.generate(prompt, system_prompt=system_prompt)
        except InsightError as e:
            logger.warning("complete failed: %s", e.get_user_message())
            return COMPLETE_FALLBACK
        return text or "No response generated."

    async def stream_complete(self, prompt: str, system_prompt: Optional[str] = None) -> AsyncIterator[str]:
        """
        Fresh stream per call. On failure yields one fallback fragment and ends.
        """
        if system_prompt is None:
            system_prompt = load_prompt("mentor_stream_system")
        try:
            async for fragment in self.adapter.stream(prompt, system_prompt=system_prompt):
                yield fragment
        except InsightError as e:
            logger.warning("stream failed: %s", e.get_user_message())
            yield STREAM_FALLBACK

    async def synthesize_speech(self, text: str) -> Optional[bytes]:
        if not (text or "").strip():
            return None
        try:
            return await self.adapter.synthesize_speech(load_prompt("voice_coaching", {"text": text}))
        except InsightError as e:
            logger.warning("speech failed: %s", e.get_user_message())
            return None

    async def analyze_sentiment(self, text: str) -> Optional[SentimentResult]:
        if not (text or "").strip():
            return None
        try:
            payload = await self.adapter.analyze_sentiment(load_prompt("sentiment_request", {"entry": text}))
        except InsightError as e:
            logger.warning("sentiment analysis failed: %s", e.get_user_message())
            return None
        return SentimentResult.from_payload(payload)


_service: Optional[InsightService] = None


def get_insight_service() -> InsightService:
    global _service
    if _service is None:
        _service = InsightService()
        logger.info("Insight service using model %s", _service.model_name)
    return _service


def reset_insight_service() -> None:
    """Reset the global instance (tests or config changes)."""
    global _service
    _service = None


async def close_insight_service() -> None:
    """Close the global instance's HTTP client and drop it."""
    global _service
    if _service is not None:
        await _service.adapter.close()
    _service = None

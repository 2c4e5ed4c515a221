"""
Mentor chat session.

Each send() opens a fresh stream. A turn counter guards the reply: once a
newer turn starts (or cancel() is called) the older stream stops writing,
so late chunks never land in the wrong message.
"""
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from guidex.config_manager import config
from guidex.insight.service import InsightService
from guidex.logger import get_logger

logger = get_logger("mentor")

GREETING = (
    "Greetings, {name}. I am your GuideX Mentor. Today, we focus on your growth. "
    "What's standing in your way?"
)

QUICK_PROMPTS = (
    "Help me plan my week around my active goals.",
    "I feel stuck on a milestone. How do I break it down?",
    "Review my recent journal mood and suggest one habit change.",
)


@dataclass
class ChatMessage:
    role: str  # "user" | "model"
    text: str
    turn: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "text": self.text, "turn": self.turn}


class MentorConversation:
    def __init__(self, insight: InsightService, profile_name: Optional[str] = None):
        self.insight = insight
        name = (profile_name or "").strip() or config.DEFAULT_PROFILE_NAME
        self.messages: List[ChatMessage] = [ChatMessage("model", GREETING.format(name=name))]
        self.streaming = False
        self._turn = 0

    @property
    def turn(self) -> int:
        return self._turn

    def cancel(self) -> None:
        """Invalidate the in-flight reply, if any."""
        self._turn += 1
        self.streaming = False

    def _open_turn(self, prompt: str) -> ChatMessage:
        self._turn += 1
        self.messages.append(ChatMessage("user", prompt, self._turn))
        reply = ChatMessage("model", "", self._turn)
        self.messages.append(reply)
        self.streaming = True
        return reply

    async def _fill(self, reply: ChatMessage, prompt: str) -> AsyncIterator[str]:
        try:
            async for fragment in self.insight.stream_complete(prompt):
                if reply.turn != self._turn:
                    logger.debug("Dropping late fragment for stale turn %d", reply.turn)
                    break
                reply.text += fragment
                yield fragment
        finally:
            if reply.turn == self._turn:
                self.streaming = False

    async def stream(self, text: str) -> AsyncIterator[str]:
        """Like send(), yielding each fragment as it lands in the reply."""
        prompt = (text or "").strip()
        if not prompt:
            return
        reply = self._open_turn(prompt)
        async for fragment in self._fill(reply, prompt):
            yield fragment

    async def send(self, text: str) -> Optional[ChatMessage]:
        """
        Append the user turn plus an empty model turn and stream into it.

        Returns the model message, or None for blank input.
        """
        prompt = (text or "").strip()
        if not prompt:
            return None
        reply = self._open_turn(prompt)
        async for _ in self._fill(reply, prompt):
            pass
        return reply

    def last_reply(self) -> Optional[ChatMessage]:
        for message in reversed(self.messages):
            if message.role == "model" and message.text:
                return message
        return None

    async def speak(self, text: Optional[str] = None) -> Optional[bytes]:
        """Audio for `text`, defaulting to the latest mentor reply."""
        if text is None:
            last = self.last_reply()
            text = last.text if last else ""
        return await self.insight.synthesize_speech(text)

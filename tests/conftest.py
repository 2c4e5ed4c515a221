import os
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep tests offline and deterministic: no model key, in-process store.
os.environ["GEMINI_API_KEY"] = ""
os.environ["STORE_BACKEND"] = "memory"
os.environ.setdefault("GUIDEX_DATA_DIR", str(PROJECT_ROOT / ".pytest_data"))

from guidex.insight.adapters import BaseInsightAdapter  # noqa: E402
from guidex.record_store import AuthContext, InMemoryRecordStore  # noqa: E402


class ScriptedAdapter(BaseInsightAdapter):
    """Insight adapter that replays canned answers and records prompts."""

    provider = "scripted"

    def __init__(self, reply="", fragments=(), sentiment=None, audio=None, error=None):
        super().__init__({"model_name": "scripted"})
        self.reply = reply
        self.fragments = list(fragments)
        self.sentiment = sentiment
        self.audio = audio
        self.error = error
        self.prompts = []

    async def generate(self, prompt, system_prompt=None, temperature=0.7, max_tokens=1000):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply

    async def stream(self, prompt, system_prompt=None):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        for fragment in self.fragments:
            yield fragment

    async def synthesize_speech(self, text):
        self.prompts.append(text)
        if self.error:
            raise self.error
        return self.audio

    async def analyze_sentiment(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.sentiment


@pytest.fixture
def scripted_adapter():
    return ScriptedAdapter


@pytest.fixture
def auth():
    return AuthContext(owner_id="user-1", email="ada@example.com")


@pytest.fixture
def store(auth):
    return InMemoryRecordStore(auth)

"""
Insight adapters for GuideX.

Provides a unified interface over the generative AI provider: text
completion, streamed completion, speech synthesis and structured sentiment
extraction. Adapters raise InsightError subclasses; the fail-soft behaviour
lives in InsightService.

Supports: Gemini (Generative Language REST API) and a rule-based offline mode.
"""
import base64
import binascii
import json
import os
import re
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

import httpx
import yaml

from guidex.exceptions import (
    ConfigError,
    InsightAuthError,
    InsightConnectionError,
    InsightError,
    InsightRateLimitError,
    InsightTimeoutError,
)
from guidex.logger import get_logger
from guidex.paths import LOCAL_MODEL_CONFIG_PATH, MODEL_CONFIG_PATH

SENTIMENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "mood": {
            "type": "STRING",
            "description": "The mood identified in the journal entry.",
        },
        "summary": {
            "type": "STRING",
            "description": "A concise summary of the entry.",
        },
        "sentiment": {
            "type": "NUMBER",
            "description": "Sentiment score ranging from 0 (negative) to 100 (positive).",
        },
    },
    "required": ["mood", "summary", "sentiment"],
    "propertyOrdering": ["mood", "summary", "sentiment"],
}

logger = get_logger("insight")


class BaseInsightAdapter(ABC):
    """Base class for insight adapters."""

    provider = "unknown"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.model_name = config.get("model_name", "unknown")

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        """Generate text completion."""

    @abstractmethod
    def stream(self, prompt: str, system_prompt: Optional[str] = None) -> AsyncIterator[str]:
        """Stream a completion as text fragments."""

    @abstractmethod
    async def synthesize_speech(self, text: str) -> Optional[bytes]:
        """Return audio bytes, or None when the provider has no speech."""

    @abstractmethod
    async def analyze_sentiment(self, prompt: str) -> Optional[Dict[str, Any]]:
        """Return the raw {mood, summary, sentiment} payload."""

    def get_model_name(self) -> str:
        return self.model_name

    async def close(self) -> None:
        """Release the HTTP client, if the adapter holds one."""


class GeminiAdapter(BaseInsightAdapter):
    """Adapter for the Gemini Generative Language REST API."""

    provider = "gemini"

    def __init__(self, config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.api_key = config.get("api_key") or os.environ.get("GEMINI_API_KEY")
        self.base_url = config.get("base_url", "https://generativelanguage.googleapis.com/v1beta").rstrip("/")
        self.model_name = config.get("model_name", "gemini-3-flash-preview")
        self.tts_model = config.get("tts_model", "gemini-2.5-flash-preview-tts")
        self.voice = config.get("voice", "Kore")
        self.timeout = float(config.get("timeout", 60.0))

        if not self.api_key:
            raise ConfigError(
                "Gemini API key not found. Set GEMINI_API_KEY or add 'api_key' to config/local_model.yaml",
                str(LOCAL_MODEL_CONFIG_PATH),
            )
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    def _url(self, model: str, method: str) -> str:
        return f"{self.base_url}/models/{model}:{method}"

    def _headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    @staticmethod
    def _payload(
        prompt: str,
        system_prompt: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    @staticmethod
    def _first_parts(data: Any) -> list:
        """Parts of the first candidate; anything off-shape reads as no parts."""
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return []
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return []
        return [part for part in parts if isinstance(part, dict)]

    @classmethod
    def _extract_text(cls, data: Any) -> str:
        return "".join(part["text"] for part in cls._first_parts(data) if isinstance(part.get("text"), str))

    def _shape_error(self, message: str, model: str) -> InsightError:
        return InsightError(message=message, provider=self.provider, model_name=model, endpoint=self.base_url)

    def _translate(self, error: Exception, model: str) -> InsightError:
        """Map an httpx failure to the InsightError hierarchy."""
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            if status in (401, 403):
                return InsightAuthError(provider=self.provider, model_name=model, endpoint=self.base_url)
            if status == 429:
                retry_after = error.response.headers.get("retry-after")
                return InsightRateLimitError(
                    provider=self.provider,
                    model_name=model,
                    endpoint=self.base_url,
                    retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                )
            return InsightError(
                message=f"HTTP error: {status}",
                provider=self.provider,
                model_name=model,
                endpoint=self.base_url,
            )
        if isinstance(error, httpx.ConnectError):
            return InsightConnectionError(provider=self.provider, model_name=model, endpoint=self.base_url)
        if isinstance(error, httpx.TimeoutException):
            return InsightTimeoutError(
                provider=self.provider,
                model_name=model,
                endpoint=self.base_url,
                timeout_seconds=self.timeout,
            )
        return InsightError(
            message=f"Request failed: {error}",
            provider=self.provider,
            model_name=model,
            endpoint=self.base_url,
        )

    async def _post(self, model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(
                self._url(model, "generateContent"),
                headers=self._headers(),
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            raise self._translate(e, model)
        if not isinstance(data, dict):
            raise self._shape_error(f"Unexpected response body ({type(data).__name__})", model)
        return data

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        data = await self._post(
            self.model_name,
            self._payload(
                prompt,
                system_prompt,
                {"temperature": temperature, "maxOutputTokens": max_tokens},
            ),
        )
        return self._extract_text(data)

    async def stream(self, prompt: str, system_prompt: Optional[str] = None) -> AsyncIterator[str]:
        """Server-sent events from streamGenerateContent."""
        try:
            async with self._client.stream(
                "POST",
                self._url(self.model_name, "streamGenerateContent"),
                params={"alt": "sse"},
                headers=self._headers(),
                json=self._payload(prompt, system_prompt),
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    raw = line[len("data:"):].strip()
                    if not raw:
                        continue
                    try:
                        chunk = json.loads(raw)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed stream chunk: %s", raw[:80])
                        continue
                    text = self._extract_text(chunk)
                    if text:
                        yield text
        except InsightError:
            raise
        except Exception as e:
            raise self._translate(e, self.model_name)

    async def synthesize_speech(self, text: str) -> Optional[bytes]:
        data = await self._post(
            self.tts_model,
            self._payload(
                text,
                generation_config={
                    "responseModalities": ["AUDIO"],
                    "speechConfig": {
                        "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice}},
                    },
                },
            ),
        )
        for part in self._first_parts(data):
            inline = part.get("inlineData")
            encoded = inline.get("data") if isinstance(inline, dict) else None
            if not encoded:
                continue
            try:
                return base64.b64decode(encoded, validate=True)
            except (binascii.Error, TypeError, ValueError):
                raise self._shape_error("Speech audio was not valid base64", self.tts_model)
        return None

    async def analyze_sentiment(self, prompt: str) -> Optional[Dict[str, Any]]:
        data = await self._post(
            self.model_name,
            self._payload(
                prompt,
                generation_config={
                    "responseMimeType": "application/json",
                    "responseSchema": SENTIMENT_SCHEMA,
                },
            ),
        )
        text = self._extract_text(data) or "{}"
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            raise self._shape_error("Sentiment response was not JSON", self.model_name)
        return parsed if isinstance(parsed, dict) else None

    async def close(self) -> None:
        await self._client.aclose()


class RuleBasedAdapter(BaseInsightAdapter):
    """
    Offline fallback used when no model is configured.
    Answers with configuration notices; no speech, no sentiment.
    """

    provider = "rule_based"
    NOT_CONFIGURED = "API Key not configured."
    STREAM_NOT_CONFIGURED = "API Key not configured. Please check your environment."

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config or {})
        self.model_name = "rule_based"

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000
    ) -> str:
        return self.NOT_CONFIGURED

    async def stream(self, prompt: str, system_prompt: Optional[str] = None) -> AsyncIterator[str]:
        yield self.STREAM_NOT_CONFIGURED

    async def synthesize_speech(self, text: str) -> Optional[bytes]:
        return None

    async def analyze_sentiment(self, prompt: str) -> Optional[Dict[str, Any]]:
        return None


def load_model_config(profile_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Load model configuration from YAML.
    Priority: local_model.yaml > model.yaml

    Args:
        profile_name: profile to load; None uses active_profile.

    Returns:
        Configuration dict for the profile.

    Note:
        Supports ${ENV_VAR} placeholders. An unset variable expands to "".
    """
    raw_config: Dict[str, Any] = {}

    for path in (LOCAL_MODEL_CONFIG_PATH, MODEL_CONFIG_PATH):
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    raw_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML: {e}", str(path))
            break

    if "profiles" in raw_config:
        profiles = raw_config["profiles"] or {}
        active_profile = profile_name or raw_config.get("active_profile", "rule_based")

        if active_profile not in profiles:
            logger.warning("Profile '%s' not found, using rule-based mode", active_profile)
            return {"provider": "rule_based"}

        return _expand_env_vars(profiles[active_profile])

    # flat legacy layout
    if raw_config:
        return _expand_env_vars(raw_config)

    return {"provider": "rule_based"}


def _expand_env_vars(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Expand ${VAR} placeholders in config values with environment variables.
    """
    result: Dict[str, Any] = {}
    pattern = re.compile(r'\$\{([^}]+)\}')

    for key, value in config.items():
        if isinstance(value, str):
            match = pattern.match(value)
            if match:
                result[key] = os.environ.get(match.group(1), "")
            else:
                result[key] = value
        elif isinstance(value, dict):
            result[key] = _expand_env_vars(value)
        else:
            result[key] = value

    return result


def create_insight_adapter(
    config: Optional[Dict[str, Any]] = None,
    profile_name: Optional[str] = None,
) -> BaseInsightAdapter:
    """
    Factory for the configured adapter.

    A Gemini profile without an API key degrades to rule-based mode.
    """
    if config is None:
        config = load_model_config(profile_name)

    provider = str(config.get("provider", "rule_based")).lower()

    if provider == "gemini":
        try:
            return GeminiAdapter(config)
        except ConfigError as e:
            logger.warning("%s Falling back to rule-based mode.", e.message)
            return RuleBasedAdapter(config)

    elif provider == "rule_based":
        return RuleBasedAdapter(config)
    else:
        raise ConfigError(
            f"Unknown insight provider '{provider}' (profile: {profile_name})",
            str(MODEL_CONFIG_PATH),
        )

"""
Text-to-speech backends: OpenAI, ElevenLabs and Google translate_tts.
"""

import logging

import httpx
from openai import AsyncOpenAI

from .gateway import SynthesisBackend
from .voices import base_language, elevenlabs_voice, openai_voice, tone_speed

logger = logging.getLogger("localizer")

USER_AGENT = "localizer/0.1"
HTTP_OK = 200


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class OpenAITTSBackend(SynthesisBackend):
    """OpenAI speech endpoint; honours pacing through ``speed`` (0.25..4.0)."""

    name = "openai"
    max_input_length = 4096

    def __init__(self, client: AsyncOpenAI, model: str = "tts-1") -> None:
        self.client = client
        self.model = model

    async def synthesize(
        self, text: str, voice: str, language_code: str, pacing_hint: float | None = None
    ) -> bytes:
        speed = _clamp((pacing_hint or 1.0) * tone_speed(voice), 0.25, 4.0)
        resp = await self.client.audio.speech.create(
            model=self.model,
            voice=openai_voice(voice),
            input=text,
            response_format="mp3",
            speed=speed,
        )
        return resp.content


class ElevenLabsTTSBackend(SynthesisBackend):
    """ElevenLabs text-to-speech; pacing maps onto voice_settings.speed (0.7..1.2)."""

    name = "elevenlabs"
    max_input_length = 5000

    def __init__(
        self,
        api_key: str,
        model_id: str = "eleven_multilingual_v2",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model_id = model_id
        self.timeout = timeout
        self.transport = transport

    async def synthesize(
        self, text: str, voice: str, language_code: str, pacing_hint: float | None = None
    ) -> bytes:
        voice_id = elevenlabs_voice(voice)
        url = f"https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
        headers = {
            "xi-api-key": self.api_key,
            "accept": "audio/mpeg",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.75,
                "speed": _clamp((pacing_hint or 1.0) * tone_speed(voice), 0.7, 1.2),
            },
        }
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=self.timeout, transport=self.transport
        ) as client:
            r = await client.post(url, json=payload, headers=headers)
        ctype = r.headers.get("content-type", "")
        if r.status_code != HTTP_OK or not ctype.startswith(("audio/", "application/octet-stream")):
            raise RuntimeError(f"ElevenLabs TTS failed: {r.status_code} {r.text[:300]}")
        return r.content


class GoogleTTSBackend(SynthesisBackend):
    """Free Google translate_tts endpoint. Short inputs only; ignores pacing."""

    name = "google"
    max_input_length = 200

    def __init__(self, timeout: float = 60.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.timeout = timeout
        self.transport = transport

    async def synthesize(
        self, text: str, voice: str, language_code: str, pacing_hint: float | None = None
    ) -> bytes:
        if pacing_hint not in (None, 1.0):
            logger.debug("Google TTS ignores pacing hint %.2f", pacing_hint)
        params = {"ie": "UTF-8", "q": text, "tl": base_language(language_code), "client": "tw-ob"}
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=self.timeout, transport=self.transport
        ) as client:
            r = await client.get(
                "https://translate.google.com/translate_tts",
                params=params,
                headers={"User-Agent": "Mozilla/5.0"},
            )
        if r.status_code != HTTP_OK:
            raise RuntimeError(f"Google TTS failed: {r.status_code}")
        return r.content

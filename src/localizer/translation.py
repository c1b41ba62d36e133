"""
Translation backends: OpenAI GPT, Google Cloud Translation and MyMemory.

Backends raise on failure so the gateway can try the next one; the gateway
is what turns a total failure into "keep the original text".
"""

import html
import logging

import httpx
from openai import AsyncOpenAI

from .gateway import TranslationBackend
from .voices import base_language, get_language_name

logger = logging.getLogger("localizer")

HTTP_OK = 200

SYSTEM_PROMPT = (
    "You are a professional translator for video narration and captions. "
    "Always provide accurate, natural translations."
)


def build_translation_prompt(text: str, target_language: str, source_language: str | None) -> str:
    target = get_language_name(target_language)
    if source_language and source_language != "auto":
        head = f"Translate the following text from {get_language_name(source_language)} to {target}."
    else:
        head = (
            f"Translate the following text to {target}. "
            "Detect the source language automatically."
        )
    return f"""{head}
Maintain the original tone, style, and meaning. Keep technical terms accurate.
Return only the translated text without any explanations or additional text.

Text to translate:
{text}"""


class OpenAITranslationBackend(TranslationBackend):
    name = "openai"
    max_input_length = 12000

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini") -> None:
        self.client = client
        self.model = model

    async def translate(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> str:
        logger.info(
            f"Translating text ({source_language or 'auto'} -> {target_language}) using {self.model}..."
        )
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_translation_prompt(text, target_language, source_language)},
            ],
            temperature=0.1,  # Low temperature for consistent translation
            max_tokens=4000,
        )
        translated = (response.choices[0].message.content or "").strip()
        logger.info(f"Translation completed: {len(text)} -> {len(translated)} characters")
        return translated


class GoogleTranslateBackend(TranslationBackend):
    """Google Cloud Translation v2 (API key)."""

    name = "google"
    max_input_length = 5000

    def __init__(
        self, api_key: str, timeout: float = 60.0, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def translate(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> str:
        params = {"key": self.api_key, "q": text, "target": target_language, "format": "text"}
        if source_language and source_language != "auto":
            params["source"] = source_language
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.post(
                "https://translation.googleapis.com/language/translate/v2", params=params
            )
        if r.status_code != HTTP_OK:
            raise RuntimeError(f"Google Translate failed: {r.status_code} {r.text[:300]}")
        return html.unescape(r.json()["data"]["translations"][0]["translatedText"])


class MyMemoryBackend(TranslationBackend):
    """Free MyMemory API; needs an explicit source language (defaults to English)."""

    name = "mymemory"
    max_input_length = 500

    def __init__(self, timeout: float = 60.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.timeout = timeout
        self.transport = transport

    async def translate(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> str:
        source = "en" if not source_language or source_language == "auto" else base_language(source_language)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.get(
                "https://api.mymemory.translated.net/get",
                params={"q": text, "langpair": f"{source}|{target_language}"},
            )
        data = r.json() if r.status_code == HTTP_OK else {}
        if str(data.get("responseStatus")) != str(HTTP_OK):
            raise RuntimeError(f"MyMemory unavailable: {r.status_code} {data.get('responseDetails', '')}")
        return data["responseData"]["translatedText"]

"""
Uniform access to interchangeable synthesis, transcription and translation backends.

Each capability owns an explicit ranked list of backends. A call walks the
list in order and only gives up once the last backend has failed. The
gateway never chunks text: callers pre-chunk to ``max_input_length``.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import TypeVar

from .errors import ProviderUnavailable
from .io_ffmpeg import MediaTranscoder
from .models import SynthesisRequest, SynthesisResult, Transcript

logger = logging.getLogger("localizer")

T = TypeVar("T")

SYNTHESIS = "synthesis"
TRANSCRIPTION = "transcription"
TRANSLATION = "translation"


class CapabilityBackend:
    """Shared shape of every backend: a name, a capability and an input limit."""

    name = "backend"
    capability = ""
    max_input_length: int | None = None

    def accepts(self, text: str) -> bool:
        return self.max_input_length is None or len(text) <= self.max_input_length

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class SynthesisBackend(CapabilityBackend):
    """Text to speech. Returns MP3 bytes."""

    capability = SYNTHESIS

    async def synthesize(
        self, text: str, voice: str, language_code: str, pacing_hint: float | None = None
    ) -> bytes:
        raise NotImplementedError


class TranscriptionBackend(CapabilityBackend):
    capability = TRANSCRIPTION

    async def transcribe(self, audio_path: str, language_hint: str | None = None) -> Transcript:
        raise NotImplementedError


class TranslationBackend(CapabilityBackend):
    capability = TRANSLATION

    async def translate(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> str:
        raise NotImplementedError


class ProviderGateway:
    """Runs each capability through its ranked fallback chain."""

    def __init__(
        self,
        transcoder: MediaTranscoder,
        synthesis: Sequence[SynthesisBackend] = (),
        transcription: Sequence[TranscriptionBackend] = (),
        translation: Sequence[TranslationBackend] = (),
    ) -> None:
        self.transcoder = transcoder
        self.chains: dict[str, list[CapabilityBackend]] = {
            SYNTHESIS: list(synthesis),
            TRANSCRIPTION: list(transcription),
            TRANSLATION: list(translation),
        }

    def backend_names(self, capability: str) -> list[str]:
        return [b.name for b in self.chains[capability]]

    def max_input_length(self, capability: str) -> int | None:
        """Smallest limit in the chain, so a chunk fits whichever backend ends up serving it."""
        limits = [b.max_input_length for b in self.chains[capability] if b.max_input_length]
        return min(limits) if limits else None

    async def _run_chain(
        self,
        capability: str,
        call: Callable[[CapabilityBackend], Awaitable[T]],
        text: str | None = None,
    ) -> tuple[T, str]:
        chain = self.chains[capability]
        last: str | None = None
        last_error = ""
        for backend in chain:
            last = backend.name
            if text is not None and not backend.accepts(text):
                logger.warning(
                    "%s backend %s skipped: input of %d chars exceeds its limit of %d",
                    capability,
                    backend.name,
                    len(text),
                    backend.max_input_length,
                )
                last_error = "input too long"
                continue
            try:
                result = await call(backend)
            except Exception as e:
                logger.warning("%s backend %s failed: %s", capability, backend.name, e)
                last_error = str(e)
                continue
            logger.debug("%s served by %s", capability, backend.name)
            return result, backend.name
        logger.error("All %s backends failed (last tried: %s)", capability, last or "none")
        raise ProviderUnavailable(capability, last, last_error)

    async def synthesize(self, request: SynthesisRequest, out_path: str) -> SynthesisResult:
        """Synthesize ``request.text`` into ``out_path`` (MP3) and probe the result."""

        async def _call(backend: SynthesisBackend) -> bytes:
            audio = await backend.synthesize(
                request.text,
                request.tone_or_voice,
                request.language_code,
                request.speech_rate_hint,
            )
            if not audio:
                raise RuntimeError("backend returned empty audio")
            return audio

        audio, provider = await self._run_chain(SYNTHESIS, _call, text=request.text)
        Path(out_path).write_bytes(audio)
        asset = await self.transcoder.probe(out_path, "audio")
        return SynthesisResult(audio_asset=asset, provider_used=provider)

    async def transcribe(self, audio_path: str, language_hint: str | None = None) -> Transcript:
        async def _call(backend: TranscriptionBackend) -> Transcript:
            return await backend.transcribe(audio_path, language_hint)

        transcript, provider = await self._run_chain(TRANSCRIPTION, _call)
        logger.info(
            "Transcribed with %s: %d chars, %d word timestamps",
            provider,
            len(transcript.text),
            len(transcript.words),
        )
        return transcript

    async def translate_strict(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> str:
        """Translate or raise ProviderUnavailable."""
        if not text.strip():
            return text

        async def _call(backend: TranslationBackend) -> str:
            out = await backend.translate(text, target_language, source_language)
            if not out or not out.strip():
                raise RuntimeError("backend returned empty translation")
            return out

        translated, _ = await self._run_chain(TRANSLATION, _call, text=text)
        return translated

    async def translate(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> str:
        """Translate, returning the input unchanged if every backend fails. Never raises."""
        try:
            return await self.translate_strict(text, target_language, source_language)
        except ProviderUnavailable as e:
            logger.warning("Translation to %s unavailable, keeping original text: %s", target_language, e)
            return text

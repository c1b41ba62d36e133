"""
Speech-to-text backends: OpenAI Whisper, AssemblyAI and local faster-whisper.

All of them return a Transcript with word timestamps when the service
provides them; an empty word list tells the caption aligner to fall back to
sentence distribution.
"""

import asyncio
import logging
from pathlib import Path

import httpx
from openai import AsyncOpenAI

from .gateway import TranscriptionBackend
from .models import Transcript, Word
from .voices import base_language, normalize_language_code

logger = logging.getLogger("localizer")

HTTP_OK = 200


def _field(obj, name: str, default=None):
    """Read a field from an SDK object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def transcript_from_whisper(resp) -> Transcript:
    """Build a Transcript from a verbose_json Whisper response."""
    words: list[Word] = []
    for w in _field(resp, "words", None) or []:
        text = str(_field(w, "word", "") or _field(w, "text", "")).strip()
        if not text:
            continue
        words.append(Word(text=text, start=float(_field(w, "start", 0.0)), end=float(_field(w, "end", 0.0))))
    duration = _field(resp, "duration", None)
    return Transcript(
        text=str(_field(resp, "text", "") or "").strip(),
        words=words,
        duration=float(duration) if duration is not None else None,
        language=normalize_language_code(_field(resp, "language", None)),
    )


class OpenAIWhisperBackend(TranscriptionBackend):
    name = "openai"

    def __init__(self, client: AsyncOpenAI, model: str = "whisper-1") -> None:
        self.client = client
        self.model = model

    async def transcribe(self, audio_path: str, language_hint: str | None = None) -> Transcript:
        logger.info(f"Transcribing with {self.model} (language: {language_hint or 'auto'}) …")
        kwargs = {
            "model": self.model,
            "response_format": "verbose_json",
            "timestamp_granularities": ["word"],
        }
        if language_hint and language_hint != "auto":
            kwargs["language"] = base_language(language_hint)
        with open(audio_path, "rb") as f:
            resp = await self.client.audio.transcriptions.create(file=f, **kwargs)
        return transcript_from_whisper(resp)


class AssemblyAIBackend(TranscriptionBackend):
    """Upload, submit a job, then poll at a fixed interval up to a fixed attempt ceiling."""

    name = "assemblyai"
    base_url = "https://api.assemblyai.com/v2"

    def __init__(
        self,
        api_key: str,
        poll_interval: float = 5.0,
        max_attempts: int = 60,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.transport = transport

    async def transcribe(self, audio_path: str, language_hint: str | None = None) -> Transcript:
        headers = {"authorization": self.api_key}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            up = await client.post(
                f"{self.base_url}/upload",
                content=Path(audio_path).read_bytes(),
                headers={**headers, "Content-Type": "application/octet-stream"},
            )
            up.raise_for_status()
            audio_url = up.json()["upload_url"]
            logger.info("Audio uploaded to AssemblyAI")

            job: dict = {"audio_url": audio_url}
            if language_hint and language_hint != "auto":
                job["language_code"] = base_language(language_hint)
            else:
                job["language_detection"] = True
            sub = await client.post(f"{self.base_url}/transcript", json=job, headers=headers)
            sub.raise_for_status()
            transcript_id = sub.json()["id"]
            logger.info(f"Transcription job started: {transcript_id}")

            data = await self._poll(client, transcript_id, headers)

        words = [
            Word(text=str(w.get("text", "")).strip(), start=w["start"] / 1000.0, end=w["end"] / 1000.0)
            for w in data.get("words") or []
            if str(w.get("text", "")).strip()
        ]
        duration = data.get("audio_duration")
        return Transcript(
            text=str(data.get("text") or "").strip(),
            words=words,
            duration=float(duration) if duration is not None else None,
            language=normalize_language_code(data.get("language_code")),
        )

    async def _poll(self, client: httpx.AsyncClient, transcript_id: str, headers: dict) -> dict:
        url = f"{self.base_url}/transcript/{transcript_id}"
        for attempt in range(1, self.max_attempts + 1):
            r = await client.get(url, headers=headers)
            r.raise_for_status()
            data = r.json()
            status = data.get("status")
            if status == "completed":
                logger.info("Transcription completed")
                return data
            if status == "error":
                raise RuntimeError(f"Transcription failed: {data.get('error')}")
            if attempt % 5 == 0:
                logger.info(
                    "Still transcribing... (%.0fs elapsed)", attempt * self.poll_interval
                )
            await asyncio.sleep(self.poll_interval)
        raise TimeoutError(f"Transcription timeout after {self.max_attempts} polls")


class LocalWhisperBackend(TranscriptionBackend):
    """Local faster-whisper on CPU."""

    name = "local"

    def __init__(self, model_size: str = "base", beam_size: int = 1) -> None:
        self.model_size = model_size
        self.beam_size = beam_size
        self._model = None

    def _load(self):
        if self._model is None:
            try:
                from faster_whisper import WhisperModel
            except ImportError as e:
                raise RuntimeError(
                    "faster-whisper is not installed. Install with: pip install 'localizer[local]'"
                ) from e
            self._model = WhisperModel(self.model_size, device="cpu", compute_type="int8")
        return self._model

    def _transcribe_sync(self, audio_path: str, language_hint: str | None) -> Transcript:
        model = self._load()
        language = base_language(language_hint) if language_hint and language_hint != "auto" else None
        segments_iter, info = model.transcribe(
            audio_path,
            language=language,
            vad_filter=True,
            beam_size=self.beam_size,
            word_timestamps=True,
        )
        texts: list[str] = []
        words: list[Word] = []
        for s in segments_iter:
            texts.append(str(s.text).strip())
            for w in s.words or []:
                if str(w.word).strip():
                    words.append(Word(text=str(w.word).strip(), start=float(w.start), end=float(w.end)))
        return Transcript(
            text=" ".join(t for t in texts if t),
            words=words,
            duration=float(info.duration),
            language=normalize_language_code(info.language),
        )

    async def transcribe(self, audio_path: str, language_hint: str | None = None) -> Transcript:
        logger.info(
            f"Transcribing locally with faster-whisper ({self.model_size}, language: {language_hint or 'auto'}) …"
        )
        return await asyncio.to_thread(self._transcribe_sync, audio_path, language_hint)

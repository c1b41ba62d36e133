"""
Builds the ranked backend chains once at startup from explicit configuration.
"""

import logging

from openai import AsyncOpenAI

from .config import Settings
from .errors import ConfigError
from .gateway import ProviderGateway
from .io_ffmpeg import MediaTranscoder
from .scripts import ScriptGenerator
from .stt import AssemblyAIBackend, LocalWhisperBackend, OpenAIWhisperBackend
from .translation import GoogleTranslateBackend, MyMemoryBackend, OpenAITranslationBackend
from .tts import ElevenLabsTTSBackend, GoogleTTSBackend, OpenAITTSBackend

logger = logging.getLogger("localizer")


def _require(value: str | None, backend: str, env_name: str) -> str:
    if not value:
        raise ConfigError(f"Backend '{backend}' is configured but {env_name} is not set.")
    return value


def build_gateway(settings: Settings, transcoder: MediaTranscoder) -> ProviderGateway:
    """Instantiate every configured backend, in rank order."""
    openai_client: AsyncOpenAI | None = None

    def openai() -> AsyncOpenAI:
        nonlocal openai_client
        if openai_client is None:
            openai_client = AsyncOpenAI(
                api_key=_require(settings.openai_api_key, "openai", "OPENAI_API_KEY"),
                timeout=settings.http_timeout,
            )
        return openai_client

    tts_factories = {
        "openai": lambda: OpenAITTSBackend(openai(), model=settings.openai_tts_model),
        "elevenlabs": lambda: ElevenLabsTTSBackend(
            _require(settings.elevenlabs_api_key, "elevenlabs", "ELEVENLABS_API_KEY"),
            model_id=settings.elevenlabs_model,
            timeout=settings.http_timeout,
        ),
        "google": lambda: GoogleTTSBackend(timeout=settings.http_timeout),
    }
    stt_factories = {
        "openai": lambda: OpenAIWhisperBackend(openai(), model=settings.openai_whisper_model),
        "assemblyai": lambda: AssemblyAIBackend(
            _require(settings.assemblyai_api_key, "assemblyai", "ASSEMBLYAI_API_KEY"),
            poll_interval=settings.poll_interval,
            max_attempts=settings.poll_attempts,
            timeout=settings.http_timeout,
        ),
        "local": lambda: LocalWhisperBackend(model_size=settings.local_whisper_model),
    }
    translation_factories = {
        "openai": lambda: OpenAITranslationBackend(openai(), model=settings.openai_gpt_model),
        "google": lambda: GoogleTranslateBackend(
            _require(settings.google_translate_api_key, "google", "GOOGLE_TRANSLATE_API_KEY"),
            timeout=settings.http_timeout,
        ),
        "mymemory": lambda: MyMemoryBackend(timeout=settings.http_timeout),
    }

    def build(kind: str, names: list[str], factories: dict) -> list:
        backends = []
        for name in names:
            if name not in factories:
                raise ConfigError(
                    f"Unknown {kind} backend '{name}' (choose from: {', '.join(factories)})"
                )
            backends.append(factories[name]())
        if not backends:
            raise ConfigError(f"No {kind} backends configured")
        logger.info("%s chain: %s", kind, " -> ".join(names))
        return backends

    return ProviderGateway(
        transcoder,
        synthesis=build("synthesis", settings.tts_backends, tts_factories),
        transcription=build("transcription", settings.stt_backends, stt_factories),
        translation=build("translation", settings.translation_backends, translation_factories),
    )


def build_script_generator(settings: Settings) -> ScriptGenerator:
    client = AsyncOpenAI(
        api_key=_require(settings.openai_api_key, "script generation", "OPENAI_API_KEY"),
        timeout=settings.http_timeout,
    )
    return ScriptGenerator(client, model=settings.openai_gpt_model)

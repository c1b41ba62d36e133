"""
Settings loaded from the environment (and a .env file, when present).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _csv(value: str) -> list[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """Runtime configuration. Backend lists are ranked, highest priority first."""

    openai_api_key: str | None = None
    elevenlabs_api_key: str | None = None
    assemblyai_api_key: str | None = None
    google_translate_api_key: str | None = None

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    output_dir: str = "./uploads"
    projects_dir: str = "./projects"

    tts_backends: list[str] = field(default_factory=lambda: ["google"])
    stt_backends: list[str] = field(default_factory=lambda: ["local"])
    translation_backends: list[str] = field(default_factory=lambda: ["mymemory"])

    openai_tts_model: str = "tts-1"
    openai_whisper_model: str = "whisper-1"
    openai_gpt_model: str = "gpt-4o-mini"
    elevenlabs_model: str = "eleven_multilingual_v2"
    local_whisper_model: str = "base"

    poll_interval: float = 5.0
    poll_attempts: int = 60
    http_timeout: float = 60.0


def load_settings(env_file: str | None = None) -> Settings:
    """Read Settings from os.environ after loading ``.env``."""
    if env_file and Path(env_file).exists():
        load_dotenv(env_file)
    else:
        load_dotenv()

    env = os.environ
    defaults = Settings()
    return Settings(
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        elevenlabs_api_key=env.get("ELEVENLABS_API_KEY") or None,
        assemblyai_api_key=env.get("ASSEMBLYAI_API_KEY") or None,
        google_translate_api_key=env.get("GOOGLE_TRANSLATE_API_KEY") or None,
        ffmpeg_path=env.get("FFMPEG_PATH", defaults.ffmpeg_path),
        ffprobe_path=env.get("FFPROBE_PATH", defaults.ffprobe_path),
        output_dir=env.get("LOCALIZER_OUTPUT_DIR", defaults.output_dir),
        projects_dir=env.get("LOCALIZER_PROJECTS_DIR", defaults.projects_dir),
        tts_backends=_csv(env.get("LOCALIZER_TTS_BACKENDS", "")) or defaults.tts_backends,
        stt_backends=_csv(env.get("LOCALIZER_STT_BACKENDS", "")) or defaults.stt_backends,
        translation_backends=_csv(env.get("LOCALIZER_TRANSLATION_BACKENDS", ""))
        or defaults.translation_backends,
        openai_tts_model=env.get("OPENAI_TTS_MODEL", defaults.openai_tts_model),
        openai_whisper_model=env.get("OPENAI_WHISPER_MODEL", defaults.openai_whisper_model),
        openai_gpt_model=env.get("OPENAI_GPT_MODEL", defaults.openai_gpt_model),
        elevenlabs_model=env.get("ELEVENLABS_MODEL", defaults.elevenlabs_model),
        local_whisper_model=env.get("LOCALIZER_LOCAL_WHISPER_MODEL", defaults.local_whisper_model),
        poll_interval=float(env.get("LOCALIZER_POLL_INTERVAL", defaults.poll_interval)),
        poll_attempts=int(env.get("LOCALIZER_POLL_ATTEMPTS", defaults.poll_attempts)),
        http_timeout=float(env.get("LOCALIZER_HTTP_TIMEOUT", defaults.http_timeout)),
    )

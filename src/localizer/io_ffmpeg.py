"""
Audio and video processing using ffmpeg/ffprobe.

Every operation runs the binary in a worker thread so the calling
workflow suspends instead of blocking the loop.
"""

import asyncio
import logging
import subprocess
from pathlib import Path

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError, CouldntEncodeError

from .errors import TranscodeFailure
from .models import MediaAsset, MediaKind

logger = logging.getLogger("localizer")

MIN_ATEMPO = 0.5
MAX_ATEMPO = 2.0
EFFECT_SAMPLE_RATE = 44100

VOICE_EFFECTS: dict[str, str] = {
    "robot": "afftfilt=real='hypot(re,im)*sin(0)':imag='hypot(re,im)*cos(0)':win_size=512:overlap=0.75",
    "echo": "aecho=0.8:0.9:1000:0.3",
    "reverb": "aecho=0.8:0.88:60:0.4",
    "chipmunk": f"asetrate={EFFECT_SAMPLE_RATE}*1.5,aresample={EFFECT_SAMPLE_RATE}",
    "deep": f"asetrate={EFFECT_SAMPLE_RATE}*0.75,aresample={EFFECT_SAMPLE_RATE}",
    "none": "anull",
}


def _run(cmd: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False)


async def run_async(cmd: list[str], *, operation: str) -> str:
    """Run a command off the event loop and return its combined output, raising TranscodeFailure on error."""
    logger.debug("Running: %s", " ".join(map(str, cmd)))
    try:
        proc = await asyncio.to_thread(_run, cmd)
    except OSError as e:
        raise TranscodeFailure(operation, f"could not start {cmd[0]}: {e}") from e
    out = proc.stdout.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        logger.error("Command failed with code %d: %s", proc.returncode, out[-2000:])
        raise TranscodeFailure(operation, f"exit code {proc.returncode}")
    return out


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    if path:
        Path(path).mkdir(parents=True, exist_ok=True)


def atempo_chain(ratio: float) -> list[float]:
    """
    Split a tempo ratio into atempo steps within 0.5..2.0.
    atempo < 1.0 => slow down (longer), atempo > 1.0 => speed up (shorter).
    """
    if ratio <= 0:
        ratio = 1.0
    steps: list[float] = []
    r = ratio
    while r < MIN_ATEMPO or r > MAX_ATEMPO:
        step = MIN_ATEMPO if r < 1.0 else MAX_ATEMPO
        steps.append(step)
        r /= step
    steps.append(r)
    return steps


def build_audio_filter(filter_kind: str, params: dict | None = None) -> str:
    """Translate a filter request into an ffmpeg ``-af`` expression."""
    params = params or {}
    if filter_kind == "pitch":
        factor = float(params.get("factor", 1.0))
        if factor <= 0:
            raise ValueError("pitch factor must be positive")
        return f"asetrate={EFFECT_SAMPLE_RATE}*{factor},aresample={EFFECT_SAMPLE_RATE}"
    if filter_kind == "speed":
        return ",".join(f"atempo={s:.6f}" for s in atempo_chain(float(params.get("factor", 1.0))))
    if filter_kind == "effect":
        name = str(params.get("name", "none"))
        if name not in VOICE_EFFECTS:
            raise ValueError(f"Unknown voice effect: {name}")
        return VOICE_EFFECTS[name]
    raise ValueError(f"Unknown audio filter kind: {filter_kind}")


class MediaTranscoder:
    """Thin async wrapper over the ffmpeg/ffprobe binaries."""

    def __init__(self, ffmpeg: str = "ffmpeg", ffprobe: str = "ffprobe") -> None:
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe

    async def probe_duration(self, path: str) -> float:
        """Get media duration in seconds."""
        out = await run_async(
            [
                self.ffprobe,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
                path,
            ],
            operation="probe_duration",
        )
        try:
            return float(out.strip())
        except ValueError as e:
            raise TranscodeFailure("probe_duration", f"unreadable duration for {path}") from e

    async def probe(self, path: str, kind: MediaKind) -> MediaAsset:
        return MediaAsset(locator=path, duration_seconds=await self.probe_duration(path), kind=kind)

    async def extract_audio(self, video_path: str, out_path: str, sample_rate: int = 16000) -> str:
        """Extract a mono PCM track from a video."""
        ensure_dir(str(Path(out_path).parent))
        await run_async(
            [
                self.ffmpeg,
                "-y",
                "-i",
                video_path,
                "-vn",
                "-acodec",
                "pcm_s16le",
                "-ar",
                str(sample_rate),
                "-ac",
                "1",
                out_path,
            ],
            operation="extract_audio",
        )
        return out_path

    async def pad_with_silence(self, audio_path: str, target_seconds: float, out_path: str) -> str:
        """Append silence so the whole track lasts exactly ``target_seconds``."""
        await run_async(
            [
                self.ffmpeg,
                "-y",
                "-i",
                audio_path,
                "-af",
                f"apad=whole_dur={target_seconds:.3f}",
                out_path,
            ],
            operation="pad_with_silence",
        )
        return out_path

    async def reencode_fixed_duration(self, audio_path: str, target_seconds: float, out_path: str) -> str:
        """Re-encode with an unbounded pad and a hard output duration."""
        await run_async(
            [
                self.ffmpeg,
                "-y",
                "-i",
                audio_path,
                "-af",
                "apad",
                "-t",
                f"{target_seconds:.3f}",
                out_path,
            ],
            operation="reencode_fixed_duration",
        )
        return out_path

    async def fit_to_duration(self, audio_path: str, target_seconds: float, out_path: str) -> str:
        """Time-compress (or stretch) audio with an atempo chain to hit ``target_seconds``."""
        if target_seconds <= 0:
            raise ValueError("target_seconds must be positive")
        produced = await self.probe_duration(audio_path)
        filt = ",".join(f"atempo={s:.6f}" for s in atempo_chain(produced / target_seconds))
        await run_async(
            [self.ffmpeg, "-y", "-i", audio_path, "-filter:a", filt, out_path],
            operation="fit_to_duration",
        )
        return out_path

    async def mux_replace_audio(
        self, video_path: str, audio_path: str, out_path: str, duration: float | None = None
    ) -> str:
        """Replace the audio track, copying the video stream unmodified.

        Never uses ``-shortest``; when ``duration`` is given the output is pinned to it.
        """
        ensure_dir(str(Path(out_path).parent))
        cmd = [
            self.ffmpeg,
            "-y",
            "-i",
            video_path,
            "-i",
            audio_path,
            "-c:v",
            "copy",
            "-c:a",
            "aac",
            "-map",
            "0:v:0",
            "-map",
            "1:a:0",
        ]
        if duration is not None:
            cmd += ["-t", f"{duration:.3f}"]
        cmd.append(out_path)
        await run_async(cmd, operation="mux_replace_audio")
        return out_path

    async def concat_audio(self, audio_paths: list[str], out_path: str) -> str:
        """Concatenate audio files back to back."""
        if not audio_paths:
            raise TranscodeFailure("concat_audio", "nothing to concatenate")

        def _concat() -> None:
            combined = AudioSegment.silent(duration=0)
            for p in audio_paths:
                combined += AudioSegment.from_file(p)
            combined.export(out_path, format=Path(out_path).suffix.lstrip(".") or "mp3")

        try:
            await asyncio.to_thread(_concat)
        except (OSError, CouldntDecodeError, CouldntEncodeError) as e:
            raise TranscodeFailure("concat_audio", str(e)) from e
        return out_path

    async def apply_audio_filter(
        self, audio_path: str, filter_kind: str, params: dict | None, out_path: str
    ) -> str:
        """Apply a pitch / speed / effect transform."""
        filt = build_audio_filter(filter_kind, params)
        await run_async(
            [self.ffmpeg, "-y", "-i", audio_path, "-af", filt, out_path],
            operation=f"apply_audio_filter:{filter_kind}",
        )
        return out_path

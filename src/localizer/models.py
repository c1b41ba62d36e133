"""
Data models for the localization pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

MediaKind = Literal["video", "audio"]
VersionKind = Literal["original", "voiceover", "dubbed"]

DEFAULT_CAPTION_STYLE: dict[str, Any] = {
    "fontSize": 24,
    "fontFamily": "Arial",
    "color": "#FFFFFF",
    "backgroundColor": "#000000",
    "position": "bottom",
}


@dataclass(frozen=True)
class MediaAsset:
    """A media file on disk with its probed duration."""

    locator: str
    duration_seconds: float
    kind: MediaKind

    def to_dict(self) -> dict:
        return {"locator": self.locator, "duration_seconds": self.duration_seconds, "kind": self.kind}

    @classmethod
    def from_dict(cls, data: dict) -> "MediaAsset":
        return cls(
            locator=str(data["locator"]),
            duration_seconds=float(data["duration_seconds"]),
            kind=data["kind"],
        )


@dataclass(frozen=True)
class SynthesisRequest:
    """Text to speak plus voice and pacing parameters."""

    text: str
    tone_or_voice: str
    language_code: str
    target_duration_seconds: float | None = None
    speech_rate_hint: float | None = None


@dataclass(frozen=True)
class SynthesisResult:
    audio_asset: MediaAsset
    provider_used: str


@dataclass
class Word:
    """A single transcribed word with timing."""

    text: str
    start: float  # seconds
    end: float  # seconds


@dataclass
class Transcript:
    """Full transcription text plus optional word-level timestamps."""

    text: str
    words: list[Word] = field(default_factory=list)
    duration: float | None = None
    language: str | None = None


@dataclass
class CaptionSegment:
    """A single caption with timing and text."""

    start: float  # seconds
    end: float  # seconds
    text: str

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "text": self.text}


@dataclass
class CaptionSet:
    """The ordered, timed captions active for a project."""

    language_code: str
    segments: list[CaptionSegment] = field(default_factory=list)
    style: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_CAPTION_STYLE))

    def to_dict(self) -> dict:
        return {
            "language_code": self.language_code,
            "segments": [s.to_dict() for s in self.segments],
            "style": dict(self.style),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CaptionSet":
        return cls(
            language_code=data["language_code"],
            segments=[
                CaptionSegment(start=float(s["start"]), end=float(s["end"]), text=s["text"])
                for s in data.get("segments", [])
            ],
            style=dict(data.get("style") or DEFAULT_CAPTION_STYLE),
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VersionRecord:
    """One entry in a project's append-only processed-media history."""

    media_asset: MediaAsset
    kind: VersionKind
    language_code: str | None = None
    tone: str | None = None
    script_text: str | None = None
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict:
        return {
            "media_asset": self.media_asset.to_dict(),
            "kind": self.kind,
            "language_code": self.language_code,
            "tone": self.tone,
            "script_text": self.script_text,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VersionRecord":
        return cls(
            media_asset=MediaAsset.from_dict(data["media_asset"]),
            kind=data["kind"],
            language_code=data.get("language_code"),
            tone=data.get("tone"),
            script_text=data.get("script_text"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class VoiceoverState:
    """Current voiceover settings kept on the project."""

    tone: str
    script_text: str
    language_code: str
    audio_locator: str | None = None

    def to_dict(self) -> dict:
        return {
            "tone": self.tone,
            "script_text": self.script_text,
            "language_code": self.language_code,
            "audio_locator": self.audio_locator,
        }


@dataclass
class Project:
    """The slice of project state the pipeline reads and writes."""

    project_id: str
    versions: list[VersionRecord] = field(default_factory=list)
    captions: CaptionSet | None = None
    voiceover: VoiceoverState | None = None

    @property
    def original(self) -> VersionRecord | None:
        return self.versions[0] if self.versions else None

    @property
    def original_video(self) -> MediaAsset | None:
        orig = self.original
        if orig is None or orig.media_asset.kind != "video":
            return None
        return orig.media_asset

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "versions": [v.to_dict() for v in self.versions],
            "captions": self.captions.to_dict() if self.captions else None,
            "voiceover": self.voiceover.to_dict() if self.voiceover else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        vo = data.get("voiceover")
        caps = data.get("captions")
        return cls(
            project_id=data["project_id"],
            versions=[VersionRecord.from_dict(v) for v in data.get("versions", [])],
            captions=CaptionSet.from_dict(caps) if caps else None,
            voiceover=VoiceoverState(**vo) if vo else None,
        )


@dataclass
class WorkflowResult:
    """Outcome of a voiceover or dub run."""

    record: VersionRecord | None
    audio_asset: MediaAsset | None
    degradations: list[str] = field(default_factory=list)

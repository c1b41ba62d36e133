"""
Localization workflows: voiceover, captions, dub, caption translation and voice effects.

Each workflow is one linear pipeline. Temporary files live in a per-run
directory that is removed on success and on failure. A run appends at most
one version record, and only as its very last step, so a failed run leaves
the project's history untouched.
"""

import logging
import os
import shutil
import tempfile
import uuid
from dataclasses import replace

from tqdm import tqdm

from .captions import align_script, align_transcript, apply_style, translate_caption_set
from .chunking import chunk_text, normalize_whitespace
from .errors import PartialDegradation, ProviderUnavailable, SourceMissing, TranscodeFailure
from .gateway import SYNTHESIS, TRANSLATION, ProviderGateway
from .io_ffmpeg import MediaTranscoder, ensure_dir
from .models import (
    CaptionSet,
    MediaAsset,
    Project,
    SynthesisRequest,
    SynthesisResult,
    VersionRecord,
    VoiceoverState,
    WorkflowResult,
)
from .reconcile import DurationReconciler
from .store import ProjectLocks, ProjectStore

logger = logging.getLogger("localizer")

NATURAL_CHARS_PER_SEC = 12.5
MIN_SPEECH_RATE = 0.1
MAX_SPEECH_RATE = 3.0
DURATION_TOLERANCE = 1.0


def compute_speech_rate(text_length: int, video_duration: float) -> float:
    """Pacing multiplier that makes ``text_length`` chars roughly fill ``video_duration``."""
    if video_duration <= 0:
        raise ValueError("video_duration must be positive")
    target_chars_per_sec = text_length / video_duration
    rate = target_chars_per_sec / NATURAL_CHARS_PER_SEC
    return max(MIN_SPEECH_RATE, min(MAX_SPEECH_RATE, rate))


class LocalizationOrchestrator:
    def __init__(
        self,
        gateway: ProviderGateway,
        transcoder: MediaTranscoder,
        store: ProjectStore,
        output_dir: str,
        locks: ProjectLocks | None = None,
        reconciler: DurationReconciler | None = None,
    ) -> None:
        self.gateway = gateway
        self.transcoder = transcoder
        self.store = store
        self.output_dir = output_dir
        self.locks = locks or ProjectLocks()
        self.reconciler = reconciler or DurationReconciler(transcoder)

    # ------------------------------------------------------------------ helpers

    def _output_path(self, subdir: str, prefix: str, ext: str) -> str:
        folder = os.path.join(self.output_dir, subdir)
        ensure_dir(folder)
        return os.path.join(folder, f"{prefix}-{uuid.uuid4().hex[:12]}{ext}")

    async def synthesize_text(self, request: SynthesisRequest, work_dir: str) -> SynthesisResult:
        """Chunk long text to the chain's input limit, synthesize each chunk and join the audio."""
        text = normalize_whitespace(request.text)
        if not text:
            raise SourceMissing("Nothing to synthesize: script text is empty")
        max_chars = self.gateway.max_input_length(SYNTHESIS)
        chunks = chunk_text(text, max_chars) if max_chars and len(text) > max_chars else [text]

        if len(chunks) == 1:
            return await self.gateway.synthesize(
                replace(request, text=chunks[0]), os.path.join(work_dir, "speech.mp3")
            )

        logger.info(f"Text too long ({len(text)} chars), synthesizing {len(chunks)} chunks")
        paths: list[str] = []
        providers: list[str] = []
        for i, chunk in enumerate(tqdm(chunks, desc="TTS chunks")):
            res = await self.gateway.synthesize(
                replace(request, text=chunk), os.path.join(work_dir, f"chunk_{i:04d}.mp3")
            )
            paths.append(res.audio_asset.locator)
            providers.append(res.provider_used)
        joined = await self.transcoder.concat_audio(paths, os.path.join(work_dir, "speech.mp3"))
        asset = await self.transcoder.probe(joined, "audio")
        return SynthesisResult(audio_asset=asset, provider_used="+".join(dict.fromkeys(providers)))

    async def _translate_text(
        self, text: str, target_language: str, source_language: str | None
    ) -> tuple[str, list[PartialDegradation]]:
        max_chars = self.gateway.max_input_length(TRANSLATION)
        chunks = chunk_text(text, max_chars) if max_chars and len(text) > max_chars else [text]
        out: list[str] = []
        degradations: list[PartialDegradation] = []
        for chunk in chunks:
            try:
                out.append(await self.gateway.translate_strict(chunk, target_language, source_language))
            except ProviderUnavailable as e:
                logger.warning("Keeping untranslated text for a %d-char chunk: %s", len(chunk), e)
                degradations.append(PartialDegradation("translation", str(e)))
                out.append(chunk)
        return " ".join(out), degradations

    def _keep_audio(self, asset: MediaAsset, prefix: str) -> MediaAsset:
        """Copy synthesized audio out of the work dir so it survives the run."""
        dest = self._output_path("audio", prefix, os.path.splitext(asset.locator)[1] or ".mp3")
        shutil.copyfile(asset.locator, dest)
        return replace(asset, locator=dest)

    async def _render_video(
        self, video: MediaAsset, audio: MediaAsset, work_dir: str, prefix: str
    ) -> tuple[MediaAsset, bool]:
        """Reconcile audio to the video's length and mux it in place of the original track."""
        reconciled, degraded = await self.reconciler.reconcile(audio, video.duration_seconds, work_dir)
        out_path = self._output_path(os.path.join("videos", "processed"), prefix, ".mp4")
        try:
            await self.transcoder.mux_replace_audio(
                video.locator, reconciled.locator, out_path, duration=video.duration_seconds
            )
            rendered = await self.transcoder.probe(out_path, "video")
        except TranscodeFailure:
            if os.path.exists(out_path):
                os.remove(out_path)
            raise
        drift = abs(rendered.duration_seconds - video.duration_seconds)
        if drift >= DURATION_TOLERANCE:
            logger.warning(
                "[dur] output %.3fs differs from original %.3fs",
                rendered.duration_seconds,
                video.duration_seconds,
            )
        logger.info(f"Video processing complete - duration preserved: {out_path}")
        return rendered, degraded

    async def _commit(
        self,
        project_id: str,
        record: VersionRecord | None = None,
        voiceover: VoiceoverState | None = None,
        captions: CaptionSet | None = None,
    ) -> Project:
        """Read-modify-write of project state under the project's lock."""
        async with self.locks.hold(project_id):
            project = await self.store.load(project_id)
            if record is not None:
                project.versions = [*project.versions, record]
            if voiceover is not None:
                project.voiceover = voiceover
            if captions is not None:
                project.captions = captions
            await self.store.save(project)
        if record is not None:
            logger.info(
                "Appended %s version to project %s (%d versions)",
                record.kind,
                project_id,
                len(project.versions),
            )
        return project

    # ---------------------------------------------------------------- workflows

    async def voiceover(
        self, project_id: str, script: str, tone: str = "male", language: str = "en"
    ) -> WorkflowResult:
        """Synthesize ``script`` and, when the project has a video, put it on the video."""
        if not script or not script.strip():
            raise SourceMissing("Script text is required for a voiceover")
        project = await self.store.load(project_id)
        video = project.original_video
        logger.info(f"Generating voiceover ({tone}, {language}), script length {len(script)} chars")

        with tempfile.TemporaryDirectory(prefix="localizer-vo-") as work:
            request = SynthesisRequest(
                text=script,
                tone_or_voice=tone,
                language_code=language,
                target_duration_seconds=video.duration_seconds if video else None,
            )
            synth = await self.synthesize_text(request, work)
            logger.info(
                f"Voiceover synthesized by {synth.provider_used}: {synth.audio_asset.duration_seconds:.3f}s"
            )
            audio = self._keep_audio(synth.audio_asset, "voiceover")
            state = VoiceoverState(
                tone=tone, script_text=script, language_code=language, audio_locator=audio.locator
            )

            if video is None:
                record = VersionRecord(
                    media_asset=audio, kind="voiceover", language_code=language, tone=tone, script_text=script
                )
                await self._commit(project_id, record=record, voiceover=state)
                return WorkflowResult(record=record, audio_asset=audio)

            try:
                rendered, degraded = await self._render_video(video, synth.audio_asset, work, "voiceover")
            except TranscodeFailure as e:
                logger.error(f"Video processing failed, keeping audio-only voiceover: {e}")
                await self._commit(project_id, voiceover=state)
                return WorkflowResult(record=None, audio_asset=audio, degradations=[str(e)])

        record = VersionRecord(
            media_asset=rendered, kind="voiceover", language_code=language, tone=tone, script_text=script
        )
        await self._commit(project_id, record=record, voiceover=state)
        degradations = ["duration reconciliation degraded"] if degraded else []
        return WorkflowResult(record=record, audio_asset=audio, degradations=degradations)

    async def captions(
        self,
        project_id: str,
        language: str = "en",
        script: str | None = None,
        translate_to: str | None = None,
        style: dict | None = None,
    ) -> CaptionSet:
        """Build the project's caption set from a script or a transcription and store it."""
        project = await self.store.load(project_id)
        video = project.original_video
        if video is None:
            raise SourceMissing(f"Project {project_id} has no video to caption")

        if script and script.strip():
            caption_set = align_script(script, video.duration_seconds, language)
        else:
            with tempfile.TemporaryDirectory(prefix="localizer-cap-") as work:
                audio_path = await self.transcoder.extract_audio(
                    video.locator, os.path.join(work, "audio.wav")
                )
                transcript = await self.gateway.transcribe(audio_path, language)
                duration = await self.transcoder.probe_duration(audio_path)
            caption_set = align_transcript(transcript, language, duration)

        if translate_to:
            caption_set, degradations = await translate_caption_set(caption_set, translate_to, self.gateway)
            for d in degradations:
                logger.warning(str(d))

        merged_style = dict(project.captions.style) if project.captions else {}
        merged_style.update({k: v for k, v in (style or {}).items() if v is not None})
        caption_set = apply_style(caption_set, merged_style)
        await self._commit(project_id, captions=caption_set)
        logger.info(f"Stored {len(caption_set.segments)} captions ({caption_set.language_code})")
        return caption_set

    async def translate_captions(self, project_id: str, target_language: str) -> CaptionSet:
        """Replace the active caption set with its translation."""
        project = await self.store.load(project_id)
        if project.captions is None or not project.captions.segments:
            raise SourceMissing("No captions to translate")
        translated, degradations = await translate_caption_set(
            project.captions, target_language, self.gateway
        )
        for d in degradations:
            logger.warning(str(d))
        await self._commit(project_id, captions=translated)
        return translated

    async def dub(
        self,
        project_id: str,
        target_language: str,
        tone: str = "male",
        source_language: str | None = None,
    ) -> WorkflowResult:
        """Transcribe, translate, re-voice at a matched pace and mux onto the original video."""
        project = await self.store.load(project_id)
        video = project.original_video
        if video is None:
            raise SourceMissing(f"Project {project_id} has no video to dub")

        with tempfile.TemporaryDirectory(prefix="localizer-dub-") as work:
            audio_path = await self.transcoder.extract_audio(video.locator, os.path.join(work, "extracted.wav"))
            transcript = await self.gateway.transcribe(audio_path, source_language)
            if not transcript.text.strip():
                raise SourceMissing("Transcription returned empty text.")

            translated, degradations = await self._translate_text(
                transcript.text, target_language, source_language or transcript.language
            )
            rate = compute_speech_rate(len(translated), video.duration_seconds)
            logger.info(
                "Dub pacing: %d chars over %.2fs -> speech rate %.2f",
                len(translated),
                video.duration_seconds,
                rate,
            )

            request = SynthesisRequest(
                text=translated,
                tone_or_voice=tone,
                language_code=target_language,
                target_duration_seconds=video.duration_seconds,
                speech_rate_hint=rate,
            )
            synth = await self.synthesize_text(request, work)
            rendered, degraded = await self._render_video(video, synth.audio_asset, work, f"dub-{target_language}")
            audio = self._keep_audio(synth.audio_asset, f"dub-{target_language}")

        record = VersionRecord(
            media_asset=rendered,
            kind="dubbed",
            language_code=target_language,
            tone=tone,
            script_text=translated,
        )
        await self._commit(project_id, record=record)
        notes = [str(d) for d in degradations]
        if degraded:
            notes.append("duration reconciliation degraded")
        return WorkflowResult(record=record, audio_asset=audio, degradations=notes)

    # ------------------------------------------------------------ other actions

    async def apply_voice_effect(
        self, audio_path: str, effect: str | None = None, pitch: float = 1.0, speed: float = 1.0
    ) -> MediaAsset:
        """Pitch, speed and named-effect transforms on a standalone audio file."""
        if not os.path.exists(audio_path):
            raise SourceMissing(f"No audio file at {audio_path}")
        steps: list[tuple[str, dict]] = []
        if pitch != 1.0:
            steps.append(("pitch", {"factor": pitch}))
        if speed != 1.0:
            steps.append(("speed", {"factor": speed}))
        if effect and effect != "none":
            steps.append(("effect", {"name": effect}))

        ext = os.path.splitext(audio_path)[1] or ".mp3"
        out_path = self._output_path("audio", "effect", ext)
        with tempfile.TemporaryDirectory(prefix="localizer-fx-") as work:
            current = audio_path
            for i, (kind, params) in enumerate(steps):
                current = await self.transcoder.apply_audio_filter(
                    current, kind, params, os.path.join(work, f"step_{i}{ext}")
                )
            shutil.copyfile(current, out_path)
        return await self.transcoder.probe(out_path, "audio")

    async def delete_version(self, project_id: str, index: int) -> Project:
        """Remove a processed version. The original (index 0) cannot be deleted."""
        if index == 0:
            raise ValueError("The original version cannot be deleted")
        async with self.locks.hold(project_id):
            project = await self.store.load(project_id)
            if index < 0 or index >= len(project.versions):
                raise IndexError(f"No version at index {index}")
            project.versions = [v for i, v in enumerate(project.versions) if i != index]
            await self.store.save(project)
        return project

"""
Duration reconciliation: make synthesized audio last exactly as long as the video.

Audio is only ever extended with silence or tempo-fitted; speech is never cut.
"""

import logging
import os

from .errors import TranscodeFailure
from .io_ffmpeg import MediaTranscoder
from .models import MediaAsset

logger = logging.getLogger("localizer")

TOLERANCE_SECONDS = 0.05


def padding_seconds(produced: float, target: float) -> float:
    """Silence needed to bring ``produced`` up to ``target``."""
    return max(0.0, target - produced)


class DurationReconciler:
    """Pads (or tempo-fits) an audio asset to a target duration."""

    def __init__(self, transcoder: MediaTranscoder, tolerance: float = TOLERANCE_SECONDS) -> None:
        self.transcoder = transcoder
        self.tolerance = tolerance

    async def reconcile(
        self, audio: MediaAsset, target: float, work_dir: str
    ) -> tuple[MediaAsset, bool]:
        """Return ``(asset, degraded)`` where asset lasts ``target`` seconds when possible."""
        produced = audio.duration_seconds
        logger.info("[dur] target = %.3fs, audio = %.3fs", target, produced)

        if produced > target + self.tolerance:
            return await self._fit_long_audio(audio, target, work_dir)

        pad = padding_seconds(produced, target)
        if pad <= 0:
            return audio, False

        logger.info("[dur] padding audio by %.3fs to match video", pad)
        ext = os.path.splitext(audio.locator)[1] or ".wav"
        attempts = (
            ("silence filter", self.transcoder.pad_with_silence, "padded"),
            ("fixed-duration re-encode", self.transcoder.reencode_fixed_duration, "fixed"),
        )
        for label, op, tag in attempts:
            out_path = os.path.join(work_dir, f"reconciled_{tag}{ext}")
            try:
                await op(audio.locator, target, out_path)
                padded = await self.transcoder.probe(out_path, "audio")
            except TranscodeFailure as e:
                logger.warning("Padding via %s failed: %s", label, e)
                continue
            logger.info("[dur] padded audio = %.3fs (target %.3fs)", padded.duration_seconds, target)
            return padded, False

        logger.warning("Both padding methods failed, using unpadded audio (%.3fs)", produced)
        return audio, True

    async def _fit_long_audio(
        self, audio: MediaAsset, target: float, work_dir: str
    ) -> tuple[MediaAsset, bool]:
        logger.info(
            "[dur] audio exceeds target by %.3fs, compressing tempo", audio.duration_seconds - target
        )
        ext = os.path.splitext(audio.locator)[1] or ".wav"
        out_path = os.path.join(work_dir, f"reconciled_fit{ext}")
        try:
            await self.transcoder.fit_to_duration(audio.locator, target, out_path)
            fitted = await self.transcoder.probe(out_path, "audio")
        except TranscodeFailure as e:
            logger.warning("Tempo fit failed (%s); mux will pin output to video length", e)
            return audio, True
        if fitted.duration_seconds < target:
            padded, degraded = await self.reconcile(fitted, target, work_dir)
            return padded, degraded
        return fitted, False

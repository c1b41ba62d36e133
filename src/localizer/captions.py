"""
Caption alignment from transcription word timestamps or from a script.
"""

import logging

from .chunking import split_sentences, split_units
from .errors import PartialDegradation, ProviderUnavailable
from .gateway import ProviderGateway
from .models import DEFAULT_CAPTION_STYLE, CaptionSegment, CaptionSet, Transcript

logger = logging.getLogger("localizer")

MAX_WORDS_PER_CAPTION = 8
MAX_CAPTION_SECONDS = 5.0
MAX_CAPTION_CHARS = 80
FALLBACK_DURATION = 10.0


def _t(x: float) -> float:
    return round(float(x), 3)


def distribute_evenly(texts: list[str], duration: float) -> list[CaptionSegment]:
    """Give each text an equal slice of ``[0, duration]``; slices are contiguous."""
    if not texts:
        return []
    n = len(texts)
    bounds = [_t(i * duration / n) for i in range(n)] + [float(duration)]
    return [
        CaptionSegment(start=bounds[i], end=bounds[i + 1], text=texts[i].strip()) for i in range(n)
    ]


def group_words(transcript: Transcript) -> list[CaptionSegment]:
    """Close a caption at 8 words, at a 5 s span, or when the words run out."""
    out: list[CaptionSegment] = []
    cur: list[str] = []
    cur_start = 0.0
    cur_end = 0.0
    prev_end = 0.0
    words = transcript.words
    for i, w in enumerate(words):
        if not cur:
            cur_start = max(w.start, prev_end)
        cur.append(w.text)
        cur_end = max(w.end, cur_start)
        span = cur_end - cur_start
        if len(cur) >= MAX_WORDS_PER_CAPTION or span >= MAX_CAPTION_SECONDS or i == len(words) - 1:
            out.append(CaptionSegment(start=_t(cur_start), end=_t(cur_end), text=" ".join(cur)))
            prev_end = cur_end
            cur = []
    return out


def align_transcript(
    transcript: Transcript, language_code: str, duration: float | None = None
) -> CaptionSet:
    """Captions from word timestamps, or evenly spread sentences when there are none."""
    if transcript.words:
        segments = group_words(transcript)
    else:
        sentences = split_sentences(transcript.text)
        total = duration or transcript.duration or FALLBACK_DURATION
        if sentences:
            logger.warning(
                "No word-level timestamps, spreading %d sentences over %.1fs", len(sentences), total
            )
        segments = distribute_evenly(sentences, total)
    logger.info(f"Generated {len(segments)} captions from transcription")
    return CaptionSet(language_code=language_code, segments=segments)


def align_script(script: str, duration: float, language_code: str) -> CaptionSet:
    """Spread script sentences (max 80 chars per caption) evenly over ``[0, duration]``."""
    if duration <= 0:
        raise ValueError("duration must be positive")
    if not script or not script.strip():
        return CaptionSet(language_code=language_code, segments=[])
    units = split_units(script, MAX_CAPTION_CHARS)
    return CaptionSet(language_code=language_code, segments=distribute_evenly(units, duration))


def apply_style(caption_set: CaptionSet, style: dict | None) -> CaptionSet:
    """Return a copy of the set with style hints merged over the defaults."""
    merged = dict(DEFAULT_CAPTION_STYLE)
    merged.update({k: v for k, v in (style or {}).items() if v is not None})
    return CaptionSet(
        language_code=caption_set.language_code, segments=list(caption_set.segments), style=merged
    )


async def translate_caption_set(
    caption_set: CaptionSet, target_language: str, gateway: ProviderGateway
) -> tuple[CaptionSet, list[PartialDegradation]]:
    """Translate every caption on its own; timings are left untouched.

    A caption whose translation fails keeps its original text.
    """
    translated: list[CaptionSegment] = []
    degradations: list[PartialDegradation] = []
    for seg in caption_set.segments:
        try:
            text = await gateway.translate_strict(seg.text, target_language, caption_set.language_code)
        except ProviderUnavailable as e:
            logger.warning(f"Failed to translate caption: {seg.text!r}")
            degradations.append(PartialDegradation("caption translation", f"{seg.text!r}: {e}"))
            text = seg.text
        translated.append(CaptionSegment(start=seg.start, end=seg.end, text=text))
    return (
        CaptionSet(language_code=target_language, segments=translated, style=dict(caption_set.style)),
        degradations,
    )

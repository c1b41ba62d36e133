"""
SRT writing and parsing for caption sets.
"""

import logging
import re

from .models import CaptionSegment, CaptionSet

logger = logging.getLogger("localizer")

_TS_RE = re.compile(r"(\d\d:\d\d:\d\d,\d\d\d)\s+--\>\s+(\d\d:\d\d:\d\d,\d\d\d)")


def format_timestamp(t: float) -> str:
    """Seconds -> ``HH:MM:SS,mmm``."""
    total_ms = int(round(max(0.0, t) * 1000))
    h, rem = divmod(total_ms, 3_600_000)
    m, rem = divmod(rem, 60_000)
    s, ms = divmod(rem, 1000)
    return f"{h:02}:{m:02}:{s:02},{ms:03}"


def parse_timestamp(ts: str) -> float:
    h, m, rest = ts.split(":")
    s, ms = rest.split(",")
    return int(h) * 3600 + int(m) * 60 + int(s) + int(ms) / 1000.0


def captions_to_srt(caption_set: CaptionSet, max_line_chars: int | None = None) -> str:
    blocks = [
        f"{i}\n{format_timestamp(s.start)} --> {format_timestamp(s.end)}\n"
        f"{wrap_lines(s.text, max_line_chars) if max_line_chars else s.text}"
        for i, s in enumerate(caption_set.segments, 1)
    ]
    return "\n\n".join(blocks) + ("\n" if blocks else "")


def write_srt(caption_set: CaptionSet, path: str, max_line_chars: int | None = None) -> str:
    """Write a caption set to an SRT file."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(captions_to_srt(caption_set, max_line_chars))
    logger.info(f"Saved SRT -> {path} ({len(caption_set.segments)} captions)")
    return path


def parse_srt_text(raw: str) -> list[CaptionSegment]:
    """Parse SRT content into caption segments, skipping malformed blocks."""
    blocks = re.split(r"\n\s*\n", raw.strip(), flags=re.M)
    out: list[CaptionSegment] = []
    for b in blocks:
        lines = [ln for ln in b.splitlines() if ln.strip()]
        if lines and re.match(r"^\d+$", lines[0].strip()):
            lines = lines[1:]
        if not lines:
            continue
        m = _TS_RE.match(lines[0])
        if not m:
            continue
        text = " ".join(ln.strip() for ln in lines[1:])
        out.append(
            CaptionSegment(start=parse_timestamp(m.group(1)), end=parse_timestamp(m.group(2)), text=text)
        )
    return out


def parse_srt(path: str, language_code: str = "en") -> CaptionSet:
    """Parse an SRT file into a caption set."""
    with open(path, encoding="utf-8") as f:
        return CaptionSet(language_code=language_code, segments=parse_srt_text(f.read()))


def wrap_lines(text: str, max_chars: int = 42, max_lines: int = 3) -> str:
    """Wrap caption text; overflow past ``max_lines`` stays on the last line."""
    lines: list[str] = []
    cur: list[str] = []
    for w in text.split():
        if cur and len(" ".join(cur + [w])) > max_chars and len(lines) < max_lines - 1:
            lines.append(" ".join(cur))
            cur = []
        cur.append(w)
    if cur:
        lines.append(" ".join(cur))
    return "\n".join(lines)

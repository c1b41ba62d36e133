"""
Voiceover script generation with GPT, sized to the video when its duration is known.
"""

import logging
import math
from dataclasses import dataclass

from openai import AsyncOpenAI

from .voices import get_language_name

logger = logging.getLogger("localizer")

# Kept low so generated scripts fit the short-input TTS backends
SCRIPT_WORDS_PER_SEC = 2.0
SPOKEN_WORDS_PER_SEC = 150 / 60

SCRIPT_TONES = {
    "professional": "formal, business-like, and authoritative",
    "casual": "friendly, conversational, and relaxed",
    "enthusiastic": "energetic, exciting, and motivational",
    "educational": "informative, clear, and instructional",
}

SCRIPT_LENGTHS = {
    "short": "30-50 words (15-20 seconds)",
    "medium": "100-150 words (45-60 seconds)",
    "long": "200-300 words (90-120 seconds)",
}


@dataclass
class GeneratedScript:
    script: str
    word_count: int
    estimated_duration: int  # seconds
    video_duration: float | None = None

    def to_dict(self) -> dict:
        return {
            "script": self.script,
            "word_count": self.word_count,
            "estimated_duration": self.estimated_duration,
            "video_duration": self.video_duration,
        }


def target_word_count(video_duration: float) -> int:
    """Words needed to fill ``video_duration`` seconds."""
    return math.ceil(video_duration * SCRIPT_WORDS_PER_SEC)


def estimate_duration(text: str) -> int:
    """Speaking time in whole seconds at ~150 words per minute."""
    return math.ceil(len(text.split()) / SPOKEN_WORDS_PER_SEC)


def build_script_prompt(
    prompt: str, tone: str, length: str, language: str, word_target: int | None = None
) -> str:
    if word_target:
        length_rule = f"approximately {word_target} words to match the video duration"
    else:
        length_rule = SCRIPT_LENGTHS.get(length, SCRIPT_LENGTHS["medium"])
    lines = [
        "Write a video voiceover script for the following topic.",
        "",
        f"Topic/Description: {prompt}",
        "",
        "Requirements:",
        f"- Tone: {tone} ({SCRIPT_TONES.get(tone, 'neutral')})",
        f"- Target Length: {length_rule}",
        f"- Language: {get_language_name(language)}",
        "- Use short, clear sentences that are easy to speak aloud",
        "- Do NOT include stage directions, headings, or timestamps",
    ]
    if word_target:
        lines.append(f"- You MUST write approximately {word_target} words so the narration fills the video")
    lines += ["", "Return only the spoken words."]
    return "\n".join(lines)


class ScriptGenerator:
    """Drafts voiceover scripts through the chat completions API."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini") -> None:
        self.client = client
        self.model = model

    async def generate_script(
        self,
        prompt: str,
        tone: str = "professional",
        length: str = "medium",
        language: str = "en",
        video_duration: float | None = None,
    ) -> GeneratedScript:
        if not prompt or not prompt.strip():
            raise ValueError("Prompt is required")
        word_target = target_word_count(video_duration) if video_duration else None
        logger.info(
            f"Generating {tone} script ({language}, target: {word_target or length}) using {self.model}..."
        )
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": "You write natural, engaging narration for videos."},
                {"role": "user", "content": build_script_prompt(prompt, tone, length, language, word_target)},
            ],
            temperature=0.7,
            max_tokens=2048,
        )
        script = (response.choices[0].message.content or "").strip()
        if not script:
            raise RuntimeError("Model returned an empty script")
        return GeneratedScript(
            script=script,
            word_count=len(script.split()),
            estimated_duration=estimate_duration(script),
            video_duration=video_duration,
        )

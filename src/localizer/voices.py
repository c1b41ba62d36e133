"""
Voice tones, per-backend voice selection and supported languages.
"""

TONES = {
    "male": "Deep, masculine voice",
    "female": "Clear, feminine voice",
    "child": "Young, energetic voice",
}

# Tone tempo multipliers applied on top of any pacing hint
TONE_SPEED = {"male": 1.0, "female": 1.0, "child": 1.05}

OPENAI_VOICES = {"male": "onyx", "female": "nova", "child": "shimmer"}
OPENAI_VOICE_IDS = {"alloy", "echo", "fable", "onyx", "nova", "shimmer"}

ELEVENLABS_VOICES = {
    "male": "pNInz6obpgDQGcFmaJgB",  # Adam
    "female": "EXAVITQu4vr4xnSDxMaL",  # Bella
    "child": "nPczCjzI2devNBz1zQrb",  # Brian
}

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh-CN": "Chinese (Simplified)",
    "zh-TW": "Chinese (Traditional)",
    "ar": "Arabic",
    "hi": "Hindi",
    "bn": "Bengali",
    "pa": "Punjabi",
    "te": "Telugu",
    "mr": "Marathi",
    "ta": "Tamil",
    "ur": "Urdu",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
    "tr": "Turkish",
    "pl": "Polish",
    "uk": "Ukrainian",
    "nl": "Dutch",
    "sv": "Swedish",
    "da": "Danish",
    "fi": "Finnish",
    "no": "Norwegian",
    "cs": "Czech",
    "ro": "Romanian",
    "hu": "Hungarian",
    "el": "Greek",
    "he": "Hebrew",
}

_CODES = {code.lower(): code for code in LANGUAGE_NAMES}
_NAME_TO_CODE = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}
_CODES["zh"] = "zh-CN"
_NAME_TO_CODE.update({"chinese": "zh-CN", "mandarin": "zh-CN"})


def base_language(language_code: str) -> str:
    """'es-MX' or 'en_us' -> 'es' / 'en'."""
    return (language_code or "en").replace("_", "-").split("-", 1)[0].lower()


def normalize_language_code(label: str | None) -> str | None:
    """Turn a transcriber's language label into a supported code.

    Accepts codes ('en', 'en_us', 'pt-BR') and English names ('english').
    Returns None when the label cannot be mapped.
    """
    if not label:
        return None
    key = str(label).strip().lower()
    if key in _NAME_TO_CODE:
        return _NAME_TO_CODE[key]
    code = key.replace("_", "-")
    if code in _CODES:
        return _CODES[code]
    base = code.split("-", 1)[0]
    return _CODES.get(base)


def get_language_name(language_code: str) -> str:
    """Get human-readable language name from language code."""
    return LANGUAGE_NAMES.get(language_code) or LANGUAGE_NAMES.get(
        base_language(language_code), language_code.upper()
    )


def supported_languages() -> list[dict[str, str]]:
    return [{"code": code, "name": name} for code, name in LANGUAGE_NAMES.items()]


def tone_speed(tone_or_voice: str) -> float:
    return TONE_SPEED.get(tone_or_voice, 1.0)


def openai_voice(tone_or_voice: str) -> str:
    """Map a tone to an OpenAI voice; explicit voice names pass through."""
    if tone_or_voice in OPENAI_VOICE_IDS:
        return tone_or_voice
    return OPENAI_VOICES.get(tone_or_voice, OPENAI_VOICES["male"])


def elevenlabs_voice(tone_or_voice: str) -> str:
    """Map a tone to an ElevenLabs voice id; anything else is taken as a voice id."""
    if tone_or_voice in ELEVENLABS_VOICES:
        return ELEVENLABS_VOICES[tone_or_voice]
    return tone_or_voice or ELEVENLABS_VOICES["male"]


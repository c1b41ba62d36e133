"""
Localizer - Media localization pipeline for voiceovers, captions and dubbing.

A pipeline for:
- Synthesizing voiceovers from scripts (OpenAI, ElevenLabs or Google TTS)
- Transcribing speech (OpenAI Whisper, AssemblyAI or local faster-whisper)
- Aligning captions to word timestamps or to a script
- Translating scripts and captions with fallback providers
- Dubbing videos into another language with matched pacing
- Keeping every output exactly as long as the source video
"""

__version__ = "0.1.0"

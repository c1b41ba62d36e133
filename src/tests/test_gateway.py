"""
Tests for the provider gateway's ranked fallback chains.
"""

import asyncio

import pytest

from src.localizer.errors import ProviderUnavailable
from src.localizer.gateway import SYNTHESIS, TRANSLATION, ProviderGateway
from src.localizer.models import SynthesisRequest, Transcript
from src.tests.fakes import FakeSpeech, FakeTranscoder, FakeTranscriber, FakeTranslator


def test_synthesis_falls_back_in_rank_order(tmp_path):
    """A failing first backend hands over to the next one."""
    first = FakeSpeech("primary", fail=True)
    second = FakeSpeech("secondary", seconds=3.0)
    third = FakeSpeech("tertiary", seconds=9.0)
    gateway = ProviderGateway(FakeTranscoder(), synthesis=[first, second, third])

    result = asyncio.run(
        gateway.synthesize(SynthesisRequest("Hello there.", "female", "en"), str(tmp_path / "out.mp3"))
    )
    assert result.provider_used == "secondary"
    assert result.audio_asset.duration_seconds == pytest.approx(3.0)
    assert len(first.requests) == 1
    assert third.requests == []


def test_all_backends_failing_raises_provider_unavailable(tmp_path):
    gateway = ProviderGateway(
        FakeTranscoder(), synthesis=[FakeSpeech("a", fail=True), FakeSpeech("b", fail=True)]
    )
    with pytest.raises(ProviderUnavailable) as exc:
        asyncio.run(gateway.synthesize(SynthesisRequest("Hi.", "male", "en"), str(tmp_path / "x.mp3")))
    assert exc.value.capability == SYNTHESIS
    assert exc.value.last_backend == "b"


def test_over_limit_backend_is_skipped(tmp_path):
    """Backends whose input limit is too small are passed over without being called."""
    small = FakeSpeech("small", seconds=1.0, max_input_length=5)
    big = FakeSpeech("big", seconds=2.0)
    gateway = ProviderGateway(FakeTranscoder(), synthesis=[small, big])
    result = asyncio.run(
        gateway.synthesize(SynthesisRequest("Longer than five.", "male", "en"), str(tmp_path / "x.mp3"))
    )
    assert result.provider_used == "big"
    assert small.requests == []


def test_max_input_length_is_chain_minimum():
    gateway = ProviderGateway(
        FakeTranscoder(),
        synthesis=[FakeSpeech("a", max_input_length=4096), FakeSpeech("b", max_input_length=200), FakeSpeech("c")],
    )
    assert gateway.max_input_length(SYNTHESIS) == 200
    assert gateway.max_input_length(TRANSLATION) is None


def test_pacing_hint_is_forwarded(tmp_path):
    backend = FakeSpeech("tts")
    gateway = ProviderGateway(FakeTranscoder(), synthesis=[backend])
    request = SynthesisRequest("Some text.", "child", "fr", target_duration_seconds=4.0, speech_rate_hint=0.8)
    asyncio.run(gateway.synthesize(request, str(tmp_path / "x.mp3")))
    assert backend.requests[0] == {"text": "Some text.", "voice": "child", "language": "fr", "pacing": 0.8}


def test_transcription_falls_back():
    transcript = Transcript(text="hello world", language="en")
    gateway = ProviderGateway(
        FakeTranscoder(),
        transcription=[FakeTranscriber(name="cloud", fail=True), FakeTranscriber(transcript, name="local")],
    )
    assert asyncio.run(gateway.transcribe("audio.wav", "en")) is transcript


def test_translate_returns_input_when_all_backends_fail():
    """Translation fallback is idempotent: total failure gives back the input unchanged."""
    gateway = ProviderGateway(
        FakeTranscoder(), translation=[FakeTranslator("a", fail=True), FakeTranslator("b", fail=True)]
    )
    text = "Bonjour tout le monde, this stays as is."
    assert asyncio.run(gateway.translate(text, "de")) == text


def test_translate_strict_raises():
    gateway = ProviderGateway(FakeTranscoder(), translation=[FakeTranslator(fail=True)])
    with pytest.raises(ProviderUnavailable):
        asyncio.run(gateway.translate_strict("hello", "de"))


def test_empty_translation_counts_as_failure():
    blank = FakeTranslator("blank", mapping={"hello": "  "})
    good = FakeTranslator("good", mapping={"hello": "hallo"})
    gateway = ProviderGateway(FakeTranscoder(), translation=[blank, good])
    assert asyncio.run(gateway.translate("hello", "de")) == "hallo"


def test_empty_text_is_not_sent_for_translation():
    backend = FakeTranslator(prefix="[de] ")
    gateway = ProviderGateway(FakeTranscoder(), translation=[backend])
    assert asyncio.run(gateway.translate("   ", "de")) == "   "
    assert backend.calls == []


def test_empty_chain_raises():
    gateway = ProviderGateway(FakeTranscoder())
    with pytest.raises(ProviderUnavailable):
        asyncio.run(gateway.transcribe("audio.wav"))

"""
Tests for the voiceover, caption and dub workflows.
"""

import asyncio
import os
import tempfile

import httpx
import pytest

from src.localizer.errors import ProviderUnavailable, SourceMissing, TranscodeFailure
from src.localizer.gateway import ProviderGateway
from src.localizer.models import MediaAsset, Transcript, Word
from src.localizer.pipeline import LocalizationOrchestrator, compute_speech_rate
from src.localizer.store import InMemoryProjectStore
from src.localizer.stt import transcript_from_whisper
from src.localizer.translation import MyMemoryBackend
from src.tests.fakes import (
    FakeSpeech,
    FakeTranscoder,
    FakeTranscriber,
    FakeTranslator,
    make_video,
    read_media,
    write_media,
)

SPANISH_80 = "Hola a todas y a todos, bienvenidos al canal. Hoy aprendemos algo nuevo, y útil."


def _orchestrator(tmp_path, transcoder=None, synthesis=None, transcription=None, translation=None):
    transcoder = transcoder or FakeTranscoder()
    gateway = ProviderGateway(
        transcoder,
        synthesis=synthesis or [FakeSpeech()],
        transcription=transcription or [],
        translation=translation or [],
    )
    store = InMemoryProjectStore()
    return LocalizationOrchestrator(gateway, transcoder, store, str(tmp_path / "out")), store


def test_compute_speech_rate():
    """80 chars over 10s is 8 chars/s, a 0.64 multiplier of natural speech."""
    assert compute_speech_rate(80, 10.0) == pytest.approx(0.64)


@pytest.mark.parametrize(
    "chars,duration,expected",
    [(0, 10.0, 0.1), (5, 100.0, 0.1), (10_000, 10.0, 3.0), (125, 10.0, 1.0)],
)
def test_speech_rate_is_clamped(chars, duration, expected):
    assert compute_speech_rate(chars, duration) == pytest.approx(expected)


def test_speech_rate_needs_positive_duration():
    with pytest.raises(ValueError):
        compute_speech_rate(10, 0)


def test_voiceover_pads_short_audio_to_video_length(tmp_path):
    """An 8.2s voiceover on a 12s video yields a 12s video and one new version."""
    orch, store = _orchestrator(tmp_path, synthesis=[FakeSpeech(seconds=8.2)])

    async def scenario():
        await store.create("p1", make_video(tmp_path, 12.0))
        result = await orch.voiceover("p1", "Welcome to the show. Today we talk about rivers.", "female", "en")
        return result, await store.load("p1")

    result, project = asyncio.run(scenario())
    assert result.degradations == []
    assert 11.9 <= result.record.media_asset.duration_seconds <= 12.1
    assert result.record.kind == "voiceover"
    assert result.record.tone == "female"
    assert len(project.versions) == 2
    assert project.versions[1] == result.record
    assert project.voiceover.script_text.startswith("Welcome")
    assert os.path.exists(result.audio_asset.locator)
    assert read_media(result.audio_asset.locator)[1] == pytest.approx(8.2)

    (pad,) = orch.transcoder.called("pad_with_silence")
    assert pad[2] == 12.0
    (mux,) = orch.transcoder.called("mux_replace_audio")
    assert mux[3] == 12.0


def test_voiceover_longer_than_video_never_extends_it(tmp_path):
    orch, store = _orchestrator(tmp_path, synthesis=[FakeSpeech(seconds=15.0)])

    async def scenario():
        await store.create("p1", make_video(tmp_path, 12.0))
        return await orch.voiceover("p1", "A rather long script.")

    result = asyncio.run(scenario())
    assert abs(result.record.media_asset.duration_seconds - 12.0) < 1.0
    assert len(orch.transcoder.called("fit_to_duration")) == 1


def test_voiceover_history_is_append_only(tmp_path):
    """N successful runs leave N+1 versions with the original untouched."""
    orch, store = _orchestrator(tmp_path)

    async def scenario():
        created = await store.create("p1", make_video(tmp_path, 6.0))
        for tone in ("male", "female", "child"):
            await orch.voiceover("p1", f"Hello from the {tone} voice.", tone)
        return created, await store.load("p1")

    created, project = asyncio.run(scenario())
    assert len(project.versions) == 4
    assert project.versions[0] == created.versions[0]
    assert [v.tone for v in project.versions[1:]] == ["male", "female", "child"]


def test_voiceover_synthesis_failure_appends_nothing(tmp_path):
    orch, store = _orchestrator(tmp_path, synthesis=[FakeSpeech("a", fail=True), FakeSpeech("b", fail=True)])

    async def scenario():
        await store.create("p1", make_video(tmp_path, 6.0))
        with pytest.raises(ProviderUnavailable):
            await orch.voiceover("p1", "Nothing will be said.")
        return await store.load("p1")

    project = asyncio.run(scenario())
    assert len(project.versions) == 1
    assert orch.transcoder.called("mux_replace_audio") == []


def test_voiceover_mux_failure_keeps_audio_only(tmp_path):
    """A failed mux keeps the synthesized audio, removes the partial video and appends nothing."""
    orch, store = _orchestrator(tmp_path, transcoder=FakeTranscoder(fail=("mux_write",)))

    async def scenario():
        await store.create("p1", make_video(tmp_path, 6.0))
        result = await orch.voiceover("p1", "This audio survives.")
        return result, await store.load("p1")

    result, project = asyncio.run(scenario())
    assert result.record is None
    assert result.degradations
    assert os.path.exists(result.audio_asset.locator)
    assert len(project.versions) == 1
    assert project.voiceover.audio_locator == result.audio_asset.locator
    processed = tmp_path / "out" / "videos" / "processed"
    assert not processed.exists() or os.listdir(processed) == []


def test_voiceover_without_video_records_audio(tmp_path):
    orch, store = _orchestrator(tmp_path, synthesis=[FakeSpeech(seconds=4.0)])
    podcast = MediaAsset(locator=write_media(tmp_path / "intro.mp3", 30.0), duration_seconds=30.0, kind="audio")

    async def scenario():
        await store.create("p1", podcast)
        result = await orch.voiceover("p1", "Audio only.")
        return result, await store.load("p1")

    result, project = asyncio.run(scenario())
    assert result.record.media_asset.kind == "audio"
    assert len(project.versions) == 2
    assert orch.transcoder.called("mux_replace_audio") == []


def test_voiceover_chunks_long_scripts(tmp_path):
    """Scripts over the chain's input limit are synthesized chunk by chunk and joined."""
    backend = FakeSpeech(max_input_length=40)
    orch, store = _orchestrator(tmp_path, synthesis=[backend])
    script = "The first sentence is short. The second one is a bit longer. And here is the third."

    async def scenario():
        await store.create("p1", make_video(tmp_path, 20.0))
        return await orch.voiceover("p1", script)

    result = asyncio.run(scenario())
    assert len(backend.requests) == 3
    assert all(len(r["text"]) <= 40 for r in backend.requests)
    assert " ".join(r["text"] for r in backend.requests) == script
    assert len(orch.transcoder.called("concat_audio")) == 1
    assert result.record is not None


def test_voiceover_requires_script(tmp_path):
    orch, store = _orchestrator(tmp_path)

    async def scenario():
        await store.create("p1", make_video(tmp_path, 6.0))
        await orch.voiceover("p1", "   ")

    with pytest.raises(SourceMissing):
        asyncio.run(scenario())


def test_dub_paces_speech_to_video(tmp_path):
    """A 10s video with an 80-char translation is synthesized at rate 0.64."""
    assert len(SPANISH_80) == 80
    speech = FakeSpeech()
    orch, store = _orchestrator(
        tmp_path,
        synthesis=[speech],
        transcription=[FakeTranscriber(Transcript(text="Hello everyone, welcome.", language="en"))],
        translation=[FakeTranslator(mapping={"Hello everyone, welcome.": SPANISH_80})],
    )

    async def scenario():
        await store.create("p1", make_video(tmp_path, 10.0))
        result = await orch.dub("p1", "es")
        return result, await store.load("p1")

    result, project = asyncio.run(scenario())
    assert speech.requests[0]["pacing"] == pytest.approx(0.64)
    assert speech.requests[0]["language"] == "es"
    assert result.record.kind == "dubbed"
    assert result.record.language_code == "es"
    assert result.record.script_text == SPANISH_80
    assert abs(result.record.media_asset.duration_seconds - 10.0) < 1.0
    assert result.degradations == []
    assert len(project.versions) == 2


def test_dub_translation_failure_degrades_to_transcript(tmp_path):
    orch, store = _orchestrator(
        tmp_path,
        transcription=[FakeTranscriber(Transcript(text="Keep me as I am.", language="en"))],
        translation=[FakeTranslator(fail=True)],
    )

    async def scenario():
        await store.create("p1", make_video(tmp_path, 5.0))
        return await orch.dub("p1", "de")

    result = asyncio.run(scenario())
    assert result.record.script_text == "Keep me as I am."
    assert any("translation" in d for d in result.degradations)


def test_dub_maps_transcriber_language_name_to_code(tmp_path):
    """Whisper reports "english"; translators must see the ISO code."""
    langpairs = []

    def handler(request: httpx.Request) -> httpx.Response:
        langpairs.append(request.url.params["langpair"])
        return httpx.Response(200, json={"responseStatus": 200, "responseData": {"translatedText": "Hola a todos."}})

    transcript = transcript_from_whisper({"text": "Hello everyone.", "language": "english"})
    orch, store = _orchestrator(
        tmp_path,
        transcription=[FakeTranscriber(transcript)],
        translation=[MyMemoryBackend(transport=httpx.MockTransport(handler))],
    )

    async def scenario():
        await store.create("p1", make_video(tmp_path, 6.0))
        return await orch.dub("p1", "es")

    result = asyncio.run(scenario())
    assert langpairs == ["en|es"]
    assert result.record.script_text == "Hola a todos."
    assert result.degradations == []


def test_dub_empty_transcription_is_source_missing(tmp_path):
    orch, store = _orchestrator(tmp_path, transcription=[FakeTranscriber(Transcript(text="  "))])

    async def scenario():
        await store.create("p1", make_video(tmp_path, 5.0))
        with pytest.raises(SourceMissing):
            await orch.dub("p1", "fr")
        return await store.load("p1")

    assert len(asyncio.run(scenario()).versions) == 1


def test_dub_mux_failure_is_fatal_and_appends_nothing(tmp_path):
    """A failed mux leaves neither a history entry nor stray output files."""
    orch, store = _orchestrator(
        tmp_path,
        transcoder=FakeTranscoder(fail=("mux_replace_audio",)),
        transcription=[FakeTranscriber(Transcript(text="Hello.", language="en"))],
        translation=[FakeTranslator(prefix="[it] ")],
    )

    async def scenario():
        await store.create("p1", make_video(tmp_path, 5.0))
        with pytest.raises(TranscodeFailure):
            await orch.dub("p1", "it")
        return await store.load("p1")

    assert len(asyncio.run(scenario()).versions) == 1
    assert not list((tmp_path / "out" / "audio").glob("*"))
    assert not list((tmp_path / "out" / "videos" / "processed").glob("*"))


def test_concurrent_dubs_both_append(tmp_path):
    """Two dubs racing on one project both land in the history."""
    orch, store = _orchestrator(
        tmp_path,
        transcription=[FakeTranscriber(Transcript(text="Hello there.", language="en"))],
        translation=[FakeTranslator(prefix="* ")],
    )

    async def scenario():
        await store.create("p1", make_video(tmp_path, 8.0))
        await asyncio.gather(orch.dub("p1", "es"), orch.dub("p1", "fr"))
        return await store.load("p1")

    project = asyncio.run(scenario())
    assert len(project.versions) == 3
    assert sorted(v.language_code for v in project.versions[1:]) == ["es", "fr"]


def test_captions_from_transcription(tmp_path):
    words = [Word(text=f"w{i}", start=i * 0.5, end=i * 0.5 + 0.4) for i in range(12)]
    orch, store = _orchestrator(
        tmp_path, transcription=[FakeTranscriber(Transcript(text="", words=words, language="en"))]
    )

    async def scenario():
        await store.create("p1", make_video(tmp_path, 7.0))
        caption_set = await orch.captions("p1", "en", style={"position": "top"})
        return caption_set, await store.load("p1")

    caption_set, project = asyncio.run(scenario())
    assert [len(s.text.split()) for s in caption_set.segments] == [8, 4]
    assert project.captions.segments == caption_set.segments
    assert project.captions.style["position"] == "top"
    assert len(project.versions) == 1


def test_captions_from_script_with_translation(tmp_path):
    orch, store = _orchestrator(tmp_path, translation=[FakeTranslator(prefix="[es] ")])

    async def scenario():
        await store.create("p1", make_video(tmp_path, 9.0))
        return await orch.captions("p1", "en", script="One. Two. Three.", translate_to="es")

    caption_set = asyncio.run(scenario())
    assert caption_set.language_code == "es"
    assert [s.text for s in caption_set.segments] == ["[es] One.", "[es] Two.", "[es] Three."]
    assert [(s.start, s.end) for s in caption_set.segments] == [(0.0, 3.0), (3.0, 6.0), (6.0, 9.0)]
    assert orch.transcoder.called("extract_audio") == []


def test_translate_captions_replaces_active_set(tmp_path):
    orch, store = _orchestrator(tmp_path, translation=[FakeTranslator(prefix="fr: ")])

    async def scenario():
        await store.create("p1", make_video(tmp_path, 4.0))
        await orch.captions("p1", "en", script="Hello. Bye.", style={"fontSize": 30})
        await orch.translate_captions("p1", "fr")
        return await store.load("p1")

    project = asyncio.run(scenario())
    assert project.captions.language_code == "fr"
    assert [s.text for s in project.captions.segments] == ["fr: Hello.", "fr: Bye."]
    assert project.captions.style["fontSize"] == 30


def test_translate_captions_without_captions(tmp_path):
    orch, store = _orchestrator(tmp_path, translation=[FakeTranslator()])

    async def scenario():
        await store.create("p1", make_video(tmp_path, 4.0))
        await orch.translate_captions("p1", "fr")

    with pytest.raises(SourceMissing):
        asyncio.run(scenario())


def test_apply_voice_effect_chains_filters(tmp_path):
    orch, _ = _orchestrator(tmp_path)
    source = write_media(tmp_path / "voice.mp3", 6.0)

    asset = asyncio.run(orch.apply_voice_effect(source, effect="echo", speed=2.0))
    assert asset.duration_seconds == pytest.approx(3.0)
    kinds = [c[1] for c in orch.transcoder.called("apply_audio_filter")]
    assert kinds == ["speed", "effect"]
    assert read_media(source)[1] == 6.0


def test_apply_voice_effect_rejects_unknown_effect(tmp_path):
    orch, _ = _orchestrator(tmp_path)
    source = write_media(tmp_path / "voice.mp3", 6.0)
    with pytest.raises(ValueError):
        asyncio.run(orch.apply_voice_effect(source, effect="underwater"))


def test_apply_voice_effect_missing_file(tmp_path):
    orch, _ = _orchestrator(tmp_path)
    with pytest.raises(SourceMissing):
        asyncio.run(orch.apply_voice_effect(str(tmp_path / "nope.mp3"), effect="robot"))


def test_delete_version(tmp_path):
    orch, store = _orchestrator(tmp_path)

    async def scenario():
        await store.create("p1", make_video(tmp_path, 5.0))
        await orch.voiceover("p1", "First take.")
        await orch.voiceover("p1", "Second take.")
        with pytest.raises(ValueError):
            await orch.delete_version("p1", 0)
        with pytest.raises(IndexError):
            await orch.delete_version("p1", 7)
        return await orch.delete_version("p1", 1)

    project = asyncio.run(scenario())
    assert [v.kind for v in project.versions] == ["original", "voiceover"]
    assert project.versions[1].script_text == "Second take."


def test_unknown_project(tmp_path):
    orch, _ = _orchestrator(tmp_path)
    with pytest.raises(SourceMissing):
        asyncio.run(orch.voiceover("missing", "Hello."))


def test_work_dirs_removed_on_success_and_failure(tmp_path, monkeypatch):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    ok, ok_store = _orchestrator(tmp_path / "ok", synthesis=[FakeSpeech(seconds=3.0)])
    broken, broken_store = _orchestrator(
        tmp_path / "broken",
        synthesis=[FakeSpeech(fail=True)],
        transcription=[FakeTranscriber(Transcript(text="Hello.", language="en"))],
        translation=[FakeTranslator(prefix="[es] ")],
    )

    async def scenario():
        await ok_store.create("p1", make_video(tmp_path, 5.0))
        await ok.voiceover("p1", "A short script.")
        await broken_store.create("p2", make_video(tmp_path, 5.0, "other.mp4"))
        with pytest.raises(ProviderUnavailable):
            await broken.dub("p2", "es")

    asyncio.run(scenario())
    assert list(scratch.glob("localizer-*")) == []

"""Unit tests for per-chunk synthesis and artifact writes."""

from __future__ import annotations

from pathlib import Path

import pytest

from bookcast.errors import JobAborted, SynthesisError
from bookcast.io.storage import ArtifactStore
from bookcast.models.datatypes import ChunkTask
from bookcast.pipeline.cancellation import CancellationToken
from bookcast.tts.synthesizer import ChunkSynthesizer
from bookcast.tts.voices import VoiceProfile


def _task(text: str = "Hello world. ") -> ChunkTask:
    return ChunkTask(
        text=text,
        chapter_title="Opening Scene",
        chapter_index=1,
        chunk_index=3,
        global_order_index=7,
    )


def test_synthesize_writes_audio_under_deterministic_name(
    tmp_path: Path, speech_client
) -> None:  # type: ignore[no-untyped-def]
    synthesizer = ChunkSynthesizer(speech_client, ArtifactStore(tmp_path), VoiceProfile("af_bella", 0.9))

    artifact = synthesizer(_task(), CancellationToken())

    assert artifact == tmp_path / "001_opening_scene_part0003.mp3"
    assert artifact.read_bytes() == b"audio:Hello world.|"
    assert speech_client.calls == ["Hello world."]


def test_provider_failure_maps_to_synthesis_error(
    tmp_path: Path, speech_client_factory
) -> None:  # type: ignore[no-untyped-def]
    client = speech_client_factory(fail_on={"Hello world."})
    synthesizer = ChunkSynthesizer(client, ArtifactStore(tmp_path), VoiceProfile())

    with pytest.raises(SynthesisError) as exc_info:
        synthesizer(_task(), CancellationToken())

    error = exc_info.value
    assert error.stage == "tts"
    assert error.failure_kind == "http_error"
    assert error.global_order_index == 7
    assert error.detail.startswith("Chunk 8 (chapter 2, part 3) failed:")
    assert error.hint is not None


def test_cancelled_token_skips_provider_call(tmp_path: Path, speech_client) -> None:  # type: ignore[no-untyped-def]
    token = CancellationToken()
    token.cancel()

    with pytest.raises(JobAborted):
        ChunkSynthesizer(speech_client, ArtifactStore(tmp_path), VoiceProfile())(_task(), token)

    assert speech_client.calls == []


def test_abort_inside_provider_call_maps_to_job_aborted(
    tmp_path: Path, speech_client_factory
) -> None:  # type: ignore[no-untyped-def]
    client = speech_client_factory(on_call=lambda _text, token: token.cancel())

    with pytest.raises(JobAborted):
        ChunkSynthesizer(client, ArtifactStore(tmp_path), VoiceProfile())(_task(), CancellationToken())

    assert not list(tmp_path.iterdir())

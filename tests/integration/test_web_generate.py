"""Integration tests for the FastAPI generation route and downloads mount."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from bookcast.config import BookcastConfig
from bookcast.pipeline import GenerationJob
from bookcast.web import create_app


def _ndjson(body: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in body.splitlines() if line.strip()]


@pytest.fixture
def make_client(job_config: BookcastConfig, stub_merger):  # type: ignore[no-untyped-def]
    """Build a test client whose jobs use the given speech client double."""

    def _make(speech_client):  # type: ignore[no-untyped-def]
        app = create_app(
            job_config,
            job_factory=lambda config: GenerationJob(config, client=speech_client, merger=stub_merger),
        )
        return TestClient(app)

    return _make


@pytest.mark.parametrize("form", [{}, {"text": "   "}, {"voice": "af_sky"}])
def test_missing_source_is_rejected_with_json_400(make_client, speech_client, form) -> None:  # type: ignore[no-untyped-def]
    client = make_client(speech_client)

    response = client.post("/api/generate", data=form)

    assert response.status_code == 400
    assert response.json() == {"error": "No file or text provided"}
    assert speech_client.calls == []


def test_text_request_streams_ndjson_and_serves_download(
    make_client, speech_client, stub_merger  # type: ignore[no-untyped-def]
) -> None:
    client = make_client(speech_client)

    response = client.post(
        "/api/generate",
        data={"text": "Hello there.\nGeneral Kenobi.", "voice": "af_sky", "speed": "1.2", "format": "mp3"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    events = _ndjson(response.text)
    assert [event["type"] for event in events] == ["progress", "status", "result"]
    assert events[0]["progress"] == 100
    result = events[-1]
    assert result["success"] is True
    assert str(result["downloadUrl"]).endswith(".mp3")
    assert stub_merger.calls[0]["container_format"] == "mp3"

    download = client.get(str(result["downloadUrl"]))
    assert download.status_code == 200
    assert download.content == b"audio:Hello there. General Kenobi.|"


def test_uploaded_file_takes_precedence_over_text(
    make_client, speech_client, job_config: BookcastConfig  # type: ignore[no-untyped-def]
) -> None:
    client = make_client(speech_client)

    response = client.post(
        "/api/generate",
        data={"text": "ignored text"},
        files={"file": ("My Notes.txt", b"From the upload.", "text/plain")},
    )

    events = _ndjson(response.text)
    assert events[-1]["downloadUrl"] == "/downloads/My%20Notes.m4b"
    assert events[0]["chapterTitle"] == "Full Text"
    assert speech_client.calls == ["From the upload."]
    assert len(list(job_config.downloads_dir.glob("my_notes_*"))) == 1

    download = client.get("/downloads/My%20Notes.m4b")
    assert download.status_code == 200


@pytest.mark.parametrize(
    ("speed", "message"),
    [("fast", "Speed `fast` is not a number."), ("5", "Speed 5.0 is outside the supported range 0.5-2.0.")],
)
def test_bad_speed_is_rejected_with_json_400(make_client, speech_client, speed, message) -> None:  # type: ignore[no-untyped-def]
    client = make_client(speech_client)

    response = client.post("/api/generate", data={"text": "Hello.", "speed": speed})

    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_synthesis_failure_ends_stream_with_error_event(
    make_client, speech_client_factory  # type: ignore[no-untyped-def]
) -> None:
    client = make_client(speech_client_factory(fail_on={"Hello."}))

    response = client.post("/api/generate", data={"text": "Hello."})

    assert response.status_code == 200
    events = _ndjson(response.text)
    assert len(events) == 1
    assert events[0]["type"] == "error"
    assert "HTTP 500" in str(events[0]["error"])


def test_voices_endpoint_lists_known_voices(make_client, speech_client) -> None:  # type: ignore[no-untyped-def]
    response = make_client(speech_client).get("/api/voices")

    assert response.status_code == 200
    payload = response.json()
    assert payload["default"] == "af_heart"
    assert "af_heart" in payload["voices"]

"""Shared pytest fixtures for the bookcast test suite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import threading
import time

import pytest

from bookcast.audio.merger import MergeMetadata
from bookcast.config import BookcastConfig
from bookcast.pipeline.cancellation import CancellationToken
from bookcast.tts.kokoro_client import TTSProviderError


class RecordingSpeechClient:
    """Instrumented speech client double.

    Calls are keyed by stripped chunk text. `delays` slows selected chunks,
    `fail_on` makes selected chunks raise, and `on_call` runs inside every call
    (for example to cancel the job token mid-flight).
    """

    def __init__(
        self,
        *,
        delays: dict[str, float] | None = None,
        fail_on: set[str] | None = None,
        on_call: Callable[[str, CancellationToken | None], None] | None = None,
    ) -> None:
        self.delays = delays or {}
        self.fail_on = fail_on or set()
        self.on_call = on_call
        self.calls: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._lock = threading.Lock()

    def synthesize(
        self,
        text: str,
        voice: str,
        speed: float,
        cancellation: CancellationToken | None = None,
    ) -> bytes:
        key = text.strip()
        with self._lock:
            self.calls.append(key)
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.on_call is not None:
                self.on_call(key, cancellation)
            delay = self.delays.get(key, 0.0)
            if delay:
                time.sleep(delay)
            if cancellation is not None and cancellation.cancelled:
                raise TTSProviderError("Speech request aborted.", failure_kind="aborted")
            if key in self.fail_on:
                raise TTSProviderError(
                    "Speech request failed (HTTP 500): boom",
                    failure_kind="http_error",
                    status_code=500,
                )
            return f"audio:{key}|".encode("utf-8")
        finally:
            with self._lock:
                self.in_flight -= 1


class StubMerger:
    """Merge double that concatenates chunk bytes instead of running ffmpeg."""

    def __init__(self, duration: str | None = "0:00:42") -> None:
        self.duration = duration
        self.calls: list[dict[str, object]] = []

    def merge(
        self,
        paths: list[Path],
        output_dir: Path,
        base_name: str,
        container_format: str,
        metadata: MergeMetadata,
    ) -> Path:
        self.calls.append(
            {
                "paths": list(paths),
                "base_name": base_name,
                "container_format": container_format,
                "metadata": metadata,
            }
        )
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{base_name}.{container_format}"
        output_path.write_bytes(b"".join(path.read_bytes() for path in paths))
        return output_path

    def probe_duration(self, path: Path) -> str | None:
        return self.duration


@pytest.fixture
def speech_client_factory() -> type[RecordingSpeechClient]:
    """Expose the speech client double class for tests that need custom behavior."""

    return RecordingSpeechClient


@pytest.fixture
def speech_client() -> RecordingSpeechClient:
    return RecordingSpeechClient()


@pytest.fixture
def stub_merger() -> StubMerger:
    return StubMerger()


@pytest.fixture
def job_config(tmp_path: Path) -> BookcastConfig:
    """Small-chunk config writing into a per-test downloads directory."""

    return BookcastConfig(
        downloads_dir=tmp_path / "downloads",
        chunk_size_chars=40,
        concurrency=3,
    )

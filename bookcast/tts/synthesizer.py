"""Chunk-level synthesis that writes one audio artifact per task.

Responsibilities:
- Call the speech client for one chunk task with the job cancellation token.
- Persist returned audio under a deterministic filename in the book directory.
- Map provider failures to `SynthesisError` and aborted calls to `JobAborted`.
"""

from __future__ import annotations

from pathlib import Path

from ..errors import JobAborted, SynthesisError
from ..io.storage import ArtifactStore
from ..models.datatypes import ChunkTask
from ..pipeline.cancellation import CancellationToken
from ..text.slug import chunk_artifact_filename
from .kokoro_client import SpeechClient, TTSProviderError
from .voices import VoiceProfile


class ChunkSynthesizer:
    """Synthesize chunk tasks into audio files inside one working directory."""

    _HINTS = {
        "timeout": "Retry the job. If timeouts persist, check TTS server load.",
        "transport": "Check that the TTS server is running and `KOKORO_BASE_URL` is correct.",
        "http_error": "Verify the voice identifier and TTS server logs, then retry.",
        "empty_response": "The TTS server returned no audio; check its logs and retry.",
    }

    def __init__(
        self,
        client: SpeechClient,
        store: ArtifactStore,
        voice: VoiceProfile,
        extension: str = "mp3",
    ) -> None:
        self.client = client
        self.store = store
        self.voice = voice
        self.extension = extension

    def __call__(self, task: ChunkTask, token: CancellationToken) -> Path:
        return self.synthesize(task, token)

    def synthesize(self, task: ChunkTask, token: CancellationToken) -> Path:
        """Synthesize one chunk and return the written artifact path."""

        if token.cancelled:
            raise JobAborted()
        try:
            audio = self.client.synthesize(
                task.text,
                self.voice.provider_voice_id,
                self.voice.speed,
                token,
            )
        except TTSProviderError as exc:
            if exc.aborted or token.cancelled:
                raise JobAborted() from exc
            raise SynthesisError(
                f"Chunk {task.global_order_index + 1} "
                f"(chapter {task.chapter_index + 1}, part {task.chunk_index}) failed: {exc}",
                global_order_index=task.global_order_index,
                failure_kind=exc.failure_kind,
                hint=self._HINTS.get(exc.failure_kind),
            ) from exc

        return self.store.save_audio(
            Path(chunk_artifact_filename(task, self.extension)),
            audio,
        )

"""Generation job orchestration.

Responsibilities:
- Run parse, chunk, concurrent synthesis, and merge for one request.
- Stream `progress`/`status`/`result`/`error` events through a caller-supplied sink.
- Resolve every job into exactly one terminal state: completed, aborted, or failed.

Key types:
- `GenerationJob`: orchestration facade shared by the CLI and the web route.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
import queue
import threading
from urllib.parse import quote

from loguru import logger

from ..audio.merger import AudioMerger, MergeMetadata
from ..config import BookcastConfig
from ..errors import InputError, JobAborted, ParseError, PipelineStageError
from ..events import (
    ABORTED_STATUS,
    MERGING_STATUS,
    Event,
    EventSink,
    error_event,
    progress_event,
    result_event,
    status_event,
)
from ..io.documents import DocumentParser
from ..io.storage import ArtifactStore, create_temp_dir, remove_tree, reserve_output_path
from ..models.datatypes import (
    ChunkTask,
    JobOutcome,
    JobRequest,
    ParsedDocument,
    ProgressSnapshot,
)
from ..telemetry.logger import RunLogger
from ..text.chunking import Chunker
from ..text.slug import sanitize_name
from ..tts.kokoro_client import KokoroSpeechClient, SpeechClient
from ..tts.synthesizer import ChunkSynthesizer
from ..tts.voices import VoiceProfile
from .assembly import OrderedResultAssembler
from .cancellation import CancellationToken
from .dispatcher import ConcurrencyLimitedDispatcher
from .eta import EtaEstimator
from .progress import ProgressAggregator
from .telemetry import PipelineTelemetryMixin

DOWNLOADS_URL_PREFIX = "/downloads"

_END_OF_STREAM = object()


class GenerationJob(PipelineTelemetryMixin):
    """Convert one document or text request into a merged audiobook file."""

    def __init__(
        self,
        config: BookcastConfig | None = None,
        *,
        client: SpeechClient | None = None,
        parser: DocumentParser | None = None,
        merger: AudioMerger | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize collaborators; defaults talk to the configured Kokoro server."""

        self.config = config if config is not None else BookcastConfig()
        self.config.validate()
        self.client = client if client is not None else KokoroSpeechClient(
            base_url=self.config.kokoro_base_url,
            model=self.config.tts_model,
            timeout_seconds=self.config.request_timeout_seconds,
            api_key=self.config.api_key,
        )
        self.parser = parser if parser is not None else DocumentParser()
        self.merger = merger if merger is not None else AudioMerger()
        self._run_logger = run_logger

    def prepare(self, request: JobRequest) -> VoiceProfile:
        """Validate a request before any event is emitted.

        Raises:
            InputError: When the request has no usable source or invalid voice settings.
        """

        request.validate()
        voice = VoiceProfile(provider_voice_id=request.voice, speed=request.speed)
        try:
            voice.validate()
        except ValueError as exc:
            raise InputError(str(exc), hint="Use a speed between 0.5 and 2.0.") from exc
        return voice

    def run(
        self,
        request: JobRequest,
        emit: EventSink,
        token: CancellationToken | None = None,
    ) -> JobOutcome:
        """Run one job to a terminal state, emitting events along the way.

        Raises:
            InputError: Before any event, when the request is unusable.
        """

        voice = self.prepare(request)
        token = token if token is not None else CancellationToken()
        book_dir: Path | None = None
        try:
            if token.cancelled:
                raise JobAborted()
            document = self._run_stage("parse", lambda: self._parse(request))
            # One working directory per job, even when two sources share a name.
            book_dir = create_temp_dir(
                f"{sanitize_name(document.base_name)}_",
                parent=self.config.downloads_dir,
            )
            return self._generate(document, request, voice, book_dir, emit, token)
        except JobAborted as exc:
            logger.debug("Generation aborted: {}", token.reason or exc.detail)
            emit(status_event(ABORTED_STATUS))
            return JobOutcome(state="aborted")
        except PipelineStageError as exc:
            emit(error_event(exc.detail))
            return JobOutcome(state="failed", error=exc.detail)
        except Exception as exc:
            logger.exception("Unexpected generation failure")
            message = str(exc) or type(exc).__name__
            emit(error_event(message))
            return JobOutcome(state="failed", error=message)
        finally:
            if book_dir is not None and not self.config.keep_chunks:
                remove_tree(book_dir)

    def start(
        self,
        request: JobRequest,
        emit: EventSink,
        token: CancellationToken,
        on_finish: Callable[[], None] | None = None,
    ) -> threading.Thread:
        """Validate `request`, then run the job on a background thread.

        `on_finish` runs on the job thread after the terminal event was emitted.
        """

        self.prepare(request)

        def _target() -> None:
            try:
                self.run(request, emit, token)
            finally:
                if on_finish is not None:
                    on_finish()

        thread = threading.Thread(target=_target, name="bookcast-job", daemon=True)
        thread.start()
        return thread

    def iter_events(
        self,
        request: JobRequest,
        token: CancellationToken | None = None,
    ) -> Iterator[Event]:
        """Yield job events in emission order; closing the iterator early cancels the job."""

        token = token if token is not None else CancellationToken()
        events: queue.Queue[object] = queue.Queue()
        self.start(request, events.put, token, on_finish=lambda: events.put(_END_OF_STREAM))
        finished = False
        try:
            while True:
                event = events.get()
                if event is _END_OF_STREAM:
                    finished = True
                    return
                yield event  # type: ignore[misc]
        finally:
            if not finished:
                token.cancel("event consumer closed")

    def _parse(self, request: JobRequest) -> ParsedDocument:
        if request.source_path is not None:
            return self.parser.parse_file(request.source_path, request.source_name)
        return self.parser.parse_text(request.text or "")

    def _generate(
        self,
        document: ParsedDocument,
        request: JobRequest,
        voice: VoiceProfile,
        book_dir: Path,
        emit: EventSink,
        token: CancellationToken,
    ) -> JobOutcome:
        chunker = Chunker(self.config.chunk_size_chars)
        tasks = self._run_stage("chunk", lambda: chunker.to_tasks(document.chapters))
        if not tasks:
            raise ParseError(
                "Document contains no speakable text.",
                hint="Check that the document has text content and is not image-only.",
            )

        store = ArtifactStore(book_dir)
        store.ensure_root()
        synthesizer = ChunkSynthesizer(self.client, store, voice)
        eta = EtaEstimator(warmup_seconds=self.config.eta_warmup_seconds)
        total_chapters = len(document.chapters)

        def _on_progress(snapshot: ProgressSnapshot) -> None:
            estimate = eta.estimate(snapshot.completed_characters, snapshot.total_characters)
            emit(progress_event(snapshot, total_chapters, estimate))

        aggregator = ProgressAggregator(tasks, listener=_on_progress)

        def _on_chunk_complete(task: ChunkTask, artifact_path: Path) -> None:
            aggregator.record(task)

        dispatcher = ConcurrencyLimitedDispatcher(
            max_workers=self.config.concurrency,
            run_logger=self._run_logger,
        )
        results = self._run_stage(
            "tts",
            lambda: dispatcher.dispatch(tasks, synthesizer, token, on_complete=_on_chunk_complete),
        )
        if token.cancelled:
            raise JobAborted()

        assembler = OrderedResultAssembler(len(tasks))
        for result in results:
            if result.artifact_path is not None:
                assembler.store(result.global_order_index, result.artifact_path)
        ordered_paths = assembler.ordered_paths()

        emit(status_event(MERGING_STATUS))
        reserved_path = reserve_output_path(
            self.config.downloads_dir, document.base_name, request.output_format
        )
        try:
            output_path = self._run_stage(
                "merge",
                lambda: self.merger.merge(
                    ordered_paths,
                    self.config.downloads_dir,
                    reserved_path.stem,
                    request.output_format,
                    MergeMetadata(title=document.meta.title, artist=document.meta.author),
                ),
            )
        except Exception:
            reserved_path.unlink(missing_ok=True)
            raise
        duration = self.merger.probe_duration(output_path) or "Unknown"
        download_url = f"{DOWNLOADS_URL_PREFIX}/{quote(output_path.name)}"
        emit(result_event(download_url, total_chapters, duration))
        return JobOutcome(
            state="completed",
            output_path=output_path,
            download_url=download_url,
            chapters=total_chapters,
            duration=duration,
            artifact_paths=tuple(ordered_paths),
        )

"""HTTP surface: a streaming generation route plus static downloads.

Responsibilities:
- Accept a multipart upload or raw text on `POST /api/generate`.
- Reject unusable requests with a JSON 400 before any event is streamed.
- Stream job events as NDJSON; a client disconnect cancels the job.
- Serve merged outputs under `/downloads`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path
import queue

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from fastapi.concurrency import run_in_threadpool

from .config import BookcastConfig
from .errors import InputError
from .events import encode_event
from .io.storage import create_temp_dir, remove_tree
from .models.datatypes import JobRequest
from .parsing import normalize_optional_string, parse_speed
from .pipeline import CancellationToken, GenerationJob
from .pipeline.orchestrator import DOWNLOADS_URL_PREFIX
from .telemetry.logger import RunLogger
from .tts.voices import DEFAULT_VOICE, KNOWN_VOICES

NDJSON_MEDIA_TYPE = "application/x-ndjson"
_UPLOAD_BLOCK_BYTES = 1024 * 1024
_END_OF_STREAM = object()

JobFactory = Callable[[BookcastConfig], GenerationJob]


def create_app(
    config: BookcastConfig | None = None,
    *,
    job_factory: JobFactory | None = None,
    run_logger: RunLogger | None = None,
) -> FastAPI:
    resolved_config = config if config is not None else BookcastConfig()
    resolved_config.validate()
    downloads_dir = resolved_config.downloads_dir
    downloads_dir.mkdir(parents=True, exist_ok=True)

    def _default_job_factory(job_config: BookcastConfig) -> GenerationJob:
        return GenerationJob(job_config, run_logger=run_logger)

    make_job = job_factory if job_factory is not None else _default_job_factory

    app = FastAPI(title="bookcast")
    app.state.config = resolved_config

    @app.get("/api/voices")
    def api_voices() -> JSONResponse:
        return JSONResponse({"voices": list(KNOWN_VOICES), "default": DEFAULT_VOICE})

    @app.post("/api/generate", response_model=None)
    async def api_generate(
        file: UploadFile | None = File(None),
        text: str | None = Form(None),
        voice: str | None = Form(None),
        speed: str | None = Form(None),
        format: str | None = Form(None),
    ) -> JSONResponse | StreamingResponse:
        upload_dir: Path | None = None
        source_path: Path | None = None
        source_name: str | None = None
        if file is not None and file.filename:
            upload_dir = create_temp_dir("bookcast-upload-")
            source_name = Path(file.filename).name
            source_path = upload_dir / source_name
            try:
                with source_path.open("wb") as destination:
                    while True:
                        block = await file.read(_UPLOAD_BLOCK_BYTES)
                        if not block:
                            break
                        destination.write(block)
            except Exception:
                remove_tree(upload_dir)
                raise
            finally:
                await file.close()

        def _cleanup_upload() -> None:
            if upload_dir is not None:
                remove_tree(upload_dir)

        # An uploaded file wins over the text field.
        try:
            request = JobRequest(
                source_path=source_path,
                text=None if source_path is not None else text,
                voice=normalize_optional_string(voice) or resolved_config.voice,
                speed=parse_speed(speed, default=resolved_config.speed),
                output_format=(
                    normalize_optional_string(format) or resolved_config.output_format
                ).lower(),
                source_name=source_name,
            )
        except ValueError as exc:
            _cleanup_upload()
            return JSONResponse({"error": str(exc)}, status_code=400)

        events: queue.Queue[object] = queue.Queue()
        token = CancellationToken()

        def _on_finish() -> None:
            _cleanup_upload()
            events.put(_END_OF_STREAM)

        job = make_job(resolved_config)
        try:
            job.start(request, events.put, token, on_finish=_on_finish)
        except InputError as exc:
            _cleanup_upload()
            return JSONResponse({"error": exc.detail}, status_code=400)

        async def _stream() -> AsyncIterator[str]:
            finished = False
            try:
                while True:
                    event = await run_in_threadpool(events.get)
                    if event is _END_OF_STREAM:
                        finished = True
                        return
                    yield encode_event(event)  # type: ignore[arg-type]
            finally:
                if not finished:
                    token.cancel("client disconnected")

        return StreamingResponse(_stream(), media_type=NDJSON_MEDIA_TYPE)

    app.mount(
        DOWNLOADS_URL_PREFIX,
        StaticFiles(directory=str(downloads_dir), check_dir=False),
        name="downloads",
    )
    return app
